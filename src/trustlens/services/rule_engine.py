"""Rule engine for evaluating a transaction against its history.

Rules run independently and in a fixed order; every triggered rule
contributes one reason and the verdict is fraud when any rule fired:

1. Blacklisted sender or recipient account
2. Blacklisted client IP
3. Odd hours (local time)
4. Abnormal amount (z-score over the profile's recent amounts)
5. Geographically impossible travel since the last trusted transaction
6. Rapid consecutive transactions from the same sender
7. Unusually high absolute amount (optional)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

from trustlens.config import ProfileKey, Settings
from trustlens.domain.locations import resolve_location
from trustlens.domain.transactions import Transaction, TransactionSubmission
from trustlens.logging_config import get_logger
from trustlens.repositories.interfaces import BlacklistRegistry
from trustlens.services.geo import haversine_km
from trustlens.services.statistics import z_score

logger = get_logger(__name__)


class FraudReason(str, Enum):
    """Reason strings reported for triggered rules."""

    BLACKLISTED_ACCOUNT = "Blacklisted account detected"
    BLACKLISTED_IP = "Blacklisted IP address"
    ODD_HOURS = "Transaction during odd hours (12 AM - 4 AM)"
    ABNORMAL_AMOUNT = "Abnormal amount (behavioral)"
    GEO_DRIFT = "Geographically impossible travel detected"
    RAPID_TRANSACTIONS = "Multiple rapid transactions detected"
    HIGH_AMOUNT = "Unusually high transaction amount"


@dataclass
class RuleEngineConfig:
    """Thresholds for the rule engine."""

    behavior_window: int = 5
    z_score_threshold: float = 2.5
    z_score_std_floor_ratio: float = 0.1
    max_travel_speed_kmh: float = 500.0
    velocity_window: timedelta = timedelta(minutes=5)
    velocity_threshold: int = 3
    high_amount_check_enabled: bool = True
    high_amount_threshold: Decimal = Decimal("100000")
    odd_hours_start: int = 0
    odd_hours_end: int = 4
    local_timezone: str | None = None
    profile_key: ProfileKey = ProfileKey.SENDER
    blacklisted_ips: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RuleEngineConfig":
        return cls(
            behavior_window=settings.behavior_window,
            z_score_threshold=settings.z_score_threshold,
            z_score_std_floor_ratio=settings.z_score_std_floor_ratio,
            max_travel_speed_kmh=settings.max_travel_speed_kmh,
            velocity_window=timedelta(minutes=settings.velocity_window_minutes),
            velocity_threshold=settings.velocity_threshold,
            high_amount_check_enabled=settings.high_amount_check_enabled,
            high_amount_threshold=settings.high_amount_threshold,
            odd_hours_start=settings.odd_hours_start,
            odd_hours_end=settings.odd_hours_end,
            local_timezone=settings.local_timezone,
            profile_key=settings.profile_key,
            blacklisted_ips=frozenset(settings.blacklisted_ips),
        )

    @property
    def timezone(self) -> tzinfo | None:
        return ZoneInfo(self.local_timezone) if self.local_timezone else None


@dataclass(frozen=True)
class RuleEvaluation:
    """Outcome of evaluating one submission."""

    reasons: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_fraud(self) -> bool:
        return bool(self.reasons)


class RuleEngine:
    """Evaluates submissions against blacklist, timing, amount, geo and velocity rules."""

    def __init__(
        self,
        blacklist: BlacklistRegistry,
        config: RuleEngineConfig | None = None,
    ) -> None:
        self.blacklist = blacklist
        self.config = config or RuleEngineConfig()

    def evaluate(
        self,
        submission: TransactionSubmission,
        history: Sequence[Transaction],
    ) -> RuleEvaluation:
        """Evaluate a submission.

        Args:
            submission: The validated transaction being submitted.
            history: Previously recorded transactions. Entries unrelated
                to the submission's profile or sender are ignored.

        Returns:
            RuleEvaluation with reasons in rule order.
        """
        ordered = sorted(history, key=lambda t: t.timestamp)
        profile = [t for t in ordered if self._in_profile(t, submission)]
        details: dict[str, Any] = {}
        reasons: list[str] = []

        if self._check_blacklisted_account(submission):
            reasons.append(FraudReason.BLACKLISTED_ACCOUNT.value)

        if self._check_blacklisted_ip(submission):
            reasons.append(FraudReason.BLACKLISTED_IP.value)

        if self._check_odd_hours(submission, details):
            reasons.append(FraudReason.ODD_HOURS.value)

        if self._check_abnormal_amount(submission, profile, details):
            reasons.append(FraudReason.ABNORMAL_AMOUNT.value)

        if self._check_geo_drift(submission, profile, details):
            reasons.append(FraudReason.GEO_DRIFT.value)

        if self._check_velocity(submission, ordered, details):
            reasons.append(FraudReason.RAPID_TRANSACTIONS.value)

        if self._check_high_amount(submission):
            reasons.append(FraudReason.HIGH_AMOUNT.value)

        evaluation = RuleEvaluation(reasons=tuple(reasons), details=details)
        logger.debug(
            "rules_evaluated",
            transaction_id=submission.transaction_id,
            is_fraud=evaluation.is_fraud,
            reasons=list(evaluation.reasons),
            **details,
        )
        return evaluation

    def _in_profile(self, txn: Transaction, submission: TransactionSubmission) -> bool:
        if self.config.profile_key == ProfileKey.CARD_TYPE:
            return txn.card_type == submission.card_type
        return txn.sender_account_number == submission.sender_account_number

    def _check_blacklisted_account(self, submission: TransactionSubmission) -> bool:
        return self.blacklist.contains(
            submission.sender_account_number
        ) or self.blacklist.contains(submission.recipient_account_number)

    def _check_blacklisted_ip(self, submission: TransactionSubmission) -> bool:
        return (
            submission.client_ip is not None
            and submission.client_ip in self.config.blacklisted_ips
        )

    def _check_odd_hours(
        self, submission: TransactionSubmission, details: dict[str, Any]
    ) -> bool:
        local_hour = submission.timestamp.astimezone(self.config.timezone).hour
        details["local_hour"] = local_hour
        return self.config.odd_hours_start <= local_hour < self.config.odd_hours_end

    def _check_abnormal_amount(
        self,
        submission: TransactionSubmission,
        profile: Sequence[Transaction],
        details: dict[str, Any],
    ) -> bool:
        window = [t.amount for t in profile[-self.config.behavior_window :]]
        score = z_score(
            window,
            submission.amount,
            relative_std_floor=self.config.z_score_std_floor_ratio,
        )
        details["z_score"] = round(score, 4)
        return score > self.config.z_score_threshold

    def _check_geo_drift(
        self,
        submission: TransactionSubmission,
        profile: Sequence[Transaction],
        details: dict[str, Any],
    ) -> bool:
        current = resolve_location(submission.location)
        if current is None:
            return False

        last_trusted = next((t for t in reversed(profile) if not t.anomalous), None)
        if last_trusted is None:
            return False
        previous = resolve_location(last_trusted.location)
        if previous is None:
            return False

        distance = haversine_km(previous, current)
        elapsed = max((submission.timestamp - last_trusted.timestamp).total_seconds(), 0)
        elapsed_hours = elapsed / 3600
        details["distance_km"] = round(distance, 1)
        details["elapsed_hours"] = round(elapsed_hours, 4)
        return distance > self.config.max_travel_speed_kmh * elapsed_hours

    def _check_velocity(
        self,
        submission: TransactionSubmission,
        history: Sequence[Transaction],
        details: dict[str, Any],
    ) -> bool:
        window_start = submission.timestamp - self.config.velocity_window
        recent = sum(
            1
            for t in history
            if t.sender_account_number == submission.sender_account_number
            and window_start <= t.timestamp <= submission.timestamp
        )
        # The submission itself counts toward the threshold
        count = recent + 1
        details["recent_count"] = count
        return count >= self.config.velocity_threshold

    def _check_high_amount(self, submission: TransactionSubmission) -> bool:
        return (
            self.config.high_amount_check_enabled
            and submission.amount > self.config.high_amount_threshold
        )
