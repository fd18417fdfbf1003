from collections.abc import Iterable
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

from trustlens.exceptions import InvalidAmountError, MissingFieldError


def _utc_now() -> datetime:
    return datetime.now(UTC)


REQUIRED_FIELDS: tuple[str, ...] = (
    "amount",
    "location",
    "card_type",
    "currency",
    "recipient_account_number",
    "sender_account_number",
    "transaction_id",
)


def _parse_amount(value: Decimal | int | float | str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(str(value), "not a number") from None
    if not amount.is_finite():
        raise InvalidAmountError(str(value), "not a finite number")
    if amount <= 0:
        raise InvalidAmountError(str(value), "must be positive")
    return amount


@dataclass(frozen=True)
class TransactionSubmission:
    """A transaction as submitted by a caller, before evaluation."""

    transaction_id: str
    amount: Decimal
    currency: str
    sender_account_number: str
    recipient_account_number: str
    location: str
    card_type: str
    timestamp: datetime = field(default_factory=_utc_now)
    client_ip: str | None = None
    phone: str | None = None

    def __post_init__(self) -> None:
        for name in REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise MissingFieldError(name)
        object.__setattr__(self, "amount", _parse_amount(self.amount))
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))


@dataclass(frozen=True)
class Transaction:
    """An evaluated transaction as stored in the ledger.

    The verdict and reasons are fixed when the record is built and are
    never recomputed.
    """

    transaction_id: str
    amount: Decimal
    currency: str
    sender_account_number: str
    recipient_account_number: str
    location: str
    card_type: str
    timestamp: datetime
    anomalous: bool = False
    reasons: tuple[str, ...] = ()
    client_ip: str | None = None
    phone: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.reasons, tuple):
            object.__setattr__(self, "reasons", tuple(self.reasons))
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))
        if self.anomalous != bool(self.reasons):
            raise ValueError(
                f"Transaction {self.transaction_id}: anomalous={self.anomalous} "
                f"does not match {len(self.reasons)} fraud reason(s)"
            )

    @classmethod
    def from_submission(
        cls, submission: TransactionSubmission, reasons: Iterable[str]
    ) -> "Transaction":
        reasons = tuple(reasons)
        values = {f.name: getattr(submission, f.name) for f in fields(submission)}
        return cls(**values, anomalous=bool(reasons), reasons=reasons)

    def to_public_dict(self) -> dict[str, object]:
        """History view without caller network details or contact number."""
        return {
            "transaction_id": self.transaction_id,
            "amount": float(self.amount),
            "location": self.location,
            "currency": self.currency,
            "card_type": self.card_type,
            "sender_account_number": self.sender_account_number,
            "recipient_account_number": self.recipient_account_number,
            "anomalous": self.anomalous,
            "fraud_reasons": list(self.reasons),
            "timestamp": self.timestamp.isoformat(),
        }
