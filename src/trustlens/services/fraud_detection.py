"""Fraud detection service.

Owns the unit of work for a submission: read history, evaluate rules,
append to the ledger and blacklist the recipient on fraud. The unit of
work is serialized so concurrent submissions never observe a partially
recorded history.
"""

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from trustlens.config import ProfileKey
from trustlens.domain.results import OperationStatus
from trustlens.domain.transactions import Transaction, TransactionSubmission
from trustlens.exceptions import DuplicateTransactionError
from trustlens.logging_config import LogContext, get_logger
from trustlens.repositories.interfaces import (
    BlacklistRegistry,
    LedgerQuery,
    TransactionLedger,
)
from trustlens.services.notifications import (
    DeliveryResult,
    SmsNotifier,
    build_transaction_message,
)
from trustlens.services.rule_engine import RuleEngine

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class SubmissionOutcome:
    transaction: Transaction
    notification: DeliveryResult | None = None


class FraudDetectionService:
    """Evaluates, records and reports submitted transactions."""

    def __init__(
        self,
        ledger: TransactionLedger,
        blacklist: BlacklistRegistry,
        rule_engine: RuleEngine,
        notifier: SmsNotifier | None = None,
        default_phone: str | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.ledger = ledger
        self.blacklist = blacklist
        self.rule_engine = rule_engine
        self.notifier = notifier
        self.default_phone = default_phone
        self.clock = clock
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self.clock()

    def submit(self, submission: TransactionSubmission) -> SubmissionOutcome:
        """Evaluate and record a submission.

        Raises:
            DuplicateTransactionError: If the transaction id is already recorded.
        """
        with LogContext(transaction_id=submission.transaction_id):
            with self._lock:
                if self.ledger.get(submission.transaction_id) is not None:
                    raise DuplicateTransactionError(submission.transaction_id)

                history = self._load_history(submission)
                evaluation = self.rule_engine.evaluate(submission, history)
                txn = Transaction.from_submission(submission, evaluation.reasons)
                self.ledger.append(txn)

                if txn.anomalous and self.blacklist.add(
                    txn.recipient_account_number, txn.reasons
                ):
                    logger.warning(
                        "account_blacklisted",
                        account_number=txn.recipient_account_number,
                        reasons=list(txn.reasons),
                    )

            logger.info(
                "transaction_evaluated",
                anomalous=txn.anomalous,
                reasons=list(txn.reasons),
                amount=str(txn.amount),
                sender=txn.sender_account_number,
            )
            notification = self._notify(txn)

        return SubmissionOutcome(transaction=txn, notification=notification)

    def _load_history(self, submission: TransactionSubmission) -> list[Transaction]:
        sender_history = self.ledger.query(
            LedgerQuery(sender_account_number=submission.sender_account_number)
        )
        if self.rule_engine.config.profile_key != ProfileKey.CARD_TYPE:
            return sender_history

        card_history = self.ledger.query(LedgerQuery(card_type=submission.card_type))
        seen = {t.transaction_id for t in sender_history}
        merged = sender_history + [t for t in card_history if t.transaction_id not in seen]
        merged.sort(key=lambda t: t.timestamp)
        return merged

    def _notify(self, txn: Transaction) -> DeliveryResult | None:
        phone = txn.phone or self.default_phone
        if self.notifier is None or not phone:
            return None
        try:
            return self.notifier.send(phone, build_transaction_message(txn))
        except Exception as e:
            # The record is already stored; a delivery fault never fails the submit
            logger.exception("notification_failed", phone=phone)
            return DeliveryResult(status=OperationStatus.ERROR, error=str(e))

    def send_message(self, phone: str, message: str) -> DeliveryResult | None:
        if self.notifier is None:
            return None
        return self.notifier.send(phone, message)

    # Queries -----------------------------------------------------------------

    def history(self) -> list[Transaction]:
        return self.ledger.query()

    def latest_verdict(self) -> bool:
        latest = self.ledger.latest()
        return latest.anomalous if latest is not None else False

    def transaction_count(self) -> int:
        return self.ledger.count()

    def clear_history(self) -> int:
        with self._lock:
            removed = self.ledger.clear()
        logger.warning("ledger_cleared", removed=removed)
        return removed

    # Blacklist administration ------------------------------------------------

    def blacklisted_accounts(self) -> set[str]:
        return self.blacklist.list()

    def blacklist_account(
        self, account_number: str, reasons: Iterable[str] = ("manual",)
    ) -> bool:
        added = self.blacklist.add(account_number, reasons)
        logger.info("blacklist_add", account_number=account_number, added=added)
        return added

    def unblacklist_account(self, account_number: str) -> bool:
        removed = self.blacklist.remove(account_number)
        logger.info("blacklist_remove", account_number=account_number, removed=removed)
        return removed
