"""Builders for transactions used across the test suite."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from trustlens.domain.transactions import Transaction, TransactionSubmission

NOON = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def make_submission(
    transaction_id: str = "txn-1",
    amount: str | Decimal = "100.00",
    sender: str = "ACC-SENDER",
    recipient: str = "ACC-RECIPIENT",
    location: str = "Chennai",
    card_type: str = "VISA",
    timestamp: datetime = NOON,
    client_ip: str | None = "127.0.0.1",
    phone: str | None = None,
) -> TransactionSubmission:
    return TransactionSubmission(
        transaction_id=transaction_id,
        amount=Decimal(str(amount)),
        currency="INR",
        sender_account_number=sender,
        recipient_account_number=recipient,
        location=location,
        card_type=card_type,
        timestamp=timestamp,
        client_ip=client_ip,
        phone=phone,
    )


def make_transaction(
    transaction_id: str = "hist-1",
    amount: str | Decimal = "100.00",
    sender: str = "ACC-SENDER",
    recipient: str = "ACC-RECIPIENT",
    location: str = "Chennai",
    card_type: str = "VISA",
    timestamp: datetime = NOON - timedelta(hours=6),
    anomalous: bool = False,
    reasons: tuple[str, ...] = (),
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        amount=Decimal(str(amount)),
        currency="INR",
        sender_account_number=sender,
        recipient_account_number=recipient,
        location=location,
        card_type=card_type,
        timestamp=timestamp,
        anomalous=anomalous,
        reasons=reasons,
    )


def fixed_clock(moment: datetime = NOON) -> Callable[[], datetime]:
    return lambda: moment
