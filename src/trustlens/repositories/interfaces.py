from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from trustlens.domain.blacklist import BlacklistEntry
from trustlens.domain.transactions import Transaction


@dataclass(frozen=True)
class LedgerQuery:
    """Filter for ledger reads.

    Unset fields do not constrain the result. ``limit`` keeps the most
    recent matches; results are always ordered by timestamp ascending.
    """

    sender_account_number: str | None = None
    card_type: str | None = None
    since: datetime | None = None
    anomalous: bool | None = None
    limit: int | None = None

    def matches(self, txn: Transaction) -> bool:
        if (
            self.sender_account_number is not None
            and txn.sender_account_number != self.sender_account_number
        ):
            return False
        if self.card_type is not None and txn.card_type != self.card_type:
            return False
        if self.since is not None and txn.timestamp < self.since:
            return False
        if self.anomalous is not None and txn.anomalous != self.anomalous:
            return False
        return True


class TransactionLedger(ABC):
    @abstractmethod
    def append(self, txn: Transaction) -> None:
        pass

    @abstractmethod
    def query(self, query: LedgerQuery | None = None) -> list[Transaction]:
        pass

    @abstractmethod
    def get(self, transaction_id: str) -> Transaction | None:
        pass

    @abstractmethod
    def latest(self) -> Transaction | None:
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def clear(self) -> int:
        pass


class BlacklistRegistry(ABC):
    @abstractmethod
    def contains(self, account_number: str) -> bool:
        pass

    @abstractmethod
    def add(self, account_number: str, reasons: Iterable[str] = ()) -> bool:
        """Add an account; returns False if it was already present."""

    @abstractmethod
    def remove(self, account_number: str) -> bool:
        """Remove an account; returns False if it was not present."""

    @abstractmethod
    def list(self) -> set[str]:
        pass

    @abstractmethod
    def entries(self) -> list[BlacklistEntry]:
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    def seed(self, account_numbers: Iterable[str]) -> None:
        for account_number in account_numbers:
            self.add(account_number, ("seeded",))
