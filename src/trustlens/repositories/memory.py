"""In-memory implementations of repository interfaces.

Used when no durable store is configured or reachable, and in tests.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from trustlens.domain.blacklist import BlacklistEntry
from trustlens.domain.transactions import Transaction
from trustlens.repositories.interfaces import (
    BlacklistRegistry,
    LedgerQuery,
    TransactionLedger,
)


class InMemoryTransactionLedger(TransactionLedger):
    """List-backed ledger kept in submission order."""

    def __init__(self) -> None:
        self._transactions: list[Transaction] = []
        self._lock = threading.Lock()

    def append(self, txn: Transaction) -> None:
        with self._lock:
            self._transactions.append(txn)

    def query(self, query: LedgerQuery | None = None) -> list[Transaction]:
        query = query or LedgerQuery()
        with self._lock:
            matched = [t for t in self._transactions if query.matches(t)]
        # Stable sort keeps insertion order for identical timestamps
        matched.sort(key=lambda t: t.timestamp)
        if query.limit is not None:
            matched = matched[-query.limit :] if query.limit > 0 else []
        return matched

    def get(self, transaction_id: str) -> Transaction | None:
        with self._lock:
            for txn in self._transactions:
                if txn.transaction_id == transaction_id:
                    return txn
        return None

    def latest(self) -> Transaction | None:
        with self._lock:
            return self._transactions[-1] if self._transactions else None

    def count(self) -> int:
        with self._lock:
            return len(self._transactions)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._transactions)
            self._transactions = []
        return removed


class InMemoryBlacklistRegistry(BlacklistRegistry):
    """Dict-backed registry keyed by account number."""

    def __init__(self, account_numbers: Iterable[str] = ()) -> None:
        self._entries: dict[str, BlacklistEntry] = {}
        self._lock = threading.Lock()
        self.seed(account_numbers)

    def contains(self, account_number: str) -> bool:
        with self._lock:
            return account_number in self._entries

    def add(self, account_number: str, reasons: Iterable[str] = ()) -> bool:
        with self._lock:
            if account_number in self._entries:
                return False
            self._entries[account_number] = BlacklistEntry(
                account_number=account_number, reasons=tuple(reasons)
            )
            return True

    def remove(self, account_number: str) -> bool:
        with self._lock:
            return self._entries.pop(account_number, None) is not None

    def list(self) -> set[str]:
        with self._lock:
            return set(self._entries)

    def entries(self) -> list[BlacklistEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.added_at)

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
