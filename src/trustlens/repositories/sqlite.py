"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

from trustlens.domain.blacklist import BlacklistEntry
from trustlens.domain.transactions import Transaction
from trustlens.repositories.interfaces import (
    BlacklistRegistry,
    LedgerQuery,
    TransactionLedger,
)


def _format_timestamp(value: datetime) -> str:
    # Fixed width so that text ordering matches chronological ordering
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class SQLiteDatabase:
    """SQLite database connection manager."""

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = False
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None
        self.lock = threading.RLock()

    @property
    def path(self) -> str:
        return self._path

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path, check_same_thread=self._check_same_thread
            )
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            -- Evaluated transactions
            CREATE TABLE IF NOT EXISTS transactions (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id TEXT NOT NULL UNIQUE,
                amount TEXT NOT NULL,
                currency TEXT NOT NULL,
                sender_account_number TEXT NOT NULL,
                recipient_account_number TEXT NOT NULL,
                location TEXT NOT NULL,
                card_type TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                client_ip TEXT,
                phone TEXT,
                anomalous INTEGER NOT NULL DEFAULT 0,
                reasons TEXT NOT NULL DEFAULT '[]'
            );

            CREATE INDEX IF NOT EXISTS idx_transactions_sender
                ON transactions(sender_account_number, timestamp);
            CREATE INDEX IF NOT EXISTS idx_transactions_card_type
                ON transactions(card_type, timestamp);

            -- Blacklisted accounts
            CREATE TABLE IF NOT EXISTS blacklist (
                account_number TEXT PRIMARY KEY,
                reasons TEXT NOT NULL DEFAULT '[]',
                added_at TEXT NOT NULL
            );
            """
        )
        conn.commit()

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteTransactionLedger(TransactionLedger):
    """SQLite implementation of TransactionLedger."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def append(self, txn: Transaction) -> None:
        with self._db.lock:
            conn = self._db.get_connection()
            conn.execute(
                """
                INSERT INTO transactions (transaction_id, amount, currency,
                                          sender_account_number, recipient_account_number,
                                          location, card_type, timestamp, client_ip, phone,
                                          anomalous, reasons)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    txn.transaction_id,
                    str(txn.amount),
                    txn.currency,
                    txn.sender_account_number,
                    txn.recipient_account_number,
                    txn.location,
                    txn.card_type,
                    _format_timestamp(txn.timestamp),
                    txn.client_ip,
                    txn.phone,
                    1 if txn.anomalous else 0,
                    json.dumps(list(txn.reasons)),
                ),
            )
            conn.commit()

    def query(self, query: LedgerQuery | None = None) -> list[Transaction]:
        query = query or LedgerQuery()
        sql = "SELECT * FROM transactions WHERE 1 = 1"
        params: list[str | int] = []

        if query.sender_account_number is not None:
            sql += " AND sender_account_number = ?"
            params.append(query.sender_account_number)
        if query.card_type is not None:
            sql += " AND card_type = ?"
            params.append(query.card_type)
        if query.since is not None:
            sql += " AND timestamp >= ?"
            params.append(_format_timestamp(query.since))
        if query.anomalous is not None:
            sql += " AND anomalous = ?"
            params.append(1 if query.anomalous else 0)

        if query.limit is not None:
            sql = f"SELECT * FROM ({sql} ORDER BY timestamp DESC, seq DESC LIMIT ?)"
            params.append(max(query.limit, 0))
        sql += " ORDER BY timestamp ASC, seq ASC"

        with self._db.lock:
            rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def get(self, transaction_id: str) -> Transaction | None:
        with self._db.lock:
            row = (
                self._db.get_connection()
                .execute(
                    "SELECT * FROM transactions WHERE transaction_id = ?",
                    (transaction_id,),
                )
                .fetchone()
            )
        if row is None:
            return None
        return self._row_to_transaction(row)

    def latest(self) -> Transaction | None:
        with self._db.lock:
            row = (
                self._db.get_connection()
                .execute("SELECT * FROM transactions ORDER BY seq DESC LIMIT 1")
                .fetchone()
            )
        if row is None:
            return None
        return self._row_to_transaction(row)

    def count(self) -> int:
        with self._db.lock:
            row = (
                self._db.get_connection()
                .execute("SELECT COUNT(*) AS n FROM transactions")
                .fetchone()
            )
        return int(row["n"])

    def clear(self) -> int:
        with self._db.lock:
            conn = self._db.get_connection()
            cursor = conn.execute("DELETE FROM transactions")
            conn.commit()
        return cursor.rowcount

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        return Transaction(
            transaction_id=row["transaction_id"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            sender_account_number=row["sender_account_number"],
            recipient_account_number=row["recipient_account_number"],
            location=row["location"],
            card_type=row["card_type"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            client_ip=row["client_ip"],
            phone=row["phone"],
            anomalous=bool(row["anomalous"]),
            reasons=tuple(json.loads(row["reasons"])),
        )


class SQLiteBlacklistRegistry(BlacklistRegistry):
    """SQLite implementation of BlacklistRegistry."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def contains(self, account_number: str) -> bool:
        with self._db.lock:
            row = (
                self._db.get_connection()
                .execute(
                    "SELECT 1 FROM blacklist WHERE account_number = ?",
                    (account_number,),
                )
                .fetchone()
            )
        return row is not None

    def add(self, account_number: str, reasons: Iterable[str] = ()) -> bool:
        entry = BlacklistEntry(account_number=account_number, reasons=tuple(reasons))
        with self._db.lock:
            conn = self._db.get_connection()
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO blacklist (account_number, reasons, added_at)
                VALUES (?, ?, ?)
                """,
                (
                    entry.account_number,
                    json.dumps(list(entry.reasons)),
                    _format_timestamp(entry.added_at),
                ),
            )
            conn.commit()
        return cursor.rowcount == 1

    def remove(self, account_number: str) -> bool:
        with self._db.lock:
            conn = self._db.get_connection()
            cursor = conn.execute(
                "DELETE FROM blacklist WHERE account_number = ?", (account_number,)
            )
            conn.commit()
        return cursor.rowcount == 1

    def list(self) -> set[str]:
        with self._db.lock:
            rows = (
                self._db.get_connection()
                .execute("SELECT account_number FROM blacklist")
                .fetchall()
            )
        return {row["account_number"] for row in rows}

    def entries(self) -> list[BlacklistEntry]:
        with self._db.lock:
            rows = (
                self._db.get_connection()
                .execute("SELECT * FROM blacklist ORDER BY added_at ASC")
                .fetchall()
            )
        return [
            BlacklistEntry(
                account_number=row["account_number"],
                reasons=tuple(json.loads(row["reasons"])),
                added_at=datetime.fromisoformat(row["added_at"]),
            )
            for row in rows
        ]

    def count(self) -> int:
        with self._db.lock:
            row = (
                self._db.get_connection()
                .execute("SELECT COUNT(*) AS n FROM blacklist")
                .fetchone()
            )
        return int(row["n"])
