"""MongoDB implementations of repository interfaces."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC
from decimal import Decimal
from typing import Any

from bson.decimal128 import Decimal128
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from trustlens.domain.blacklist import BlacklistEntry
from trustlens.domain.transactions import Transaction
from trustlens.repositories.interfaces import (
    BlacklistRegistry,
    LedgerQuery,
    TransactionLedger,
)


class MongoDatabase:
    """MongoDB connection manager."""

    def __init__(
        self,
        uri: str,
        db_name: str = "fraud_detection",
        transactions_collection: str = "transactions",
        blacklist_collection: str = "blacklist",
        timeout_ms: int = 2000,
    ) -> None:
        self._uri = uri
        self._db_name = db_name
        self._transactions_name = transactions_collection
        self._blacklist_name = blacklist_collection
        self._timeout_ms = timeout_ms
        self._client: MongoClient | None = None

    def get_client(self) -> MongoClient:
        """Get or create the client."""
        if self._client is None:
            self._client = MongoClient(
                self._uri,
                serverSelectionTimeoutMS=self._timeout_ms,
                connectTimeoutMS=self._timeout_ms,
                tz_aware=True,
            )
        return self._client

    @property
    def database(self) -> Database:
        return self.get_client()[self._db_name]

    @property
    def transactions(self) -> Collection:
        return self.database[self._transactions_name]

    @property
    def blacklist(self) -> Collection:
        return self.database[self._blacklist_name]

    def initialize(self) -> None:
        """Verify the server is reachable and create indexes.

        Raises pymongo.errors.PyMongoError when the server cannot be reached
        within the configured timeout.
        """
        self.get_client().admin.command("ping")
        self.transactions.create_index("transaction_id", unique=True)
        self.transactions.create_index(
            [("sender_account_number", ASCENDING), ("timestamp", ASCENDING)]
        )
        self.transactions.create_index(
            [("card_type", ASCENDING), ("timestamp", ASCENDING)]
        )
        self.blacklist.create_index([("type", ASCENDING), ("value", ASCENDING)], unique=True)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class MongoTransactionLedger(TransactionLedger):
    """MongoDB implementation of TransactionLedger."""

    def __init__(self, database: MongoDatabase) -> None:
        self._db = database

    def append(self, txn: Transaction) -> None:
        self._db.transactions.insert_one(self._transaction_to_document(txn))

    def query(self, query: LedgerQuery | None = None) -> list[Transaction]:
        query = query or LedgerQuery()
        filters: dict[str, Any] = {}

        if query.sender_account_number is not None:
            filters["sender_account_number"] = query.sender_account_number
        if query.card_type is not None:
            filters["card_type"] = query.card_type
        if query.since is not None:
            filters["timestamp"] = {"$gte": query.since.astimezone(UTC)}
        if query.anomalous is not None:
            filters["anomalous"] = query.anomalous

        if query.limit is not None:
            if query.limit <= 0:
                return []
            cursor = (
                self._db.transactions.find(filters)
                .sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
                .limit(query.limit)
            )
            documents = list(cursor)
            documents.reverse()
        else:
            documents = list(
                self._db.transactions.find(filters).sort(
                    [("timestamp", ASCENDING), ("_id", ASCENDING)]
                )
            )
        return [self._document_to_transaction(doc) for doc in documents]

    def get(self, transaction_id: str) -> Transaction | None:
        document = self._db.transactions.find_one({"transaction_id": transaction_id})
        if document is None:
            return None
        return self._document_to_transaction(document)

    def latest(self) -> Transaction | None:
        document = self._db.transactions.find_one(sort=[("_id", DESCENDING)])
        if document is None:
            return None
        return self._document_to_transaction(document)

    def count(self) -> int:
        return self._db.transactions.count_documents({})

    def clear(self) -> int:
        return self._db.transactions.delete_many({}).deleted_count

    @staticmethod
    def _transaction_to_document(txn: Transaction) -> dict[str, Any]:
        return {
            "transaction_id": txn.transaction_id,
            "amount": Decimal128(txn.amount),
            "currency": txn.currency,
            "sender_account_number": txn.sender_account_number,
            "recipient_account_number": txn.recipient_account_number,
            "location": txn.location,
            "card_type": txn.card_type,
            "timestamp": txn.timestamp.astimezone(UTC),
            "client_ip": txn.client_ip,
            "phone": txn.phone,
            "anomalous": txn.anomalous,
            "fraud_reasons": list(txn.reasons),
        }

    @staticmethod
    def _document_to_transaction(document: dict[str, Any]) -> Transaction:
        amount = document["amount"]
        if isinstance(amount, Decimal128):
            amount = amount.to_decimal()
        return Transaction(
            transaction_id=document["transaction_id"],
            amount=Decimal(str(amount)),
            currency=document["currency"],
            sender_account_number=document["sender_account_number"],
            recipient_account_number=document["recipient_account_number"],
            location=document["location"],
            card_type=document["card_type"],
            timestamp=document["timestamp"],
            client_ip=document.get("client_ip"),
            phone=document.get("phone"),
            anomalous=bool(document.get("anomalous", False)),
            reasons=tuple(document.get("fraud_reasons", ())),
        )


class MongoBlacklistRegistry(BlacklistRegistry):
    """MongoDB implementation of BlacklistRegistry.

    Documents are stored as ``{type: "account", value, reason, timestamp}``.
    """

    ENTRY_TYPE = "account"

    def __init__(self, database: MongoDatabase) -> None:
        self._db = database

    def contains(self, account_number: str) -> bool:
        document = self._db.blacklist.find_one(
            {"type": self.ENTRY_TYPE, "value": account_number}, projection={"_id": 1}
        )
        return document is not None

    def add(self, account_number: str, reasons: Iterable[str] = ()) -> bool:
        entry = BlacklistEntry(account_number=account_number, reasons=tuple(reasons))
        result = self._db.blacklist.update_one(
            {"type": self.ENTRY_TYPE, "value": account_number},
            {
                "$setOnInsert": {
                    "reason": list(entry.reasons),
                    "timestamp": entry.added_at,
                }
            },
            upsert=True,
        )
        return result.upserted_id is not None

    def remove(self, account_number: str) -> bool:
        result = self._db.blacklist.delete_one(
            {"type": self.ENTRY_TYPE, "value": account_number}
        )
        return result.deleted_count == 1

    def list(self) -> set[str]:
        return {
            doc["value"]
            for doc in self._db.blacklist.find(
                {"type": self.ENTRY_TYPE}, projection={"value": 1}
            )
        }

    def entries(self) -> list[BlacklistEntry]:
        return [
            BlacklistEntry(
                account_number=doc["value"],
                reasons=tuple(doc.get("reason", ())),
                added_at=doc["timestamp"],
            )
            for doc in self._db.blacklist.find({"type": self.ENTRY_TYPE}).sort(
                "timestamp", ASCENDING
            )
        ]

    def count(self) -> int:
        return self._db.blacklist.count_documents({"type": self.ENTRY_TYPE})
