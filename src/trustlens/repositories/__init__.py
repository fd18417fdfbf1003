from trustlens.repositories.interfaces import (
    BlacklistRegistry,
    LedgerQuery,
    TransactionLedger,
)
from trustlens.repositories.memory import (
    InMemoryBlacklistRegistry,
    InMemoryTransactionLedger,
)
from trustlens.repositories.sqlite import (
    SQLiteBlacklistRegistry,
    SQLiteDatabase,
    SQLiteTransactionLedger,
)

__all__ = [
    "BlacklistRegistry",
    "InMemoryBlacklistRegistry",
    "InMemoryTransactionLedger",
    "LedgerQuery",
    "SQLiteBlacklistRegistry",
    "SQLiteDatabase",
    "SQLiteTransactionLedger",
    "TransactionLedger",
]
