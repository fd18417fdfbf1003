from trustlens.domain.blacklist import BlacklistEntry
from trustlens.domain.locations import Coordinates, resolve_location
from trustlens.domain.transactions import Transaction, TransactionSubmission

__all__ = [
    "BlacklistEntry",
    "Coordinates",
    "Transaction",
    "TransactionSubmission",
    "resolve_location",
]
