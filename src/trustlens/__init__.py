from trustlens.domain.blacklist import BlacklistEntry
from trustlens.domain.transactions import Transaction, TransactionSubmission
from trustlens.services.rule_engine import (
    FraudReason,
    RuleEngine,
    RuleEngineConfig,
    RuleEvaluation,
)

__all__ = [
    "BlacklistEntry",
    "FraudReason",
    "RuleEngine",
    "RuleEngineConfig",
    "RuleEvaluation",
    "Transaction",
    "TransactionSubmission",
]

__version__ = "0.1.0"
