from trustlens.services.fraud_detection import FraudDetectionService, SubmissionOutcome
from trustlens.services.geo import haversine_km
from trustlens.services.notifications import DeliveryResult, SmsNotifier
from trustlens.services.rule_engine import (
    FraudReason,
    RuleEngine,
    RuleEngineConfig,
    RuleEvaluation,
)
from trustlens.services.statistics import window_stats, z_score

__all__ = [
    "DeliveryResult",
    "FraudDetectionService",
    "FraudReason",
    "RuleEngine",
    "RuleEngineConfig",
    "RuleEvaluation",
    "SmsNotifier",
    "SubmissionOutcome",
    "haversine_km",
    "window_stats",
    "z_score",
]
