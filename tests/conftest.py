import pytest
from factories import fixed_clock

from trustlens.config import Settings, StorageBackend
from trustlens.container import Container
from trustlens.repositories.memory import (
    InMemoryBlacklistRegistry,
    InMemoryTransactionLedger,
)
from trustlens.services.fraud_detection import FraudDetectionService
from trustlens.services.rule_engine import RuleEngine, RuleEngineConfig


@pytest.fixture
def engine_config() -> RuleEngineConfig:
    """Default thresholds with odd hours evaluated in UTC."""
    return RuleEngineConfig(local_timezone="UTC")


@pytest.fixture
def blacklist() -> InMemoryBlacklistRegistry:
    return InMemoryBlacklistRegistry()


@pytest.fixture
def ledger() -> InMemoryTransactionLedger:
    return InMemoryTransactionLedger()


@pytest.fixture
def engine(
    blacklist: InMemoryBlacklistRegistry, engine_config: RuleEngineConfig
) -> RuleEngine:
    return RuleEngine(blacklist=blacklist, config=engine_config)


@pytest.fixture
def service(
    ledger: InMemoryTransactionLedger,
    blacklist: InMemoryBlacklistRegistry,
    engine: RuleEngine,
) -> FraudDetectionService:
    return FraudDetectionService(
        ledger=ledger,
        blacklist=blacklist,
        rule_engine=engine,
        clock=fixed_clock(),
    )


@pytest.fixture
def test_settings() -> Settings:
    """Memory-backed settings with no seeded data and notifications off."""
    return Settings(
        storage_backend=StorageBackend.MEMORY,
        blacklist_seed=[],
        blacklisted_ips=[],
        notifications_enabled=False,
        local_timezone="UTC",
    )


@pytest.fixture
def test_container(test_settings: Settings) -> Container:
    return Container(settings=test_settings, clock=fixed_clock())
