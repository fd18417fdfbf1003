"""Dependency injection container for TrustLens.

Selects the storage backend once at startup and wires the rule engine,
notifier and fraud detection service on top of it.

Usage:
    from trustlens.container import get_container

    container = get_container()
    service = container.fraud_service
"""

import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import cached_property, lru_cache
from typing import Any

from pymongo.errors import ConfigurationError, PyMongoError

from trustlens.config import Settings, StorageBackend, get_settings
from trustlens.domain.results import OperationStatus
from trustlens.logging_config import get_logger
from trustlens.repositories.interfaces import BlacklistRegistry, TransactionLedger
from trustlens.repositories.memory import (
    InMemoryBlacklistRegistry,
    InMemoryTransactionLedger,
)
from trustlens.services.fraud_detection import FraudDetectionService
from trustlens.services.notifications import SmsNotifier
from trustlens.services.rule_engine import RuleEngine, RuleEngineConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class StorageConnection:
    """Result of selecting a storage backend at startup.

    ``status`` describes the configured backend: SUCCESS when it is in
    use, UNAVAILABLE or ERROR when the container fell back to memory.
    """

    requested: StorageBackend
    active: StorageBackend
    status: OperationStatus
    ledger: TransactionLedger
    blacklist: BlacklistRegistry
    error: str | None = None
    resource: Any = None

    @property
    def degraded(self) -> bool:
        return self.active != self.requested


class Container:
    """Dependency injection container.

    Provides lazy-loaded access to the storage backend and services.
    The container can be configured with custom settings for testing:

        test_settings = Settings(storage_backend=StorageBackend.MEMORY)
        container = Container(settings=test_settings)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        sms_transport: Any = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._clock = clock
        self._sms_transport = sms_transport
        self.started_at = time.monotonic()
        logger.debug(
            "container_created",
            storage_backend=self._settings.storage_backend.value,
            environment=self._settings.environment.value,
        )

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        return self._settings

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at

    @cached_property
    def storage(self) -> StorageConnection:
        """Connect the configured backend, falling back to memory.

        The fallback is logged once, here, and never re-attempted.
        """
        requested = self._settings.storage_backend
        if requested == StorageBackend.MONGO:
            connection = self._connect_mongo()
        elif requested == StorageBackend.SQLITE:
            connection = self._connect_sqlite()
        else:
            connection = self._connect_memory(requested, OperationStatus.SUCCESS)

        if connection.degraded:
            logger.warning(
                "storage_degraded",
                requested=requested.value,
                active=connection.active.value,
                status=connection.status.value,
                error=connection.error,
            )
        else:
            logger.info("storage_connected", backend=connection.active.value)

        connection.blacklist.seed(self._settings.blacklist_seed)
        return connection

    def _connect_memory(
        self,
        requested: StorageBackend,
        status: OperationStatus,
        error: str | None = None,
    ) -> StorageConnection:
        return StorageConnection(
            requested=requested,
            active=StorageBackend.MEMORY,
            status=status,
            ledger=InMemoryTransactionLedger(),
            blacklist=InMemoryBlacklistRegistry(),
            error=error,
        )

    def _connect_mongo(self) -> StorageConnection:
        from trustlens.repositories.mongo import (
            MongoBlacklistRegistry,
            MongoDatabase,
            MongoTransactionLedger,
        )

        uri = self._settings.mongo_uri
        logger.info(
            "initializing_mongo_database",
            # Don't log the full URI as it may contain credentials
            host=uri.split("@")[-1].split("/")[0] if "@" in uri else uri,
            database=self._settings.mongo_db_name,
        )
        db = MongoDatabase(
            uri,
            db_name=self._settings.mongo_db_name,
            transactions_collection=self._settings.mongo_collection_name,
            blacklist_collection=self._settings.mongo_blacklist_collection_name,
            timeout_ms=self._settings.mongo_timeout_ms,
        )
        try:
            db.initialize()
        except ConfigurationError as e:
            db.close()
            return self._connect_memory(
                StorageBackend.MONGO, OperationStatus.ERROR, str(e)
            )
        except PyMongoError as e:
            db.close()
            return self._connect_memory(
                StorageBackend.MONGO, OperationStatus.UNAVAILABLE, str(e)
            )

        return StorageConnection(
            requested=StorageBackend.MONGO,
            active=StorageBackend.MONGO,
            status=OperationStatus.SUCCESS,
            ledger=MongoTransactionLedger(db),
            blacklist=MongoBlacklistRegistry(db),
            resource=db,
        )

    def _connect_sqlite(self) -> StorageConnection:
        from trustlens.repositories.sqlite import (
            SQLiteBlacklistRegistry,
            SQLiteDatabase,
            SQLiteTransactionLedger,
        )

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)

        db = SQLiteDatabase(db_path)
        try:
            db.initialize()
        except sqlite3.OperationalError as e:
            db.close()
            return self._connect_memory(
                StorageBackend.SQLITE, OperationStatus.UNAVAILABLE, str(e)
            )
        except sqlite3.DatabaseError as e:
            db.close()
            return self._connect_memory(
                StorageBackend.SQLITE, OperationStatus.ERROR, str(e)
            )

        return StorageConnection(
            requested=StorageBackend.SQLITE,
            active=StorageBackend.SQLITE,
            status=OperationStatus.SUCCESS,
            ledger=SQLiteTransactionLedger(db),
            blacklist=SQLiteBlacklistRegistry(db),
            resource=db,
        )

    @cached_property
    def rule_engine(self) -> RuleEngine:
        """Get the rule engine bound to the active blacklist."""
        return RuleEngine(
            blacklist=self.storage.blacklist,
            config=RuleEngineConfig.from_settings(self._settings),
        )

    @cached_property
    def notifier(self) -> SmsNotifier:
        """Get the SMS notifier."""
        return SmsNotifier(self._settings, transport=self._sms_transport)

    @cached_property
    def fraud_service(self) -> FraudDetectionService:
        """Get the fraud detection service."""
        kwargs: dict[str, Any] = {}
        if self._clock is not None:
            kwargs["clock"] = self._clock
        return FraudDetectionService(
            ledger=self.storage.ledger,
            blacklist=self.storage.blacklist,
            rule_engine=self.rule_engine,
            notifier=self.notifier,
            default_phone=self._settings.default_phone,
            **kwargs,
        )

    def close(self) -> None:
        """Close all resources held by the container.

        Should be called during application shutdown.
        """
        storage = self.__dict__.get("storage")
        if storage is not None and storage.resource is not None:
            logger.info("closing_storage_connection", backend=storage.active.value)
            storage.resource.close()

    def __enter__(self) -> "Container":
        """Enter context manager."""
        return self

    def __exit__(self, *args: object) -> None:
        """Exit context manager, closing resources."""
        self.close()


# Module-level container instance
_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton.

    For testing, create a Container directly with custom settings and
    pass it to create_app instead of using this function.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset the global container."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()
