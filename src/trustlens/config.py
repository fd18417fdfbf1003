"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(str, Enum):
    """Supported ledger/blacklist backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    MONGO = "mongo"


class ProfileKey(str, Enum):
    """Which field groups history into a behavioural profile."""

    SENDER = "sender"
    CARD_TYPE = "card_type"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for development. Override via
    environment variables (prefixed with TRUSTLENS_) or .env file.

    Examples:
        TRUSTLENS_STORAGE_BACKEND=sqlite
        TRUSTLENS_MONGO_URI=mongodb://db:27017
        TRUSTLENS_LOG_LEVEL=DEBUG
        TRUSTLENS_ENVIRONMENT=production
    """

    model_config = SettingsConfigDict(
        env_prefix="TRUSTLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "TrustLens Fraud Detection"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool | None = Field(
        default=None, description="Enable debug mode (defaults to on in development)"
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] | None = Field(
        default=None,
        description="'json' or 'console'. Unset means json in production only",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    api_reload: bool = Field(
        default=False, description="Enable auto-reload (development only)"
    )

    # Storage
    storage_backend: StorageBackend = StorageBackend.MONGO
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "fraud_detection"
    mongo_collection_name: str = "transactions"
    mongo_blacklist_collection_name: str = "blacklist"
    mongo_timeout_ms: int = Field(
        default=2000, ge=1, description="Server selection timeout for MongoDB"
    )
    sqlite_path: Path = Field(
        default=Path("trustlens.db"),
        description="SQLite database file path (when storage_backend=sqlite)",
    )

    # Rule thresholds
    behavior_window: int = Field(default=5, ge=2)
    z_score_threshold: float = Field(default=2.5, gt=0)
    z_score_std_floor_ratio: float = Field(
        default=0.1,
        ge=0,
        description="Standard deviation used for a flat window, as a fraction of its mean",
    )
    max_travel_speed_kmh: float = Field(
        default=500.0, gt=0, description="Faster than this is implausible travel"
    )
    velocity_window_minutes: int = Field(default=5, ge=1)
    velocity_threshold: int = Field(default=3, ge=1)
    high_amount_check_enabled: bool = True
    high_amount_threshold: Decimal = Decimal("100000")
    odd_hours_start: int = Field(default=0, ge=0, le=23)
    odd_hours_end: int = Field(default=4, ge=1, le=24)
    local_timezone: str | None = Field(
        default=None,
        description="IANA timezone for the odd-hours rule. None uses the server's local time.",
    )
    profile_key: ProfileKey = ProfileKey.SENDER

    # Seed data
    blacklist_seed: list[str] = Field(
        default_factory=lambda: ["9876543210", "1111222233"]
    )
    blacklisted_ips: list[str] = Field(
        default_factory=lambda: ["203.0.113.5", "198.51.100.10", "45.33.32.156"]
    )

    # Notifications (Twilio)
    notifications_enabled: bool = True
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None
    twilio_base_url: str = "https://api.twilio.com"
    sms_timeout_seconds: float = Field(default=10.0, gt=0)
    default_phone: str | None = Field(
        default=None, description="Contact used when a submission has no phone"
    )

    @model_validator(mode="after")
    def apply_environment_defaults(self) -> "Settings":
        """Fill debug and log_format from the environment when left unset."""
        if self.debug is None:
            self.debug = self.environment == Environment.DEVELOPMENT
        if self.log_format is None:
            self.log_format = "json" if self.is_production else "console"
        return self

    @field_validator("odd_hours_end", mode="after")
    @classmethod
    def validate_odd_hours_window(cls, v: int, info) -> int:
        start = info.data.get("odd_hours_start")
        if start is not None and v <= start:
            raise ValueError("odd_hours_end must be greater than odd_hours_start")
        return v

    @property
    def sms_configured(self) -> bool:
        """Check whether Twilio credentials are complete."""
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_from_number
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings.

    Returns:
        Configured Settings instance.
    """
    return Settings()
