"""Pydantic v2 schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# Transaction Schemas
class TransactionSubmit(BaseModel):
    """Schema for submitting a transaction.

    Fields are optional here so that absent values reach domain
    validation and are reported as a missing field.
    """

    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    amount: Decimal | None = None
    location: str | None = None
    card_type: str | None = None
    currency: str | None = None
    recipient_account_number: str | None = None
    sender_account_number: str | None = None
    transaction_id: str | None = None
    phone: str | None = None


class SubmitResponse(BaseModel):
    """Schema for the verdict returned by /submit."""

    success: bool = True
    anomalous: bool
    reasons: list[str]
    transaction_id: str
    timestamp: datetime


class TransactionRecord(BaseModel):
    """Schema for a sanitized history record."""

    transaction_id: str
    amount: float
    location: str
    currency: str
    card_type: str
    sender_account_number: str
    recipient_account_number: str
    anomalous: bool
    fraud_reasons: list[str]
    timestamp: str


class ClearResponse(BaseModel):
    message: str
    removed: int


# Blacklist Schemas
class BlacklistCreate(BaseModel):
    """Schema for adding an account to the blacklist."""

    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    account_number: str | None = None
    reason: str | None = Field(default=None, max_length=500)


class BlacklistResponse(BaseModel):
    accounts: list[str]
    count: int


class BlacklistChangeResponse(BaseModel):
    message: str
    changed: bool
    total_blacklisted: int


# Notification Schemas
class SmsRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    phone: str | None = None
    message: str | None = None


class SmsResponse(BaseModel):
    status: str
    sid: str | None = None
    simulated: bool = False


# Misc Schemas
class LocationsResponse(BaseModel):
    locations: list[str]


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str
    version: str = "0.1.0"
    uptime_seconds: float
    transactions_processed: int
    blacklisted_accounts: int
    storage_backend: str
    storage_degraded: bool
