"""API routes for TrustLens."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from trustlens.api.schemas import (
    BlacklistChangeResponse,
    BlacklistCreate,
    BlacklistResponse,
    ClearResponse,
    HealthResponse,
    LocationsResponse,
    SmsRequest,
    SmsResponse,
    SubmitResponse,
    TransactionRecord,
    TransactionSubmit,
)
from trustlens.container import Container, get_container
from trustlens.domain.locations import supported_locations
from trustlens.domain.results import OperationStatus
from trustlens.domain.transactions import TransactionSubmission
from trustlens.exceptions import (
    MissingFieldError,
    NotificationError,
    TrustLensError,
)
from trustlens.logging_config import get_logger
from trustlens.services.fraud_detection import FraudDetectionService

logger = get_logger(__name__)

# Create routers
health_router = APIRouter(tags=["health"])
transaction_router = APIRouter(tags=["transactions"])
blacklist_router = APIRouter(prefix="/blacklist", tags=["blacklist"])
notification_router = APIRouter(tags=["notifications"])
location_router = APIRouter(tags=["locations"])


# Dependency injection functions
def get_app_container(request: Request) -> Container:
    """Get the container attached to the app, or the global one."""
    container = getattr(request.app.state, "container", None)
    return container if container is not None else get_container()


def get_service(
    container: Annotated[Container, Depends(get_app_container)],
) -> FraudDetectionService:
    """Get the fraud detection service."""
    return container.fraud_service


ServiceDep = Annotated[FraudDetectionService, Depends(get_service)]


# Helper functions
def get_client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop, else the socket peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# Health endpoint
@health_router.get("/health", response_model=HealthResponse)
def health_check(
    container: Annotated[Container, Depends(get_app_container)],
) -> HealthResponse:
    """Health check endpoint."""
    service = container.fraud_service
    storage = container.storage
    return HealthResponse(
        status="healthy",
        version=container.settings.app_version,
        uptime_seconds=round(container.uptime_seconds, 3),
        transactions_processed=service.transaction_count(),
        blacklisted_accounts=service.blacklist.count(),
        storage_backend=storage.active.value,
        storage_degraded=storage.degraded,
    )


# Transaction endpoints
@transaction_router.post("/submit", response_model=SubmitResponse)
def submit_transaction(
    payload: TransactionSubmit,
    request: Request,
    service: ServiceDep,
) -> SubmitResponse:
    """Evaluate a transaction, record it and return the verdict."""
    submission = TransactionSubmission(
        transaction_id=payload.transaction_id,
        amount=payload.amount,
        currency=payload.currency,
        sender_account_number=payload.sender_account_number,
        recipient_account_number=payload.recipient_account_number,
        location=payload.location,
        card_type=payload.card_type,
        timestamp=service.now(),
        client_ip=get_client_ip(request),
        phone=payload.phone or None,
    )

    try:
        outcome = service.submit(submission)
    except TrustLensError:
        raise
    except Exception as e:
        logger.exception("transaction_processing_failed", error=str(e))
        raise TrustLensError(
            "Internal server error", error_code="INTERNAL_ERROR", status_code=500
        ) from e

    txn = outcome.transaction
    return SubmitResponse(
        anomalous=txn.anomalous,
        reasons=list(txn.reasons),
        transaction_id=txn.transaction_id,
        timestamp=txn.timestamp,
    )


@transaction_router.get("/anomalous", response_model=bool)
def latest_verdict(service: ServiceDep) -> bool:
    """Verdict of the most recent transaction; false when there is none."""
    return service.latest_verdict()


@transaction_router.get("/data", response_model=list[TransactionRecord])
def list_transactions(service: ServiceDep) -> list[TransactionRecord]:
    """Full transaction history without client IPs or phone numbers."""
    return [TransactionRecord(**txn.to_public_dict()) for txn in service.history()]


@transaction_router.delete("/clear", response_model=ClearResponse)
def clear_transactions(service: ServiceDep) -> ClearResponse:
    """Wipe the transaction ledger."""
    removed = service.clear_history()
    return ClearResponse(message="All transaction data cleared", removed=removed)


# Blacklist endpoints
@blacklist_router.get("", response_model=BlacklistResponse)
def get_blacklist(service: ServiceDep) -> BlacklistResponse:
    accounts = sorted(service.blacklisted_accounts())
    return BlacklistResponse(accounts=accounts, count=len(accounts))


@blacklist_router.post("", response_model=BlacklistChangeResponse)
def add_to_blacklist(
    payload: BlacklistCreate, service: ServiceDep
) -> BlacklistChangeResponse:
    if not payload.account_number:
        raise MissingFieldError("account_number")

    reasons = (payload.reason,) if payload.reason else ("manual",)
    added = service.blacklist_account(payload.account_number, reasons)
    return BlacklistChangeResponse(
        message=f"Account {payload.account_number} added to blacklist",
        changed=added,
        total_blacklisted=service.blacklist.count(),
    )


@blacklist_router.delete("/{account_number}", response_model=BlacklistChangeResponse)
def remove_from_blacklist(
    account_number: str, service: ServiceDep
) -> BlacklistChangeResponse:
    removed = service.unblacklist_account(account_number)
    return BlacklistChangeResponse(
        message=f"Account {account_number} removed from blacklist",
        changed=removed,
        total_blacklisted=service.blacklist.count(),
    )


# Notification endpoints
@notification_router.post("/send-sms", response_model=SmsResponse)
def send_sms(payload: SmsRequest, service: ServiceDep) -> SmsResponse:
    """Send an ad-hoc SMS through the configured provider."""
    if not payload.phone:
        raise MissingFieldError("phone")
    if not payload.message:
        raise MissingFieldError("message")

    result = service.send_message(payload.phone, payload.message)
    if result is None:
        raise NotificationError("SMS notifier not configured")
    if result.status != OperationStatus.SUCCESS:
        raise NotificationError(result.error or "SMS delivery failed", code=result.code)

    return SmsResponse(status="success", sid=result.sid, simulated=result.simulated)


# Location endpoints
@location_router.get("/locations", response_model=LocationsResponse)
def list_locations() -> LocationsResponse:
    return LocationsResponse(locations=supported_locations())
