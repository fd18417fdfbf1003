"""FastAPI application factory and dependency injection setup."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trustlens.api.routes import (
    blacklist_router,
    health_router,
    location_router,
    notification_router,
    transaction_router,
)
from trustlens.config import get_settings
from trustlens.container import Container, get_container, reset_container
from trustlens.domain.locations import supported_locations
from trustlens.exceptions import TrustLensError
from trustlens.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown.

    Initializes logging and connects storage on startup, closes the
    storage connection on shutdown.
    """
    container: Container | None = app.state.container
    settings = container.settings if container is not None else get_settings()
    configure_logging(settings)

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    active = container
    if active is None:
        active = get_container()
    storage = active.storage  # Force backend selection at startup

    logger.info(
        "application_started",
        storage_backend=storage.active.value,
        blacklisted_accounts=storage.blacklist.count(),
        locations=supported_locations(),
    )

    yield

    logger.info(
        "application_stopping",
        transactions_processed=active.fraud_service.transaction_count(),
    )
    if container is None:
        reset_container()
    else:
        container.close()
    logger.info("application_stopped")


async def log_request_middleware(request: Request, call_next):
    """Middleware to add request context to logs."""
    request_id = str(uuid.uuid4())[:8]
    bind_context(request_id=request_id, path=request.url.path, method=request.method)

    try:
        response = await call_next(request)
        logger.debug(
            "request_completed",
            status_code=response.status_code,
        )
        return response
    finally:
        clear_context()


async def exception_handler(request: Request, exc: TrustLensError) -> JSONResponse:
    """Handle application exceptions and return appropriate JSON responses."""
    logger.warning(
        "domain_exception",
        error_code=exc.error_code,
        message=exc.message,
        context=exc.context,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 with the offending field."""
    errors = exc.errors()
    field = "body"
    detail = "Invalid request"
    if errors:
        loc = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
        field = ".".join(loc) or field
        detail = errors[0].get("msg", detail)

    logger.warning("request_validation_failed", field=field, detail=detail)
    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": f"Invalid field: {field} ({detail})",
            "context": {"field": field},
        },
    )


def create_app(container: Container | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        container: Container to serve from. When None, the global
            container is created lazily from environment settings.

    Returns:
        Configured FastAPI application instance.
    """
    settings = container.settings if container is not None else get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Rule-based fraud screening for payment transactions",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    # Add middleware
    app.middleware("http")(log_request_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add exception handlers
    app.add_exception_handler(TrustLensError, exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(transaction_router)
    app.include_router(blacklist_router)
    app.include_router(notification_router)
    app.include_router(location_router)

    return app


# Create app instance for uvicorn
app = create_app()
