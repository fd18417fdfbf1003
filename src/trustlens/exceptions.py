"""Exception hierarchy for TrustLens.

All application exceptions inherit from TrustLensError so the API can
map them to JSON responses with a single handler.
"""

from typing import Any


class TrustLensError(Exception):
    """Base exception for all TrustLens errors.

    Carries an error_code and HTTP status_code for API responses plus
    optional extra context.
    """

    error_code: str = "TRUSTLENS_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(TrustLensError):
    """Base exception for malformed requests."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class MissingFieldError(ValidationError):
    """Raised when a required field is absent or empty."""

    error_code = "MISSING_FIELD"

    def __init__(self, field_name: str) -> None:
        super().__init__(
            f"Missing required field: {field_name}",
            context={"field": field_name},
        )


class InvalidAmountError(ValidationError):
    """Raised when an amount is not a positive number."""

    error_code = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str) -> None:
        super().__init__(
            f"Invalid amount '{amount}': {reason}",
            context={"amount": amount, "reason": reason},
        )


# =============================================================================
# Transaction Errors
# =============================================================================


class TransactionError(TrustLensError):
    """Base exception for transaction-related errors."""

    error_code = "TRANSACTION_ERROR"
    status_code = 400


class DuplicateTransactionError(TransactionError):
    """Raised when a transaction id has already been recorded."""

    error_code = "DUPLICATE_TRANSACTION"
    status_code = 409

    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            f"Transaction already recorded: {transaction_id}",
            context={"transaction_id": transaction_id},
        )


# =============================================================================
# Notification Errors
# =============================================================================


class NotificationError(TrustLensError):
    """Raised when an SMS could not be delivered."""

    error_code = "NOTIFICATION_ERROR"
    status_code = 500

    def __init__(self, message: str, code: int | None = None) -> None:
        context: dict[str, Any] = {}
        if code is not None:
            context["provider_code"] = code
        super().__init__(message, context=context)
