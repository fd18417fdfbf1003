"""SMS notifications through the Twilio REST API.

Delivery never raises: every outcome is reported as a DeliveryResult so
callers can decide whether a failure matters to them.
"""

import time
from dataclasses import dataclass

import httpx

from trustlens.config import Settings
from trustlens.domain.results import OperationStatus
from trustlens.domain.transactions import Transaction
from trustlens.logging_config import get_logger

logger = get_logger(__name__)

# Twilio codes for numbers that cannot be used as sender or destination
SIMULATED_ERROR_CODES = frozenset({21211, 21212, 21659})


@dataclass(frozen=True)
class DeliveryResult:
    status: OperationStatus
    sid: str | None = None
    simulated: bool = False
    error: str | None = None
    code: int | None = None

    @property
    def delivered(self) -> bool:
        return self.status == OperationStatus.SUCCESS


def build_transaction_message(txn: Transaction) -> str:
    """Build the fraud-alert or approval text for a recorded transaction."""
    if txn.anomalous:
        return (
            "FRAUD ALERT!\n"
            f"Transaction ID: {txn.transaction_id}\n"
            f"Amount: {txn.currency} {txn.amount}\n"
            f"Location: {txn.location}\n"
            f"Reasons: {', '.join(txn.reasons)}\n"
            f"Time: {txn.timestamp.isoformat()}\n"
            "If this wasn't you, contact us immediately!"
        )
    return (
        "Transaction Approved\n"
        f"ID: {txn.transaction_id}\n"
        f"Amount: {txn.currency} {txn.amount}\n"
        f"Location: {txn.location}\n"
        f"Time: {txn.timestamp.isoformat()}"
    )


class SmsNotifier:
    """Sends SMS messages through Twilio's Messages endpoint."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self._settings.notifications_enabled and self._settings.sms_configured

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._settings.twilio_base_url,
            auth=(
                self._settings.twilio_account_sid or "",
                self._settings.twilio_auth_token or "",
            ),
            timeout=self._settings.sms_timeout_seconds,
            transport=self._transport,
        )

    def send(self, phone: str, message: str) -> DeliveryResult:
        """Send a message to a phone number."""
        if not self.configured:
            logger.info("sms_skipped", reason="notifier not configured")
            return DeliveryResult(
                status=OperationStatus.UNAVAILABLE, error="SMS notifier not configured"
            )

        path = f"/2010-04-01/Accounts/{self._settings.twilio_account_sid}/Messages.json"
        payload = {
            "To": phone,
            "From": self._settings.twilio_from_number,
            "Body": message,
        }

        try:
            with self._client() as client:
                response = client.post(path, data=payload)
        except httpx.HTTPError as e:
            logger.warning("sms_unavailable", phone=phone, error=str(e))
            return DeliveryResult(status=OperationStatus.UNAVAILABLE, error=str(e))

        if response.status_code < 400:
            sid = self._json_body(response).get("sid")
            logger.info("sms_sent", phone=phone, sid=sid)
            return DeliveryResult(status=OperationStatus.SUCCESS, sid=sid)

        code, detail = self._parse_error(response)
        if code in SIMULATED_ERROR_CODES:
            sid = f"SIMULATED_{int(time.time() * 1000)}"
            logger.info("sms_simulated", phone=phone, code=code, sid=sid, body=message)
            return DeliveryResult(
                status=OperationStatus.SUCCESS, sid=sid, simulated=True, code=code
            )

        logger.error("sms_failed", phone=phone, code=code, error=detail)
        return DeliveryResult(status=OperationStatus.ERROR, error=detail, code=code)

    @staticmethod
    def _json_body(response: httpx.Response) -> dict:
        """Return the response body as a dict, or {} when it is not a JSON object."""
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @classmethod
    def _parse_error(cls, response: httpx.Response) -> tuple[int | None, str]:
        body = cls._json_body(response)
        code = body.get("code")
        if not isinstance(code, int):
            code = None
        return code, str(body.get("message", response.text))
