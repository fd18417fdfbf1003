"""Tests for the Twilio SMS notifier."""

import base64
from urllib.parse import parse_qs

import httpx
import pytest
from factories import make_submission

from trustlens.config import Settings
from trustlens.domain.results import OperationStatus
from trustlens.domain.transactions import Transaction
from trustlens.services.notifications import SmsNotifier, build_transaction_message


@pytest.fixture
def sms_settings() -> Settings:
    return Settings(
        notifications_enabled=True,
        twilio_account_sid="AC123",
        twilio_auth_token="secret",
        twilio_from_number="+15550001111",
    )


def notifier_with(settings: Settings, handler) -> SmsNotifier:
    return SmsNotifier(settings, transport=httpx.MockTransport(handler))


class TestSmsNotifier:
    def test_successful_send(self, sms_settings: Settings):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

        result = notifier_with(sms_settings, handler).send("+15552223333", "hello")

        assert result.status == OperationStatus.SUCCESS
        assert result.sid == "SM42"
        assert result.simulated is False
        request = captured[0]
        assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        form = parse_qs(request.content.decode())
        assert form == {
            "To": ["+15552223333"],
            "From": ["+15550001111"],
            "Body": ["hello"],
        }
        expected_auth = base64.b64encode(b"AC123:secret").decode()
        assert request.headers["authorization"] == f"Basic {expected_auth}"

    @pytest.mark.parametrize("code", [21211, 21212, 21659])
    def test_unusable_number_is_simulated(self, sms_settings: Settings, code: int):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"code": code, "message": "bad number"})

        result = notifier_with(sms_settings, handler).send("+1000", "hello")

        assert result.status == OperationStatus.SUCCESS
        assert result.simulated is True
        assert result.sid.startswith("SIMULATED_")
        assert result.code == code

    def test_other_provider_error(self, sms_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"code": 20003, "message": "Authenticate"})

        result = notifier_with(sms_settings, handler).send("+15552223333", "hello")

        assert result.status == OperationStatus.ERROR
        assert result.code == 20003
        assert result.error == "Authenticate"
        assert result.delivered is False

    def test_non_json_error_body(self, sms_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        result = notifier_with(sms_settings, handler).send("+15552223333", "hello")

        assert result.status == OperationStatus.ERROR
        assert result.code is None
        assert result.error == "Bad Gateway"

    def test_non_json_success_body(self, sms_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, text="queued")

        result = notifier_with(sms_settings, handler).send("+15552223333", "hello")

        assert result.status == OperationStatus.SUCCESS
        assert result.sid is None

    def test_json_list_error_body(self, sms_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json=["invalid"])

        result = notifier_with(sms_settings, handler).send("+15552223333", "hello")

        assert result.status == OperationStatus.ERROR
        assert result.code is None
        assert "invalid" in result.error

    def test_transport_failure_is_unavailable(self, sms_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = notifier_with(sms_settings, handler).send("+15552223333", "hello")

        assert result.status == OperationStatus.UNAVAILABLE
        assert "connection refused" in result.error

    def test_unconfigured_notifier_makes_no_request(self):
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(201, json={"sid": "SM1"})

        settings = Settings(notifications_enabled=True, twilio_account_sid=None)
        notifier = notifier_with(settings, handler)

        result = notifier.send("+15552223333", "hello")

        assert notifier.configured is False
        assert result.status == OperationStatus.UNAVAILABLE
        assert calls == []

    def test_disabled_notifier(self, sms_settings: Settings):
        settings = sms_settings.model_copy(update={"notifications_enabled": False})

        assert SmsNotifier(settings).configured is False


class TestTransactionMessage:
    def test_approved_message(self):
        txn = Transaction.from_submission(make_submission(), [])

        message = build_transaction_message(txn)

        assert message.startswith("Transaction Approved")
        assert "ID: txn-1" in message
        assert "INR 100.00" in message

    def test_fraud_alert_message(self):
        txn = Transaction.from_submission(
            make_submission(),
            ["Blacklisted IP address", "Transaction during odd hours (12 AM - 4 AM)"],
        )

        message = build_transaction_message(txn)

        assert message.startswith("FRAUD ALERT!")
        assert (
            "Reasons: Blacklisted IP address, Transaction during odd hours (12 AM - 4 AM)"
            in message
        )
        assert message.endswith("If this wasn't you, contact us immediately!")
