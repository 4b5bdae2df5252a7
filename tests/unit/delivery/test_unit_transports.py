# tests/unit/delivery/test_unit_transports.py — v1
"""Tests for delivery/ — Gmail message building, console transport, factory."""

from __future__ import annotations

import base64
import email
from email import policy
from unittest.mock import MagicMock

import pytest

from mailflow.config.settings import ConfigurationError
from mailflow.core.errors import DeliveryFailed
from mailflow.core.models import Envelope
from mailflow.delivery.console_transport import ConsoleTransport
from mailflow.delivery.gmail_transport import (
    GmailTransport,
    build_message,
    encode_message,
    format_sender,
)
from mailflow.delivery.transport_factory import create_transport


@pytest.fixture
def envelope() -> Envelope:
    return Envelope(
        from_name="Acme News",
        from_email="news@acme.test",
        to=["ana@example.test"],
        cc=["ben@example.test", "cho@example.test"],
        bcc=["audit@acme.test"],
        subject="Our spring launch",
        html="<html><body><h1>Spring</h1></body></html>",
    )


def _gmail_service(response: dict | Exception) -> MagicMock:
    service = MagicMock()
    send = service.users.return_value.messages.return_value.send
    if isinstance(response, Exception):
        send.return_value.execute.side_effect = response
    else:
        send.return_value.execute.return_value = response
    return service


class TestBuildMessage:
    def test_headers(self, envelope):
        msg = build_message(envelope)
        assert msg["From"] == "Acme News <news@acme.test>"
        assert msg["To"] == "ana@example.test"
        assert msg["Cc"] == "ben@example.test, cho@example.test"
        assert msg["Bcc"] == "audit@acme.test"
        assert msg["Subject"] == "Our spring launch"
        assert msg.get_content_type() == "text/html"
        assert "<h1>Spring</h1>" in msg.get_content()

    def test_optional_headers_omitted(self, envelope):
        msg = build_message(envelope.model_copy(update={"cc": [], "bcc": []}))
        assert msg["Cc"] is None
        assert msg["Bcc"] is None

    def test_bare_sender(self):
        assert format_sender("", "news@acme.test") == "news@acme.test"

    def test_encode_roundtrip(self, envelope):
        raw = encode_message(build_message(envelope))
        parsed = email.message_from_bytes(base64.urlsafe_b64decode(raw), policy=policy.default)
        assert parsed["Subject"] == "Our spring launch"


class TestGmailTransport:
    @pytest.mark.asyncio
    async def test_deliver_returns_id(self, envelope):
        service = _gmail_service({"id": "18c2f0a1b2"})
        transport = GmailTransport("id", "secret", "token", service=service)
        assert await transport.deliver(envelope) == "18c2f0a1b2"

        send = service.users.return_value.messages.return_value.send
        kwargs = send.call_args.kwargs
        assert kwargs["userId"] == "me"
        assert kwargs["body"]["raw"] == encode_message(build_message(envelope))
        assert transport.name == "gmail"

    @pytest.mark.asyncio
    async def test_api_error(self, envelope):
        transport = GmailTransport("id", "secret", "token", service=_gmail_service(RuntimeError("quota")))
        with pytest.raises(DeliveryFailed) as exc_info:
            await transport.deliver(envelope)
        assert exc_info.value.last_error == "delivery_failed: quota"

    @pytest.mark.asyncio
    async def test_missing_id(self, envelope):
        transport = GmailTransport("id", "secret", "token", service=_gmail_service({}))
        with pytest.raises(DeliveryFailed):
            await transport.deliver(envelope)


class TestConsoleTransport:
    @pytest.mark.asyncio
    async def test_records(self, envelope):
        transport = ConsoleTransport()
        message_id = await transport.deliver(envelope)
        assert message_id.startswith("console-")
        assert transport.sent == [envelope]


class TestCreateTransport:
    def test_console(self, settings):
        assert isinstance(create_transport(settings), ConsoleTransport)

    def test_gmail_requires_credentials(self, settings):
        with pytest.raises(ConfigurationError):
            create_transport(settings.model_copy(update={"delivery_transport": "gmail"}))

    def test_gmail(self, settings):
        configured = settings.model_copy(update={
            "delivery_transport": "gmail",
            "gmail_client_id": "id",
            "gmail_client_secret": "secret",
            "gmail_refresh_token": "token",
        })
        assert isinstance(create_transport(configured), GmailTransport)
