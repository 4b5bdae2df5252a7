# src/delivery/gmail_transport.py — v1
"""Gmail API transport using OAuth2 refresh-token credentials.

The discovery client is blocking, so every API call runs in a worker
thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from email.headerregistry import Address
from email.message import EmailMessage
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from mailflow.core.errors import DeliveryFailed
from mailflow.core.models import Envelope
from mailflow.delivery.base_transport import BaseTransport

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


def format_sender(name: str, email: str) -> str:
    """``Name <email>`` when a display name is set, else the bare address."""
    if not name:
        return email
    try:
        return str(Address(display_name=name, addr_spec=email))
    except (ValueError, IndexError):
        return f"{name} <{email}>"


def build_message(envelope: Envelope) -> EmailMessage:
    """RFC 5322 HTML message for ``envelope``."""
    msg = EmailMessage()
    msg["From"] = format_sender(envelope.from_name, envelope.from_email)
    if envelope.to:
        msg["To"] = ", ".join(envelope.to)
    if envelope.cc:
        msg["Cc"] = ", ".join(envelope.cc)
    if envelope.bcc:
        msg["Bcc"] = ", ".join(envelope.bcc)
    msg["Subject"] = envelope.subject
    msg.set_content(envelope.html, subtype="html", charset="utf-8")
    return msg


def encode_message(msg: EmailMessage) -> str:
    """Base64url body expected by ``users.messages.send``."""
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")


class GmailTransport(BaseTransport):
    """Sends through ``users.messages.send`` as the authorized user."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        service: Any = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._service = service

    @property
    def name(self) -> str:
        return "gmail"

    def _build_service(self) -> Any:
        creds = Credentials(
            token=None,
            refresh_token=self._refresh_token,
            token_uri=TOKEN_URI,
            client_id=self._client_id,
            client_secret=self._client_secret,
            scopes=SCOPES,
        )
        return build("gmail", "v1", credentials=creds, cache_discovery=False)

    def _send_blocking(self, raw: str) -> str:
        if self._service is None:
            self._service = self._build_service()
        resp = self._service.users().messages().send(userId="me", body={"raw": raw}).execute()
        return resp.get("id", "")

    async def deliver(self, envelope: Envelope) -> str:
        raw = encode_message(build_message(envelope))
        try:
            message_id = await asyncio.to_thread(self._send_blocking, raw)
        except Exception as e:
            logger.error("Gmail send failed: %s", e)
            raise DeliveryFailed(f"delivery_failed: {e}") from e
        if not message_id:
            raise DeliveryFailed("delivery_failed: Gmail returned no message id")
        logger.info("Gmail accepted message %s (%d recipients)", message_id, envelope.recipient_count)
        return message_id
