# src/delivery/console_transport.py — v1
"""Dry-run transport: logs the envelope instead of sending it."""

from __future__ import annotations

import logging
import uuid

from mailflow.core.models import Envelope
from mailflow.delivery.base_transport import BaseTransport

logger = logging.getLogger(__name__)


class ConsoleTransport(BaseTransport):
    """Accepts every envelope and returns a synthetic ``console-<uuid>`` id."""

    def __init__(self) -> None:
        self.sent: list[Envelope] = []

    @property
    def name(self) -> str:
        return "console"

    async def deliver(self, envelope: Envelope) -> str:
        message_id = f"console-{uuid.uuid4().hex}"
        self.sent.append(envelope)
        logger.info(
            "[dry-run] %s from=%s to=%s cc=%s bcc=%s subject=%r (%d chars)",
            message_id,
            envelope.from_email,
            ", ".join(envelope.to),
            ", ".join(envelope.cc),
            ", ".join(envelope.bcc),
            envelope.subject,
            len(envelope.html),
        )
        return message_id
