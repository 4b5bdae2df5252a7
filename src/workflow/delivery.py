# src/workflow/delivery.py — v1
"""Delivery step: envelope from instance config, one transport call.

No default-to-sender fallback for empty recipient lists: the review gate
authorized delivery to the configured audience, and only to it.
"""

from __future__ import annotations

import logging
from typing import Callable

from mailflow.core.errors import DeliveryFailed, NoRecipientsConfigured, WorkflowError
from mailflow.core.models import Artifact, Envelope, RunRequest
from mailflow.delivery.base_transport import BaseTransport
from mailflow.logging.context import step_context
from mailflow.storage.instance_store import InstanceStore
from mailflow.workflow.context import InstanceContext

logger = logging.getLogger(__name__)


def require_recipients(ctx: InstanceContext) -> None:
    """Raises ``NoRecipientsConfigured`` when to, cc and bcc are all empty."""
    if not ctx.config.has_recipients:
        raise NoRecipientsConfigured(
            f"instance {ctx.instance_id} has no to/cc/bcc recipients"
        )


def build_envelope(ctx: InstanceContext, artifact: Artifact, request: RunRequest) -> Envelope:
    """Sender and subject come from the request when given, else from config."""
    require_recipients(ctx)
    config = ctx.config
    return Envelope(
        from_name=request.sender_name or config.sender_name,
        from_email=request.sender_email or config.sender_email,
        to=list(config.to),
        cc=list(config.cc),
        bcc=list(config.bcc),
        subject=request.subject or config.email_subject,
        html=artifact.html,
    )


class DeliveryStep:
    def __init__(self, store: InstanceStore, transport: Callable[[], BaseTransport]) -> None:
        self._store = store
        self._transport = transport

    async def run(self, ctx: InstanceContext, envelope: Envelope) -> str:
        """Send ``envelope`` once and return the delivery id.

        Raises:
            DeliveryFailed: Transport error or transport unavailable.
        """
        with step_context("delivery"):
            await ctx.run_log.line(
                f"[PROGRESS] Sending email. to={', '.join(envelope.to)} "
                f"cc={', '.join(envelope.cc)} bcc={', '.join(envelope.bcc)}"
            )
            await self._store.record_progress(ctx.handle, "sending emails")
            try:
                transport = self._transport()
                message_id = await transport.deliver(envelope)
            except WorkflowError:
                raise
            except Exception as e:
                raise DeliveryFailed(f"delivery_failed: {e}") from e
            await ctx.run_log.line(
                f"completed sending email to {envelope.recipient_count} recipients "
                f"via {transport.name} (id: {message_id})"
            )
            await self._store.record_progress(ctx.handle, "sent email")

        logger.info("Delivered %s for %s", message_id, ctx.instance_id)
        return message_id
