# src/delivery/transport_factory.py — v1
"""Factory: instantiate the delivery transport from settings."""

from __future__ import annotations

from mailflow.config.settings import ConfigurationError, Settings
from mailflow.delivery.base_transport import BaseTransport
from mailflow.delivery.console_transport import ConsoleTransport


def create_transport(settings: Settings) -> BaseTransport:
    """Create the transport named by ``settings.delivery_transport``.

    Raises:
        ConfigurationError: Gmail selected without OAuth credentials.
        ValueError: Unknown transport name.
    """
    if settings.delivery_transport == "console":
        return ConsoleTransport()

    if settings.delivery_transport == "gmail":
        from mailflow.delivery.gmail_transport import GmailTransport

        if not settings.gmail_configured:
            raise ConfigurationError(
                "DELIVERY_TRANSPORT=gmail requires GMAIL_CLIENT_ID, "
                "GMAIL_CLIENT_SECRET and GMAIL_REFRESH_TOKEN"
            )
        return GmailTransport(
            client_id=settings.gmail_client_id,
            client_secret=settings.gmail_client_secret,
            refresh_token=settings.gmail_refresh_token,
        )

    raise ValueError(f"Unsupported delivery transport: {settings.delivery_transport!r}")
