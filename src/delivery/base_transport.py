# src/delivery/base_transport.py — v1
"""Abstract delivery transport."""

from __future__ import annotations

from abc import ABC, abstractmethod

from mailflow.core.models import Envelope


class BaseTransport(ABC):
    """Sends one message and returns the transport's message id."""

    @abstractmethod
    async def deliver(self, envelope: Envelope) -> str:
        """Send ``envelope``.

        Raises:
            DeliveryFailed: The transport rejected or could not send it.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier (gmail, console)."""
