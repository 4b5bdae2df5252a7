# src/llm/base_client.py — v2
"""Abstract LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from mailflow.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all generation providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        options: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Text completion.

        ``options`` carries provider-specific sampling knobs (top_p,
        presence_penalty...). Adapters forward what their API understands
        and ignore the rest.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (ollama, openai, anthropic)."""
