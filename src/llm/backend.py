# src/llm/backend.py — v1
"""Generation backend: prompt in, text plus extracted HTML out.

The single seam between the workflow and the provider adapters. Adapter
exceptions become ``GenerationFailed(reason="transport")``; a response
with no usable HTML becomes ``GenerationFailed(reason="empty")``.
"""

from __future__ import annotations

import logging
from typing import Callable

from mailflow.config.settings import Settings
from mailflow.core.errors import GenerationFailed
from mailflow.llm.base_client import BaseLLMClient
from mailflow.llm.client_factory import create_llm_client
from mailflow.llm.config import ModelConfig
from mailflow.llm.html_extract import extract_html
from mailflow.llm.models import GenerationOutput, Message
from mailflow.llm.retry import with_retry

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ModelConfig, Settings], BaseLLMClient]


class GenerationBackend:
    """Calls the resolved provider once per ``generate``."""

    def __init__(
        self,
        settings: Settings,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory or create_llm_client
        self._clients: dict[tuple[str, str, str | None], BaseLLMClient] = {}

    def client_for(self, config: ModelConfig) -> BaseLLMClient:
        key = (config.provider, config.model, config.endpoint)
        if key not in self._clients:
            self._clients[key] = self._client_factory(config, self._settings)
        return self._clients[key]

    async def generate(self, prompt: str, config: ModelConfig) -> GenerationOutput:
        """Generate one document for ``prompt``.

        Raises:
            GenerationFailed: Transport failure or empty/unusable output.
        """
        options = dict(config.options)
        temperature = options.pop("temperature", self._settings.llm_temperature)
        messages = [Message(role="user", content=prompt)]

        try:
            client = self.client_for(config)
            if self._settings.llm_retry_enabled:
                response = await with_retry(
                    client.complete,
                    messages,
                    provider=config.provider,
                    max_tokens=self._settings.llm_max_tokens,
                    temperature=temperature,
                    options=options,
                )
            else:
                response = await client.complete(
                    messages,
                    max_tokens=self._settings.llm_max_tokens,
                    temperature=temperature,
                    options=options,
                )
        except Exception as exc:
            logger.error("Generation via %s failed: %s", config.key, exc)
            raise GenerationFailed("transport", str(exc)) from exc

        text = response.content or ""
        html = extract_html(text)
        if not html:
            raise GenerationFailed("empty", f"{config.key} returned no content")

        logger.debug(
            "Generated %d chars via %s in %dms", len(html), config.key, response.latency_ms,
        )
        return GenerationOutput(
            text=text,
            html=html,
            model=response.model or config.model,
            provider=config.provider,
        )
