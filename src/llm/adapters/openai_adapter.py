# src/llm/adapters/openai_adapter.py — v2
"""OpenAI chat-completions adapter implementing BaseLLMClient.

Uses the official openai SDK. Forwards the sampling options the chat
completions API understands; an explicit endpoint becomes the client's
``base_url`` so OpenAI-compatible gateways work too.
"""

from __future__ import annotations

import time
from typing import Any

from mailflow.llm.base_client import BaseLLMClient
from mailflow.llm.models import LLMResponse, Message

_FORWARDED_OPTIONS = ("top_p", "presence_penalty", "frequency_penalty", "seed", "stop")


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str = "",
        base_url: str | None = None,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        options: dict[str, Any] | None = None,
    ) -> LLMResponse:
        import openai

        client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        opts = options or {}
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": max_tokens,
            "temperature": opts.get("temperature", temperature),
        }
        for key in _FORWARDED_OPTIONS:
            if opts.get(key) is not None:
                kwargs[key] = opts[key]

        t0 = time.monotonic()
        resp = await client.chat.completions.create(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        content = resp.choices[0].message.content if resp.choices else None
        usage = resp.usage
        return LLMResponse(
            content=content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"
