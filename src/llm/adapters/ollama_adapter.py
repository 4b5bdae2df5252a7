# src/llm/adapters/ollama_adapter.py — v2
"""Ollama adapter implementing BaseLLMClient.

Uses the ollama Python SDK against a local or remote Ollama host. Every
entry of ``options`` is passed through as an Ollama model option.
"""

from __future__ import annotations

import time
from typing import Any

from mailflow.llm.base_client import BaseLLMClient
from mailflow.llm.models import LLMResponse, Message


class OllamaAdapter(BaseLLMClient):
    """Ollama inference adapter."""

    def __init__(
        self, model: str = "llama3.1", host: str = "http://127.0.0.1:11434", **kwargs: Any,
    ):
        self._model = model
        self._host = host

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        options: dict[str, Any] | None = None,
    ) -> LLMResponse:
        import ollama

        client = ollama.AsyncClient(host=self._host)
        msgs: list[dict[str, str]] = []
        if system:
            msgs.append({"role": "system", "content": system})
        for m in messages:
            msgs.append({"role": m.role, "content": m.content})

        model_options: dict[str, Any] = {
            "num_predict": max_tokens,
            "temperature": temperature,
        }
        model_options.update(options or {})

        t0 = time.monotonic()
        resp = await client.chat(model=self._model, messages=msgs, options=model_options)
        latency = int((time.monotonic() - t0) * 1000)

        message = resp.get("message") or {}
        return LLMResponse(
            content=message.get("content") or "",
            input_tokens=resp.get("prompt_eval_count") or 0,
            output_tokens=resp.get("eval_count") or 0,
            model=self._model,
            provider="ollama",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "ollama"
