# src/llm/config.py — v2
"""Generation-backend resolution with a cascade.

Resolution order, field by field:
  1. Per-request overrides (provider/model/endpoint/options in the call)
  2. Instance overrides (``llm`` block of config.json)
  3. Process settings (LLM_PROVIDER, LLM_MODEL, LLM_ENDPOINT, LLM_OPTIONS)
  4. Hardcoded fallback (ollama:llama3.1 on the local host)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mailflow.config.settings import Settings
from mailflow.core.models import ModelOverrides

_FALLBACK_PROVIDER = "ollama"
_FALLBACK_ENDPOINT = "http://127.0.0.1:11434"
_DEFAULT_MODELS = {
    "ollama": "llama3.1",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-20250514",
}


@dataclass(frozen=True)
class ModelConfig:
    """Resolved generation backend for one call."""

    provider: str
    model: str
    endpoint: str | None
    options: dict[str, Any] = field(default_factory=dict)
    source: str = "fallback"  # "request", "instance", "settings" or "fallback"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def resolve_model_config(
    settings: Settings | None,
    instance: ModelOverrides | None = None,
    request: ModelOverrides | None = None,
) -> ModelConfig:
    """Resolve the backend for a generation call.

    ``source`` names the highest level that supplied the provider.
    """
    levels: list[tuple[str, ModelOverrides]] = []
    if request is not None:
        levels.append(("request", request))
    if instance is not None:
        levels.append(("instance", instance))
    if settings is not None:
        levels.append(
            (
                "settings",
                ModelOverrides(
                    provider=settings.llm_provider,
                    model=settings.llm_model,
                    endpoint=settings.llm_endpoint,
                    options=settings.llm_options or None,
                ),
            )
        )

    def pick(attr: str, provider: str | None = None) -> tuple[Any, str | None]:
        for name, overrides in levels:
            # Model and endpoint only carry over from a level naming the same provider.
            if provider is not None and overrides.provider not in (None, provider):
                continue
            value = getattr(overrides, attr)
            if value:
                return value, name
        return None, None

    provider, source = pick("provider")
    provider = provider or _FALLBACK_PROVIDER
    model, _ = pick("model", provider)
    endpoint, _ = pick("endpoint", provider)
    options, _ = pick("options")

    return ModelConfig(
        provider=provider,
        model=model or _DEFAULT_MODELS.get(provider, ""),
        endpoint=endpoint or (_FALLBACK_ENDPOINT if provider == _FALLBACK_PROVIDER else None),
        options=dict(options or {}),
        source=source or "fallback",
    )
