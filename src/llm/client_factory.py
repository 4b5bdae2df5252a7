# src/llm/client_factory.py — v3
"""Factory: instantiate an LLM client from a resolved ModelConfig.

Adapters are registered by dotted class path and imported lazily so that
only the SDK of the selected provider has to be importable.
"""

from __future__ import annotations

import importlib
import logging

from mailflow.config.settings import Settings
from mailflow.llm.base_client import BaseLLMClient
from mailflow.llm.config import ModelConfig

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "ollama": "mailflow.llm.adapters.ollama_adapter.OllamaAdapter",
    "openai": "mailflow.llm.adapters.openai_adapter.OpenAIAdapter",
    "anthropic": "mailflow.llm.adapters.anthropic_adapter.AnthropicAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    config: ModelConfig,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the adapter for ``config.provider``.

    Args:
        config: Resolved provider, model and endpoint.
        settings: Application settings (for API keys).
        **kwargs: Additional provider-specific arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    provider = config.provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = config.model

    if provider == "ollama":
        if config.endpoint:
            init_kwargs.setdefault("host", config.endpoint)
    elif provider == "openai":
        if config.endpoint:
            init_kwargs.setdefault("base_url", config.endpoint)
        if settings is not None:
            init_kwargs.setdefault("api_key", settings.openai_api_key)
    elif provider == "anthropic":
        if settings is not None:
            init_kwargs.setdefault("api_key", settings.anthropic_api_key)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, config.model)
    return adapter_cls(**init_kwargs)


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
