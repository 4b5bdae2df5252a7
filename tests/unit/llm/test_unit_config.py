# tests/unit/llm/test_unit_config.py — v3
"""Tests for llm/config.py — backend resolution cascade."""

from __future__ import annotations

from mailflow.config.settings import Settings
from mailflow.core.models import ModelOverrides
from mailflow.llm.config import resolve_model_config


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestResolveModelConfig:
    def test_settings_level(self):
        config = resolve_model_config(_settings(llm_model="mistral"))
        assert config.provider == "ollama"
        assert config.model == "mistral"
        assert config.endpoint == "http://127.0.0.1:11434"
        assert config.source == "settings"
        assert config.key == "ollama:mistral"

    def test_fallback_without_settings(self):
        config = resolve_model_config(None)
        assert config.key == "ollama:llama3.1"
        assert config.source == "fallback"

    def test_instance_overrides_settings(self):
        config = resolve_model_config(
            _settings(),
            instance=ModelOverrides(model="qwen2.5", options={"top_p": 0.9}),
        )
        assert config.model == "qwen2.5"
        assert config.options == {"top_p": 0.9}
        assert config.source == "settings"

    def test_request_beats_instance(self):
        config = resolve_model_config(
            _settings(),
            instance=ModelOverrides(model="qwen2.5"),
            request=ModelOverrides(model="phi3"),
        )
        assert config.model == "phi3"

    def test_provider_switch_drops_foreign_model(self):
        config = resolve_model_config(
            _settings(llm_model="mistral"),
            request=ModelOverrides(provider="openai"),
        )
        assert config.provider == "openai"
        assert config.model == "gpt-4o-mini"
        assert config.endpoint is None
        assert config.source == "request"

    def test_provider_switch_keeps_matching_model(self):
        config = resolve_model_config(
            _settings(),
            instance=ModelOverrides(provider="anthropic", model="claude-3-5-haiku-latest"),
        )
        assert config.provider == "anthropic"
        assert config.model == "claude-3-5-haiku-latest"
        assert config.source == "instance"

    def test_request_endpoint(self):
        config = resolve_model_config(
            _settings(), request=ModelOverrides(endpoint="http://gpu-box:11434"),
        )
        assert config.endpoint == "http://gpu-box:11434"
