# src/config/settings.py — v2
"""Typed process configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: where instances
live, which generation backend to call by default, how to reach the review
service, which delivery transport to use, and how to log.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === INSTANCES ===
    agent_folder: Path = Path("./instances")

    # === GENERATION BACKEND ===
    llm_provider: Literal["ollama", "openai", "anthropic"] = "ollama"
    llm_model: str = "llama3.1"
    llm_endpoint: str = "http://127.0.0.1:11434"
    llm_options: dict[str, Any] = {}
    llm_temperature: float = 0.3
    llm_max_tokens: int = 4096
    llm_retry_enabled: bool = False

    # Provider API keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # === REVIEW SERVICE ===
    review_api_url: str = "/api/hitl-agent"
    review_api_port: int = 3001
    review_timeout_s: float = 30.0
    review_max_loops: int = 3
    review_mock_enabled: bool = False

    # === DELIVERY ===
    delivery_transport: Literal["gmail", "console"] = "gmail"
    gmail_client_id: str = ""
    gmail_client_secret: str = ""
    gmail_refresh_token: str = ""
    gmail_redirect_uri: str = "https://developers.google.com/oauthplayground"

    # === REST binding ===
    host: str = "127.0.0.1"
    port: int = 3001

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("review_max_loops")
    @classmethod
    def validate_max_loops(cls, v: int) -> int:
        if v < 1:
            raise ValueError("review_max_loops must be >= 1")
        return v

    @field_validator("review_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("review_timeout_s must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.llm_provider == "openai" and not self.openai_api_key:
            errors.append("LLM_PROVIDER=openai requires OPENAI_API_KEY")

        if self.llm_provider == "anthropic" and not self.anthropic_api_key:
            errors.append("LLM_PROVIDER=anthropic requires ANTHROPIC_API_KEY")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def review_url(self) -> str:
        """Absolute review service URL (a bare path targets this host)."""
        if self.review_api_url.startswith("/"):
            return f"http://127.0.0.1:{self.review_api_port}{self.review_api_url}"
        return self.review_api_url

    @property
    def gmail_configured(self) -> bool:
        return bool(
            self.gmail_client_id and self.gmail_client_secret and self.gmail_refresh_token
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-process config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
