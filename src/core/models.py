# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

Instance configuration, review decisions, delivery envelopes and the
request/result shapes of the three workflow operations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Legacy spellings of the review-gate block, normalized to "review".
REVIEW_BLOCK_ALIASES = ("review", "human-in-the-loop", "HITL", "hitl")

_LEGACY_KEYS = {
    "SENDER_NAME": "sender_name",
    "SENDER_EMAIL": "sender_email",
    "EMAIL_SUBJECT": "email_subject",
    "PROMPT_FILE": "prompt_file",
    "HTML_OUTPUT": "html_output",
}


def split_addresses(value: Any) -> list[str]:
    """Accept a list or a comma-separated string; drop blanks, keep order."""
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v and str(v).strip()]
    return []


# === INSTANCE CONFIG ===


class ReviewGateConfig(BaseModel):
    """Review-gate block. Unknown keys are kept and forwarded to the reviewer."""

    model_config = ConfigDict(extra="allow")

    enable: bool = False
    max_loops: int | None = None

    def raw(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ModelOverrides(BaseModel):
    """Generation-backend overrides (instance config or per request)."""

    provider: str | None = None
    model: str | None = None
    endpoint: str | None = None
    options: dict[str, Any] | None = None


class InstanceConfig(BaseModel):
    """Parsed ``config.json`` of one instance."""

    model_config = ConfigDict(extra="allow")

    instance_id: str | None = None
    sender_name: str = ""
    sender_email: str = ""
    email_subject: str = ""
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    prompt_file: str | None = None
    html_output: str | None = None
    llm: ModelOverrides | None = None
    review: ReviewGateConfig | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy, canonical in _LEGACY_KEYS.items():
            if legacy in data:
                value = data.pop(legacy)
                data.setdefault(canonical, value)
        if "review" not in data:
            for alias in REVIEW_BLOCK_ALIASES[1:]:
                block = data.get(alias)
                if block is not None:
                    data["review"] = block
                    break
        for alias in REVIEW_BLOCK_ALIASES[1:]:
            data.pop(alias, None)
        return data

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def parse_addresses(cls, v: Any) -> list[str]:
        return split_addresses(v)

    @field_validator("review", mode="before")
    @classmethod
    def parse_review_block(cls, v: Any) -> Any:
        # A present-but-empty block still counts as declared.
        if v is True:
            return {"enable": True}
        if v is False:
            return {"enable": False}
        return v

    @property
    def has_recipients(self) -> bool:
        return bool(self.to or self.cc or self.bcc)


# === REVIEW ===

DecisionStatus = Literal["no-hitl", "approve", "reject", "wait", "has-input", "unknown"]


class Decision(BaseModel):
    """Normalized answer of the review service for one evaluation."""

    status: DecisionStatus
    instructions: str = ""
    html: str | None = None
    html_path: str | None = None
    raw_status: str | None = None


class ReviewRequest(BaseModel):
    """Payload sent to the review service."""

    instance_id: str
    html_path: str | None = None
    html: str | None = None
    hitl: dict[str, Any] = Field(default_factory=dict)
    loop: int = 0


# === DELIVERY ===


class Envelope(BaseModel):
    """Everything the delivery transport needs for one message."""

    from_name: str = ""
    from_email: str
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    subject: str = ""
    html: str

    @property
    def recipient_count(self) -> int:
        return len(self.to) + len(self.cc) + len(self.bcc)


# === OPERATIONS ===


class RunRequest(BaseModel):
    """Caller-supplied parameters shared by generate, send and generate-send."""

    instance_id: str
    prompt_text: str | None = None
    prompt_file: str | None = None
    instructions: str | None = None
    source_html_path: str | None = None
    html_output: str | None = None
    html: str | None = None
    html_path: str | None = None
    subject: str | None = None
    sender_email: str | None = None
    sender_name: str | None = None
    provider: str | None = None
    model: str | None = None
    endpoint: str | None = None
    options: dict[str, Any] | None = None
    skip_review: bool = False
    run_async: bool = False

    @property
    def model_overrides(self) -> ModelOverrides:
        return ModelOverrides(
            provider=self.provider,
            model=self.model,
            endpoint=self.endpoint,
            options=self.options,
        )


class GenerateResult(BaseModel):
    html_path: str
    html: str


class SendResult(BaseModel):
    status: Literal["sent", "waiting"]
    message_id: str | None = None
    html_path: str | None = None

    @property
    def waiting(self) -> bool:
        return self.status == "waiting"


class Accepted(BaseModel):
    """Acknowledgement of an asynchronous operation."""

    accepted: bool = True
    status: Literal["active"] = "active"
    instance_id: str
    links: dict[str, str] = Field(default_factory=dict)


class Artifact(BaseModel):
    """An HTML artifact and where it lives (``path`` relative to the instance root)."""

    path: str
    html: str
    absolute_path: Path | None = None


class ResumeResult(BaseModel):
    """Outcome of a resume call."""

    instance_id: str
    decision: Literal["approve", "modify", "reject"]
    status: Literal["sent", "waiting", "abort"]
    message_id: str | None = None
    html_path: str | None = None
