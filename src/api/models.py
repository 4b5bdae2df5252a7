# src/api/models.py — v2
"""REST request and response bodies.

Request bodies accept the camelCase field names existing callers send
(``promptText``, ``htmlPath``, ``skipHitl``, ``async``...) as well as the
snake_case names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mailflow.core.models import RunRequest


class OperationBody(BaseModel):
    """Body of generate, send and generate-send."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    instance_id: str | None = None
    prompt_text: str | None = Field(default=None, alias="promptText")
    prompt_file: str | None = Field(default=None, alias="promptFile")
    instructions: str | None = None
    html_path: str | None = Field(default=None, alias="htmlPath")
    source_html_path: str | None = Field(default=None, alias="sourceHtmlPath")
    html_output: str | None = Field(default=None, alias="htmlOutput")
    html: str | None = None
    subject: str | None = None
    sender_email: str | None = Field(default=None, alias="senderEmail")
    sender_name: str | None = Field(default=None, alias="senderName")
    provider: str | None = None
    model: str | None = None
    endpoint: str | None = None
    options: dict[str, Any] | None = None
    skip_review: bool = Field(default=False, alias="skipHitl")
    run_async: bool = Field(default=False, alias="async")

    def to_request(self, instance_id: str) -> RunRequest:
        return RunRequest(
            instance_id=instance_id,
            **self.model_dump(exclude={"instance_id"}, by_alias=False),
        )


class ResumeBody(BaseModel):
    """JSON form of the resume callback."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    instance_id: str
    decision: str = Field(alias="respond")
    information: str | None = Field(default=None, alias="info")


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    html_path: str = Field(serialization_alias="htmlPath")
    html: str


class SendResponse(BaseModel):
    ok: bool = True
    id: str | None = None
    status: str | None = None
    html_path: str | None = Field(default=None, serialization_alias="htmlPath")


class ResumeResponse(BaseModel):
    ok: bool = True
    decision: str
    status: str
    id: str | None = None
    html_path: str | None = Field(default=None, serialization_alias="htmlPath")

