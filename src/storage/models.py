# src/storage/models.py — v2
"""Storage domain models: the per-instance state document."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RunStatus = Literal["active", "finished", "abort"]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(ts: datetime | None = None) -> str:
    """Local wall-clock timestamp as written into meta.json."""
    return (ts or datetime.now()).strftime(TIMESTAMP_FORMAT)


class RunState(BaseModel):
    """State document (``meta.json``), rewritten on every transition.

    ``progress`` is an ordered list of ``[timestamp, message]`` pairs that is
    only ever appended to. Unknown keys written by other tools are kept.
    """

    model_config = ConfigDict(extra="allow")

    status: RunStatus = "active"
    started_at: str | None = None
    finished_at: str | None = None
    last_error: str | None = None
    last_html_path: str | None = None
    last_send_id: str | None = None
    progress: list[tuple[str, str]] = Field(default_factory=list)

    @property
    def latest_progress(self) -> tuple[str, str] | None:
        return self.progress[-1] if self.progress else None
