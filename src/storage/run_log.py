# src/storage/run_log.py — v2
"""Per-instance human-readable run log (``logs/run.log``).

Mirrors progress milestones and state transitions, plus verbose prompt and
content dumps for debugging. Writes are best-effort: a failure here is
reported through the process logger and never reaches the workflow.
"""

from __future__ import annotations

import logging
from pathlib import Path

from mailflow.storage.base_output_writer import BaseOutputWriter
from mailflow.storage.models import format_timestamp

logger = logging.getLogger(__name__)


class RunLog:
    """Append-only text log bound to one instance."""

    def __init__(self, writer: BaseOutputWriter, path: Path, instance_id: str) -> None:
        self._writer = writer
        self._path = path
        self._instance_id = instance_id

    @property
    def path(self) -> Path:
        return self._path

    async def line(self, message: str) -> None:
        """Write one ``timestamp: [instance] message`` line."""
        await self._append(f"{format_timestamp()}: [{self._instance_id}] {message}\n")

    async def dump(self, title: str, content: str) -> None:
        """Write a multi-line block framed by start/end markers."""
        stamp = format_timestamp()
        await self._append(
            f"{stamp}: [{self._instance_id}] --- {title} Start ---\n"
            f"{content}\n"
            f"{stamp}: [{self._instance_id}] --- {title} End ---\n"
        )

    async def _append(self, text: str) -> None:
        try:
            await self._writer.append(str(self._path), text)
        except Exception as exc:
            logger.warning("Run log write failed for %s: %s", self._instance_id, exc)
