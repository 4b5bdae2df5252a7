# src/storage/instance_store.py — v2
"""Instance store: state document lifecycle, progress log, artifact archiving.

The state document is read-modify-written on every transition without a
lock; one writer per instance is assumed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError

from mailflow.core.errors import (
    ArtifactNotFound,
    ConfigMismatch,
    InstanceNotFound,
    InvalidInstanceConfig,
    InvalidInstanceId,
    StateDocumentError,
)
from mailflow.core.models import InstanceConfig
from mailflow.storage import layout
from mailflow.storage.base_output_writer import BaseOutputWriter
from mailflow.storage.local_writer import LocalWriter
from mailflow.storage.models import RunState, format_timestamp
from mailflow.storage.run_log import RunLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateHandle:
    """Addresses the state document and run log of one instance."""

    instance_id: str
    root: Path
    run_log: RunLog

    @property
    def state_path(self) -> Path:
        return layout.state_path(self.root)


class InstanceStore:
    """Durable per-instance storage rooted at the agent folder."""

    def __init__(self, agent_folder: Path, writer: BaseOutputWriter | None = None) -> None:
        self._agent_folder = Path(agent_folder)
        self._writer = writer or LocalWriter()

    @property
    def agent_folder(self) -> Path:
        return self._agent_folder

    @property
    def writer(self) -> BaseOutputWriter:
        return self._writer

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def locate(self, instance_id: str) -> Path:
        """Resolve an instance id to its root directory (which must exist)."""
        if not instance_id or not layout.is_valid_instance_id(instance_id):
            raise InvalidInstanceId(f"invalid instance id: {instance_id!r}")
        root = layout.instance_root(self._agent_folder, instance_id)
        if not root.is_dir():
            raise InstanceNotFound(f"instance folder not found: {root}")
        return root

    def handle(self, instance_id: str) -> StateHandle:
        root = self.locate(instance_id)
        return StateHandle(
            instance_id=instance_id,
            root=root,
            run_log=RunLog(self._writer, layout.run_log_path(root), instance_id),
        )

    async def load_config(self, root: Path) -> InstanceConfig:
        """Parse ``config.json``; a missing file yields an empty config."""
        path = layout.config_path(root)
        if not await self._writer.exists(str(path)):
            return InstanceConfig()
        try:
            data = json.loads(await self._writer.read(str(path)))
            return InstanceConfig.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            raise InvalidInstanceConfig(f"invalid config.json: {exc}") from exc

    # ------------------------------------------------------------------
    # State document
    # ------------------------------------------------------------------

    async def open(self, instance_id: str) -> tuple[InstanceConfig, StateHandle]:
        """Resolve and validate an instance without touching its state.

        Raises:
            ConfigMismatch: The config names a different instance.
        """
        handle = self.handle(instance_id)
        config = await self.load_config(handle.root)
        if config.instance_id and config.instance_id != handle.root.name:
            raise ConfigMismatch(config.instance_id, handle.root.name)
        layout.ensure_instance_directories(handle.root)
        return config, handle

    async def activate(self, instance_id: str) -> tuple[InstanceConfig, StateHandle]:
        """Start a run: state becomes ``active``, ``last_error`` is cleared.

        Progress and the last artifact/delivery pointers survive; they
        describe the instance, not just this run.

        Raises:
            ConfigMismatch: The config names a different instance.
        """
        config, handle = await self.open(instance_id)
        try:
            state = await self._load_or_new(handle)
        except StateDocumentError as exc:
            logger.warning("Replacing unreadable state of %s: %s", instance_id, exc)
            state = RunState()
        state.status = "active"
        state.started_at = format_timestamp()
        state.finished_at = None
        state.last_error = None
        await self._save(handle, state)

        await handle.run_log.line("state - active")
        await handle.run_log.line(f"instance folder: {handle.root}")
        logger.info("Instance %s activated", instance_id)
        return config, handle

    async def load_state(self, handle: StateHandle) -> RunState:
        """Read the state document.

        Raises:
            StateDocumentError: Missing or unparseable document.
        """
        path = str(handle.state_path)
        if not await self._writer.exists(path):
            raise StateDocumentError(f"meta.json not found at {handle.state_path}")
        try:
            return RunState.model_validate_json(await self._writer.read(path))
        except ValidationError as exc:
            raise StateDocumentError(f"meta.json invalid: {exc}") from exc

    async def record_progress(self, handle: StateHandle, message: str) -> None:
        """Append ``(now, message)`` to the progress sequence. Never raises."""
        try:
            state = await self._load_or_new(handle)
            state.progress.append((format_timestamp(), str(message)))
            await self._save(handle, state)
        except Exception as exc:
            logger.warning("Progress not recorded for %s: %s", handle.instance_id, exc)
        await handle.run_log.line(str(message))
        logger.info("[%s] %s", handle.instance_id, message)

    async def update(self, handle: StateHandle, **fields: Any) -> None:
        """Set pointer fields (``last_error``, ``last_html_path``...) without a transition."""
        state = await self._load_or_new(handle)
        for key, value in fields.items():
            setattr(state, key, value)
        await self._save(handle, state)

    async def finalize(
        self,
        handle: StateHandle,
        outcome: Literal["finished", "abort"],
        *,
        last_error: str | None = None,
        last_html_path: str | None = None,
        last_send_id: str | None = None,
    ) -> RunState:
        """Move the run to a terminal status.

        A ``finished`` outcome keeps any ``last_error`` recorded during the
        run (e.g. a tolerated review failure); ``abort`` overwrites it.
        """
        state = await self._load_or_new(handle)
        state.status = outcome
        state.finished_at = format_timestamp()
        if outcome == "abort":
            state.last_error = last_error or state.last_error or "aborted"
        if last_html_path is not None:
            state.last_html_path = last_html_path
        if last_send_id is not None:
            state.last_send_id = last_send_id
        await self._save(handle, state)

        await handle.run_log.line(f"state - {outcome}")
        if outcome == "abort":
            logger.warning("Instance %s aborted: %s", handle.instance_id, state.last_error)
        else:
            logger.info("Instance %s finished", handle.instance_id)
        return state

    async def _load_or_new(self, handle: StateHandle) -> RunState:
        if await self._writer.exists(str(handle.state_path)):
            return await self.load_state(handle)
        return RunState(started_at=format_timestamp())

    async def _save(self, handle: StateHandle, state: RunState) -> None:
        await self._writer.write(str(handle.state_path), state.model_dump_json(indent=2))

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def write_artifact(self, path: Path, content: str) -> Path:
        """Write an artifact, archiving any existing file first.

        The previous file moves to the first free ``name-N.ext`` sibling.

        Returns:
            The path written (always ``path``).
        """
        if await self._writer.exists(str(path)):
            archived = await self._next_archive_path(path)
            await self._writer.rename(str(path), str(archived))
            logger.info("Archived %s to %s", path.name, archived.name)
        await self._writer.write(str(path), content)
        return path

    async def read_artifact(self, path: Path) -> str:
        """Read an artifact.

        Raises:
            ArtifactNotFound: Nothing exists at ``path``.
        """
        if not await self._writer.exists(str(path)):
            raise ArtifactNotFound(str(path))
        return (await self._writer.read(str(path))).decode("utf-8")

    async def write_inline_artifact(self, tmp_dir: Path, content: str) -> Path:
        """Materialize inline HTML as ``email-<timestamp>.html`` under ``tmp_dir``."""
        stamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
        path = tmp_dir / f"email-{stamp}.html"
        await self._writer.write(str(path), content)
        return path

    async def artifact_exists(self, path: Path) -> bool:
        return await self._writer.exists(str(path))

    async def _next_archive_path(self, path: Path) -> Path:
        index = 1
        while True:
            candidate = layout.archive_candidate(path, index)
            if not await self._writer.exists(str(candidate)):
                return candidate
            index += 1
