# src/workflow/context.py — v1
"""Per-invocation instance context.

Built once when an operation activates an instance and threaded through
every step; nothing in the workflow reads module-level paths or globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mailflow.config.settings import Settings
from mailflow.core.models import InstanceConfig, ReviewGateConfig
from mailflow.storage import layout
from mailflow.storage.instance_store import StateHandle
from mailflow.storage.run_log import RunLog


@dataclass(frozen=True)
class InstanceContext:
    """Identity, resolved paths and parsed config of one instance."""

    instance_id: str
    root: Path
    config: InstanceConfig
    handle: StateHandle
    settings: Settings

    @property
    def run_log(self) -> RunLog:
        return self.handle.run_log

    @property
    def prompt_path(self) -> Path:
        return self.resolve(self.config.prompt_file or layout.PROMPT_FILE)

    @property
    def artifact_path(self) -> Path:
        """Canonical artifact location (``html_output`` or ``artifacts/email.html``)."""
        if self.config.html_output:
            return self.resolve(self.config.html_output)
        return layout.default_artifact_path(self.root)

    @property
    def tmp_dir(self) -> Path:
        return layout.tmp_dir(self.root)

    @property
    def review(self) -> ReviewGateConfig | None:
        return self.config.review

    @property
    def review_max_loops(self) -> int:
        review = self.config.review
        if review is not None and review.max_loops is not None and review.max_loops >= 1:
            return review.max_loops
        return self.settings.review_max_loops

    def resolve(self, rel_or_abs: str | Path) -> Path:
        return layout.resolve(self.root, rel_or_abs)

    def relative(self, path: Path) -> str:
        return layout.relative_to_root(self.root, path)
