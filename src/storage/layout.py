# src/storage/layout.py — v3
"""Instance directory structure definition.

Each instance lives at ``{agent_folder}/{instance_id}/``::

    config.json          instance configuration
    prompt.txt           base prompt template
    meta.json            state document
    artifacts/           current artifact + archived versions
    artifacts/tmp/       prompt overrides and inline artifacts
    logs/run.log         human-readable run log
"""

from __future__ import annotations

import re
from pathlib import Path

from mailflow.core.errors import InvalidArtifactPath

CONFIG_FILE = "config.json"
PROMPT_FILE = "prompt.txt"
STATE_FILE = "meta.json"

ARTIFACTS_DIR = "artifacts"
TMP_DIR = "tmp"
LOGS_DIR = "logs"
RUN_LOG_FILE = "run.log"

DEFAULT_ARTIFACT_NAME = "email.html"

# Instance ids become directory names; forbid separators and dot-dot.
_VALID_INSTANCE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def is_valid_instance_id(instance_id: str) -> bool:
    return bool(_VALID_INSTANCE_ID.match(instance_id)) and ".." not in instance_id


def instance_root(agent_folder: Path, instance_id: str) -> Path:
    """Return root directory for an instance."""
    return agent_folder / instance_id


def config_path(root: Path) -> Path:
    return root / CONFIG_FILE


def prompt_path(root: Path) -> Path:
    return root / PROMPT_FILE


def state_path(root: Path) -> Path:
    return root / STATE_FILE


def artifacts_dir(root: Path) -> Path:
    return root / ARTIFACTS_DIR


def tmp_dir(root: Path) -> Path:
    return artifacts_dir(root) / TMP_DIR


def logs_dir(root: Path) -> Path:
    return root / LOGS_DIR


def run_log_path(root: Path) -> Path:
    return logs_dir(root) / RUN_LOG_FILE


def default_artifact_path(root: Path) -> Path:
    return artifacts_dir(root) / DEFAULT_ARTIFACT_NAME


def resolve(root: Path, rel_or_abs: str | Path) -> Path:
    """Resolve a path against the instance root, confined to it.

    Absolute paths are accepted only when they point inside the root.

    Raises:
        InvalidArtifactPath: The path (after ``..`` and symlinks) leaves the root.
    """
    p = Path(rel_or_abs)
    candidate = p if p.is_absolute() else root / p
    try:
        inside = candidate.resolve().relative_to(root.resolve())
    except ValueError:
        raise InvalidArtifactPath(str(rel_or_abs)) from None
    return root / inside


def relative_to_root(root: Path, path: Path) -> str:
    """Express ``path`` relative to the instance root when it lives inside it."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def archive_candidate(path: Path, index: int) -> Path:
    """``email.html`` -> ``email-{index}.html`` in the same directory."""
    return path.with_name(f"{path.stem}-{index}{path.suffix}")


def ensure_instance_directories(root: Path) -> None:
    """Create the standard directories of an instance."""
    for dir_fn in [artifacts_dir, tmp_dir, logs_dir]:
        dir_fn(root).mkdir(parents=True, exist_ok=True)
