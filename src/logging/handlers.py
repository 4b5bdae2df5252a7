# src/logging/handlers.py — v2
"""Rotating file handler for the process log."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size: str | int) -> int:
    """Parse '10MB', '512 kb' or a plain byte count into bytes."""
    if isinstance(size, int):
        if size <= 0:
            raise ValueError(f"Invalid size: {size!r}")
        return size
    match = re.match(r"^(\d+)\s*(B|KB|MB|GB)?$", size.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    return int(match.group(1)) * _MULTIPLIERS[unit]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str | int = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a size-rotating file handler, creating parent directories."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
