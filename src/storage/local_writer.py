# src/storage/local_writer.py — v3
"""Local filesystem output writer (default backend).

``write`` goes through a temp file and ``os.replace`` so a reader polling the
state document never sees a half-written file.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from mailflow.storage.base_output_writer import BaseOutputWriter


class LocalWriter(BaseOutputWriter):
    """Write outputs to the local filesystem."""

    def __init__(self, base_path: str | None = None) -> None:
        """Initialize with optional base path.

        Args:
            base_path: Root directory for all writes. If None, paths are absolute.
        """
        self._base = Path(base_path) if base_path else None

    def _resolve(self, path: str) -> Path:
        """Resolve a path relative to base_path."""
        if self._base is not None:
            return self._base / path
        return Path(path)

    async def write(self, path: str, content: bytes | str) -> None:
        """Atomically replace the content of a local file."""
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8") if isinstance(content, str) else content
        fd, tmp_path = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, p)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def append(self, path: str, content: str) -> None:
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("a", encoding="utf-8") as f:
            f.write(content)

    async def read(self, path: str) -> bytes:
        """Read content from a local file path."""
        return self._resolve(path).read_bytes()

    async def exists(self, path: str) -> bool:
        """Check if a local path exists."""
        return self._resolve(path).exists()

    async def rename(self, src: str, dst: str) -> None:
        src_path = self._resolve(src)
        dst_path = self._resolve(dst)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        src_path.rename(dst_path)

    async def list_dir(self, path: str) -> list[str]:
        """List directory contents."""
        p = self._resolve(path)
        if not p.is_dir():
            return []
        return [entry.name for entry in sorted(p.iterdir())]
