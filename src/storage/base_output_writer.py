# src/storage/base_output_writer.py — v2
"""Abstract output writer interface used by the instance store."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOutputWriter(ABC):
    """Unified interface for storage backends."""

    @abstractmethod
    async def write(self, path: str, content: bytes | str) -> None:
        """Replace the content at the given path."""

    @abstractmethod
    async def append(self, path: str, content: str) -> None:
        """Append text to the given path, creating it if needed."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read content from the given path."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""

    @abstractmethod
    async def rename(self, src: str, dst: str) -> None:
        """Move a file (used to archive superseded artifacts)."""

    @abstractmethod
    async def list_dir(self, path: str) -> list[str]:
        """List directory contents."""
