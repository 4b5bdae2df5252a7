"""mailflow: generate, review and deliver HTML email per durable instance."""

from mailflow.version import __version__

__all__ = ["__version__"]
