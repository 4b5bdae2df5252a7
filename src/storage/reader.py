# src/storage/reader.py — v2
"""Read-only views of instance state for status and progress polling."""

from __future__ import annotations

from typing import Any

from mailflow.core.errors import StateDocumentError
from mailflow.storage.instance_store import InstanceStore
from mailflow.storage.models import RunState


async def load_status(store: InstanceStore, instance_id: str) -> dict[str, Any]:
    """Return the state document with the instance id merged in."""
    state = await _state(store, instance_id)
    return {"instance_id": instance_id, **state.model_dump(mode="json")}


async def load_latest_progress(store: InstanceStore, instance_id: str) -> tuple[str, str] | None:
    """Return the most recent ``(timestamp, message)`` pair, if any."""
    state = await _state(store, instance_id)
    return state.latest_progress


async def load_progress(store: InstanceStore, instance_id: str) -> list[tuple[str, str]]:
    """Return the full progress sequence in append order."""
    state = await _state(store, instance_id)
    return list(state.progress)


async def _state(store: InstanceStore, instance_id: str) -> RunState:
    handle = store.handle(instance_id)
    try:
        return await store.load_state(handle)
    except StateDocumentError:
        raise
    except OSError as exc:
        raise StateDocumentError(f"meta.json unreadable: {exc}") from exc
