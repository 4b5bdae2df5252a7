# src/logging/context.py — v2
"""Contextual logging support: attach instance_id, operation, step to records.

Context variables are task-local under asyncio, so interleaved background
runs of different instances each log with their own context.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_instance_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "instance_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    instance_id: str | None = None
    operation: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        instance_id=_instance_id.get(),
        operation=_operation.get(),
        step=_step.get(),
    )


def set_instance_context(instance_id: str, operation: str | None = None) -> None:
    """Set run-level context (called once per operation invocation)."""
    _instance_id.set(instance_id)
    _operation.set(operation)


@contextmanager
def step_context(step: str) -> Iterator[None]:
    """Scope log records to a workflow step."""
    token = _step.set(step)
    try:
        yield
    finally:
        _step.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _instance_id.set(None)
    _operation.set(None)
    _step.set(None)
