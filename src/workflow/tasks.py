# src/workflow/tasks.py — v1
"""Background execution for asynchronous operations.

Running tasks are strongly referenced until they finish. A task that
raises has its ``on_error`` callback awaited, so a run is always moved to
a terminal state instead of being left ``active``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Exception], Awaitable[None]]


class TaskRunner:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str,
        on_error: ErrorCallback,
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop and return its task."""
        task = asyncio.create_task(self._guard(coro, name, on_error), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Spawned background task %s", name)
        return task

    async def _guard(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str,
        on_error: ErrorCallback,
    ) -> None:
        try:
            await coro
        except Exception as e:
            logger.error("Background task %s failed: %s", name, e, exc_info=True)
            try:
                await on_error(e)
            except Exception:
                logger.exception("Could not record failure of background task %s", name)

    async def wait_idle(self) -> None:
        """Wait until every spawned task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
