# src/review/gate.py — v2
"""Review gate: the bounded decision loop in front of delivery.

Evaluating -> Proceed | Paused | Aborted | Regenerating. Regenerating
always comes back to Evaluating with a new artifact, at most
``max_loops`` times; once that many regenerations ran, the gate proceeds.

Aborts are raised as ``WorkflowError`` subclasses; the caller records them
and finalizes the run. Proceed and Paused are returned as a ``GateOutcome``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal

from mailflow.core.errors import (
    MissingReviewConfig,
    ReviewRejected,
    ReviewServiceError,
    UnknownReviewStatus,
)
from mailflow.core.models import Artifact, Decision, ReviewGateConfig, ReviewRequest
from mailflow.logging.context import step_context
from mailflow.review.client import BaseReviewClient
from mailflow.storage.instance_store import InstanceStore
from mailflow.workflow.context import InstanceContext

logger = logging.getLogger(__name__)

# (instructions, current artifact) -> regenerated artifact
Regenerate = Callable[[str, Artifact], Awaitable[Artifact]]


@dataclass(frozen=True)
class GateOutcome:
    action: Literal["proceed", "paused"]
    artifact: Artifact
    loops: int = 0
    bypassed: bool = False
    tolerated_error: str | None = None

    @property
    def paused(self) -> bool:
        return self.action == "paused"


class ReviewGate:
    """Runs the review loop for one send operation."""

    def __init__(self, store: InstanceStore, client: BaseReviewClient) -> None:
        self._store = store
        self._client = client

    async def require_config(self, ctx: InstanceContext) -> ReviewGateConfig:
        """Return the instance review block.

        Raises:
            MissingReviewConfig: The block is absent.
        """
        review = ctx.review
        if review is None:
            await self._store.record_progress(ctx.handle, MissingReviewConfig.code)
            raise MissingReviewConfig(
                f"instance {ctx.instance_id} has no review block in config.json"
            )
        return review

    async def evaluate(
        self,
        ctx: InstanceContext,
        artifact: Artifact,
        regenerate: Regenerate,
        *,
        skip: bool = False,
    ) -> GateOutcome:
        """Drive the gate until it proceeds, pauses or aborts.

        Raises:
            MissingReviewConfig: No review block (checked before any call).
            ReviewRejected: The reviewer rejected the artifact.
            UnknownReviewStatus: The reviewer answered outside the vocabulary.
            ReviewServiceError: The service failed and the gate is enabled.
        """
        review = await self.require_config(ctx)

        with step_context("review"):
            if skip:
                await self._progress(ctx, "hitl skipped")
                return GateOutcome("proceed", artifact, bypassed=True)

            max_loops = ctx.review_max_loops
            loops = 0
            while True:
                if loops == 0:
                    await self._progress(ctx, "awaiting human input")
                else:
                    await self._progress(ctx, f"awaiting human input (loop {loops})")
                    await self._progress(ctx, f"hitl loop back #{loops}")

                request = ReviewRequest(
                    instance_id=ctx.instance_id,
                    html_path=artifact.path,
                    html=artifact.html,
                    hitl=review.raw(),
                    loop=loops,
                )
                try:
                    decision = await self._client.evaluate(request)
                except ReviewServiceError as e:
                    await self._progress(ctx, f"hitl error: {e.last_error}")
                    if review.enable:
                        raise
                    await self._progress(ctx, "hitl error (proceeding without block)")
                    await self._store.update(ctx.handle, last_error=e.last_error)
                    return GateOutcome(
                        "proceed", artifact, loops=loops, tolerated_error=e.last_error,
                    )

                if decision.status in ("no-hitl", "approve"):
                    artifact = await self._apply_override(ctx, artifact, decision)
                    await self._progress(ctx, "hitl approved")
                    return GateOutcome("proceed", artifact, loops=loops)

                if decision.status == "wait":
                    await self._progress(ctx, "hitl waiting for human")
                    return GateOutcome("paused", artifact, loops=loops)

                if decision.status == "reject":
                    await self._progress(ctx, "hitl rejected")
                    raise ReviewRejected()

                if decision.status == "has-input":
                    text = decision.instructions
                    await self._progress(ctx, f"hitl input: {text}")
                    if not text:
                        await self._progress(ctx, "hitl approve (empty input)")
                        return GateOutcome("proceed", artifact, loops=loops)

                    await self._progress(ctx, "hitl provided input; regenerating html")
                    artifact = await regenerate(text, artifact)
                    loops += 1
                    if loops >= max_loops:
                        await self._progress(ctx, "hitl loop limit reached")
                        return GateOutcome("proceed", artifact, loops=loops)
                    continue

                raw = decision.raw_status or decision.status
                await self._progress(ctx, f"hitl unknown status: {raw}")
                raise UnknownReviewStatus(raw)

    async def _apply_override(
        self, ctx: InstanceContext, artifact: Artifact, decision: Decision,
    ) -> Artifact:
        if decision.html:
            path = await self._store.write_inline_artifact(ctx.tmp_dir, decision.html)
            return Artifact(path=ctx.relative(path), html=decision.html, absolute_path=path)
        if decision.html_path:
            path = ctx.resolve(decision.html_path)
            if await self._store.artifact_exists(path):
                return Artifact(
                    path=ctx.relative(path),
                    html=await self._store.read_artifact(path),
                    absolute_path=path,
                )
            logger.warning(
                "Reviewer named %s for %s but it does not exist; keeping current artifact",
                decision.html_path, ctx.instance_id,
            )
        return artifact

    async def _progress(self, ctx: InstanceContext, message: str) -> None:
        await self._store.record_progress(ctx.handle, message)
