# src/workflow/orchestrator.py — v2
"""Workflow orchestrator: generate, send, generate-send and resume.

One parametrized engine drives every operation:

  activate -> [generation] -> [review gate -> delivery] -> finalize

Synchronous calls return the terminal result or raise the failure.
Asynchronous calls activate the instance before returning ``Accepted`` and
finish in a background task; failures then surface only through the
state document. Either way a failure finalizes the run to ``abort`` with
the error's code as ``last_error``.

A paused review (``wait``) is the one outcome that leaves the run
``active``; only ``resume`` advances it.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar
from urllib.parse import quote

from mailflow.config.settings import Settings
from mailflow.core.errors import (
    ArtifactNotFound,
    MissingInformation,
    RunNotPaused,
    UnsupportedDecision,
    WorkflowError,
)
from mailflow.core.models import (
    Accepted,
    Artifact,
    GenerateResult,
    ResumeResult,
    RunRequest,
    SendResult,
)
from mailflow.delivery.base_transport import BaseTransport
from mailflow.delivery.transport_factory import create_transport
from mailflow.llm.backend import GenerationBackend
from mailflow.logging.context import set_instance_context
from mailflow.prompt.composer import PromptComposer
from mailflow.review.client import BaseReviewClient, HttpReviewClient
from mailflow.review.gate import ReviewGate
from mailflow.storage import reader
from mailflow.storage.instance_store import InstanceStore, StateHandle
from mailflow.workflow.context import InstanceContext
from mailflow.workflow.delivery import DeliveryStep, build_envelope, require_recipients
from mailflow.workflow.generation import GenerationStep
from mailflow.workflow.tasks import TaskRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_ROUTE = "/api/email-agent/status"

_RESUME_DECISIONS = ("approve", "modify", "reject")


def status_link(instance_id: str) -> str:
    return f"{STATUS_ROUTE}?instance_id={quote(instance_id, safe='')}"


class WorkflowEngine:
    """Instance workflow engine.

    Args:
        settings: Process settings.
        store: Instance store (defaults to one rooted at ``settings.agent_folder``).
        backend: Generation backend.
        review_client: Review-service client.
        transport: Delivery transport; created from settings on first delivery
            when omitted, so inspection works without transport credentials.
        runner: Background task runner.
    """

    def __init__(
        self,
        settings: Settings,
        store: InstanceStore | None = None,
        backend: GenerationBackend | None = None,
        review_client: BaseReviewClient | None = None,
        transport: BaseTransport | None = None,
        runner: TaskRunner | None = None,
    ) -> None:
        self._settings = settings
        self._store = store or InstanceStore(settings.agent_folder)
        self._backend = backend or GenerationBackend(settings)
        self._review_client = review_client or HttpReviewClient(
            settings.review_url, timeout=settings.review_timeout_s,
        )
        self._transport = transport
        self._runner = runner or TaskRunner()

        self._composer = PromptComposer(self._store)
        self._generation = GenerationStep(self._store, self._composer, self._backend)
        self._gate = ReviewGate(self._store, self._review_client)
        self._delivery = DeliveryStep(self._store, self._get_transport)

    @property
    def store(self) -> InstanceStore:
        return self._store

    @property
    def runner(self) -> TaskRunner:
        return self._runner

    def _get_transport(self) -> BaseTransport:
        if self._transport is None:
            self._transport = create_transport(self._settings)
        return self._transport

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def generate(self, request: RunRequest) -> GenerateResult | Accepted:
        """Generate the instance artifact."""

        async def body(ctx: InstanceContext) -> GenerateResult:
            artifact = await self._generate(ctx, request)
            await self._store.finalize(ctx.handle, "finished", last_html_path=artifact.path)
            return GenerateResult(html_path=artifact.path, html=artifact.html)

        return await self._execute("generate", request, body)

    async def send(self, request: RunRequest) -> SendResult | Accepted:
        """Review and deliver an existing (or inline) artifact."""

        async def body(ctx: InstanceContext) -> SendResult:
            await self._gate.require_config(ctx)
            require_recipients(ctx)
            artifact = await self._send_artifact(ctx, request)
            return await self._review_and_deliver(ctx, request, artifact, skip=request.skip_review)

        return await self._execute("send", request, body)

    async def generate_send(self, request: RunRequest) -> SendResult | Accepted:
        """Generate, then review and deliver the fresh artifact."""

        async def body(ctx: InstanceContext) -> SendResult:
            # Validation failures must not cost a generation call.
            await self._gate.require_config(ctx)
            require_recipients(ctx)
            artifact = await self._generate(ctx, request)
            return await self._review_and_deliver(ctx, request, artifact, skip=request.skip_review)

        return await self._execute("generate-send", request, body)

    async def resume(
        self,
        instance_id: str,
        decision: str,
        information: str | None = None,
        request: RunRequest | None = None,
    ) -> ResumeResult:
        """Advance a paused run with an external decision.

        ``approve`` delivers with the gate bypassed, ``modify`` regenerates
        with ``information`` as instructions and re-engages the gate,
        ``reject`` aborts without touching the artifact.

        Raises:
            UnsupportedDecision: ``decision`` is not approve/modify/reject.
            MissingInformation: ``modify`` without revision text.
            RunNotPaused: The run is not ``active``.
        """
        choice = (decision or "").strip().lower()
        if choice not in _RESUME_DECISIONS:
            raise UnsupportedDecision(f"unsupported decision: {decision!r}")
        info = (information or "").strip()
        if choice == "modify" and not info:
            raise MissingInformation("modify requires revision information")

        set_instance_context(instance_id, "resume")
        config, handle = await self._store.open(instance_id)
        state = await self._store.load_state(handle)
        if state.status != "active":
            raise RunNotPaused(f"instance {instance_id} is {state.status}, not paused")

        ctx = self._context(instance_id, config, handle)
        request = request or RunRequest(instance_id=instance_id)
        await self._store.record_progress(handle, f"review response - {choice}")

        if choice == "reject":
            reason = f"hitl_rejected: {info}" if info else "hitl_rejected"
            await self._store.finalize(handle, "abort", last_error=reason)
            return ResumeResult(instance_id=instance_id, decision="reject", status="abort")

        async def body(ctx: InstanceContext) -> SendResult:
            current = await self._current_artifact(ctx, state.last_html_path)
            if choice == "approve":
                return await self._review_and_deliver(ctx, request, current, skip=True)
            artifact = await self._generation.run(
                ctx, request, instructions=info, base_artifact=current.absolute_path,
            )
            return await self._review_and_deliver(ctx, request, artifact, skip=False)

        result = await self._guarded(ctx, body)
        return ResumeResult(
            instance_id=instance_id,
            decision=choice,
            status=result.status,
            message_id=result.message_id,
            html_path=result.html_path,
        )

    async def status(self, instance_id: str) -> dict[str, Any]:
        """State document plus ``instance_id``."""
        return await reader.load_status(self._store, instance_id)

    async def progress(
        self, instance_id: str, latest: bool = True,
    ) -> tuple[str, str] | list[tuple[str, str]] | None:
        """Latest ``(timestamp, message)`` pair, or the full sequence."""
        if latest:
            return await reader.load_latest_progress(self._store, instance_id)
        return await reader.load_progress(self._store, instance_id)

    async def wait_idle(self) -> None:
        await self._runner.wait_idle()

    # ------------------------------------------------------------------
    # Execution modes
    # ------------------------------------------------------------------

    async def _execute(
        self,
        operation: str,
        request: RunRequest,
        body: Callable[[InstanceContext], Awaitable[T]],
    ) -> T | Accepted:
        set_instance_context(request.instance_id, operation)
        config, handle = await self._store.activate(request.instance_id)
        await handle.run_log.line(f"receive API call: {operation}")
        ctx = self._context(request.instance_id, config, handle)

        if not request.run_async:
            return await self._guarded(ctx, body)

        self._runner.spawn(
            body(ctx),
            name=f"{operation}:{request.instance_id}",
            on_error=lambda exc: self._abort(ctx, exc),
        )
        logger.info("Accepted async %s for %s", operation, request.instance_id)
        return Accepted(
            instance_id=request.instance_id,
            links={"status": status_link(request.instance_id)},
        )

    async def _guarded(
        self,
        ctx: InstanceContext,
        body: Callable[[InstanceContext], Awaitable[T]],
    ) -> T:
        try:
            return await body(ctx)
        except Exception as exc:
            await self._abort(ctx, exc)
            raise

    async def _abort(self, ctx: InstanceContext, exc: Exception) -> None:
        if isinstance(exc, WorkflowError):
            last_error = exc.last_error
        else:
            logger.error("Unexpected failure in %s", ctx.instance_id, exc_info=exc)
            last_error = f"internal_error: {type(exc).__name__}: {exc}"
        await ctx.run_log.line(f"[ERROR] {last_error}")
        await self._store.finalize(ctx.handle, "abort", last_error=last_error)

    # ------------------------------------------------------------------
    # Shared flow pieces
    # ------------------------------------------------------------------

    def _context(self, instance_id: str, config: Any, handle: StateHandle) -> InstanceContext:
        return InstanceContext(
            instance_id=instance_id,
            root=handle.root,
            config=config,
            handle=handle,
            settings=self._settings,
        )

    async def _generate(self, ctx: InstanceContext, request: RunRequest) -> Artifact:
        return await self._generation.run(
            ctx,
            request,
            instructions=request.instructions,
            base_artifact=request.source_html_path or request.html_path,
        )

    async def _review_and_deliver(
        self,
        ctx: InstanceContext,
        request: RunRequest,
        artifact: Artifact,
        *,
        skip: bool,
    ) -> SendResult:
        async def regenerate(instructions: str, current: Artifact) -> Artifact:
            return await self._generation.run(
                ctx, request, instructions=instructions, base_artifact=current.absolute_path,
            )

        outcome = await self._gate.evaluate(ctx, artifact, regenerate, skip=skip)
        if outcome.paused:
            await self._store.update(ctx.handle, last_html_path=outcome.artifact.path)
            logger.info("Instance %s paused for review", ctx.instance_id)
            return SendResult(status="waiting", html_path=outcome.artifact.path)

        envelope = build_envelope(ctx, outcome.artifact, request)
        message_id = await self._delivery.run(ctx, envelope)
        await self._store.finalize(
            ctx.handle,
            "finished",
            last_html_path=outcome.artifact.path,
            last_send_id=message_id,
        )
        return SendResult(status="sent", message_id=message_id, html_path=outcome.artifact.path)

    async def _send_artifact(self, ctx: InstanceContext, request: RunRequest) -> Artifact:
        """Artifact for a send: inline HTML, an explicit path, or the canonical one."""
        if request.html:
            path = await self._store.write_inline_artifact(ctx.tmp_dir, request.html)
            return Artifact(path=ctx.relative(path), html=request.html, absolute_path=path)

        path = ctx.resolve(request.html_path) if request.html_path else ctx.artifact_path
        html = await self._store.read_artifact(path)
        return Artifact(path=ctx.relative(path), html=html, absolute_path=path)

    async def _current_artifact(self, ctx: InstanceContext, last_html_path: str | None) -> Artifact:
        """Artifact a paused run was reviewing (last pointer, else canonical)."""
        if last_html_path:
            path = ctx.resolve(last_html_path)
            if await self._store.artifact_exists(path):
                html = await self._store.read_artifact(path)
                return Artifact(path=ctx.relative(path), html=html, absolute_path=path)
            logger.warning(
                "last_html_path %s of %s is gone; using canonical artifact",
                last_html_path, ctx.instance_id,
            )
        path = ctx.artifact_path
        if not await self._store.artifact_exists(path):
            raise ArtifactNotFound(ctx.relative(path))
        html = await self._store.read_artifact(path)
        return Artifact(path=ctx.relative(path), html=html, absolute_path=path)
