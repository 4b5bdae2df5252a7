# src/workflow/generation.py — v2
"""Generation step: compose, call the backend once, archive-and-write.

Progress milestones, in order: ``llm generating email``,
``saving html email to file``, ``generated html email``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from mailflow.core.models import Artifact, RunRequest
from mailflow.llm.backend import GenerationBackend
from mailflow.llm.config import resolve_model_config
from mailflow.logging.context import step_context
from mailflow.prompt.composer import PromptComposer
from mailflow.storage.instance_store import InstanceStore
from mailflow.workflow.context import InstanceContext

logger = logging.getLogger(__name__)


class GenerationStep:
    def __init__(
        self,
        store: InstanceStore,
        composer: PromptComposer,
        backend: GenerationBackend,
    ) -> None:
        self._store = store
        self._composer = composer
        self._backend = backend

    async def run(
        self,
        ctx: InstanceContext,
        request: RunRequest,
        *,
        instructions: str | None = None,
        base_artifact: str | Path | None = None,
    ) -> Artifact:
        """Produce a new artifact for ``ctx``.

        ``base_artifact`` names the document to revise when instructions
        are given; without it the canonical artifact is revised if present.

        Raises:
            PromptNotFound: Template missing.
            BaseArtifactNotFound: Named base artifact missing.
            GenerationFailed: Backend failure or empty output.
            InvalidArtifactPath: A requested path leaves the instance folder.
        """
        with step_context("generation"):
            target = ctx.resolve(request.html_output) if request.html_output else ctx.artifact_path
            composed = await self._composer.build(
                ctx,
                prompt_text=request.prompt_text,
                prompt_file=request.prompt_file,
                instructions=instructions,
                base_artifact=base_artifact,
            )
            await ctx.run_log.line(
                f"[INFO] Prompt prepared from {ctx.relative(composed.template_path)}"
                + (" (edit mode)" if composed.edit_mode else "")
            )
            await ctx.run_log.dump("Prompt", composed.text)

            model_config = resolve_model_config(
                ctx.settings, ctx.config.llm, request.model_overrides,
            )
            await self._store.record_progress(ctx.handle, "llm generating email")
            output = await self._backend.generate(composed.text, model_config)
            await ctx.run_log.line(
                f"completed generating email using LLM (model: {model_config.key}, "
                f"source: {model_config.source})"
            )

            await self._store.record_progress(ctx.handle, "saving html email to file")
            await self._store.write_artifact(target, output.html)
            await ctx.run_log.dump("[CONTENT] HTML file content", output.html)
            rel = ctx.relative(target)
            await self._store.update(ctx.handle, last_html_path=rel)
            await self._store.record_progress(ctx.handle, "generated html email")

        logger.info("Generated %s for %s", rel, ctx.instance_id)
        return Artifact(path=rel, html=output.html, absolute_path=target)
