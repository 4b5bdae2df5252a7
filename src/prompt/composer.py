# src/prompt/composer.py — v1
"""Effective generation prompt from template, instructions and base artifact.

Three shapes:
  - template + HTML-only directive (no instructions)
  - template + [KEY INSTRUCTIONS] + HTML-only directive (fresh generation)
  - template + [KEY INSTRUCTIONS] + current HTML + revise directive (edit mode)

Edit mode is used when instructions are given and a base artifact exists,
either one the caller named explicitly or the instance's canonical
artifact. A named base artifact that does not exist is an error; the
composer never falls back to fresh generation in that case.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from mailflow.core.errors import BaseArtifactNotFound, PromptNotFound
from mailflow.storage.instance_store import InstanceStore
from mailflow.workflow.context import InstanceContext

logger = logging.getLogger(__name__)

HTML_ONLY_DIRECTIVE = (
    "IMPORTANT: Your response must contain ONLY the HTML email content "
    "wrapped in ```html code blocks."
)

EDIT_PREAMBLE = (
    "You are updating an existing HTML email. Here is the current HTML to modify:"
)

EDIT_DIRECTIVE = (
    "IMPORTANT: Return ONLY the complete, updated HTML email wrapped in "
    "```html code blocks. Do not include any explanation."
)


def key_instructions_section(instructions: str | None) -> str:
    """Render ``;``-separated instructions as a bulleted section ('' if none)."""
    if not instructions:
        return ""
    items = [item.strip() for item in instructions.split(";") if item.strip()]
    if not items:
        return ""
    bullets = "\n".join(f"- {item}" for item in items)
    return f"\n[KEY INSTRUCTIONS]\n{bullets}\n"


def compose(
    template: str,
    instructions: str | None = None,
    existing_artifact: str | None = None,
) -> str:
    """Build the prompt text.

    ``existing_artifact`` only matters together with instructions; without
    instructions the template is used as a fresh brief.
    """
    instructions = (instructions or "").strip()
    section = key_instructions_section(instructions)
    prompt = f"{template}\n{section}" if section else template

    if instructions and existing_artifact:
        return (
            f"{prompt}\n\n{EDIT_PREAMBLE}\n\n```html\n{existing_artifact}\n```\n\n"
            f"{EDIT_DIRECTIVE}"
        )
    return f"{prompt}\n\n{HTML_ONLY_DIRECTIVE}"


@dataclass(frozen=True)
class ComposedPrompt:
    text: str
    template_path: Path
    base_artifact_path: Path | None = None

    @property
    def edit_mode(self) -> bool:
        return self.base_artifact_path is not None


class PromptComposer:
    """Resolves template and base artifact for an instance, then composes."""

    def __init__(self, store: InstanceStore) -> None:
        self._store = store

    async def load_template(
        self,
        ctx: InstanceContext,
        prompt_text: str | None = None,
        prompt_file: str | None = None,
    ) -> tuple[str, Path]:
        """Return ``(template, path)``.

        Inline ``prompt_text`` is kept under ``artifacts/tmp`` so the run
        can be audited later.

        Raises:
            PromptNotFound: No template at the resolved path.
        """
        if prompt_text:
            stamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
            path = ctx.tmp_dir / f"prompt-{stamp}.txt"
            await self._store.writer.write(str(path), prompt_text)
            return prompt_text, path

        path = ctx.resolve(prompt_file) if prompt_file else ctx.prompt_path
        if not await self._store.writer.exists(str(path)):
            raise PromptNotFound(ctx.relative(path))
        raw = await self._store.writer.read(str(path))
        return raw.decode("utf-8"), path

    async def build(
        self,
        ctx: InstanceContext,
        *,
        prompt_text: str | None = None,
        prompt_file: str | None = None,
        instructions: str | None = None,
        base_artifact: str | Path | None = None,
    ) -> ComposedPrompt:
        """Compose the prompt for one generation.

        Raises:
            PromptNotFound: Template missing.
            BaseArtifactNotFound: ``base_artifact`` was named but is missing.
        """
        template, template_path = await self.load_template(ctx, prompt_text, prompt_file)
        instructions = (instructions or "").strip()
        if not instructions:
            return ComposedPrompt(compose(template), template_path)

        explicit = base_artifact is not None
        source = ctx.resolve(base_artifact) if explicit else ctx.artifact_path
        if await self._store.artifact_exists(source):
            existing = await self._store.read_artifact(source)
            logger.debug("Edit mode for %s based on %s", ctx.instance_id, source.name)
            return ComposedPrompt(
                compose(template, instructions, existing), template_path, source,
            )
        if explicit:
            raise BaseArtifactNotFound(str(base_artifact))
        return ComposedPrompt(compose(template, instructions), template_path)
