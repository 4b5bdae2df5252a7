# tests/unit/prompt/test_unit_composer.py — v1
"""Tests for prompt/composer.py."""

from __future__ import annotations

import pytest

from mailflow.core.errors import BaseArtifactNotFound, PromptNotFound
from mailflow.prompt.composer import (
    EDIT_DIRECTIVE,
    EDIT_PREAMBLE,
    HTML_ONLY_DIRECTIVE,
    PromptComposer,
    compose,
    key_instructions_section,
)
from mailflow.workflow.context import InstanceContext


async def _context(store, settings, instance_id: str = "acme-launch") -> InstanceContext:
    config, handle = await store.open(instance_id)
    return InstanceContext(
        instance_id=instance_id, root=handle.root, config=config, handle=handle, settings=settings,
    )


class TestKeyInstructions:
    def test_bullets(self):
        assert key_instructions_section("shorter; add CTA ;") == (
            "\n[KEY INSTRUCTIONS]\n- shorter\n- add CTA\n"
        )

    def test_empty(self):
        assert key_instructions_section(None) == ""
        assert key_instructions_section(" ; ") == ""


class TestCompose:
    def test_template_only(self):
        prompt = compose("Write a launch email.")
        assert prompt == f"Write a launch email.\n\n{HTML_ONLY_DIRECTIVE}"
        assert "[KEY INSTRUCTIONS]" not in prompt

    def test_fresh_with_instructions(self):
        prompt = compose("Brief", "Add a P.S. line")
        assert prompt.startswith("Brief\n\n[KEY INSTRUCTIONS]\n- Add a P.S. line\n")
        assert prompt.endswith(HTML_ONLY_DIRECTIVE)

    def test_edit_mode(self):
        prompt = compose("Brief", "Shorter", "<p>old</p>")
        assert EDIT_PREAMBLE in prompt
        assert "```html\n<p>old</p>\n```" in prompt
        assert prompt.endswith(EDIT_DIRECTIVE)
        assert prompt.index("[KEY INSTRUCTIONS]") < prompt.index(EDIT_PREAMBLE)

    def test_artifact_ignored_without_instructions(self):
        assert compose("Brief", None, "<p>old</p>") == compose("Brief")


class TestPromptComposer:
    @pytest.mark.asyncio
    async def test_instance_template(self, store, settings, instance_root):
        ctx = await _context(store, settings)
        composed = await PromptComposer(store).build(ctx)
        assert composed.text.startswith("Write a launch announcement")
        assert composed.template_path == instance_root / "prompt.txt"
        assert not composed.edit_mode

    @pytest.mark.asyncio
    async def test_inline_prompt_is_kept(self, store, settings, instance_root):
        ctx = await _context(store, settings)
        composed = await PromptComposer(store).build(ctx, prompt_text="Inline brief")
        assert composed.text.startswith("Inline brief")
        assert composed.template_path.parent == instance_root / "artifacts" / "tmp"
        assert composed.template_path.read_text() == "Inline brief"

    @pytest.mark.asyncio
    async def test_prompt_file_override(self, store, settings, instance_root):
        (instance_root / "alt.txt").write_text("Alt brief")
        ctx = await _context(store, settings)
        composed = await PromptComposer(store).build(ctx, prompt_file="alt.txt")
        assert composed.text.startswith("Alt brief")

    @pytest.mark.asyncio
    async def test_missing_template(self, store, settings, make_instance, instance_config):
        make_instance(config=instance_config, prompt=None)
        ctx = await _context(store, settings)
        with pytest.raises(PromptNotFound) as exc_info:
            await PromptComposer(store).build(ctx)
        assert exc_info.value.path == "prompt.txt"

    @pytest.mark.asyncio
    async def test_edit_mode_uses_canonical_artifact(self, store, settings, make_instance, instance_config):
        make_instance(config=instance_config, html="<p>current</p>")
        ctx = await _context(store, settings)
        composed = await PromptComposer(store).build(ctx, instructions="shorter")
        assert composed.edit_mode
        assert composed.base_artifact_path == ctx.artifact_path
        assert "<p>current</p>" in composed.text

    @pytest.mark.asyncio
    async def test_fresh_when_no_artifact_yet(self, store, settings, instance_root):
        ctx = await _context(store, settings)
        composed = await PromptComposer(store).build(ctx, instructions="shorter")
        assert not composed.edit_mode
        assert "- shorter" in composed.text
        assert EDIT_PREAMBLE not in composed.text

    @pytest.mark.asyncio
    async def test_explicit_base_artifact(self, store, settings, instance_root):
        (instance_root / "artifacts").mkdir(exist_ok=True)
        (instance_root / "artifacts" / "v1.html").write_text("<p>v1</p>")
        ctx = await _context(store, settings)
        composed = await PromptComposer(store).build(
            ctx, instructions="warmer", base_artifact="artifacts/v1.html",
        )
        assert composed.base_artifact_path == instance_root / "artifacts" / "v1.html"
        assert "<p>v1</p>" in composed.text

    @pytest.mark.asyncio
    async def test_missing_explicit_base_never_falls_back(self, store, settings, make_instance, instance_config):
        make_instance(config=instance_config, html="<p>current</p>")
        ctx = await _context(store, settings)
        with pytest.raises(BaseArtifactNotFound) as exc_info:
            await PromptComposer(store).build(
                ctx, instructions="warmer", base_artifact="artifacts/gone.html",
            )
        assert exc_info.value.path == "artifacts/gone.html"
