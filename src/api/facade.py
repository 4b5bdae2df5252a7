# src/api/facade.py — v2
"""Public API facade: build an engine and run operations in-process.

Usage:
    from mailflow.api.facade import generate_send
    result = await generate_send("acme-launch")
"""

from __future__ import annotations

import logging
from typing import Any

from mailflow.config.settings import Settings, load_settings
from mailflow.core.models import Accepted, GenerateResult, ResumeResult, RunRequest, SendResult
from mailflow.storage.instance_store import InstanceStore
from mailflow.workflow.orchestrator import WorkflowEngine

logger = logging.getLogger(__name__)


def build_engine(settings: Settings | None = None) -> WorkflowEngine:
    """Engine wired with the collaborators named by ``settings``."""
    settings = settings or load_settings()
    store = InstanceStore(settings.agent_folder)
    logger.debug(
        "Building engine: agent_folder=%s provider=%s transport=%s review=%s",
        settings.agent_folder, settings.llm_provider, settings.delivery_transport,
        settings.review_url,
    )
    return WorkflowEngine(settings, store=store)


async def generate(
    instance_id: str, settings: Settings | None = None, **overrides: Any,
) -> GenerateResult | Accepted:
    engine = build_engine(settings)
    return await engine.generate(RunRequest(instance_id=instance_id, **overrides))


async def send(
    instance_id: str, settings: Settings | None = None, **overrides: Any,
) -> SendResult | Accepted:
    engine = build_engine(settings)
    return await engine.send(RunRequest(instance_id=instance_id, **overrides))


async def generate_send(
    instance_id: str, settings: Settings | None = None, **overrides: Any,
) -> SendResult | Accepted:
    engine = build_engine(settings)
    return await engine.generate_send(RunRequest(instance_id=instance_id, **overrides))


async def resume(
    instance_id: str,
    decision: str,
    information: str | None = None,
    settings: Settings | None = None,
) -> ResumeResult:
    engine = build_engine(settings)
    return await engine.resume(instance_id, decision, information)
