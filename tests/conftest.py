# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings rooted in a temp agent folder, a ready instance, a mock
LLM client, a recording transport and a scripted review client. No
network access; every collaborator is faked.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from mailflow.config.settings import Settings
from mailflow.core.models import Decision, Envelope, ReviewRequest
from mailflow.delivery.base_transport import BaseTransport
from mailflow.llm.backend import GenerationBackend
from mailflow.llm.models import LLMResponse
from mailflow.review.client import BaseReviewClient
from mailflow.storage.instance_store import InstanceStore
from mailflow.workflow.orchestrator import WorkflowEngine

INSTANCE_ID = "acme-launch"

SAMPLE_HTML = "<html><body><h1>Spring launch</h1><p>Hello!</p></body></html>"


# === FAKE COLLABORATORS ===


class RecordingTransport(BaseTransport):
    """Records envelopes and returns ``msg-1``, ``msg-2``..."""

    def __init__(self) -> None:
        self.sent: list[Envelope] = []
        self.error: Exception | None = None

    @property
    def name(self) -> str:
        return "recording"

    async def deliver(self, envelope: Envelope) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append(envelope)
        return f"msg-{len(self.sent)}"


class ScriptedReviewClient(BaseReviewClient):
    """Answers from ``script`` in order; the last entry repeats.

    Entries are ``Decision`` objects or exceptions to raise.
    """

    def __init__(self, script: list[Decision | Exception] | None = None) -> None:
        self.script: list[Decision | Exception] = script or [Decision(status="approve")]
        self.requests: list[ReviewRequest] = []

    async def evaluate(self, request: ReviewRequest) -> Decision:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self.script) - 1)
        answer = self.script[index]
        if isinstance(answer, Exception):
            raise answer
        return answer


# === FIXTURES: Settings and instances ===


@pytest.fixture
def agent_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "instances"
    folder.mkdir()
    return folder


@pytest.fixture
def settings(agent_folder: Path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        agent_folder=agent_folder,
        llm_provider="ollama",
        llm_model="llama3.1",
        delivery_transport="console",
        review_max_loops=3,
    )


@pytest.fixture
def instance_config() -> dict[str, Any]:
    """config.json of the default instance (review gate enabled)."""
    return {
        "instance_id": INSTANCE_ID,
        "sender_name": "Acme News",
        "sender_email": "news@acme.test",
        "email_subject": "Our spring launch",
        "to": ["ana@example.test"],
        "cc": "ben@example.test, cho@example.test",
        "bcc": [],
        "review": {"enable": True, "reviewer": "marketing"},
    }


@pytest.fixture
def make_instance(agent_folder: Path) -> Callable[..., Path]:
    """Factory writing an instance folder with config.json and prompt.txt."""

    def _make(
        instance_id: str = INSTANCE_ID,
        config: dict[str, Any] | None = None,
        prompt: str | None = "Write a launch announcement for our spring collection.",
        html: str | None = None,
    ) -> Path:
        root = agent_folder / instance_id
        root.mkdir(parents=True, exist_ok=True)
        if config is not None:
            (root / "config.json").write_text(json.dumps(config), encoding="utf-8")
        if prompt is not None:
            (root / "prompt.txt").write_text(prompt, encoding="utf-8")
        if html is not None:
            (root / "artifacts").mkdir(exist_ok=True)
            (root / "artifacts" / "email.html").write_text(html, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def instance_root(make_instance: Callable[..., Path], instance_config: dict[str, Any]) -> Path:
    """Default instance with config and prompt, no artifact yet."""
    return make_instance(config=instance_config)


@pytest.fixture
def store(agent_folder: Path) -> InstanceStore:
    return InstanceStore(agent_folder)


# === FIXTURES: Collaborators ===


@pytest.fixture
def mock_llm_response() -> LLMResponse:
    """Standard mock LLM response: prose around a fenced HTML block."""
    return LLMResponse(
        content=f"Here is your email:\n```html\n{SAMPLE_HTML}\n```\nEnjoy!",
        input_tokens=120,
        output_tokens=80,
        model="llama3.1",
        provider="ollama",
        latency_ms=250,
    )


@pytest.fixture
def mock_llm_client(mock_llm_response: LLMResponse) -> AsyncMock:
    """Mock BaseLLMClient with default response."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=mock_llm_response)
    client.provider_name = "mock"
    return client


@pytest.fixture
def backend(settings: Settings, mock_llm_client: AsyncMock) -> GenerationBackend:
    return GenerationBackend(settings, client_factory=lambda config, s: mock_llm_client)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def review_client() -> ScriptedReviewClient:
    return ScriptedReviewClient()


@pytest.fixture
def engine(
    settings: Settings,
    store: InstanceStore,
    backend: GenerationBackend,
    review_client: ScriptedReviewClient,
    transport: RecordingTransport,
) -> WorkflowEngine:
    return WorkflowEngine(
        settings,
        store=store,
        backend=backend,
        review_client=review_client,
        transport=transport,
    )


@pytest.fixture
def read_state() -> Callable[[Path], dict[str, Any]]:
    """Parsed meta.json of an instance root."""

    def _read(root: Path) -> dict[str, Any]:
        return json.loads((root / "meta.json").read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def progress_messages(read_state: Callable[[Path], dict[str, Any]]) -> Callable[[Path], list[str]]:
    """Progress messages of an instance, oldest first."""

    def _messages(root: Path) -> list[str]:
        return [message for _, message in read_state(root)["progress"]]

    return _messages
