# src/core/errors.py — v2
"""Workflow error taxonomy.

Every failure the engine reports carries a stable ``code``. The code is what
lands in the state document's ``last_error`` and what the REST binding
returns, so callers can branch on it without parsing messages.
"""

from __future__ import annotations

from typing import Literal


class WorkflowError(Exception):
    """Base class for all engine failures."""

    code: str = "workflow_error"
    category: Literal["validation", "collaborator", "decision", "protocol", "store"] = (
        "validation"
    )

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message or self.code
        super().__init__(self.message)

    @property
    def last_error(self) -> str:
        """Value recorded as ``last_error`` when this error aborts a run."""
        return self.code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


# === VALIDATION ===


class ConfigMismatch(WorkflowError):
    """The config declares an instance_id that disagrees with its folder."""

    code = "instance_id_mismatch"

    def __init__(self, declared: str, folder: str) -> None:
        self.declared = declared
        self.folder = folder
        super().__init__(
            f"instance_id mismatch: config has '{declared}', folder is '{folder}'"
        )


class InvalidInstanceId(WorkflowError):
    code = "invalid_instance_id"


class InstanceNotFound(WorkflowError):
    code = "instance_not_found"


class InvalidInstanceConfig(WorkflowError):
    code = "invalid_instance_config"


class MissingReviewConfig(WorkflowError):
    code = "missing_hitl_config_section"


class NoRecipientsConfigured(WorkflowError):
    code = "no_recipients_configured"


class BaseArtifactNotFound(WorkflowError):
    """A specific base artifact was requested for editing but is missing."""

    code = "base_html_not_found"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"base artifact not found: {path}")

    @property
    def last_error(self) -> str:
        return f"{self.code} ({self.path})"

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message, "path": self.path}


class PromptNotFound(WorkflowError):
    """No prompt template at the resolved location."""

    code = "prompt_not_found"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"prompt template not found: {path}")


class ArtifactNotFound(WorkflowError):
    code = "artifact_not_found"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"artifact not found: {path}")


class InvalidArtifactPath(WorkflowError):
    """A request or reviewer named a file outside the instance folder."""

    code = "invalid_artifact_path"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"path escapes instance folder: {path}")

    @property
    def last_error(self) -> str:
        return f"{self.code} ({self.path})"


class MissingInformation(WorkflowError):
    """A modify decision arrived without revision text."""

    code = "missing_info"


class UnsupportedDecision(WorkflowError):
    code = "respond_not_implemented"


class RunNotPaused(WorkflowError):
    """Resume was addressed to a run that is not waiting for a decision."""

    code = "run_not_paused"


class AsyncRequiresInstance(WorkflowError):
    code = "async_requires_instance_id"


# === COLLABORATORS ===


class GenerationFailed(WorkflowError):
    """The generation backend failed.

    ``reason`` separates transport failures (backend unreachable, non-2xx)
    from content failures (empty or unusable response).
    """

    category = "collaborator"

    def __init__(self, reason: Literal["transport", "empty"], detail: str = "") -> None:
        self.reason = reason
        code = "generation_transport_error" if reason == "transport" else "generation_empty_response"
        super().__init__(f"{code}: {detail}" if detail else code, code=code)


class DeliveryFailed(WorkflowError):
    code = "delivery_failed"
    category = "collaborator"

    @property
    def last_error(self) -> str:
        return self.message


class ReviewServiceError(WorkflowError):
    """The review service could not be reached or answered garbage."""

    code = "hitl_request_failed"
    category = "collaborator"

    @property
    def last_error(self) -> str:
        return self.message


# === DECISIONS / PROTOCOL ===


class ReviewRejected(WorkflowError):
    code = "hitl_rejected"
    category = "decision"


class UnknownReviewStatus(WorkflowError):
    code = "hitl_unknown_status"
    category = "protocol"

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"unknown review status: {status!r}")

    @property
    def last_error(self) -> str:
        return f"{self.code}:{self.status}"


# === STORE ===


class StateDocumentError(WorkflowError):
    code = "state_document_error"
    category = "store"
