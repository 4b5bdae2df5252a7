# src/review/client.py — v1
"""Review-service client and decision normalization.

The review service answers a loosely-typed JSON object; ``normalize_decision``
turns it into a closed ``Decision`` at this boundary so nothing downstream
ever inspects raw payloads.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from mailflow.core.errors import ReviewServiceError
from mailflow.core.models import Decision, ReviewRequest

logger = logging.getLogger(__name__)

WAIT_SYNONYMS = frozenset({"wait", "wait-for-human", "wait-for-response", "waiting", "active"})
_KNOWN_STATUSES = frozenset({"no-hitl", "approve", "reject", "has-input"})


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_decision(data: dict[str, Any]) -> Decision:
    """Map a raw review payload onto the canonical decision vocabulary.

    A missing status means the service has no gate for this instance
    (``no-hitl``). Unrecognized values are kept as ``unknown`` with the raw
    value attached; they are never coerced.
    """
    raw = _first(data, "status", "decision", "result")
    raw_status = str(raw).strip() if raw is not None else None
    value = (raw_status or "no-hitl").lower()

    if value in WAIT_SYNONYMS:
        status = "wait"
    elif value in _KNOWN_STATUSES:
        status = value
    else:
        status = "unknown"

    instructions = _first(data, "input", "inputText", "instructions", "note")
    html = _first(data, "html", "html_content")
    html_path = _first(data, "htmlPath", "html_path")
    return Decision(
        status=status,
        instructions=str(instructions).strip() if instructions is not None else "",
        html=str(html) if html is not None else None,
        html_path=str(html_path) if html_path is not None else None,
        raw_status=raw_status,
    )


class BaseReviewClient(ABC):
    """Human-review collaborator."""

    @abstractmethod
    async def evaluate(self, request: ReviewRequest) -> Decision:
        """Return the reviewer's decision for one evaluation.

        Raises:
            ReviewServiceError: The service could not produce a decision.
        """


class HttpReviewClient(BaseReviewClient):
    """POSTs the review request as JSON and normalizes the answer."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    async def evaluate(self, request: ReviewRequest) -> Decision:
        payload = request.model_dump(mode="json")
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Review request for %s failed: %s", request.instance_id, e)
            raise ReviewServiceError(f"hitl_request_failed: {e}") from e

        if not response.is_success:
            code = f"hitl_http_{response.status_code}"
            logger.warning("Review service answered %s for %s", code, request.instance_id)
            raise ReviewServiceError(code, code=code)

        try:
            data = response.json()
        except ValueError as e:
            raise ReviewServiceError(
                "hitl_malformed_response", code="hitl_malformed_response"
            ) from e
        if not isinstance(data, dict):
            raise ReviewServiceError("hitl_malformed_response", code="hitl_malformed_response")

        decision = normalize_decision(data)
        logger.debug(
            "Review decision for %s (loop %d): %s", request.instance_id, request.loop, decision.status,
        )
        return decision
