# src/api/routes/review_mock.py — v1
"""Development stand-in for the review service (POST /api/hitl-agent).

Answers ``has-input`` on loop 0 and ``approve`` afterwards unless the
query string forces a decision. Disabled (404) unless
``review_mock_enabled`` is set.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

router = APIRouter(tags=["review-mock"])

DEFAULT_INPUT = "Please add a clear CTA button and a P.S. line."


def mock_decision(
    payload: dict[str, Any],
    decision: str | None = None,
    html: str | None = None,
    html_path: str | None = None,
) -> dict[str, Any]:
    """Decision the mock returns for ``payload`` (the engine's review request)."""
    try:
        loop = int(payload.get("loop") or 0)
    except (TypeError, ValueError):
        loop = 0
    status = decision or ("has-input" if loop < 1 else "approve")
    response: dict[str, Any] = {"status": status}
    if status == "has-input":
        if "input" in payload:
            response["inputText"] = payload["input"] or ""
        elif "inputText" in payload:
            response["inputText"] = payload["inputText"] or ""
        else:
            response["inputText"] = DEFAULT_INPUT
    if status == "approve":
        if html:
            response["html"] = html
        if html_path:
            response["htmlPath"] = html_path
    return response


@router.post("/api/hitl-agent")
async def hitl_agent(
    request: Request,
    decision: str | None = Query(default=None),
    status: str | None = Query(default=None),
    html: str | None = Query(default=None),
    html_path: str | None = Query(default=None, alias="htmlPath"),
):
    if not request.app.state.settings.review_mock_enabled:
        raise HTTPException(status_code=404, detail="hitl_mock_disabled")
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw.strip() else {}
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid_json")
    if not isinstance(payload, dict):
        payload = {}
    return mock_decision(payload, decision or status, html, html_path)
