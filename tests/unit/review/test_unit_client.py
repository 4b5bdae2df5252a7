# tests/unit/review/test_unit_client.py — v1
"""Tests for review/client.py — decision normalization and HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from mailflow.core.errors import ReviewServiceError
from mailflow.core.models import ReviewRequest
from mailflow.review.client import HttpReviewClient, normalize_decision

URL = "http://review.test/api/hitl-agent"


def _client(handler) -> HttpReviewClient:
    return HttpReviewClient(URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _request(**kwargs) -> ReviewRequest:
    return ReviewRequest(
        instance_id="acme-launch", html_path="artifacts/email.html", html="<p/>", **kwargs,
    )


class TestNormalizeDecision:
    def test_missing_status_is_no_gate(self):
        assert normalize_decision({}).status == "no-hitl"

    @pytest.mark.parametrize("raw", ["wait", "WAIT-FOR-HUMAN", "wait-for-response", "waiting", "active"])
    def test_wait_synonyms(self, raw):
        assert normalize_decision({"status": raw}).status == "wait"

    @pytest.mark.parametrize("key", ["status", "decision", "result"])
    def test_status_keys(self, key):
        assert normalize_decision({key: "Approve"}).status == "approve"

    def test_unknown_is_kept_not_coerced(self):
        decision = normalize_decision({"status": "Maybe"})
        assert decision.status == "unknown"
        assert decision.raw_status == "Maybe"

    @pytest.mark.parametrize("key", ["input", "inputText", "instructions", "note"])
    def test_instruction_keys(self, key):
        decision = normalize_decision({"status": "has-input", key: "  make it shorter "})
        assert decision.status == "has-input"
        assert decision.instructions == "make it shorter"

    def test_html_overrides(self):
        decision = normalize_decision({
            "status": "approve", "html_content": "<p>edited</p>", "htmlPath": "artifacts/x.html",
        })
        assert decision.html == "<p>edited</p>"
        assert decision.html_path == "artifacts/x.html"

    def test_has_input_without_text(self):
        assert normalize_decision({"status": "has-input"}).instructions == ""


class TestHttpReviewClient:
    @pytest.mark.asyncio
    async def test_posts_request_and_normalizes(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "has-input", "inputText": "Add CTA"})

        decision = await _client(handler).evaluate(_request(hitl={"enable": True}, loop=1))
        assert seen["method"] == "POST"
        assert seen["body"]["instance_id"] == "acme-launch"
        assert seen["body"]["hitl"] == {"enable": True}
        assert seen["body"]["loop"] == 1
        assert decision.status == "has-input"
        assert decision.instructions == "Add CTA"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = _client(lambda request: httpx.Response(503, text="down"))
        with pytest.raises(ReviewServiceError) as exc_info:
            await client.evaluate(_request())
        assert exc_info.value.code == "hitl_http_503"
        assert exc_info.value.last_error == "hitl_http_503"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ReviewServiceError) as exc_info:
            await _client(handler).evaluate(_request())
        assert exc_info.value.code == "hitl_request_failed"
        assert exc_info.value.last_error.startswith("hitl_request_failed: ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [b"not json", b"[1, 2]"])
    async def test_malformed_body(self, content):
        client = _client(lambda request: httpx.Response(200, content=content))
        with pytest.raises(ReviewServiceError) as exc_info:
            await client.evaluate(_request())
        assert exc_info.value.code == "hitl_malformed_response"
