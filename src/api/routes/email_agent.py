# src/api/routes/email_agent.py — v1
"""Email-agent routes: operations, resume callbacks, status and progress.

Endpoints:
    POST /api/email-agent/generate         generate (200 or 202)
    POST /api/email-agent/send             review + deliver (200 or 202)
    POST /api/email-agent/generate-send    generate, review, deliver (200 or 202)
    GET  /api/email-agent/wi_response      resume, query form
    POST /api/email-agent/resume           resume, JSON body form
    GET  /api/email-agent/status           state document
    GET  /api/email-agent/progress         latest progress entry
    GET  /api/email-agent/progress-all     full progress sequence
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from mailflow.api.models import (
    GenerateResponse,
    OperationBody,
    ResumeBody,
    ResumeResponse,
    SendResponse,
)
from mailflow.core.errors import AsyncRequiresInstance, InvalidInstanceId
from mailflow.core.models import Accepted, ResumeResult, SendResult
from mailflow.workflow.orchestrator import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/email-agent", tags=["email-agent"])

WAITING_STATUS = "waiting-for-human"


def get_engine(request: Request) -> WorkflowEngine:
    return request.app.state.engine


def _instance_id(body: OperationBody) -> str:
    if not body.instance_id:
        if body.run_async:
            raise AsyncRequiresInstance("async mode requires instance_id")
        raise InvalidInstanceId("instance_id is required", code="missing_instance_id")
    return body.instance_id


def _accepted(result: Accepted) -> JSONResponse:
    return JSONResponse(
        status_code=202,
        content=result.model_dump(),
        headers={"Location": result.links["status"]},
    )


def _send_response(result: SendResult) -> JSONResponse:
    if result.waiting:
        payload = SendResponse(status=WAITING_STATUS, html_path=result.html_path)
    else:
        payload = SendResponse(id=result.message_id, html_path=result.html_path)
    return JSONResponse(payload.model_dump(by_alias=True, exclude_none=True))


def _resume_response(result: ResumeResult) -> JSONResponse:
    status = WAITING_STATUS if result.status == "waiting" else result.status
    payload = ResumeResponse(
        decision=result.decision, status=status, id=result.message_id, html_path=result.html_path,
    )
    return JSONResponse(payload.model_dump(by_alias=True, exclude_none=True))


# --- Operations ---


@router.post("/generate")
async def generate(body: OperationBody, engine: WorkflowEngine = Depends(get_engine)):
    """Generate the instance artifact."""
    result = await engine.generate(body.to_request(_instance_id(body)))
    if isinstance(result, Accepted):
        return _accepted(result)
    payload = GenerateResponse(html_path=result.html_path, html=result.html)
    return JSONResponse(payload.model_dump(by_alias=True))


@router.post("/send")
async def send(body: OperationBody, engine: WorkflowEngine = Depends(get_engine)):
    """Run the review gate and deliver."""
    result = await engine.send(body.to_request(_instance_id(body)))
    if isinstance(result, Accepted):
        return _accepted(result)
    return _send_response(result)


@router.post("/generate-send")
async def generate_send(body: OperationBody, engine: WorkflowEngine = Depends(get_engine)):
    """Generate, review and deliver."""
    result = await engine.generate_send(body.to_request(_instance_id(body)))
    if isinstance(result, Accepted):
        return _accepted(result)
    return _send_response(result)


# --- Resume ---


@router.get("/wi_response")
async def wi_response(
    instance_id: str = Query(...),
    respond: str = Query(...),
    info: str | None = Query(default=None),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Resume a paused run (query-parameter callback)."""
    result = await engine.resume(instance_id, respond, info)
    return _resume_response(result)


@router.post("/resume")
async def resume(body: ResumeBody, engine: WorkflowEngine = Depends(get_engine)):
    """Resume a paused run (JSON callback)."""
    result = await engine.resume(body.instance_id, body.decision, body.information)
    return _resume_response(result)


# --- Inspection ---


@router.get("/status")
async def status(
    instance_id: str = Query(...), engine: WorkflowEngine = Depends(get_engine),
) -> dict[str, Any]:
    return await engine.status(instance_id)


@router.get("/progress")
async def progress(
    instance_id: str = Query(...), engine: WorkflowEngine = Depends(get_engine),
) -> dict[str, Any]:
    latest = await engine.progress(instance_id, latest=True)
    return {"instance_id": instance_id, "latest": list(latest) if latest else None}


@router.get("/progress-all")
async def progress_all(
    instance_id: str = Query(...), engine: WorkflowEngine = Depends(get_engine),
) -> dict[str, Any]:
    entries = await engine.progress(instance_id, latest=False)
    return {"instance_id": instance_id, "progress": [list(e) for e in entries or []]}
