# src/api/app.py — v1
"""FastAPI application exposing the workflow engine.

Usage:
    from mailflow.api.app import create_app
    app = create_app(settings)

Workflow errors are rendered as ``{"error": code, "message": ...}``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mailflow.api.facade import build_engine
from mailflow.api.routes import email_agent, review_mock
from mailflow.config.settings import Settings
from mailflow.core.errors import (
    InstanceNotFound,
    RunNotPaused,
    StateDocumentError,
    UnsupportedDecision,
    WorkflowError,
)
from mailflow.version import __version__
from mailflow.workflow.orchestrator import WorkflowEngine

logger = logging.getLogger(__name__)


def status_code_for(exc: WorkflowError) -> int:
    if isinstance(exc, (InstanceNotFound, StateDocumentError)):
        return 404
    if isinstance(exc, RunNotPaused):
        return 409
    if isinstance(exc, UnsupportedDecision):
        return 501
    if exc.category == "collaborator":
        return 502
    return 400


def create_app(settings: Settings, engine: WorkflowEngine | None = None) -> FastAPI:
    """Build the application around ``engine`` (built from settings if omitted)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("mailflow API ready (agent folder: %s)", settings.agent_folder)
        yield
        # Let accepted background runs reach a terminal state.
        await app.state.engine.wait_idle()
        logger.info("Shutting down mailflow API")

    app = FastAPI(
        title="mailflow",
        description="Instance workflow engine: generate, review and deliver HTML email.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        code = status_code_for(exc)
        if code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "message": str(exc.errors())},
        )

    app.include_router(email_agent.router)
    app.include_router(review_mock.router)

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app
