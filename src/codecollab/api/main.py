"""
FastAPI application for the CodeCollab backend.

This module configures the FastAPI application, registers the code
execution endpoint and mounts the realtime room gateway.  Configuration
is read once from the environment at import time.
"""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..config import Config
from ..errors import UnsupportedLanguageError
from ..gateway import gateway as room_gateway, router as gateway_router
from ..models import ErrorResponse, ExecuteRequest, ExecuteResponse
from ..outcome import ExecutionOutcome, OutcomeKind
from ..runner import ExecutionRunner


logger = logging.getLogger("codecollab")

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[codecollab] %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


config = Config.from_env()

logger.setLevel(config.log_level)

logger.info(
    "Loaded config: scratch_dir=%s, timeout_ms=%s, max_output_bytes=%s, allowed_origins=%s",
    config.scratch_dir,
    config.execution_timeout_ms,
    config.max_output_bytes,
    config.allowed_origins,
)

runner = ExecutionRunner(
    config.scratch_dir,
    timeout_ms=config.execution_timeout_ms,
    max_output_bytes=config.max_output_bytes,
)

room_gateway.allowed_origins = list(config.allowed_origins)


app = FastAPI(title="CodeCollab Backend", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins or ["*"],
    allow_credentials=bool(config.allowed_origins),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every HTTP request together with its response status."""
    path = request.url.path
    method = request.method
    client = getattr(request.client, "host", "unknown")

    logger.info("Incoming request: %s %s from %s", method, path, client)
    response = await call_next(request)
    logger.info("Response: %s %s -> %s", method, path, response.status_code)
    return response


@app.exception_handler(RequestValidationError)
async def malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Malformed request body for %s: %s", request.url.path, exc.errors())
    return _error(400, "Malformed request body")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def outcome_response(outcome: ExecutionOutcome) -> JSONResponse:
    """Map a classified outcome onto the HTTP contract.

    Runtime errors keep the legacy shape: status 200 with the message in
    ``output`` prefixed by ``"Error: "``.
    """
    if outcome.kind is OutcomeKind.SUCCESS:
        return JSONResponse(status_code=200, content=ExecuteResponse(output=outcome.text).model_dump())
    if outcome.kind is OutcomeKind.RUNTIME_ERROR:
        output = f"Error: {outcome.text}"
        return JSONResponse(status_code=200, content=ExecuteResponse(output=output).model_dump())
    return _error(400, outcome.text)


@app.get("/")
async def root() -> Dict[str, str]:
    """Liveness check."""
    return {"status": "ok", "message": "CodeCollab backend is running"}


@app.get("/health")
async def health() -> Dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}


@app.post("/execute")
@app.post("/api/execute")
async def execute(req: ExecuteRequest) -> JSONResponse:
    """Run (or validate) a submission and return its classified result."""
    if not req.code or not req.language:
        return _error(400, "Code and language are required")

    try:
        outcome = await run_in_threadpool(runner.run, req.code, req.language)
    except UnsupportedLanguageError:
        logger.warning("[/execute] Unsupported language: %s", req.language)
        return _error(400, "Unsupported language")
    except Exception as exc:
        logger.exception("[/execute] Unhandled error during execution: %s", exc)
        return _error(500, str(exc) or "Execution error")

    return outcome_response(outcome)


app.include_router(gateway_router)
