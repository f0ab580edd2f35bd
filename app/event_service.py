from __future__ import annotations

import logging
import os
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from ops.structured_logger import setup_logging
from triggers.firestore_event import InvalidEventError
from utils.request_context import clear_event_id, clear_request_id, set_request_id

from app.routers.events import router as events_router
from app.routers.health import router as health_router
from app.routers.tasks import router as tasks_router

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="FoodShare Events", version="1.0.0")
log = logging.getLogger("foodshare.api")


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    set_request_id(rid)
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
        clear_event_id()
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    rid = _get_request_id(request)
    log.warning(
        "http_exception",
        extra={
            "extra": {
                "event": "http_exception",
                "status_code": exc.status_code,
                "detail": exc.detail,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = _get_request_id(request)
    log.warning(
        "validation_error",
        extra={
            "extra": {
                "event": "validation_error",
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(), "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


@app.exception_handler(InvalidEventError)
async def invalid_event_handler(request: Request, exc: InvalidEventError):
    # Acknowledge with 200: redelivering an undecodable event cannot succeed.
    rid = _get_request_id(request)
    log.error(
        "invalid_event",
        extra={
            "extra": {
                "event": "invalid_event",
                "message": str(exc),
                "path": request.url.path,
                "ce_id": request.headers.get("ce-id") or "",
                "request_id": rid,
            }
        },
    )
    return JSONResponse(
        status_code=200,
        content={"ok": False, "skipped": True, "reason": "invalid_event", "detail": str(exc), "request_id": rid},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _get_request_id(request)
    log.error(
        "internal_unhandled_exception",
        extra={
            "extra": {
                "event": "internal_unhandled_exception",
                "error_type": type(exc).__name__,
                "message": str(exc),
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_unhandled_exception", "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


app.include_router(health_router, tags=["health"])
app.include_router(events_router, prefix="/events", tags=["events"])
app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
