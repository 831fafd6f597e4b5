"""CORS and per-request correlation id / access log middleware."""

import logging
import re
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from civicdesk.core.config import settings

logger = logging.getLogger("civicdesk.http")

REQUEST_ID_HEADER = "X-Request-Id"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

# Paths that get no access log line
QUIET_PATHS = frozenset({"/api/health"})


def resolve_request_id(inbound) -> str:
    """Reuse a well-formed inbound id (e.g. from a reverse proxy), else mint one."""
    if inbound and _VALID_REQUEST_ID.match(inbound):
        return inbound
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a correlation id to ``request.state`` and the response, and log the outcome."""

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("[%s] %s %s failed", request_id, request.method, request.url.path)
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"

        if request.url.path not in QUIET_PATHS:
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                "[%s] %s %s -> %d (%.1fms)",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
        return response


def setup_middleware(app: FastAPI) -> None:
    """CORS for the configured front-end origins, then request context."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "Content-Disposition"],
    )
    app.add_middleware(RequestContextMiddleware)
