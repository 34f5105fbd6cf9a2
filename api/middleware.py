"""
HTTP middleware and structured logging for the leg search API.

Every request gets an ID (X-Request-ID) that is echoed on the response,
stamped on each JSON log line and returned in error bodies.
"""
import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from api.schemas.common import ErrorResponse

REQUEST_ID_HEADER = "X-Request-ID"

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


class StructuredLogger:
    """
    Emits one JSON object per log line.

    Keyword arguments become fields; None values are dropped.
    """

    def __init__(self, name: str, service: str = "sailsmart-legsearch"):
        self.logger = logging.getLogger(name)
        self.service = service

    def _emit(self, level: int, message: str, fields: Dict[str, Any]):
        if not self.logger.isEnabledFor(level):
            return
        entry = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "level": logging.getLevelName(level),
            "service": self.service,
            "request_id": get_request_id(),
            "message": message,
        }
        entry.update(fields)
        self.logger.log(level, json.dumps({k: v for k, v in entry.items() if v is not None}, default=str))

    def debug(self, message: str, **fields):
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields):
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields):
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields):
        self._emit(logging.ERROR, message, fields)

    def search(self, kind: str, result_count: int, **criteria):
        """One line per completed leg search, with the criteria that were set."""
        self._emit(
            logging.INFO,
            "Leg search completed",
            {"search": kind, "result_count": result_count, **{k: v for k, v in criteria.items() if v}},
        )


structured_logger = StructuredLogger("sailsmart")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        token = request_id_ctx.set(request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = get_request_id()
            return response
        finally:
            request_id_ctx.reset(token)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Access log for API calls. Health probes are too chatty to log."""

    QUIET_PREFIXES = ("/api/health",)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path.startswith(self.QUIET_PREFIXES):
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)

        structured_logger.info(
            f"{request.method} {path} -> {response.status_code}",
            query=str(request.query_params) or None,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            client=request.client.host if request.client else None,
        )
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Last line of defence: any exception that escaped the route handlers
    becomes a 500 carrying only the request ID, unless debug is on.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            structured_logger.error(
                "Unhandled exception",
                error=str(e),
                error_type=type(e).__name__,
                method=request.method,
                path=request.url.path,
            )
            body = ErrorResponse(
                error="Internal Server Error",
                detail=str(e) if self.debug else "Something went wrong while searching. Quote the request ID if you report it.",
                request_id=get_request_id(),
            )
            return JSONResponse(status_code=500, content=body.model_dump())


def setup_middleware(app: FastAPI, debug: bool = False):
    # Added innermost first: the request ID must exist before logging or error handling run
    app.add_middleware(UnhandledErrorMiddleware, debug=debug)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIdMiddleware)
