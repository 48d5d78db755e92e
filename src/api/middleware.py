"""HTTP middleware: CORS, per-request logging context, domain error mapping.

# ─── MIDDLEWARE STACK ─────────────────────────────────────────────────
#
# Starlette runs middleware LIFO (last added wraps everything added before).
# main.py adds, in order:
#
#     ErrorHandlingMiddleware      innermost, next to the routes
#     RequestLoggingMiddleware     sees the final status code
#     CORSMiddleware               outermost, answers preflight requests
#
# RequestLoggingMiddleware binds a ``request_id`` into structlog's
# contextvars; every event logged while the request runs carries it, as do
# ingestion jobs started by an upload request.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    EmbeddingError,
    InvalidStateError,
    LLMError,
    LocalRagError,
    NotFoundError,
    ProjectBusyError,
    ValidationError,
)
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Upstream model failures are gateway errors; anything unmapped is a 500.
_STATUS_BY_ERROR: dict[type[LocalRagError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
    ProjectBusyError: 400,
    InvalidStateError: 400,
    EmbeddingError: 502,
    LLMError: 502,
}


def status_for_error(exc: LocalRagError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Allow the chat UI, served from another origin, to call the API.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Origins to allow; ``["*"]`` when omitted.  Credentials are only
        allowed with an explicit origin list.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id and log one ``http_request`` event per request."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        start = time.perf_counter()
        status_code = 500

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                _logger.info(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    status=status_code,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn a ``LocalRagError`` that escaped a route into an ``ErrorResponse``.

    Routes convert the errors they expect into ``HTTPException`` themselves;
    what reaches this layer is mostly model-service failure during a query.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except LocalRagError as exc:
            status_code = status_for_error(exc)
            log = _logger.error if status_code >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=request.url.path,
                status=status_code,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
