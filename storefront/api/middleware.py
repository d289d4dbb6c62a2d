"""Request context and error mapping for the storefront API.

Every response carries an ``X-Request-ID`` header, and every error uses
one body shape::

    {"error_code": "NOT_FOUND", "message": "...", "details": {...},
     "request_id": "..."}
"""

import time
from typing import Any, Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.domain.exceptions import DomainError

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_HEADER = "X-Actor-ID"

STATUS_BY_KIND = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "asset_provider_error": status.HTTP_502_BAD_GATEWAY,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


# ============================================================================
# Request Context
# ============================================================================


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request ID and actor into the log context for one request.

    The request ID is taken from the incoming header or generated, kept
    on ``request.state`` for error bodies and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            actor=request.headers.get(ACTOR_HEADER),
        )

        started = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            log = logger.warning if status_code >= 500 else logger.info
            log(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id", "actor")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# ============================================================================
# Error Bodies
# ============================================================================


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the shared error body for a response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details or {},
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    """Map a domain error to its status code by ``kind``."""
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    log = logger.error if status_code >= 500 else logger.info
    log("Domain error", kind=exc.kind, message=exc.message, path=request.url.path)
    return error_response(request, status_code, exc.kind.upper(), exc.message, exc.details)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed query, path or body input as a validation error."""
    errors = [
        {
            # loc starts with "query", "path" or "body"
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or None,
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed",
        {"errors": errors},
    )


async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap routing errors (unknown path, wrong method) in the error body."""
    return error_response(
        request,
        exc.status_code,
        "ERROR",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal error occurred",
    )


# ============================================================================
# Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Install the request context middleware and every error handler.

    Args:
        app: FastAPI application instance.
    """
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(HTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
