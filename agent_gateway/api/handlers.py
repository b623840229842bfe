"""
=============================================================================
Error Translation
=============================================================================

The only place an error becomes an HTTP body. Every error response is
JSON shaped like:

    {"error": "...", "status": 400, "timestamp": "...", "details": {...}}

`status` always mirrors the HTTP status code.
=============================================================================
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from agent_gateway.api.schemas import ErrorResponse
from agent_gateway.errors import (
    ApiError,
    MethodNotAllowedError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

QUERY_ERROR_MESSAGE = "Missing or invalid query parameter"


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def error_response(error: ApiError, headers: dict[str, str] | None = None) -> JSONResponse:
    """Serialize an ApiError into its JSON response."""
    body = ErrorResponse(
        error=error.message,
        status=error.status_code,
        timestamp=utc_timestamp(),
        details=error.details,
    )
    response_headers = dict(CORS_HEADERS)
    if isinstance(error, RateLimitedError):
        response_headers["Retry-After"] = str(error.retry_after)
    if headers:
        response_headers.update(headers)

    return JSONResponse(
        status_code=error.status_code,
        content=body.model_dump(exclude_none=True),
        headers=response_headers,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc!r} {exc.details}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return error_response(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path, wrong method) raised by Starlette."""
    if exc.status_code == 404:
        error: ApiError = NotFoundError()
    elif exc.status_code == 405:
        error = MethodNotAllowedError()
    else:
        error = ApiError(str(exc.detail), status_code=exc.status_code)
    return error_response(error, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body validation failures become 400s."""
    errors = [
        {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]

    if any("query" in e["loc"] for e in errors):
        message = QUERY_ERROR_MESSAGE
    elif any(e["type"] == "json_invalid" for e in errors):
        message = "Invalid JSON body"
    else:
        message = "Invalid request body"

    return await api_error_handler(request, ValidationError(message, details={"errors": errors}))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
