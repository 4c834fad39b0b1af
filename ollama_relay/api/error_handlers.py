"""Error handlers for FastAPI exception handling.

Every error response uses the body Ollama clients understand:

    {"error": "Human-readable message", "code": "ERROR_CODE"}

Status mapping:
    MalformedRequestError / RequestValidationError   400
    ModelNotResolvedError                            404
    UpstreamUnavailableError                         500 (upstream text verbatim)
    other RelayError / unexpected exceptions         500

Errors that happen after a streaming response has started never reach these
handlers; the stream translator reports them in-band.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ollama_relay.core.exceptions import (
    ErrorCode,
    MalformedRequestError,
    ModelNotResolvedError,
    RelayError,
    UpstreamError,
)
from ollama_relay.core.logging import get_logger
from ollama_relay.models.responses import ErrorResponse


logger = get_logger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON payload"


# =============================================================================
# Status Code Mapping
# =============================================================================


def get_status_code_for_error(error: Exception) -> int:
    """Determine HTTP status code based on exception type."""
    if isinstance(error, MalformedRequestError):
        return 400
    if isinstance(error, ModelNotResolvedError):
        return 404
    return 500


def build_error_response(error: Exception) -> ErrorResponse:
    """Build a standardized error body from an exception."""
    code = getattr(error, "error_code", ErrorCode.RELAY_ERROR.value)
    message = getattr(error, "message", None) or str(error)
    return ErrorResponse(error=message, code=code)


def describe_validation_error(exc: RequestValidationError) -> str:
    """Summarize pydantic validation errors into one line.

    Unparsable bodies get the fixed "Invalid JSON payload" message.
    """
    errors: list[dict[str, Any]] = list(exc.errors())
    if not errors or any(err.get("type") == "json_invalid" for err in errors):
        return INVALID_JSON_MESSAGE

    parts = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return f"{INVALID_JSON_MESSAGE}: " + "; ".join(parts)


# =============================================================================
# Exception Handlers
# =============================================================================


async def relay_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle RelayError and subclasses."""
    status_code = get_status_code_for_error(exc)
    response = build_error_response(exc)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "Request failed",
        path=request.url.path,
        status_code=status_code,
        code=response.code,
        operation=getattr(exc, "operation", None),
        error=response.error,
    )

    return JSONResponse(status_code=status_code, content=response.to_wire())


async def upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle UpstreamError, surfacing the upstream's own status when known."""
    response = build_error_response(exc)
    upstream_status = exc.status_code if isinstance(exc, UpstreamError) else None

    logger.error(
        "Upstream request failed",
        path=request.url.path,
        operation=getattr(exc, "operation", None),
        upstream_status=upstream_status,
        error=response.error,
    )

    return JSONResponse(status_code=500, content=response.to_wire())


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map FastAPI body validation failures to 400 MALFORMED_REQUEST."""
    message = (
        describe_validation_error(exc)
        if isinstance(exc, RequestValidationError)
        else INVALID_JSON_MESSAGE
    )
    logger.warning("Malformed request", path=request.url.path, error=message)

    response = ErrorResponse(error=message, code=ErrorCode.MALFORMED_REQUEST.value)
    return JSONResponse(status_code=400, content=response.to_wire())


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render Starlette HTTP exceptions (404 route, 405, 503) in the error shape."""
    status_code = getattr(exc, "status_code", 500)
    detail = getattr(exc, "detail", None) or str(exc)
    response = ErrorResponse(error=str(detail))
    headers = getattr(exc, "headers", None)
    return JSONResponse(status_code=status_code, content=response.to_wire(), headers=headers)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled error",
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    response = ErrorResponse(
        error=f"Internal server error: {exc!s}",
        code=ErrorCode.RELAY_ERROR.value,
    )
    return JSONResponse(status_code=500, content=response.to_wire())


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(RelayError, relay_error_handler)

    app.add_exception_handler(Exception, generic_error_handler)
