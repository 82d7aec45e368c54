"""Centralized error handling for the API layer.

Domain exceptions are mapped to HTTP responses with one consistent body:
``{"error": {"code": ..., "message": ..., "details": ...}}``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...domain.exceptions import (
    ConfigurationError,
    DiscoveryError,
    QuoteNotFoundError,
    QuotePipelineError,
    StorageError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    """Standard error detail model."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: dict[str, Any] | None = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail = Field(..., description="Error information")


# Most specific class first; the first isinstance match wins
EXCEPTION_STATUS_MAP: list[tuple[type[QuotePipelineError], int]] = [
    (QuoteNotFoundError, status.HTTP_404_NOT_FOUND),
    (DiscoveryError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: QuotePipelineError) -> int:
    for exc_type, status_code in EXCEPTION_STATUS_MAP:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_error_response(
    code: str, message: str, status_code: int, details: dict[str, Any] | None = None
) -> JSONResponse:
    error_response = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or None)
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump())


async def domain_exception_handler(request: Request, exc: QuotePipelineError) -> JSONResponse:
    """Handle quote pipeline exceptions.

    Args:
        request: The request that caused the exception
        exc: The domain exception

    Returns:
        JSONResponse with appropriate status code and error details
    """
    status_code = status_for(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Domain exception on {request.method} {request.url.path}: "
        f"{exc.message} (code: {exc.error_code})"
    )
    # Statements are internal detail, never echoed to clients
    details = {k: v for k, v in exc.details.items() if k != "statement"}
    return create_error_response(exc.error_code, exc.message, status_code, details)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors, e.g. a non-integer ``limit``."""
    errors = exc.errors()
    logger.warning(f"Validation error on {request.method} {request.url.path}: {len(errors)} errors")

    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Invalid input data")
    details = {
        "field": field,
        "errors": [
            {
                "field": ".".join(str(loc) for loc in e.get("loc", [])),
                "message": e.get("msg", ""),
                "type": e.get("type", ""),
            }
            for e in errors
        ],
    }
    return create_error_response(
        "VALIDATION_ERROR",
        f"Validation failed for field '{field}': {msg}",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        details,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions with consistent format."""
    logger.info(
        f"HTTP exception on {request.method} {request.url.path}: {exc.status_code} - {exc.detail}"
    )
    return create_error_response(f"HTTP_{exc.status_code}", str(exc.detail), exc.status_code)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return create_error_response(
        "INTERNAL_ERROR",
        "An internal server error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(QuotePipelineError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
