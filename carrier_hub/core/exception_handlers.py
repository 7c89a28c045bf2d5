"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses map to an HTTP status by type (400, 403, 404, 409, 429, 502, 503, else 500)
- Unexpected Exception maps to a generic 500 (safety net)
- All responses include request_id for tracing
"""

import logging
import math

from fastapi import Request
from fastapi.responses import JSONResponse

from carrier_hub.core.errors import (
    AppError,
    AuthenticationAppError,
    CarrierUnavailableError,
    NotFoundAppError,
    QuotaExceededError,
    RegistrarRejected,
    RegistrarUnavailable,
    RegistrationConflictUnresolved,
    ValidationAppError,
)
from carrier_hub.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; first match wins. Unlisted AppErrors are server faults.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (RegistrationConflictUnresolved, 409),
    (QuotaExceededError, 429),
    (RegistrarRejected, 502),
    (RegistrarUnavailable, 503),
    (CarrierUnavailableError, 503),
)


def status_code_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error as ``{"error": {code, message, request_id, details?}}``.

    QuotaExceededError additionally carries a ``Retry-After`` header in
    whole seconds.
    """
    status_code = status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] | None = None
    if isinstance(exc, QuotaExceededError):
        headers = {"Retry-After": str(math.ceil(exc.retry_after_ms / 1000))}

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure and returns a generic message without internals.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
