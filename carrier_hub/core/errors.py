"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what is relevant.
    """

    code: str
    message: str
    hint: str
    provider: str
    address_hash: str
    retry_after_ms: int
    http_status: int
    max_requests: int
    window_ms: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class ConfigurationInvalid(ValidationAppError):
    """Raised when a quota configuration has non-positive values."""


class NormalizationFailed(ValidationAppError):
    """Raised when an address cannot be turned into canonical text."""


class QuotaExceededError(AppError):
    """Raised at the carrier client boundary when a call is denied locally.

    The limiter itself never raises; this wraps its denial so the HTTP layer
    can answer 429 with a Retry-After hint.
    """

    @property
    def retry_after_ms(self) -> int:
        return int((self.details or {}).get("retry_after_ms", 0))


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""


class RegistrarUnavailable(AppError):
    """Transient failure talking to a carrier address book. Safe to retry."""


class RegistrarRejected(AppError):
    """The carrier address book refused the request (4xx other than 409).

    Bad credentials or an address the carrier will not accept; retrying the
    same request does not help.
    """


class RegistrationConflictUnresolved(AppError):
    """The carrier reports the address as owned elsewhere and gave no id back.

    Not retryable until reconciled manually.
    """


class CarrierUnavailableError(AppError):
    """Transport-level failure calling a carrier API."""
