"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from weanime.adapters.rate_limit.base import RateLimitDecision


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    profile: str
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


class NotFoundAppError(AppError):
    """Raised when a named resource (e.g. a rate limit profile) does not exist."""


class ConflictAppError(AppError):
    """Raised when an operation does not apply to the target's current kind."""


class RateLimitExceededError(AppError):
    """Raised by the rate limit dependency when a request is denied.

    Carries the limiter decision so the exception handler can render the
    429 body and headers from it.
    """

    def __init__(self, decision: "RateLimitDecision", *, profile: str | None = None) -> None:
        self.decision = decision
        self.profile = profile
        super().__init__(
            code="rate_limit_exceeded",
            message="Too many requests. Please try again later.",
            details={"profile": profile} if profile else None,
        )
