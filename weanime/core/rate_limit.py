"""Rate limiting for the HTTP layer.

This module wires the rate limiting adapters into FastAPI in two forms:

- ``with_rate_limit(handler, limiter)`` wraps a ``request -> response``
  handler. Denied requests short-circuit with a 429; allowed ones get
  ``X-RateLimit-*`` headers on the handler's response.
- ``enforce_rate_limit(profile)`` builds a route dependency with the same
  semantics for routes whose signatures take more than the raw request.

Limiters are not module globals: they are built at startup, stored on
``app.state.rate_limiters`` and looked up per request.

Policy:
- Quota is consumed before the handler runs and is not refunded when the
  handler raises; the exception propagates unchanged.
- Requests without any forwarded-IP header share the ``"unknown"`` bucket.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from weanime.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from weanime.adapters.rate_limit.profiles import RateLimiters
from weanime.core.config import settings
from weanime.core.errors import NotFoundAppError, RateLimitExceededError

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR = "Rate limit exceeded"
RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."

Handler = Callable[[Request], Union[Response, Awaitable[Response]]]
LimiterRef = Union[AbstractRateLimiter, str]


def get_rate_limiters(request: Request) -> RateLimiters:
    """FastAPI dependency returning the limiters built at startup."""
    return request.app.state.rate_limiters


def resolve_limiter(request: Request, limiter: LimiterRef) -> AbstractRateLimiter:
    """Return ``limiter`` itself, or the app's limiter for a profile name.

    Raises:
        NotFoundAppError: If no profile has that name.
    """
    if not isinstance(limiter, str):
        return limiter

    resolved = get_rate_limiters(request).get(limiter)
    if resolved is None:
        raise NotFoundAppError(
            code="rate_limit_profile_not_found",
            message=f"Unknown rate limit profile: {limiter}",
            details={"profile": limiter},
        )
    return resolved


def apply_rate_limit_headers(response: Response, decision: RateLimitDecision) -> None:
    """Attach limit/remaining/reset headers to an outgoing response."""
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = decision.reset_at_iso


def build_rate_limit_response(decision: RateLimitDecision) -> JSONResponse:
    """Render a denial as the 429 response clients expect.

    ``retryAfter`` in the body is in milliseconds; the ``Retry-After``
    header is in whole seconds, rounded up.
    """
    response = JSONResponse(
        status_code=429,
        content={
            "error": RATE_LIMIT_ERROR,
            "message": RATE_LIMIT_MESSAGE,
            "retryAfter": decision.retry_after_ms,
        },
    )
    if settings.rate_limit.include_headers:
        apply_rate_limit_headers(response, decision)
    response.headers["Retry-After"] = str(decision.retry_after_seconds)
    return response


async def _call_handler(handler: Handler, request: Request) -> Any:
    result = handler(request)
    if inspect.isawaitable(result):
        result = await result
    return result


def with_rate_limit(handler: Handler, limiter: LimiterRef) -> Callable[[Request], Awaitable[Response]]:
    """Wrap ``handler`` so every call first consults ``limiter``.

    Usage:
        router.add_api_route(
            "/monitoring/errors",
            with_rate_limit(report_error, "monitoring"),
            methods=["POST"],
        )

    Args:
        handler: Sync or async callable taking the request and returning a
            response.
        limiter: A limiter instance, or the name of a profile to look up on
            ``app.state.rate_limiters``.

    Returns:
        Async handler taking only the request. Name and docstring are
        copied from ``handler``; its signature is not, so FastAPI injects
        nothing but the request.
    """

    async def rate_limited_handler(request: Request) -> Response:
        if not settings.rate_limit.enabled:
            return await _call_handler(handler, request)

        active = resolve_limiter(request, limiter)
        decision = active.check_limit(request)
        if not decision.allowed:
            return build_rate_limit_response(decision)

        response = await _call_handler(handler, request)

        if settings.rate_limit.include_headers and isinstance(response, Response):
            apply_rate_limit_headers(response, decision)
        return response

    rate_limited_handler.__name__ = getattr(handler, "__name__", rate_limited_handler.__name__)
    rate_limited_handler.__qualname__ = getattr(handler, "__qualname__", rate_limited_handler.__qualname__)
    rate_limited_handler.__doc__ = handler.__doc__
    return rate_limited_handler


def enforce_rate_limit(profile: str) -> Callable[..., Awaitable[RateLimitDecision | None]]:
    """Build a FastAPI dependency enforcing the named profile.

    On denial raises ``RateLimitExceededError`` (rendered as 429 by the
    exception handlers). On success sets the rate limit headers on the
    response FastAPI will send.

    Usage:
        @router.get("/stats", dependencies=[Depends(enforce_rate_limit("api"))])
    """

    async def rate_limit_dependency(
        request: Request,
        response: Response,
    ) -> RateLimitDecision | None:
        if not settings.rate_limit.enabled:
            return None

        limiter = resolve_limiter(request, profile)
        decision = limiter.check_limit(request)
        if not decision.allowed:
            raise RateLimitExceededError(decision, profile=profile)

        if settings.rate_limit.include_headers:
            apply_rate_limit_headers(response, decision)
        return decision

    return rate_limit_dependency
