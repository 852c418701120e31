"""Rate limit administration: stats, reputation marks and manual resets."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from weanime.adapters.rate_limit.adaptive import AdaptiveRateLimiter
from weanime.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from weanime.adapters.rate_limit.profiles import RateLimiters
from weanime.core.auth import verify_admin_key
from weanime.core.errors import ConflictAppError, NotFoundAppError
from weanime.core.rate_limit import enforce_rate_limit, get_rate_limiters
from weanime.schemas.rate_limit import (
    ClientKeyRequest,
    ClientUsageOut,
    ProfileStats,
    RateLimitOverview,
    ReputationResponse,
    ResetResponse,
)

router = APIRouter(
    prefix="/admin/rate-limits",
    tags=["Admin"],
    dependencies=[Depends(enforce_rate_limit("api")), Depends(verify_admin_key)],
)

Limiters = Annotated[RateLimiters, Depends(get_rate_limiters)]


def _get_limiter(limiters: RateLimiters, profile: str) -> InMemoryFixedWindowRateLimiter:
    limiter = limiters.get(profile)
    if limiter is None:
        raise NotFoundAppError(
            code="rate_limit_profile_not_found",
            message=f"Unknown rate limit profile: {profile}",
            details={"profile": profile},
        )
    return limiter


def _get_adaptive(limiters: RateLimiters, profile: str) -> AdaptiveRateLimiter:
    limiter = _get_limiter(limiters, profile)
    if not isinstance(limiter, AdaptiveRateLimiter):
        raise ConflictAppError(
            code="profile_not_adaptive",
            message=f"Rate limit profile '{profile}' does not support reputation marks",
            details={"profile": profile},
        )
    return limiter


def _profile_stats(profile: str, limiter: InMemoryFixedWindowRateLimiter) -> ProfileStats:
    stats = limiter.get_stats()
    adaptive = isinstance(limiter, AdaptiveRateLimiter)
    return ProfileStats(
        profile=profile,
        window_seconds=limiter.window_seconds,
        max_requests=limiter.max_requests,
        adaptive=adaptive,
        suspicious_clients=len(limiter.suspicious_keys) if adaptive else 0,
        trusted_clients=len(limiter.trusted_keys) if adaptive else 0,
        total_entries=stats.total_entries,
        active_clients=stats.active_clients,
        top_clients=[
            ClientUsageOut(key=c.key, count=c.count, reset_time=c.reset_time)
            for c in stats.top_clients
        ],
    )


def _reputation(profile: str, limiter: AdaptiveRateLimiter, key: str, until: float | None = None) -> ReputationResponse:
    return ReputationResponse(
        profile=profile,
        key=key,
        suspicious=limiter.is_suspicious(key),
        trusted=limiter.is_trusted(key),
        suspicious_until=until,
    )


@router.get("", response_model=RateLimitOverview)
def rate_limit_overview(limiters: Limiters) -> RateLimitOverview:
    """Stats for every profile."""
    return RateLimitOverview(
        profiles={name: _profile_stats(name, limiter) for name, limiter in limiters.items()}
    )


@router.get("/{profile}", response_model=ProfileStats)
def profile_stats(profile: str, limiters: Limiters) -> ProfileStats:
    return _profile_stats(profile, _get_limiter(limiters, profile))


@router.post("/{profile}/suspicious", response_model=ReputationResponse)
def mark_suspicious(profile: str, body: ClientKeyRequest, limiters: Limiters) -> ReputationResponse:
    """Halve the client's quota on this profile for the suspicious-mark TTL."""
    limiter = _get_adaptive(limiters, profile)
    until = limiter.mark_suspicious(body.key)
    return _reputation(profile, limiter, body.key, until)


@router.post("/{profile}/trusted", response_model=ReputationResponse)
def mark_trusted(profile: str, body: ClientKeyRequest, limiters: Limiters) -> ReputationResponse:
    """Raise the client's quota on this profile by half until cleared."""
    limiter = _get_adaptive(limiters, profile)
    limiter.mark_trusted(body.key)
    return _reputation(profile, limiter, body.key)


@router.delete("/{profile}/trusted/{key}", response_model=ReputationResponse)
def clear_trusted(profile: str, key: str, limiters: Limiters) -> ReputationResponse:
    limiter = _get_adaptive(limiters, profile)
    if not limiter.clear_trusted(key):
        raise NotFoundAppError(
            code="key_not_trusted",
            message="Client key is not marked as trusted",
            details={"profile": profile},
        )
    return _reputation(profile, limiter, key)


@router.delete("/{profile}", response_model=ResetResponse)
def reset_profile(
    profile: str,
    limiters: Limiters,
    key: Annotated[str | None, Query(description="Client key to reset; omit to clear the profile")] = None,
) -> ResetResponse:
    """Forget one client's counter, or every counter of the profile."""
    limiter = _get_limiter(limiters, profile)
    limiter.reset(key)
    return ResetResponse(profile=profile, key=key)
