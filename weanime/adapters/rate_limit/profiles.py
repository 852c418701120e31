"""Named rate limit profiles and the per-application limiter container.

Each profile owns exactly one limiter, so a client's quota in one profile is
independent of its quota in every other. Limiters are built once at startup
by :func:`build_rate_limiters` and stored on ``app.state``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from weanime.adapters.rate_limit.adaptive import AdaptiveRateLimiter
from weanime.adapters.rate_limit.base import RateLimitDecision
from weanime.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from weanime.adapters.rate_limit.keys import hash_key
from weanime.core.config import RateLimitSettings

logger = logging.getLogger(__name__)

PROFILE_NAMES = ("api", "auth", "search", "streaming", "monitoring")


class RateLimitProfile(BaseModel):
    """Immutable configuration for one named limiter."""

    model_config = ConfigDict(frozen=True)

    name: str
    window_seconds: float = Field(gt=0)
    max_requests: int = Field(ge=1)
    whitelist: frozenset[str] = frozenset()
    blacklist: frozenset[str] = frozenset()
    adaptive: bool = False


DEFAULT_PROFILES: dict[str, RateLimitProfile] = {
    "api": RateLimitProfile(name="api", window_seconds=15 * 60, max_requests=100),
    "auth": RateLimitProfile(name="auth", window_seconds=15 * 60, max_requests=5),
    "search": RateLimitProfile(name="search", window_seconds=60, max_requests=30),
    "streaming": RateLimitProfile(name="streaming", window_seconds=60, max_requests=60),
    "monitoring": RateLimitProfile(name="monitoring", window_seconds=60, max_requests=100),
}


def _log_limit_reached(profile: str) -> Callable[[Any, RateLimitDecision], None]:
    def on_limit_reached(request: Any, decision: RateLimitDecision) -> None:
        url = getattr(request, "url", None)
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "profile": profile,
                "path": getattr(url, "path", None),
                "key_hash": hash_key(decision.key) if decision.key is not None else None,
                "limit": decision.limit,
                "retry_after_ms": decision.retry_after_ms,
            },
        )

    return on_limit_reached


def profiles_from_settings(cfg: RateLimitSettings) -> dict[str, RateLimitProfile]:
    """Resolve every named profile from settings overrides."""
    adaptive = cfg.adaptive_profile_set
    whitelist = frozenset(cfg.whitelist_set)
    blacklist = frozenset(cfg.blacklist_set)
    return {
        name: RateLimitProfile(
            name=name,
            window_seconds=getattr(cfg, f"{name}_window_seconds"),
            max_requests=getattr(cfg, f"{name}_max_requests"),
            whitelist=whitelist,
            blacklist=blacklist,
            adaptive=name in adaptive,
        )
        for name in PROFILE_NAMES
    }


def build_limiter(
    profile: RateLimitProfile,
    *,
    suspicious_ttl_seconds: float = 3600.0,
    clock: Callable[[], float] = time.time,
) -> InMemoryFixedWindowRateLimiter:
    """Instantiate the limiter for one profile."""
    kwargs: dict[str, Any] = {
        "window_seconds": profile.window_seconds,
        "max_requests": profile.max_requests,
        "whitelist": profile.whitelist,
        "blacklist": profile.blacklist,
        "on_limit_reached": _log_limit_reached(profile.name),
        "clock": clock,
        "name": profile.name,
    }
    if profile.adaptive:
        return AdaptiveRateLimiter(suspicious_ttl_seconds=suspicious_ttl_seconds, **kwargs)
    return InMemoryFixedWindowRateLimiter(**kwargs)


@dataclass(frozen=True)
class RateLimiters:
    """One limiter per named profile."""

    api: InMemoryFixedWindowRateLimiter
    auth: InMemoryFixedWindowRateLimiter
    search: InMemoryFixedWindowRateLimiter
    streaming: InMemoryFixedWindowRateLimiter
    monitoring: InMemoryFixedWindowRateLimiter

    def get(self, name: str) -> InMemoryFixedWindowRateLimiter | None:
        if name not in PROFILE_NAMES:
            return None
        return getattr(self, name)

    def items(self) -> Iterator[tuple[str, InMemoryFixedWindowRateLimiter]]:
        for name in PROFILE_NAMES:
            yield name, getattr(self, name)

    def __iter__(self) -> Iterator[InMemoryFixedWindowRateLimiter]:
        for _, limiter in self.items():
            yield limiter


def build_rate_limiters(
    cfg: RateLimitSettings,
    *,
    clock: Callable[[], float] = time.time,
) -> RateLimiters:
    """Build the limiter for every profile from settings."""
    profiles = profiles_from_settings(cfg)
    limiters = {
        name: build_limiter(
            profile,
            suspicious_ttl_seconds=cfg.suspicious_ttl_seconds,
            clock=clock,
        )
        for name, profile in profiles.items()
    }
    logger.info(
        "rate_limit.profiles_configured",
        extra={
            "profiles": {
                name: {
                    "window_s": p.window_seconds,
                    "max_requests": p.max_requests,
                    "adaptive": p.adaptive,
                }
                for name, p in profiles.items()
            }
        },
    )
    return RateLimiters(**limiters)
