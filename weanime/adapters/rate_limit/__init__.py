"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory limiter and later migrate to Redis or another shared store
without changing the API layer.
"""

from weanime.adapters.rate_limit.adaptive import AdaptiveRateLimiter
from weanime.adapters.rate_limit.base import (
    AbstractRateLimiter,
    ClientUsage,
    RateLimitDecision,
    RateLimitEntry,
    RateLimitStats,
)
from weanime.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter, RateLimiter
from weanime.adapters.rate_limit.profiles import (
    DEFAULT_PROFILES,
    RateLimitProfile,
    RateLimiters,
    build_rate_limiters,
)
from weanime.adapters.rate_limit.sweeper import EvictionSweeper

__all__ = [
    "AbstractRateLimiter",
    "AdaptiveRateLimiter",
    "ClientUsage",
    "DEFAULT_PROFILES",
    "EvictionSweeper",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitEntry",
    "RateLimitProfile",
    "RateLimitStats",
    "RateLimiter",
    "RateLimiters",
    "build_rate_limiters",
]
