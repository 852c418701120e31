"""Rate limiter interfaces and value types.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the in-memory store can later be replaced by a shared one (e.g., Redis)
with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class RateLimitEntry:
    """Counter state for one client key inside one limiter.

    Attributes:
        count: Requests observed in the current window.
        window_start: UNIX time in seconds when the window began.
        reset_time: UNIX time in seconds when the window expires.
    """

    count: int
    window_start: float
    reset_time: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Effective threshold applied to this decision.
        remaining: Requests left in the current window (0 when blocked).
        reset_time: UNIX time in seconds when the current window resets.
        retry_after_ms: Milliseconds until retry is advisable when blocked.
        key: Client key the limiter counted, as derived by its ``key_func``.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after_ms: int | None = None
    key: str | None = field(default=None, compare=False, repr=False)

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds until retry, rounded up (0 when allowed)."""
        if not self.retry_after_ms:
            return 0
        return max(0, math.ceil(self.retry_after_ms / 1000))

    @property
    def reset_at_iso(self) -> str:
        """Window expiry as an ISO-8601 UTC timestamp with millisecond precision."""
        reset_at = datetime.fromtimestamp(self.reset_time, tz=timezone.utc)
        return reset_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ClientUsage:
    """Anonymized usage for one client key in the active window."""

    key: str
    count: int
    reset_time: float


@dataclass(frozen=True)
class RateLimitStats:
    """Diagnostic snapshot of a limiter's counter table."""

    total_entries: int
    active_clients: int
    top_clients: list[ClientUsage] = field(default_factory=list)


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    name: str

    @abstractmethod
    def check_limit(self, request: Any) -> RateLimitDecision:
        """Derive the client key from ``request`` and count it.

        Args:
            request: Incoming request exposing forwarded-IP headers.

        Returns:
            RateLimitDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def check_key(self, key: str, *, request: Any | None = None) -> RateLimitDecision:
        """Count one request for an already derived client key."""
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> int:
        """Evict expired entries and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def get_stats(self, top_n: int = 10) -> RateLimitStats:
        """Return counts of tracked/active keys and the busiest active keys."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        raise NotImplementedError
