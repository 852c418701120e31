"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers gives each worker its own,
  independent quotas. There is no shared store.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable

from weanime.adapters.rate_limit.base import (
    AbstractRateLimiter,
    ClientUsage,
    RateLimitDecision,
    RateLimitEntry,
    RateLimitStats,
)
from weanime.adapters.rate_limit.keys import anonymize_key, get_client_ip, hash_key

logger = logging.getLogger(__name__)


KeyFunc = Callable[[Any], str]
LimitReachedCallback = Callable[[Any, RateLimitDecision], None]


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per client key.

    A window opens on a key's first request and lasts ``window_seconds``.
    Every checked request increments the counter, denied ones included, so
    a client that keeps hammering past its limit stays blocked until the
    window rolls over.

    Whitelisted keys are always allowed and never counted. Blacklisted keys
    are always denied and never counted.

    Important:
        This limiter is per-process only. If the API runs with multiple
        workers, each worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        window_seconds: float,
        max_requests: int,
        whitelist: Iterable[str] | None = None,
        blacklist: Iterable[str] | None = None,
        on_limit_reached: LimitReachedCallback | None = None,
        key_func: KeyFunc = get_client_ip,
        clock: Callable[[], float] = time.time,
        name: str = "default",
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            window_seconds: Length of the fixed window in seconds.
            max_requests: Maximum number of allowed requests per window.
            whitelist: Client keys that bypass counting entirely.
            blacklist: Client keys that are always denied.
            on_limit_reached: Called with ``(request, decision)`` on each
                counted denial.
            key_func: Derives the client key from a request.
            clock: Time source function returning UNIX time in seconds.
            name: Profile name used in logs.

        Raises:
            ValueError: If max_requests or window_seconds are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.name = name
        self._window_seconds = float(window_seconds)
        self._max_requests = max_requests
        self._whitelist = frozenset(whitelist or ())
        self._blacklist = frozenset(blacklist or ())
        self._on_limit_reached = on_limit_reached
        self._key_func = key_func
        self._clock = clock
        self._lock = threading.RLock()
        self._store: dict[str, RateLimitEntry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"window_seconds={self._window_seconds}, max_requests={self._max_requests}, "
            f"entries={len(self._store)})"
        )

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def whitelist(self) -> frozenset[str]:
        return self._whitelist

    @property
    def blacklist(self) -> frozenset[str]:
        return self._blacklist

    def effective_limit(self, key: str) -> int:
        """Threshold applied to ``key``. Subclasses scale it per client."""
        return self._max_requests

    def always_allows(self, key: str) -> bool:
        """Whether ``key`` is let through past its limit. Counting still happens."""
        return False

    def check_limit(self, request: Any) -> RateLimitDecision:
        """Derive the client key from the request and count it."""
        return self.check_key(self._key_func(request), request=request)

    def check_key(self, key: str, *, request: Any | None = None) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed.

        Args:
            key: Client key (usually an IP address).
            request: Original request, passed through to ``on_limit_reached``.

        Returns:
            RateLimitDecision with allowance decision and metadata.
        """
        now = self._clock()

        if key in self._whitelist:
            return RateLimitDecision(
                allowed=True,
                limit=self._max_requests,
                remaining=self._max_requests,
                reset_time=now + self._window_seconds,
            )

        if key in self._blacklist:
            logger.warning(
                "rate_limit.blacklisted",
                extra={"profile": self.name, "key_hash": hash_key(key)},
            )
            return RateLimitDecision(
                allowed=False,
                limit=self._max_requests,
                remaining=0,
                reset_time=now + self._window_seconds,
                retry_after_ms=int(self._window_seconds * 1000),
            )

        with self._lock:
            entry = self._store.get(key)
            if entry is None or now > entry.reset_time:
                entry = RateLimitEntry(
                    count=0,
                    window_start=now,
                    reset_time=now + self._window_seconds,
                )
                self._store[key] = entry

            entry.count += 1
            count = entry.count
            reset_time = entry.reset_time
            limit = self.effective_limit(key)
            allowed = count <= limit or self.always_allows(key)

        decision = RateLimitDecision(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=reset_time,
            retry_after_ms=None if allowed else max(0, round((reset_time - now) * 1000)),
            key=key,
        )

        if allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "profile": self.name,
                    "key_hash": hash_key(key),
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                },
            )
        elif self._on_limit_reached is not None:
            self._on_limit_reached(request, decision)

        return decision

    def cleanup(self) -> int:
        """Delete every entry whose window has already expired.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._store.items() if now > entry.reset_time]
            for key in expired:
                del self._store[key]
        return len(expired)

    def get_stats(self, top_n: int = 10) -> RateLimitStats:
        """Return counts of tracked/active keys and the busiest active keys."""
        now = self._clock()
        with self._lock:
            entries = list(self._store.items())

        active = [(key, entry) for key, entry in entries if now <= entry.reset_time]
        active.sort(key=lambda item: item[1].count, reverse=True)

        return RateLimitStats(
            total_entries=len(entries),
            active_clients=len(active),
            top_clients=[
                ClientUsage(
                    key=anonymize_key(key),
                    count=entry.count,
                    reset_time=entry.reset_time,
                )
                for key, entry in active[:top_n]
            ],
        )

    def get_entry(self, key: str) -> RateLimitEntry | None:
        """Return the current entry for ``key`` (mainly for diagnostics)."""
        with self._lock:
            return self._store.get(key)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._store.clear()
            else:
                self._store.pop(key, None)


# Public alias matching the name used throughout the HTTP layer.
RateLimiter = InMemoryFixedWindowRateLimiter
