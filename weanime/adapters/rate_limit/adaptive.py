"""Reputation-aware rate limiter.

Suspicious clients get half the profile's quota for an hour. Trusted clients
are reported against one and a half times the quota and are never denied
until their trust is cleared. Both views read the same raw counter as the
base limiter: changing a client's standing reinterprets the requests it has
already made in the current window.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from weanime.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from weanime.adapters.rate_limit.keys import hash_key

logger = logging.getLogger(__name__)

SUSPICIOUS_TTL_SECONDS = 60 * 60
SUSPICIOUS_FACTOR = 0.5
TRUSTED_FACTOR = 1.5


class AdaptiveRateLimiter(InMemoryFixedWindowRateLimiter):
    """Fixed-window limiter whose threshold depends on client reputation.

    Suspicious marks expire on their own after ``suspicious_ttl_seconds``
    (checked against the limiter clock). Trusted marks persist until
    :meth:`clear_trusted` is called or the process restarts. A key that is
    both suspicious and trusted is treated as suspicious.
    """

    def __init__(
        self,
        *,
        suspicious_ttl_seconds: float = SUSPICIOUS_TTL_SECONDS,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if suspicious_ttl_seconds <= 0:
            raise ValueError("suspicious_ttl_seconds must be > 0")
        self._suspicious_ttl = float(suspicious_ttl_seconds)
        self._suspicious_until: dict[str, float] = {}
        self._trusted: set[str] = set()

    def mark_suspicious(self, key: str) -> float:
        """Halve ``key``'s quota until the mark expires.

        Marking an already suspicious key restarts its expiry.

        Returns:
            UNIX time in seconds when the mark lapses.
        """
        expires_at = self._clock() + self._suspicious_ttl
        with self._lock:
            self._suspicious_until[key] = expires_at
        logger.info(
            "rate_limit.marked_suspicious",
            extra={"profile": self.name, "key_hash": hash_key(key), "expires_at": expires_at},
        )
        return expires_at

    def mark_trusted(self, key: str) -> None:
        """Always allow ``key`` until explicitly cleared.

        Decisions report a limit raised by half so ``remaining`` still tracks
        usage.
        """
        with self._lock:
            self._trusted.add(key)
        logger.info(
            "rate_limit.marked_trusted",
            extra={"profile": self.name, "key_hash": hash_key(key)},
        )

    def clear_trusted(self, key: str) -> bool:
        """Drop the trusted mark for ``key``. Returns False if it had none."""
        with self._lock:
            if key not in self._trusted:
                return False
            self._trusted.discard(key)
        return True

    def is_suspicious(self, key: str) -> bool:
        with self._lock:
            expires_at = self._suspicious_until.get(key)
            if expires_at is None:
                return False
            if self._clock() >= expires_at:
                del self._suspicious_until[key]
                return False
            return True

    def is_trusted(self, key: str) -> bool:
        with self._lock:
            return key in self._trusted

    @property
    def suspicious_keys(self) -> set[str]:
        now = self._clock()
        with self._lock:
            return {key for key, until in self._suspicious_until.items() if now < until}

    @property
    def trusted_keys(self) -> set[str]:
        with self._lock:
            return set(self._trusted)

    def effective_limit(self, key: str) -> int:
        if self.is_suspicious(key):
            # Inclusive: the request that brings the count to the halved
            # limit is still allowed, the next one is denied.
            return max(1, math.floor(self._max_requests * SUSPICIOUS_FACTOR))
        if self.is_trusted(key):
            return math.floor(self._max_requests * TRUSTED_FACTOR)
        return self._max_requests

    def always_allows(self, key: str) -> bool:
        """Trusted keys are never denied; the scaled limit only shapes ``remaining``."""
        return self.is_trusted(key) and not self.is_suspicious(key)

    def cleanup(self) -> int:
        """Evict expired counter entries and lapsed suspicious marks.

        Returns:
            Number of counter entries removed (marks are not counted).
        """
        removed = super().cleanup()
        now = self._clock()
        with self._lock:
            lapsed = [key for key, until in self._suspicious_until.items() if now >= until]
            for key in lapsed:
                del self._suspicious_until[key]
        return removed
