"""Periodic eviction of expired rate limit entries.

``check_key`` already ignores expired windows, so sweeping only reclaims
memory held by clients that stopped sending requests. Each limiter is swept
inside its own failure boundary: one broken limiter is logged and skipped
without stopping the loop or the other limiters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from weanime.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class EvictionSweeper:
    """Runs ``cleanup()`` on a set of limiters at a fixed interval."""

    def __init__(
        self,
        limiters: Iterable[AbstractRateLimiter],
        *,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._limiters = list(limiters)
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        """Sweep every limiter once.

        Returns:
            Total number of entries evicted across limiters.
        """
        total = 0
        for limiter in self._limiters:
            name = getattr(limiter, "name", type(limiter).__name__)
            try:
                removed = limiter.cleanup()
            except Exception:
                logger.exception("rate_limit.sweep_failed", extra={"profile": name})
                continue
            total += removed
            if removed:
                logger.debug(
                    "rate_limit.sweep",
                    extra={"profile": name, "evicted": removed},
                )
        return total

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.sweep_once()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._interval, "limiters": len(self._limiters)},
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("rate_limit.sweeper_stopped")
