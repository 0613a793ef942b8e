"""Helpers for pacing requests against GitHub's rate limits."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from math import ceil

from .config import RateLimitInfo, UTC

LOGGER = logging.getLogger(__name__)


class RateLimiter:
    """Async rate limit coordinator fed by GraphQL payloads and REST headers.

    GraphQL and REST budgets are separate on GitHub's side, so the source keeps
    one limiter per API.
    """

    def __init__(self, name: str = "github", *, minimum_sleep: float = 0.05) -> None:
        self._name = name
        self._lock = asyncio.Lock()
        self._info: RateLimitInfo | None = None
        self._latest: RateLimitInfo | None = None
        self._estimated_cost: float = 1.0
        self._minimum_sleep = max(minimum_sleep, 0.0)

    async def acquire(self) -> None:
        """Wait until enough budget is available for the next call."""

        while True:
            async with self._lock:
                info = self._info
                if info is None:
                    return
                estimated_cost = max(1, ceil(self._estimated_cost))
                if info.remaining >= estimated_cost:
                    info.remaining -= estimated_cost
                    return
                remaining = info.remaining
                reset_at = info.reset_at

            delay = (reset_at - datetime.now(tz=UTC)).total_seconds()
            delay = max(delay, self._minimum_sleep)
            LOGGER.warning(
                "%s rate limit low (%s remaining); sleeping %.2fs until reset",
                self._name,
                remaining,
                delay,
            )
            await asyncio.sleep(delay)
            async with self._lock:
                if self._info is info:
                    self._info = None

    async def record(self, info: RateLimitInfo | None) -> None:
        """Update the limiter with the latest rate limit state, if the response carried one."""

        if info is None:
            return
        async with self._lock:
            # Copy so acquire() can decrement without touching the caller's object.
            self._info = RateLimitInfo(cost=info.cost, remaining=info.remaining, reset_at=info.reset_at)
            self._latest = info
            if info.cost > 0:
                self._estimated_cost = max(1.0, (self._estimated_cost * 0.5) + (info.cost * 0.5))

    async def reset(self) -> None:
        """Clear cached rate limit information after a failed request."""

        async with self._lock:
            self._info = None

    async def remaining(self) -> int | None:
        """Return the remaining budget as tracked locally, if any."""

        async with self._lock:
            return self._info.remaining if self._info else None

    @property
    def latest(self) -> RateLimitInfo | None:
        """Last state reported by GitHub, unaffected by local bookkeeping."""

        return self._latest


__all__ = ["RateLimiter"]
