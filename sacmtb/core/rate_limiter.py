"""In-memory sliding-window limiter keyed by endpoint and client address."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, NamedTuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowPolicy:
    """How many hits a key may make within a rolling window."""

    limit: int = 3
    window_seconds: int = 60
    sweep_interval_seconds: int = 300

    @classmethod
    def for_otp(cls) -> WindowPolicy:
        """Policy for OTP-issuing endpoints, from application settings."""
        from sacmtb.core.config import get_settings

        settings = get_settings()
        return cls(
            limit=settings.otp_rate_limit_requests,
            window_seconds=settings.otp_rate_limit_window_seconds,
        )


class LimitDecision(NamedTuple):
    """Outcome of one hit against a key."""

    allowed: bool
    remaining: int
    retry_after: int


def client_key(scope: str, endpoint: str, client_host: str | None) -> str:
    """Key that limits one client on one endpoint within a scope."""
    return f"{scope}:{endpoint}:{client_host or 'unknown'}"


class KeyedWindowLimiter:
    """Sliding-window limiter holding hit times per key.

    Keys whose hits have all left the window are dropped by a periodic sweep
    task, started and stopped with the application.
    """

    def __init__(self, policy: WindowPolicy | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.policy = policy or WindowPolicy()
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._sweeper: asyncio.Task | None = None

    def _expire(self, hits: deque[float], now: float) -> None:
        cutoff = now - self.policy.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    async def hit(self, key: str) -> LimitDecision:
        """Record a hit for `key` if the window still has room.

        Args:
            key: Limiter key, usually built with `client_key`.

        Returns:
            LimitDecision: Whether the hit was allowed, how many remain in the
            window, and the seconds to wait when refused.
        """
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            self._expire(hits, now)

            if len(hits) >= self.policy.limit:
                # The slot frees up when the oldest counted hit leaves the window
                oldest = hits[-self.policy.limit]
                wait = oldest + self.policy.window_seconds - now
                return LimitDecision(False, 0, max(1, int(wait) + 1))

            hits.append(now)
            return LimitDecision(True, self.policy.limit - len(hits), 0)

    async def sweep(self) -> int:
        """Drop keys with no hits left in the window. Returns how many were dropped."""
        now = self._clock()
        with self._lock:
            idle = []
            for key, hits in self._hits.items():
                self._expire(hits, now)
                if not hits:
                    idle.append(key)
            for key in idle:
                del self._hits[key]
        return len(idle)

    def reset(self) -> None:
        """Forget every recorded hit."""
        with self._lock:
            self._hits.clear()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.policy.sweep_interval_seconds)
            dropped = await self.sweep()
            if dropped:
                logger.debug("Rate limiter dropped %d idle keys", dropped)

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_forever())
            logger.info("Rate limiter sweep task started")

    async def stop(self) -> None:
        """Cancel the background sweep task."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Rate limiter sweep task stopped")


# Global singleton instance
_rate_limiter: KeyedWindowLimiter | None = None


def get_rate_limiter() -> KeyedWindowLimiter:
    """Get or create the global OTP limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = KeyedWindowLimiter(WindowPolicy.for_otp())
    return _rate_limiter


async def init_rate_limiter() -> KeyedWindowLimiter:
    """Create the limiter and start its sweep task. Call at app startup."""
    limiter = get_rate_limiter()
    await limiter.start()
    return limiter


async def shutdown_rate_limiter() -> None:
    """Stop the sweep task. Call at app shutdown."""
    if _rate_limiter is not None:
        await _rate_limiter.stop()
