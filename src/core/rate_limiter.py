"""Sliding-window limiter for public lead submissions.

Counts are kept per ``(handle, sender)`` in process memory, so each API
worker limits independently.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Limits for one window."""

    max_requests: int = 5
    window_seconds: int = 60
    cleanup_interval_seconds: int = 300

    @classmethod
    def from_settings(cls) -> "RateLimitConfig":
        """Create config from application settings."""
        from src.core.config import get_settings

        settings = get_settings()
        return cls(
            max_requests=settings.rate_limit_lead_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one submission attempt."""

    allowed: bool
    remaining: int
    retry_after: int = 0


def submission_key(handle: str, client_key: str | None) -> str:
    """Bucket name for a sender posting to one public form."""
    return f"lead:{handle}:{client_key or 'anonymous'}"


class LeadRateLimiter:
    """Per-key timestamp windows with a periodic sweep of idle keys."""

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        self.config = config or RateLimitConfig()
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._cleanup_task: asyncio.Task | None = None

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self.config.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    async def hit(self, key: str) -> RateLimitDecision:
        """Record a submission for ``key`` if it is under the limit.

        Rejected attempts are not recorded, so a sender that waits out
        ``retry_after`` always gets through.

        Args:
            key: Bucket name, see ``submission_key``.

        Returns:
            RateLimitDecision: Whether it was allowed, slots left and seconds to wait.
        """
        limit = self.config.max_requests
        window = self.config.window_seconds
        now = time.time()

        with self._lock:
            hits = self._hits.setdefault(key, deque())
            self._prune(hits, now)

            if len(hits) >= limit:
                oldest = hits[-limit]
                retry_after = max(1, int(oldest + window - now) + 1)
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            hits.append(now)
            return RateLimitDecision(allowed=True, remaining=limit - len(hits))

    async def cleanup(self) -> int:
        """Drop keys with no submissions inside the window.

        Returns:
            int: Number of keys removed.
        """
        now = time.time()
        with self._lock:
            idle = []
            for key, hits in self._hits.items():
                self._prune(hits, now)
                if not hits:
                    idle.append(key)
            for key in idle:
                del self._hits[key]
        return len(idle)

    async def start_cleanup_task(self) -> None:
        """Start the background sweep."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Lead rate limiter sweep started")

    async def stop_cleanup_task(self) -> None:
        """Stop the background sweep."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Lead rate limiter sweep stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            removed = await self.cleanup()
            if removed:
                logger.debug("Lead rate limiter dropped %d idle senders", removed)


_rate_limiter: LeadRateLimiter | None = None


def get_rate_limiter() -> LeadRateLimiter:
    """Get or create the process-wide limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = LeadRateLimiter(RateLimitConfig.from_settings())
    return _rate_limiter


async def init_rate_limiter() -> LeadRateLimiter:
    """Create the limiter and start its sweep. Call at app startup."""
    limiter = get_rate_limiter()
    await limiter.start_cleanup_task()
    return limiter


async def shutdown_rate_limiter() -> None:
    """Stop the sweep. Call at app shutdown."""
    if _rate_limiter:
        await _rate_limiter.stop_cleanup_task()
