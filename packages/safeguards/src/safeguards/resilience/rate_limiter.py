"""Fixed-window rate limiter keyed by caller identifier.

Each identifier gets ``max_requests`` calls per tumbling window. Because the
window resets in one step, up to twice the quota can pass in a short span
straddling a boundary.
"""

import asyncio
import contextlib
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Log a warning once an identifier is this close to its quota
REMAINING_WARNING = 2


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single ``check_limit`` call."""

    allowed: bool
    remaining: int
    reset_time: float


@dataclass(frozen=True)
class RateLimiterStats:
    """Point-in-time snapshot of a limiter."""

    name: str
    active_keys: int
    total_requests: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "active_keys": self.active_keys,
            "total_requests": self.total_requests,
        }


@dataclass
class _Window:
    count: int
    reset_time: float


class RateLimiter:
    """Per-identifier request counter over a fixed time window.

    Expired windows are re-created lazily by ``check_limit``. The optional
    background sweep started by ``start()`` only keeps the map from growing
    without bound under many distinct identifiers.
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window: float,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self._max_requests = max_requests
        self._window = window
        self._clock = clock

        self._requests: dict[str, _Window] = {}
        self._cleanup_task: asyncio.Task[None] | None = None

        self._logger = logger.bind(limiter=name)

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window(self) -> float:
        """Window length in seconds."""
        return self._window

    @property
    def is_running(self) -> bool:
        """Check if the background sweep is running."""
        return self._cleanup_task is not None and not self._cleanup_task.done()

    def check_limit(self, identifier: str) -> RateLimitResult:
        """Count a request for ``identifier`` if its quota allows it.

        Args:
            identifier: Caller key, e.g. a phone number, IP or API name.

        Returns:
            RateLimitResult telling whether the request is allowed, how many
            requests remain in the window, and when the window resets.
        """
        now = self._clock()
        entry = self._requests.get(identifier)

        if entry is None or now >= entry.reset_time:
            entry = _Window(count=0, reset_time=now + self._window)
            self._requests[identifier] = entry

        if entry.count >= self._max_requests:
            self._logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                count=entry.count,
                max_requests=self._max_requests,
            )
            return RateLimitResult(allowed=False, remaining=0, reset_time=entry.reset_time)

        entry.count += 1
        remaining = self._max_requests - entry.count

        if remaining <= REMAINING_WARNING:
            self._logger.warning(
                "rate_limit_warning",
                identifier=identifier,
                count=entry.count,
                max_requests=self._max_requests,
            )

        return RateLimitResult(allowed=True, remaining=remaining, reset_time=entry.reset_time)

    def cleanup(self) -> int:
        """Drop every identifier whose window has expired.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [key for key, entry in self._requests.items() if now >= entry.reset_time]
        for key in expired:
            del self._requests[key]

        if expired:
            self._logger.info("rate_limiter_cleaned", removed=len(expired))
        return len(expired)

    async def start(self) -> None:
        """Start sweeping expired windows every ``window`` seconds."""
        if self.is_running:
            self._logger.warning("cleanup_already_running")
            return

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        self._logger.debug("cleanup_started", interval=self._window)

    async def stop(self) -> None:
        """Stop the background sweep."""
        if self._cleanup_task is None:
            return

        self._cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None
        self._logger.debug("cleanup_stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._window)
            self.cleanup()

    def get_stats(self) -> RateLimiterStats:
        """Get a snapshot of tracked identifiers."""
        return RateLimiterStats(
            name=self.name,
            active_keys=len(self._requests),
            total_requests=sum(entry.count for entry in self._requests.values()),
        )

    def reset(self) -> None:
        """Forget every identifier."""
        self._requests.clear()
        self._logger.info("rate_limiter_reset")

    def __repr__(self) -> str:
        return (
            f"RateLimiter(name={self.name!r}, max_requests={self._max_requests}, "
            f"window={self._window})"
        )
