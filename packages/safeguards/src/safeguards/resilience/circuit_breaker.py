"""Circuit breaker that stops calling a failing dependency and probes for recovery.

State is recomputed lazily on every ``execute()`` call; there is no
background timer. The breaker is meant to be shared by every caller that
talks to the same dependency and assumes a single-threaded event loop.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import structlog

from safeguards.resilience.errors import CircuitOpenError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """States of a circuit breaker."""

    CLOSED = "CLOSED"         # Normal operation
    OPEN = "OPEN"             # Failing, reject all calls
    HALF_OPEN = "HALF_OPEN"   # Next call is a recovery probe


@dataclass(frozen=True)
class CircuitBreakerStats:
    """Point-in-time snapshot of a breaker."""

    name: str
    state: CircuitState
    failure_count: int
    success_count: int
    last_failure_time: float | None

    def to_dict(self) -> dict[str, Any]:
        """Serialize stats for a status response."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time,
        }


class CircuitBreaker:
    """Guard around a fallible async operation.

    Usage:
        breaker = CircuitBreaker("claude", failure_threshold=2, reset_timeout=60.0)
        reply = await breaker.execute(lambda: client.generate(prompt), fallback=canned_reply)
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float | None = None

        self._logger = logger.bind(breaker=name)

    @property
    def state(self) -> CircuitState:
        """Current state, as last recomputed by ``execute()``."""
        return self._state

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def reset_timeout(self) -> float:
        return self._reset_timeout

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], T] | None = None,
    ) -> T:
        """Run ``operation`` unless the circuit is open.

        Args:
            operation: Zero-argument callable returning an awaitable.
            fallback: Optional zero-argument callable producing a substitute
                result when the call is rejected or fails.

        Returns:
            The operation's result, or the fallback's result.

        Raises:
            CircuitOpenError: If the circuit is open and no fallback is given.
            Exception: The operation's own error if it fails and no fallback
                is given.
        """
        self._update_state()

        if self._state is CircuitState.OPEN:
            self._logger.warning(
                "circuit_rejected",
                failure_count=self._failure_count,
                has_fallback=fallback is not None,
            )
            if fallback is not None:
                return fallback()
            raise CircuitOpenError(self.name)

        try:
            result = await operation()
        except Exception as e:
            self._on_failure()
            if fallback is not None:
                self._logger.warning("circuit_fallback_used", error=str(e))
                return fallback()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        self._success_count += 1

        # A call admitted before the circuit opened can finish after it did;
        # an open circuit keeps its failure streak until the next probe.
        if self._state is CircuitState.OPEN:
            self._logger.debug("circuit_late_success", failure_count=self._failure_count)
            return

        self._failure_count = 0

        if self._state is CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            self._logger.info("circuit_closed", success_count=self._success_count)

    def _on_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        self._logger.warning(
            "circuit_failure",
            failure_count=self._failure_count,
            failure_threshold=self._failure_threshold,
        )

        # A failed probe re-opens the circuit with a fresh cooldown
        if (
            self._state is CircuitState.HALF_OPEN
            or self._failure_count >= self._failure_threshold
        ):
            self._state = CircuitState.OPEN
            self._logger.error("circuit_opened", failure_count=self._failure_count)

    def _update_state(self) -> None:
        """Move OPEN to HALF_OPEN once the cooldown has elapsed."""
        if self._state is not CircuitState.OPEN or self._last_failure_time is None:
            return

        if self._clock() - self._last_failure_time >= self._reset_timeout:
            self._state = CircuitState.HALF_OPEN
            self._logger.info("circuit_half_open", failure_count=self._failure_count)

    def get_stats(self) -> CircuitBreakerStats:
        """Get a snapshot of the breaker without touching its state."""
        return CircuitBreakerStats(
            name=self.name,
            state=self._state,
            failure_count=self._failure_count,
            success_count=self._success_count,
            last_failure_time=self._last_failure_time,
        )

    def reset(self) -> None:
        """Force the breaker closed. The success counter is kept."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None
        self._logger.info("circuit_reset")

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self.name!r}, state={self._state.value}, "
            f"failures={self._failure_count}/{self._failure_threshold})"
        )
