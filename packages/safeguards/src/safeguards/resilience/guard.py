"""Run a dependency call behind a breaker and degrade to a fallback value."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from safeguards.resilience.circuit_breaker import CircuitBreaker
from safeguards.resilience.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SafeResult(Generic[T]):
    """Result of ``safe_call``.

    ``from_fallback`` is set whenever ``data`` is the caller's fallback
    value rather than the operation's result.
    """

    data: T | None
    from_fallback: bool = False
    rate_limited: bool = False
    error: Exception | None = None

    @property
    def success(self) -> bool:
        """True only when ``data`` came from the operation itself."""
        return self.error is None and not self.rate_limited


async def safe_call(
    breaker: CircuitBreaker,
    operation: Callable[[], Awaitable[T]],
    fallback_value: T | None = None,
    *,
    label: str = "unknown",
    limiter: RateLimiter | None = None,
    identifier: str | None = None,
) -> SafeResult[T]:
    """Call ``operation`` through ``breaker`` without ever raising.

    Args:
        breaker: Breaker guarding the dependency.
        operation: Zero-argument callable returning an awaitable.
        fallback_value: Value returned when the call is limited, rejected
            or fails.
        label: What is being called (a table, an endpoint), for logs.
        limiter: Optional limiter consulted before the call.
        identifier: Limiter key; defaults to ``label``.

    Returns:
        SafeResult wrapping either the operation's result or the fallback.
    """
    log = logger.bind(breaker=breaker.name, label=label)

    if limiter is not None:
        decision = limiter.check_limit(identifier if identifier is not None else label)
        if not decision.allowed:
            log.warning("safe_call_rate_limited", reset_time=decision.reset_time)
            return SafeResult(data=fallback_value, from_fallback=True, rate_limited=True)

    try:
        result = await breaker.execute(operation)
    except Exception as e:
        log.error("safe_call_failed", error=str(e), error_type=type(e).__name__)
        return SafeResult(data=fallback_value, from_fallback=True, error=e)

    return SafeResult(data=result)
