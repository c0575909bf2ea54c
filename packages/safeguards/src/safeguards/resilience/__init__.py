"""Resilience primitives: circuit breaker, rate limiter and safe calls."""

from safeguards.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerStats,
    CircuitState,
)
from safeguards.resilience.errors import (
    CircuitOpenError,
    SafeguardError,
    UnknownActionError,
)
from safeguards.resilience.guard import SafeResult, safe_call
from safeguards.resilience.rate_limiter import (
    RateLimiter,
    RateLimiterStats,
    RateLimitResult,
)

__all__ = [
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitState",
    # Rate limiter
    "RateLimiter",
    "RateLimiterStats",
    "RateLimitResult",
    # Safe calls
    "SafeResult",
    "safe_call",
    # Errors
    "SafeguardError",
    "CircuitOpenError",
    "UnknownActionError",
]
