"""Safeguards - circuit breakers and rate limiters for SaaS glue services."""

__version__ = "0.1.0"

from safeguards.config import configure_logging, get_settings
from safeguards.health import (
    HealthReport,
    HealthStatus,
    SafeguardAction,
    check_health,
    perform_action,
)
from safeguards.registry import SafeguardRegistry
from safeguards.resilience import (
    CircuitBreaker,
    CircuitBreakerStats,
    CircuitOpenError,
    CircuitState,
    RateLimiter,
    RateLimiterStats,
    RateLimitResult,
    SafeguardError,
    SafeResult,
    UnknownActionError,
    safe_call,
)

__all__ = [
    # Version
    "__version__",
    # Primitives
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitState",
    "RateLimiter",
    "RateLimiterStats",
    "RateLimitResult",
    "SafeResult",
    "safe_call",
    # Registry & health
    "SafeguardRegistry",
    "HealthReport",
    "HealthStatus",
    "SafeguardAction",
    "check_health",
    "perform_action",
    # Errors
    "SafeguardError",
    "CircuitOpenError",
    "UnknownActionError",
    # Config
    "get_settings",
    "configure_logging",
]
