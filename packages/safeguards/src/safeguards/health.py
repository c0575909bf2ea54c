"""Health report and operator actions over a safeguard registry.

These are the callables a web layer mounts as the status query and the
emergency controls; no HTTP framework is involved here.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from safeguards.config import get_settings
from safeguards.registry import SafeguardRegistry
from safeguards.resilience.circuit_breaker import CircuitBreakerStats, CircuitState
from safeguards.resilience.errors import UnknownActionError
from safeguards.resilience.rate_limiter import RateLimiterStats

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    """Overall status reported by ``check_health``."""

    HEALTHY = "healthy"
    RECOVERING = "recovering"   # A breaker is probing after a cooldown
    WARNING = "warning"         # A limiter is tracking many identifiers
    DEGRADED = "degraded"       # A breaker is open


class SafeguardAction(str, Enum):
    """Operator actions accepted by ``perform_action``."""

    RESET_CIRCUIT_BREAKERS = "reset-circuit-breakers"
    RESET_RATE_LIMITERS = "reset-rate-limiters"
    EMERGENCY_RESET = "emergency-reset"


@dataclass
class HealthReport:
    """Snapshot of every breaker and limiter plus the issues found."""

    status: HealthStatus
    circuit_breakers: dict[str, CircuitBreakerStats]
    rate_limiters: dict[str, RateLimiterStats]
    issues: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the report for JSON transmission."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "circuit_breakers": {
                name: stats.to_dict() for name, stats in self.circuit_breakers.items()
            },
            "rate_limiters": {
                name: stats.to_dict() for name, stats in self.rate_limiters.items()
            },
            "issues": list(self.issues),
            "issue_count": len(self.issues),
        }


def check_health(
    registry: SafeguardRegistry,
    active_keys_warning: int | None = None,
) -> HealthReport:
    """Build a health report for every registered breaker and limiter.

    Args:
        registry: Registry to inspect.
        active_keys_warning: Limiters tracking more identifiers than this are
            reported as a warning. Defaults to settings.

    Returns:
        HealthReport with the overall status and the list of issues.
    """
    if active_keys_warning is None:
        active_keys_warning = get_settings().health_active_keys_warning

    breaker_stats = {name: b.get_stats() for name, b in registry.breakers.items()}
    limiter_stats = {name: lim.get_stats() for name, lim in registry.limiters.items()}

    status = HealthStatus.HEALTHY
    issues: list[str] = []

    for name, stats in breaker_stats.items():
        if stats.state is CircuitState.OPEN:
            issues.append(f"Circuit breaker {name} is OPEN")
            status = HealthStatus.DEGRADED
        elif stats.state is CircuitState.HALF_OPEN:
            issues.append(f"Circuit breaker {name} is HALF_OPEN (recovering)")
            if status is HealthStatus.HEALTHY:
                status = HealthStatus.RECOVERING

    for name, stats in limiter_stats.items():
        if stats.active_keys > active_keys_warning:
            issues.append(
                f"Rate limiter {name} has high usage ({stats.active_keys} active keys)"
            )
            if status is HealthStatus.HEALTHY:
                status = HealthStatus.WARNING

    if issues:
        logger.warning("health_issues", status=status.value, issue_count=len(issues))

    return HealthReport(
        status=status,
        circuit_breakers=breaker_stats,
        rate_limiters=limiter_stats,
        issues=issues,
    )


def perform_action(registry: SafeguardRegistry, action: str | SafeguardAction) -> str:
    """Run an operator reset and return its confirmation message.

    Raises:
        UnknownActionError: If ``action`` is not a SafeguardAction value.
    """
    try:
        action = SafeguardAction(action)
    except ValueError:
        raise UnknownActionError(str(action)) from None

    logger.info("operator_action", action=action.value)

    if action is SafeguardAction.RESET_CIRCUIT_BREAKERS:
        registry.reset_circuit_breakers()
        return "All circuit breakers reset"
    if action is SafeguardAction.RESET_RATE_LIMITERS:
        registry.reset_rate_limiters()
        return "All rate limiters reset"

    registry.emergency_reset()
    return "Emergency reset completed - all safeguards reset"
