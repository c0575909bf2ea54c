"""Registry owning the named breakers and limiters of an application.

The registry is built once at startup and handed to whichever request
handlers need a breaker or limiter. It replaces module-level singletons.
"""

from collections.abc import Callable, Iterable
from typing import Any

import structlog

from safeguards.config import FlatSettings, get_settings
from safeguards.resilience.circuit_breaker import CircuitBreaker
from safeguards.resilience.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

# Names of the default instances built by ``SafeguardRegistry.from_settings``
SUPABASE = "supabase"
CLAUDE = "claude"
TWILIO = "twilio"
KNOWLEDGE_BASE = "knowledge-base"
WEBHOOK = "webhook"
API = "api"


class SafeguardRegistry:
    """Named circuit breakers and rate limiters.

    Usage:
        registry = SafeguardRegistry.from_settings()
        async with registry:
            reply = await registry.breaker("claude").execute(call_claude)
    """

    def __init__(
        self,
        breakers: Iterable[CircuitBreaker] = (),
        limiters: Iterable[RateLimiter] = (),
    ):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._limiters: dict[str, RateLimiter] = {}

        for breaker in breakers:
            self.add_breaker(breaker)
        for limiter in limiters:
            self.add_limiter(limiter)

        self._logger = logger.bind(component="safeguard_registry")

    @classmethod
    def from_settings(
        cls,
        settings: FlatSettings | None = None,
        clock: Callable[[], float] | None = None,
    ) -> "SafeguardRegistry":
        """Build the default breakers and limiters from configuration.

        Args:
            settings: Settings to read thresholds from. Defaults to
                ``get_settings()``.
            clock: Optional time source shared by every instance.
        """
        settings = settings or get_settings()
        extra: dict[str, Any] = {"clock": clock} if clock is not None else {}

        breakers = [
            CircuitBreaker(
                SUPABASE,
                failure_threshold=settings.cb_supabase_failure_threshold,
                reset_timeout=settings.cb_supabase_reset_timeout,
                **extra,
            ),
            CircuitBreaker(
                CLAUDE,
                failure_threshold=settings.cb_claude_failure_threshold,
                reset_timeout=settings.cb_claude_reset_timeout,
                **extra,
            ),
            CircuitBreaker(
                TWILIO,
                failure_threshold=settings.cb_twilio_failure_threshold,
                reset_timeout=settings.cb_twilio_reset_timeout,
                **extra,
            ),
            CircuitBreaker(
                KNOWLEDGE_BASE,
                failure_threshold=settings.cb_knowledge_base_failure_threshold,
                reset_timeout=settings.cb_knowledge_base_reset_timeout,
                **extra,
            ),
        ]

        window = settings.rl_window_seconds
        limiters = [
            RateLimiter(WEBHOOK, settings.rl_webhook_max_requests, window, **extra),
            RateLimiter(API, settings.rl_api_max_requests, window, **extra),
            RateLimiter(CLAUDE, settings.rl_claude_max_requests, window, **extra),
            RateLimiter(
                KNOWLEDGE_BASE, settings.rl_knowledge_base_max_requests, window, **extra
            ),
        ]

        return cls(breakers=breakers, limiters=limiters)

    # === Lookup ===

    def add_breaker(self, breaker: CircuitBreaker) -> None:
        """Register a breaker under its name."""
        if breaker.name in self._breakers:
            raise ValueError(f"Circuit breaker {breaker.name!r} already registered")
        self._breakers[breaker.name] = breaker

    def add_limiter(self, limiter: RateLimiter) -> None:
        """Register a limiter under its name."""
        if limiter.name in self._limiters:
            raise ValueError(f"Rate limiter {limiter.name!r} already registered")
        self._limiters[limiter.name] = limiter

    def breaker(self, name: str) -> CircuitBreaker:
        """Get a registered breaker by name."""
        try:
            return self._breakers[name]
        except KeyError:
            raise KeyError(f"No circuit breaker named {name!r}") from None

    def limiter(self, name: str) -> RateLimiter:
        """Get a registered limiter by name."""
        try:
            return self._limiters[name]
        except KeyError:
            raise KeyError(f"No rate limiter named {name!r}") from None

    @property
    def breakers(self) -> dict[str, CircuitBreaker]:
        """Get registered breakers by name."""
        return dict(self._breakers)

    @property
    def limiters(self) -> dict[str, RateLimiter]:
        """Get registered limiters by name."""
        return dict(self._limiters)

    # === Operator resets ===

    def reset_circuit_breakers(self) -> None:
        """Close every breaker."""
        for breaker in self._breakers.values():
            breaker.reset()
        self._logger.info("circuit_breakers_reset", count=len(self._breakers))

    def reset_rate_limiters(self) -> None:
        """Forget every identifier in every limiter."""
        for limiter in self._limiters.values():
            limiter.reset()
        self._logger.info("rate_limiters_reset", count=len(self._limiters))

    def emergency_reset(self) -> None:
        """Reset every breaker and limiter."""
        self.reset_circuit_breakers()
        self.reset_rate_limiters()
        self._logger.warning("emergency_reset")

    # === Lifecycle ===

    async def start(self) -> None:
        """Start the cleanup sweep of every limiter."""
        for limiter in self._limiters.values():
            await limiter.start()
        self._logger.info("registry_started", limiters=len(self._limiters))

    async def stop(self) -> None:
        """Stop every limiter sweep."""
        for limiter in self._limiters.values():
            await limiter.stop()
        self._logger.info("registry_stopped")

    async def __aenter__(self) -> "SafeguardRegistry":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()
