"""Tests for the fixed-window rate limiter."""

import asyncio

import pytest
from structlog.testing import capture_logs

from safeguards.resilience import RateLimiter, RateLimiterStats, RateLimitResult


@pytest.fixture
def limiter(clock):
    """Limiter allowing 2 requests per 60 second window."""
    return RateLimiter("webhook", max_requests=2, window=60.0, clock=clock)


class TestCheckLimit:
    """Tests for check_limit."""

    def test_first_calls_allowed_with_decreasing_remaining(self, clock):
        """Test that the first M calls are allowed with M-1..0 remaining."""
        limiter = RateLimiter("api", max_requests=5, window=60.0, clock=clock)

        results = [limiter.check_limit("x") for _ in range(5)]

        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [4, 3, 2, 1, 0]
        assert {r.reset_time for r in results} == {clock.now + 60.0}

    def test_call_over_quota_denied_without_counting(self, limiter, clock):
        """Test that the (M+1)th call is denied and not counted."""
        limiter.check_limit("x")
        limiter.check_limit("x")

        denied = limiter.check_limit("x")
        limiter.check_limit("x")

        assert denied == RateLimitResult(allowed=False, remaining=0, reset_time=clock.now + 60.0)
        assert limiter.get_stats().total_requests == 2

    def test_example_sequence(self, limiter, clock):
        """Test two allowed calls for x, a denial, and an independent y."""
        first = limiter.check_limit("x")
        second = limiter.check_limit("x")
        clock.advance(30.0)
        third = limiter.check_limit("x")
        other = limiter.check_limit("y")

        assert (first.allowed, first.remaining) == (True, 1)
        assert (second.allowed, second.remaining) == (True, 0)
        assert (third.allowed, third.remaining) == (False, 0)
        assert (other.allowed, other.remaining) == (True, 1)

    def test_window_restarts_at_reset_time(self, limiter, clock):
        """Test that a call at reset_time starts a fresh window."""
        start = clock.now
        limiter.check_limit("x")
        limiter.check_limit("x")
        assert not limiter.check_limit("x").allowed

        clock.advance(60.0)
        result = limiter.check_limit("x")

        assert result.allowed
        assert result.remaining == 1
        assert result.reset_time == start + 120.0

    def test_window_expiry_is_per_key(self, limiter, clock):
        """Test that one key's window expiring leaves the other alone."""
        limiter.check_limit("x")
        clock.advance(30.0)
        limiter.check_limit("y")
        limiter.check_limit("y")

        clock.advance(30.0)

        assert limiter.check_limit("x").remaining == 1
        assert not limiter.check_limit("y").allowed

    def test_keys_are_independent(self, limiter):
        """Test that exhausting one key does not affect another."""
        for _ in range(3):
            limiter.check_limit("+15550001111")

        result = limiter.check_limit("+15550002222")

        assert result.allowed
        assert result.remaining == 1

    def test_boundary_burst_is_allowed(self, limiter, clock):
        """Test that calls straddling a window boundary can exceed the quota."""
        limiter.check_limit("x")
        clock.advance(59.5)
        assert limiter.check_limit("x").allowed

        clock.advance(0.5)

        assert limiter.check_limit("x").allowed
        assert limiter.check_limit("x").allowed
        assert not limiter.check_limit("x").allowed


class TestStatsAndReset:
    """Tests for get_stats and reset."""

    def test_get_stats(self, limiter):
        """Test that stats count keys and tracked requests."""
        limiter.check_limit("a")
        limiter.check_limit("a")
        limiter.check_limit("a")
        limiter.check_limit("b")

        assert limiter.get_stats() == RateLimiterStats(
            name="webhook", active_keys=2, total_requests=3
        )

    def test_stats_to_dict(self):
        """Test stats serialization."""
        stats = RateLimiterStats(name="claude", active_keys=4, total_requests=12)

        assert stats.to_dict() == {"name": "claude", "active_keys": 4, "total_requests": 12}

    def test_reset_makes_every_key_fresh(self, limiter):
        """Test that reset clears all identifiers."""
        limiter.check_limit("x")
        limiter.check_limit("x")
        limiter.check_limit("y")

        limiter.reset()

        assert limiter.get_stats().active_keys == 0
        result = limiter.check_limit("x")
        assert result.allowed
        assert result.remaining == 1


class TestCleanup:
    """Tests for expired window cleanup."""

    def test_cleanup_removes_only_expired(self, limiter, clock):
        """Test that cleanup drops expired entries and keeps live ones."""
        limiter.check_limit("old")
        clock.advance(45.0)
        limiter.check_limit("new")
        clock.advance(15.0)

        removed = limiter.cleanup()

        assert removed == 1
        assert limiter.get_stats().active_keys == 1
        assert limiter.check_limit("new").remaining == 0

    def test_cleanup_with_nothing_expired(self, limiter):
        """Test that cleanup is a no-op when every window is live."""
        limiter.check_limit("x")

        assert limiter.cleanup() == 0
        assert limiter.get_stats().active_keys == 1

    @pytest.mark.asyncio
    async def test_background_sweep(self, clock):
        """Test that the started sweep removes expired entries."""
        limiter = RateLimiter("knowledge-base", max_requests=5, window=0.01, clock=clock)
        limiter.check_limit("x")
        clock.advance(1.0)

        await limiter.start()
        assert limiter.is_running
        await asyncio.sleep(0.05)
        await limiter.stop()

        assert not limiter.is_running
        assert limiter.get_stats().active_keys == 0

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, limiter):
        """Test that a second start keeps the existing sweep."""
        await limiter.start()
        task = limiter._cleanup_task

        await limiter.start()

        assert limiter._cleanup_task is task
        await limiter.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, limiter):
        """Test that stopping an idle limiter does nothing."""
        await limiter.stop()

        assert not limiter.is_running


class TestLogging:
    """Tests for diagnostic log events."""

    def test_quota_warnings_are_logged(self, clock):
        """Test warning and exceeded events near and over the quota."""
        with capture_logs() as logs:
            limiter = RateLimiter("claude", max_requests=5, window=60.0, clock=clock)
            for _ in range(6):
                limiter.check_limit("x")

        events = [entry["event"] for entry in logs]
        assert events == ["rate_limit_warning"] * 3 + ["rate_limit_exceeded"]
        assert logs[-1]["limiter"] == "claude"
        assert logs[-1]["identifier"] == "x"
