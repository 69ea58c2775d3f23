"""Tests for the sliding-window RateLimiter and BackoffPolicy."""

import random

import pytest

from factcheck_orchestrator.exceptions import ConfigurationError
from factcheck_orchestrator.queueing.backoff import JITTER_MAX, JITTER_MIN, BackoffPolicy
from factcheck_orchestrator.queueing.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_allows_up_to_limit(self):
        clock = FakeClock()
        limiter = RateLimiter(3, window=60.0, clock=clock)
        for _ in range(3):
            assert limiter.allow()
            limiter.record()
        assert not limiter.allow()
        assert limiter.in_window == 3

    def test_window_slides(self):
        """Dispatches older than the window stop counting."""
        clock = FakeClock()
        limiter = RateLimiter(2, window=60.0, clock=clock)
        limiter.record()
        clock.now += 30
        limiter.record()
        assert not limiter.allow()

        clock.now += 30.5
        assert limiter.allow()
        assert limiter.in_window == 1

    def test_time_until_available(self):
        clock = FakeClock()
        limiter = RateLimiter(1, window=10.0, clock=clock)
        assert limiter.time_until_available() == 0.0
        limiter.record()
        clock.now += 4
        assert limiter.time_until_available() == pytest.approx(6.0)

    @pytest.mark.parametrize("limit", [None, 0])
    def test_disabled(self, limit):
        limiter = RateLimiter(limit)
        for _ in range(100):
            limiter.record()
        assert limiter.enabled is False
        assert limiter.allow()
        assert limiter.in_window == 0

    def test_allow_does_not_record(self):
        limiter = RateLimiter(1, clock=FakeClock())
        assert limiter.allow()
        assert limiter.allow()
        assert limiter.in_window == 0

    def test_reset(self):
        limiter = RateLimiter(1, clock=FakeClock())
        limiter.record()
        limiter.reset()
        assert limiter.allow()

    def test_invalid_arguments(self):
        with pytest.raises(ConfigurationError):
            RateLimiter(-1)
        with pytest.raises(ConfigurationError):
            RateLimiter(5, window=0)


class TestBackoffPolicy:
    """Tests for BackoffPolicy."""

    def test_exponential_growth(self):
        policy = BackoffPolicy(base=1.0, factor=2.0, max_delay=15.0)
        assert [policy.delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 8.0, 15.0]

    def test_monotonic_and_bounded(self):
        policy = BackoffPolicy(base=0.5, factor=1.5, max_delay=5.0)
        delays = [policy.delay(n) for n in range(50)]
        assert delays == sorted(delays)
        assert max(delays) == 5.0

    def test_large_counter_does_not_overflow(self):
        policy = BackoffPolicy(base=1.0, factor=2.0, max_delay=15.0)
        assert policy.delay(5000) == 15.0
        assert policy.jittered_delay(5000) == 15.0

    def test_zero_base(self):
        policy = BackoffPolicy(base=0.0, factor=2.0, max_delay=0.0)
        assert policy.delay(10) == 0.0

    def test_jitter_range(self):
        """Jitter scales the delay by a factor in [0.85, 1.15]."""
        policy = BackoffPolicy(base=1.0, factor=2.0, max_delay=100.0)
        rng = random.Random(42)
        for _ in range(200):
            delay = policy.jittered_delay(2, rng)
            assert 4.0 * JITTER_MIN <= delay <= 4.0 * JITTER_MAX

    def test_jitter_never_exceeds_max(self):
        policy = BackoffPolicy(base=1.0, factor=2.0, max_delay=4.0)
        rng = random.Random(7)
        assert all(policy.jittered_delay(2, rng) <= 4.0 for _ in range(200))

    def test_invalid(self):
        with pytest.raises(ConfigurationError):
            BackoffPolicy(base=-1.0)
        with pytest.raises(ConfigurationError):
            BackoffPolicy(factor=0.5)
        with pytest.raises(ConfigurationError):
            BackoffPolicy(base=2.0, max_delay=1.0)
