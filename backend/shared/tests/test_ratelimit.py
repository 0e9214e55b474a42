"""Tests for the sliding window rate limiter."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from shared.ratelimit import AUTH_POLICY, GENERAL_POLICY, RateLimitPolicy, SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return SlidingWindowRateLimiter(max_attempts=3, window_seconds=60, clock=clock)


class TestSlidingWindowRateLimiter:
    def test_allows_up_to_max_attempts(self, limiter):
        assert [limiter.is_allowed("k") for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self, limiter):
        for _ in range(3):
            limiter.is_allowed("a")
        assert not limiter.is_allowed("a")
        assert limiter.is_allowed("b")

    def test_denied_attempts_are_not_recorded(self, limiter, clock):
        for _ in range(3):
            limiter.is_allowed("k")
        clock.advance(30)
        assert not limiter.is_allowed("k")
        clock.advance(30)
        # the three recorded attempts expired; the denied one never counted
        assert limiter.check("k").remaining == 2

    def test_window_slides(self, limiter, clock):
        limiter.is_allowed("k")
        clock.advance(20)
        limiter.is_allowed("k")
        limiter.is_allowed("k")
        assert not limiter.is_allowed("k")

        clock.advance(41)
        assert limiter.is_allowed("k")
        assert not limiter.is_allowed("k")

    def test_check_reports_remaining_and_retry_after(self, limiter, clock):
        first = limiter.check("k")
        assert first.allowed
        assert first.limit == 3
        assert first.remaining == 2
        assert first.retry_after == 0.0

        limiter.check("k")
        limiter.check("k")
        clock.advance(15)
        denied = limiter.check("k")
        assert not denied.allowed
        assert denied.remaining == 0
        assert denied.retry_after == pytest.approx(45)

    def test_get_remaining_time(self, limiter, clock):
        assert limiter.get_remaining_time("k") == 0.0
        for _ in range(3):
            limiter.is_allowed("k")
        clock.advance(10)
        assert limiter.get_remaining_time("k") == pytest.approx(50)

    def test_get_remaining_time_does_not_record(self, limiter):
        for _ in range(5):
            limiter.get_remaining_time("k")
        assert limiter.is_allowed("k")

    def test_reset_forgets_key(self, limiter):
        for _ in range(3):
            limiter.is_allowed("k")
        limiter.reset("k")
        assert limiter.is_allowed("k")

    def test_from_policy(self, clock):
        limiter = SlidingWindowRateLimiter.from_policy(RateLimitPolicy(2, 10), clock=clock)
        assert limiter.max_attempts == 2
        assert limiter.window_seconds == 10

    @pytest.mark.parametrize(("attempts", "window"), [(0, 60), (3, 0), (3, -1)])
    def test_rejects_invalid_configuration(self, attempts, window):
        with pytest.raises(ValueError, match="must be"):
            SlidingWindowRateLimiter(attempts, window)

    def test_logs_when_limit_exceeded(self, limiter, caplog):
        for _ in range(4):
            limiter.is_allowed("signin_a@b.co")
        assert "rate limit exceeded" in caplog.text

    def test_concurrent_attempts_admit_exactly_max(self):
        threads = 16
        barrier = threading.Barrier(threads)

        def yielding_clock() -> float:
            # Yield mid-check so unsynchronised access would interleave
            time.sleep(0)
            return 1000.0

        limiter = SlidingWindowRateLimiter(max_attempts=5, window_seconds=60, clock=yielding_clock)

        def attempt(_: int) -> bool:
            barrier.wait()
            return limiter.is_allowed("signin_race@example.com")

        with ThreadPoolExecutor(max_workers=threads) as pool:
            outcomes = list(pool.map(attempt, range(threads)))

        assert outcomes.count(True) == 5
        assert outcomes.count(False) == threads - 5


class TestPolicies:
    def test_default_policies(self):
        assert AUTH_POLICY == RateLimitPolicy(max_attempts=5, window_seconds=900)
        assert GENERAL_POLICY == RateLimitPolicy(max_attempts=10, window_seconds=60)
