"""Tests for rate limiting, retry with backoff and call deadlines."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from solana_portfolio_tracker.core.exceptions import (
    DeadlineExceededError,
    ProviderError,
    RateLimitedError,
    TransientNetworkError,
)
from solana_portfolio_tracker.rpc.retry import RateLimiter, RetryConfig


class TestRetryConfig:
    """Backoff delay schedule."""

    def test_default_schedule(self):
        """Delays double from the base delay and are capped."""
        config = RetryConfig()

        assert [config.get_delay(attempt) for attempt in range(5)] == [2.0, 4.0, 8.0, 10.0, 10.0]

    @pytest.mark.parametrize(
        "base_delay,max_delay,exponential_base",
        [(0.5, 3.0, 2.0), (1.0, 1.0, 2.0), (0.1, 60.0, 3.0)],
    )
    def test_delays_non_decreasing_and_capped(self, base_delay, max_delay, exponential_base):
        """Every schedule is monotonic and bounded by max_delay."""
        config = RetryConfig(base_delay=base_delay, max_delay=max_delay, exponential_base=exponential_base)
        delays = [config.get_delay(attempt) for attempt in range(10)]

        assert delays == sorted(delays)
        assert all(delay <= max_delay for delay in delays)


class TestRateLimiter:
    """Minimum spacing between issued calls."""

    def test_first_call_is_immediate(self, clock):
        """Nothing has been issued yet, so the first call does not wait."""
        limiter = RateLimiter(0.5, clock=clock, sleep=clock.sleep)

        assert limiter.wait() == 0.0
        assert clock.sleeps == []

    def test_back_to_back_calls_are_spaced(self, clock):
        """Consecutive calls are delayed to min_interval apart."""
        limiter = RateLimiter(0.5, clock=clock, sleep=clock.sleep)
        issued = []
        for _ in range(3):
            limiter.wait()
            issued.append(clock())

        assert clock.sleeps == [0.5, 0.5]
        assert all(later - earlier >= 0.5 for earlier, later in zip(issued, issued[1:], strict=False))

    def test_no_wait_when_interval_already_elapsed(self, clock):
        """A caller arriving late is not delayed."""
        limiter = RateLimiter(0.5, clock=clock, sleep=clock.sleep)
        limiter.wait()
        clock.advance(2)

        assert limiter.wait() == 0.0

    def test_concurrent_callers_are_serialized(self, clock):
        """Calls from many threads are delayed, never dropped."""
        limiter = RateLimiter(0.5, clock=clock, sleep=clock.sleep)

        with ThreadPoolExecutor(max_workers=4) as executor:
            list(executor.map(lambda _: limiter.wait(), range(8)))

        assert clock.sleeps == [0.5] * 7


class TestResilientApiClient:
    """Retry, propagation and deadline behaviour."""

    def test_returns_result(self, api):
        """A successful call is returned as-is, with arguments passed through."""
        assert api.call(lambda a, b=0: a + b, 2, b=3) == 5

    def test_retries_rate_limited_then_succeeds(self, api, clock):
        """Rate-limit errors are retried with backoff until the call succeeds."""
        outcomes = [RateLimitedError("429"), RateLimitedError("429"), "ok"]

        def flaky():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert api.call(flaky) == "ok"
        assert clock.sleeps == [1.0, 2.0]

    def test_retry_is_bounded(self, make_api, clock):
        """A provider that keeps rate limiting yields the error after max_retries retries."""
        api = make_api(max_retries=3)
        calls = []

        def always_limited():
            calls.append(1)
            raise RateLimitedError("slow down")

        with pytest.raises(RateLimitedError):
            api.call(always_limited)

        assert len(calls) == 4
        assert clock.sleeps == [1.0, 2.0, 4.0]

    def test_transient_errors_are_retried(self, api):
        """Network failures are retryable too."""
        outcomes = [TransientNetworkError("reset"), 42]

        def flaky():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert api.call(flaky) == 42

    @pytest.mark.parametrize("error", [ProviderError("bad request"), ValueError("bug")])
    def test_non_retryable_errors_propagate_immediately(self, api, clock, error):
        """Anything other than rate limiting or transient failures is not retried."""
        calls = []

        def broken():
            calls.append(1)
            raise error

        with pytest.raises(type(error)):
            api.call(broken)

        assert len(calls) == 1
        assert clock.sleeps == []

    def test_rate_limiter_applies_between_calls(self, make_api, clock):
        """Every call goes through the shared limiter."""
        api = make_api(min_interval=0.25)
        api.call(lambda: None)
        api.call(lambda: None)

        assert clock.sleeps == [0.25]

    def test_deadline_abandons_slow_call(self, make_api):
        """A call running past its deadline fails with a retryable deadline error."""
        api = make_api(max_retries=0, deadline=0.05)
        release = threading.Event()

        try:
            with pytest.raises(DeadlineExceededError) as exc_info:
                api.call(release.wait, 5)
        finally:
            release.set()
            api.close()

        assert isinstance(exc_info.value, TransientNetworkError)

    def test_deadline_allows_fast_call(self, make_api):
        """Calls finishing in time are unaffected by the deadline."""
        with make_api(deadline=5.0) as api:
            assert api.call(lambda: "done") == "done"
