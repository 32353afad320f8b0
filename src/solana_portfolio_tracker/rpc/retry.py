"""Rate limiting, deadlines and retry with capped exponential backoff for provider calls."""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, TypeVar

from solana_portfolio_tracker.core.exceptions import (
    RETRYABLE_ERRORS,
    DeadlineExceededError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryConfig:
    """
    Configuration for retry behavior.

    Parameters
    ----------
    max_retries : int
        Maximum number of retry attempts after the first call
    base_delay : float
        Initial delay in seconds before first retry
    max_delay : float
        Maximum delay between retries
    exponential_base : float
        Base for exponential backoff calculation

    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Current attempt number (0-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)


class RateLimiter:
    """
    Enforces a minimum interval between call issuance.

    One instance is shared by every client of the same provider class, so
    concurrent callers are serialized at the point of issuance. Callers are
    delayed, never rejected.

    Parameters
    ----------
    min_interval : float
        Minimum seconds between two consecutive calls
    clock : Callable[[], float]
        Monotonic time source
    sleep : Callable[[float], None]
        Sleep function

    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """
        Block until a call may be issued, then record it.

        Returns
        -------
        float
            Seconds spent waiting

        """
        with self._lock:
            now = self._clock()
            waited = 0.0
            if self._last_call is not None:
                remaining = self._last_call + self.min_interval - now
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
                    now = self._clock()
            self._last_call = now
            return waited


class ResilientApiClient:
    """
    Rate-limited, deadline-bounded, retried wrapper around provider calls.

    Rate-limit and transient network errors are retried up to
    ``retry_config.max_retries`` times with capped exponential backoff. Any
    other error propagates immediately; after the last attempt the last error
    propagates. No result is ever fabricated.

    Parameters
    ----------
    rate_limiter : RateLimiter
        Limiter shared by the provider class
    retry_config : RetryConfig | None
        Retry configuration
    deadline : float | None
        Seconds a single attempt may run before it is abandoned
    name : str
        Provider class name used in log messages
    sleep : Callable[[float], None]
        Sleep function used between retries

    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        retry_config: RetryConfig | None = None,
        deadline: float | None = None,
        name: str = "provider",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.retry_config = retry_config or RetryConfig()
        self.deadline = deadline
        self.name = name
        self._sleep = sleep
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def call(self, func: Callable[..., T], *args: Any, label: str | None = None, **kwargs: Any) -> T:
        """
        Execute a provider call under the rate limit, deadline and retry policy.

        Parameters
        ----------
        func : Callable[..., T]
            Provider call
        *args : Any
            Positional arguments for ``func``
        label : str | None
            Short description used in log messages
        **kwargs : Any
            Keyword arguments for ``func``

        Returns
        -------
        T
            Result of ``func``

        Raises
        ------
        RateLimitedError
            If the provider kept rate limiting after all retries
        TransientNetworkError
            If the call kept failing transiently (or timing out)
        Exception
            Any non-retryable error raised by ``func``

        """
        label = label or getattr(func, "__name__", "call")
        last_exception: Exception | None = None

        for attempt in range(self.retry_config.max_retries + 1):
            self.rate_limiter.wait()
            try:
                return self._run_with_deadline(func, args, kwargs)
            except RETRYABLE_ERRORS as e:
                last_exception = e

                # Don't retry on last attempt
                if attempt == self.retry_config.max_retries:
                    break

                delay = self.retry_config.get_delay(attempt)
                logger.debug(
                    "%s %s failed (attempt %d/%d): %s; retrying in %.1fs",
                    self.name,
                    label,
                    attempt + 1,
                    self.retry_config.max_retries + 1,
                    e,
                    delay,
                )
                self._sleep(delay)

        logger.warning(
            "%s %s failed after %d attempts: %s",
            self.name,
            label,
            self.retry_config.max_retries + 1,
            last_exception,
        )
        raise last_exception  # type: ignore[misc]

    def _run_with_deadline(self, func: Callable[..., T], args: tuple, kwargs: dict) -> T:
        if self.deadline is None:
            return func(*args, **kwargs)

        future = self._get_executor().submit(func, *args, **kwargs)
        try:
            return future.result(timeout=self.deadline)
        except FutureTimeoutError as e:
            future.cancel()
            msg = f"{self.name} call exceeded deadline of {self.deadline:.1f}s"
            raise DeadlineExceededError(msg) from e

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix=f"{self.name}-call")
            return self._executor

    def close(self) -> None:
        """Release the deadline worker pool without waiting for abandoned calls."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def __enter__(self) -> "ResilientApiClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
