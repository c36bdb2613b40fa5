"""
Bounded retry and run deadlines.

Adapters wrap idempotent calls (GET, list, describe) in with_retry; mutating
calls are never retried. Every network call consults the run's Deadline so
a caller can bound the total run time.
"""

import random
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, TypeVar

from .errors import DeadlineExceededError, is_retryable
from .logger import get_logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


class Deadline:
    """
    Time budget for a whole reconciliation run.

    A Deadline created with seconds=None never expires.
    """

    def __init__(
        self,
        seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self.seconds = seconds
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, operation: str = "operation", provider: str = "API") -> None:
        """
        Raise if the budget is spent.

        Args:
            operation: Description used in the error message
            provider: Provider name carried on the error

        Raises:
            DeadlineExceededError: If no time remains
        """
        if self.expired:
            raise DeadlineExceededError(
                f"Deadline of {self.seconds}s exceeded before {operation}",
                provider=provider,
            )

    def timeout(self, default: float) -> float:
        """
        Clamp a per-request timeout to the remaining budget.

        Args:
            default: Timeout to use when the budget allows it

        Returns:
            Timeout in seconds
        """
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)


class Backoff(ABC):
    """Delay policy between retry attempts."""

    @abstractmethod
    def delay(self, attempt: int) -> float:
        """
        Seconds to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed
        """
        pass


class LinearBackoff(Backoff):
    """Wait base * attempt seconds."""

    def __init__(self, base: float = 2.0):
        self.base = base

    def delay(self, attempt: int) -> float:
        return self.base * attempt


class ExponentialBackoff(Backoff):
    """
    Wait base * 2^(attempt-1) seconds, capped, with optional full jitter.
    """

    def __init__(self, base: float = 1.0, cap: float = 30.0, jitter: bool = False):
        self.base = base
        self.cap = cap
        self.jitter = jitter

    def delay(self, attempt: int) -> float:
        delay = min(self.cap, self.base * (2 ** (attempt - 1)))
        if self.jitter:
            delay = random.uniform(0, delay)
        return delay


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: Optional[Backoff] = None,
    retry_on: Callable[[BaseException], bool] = is_retryable,
    deadline: Optional[Deadline] = None,
    description: str = "request",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run an operation, retrying retryable failures a bounded number of times.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total attempts including the first (at least 1)
        backoff: Delay policy (defaults to ExponentialBackoff())
        retry_on: Predicate deciding whether an exception is retryable
        deadline: Optional run deadline; no retry starts past it
        description: Name of the operation for log messages
        sleep: Sleep function (injectable for tests)

    Returns:
        The operation's return value

    Raises:
        The last exception raised by the operation, or DeadlineExceededError
        when the deadline leaves no room for another attempt
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    logger = get_logger()
    backoff = backoff or ExponentialBackoff()
    deadline = deadline or Deadline.unbounded()

    attempt = 0
    while True:
        attempt += 1
        deadline.check(description)
        try:
            return operation()
        except Exception as e:
            if attempt >= max_attempts or not retry_on(e):
                raise

            delay = backoff.delay(attempt)
            remaining = deadline.remaining()
            if remaining is not None and delay >= remaining:
                raise DeadlineExceededError(
                    f"No time left to retry {description} after: {e}",
                    cause=e,
                ) from e

            logger.warning(
                f"{description} failed (attempt {attempt}/{max_attempts}), "
                f"retrying in {delay:.1f}s: {e}"
            )
            sleep(delay)
