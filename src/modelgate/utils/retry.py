from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Tuple, Type, TypeVar

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

T = TypeVar("T")


class IRetryStrategy(ABC, Generic[T]):
    """Abstract base class for retry strategies.

    Implementations define how to execute a callable with retries and backoff.
    """

    @abstractmethod
    def execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute a callable under a configured retry policy.

        Raises:
            Exception: The last exception encountered once attempts are exhausted.
        """
        raise NotImplementedError("Subclasses must implement this method.")


class ExponentialBackoffStrategy(IRetryStrategy[T]):
    """Retry strategy using tenacity's randomized exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else is
    raised on the first occurrence.

    Attributes:
        min_wait (float): Minimum wait in seconds before the first retry.
        max_wait (float): Maximum wait in seconds between retries.
        max_attempts (int): Total number of attempts, including the first.
        retry_on (Tuple[Type[BaseException], ...]): Exception types worth retrying.
    """

    def __init__(
        self,
        min_wait: float = 0.5,
        max_wait: float = 10.0,
        max_attempts: int = 3,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.max_attempts = max_attempts
        self.retry_on = retry_on

    def execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        @retry(
            wait=wait_random_exponential(min=self.min_wait, max=self.max_wait),
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception_type(self.retry_on),
            reraise=True,
        )
        def wrapped() -> T:
            return func(*args, **kwargs)

        return wrapped()


__all__ = ["IRetryStrategy", "ExponentialBackoffStrategy"]
