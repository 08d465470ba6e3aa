"""Standardized retry policy and exponential backoff.

``RetryConfig`` owns the single backoff formula used across the package:
``base_delay * factor ** attempt``. The ``retry`` decorator applies it to the
start phase of a request, and the session controller reuses ``delay_for``
for its reconnect schedule.
"""
from __future__ import annotations

import functools
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, TypeVar

from ..errors import ErrorCode, ProviderError

T = TypeVar("T")


class AttemptLogger(Protocol):  # pragma: no cover - structural protocol
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        delay: float | None,
        error: ProviderError | None,
    ) -> None: ...


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float | None = 30.0
    retryable_codes: tuple[ErrorCode, ...] = (
        ErrorCode.TRANSIENT,
        ErrorCode.RATE_LIMIT,
        ErrorCode.TIMEOUT,
        ErrorCode.SERVER_ERROR,
        ErrorCode.UNAVAILABLE,
    )
    attempt_logger: AttemptLogger | None = None
    sleep: Callable[[float], None] | None = None

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (0-based)."""
        delay = self.base_delay * (self.factor**attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def delays(self) -> Iterable[float]:
        for attempt in range(self.max_attempts - 1):
            yield self.delay_for(attempt)


DEFAULT_RETRY_CONFIG = RetryConfig()


def retry(config: RetryConfig = DEFAULT_RETRY_CONFIG):
    """Decorate a call so retryable ``ProviderError`` failures are re-attempted.

    Up to ``config.max_attempts`` calls are made. Between attempts the
    wrapper sleeps ``config.delay_for(n)``. Errors whose code is not in
    ``retryable_codes`` propagate at once, as does any other exception
    type. ``attempt_logger`` sees every attempt: failures with the delay
    about to be slept (``None`` when giving up), success with no error.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            sleep = config.sleep or time.sleep
            attempts = max(1, config.max_attempts)
            attempt = 0
            while True:
                try:
                    result = func(*args, **kwargs)
                except ProviderError as exc:
                    can_retry = exc.code in config.retryable_codes and attempt + 1 < attempts
                    delay = config.delay_for(attempt) if can_retry else None
                    if config.attempt_logger:
                        config.attempt_logger(attempt=attempt, max_attempts=attempts, delay=delay, error=exc)
                    if delay is None:
                        raise
                    sleep(delay)
                    attempt += 1
                    continue
                if config.attempt_logger:
                    config.attempt_logger(attempt=attempt, max_attempts=attempts, delay=None, error=None)
                return result

        return wrapper

    return decorator


__all__ = [
    "AttemptLogger",
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "retry",
]
