"""Resilience helpers (retry policy and backoff)."""

from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, retry

__all__ = ["DEFAULT_RETRY_CONFIG", "RetryConfig", "retry"]
