"""Unified timeout configuration for network attempts.

Every network attempt made by a session (initial connect, each reconnect,
each poll request, non-streaming calls) carries its own independent timeout.
This module centralizes those values and converts them into ``httpx.Timeout``
objects so no call site hard-codes numeric literals.

Key Components
--------------
TimeoutConfig
    Frozen dataclass capturing normalized timeout values in seconds.

get_timeout_config()
    Returns a process-cached configuration, parsing environment overrides on
    first use (and again whenever the relevant variables change). Supported
    environment variables (all optional):
        RESPONSES_TIMEOUT_CONNECT_SECONDS
        RESPONSES_TIMEOUT_READ_SECONDS
        RESPONSES_TIMEOUT_POLL_SECONDS
        RESPONSES_TIMEOUT_HTTP_SECONDS

Failure Modes
-------------
Expiry surfaces as ``httpx.TimeoutException`` from the transport, which the
error classifier maps to ``ErrorCode.TIMEOUT``. The session controller treats
that exactly like a dropped connection.
"""
from __future__ import annotations

from dataclasses import dataclass
import os

import httpx


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds).

    Attributes:
        connect_timeout_seconds: Time allowed to establish a TCP/TLS connection.
        stream_timeout_seconds: Idle timeout while waiting for the next SSE
            frame on a live or resumed stream.
        poll_timeout_seconds: Timeout for a single status poll request.
        http_timeout_seconds: Timeout for non-streaming requests.
    """

    connect_timeout_seconds: float = 10.0
    stream_timeout_seconds: float = 120.0
    poll_timeout_seconds: float = 30.0
    http_timeout_seconds: float = 600.0

    def for_stream(self) -> httpx.Timeout:
        """Timeout for opening or resuming an event stream."""
        return httpx.Timeout(self.stream_timeout_seconds, connect=self.connect_timeout_seconds)

    def for_poll(self) -> httpx.Timeout:
        """Timeout for one poll request."""
        return httpx.Timeout(self.poll_timeout_seconds, connect=self.connect_timeout_seconds)

    def for_request(self) -> httpx.Timeout:
        """Timeout for a non-streaming request."""
        return httpx.Timeout(self.http_timeout_seconds, connect=self.connect_timeout_seconds)


_ENV_NAMES = (
    "RESPONSES_TIMEOUT_CONNECT_SECONDS",
    "RESPONSES_TIMEOUT_READ_SECONDS",
    "RESPONSES_TIMEOUT_POLL_SECONDS",
    "RESPONSES_TIMEOUT_HTTP_SECONDS",
)

_CACHED: TimeoutConfig | None = None
_ENV_GUARD: str | None = None


def _parse_env_float(name: str, default: float) -> float:
    """Parse a positive float from environment variable ``name``.

    Returns ``default`` if the variable is unset, not a valid float, or not
    positive.
    """
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else default


def get_timeout_config() -> TimeoutConfig:
    """Return the process-cached `TimeoutConfig` instance."""
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - documented module cache
    guard = "/".join(os.getenv(name, "") for name in _ENV_NAMES)
    if _CACHED is not None and _ENV_GUARD == guard:
        return _CACHED
    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        connect_timeout_seconds=_parse_env_float(_ENV_NAMES[0], defaults.connect_timeout_seconds),
        stream_timeout_seconds=_parse_env_float(_ENV_NAMES[1], defaults.stream_timeout_seconds),
        poll_timeout_seconds=_parse_env_float(_ENV_NAMES[2], defaults.poll_timeout_seconds),
        http_timeout_seconds=_parse_env_float(_ENV_NAMES[3], defaults.http_timeout_seconds),
    )
    _ENV_GUARD = guard
    return _CACHED


__all__ = [
    "TimeoutConfig",
    "get_timeout_config",
]
