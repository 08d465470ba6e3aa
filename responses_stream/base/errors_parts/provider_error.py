"""
Structured error exception type.

Wraps transport, HTTP and upstream failures with a normalized `ErrorCode` for
consistent handling, retry logic, and structured logging.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .error_code import ErrorCode


@dataclass
class ProviderError(Exception):
    """Represents a structured error with a normalized error code.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Human-readable error message suitable for logging.
        provider: Provider key where the error originated (e.g., ``"openai"``).
        model: Optional model name associated with the failure.
        retryable: Hint for upstream retry logic (not authoritative).
        raw: Optional original exception for diagnostics.
        status: HTTP status code when the failure came from an HTTP response.
        request_id: Upstream request identifier (``x-request-id``) if known.
    """

    code: ErrorCode
    message: str
    provider: str
    model: Optional[str] = None
    retryable: bool = False
    raw: Optional[Exception] = None
    status: Optional[int] = None
    request_id: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        """Return a compact string combining provider, model, code, and message."""
        text = f"{self.provider}:{self.model or '-'} {self.code.value}: {self.message}"
        if self.request_id:
            text += f" (request_id={self.request_id})"
        return text


__all__ = ["ProviderError"]
