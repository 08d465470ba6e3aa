"""
Error classification helpers mapping exceptions to normalized ErrorCode values.

Implements HTTP status extraction, status-to-code mapping, user-facing HTTP
error messages, and message-based heuristics as a fallback for exceptions
raised by the ``openai`` SDK or plain ``httpx`` transports.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from .error_code import ErrorCode
from .provider_error import ProviderError


def _extract_status(exc: Exception) -> Optional[int]:
    """Attempt to extract an HTTP status code from an exception.

    Supported attribute shapes (checked in order):
    - ``exc.status_code``
    - ``exc.status``
    - ``exc.response.status_code``
    Returns ``None`` if no valid status can be found.
    """
    for attr in ("status_code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


_HTTP_STATUS_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION,
    401: ErrorCode.AUTH,
    403: ErrorCode.AUTH,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION,
    429: ErrorCode.RATE_LIMIT,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.TRANSIENT,
    503: ErrorCode.UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
}

_HTTP_MESSAGES: Dict[int, str] = {
    400: "Invalid request to Responses API",
    401: "Authentication failed",
    403: "Access denied",
    404: "Responses API endpoint not found",
    429: "Rate limit exceeded",
}

_BODY_SNIPPET_LIMIT = 500


def code_for_status(status: int) -> ErrorCode:
    """Return the normalized code for an HTTP status (5xx default to server error)."""
    if status in _HTTP_STATUS_MAP:
        return _HTTP_STATUS_MAP[status]
    if status >= 500:
        return ErrorCode.SERVER_ERROR
    return ErrorCode.UNKNOWN


def is_retryable_status(status: int) -> bool:
    """5xx and 429 are worth retrying; other 4xx never are."""
    return status >= 500 or status in (408, 429)


def _upstream_detail(body: Any) -> Optional[str]:
    """Extract ``error.message`` from a JSON body or return a compact snippet."""
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        text = body.strip()
        if not text:
            return None
        try:
            body = json.loads(text)
        except ValueError:
            return " ".join(text.split())[:_BODY_SNIPPET_LIMIT]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and isinstance(err.get("message"), str):
            return err["message"]
        if isinstance(err, str):
            return err
        if isinstance(body.get("message"), str):
            return body["message"]
    return None


def http_error_message(status: int, body: Any = None) -> str:
    """Return the user-facing message for an HTTP failure.

    The category text is derived from the status; when the upstream body
    carries an error message (or any readable text) it is appended after a
    colon so support can see what the server actually said.
    """
    if status in _HTTP_MESSAGES:
        base = _HTTP_MESSAGES[status]
    elif status >= 500:
        base = "OpenAI service error"
    else:
        base = f"Responses API request failed with status {status}"
    detail = _upstream_detail(body)
    return f"{base}: {detail}" if detail else base


def request_id_from_headers(headers: Any) -> Optional[str]:
    """Return the upstream request id from a response header mapping."""
    if headers is None:
        return None
    for name in ("x-request-id", "openai-request-id"):
        val = headers.get(name)
        if val:
            return str(val)
    return None


def _heuristic_from_message(msg: str) -> Optional[ErrorCode]:  # pragma: no cover - simple mapping
    """Substring heuristic mapping for non-HTTP exceptions."""
    PATTERN_GROUPS = (
        (ErrorCode.RATE_LIMIT, ("rate", "limit")),
        (ErrorCode.TIMEOUT, ("timeout",)),
        (ErrorCode.TIMEOUT, ("timed out",)),
        (ErrorCode.AUTH, ("unauthorized",)),
        (ErrorCode.AUTH, ("api key",)),
        (ErrorCode.NOT_FOUND, ("not found",)),
        (ErrorCode.UNAVAILABLE, ("unavailable",)),
        (ErrorCode.TRANSIENT, ("connection reset",)),
        (ErrorCode.TRANSIENT, ("connection aborted",)),
        (ErrorCode.VALIDATION, ("invalid",)),
        (ErrorCode.SERVER_ERROR, ("server error",)),
    )
    for code, patterns in PATTERN_GROUPS:
        if code is ErrorCode.RATE_LIMIT:
            if all(p in msg for p in patterns):
                return code
            continue
        if any(p in msg for p in patterns):
            return code
    return None


def classify_exception(exc: Exception) -> ErrorCode:
    """Classify an exception into a normalized :class:`ErrorCode`.

    Precedence:
        1. ProviderError passthrough.
        2. Timeout exceptions (builtin and ``httpx``).
        3. HTTP status mapping.
        4. ``httpx`` transport errors (connection drops, protocol errors).
        5. Substring heuristics.
        6. ``UNKNOWN`` fallback.
    """
    if isinstance(exc, ProviderError):
        return exc.code
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ErrorCode.TIMEOUT
    status = _extract_status(exc)
    if status is not None:
        return code_for_status(status)
    if isinstance(exc, (httpx.TransportError, httpx.StreamError, ConnectionError)):
        return ErrorCode.TRANSIENT
    code = _heuristic_from_message(str(exc).lower())
    return code if code is not None else ErrorCode.UNKNOWN


__all__ = [
    "classify_exception",
    "code_for_status",
    "http_error_message",
    "is_retryable_status",
    "request_id_from_headers",
    "_extract_status",
    "_HTTP_STATUS_MAP",
]
