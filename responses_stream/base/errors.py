"""Unified error taxonomy public surface.

This module re-exports the one-class-per-file implementations under
``responses_stream.base.errors_parts`` to keep a stable import path.
"""

from .errors_parts.error_code import ErrorCode
from .errors_parts.provider_error import ProviderError
from .errors_parts.classification import (
    classify_exception,
    code_for_status,
    http_error_message,
    is_retryable_status,
    request_id_from_headers,
)

__all__ = [
    "ErrorCode",
    "ProviderError",
    "classify_exception",
    "code_for_status",
    "http_error_message",
    "is_retryable_status",
    "request_id_from_headers",
]
