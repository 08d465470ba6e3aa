"""Cancellation error type.

Defines the public ``CancelledError`` used to signal cooperative cancellation
of a generation session.
"""

from __future__ import annotations


class CancelledError(RuntimeError):
    """Raised when an operation is cancelled cooperatively.

    Distinguishes caller-initiated cancellation from transport failures so the
    session controller never treats it as a resumable drop.
    """

__all__ = ["CancelledError"]
