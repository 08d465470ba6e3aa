"""Caller-visible output chunks.

A session's only observable output is an ordered sequence of these values.
Each class carries a ``type`` tag so callers can dispatch on
``chunk.type`` or use ``isinstance``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class StatusPhase(str, Enum):
    """Background lifecycle phases reported through ``StatusChunk``."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    RECONNECTING = "reconnecting"
    POLLING = "polling"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TextChunk:
    content: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ReasoningChunk:
    content: str
    type: str = field(default="reasoning", init=False)


@dataclass(frozen=True)
class StatusChunk:
    phase: StatusPhase
    response_id: Optional[str] = None
    mode: str = "background"
    type: str = field(default="status", init=False)


@dataclass(frozen=True)
class UsageChunk:
    """Canonical token usage for one completed response.

    ``input_tokens`` is the count as reported upstream; see
    ``responses_stream.usage`` for how cache tokens relate to it.
    """

    input_tokens: int
    output_tokens: int
    cache_write_tokens: Optional[int] = None
    cache_read_tokens: Optional[int] = None
    reasoning_tokens: Optional[int] = None
    total_cost: Optional[float] = None
    type: str = field(default="usage", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cache_write_tokens": self.cache_write_tokens,
            "cache_read_tokens": self.cache_read_tokens,
            "reasoning_tokens": self.reasoning_tokens,
            "total_cost": self.total_cost,
        }


@dataclass(frozen=True)
class ErrorChunk:
    message: str
    retryable: bool = False
    type: str = field(default="error", init=False)


OutputChunk = Union[TextChunk, ReasoningChunk, StatusChunk, UsageChunk, ErrorChunk]

REFUSAL_PREFIX = "[Refusal] "


__all__ = [
    "ErrorChunk",
    "OutputChunk",
    "REFUSAL_PREFIX",
    "ReasoningChunk",
    "StatusChunk",
    "StatusPhase",
    "TextChunk",
    "UsageChunk",
]
