"""
Immutable generation request value.

A ``GenerationRequest`` is constructed once per call and never mutated. The
session controller may rebuild the wire payload from it several times (start
retries, continuation fallback), which is safe only because the value and the
builder are both deterministic.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional, Tuple

from .turn import Turn

ReasoningEffort = Literal["minimal", "low", "medium", "high", "xhigh", "disabled"]
Verbosity = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class GenerationRequest:
    """One generation call.

    Attributes:
        model: Model identifier sent on the wire.
        turns: Ordered conversation turns.
        instructions: Top-level instructions (system prompt).
        reasoning_effort: Requested effort; ``"disabled"`` removes reasoning.
        verbosity: Requested output verbosity (gated by capabilities).
        service_tier: Requested named service tier (e.g. ``"flex"``).
        background: Explicit background-mode request. Background mode runs
            when this is ``True`` or the model defaults to it; ``False`` does
            not switch off a model default.
        store: Caller storage preference, on unless set to ``False``.
            Ignored (forced ``True``) under background mode.
        temperature: Sampling temperature (gated by capabilities).
        max_output_tokens: Output cap; falls back to the model default.
        previous_response_id: Continuation id of a prior stored response.
    """

    model: str
    turns: Tuple[Turn, ...]
    instructions: str = ""
    reasoning_effort: Optional[ReasoningEffort] = None
    verbosity: Optional[Verbosity] = None
    service_tier: Optional[str] = None
    background: Optional[bool] = None
    store: bool = True
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    previous_response_id: Optional[str] = None

    def without_continuation(self) -> "GenerationRequest":
        """Return a copy with ``previous_response_id`` cleared."""
        return replace(self, previous_response_id=None)


__all__ = ["GenerationRequest", "ReasoningEffort", "Verbosity"]
