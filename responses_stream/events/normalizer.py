"""Event normalizer: wire events -> output chunks.

Dispatch is a closed table keyed by the event's ``type``; unknown kinds fall
through to no output. Before a handler runs the event's ``sequence_number``
is checked against the session high-water mark: replayed events are dropped
and new ones advance the mark before any chunk is handed out.

Events arrive either as dicts decoded from SSE frames or as SDK objects;
both are reduced to mappings first.

Upstream error events raise ``ProviderError`` (code ``UPSTREAM``), which
ends the current connection attempt. The session controller decides whether
that is fatal.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from ..base.chunks import (
    REFUSAL_PREFIX,
    OutputChunk,
    ReasoningChunk,
    StatusChunk,
    StatusPhase,
    TextChunk,
)
from ..base.errors import ErrorCode, ProviderError
from ..base.models import ModelInfo
from ..session.state import SessionState
from ..usage.normalizer import as_mapping, normalize_usage

TEXT_DELTA_EVENTS = ("response.text.delta", "response.output_text.delta")
REASONING_DELTA_EVENTS = (
    "response.reasoning.delta",
    "response.reasoning_text.delta",
    "response.reasoning_summary.delta",
    "response.reasoning_summary_text.delta",
)
COMPLETION_EVENTS = ("response.done", "response.completed", "response.incomplete")
ERROR_EVENTS = ("response.error", "error", "response.failed")

Handler = Callable[["EventNormalizer", Mapping[str, Any]], List[OutputChunk]]


def upstream_error_message(event: Mapping[str, Any]) -> str:
    """Build the caller-facing message for an error event or failed response."""
    err = event.get("error")
    if not isinstance(err, Mapping):
        response = as_mapping(event.get("response"))
        err = response.get("error")
    message = None
    if isinstance(err, Mapping):
        message = err.get("message")
    elif isinstance(err, str):
        message = err
    message = message or event.get("message") or "Unknown error"
    return f"Responses API error: {message}"


def output_texts(response: Mapping[str, Any]) -> Dict[str, str]:
    """Collect full output and reasoning text from a response snapshot."""
    text: List[str] = []
    reasoning: List[str] = []
    for raw_item in response.get("output") or ():
        item = as_mapping(raw_item)
        kind = item.get("type")
        if kind == "message":
            for raw_part in item.get("content") or ():
                part = as_mapping(raw_part)
                if part.get("type") in ("output_text", "text") and isinstance(part.get("text"), str):
                    text.append(part["text"])
        elif kind == "text" and isinstance(item.get("text"), str):
            text.append(item["text"])
        elif kind == "reasoning":
            for key in ("summary", "content"):
                for raw_part in item.get(key) or ():
                    part = as_mapping(raw_part)
                    if isinstance(part.get("text"), str):
                        reasoning.append(part["text"])
            if isinstance(item.get("text"), str):
                reasoning.append(item["text"])
    return {"text": "".join(text), "reasoning": "".join(reasoning)}


def _unseen_suffix(full: str, delivered: str) -> str:
    """Part of ``full`` not yet delivered; empty if the two diverged."""
    if not delivered:
        return full
    if full.startswith(delivered):
        return full[len(delivered):]
    return ""


class EventNormalizer:
    """Stateful per-session normalizer.

    Parameters
    ----------
    state:
        The session's state; updated with sequence, id, tier and text
        accumulation as events are normalized.
    model:
        Optional model metadata used to price the usage chunk.
    """

    def __init__(self, state: SessionState, model: Optional[ModelInfo] = None) -> None:
        self.state = state
        self.model = model

    def normalize(self, raw_event: Any) -> List[OutputChunk]:
        """Normalize one event into zero or more chunks."""
        event = as_mapping(raw_event)
        if not event:
            return []
        sequence = event.get("sequence_number")
        if isinstance(sequence, int) and not isinstance(sequence, bool):
            if not self.state.accept_sequence(sequence):
                return []
        response = as_mapping(event.get("response"))
        if response:
            self.state.bind_response_id(response.get("id"))
            if response.get("service_tier"):
                self.state.service_tier = response["service_tier"]
        handler = _HANDLERS.get(event.get("type"))  # type: ignore[arg-type]
        if handler is None:
            return []
        return handler(self, event)

    def complete_from_snapshot(self, response: Mapping[str, Any], usage: Any = None) -> List[OutputChunk]:
        """Mark completion and emit undelivered output plus the usage chunk.

        Used for completion events and completed poll results. Text already
        delivered through deltas or snapshots is not repeated.
        """
        chunks: List[OutputChunk] = []
        texts = output_texts(response)
        reasoning = _unseen_suffix(texts["reasoning"], self.state.accumulated_reasoning_text)
        if reasoning:
            chunks.append(self._reasoning(reasoning))
        text = _unseen_suffix(texts["text"], self.state.accumulated_output_text)
        if text:
            chunks.append(self._text(text))
        self.state.completed = True
        if usage is None:
            usage = response.get("usage")
        if usage is not None and not self.state.usage_emitted:
            chunks.append(self.usage_chunk(usage))
        return chunks

    def usage_chunk(self, usage: Any) -> OutputChunk:
        """Price ``usage`` and mark the session's usage as delivered."""
        self.state.usage_emitted = True
        return normalize_usage(usage, self.model, self.state.service_tier)

    def status(self, phase: StatusPhase) -> List[OutputChunk]:
        """Status chunk for ``phase`` when it changed; background sessions only."""
        if not self.state.background or not self.state.status_changed(phase):
            return []
        return [StatusChunk(phase=phase, response_id=self.state.response_id)]

    # Chunk constructors that keep the accumulation in step with delivery.
    def _text(self, content: str) -> TextChunk:
        self.state.accumulated_output_text += content
        return TextChunk(content)

    def _reasoning(self, content: str) -> ReasoningChunk:
        self.state.accumulated_reasoning_text += content
        return ReasoningChunk(content)

    # Handlers -----------------------------------------------------------
    def _on_text_delta(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        delta = event.get("delta")
        if not isinstance(delta, str) or not delta:
            return []
        self.state.saw_text_delta = True
        return [self._text(delta)]

    def _on_reasoning_delta(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        delta = event.get("delta")
        if not isinstance(delta, str) or not delta:
            return []
        self.state.saw_reasoning_delta = True
        return [self._reasoning(delta)]

    def _on_refusal_delta(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        delta = event.get("delta")
        if not isinstance(delta, str) or not delta:
            return []
        return [TextChunk(REFUSAL_PREFIX + delta)]

    def _on_item_added(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        item = as_mapping(event.get("item"))
        kind = item.get("type")
        if kind == "text" and isinstance(item.get("text"), str) and item["text"]:
            return [self._text(item["text"])]
        if kind == "reasoning" and isinstance(item.get("text"), str) and item["text"]:
            return [self._reasoning(item["text"])]
        if kind == "message":
            chunks: List[OutputChunk] = []
            for raw_part in item.get("content") or ():
                part = as_mapping(raw_part)
                if part.get("type") in ("output_text", "text") and isinstance(part.get("text"), str) and part["text"]:
                    chunks.append(self._text(part["text"]))
            return chunks
        return []

    def _on_text_done(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        text = event.get("text")
        if self.state.saw_text_delta or not isinstance(text, str) or not text:
            return []
        return [self._text(text)]

    def _on_reasoning_done(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        text = event.get("text")
        if self.state.saw_reasoning_delta or not isinstance(text, str) or not text:
            return []
        return [self._reasoning(text)]

    def _on_completed(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        response = as_mapping(event.get("response"))
        usage = response.get("usage")
        if usage is None:
            usage = event.get("usage")
        return self.complete_from_snapshot(response, usage)

    def _on_queued(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        return self.status(StatusPhase.QUEUED)

    def _on_in_progress(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        return self.status(StatusPhase.IN_PROGRESS)

    def _on_error(self, event: Mapping[str, Any]) -> List[OutputChunk]:
        raise ProviderError(
            code=ErrorCode.UPSTREAM,
            message=upstream_error_message(event),
            provider="responses",
            retryable=self.state.background,
        )


_HANDLERS: Dict[str, Handler] = {
    **{name: EventNormalizer._on_text_delta for name in TEXT_DELTA_EVENTS},
    **{name: EventNormalizer._on_reasoning_delta for name in REASONING_DELTA_EVENTS},
    "response.refusal.delta": EventNormalizer._on_refusal_delta,
    "response.output_item.added": EventNormalizer._on_item_added,
    "response.output_text.done": EventNormalizer._on_text_done,
    "response.reasoning_summary_text.done": EventNormalizer._on_reasoning_done,
    **{name: EventNormalizer._on_completed for name in COMPLETION_EVENTS},
    "response.queued": EventNormalizer._on_queued,
    "response.in_progress": EventNormalizer._on_in_progress,
    **{name: EventNormalizer._on_error for name in ERROR_EVENTS},
}


__all__ = [
    "COMPLETION_EVENTS",
    "ERROR_EVENTS",
    "EventNormalizer",
    "REASONING_DELTA_EVENTS",
    "TEXT_DELTA_EVENTS",
    "output_texts",
    "upstream_error_message",
]
