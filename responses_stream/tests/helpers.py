"""Scripted fakes and event builders for session tests.

``FakeTransport`` replays scripted outcomes for each transport call, so the
controller's state machine can be exercised without network I/O. A scripted
stream is a list of events optionally followed by an exception raised after
the last event (a mid-stream drop).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from responses_stream.base.errors import ErrorCode, ProviderError


def drop_error(message: str = "connection reset") -> ProviderError:
    return ProviderError(code=ErrorCode.TRANSIENT, message=message, provider="fake", retryable=True)


def http_error(status: int, code: ErrorCode, message: str = "boom") -> ProviderError:
    return ProviderError(code=code, message=message, provider="fake", retryable=status >= 500, status=status)


def created(seq: int, rid: str = "resp_1", status: str = "queued") -> Dict[str, Any]:
    return {"type": "response.created", "sequence_number": seq, "response": {"id": rid, "status": status}}


def queued(seq: int, rid: str = "resp_1") -> Dict[str, Any]:
    return {"type": "response.queued", "sequence_number": seq, "response": {"id": rid, "status": "queued"}}


def in_progress(seq: int, rid: str = "resp_1") -> Dict[str, Any]:
    return {"type": "response.in_progress", "sequence_number": seq, "response": {"id": rid, "status": "in_progress"}}


def delta(seq: int, text: str) -> Dict[str, Any]:
    return {"type": "response.output_text.delta", "sequence_number": seq, "delta": text}


def reasoning(seq: int, text: str) -> Dict[str, Any]:
    return {"type": "response.reasoning_summary_text.delta", "sequence_number": seq, "delta": text}


def completed(
    seq: int,
    rid: str = "resp_1",
    usage: Optional[Mapping[str, Any]] = None,
    output_text: Optional[str] = None,
) -> Dict[str, Any]:
    response: Dict[str, Any] = {"id": rid, "status": "completed"}
    response["usage"] = dict(usage) if usage is not None else {"input_tokens": 10, "output_tokens": 2}
    if output_text is not None:
        response["output"] = [
            {"type": "message", "content": [{"type": "output_text", "text": output_text}]}
        ]
    return {"type": "response.completed", "sequence_number": seq, "response": response}


class FakeEventStream:
    """Iterable stream that may raise after its scripted events."""

    def __init__(self, events: Sequence[Any], error: Optional[Exception] = None, request_id: Optional[str] = None):
        self._events = list(events)
        self._error = error
        self.request_id = request_id
        self.closed = False
        self.delivered = 0

    def __iter__(self) -> Iterator[Any]:
        for event in self._events:
            if self.closed:
                raise drop_error("stream closed")
            self.delivered += 1
            yield event
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        self.closed = True


@dataclass
class Script:
    """A scripted stream: events, then optionally an error."""

    events: List[Any] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass
class FakeTransport:
    """Transport whose calls pop scripted outcomes in order.

    Each entry of ``creates`` / ``resumes`` is a ``Script`` or an exception to
    raise from the call itself. ``polls`` entries are payload mappings or
    exceptions.
    """

    creates: List[Any] = field(default_factory=list)
    resumes: List[Any] = field(default_factory=list)
    polls: List[Any] = field(default_factory=list)
    completes: List[Any] = field(default_factory=list)
    create_bodies: List[Mapping[str, Any]] = field(default_factory=list)
    resume_calls: List[tuple] = field(default_factory=list)
    poll_calls: List[str] = field(default_factory=list)
    streams: List[FakeEventStream] = field(default_factory=list)

    def _stream(self, entry: Any) -> FakeEventStream:
        if isinstance(entry, Exception):
            raise entry
        stream = FakeEventStream(entry.events, entry.error)
        self.streams.append(stream)
        return stream

    def create_stream(self, body: Mapping[str, Any]) -> FakeEventStream:
        self.create_bodies.append(body)
        return self._stream(self.creates.pop(0))

    def resume_stream(self, response_id: str, starting_after: int) -> FakeEventStream:
        self.resume_calls.append((response_id, starting_after))
        if not self.resumes:
            raise drop_error("resume unavailable")
        return self._stream(self.resumes.pop(0))

    def retrieve(self, response_id: str) -> Mapping[str, Any]:
        self.poll_calls.append(response_id)
        entry = self.polls.pop(0)
        if isinstance(entry, Exception):
            raise entry
        return entry

    def create(self, body: Mapping[str, Any]) -> Mapping[str, Any]:
        self.create_bodies.append(body)
        entry = self.completes.pop(0)
        if isinstance(entry, Exception):
            raise entry
        return entry


def texts(chunks) -> str:
    return "".join(c.content for c in chunks if c.type == "text")


def statuses(chunks) -> List[str]:
    return [c.phase.value for c in chunks if c.type == "status"]


__all__ = [
    "FakeEventStream",
    "FakeTransport",
    "Script",
    "completed",
    "created",
    "delta",
    "drop_error",
    "http_error",
    "in_progress",
    "queued",
    "reasoning",
    "statuses",
    "texts",
]
