"""Server-sent events framing.

Splits a raw byte stream into ``data:`` records and JSON-decodes each one.

Framing rules:
- Lines are separated by ``\\n`` (a trailing ``\\r`` is stripped).
- ``data:`` lines accumulate; a blank line dispatches the record.
- ``event:``, ``id:``, ``retry:`` and comment (``:``) lines are ignored; the
  event kind is carried in the JSON payload's ``type`` field.
- A record equal to ``[DONE]`` ends the stream.
- Records that fail to decode, or decode to something other than a JSON
  object, are dropped and logged at debug level.
"""
from __future__ import annotations

import codecs
import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..base.logging import get_logger, log_event

DONE_TOKEN = "[DONE]"

_logger = get_logger("responses_stream.sse")


class SSEDecoder:
    """Incremental decoder; feed bytes, receive event dicts."""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._data: List[str] = []
        self.done = False
        self.malformed = 0

    def feed(self, chunk: bytes) -> List[Dict[str, Any]]:
        """Consume ``chunk`` and return the events it completed."""
        if self.done:
            return []
        self._pending += self._utf8.decode(chunk)
        events: List[Dict[str, Any]] = []
        while not self.done:
            newline = self._pending.find("\n")
            if newline < 0:
                break
            line = self._pending[:newline].rstrip("\r")
            self._pending = self._pending[newline + 1 :]
            event = self._line(line)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> List[Dict[str, Any]]:
        """Dispatch whatever is buffered when the byte stream ends."""
        if self.done:
            return []
        tail = self._pending + self._utf8.decode(b"", final=True)
        self._pending = ""
        events: List[Dict[str, Any]] = []
        if tail.strip():
            event = self._line(tail.rstrip("\r"))
            if event is not None:
                events.append(event)
        event = self._dispatch()
        if event is not None:
            events.append(event)
        return events

    def _line(self, line: str) -> Optional[Dict[str, Any]]:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if field == "data":
            self._data.append(value[1:] if value.startswith(" ") else value)
        return None

    def _dispatch(self) -> Optional[Dict[str, Any]]:
        if not self._data:
            return None
        payload = "\n".join(self._data)
        self._data = []
        if payload.strip() == DONE_TOKEN:
            self.done = True
            return None
        try:
            event = json.loads(payload)
        except ValueError:
            event = None
        if not isinstance(event, dict):
            self.malformed += 1
            log_event(
                _logger,
                "sse.frame.malformed",
                level=logging.DEBUG,
                size=len(payload),
                preview=payload[:80],
            )
            return None
        return event


def iter_sse_events(chunks: Iterable[bytes]) -> Iterator[Dict[str, Any]]:
    """Yield decoded events from an iterable of raw byte chunks."""
    decoder = SSEDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.done:
            return
    yield from decoder.flush()


__all__ = ["DONE_TOKEN", "SSEDecoder", "iter_sse_events"]
