"""Caller-facing stream handle.

``GenerationStream`` wraps a ``SessionController`` in a single-pass iterator
and exposes ``cancel(reason)`` for cooperative cancellation from any thread.
It also records the usage chunk and final phase for post-hoc inspection.
"""
from __future__ import annotations

from typing import Iterator, Optional

from ..base.chunks import OutputChunk, UsageChunk
from .controller import SessionController
from .state import Phase


class GenerationStream:
    """Lazily produced, single-pass sequence of output chunks."""

    def __init__(self, controller: SessionController) -> None:
        self._controller = controller
        self._iterator: Optional[Iterator[OutputChunk]] = None
        self._usage: Optional[UsageChunk] = None

    def __iter__(self) -> "GenerationStream":
        return self

    def __next__(self) -> OutputChunk:
        if self._iterator is None:
            self._iterator = self._controller.run()
        chunk = next(self._iterator)
        if isinstance(chunk, UsageChunk):
            self._usage = chunk
        return chunk

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation; safe to call repeatedly or after completion."""
        self._controller.token.cancel(reason or "cancelled by caller")

    def close(self) -> None:
        """Stop iteration early and release the connection."""
        if self._iterator is not None:
            self._iterator.close()  # type: ignore[attr-defined]

    def __enter__(self) -> "GenerationStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def response_id(self) -> Optional[str]:  # noqa: D401 - short property
        """Server response id, once known."""
        return self._controller.state.response_id

    @property
    def usage(self) -> Optional[UsageChunk]:  # noqa: D401 - short property
        """The usage chunk, once delivered."""
        return self._usage

    @property
    def phase(self) -> Phase:  # noqa: D401 - short property
        """Current session phase."""
        return self._controller.state.phase

    @property
    def finished(self) -> bool:  # noqa: D401 - short property
        return self._controller.state.terminal


__all__ = ["GenerationStream"]
