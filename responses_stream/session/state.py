"""Per-call session state and lifecycle phases.

``SessionState`` is created when a generation starts and discarded when its
output sequence ends. It is owned by exactly one controller and never shared
between calls, so it carries no locks.

Lifecycle::

    ACTIVE -> RECONNECTING -> ACTIVE          (resume succeeded)
    ACTIVE | RECONNECTING -> POLLING          (resume budget exhausted)
    ACTIVE | POLLING -> COMPLETED
    any non-terminal -> FAILED

``COMPLETED`` and ``FAILED`` are terminal.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..base.chunks import StatusPhase
from ..base.errors import ErrorCode, ProviderError


class Phase(str, Enum):
    ACTIVE = "active"
    RECONNECTING = "reconnecting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.ACTIVE: frozenset({Phase.RECONNECTING, Phase.POLLING, Phase.COMPLETED, Phase.FAILED}),
    Phase.RECONNECTING: frozenset({Phase.RECONNECTING, Phase.ACTIVE, Phase.POLLING, Phase.FAILED}),
    Phase.POLLING: frozenset({Phase.COMPLETED, Phase.FAILED}),
    Phase.COMPLETED: frozenset(),
    Phase.FAILED: frozenset(),
}


@dataclass
class SessionState:
    """Mutable state of one generation.

    Attributes:
        background: Whether the session runs in background mode (resumable).
        response_id: Server-assigned id; immutable once bound.
        high_water_sequence: Largest event sequence accepted so far (-1: none).
        phase: Current lifecycle phase.
        accumulated_output_text / accumulated_reasoning_text: Everything
            already delivered per category, used to drop replayed snapshots.
        saw_text_delta / saw_reasoning_delta: Whether any delta of that
            category was delivered; "done" events are skipped when set.
        resume_attempt / poll_attempt: Bounded attempt counters.
        service_tier: Tier the server resolved for this response.
        completed: A completion event (or completed poll) was observed.
        usage_emitted: The single usage chunk has been delivered.
        last_status: Last background status reported to the caller.
    """

    background: bool = False
    response_id: Optional[str] = None
    high_water_sequence: int = -1
    phase: Phase = Phase.ACTIVE
    accumulated_output_text: str = ""
    accumulated_reasoning_text: str = ""
    saw_text_delta: bool = False
    saw_reasoning_delta: bool = False
    resume_attempt: int = 0
    poll_attempt: int = 0
    service_tier: Optional[str] = None
    completed: bool = False
    usage_emitted: bool = False
    last_status: Optional[StatusPhase] = None

    @property
    def terminal(self) -> bool:
        return self.phase in (Phase.COMPLETED, Phase.FAILED)

    def transition(self, target: Phase) -> None:
        """Move to ``target``; illegal transitions are programming errors."""
        if target not in _TRANSITIONS[self.phase]:
            raise ProviderError(
                code=ErrorCode.INTERNAL,
                message=f"illegal session transition {self.phase.value} -> {target.value}",
                provider="responses",
            )
        self.phase = target

    def accept_sequence(self, sequence: Optional[int]) -> bool:
        """Advance the high-water mark; False for replayed sequence numbers."""
        if sequence is None:
            return True
        if sequence <= self.high_water_sequence:
            return False
        self.high_water_sequence = sequence
        return True

    def bind_response_id(self, response_id: Optional[str]) -> None:
        """Record the server response id; a different later value is fatal."""
        if not response_id:
            return
        if self.response_id is None:
            self.response_id = response_id
            return
        if response_id != self.response_id:
            raise ProviderError(
                code=ErrorCode.PROTOCOL,
                message=(
                    f"Response id changed from {self.response_id} to {response_id} "
                    f"during {self.phase.value}"
                ),
                provider="responses",
            )

    def status_changed(self, status: StatusPhase) -> bool:
        """Remember ``status``; True when it differs from the last one reported."""
        if status == self.last_status:
            return False
        self.last_status = status
        return True


__all__ = ["Phase", "SessionState"]
