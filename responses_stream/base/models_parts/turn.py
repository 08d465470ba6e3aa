"""
Conversation turn DTO.

Defines the `Turn` dataclass and the `Role` literal. Content is an ordered
tuple of parts; the ``text`` constructor covers the common single-text case.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple

from .content_part import ContentPart, TextPart

Role = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class Turn:
    """A single conversation turn.

    Attributes:
        role: Author of the turn (``"user"``, ``"assistant"`` or ``"system"``).
        parts: Ordered content parts.
    """

    role: Role
    parts: Tuple[ContentPart, ...]

    @classmethod
    def text(cls, role: Role, text: str) -> "Turn":
        """Build a turn holding one text part."""
        return cls(role=role, parts=(TextPart(text),))

    def text_or_joined(self) -> str:
        """Return text parts joined by newlines (images shown as ``[image]``)."""
        return "\n".join(p.text if isinstance(p, TextPart) else "[image]" for p in self.parts)


__all__ = ["Turn", "Role"]
