"""
Conversation content parts.

A turn carries an ordered list of parts; each part is either plain text or an
inline image (MIME type plus base64-encoded bytes). Both are immutable so a
``GenerationRequest`` built from them can be replayed safely on retry.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextPart:
    """Plain text content."""

    text: str


@dataclass(frozen=True)
class ImagePart:
    """Inline image content.

    Attributes:
        mime_type: Media type such as ``"image/png"``.
        data: Base64-encoded image bytes (no ``data:`` prefix).
    """

    mime_type: str
    data: str

    def data_uri(self) -> str:
        """Return the image as a ``data:`` URI."""
        return f"data:{self.mime_type};base64,{self.data}"


ContentPart = Union[TextPart, ImagePart]


__all__ = ["TextPart", "ImagePart", "ContentPart"]
