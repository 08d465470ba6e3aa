"""
Model capability flags.

Capability gating lives entirely in these flags: the request builder never
decides on model names, only on what the capabilities say.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping


@dataclass(frozen=True)
class ModelCapabilities:
    """Which request options a model variant accepts.

    Attributes:
        supports_reasoning: Accepts a ``reasoning`` block.
        supports_reasoning_summary: Accepts ``reasoning.summary``.
        supports_verbosity: Accepts ``text.verbosity``.
        supports_temperature: Accepts ``temperature``.
        supports_images: Accepts image input parts.
        background_mode_default: Runs in background mode unless told otherwise.
        immutable_instructions: Server-side instructions cannot be replaced;
            caller instructions are injected as a synthetic leading turn.
    """

    supports_reasoning: bool = False
    supports_reasoning_summary: bool = False
    supports_verbosity: bool = False
    supports_temperature: bool = True
    supports_images: bool = True
    background_mode_default: bool = False
    immutable_instructions: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ModelCapabilities":
        """Build from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in (data or {}).items() if k in known})


__all__ = ["ModelCapabilities"]
