"""
Per-model price table entry.

A ``PriceTier`` is keyed either by a context-length breakpoint
(``context_window``) or by a service tier ``name``. Prices are USD per million
tokens; ``None`` means the entry does not override that field.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


def _price(value: Any) -> Optional[float]:
    return None if value is None else float(value)


@dataclass(frozen=True)
class PriceTier:
    """Read-only pricing row used by the cost normalizer."""

    context_window: Optional[int] = None
    name: Optional[str] = None
    input_price: Optional[float] = None
    output_price: Optional[float] = None
    cache_write_price: Optional[float] = None
    cache_read_price: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PriceTier":
        window = data.get("context_window")
        return cls(
            context_window=int(window) if window is not None else None,
            name=data.get("name"),
            input_price=_price(data.get("input_price")),
            output_price=_price(data.get("output_price")),
            cache_write_price=_price(data.get("cache_write_price")),
            cache_read_price=_price(data.get("cache_read_price")),
        )


__all__ = ["PriceTier"]
