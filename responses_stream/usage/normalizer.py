"""Usage normalizer: raw upstream usage -> ``UsageChunk``.

Two token-accounting conventions reach this module:

* inclusive: ``input_tokens`` already contains cached tokens, reported in an
  ``input_tokens_details`` / ``prompt_tokens_details`` block. Cached tokens
  are subtracted before billing at the input price.
* exclusive: cache tokens are reported next to ``input_tokens`` as separate
  counters (``cache_creation_input_tokens`` / ``cache_read_input_tokens``)
  and are additional to it.

The convention is chosen per usage object from its shape. Everything here is
pure: no I/O and no session mutation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..base.chunks import UsageChunk
from ..base.models import ModelInfo
from .cost import calculate_cost, resolve_prices

_DETAIL_KEYS = ("input_tokens_details", "prompt_tokens_details")
_EXCLUSIVE_KEYS = ("cache_creation_input_tokens", "cache_read_input_tokens")


@dataclass(frozen=True)
class UsageCounts:
    """Token counts extracted from a raw usage object."""

    input_tokens: int
    output_tokens: int
    cache_write_tokens: int
    cache_read_tokens: int
    reasoning_tokens: Optional[int]
    input_includes_cache: bool

    @property
    def total_input_tokens(self) -> int:
        """Total prompt size, used for context tier selection."""
        if self.input_includes_cache:
            return self.input_tokens
        return self.input_tokens + self.cache_write_tokens + self.cache_read_tokens

    @property
    def billable_input_tokens(self) -> int:
        """Input tokens billed at the uncached input price."""
        if self.input_includes_cache:
            return max(0, self.input_tokens - self.cache_write_tokens - self.cache_read_tokens)
        return self.input_tokens


def as_mapping(raw: Any) -> Mapping[str, Any]:
    """Accept dicts or SDK objects (pydantic ``model_dump``)."""
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return raw
    dump = getattr(raw, "model_dump", None)
    if callable(dump):
        data = dump()
        return data if isinstance(data, Mapping) else {}
    return {}


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def includes_cache_in_input(raw: Mapping[str, Any]) -> bool:
    """Detect the accounting convention from the usage object's shape."""
    if any(key in raw for key in _DETAIL_KEYS) or "prompt_tokens" in raw:
        return True
    if any(key in raw for key in _EXCLUSIVE_KEYS):
        return False
    return True


def extract_counts(raw: Any) -> UsageCounts:
    """Read token counts from a raw usage object."""
    data = as_mapping(raw)
    details = as_mapping(_first_present(data, *_DETAIL_KEYS))
    cached = _int(details.get("cached_tokens"))
    miss = _int(details.get("cache_miss_tokens"))

    input_tokens = _int(_first_present(data, "input_tokens", "prompt_tokens"))
    if input_tokens == 0 and (cached or miss):
        input_tokens = cached + miss
    output_tokens = _int(_first_present(data, "output_tokens", "completion_tokens"))
    cache_write = _int(_first_present(data, "cache_creation_input_tokens", "cache_write_tokens"))
    cache_read = _int(_first_present(data, "cache_read_input_tokens", "cache_read_tokens", "cached_tokens")) or cached

    out_details = as_mapping(_first_present(data, "output_tokens_details", "completion_tokens_details"))
    reasoning = out_details.get("reasoning_tokens")
    return UsageCounts(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_write_tokens=cache_write,
        cache_read_tokens=cache_read,
        reasoning_tokens=_int(reasoning) if reasoning is not None else None,
        input_includes_cache=includes_cache_in_input(data),
    )


def compute_cost(counts: UsageCounts, model: ModelInfo, service_tier: Optional[str] = None) -> float:
    """Price ``counts`` with ``model``'s table and an optional service tier."""
    prices = resolve_prices(model, counts.total_input_tokens, service_tier)
    return calculate_cost(
        prices,
        input_tokens=counts.billable_input_tokens,
        output_tokens=counts.output_tokens,
        cache_write_tokens=counts.cache_write_tokens,
        cache_read_tokens=counts.cache_read_tokens,
    )


def normalize_usage(raw: Any, model: Optional[ModelInfo] = None, service_tier: Optional[str] = None) -> UsageChunk:
    """Convert a raw usage object into a ``UsageChunk``.

    ``total_cost`` is ``None`` when no model metadata is available.
    """
    counts = extract_counts(raw)
    cost = compute_cost(counts, model, service_tier) if model is not None else None
    return UsageChunk(
        input_tokens=counts.input_tokens,
        output_tokens=counts.output_tokens,
        cache_write_tokens=counts.cache_write_tokens or None,
        cache_read_tokens=counts.cache_read_tokens or None,
        reasoning_tokens=counts.reasoning_tokens,
        total_cost=cost,
    )


__all__ = [
    "UsageCounts",
    "as_mapping",
    "compute_cost",
    "extract_counts",
    "includes_cache_in_input",
    "normalize_usage",
]
