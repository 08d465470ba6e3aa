"""Cost computation.

Pure functions turning canonical token counts into USD using a ``ModelInfo``
price table. Prices are per million tokens.

Price resolution (per field):
    1. Named service tier override, when the response resolved one and the
       model defines it.
    2. Context-length tier, when total input exceeds the base context window:
       the smallest tier whose ``context_window`` is >= total input, else the
       largest tier.
    3. Base model price.

A field with no price contributes nothing to the total.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..base.models import ModelInfo, PriceTier

TOKENS_PER_UNIT = 1_000_000


@dataclass(frozen=True)
class Prices:
    input: Optional[float] = None
    output: Optional[float] = None
    cache_write: Optional[float] = None
    cache_read: Optional[float] = None


def _first(*values: Optional[float]) -> Optional[float]:
    for value in values:
        if value is not None:
            return value
    return None


def select_context_tier(model: ModelInfo, total_input_tokens: int) -> Optional[PriceTier]:
    """Return the context tier applying to ``total_input_tokens``, if any.

    The smallest boundary at or above the input wins; past every boundary
    the highest tier applies. ``None`` only when the model has no tiers.
    """
    tiers = [t for t in model.tiers if t.context_window is not None]
    if not tiers:
        return None
    for tier in tiers:
        if total_input_tokens <= tier.context_window:  # type: ignore[operator]
            return tier
    return tiers[-1]


def resolve_prices(model: ModelInfo, total_input_tokens: int, service_tier: Optional[str] = None) -> Prices:
    """Resolve effective per-field prices for one response."""
    tier = select_context_tier(model, total_input_tokens)
    named = model.service_tier(service_tier)
    tier_input = tier.input_price if tier else None
    tier_output = tier.output_price if tier else None
    tier_write = tier.cache_write_price if tier else None
    tier_read = tier.cache_read_price if tier else None
    return Prices(
        input=_first(named.input_price if named else None, tier_input, model.input_price),
        output=_first(named.output_price if named else None, tier_output, model.output_price),
        cache_write=_first(named.cache_write_price if named else None, tier_write, model.cache_write_price),
        cache_read=_first(named.cache_read_price if named else None, tier_read, model.cache_read_price),
    )


def _term(tokens: int, price: Optional[float]) -> float:
    if not tokens or price is None:
        return 0.0
    return (tokens / TOKENS_PER_UNIT) * price


def calculate_cost(
    prices: Prices,
    *,
    input_tokens: int,
    output_tokens: int,
    cache_write_tokens: int = 0,
    cache_read_tokens: int = 0,
) -> float:
    """Sum ``tokens / 1e6 * price`` over the four billable fields.

    ``input_tokens`` here is the uncached input count to bill at the input
    price; callers reconcile cache conventions first.
    """
    return (
        _term(input_tokens, prices.input)
        + _term(output_tokens, prices.output)
        + _term(cache_write_tokens, prices.cache_write)
        + _term(cache_read_tokens, prices.cache_read)
    )


__all__ = [
    "Prices",
    "TOKENS_PER_UNIT",
    "calculate_cost",
    "resolve_prices",
    "select_context_tier",
]
