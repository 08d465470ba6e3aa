"""Usage and cost normalization."""

from .cost import Prices, calculate_cost, resolve_prices, select_context_tier
from .normalizer import UsageCounts, extract_counts, includes_cache_in_input, normalize_usage

__all__ = [
    "Prices",
    "UsageCounts",
    "calculate_cost",
    "extract_counts",
    "includes_cache_in_input",
    "normalize_usage",
    "resolve_prices",
    "select_context_tier",
]
