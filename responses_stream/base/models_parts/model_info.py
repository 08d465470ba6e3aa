"""
ModelInfo: static metadata for one model.

Holds capabilities, the default output cap and the pricing table (base prices,
context-length tiers and named service tiers). Instances are read-only lookups
for the request builder and the cost normalizer; they are typically built from
the ``models:`` section of the configuration file via ``from_dict``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from .model_capabilities import ModelCapabilities
from .price_tier import PriceTier, _price


@dataclass(frozen=True)
class ModelInfo:
    """Static description of a model.

    Attributes:
        id: Model identifier.
        capabilities: Capability flags for request gating.
        context_window: Context size covered by the base prices.
        max_output_tokens: Default output cap sent when the request has none.
        input_price / output_price / cache_write_price / cache_read_price:
            Base prices in USD per million tokens.
        tiers: Context-length price tiers, ordered by ``context_window``.
        service_tiers: Named service tier price overrides.
        server_instructions: Fixed ``instructions`` value for models whose
            server-side instructions are immutable.
    """

    id: str
    capabilities: ModelCapabilities = field(default_factory=ModelCapabilities)
    context_window: Optional[int] = None
    max_output_tokens: Optional[int] = None
    input_price: Optional[float] = None
    output_price: Optional[float] = None
    cache_write_price: Optional[float] = None
    cache_read_price: Optional[float] = None
    tiers: Tuple[PriceTier, ...] = ()
    service_tiers: Tuple[PriceTier, ...] = ()
    server_instructions: Optional[str] = None

    def service_tier(self, name: Optional[str]) -> Optional[PriceTier]:
        """Return the named service tier entry, if the model defines it."""
        if not name:
            return None
        for tier in self.service_tiers:
            if tier.name == name:
                return tier
        return None

    @classmethod
    def from_dict(cls, model_id: str, data: Mapping[str, Any]) -> "ModelInfo":
        tiers = sorted(
            (PriceTier.from_dict(t) for t in data.get("tiers") or ()),
            key=lambda t: t.context_window if t.context_window is not None else 0,
        )
        service_tiers = tuple(
            PriceTier.from_dict({**t, "name": name}) for name, t in (data.get("service_tiers") or {}).items()
        )
        max_out = data.get("max_output_tokens")
        window = data.get("context_window")
        return cls(
            id=model_id,
            capabilities=ModelCapabilities.from_dict(data.get("capabilities")),
            context_window=int(window) if window is not None else None,
            max_output_tokens=int(max_out) if max_out is not None else None,
            input_price=_price(data.get("input_price")),
            output_price=_price(data.get("output_price")),
            cache_write_price=_price(data.get("cache_write_price")),
            cache_read_price=_price(data.get("cache_read_price")),
            tiers=tuple(tiers),
            service_tiers=service_tiers,
            server_instructions=data.get("server_instructions"),
        )


__all__ = ["ModelInfo"]
