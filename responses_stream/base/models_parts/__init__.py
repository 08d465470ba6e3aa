"""Data model parts (one concern per module).

Prefer importing from `responses_stream.base.models`.
"""

from .content_part import ContentPart, ImagePart, TextPart
from .generation_request import GenerationRequest, ReasoningEffort, Verbosity
from .model_capabilities import ModelCapabilities
from .model_info import ModelInfo
from .price_tier import PriceTier
from .turn import Role, Turn

__all__ = [
    "ContentPart",
    "GenerationRequest",
    "ImagePart",
    "ModelCapabilities",
    "ModelInfo",
    "PriceTier",
    "ReasoningEffort",
    "Role",
    "TextPart",
    "Turn",
    "Verbosity",
]
