"""Data model public surface.

Re-exports the request-side value objects and static model metadata from
``models_parts``.
"""

from .models_parts import (
    ContentPart,
    GenerationRequest,
    ImagePart,
    ModelCapabilities,
    ModelInfo,
    PriceTier,
    ReasoningEffort,
    Role,
    TextPart,
    Turn,
    Verbosity,
)

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
