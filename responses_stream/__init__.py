"""Resumable streaming client for the Responses API.

Public surface: ``ResponsesClient``, the request value types, and the output
chunk types.
"""

from .base.cancellation import CancellationToken, CancelledError
from .base.chunks import (
    ErrorChunk,
    OutputChunk,
    ReasoningChunk,
    StatusChunk,
    StatusPhase,
    TextChunk,
    UsageChunk,
)
from .base.errors import ErrorCode, ProviderError
from .base.models import (
    GenerationRequest,
    ImagePart,
    ModelCapabilities,
    ModelInfo,
    PriceTier,
    TextPart,
    Turn,
)
from .client import ResponsesClient
from .session.stream import GenerationStream

__all__ = [
    "CancellationToken",
    "CancelledError",
    "ErrorChunk",
    "ErrorCode",
    "GenerationRequest",
    "GenerationStream",
    "ImagePart",
    "ModelCapabilities",
    "ModelInfo",
    "OutputChunk",
    "PriceTier",
    "ProviderError",
    "ReasoningChunk",
    "ResponsesClient",
    "StatusChunk",
    "StatusPhase",
    "TextChunk",
    "TextPart",
    "Turn",
    "UsageChunk",
]
