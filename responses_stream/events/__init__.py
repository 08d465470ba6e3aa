"""Wire event framing and normalization."""

from .normalizer import EventNormalizer
from .sse import SSEDecoder, iter_sse_events

__all__ = ["EventNormalizer", "SSEDecoder", "iter_sse_events"]
