"""Request building (capability gating, input formatting)."""

from .builder import build_request, encode_request, format_input, is_background

__all__ = ["build_request", "encode_request", "format_input", "is_background"]
