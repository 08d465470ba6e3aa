"""Request builder: ``GenerationRequest`` -> wire payload.

Purpose
-------
Turn a conversation plus generation options into the JSON body for
``POST /responses``, encoding capability gating: options a model does not
accept are left off the wire entirely (never sent as null or empty).

Notes
-----
- Pure and deterministic. The same inputs always produce the same dict with
  the same key order, and ``encode_request`` turns it into identical bytes.
  Start retries and the continuation fallback depend on this.
- Background mode forces ``store=True`` even when the caller asked for no
  storage; resume and polling only work on stored responses.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from ..base.models import GenerationRequest, ImagePart, ModelCapabilities, ModelInfo, TextPart, Turn
from .instructions import instruction_turn

ENCRYPTED_REASONING_INCLUDE = "reasoning.encrypted_content"


def is_background(request: GenerationRequest, capabilities: ModelCapabilities) -> bool:
    """Whether the request runs in background mode."""
    return bool(capabilities.background_mode_default or request.background)


def _format_turn(turn: Turn, capabilities: ModelCapabilities) -> Optional[Dict[str, Any]]:
    text_type = "output_text" if turn.role == "assistant" else "input_text"
    content: List[Dict[str, Any]] = []
    for part in turn.parts:
        if isinstance(part, TextPart):
            content.append({"type": text_type, "text": part.text})
        elif isinstance(part, ImagePart) and capabilities.supports_images:
            content.append({"type": "input_image", "image_url": part.data_uri()})
    if not content:
        return None
    return {"role": turn.role, "content": content}


def _select_turns(request: GenerationRequest) -> Sequence[Turn]:
    """All turns, or only the latest user turn when continuing a response."""
    if not request.previous_response_id:
        return request.turns
    for turn in reversed(request.turns):
        if turn.role == "user":
            return (turn,)
    return ()


def format_input(request: GenerationRequest, capabilities: ModelCapabilities) -> List[Dict[str, Any]]:
    """Format conversation turns into the ``input`` array."""
    formatted: List[Dict[str, Any]] = []
    if capabilities.immutable_instructions and request.instructions.strip():
        formatted.append(instruction_turn(request.instructions))
    for turn in _select_turns(request):
        entry = _format_turn(turn, capabilities)
        if entry is not None:
            formatted.append(entry)
    return formatted


def _reasoning_block(request: GenerationRequest, capabilities: ModelCapabilities) -> Optional[Dict[str, Any]]:
    effort = request.reasoning_effort
    if not capabilities.supports_reasoning or effort is None or effort == "disabled":
        return None
    block: Dict[str, Any] = {"effort": effort}
    if capabilities.supports_reasoning_summary:
        block["summary"] = "auto"
    return block


def _service_tier(request: GenerationRequest, model: Optional[ModelInfo]) -> Optional[str]:
    tier = request.service_tier
    if not tier or tier == "default" or model is None:
        return None
    return tier if model.service_tier(tier) is not None else None


def build_request(
    request: GenerationRequest,
    capabilities: ModelCapabilities,
    *,
    model: Optional[ModelInfo] = None,
    stream: bool = True,
) -> Dict[str, Any]:
    """Build the wire request body.

    Parameters
    ----------
    request:
        The immutable generation request.
    capabilities:
        Capability flags used for gating.
    model:
        Optional static model metadata (default output cap, service tiers,
        fixed server instructions).
    stream:
        ``False`` builds a plain, unstored, non-background request.
    """
    background = stream and is_background(request, capabilities)
    body: Dict[str, Any] = {
        "model": request.model,
        "input": format_input(request, capabilities),
    }
    if capabilities.immutable_instructions:
        if model is not None and model.server_instructions:
            body["instructions"] = model.server_instructions
    elif request.instructions:
        body["instructions"] = request.instructions

    store = True if background else (request.store if stream else False)
    body["stream"] = stream
    body["store"] = store
    if background:
        body["background"] = True

    reasoning = _reasoning_block(request, capabilities)
    if reasoning is not None:
        body["reasoning"] = reasoning
        if not store:
            body["include"] = [ENCRYPTED_REASONING_INCLUDE]

    if capabilities.supports_verbosity and request.verbosity:
        body["text"] = {"verbosity": request.verbosity}
    if capabilities.supports_temperature and request.temperature is not None:
        body["temperature"] = request.temperature

    max_output = request.max_output_tokens or (model.max_output_tokens if model else None)
    if max_output:
        body["max_output_tokens"] = max_output

    tier = _service_tier(request, model)
    if tier:
        body["service_tier"] = tier
    if request.previous_response_id:
        body["previous_response_id"] = request.previous_response_id
    return body


def encode_request(body: Dict[str, Any]) -> bytes:
    """Serialize a wire body to bytes (stable separators, UTF-8)."""
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


__all__ = [
    "ENCRYPTED_REASONING_INCLUDE",
    "build_request",
    "encode_request",
    "format_input",
    "is_background",
]
