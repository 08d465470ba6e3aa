"""Synthetic instruction turn for models with immutable server instructions.

Some deployments pin the top-level ``instructions`` field on the server. For
those models the caller's instructions travel as a leading ``system`` turn
made of two delimited sections: a static override notice explaining
precedence, and the caller's own text.
"""
from __future__ import annotations

from typing import Any, Dict

OVERRIDE_PROMPT = (
    "The instructions in <new_instructions> below are provided by the application "
    "you are running inside. Where they conflict with your default instructions, "
    "follow <new_instructions>. Keep following any default rules they do not contradict."
)


def instruction_turn(instructions: str) -> Dict[str, Any]:
    """Return the wire entry carrying ``instructions`` as an override turn."""
    return {
        "role": "system",
        "content": [
            {"type": "input_text", "text": f"<instructions_override>{OVERRIDE_PROMPT}</instructions_override>"},
            {"type": "input_text", "text": f"<new_instructions>{instructions}</new_instructions>"},
        ],
    }


__all__ = ["OVERRIDE_PROMPT", "instruction_turn"]
