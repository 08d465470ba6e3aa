"""responses_stream.config.env
============================

Environment variable names and small helpers for reading them.

Design Notes
------------
- ``ENV_FIELD_MAP`` maps dotted settings paths to environment variable
  names. Values are returned as raw strings; pydantic validation in
  ``config.settings`` coerces them to the declared types.
- Helpers never raise on unset variables; callers decide how to proceed.
"""

from __future__ import annotations

import os
from typing import Dict, Optional

API_KEY_ENV = "OPENAI_API_KEY"  # pragma: allowlist secret - env var name, not a secret
CONFIG_FILE_ENV = "RESPONSES_CONFIG_FILE"
DOTENV_FILE_ENV = "DOTENV_FILE"

# Dotted settings path -> environment variable name
ENV_FIELD_MAP: Dict[str, str] = {
    "api_key": API_KEY_ENV,
    "base_url": "OPENAI_BASE_URL",
    "organization": "OPENAI_ORGANIZATION",
    "start_max_attempts": "RESPONSES_START_MAX_ATTEMPTS",
    "background.max_resume_retries": "RESPONSES_BACKGROUND_MAX_RESUME_RETRIES",
    "background.resume_base_delay_seconds": "RESPONSES_BACKGROUND_RESUME_BASE_DELAY_SECONDS",
    "background.poll_interval_seconds": "RESPONSES_BACKGROUND_POLL_INTERVAL_SECONDS",
    "background.poll_max_seconds": "RESPONSES_BACKGROUND_POLL_MAX_SECONDS",
}


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if the provided string looks like a placeholder/test value.

    Heuristics: contains 'placeholder', 'changeme', 'example', or starts with
    'test_'. The check is case-insensitive and resilient to surrounding spaces.
    """
    if val is None:
        return False
    v = str(val).strip().lower()
    return (
        "placeholder" in v
        or "changeme" in v
        or "example" in v
        or v.startswith("test_")
    )


def env_overrides() -> Dict[str, object]:
    """Collect set environment variables as a nested override mapping."""
    out: Dict[str, object] = {}
    for path, env_name in ENV_FIELD_MAP.items():
        val = os.getenv(env_name)
        if val is None or val == "":
            continue
        if path == "api_key" and is_placeholder(val):
            continue
        head, _, tail = path.partition(".")
        if tail:
            section = out.setdefault(head, {})
            section[tail] = val  # type: ignore[index]
        else:
            out[head] = val
    return out


__all__ = [
    "API_KEY_ENV",
    "CONFIG_FILE_ENV",
    "DOTENV_FILE_ENV",
    "ENV_FIELD_MAP",
    "env_overrides",
    "is_placeholder",
]
