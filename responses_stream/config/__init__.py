"""Unified configuration layer.

Goals
-----
* Centralize defaults (base URL, budgets, timeouts).
* Merge sources in a predictable order (later wins):
    1. Built-in defaults (``config.defaults``)
    2. Optional external config file (JSON or YAML) named by RESPONSES_CONFIG_FILE
    3. Environment variables (see ``config.env.ENV_FIELD_MAP``)
    4. In-code overrides passed to ``load_settings``
* Validate the merged mapping through pydantic settings models.

External Config File (Optional)
-------------------------------
JSON is tried first, then YAML. Structure example:

```
client:
  base_url: https://api.openai.com/v1
background:
  max_resume_retries: 3
  poll_interval_seconds: 2
models:
  gpt-5:
    context_window: 400000
    input_price: 1.25
    output_price: 10.0
    cache_read_price: 0.125
    capabilities:
      supports_reasoning: true
      supports_verbosity: true
    service_tiers:
      flex: {input_price: 0.625, output_price: 5.0}
```

Public API
----------
* load_settings(overrides: dict | None = None) -> ClientSettings
* get_model_info(model_id: str) -> ModelInfo | None
* reset_config_cache() -> None
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..base.logging import get_logger, log_event
from ..base.models import ModelInfo
from .env import CONFIG_FILE_ENV, DOTENV_FILE_ENV, env_overrides, is_placeholder
from .settings import BackgroundSettings, ClientSettings

_logger = get_logger("responses_stream.config")

_FILE_CACHE: Optional[Dict[str, Any]] = None
_DOTENV_LOADED = False


def _load_dotenv_once() -> None:
    """Lightweight .env loader.

    Parses KEY=VALUE lines, ignoring comments and blank lines. Existing
    environment variables win unless their values look like placeholders.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True
    path = os.getenv(DOTENV_FILE_ENV, ".env")
    if not os.path.isfile(path):
        return
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            k, v = line.split("=", 1)
            k = k.strip()
            v = v.strip().strip('"').strip("'")
            if k and (k not in os.environ or is_placeholder(os.environ.get(k))):
                os.environ[k] = v


def _load_external_config() -> Dict[str, Any]:
    global _FILE_CACHE
    if _FILE_CACHE is not None:
        return _FILE_CACHE
    path = os.getenv(CONFIG_FILE_ENV)
    if not path or not Path(path).exists():
        _FILE_CACHE = {}
        return _FILE_CACHE
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            log_event(_logger, "config.file.invalid", path=path, error=str(exc))
            data = {}
    if not isinstance(data, dict):
        data = {}
    _FILE_CACHE = data
    return data


def _merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge with one nested level for the ``background`` section."""
    out = dict(base)
    for key, value in extra.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = {**out[key], **{k: v for k, v in value.items() if v is not None}}
        else:
            out[key] = value
    return out


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> ClientSettings:
    """Return validated client settings.

    Merge order (later wins): defaults -> external config -> env vars -> overrides.
    """
    _load_dotenv_once()
    file_cfg = _load_external_config()
    merged: Dict[str, Any] = {}
    client_section = file_cfg.get("client")
    if isinstance(client_section, dict):
        merged = _merge(merged, client_section)
    background_section = file_cfg.get("background")
    if isinstance(background_section, dict):
        merged = _merge(merged, {"background": background_section})
    merged = _merge(merged, env_overrides())
    if overrides:
        merged = _merge(merged, overrides)
    return ClientSettings.model_validate(merged)


def get_model_info(model_id: str) -> Optional[ModelInfo]:
    """Look up static model metadata from the config file's ``models`` section."""
    models = _load_external_config().get("models")
    if not isinstance(models, dict):
        return None
    entry = models.get(model_id)
    if not isinstance(entry, dict):
        return None
    return ModelInfo.from_dict(model_id, entry)


def reset_config_cache() -> None:
    """Forget the cached config file and .env state (used by tests)."""
    global _FILE_CACHE, _DOTENV_LOADED
    _FILE_CACHE = None
    _DOTENV_LOADED = False


__all__ = [
    "BackgroundSettings",
    "ClientSettings",
    "get_model_info",
    "load_settings",
    "reset_config_cache",
]
