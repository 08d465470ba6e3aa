"""Structured logging for the package.

Every module logs through a child of the ``responses_stream`` logger obtained
from ``get_logger``. Only that base logger owns handlers (stderr, plus an
optional rotating file), and it does not propagate to the root logger, so
host applications opt in by attaching their own handler to it.

Records are single JSON objects. ``log_event`` builds the payload from an
event name, a ``LogContext`` and free-form fields. ``normalized_log_event``
adds the session lifecycle keys every event carries:

    structured  bool, always True for lifecycle events
    phase       start | active | reconnecting | polling | completed | failed | ...
    attempt     reconnect / poll / retry attempt number, or None
    error_code  normalized ``ErrorCode`` value (omitted when there is no error)
    emitted     whether output was delivered, or None
    tokens      usage counts mapping, or None

The level comes from ``RESPONSES_LOG_LEVEL`` (default INFO) and is re-read on
every ``get_logger`` call.
"""
from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Mapping, Optional

from .log_support import JsonFormatter, LogContext

BASE_LOGGER_NAME = "responses_stream"
LOG_LEVEL_ENV = "RESPONSES_LOG_LEVEL"

# Marker attributes set on handlers and the base logger owned by this module.
_READY = "_responses_logging_ready"
_CONSOLE = "_responses_console_handler"
_ROTATING = "_responses_file_handler"

_LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _formatter(json_mode: bool) -> logging.Formatter:
    if json_mode:
        return JsonFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    """Map a level name (any case) to its constant; ``default`` if unknown."""
    if not value:
        return default
    return _LEVEL_NAMES.get(value.strip().upper(), default)


def _console_handler(json_mode: bool, level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_formatter(json_mode))
    setattr(handler, _CONSOLE, True)
    return handler


def _base_logger(json_mode: bool, level: int) -> logging.Logger:
    logger = logging.getLogger(BASE_LOGGER_NAME)
    level = _parse_level(os.getenv(LOG_LEVEL_ENV), default=level)
    if not getattr(logger, _READY, False):
        logger.handlers[:] = [_console_handler(json_mode, level)]
        logger.setLevel(level)
        logger.propagate = False
        setattr(logger, _READY, True)
        return logger

    logger.setLevel(level)
    for handler in list(logger.handlers):
        if not getattr(handler, _CONSOLE, False):
            continue
        stream = getattr(handler, "stream", None)
        if stream is None or getattr(stream, "closed", False):
            # pytest capture closes the stderr it swapped in between tests.
            logger.removeHandler(handler)
            logger.addHandler(_console_handler(json_mode, level))
        else:
            handler.setLevel(level)
    return logger


def get_logger(name: str = BASE_LOGGER_NAME, json_mode: bool = True, level: int = logging.INFO) -> logging.Logger:
    """Return the base logger, or a propagating child named under it."""
    base = _base_logger(json_mode, level)
    if name == BASE_LOGGER_NAME:
        return base
    if not name.startswith(BASE_LOGGER_NAME + "."):
        name = f"{BASE_LOGGER_NAME}.{name}"
    child = logging.getLogger(name)
    child.setLevel(logging.NOTSET)
    child.propagate = True
    return child


def configure_logger(
    *,
    level: int | str | None = None,
    file_path: Optional[str] = None,
    json_mode: bool = True,
) -> logging.Logger:
    """Adjust the base logger at runtime.

    Parameters
    ----------
    level:
        New level (constant or name); ``None`` keeps the current one.
    file_path:
        Attach a rotating file handler (10 MB, 5 backups) at this path,
        replacing the one previously attached here. ``None`` detaches it.
    json_mode:
        JSON or plain text formatting for the file handler.
    """
    logger = get_logger(json_mode=json_mode)
    if level is not None:
        resolved = _parse_level(level, default=logger.level) if isinstance(level, str) else level
        logger.setLevel(resolved)
        for handler in logger.handlers:
            handler.setLevel(resolved)

    target = os.path.abspath(os.path.expanduser(file_path)) if file_path else None
    for handler in [h for h in logger.handlers if getattr(h, _ROTATING, False)]:
        if target is not None and getattr(handler, "baseFilename", None) == target:
            handler.setFormatter(_formatter(json_mode))
            handler.setLevel(logger.level)
            return logger
        logger.removeHandler(handler)
        with contextlib.suppress(OSError):
            handler.close()
    if target is None:
        return logger

    os.makedirs(os.path.dirname(target), exist_ok=True)
    rotating = RotatingFileHandler(target, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    setattr(rotating, _ROTATING, True)
    rotating.setLevel(logger.level)
    rotating.setFormatter(_formatter(json_mode))
    logger.addHandler(rotating)
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    level: int = logging.INFO,
    keep_none: bool = False,
    **fields: Any,
) -> None:
    """Log ``{"event": event, **ctx, **fields}`` as one JSON line.

    ``None`` values are dropped unless ``keep_none`` is set.
    """
    if not logger.isEnabledFor(level):
        return
    payload: Dict[str, Any] = {"event": event}
    if ctx:
        payload.update(ctx.to_dict())
    for key, value in fields.items():
        if value is not None or keep_none:
            payload[key] = value
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


REQUIRED_NORMALIZED_KEYS = (
    "structured",
    "phase",
    "attempt",
    "error_code",
    "emitted",
    "tokens",
)


def _tokens(tokens: Any) -> Optional[Dict[str, Any]]:
    if tokens is None:
        return None
    if isinstance(tokens, Mapping):
        return dict(tokens)
    return {"value": repr(tokens)}


def normalized_log_event(  # noqa: PLR0913
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    phase: str,
    attempt: int | None = None,
    error_code: str | None = None,
    emitted: bool | None = None,
    tokens: Any = None,
    structured: bool = True,
    level: int = logging.INFO,
    **extra_fields: Any,
) -> None:
    """Log a lifecycle event carrying the normalized keys.

    The normalized keys are always present (``None`` included) except
    ``error_code``, which only appears on failures. ``None`` extras are
    dropped.
    """
    fields: Dict[str, Any] = {
        "structured": structured,
        "phase": phase,
        "attempt": attempt,
        "emitted": emitted,
        "tokens": _tokens(tokens),
    }
    if error_code is not None:
        fields["error_code"] = error_code
    fields.update({k: v for k, v in extra_fields.items() if v is not None})
    log_event(logger, event, ctx, level=level, keep_none=True, **fields)


__all__ = [
    "BASE_LOGGER_NAME",
    "LOG_LEVEL_ENV",
    "LogContext",
    "REQUIRED_NORMALIZED_KEYS",
    "configure_logger",
    "get_logger",
    "log_event",
    "normalized_log_event",
]
