"""Shared fixtures for the responses_stream test suite.

Provides an isolated config environment, a recording ``wait`` that never
sleeps, a controllable monotonic clock, and a capture handler on the shared
logger (which does not propagate to the root logger, so ``caplog`` cannot
see it).
"""
from __future__ import annotations

import json
import logging
from typing import List

import pytest

from responses_stream.base.logging import BASE_LOGGER_NAME, get_logger
from responses_stream.config import reset_config_cache


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Point config lookups at an empty temp dir for every test."""
    for name in (
        "RESPONSES_CONFIG_FILE",
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "OPENAI_ORGANIZATION",
        "RESPONSES_START_MAX_ATTEMPTS",
        "RESPONSES_BACKGROUND_MAX_RESUME_RETRIES",
        "RESPONSES_BACKGROUND_RESUME_BASE_DELAY_SECONDS",
        "RESPONSES_BACKGROUND_POLL_INTERVAL_SECONDS",
        "RESPONSES_BACKGROUND_POLL_MAX_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DOTENV_FILE", str(tmp_path / "missing.env"))
    reset_config_cache()
    yield
    reset_config_cache()


class _Waits:
    """Records requested delays; optionally cancels a token on a given call."""

    def __init__(self) -> None:
        self.delays: List[float] = []
        self.cancel_on_call: int | None = None
        self.token = None

    def __call__(self, seconds: float) -> bool:
        self.delays.append(seconds)
        if self.cancel_on_call is not None and len(self.delays) == self.cancel_on_call and self.token is not None:
            self.token.cancel("cancelled while waiting")
            return True
        return False


@pytest.fixture()
def fake_wait() -> _Waits:
    return _Waits()


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def fake_clock() -> _Clock:
    return _Clock()


class _ListHandler(logging.Handler):
    """Capture log payloads (decoded JSON) into a list."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.payloads: List[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            data = json.loads(record.getMessage())
        except ValueError:
            data = {"msg": record.getMessage()}
        self.payloads.append(data)

    def events(self) -> List[str]:
        return [p.get("event") for p in self.payloads]


@pytest.fixture()
def log_capture():
    logger = get_logger(BASE_LOGGER_NAME)
    handler = _ListHandler()
    previous = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler
    logger.removeHandler(handler)
    logger.setLevel(previous)
