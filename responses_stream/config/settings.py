"""Validated settings objects.

Purpose
-------
Typed, validated containers for client and background-session settings. The
loader in ``responses_stream.config`` merges defaults, the config file,
environment variables and in-code overrides, then validates the result here.

External dependencies
---------------------
- Pydantic v2 ``BaseModel`` for validation and coercion of string values
  coming from the environment.
"""
from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from ..base.resilience.retry import RetryConfig
from .defaults import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RESUME_RETRIES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_MAX_SECONDS,
    DEFAULT_PROVIDER,
    DEFAULT_RESUME_BACKOFF_FACTOR,
    DEFAULT_RESUME_BASE_DELAY_SECONDS,
    DEFAULT_RESUME_MAX_DELAY_SECONDS,
    DEFAULT_START_BASE_DELAY_SECONDS,
    DEFAULT_START_MAX_ATTEMPTS,
)
from .env import is_placeholder


class BackgroundSettings(BaseModel):
    """Resume and poll budgets for background sessions.

    Attributes
    ----------
    max_resume_retries:
        Reconnect attempts after a drop before falling back to polling.
    resume_base_delay_seconds / resume_backoff_factor / resume_max_delay_seconds:
        Exponential backoff between reconnect attempts.
    poll_interval_seconds:
        Fixed delay between poll requests.
    poll_max_seconds:
        Wall-clock budget for the whole poll loop.
    """

    max_resume_retries: int = Field(DEFAULT_MAX_RESUME_RETRIES, ge=0)
    resume_base_delay_seconds: float = Field(DEFAULT_RESUME_BASE_DELAY_SECONDS, ge=0)
    resume_backoff_factor: float = Field(DEFAULT_RESUME_BACKOFF_FACTOR, ge=1)
    resume_max_delay_seconds: float = Field(DEFAULT_RESUME_MAX_DELAY_SECONDS, ge=0)
    poll_interval_seconds: float = Field(DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    poll_max_seconds: float = Field(DEFAULT_POLL_MAX_SECONDS, gt=0)

    def resume_backoff(self) -> RetryConfig:
        """Backoff schedule for reconnect attempts."""
        return RetryConfig(
            max_attempts=self.max_resume_retries + 1,
            base_delay=self.resume_base_delay_seconds,
            factor=self.resume_backoff_factor,
            max_delay=self.resume_max_delay_seconds,
        )


class ClientSettings(BaseModel):
    """Client-wide settings.

    ``api_key`` values that look like placeholders are treated as unset.
    """

    provider: str = DEFAULT_PROVIDER
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    organization: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    start_max_attempts: int = Field(DEFAULT_START_MAX_ATTEMPTS, ge=1)
    start_base_delay_seconds: float = Field(DEFAULT_START_BASE_DELAY_SECONDS, ge=0)
    background: BackgroundSettings = Field(default_factory=BackgroundSettings)

    @field_validator("api_key")
    @classmethod
    def _drop_placeholder_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None or is_placeholder(value) or not value.strip():
            return None
        return value.strip()

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


__all__ = ["BackgroundSettings", "ClientSettings"]
