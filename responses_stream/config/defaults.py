"""Centralized defaults.

Single source of truth for built-in configuration values. Environment
variables and the optional config file override these at load time.
"""

DEFAULT_PROVIDER = "openai"
DEFAULT_BASE_URL = "https://api.openai.com/v1"

# Start phase: attempts for the initial request before any event is received.
DEFAULT_START_MAX_ATTEMPTS = 3
DEFAULT_START_BASE_DELAY_SECONDS = 1.0

# Background sessions
DEFAULT_MAX_RESUME_RETRIES = 3
DEFAULT_RESUME_BASE_DELAY_SECONDS = 1.0
DEFAULT_RESUME_BACKOFF_FACTOR = 2.0
DEFAULT_RESUME_MAX_DELAY_SECONDS = 30.0
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_POLL_MAX_SECONDS = 20 * 60.0

__all__ = [
    "DEFAULT_PROVIDER",
    "DEFAULT_BASE_URL",
    "DEFAULT_START_MAX_ATTEMPTS",
    "DEFAULT_START_BASE_DELAY_SECONDS",
    "DEFAULT_MAX_RESUME_RETRIES",
    "DEFAULT_RESUME_BASE_DELAY_SECONDS",
    "DEFAULT_RESUME_BACKOFF_FACTOR",
    "DEFAULT_RESUME_MAX_DELAY_SECONDS",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_POLL_MAX_SECONDS",
]
