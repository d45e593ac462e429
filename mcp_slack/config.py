"""Configuration for Slack MCP

This module contains configuration constants that are used across the MCP server.
It's kept separate to avoid circular imports.
"""

import os
from dataclasses import dataclass
from typing import Optional

from mcp_slack.utils.errors import SlackConfigurationError

# Read-only mode environment variable (disabled by default)
MCP_SLACK_READ_ONLY = os.getenv("MCP_SLACK_READ_ONLY", "false").lower() in ("true", "1", "yes")

# Delete protection for destructive tools (delete, archive, kick)
MCP_SLACK_DELETE_PROTECTION = os.getenv("MCP_SLACK_DELETE_PROTECTION", "false").lower() in ("true", "1", "yes")

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_RETRIES = 3
LOG_LEVELS = {"DEBUG", "INFO", "WARN", "WARNING", "ERROR"}


@dataclass(frozen=True)
class SlackConfig:
    """Slack connection settings resolved from the environment."""

    bot_token: str
    user_token: Optional[str] = None
    app_token: Optional[str] = None
    signing_secret: Optional[str] = None
    log_level: str = "INFO"
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES

    @property
    def timeout_seconds(self) -> int:
        return max(1, self.timeout_ms // 1000)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise SlackConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise SlackConfigurationError(f"{name} must not be negative, got {value}")
    return value


def get_log_level() -> str:
    """Return the configured log level name understood by the logging module."""
    level = os.getenv("SLACK_LOG_LEVEL", "INFO").upper()
    if level not in LOG_LEVELS:
        return "INFO"
    return "WARNING" if level == "WARN" else level


def get_slack_config() -> SlackConfig:
    """Build the Slack configuration from environment variables.

    Raises:
        SlackConfigurationError: If SLACK_BOT_TOKEN is missing or a numeric
            setting cannot be parsed.
    """
    bot_token = os.getenv("SLACK_BOT_TOKEN")
    if not bot_token:
        raise SlackConfigurationError(
            "SLACK_BOT_TOKEN is not set. Set SLACK_BOT_TOKEN environment variable."
        )

    return SlackConfig(
        bot_token=bot_token,
        user_token=os.getenv("SLACK_USER_TOKEN") or None,
        app_token=os.getenv("SLACK_APP_TOKEN") or None,
        signing_secret=os.getenv("SLACK_SIGNING_SECRET") or None,
        log_level=get_log_level(),
        timeout_ms=_int_env("SLACK_API_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
        max_retries=_int_env("SLACK_API_MAX_RETRIES", DEFAULT_MAX_RETRIES),
    )
