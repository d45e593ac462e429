"""
Token Sanitizer - credential redaction for log output.

Keeps Slack tokens and signing secrets out of log lines and tool
metadata. Tool arguments are logged on every call and users sometimes
paste tokens into message text, so every logged value goes through here.

Covers:
- Bot, user, app-level and refresh tokens (xoxb-*, xoxp-*, xoxa-*, xoxr-*, xoxe-*)
- App-level socket mode tokens (xapp-*)
- Bearer auth headers
- Known token values from environment variables

Usage:
    from mcp_slack.utils.sanitizer import sanitize_output

    safe_text = sanitize_output(text)
"""

import logging
import os
import re
from typing import Any, List, Optional

REDACTED = "[REDACTED]"

_SLACK_TOKEN_RE = re.compile(r"xox[abposre](?:\.[A-Za-z0-9]+)?-[A-Za-z0-9\-]{8,}")

_SLACK_APP_TOKEN_RE = re.compile(r"xapp-[A-Za-z0-9\-]{8,}")

_BEARER_TOKEN_RE = re.compile(
    r"(Bearer\s+)([A-Za-z0-9_\-\.]{20,})",
    re.IGNORECASE,
)

_PATTERNS = [
    (_SLACK_TOKEN_RE, REDACTED),
    (_SLACK_APP_TOKEN_RE, REDACTED),
]

_SECRET_ENV_VARS = (
    "SLACK_BOT_TOKEN",
    "SLACK_USER_TOKEN",
    "SLACK_APP_TOKEN",
    "SLACK_SIGNING_SECRET",
)


def _get_known_tokens() -> List[str]:
    """Collect configured secret values so they are redacted even without a known prefix."""
    tokens: List[str] = []
    for env_var in _SECRET_ENV_VARS:
        val = os.getenv(env_var)
        if val and len(val) > 4:
            tokens.append(val)
    return tokens


def sanitize_output(text: str, extra_tokens: Optional[List[str]] = None) -> str:
    """
    Remove Slack credentials from text.

    Applies exact-value redaction for configured secrets first, then
    pattern-based redaction for anything that looks like a Slack token.

    Args:
        text: Text that may contain tokens
        extra_tokens: Additional token strings to redact (optional)

    Returns:
        Sanitized text with all tokens replaced by [REDACTED]
    """
    if not text:
        return text

    sanitized = text

    known = _get_known_tokens()
    if extra_tokens:
        known.extend(t for t in extra_tokens if t and len(t) > 4)

    for token in known:
        if token in sanitized:
            sanitized = sanitized.replace(token, REDACTED)

    for pattern, replacement in _PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    sanitized = _BEARER_TOKEN_RE.sub(lambda m: f"{m.group(1)}{REDACTED}", sanitized)

    return sanitized


def sanitize_value(value: Any) -> Any:
    """Recursively sanitize strings inside dicts, lists and tuples."""
    if isinstance(value, str):
        return sanitize_output(value)
    if isinstance(value, dict):
        return {key: sanitize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_value(item) for item in value)
    return value


class TokenRedactionFilter(logging.Filter):
    """Logging filter that redacts Slack tokens from formatted records."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        sanitized = sanitize_output(message)
        if sanitized != message:
            record.msg = sanitized
            record.args = None
        return True
