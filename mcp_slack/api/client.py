"""Slack API client

This module wraps the slack_sdk async Web API clients (bot token and optional
user token) and provides the name-to-ID lookups shared by the tools.
"""

import asyncio
import logging
import re
import time
from typing import Any, Dict, Optional, Tuple

from slack_sdk.http_retry.builtin_async_handlers import AsyncRateLimitErrorRetryHandler
from slack_sdk.web.async_client import AsyncWebClient

from mcp_slack.config import SlackConfig, get_slack_config
from mcp_slack.utils.errors import SlackConfigurationError, SlackToolError
from mcp_slack.utils.logging_config import log_slack_api

logger = logging.getLogger("mcp-slack-client")

CHANNEL_ID_RE = re.compile(r"^[CDG][A-Z0-9]{2,}$")
USER_ID_RE = re.compile(r"^[UW][A-Z0-9]{2,}$")

USER_TOKEN_MISSING = "User token not configured. Set SLACK_USER_TOKEN environment variable."


def _payload(response: Any) -> Dict[str, Any]:
    data = getattr(response, "data", response)
    if isinstance(data, dict):
        return data
    return {}


class SlackClient:
    """Bot and user Slack Web API clients with lookup helpers."""

    def __init__(self, bot_client: Any, user_client: Optional[Any] = None):
        self._bot_client = bot_client
        self._user_client = user_client

    @classmethod
    def from_config(cls, config: Optional[SlackConfig] = None) -> "SlackClient":
        config = config or get_slack_config()

        def _build(token: str) -> AsyncWebClient:
            client = AsyncWebClient(token=token, timeout=config.timeout_seconds)
            if config.max_retries:
                client.retry_handlers.append(
                    AsyncRateLimitErrorRetryHandler(max_retry_count=config.max_retries)
                )
            return client

        user_client = _build(config.user_token) if config.user_token else None
        logger.info(
            f"Slack client initialized (timeout={config.timeout_ms}ms, "
            f"max_retries={config.max_retries}, user_token={'yes' if user_client else 'no'})"
        )
        return cls(_build(config.bot_token), user_client)

    @property
    def bot_client(self) -> Any:
        return self._bot_client

    @property
    def user_client(self) -> Any:
        if self._user_client is None:
            raise SlackConfigurationError(USER_TOKEN_MISSING)
        return self._user_client

    @property
    def has_user_token(self) -> bool:
        return self._user_client is not None

    async def call_with_headers(
        self, method: str, *, user_token: bool = False, **kwargs: Any
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Call a Web API method (``conversations.history`` or ``conversations_history``).

        Returns:
            Tuple of (response payload, response headers).
        """
        client = self.user_client if user_token else self._bot_client
        attr = method.replace(".", "_")
        params = {key: value for key, value in kwargs.items() if value is not None}

        started = time.monotonic()
        try:
            response = await getattr(client, attr)(**params)
        except Exception:
            log_slack_api(method, False, (time.monotonic() - started) * 1000)
            raise
        log_slack_api(method, True, (time.monotonic() - started) * 1000)
        return _payload(response), dict(getattr(response, "headers", None) or {})

    async def call(self, method: str, *, user_token: bool = False, **kwargs: Any) -> Dict[str, Any]:
        """Call a Web API method and return its payload. ``None`` arguments are dropped."""
        data, _ = await self.call_with_headers(method, user_token=user_token, **kwargs)
        return data

    async def test_connection(self) -> bool:
        try:
            result = await self.call("auth.test")
        except Exception as e:
            logger.error(f"Slack connection test failed: {e}")
            return False
        logger.info(f"Slack connection test successful: team={result.get('team')} user={result.get('user')}")
        return True

    async def get_workspace_info(self) -> Dict[str, Any]:
        auth, team_info = await asyncio.gather(self.call("auth.test"), self.call("team.info"))
        team = team_info.get("team") or {}
        return {
            "id": auth.get("team_id") or team.get("id"),
            "name": team.get("name"),
            "domain": team.get("domain"),
            "url": auth.get("url"),
            "bot": {"id": auth.get("user_id"), "name": auth.get("user")},
        }

    async def resolve_channel_id(self, channel: str) -> str:
        """Return the channel ID for an ID, ``#name`` or bare name."""
        channel = channel.strip()
        if CHANNEL_ID_RE.match(channel):
            return channel

        name = channel[1:] if channel.startswith("#") else channel
        result = await self.call(
            "conversations.list",
            types="public_channel,private_channel",
            exclude_archived=False,
            limit=1000,
        )
        for candidate in result.get("channels") or []:
            if candidate.get("name") == name:
                return candidate["id"]
        raise SlackToolError(f"Channel not found: {channel}", code="channel_not_found")

    async def get_channel_info(self, channel: str) -> Dict[str, Any]:
        channel_id = await self.resolve_channel_id(channel)
        result = await self.call("conversations.info", channel=channel_id)
        return result.get("channel") or {}

    async def resolve_user_id(self, user: str) -> str:
        """Return the user ID for an ID, ``@name``, username, real name or display name."""
        user = user.strip()
        if USER_ID_RE.match(user):
            return user

        name = user[1:] if user.startswith("@") else user
        result = await self.call("users.list", limit=1000)
        for member in result.get("members") or []:
            profile = member.get("profile") or {}
            if name in (member.get("name"), member.get("real_name"), profile.get("display_name")):
                return member["id"]
        raise SlackToolError(f"User not found: {user}", code="user_not_found")

    async def get_user_info(self, user: str) -> Dict[str, Any]:
        user_id = await self.resolve_user_id(user)
        result = await self.call("users.info", user=user_id)
        return result.get("user") or {}


_client: Optional[SlackClient] = None


def get_slack_client() -> SlackClient:
    """Return the process-wide client, creating it from the environment on first use."""
    global _client
    if _client is None:
        _client = SlackClient.from_config()
    return _client


def set_slack_client(client: Optional[SlackClient]) -> None:
    global _client
    _client = client


def reset_slack_client() -> None:
    set_slack_client(None)
