"""Error classification for Slack MCP tools

Every tool catches exceptions at its boundary and turns them into the
standard ``{"success": False, "error": ..., "metadata": ...}`` envelope using
the helpers in this module.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp
from slack_sdk.errors import SlackApiError

logger = logging.getLogger("mcp-slack-errors")


class SlackToolError(Exception):
    """Base error raised by Slack tools with a user-facing message."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ToolValidationError(SlackToolError, ValueError):
    """Raised when tool arguments do not satisfy the tool's input schema."""

    def __init__(self, message: str):
        super().__init__(message, code="validation_error")


class SlackConfigurationError(SlackToolError):
    """Raised when tokens or other settings are missing or malformed."""

    def __init__(self, message: str):
        super().__init__(message, code="configuration_error")


class WriteProtectionError(SlackToolError, ValueError):
    """Raised when read-only mode or delete protection blocks a tool."""

    def __init__(self, message: str):
        super().__init__(message, code="write_protected")


HTTP_ERROR_MESSAGES: Dict[int, str] = {
    401: "Authentication failed. Please check your Slack bot token.",
    403: "Permission denied. The bot may not have the required permissions.",
    404: "Resource not found. Please check the channel or user ID.",
    429: "Rate limit exceeded. Please try again later.",
}

SLACK_ERROR_MESSAGES: Dict[str, str] = {
    # Authentication
    "invalid_auth": "Invalid authentication token. Please check your bot token.",
    "not_authed": "No authentication token provided. Set SLACK_BOT_TOKEN environment variable.",
    "account_inactive": "Slack account is inactive. Please reactivate your account.",
    "token_revoked": "Authentication token has been revoked. Please generate a new token.",
    "no_permission": "Insufficient permissions. Please check your bot token scopes.",
    "missing_scope": "Missing required OAuth scope. Please check bot permissions.",
    "org_login_required": "Workspace migration in progress. Please try again later.",
    "ekm_access_denied": "Administrators have suspended the ability to post a message.",
    # Channels
    "channel_not_found": "Channel not found. Please check the channel name or ID.",
    "not_in_channel": "Bot is not a member of this channel. Please invite the bot first.",
    "is_archived": "Cannot perform action on archived channel.",
    "channel_is_archived": "Cannot perform action on archived channel.",
    "already_archived": "Channel is already archived.",
    "not_archived": "Channel is not archived.",
    "cant_archive_general": "The general channel cannot be archived.",
    "channel_not_im": "This operation requires a direct message channel.",
    "already_in_channel": "User is already a member of this channel.",
    "name_taken": "A channel with this name already exists.",
    "invalid_name": "Invalid name. Use lowercase letters, numbers, hyphens and underscores.",
    "restricted_action": "A workspace preference prevents this action.",
    "method_not_supported_for_channel_type": "This operation is not supported for this channel type.",
    # Users
    "user_not_found": "User not found. Please check the username or user ID.",
    "users_not_found": "One or more users not found. Please check user IDs.",
    "user_not_in_channel": "User is not a member of this channel.",
    "user_is_bot": "This operation cannot be performed on a bot user.",
    "cant_invite_self": "Cannot invite yourself to a channel.",
    "cant_kick_self": "Cannot remove yourself from a channel. Use leave instead.",
    "cant_kick_from_general": "Users cannot be removed from the general channel.",
    # Messages
    "message_not_found": "Message not found. It may have been deleted.",
    "cant_update_message": "Cannot update this message. You may not have permission.",
    "cant_delete_message": "Cannot delete this message. You may not have permission.",
    "edit_window_closed": "Message edit window has closed.",
    "too_long": "Message is too long. Please shorten your message.",
    "msg_too_long": "Message is too long. Please shorten your message.",
    "no_text": "Message text is required.",
    "invalid_blocks": "Invalid blocks provided. Please check the Block Kit structure.",
    "invalid_ts_latest": "Invalid latest timestamp.",
    "invalid_ts_oldest": "Invalid oldest timestamp.",
    "invalid_cursor": "Invalid pagination cursor.",
    # Reactions and pins
    "already_reacted": "This reaction has already been added to the message.",
    "no_reaction": "This reaction is not present on the message.",
    "too_many_reactions": "The message has reached the maximum number of reactions.",
    "invalid_emoji": "Invalid emoji name.",
    "already_pinned": "Message is already pinned.",
    "not_pinned": "Message is not currently pinned. Cannot remove a pin that does not exist.",
    "too_many_pins": "The channel has reached the maximum number of pinned items.",
    # Files
    "file_not_found": "File not found. Please check the file ID.",
    "file_deleted": "File has been deleted and cannot be accessed.",
    "over_file_size_limit": "File is too large. Please use a smaller file.",
    "compliance_exports_prevent_deletion": "Cannot delete due to compliance export settings.",
    # Views
    "view_too_large": "The view is too large. Reduce the number of blocks.",
    # Rate limiting and availability
    "rate_limited": "API rate limit exceeded. Please wait before making more requests.",
    "ratelimited": "API rate limit exceeded. Please wait before making more requests.",
    "internal_error": "Slack encountered an internal error. Please try again.",
    "fatal_error": "Slack encountered a fatal error. Please try again.",
    "service_unavailable": "Slack service is temporarily unavailable.",
    "request_timeout": "The request to Slack timed out.",
    # General
    "invalid_arguments": "Invalid arguments provided. Please check your input.",
    "not_allowed": "This action is not allowed.",
    "method_deprecated": "This Slack API method is deprecated.",
}

SUGGESTED_ACTIONS: Dict[str, str] = {
    "invalid_auth": "Verify your SLACK_BOT_TOKEN in environment variables",
    "not_authed": "Set SLACK_BOT_TOKEN in environment variables",
    "token_revoked": "Generate a new token in your Slack app settings",
    "no_permission": "Add required OAuth scopes to your Slack app",
    "missing_scope": "Update OAuth scopes in your Slack app settings",
    "channel_not_found": "Check channel exists and bot has access",
    "not_in_channel": "Invite bot to channel or use public channel",
    "is_archived": "Unarchive the channel first",
    "user_not_found": "Verify user ID or username is correct",
    "rate_limited": "Implement exponential backoff and reduce request frequency",
    "ratelimited": "Implement exponential backoff and reduce request frequency",
    "name_taken": "Choose a different channel name",
    "edit_window_closed": "Post a new message instead of editing",
}

RETRYABLE_ERRORS = frozenset(
    {
        "rate_limited",
        "ratelimited",
        "internal_error",
        "fatal_error",
        "service_unavailable",
        "request_timeout",
    }
)

DEFAULT_SUGGESTED_ACTION = "Check Slack API documentation for more details"


def _handle_http_error(status: int, message: str) -> str:
    logger.error(f"Slack HTTP Error ({status}): {message}")
    if status in HTTP_ERROR_MESSAGES:
        return HTTP_ERROR_MESSAGES[status]
    return f"HTTP Error {status}: {message}"


def _handle_platform_error(code: str) -> str:
    logger.error(f"Slack Platform Error: {code}")
    return SLACK_ERROR_MESSAGES.get(code, f"Slack Platform Error: {code}")


def get_error_code(error: Any) -> Optional[str]:
    """Return the Slack error code carried by an exception, if any."""
    if isinstance(error, SlackApiError):
        response = error.response
        code = response.get("error") if response is not None else None
        if code:
            return code
        status = getattr(response, "status_code", None)
        if status == 429:
            return "rate_limited"
        return None
    if isinstance(error, SlackToolError):
        return error.code
    if isinstance(error, aiohttp.ClientResponseError) and error.status == 429:
        return "rate_limited"
    return None


def handle_error(error: Any) -> str:
    """Translate an exception into a user-facing message.

    HTTP failures map by status code, Slack platform failures by their error
    code, other exceptions use their own message.
    """
    if isinstance(error, SlackApiError):
        response = error.response
        status = getattr(response, "status_code", None)
        code = response.get("error") if response is not None else None
        if status and status != 200 and (status in HTTP_ERROR_MESSAGES or not code):
            return _handle_http_error(status, str(error))
        if code:
            return _handle_platform_error(code)
        return str(error) or "An unexpected error occurred"

    if isinstance(error, aiohttp.ClientResponseError):
        return _handle_http_error(error.status, error.message)

    if isinstance(error, BaseException):
        logger.error(f"{type(error).__name__}: {error}")
        return str(error) or "An unexpected error occurred"

    logger.error(f"Unknown error: {error!r}")
    return "An unknown error occurred"


def is_retryable_error(code: Optional[str]) -> bool:
    return code in RETRYABLE_ERRORS


def get_suggested_action(code: Optional[str]) -> str:
    if not code:
        return DEFAULT_SUGGESTED_ACTION
    return SUGGESTED_ACTIONS.get(code, DEFAULT_SUGGESTED_ACTION)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_error_response(
    error: Any,
    tool: Optional[str] = None,
    execution_time_ms: Optional[float] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the standard error envelope for a failed tool call."""
    code = get_error_code(error)
    metadata: Dict[str, Any] = {"timestamp": utc_timestamp()}
    if tool:
        metadata["tool"] = tool
    if execution_time_ms is not None:
        metadata["execution_time_ms"] = execution_time_ms
    if code:
        metadata["error_code"] = code
        metadata["retryable"] = is_retryable_error(code)
        metadata["suggested_action"] = get_suggested_action(code)
    if context:
        metadata["context"] = context

    return {
        "success": False,
        "error": handle_error(error),
        "metadata": metadata,
    }


def validate_required(params: Dict[str, Any], required: list) -> None:
    """Raise ToolValidationError listing every required key that is empty."""
    missing = [key for key in required if not params.get(key)]
    if missing:
        raise ToolValidationError(f"Missing required parameters: {', '.join(missing)}")
