"""Message operations for Slack MCP"""

import logging
import time
from collections import Counter
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field
from slack_sdk.errors import SlackApiError

from mcp_slack.api.client import USER_ID_RE, get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import MAX_MESSAGE_LENGTH, MESSAGE_TS_PATTERN
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import SlackToolError, ToolValidationError, get_error_code

logger = logging.getLogger("mcp-slack-messages")


def permalink(channel_id: str, ts: Optional[str]) -> Optional[str]:
    if not ts:
        return None
    return f"https://slack.com/archives/{channel_id}/p{ts.replace('.', '')}"


async def resolve_destination(channel: str) -> str:
    """Channel reference or user (ID or ``@name``) for a direct message."""
    client = get_slack_client()
    if USER_ID_RE.match(channel):
        return channel
    if channel.startswith("@"):
        return await client.resolve_user_id(channel)
    return await client.resolve_channel_id(channel)


async def fetch_message(channel_id: str, ts: str) -> Optional[Dict[str, Any]]:
    """Return the message at ``ts`` in ``channel_id``, or None when it is gone."""
    result = await get_slack_client().call(
        "conversations.history", channel=channel_id, latest=ts, inclusive=True, limit=1
    )
    for message in result.get("messages") or []:
        if message.get("ts") == ts:
            return message
    return None


async def thread_replies(channel_id: str, ts: str) -> List[Dict[str, Any]]:
    """Replies under the thread parent at ``ts``; empty when they cannot be read."""
    try:
        result = await get_slack_client().call("conversations.replies", channel=channel_id, ts=ts, limit=1000)
    except SlackApiError as e:
        logger.warning(f"Could not back up thread replies of {ts}: {e}")
        return []
    return [m for m in result.get("messages") or [] if m.get("ts") != ts]


@slack_tool(
    name="slack_send_message",
    description=(
        "Send a message to a Slack channel, DM or thread with support for "
        "Block Kit blocks, attachments and link unfurling"
    ),
    write=True,
)
async def send_message(
    channel: Annotated[
        str,
        Field(
            min_length=1,
            description="Channel ID, channel name (with or without #), or user ID/@username for a DM",
        ),
    ],
    text: Annotated[
        str,
        Field(min_length=1, max_length=MAX_MESSAGE_LENGTH, description="Message text (Slack mrkdwn)"),
    ],
    thread_ts: Annotated[
        Optional[str],
        Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the parent message to reply in thread"),
    ] = None,
    blocks: Annotated[
        Optional[List[Dict[str, Any]]], Field(description="Block Kit blocks for rich formatting")
    ] = None,
    attachments: Annotated[
        Optional[List[Dict[str, Any]]], Field(description="Legacy message attachments")
    ] = None,
    unfurl_links: Annotated[bool, Field(description="Enable automatic link unfurling")] = True,
    unfurl_media: Annotated[bool, Field(description="Enable automatic media unfurling")] = True,
    reply_broadcast: Annotated[
        bool, Field(description="Also broadcast a thread reply to the channel")
    ] = False,
    link_names: Annotated[bool, Field(description="Find and link channel names and usernames")] = True,
) -> ToolResult:
    """Post a message with chat.postMessage.

    Returns:
        The posted message with its channel, timestamp and permalink.
    """
    logger.debug(f"send_message called with channel={channel}, thread_ts={thread_ts}")
    channel_id = await resolve_destination(channel)

    result = await get_slack_client().call(
        "chat.postMessage",
        channel=channel_id,
        text=text,
        thread_ts=thread_ts,
        reply_broadcast=reply_broadcast if thread_ts else None,
        blocks=blocks,
        attachments=attachments,
        unfurl_links=unfurl_links,
        unfurl_media=unfurl_media,
        link_names=link_names,
    )

    posted_channel = result.get("channel") or channel_id
    return ToolResult(
        data={
            "channel": posted_channel,
            "ts": result.get("ts"),
            "text": text,
            "message": result.get("message"),
            "permalink": permalink(posted_channel, result.get("ts")),
        },
        metadata={
            "channel_id": posted_channel,
            "thread_ts": thread_ts,
            "has_blocks": bool(blocks),
            "has_attachments": bool(attachments),
        },
    )


def _validate_content(text: Optional[str], blocks: Optional[List[Dict[str, Any]]]) -> List[str]:
    warnings = []
    if text is not None:
        if not text.strip():
            warnings.append("Updated text is empty or whitespace")
        if "<!channel>" in text or "<!here>" in text or "@channel" in text or "@here" in text:
            warnings.append("Update contains a channel-wide mention; edited mentions do not notify again")
        if len(text) > 4000:
            warnings.append("Long message; consider splitting it or using a thread")
    if blocks is not None and len(blocks) > 50:
        warnings.append("More than 50 blocks; Slack rejects messages with over 50 blocks")
    return warnings


@slack_tool(
    name="slack_chat_update",
    description="Update an existing message, optionally tracking what changed and validating the new content",
    write=True,
)
async def chat_update(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name containing the message")],
    ts: Annotated[str, Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the message to update")],
    text: Annotated[
        Optional[str], Field(max_length=MAX_MESSAGE_LENGTH, description="New message text")
    ] = None,
    blocks: Annotated[Optional[List[Dict[str, Any]]], Field(description="New Block Kit blocks")] = None,
    attachments: Annotated[Optional[List[Dict[str, Any]]], Field(description="New legacy attachments")] = None,
    link_names: Annotated[bool, Field(description="Find and link channel names and usernames")] = True,
    parse: Annotated[Optional[str], Field(pattern=r"^(full|none)$", description="Parse mode: full or none")] = None,
    validate_content: Annotated[bool, Field(description="Check the new content for common problems")] = True,
    track_changes: Annotated[bool, Field(description="Fetch the original and report what changed")] = True,
    notify_users: Annotated[
        bool, Field(description="Post a thread note that the message was edited")
    ] = False,
) -> ToolResult:
    """Edit a message and report what changed.

    Returns:
        The updated message, with a change summary and content warnings in metadata.

    Raises:
        ToolValidationError: If text, blocks and attachments are all missing.
    """
    if text is None and blocks is None and attachments is None:
        raise ToolValidationError("Validation failed: text: one of text, blocks or attachments is required")

    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)

    original = await fetch_message(channel_id, ts) if track_changes else None
    warnings = _validate_content(text, blocks) if validate_content else []

    result = await client.call(
        "chat.update",
        channel=channel_id,
        ts=ts,
        text=text,
        blocks=blocks,
        attachments=attachments,
        link_names=link_names,
        parse=parse,
    )

    if notify_users:
        await client.call("chat.postMessage", channel=channel_id, thread_ts=ts, text="_This message was edited._")

    changes = None
    if original is not None:
        before = original.get("text") or ""
        after = text if text is not None else before
        changes = {
            "original_text": before,
            "updated_text": after,
            "length_delta": len(after) - len(before),
            "similarity": insights.text_similarity(before, after),
            "blocks_changed": blocks is not None,
            "attachments_changed": attachments is not None,
            "edit_age_minutes": round((time.time() - insights.message_ts(original)) / 60),
            "had_replies": (original.get("reply_count") or 0) > 0,
            "had_reactions": bool(original.get("reactions")),
        }
        if changes["similarity"] < 0.3:
            warnings.append("The edit substantially changes the message meaning")
        if changes["had_replies"]:
            warnings.append("The message has thread replies that may refer to the original text")

    return ToolResult(
        data={
            "channel": result.get("channel") or channel_id,
            "ts": result.get("ts") or ts,
            "text": result.get("text", text),
            "message": result.get("message"),
        },
        metadata={"channel_id": channel_id, "changes": changes, "warnings": warnings},
    )


@slack_tool(
    name="slack_chat_delete",
    description="Delete a message with optional backup, permission check, confirmation and impact analysis",
    write=True,
    destructive=True,
)
async def chat_delete(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name containing the message")],
    ts: Annotated[str, Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the message to delete")],
    create_backup: Annotated[bool, Field(description="Return a copy of the message before deleting")] = True,
    check_permissions: Annotated[
        bool, Field(description="Verify the bot authored the message before deleting")
    ] = True,
    require_confirmation: Annotated[
        bool, Field(description="Require confirmation_code to equal DELETE-<ts>")
    ] = False,
    confirmation_code: Annotated[Optional[str], Field(description="Confirmation code: DELETE-<ts>")] = None,
    notify_users: Annotated[
        Optional[List[str]], Field(description="User IDs to send a direct message about the deletion")
    ] = None,
    audit_reason: Annotated[
        Optional[str], Field(max_length=500, description="Reason recorded in the audit log")
    ] = None,
) -> ToolResult:
    """Delete a message after optional confirmation, permission check and backup.

    Args:
        notify_users: User IDs who each receive a direct message about the deletion.

    Returns:
        The deleted message reference and its backup (thread replies included),
        with impact analysis and notification results in metadata.

    Raises:
        SlackToolError: If the confirmation code is wrong, the message is gone
            or the bot did not author it.
    """
    if require_confirmation and confirmation_code != f"DELETE-{ts}":
        raise SlackToolError(
            f"Deletion not confirmed. Set confirmation_code to DELETE-{ts} to delete this message.",
            code="confirmation_required",
        )

    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)

    message = await fetch_message(channel_id, ts)
    if message is None:
        raise SlackToolError("Message not found. It may have been deleted.", code="message_not_found")

    if check_permissions:
        auth = await client.call("auth.test")
        bot_user, bot_id = auth.get("user_id"), auth.get("bot_id")
        if message.get("user") not in (None, bot_user) and message.get("bot_id") != bot_id:
            raise SlackToolError(
                "Cannot delete this message. You may not have permission.", code="cant_delete_message"
            )

    impact = insights.analyze_deletion(message)
    backup = None
    if create_backup:
        backup = {
            "ts": message.get("ts"),
            "user": message.get("user"),
            "text": message.get("text"),
            "blocks": message.get("blocks"),
            "attachments": message.get("attachments"),
            "files": [f.get("id") for f in message.get("files") or []],
            "reactions": message.get("reactions"),
            "reply_count": message.get("reply_count", 0),
            "replies": await thread_replies(channel_id, ts) if message.get("reply_count") else [],
            "backed_up_at": insights.iso_time(time.time()),
        }

    await client.call("chat.delete", channel=channel_id, ts=ts)
    logger.info(f"Deleted message {ts} in {channel_id}; reason={audit_reason or 'not given'}")

    notifications = []
    if notify_users:
        note = f"A message was deleted in <#{channel_id}>"
        if audit_reason:
            note += f". Reason: {audit_reason}"
        for user_id in notify_users:
            try:
                await client.call("chat.postMessage", channel=user_id, text=note)
                notifications.append({"user_id": user_id, "success": True})
            except SlackApiError as e:
                logger.warning(f"Could not notify {user_id} about deleted message {ts}: {e}")
                notifications.append({"user_id": user_id, "success": False, "error": get_error_code(e)})

    recommendations = []
    if impact["impact_assessment"]["message_importance"] == "critical":
        recommendations.append("Critical message - consider editing instead of deleting next time")
    if impact["content_analysis"]["contains_files"]:
        recommendations.append("Message contained files - delete or archive the files separately if needed")
    if impact["content_analysis"]["contains_sensitive_data"]:
        recommendations.append("Message may have contained sensitive data - verify compliance requirements")

    return ToolResult(
        data={"channel": channel_id, "ts": ts, "deleted": True, "backup": backup},
        metadata={
            "analytics": impact,
            "recommendations": recommendations,
            "audit_reason": audit_reason,
            "notifications": notifications or None,
        },
    )


@slack_tool(
    name="slack_get_channel_history",
    description="Get message history from a channel with basic activity analytics",
)
async def get_channel_history(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name")],
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of messages to return")] = 100,
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    latest: Annotated[Optional[str], Field(description="End of the time range (message ts)")] = None,
    oldest: Annotated[Optional[str], Field(description="Start of the time range (message ts)")] = None,
    inclusive: Annotated[bool, Field(description="Include messages at latest/oldest")] = False,
    include_analytics: Annotated[bool, Field(description="Include activity analytics")] = True,
) -> ToolResult:
    """Get channel history with basic activity analytics.

    Returns:
        Messages, has_more and next_cursor.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    result = await client.call(
        "conversations.history",
        channel=channel_id,
        limit=limit,
        cursor=cursor,
        latest=latest,
        oldest=oldest,
        inclusive=inclusive,
    )
    messages = result.get("messages") or []
    next_cursor = (result.get("response_metadata") or {}).get("next_cursor") or None

    summary = None
    if include_analytics:
        timestamps = [insights.message_ts(m) for m in messages if insights.message_ts(m)]
        summary = {
            "message_count": len(messages),
            "unique_users": len({m.get("user") for m in messages if m.get("user")}),
            "thread_count": sum(1 for m in messages if (m.get("reply_count") or 0) > 0),
            "total_reactions": sum(insights.reaction_count(m) for m in messages),
            "oldest_message": insights.iso_time(min(timestamps)) if timestamps else None,
            "newest_message": insights.iso_time(max(timestamps)) if timestamps else None,
        }

    return ToolResult(
        data={
            "channel": channel_id,
            "messages": messages,
            "has_more": bool(result.get("has_more")),
            "next_cursor": next_cursor,
        },
        metadata={"channel_id": channel_id, "message_count": len(messages), "analytics": summary},
    )


@slack_tool(
    name="slack_conversations_history",
    description=(
        "Retrieve conversation history with message, engagement, content, "
        "temporal, thread and sentiment analytics"
    ),
)
async def conversations_history(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name")],
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    latest: Annotated[Optional[str], Field(description="End of the time range (message ts)")] = None,
    oldest: Annotated[Optional[str], Field(description="Start of the time range (message ts)")] = None,
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of messages to return")] = 100,
    inclusive: Annotated[bool, Field(description="Include messages at latest/oldest")] = False,
    include_all_metadata: Annotated[bool, Field(description="Return all message metadata")] = False,
    analytics: Annotated[
        bool, Field(description="Include conversation analytics and recommendations")
    ] = True,
) -> ToolResult:
    """Get channel history with content and engagement analytics.

    Returns:
        Messages with pagination and optional analytics.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    result = await client.call(
        "conversations.history",
        channel=channel_id,
        cursor=cursor,
        latest=latest,
        oldest=oldest,
        limit=limit,
        inclusive=inclusive,
        include_all_metadata=include_all_metadata or None,
    )
    messages = result.get("messages") or []
    next_cursor = (result.get("response_metadata") or {}).get("next_cursor") or None

    report = recommendations = None
    if analytics:
        report = insights.history_analytics(messages)
        recommendations = insights.history_recommendations(report, messages)

    return ToolResult(
        data={
            "channel": channel_id,
            "messages": messages,
            "has_more": bool(result.get("has_more")),
            "response_metadata": {"next_cursor": next_cursor},
        },
        metadata={
            "channel_id": channel_id,
            "message_count": len(messages),
            "analytics": report,
            "recommendations": recommendations,
        },
    )


@slack_tool(
    name="slack_conversations_replies",
    description="Retrieve a thread's replies with participant, velocity and sentiment analytics",
)
async def conversations_replies(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name containing the thread")],
    ts: Annotated[str, Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the thread's parent message")],
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    latest: Annotated[Optional[str], Field(description="End of the time range (message ts)")] = None,
    oldest: Annotated[Optional[str], Field(description="Start of the time range (message ts)")] = None,
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of messages to return")] = 100,
    inclusive: Annotated[bool, Field(description="Include messages at latest/oldest")] = False,
    include_analytics: Annotated[bool, Field(description="Include thread analytics")] = True,
) -> ToolResult:
    """Get the replies in a thread.

    Returns:
        The thread messages with pagination and optional thread analytics.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    result = await client.call(
        "conversations.replies",
        channel=channel_id,
        ts=ts,
        cursor=cursor,
        latest=latest,
        oldest=oldest,
        limit=limit,
        inclusive=inclusive,
    )
    messages = result.get("messages") or []
    parent = next((m for m in messages if m.get("ts") == ts), messages[0] if messages else None)
    replies = [m for m in messages if m is not parent]

    report = None
    if include_analytics:
        participants = Counter(m.get("user") for m in replies if m.get("user"))
        velocity = insights.communication_velocity(messages)
        last_texts = " ".join((m.get("text") or "").lower() for m in replies[-3:])
        resolved = any(word in last_texts for word in ("resolved", "fixed", "done", "thanks", "solved", "merged"))
        report = {
            "reply_count": len(replies),
            "participant_count": len(participants),
            "top_participants": [user for user, _ in participants.most_common(5)],
            "thread_starter": (parent or {}).get("user"),
            "thread_duration_hours": round(
                (insights.message_ts(messages[-1]) - insights.message_ts(messages[0])) / 3600, 2
            ) if len(messages) > 1 else 0,
            "reply_velocity": velocity,
            "sentiment": insights.analyze_sentiment(replies),
            "resolution_status": "likely_resolved" if resolved else "open",
            "total_reactions": sum(insights.reaction_count(m) for m in messages),
        }

    return ToolResult(
        data={
            "channel": channel_id,
            "thread_ts": ts,
            "messages": messages,
            "has_more": bool(result.get("has_more")),
            "response_metadata": {
                "next_cursor": (result.get("response_metadata") or {}).get("next_cursor") or None
            },
        },
        metadata={"channel_id": channel_id, "analytics": report},
    )


@slack_tool(
    name="slack_conversations_mark",
    description="Set the read cursor in a channel with read-activity, unread and engagement analytics",
    write=True,
)
async def conversations_mark(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name")],
    ts: Annotated[str, Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the most recently seen message")],
    analytics: Annotated[
        bool, Field(description="Include read activity analytics and recommendations")
    ] = True,
) -> ToolResult:
    """Set the read cursor of a channel.

    Returns:
        The channel and the timestamp it was marked at.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)

    history: List[Dict[str, Any]] = []
    if analytics:
        result = await client.call("conversations.history", channel=channel_id, limit=200)
        history = result.get("messages") or []

    await client.call("conversations.mark", channel=channel_id, ts=ts)

    report = recommendations = None
    if analytics:
        marked = float(ts)
        unread = [m for m in history if insights.message_ts(m) > marked]
        before = [m for m in history if 0 < insights.message_ts(m) <= marked][:50]
        report = {
            "read_activity": insights.analyze_read_activity(history, ts),
            "engagement_impact": insights.analyze_engagement_impact(before, unread[-50:]),
            "unread_analysis": insights.analyze_unread_messages(unread),
            "channel_activity": insights.analyze_channel_activity(history),
            "read_behavior": insights.analyze_read_behavior(ts),
        }
        recommendations = insights.generate_mark_recommendations(report)

    return ToolResult(
        data={"channel": channel_id, "ts": ts, "marked": True},
        metadata={"channel_id": channel_id, "analytics": report, "recommendations": recommendations},
    )
