"""Pin and bookmark operations for Slack MCP"""

import logging
import time
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import MAX_PINS_PER_CHANNEL, MESSAGE_TS_PATTERN
from mcp_slack.tools.slack.messages import fetch_message
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import SLACK_ERROR_MESSAGES, SlackToolError, get_error_code, handle_error

logger = logging.getLogger("mcp-slack-pins")

Channel = Annotated[str, Field(min_length=1, description="Channel ID or name")]
Timestamp = Annotated[str, Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the message")]


@slack_tool(
    name="slack_pins_add",
    description="Pin a message with content analysis, pin limit checks and optional channel notification",
    write=True,
)
async def pins_add(
    channel: Channel,
    timestamp: Timestamp,
    notify_channel: Annotated[bool, Field(description="Reply in the message thread announcing the pin")] = False,
    custom_notification_message: Annotated[
        Optional[str], Field(max_length=4000, description="Text of the pin announcement")
    ] = None,
    analyze_content: Annotated[bool, Field(description="Analyze how worthwhile the message is to pin")] = True,
    check_pin_limit: Annotated[
        bool, Field(description=f"Refuse to pin when the channel already has {MAX_PINS_PER_CHANNEL} pins")
    ] = True,
    add_context: Annotated[
        bool, Field(description="Include the pin reasons in the default announcement")
    ] = True,
) -> ToolResult:
    """Pin a message to a channel.

    Returns:
        The pin reference and, optionally, the pinned message context.

    Raises:
        SlackToolError: If the message does not exist or the channel is at its pin limit.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)

    message = await fetch_message(channel_id, timestamp)
    if message is None:
        raise SlackToolError(SLACK_ERROR_MESSAGES["message_not_found"], code="message_not_found")

    content = insights.analyze_pin_content(message) if analyze_content or add_context else None

    current_pins = None
    if check_pin_limit:
        current_pins = len((await client.call("pins.list", channel=channel_id)).get("items") or [])
        if current_pins >= MAX_PINS_PER_CHANNEL:
            raise SlackToolError(
                f"Channel has reached the maximum number of pins ({MAX_PINS_PER_CHANNEL}). "
                "Please unpin a message first.",
                code="too_many_pins",
            )

    await client.call("pins.add", channel=channel_id, timestamp=timestamp)
    logger.info(f"Pinned {timestamp} in {channel_id}")

    warnings: List[str] = []
    notification = None
    if notify_channel:
        text = custom_notification_message
        if not text and add_context and content:
            reasons = ", ".join(content["pin_worthiness"]["reasons"][:2])
            text = "Message pinned"
            if reasons:
                text += f" ({reasons})"
            text += f" - {content['estimated_relevance_duration']} estimated relevance"
        elif not text:
            text = "Message has been pinned to this channel"
        try:
            await client.call("chat.postMessage", channel=channel_id, thread_ts=timestamp, text=text)
            notification = text
        except Exception as e:
            warnings.append(f"Failed to notify channel: {handle_error(e)}")

    recommendations = None
    if content:
        recommendations = []
        if content["importance_score"] < 50:
            recommendations.append("Low pin-worthiness score - make sure this message is worth pinning")
        if content["message_type"] == "resource":
            recommendations.append("Resource message - consider adding it to the channel bookmarks as well")
        if current_pins is not None and current_pins + 1 >= MAX_PINS_PER_CHANNEL * 0.8:
            recommendations.append("Channel is close to its pin limit - review and remove outdated pins")

    return ToolResult(
        data={
            "pin": {"channel_id": channel_id, "message_ts": timestamp, "pinned": True},
            "notification": notification,
        },
        metadata={
            "channel_id": channel_id,
            "content_analysis": content if analyze_content else None,
            "pin_context": {
                "current_pins_count": current_pins + 1,
                "pin_limit": MAX_PINS_PER_CHANNEL,
                "pins_remaining": MAX_PINS_PER_CHANNEL - current_pins - 1,
            } if current_pins is not None else None,
            "recommendations": recommendations,
            "warnings": warnings or None,
        },
    )


@slack_tool(
    name="slack_pins_remove",
    description="Unpin a message from a channel",
    write=True,
)
async def pins_remove(
    channel: Channel,
    timestamp: Timestamp,
    reason: Annotated[Optional[str], Field(max_length=500, description="Reason for removing the pin")] = None,
) -> ToolResult:
    """Unpin a message from a channel.

    Returns:
        The removal reference.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    try:
        await client.call("pins.remove", channel=channel_id, timestamp=timestamp)
    except Exception as e:
        # Slack answers "no_pin" for a message that is not pinned
        if get_error_code(e) in ("no_pin", "not_pinned"):
            raise SlackToolError(SLACK_ERROR_MESSAGES["not_pinned"], code="not_pinned") from e
        raise

    logger.info(f"Unpinned {timestamp} in {channel_id}; reason={reason or 'not given'}")
    return ToolResult(
        data={"removal": {"channel_id": channel_id, "message_ts": timestamp, "removed": True}},
        metadata={"channel_id": channel_id, "reason": reason},
    )


def _pin_item(pin: Dict[str, Any], now: float) -> Dict[str, Any]:
    message = pin.get("message") or {}
    age_hours = (now - insights.message_ts(message)) / 3600
    return {
        "message": {
            "ts": message.get("ts"),
            "text": message.get("text") or "",
            "user": message.get("user") or "unknown",
            "permalink": message.get("permalink"),
        },
        "pin_info": {
            "pinned_by": pin.get("created_by"),
            "pinned_at": insights.iso_time(pin["created"]) if pin.get("created") else None,
            "pin_age_hours": round(age_hours, 2),
            "importance_score": insights.pin_importance_score(message, age_hours),
            "engagement": {
                "reaction_count": insights.reaction_count(message),
                "reply_count": message.get("reply_count") or 0,
                "has_files": bool(message.get("files")),
                "has_links": "http" in (message.get("text") or ""),
            },
        },
    }


@slack_tool(
    name="slack_pins_list",
    description="List pinned messages with importance scoring, sorting and pin analytics",
)
async def pins_list(
    channel: Channel,
    sort_by: Annotated[
        str, Field(pattern=r"^(date|importance|engagement)$", description="Sort by date, importance or engagement")
    ] = "date",
    include_analytics: Annotated[bool, Field(description="Include pin collection analytics")] = True,
) -> ToolResult:
    """List the pins of a channel.

    Returns:
        Pinned items with optional pin analytics.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    result = await client.call("pins.list", channel=channel_id)
    now = time.time()
    pins = [_pin_item(item, now) for item in result.get("items") or [] if item.get("message")]

    if sort_by == "importance":
        pins.sort(key=lambda p: p["pin_info"]["importance_score"], reverse=True)
    elif sort_by == "engagement":
        pins.sort(
            key=lambda p: p["pin_info"]["engagement"]["reaction_count"] + p["pin_info"]["engagement"]["reply_count"],
            reverse=True,
        )
    else:
        pins.sort(key=lambda p: float(p["message"]["ts"] or 0), reverse=True)

    report = None
    if include_analytics:
        scores = [p["pin_info"]["importance_score"] for p in pins]
        ages = [p["pin_info"]["pin_age_hours"] for p in pins]
        stale = sum(1 for age in ages if age > 24 * 90)
        report = {
            "total_pins": len(pins),
            "pin_limit": MAX_PINS_PER_CHANNEL,
            "capacity_used": round(len(pins) / MAX_PINS_PER_CHANNEL * 100),
            "average_importance": round(sum(scores) / len(scores)) if scores else 0,
            "average_age_days": round(sum(ages) / len(ages) / 24, 1) if ages else 0,
            "stale_pins": stale,
            "pins_with_files": sum(1 for p in pins if p["pin_info"]["engagement"]["has_files"]),
        }
        recommendations = []
        if stale:
            recommendations.append(f"{stale} pin(s) are older than 90 days - review whether they are still relevant")
        if len(pins) >= MAX_PINS_PER_CHANNEL * 0.8:
            recommendations.append("Channel is close to its pin limit")
        if not pins:
            recommendations.append("No pinned messages - pin key decisions and resources for quick access")
        report["recommendations"] = recommendations

    return ToolResult(
        data={"channel": channel_id, "total_pins": len(pins), "pins": pins},
        metadata={"channel_id": channel_id, "sort_by": sort_by, "analytics": report},
    )


def organization_score(bookmarks: List[Dict[str, Any]]) -> int:
    if not bookmarks:
        return 0
    titled = sum(1 for b in bookmarks if (b.get("title") or "").strip())
    types = {b.get("type") for b in bookmarks}
    return round(50 + titled / len(bookmarks) * 30 + min(len(types) * 5, 20))


def bookmark_usage(count: int) -> str:
    if count == 0:
        return "none"
    if count < 5:
        return "light"
    if count < 15:
        return "moderate"
    return "heavy"


@slack_tool(
    name="slack_bookmarks_list",
    description="List channel bookmarks with organization analytics",
)
async def bookmarks_list(
    channel_id: Annotated[str, Field(min_length=1, description="Channel ID or name to list bookmarks for")],
    include_analytics: Annotated[bool, Field(description="Include bookmark organization analytics")] = True,
) -> ToolResult:
    """List the bookmarks of a channel.

    Returns:
        Bookmarks with optional bookmark analytics.
    """
    client = get_slack_client()
    resolved = await client.resolve_channel_id(channel_id)
    result = await client.call("bookmarks.list", channel_id=resolved)
    bookmarks = result.get("bookmarks") or []

    report = None
    if include_analytics:
        types: Dict[str, int] = {}
        for bookmark in bookmarks:
            kind = bookmark.get("type") or "unknown"
            types[kind] = types.get(kind, 0) + 1
        score = organization_score(bookmarks)
        recommendations = []
        if not bookmarks:
            recommendations.append("No bookmarks found - consider adding important links and resources")
        elif score < 70:
            recommendations.append("Low organization score - add titles and group related bookmarks")
        report = {
            "total_bookmarks": len(bookmarks),
            "bookmark_types": types,
            "organization_score": score,
            "usage": bookmark_usage(len(bookmarks)),
            "recommendations": recommendations,
        }

    return ToolResult(
        data={"channel": resolved, "bookmarks": bookmarks},
        metadata={"channel_id": resolved, "bookmark_count": len(bookmarks), "analytics": report},
    )
