"""Reaction operations for Slack MCP"""

import logging
import time
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import MESSAGE_TS_PATTERN
from mcp_slack.tools.slack.messages import fetch_message
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import ToolValidationError, handle_error

logger = logging.getLogger("mcp-slack-reactions")

Channel = Annotated[str, Field(min_length=1, description="Channel ID or name containing the message")]
Timestamp = Annotated[str, Field(pattern=MESSAGE_TS_PATTERN, description="Timestamp of the message")]
EmojiName = Annotated[
    str, Field(min_length=1, max_length=100, description="Emoji name, with or without surrounding colons")
]


def _emoji(name: str) -> str:
    emoji = insights.normalize_emoji(name)
    if not emoji:
        raise ToolValidationError("Validation failed: name: emoji name must not be empty")
    return emoji


def reaction_recommendations(emoji: str, message: Optional[Dict[str, Any]]) -> List[str]:
    recommendations = []
    sentiment = insights.emoji_sentiment(emoji)
    if sentiment >= 7:
        recommendations.append("Positive reaction added - reinforces good communication")
    elif sentiment <= 3:
        recommendations.append("Negative reaction added - consider following up in a thread to explain")
    if message:
        existing = len(message.get("reactions") or [])
        if existing > 5:
            recommendations.append("Message already has many reactions - it is getting strong engagement")
        if (message.get("reply_count") or 0) > 0:
            recommendations.append("Message has a thread - a reply may add more context than a reaction")
    if insights.categorize_emoji(emoji) == "question":
        recommendations.append("Question reaction - consider asking your question in the thread")
    return recommendations


@slack_tool(
    name="slack_reactions_add",
    description="Add an emoji reaction to a message with sentiment and engagement analytics",
    write=True,
)
async def reactions_add(
    channel: Channel,
    timestamp: Timestamp,
    name: EmojiName,
    analytics: Annotated[bool, Field(description="Include reaction analytics and sentiment tracking")] = True,
) -> ToolResult:
    """Add an emoji reaction to a message.

    Returns:
        The reaction reference with optional reaction analytics.
    """
    client = get_slack_client()
    emoji = _emoji(name)
    channel_id = await client.resolve_channel_id(channel)

    message = None
    if analytics:
        try:
            message = await fetch_message(channel_id, timestamp)
        except Exception as e:
            logger.debug(f"Could not load message {timestamp} for analytics: {handle_error(e)}")

    await client.call("reactions.add", channel=channel_id, timestamp=timestamp, name=emoji)

    report = None
    recommendations = None
    if analytics:
        now = time.time()
        report = {
            "emoji_category": insights.categorize_emoji(emoji),
            "sentiment_value": insights.emoji_sentiment(emoji),
            "reaction_timing": insights.reaction_timing(float(timestamp), now),
            "popularity": insights.emoji_popularity(emoji),
            "emotional_context": insights.emotional_context(emoji),
            "social_signal_strength": insights.social_signal_strength(emoji),
            "message_context": {
                "existing_reactions": len(message.get("reactions") or []),
                "message_author": message.get("user"),
                "message_length": len(message.get("text") or ""),
                "is_thread_parent": (message.get("reply_count") or 0) > 0,
                "is_thread_reply": bool(message.get("thread_ts")) and message.get("thread_ts") != message.get("ts"),
            } if message else None,
        }
        # Engagement gained from this reaction: the score with it minus the score without it
        if message:
            before = message.get("reactions") or []
            after = [dict(r) for r in before]
            for reaction in after:
                if reaction.get("name") == emoji:
                    reaction["count"] = (reaction.get("count") or 0) + 1
                    break
            else:
                after.append({"name": emoji, "count": 1, "users": []})
            report["engagement_boost"] = (
                insights.calculate_engagement_score(after, message, now)
                - insights.calculate_engagement_score(before, message, now)
            )
        recommendations = reaction_recommendations(emoji, message)

    return ToolResult(
        data={"reaction": {"emoji": emoji, "channel_id": channel_id, "message_ts": timestamp, "added": True}},
        metadata={"channel_id": channel_id, "analytics": report, "recommendations": recommendations},
    )


@slack_tool(
    name="slack_reactions_remove",
    description="Remove an emoji reaction from a message with impact analysis",
    write=True,
)
async def reactions_remove(
    channel: Channel,
    timestamp: Timestamp,
    name: EmojiName,
    analyze_impact: Annotated[bool, Field(description="Analyze the effect of removing the reaction")] = True,
    notify_users: Annotated[bool, Field(description="Post a thread reply explaining the removal")] = False,
    reason: Annotated[Optional[str], Field(max_length=500, description="Reason for removing the reaction")] = None,
) -> ToolResult:
    """Remove an emoji reaction from a message.

    Returns:
        The removal reference with optional impact analytics.
    """
    client = get_slack_client()
    emoji = _emoji(name)
    channel_id = await client.resolve_channel_id(channel)

    before: List[Dict[str, Any]] = []
    message = None
    if analyze_impact:
        try:
            result = await client.call("reactions.get", channel=channel_id, timestamp=timestamp, full=True)
            message = result.get("message") or {}
            before = message.get("reactions") or []
        except Exception as e:
            logger.debug(f"Could not load reactions for {timestamp}: {handle_error(e)}")

    await client.call("reactions.remove", channel=channel_id, timestamp=timestamp, name=emoji)

    warnings: List[str] = []
    notified = False
    if notify_users:
        text = f"Removed :{emoji}: reaction."
        if reason:
            text += f" Reason: {reason}"
        try:
            await client.call("chat.postMessage", channel=channel_id, thread_ts=timestamp, text=text)
            notified = True
        except Exception as e:
            warnings.append(f"Failed to notify users: {handle_error(e)}")

    impact = None
    if analyze_impact:
        now = time.time()
        after = []
        for reaction in before:
            if reaction.get("name") == emoji:
                remaining = (reaction.get("count") or 0) - 1
                if remaining > 0:
                    after.append({**reaction, "count": remaining})
            else:
                after.append(reaction)
        before_score = insights.calculate_engagement_score(before, message or {}, now)
        after_score = insights.calculate_engagement_score(after, message or {}, now)
        impact = {
            "emoji_category": insights.categorize_emoji(emoji),
            "sentiment_value": insights.emoji_sentiment(emoji),
            "reactions_before": sum(r.get("count", 0) for r in before),
            "reactions_after": sum(r.get("count", 0) for r in after),
            "engagement_before": before_score,
            "engagement_after": after_score,
            "engagement_change": after_score - before_score,
            "last_of_its_kind": not any(r.get("name") == emoji for r in after),
        }

    return ToolResult(
        data={
            "reaction": {"emoji": emoji, "channel_id": channel_id, "message_ts": timestamp, "removed": True},
            "users_notified": notified,
        },
        metadata={"channel_id": channel_id, "impact": impact, "reason": reason, "warnings": warnings or None},
    )


@slack_tool(
    name="slack_reactions_get",
    description="Get the reactions on a message with engagement score and sentiment distribution",
)
async def reactions_get(
    channel: Channel,
    timestamp: Timestamp,
    full: Annotated[bool, Field(description="Return the full list of reacting users")] = True,
    include_analytics: Annotated[bool, Field(description="Include engagement and sentiment analytics")] = True,
) -> ToolResult:
    """Get the reactions on a message.

    Returns:
        The message reactions with optional reaction analytics.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    result = await client.call("reactions.get", channel=channel_id, timestamp=timestamp, full=full)
    message = result.get("message") or {}
    reactions = message.get("reactions") or []

    summary = [
        {
            "name": r.get("name"),
            "count": r.get("count", 0),
            "users": r.get("users") or [],
            "category": insights.categorize_emoji(r.get("name") or ""),
        }
        for r in reactions
    ]

    report = None
    recommendations = None
    if include_analytics:
        now = time.time()
        report = {
            **insights.reaction_distribution(reactions),
            "engagement_score": insights.calculate_engagement_score(reactions, message, now),
            "reaction_timing": insights.reaction_timing(float(timestamp), now),
        }
        recommendations = []
        if not reactions:
            recommendations.append("No reactions yet - the message may need more visibility")
        elif report["sentiment_distribution"]["negative"] > report["sentiment_distribution"]["positive"]:
            recommendations.append("Reactions lean negative - consider addressing concerns in the thread")
        if report["engagement_score"] >= 70:
            recommendations.append("High engagement - consider pinning this message")

    return ToolResult(
        data={
            "channel": channel_id,
            "message": {
                "ts": message.get("ts", timestamp),
                "user": message.get("user"),
                "text": message.get("text"),
                "reply_count": message.get("reply_count", 0),
            },
            "reactions": summary,
        },
        metadata={"channel_id": channel_id, "analytics": report, "recommendations": recommendations},
    )
