"""Recent event tail for Slack MCP

There is no event stream over the Web API without a Socket Mode connection, so
the tail reads the message events each channel recorded during the last
``duration`` seconds from ``conversations.history``.
"""

import asyncio
import logging
import time
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import DEFAULT_CHANNEL_TYPES
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import get_error_code

logger = logging.getLogger("mcp-slack-events")

# Channels scanned when none are given
MAX_DEFAULT_CHANNELS = 20


def event_type(message: Dict[str, Any]) -> str:
    """``message`` for plain messages, ``message.<subtype>`` otherwise."""
    subtype = message.get("subtype")
    return f"message.{subtype}" if subtype else message.get("type") or "message"


def matches_type(kind: str, wanted: List[str]) -> bool:
    return any(kind == w or kind.startswith(w + ".") for w in wanted)


def sample_every(events: List[Dict[str, Any]], rate: float) -> List[Dict[str, Any]]:
    """Keep every k-th event where k = round(1 / rate)."""
    step = max(1, round(1 / rate))
    return events[::step]


def format_event(event: Dict[str, Any], output_format: str) -> Dict[str, Any]:
    if output_format == "detailed":
        return event
    compact = {"type": event["type"], "channel": event["channel"], "ts": event["ts"]}
    if output_format == "compact":
        return compact
    text = event.get("text") or ""
    return {**compact, "user": event.get("user"), "text": text[:100] + ("..." if len(text) > 100 else "")}


def stream_analytics(events: List[Dict[str, Any]], duration: int) -> Dict[str, Any]:
    by_type: Dict[str, int] = {}
    by_channel: Dict[str, int] = {}
    by_user: Dict[str, int] = {}
    for event in events:
        by_type[event["type"]] = by_type.get(event["type"], 0) + 1
        by_channel[event["channel"]] = by_channel.get(event["channel"], 0) + 1
        if event.get("user"):
            by_user[event["user"]] = by_user.get(event["user"], 0) + 1

    per_minute = round(len(events) / (duration / 60), 2)
    if per_minute > 10:
        level = "very_high"
    elif per_minute > 5:
        level = "high"
    elif per_minute > 1:
        level = "medium"
    elif per_minute > 0:
        level = "low"
    else:
        level = "very_low"

    return {
        "total_events": len(events),
        "unique_event_types": len(by_type),
        "events_per_minute": per_minute,
        "by_type": by_type,
        "by_channel": by_channel,
        "by_user": by_user,
        "peak_hours": insights.find_peak_hours(insights.hourly_distribution(events)),
        "most_active_channel": max(by_channel, key=by_channel.get) if by_channel else None,
        "most_active_user": max(by_user, key=by_user.get) if by_user else None,
        "activity_level": level,
        "sentiment": insights.analyze_sentiment(events),
    }


@slack_tool(
    name="slack_events_tail",
    description="Show message events from the last N seconds across channels, with filtering, sampling and analytics",
)
async def events_tail(
    event_types: Annotated[
        List[str], Field(description="Event types to match, e.g. message or message.channel_join")
    ] = ["message"],
    channels: Annotated[
        Optional[List[str]], Field(description="Channel IDs or names (defaults to channels the bot is in)")
    ] = None,
    users: Annotated[Optional[List[str]], Field(description="Only events from these user IDs")] = None,
    duration: Annotated[int, Field(ge=1, le=3600, description="Look-back window in seconds (1-3600)")] = 60,
    max_events: Annotated[int, Field(ge=1, le=1000, description="Maximum number of events to return")] = 100,
    sampling: Annotated[
        float, Field(gt=0, le=1, description="Fraction of events to keep; 0.5 keeps every 2nd event")
    ] = 1.0,
    filter_mode: Annotated[
        str, Field(pattern=r"^(include|exclude)$", description="Include or exclude matching types and users")
    ] = "include",
    output_format: Annotated[
        str, Field(pattern=r"^(detailed|summary|compact)$", description="detailed, summary or compact events")
    ] = "detailed",
    include_analytics: Annotated[bool, Field(description="Include stream analytics")] = True,
) -> ToolResult:
    """Collect recent message events across channels.

    Returns:
        Matching events, newest first, with window, sampling and truncation
        details and optional stream analytics in metadata.
    """
    client = get_slack_client()
    now = time.time()
    oldest = now - duration

    if channels:
        channel_ids = [await client.resolve_channel_id(c) for c in channels]
    else:
        listed = await client.call("conversations.list", types=DEFAULT_CHANNEL_TYPES, exclude_archived=True, limit=1000)
        channel_ids = [c["id"] for c in listed.get("channels") or [] if c.get("is_member")][:MAX_DEFAULT_CHANNELS]

    histories = await asyncio.gather(
        *(
            client.call("conversations.history", channel=cid, oldest=f"{oldest:.6f}", latest=f"{now:.6f}", limit=1000)
            for cid in channel_ids
        ),
        return_exceptions=True,
    )
    failed = [
        {"channel": cid, "error": get_error_code(h) or str(h)} for cid, h in zip(channel_ids, histories) if isinstance(h, Exception)
    ]
    if failed and len(failed) == len(channel_ids):
        raise next(h for h in histories if isinstance(h, Exception))
    for entry in failed:
        logger.warning(f"Skipping channel {entry['channel']} in events tail: {entry['error']}")

    events: List[Dict[str, Any]] = []
    for channel_id, history in zip(channel_ids, histories):
        if isinstance(history, Exception):
            continue
        for message in history.get("messages") or []:
            events.append({**message, "type": event_type(message), "channel": channel_id})
    scanned = len(events)

    def matches(event: Dict[str, Any]) -> bool:
        selected = matches_type(event["type"], event_types) if event_types else True
        if users:
            selected = selected and event.get("user") in users
        return selected if filter_mode == "include" else not selected

    # newest first, so truncation keeps the most recent events
    events = sorted((e for e in events if matches(e)), key=insights.message_ts, reverse=True)
    filtered = len(events)
    if sampling < 1:
        events = sample_every(events, sampling)
    sampled = len(events)
    events = events[:max_events]

    return ToolResult(
        data={"events": [format_event(e, output_format) for e in events]},
        metadata={
            "window": {"oldest": insights.iso_time(oldest), "latest": insights.iso_time(now), "duration_seconds": duration},
            "channels_scanned": len(channel_ids),
            "channels_failed": failed or None,
            "events_scanned": scanned,
            "events_matched": filtered,
            "events_returned": len(events),
            "sampling_applied": sampling < 1,
            "truncated": sampled > max_events,
            "analytics": stream_analytics(events, duration) if include_analytics else None,
        },
    )
