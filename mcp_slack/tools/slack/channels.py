"""Channel operations for Slack MCP"""

import asyncio
import logging
import time
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import (
    CHANNEL_NAME_PATTERN,
    CHANNEL_REF_PATTERN,
    DEFAULT_CHANNEL_TYPES,
    IMPORTANT_CHANNEL_NAMES,
    INVITE_BATCH_SIZE,
)
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import SlackToolError, ToolValidationError, get_error_code, handle_error
from mcp_slack.utils.retry import retry_async

logger = logging.getLogger("mcp-slack-channels")

RetryAttempts = Annotated[int, Field(ge=1, le=5, description="Number of attempts when auto_retry is set (1-5)")]
RetryDelay = Annotated[
    int, Field(ge=100, le=10000, description="Initial delay between attempts in milliseconds (doubles each retry)")
]


def channel_type(info: Dict[str, Any]) -> str:
    if info.get("is_im"):
        return "im"
    if info.get("is_mpim"):
        return "mpim"
    if info.get("is_private") or info.get("is_group"):
        return "private"
    return "public"


def activity_level(info: Dict[str, Any]) -> str:
    members = info.get("num_members") or 0
    if members > 100:
        return "high"
    if members > 20:
        return "medium"
    if members > 0:
        return "low"
    return "unknown"


def channel_summary(info: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": info.get("id"),
        "name": info.get("name"),
        "type": channel_type(info),
        "is_archived": bool(info.get("is_archived")),
        "is_general": bool(info.get("is_general")),
        "is_member": bool(info.get("is_member")),
        "num_members": info.get("num_members"),
        "topic": (info.get("topic") or {}).get("value") or "",
        "purpose": (info.get("purpose") or {}).get("value") or "",
        "created": info.get("created"),
        "creator": info.get("creator"),
    }


def is_important_channel(info: Dict[str, Any]) -> bool:
    return bool(info.get("is_general")) or info.get("name") in IMPORTANT_CHANNEL_NAMES


def split_users(users: Union[str, List[str]]) -> List[str]:
    if isinstance(users, str):
        users = users.split(",")
    return [u.strip() for u in users if u and u.strip()]


@slack_tool(
    name="slack_create_channel",
    description="Create a public or private channel and optionally set its topic, purpose, members and first message",
    write=True,
)
async def create_channel(
    name: Annotated[
        str,
        Field(
            min_length=1,
            max_length=80,
            pattern=CHANNEL_NAME_PATTERN,
            description="Channel name: lowercase letters, numbers, hyphens and underscores (max 80)",
        ),
    ],
    is_private: Annotated[bool, Field(description="Create a private channel")] = False,
    topic: Annotated[Optional[str], Field(max_length=250, description="Channel topic")] = None,
    purpose: Annotated[Optional[str], Field(max_length=250, description="Channel purpose")] = None,
    invite_users: Annotated[
        Optional[List[str]], Field(description="User IDs or usernames to invite after creation")
    ] = None,
    initial_message: Annotated[
        Optional[str], Field(max_length=4000, description="Message to post once the channel exists")
    ] = None,
) -> ToolResult:
    """Create a channel and optionally set its topic, purpose and first members.

    Returns:
        The new channel summary and the setup steps that completed.
    """
    client = get_slack_client()
    result = await client.call("conversations.create", name=name, is_private=is_private)
    channel = result.get("channel") or {}
    channel_id = channel.get("id")
    logger.info(f"Created channel #{name} ({channel_id})")

    warnings: List[str] = []
    completed: List[str] = []

    # Follow-up steps are best effort; the channel already exists
    async def step(label: str, method: str, **kwargs: Any) -> None:
        try:
            await client.call(method, channel=channel_id, **kwargs)
            completed.append(label)
        except Exception as e:
            warnings.append(f"Failed to {label.replace('_', ' ')}: {handle_error(e)}")

    if topic:
        await step("set_topic", "conversations.setTopic", topic=topic)
    if purpose:
        await step("set_purpose", "conversations.setPurpose", purpose=purpose)
    if invite_users:
        try:
            user_ids = [await client.resolve_user_id(u) for u in invite_users]
        except Exception as e:
            warnings.append(f"Failed to invite users: {handle_error(e)}")
        else:
            await step("invite_users", "conversations.invite", users=",".join(user_ids))
    if initial_message:
        await step("post_initial_message", "chat.postMessage", text=initial_message)

    return ToolResult(
        data={"channel": channel_summary(channel), "completed_steps": completed},
        metadata={"channel_id": channel_id, "warnings": warnings or None},
    )


@slack_tool(
    name="slack_list_channels",
    description="List channels with filtering, sorting and membership analytics",
)
async def list_channels(
    types: Annotated[
        str,
        Field(description="Comma-separated types: public_channel, private_channel, mpim, im"),
    ] = DEFAULT_CHANNEL_TYPES,
    exclude_archived: Annotated[bool, Field(description="Exclude archived channels")] = True,
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of channels to return")] = 100,
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    name_filter: Annotated[
        Optional[str], Field(description="Only channels whose name contains this text (case-insensitive)")
    ] = None,
    sort_by: Annotated[
        str, Field(pattern=r"^(name|created|members|activity)$", description="Sort by name, created, members or activity")
    ] = "name",
    include_analytics: Annotated[bool, Field(description="Include channel composition analytics")] = True,
) -> ToolResult:
    """List channels with type, membership and member-count filters.

    Returns:
        Channel summaries with a next cursor and, optionally, channel analytics.
    """
    result = await get_slack_client().call(
        "conversations.list", types=types, exclude_archived=exclude_archived, limit=limit, cursor=cursor
    )
    channels = result.get("channels") or []
    if name_filter:
        needle = name_filter.lower().lstrip("#")
        channels = [c for c in channels if needle in (c.get("name") or "").lower()]

    if sort_by == "name":
        channels.sort(key=lambda c: c.get("name") or "")
    elif sort_by == "created":
        channels.sort(key=lambda c: c.get("created") or 0, reverse=True)
    else:
        # activity has no direct signal in conversations.list; member count stands in
        channels.sort(key=lambda c: c.get("num_members") or 0, reverse=True)

    report = None
    if include_analytics:
        counts: Dict[str, int] = {}
        for c in channels:
            counts[channel_type(c)] = counts.get(channel_type(c), 0) + 1
        members = [c.get("num_members") or 0 for c in channels]
        report = {
            "total_channels": len(channels),
            "by_type": counts,
            "member_of": sum(1 for c in channels if c.get("is_member")),
            "archived": sum(1 for c in channels if c.get("is_archived")),
            "average_members": round(sum(members) / len(members), 1) if members else 0,
            "largest_channel": max(channels, key=lambda c: c.get("num_members") or 0).get("name") if channels else None,
            "without_topic": sum(1 for c in channels if not (c.get("topic") or {}).get("value")),
        }

    return ToolResult(
        data={
            "channels": [channel_summary(c) for c in channels],
            "next_cursor": (result.get("response_metadata") or {}).get("next_cursor") or None,
        },
        metadata={"count": len(channels), "analytics": report},
    )


async def _join(
    channel_id: str, auto_retry: bool, retry_attempts: int, retry_delay_ms: int
) -> tuple:
    client = get_slack_client()
    attempts = retry_attempts if auto_retry else 1
    return await retry_async(
        lambda: client.call("conversations.join", channel=channel_id),
        attempts=attempts,
        delay_ms=retry_delay_ms,
    )


@slack_tool(
    name="slack_join_channel",
    description="Join a channel with membership and permission checks, optional retries and join analytics",
    write=True,
)
async def join_channel(
    channel: Annotated[
        str,
        Field(pattern=CHANNEL_REF_PATTERN, description="Channel ID (C1234567890) or channel name (#general)"),
    ],
    validate_permissions: Annotated[bool, Field(description="Check the token's permissions before joining")] = True,
    check_membership: Annotated[bool, Field(description="Skip the join when already a member")] = True,
    include_channel_info: Annotated[bool, Field(description="Include channel details")] = True,
    include_member_count: Annotated[bool, Field(description="Include member count after joining")] = True,
    include_join_analytics: Annotated[bool, Field(description="Include analytics about the join")] = True,
    auto_retry: Annotated[bool, Field(description="Retry on rate limits and transient Slack errors")] = False,
    retry_attempts: RetryAttempts = 3,
    retry_delay_ms: RetryDelay = 1000,
) -> ToolResult:
    """Join a channel, retrying transient Slack errors.

    Returns:
        The joined channel, the attempts used and optional channel analytics.

    Raises:
        SlackToolError: If the channel is archived.
    """
    client = get_slack_client()
    started = time.monotonic()
    channel_id = await client.resolve_channel_id(channel)
    warnings: List[str] = []
    issues: List[str] = []

    info: Dict[str, Any] = {}
    if include_channel_info or check_membership:
        try:
            info = (await client.call(
                "conversations.info", channel=channel_id, include_num_members=include_member_count
            )).get("channel") or {}
        except Exception as e:
            warnings.append(f"Could not retrieve channel information: {handle_error(e)}")

    already_member = bool(info.get("is_member"))
    permission_level = "unknown"
    attempts = 0

    if not (check_membership and already_member):
        if validate_permissions:
            try:
                auth = await client.call("auth.test")
                permission_level = "bot" if auth.get("bot_id") else "user"
            except Exception as e:
                warnings.append(f"Permission validation failed: {handle_error(e)}")
        if info.get("is_archived"):
            raise SlackToolError("Cannot perform action on archived channel.", code="is_archived")
        if info.get("is_private") and not info.get("is_member"):
            issues.append("Private channels can only be joined by invitation")

        result, attempts = await _join(channel_id, auto_retry, retry_attempts, retry_delay_ms)
        info = {**info, **(result.get("channel") or {}), "is_member": True}
        for warning in (result.get("response_metadata") or {}).get("warnings") or []:
            warnings.append(warning)

        if include_member_count:
            try:
                refreshed = await client.call("conversations.info", channel=channel_id, include_num_members=True)
                info["num_members"] = (refreshed.get("channel") or {}).get("num_members", info.get("num_members"))
            except Exception as e:
                warnings.append(f"Could not refresh member count: {handle_error(e)}")

    join_analytics = None
    if include_join_analytics:
        join_analytics = {
            "join_success": True,
            "was_already_member": already_member,
            "channel_type": channel_type(info),
            "join_method": "none" if attempts == 0 else "retry" if attempts > 1 else "direct",
            "attempts": attempts,
            "permission_level": permission_level,
            "channel_activity_level": activity_level(info),
            "total_operation_ms": round((time.monotonic() - started) * 1000, 2),
            "potential_issues": issues,
        }

    recommendations = []
    if not (info.get("topic") or {}).get("value"):
        recommendations.append("Channel has no topic - ask the owner to describe the channel's focus")
    if activity_level(info) == "high":
        recommendations.append("Large channel - consider adjusting notification preferences")
    if already_member:
        recommendations.append("Already a member - no join was needed")

    return ToolResult(
        data={
            "channel_joined": not already_member,
            "already_member": already_member,
            "channel_info": channel_summary(info) if include_channel_info else None,
            "member_count": info.get("num_members") if include_member_count else None,
        },
        metadata={
            "channel_id": channel_id,
            "analytics": join_analytics,
            "recommendations": recommendations,
            "warnings": warnings or None,
        },
    )


@slack_tool(
    name="slack_leave_channel",
    description="Leave a channel with safeguards for the general channel, optional retries and leave analytics",
    write=True,
)
async def leave_channel(
    channel: Annotated[
        str,
        Field(pattern=CHANNEL_REF_PATTERN, description="Channel ID (C1234567890) or channel name (#general)"),
    ],
    validate_permissions: Annotated[bool, Field(description="Check the token's permissions before leaving")] = True,
    check_membership: Annotated[bool, Field(description="Skip the leave when not a member")] = True,
    include_channel_info: Annotated[bool, Field(description="Include channel details")] = True,
    include_leave_analytics: Annotated[bool, Field(description="Include analytics about the leave")] = True,
    prevent_general_leave: Annotated[bool, Field(description="Refuse to leave the general channel")] = True,
    confirmation_required: Annotated[
        bool, Field(description="Refuse to leave important channels unless confirm is set")
    ] = False,
    confirm: Annotated[bool, Field(description="Confirmation when confirmation_required is set")] = False,
    auto_retry: Annotated[bool, Field(description="Retry on rate limits and transient Slack errors")] = False,
    retry_attempts: RetryAttempts = 3,
    retry_delay_ms: RetryDelay = 1000,
) -> ToolResult:
    """Leave a channel the bot is a member of.

    Returns:
        The channel left, with a leave impact summary.

    Raises:
        SlackToolError: If the channel is #general or leaving needs confirmation.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    warnings: List[str] = []

    info = (await client.call("conversations.info", channel=channel_id, include_num_members=True)).get("channel") or {}

    if prevent_general_leave and info.get("is_general"):
        raise SlackToolError(
            "Cannot leave the general channel. Set prevent_general_leave to false to override.",
            code="cant_leave_general",
        )
    if confirmation_required and is_important_channel(info) and not confirm:
        raise SlackToolError(
            f"Leaving #{info.get('name')} requires confirmation. Set confirm to true to proceed.",
            code="confirmation_required",
        )

    was_member = bool(info.get("is_member"))
    attempts = 0
    if check_membership and not was_member:
        warnings.append("Not a member of this channel - nothing to leave")
    else:
        if validate_permissions:
            try:
                await client.call("auth.test")
            except Exception as e:
                warnings.append(f"Permission validation failed: {handle_error(e)}")
        result, attempts = await retry_async(
            lambda: client.call("conversations.leave", channel=channel_id),
            attempts=retry_attempts if auto_retry else 1,
            delay_ms=retry_delay_ms,
        )
        if result.get("not_in_channel"):
            was_member = False
            warnings.append("Slack reported the token was not in the channel")

    report = None
    if include_leave_analytics:
        report = {
            "left": was_member,
            "attempts": attempts,
            "channel_type": channel_type(info),
            "was_important_channel": is_important_channel(info),
            "members_remaining": max(0, (info.get("num_members") or 0) - (1 if was_member else 0)),
        }

    return ToolResult(
        data={
            "channel_left": was_member,
            "was_member": was_member,
            "channel_info": channel_summary(info) if include_channel_info else None,
        },
        metadata={"channel_id": channel_id, "analytics": report, "warnings": warnings or None},
    )


@slack_tool(
    name="slack_archive_channel",
    description="Archive a channel with protection for important channels, optional member notification and message backup",
    write=True,
    destructive=True,
)
async def archive_channel(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name to archive")],
    prevent_general_archive: Annotated[bool, Field(description="Refuse to archive the general channel")] = True,
    prevent_important_channels: Annotated[
        bool, Field(description="Refuse to archive important channels such as announcements or random")
    ] = True,
    member_notification: Annotated[bool, Field(description="Post a notice before archiving")] = False,
    notification_message: Annotated[
        Optional[str], Field(max_length=4000, description="Custom notice posted before archiving")
    ] = None,
    backup_messages: Annotated[bool, Field(description="Return recent messages before archiving")] = False,
    backup_message_count: Annotated[
        int, Field(ge=10, le=100, description="Number of recent messages to back up (10-100)")
    ] = 50,
    auto_retry: Annotated[bool, Field(description="Retry on rate limits and transient Slack errors")] = False,
    retry_attempts: RetryAttempts = 3,
    retry_delay_ms: RetryDelay = 1000,
) -> ToolResult:
    """Archive a channel after checking that it can be archived.

    Returns:
        The archived channel with an archive impact analysis.

    Raises:
        SlackToolError: If the channel is already archived, is #general or is
            marked as important.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    info = (await client.call("conversations.info", channel=channel_id, include_num_members=True)).get("channel") or {}

    if info.get("is_archived"):
        raise SlackToolError("Channel is already archived.", code="already_archived")
    if prevent_general_archive and info.get("is_general"):
        raise SlackToolError("The general channel cannot be archived.", code="cant_archive_general")
    if prevent_important_channels and is_important_channel(info):
        raise SlackToolError(
            f"#{info.get('name')} is marked as an important channel. "
            "Set prevent_important_channels to false to archive it.",
            code="restricted_action",
        )

    warnings: List[str] = []
    backup = None
    if backup_messages:
        history = await client.call("conversations.history", channel=channel_id, limit=backup_message_count)
        backup = {
            "message_count": len(history.get("messages") or []),
            "messages": history.get("messages") or [],
            "backed_up_at": insights.iso_time(time.time()),
        }

    notified = False
    if member_notification:
        text = notification_message or f"This channel (#{info.get('name')}) is being archived."
        try:
            await client.call("chat.postMessage", channel=channel_id, text=text)
            notified = True
        except Exception as e:
            warnings.append(f"Failed to notify members: {handle_error(e)}")

    _, attempts = await retry_async(
        lambda: client.call("conversations.archive", channel=channel_id),
        attempts=retry_attempts if auto_retry else 1,
        delay_ms=retry_delay_ms,
    )
    logger.info(f"Archived channel {channel_id} after {attempts} attempt(s)")

    return ToolResult(
        data={
            "channel": channel_summary({**info, "is_archived": True}),
            "archived": True,
            "members_notified": notified,
            "backup": backup,
        },
        metadata={
            "channel_id": channel_id,
            "attempts": attempts,
            "affected_members": info.get("num_members"),
            "warnings": warnings or None,
        },
    )


@slack_tool(
    name="slack_conversations_unarchive",
    description="Unarchive a channel and optionally notify its members",
    write=True,
)
async def conversations_unarchive(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name to unarchive")],
    notify_members: Annotated[bool, Field(description="Post a notice after unarchiving")] = False,
    notification_message: Annotated[
        Optional[str], Field(max_length=4000, description="Custom notice posted after unarchiving")
    ] = None,
) -> ToolResult:
    """Unarchive a channel and optionally tell its members.

    Returns:
        The channel ID and whether members were notified.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    await client.call("conversations.unarchive", channel=channel_id)

    warnings: List[str] = []
    notified = False
    if notify_members:
        try:
            await client.call(
                "chat.postMessage",
                channel=channel_id,
                text=notification_message or "This channel has been unarchived and is active again.",
            )
            notified = True
        except Exception as e:
            warnings.append(f"Failed to notify members: {handle_error(e)}")

    return ToolResult(
        data={"channel": channel_id, "unarchived": True, "members_notified": notified},
        metadata={"channel_id": channel_id, "warnings": warnings or None},
    )


def _channel_insights(info: Dict[str, Any], history: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    signals = 0
    total = 4
    observations = []
    if (info.get("topic") or {}).get("value"):
        signals += 1
    else:
        observations.append("Channel has no topic")
    if (info.get("purpose") or {}).get("value"):
        signals += 1
    else:
        observations.append("Channel has no purpose")
    if history is not None:
        total += 1
        if history:
            signals += 1
    if info.get("num_members") is not None:
        signals += 1
    if not info.get("is_archived"):
        signals += 1

    health = round(signals / total * 100)
    return {
        "health_score": health,
        "observations": observations,
        # Confidence reflects how many signals were available to score
        "confidence": max(60, min(100, 60 + (total - 2) * 10)),
    }


@slack_tool(
    name="slack_conversations_info",
    description="Get channel details with optional activity, permission and health insights",
)
async def conversations_info(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name")],
    include_locale: Annotated[bool, Field(description="Include the channel locale")] = False,
    include_num_members: Annotated[bool, Field(description="Include the member count")] = True,
    analyze_activity: Annotated[bool, Field(description="Analyze recent message activity")] = False,
    analyze_permissions: Annotated[bool, Field(description="Describe what the token can do in the channel")] = False,
    generate_insights: Annotated[bool, Field(description="Compute a channel health summary")] = False,
) -> ToolResult:
    """Get channel details with an optional health summary.

    Returns:
        The raw channel object and its summary.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    info = (await client.call(
        "conversations.info",
        channel=channel_id,
        include_locale=include_locale,
        include_num_members=include_num_members,
    )).get("channel") or {}

    history = None
    activity = None
    if analyze_activity:
        try:
            history = (await client.call("conversations.history", channel=channel_id, limit=200)).get("messages") or []
            activity = insights.analyze_channel_activity(history)
        except Exception as e:
            activity = {"error": handle_error(e)}

    permissions = None
    if analyze_permissions:
        is_member = bool(info.get("is_member"))
        archived = bool(info.get("is_archived"))
        permissions = {
            "is_member": is_member,
            "can_read": is_member or channel_type(info) == "public",
            "can_post": is_member and not archived,
            "can_join": channel_type(info) == "public" and not archived and not is_member,
            "is_read_only": bool(info.get("is_read_only")),
        }

    return ToolResult(
        data={"channel": info, "summary": channel_summary(info)},
        metadata={
            "channel_id": channel_id,
            "activity": activity,
            "permissions": permissions,
            "insights": _channel_insights(info, history) if generate_insights else None,
        },
    )


ROLE_ORDER = {"owner": 0, "admin": 1, "member": 2, "guest": 3, "bot": 4, "unknown": 5}


def member_role(user: Dict[str, Any]) -> str:
    if user.get("is_bot") or user.get("is_app_user"):
        return "bot"
    if user.get("is_owner") or user.get("is_primary_owner"):
        return "owner"
    if user.get("is_admin"):
        return "admin"
    if user.get("is_restricted") or user.get("is_ultra_restricted"):
        return "guest"
    return "member"


@slack_tool(
    name="slack_conversations_members",
    description="List channel members with user details, roles, presence, sorting and analytics",
)
async def conversations_members(
    channel: Annotated[
        str, Field(pattern=r"^(C|G|#)", description="Channel ID (C...) or #channel-name")
    ],
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of members to return")] = 100,
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    include_user_details: Annotated[bool, Field(description="Fetch each member's profile")] = True,
    include_presence: Annotated[bool, Field(description="Fetch each member's presence")] = False,
    include_bots: Annotated[bool, Field(description="Include bot users")] = True,
    sort_by: Annotated[
        str, Field(pattern=r"^(name|join_date|activity|role)$", description="Sort by name, join_date, activity or role")
    ] = "name",
    filter_by_role: Annotated[
        str,
        Field(pattern=r"^(all|admin|owner|member|guest|bot|unknown)$", description="Only members with this role"),
    ] = "all",
    include_analytics: Annotated[bool, Field(description="Include membership analytics")] = True,
) -> ToolResult:
    """List channel members with roles and optional presence.

    Returns:
        Member entries, the next cursor and optional membership analytics.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    result = await client.call("conversations.members", channel=channel_id, limit=limit, cursor=cursor)
    member_ids: List[str] = result.get("members") or []

    members: List[Dict[str, Any]] = []
    if include_user_details or filter_by_role != "all" or not include_bots:
        infos = await asyncio.gather(
            *(client.call("users.info", user=uid) for uid in member_ids), return_exceptions=True
        )
        for uid, info in zip(member_ids, infos):
            lookup_failed = isinstance(info, Exception)
            if lookup_failed:
                logger.warning(f"users.info failed for {uid}: {info}")
            user = {} if lookup_failed else info.get("user") or {}
            profile = user.get("profile") or {}
            members.append({
                "id": uid,
                "name": user.get("name"),
                "real_name": user.get("real_name") or profile.get("real_name"),
                "display_name": profile.get("display_name"),
                "title": profile.get("title"),
                "role": "unknown" if lookup_failed else member_role(user),
                "tz": user.get("tz"),
                "deleted": bool(user.get("deleted")),
                "updated": user.get("updated"),
            })
    else:
        members = [{"id": uid, "role": "member"} for uid in member_ids]

    if not include_bots:
        members = [m for m in members if m["role"] != "bot"]
    if filter_by_role != "all":
        members = [m for m in members if m["role"] == filter_by_role]

    if include_presence:
        presences = await asyncio.gather(
            *(client.call("users.getPresence", user=m["id"]) for m in members), return_exceptions=True
        )
        for member, presence in zip(members, presences):
            member["presence"] = None if isinstance(presence, Exception) else presence.get("presence")

    if sort_by == "name":
        members.sort(key=lambda m: (m.get("real_name") or m.get("name") or m["id"]).lower())
    elif sort_by == "role":
        members.sort(key=lambda m: ROLE_ORDER.get(m["role"], 5))
    elif sort_by == "activity":
        members.sort(key=lambda m: (m.get("presence") != "active", -(m.get("updated") or 0)))
    # join_date keeps Slack's order, which is join order

    report = None
    if include_analytics:
        roles: Dict[str, int] = {}
        for m in members:
            roles[m["role"]] = roles.get(m["role"], 0) + 1
        timezones = {m.get("tz") for m in members if m.get("tz")}
        report = {
            "total_members": len(members),
            "role_distribution": roles,
            "timezone_count": len(timezones),
            "active_members": sum(1 for m in members if m.get("presence") == "active") if include_presence else None,
            "guest_ratio": round(roles.get("guest", 0) / len(members), 2) if members else 0,
        }

    return ToolResult(
        data={
            "channel": channel_id,
            "members": members,
            "next_cursor": (result.get("response_metadata") or {}).get("next_cursor") or None,
        },
        metadata={"channel_id": channel_id, "count": len(members), "analytics": report},
    )


@slack_tool(
    name="slack_conversations_invite",
    description="Invite users to a channel in batches and optionally post a welcome message",
    write=True,
)
async def conversations_invite(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name")],
    users: Annotated[
        Union[str, List[str]],
        Field(description="User IDs or usernames, as a list or comma-separated string (max 1000)"),
    ],
    send_welcome_message: Annotated[bool, Field(description="Post a welcome message after inviting")] = False,
    welcome_message: Annotated[Optional[str], Field(max_length=4000, description="Custom welcome message")] = None,
) -> ToolResult:
    """Invite users to a channel in batches.

    Returns:
        The invited and failed users, plus per-batch results in metadata.

    Raises:
        ToolValidationError: If no users or more than 1000 users are given.
        SlackToolError: If every batch fails.
    """
    requested = split_users(users)
    if not requested:
        raise ToolValidationError("Validation failed: users: at least one user is required")
    if len(requested) > 1000:
        raise ToolValidationError("Validation failed: users: at most 1000 users can be invited at once")

    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    user_ids = [await client.resolve_user_id(u) for u in requested]

    invited: List[str] = []
    batches: List[Dict[str, Any]] = []
    for start in range(0, len(user_ids), INVITE_BATCH_SIZE):
        batch = user_ids[start:start + INVITE_BATCH_SIZE]
        try:
            await client.call("conversations.invite", channel=channel_id, users=",".join(batch))
            invited.extend(batch)
            batches.append({"users": batch, "success": True})
        except Exception as e:
            batches.append({"users": batch, "success": False, "error": handle_error(e), "error_code": get_error_code(e)})

    if not invited:
        raise SlackToolError(
            f"Failed to invite any users: {batches[-1]['error']}", code=batches[-1].get("error_code")
        )

    welcomed = False
    if send_welcome_message:
        mentions = " ".join(f"<@{uid}>" for uid in invited)
        await client.call("chat.postMessage", channel=channel_id, text=welcome_message or f"Welcome {mentions}!")
        welcomed = True

    return ToolResult(
        data={
            "channel": channel_id,
            "invited": invited,
            "failed": [u for b in batches if not b["success"] for u in b["users"]],
            "welcome_message_sent": welcomed,
        },
        metadata={"channel_id": channel_id, "batches": batches},
    )


@slack_tool(
    name="slack_conversations_kick",
    description="Remove a user from a channel, optionally telling them why",
    write=True,
    destructive=True,
)
async def conversations_kick(
    channel: Annotated[str, Field(min_length=1, description="Channel ID or name")],
    user: Annotated[str, Field(min_length=1, description="User ID or username to remove")],
    reason: Annotated[Optional[str], Field(max_length=500, description="Reason for removal")] = None,
    notify_user: Annotated[bool, Field(description="Send the user a direct message about the removal")] = False,
) -> ToolResult:
    """Remove a user from a channel.

    Returns:
        The channel, the user removed and whether the user was notified.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel)
    user_id = await client.resolve_user_id(user)

    await client.call("conversations.kick", channel=channel_id, user=user_id)
    logger.info(f"Removed {user_id} from {channel_id}; reason={reason or 'not given'}")

    warnings: List[str] = []
    notified = False
    if notify_user:
        text = f"You were removed from <#{channel_id}>."
        if reason:
            text += f" Reason: {reason}"
        try:
            await client.call("chat.postMessage", channel=user_id, text=text)
            notified = True
        except Exception as e:
            warnings.append(f"Failed to notify user: {handle_error(e)}")

    return ToolResult(
        data={"channel": channel_id, "user": user_id, "removed": True, "user_notified": notified},
        metadata={"channel_id": channel_id, "reason": reason, "warnings": warnings or None},
    )


@slack_tool(
    name="slack_conversations_open",
    description="Open or resume a direct message or multi-person DM",
    write=True,
)
async def conversations_open(
    users: Annotated[
        Optional[str], Field(description="Comma-separated user IDs or usernames (1-8 users)")
    ] = None,
    channel: Annotated[Optional[str], Field(description="Existing DM or MPIM channel ID to resume")] = None,
    return_im: Annotated[bool, Field(description="Return the full IM channel object")] = True,
    prevent_creation: Annotated[bool, Field(description="Do not create a new conversation")] = False,
    include_analytics: Annotated[bool, Field(description="Include conversation analytics")] = False,
) -> ToolResult:
    """Open a direct or group direct message.

    Returns:
        The conversation ID and whether it already existed.

    Raises:
        ToolValidationError: If neither users nor channel is given, or more than 8 users are given.
    """
    requested = split_users(users or "")
    if not requested and not channel:
        raise ToolValidationError("Validation failed: users: users or channel is required")
    if len(requested) > 8:
        raise ToolValidationError("Validation failed: users: at most 8 users are allowed")

    client = get_slack_client()
    user_ids = [await client.resolve_user_id(u) for u in requested]
    result = await client.call(
        "conversations.open",
        users=",".join(user_ids) if user_ids else None,
        channel=channel,
        return_im=return_im,
        prevent_creation=prevent_creation,
    )
    conversation = result.get("channel") or {}

    report = None
    if include_analytics:
        report = {
            "conversation_type": "mpim" if len(user_ids) > 1 else "im",
            "participant_count": len(user_ids) + 1,
            "already_open": bool(result.get("already_open")),
            "no_op": bool(result.get("no_op")),
        }

    return ToolResult(
        data={
            "channel": conversation,
            "already_open": bool(result.get("already_open")),
            "users": user_ids,
        },
        metadata={"channel_id": conversation.get("id"), "analytics": report},
    )
