"""Status, presence and Do Not Disturb operations for Slack MCP

Setting a status or snoozing notifications acts on a person, so these tools
use the user token (SLACK_USER_TOKEN).
"""

import logging
import time
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import ToolValidationError, handle_error

logger = logging.getLogger("mcp-slack-status")

# text, emoji, default duration in minutes (0 means no expiry)
STATUS_TEMPLATES: Dict[str, tuple] = {
    "meeting": ("In a meeting", ":calendar:", 60),
    "lunch": ("Out for lunch", ":sandwich:", 60),
    "coffee": ("Coffee break", ":coffee:", 15),
    "focus": ("Focusing", ":headphones:", 120),
    "away": ("Away", ":walking:", 0),
    "vacation": ("On vacation", ":palm_tree:", 0),
    "sick": ("Out sick", ":face_with_thermometer:", 0),
    "commuting": ("Commuting", ":bus:", 60),
    "working_remotely": ("Working remotely", ":house_with_garden:", 0),
    "busy": ("Busy", ":no_entry:", 60),
}


def _emoji(value: Optional[str]) -> str:
    if not value:
        return ""
    return f":{insights.normalize_emoji(value)}:"


@slack_tool(
    name="slack_set_status",
    description="Set the user's status text, emoji and expiration, with optional presence and Do Not Disturb",
    write=True,
)
async def set_status(
    status_text: Annotated[Optional[str], Field(max_length=100, description="Status text (max 100 characters)")] = None,
    status_emoji: Annotated[Optional[str], Field(description="Status emoji, e.g. :coffee:")] = None,
    status_expiration: Annotated[
        Optional[int], Field(ge=0, description="Unix timestamp when the status expires (0 for never)")
    ] = None,
    expiration_minutes: Annotated[
        Optional[int], Field(ge=1, le=10080, description="Status duration in minutes, instead of status_expiration")
    ] = None,
    template: Annotated[
        Optional[str],
        Field(
            pattern=r"^(" + "|".join(STATUS_TEMPLATES) + r")$",
            description="Predefined status: " + ", ".join(STATUS_TEMPLATES),
        ),
    ] = None,
    presence: Annotated[
        Optional[str], Field(pattern=r"^(auto|away)$", description="Set presence to auto or away")
    ] = None,
    dnd_minutes: Annotated[
        Optional[int], Field(ge=1, le=1440, description="Also snooze notifications for this many minutes")
    ] = None,
) -> ToolResult:
    """Set the user's status text and emoji, and optionally presence and snooze.

    Returns:
        The new status with presence and snooze results.

    Raises:
        ToolValidationError: If both expiration forms are given or the expiration is in the past.
    """
    if status_expiration is not None and expiration_minutes is not None:
        raise ToolValidationError(
            "Validation failed: status_expiration: use either status_expiration or expiration_minutes"
        )

    text, emoji = status_text, status_emoji
    if template:
        default_text, default_emoji, default_minutes = STATUS_TEMPLATES[template]
        text = text if text is not None else default_text
        emoji = emoji if emoji is not None else default_emoji
        if status_expiration is None and expiration_minutes is None and default_minutes:
            expiration_minutes = default_minutes

    now = int(time.time())
    expiration = status_expiration or 0
    if expiration_minutes:
        expiration = now + expiration_minutes * 60
    if expiration and expiration <= now:
        raise ToolValidationError("Validation failed: status_expiration: expiration must be in the future")

    client = get_slack_client()
    profile = {"status_text": text or "", "status_emoji": _emoji(emoji), "status_expiration": expiration}
    result = await client.call("users.profile.set", user_token=True, profile=profile)

    warnings: List[str] = []
    applied: Dict[str, Any] = {}
    if presence:
        try:
            await client.call("users.setPresence", user_token=True, presence=presence)
            applied["presence"] = presence
        except Exception as e:
            warnings.append(f"Failed to set presence: {handle_error(e)}")
    if dnd_minutes:
        try:
            snooze = await client.call("dnd.setSnooze", user_token=True, num_minutes=dnd_minutes)
            applied["dnd_snooze_endtime"] = snooze.get("snooze_endtime")
        except Exception as e:
            warnings.append(f"Failed to enable Do Not Disturb: {handle_error(e)}")

    saved = result.get("profile") or {}
    return ToolResult(
        data={
            "status": {
                "text": saved.get("status_text", profile["status_text"]),
                "emoji": saved.get("status_emoji", profile["status_emoji"]),
                "expiration": expiration,
                "expires_at": insights.iso_time(expiration) if expiration else None,
            },
            **applied,
        },
        metadata={"template": template, "warnings": warnings or None},
    )


def dnd_analysis(dnd: Dict[str, Any], now: float) -> Dict[str, Any]:
    snooze_end = dnd.get("snooze_endtime") or 0
    snoozed = bool(dnd.get("snooze_enabled")) and snooze_end > now
    start, end = dnd.get("next_dnd_start_ts"), dnd.get("next_dnd_end_ts")
    in_schedule = bool(dnd.get("dnd_enabled") and start and end and start <= now < end)
    active = snoozed or in_schedule

    if snoozed:
        status = "snoozed"
        available_at = snooze_end
    elif in_schedule:
        status = "dnd_scheduled"
        available_at = end
    else:
        status = "available"
        available_at = None

    return {
        "is_disturb_free": active,
        "status_type": status,
        "minutes_until_available": max(0, round((available_at - now) / 60)) if available_at else 0,
        "snooze_remaining_minutes": round((dnd.get("snooze_remaining") or 0) / 60),
        "has_dnd_schedule": bool(start and end),
        "next_dnd_in_hours": round((start - now) / 3600) if start and start > now else None,
        "dnd_duration_hours": round((end - start) / 3600) if start and end else None,
    }


@slack_tool(
    name="slack_dnd_info",
    description="Get a user's Do Not Disturb status with time-until-available analysis",
)
async def dnd_info(
    user: Annotated[
        Optional[str], Field(description="User ID or @username (defaults to the token owner)")
    ] = None,
    include_analysis: Annotated[bool, Field(description="Include availability analysis")] = True,
) -> ToolResult:
    """Get Do Not Disturb state.

    Returns:
        The user and DND state with optional availability analysis.
    """
    client = get_slack_client()
    user_id = await client.resolve_user_id(user) if user else None
    result = await client.call("dnd.info", user=user_id)
    dnd = {key: value for key, value in result.items() if key != "ok"}
    return ToolResult(
        data={"user": user_id, "dnd": dnd},
        metadata={"analysis": dnd_analysis(dnd, time.time()) if include_analysis else None},
    )


@slack_tool(
    name="slack_dnd_set",
    description="Snooze the user's notifications for a number of minutes",
    write=True,
)
async def dnd_set(
    num_minutes: Annotated[int, Field(ge=1, le=1440, description="Minutes to snooze notifications (1-1440)")],
) -> ToolResult:
    """Snooze notifications for a number of minutes.

    Returns:
        The snooze state and when it ends.
    """
    result = await get_slack_client().call("dnd.setSnooze", user_token=True, num_minutes=num_minutes)
    end = result.get("snooze_endtime")
    return ToolResult(
        data={
            "snooze_enabled": result.get("snooze_enabled", True),
            "snooze_endtime": end,
            "snooze_ends_at": insights.iso_time(end) if end else None,
            "snooze_remaining": result.get("snooze_remaining"),
        },
        metadata={"num_minutes": num_minutes},
    )
