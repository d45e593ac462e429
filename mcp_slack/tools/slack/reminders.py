"""Reminder operations for Slack MCP (user token)"""

import logging
import time as clock
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field
from slack_sdk.errors import SlackApiError

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import SlackToolError

logger = logging.getLogger("mcp-slack-reminders")

RECURRING_WORDS = ("every ", "daily", "weekly", "monthly", "weekdays")


def schedule_analysis(reminder: Dict[str, Any], now: float) -> Dict[str, Any]:
    due = reminder.get("time")
    recurring = bool(reminder.get("recurring"))
    if not due:
        return {"is_recurring": recurring, "due_at": None, "due_in_minutes": None, "urgency": "unknown"}
    minutes = round((due - now) / 60)
    if minutes < 0:
        urgency = "overdue"
    elif minutes < 60:
        urgency = "imminent"
    elif minutes < 24 * 60:
        urgency = "today"
    else:
        urgency = "later"
    return {
        "is_recurring": recurring,
        "due_at": insights.iso_time(due),
        "due_in_minutes": minutes,
        "urgency": urgency,
    }


@slack_tool(
    name="slack_reminders_add",
    description="Create a reminder from a unix timestamp or natural language time such as 'in 30 minutes'",
    write=True,
)
async def reminders_add(
    text: Annotated[str, Field(min_length=1, max_length=4000, description="What to be reminded about")],
    time: Annotated[
        str,
        Field(
            min_length=1,
            description='When to remind: a unix timestamp, or text like "in 30 minutes" or "every Monday at 9am"',
        ),
    ],
    user: Annotated[Optional[str], Field(description="User ID or @username to remind (defaults to yourself)")] = None,
    include_analytics: Annotated[bool, Field(description="Include schedule analysis")] = True,
) -> ToolResult:
    """Create a reminder with the user token.

    Returns:
        The created reminder.
    """
    client = get_slack_client()
    user_id = await client.resolve_user_id(user) if user else None
    result = await client.call("reminders.add", user_token=True, text=text, time=time, user=user_id)
    reminder = result.get("reminder") or {}
    logger.info(f"Created reminder {reminder.get('id')}")

    report = None
    if include_analytics:
        report = schedule_analysis(reminder, clock.time())
        report["recurring_phrase"] = any(word in time.lower() for word in RECURRING_WORDS)

    return ToolResult(
        data={"reminder": reminder},
        metadata={"reminder_id": reminder.get("id"), "analytics": report},
    )


@slack_tool(
    name="slack_reminders_list",
    description="List your reminders, sorted by due time or creation, optionally only upcoming ones",
)
async def reminders_list(
    sort_by: Annotated[str, Field(pattern=r"^(time|created)$", description="Sort by due time or creation")] = "time",
    filter_upcoming: Annotated[bool, Field(description="Only reminders that are not yet complete or due")] = False,
    include_analytics: Annotated[bool, Field(description="Include reminder analytics")] = True,
) -> ToolResult:
    """List the user's reminders.

    Returns:
        Reminders sorted by due time or creation, with optional analytics.
    """
    result = await get_slack_client().call("reminders.list", user_token=True)
    reminders: List[Dict[str, Any]] = result.get("reminders") or []
    now = clock.time()

    if filter_upcoming:
        reminders = [
            r for r in reminders
            if not r.get("complete_ts") and (r.get("recurring") or (r.get("time") or 0) > now)
        ]
    if sort_by == "created":
        # reminders.list has no creation time; reminder IDs increase with creation
        reminders.sort(key=lambda r: r.get("id") or "")
    else:
        reminders.sort(key=lambda r: r.get("time") or 0)

    report = None
    if include_analytics:
        schedules = [schedule_analysis(r, now) for r in reminders]
        urgency: Dict[str, int] = {}
        for schedule in schedules:
            urgency[schedule["urgency"]] = urgency.get(schedule["urgency"], 0) + 1
        report = {
            "total": len(reminders),
            "recurring": sum(1 for r in reminders if r.get("recurring")),
            "completed": sum(1 for r in reminders if r.get("complete_ts")),
            "by_urgency": urgency,
        }

    return ToolResult(data={"reminders": reminders}, metadata={"count": len(reminders), "analytics": report})


@slack_tool(
    name="slack_reminders_delete",
    description="Delete a reminder; requires confirm_deletion",
    write=True,
    destructive=True,
)
async def reminders_delete(
    reminder_id: Annotated[str, Field(pattern=r"^Rm[A-Z0-9]+$", description="Reminder ID (Rm...)")],
    confirm_deletion: Annotated[bool, Field(description="Must be true to delete the reminder")] = False,
) -> ToolResult:
    """Delete a reminder, capturing it first.

    Returns:
        The deleted reminder ID and the reminder details captured before deletion.
    """
    if not confirm_deletion:
        raise SlackToolError(
            "Deletion not confirmed. Set confirm_deletion to true to delete the reminder.",
            code="confirmation_required",
        )

    client = get_slack_client()
    backup = None
    try:
        backup = (await client.call("reminders.info", user_token=True, reminder=reminder_id)).get("reminder")
    except SlackApiError as e:
        logger.debug(f"Could not read reminder {reminder_id} before deleting: {e}")

    await client.call("reminders.delete", user_token=True, reminder=reminder_id)
    logger.info(f"Deleted reminder {reminder_id}")
    return ToolResult(
        data={"reminder_id": reminder_id, "deleted": True, "reminder": backup},
        metadata={"reminder_id": reminder_id},
    )
