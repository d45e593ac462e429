"""User operations for Slack MCP"""

import asyncio
import logging
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import handle_error

logger = logging.getLogger("mcp-slack-users")


def user_type(user: Dict[str, Any]) -> str:
    if user.get("is_bot") or user.get("is_app_user"):
        return "bot"
    if user.get("is_restricted") or user.get("is_ultra_restricted"):
        return "guest"
    if user.get("is_primary_owner") or user.get("is_owner"):
        return "owner"
    if user.get("is_admin"):
        return "admin"
    return "member"


def user_summary(user: Dict[str, Any], include_locale: bool = False) -> Dict[str, Any]:
    profile = user.get("profile") or {}
    summary = {
        "id": user.get("id"),
        "name": user.get("name"),
        "real_name": user.get("real_name") or profile.get("real_name"),
        "display_name": profile.get("display_name"),
        "title": profile.get("title"),
        "email": profile.get("email"),
        "status_text": profile.get("status_text"),
        "status_emoji": profile.get("status_emoji"),
        "tz": user.get("tz"),
        "tz_offset": user.get("tz_offset"),
        "type": user_type(user),
        "deleted": bool(user.get("deleted")),
        "image": profile.get("image_192") or profile.get("image_72"),
    }
    if include_locale:
        summary["locale"] = user.get("locale")
    return summary


def user_profile_analytics(user: Dict[str, Any]) -> Dict[str, Any]:
    profile = user.get("profile") or {}
    completeness = insights.profile_completeness(user)
    return {
        "profile_completeness": completeness,
        "completeness_level": "high" if completeness >= 75 else "medium" if completeness >= 50 else "low",
        "user_type": user_type(user),
        "has_custom_status": bool(profile.get("status_text") or profile.get("status_emoji")),
        "two_factor_enabled": user.get("has_2fa"),
        "account_active": not user.get("deleted"),
    }


def workspace_user_analytics(users: List[Dict[str, Any]]) -> Dict[str, Any]:
    types: Dict[str, int] = {}
    timezones: Dict[str, int] = {}
    for user in users:
        types[user_type(user)] = types.get(user_type(user), 0) + 1
        if user.get("tz"):
            timezones[user["tz"]] = timezones.get(user["tz"], 0) + 1
    humans = [u for u in users if user_type(u) != "bot" and not u.get("deleted")]
    completeness = [insights.profile_completeness(u) for u in humans]
    return {
        "total_users": len(users),
        "active_users": sum(1 for u in users if not u.get("deleted")),
        "deleted_users": sum(1 for u in users if u.get("deleted")),
        "user_types": types,
        "timezone_count": len(timezones),
        "top_timezones": sorted(timezones, key=timezones.get, reverse=True)[:5],
        "average_profile_completeness": round(sum(completeness) / len(completeness)) if completeness else 0,
        "with_custom_status": sum(1 for u in humans if (u.get("profile") or {}).get("status_text")),
    }


def user_recommendations(report: Dict[str, Any]) -> List[str]:
    recommendations = []
    if report["total_users"] and report["deleted_users"] / report["total_users"] > 0.3:
        recommendations.append("Many deactivated accounts - consider cleaning up the member directory")
    if report["average_profile_completeness"] < 50:
        recommendations.append("Profiles are mostly incomplete - encourage people to add titles and photos")
    if report["timezone_count"] > 3:
        recommendations.append("Team spans several timezones - schedule meetings with overlap in mind")
    return recommendations


async def _presence(user_id: str) -> Optional[str]:
    try:
        return (await get_slack_client().call("users.getPresence", user=user_id)).get("presence")
    except Exception as e:
        logger.debug(f"Could not get presence for {user_id}: {handle_error(e)}")
        return None


@slack_tool(
    name="slack_get_user_info",
    description="Get a user's profile by ID, @username or name, with optional presence",
)
async def get_user_info(
    user: Annotated[str, Field(min_length=1, description="User ID (U1234567890), @username or display name")],
    include_presence: Annotated[bool, Field(description="Include the user's current presence")] = True,
) -> ToolResult:
    """Get a user's profile by ID or name.

    Returns:
        The user summary with optional presence.
    """
    client = get_slack_client()
    user_id = await client.resolve_user_id(user)
    info = (await client.call("users.info", user=user_id)).get("user") or {}
    summary = user_summary(info)
    if include_presence:
        summary["presence"] = await _presence(user_id)
    return ToolResult(data={"user": summary}, metadata={"user_id": user_id})


@slack_tool(
    name="slack_users_info",
    description="Get the raw user object for a user ID with profile analytics",
)
async def users_info(
    user: Annotated[str, Field(pattern=r"^[UW][A-Z0-9]+$", description="User ID (U1234567890)")],
    include_locale: Annotated[bool, Field(description="Include the user's locale")] = False,
    include_analytics: Annotated[bool, Field(description="Include profile analytics")] = True,
) -> ToolResult:
    """Get a user's full record with optional profile analytics.

    Returns:
        The user record.
    """
    info = (await get_slack_client().call("users.info", user=user, include_locale=include_locale)).get("user") or {}
    return ToolResult(
        data={"user": info},
        metadata={"user_id": user, "analytics": user_profile_analytics(info) if include_analytics else None},
    )


LIST_SORT_KEYS = {
    "name": lambda u: (u.get("name") or "").lower(),
    "real_name": lambda u: (u.get("real_name") or "").lower(),
    "status": lambda u: (u.get("status_text") or "").lower(),
    "timezone": lambda u: u.get("tz_offset") or 0,
}


@slack_tool(
    name="slack_list_users",
    description="List workspace users with filtering, sorting, presence and analytics",
)
async def list_users(
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of users to return")] = 100,
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    include_deleted: Annotated[bool, Field(description="Include deactivated users")] = False,
    include_bots: Annotated[bool, Field(description="Include bot users")] = False,
    include_presence: Annotated[bool, Field(description="Fetch each user's presence")] = False,
    sort_by: Annotated[
        str,
        Field(pattern=r"^(name|real_name|status|timezone)$", description="Sort by name, real_name, status or timezone"),
    ] = "name",
    include_analytics: Annotated[bool, Field(description="Include workspace user analytics")] = True,
) -> ToolResult:
    """List workspace users with bot and deleted filters.

    Returns:
        User summaries with a next cursor and optional workspace user analytics.
    """
    result = await get_slack_client().call("users.list", limit=limit, cursor=cursor)
    members = result.get("members") or []
    # USLACKBOT is a pseudo-user that Slack always includes
    filtered = [
        m for m in members
        if (include_deleted or not m.get("deleted"))
        and (include_bots or (user_type(m) != "bot" and m.get("id") != "USLACKBOT"))
    ]

    users = [user_summary(m) for m in filtered]
    if include_presence:
        presences = await asyncio.gather(*(_presence(u["id"]) for u in users))
        for user, presence in zip(users, presences):
            user["presence"] = presence
    users.sort(key=LIST_SORT_KEYS[sort_by])

    report = None
    if include_analytics:
        report = workspace_user_analytics(filtered)
        if include_presence:
            report["active_now"] = sum(1 for u in users if u.get("presence") == "active")
        report["recommendations"] = user_recommendations(report)

    return ToolResult(
        data={
            "users": users,
            "next_cursor": (result.get("response_metadata") or {}).get("next_cursor") or None,
        },
        metadata={"count": len(users), "total_fetched": len(members), "analytics": report},
    )


@slack_tool(
    name="slack_users_list",
    description="List raw workspace user objects with workspace demographics",
)
async def users_list(
    cursor: Annotated[Optional[str], Field(description="Pagination cursor")] = None,
    limit: Annotated[int, Field(ge=1, le=1000, description="Maximum number of users to return")] = 100,
    include_locale: Annotated[bool, Field(description="Include each user's locale")] = False,
    team_id: Annotated[Optional[str], Field(description="Team ID for Enterprise Grid workspaces")] = None,
    include_analytics: Annotated[bool, Field(description="Include workspace demographics")] = True,
) -> ToolResult:
    """List raw user records with pagination.

    Returns:
        Users and the next cursor.
    """
    result = await get_slack_client().call(
        "users.list", cursor=cursor, limit=limit, include_locale=include_locale, team_id=team_id
    )
    members = result.get("members") or []
    report = None
    if include_analytics:
        report = workspace_user_analytics(members)
        report["recommendations"] = user_recommendations(report)
    return ToolResult(
        data={
            "members": members,
            "next_cursor": (result.get("response_metadata") or {}).get("next_cursor") or None,
        },
        metadata={"count": len(members), "analytics": report},
    )


@slack_tool(
    name="slack_users_lookup_by_email",
    description="Find a user by email address with profile completeness analysis",
)
async def users_lookup_by_email(
    email: Annotated[
        str, Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Email address to look up")
    ],
    include_analytics: Annotated[bool, Field(description="Include profile analytics")] = True,
) -> ToolResult:
    """Find a user by email address.

    Returns:
        The user summary.
    """
    info = (await get_slack_client().call("users.lookupByEmail", email=email)).get("user") or {}
    return ToolResult(
        data={"user": user_summary(info)},
        metadata={
            "user_id": info.get("id"),
            "analytics": user_profile_analytics(info) if include_analytics else None,
        },
    )
