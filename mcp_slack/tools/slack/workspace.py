"""Workspace, authentication and emoji operations for Slack MCP"""

import asyncio
import logging
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import DEFAULT_CHANNEL_TYPES
from mcp_slack.utils.errors import get_error_code, handle_error

logger = logging.getLogger("mcp-slack-workspace")

# Scopes the bundled tools rely on for a bot token
REQUIRED_SCOPES = (
    "channels:read",
    "channels:history",
    "chat:write",
    "users:read",
    "reactions:write",
    "pins:write",
    "files:read",
)

HIGH_RISK_SCOPES = (
    "admin",
    "channels:manage",
    "groups:write",
    "chat:write.customize",
    "files:write",
    "users:read.email",
    "users.profile:write",
    "im:history",
)


def scope_analysis(scopes: List[str], token_type: str) -> Dict[str, Any]:
    risky = sorted(s for s in scopes if any(s == r or s.startswith(r + ".") for r in HIGH_RISK_SCOPES))
    if len(risky) > 3:
        level = "high"
    elif risky:
        level = "medium"
    else:
        level = "low"
    return {
        "token_type": token_type,
        "scope_count": len(scopes),
        "high_risk_scopes": risky,
        "risk_level": level,
    }


@slack_tool(
    name="slack_auth_test",
    description="Check the bot token and report its identity, OAuth scopes and a permission risk analysis",
)
async def auth_test(
    include_analytics: Annotated[bool, Field(description="Include a token security analysis")] = True,
    test_permissions: Annotated[bool, Field(description="Probe a few read methods to confirm access")] = False,
    validate_scopes: Annotated[bool, Field(description="Compare granted scopes with the ones the tools need")] = True,
) -> ToolResult:
    """Check the token and its scopes.

    Returns:
        The token identity and scopes, with scope validation and security
        analysis in metadata.
    """
    client = get_slack_client()
    auth, headers = await client.call_with_headers("auth.test")
    header = next((v for k, v in headers.items() if k.lower() == "x-oauth-scopes"), "")
    scopes = [s.strip() for s in header.split(",") if s.strip()]
    token_type = "bot" if auth.get("bot_id") else "user"

    identity = {
        "user_id": auth.get("user_id"),
        "user": auth.get("user"),
        "team_id": auth.get("team_id"),
        "team": auth.get("team"),
        "url": auth.get("url"),
        "bot_id": auth.get("bot_id"),
        "enterprise_id": auth.get("enterprise_id"),
        "is_enterprise_install": bool(auth.get("is_enterprise_install")),
    }

    scope_check = None
    if validate_scopes:
        if scopes:
            missing = [s for s in REQUIRED_SCOPES if s not in scopes]
            scope_check = {"granted": scopes, "missing": missing, "complete": not missing}
        else:
            scope_check = {"granted": [], "missing": None, "complete": None, "note": "Slack returned no scope header"}

    permissions = None
    if test_permissions:
        probes = {
            "conversations.list": client.call("conversations.list", limit=1),
            "users.list": client.call("users.list", limit=1),
            "team.info": client.call("team.info"),
        }
        outcomes = await asyncio.gather(*probes.values(), return_exceptions=True)
        permissions = {
            method: "ok" if not isinstance(outcome, Exception) else get_error_code(outcome) or handle_error(outcome)
            for method, outcome in zip(probes, outcomes)
        }

    return ToolResult(
        data={"authenticated": True, "identity": identity, "scopes": scopes},
        metadata={
            "security": scope_analysis(scopes, token_type) if include_analytics else None,
            "scope_validation": scope_check,
            "permission_tests": permissions,
        },
    )


async def _workspace_counts() -> Dict[str, Any]:
    client = get_slack_client()
    channels, users = await asyncio.gather(
        client.call("conversations.list", types=DEFAULT_CHANNEL_TYPES, exclude_archived=False, limit=1000),
        client.call("users.list", limit=1000),
    )
    return {"channels": channels.get("channels") or [], "members": users.get("members") or []}


def composition(channels: List[Dict[str, Any]], members: List[Dict[str, Any]]) -> Dict[str, Any]:
    humans = [m for m in members if not m.get("is_bot") and m.get("id") != "USLACKBOT"]
    return {
        "channels": {
            "total": len(channels),
            "public": sum(1 for c in channels if not c.get("is_private")),
            "private": sum(1 for c in channels if c.get("is_private")),
            "archived": sum(1 for c in channels if c.get("is_archived")),
        },
        "users": {
            "total": len(members),
            "active": sum(1 for m in humans if not m.get("deleted")),
            "deleted": sum(1 for m in members if m.get("deleted")),
            "bots": sum(1 for m in members if m.get("is_bot")),
            "admins": sum(1 for m in humans if m.get("is_admin")),
            "guests": sum(1 for m in humans if m.get("is_restricted") or m.get("is_ultra_restricted")),
        },
    }


def health_score(channels: List[Dict[str, Any]], members: List[Dict[str, Any]]) -> int:
    """Base 50, up to 20 for channel variety, up to 20 for user reach, up to 10 for unarchived channels."""
    score = 50.0
    active_channels = [c for c in channels if not c.get("is_archived")]
    if channels:
        public = sum(1 for c in active_channels if not c.get("is_private"))
        private = len(active_channels) - public
        balance = min(public, private) / max(public, private, 1)
        score += min(len(channels) / 10, 1) * 10 + balance * 10
        score += len(active_channels) / len(channels) * 10

    users = [m for m in members if not m.get("is_bot") and not m.get("deleted") and m.get("id") != "USLACKBOT"]
    if users:
        memberships = sum(c.get("num_members") or 0 for c in active_channels)
        score += min(len(users) / 50, 1) * 10 + min(memberships / len(users) / 3, 1) * 10
    return max(0, min(100, round(score)))


def _team_summary(team: Dict[str, Any]) -> Dict[str, Any]:
    icon = team.get("icon") or {}
    return {
        "id": team.get("id"),
        "name": team.get("name"),
        "domain": team.get("domain"),
        "email_domain": team.get("email_domain"),
        "enterprise_id": team.get("enterprise_id"),
        "icon": icon.get("image_132") or icon.get("image_default"),
    }


@slack_tool(
    name="slack_get_workspace_info",
    description="Get the workspace name, domain and bot identity, with optional channel and user counts",
)
async def get_workspace_info(
    include_stats: Annotated[bool, Field(description="Count channels and users")] = True,
) -> ToolResult:
    """Get workspace identity and channel and user counts.

    Returns:
        The workspace, bot identity and composition stats.
    """
    client = get_slack_client()
    info = await client.get_workspace_info()

    stats = None
    if include_stats:
        counts = await _workspace_counts()
        stats = composition(counts["channels"], counts["members"])

    return ToolResult(data={"workspace": info, "stats": stats}, metadata={"team_id": info.get("id")})


@slack_tool(
    name="slack_workspace_info",
    description="Get team details with channel and user composition and a workspace health score",
)
async def workspace_info(
    include_analytics: Annotated[bool, Field(description="Include composition and health analytics")] = True,
) -> ToolResult:
    """Get team details with a workspace health report.

    Returns:
        The team summary and a health analysis in metadata.
    """
    client = get_slack_client()
    team = (await client.call("team.info")).get("team") or {}

    report = None
    if include_analytics:
        counts = await _workspace_counts()
        score = health_score(counts["channels"], counts["members"])
        report = {**composition(counts["channels"], counts["members"]), "health_score": score}
        recommendations = []
        if score < 60:
            recommendations.append("Health score is below average - organize channels and invite more members")
        elif score > 80:
            recommendations.append("Workspace is healthy")
        if report["channels"]["total"] and report["channels"]["archived"] / report["channels"]["total"] > 0.5:
            recommendations.append("More than half of the channels are archived")
        report["recommendations"] = recommendations

    return ToolResult(data={"team": _team_summary(team)}, metadata={"team_id": team.get("id"), "analytics": report})


@slack_tool(
    name="slack_team_info",
    description="Get the raw team object for the current or a given workspace",
)
async def team_info(
    team: Annotated[Optional[str], Field(description="Team ID (defaults to the token's workspace)")] = None,
) -> ToolResult:
    """Get team details.

    Returns:
        The team object.
    """
    result = await get_slack_client().call("team.info", team=team)
    found = result.get("team") or {}
    return ToolResult(data={"team": found}, metadata={"team_id": found.get("id")})


EMOJI_NAME_CATEGORIES = (
    ("celebration", ("party", "celebrate", "tada")),
    ("approval", ("approve", "check", "yes", "lgtm")),
    ("rejection", ("reject", "nope", "deny")),
    ("branding", ("logo", "brand", "company")),
    ("team", ("team", "dept", "group")),
    ("negative", ("sad", "cry", "angry")),
    ("positive", ("happy", "smile", "joy")),
)


def custom_emoji_category(name: str) -> str:
    for category, words in EMOJI_NAME_CATEGORIES:
        if any(word in name for word in words):
            return category
    return "other"


@slack_tool(
    name="slack_emoji_list",
    description="List the workspace's custom emoji and aliases with category analytics",
)
async def emoji_list(
    filter_custom: Annotated[bool, Field(description="Only uploaded emoji, without aliases")] = False,
    include_analytics: Annotated[bool, Field(description="Include alias and category analytics")] = True,
) -> ToolResult:
    """List custom emoji and their aliases.

    Returns:
        Emoji entries with alias and category analytics.
    """
    result = await get_slack_client().call("emoji.list")
    emojis = [
        {
            "name": name,
            "url": None if url.startswith("alias:") else url,
            "is_alias": url.startswith("alias:"),
            "alias_for": url[len("alias:"):] if url.startswith("alias:") else None,
            "category": custom_emoji_category(name),
        }
        for name, url in sorted((result.get("emoji") or {}).items())
    ]
    if filter_custom:
        emojis = [e for e in emojis if not e["is_alias"]]

    report = None
    if include_analytics:
        categories: Dict[str, int] = {}
        aliased: Dict[str, int] = {}
        for emoji in emojis:
            categories[emoji["category"]] = categories.get(emoji["category"], 0) + 1
            if emoji["alias_for"]:
                aliased[emoji["alias_for"]] = aliased.get(emoji["alias_for"], 0) + 1
        aliases = sum(1 for e in emojis if e["is_alias"])
        report = {
            "total": len(emojis),
            "custom": len(emojis) - aliases,
            "aliases": aliases,
            "alias_percentage": round(aliases / len(emojis) * 100, 1) if emojis else 0,
            "most_aliased": sorted(aliased, key=aliased.get, reverse=True)[:5],
            "categories": categories,
        }

    return ToolResult(data={"emoji": emojis}, metadata={"count": len(emojis), "analytics": report})
