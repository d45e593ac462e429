"""Message search for Slack MCP

``search.messages`` only accepts user tokens, so this module always calls
Slack with SLACK_USER_TOKEN.
"""

import logging
import re
import time
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool

logger = logging.getLogger("mcp-slack-search")

OPERATOR_RE = re.compile(r"\b(from|in|has|is|before|after|on|during):")
TROUBLESHOOTING_RE = re.compile(r"\b(error|problem|issue|bug)\b", re.IGNORECASE)
QUESTION_WORD_RE = re.compile(r"\b(how|what|when|where|why)\b", re.IGNORECASE)
PLANNING_RE = re.compile(r"\b(meeting|schedule|deadline)\b", re.IGNORECASE)

DAY = 86400


def search_intent(query: str) -> str:
    if "?" in query:
        return "question_seeking"
    if TROUBLESHOOTING_RE.search(query):
        return "troubleshooting"
    if QUESTION_WORD_RE.search(query):
        return "information_seeking"
    if PLANNING_RE.search(query):
        return "planning"
    return "general_search"


def analyze_query(query: str) -> Dict[str, Any]:
    words = len(query.split())
    return {
        "query_length": len(query),
        "word_count": words,
        "has_operators": bool(OPERATOR_RE.search(query)),
        "query_complexity": "complex" if words > 5 else "moderate" if words > 2 else "simple",
        "search_intent": search_intent(query),
    }


def result_quality(matches: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not matches:
        return {"quality_level": "no_results", "result_count": 0}
    average = sum(m.get("score") or 0 for m in matches) / len(matches)
    return {
        "result_count": len(matches),
        "average_relevance_score": round(average, 2),
        "quality_level": "high" if average > 0.8 else "medium" if average > 0.5 else "low",
        "has_exact_matches": any((m.get("score") or 0) > 0.9 for m in matches),
    }


def relevance_distribution(matches: List[Dict[str, Any]]) -> Dict[str, Any]:
    scores = [m.get("score") or 0 for m in matches]
    high = sum(1 for s in scores if s > 0.7)
    medium = sum(1 for s in scores if 0.4 < s <= 0.7)
    low = sum(1 for s in scores if s <= 0.4)
    return {
        "high_relevance": high,
        "medium_relevance": medium,
        "low_relevance": low,
        "distribution_pattern": "concentrated_high" if matches and high > medium + low else "distributed",
    }


def result_diversity(matches: List[Dict[str, Any]]) -> Dict[str, Any]:
    channels = {(m.get("channel") or {}).get("id") for m in matches} - {None}
    users = {m.get("user") for m in matches} - {None}
    return {
        "unique_channels": len(channels),
        "unique_users": len(users),
        "diversity_score": round((len(channels) + len(users)) / max(len(matches), 1) * 100),
        "content_spread": "wide" if len(channels) > 3 else "moderate" if len(channels) > 1 else "narrow",
    }


def temporal_distribution(matches: List[Dict[str, Any]], now: float) -> Dict[str, Any]:
    buckets = {"last_day": 0, "last_week": 0, "last_month": 0, "older": 0}
    for match in matches:
        age = now - float(match.get("ts") or 0)
        if age < DAY:
            buckets["last_day"] += 1
        elif age < 7 * DAY:
            buckets["last_week"] += 1
        elif age < 30 * DAY:
            buckets["last_month"] += 1
        else:
            buckets["older"] += 1
    recent_heavy = buckets["last_day"] / max(len(matches), 1) > 0.5
    return {"buckets": buckets, "recency_bias": "recent_heavy" if recent_heavy else "distributed"}


def query_suggestions(query: str, matches: List[Dict[str, Any]], total: int) -> List[str]:
    suggestions = []
    if not matches:
        suggestions.append(f'Try broader terms: remove specific words from "{query}"')
        suggestions.append("Check spelling and try synonyms")
    elif total > 100:
        suggestions.append(f'Add more specific terms to "{query}"')
        if not OPERATOR_RE.search(query):
            suggestions.append("Narrow results with in:#channel, from:@user or after:YYYY-MM-DD")
    channels = {(m.get("channel") or {}).get("name") for m in matches} - {None}
    if len(channels) > 1 and "in:" not in query:
        suggestions.append(f"Filter by channel: in:#{sorted(channels)[0]}")
    if any(m.get("files") for m in matches) and "has:" not in query:
        suggestions.append("Filter for files: has:file")
    return suggestions


@slack_tool(
    name="slack_search_messages",
    description="Search messages with Slack search syntax, with query, relevance and diversity analytics",
)
async def search_messages(
    query: Annotated[
        str,
        Field(min_length=1, max_length=1000, description="Search query; supports in:, from:, has:, before:, after:"),
    ],
    sort: Annotated[str, Field(pattern=r"^(score|timestamp)$", description="Sort by score or timestamp")] = "score",
    sort_dir: Annotated[str, Field(pattern=r"^(asc|desc)$", description="Sort direction")] = "desc",
    count: Annotated[int, Field(ge=1, le=100, description="Results per page (1-100)")] = 20,
    page: Annotated[int, Field(ge=1, le=100, description="Page number")] = 1,
    highlight: Annotated[bool, Field(description="Mark matching terms in results")] = False,
    include_analytics: Annotated[bool, Field(description="Include search analytics and suggestions")] = True,
    channel: Annotated[Optional[str], Field(description="Restrict to this channel name (adds in:#channel)")] = None,
    user: Annotated[Optional[str], Field(description="Restrict to this username (adds from:@user)")] = None,
) -> ToolResult:
    """Search messages with the user token.

    Returns:
        The full query, total, matches and pagination, with query and result
        analytics in metadata.
    """
    full_query = query
    if channel:
        full_query += f" in:#{channel.lstrip('#')}"
    if user:
        full_query += f" from:@{user.lstrip('@')}"

    result = await get_slack_client().call(
        "search.messages",
        user_token=True,
        query=full_query,
        sort=sort,
        sort_dir=sort_dir,
        count=count,
        page=page,
        highlight=highlight,
    )
    messages = result.get("messages") or {}
    matches: List[Dict[str, Any]] = messages.get("matches") or []
    total = messages.get("total") or 0

    results = [
        {
            "text": m.get("text"),
            "user": m.get("user"),
            "username": m.get("username"),
            "ts": m.get("ts"),
            "channel": {"id": (m.get("channel") or {}).get("id"), "name": (m.get("channel") or {}).get("name")},
            "permalink": m.get("permalink"),
            "score": m.get("score"),
        }
        for m in matches
    ]

    report = None
    if include_analytics:
        report = {
            "query_analysis": analyze_query(full_query),
            "result_quality": result_quality(matches),
            "relevance_distribution": relevance_distribution(matches),
            "result_diversity": result_diversity(matches),
            "temporal_distribution": temporal_distribution(matches, time.time()),
            "suggestions": query_suggestions(full_query, matches, total),
        }

    return ToolResult(
        data={"query": full_query, "total": total, "matches": results, "pagination": messages.get("pagination")},
        metadata={"count": len(results), "analytics": report},
    )
