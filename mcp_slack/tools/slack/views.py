"""App Home view publishing for Slack MCP"""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.utils.errors import SlackToolError, get_error_code

logger = logging.getLogger("mcp-slack-views")

MAX_VIEW_BLOCKS = 100
INTERACTIVE_BLOCKS = ("actions", "input")


class HomeView(BaseModel):
    """Home tab view payload."""

    type: Literal["home"] = "home"
    blocks: List[Dict[str, Any]] = Field(max_length=MAX_VIEW_BLOCKS, description="Block Kit blocks")
    private_metadata: Optional[str] = Field(default=None, max_length=3000)
    callback_id: Optional[str] = Field(default=None, max_length=255)
    external_id: Optional[str] = Field(default=None, max_length=255)


def view_analytics(blocks: List[Dict[str, Any]]) -> Dict[str, Any]:
    kinds = [block.get("type") for block in blocks]
    has_images = "image" in kinds
    has_actions = "actions" in kinds

    ux_score = 50
    if blocks:
        ux_score += 20
    if "section" in kinds:
        ux_score += 15
    if has_actions:
        ux_score += 15

    opportunities = []
    if not has_actions:
        opportunities.append("Add interactive buttons for user engagement")
    if len(blocks) < 3:
        opportunities.append("Consider adding more content sections")

    return {
        "block_count": len(blocks),
        "view_complexity": "complex" if len(blocks) > 10 else "moderate" if len(blocks) > 5 else "simple",
        "content_richness": "rich" if has_images and has_actions else "moderate" if has_images or has_actions else "basic",
        "user_experience_score": min(ux_score, 100),
        "interactive_elements": sum(1 for kind in kinds if kind in INTERACTIVE_BLOCKS),
        "engagement_opportunities": opportunities,
    }


@slack_tool(
    name="slack_views_publish",
    description="Publish a Home tab view for a user, with view structure analytics",
    write=True,
)
async def views_publish(
    user_id: Annotated[str, Field(pattern=r"^[UW][A-Z0-9]+$", description="User ID to publish the Home tab for")],
    view: Annotated[HomeView, Field(description='Home view: {"type": "home", "blocks": [...]} (max 100 blocks)')],
    hash: Annotated[Optional[str], Field(description="Hash of the view being replaced, to avoid race conditions")] = None,
    include_analytics: Annotated[bool, Field(description="Include view structure analytics")] = True,
) -> ToolResult:
    """Publish an App Home view for a user.

    Returns:
        The published view ID, hash and type, with optional view analytics.

    Raises:
        SlackToolError: If App Home is not enabled for the app.
    """
    payload = view.model_dump(exclude_none=True)
    try:
        result = await get_slack_client().call("views.publish", user_id=user_id, view=payload, hash=hash)
    except Exception as e:
        if get_error_code(e) == "not_enabled":
            raise SlackToolError(
                "App Home is not enabled for this app. Enable it under App Home in the Slack app settings.",
                code="not_enabled",
            ) from e
        raise

    published = result.get("view") or {}
    return ToolResult(
        data={"view": {"id": published.get("id"), "hash": published.get("hash"), "type": published.get("type", "home")}},
        metadata={
            "user_id": user_id,
            "analytics": view_analytics(view.blocks) if include_analytics else None,
        },
    )
