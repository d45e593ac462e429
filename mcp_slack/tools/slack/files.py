"""File operations for Slack MCP"""

import logging
import os
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field
from slack_sdk.errors import SlackApiError

from mcp_slack.api.client import get_slack_client
from mcp_slack.tool_registry import ToolResult, slack_tool
from mcp_slack.tools.slack.constants import FILE_ID_PATTERN, MESSAGE_TS_PATTERN
from mcp_slack.utils import analytics as insights
from mcp_slack.utils.errors import SlackToolError, ToolValidationError

logger = logging.getLogger("mcp-slack-files")


def file_summary(info: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": info.get("id"),
        "name": info.get("name"),
        "title": info.get("title"),
        "filetype": info.get("filetype"),
        "mimetype": info.get("mimetype"),
        "size": info.get("size"),
        "user": info.get("user"),
        "created": info.get("created"),
        "is_public": info.get("is_public"),
        "channels": info.get("channels") or [],
        "permalink": info.get("permalink"),
        "url_private": info.get("url_private"),
    }


def format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} B" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


@slack_tool(
    name="slack_upload_file",
    description="Upload a file or text content to one or more channels, optionally into a thread",
    write=True,
)
async def upload_file(
    channels: Annotated[str, Field(min_length=1, description="Comma-separated channel IDs or names")],
    content: Annotated[Optional[str], Field(description="Text content to upload as a file")] = None,
    file_path: Annotated[Optional[str], Field(description="Local path of the file to upload")] = None,
    filename: Annotated[Optional[str], Field(max_length=255, description="Name of the file in Slack")] = None,
    title: Annotated[Optional[str], Field(max_length=255, description="Title of the file")] = None,
    initial_comment: Annotated[
        Optional[str], Field(max_length=4000, description="Message posted with the file")
    ] = None,
    thread_ts: Annotated[
        Optional[str], Field(pattern=MESSAGE_TS_PATTERN, description="Thread to upload the file into")
    ] = None,
    filetype: Annotated[Optional[str], Field(description="Snippet type for text content, e.g. python or text")] = None,
) -> ToolResult:
    """Upload text content or a local file to one or more channels.

    Returns:
        The uploaded file summary and the channels it was shared to.

    Raises:
        ToolValidationError: If content and file_path are both given or both
            missing, the file does not exist, or no channel is given.
    """
    if bool(content) == bool(file_path):
        raise ToolValidationError("Validation failed: content: provide exactly one of content or file_path")
    if file_path and not os.path.isfile(file_path):
        raise ToolValidationError(f"Validation failed: file_path: file not found: {file_path}")

    client = get_slack_client()
    channel_ids = [await client.resolve_channel_id(c) for c in channels.split(",") if c.strip()]
    if not channel_ids:
        raise ToolValidationError("Validation failed: channels: at least one channel is required")

    name = filename or (os.path.basename(file_path) if file_path else "content.txt")
    destination: Dict[str, Any] = (
        {"channel": channel_ids[0]} if len(channel_ids) == 1 else {"channels": channel_ids}
    )
    result = await client.call(
        "files_upload_v2",
        **destination,
        file=file_path,
        content=content,
        filename=name,
        title=title or name,
        initial_comment=initial_comment,
        thread_ts=thread_ts,
        snippet_type=filetype if content else None,
    )
    uploaded = result.get("file") or (result.get("files") or [{}])[0]
    logger.info(f"Uploaded {name} to {', '.join(channel_ids)}")

    size = uploaded.get("size") or (len(content.encode("utf-8")) if content else os.path.getsize(file_path))
    return ToolResult(
        data={"file": file_summary(uploaded), "channels": channel_ids},
        metadata={"filename": name, "size": size, "size_readable": format_size(size)},
    )


@slack_tool(
    name="slack_files_list",
    description="List files shared in the workspace with filtering by channel, user, type and date, plus storage analytics",
)
async def files_list(
    channel: Annotated[Optional[str], Field(description="Only files shared in this channel")] = None,
    user: Annotated[Optional[str], Field(description="Only files created by this user")] = None,
    count: Annotated[int, Field(ge=1, le=1000, description="Number of files per page")] = 100,
    page: Annotated[int, Field(ge=1, description="Page number")] = 1,
    types: Annotated[
        Optional[str],
        Field(description="Comma-separated types: all, spaces, snippets, images, gdocs, zips, pdfs"),
    ] = None,
    ts_from: Annotated[Optional[str], Field(description="Only files created after this unix timestamp")] = None,
    ts_to: Annotated[Optional[str], Field(description="Only files created before this unix timestamp")] = None,
    include_analytics: Annotated[bool, Field(description="Include storage analytics")] = True,
) -> ToolResult:
    """List files with channel, user, type and date filters.

    Returns:
        File summaries with paging and optional storage analytics.
    """
    client = get_slack_client()
    channel_id = await client.resolve_channel_id(channel) if channel else None
    user_id = await client.resolve_user_id(user) if user else None
    result = await client.call(
        "files.list",
        channel=channel_id,
        user=user_id,
        count=count,
        page=page,
        types=types,
        ts_from=ts_from,
        ts_to=ts_to,
    )
    files: List[Dict[str, Any]] = result.get("files") or []

    report = None
    if include_analytics:
        by_type: Dict[str, int] = {}
        uploaders: Dict[str, int] = {}
        for f in files:
            kind = f.get("filetype") or "unknown"
            by_type[kind] = by_type.get(kind, 0) + 1
            if f.get("user"):
                uploaders[f["user"]] = uploaders.get(f["user"], 0) + 1
        total = sum(f.get("size") or 0 for f in files)
        largest = max(files, key=lambda f: f.get("size") or 0) if files else None
        report = {
            "total_files": len(files),
            "total_size": total,
            "total_size_readable": format_size(total),
            "by_type": by_type,
            "top_uploaders": sorted(uploaders, key=uploaders.get, reverse=True)[:5],
            "largest_file": {"id": largest.get("id"), "name": largest.get("name"), "size": largest.get("size")}
            if largest else None,
            "newest": insights.iso_time(max(f.get("created") or 0 for f in files)) if files else None,
        }

    return ToolResult(
        data={"files": [file_summary(f) for f in files], "paging": result.get("paging")},
        metadata={"count": len(files), "analytics": report},
    )


@slack_tool(
    name="slack_files_delete",
    description="Delete a file; requires confirm_deletion",
    write=True,
    destructive=True,
)
async def files_delete(
    file_id: Annotated[str, Field(pattern=FILE_ID_PATTERN, description="File ID (F...)")],
    confirm_deletion: Annotated[bool, Field(description="Must be true to delete the file")] = False,
) -> ToolResult:
    """Delete a file, capturing its details first.

    Returns:
        The deleted file ID and the file details captured before deletion.
    """
    if not confirm_deletion:
        raise SlackToolError(
            "Deletion not confirmed. Set confirm_deletion to true to delete the file.",
            code="confirmation_required",
        )

    client = get_slack_client()
    info = None
    try:
        info = file_summary((await client.call("files.info", file=file_id)).get("file") or {})
    except SlackApiError as e:
        logger.debug(f"Could not read file {file_id} before deleting: {e}")

    await client.call("files.delete", file=file_id)
    logger.info(f"Deleted file {file_id}")
    return ToolResult(
        data={"file_id": file_id, "deleted": True, "file": info},
        metadata={"size": info.get("size") if info else None},
    )
