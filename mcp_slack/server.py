#!/usr/bin/env python3
"""
Slack MCP Server

This server provides a Model Context Protocol (MCP) interface to the Slack Web
API, allowing large language models and AI assistants to work with Slack
messages, channels, users and files.
"""
import functools
import inspect
import json
import logging
import os
from typing import Any, Callable, Dict

from dotenv import load_dotenv
from fastmcp import FastMCP

from mcp_slack.config import get_log_level
from mcp_slack.tool_registry import SlackTool, ToolRegistry, get_tool_registry
from mcp_slack.utils.logging_config import configure_logging


def render_envelope(envelope: Dict[str, Any]) -> str:
    return json.dumps(envelope, indent=2, ensure_ascii=False, default=str)


def build_served_tool(tool: SlackTool) -> Callable[..., Any]:
    """Wrap a registry tool as an MCP tool function returning the JSON envelope.

    The wrapper exposes the handler's parameters so FastMCP derives the same
    input schema the registry validates against.
    """

    @functools.wraps(tool.handler)
    async def served(**kwargs: Any) -> str:
        return render_envelope(await tool.execute(kwargs))

    served.__signature__ = inspect.signature(tool.handler).replace(return_annotation=str)
    served.__annotations__ = {**tool.handler.__annotations__, "return": str}
    return served


def register_tools(mcp: FastMCP, registry: ToolRegistry) -> int:
    for tool in registry.list_tools():
        mcp.tool(name=tool.name, description=tool.description)(build_served_tool(tool))
    return len(registry)


def main():
    # Load environment variables
    load_dotenv()

    # Configure logging
    configure_logging(get_log_level())

    # Get MCP configuration from environment variables
    MCP_MODE = os.getenv("MCP_MODE", "STDIO")

    # Get host and port for server
    MCP_HOST = os.getenv("MCP_HOST", "localhost")
    MCP_PORT = int(os.getenv("MCP_PORT", "8000"))

    logging.info(f"Starting MCP server in {MCP_MODE} mode on {MCP_HOST}:{MCP_PORT}")

    # Get agent name from environment variables
    SERVER_NAME = os.getenv("SERVER_NAME", "SLACK")
    logging.info('*'*40)
    logging.info(f"MCP Server name: {SERVER_NAME}")
    logging.info('*'*40)

    mcp = FastMCP(f"{SERVER_NAME} MCP Server")

    # Register Slack tools
    count = register_tools(mcp, get_tool_registry())
    logging.info(f"Registered {count} Slack tools")

    # Run the MCP server
    if MCP_MODE.lower() in ["sse", "http"]:
        mcp.run(transport=MCP_MODE.lower(), host=MCP_HOST, port=MCP_PORT)
    else:
        mcp.run(transport=MCP_MODE.lower())
    logging.info("="*40)
    logging.info(f"{SERVER_NAME} MCP server stopped.")
    logging.info("="*40)

# Start server when run directly
if __name__ == "__main__":
    main()
