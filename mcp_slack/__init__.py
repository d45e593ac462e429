"""Slack MCP server: Slack Web API tools with heuristic analytics."""

__version__ = "0.1.0"
