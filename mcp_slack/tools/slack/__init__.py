"""Slack tools for MCP server

Tool modules are discovered by :meth:`mcp_slack.tool_registry.ToolRegistry.discover`,
so this package does not import them.
"""
