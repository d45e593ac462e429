"""Shared helpers for Slack MCP tools."""
