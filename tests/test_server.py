"""Unit tests for exposing registry tools over MCP."""

import inspect
import json

import pytest

from mcp_slack import server
from mcp_slack.tool_registry import ToolRegistry
from mcp_slack.tools.slack.messages import send_message
from mcp_slack.tools.slack.workspace import team_info


class RecordingMCP:
    """Collects tools the way FastMCP.tool(name=..., description=...) receives them."""

    def __init__(self):
        self.tools = {}

    def tool(self, name=None, description=None):
        def register(fn):
            self.tools[name] = (description, fn)
            return fn

        return register


class TestRenderEnvelope:
    """Tests for JSON rendering of envelopes."""

    def test_unicode_and_unserializable_values(self):
        rendered = server.render_envelope({"success": True, "data": {"text": "café", "when": object}})

        parsed = json.loads(rendered)
        assert parsed["data"]["text"] == "café"
        assert "café" in rendered
        assert parsed["data"]["when"].startswith("<class")


class TestBuildServedTool:
    """Tests for the MCP-facing tool function."""

    def test_signature_matches_handler(self):
        served = server.build_served_tool(send_message.slack_tool)
        signature = inspect.signature(served)

        assert list(signature.parameters) == list(inspect.signature(send_message.slack_tool.handler).parameters)
        assert signature.return_annotation is str
        assert served.__name__ == "send_message"

    @pytest.mark.asyncio
    async def test_returns_json_envelope(self, fake_slack):
        fake_slack.responses["team_info"] = {"ok": True, "team": {"id": "T0000000001", "name": "Acme"}}
        served = server.build_served_tool(team_info.slack_tool)

        envelope = json.loads(await served())

        assert envelope["success"] is True
        assert envelope["data"]["team"]["name"] == "Acme"
        assert envelope["metadata"]["tool"] == "slack_team_info"

    @pytest.mark.asyncio
    async def test_errors_are_returned_not_raised(self, fake_slack, slack_error):
        fake_slack.responses["team_info"] = slack_error("team_not_found")
        served = server.build_served_tool(team_info.slack_tool)

        envelope = json.loads(await served(team="T0000000009"))

        assert envelope["success"] is False
        assert envelope["metadata"]["error_code"] == "team_not_found"


class TestRegisterTools:
    """Tests for registering the whole registry."""

    def test_registers_every_tool(self):
        registry = ToolRegistry()
        registry.discover()
        mcp = RecordingMCP()

        count = server.register_tools(mcp, registry)

        assert count == 47
        assert set(mcp.tools) == {tool.name for tool in registry.list_tools()}
        description, fn = mcp.tools["slack_send_message"]
        assert description == send_message.slack_tool.description
        assert inspect.iscoroutinefunction(fn)
