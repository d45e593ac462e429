"""Unit tests for tool argument validation."""

from typing import Annotated, List, Optional

import pytest
from pydantic import BaseModel, Field

from mcp_slack.utils.errors import ToolValidationError
from mcp_slack.utils.validator import (
    arguments_model,
    get_errors,
    is_valid,
    validate,
    validate_arguments,
)


class Reminder(BaseModel):
    text: str = Field(min_length=1)
    minutes: int = Field(ge=1, le=60)


async def sample_tool(
    channel: Annotated[str, Field(min_length=1, description="Channel")],
    ts: Annotated[str, Field(pattern=r"^\d+\.\d+$", description="Message ts")],
    limit: Annotated[int, Field(ge=1, le=1000, description="Limit")] = 100,
    users: Annotated[Optional[List[str]], Field(description="Users")] = None,
):
    return None


class TestValidate:
    """Tests for model validation helpers."""

    def test_valid_data(self):
        result = validate(Reminder, {"text": "standup", "minutes": 5})
        assert result.minutes == 5

    def test_invalid_data_lists_every_field(self):
        """Test that every violated field appears in a single message."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate(Reminder, {"text": "", "minutes": 0})

        message = str(exc_info.value)
        assert message.startswith("Validation failed: ")
        assert "text:" in message
        assert "minutes:" in message
        assert exc_info.value.code == "validation_error"

    def test_none_is_treated_as_empty(self):
        with pytest.raises(ToolValidationError, match="text: Field required"):
            validate(Reminder, None)

    def test_is_valid(self):
        assert is_valid(Reminder, {"text": "x", "minutes": 1}) is True
        assert is_valid(Reminder, {"text": "x", "minutes": 61}) is False

    def test_get_errors(self):
        assert get_errors(Reminder, {"text": "x", "minutes": 10}) == []
        errors = get_errors(Reminder, {"minutes": 10})
        assert errors == ["text: Field required"]


class TestArgumentsModel:
    """Tests for models derived from tool signatures."""

    def test_model_is_cached(self):
        assert arguments_model(sample_tool) is arguments_model(sample_tool)

    def test_model_name(self):
        assert arguments_model(sample_tool).__name__ == "SampleToolArguments"

    def test_schema_carries_constraints(self):
        """Test that Field constraints and descriptions reach the JSON schema."""
        schema = arguments_model(sample_tool).model_json_schema()
        assert schema["required"] == ["channel", "ts"]
        assert schema["properties"]["limit"]["maximum"] == 1000
        assert schema["properties"]["limit"]["default"] == 100
        assert schema["properties"]["channel"]["description"] == "Channel"

    def test_defaults_are_filled(self):
        values = validate_arguments(sample_tool, {"channel": "C123", "ts": "1700000000.000100"})
        assert values == {"channel": "C123", "ts": "1700000000.000100", "limit": 100, "users": None}

    def test_unknown_arguments_are_ignored(self):
        values = validate_arguments(sample_tool, {"channel": "C1", "ts": "1.2", "bogus": True})
        assert "bogus" not in values

    def test_pattern_violation(self):
        with pytest.raises(ToolValidationError, match="ts:"):
            validate_arguments(sample_tool, {"channel": "C1", "ts": "yesterday"})

    def test_range_violation(self):
        with pytest.raises(ToolValidationError, match="limit:"):
            validate_arguments(sample_tool, {"channel": "C1", "ts": "1.2", "limit": 5000})
