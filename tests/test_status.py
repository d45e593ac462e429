"""Unit tests for status and Do Not Disturb tools."""

import time

import pytest

from mcp_slack.tools.slack.status import dnd_analysis, dnd_info, dnd_set, set_status

NOW = 1700000000.0


class TestSetStatus:
    """Tests for slack_set_status."""

    @pytest.mark.asyncio
    async def test_uses_user_token(self, fake_slack_pair):
        bot, user = fake_slack_pair

        result = await set_status(status_text="Reviewing", status_emoji="eyes")

        assert result["success"] is True
        assert bot.calls == []
        profile = user.calls_to("users_profile_set")[0]["profile"]
        assert profile == {"status_text": "Reviewing", "status_emoji": ":eyes:", "status_expiration": 0}
        assert result["data"]["status"]["expires_at"] is None

    @pytest.mark.asyncio
    async def test_template_defaults(self, fake_slack_pair):
        _, user = fake_slack_pair
        before = int(time.time())

        result = await set_status(template="coffee")

        profile = user.calls_to("users_profile_set")[0]["profile"]
        assert profile["status_text"] == "Coffee break"
        assert profile["status_emoji"] == ":coffee:"
        assert before + 15 * 60 <= profile["status_expiration"] <= int(time.time()) + 15 * 60
        assert result["metadata"]["template"] == "coffee"

    @pytest.mark.asyncio
    async def test_template_without_expiry_keeps_overrides(self, fake_slack_pair):
        _, user = fake_slack_pair

        await set_status(template="vacation", status_text="Back Monday")

        profile = user.calls_to("users_profile_set")[0]["profile"]
        assert profile == {"status_text": "Back Monday", "status_emoji": ":palm_tree:", "status_expiration": 0}

    @pytest.mark.asyncio
    async def test_presence_and_dnd(self, fake_slack_pair):
        _, user = fake_slack_pair
        user.responses["dnd_setSnooze"] = {"ok": True, "snooze_endtime": 1700003600}

        result = await set_status(status_text="Heads down", presence="away", dnd_minutes=60)

        assert result["data"]["presence"] == "away"
        assert result["data"]["dnd_snooze_endtime"] == 1700003600
        assert user.calls_to("users_setPresence") == [{"presence": "away"}]
        assert user.calls_to("dnd_setSnooze") == [{"num_minutes": 60}]

    @pytest.mark.asyncio
    async def test_presence_failure_is_a_warning(self, fake_slack_pair, slack_error):
        _, user = fake_slack_pair
        user.responses["users_setPresence"] = slack_error("missing_scope")

        result = await set_status(status_text="Heads down", presence="auto")

        assert result["success"] is True
        assert "presence" not in result["data"]
        assert result["metadata"]["warnings"][0].startswith("Failed to set presence:")

    @pytest.mark.asyncio
    async def test_both_expirations_rejected(self, fake_slack_pair):
        result = await set_status(status_text="x", status_expiration=2000000000, expiration_minutes=5)
        assert result["metadata"]["error_code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_past_expiration_rejected(self, fake_slack_pair):
        result = await set_status(status_text="x", status_expiration=1000)
        assert "expiration must be in the future" in result["error"]

    @pytest.mark.asyncio
    async def test_unknown_template(self, fake_slack_pair):
        result = await set_status(template="napping")
        assert result["metadata"]["error_code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_requires_user_token(self, web_client):
        from mcp_slack.api.client import SlackClient, set_slack_client

        set_slack_client(SlackClient(web_client()))

        result = await set_status(status_text="x")

        assert result["success"] is False
        assert "SLACK_USER_TOKEN" in result["error"]
        assert result["metadata"]["error_code"] == "configuration_error"


class TestDndAnalysis:
    """Tests for Do Not Disturb availability analysis."""

    def test_snoozed(self):
        dnd = {"snooze_enabled": True, "snooze_endtime": NOW + 1800, "snooze_remaining": 1800}
        result = dnd_analysis(dnd, NOW)

        assert result["is_disturb_free"] is True
        assert result["status_type"] == "snoozed"
        assert result["minutes_until_available"] == 30
        assert result["snooze_remaining_minutes"] == 30

    def test_inside_schedule(self):
        dnd = {"dnd_enabled": True, "next_dnd_start_ts": NOW - 3600, "next_dnd_end_ts": NOW + 7200}
        result = dnd_analysis(dnd, NOW)

        assert result["status_type"] == "dnd_scheduled"
        assert result["minutes_until_available"] == 120
        assert result["dnd_duration_hours"] == 3
        assert result["next_dnd_in_hours"] is None

    def test_available(self):
        dnd = {"dnd_enabled": True, "next_dnd_start_ts": NOW + 7200, "next_dnd_end_ts": NOW + 36000}
        result = dnd_analysis(dnd, NOW)

        assert result["is_disturb_free"] is False
        assert result["status_type"] == "available"
        assert result["minutes_until_available"] == 0
        assert result["next_dnd_in_hours"] == 2


class TestDnd:
    """Tests for slack_dnd_info and slack_dnd_set."""

    @pytest.mark.asyncio
    async def test_info_uses_bot_token(self, fake_slack_pair):
        bot, user = fake_slack_pair
        bot.responses["dnd_info"] = {"ok": True, "dnd_enabled": False, "snooze_enabled": False}

        result = await dnd_info(user="U0000000001")

        assert bot.calls_to("dnd_info") == [{"user": "U0000000001"}]
        assert user.calls == []
        assert result["data"]["dnd"] == {"dnd_enabled": False, "snooze_enabled": False}
        assert result["metadata"]["analysis"]["status_type"] == "available"

    @pytest.mark.asyncio
    async def test_info_for_token_owner(self, fake_slack_pair):
        bot, _ = fake_slack_pair

        result = await dnd_info(include_analysis=False)

        assert bot.calls_to("dnd_info") == [{}]
        assert "analysis" not in result["metadata"]

    @pytest.mark.asyncio
    async def test_set_snooze(self, fake_slack_pair):
        _, user = fake_slack_pair
        user.responses["dnd_setSnooze"] = {
            "ok": True,
            "snooze_enabled": True,
            "snooze_endtime": 1700003600,
            "snooze_remaining": 3600,
        }

        result = await dnd_set(num_minutes=60)

        assert result["data"]["snooze_ends_at"].startswith("2023-11-14T23:13:20")
        assert result["data"]["snooze_remaining"] == 3600
        assert result["metadata"]["num_minutes"] == 60

    @pytest.mark.asyncio
    async def test_set_snooze_bounds(self, fake_slack_pair):
        result = await dnd_set(num_minutes=2000)
        assert result["metadata"]["error_code"] == "validation_error"
