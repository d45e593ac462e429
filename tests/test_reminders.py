"""Unit tests for reminder tools."""

import time

import pytest

from mcp_slack.tools.slack.reminders import reminders_add, reminders_delete, reminders_list, schedule_analysis

NOW = 1700000000.0


class TestScheduleAnalysis:
    """Tests for reminder urgency."""

    @pytest.mark.parametrize(
        "offset,urgency",
        [(-600, "overdue"), (1200, "imminent"), (7200, "today"), (3 * 86400, "later")],
    )
    def test_urgency(self, offset, urgency):
        result = schedule_analysis({"time": NOW + offset}, NOW)
        assert result["urgency"] == urgency
        assert result["due_in_minutes"] == round(offset / 60)

    def test_without_time(self):
        assert schedule_analysis({"recurring": True}, NOW) == {
            "is_recurring": True,
            "due_at": None,
            "due_in_minutes": None,
            "urgency": "unknown",
        }


class TestRemindersAdd:
    """Tests for slack_reminders_add."""

    @pytest.mark.asyncio
    async def test_add_natural_language(self, fake_slack_pair):
        bot, user = fake_slack_pair
        due = int(time.time()) + 1800
        user.responses["reminders_add"] = {
            "ok": True,
            "reminder": {"id": "Rm0000000001", "text": "stand-up", "time": due, "recurring": False},
        }

        result = await reminders_add(text="stand-up", time="in 30 minutes")

        assert user.calls_to("reminders_add") == [{"text": "stand-up", "time": "in 30 minutes"}]
        assert bot.calls == []
        assert result["metadata"]["reminder_id"] == "Rm0000000001"
        assert result["metadata"]["analytics"]["urgency"] == "imminent"
        assert result["metadata"]["analytics"]["recurring_phrase"] is False

    @pytest.mark.asyncio
    async def test_add_recurring_for_someone_else(self, fake_slack_pair):
        bot, user = fake_slack_pair
        bot.responses["users_list"] = {"ok": True, "members": [{"id": "U0000000002", "name": "bob"}]}
        user.responses["reminders_add"] = {"ok": True, "reminder": {"id": "Rm0000000002", "recurring": True}}

        result = await reminders_add(text="timesheet", time="every Friday at 4pm", user="@bob")

        assert user.calls_to("reminders_add")[0]["user"] == "U0000000002"
        assert result["metadata"]["analytics"]["recurring_phrase"] is True
        assert result["metadata"]["analytics"]["is_recurring"] is True


class TestRemindersList:
    """Tests for slack_reminders_list."""

    @pytest.fixture
    def reminders(self):
        now = time.time()
        return [
            {"id": "Rm0000000003", "text": "later", "time": now + 86400 * 2},
            {"id": "Rm0000000001", "text": "done", "time": now - 3600, "complete_ts": now - 60},
            {"id": "Rm0000000002", "text": "soon", "time": now + 600},
            {"id": "Rm0000000004", "text": "weekly", "recurring": True},
        ]

    @pytest.mark.asyncio
    async def test_sorted_by_time(self, fake_slack_pair, reminders):
        _, user = fake_slack_pair
        user.responses["reminders_list"] = {"ok": True, "reminders": reminders}

        result = await reminders_list()

        assert [r["text"] for r in result["data"]["reminders"]] == ["weekly", "done", "soon", "later"]
        report = result["metadata"]["analytics"]
        assert report["total"] == 4
        assert report["recurring"] == 1
        assert report["completed"] == 1
        assert report["by_urgency"] == {"unknown": 1, "overdue": 1, "imminent": 1, "later": 1}

    @pytest.mark.asyncio
    async def test_upcoming_sorted_by_creation(self, fake_slack_pair, reminders):
        _, user = fake_slack_pair
        user.responses["reminders_list"] = {"ok": True, "reminders": reminders}

        result = await reminders_list(sort_by="created", filter_upcoming=True, include_analytics=False)

        assert [r["id"] for r in result["data"]["reminders"]] == ["Rm0000000002", "Rm0000000003", "Rm0000000004"]
        assert result["metadata"]["count"] == 3


class TestRemindersDelete:
    """Tests for slack_reminders_delete."""

    @pytest.mark.asyncio
    async def test_requires_confirmation(self, fake_slack_pair):
        _, user = fake_slack_pair

        result = await reminders_delete(reminder_id="Rm0000000001")

        assert result["metadata"]["error_code"] == "confirmation_required"
        assert user.calls == []

    @pytest.mark.asyncio
    async def test_delete_with_backup(self, fake_slack_pair):
        _, user = fake_slack_pair
        user.responses["reminders_info"] = {"ok": True, "reminder": {"id": "Rm0000000001", "text": "stand-up"}}

        result = await reminders_delete(reminder_id="Rm0000000001", confirm_deletion=True)

        assert result["data"]["deleted"] is True
        assert result["data"]["reminder"]["text"] == "stand-up"
        assert user.calls_to("reminders_delete") == [{"reminder": "Rm0000000001"}]

    @pytest.mark.asyncio
    async def test_delete_when_info_fails(self, fake_slack_pair, slack_error):
        _, user = fake_slack_pair
        user.responses["reminders_info"] = slack_error("not_found")

        result = await reminders_delete(reminder_id="Rm0000000001", confirm_deletion=True)

        assert result["success"] is True
        assert result["data"]["reminder"] is None

    @pytest.mark.asyncio
    async def test_invalid_id(self, fake_slack_pair):
        result = await reminders_delete(reminder_id="R123", confirm_deletion=True)
        assert result["metadata"]["error_code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_blocked_by_delete_protection(self, fake_slack_pair, monkeypatch):
        from mcp_slack import config

        monkeypatch.setattr(config, "MCP_SLACK_DELETE_PROTECTION", True)

        result = await reminders_delete(reminder_id="Rm0000000001", confirm_deletion=True)

        assert result["metadata"]["error_code"] == "write_protected"
