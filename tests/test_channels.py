"""Unit tests for channel tools."""

import pytest

from mcp_slack.tools.slack.channels import (
    archive_channel,
    channel_type,
    conversations_info,
    conversations_invite,
    conversations_kick,
    conversations_members,
    conversations_open,
    conversations_unarchive,
    create_channel,
    join_channel,
    leave_channel,
    list_channels,
    member_role,
    split_users,
)

CHANNEL = "C01234ABCD"


def info(**fields):
    channel = {"id": CHANNEL, "name": "dev-team", "num_members": 12, "is_member": True}
    channel.update(fields)
    return {"ok": True, "channel": channel}


class TestHelpers:
    """Tests for channel helpers."""

    def test_channel_type(self):
        assert channel_type({"is_im": True}) == "im"
        assert channel_type({"is_mpim": True}) == "mpim"
        assert channel_type({"is_private": True}) == "private"
        assert channel_type({}) == "public"

    def test_member_role(self):
        assert member_role({"is_bot": True, "is_admin": True}) == "bot"
        assert member_role({"is_primary_owner": True}) == "owner"
        assert member_role({"is_restricted": True}) == "guest"
        assert member_role({}) == "member"

    def test_split_users(self):
        assert split_users("U1, U2,,U3 ") == ["U1", "U2", "U3"]
        assert split_users(["U1", " "]) == ["U1"]


class TestCreateChannel:
    """Tests for slack_create_channel."""

    @pytest.mark.asyncio
    async def test_create_with_follow_up_steps(self, fake_slack):
        fake_slack.responses["conversations_create"] = {"ok": True, "channel": {"id": CHANNEL, "name": "dev-team"}}

        result = await create_channel(
            name="dev-team",
            topic="Dev chatter",
            invite_users=["U0000000001"],
            initial_message="Welcome!",
        )

        assert result["success"] is True
        assert result["data"]["channel"]["id"] == CHANNEL
        assert result["data"]["completed_steps"] == ["set_topic", "invite_users", "post_initial_message"]
        assert "warnings" not in result["metadata"]
        assert fake_slack.calls_to("conversations_invite") == [{"channel": CHANNEL, "users": "U0000000001"}]

    @pytest.mark.asyncio
    async def test_follow_up_failures_become_warnings(self, fake_slack, slack_error):
        fake_slack.responses["conversations_create"] = {"ok": True, "channel": {"id": CHANNEL, "name": "dev-team"}}
        fake_slack.responses["conversations_setPurpose"] = slack_error("too_long")

        result = await create_channel(name="dev-team", purpose="p")

        assert result["success"] is True
        assert result["data"]["completed_steps"] == []
        assert result["metadata"]["warnings"][0].startswith("Failed to set purpose:")

    @pytest.mark.asyncio
    async def test_invalid_name(self, fake_slack):
        result = await create_channel(name="Dev Team")

        assert result["success"] is False
        assert result["metadata"]["error_code"] == "validation_error"
        assert fake_slack.calls == []

    @pytest.mark.asyncio
    async def test_name_taken(self, fake_slack, slack_error):
        fake_slack.responses["conversations_create"] = slack_error("name_taken")

        result = await create_channel(name="dev-team")

        assert result["success"] is False
        assert result["metadata"]["error_code"] == "name_taken"


class TestListChannels:
    """Tests for slack_list_channels."""

    @pytest.mark.asyncio
    async def test_filter_sort_and_analytics(self, fake_slack):
        fake_slack.responses["conversations_list"] = {
            "ok": True,
            "channels": [
                {"id": "C1", "name": "random", "num_members": 40, "is_member": True, "topic": {"value": "fun"}},
                {"id": "C2", "name": "dev-team", "num_members": 8, "is_private": True},
                {"id": "C3", "name": "dev-ops", "num_members": 120, "is_member": True},
            ],
            "response_metadata": {"next_cursor": ""},
        }

        result = await list_channels(name_filter="#DEV", sort_by="members")

        names = [c["name"] for c in result["data"]["channels"]]
        assert names == ["dev-ops", "dev-team"]
        assert result["data"]["next_cursor"] is None
        report = result["metadata"]["analytics"]
        assert report["total_channels"] == 2
        assert report["by_type"] == {"public": 1, "private": 1}
        assert report["largest_channel"] == "dev-ops"
        assert report["average_members"] == 64.0
        assert report["without_topic"] == 2

    @pytest.mark.asyncio
    async def test_sort_by_name(self, fake_slack):
        fake_slack.responses["conversations_list"] = {
            "ok": True,
            "channels": [{"id": "C2", "name": "zeta"}, {"id": "C1", "name": "alpha"}],
        }

        result = await list_channels(include_analytics=False)

        assert [c["name"] for c in result["data"]["channels"]] == ["alpha", "zeta"]
        assert "analytics" not in result["metadata"]


class TestJoinChannel:
    """Tests for slack_join_channel."""

    @pytest.mark.asyncio
    async def test_already_member_skips_join(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(is_member=True)

        result = await join_channel(channel=CHANNEL)

        assert result["data"]["already_member"] is True
        assert result["data"]["channel_joined"] is False
        assert not fake_slack.called("conversations_join")
        assert result["metadata"]["analytics"]["join_method"] == "none"
        assert "Already a member - no join was needed" in result["metadata"]["recommendations"]

    @pytest.mark.asyncio
    async def test_join(self, fake_slack):
        fake_slack.responses["conversations_info"] = [info(is_member=False), info(is_member=True, num_members=13)]
        fake_slack.responses["auth_test"] = {"ok": True, "user_id": "UBOT", "bot_id": "BBOT"}
        fake_slack.responses["conversations_join"] = {"ok": True, "channel": {"id": CHANNEL, "name": "dev-team"}}

        result = await join_channel(channel=CHANNEL)

        assert result["data"]["channel_joined"] is True
        assert result["data"]["member_count"] == 13
        report = result["metadata"]["analytics"]
        assert report["join_method"] == "direct"
        assert report["attempts"] == 1
        assert report["permission_level"] == "bot"

    @pytest.mark.asyncio
    async def test_join_retries_rate_limits(self, fake_slack, slack_error, monkeypatch):
        from mcp_slack.utils import retry

        async def no_sleep(seconds):
            return None

        monkeypatch.setattr(retry.asyncio, "sleep", no_sleep)
        fake_slack.responses["conversations_info"] = info(is_member=False)
        fake_slack.responses["conversations_join"] = [slack_error("ratelimited"), {"ok": True}]

        result = await join_channel(channel=CHANNEL, auto_retry=True, retry_attempts=2, retry_delay_ms=100)

        assert result["success"] is True
        assert result["metadata"]["analytics"]["join_method"] == "retry"
        assert result["metadata"]["analytics"]["attempts"] == 2

    @pytest.mark.asyncio
    async def test_archived_channel(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(is_member=False, is_archived=True)

        result = await join_channel(channel=CHANNEL)

        assert result["success"] is False
        assert result["metadata"]["error_code"] == "is_archived"
        assert not fake_slack.called("conversations_join")

    @pytest.mark.asyncio
    async def test_channel_reference_format(self, fake_slack):
        result = await join_channel(channel="Not A Channel")
        assert result["metadata"]["error_code"] == "validation_error"


class TestLeaveChannel:
    """Tests for slack_leave_channel."""

    @pytest.mark.asyncio
    async def test_refuses_general(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(name="general", is_general=True)

        result = await leave_channel(channel=CHANNEL)

        assert result["metadata"]["error_code"] == "cant_leave_general"
        assert not fake_slack.called("conversations_leave")

    @pytest.mark.asyncio
    async def test_important_channel_needs_confirmation(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(name="announcements")

        result = await leave_channel(channel=CHANNEL, confirmation_required=True)

        assert result["metadata"]["error_code"] == "confirmation_required"

    @pytest.mark.asyncio
    async def test_not_a_member(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(is_member=False)

        result = await leave_channel(channel=CHANNEL)

        assert result["data"]["channel_left"] is False
        assert result["metadata"]["warnings"] == ["Not a member of this channel - nothing to leave"]
        assert not fake_slack.called("conversations_leave")

    @pytest.mark.asyncio
    async def test_leave(self, fake_slack):
        fake_slack.responses["conversations_info"] = info()

        result = await leave_channel(channel=CHANNEL)

        assert result["data"]["channel_left"] is True
        assert fake_slack.calls_to("conversations_leave") == [{"channel": CHANNEL}]
        assert result["metadata"]["analytics"]["members_remaining"] == 11


class TestArchiveChannel:
    """Tests for slack_archive_channel."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields,code",
        [
            ({"is_archived": True}, "already_archived"),
            ({"name": "general", "is_general": True}, "cant_archive_general"),
            ({"name": "random"}, "restricted_action"),
        ],
    )
    async def test_refusals(self, fake_slack, fields, code):
        fake_slack.responses["conversations_info"] = info(**fields)

        result = await archive_channel(channel=CHANNEL)

        assert result["metadata"]["error_code"] == code
        assert not fake_slack.called("conversations_archive")

    @pytest.mark.asyncio
    async def test_archive_with_backup_and_notice(self, fake_slack, sample_messages):
        fake_slack.responses["conversations_info"] = info()
        fake_slack.responses["conversations_history"] = {"ok": True, "messages": sample_messages}

        result = await archive_channel(channel=CHANNEL, member_notification=True, backup_messages=True)

        assert result["data"]["archived"] is True
        assert result["data"]["members_notified"] is True
        assert result["data"]["backup"]["message_count"] == 3
        assert result["data"]["channel"]["is_archived"] is True
        assert "dev-team" in fake_slack.calls_to("chat_postMessage")[0]["text"]
        assert fake_slack.calls_to("conversations_archive") == [{"channel": CHANNEL}]
        assert result["metadata"]["affected_members"] == 12

    @pytest.mark.asyncio
    async def test_important_channel_override(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(name="random")

        result = await archive_channel(channel=CHANNEL, prevent_important_channels=False)

        assert result["success"] is True


class TestUnarchive:
    """Tests for slack_conversations_unarchive."""

    @pytest.mark.asyncio
    async def test_unarchive_and_notify(self, fake_slack):
        result = await conversations_unarchive(channel=CHANNEL, notify_members=True)

        assert result["data"] == {"channel": CHANNEL, "unarchived": True, "members_notified": True}
        assert fake_slack.called("conversations_unarchive")


class TestConversationsInfo:
    """Tests for slack_conversations_info."""

    @pytest.mark.asyncio
    async def test_permissions_and_insights(self, fake_slack):
        fake_slack.responses["conversations_info"] = info(topic={"value": "Dev talk"})

        result = await conversations_info(channel=CHANNEL, analyze_permissions=True, generate_insights=True)

        permissions = result["metadata"]["permissions"]
        assert permissions["can_post"] is True
        assert permissions["can_join"] is False
        insights = result["metadata"]["insights"]
        # topic, member count, not archived out of four signals
        assert insights["health_score"] == 75
        assert insights["observations"] == ["Channel has no purpose"]
        assert result["data"]["summary"]["topic"] == "Dev talk"

    @pytest.mark.asyncio
    async def test_plain_info(self, fake_slack):
        fake_slack.responses["conversations_info"] = info()

        result = await conversations_info(channel=CHANNEL)

        assert "activity" not in result["metadata"]
        assert "insights" not in result["metadata"]


class TestConversationsMembers:
    """Tests for slack_conversations_members."""

    @pytest.mark.asyncio
    async def test_members_with_roles(self, fake_slack):
        users = {
            "U1": {"id": "U1", "name": "zed", "real_name": "Zed", "is_admin": True, "tz": "Europe/Paris"},
            "U2": {"id": "U2", "name": "amy", "real_name": "Amy", "tz": "America/New_York"},
            "U3": {"id": "U3", "name": "buildbot", "is_bot": True},
        }
        fake_slack.responses["conversations_members"] = {"ok": True, "members": ["U1", "U2", "U3"]}
        fake_slack.responses["users_info"] = lambda user: {"ok": True, "user": users[user]}

        result = await conversations_members(channel=CHANNEL, include_bots=False)

        members = result["data"]["members"]
        assert [m["id"] for m in members] == ["U2", "U1"]
        report = result["metadata"]["analytics"]
        assert report["role_distribution"] == {"admin": 1, "member": 1}
        assert report["timezone_count"] == 2

    @pytest.mark.asyncio
    async def test_filter_by_role(self, fake_slack):
        fake_slack.responses["conversations_members"] = {"ok": True, "members": ["U1", "U2"]}
        fake_slack.responses["users_info"] = lambda user: {"ok": True, "user": {"id": user, "is_admin": user == "U1"}}

        result = await conversations_members(channel=CHANNEL, filter_by_role="admin")

        assert [m["id"] for m in result["data"]["members"]] == ["U1"]

    @pytest.mark.asyncio
    async def test_failed_lookup_is_not_a_member(self, fake_slack, slack_error):
        fake_slack.responses["conversations_members"] = {"ok": True, "members": ["U1", "U2"]}
        fake_slack.responses["users_info"] = lambda user: (
            slack_error("user_not_found") if user == "U2" else {"ok": True, "user": {"id": user}}
        )

        members = await conversations_members(channel=CHANNEL, filter_by_role="member")
        unknown = await conversations_members(channel=CHANNEL, filter_by_role="unknown")

        assert [m["id"] for m in members["data"]["members"]] == ["U1"]
        assert [m["id"] for m in unknown["data"]["members"]] == ["U2"]
        assert unknown["metadata"]["analytics"]["role_distribution"] == {"unknown": 1}

    @pytest.mark.asyncio
    async def test_channel_must_look_like_a_channel(self, fake_slack):
        result = await conversations_members(channel="dev-team")
        assert result["metadata"]["error_code"] == "validation_error"


class TestConversationsInvite:
    """Tests for slack_conversations_invite."""

    @pytest.mark.asyncio
    async def test_invites_in_batches(self, fake_slack):
        users = ",".join(f"U00000000{i:02d}" for i in range(7))

        result = await conversations_invite(channel=CHANNEL, users=users, send_welcome_message=True)

        calls = fake_slack.calls_to("conversations_invite")
        assert [len(c["users"].split(",")) for c in calls] == [5, 2]
        assert len(result["data"]["invited"]) == 7
        assert result["data"]["failed"] == []
        assert result["data"]["welcome_message_sent"] is True
        assert fake_slack.calls_to("chat_postMessage")[0]["text"].startswith("Welcome <@U0000000000>")

    @pytest.mark.asyncio
    async def test_partial_failure(self, fake_slack, slack_error):
        users = [f"U00000000{i:02d}" for i in range(6)]
        fake_slack.responses["conversations_invite"] = [{"ok": True}, slack_error("cant_invite")]

        result = await conversations_invite(channel=CHANNEL, users=users)

        assert result["success"] is True
        assert result["data"]["failed"] == ["U0000000005"]
        assert result["metadata"]["batches"][1]["error_code"] == "cant_invite"

    @pytest.mark.asyncio
    async def test_total_failure(self, fake_slack, slack_error):
        fake_slack.responses["conversations_invite"] = slack_error("already_in_channel")

        result = await conversations_invite(channel=CHANNEL, users="U0000000001")

        assert result["success"] is False
        assert result["metadata"]["error_code"] == "already_in_channel"

    @pytest.mark.asyncio
    async def test_requires_users(self, fake_slack):
        result = await conversations_invite(channel=CHANNEL, users=" , ")
        assert result["metadata"]["error_code"] == "validation_error"


class TestKickAndOpen:
    """Tests for slack_conversations_kick and slack_conversations_open."""

    @pytest.mark.asyncio
    async def test_kick_with_notice(self, fake_slack):
        result = await conversations_kick(channel=CHANNEL, user="U0000000002", reason="spam", notify_user=True)

        assert result["data"]["removed"] is True
        assert fake_slack.calls_to("conversations_kick") == [{"channel": CHANNEL, "user": "U0000000002"}]
        notice = fake_slack.calls_to("chat_postMessage")[0]
        assert notice["channel"] == "U0000000002"
        assert notice["text"].endswith("Reason: spam")

    @pytest.mark.asyncio
    async def test_kick_is_destructive(self, fake_slack, monkeypatch):
        from mcp_slack import config

        monkeypatch.setattr(config, "MCP_SLACK_DELETE_PROTECTION", True)
        result = await conversations_kick(channel=CHANNEL, user="U0000000002")
        assert result["metadata"]["error_code"] == "write_protected"

    @pytest.mark.asyncio
    async def test_open_mpim(self, fake_slack):
        fake_slack.responses["conversations_open"] = {"ok": True, "channel": {"id": "G0000000001"}}

        result = await conversations_open(users="U0000000001,U0000000002", include_analytics=True)

        assert fake_slack.calls_to("conversations_open")[0]["users"] == "U0000000001,U0000000002"
        assert result["metadata"]["channel_id"] == "G0000000001"
        assert result["metadata"]["analytics"]["conversation_type"] == "mpim"
        assert result["metadata"]["analytics"]["participant_count"] == 3

    @pytest.mark.asyncio
    async def test_open_needs_users_or_channel(self, fake_slack):
        result = await conversations_open()
        assert result["metadata"]["error_code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_open_at_most_eight_users(self, fake_slack):
        users = ",".join(f"U00000000{i:02d}" for i in range(9))
        result = await conversations_open(users=users)
        assert "at most 8 users" in result["error"]
