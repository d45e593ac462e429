"""Unit tests for reaction tools."""

import time

import pytest

from mcp_slack.tools.slack.reactions import reaction_recommendations, reactions_add, reactions_get, reactions_remove

CHANNEL = "C0123ABCD"


@pytest.fixture
def fresh_ts():
    return f"{time.time():.6f}"


class TestReactionsAdd:
    """Tests for slack_reactions_add."""

    @pytest.mark.asyncio
    async def test_add_strips_colons(self, fake_slack, fresh_ts):
        fake_slack.responses["conversations_history"] = {
            "ok": True,
            "messages": [{"ts": fresh_ts, "user": "U1", "text": "Shipped!", "reply_count": 1}],
        }

        result = await reactions_add(channel=CHANNEL, timestamp=fresh_ts, name=":tada:")

        assert result["success"] is True
        assert result["data"]["reaction"] == {
            "emoji": "tada",
            "channel_id": CHANNEL,
            "message_ts": fresh_ts,
            "added": True,
        }
        assert fake_slack.calls_to("reactions_add") == [{"channel": CHANNEL, "timestamp": fresh_ts, "name": "tada"}]
        report = result["metadata"]["analytics"]
        assert report["emoji_category"] == "positive"
        assert report["message_context"]["is_thread_parent"] is True
        assert report["engagement_boost"] > 0
        assert report["reaction_timing"]["timing_category"] == "immediate"
        assert "Message has a thread - a reply may add more context than a reaction" in result["metadata"][
            "recommendations"
        ]

    @pytest.mark.asyncio
    async def test_add_without_analytics(self, fake_slack, fresh_ts):
        result = await reactions_add(channel=CHANNEL, timestamp=fresh_ts, name="eyes", analytics=False)

        assert "analytics" not in result["metadata"]
        assert not fake_slack.called("conversations_history")

    @pytest.mark.asyncio
    async def test_analytics_survive_missing_history(self, fake_slack, slack_error, fresh_ts):
        fake_slack.responses["conversations_history"] = slack_error("missing_scope")

        result = await reactions_add(channel=CHANNEL, timestamp=fresh_ts, name="eyes")

        assert result["success"] is True
        assert result["metadata"]["analytics"]["message_context"] is None
        assert "engagement_boost" not in result["metadata"]["analytics"]

    @pytest.mark.asyncio
    async def test_colons_only_is_rejected(self, fake_slack, fresh_ts):
        result = await reactions_add(channel=CHANNEL, timestamp=fresh_ts, name="::")

        assert result["metadata"]["error_code"] == "validation_error"
        assert not fake_slack.called("reactions_add")

    @pytest.mark.asyncio
    async def test_already_reacted(self, fake_slack, slack_error, fresh_ts):
        fake_slack.responses["reactions_add"] = slack_error("already_reacted")

        result = await reactions_add(channel=CHANNEL, timestamp=fresh_ts, name="eyes", analytics=False)

        assert result["success"] is False
        assert result["metadata"]["error_code"] == "already_reacted"

    def test_recommendations(self):
        assert reaction_recommendations("thumbsdown", None) == [
            "Negative reaction added - consider following up in a thread to explain"
        ]
        assert "Question reaction - consider asking your question in the thread" in reaction_recommendations(
            "question", None
        )


class TestReactionsRemove:
    """Tests for slack_reactions_remove."""

    @pytest.mark.asyncio
    async def test_remove_last_of_its_kind(self, fake_slack, fresh_ts):
        fake_slack.responses["reactions_get"] = {
            "ok": True,
            "message": {
                "ts": fresh_ts,
                "reactions": [
                    {"name": "eyes", "count": 1, "users": ["U1"]},
                    {"name": "heart", "count": 2, "users": ["U2", "U3"]},
                ],
            },
        }

        result = await reactions_remove(channel=CHANNEL, timestamp=fresh_ts, name="eyes", notify_users=True, reason="dup")

        impact = result["metadata"]["impact"]
        assert impact["reactions_before"] == 3
        assert impact["reactions_after"] == 2
        assert impact["last_of_its_kind"] is True
        assert impact["engagement_change"] < 0
        assert result["data"]["users_notified"] is True
        note = fake_slack.calls_to("chat_postMessage")[0]
        assert note["thread_ts"] == fresh_ts
        assert note["text"] == "Removed :eyes: reaction. Reason: dup"

    @pytest.mark.asyncio
    async def test_remove_one_of_several(self, fake_slack, fresh_ts):
        fake_slack.responses["reactions_get"] = {
            "ok": True,
            "message": {"ts": fresh_ts, "reactions": [{"name": "heart", "count": 2, "users": ["U2", "U3"]}]},
        }

        result = await reactions_remove(channel=CHANNEL, timestamp=fresh_ts, name="heart")

        assert result["metadata"]["impact"]["last_of_its_kind"] is False
        assert fake_slack.calls_to("reactions_remove") == [{"channel": CHANNEL, "timestamp": fresh_ts, "name": "heart"}]

    @pytest.mark.asyncio
    async def test_no_reaction(self, fake_slack, slack_error, fresh_ts):
        fake_slack.responses["reactions_remove"] = slack_error("no_reaction")

        result = await reactions_remove(channel=CHANNEL, timestamp=fresh_ts, name="heart", analyze_impact=False)

        assert result["metadata"]["error_code"] == "no_reaction"


class TestReactionsGet:
    """Tests for slack_reactions_get."""

    @pytest.mark.asyncio
    async def test_summary_and_analytics(self, fake_slack, fresh_ts):
        fake_slack.responses["reactions_get"] = {
            "ok": True,
            "message": {
                "ts": fresh_ts,
                "user": "U1",
                "text": "We shipped",
                "reactions": [
                    {"name": "thumbsdown", "count": 3, "users": ["U2", "U3", "U4"]},
                    {"name": "heart", "count": 1, "users": ["U5"]},
                ],
            },
        }

        result = await reactions_get(channel=CHANNEL, timestamp=fresh_ts)

        reactions = result["data"]["reactions"]
        assert reactions[0]["category"] == "negative"
        report = result["metadata"]["analytics"]
        assert report["total_reactions"] == 4
        assert report["unique_reactors"] == 4
        assert "Reactions lean negative - consider addressing concerns in the thread" in result["metadata"][
            "recommendations"
        ]

    @pytest.mark.asyncio
    async def test_no_reactions(self, fake_slack, fresh_ts):
        fake_slack.responses["reactions_get"] = {"ok": True, "message": {"ts": fresh_ts}}

        result = await reactions_get(channel=CHANNEL, timestamp=fresh_ts)

        assert result["data"]["reactions"] == []
        assert result["metadata"]["analytics"]["engagement_score"] == 0
        assert result["metadata"]["recommendations"] == ["No reactions yet - the message may need more visibility"]
