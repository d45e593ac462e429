"""Heuristic analytics for Slack messages, reactions and channels.

Everything here is a pure function over Slack's JSON objects. Functions that
depend on the current time take an explicit ``now`` (unix seconds) so their
results are reproducible. Hours are bucketed in UTC.
"""

import math
import re
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

POSITIVE_WORDS = ("great", "awesome", "excellent", "good", "thanks", "perfect", "love", "amazing")
NEGATIVE_WORDS = ("bad", "terrible", "awful", "hate", "problem", "issue", "error", "fail")

URGENT_RE = re.compile(r"urgent|asap|immediately|critical|emergency")
USER_MENTION_RE = re.compile(r"<@\w+(?:\|[^>]*)?>")
CHANNEL_MENTION_RE = re.compile(r"<#\w+(?:\|[^>]*)?>")
LINK_RE = re.compile(r"https?://[^\s>|]+")
WORD_RE = re.compile(r"\b\w{4,}\b")

EMOJI_CATEGORIES = {
    "positive": ("thumbsup", "+1", "heart", "smile", "grinning", "clap", "tada", "star", "fire", "rocket"),
    "negative": ("thumbsdown", "-1", "disappointed", "confused", "worried", "cry", "angry"),
    "neutral": ("eyes", "thinking_face", "point_up", "raised_hand", "wave"),
    "celebration": ("tada", "party", "confetti_ball", "champagne", "clap"),
    "agreement": ("thumbsup", "+1", "white_check_mark", "heavy_check_mark", "ok_hand"),
    "question": ("question", "thinking_face", "confused", "shrug"),
    "work": ("computer", "gear", "wrench", "hammer", "briefcase"),
}

EMOJI_SENTIMENT = {
    "heart": 10, "tada": 9, "fire": 9, "rocket": 9, "star": 8, "clap": 8,
    "thumbsup": 7, "+1": 7, "smile": 6, "grinning": 6, "ok_hand": 6,
    "eyes": 5, "thinking_face": 5, "point_up": 5, "raised_hand": 5, "wave": 5,
    "thumbsdown": 3, "-1": 3, "confused": 3, "disappointed": 2, "worried": 2,
    "cry": 1, "angry": 0,
}

EMOTIONAL_CATEGORIES = {
    "supportive": ("thumbsup", "+1", "heart", "clap", "muscle"),
    "celebratory": ("tada", "party", "champagne", "fire", "rocket"),
    "empathetic": ("heart", "hugging_face", "pray", "handshake"),
    "questioning": ("question", "thinking_face", "confused", "eyes"),
    "acknowledging": ("eyes", "point_up", "raised_hand", "wave"),
}

COMMUNICATION_INTENT = {
    "supportive": "encouragement",
    "celebratory": "celebration",
    "empathetic": "emotional_support",
    "questioning": "seeking_clarification",
    "acknowledging": "acknowledgment",
    "neutral": "general_engagement",
}

VERY_POPULAR_EMOJI = ("thumbsup", "+1", "heart", "eyes", "fire", "tada")
POPULAR_EMOJI = ("smile", "clap", "thinking_face", "rocket", "star")
MODERATE_EMOJI = ("wave", "point_up", "ok_hand", "raised_hand")

POSITIVE_REACTIONS = ("thumbsup", "+1", "heart", "smile", "blush", "tada", "white_check_mark", "clap", "fire", "100")
NEGATIVE_REACTIONS = ("thumbsdown", "-1", "disappointed", "cry", "x", "rage", "angry", "broken_heart")

TOPIC_KEYWORDS = (
    "project", "deadline", "meeting", "release", "bug", "feature",
    "security", "performance", "deployment", "maintenance", "update",
    "policy", "procedure", "training", "onboarding", "documentation",
)

WORDS_PER_MINUTE = 200


def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


def message_ts(message: Dict[str, Any]) -> float:
    try:
        return float(message.get("ts") or 0)
    except (TypeError, ValueError):
        return 0.0


def utc_hour(ts: float) -> int:
    return datetime.fromtimestamp(ts, tz=timezone.utc).hour


def iso_time(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def reaction_count(message: Dict[str, Any]) -> int:
    return sum(r.get("count", 0) or 0 for r in message.get("reactions") or [])


def _text(message: Optional[Dict[str, Any]]) -> str:
    return (message or {}).get("text") or ""


def _mentions_someone(text: str) -> bool:
    return "<@" in text or "@channel" in text or "@here" in text or "<!channel>" in text or "<!here>" in text


def _ratio(part: float, whole: float) -> float:
    return part / whole if whole else 0.0


# Sentiment


def estimate_text_sentiment(text: str) -> int:
    """Score text from 0 (negative) to 10 (positive), 5 being neutral."""
    lower = text.lower()
    score = 5
    score += sum(1 for word in POSITIVE_WORDS if word in lower)
    score -= sum(1 for word in NEGATIVE_WORDS if word in lower)
    return max(0, min(10, score))


def determine_tone(positive: int, negative: int, neutral: int) -> str:
    total = positive + negative + neutral
    if total == 0:
        return "unknown"
    if positive / total > 0.6:
        return "very_positive"
    if positive / total > 0.4:
        return "positive"
    if negative / total > 0.4:
        return "negative"
    return "neutral"


def analyze_sentiment(messages: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Keyword sentiment over messages: counts, score in [-100, 100] and overall tone."""
    positive = negative = neutral = 0
    for message in messages:
        lower = _text(message).lower()
        has_positive = any(word in lower for word in POSITIVE_WORDS)
        has_negative = any(word in lower for word in NEGATIVE_WORDS)
        if has_positive and not has_negative:
            positive += 1
        elif has_negative and not has_positive:
            negative += 1
        else:
            neutral += 1

    total = positive + negative + neutral
    return {
        "positive_messages": positive,
        "negative_messages": negative,
        "neutral_messages": neutral,
        "sentiment_score": round((positive - negative) / total * 100) if total else 0,
        "overall_tone": determine_tone(positive, negative, neutral),
    }


def topic_analysis(messages: Iterable[Dict[str, Any]], top: int = 5) -> Dict[str, Any]:
    counts: Counter = Counter()
    for message in messages:
        counts.update(WORD_RE.findall(_text(message).lower()))
    return {
        "top_topics": [{"topic": topic, "mentions": n} for topic, n in counts.most_common(top)],
        "topic_diversity": len(counts),
    }


# Emoji and reactions


def normalize_emoji(name: str) -> str:
    return name.strip().strip(":")


def categorize_emoji(name: str) -> str:
    for category, names in EMOJI_CATEGORIES.items():
        if name in names:
            return category
    return "other"


def emoji_sentiment(name: str) -> int:
    return EMOJI_SENTIMENT.get(name, 5)


def emoji_popularity(name: str) -> str:
    if name in VERY_POPULAR_EMOJI:
        return "very_popular"
    if name in POPULAR_EMOJI:
        return "popular"
    if name in MODERATE_EMOJI:
        return "moderate"
    return "uncommon"


def emotional_context(name: str) -> Dict[str, Any]:
    category = next(
        (cat for cat, names in EMOTIONAL_CATEGORIES.items() if name in names),
        "neutral",
    )
    return {
        "emotional_category": category,
        "communication_intent": COMMUNICATION_INTENT.get(category, "general_engagement"),
        "relationship_building": category in ("supportive", "celebratory", "empathetic"),
    }


def social_signal_strength(name: str) -> int:
    strength = emoji_sentiment(name)
    popularity = emoji_popularity(name)
    if popularity == "very_popular":
        strength += 2
    elif popularity == "popular":
        strength += 1
    if categorize_emoji(name) in ("positive", "celebration", "agreement"):
        strength += 1
    return min(10, strength)


def reaction_timing(ts: float, now: Optional[float] = None) -> Dict[str, Any]:
    minutes = (_now(now) - ts) / 60
    if minutes < 1:
        timing = "immediate"
    elif minutes < 5:
        timing = "quick"
    elif minutes < 30:
        timing = "prompt"
    elif minutes < 120:
        timing = "moderate"
    else:
        timing = "delayed"
    return {
        "timing_category": timing,
        "minutes_after_message": round(minutes),
        "engagement_freshness": "fresh" if minutes < 30 else "moderate" if minutes < 120 else "stale",
    }


def reaction_sentiment_factor(reactions: List[Dict[str, Any]]) -> float:
    """0.5 when every sentiment-bearing reaction is negative, 1.0 when none or all positive."""
    positive = sum(r.get("count", 0) for r in reactions if r.get("name") in POSITIVE_REACTIONS)
    negative = sum(r.get("count", 0) for r in reactions if r.get("name") in NEGATIVE_REACTIONS)
    if positive + negative == 0:
        return 1.0
    return 0.5 + (positive / (positive + negative)) * 0.5


def calculate_engagement_score(
    reactions: List[Dict[str, Any]], message: Dict[str, Any], now: Optional[float] = None
) -> int:
    """Engagement score 0-100 from reaction volume, diversity and reach, decaying over a week."""
    if not reactions:
        return 0

    total = sum(r.get("count", 0) or 0 for r in reactions)
    diversity = len(reactions)
    reactors = {user for r in reactions for user in r.get("users") or []}

    age_hours = (_now(now) - message_ts(message)) / 3600 if message.get("ts") else 0
    age_factor = max(0.5, 1 - age_hours / 168)

    score = (total * 10 + diversity * 5 + len(reactors) * 3) * age_factor * reaction_sentiment_factor(reactions)
    return min(100, round(score))


def reaction_distribution(reactions: List[Dict[str, Any]]) -> Dict[str, Any]:
    sentiment = {"positive": 0, "negative": 0, "neutral": 0}
    for r in reactions:
        name = r.get("name", "")
        value = emoji_sentiment(name)
        bucket = "positive" if value > 6 else "negative" if value < 4 else "neutral"
        sentiment[bucket] += r.get("count", 0) or 0
    top = sorted(reactions, key=lambda r: r.get("count", 0), reverse=True)[:5]
    return {
        "total_reactions": sum(sentiment.values()),
        "unique_emojis": len(reactions),
        "unique_reactors": len({u for r in reactions for u in r.get("users") or []}),
        "top_reactions": [{"name": r.get("name"), "count": r.get("count", 0)} for r in top],
        "sentiment_distribution": sentiment,
    }


# Channel and read activity


def message_engagement(messages: List[Dict[str, Any]]) -> float:
    total = sum(reaction_count(m) + (m.get("reply_count") or 0) for m in messages)
    return total / max(1, len(messages))


def _is_priority(message: Dict[str, Any]) -> bool:
    return bool(message.get("reactions")) or (message.get("reply_count") or 0) > 0 or _mentions_someone(_text(message))


def categorize_messages(messages: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    categories = {"questions": 0, "announcements": 0, "discussions": 0, "files": 0, "mentions": 0, "other": 0}
    for message in messages:
        text = _text(message).lower()
        if "?" in text:
            categories["questions"] += 1
        elif "@channel" in text or "@here" in text or "<!channel>" in text or "<!here>" in text:
            categories["announcements"] += 1
        elif message.get("files"):
            categories["files"] += 1
        elif "<@" in text:
            categories["mentions"] += 1
        elif (message.get("reply_count") or 0) > 0:
            categories["discussions"] += 1
        else:
            categories["other"] += 1
    return categories


def analyze_urgency(messages: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    urgency = {"low": 0, "medium": 0, "high": 0}
    for message in messages:
        text = _text(message).lower()
        mentions = _mentions_someone(text)
        reacted = bool(message.get("reactions"))
        if URGENT_RE.search(text) or (mentions and reacted):
            urgency["high"] += 1
        elif mentions or reacted:
            urgency["medium"] += 1
        else:
            urgency["low"] += 1
    return urgency


def hourly_distribution(messages: Iterable[Dict[str, Any]]) -> Dict[int, int]:
    counts: Counter = Counter(utc_hour(message_ts(m)) for m in messages if message_ts(m))
    return dict(sorted(counts.items()))


def find_peak_hours(distribution: Dict[int, int]) -> List[str]:
    """Hours with at least 80% of the busiest hour's count, as ``H:00``."""
    if not distribution:
        return []
    threshold = max(distribution.values()) * 0.8
    return [f"{hour}:00" for hour, count in sorted(distribution.items()) if count >= threshold]


def activity_trend(messages: List[Dict[str, Any]], now: Optional[float] = None) -> str:
    """Compare the newer and older half of a newest-first message list."""
    if len(messages) < 20:
        return "stable"
    midpoint = len(messages) // 2
    recent, older = messages[:midpoint], messages[midpoint:]
    recent_avg = sum(message_ts(m) for m in recent) / len(recent)
    older_avg = sum(message_ts(m) for m in older) / len(older)
    expected = (_now(now) - message_ts(messages[-1])) / 2
    diff = recent_avg - older_avg
    if diff < expected * 0.8:
        return "increasing"
    if diff > expected * 1.2:
        return "decreasing"
    return "stable"


def engagement_patterns(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    hourly: Dict[int, int] = {}
    gaps: List[float] = []
    ordered = sorted(messages, key=message_ts)
    for index, message in enumerate(ordered):
        hour = utc_hour(message_ts(message))
        hourly[hour] = hourly.get(hour, 0) + reaction_count(message) + (message.get("reply_count") or 0)
        if index:
            gaps.append(message_ts(message) - message_ts(ordered[index - 1]))

    average = sum(hourly.values()) / len(hourly) if hourly else 0
    return {
        "high_engagement_periods": [f"{h}:00-{h + 1}:00" for h, e in sorted(hourly.items()) if e > average * 1.2],
        "low_engagement_periods": [f"{h}:00-{h + 1}:00" for h, e in sorted(hourly.items()) if e < average * 0.5],
        "average_response_time": round(sum(gaps) / len(gaps)) if gaps else 0,
    }


def categorize_reading_time(hour: int) -> List[str]:
    categories = []
    if 6 <= hour <= 8:
        categories.append("early_morning")
    if 9 <= hour <= 17:
        categories.append("business_hours")
    if 18 <= hour <= 22:
        categories.append("evening")
    if hour >= 23 or hour <= 5:
        categories.append("late_night")
    if 12 <= hour <= 14:
        categories.append("lunch_time")
    return categories or ["business_hours"]


def analyze_read_activity(messages: List[Dict[str, Any]], ts: str, now: Optional[float] = None) -> Dict[str, Any]:
    """Read/unread split around the read marker ``ts`` with velocity and risk."""
    now = _now(now)
    marked = float(ts)
    unread = [m for m in messages if message_ts(m) > marked]
    read = [m for m in messages if 0 < message_ts(m) <= marked]

    span_hours = max(1.0, (now - marked) / 3600)
    velocity = len(read) / span_hours
    avg_length = sum(len(_text(m)) for m in read) / max(1, len(read))
    complexity = min(2.0, avg_length / 100) or 1.0
    efficiency = min(100.0, velocity * 20 / complexity)
    catch_up = max(0.0, 100 - (now - marked) / 60 * 2)

    important = sum(1 for m in unread if _is_priority(m))
    if important > 5 or len(unread) > 50:
        risk = "high"
    elif important > 2 or len(unread) > 20:
        risk = "medium"
    else:
        risk = "low"

    return {
        "read_count": len(read),
        "unread_count": len(unread),
        "last_read": iso_time(marked),
        "reading_velocity": round(velocity, 2),
        "efficiency_score": round(efficiency),
        "catch_up_score": round(catch_up),
        "engagement_risk": risk,
    }


def analyze_engagement_impact(before: List[Dict[str, Any]], after: List[Dict[str, Any]]) -> Dict[str, Any]:
    change = message_engagement(after) - message_engagement(before)
    users = {m.get("user") for m in before + after if m.get("user")}
    signals = sum(reaction_count(m) for m in after)
    relevant = sum(1 for m in after if "@" in _text(m) or m.get("reactions"))
    return {
        "impact_score": round(abs(change) * 10),
        "engagement_change": round(change, 2),
        "participation_rate": round(_ratio(len(users), max(1, len(before) + len(after))) * 100, 2),
        "missed_interactions": sum(len(m.get("reactions") or []) + (m.get("reply_count") or 0) for m in after),
        "social_signals": signals,
        "influence_metrics": {
            "reach": len(users),
            "resonance": round(signals / max(1, len(after)), 2),
            "relevance": round(relevant / max(1, len(after)) * 100, 2),
        },
    }


def analyze_unread_messages(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    participants = Counter(m["user"] for m in messages if m.get("user"))
    words = sum(len(_text(m).split()) for m in messages)
    return {
        "unread_count": len(messages),
        "priority_messages": sum(1 for m in messages if _is_priority(m) or URGENT_RE.search(_text(m).lower())),
        "estimated_read_time": math.ceil(words / WORDS_PER_MINUTE),
        "content_categories": categorize_messages(messages),
        "urgency_distribution": analyze_urgency(messages),
        "key_participants": [user for user, _ in participants.most_common(5)],
    }


def analyze_channel_activity(messages: List[Dict[str, Any]], now: Optional[float] = None) -> Dict[str, Any]:
    now = _now(now)
    daily = [m for m in messages if message_ts(m) > now - 86400]
    return {
        "daily_messages": len(daily),
        "active_users": len({m.get("user") for m in daily if m.get("user")}),
        "peak_hours": find_peak_hours(hourly_distribution(daily)),
        "activity_trend": activity_trend(messages, now),
        "engagement_patterns": engagement_patterns(daily),
        "activity_level": "high" if len(daily) > 50 else "moderate" if len(daily) > 10 else "low",
    }


def analyze_read_behavior(ts: str, now: Optional[float] = None) -> Dict[str, Any]:
    marked = float(ts)
    since = _now(now) - marked
    if since > 86400:
        pattern = "batch"
    elif since > 3600:
        pattern = "selective"
    elif since < 300:
        pattern = "sequential"
    else:
        pattern = "sporadic"

    speed = max(1.0, 60 / max(1.0, since / 60))
    if speed > 10:
        comprehension = 60
    elif speed < 1:
        comprehension = 80
    else:
        comprehension = 90

    if pattern == "sequential" and speed < 5:
        depth = "deep"
    elif pattern == "batch" or speed > 8:
        depth = "surface"
    else:
        depth = "moderate"

    return {
        "read_pattern": pattern,
        "read_speed": round(speed, 2),
        "comprehension_score": comprehension,
        "attention_span": {"sequential": 100, "selective": 80, "batch": 60}.get(pattern, 40),
        "preferred_times": categorize_reading_time(utc_hour(marked)),
        "engagement_depth": depth,
    }


def generate_mark_recommendations(analytics: Dict[str, Any]) -> List[str]:
    recommendations = []
    read = analytics.get("read_activity") or {}
    unread = analytics.get("unread_analysis") or {}
    activity = analytics.get("channel_activity") or {}

    if read.get("engagement_risk") == "high":
        recommendations.append("High engagement risk detected - review important unread messages immediately")
    if read and read.get("catch_up_score", 100) < 40:
        recommendations.append("Consider setting up notifications for this channel to stay more current")
    if read and read.get("efficiency_score", 100) < 50:
        recommendations.append("Low read efficiency - consider batch reading or using thread summaries")
    if unread.get("priority_messages", 0) > 3:
        recommendations.append(
            f"{unread['priority_messages']} priority messages need attention - review highly engaged content first"
        )
    if unread.get("estimated_read_time", 0) > 15:
        recommendations.append(
            f"Estimated {unread['estimated_read_time']} minutes to catch up - consider scheduling focused reading time"
        )
    if activity.get("activity_level") == "high":
        recommendations.append("High channel activity detected - consider increasing read frequency to stay engaged")

    if not recommendations:
        recommendations.append("Channel is up to date")
        recommendations.append("Consider reviewing pinned messages for important updates")
    return recommendations


# Message history


def analyze_messages(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    types = Counter(m.get("subtype") or "message" for m in messages)
    users = Counter(m["user"] for m in messages if m.get("user"))
    return {
        "message_types": dict(types),
        "unique_users": len(users),
        "most_active_user": users.most_common(1)[0][0] if users else None,
        "avg_messages_per_user": round(len(messages) / len(users)) if users else 0,
        "bot_messages": sum(1 for m in messages if m.get("bot_id") or m.get("subtype") == "bot_message"),
    }


def engagement_metrics(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    threads = sum(1 for m in messages if m.get("thread_ts"))
    replies = sum(m.get("reply_count") or 0 for m in messages)
    reactions = sum(len(m.get("reactions") or []) for m in messages)
    n = len(messages)
    return {
        "thread_messages": threads,
        "total_replies": replies,
        "total_reactions": reactions,
        "engagement_rate": round((threads + replies + reactions) / n * 100) if n else 0,
        "avg_replies_per_message": round(replies / n, 2) if n else 0,
        "avg_reactions_per_message": round(reactions / n, 2) if n else 0,
    }


def content_insights(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    total_length = sum(len(_text(m)) for m in messages)
    with_files = sum(1 for m in messages if m.get("files"))
    with_attachments = sum(1 for m in messages if m.get("attachments"))
    with_blocks = sum(1 for m in messages if m.get("blocks"))
    n = len(messages)
    return {
        "avg_message_length": round(total_length / n) if n else 0,
        "total_characters": total_length,
        "messages_with_files": with_files,
        "messages_with_attachments": with_attachments,
        "messages_with_blocks": with_blocks,
        "content_richness": round((with_files + with_attachments + with_blocks) / n * 100) if n else 0,
    }


def activity_pattern(hour_counts: Dict[int, int]) -> str:
    business = sum(1 for h in hour_counts if 9 <= h <= 17)
    after = sum(1 for h in hour_counts if h < 9 or h > 17)
    if business > after * 2:
        return "business_hours"
    if after > business * 2:
        return "after_hours"
    return "distributed"


def temporal_patterns(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    timestamps = sorted(message_ts(m) for m in messages if message_ts(m))
    if not timestamps:
        return {"activity_pattern": "no_data", "peak_hours": [], "message_frequency": 0, "time_span_hours": 0}

    hours = Counter(utc_hour(ts) for ts in timestamps)
    span = timestamps[-1] - timestamps[0]
    return {
        "activity_pattern": activity_pattern(hours),
        "peak_hours": [hour for hour, _ in hours.most_common(3)],
        "message_frequency": round(len(timestamps) / (span / 3600), 2) if span else 0,
        "time_span_hours": round(span / 3600, 2),
    }


def thread_analysis(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    thread_messages = [m for m in messages if m.get("thread_ts")]
    parents = [m for m in messages if (m.get("reply_count") or 0) > 0]
    top = sorted(parents, key=lambda m: m.get("reply_count", 0), reverse=True)[:3]
    return {
        "total_threads": len(parents),
        "thread_messages": len(thread_messages),
        "avg_replies_per_thread": round(sum(m["reply_count"] for m in parents) / len(parents)) if parents else 0,
        "most_engaging_threads": [
            {"ts": m.get("ts"), "reply_count": m.get("reply_count"), "user": m.get("user")} for m in top
        ],
        "thread_participation_rate": round(len(thread_messages) / len(messages) * 100) if messages else 0,
    }


def interaction_analysis(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    mentions = sum(len(USER_MENTION_RE.findall(_text(m))) for m in messages)
    channels = sum(len(CHANNEL_MENTION_RE.findall(_text(m))) for m in messages)
    links = sum(len(LINK_RE.findall(_text(m))) for m in messages)
    return {
        "user_mentions": mentions,
        "channel_mentions": channels,
        "external_links": links,
        "interaction_density": round((mentions + channels + links) / len(messages) * 100) if messages else 0,
    }


def communication_velocity(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    timestamps = sorted(message_ts(m) for m in messages if message_ts(m))
    if len(timestamps) < 2:
        return {"velocity": 0, "avg_response_time_minutes": 0, "response_patterns": "insufficient_data"}

    intervals = [b - a for a, b in zip(timestamps, timestamps[1:])]
    avg_interval = sum(intervals) / len(intervals)
    velocity = 3600 / avg_interval if avg_interval else float(len(timestamps))
    return {
        "velocity": round(velocity, 2),
        "avg_response_time_minutes": round(avg_interval / 60, 2),
        "response_patterns": "high_velocity" if velocity > 10 else "moderate_velocity" if velocity > 1 else "low_velocity",
    }


def history_analytics(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Full analytics block for a page of channel history."""
    engaged = [m for m in messages if m.get("reactions") or (m.get("reply_count") or 0) > 0]
    return {
        "message_intelligence": {
            "total_messages": len(messages),
            "message_analysis": analyze_messages(messages),
            "engagement_metrics": engagement_metrics(messages),
            "content_insights": content_insights(messages),
            "temporal_patterns": temporal_patterns(messages),
        },
        "conversation_flow": {
            "thread_analysis": thread_analysis(messages),
            "interaction_patterns": interaction_analysis(messages),
            "communication_velocity": communication_velocity(messages),
        },
        "sentiment_intelligence": {
            "overall_sentiment": analyze_sentiment(messages),
            "engagement_sentiment": analyze_sentiment(engaged),
            "topic_sentiment": topic_analysis(messages),
        },
    }


def history_recommendations(analytics: Dict[str, Any], messages: List[Dict[str, Any]]) -> List[str]:
    if not messages:
        return ["No messages in range - widen the time window or check the channel"]

    intelligence = analytics["message_intelligence"]
    flow = analytics["conversation_flow"]
    sentiment = analytics["sentiment_intelligence"]["overall_sentiment"]
    recommendations = []
    if intelligence["engagement_metrics"]["engagement_rate"] < 20:
        recommendations.append("Low engagement detected - consider encouraging more interactive discussions")
    if flow["thread_analysis"]["thread_participation_rate"] < 10:
        recommendations.append("Limited thread usage - encourage threaded conversations for better organization")
    if sentiment["sentiment_score"] < -20:
        recommendations.append("Negative sentiment detected - consider addressing concerns or improving communication tone")
    if intelligence["content_insights"]["content_richness"] < 10:
        recommendations.append("Low content richness - consider sharing more files, links, and rich content")
    if flow["communication_velocity"]["velocity"] < 0.5 and len(messages) > 1:
        recommendations.append("Low communication velocity - consider strategies to increase conversation frequency")
    if intelligence["message_analysis"]["bot_messages"] > len(messages) * 0.5:
        recommendations.append("High bot message ratio - ensure human interaction remains primary focus")
    return recommendations


# Individual messages


def analyze_pin_content(message: Dict[str, Any]) -> Dict[str, Any]:
    """Classify a message and score how worthwhile it is to pin (0-100)."""
    text = _text(message)
    lower = text.lower()
    has_files = bool(message.get("files"))
    has_attachments = bool(message.get("attachments"))
    score = 50
    message_type = "other"
    categories: List[str] = []
    reasons: List[str] = []
    concerns: List[str] = []

    if any(word in lower for word in ("announcement", "important", "notice", "attention")):
        message_type, score = "announcement", score + 20
        categories.append("announcement")
        reasons.append("Contains announcement keywords")
    if any(word in lower for word in ("decision", "approved", "resolved", "final")):
        message_type, score = "decision", score + 25
        categories.append("decision")
        reasons.append("Contains decision-related content")
    if any(word in lower for word in ("documentation", "guide", "tutorial", "reference")) or has_files or has_attachments:
        message_type, score = "resource", score + 15
        categories.append("resource")
        reasons.append("Contains reference material or files")
    if (message.get("reply_count") or 0) > 5:
        message_type, score = "discussion", score + 10
        categories.append("active_discussion")
        reasons.append("High engagement thread")

    if has_files:
        score += 10
        reasons.append("Contains file attachments")
    if message.get("blocks"):
        score += 5
        reasons.append("Rich formatted content")
    if len(text) < 50:
        score -= 10
        concerns.append("Very short message content")
    if len(text) > 1000:
        score += 5
        reasons.append("Comprehensive detailed content")

    relevance = {
        "announcement": "2-4 weeks",
        "decision": "1-3 months",
        "resource": "3-6 months",
    }.get(message_type, "1-2 weeks")

    return {
        "message_type": message_type,
        "importance_score": max(0, min(100, score)),
        "content_categories": categories,
        "key_topics": [keyword for keyword in TOPIC_KEYWORDS if keyword in lower],
        "estimated_relevance_duration": relevance,
        "pin_worthiness": {"score": max(0, min(100, score)), "reasons": reasons, "concerns": concerns},
    }


def pin_importance_score(message: Dict[str, Any], age_hours: float) -> int:
    score = 0
    if age_hours < 24:
        score += 30
    elif age_hours < 168:
        score += 20
    elif age_hours < 720:
        score += 10

    length = len(_text(message))
    if length > 200:
        score += 25
    elif length > 100:
        score += 15
    elif length > 50:
        score += 10

    score += min(reaction_count(message) * 3, 20)
    score += min((message.get("reply_count") or 0) * 2, 15)
    if message.get("files"):
        score += 10
    if "http" in _text(message):
        score += 5
    return min(score, 100)


def analyze_deletion(message: Dict[str, Any], now: Optional[float] = None) -> Dict[str, Any]:
    """Impact of deleting ``message``: importance, thread impact, data loss and compliance."""
    age_hours = (_now(now) - message_ts(message)) / 3600
    replies = message.get("reply_count") or 0
    text = _text(message)
    lower = text.lower()

    if replies > 10:
        importance = "critical"
    elif replies > 5:
        importance = "high"
    elif len(message.get("reactions") or []) > 5:
        importance = "medium"
    else:
        importance = "low"

    if not replies:
        thread_impact = "none"
    elif replies > 20:
        thread_impact = "severe"
    elif replies > 10:
        thread_impact = "moderate"
    else:
        thread_impact = "minor"

    if message.get("files"):
        data_loss = "high"
    elif message.get("attachments"):
        data_loss = "medium"
    else:
        data_loss = "low"

    sensitive = any(word in lower for word in ("password", "confidential", "secret"))
    retention_conflict = age_hours < 24
    compliance = 100 - (30 if retention_conflict else 0) - (20 if sensitive else 0)
    compliance -= {"high": 25, "medium": 15}.get(data_loss, 0)

    return {
        "impact_assessment": {
            "message_importance": importance,
            "thread_impact": thread_impact,
            "user_impact": min(100, replies * 2 + reaction_count(message)),
            "data_loss_risk": data_loss,
        },
        "content_analysis": {
            "contains_files": bool(message.get("files")),
            "contains_links": "http" in text or "www." in text,
            "contains_mentions": "@" in text or "#" in text,
            "contains_sensitive_data": sensitive,
            "message_age_hours": round(age_hours, 1),
        },
        "compliance_considerations": {
            "retention_policy_conflict": retention_conflict,
            "compliance_score": max(0, compliance),
        },
    }


def text_similarity(before: str, after: str) -> float:
    """Jaccard similarity of the word sets of two texts, 1.0 for two empty texts."""
    a, b = set(before.lower().split()), set(after.lower().split())
    if not a and not b:
        return 1.0
    return round(len(a & b) / len(a | b), 2)


def profile_completeness(user: Dict[str, Any]) -> int:
    """25 points each for real name, title, a large avatar and a timezone."""
    profile = user.get("profile") or {}
    score = 0
    if user.get("real_name") or profile.get("real_name"):
        score += 25
    if profile.get("title"):
        score += 25
    if profile.get("image_512"):
        score += 25
    if user.get("tz"):
        score += 25
    return score
