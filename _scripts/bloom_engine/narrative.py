"""
Bloom Engine - Narrative Generator v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Deterministic, template-driven text built from aggregated statistics.
No free-text generation: every sentence comes from a fixed template
selected by thresholds, so the same numbers always give the same words.
"""

import hashlib
import math
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .core.types import MomentType, RitualMood
from .rollups import MoodInsight, WeekActivity
from .streaks import RitualStats

logger = logging.getLogger(__name__)


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


# =============================================================================
# EMOTION ANALYTICS
# =============================================================================

EMPTY_SUMMARY = (
    "You haven't captured any moments yet. "
    "When something moves you, your first moment will start the story."
)


def summary_paragraph(
    active_days: int,
    total_moments: int,
    top_mood: Optional[str],
    favorite_type: Optional[MomentType],
    peak_time: Optional[str],
    unique_moods: int,
) -> str:
    """
    Two to four sentences summarising a member's capture history.

    Args:
        active_days: Distinct days with at least one moment
        total_moments: Number of moments
        top_mood: Most frequent mood tag, if any
        favorite_type: Most captured moment type, if any
        peak_time: Lowercase label of the peak time-of-day bucket
        unique_moods: Number of distinct mood tags
    """
    if total_moments == 0:
        return EMPTY_SUMMARY

    opening = f"Over {plural(active_days, 'day')}, you've captured {plural(total_moments, 'moment')}"
    if top_mood:
        opening += f", with {top_mood} leading the way"
    sentences = [opening + "."]

    if favorite_type and peak_time:
        sentences.append(f"You love to {favorite_type.verb} your feelings, especially in the {peak_time}.")

    if unique_moods >= 5:
        sentences.append(f"Naming {unique_moods} different emotions is a quiet superpower.")
    elif unique_moods >= 3:
        sentences.append("You're building a beautiful emotional vocabulary.")

    return " ".join(sentences)


FALLBACK_QUOTE = "Every feeling I name makes me a little stronger."


def share_quote_candidates(
    unique_moods: int,
    top_mood: Optional[str],
    active_days: int,
    total_moments: int,
    current_streak: int,
    positive_moods: Iterable[str],
) -> List[str]:
    """Quotes whose thresholds are met, in fixed order. Never empty."""
    positive = set(positive_moods)
    quotes = []
    if unique_moods >= 5:
        quotes.append(
            f"I've named {unique_moods} different emotions. "
            f"That's not overthinking, that's emotional fluency."
        )
    if top_mood and top_mood in positive:
        quotes.append(
            f"My most felt emotion lately? {top_mood.capitalize()}. "
            f"And I think that says something beautiful."
        )
    if top_mood and top_mood not in positive:
        quotes.append(
            f"I've been sitting with {top_mood} a lot lately. "
            f"Naming it is the first step to understanding it."
        )
    if active_days >= 7:
        quotes.append(f"{active_days} days of showing up for myself. Consistency is its own kind of courage.")
    if total_moments >= 50:
        quotes.append(
            f"{total_moments} moments captured. "
            f"That's {total_moments} times I chose to pay attention to how I feel."
        )
    if current_streak >= 3:
        quotes.append(f"{current_streak}-day positivity streak. Not forcing it, just noticing the good.")
    if 3 <= unique_moods < 5:
        quotes.append(f"{unique_moods} emotions, all valid. My emotional vocabulary is growing.")
    if not quotes:
        quotes.append(FALLBACK_QUOTE)
    return quotes


def iso_week_seed(now: datetime) -> str:
    year, week, _ = now.isocalendar()
    return f"{year}-W{week:02d}"


def select_quote(candidates: List[str], total_moments: int, now: datetime, mode: str = "weekly") -> str:
    """
    Pick one candidate.

    "weekly" hashes the ISO week so the quote holds still for a whole week
    however many moments are added. "rotating" is total_moments modulo the
    candidate count, which changes with every new moment.
    """
    if not candidates:
        return FALLBACK_QUOTE
    if mode == "rotating":
        index = total_moments % len(candidates)
    else:
        digest = hashlib.sha256(iso_week_seed(now).encode("utf-8")).hexdigest()
        index = int(digest, 16) % len(candidates)
    return candidates[index]


def mood_insight_narrative(insight: MoodInsight) -> str:
    """Sentence under a selected mood on the emotional palette."""
    if insight.count == 0:
        return f"You haven't named {insight.mood} yet. {insight.hint}."
    if insight.trend == "rising":
        trend = "and it's been growing this week."
    elif insight.trend == "easing":
        trend = "and it's been quieter this week."
    else:
        trend = "holding steady lately."
    return (
        f"You've felt {insight.mood} {plural(insight.count, 'time')}, "
        f"that's {insight.pct}% of your moments. "
        f"It visits you most in the {insight.peak_time}, {trend}"
    )


# =============================================================================
# PROGRESS
# =============================================================================

MOOD_SENTENCES = {
    RitualMood.GREAT: "You've been feeling wonderful lately. Whatever you're doing, it's working.",
    RitualMood.GOOD: "Most of your check-ins feel steady and grounded. Your practices are nourishing you well.",
    RitualMood.OKAY: "You've been in an okay place. Showing up even when it's just 'okay' takes quiet strength.",
    RitualMood.LOW: "It's been a heavier stretch. But you're still here, still checking in. That matters.",
    RitualMood.DIFFICULT: "Things have been hard lately. The fact that you keep going takes real courage.",
}


def mood_narrative(dominant_ritual_mood: Optional[str], top_moment_mood: Optional[str]) -> str:
    """
    Empathetic sentence from ritual check-ins, falling back to moment moods.

    Returns an empty string when there is neither.
    """
    ritual_mood = RitualMood.from_value(dominant_ritual_mood)
    if ritual_mood is not None:
        return MOOD_SENTENCES[ritual_mood]
    if dominant_ritual_mood:
        logger.debug(f"No sentence for ritual mood '{dominant_ritual_mood}', using moment moods")
    if top_moment_mood:
        return f"Your moments have been colored with {top_moment_mood}. That's a feeling worth honoring."
    return ""


QUIET_WEEK = "A quiet week so far. No pressure. When you're ready, even one small step can shift the day."


def week_narrative(week: WeekActivity) -> str:
    """One sentence listing what happened this week."""
    parts = []
    if week.moment_count > 0:
        parts.append(f"captured {plural(week.moment_count, 'moment')}")
    if week.ritual_days > 0:
        parts.append(f"practiced rituals on {plural(week.ritual_days, 'day')}")
    if week.seed_days > 0:
        parts.append(f"logged your seeds {plural(week.seed_days, 'time')}")
    if not parts:
        return QUIET_WEEK
    return f"This week you {', '.join(parts)}."


def moments_narrative(total: int, type_counts: Dict[str, int]) -> str:
    if total == 0:
        return (
            "You haven't captured any moments yet this month. "
            "When something moves you, it's worth holding onto."
        )
    parts = [
        f"{type_counts[t.value]} {t.label.lower()}"
        for t in MomentType
        if type_counts.get(t.value, 0) > 0
    ]
    text = f"You've captured {plural(total, 'moment')} this month"
    if parts:
        text += f": {', '.join(parts)}"
    return text + "."


# =============================================================================
# RITUAL INSIGHTS
# =============================================================================

@dataclass
class Narrative:
    """Headline plus supporting line."""
    title: str
    subtitle: str

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "subtitle": self.subtitle}


def ritual_week_narrative(ritual_count: int, active_days: int, days_elapsed: int) -> Narrative:
    """
    Args:
        ritual_count: Rituals the member follows
        active_days: Days this week with at least one completion
        days_elapsed: Days of the week so far, today included (1..7)
    """
    if ritual_count == 0:
        return Narrative(
            "Your week is a blank canvas",
            "Add some rituals and come back. This page will come alive with your journey.",
        )
    if active_days == 0:
        return Narrative(
            "A quiet week so far",
            "No pressure. When you're ready, even one small ritual can shift the day.",
        )
    if active_days == days_elapsed and days_elapsed >= 3:
        return Narrative(
            "Every single day. You're all in",
            "You haven't missed a day this week. That kind of presence is rare.",
        )
    if active_days >= days_elapsed - 1 and days_elapsed >= 3:
        return Narrative(
            f"{active_days} out of {days_elapsed} days, so consistent",
            "You're showing up for yourself almost every day. That's real commitment.",
        )
    if active_days >= math.ceil(days_elapsed / 2):
        return Narrative(
            f"You showed up {plural(active_days, 'day')} this week",
            "More than half the week and counting. Each day you choose yourself.",
        )
    return Narrative(
        f"{plural(active_days, 'moment')} of presence this week",
        "Even a single day of showing up matters. You're building something.",
    )


def ritual_month_narrative(active_days: int, trend: str) -> Narrative:
    """Headline for the rolling month, shaded by the month trend."""
    if active_days == 0:
        return Narrative(
            "A fresh chapter",
            "The last 30 days are behind you. Today is where it begins.",
        )
    if active_days >= 25:
        return Narrative(
            f"{active_days} days of showing up",
            "And you're getting even stronger. Your rhythm is becoming second nature."
            if trend == "growing" else
            "That's remarkable consistency. Your rituals are woven into your life now.",
        )
    if active_days >= 15:
        if trend == "growing":
            subtitle = "And you're building momentum. The recent days look even stronger."
        elif trend == "slowing":
            subtitle = "You started strong. Gentle reminder: you don't need a perfect streak, just keep going."
        else:
            subtitle = "A steady, honest rhythm. You're showing up more often than not."
        return Narrative(f"{active_days} days in the last month", subtitle)
    if active_days >= 7:
        return Narrative(
            f"{active_days} days, you're finding your rhythm",
            "And it's growing. You're practicing more this week than you were two weeks ago."
            if trend == "growing" else
            "Some days you show up, some days you rest. Both are part of the journey.",
        )
    return Narrative(
        f"{plural(active_days, 'day')} over the last month",
        "Every day you choose to show up is a day that counts. Start small, stay gentle.",
    )


REFLECTION_SENTENCES = {
    RitualMood.GREAT: (
        "You've been feeling wonderful lately. Whatever you're doing, it's working. "
        "Keep honoring what lights you up."
    ),
    RitualMood.GOOD: (
        "Most of your check-ins feel steady and grounded. "
        "Your rituals seem to be nourishing you well."
    ),
    RitualMood.OKAY: (
        "You've been in an okay place. That's honest, and showing up "
        "even when it's just 'okay' takes quiet strength."
    ),
    RitualMood.LOW: (
        "It's been a heavier stretch. But you're still here, still checking in. "
        "That matters more than you think."
    ),
    RitualMood.DIFFICULT: (
        "Things have been hard lately. The fact that you keep going, "
        "even on difficult days, takes real courage."
    ),
}


def ritual_mood_reflection(dominant_ritual_mood: Optional[str]) -> str:
    ritual_mood = RitualMood.from_value(dominant_ritual_mood)
    return REFLECTION_SENTENCES[ritual_mood] if ritual_mood else ""


def strongest_ritual_narrative(name: str, stats: Optional[RitualStats]) -> Optional[str]:
    """Sentence about the most practiced ritual; None when it has no completed days."""
    if stats is None or stats.days_completed == 0:
        return None
    if stats.current_streak >= 7:
        return (
            f"{name} has been your anchor: {stats.current_streak} days in a row and counting. "
            f"That's a real practice now."
        )
    if stats.days_completed >= 20:
        return f"{name} is becoming part of who you are. {stats.days_completed} out of the last 30 days."
    if stats.current_streak >= 3:
        return f"You've been consistent with {name} lately, {stats.current_streak} days straight. Keep going."
    if stats.days_completed >= 10:
        return (
            f"{name} is your most practiced ritual, {stats.days_completed} days this month. "
            f"It's clearly important to you."
        )
    return f"{name} is where you show up most. Every time you do, you're choosing yourself."


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "plural",
    # Emotion analytics
    "EMPTY_SUMMARY",
    "summary_paragraph",
    "FALLBACK_QUOTE",
    "share_quote_candidates",
    "iso_week_seed",
    "select_quote",
    "mood_insight_narrative",
    # Progress
    "MOOD_SENTENCES",
    "mood_narrative",
    "QUIET_WEEK",
    "week_narrative",
    "moments_narrative",
    # Ritual insights
    "Narrative",
    "ritual_week_narrative",
    "ritual_month_narrative",
    "REFLECTION_SENTENCES",
    "ritual_mood_reflection",
    "strongest_ritual_narrative",
]
