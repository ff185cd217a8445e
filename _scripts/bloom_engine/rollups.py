"""
Bloom Engine - Rollups & Rankings v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Bucketing and ranking over moments, ritual completions and seed logs:
- Mood distribution (counts, palette, weekly rollup)
- Time-of-day buckets and the peak bucket
- Brightest days ranking and the positive journaling streak
- Capture-type breakdown
- Colour-coded month and activity grids
- Ritual and seed selection helpers (most consistent, strongest)

Every function is pure and never mutates its inputs.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .core.types import (
    Anchor,
    AnchorType,
    MemberRitual,
    Moment,
    MomentType,
    Mood,
    RitualCompletion,
    mood_info,
)
from .dates import DateLike, local_date_key, monday_of, parse_date_key, start_of_day
from .streaks import EntityStats, RitualStats, best_streak, compute_streak, round_half_up


# =============================================================================
# MOOD COUNTS
# =============================================================================

def count_moods(moments: Iterable[Moment]) -> Dict[str, int]:
    """Frequency of every mood tag across moments, in first-seen order."""
    counts: Dict[str, int] = {}
    for m in moments:
        for mood in m.moods:
            counts[mood] = counts.get(mood, 0) + 1
    return counts


def sort_moods(counts: Dict[str, int]) -> List[Tuple[str, int]]:
    """Most frequent first; ties keep first-seen order."""
    return sorted(counts.items(), key=lambda kv: -kv[1])


def dominant_mood(moments: Iterable[Moment]) -> Optional[str]:
    """Most represented tag across a set of moments, or None without tags."""
    ranked = sort_moods(count_moods(moments))
    return ranked[0][0] if ranked else None


def positive_count(moments: Iterable[Moment], positive_moods: Iterable[str]) -> int:
    positive = set(positive_moods)
    return sum(1 for m in moments if any(tag in positive for tag in m.moods))


def positivity_ratio(moments: Sequence[Moment], positive_moods: Iterable[str]) -> float:
    """Share of moments carrying at least one positive tag (0.0 for no moments)."""
    if not moments:
        return 0.0
    return positive_count(moments, positive_moods) / len(moments)


def top_moods(counts: Dict[str, int], limit: int = 5) -> List[Tuple[str, int]]:
    return sort_moods(counts)[:limit]


def mood_palette(
    sorted_moods: List[Tuple[str, int]],
    positive_moods: Iterable[str],
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Moods with their share of all tags, colour and positivity."""
    total_tags = sum(count for _, count in sorted_moods)
    entries = sorted_moods[:limit] if limit else sorted_moods
    palette = []
    for mood, count in entries:
        info = mood_info(mood, positive_moods)
        palette.append({
            "mood": mood,
            "count": count,
            "pct": round_half_up(count / total_tags * 100) if total_tags else 0,
            "color": info.color,
            "positive": info.positive,
        })
    return palette


DEFAULT_GRADIENT = ("#10b981", "#14b8a6")


def summary_gradient(sorted_moods: List[Tuple[str, int]]) -> Tuple[str, str]:
    """Colours of the top two moods; known-colour fallback per slot."""
    colors = []
    for slot, fallback in enumerate(DEFAULT_GRADIENT):
        if slot < len(sorted_moods):
            info = mood_info(sorted_moods[slot][0])
            colors.append(fallback if info.mood is Mood.UNKNOWN else info.color)
        else:
            colors.append(fallback)
    return colors[0], colors[1]


# =============================================================================
# WEEKLY ROLLUP
# =============================================================================

@dataclass
class MoodWeek:
    """Mood tally for one Monday-anchored week."""
    label: str
    start: str
    end: str
    mood_counts: Dict[str, int] = field(default_factory=dict)
    total: int = 0              # Mood-tagged moments in the week
    tag_count: int = 0          # Tags across those moments

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "start": self.start,
            "end": self.end,
            "mood_counts": dict(self.mood_counts),
            "total": self.total,
            "tag_count": self.tag_count,
        }


def week_label(weeks_back: int) -> str:
    if weeks_back == 0:
        return "This Week"
    if weeks_back == 1:
        return "Last Week"
    return f"{weeks_back} Weeks Ago"


def weekly_mood_rollup(moments: Iterable[Moment], now: datetime, weeks: int = 4) -> List[MoodWeek]:
    """
    Mood tallies for the current week and the weeks before it, newest first.

    Windows are [Monday 00:00, next Monday 00:00), so every tagged moment
    in range lands in exactly one week.
    """
    this_monday = monday_of(now)
    windows = []
    for back in range(weeks):
        start = this_monday - timedelta(days=7 * back)
        end = start + timedelta(days=7)
        windows.append((start, end, MoodWeek(
            label=week_label(back),
            start=local_date_key(start),
            end=local_date_key(end - timedelta(days=1)),
        )))

    for m in moments:
        if not m.moods:
            continue
        for start, end, week in windows:
            if start <= m.created_at < end:
                week.total += 1
                week.tag_count += len(m.moods)
                for mood in m.moods:
                    week.mood_counts[mood] = week.mood_counts.get(mood, 0) + 1
                break

    return [week for _, _, week in windows]


# =============================================================================
# TIME OF DAY
# =============================================================================

TIME_BUCKETS: Tuple[Tuple[str, Tuple[int, ...]], ...] = (
    ("Morning", (5, 6, 7, 8, 9, 10, 11)),
    ("Afternoon", (12, 13, 14, 15, 16)),
    ("Evening", (17, 18, 19, 20)),
    ("Night", (21, 22, 23, 0, 1, 2, 3, 4)),
)


def bucket_index(hour: int) -> int:
    for index, (_, hours) in enumerate(TIME_BUCKETS):
        if hour in hours:
            return index
    raise ValueError(f"hour out of range: {hour}")


@dataclass
class TimeBucket:
    label: str
    hours: Tuple[int, ...]
    moments: List[Moment] = field(default_factory=list)
    mood_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.moments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "hours": list(self.hours),
            "count": self.count,
            "moment_ids": [m.id for m in self.moments],
            "mood_counts": dict(self.mood_counts),
        }


def time_of_day_buckets(moments: Iterable[Moment]) -> List[TimeBucket]:
    """Partition moments into Morning, Afternoon, Evening and Night by local hour."""
    buckets = [TimeBucket(label, hours) for label, hours in TIME_BUCKETS]
    for m in moments:
        bucket = buckets[bucket_index(m.created_at.hour)]
        bucket.moments.append(m)
        for mood in m.moods:
            bucket.mood_counts[mood] = bucket.mood_counts.get(mood, 0) + 1
    return buckets


def peak_bucket_index(buckets: Sequence[TimeBucket]) -> int:
    """Bucket with the most moments; ties (and all-empty) resolve to the earliest."""
    peak = 0
    for index, bucket in enumerate(buckets):
        if bucket.count > buckets[peak].count:
            peak = index
    return peak


# =============================================================================
# BRIGHTEST DAYS & JOURNALING STREAK
# =============================================================================

@dataclass
class TopDay:
    date: str
    score: float
    count: int
    dominant_mood: Optional[str]
    snippet: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "score": self.score,
            "count": self.count,
            "dominant_mood": self.dominant_mood,
            "snippet": self.snippet,
        }


def day_snippet(moments: Iterable[Moment]) -> str:
    """First available text or caption among a day's moments."""
    for m in moments:
        if m.snippet:
            return m.snippet
    return ""


def top_days(
    by_date: Dict[str, List[Moment]],
    positive_moods: Iterable[str],
    limit: int = 3,
) -> List[TopDay]:
    """
    Rank days by positivity score, then by moment count.

    Days scoring 0 never appear; with no positive day the result is empty.
    """
    positive = tuple(positive_moods)
    days = []
    for date_key, day_moments in by_date.items():
        if not day_moments:
            continue
        score = positivity_ratio(day_moments, positive)
        if score <= 0:
            continue
        days.append(TopDay(
            date=date_key,
            score=score,
            count=len(day_moments),
            dominant_mood=dominant_mood(day_moments),
            snippet=day_snippet(day_moments),
        ))
    days.sort(key=lambda d: (-d.score, -d.count))
    return days[:limit]


@dataclass
class JournalingStreak:
    current: int = 0
    longest: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"current": self.current, "longest": self.longest}


def journaling_streak(
    by_date: Dict[str, List[Moment]],
    today: DateLike,
    positive_moods: Iterable[str],
    threshold: float = 0.5,
    lookback_days: int = 365,
) -> JournalingStreak:
    """Runs of days where at least `threshold` of the day's moments are positive."""
    positive = tuple(positive_moods)

    def bright(key: str) -> bool:
        day_moments = by_date.get(key)
        return bool(day_moments) and positivity_ratio(day_moments, positive) >= threshold

    return JournalingStreak(
        current=compute_streak(bright, today, max_days=lookback_days),
        longest=best_streak(k for k in by_date if bright(k)),
    )


# =============================================================================
# TYPE BREAKDOWN
# =============================================================================

@dataclass
class TypeBreakdown:
    type: MomentType
    count: int
    mood_counts: Dict[str, int]
    tag_count: int
    top_mood: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "label": self.type.label,
            "count": self.count,
            "mood_counts": dict(self.mood_counts),
            "tag_count": self.tag_count,
            "top_mood": self.top_mood,
        }


def type_breakdown(moments: Sequence[Moment]) -> List[TypeBreakdown]:
    """Per capture type: count, mood tally and top mood. Types without moments are omitted."""
    result = []
    for moment_type in MomentType:
        typed = [m for m in moments if m.type is moment_type]
        if not typed:
            continue
        counts = count_moods(typed)
        ranked = sort_moods(counts)
        result.append(TypeBreakdown(
            type=moment_type,
            count=len(typed),
            mood_counts=counts,
            tag_count=sum(counts.values()),
            top_mood=ranked[0][0] if ranked else None,
        ))
    return result


def moment_type_counts(moments: Iterable[Moment]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for m in moments:
        counts[m.type.value] = counts.get(m.type.value, 0) + 1
    return counts


def favorite_type(moments: Iterable[Moment]) -> Optional[MomentType]:
    """Most captured type; ties go to the type seen first."""
    ranked = sort_moods(moment_type_counts(moments))
    return MomentType(ranked[0][0]) if ranked else None


# =============================================================================
# GRIDS
# =============================================================================

EMPTY_CELL_COLOR = "#f0f0ee"

# Intensity tiers 1..4 per family
GRID_PALETTES = {
    AnchorType.GROW.value: ("#bbf7d0", "#6ee7b7", "#34d399", "#059669"),
    AnchorType.LETGO.value: ("#fde68a", "#fbbf24", "#f59e0b", "#d97706"),
}


def intensity_tier(total: int) -> int:
    """0 / 1 / 2-3 / 4-5 / 6+ mapped to tiers 0..4."""
    if total <= 0:
        return 0
    if total == 1:
        return 1
    if total <= 3:
        return 2
    if total <= 5:
        return 3
    return 4


def month_family(grow: int, letgo: int) -> str:
    if grow + letgo == 0:
        return "none"
    if grow > letgo:
        return AnchorType.GROW.value
    if letgo > grow:
        return AnchorType.LETGO.value
    return "mixed"


def month_color(grow: int, letgo: int) -> str:
    total = grow + letgo
    family = month_family(grow, letgo)
    if family == "none":
        return EMPTY_CELL_COLOR
    if family == "mixed":
        # A tie always has an even total
        if total <= 2:
            return "#99f6e4"
        if total <= 4:
            return "#5eead4"
        return "#2dd4bf"
    return GRID_PALETTES[family][intensity_tier(total) - 1]


def activity_color(total: int) -> str:
    tier = intensity_tier(total)
    return GRID_PALETTES[AnchorType.GROW.value][tier - 1] if tier else EMPTY_CELL_COLOR


@dataclass
class MonthCell:
    date: str
    grow: int
    letgo: int
    family: str
    intensity: int
    color: str
    is_today: bool = False

    @property
    def total(self) -> int:
        return self.grow + self.letgo

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "grow": self.grow,
            "letgo": self.letgo,
            "total": self.total,
            "family": self.family,
            "intensity": self.intensity,
            "color": self.color,
            "is_today": self.is_today,
        }


def month_grid(days: Sequence[str], breakdown: Dict[str, Dict[str, int]], today: DateLike) -> List[MonthCell]:
    """Seed grid cells classified by whether grow or letgo logs dominate each day."""
    today_key = local_date_key(today)
    cells = []
    for day in days:
        counts = breakdown.get(day, {})
        grow = counts.get(AnchorType.GROW.value, 0)
        letgo = counts.get(AnchorType.LETGO.value, 0)
        cells.append(MonthCell(
            date=day,
            grow=grow,
            letgo=letgo,
            family=month_family(grow, letgo),
            intensity=intensity_tier(grow + letgo),
            color=month_color(grow, letgo),
            is_today=day == today_key,
        ))
    return cells


@dataclass
class DayActivity:
    date: str
    rituals: int
    seeds: int
    moments: int
    is_today: bool = False

    @property
    def total(self) -> int:
        return self.rituals + self.seeds + self.moments

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "rituals": self.rituals,
            "seeds": self.seeds,
            "moments": self.moments,
            "total": self.total,
            "intensity": intensity_tier(self.total),
            "color": activity_color(self.total),
            "is_today": self.is_today,
        }


def day_activity(
    days: Sequence[str],
    completions_by_date: Dict[str, List[RitualCompletion]],
    anchor_logs_by_date: Dict[str, Set[str]],
    moments_by_date: Dict[str, List[Moment]],
    today: DateLike,
) -> List[DayActivity]:
    """Completed rituals, distinct seeds and moments for each day."""
    today_key = local_date_key(today)
    return [
        DayActivity(
            date=day,
            rituals=len(completions_by_date.get(day, ())),
            seeds=len(anchor_logs_by_date.get(day, ())),
            moments=len(moments_by_date.get(day, ())),
            is_today=day == today_key,
        )
        for day in days
    ]


@dataclass
class WeekActivity:
    ritual_days: int = 0
    seed_days: int = 0
    moment_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ritual_days": self.ritual_days,
            "seed_days": self.seed_days,
            "moment_count": self.moment_count,
        }


def week_activity(
    days: Sequence[str],
    completions_by_date: Dict[str, List[RitualCompletion]],
    anchor_logs_by_date: Dict[str, Set[str]],
    moments_by_date: Dict[str, List[Moment]],
) -> WeekActivity:
    week = WeekActivity()
    for day in days:
        if completions_by_date.get(day):
            week.ritual_days += 1
        if anchor_logs_by_date.get(day):
            week.seed_days += 1
        week.moment_count += len(moments_by_date.get(day, ()))
    return week


# =============================================================================
# RITUALS
# =============================================================================

def ritual_mood_counts(completions: Iterable[RitualCompletion]) -> Dict[str, int]:
    """Check-in moods of completed rows; rows without a mood are left out."""
    counts: Dict[str, int] = {}
    for c in completions:
        if c.completed and c.mood:
            counts[c.mood] = counts.get(c.mood, 0) + 1
    return counts


def dominant_ritual_mood(counts: Dict[str, int]) -> Optional[str]:
    best = None
    best_count = 0
    for mood, count in counts.items():
        if count > best_count:
            best, best_count = mood, count
    return best


def active_days(days: Iterable[str], completions_by_date: Dict[str, List[RitualCompletion]]) -> int:
    return sum(1 for d in days if completions_by_date.get(d))


def month_trend(days: Sequence[str], completions_by_date: Dict[str, List[RitualCompletion]]) -> str:
    """
    Compare active days in the first half of the window against the second.

    Returns "growing", "slowing" or "steady" (a lead of 2 days or less).
    """
    half = len(days) // 2
    first = active_days(days[:half], completions_by_date)
    second = active_days(days[half:], completions_by_date)
    if second > first + 2:
        return "growing"
    if first > second + 2:
        return "slowing"
    return "steady"


def active_ritual_count(day: str, member_rituals: Sequence[MemberRitual]) -> int:
    """
    Rituals a member was subscribed to at noon on a day.

    Falls back to the number of currently active rituals, then to 1,
    so the result is always a usable denominator.
    """
    noon = start_of_day(parse_date_key(day)) + timedelta(hours=12)
    count = 0
    for mr in member_rituals:
        if mr.added_at and mr.added_at > noon:
            continue
        if mr.removed_at and mr.removed_at < noon and not mr.is_active:
            continue
        count += 1
    return count or sum(1 for mr in member_rituals if mr.is_active) or 1


def day_completion_ratio(
    day: str,
    completions_by_date: Dict[str, List[RitualCompletion]],
    member_rituals: Sequence[MemberRitual],
) -> float:
    return len(completions_by_date.get(day, ())) / active_ritual_count(day, member_rituals)


def ratio_color(ratio: float) -> str:
    if ratio <= 0:
        return "#f5f5f4"
    if ratio <= 0.33:
        return "#bbf7d0"
    if ratio <= 0.66:
        return "#6ee7b7"
    if ratio < 1:
        return "#34d399"
    return "#059669"


def strongest_ritual(
    member_rituals: Sequence[MemberRitual],
    stats: Dict[str, RitualStats],
) -> Optional[MemberRitual]:
    """Ritual with the most completed days in the window; None when nothing was completed."""
    best = None
    best_days = 0
    for mr in member_rituals:
        s = stats.get(mr.ritual_id)
        if s and s.days_completed > best_days:
            best, best_days = mr, s.days_completed
    return best


# =============================================================================
# SEEDS
# =============================================================================

def most_consistent(anchors: Sequence[Anchor], stats: Dict[str, EntityStats]) -> Optional[Anchor]:
    """Seed with the highest last30; first wins ties, None when all are at zero."""
    best = None
    best_score = 0
    for anchor in anchors:
        s = stats.get(anchor.id)
        if s and s.last30 > best_score:
            best, best_score = anchor, s.last30
    return best


def seeds_for_day(
    anchors: Sequence[Anchor],
    anchor_counts: Dict[str, Dict[str, int]],
    day: str,
) -> List[Tuple[Anchor, int]]:
    result = []
    for anchor in anchors:
        count = anchor_counts.get(anchor.id, {}).get(day, 0)
        if count > 0:
            result.append((anchor, count))
    return result


def growth_summary(anchors: Sequence[Anchor], stats: Dict[str, EntityStats]) -> Dict[str, int]:
    """Header numbers for the seeds screen."""
    return {
        "total_active": len(anchors),
        "best_current_streak": max([stats[a.id].current_streak for a in anchors if a.id in stats] or [0]),
        "total_last30": sum(stats[a.id].last30 for a in anchors if a.id in stats),
    }


# =============================================================================
# MOOD INSIGHT
# =============================================================================

@dataclass
class MoodInsight:
    """Detail card for one selected mood."""
    mood: str
    color: str
    hint: str
    count: int
    pct: int
    peak_time: str
    trend: str
    this_week: int
    last_week: int
    snippet: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "color": self.color,
            "hint": self.hint,
            "count": self.count,
            "pct": self.pct,
            "peak_time": self.peak_time,
            "trend": self.trend,
            "this_week": self.this_week,
            "last_week": self.last_week,
            "snippet": self.snippet,
        }


def mood_insight(mood: str, moments: Sequence[Moment], now: datetime) -> MoodInsight:
    """
    How often a mood appears, when in the day, and whether it is rising.

    The trend compares the trailing 7 days against the 7 before them.
    """
    counts = count_moods(moments)
    total_tags = sum(counts.values())
    count = counts.get(mood, 0)
    info = mood_info(mood)

    tagged = [m for m in moments if m.has_mood(mood)]

    hour_counts = [0] * len(TIME_BUCKETS)
    for m in tagged:
        hour_counts[bucket_index(m.created_at.hour)] += 1
    peak = hour_counts.index(max(hour_counts))

    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    this_week = sum(1 for m in tagged if m.created_at >= week_ago)
    last_week = sum(1 for m in tagged if two_weeks_ago <= m.created_at < week_ago)
    if this_week > last_week:
        trend = "rising"
    elif this_week < last_week:
        trend = "easing"
    else:
        trend = "steady"

    latest = max(tagged, key=lambda m: m.created_at) if tagged else None

    return MoodInsight(
        mood=mood,
        color=info.color,
        hint=info.hint,
        count=count,
        pct=round_half_up(count / total_tags * 100) if total_tags else 0,
        peak_time=TIME_BUCKETS[peak][0].lower(),
        trend=trend,
        this_week=this_week,
        last_week=last_week,
        snippet=latest.snippet if latest else None,
    )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Mood counts
    "count_moods",
    "sort_moods",
    "dominant_mood",
    "positive_count",
    "positivity_ratio",
    "top_moods",
    "mood_palette",
    "summary_gradient",
    "DEFAULT_GRADIENT",
    # Weekly rollup
    "MoodWeek",
    "week_label",
    "weekly_mood_rollup",
    # Time of day
    "TIME_BUCKETS",
    "TimeBucket",
    "bucket_index",
    "time_of_day_buckets",
    "peak_bucket_index",
    # Days
    "TopDay",
    "day_snippet",
    "top_days",
    "JournalingStreak",
    "journaling_streak",
    # Types
    "TypeBreakdown",
    "type_breakdown",
    "moment_type_counts",
    "favorite_type",
    # Grids
    "EMPTY_CELL_COLOR",
    "GRID_PALETTES",
    "intensity_tier",
    "month_family",
    "month_color",
    "activity_color",
    "MonthCell",
    "month_grid",
    "DayActivity",
    "day_activity",
    "WeekActivity",
    "week_activity",
    # Rituals
    "ritual_mood_counts",
    "dominant_ritual_mood",
    "active_days",
    "month_trend",
    "active_ritual_count",
    "day_completion_ratio",
    "ratio_color",
    "strongest_ritual",
    # Seeds
    "most_consistent",
    "seeds_for_day",
    "growth_summary",
    # Mood insight
    "MoodInsight",
    "mood_insight",
]
