"""
Bloom Engine - Screen Analytics v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

One facade per analytics screen. Each facade takes already-fetched
records plus a single "now", and exposes every derived value as a
memoized property computed on first access. Nothing is recomputed
for the same instance and inputs are never mutated.

- MomentAnalytics: emotion analytics (moods, rhythm, brightest days)
- ProgressAnalytics: weekly and monthly progress across all activity
- SeedAnalytics: seed (anchor) streaks and the month grid
- RitualInsights: ritual consistency and reflections
"""

import logging
from datetime import date, datetime, tzinfo
from functools import cached_property
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .core.config import BloomConfig
from .core.types import Anchor, AnchorType, MemberRitual, Moment, MomentType
from .dates import last_n_days, local_date_key, resolve_now, resolve_timezone, week_days
from .ingestion import DataBundle, EventIndex, moments_by_date
from .logging_utils import Timer
from . import narrative
from . import rollups
from .streaks import EntityStats, RitualStats, compute_entity_stats, compute_ritual_stats

logger = logging.getLogger(__name__)


class _ScreenAnalytics:
    """Shared clock and config handling."""

    def __init__(
        self,
        now=None,
        config: Optional[BloomConfig] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.config = config or BloomConfig()
        self.tz = tz if tz is not None else resolve_timezone(self.config.timezone)
        self.now: datetime = resolve_now(now, self.tz)

    @cached_property
    def today(self) -> date:
        return self.now.date()

    @cached_property
    def today_key(self) -> str:
        return local_date_key(self.now)

    @cached_property
    def week_days(self) -> List[str]:
        return week_days(self.now)

    @cached_property
    def month_days(self) -> List[str]:
        return last_n_days(self.config.window_days, self.now)


# =============================================================================
# EMOTION ANALYTICS
# =============================================================================

class MomentAnalytics(_ScreenAnalytics):
    """Mood distribution, rhythm, brightest days and narrative for moments."""

    def __init__(self, moments: Sequence[Moment], now=None, config: BloomConfig = None, tz: tzinfo = None):
        super().__init__(now, config, tz)
        self.moments: Tuple[Moment, ...] = tuple(moments)

    @classmethod
    def from_bundle(cls, bundle: DataBundle, **kwargs) -> "MomentAnalytics":
        return cls(bundle.moments, **kwargs)

    @cached_property
    def mood_counts(self) -> Dict[str, int]:
        return rollups.count_moods(self.moments)

    @cached_property
    def sorted_moods(self) -> List[Tuple[str, int]]:
        return rollups.sort_moods(self.mood_counts)

    @cached_property
    def unique_mood_count(self) -> int:
        return len(self.mood_counts)

    @cached_property
    def top_mood(self) -> Optional[str]:
        return self.sorted_moods[0][0] if self.sorted_moods else None

    @cached_property
    def by_date(self) -> Dict[str, List[Moment]]:
        return moments_by_date(self.moments)

    @cached_property
    def active_days(self) -> int:
        return len(self.by_date)

    @cached_property
    def weekly_mood_data(self) -> List[rollups.MoodWeek]:
        return rollups.weekly_mood_rollup(self.moments, self.now, self.config.rollup_weeks)

    @cached_property
    def streak(self) -> rollups.JournalingStreak:
        return rollups.journaling_streak(
            self.by_date,
            self.today,
            self.config.positive_moods,
            self.config.positivity_threshold,
            self.config.journaling_lookback_days,
        )

    @cached_property
    def top_days(self) -> List[rollups.TopDay]:
        return rollups.top_days(self.by_date, self.config.positive_moods, self.config.top_days_limit)

    @cached_property
    def time_buckets(self) -> List[rollups.TimeBucket]:
        return rollups.time_of_day_buckets(self.moments)

    @cached_property
    def peak_bucket_index(self) -> int:
        return rollups.peak_bucket_index(self.time_buckets)

    @cached_property
    def peak_time(self) -> Optional[str]:
        if not self.moments:
            return None
        return self.time_buckets[self.peak_bucket_index].label.lower()

    @cached_property
    def favorite_type(self) -> Optional[MomentType]:
        return rollups.favorite_type(self.moments)

    @cached_property
    def type_breakdown(self) -> List[rollups.TypeBreakdown]:
        return rollups.type_breakdown(self.moments)

    @cached_property
    def palette(self) -> List[Dict[str, Any]]:
        return rollups.mood_palette(self.sorted_moods, self.config.positive_moods)

    @cached_property
    def summary(self) -> str:
        return narrative.summary_paragraph(
            active_days=self.active_days,
            total_moments=len(self.moments),
            top_mood=self.top_mood,
            favorite_type=self.favorite_type,
            peak_time=self.peak_time,
            unique_moods=self.unique_mood_count,
        )

    @cached_property
    def summary_gradient(self) -> Tuple[str, str]:
        return rollups.summary_gradient(self.sorted_moods)

    @cached_property
    def share_quote_candidates(self) -> List[str]:
        return narrative.share_quote_candidates(
            unique_moods=self.unique_mood_count,
            top_mood=self.top_mood,
            active_days=self.active_days,
            total_moments=len(self.moments),
            current_streak=self.streak.current,
            positive_moods=self.config.positive_moods,
        )

    @cached_property
    def share_quote(self) -> str:
        return narrative.select_quote(
            self.share_quote_candidates,
            len(self.moments),
            self.now,
            self.config.quote_selection,
        )

    def mood_insight(self, mood: str) -> Dict[str, Any]:
        insight = rollups.mood_insight(mood, self.moments, self.now)
        data = insight.to_dict()
        data["narrative"] = narrative.mood_insight_narrative(insight)
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "now": self.now.isoformat(),
            "total_moments": len(self.moments),
            "active_days": self.active_days,
            "mood_counts": dict(self.mood_counts),
            "sorted_moods": [[mood, count] for mood, count in self.sorted_moods],
            "unique_mood_count": self.unique_mood_count,
            "palette": self.palette,
            "weekly_mood_data": [w.to_dict() for w in self.weekly_mood_data],
            "streak": self.streak.to_dict(),
            "top_days": [d.to_dict() for d in self.top_days],
            "time_buckets": [b.to_dict() for b in self.time_buckets],
            "peak_bucket_index": self.peak_bucket_index,
            "type_breakdown": [t.to_dict() for t in self.type_breakdown],
            "summary": self.summary,
            "summary_gradient": list(self.summary_gradient),
            "share_quote": self.share_quote,
        }


# =============================================================================
# PROGRESS
# =============================================================================

class ProgressAnalytics(_ScreenAnalytics):
    """Cross-activity progress: week strip, 30-day grid, moods and narratives."""

    def __init__(self, bundle: DataBundle, now=None, config: BloomConfig = None, tz: tzinfo = None):
        super().__init__(now, config, tz)
        self.bundle = bundle

    @cached_property
    def index(self) -> EventIndex:
        return EventIndex.build(self.bundle)

    @cached_property
    def window_moments(self) -> List[Moment]:
        """Moments inside the rolling month window."""
        days = set(self.month_days)
        return [m for m in self.bundle.moments if m.date_key in days]

    @cached_property
    def ritual_stats(self) -> Dict[str, EntityStats]:
        return {
            mr.ritual_id: compute_entity_stats(
                self.index.ritual_date_counts.get(mr.ritual_id), self.today, self.config.window_days
            )
            for mr in self.bundle.active_member_rituals
        }

    @cached_property
    def anchor_stats(self) -> Dict[str, EntityStats]:
        return {
            a.id: compute_entity_stats(
                self.index.anchor_date_counts.get(a.id), self.today, self.config.window_days
            )
            for a in self.bundle.anchors
        }

    @cached_property
    def week(self) -> rollups.WeekActivity:
        return rollups.week_activity(
            self.week_days,
            self.index.completions_by_date,
            self.index.anchor_logs_by_date,
            self.index.moments_by_date,
        )

    @cached_property
    def ritual_mood_counts(self) -> Dict[str, int]:
        return rollups.ritual_mood_counts(self.bundle.completions)

    @cached_property
    def dominant_ritual_mood(self) -> Optional[str]:
        return rollups.dominant_ritual_mood(self.ritual_mood_counts)

    @cached_property
    def moment_mood_counts(self) -> Dict[str, int]:
        return rollups.count_moods(self.window_moments)

    @cached_property
    def top_moment_moods(self) -> List[Tuple[str, int]]:
        return rollups.top_moods(self.moment_mood_counts, self.config.top_moods_limit)

    @cached_property
    def moment_type_counts(self) -> Dict[str, int]:
        return rollups.moment_type_counts(self.window_moments)

    @cached_property
    def day_activity(self) -> List[rollups.DayActivity]:
        return rollups.day_activity(
            self.month_days,
            self.index.completions_by_date,
            self.index.anchor_logs_by_date,
            self.index.moments_by_date,
            self.today,
        )

    @cached_property
    def week_narrative(self) -> str:
        return narrative.week_narrative(self.week)

    @cached_property
    def mood_narrative(self) -> str:
        top = self.top_moment_moods[0][0] if self.top_moment_moods else None
        return narrative.mood_narrative(self.dominant_ritual_mood, top)

    @cached_property
    def moments_narrative(self) -> str:
        return narrative.moments_narrative(len(self.window_moments), self.moment_type_counts)

    def to_dict(self) -> Dict[str, Any]:
        rituals = self.bundle.active_member_rituals
        return {
            "now": self.now.isoformat(),
            "today": self.today_key,
            "week_days": self.week_days,
            "month_days": self.month_days,
            "week": self.week.to_dict(),
            "rituals": [
                {"ritual": mr.to_dict(), "name": mr.name, "stats": self.ritual_stats[mr.ritual_id].to_dict()}
                for mr in rituals
            ],
            "anchors": [
                {"anchor": a.to_dict(), "stats": self.anchor_stats[a.id].to_dict()}
                for a in self.bundle.anchors
            ],
            "ritual_mood_counts": dict(self.ritual_mood_counts),
            "total_ritual_moods": sum(self.ritual_mood_counts.values()),
            "dominant_ritual_mood": self.dominant_ritual_mood,
            "moment_mood_counts": dict(self.moment_mood_counts),
            "top_moment_moods": [[mood, count] for mood, count in self.top_moment_moods],
            "moment_type_counts": dict(self.moment_type_counts),
            "day_activity": [d.to_dict() for d in self.day_activity],
            "narratives": {
                "week": self.week_narrative,
                "mood": self.mood_narrative,
                "moments": self.moments_narrative,
            },
        }


# =============================================================================
# SEEDS
# =============================================================================

class SeedAnalytics(_ScreenAnalytics):
    """Per-seed stats, the week view and the grow/letgo month grid."""

    def __init__(self, bundle: DataBundle, now=None, config: BloomConfig = None, tz: tzinfo = None):
        super().__init__(now, config, tz)
        self.bundle = bundle

    @cached_property
    def anchors(self) -> List[Anchor]:
        return [a for a in self.bundle.anchors if a.is_active]

    @cached_property
    def index(self) -> EventIndex:
        return EventIndex.build(self.bundle)

    @cached_property
    def history(self) -> Dict[str, Dict[str, int]]:
        """anchor_id -> dateKey -> log count"""
        return self.index.anchor_date_counts

    @cached_property
    def day_breakdown(self) -> Dict[str, Dict[str, int]]:
        return self.index.day_breakdown

    @cached_property
    def anchor_stats(self) -> Dict[str, EntityStats]:
        return {
            a.id: compute_entity_stats(self.history.get(a.id), self.today, self.config.window_days)
            for a in self.anchors
        }

    @cached_property
    def most_consistent(self) -> Optional[Anchor]:
        return rollups.most_consistent(self.anchors, self.anchor_stats)

    @cached_property
    def grow_anchors(self) -> List[Anchor]:
        return [a for a in self.anchors if a.type is AnchorType.GROW]

    @cached_property
    def letgo_anchors(self) -> List[Anchor]:
        return [a for a in self.anchors if a.type is AnchorType.LETGO]

    @cached_property
    def month_grid(self) -> List[rollups.MonthCell]:
        return rollups.month_grid(self.month_days, self.day_breakdown, self.today)

    @cached_property
    def summary(self) -> Dict[str, int]:
        return rollups.growth_summary(self.anchors, self.anchor_stats)

    def seeds_for_day(self, day: str) -> List[Dict[str, Any]]:
        return [
            {"anchor": anchor.to_dict(), "count": count}
            for anchor, count in rollups.seeds_for_day(self.anchors, self.history, day)
        ]

    def _anchor_entry(self, anchor: Anchor) -> Dict[str, Any]:
        counts = self.history.get(anchor.id, {})
        return {
            "anchor": anchor.to_dict(),
            "stats": self.anchor_stats[anchor.id].to_dict(),
            "week": [counts.get(d, 0) for d in self.week_days],
        }

    def to_dict(self, day: Optional[str] = None) -> Dict[str, Any]:
        return {
            "now": self.now.isoformat(),
            "today": self.today_key,
            "week_days": self.week_days,
            "summary": self.summary,
            "most_consistent": self.most_consistent.to_dict() if self.most_consistent else None,
            "grow": [self._anchor_entry(a) for a in self.grow_anchors],
            "letgo": [self._anchor_entry(a) for a in self.letgo_anchors],
            "month_grid": [c.to_dict() for c in self.month_grid],
            "day": {"date": day or self.today_key, "seeds": self.seeds_for_day(day or self.today_key)},
        }


# =============================================================================
# RITUAL INSIGHTS
# =============================================================================

class RitualInsights(_ScreenAnalytics):
    """Ritual consistency, per-ritual stats and reflective narratives."""

    def __init__(self, bundle: DataBundle, now=None, config: BloomConfig = None, tz: tzinfo = None):
        super().__init__(now, config, tz)
        self.bundle = bundle

    @cached_property
    def rituals(self) -> List[MemberRitual]:
        return self.bundle.active_member_rituals

    @cached_property
    def index(self) -> EventIndex:
        return EventIndex.build(self.bundle)

    @cached_property
    def rituals_by_category(self) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {}
        for mr in self.rituals:
            groups.setdefault(mr.category.value, []).append(mr.ritual_id)
        return groups

    @cached_property
    def ritual_stats(self) -> Dict[str, RitualStats]:
        stats = {}
        for mr in self.rituals:
            durations = [
                c.duration_minutes for c in self.bundle.completions
                if c.ritual_id == mr.ritual_id and c.completed
            ]
            stats[mr.ritual_id] = compute_ritual_stats(
                self.index.ritual_dates.get(mr.ritual_id, set()),
                durations,
                self.today,
                self.config.window_days,
            )
        return stats

    @cached_property
    def mood_counts(self) -> Dict[str, int]:
        return rollups.ritual_mood_counts(self.bundle.completions)

    @cached_property
    def dominant_mood(self) -> Optional[str]:
        return rollups.dominant_ritual_mood(self.mood_counts)

    @cached_property
    def day_ratio(self) -> Dict[str, float]:
        return {
            day: rollups.day_completion_ratio(day, self.index.completions_by_date, self.bundle.member_rituals)
            for day in self.month_days
        }

    @cached_property
    def week_active_days(self) -> int:
        return rollups.active_days(self.week_days, self.index.completions_by_date)

    @cached_property
    def month_active_days(self) -> int:
        return rollups.active_days(self.month_days, self.index.completions_by_date)

    @cached_property
    def month_trend(self) -> str:
        return rollups.month_trend(self.month_days, self.index.completions_by_date)

    @cached_property
    def strongest_ritual(self) -> Optional[MemberRitual]:
        return rollups.strongest_ritual(self.rituals, self.ritual_stats)

    @cached_property
    def days_elapsed(self) -> int:
        """Days of the current week so far, today included."""
        return self.today.weekday() + 1

    @cached_property
    def week_narrative(self) -> narrative.Narrative:
        return narrative.ritual_week_narrative(len(self.rituals), self.week_active_days, self.days_elapsed)

    @cached_property
    def month_narrative(self) -> narrative.Narrative:
        return narrative.ritual_month_narrative(self.month_active_days, self.month_trend)

    @cached_property
    def mood_reflection(self) -> str:
        return narrative.ritual_mood_reflection(self.dominant_mood)

    @cached_property
    def strongest_narrative(self) -> Optional[str]:
        best = self.strongest_ritual
        if best is None:
            return None
        return narrative.strongest_ritual_narrative(best.name, self.ritual_stats.get(best.ritual_id))

    def completions_for_day(self, day: str) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.index.completions_by_date.get(day, [])]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "now": self.now.isoformat(),
            "today": self.today_key,
            "rituals": [
                {
                    "ritual": mr.to_dict(),
                    "name": mr.name,
                    "category": mr.category.value,
                    "stats": self.ritual_stats[mr.ritual_id].to_dict(),
                    "week": [d in self.index.ritual_dates.get(mr.ritual_id, ()) for d in self.week_days],
                }
                for mr in self.rituals
            ],
            "rituals_by_category": self.rituals_by_category,
            "mood_counts": dict(self.mood_counts),
            "dominant_mood": self.dominant_mood,
            "day_ratio": [
                {"date": day, "ratio": ratio, "color": rollups.ratio_color(ratio)}
                for day, ratio in self.day_ratio.items()
            ],
            "week_active_days": self.week_active_days,
            "month_active_days": self.month_active_days,
            "month_trend": self.month_trend,
            "strongest_ritual": self.strongest_ritual.ritual_id if self.strongest_ritual else None,
            "narratives": {
                "week": self.week_narrative.to_dict(),
                "month": self.month_narrative.to_dict(),
                "mood": self.mood_reflection,
                "strongest": self.strongest_narrative,
            },
        }


# =============================================================================
# FULL REPORT
# =============================================================================

def build_report(
    bundle: DataBundle,
    now=None,
    config: Optional[BloomConfig] = None,
    tz: Optional[tzinfo] = None,
) -> Dict[str, Any]:
    """
    Every screen's analytics for one bundle against a single "now".

    Returns:
        Dict with moments, progress, seeds, rituals and ingestion sections
    """
    config = config or BloomConfig()
    tz = tz if tz is not None else resolve_timezone(config.timezone)
    resolved_now = resolve_now(now, tz)

    with Timer(logger, "build_report"):
        report = {
            "now": resolved_now.isoformat(),
            "moments": MomentAnalytics.from_bundle(bundle, now=resolved_now, config=config, tz=tz).to_dict(),
            "progress": ProgressAnalytics(bundle, now=resolved_now, config=config, tz=tz).to_dict(),
            "seeds": SeedAnalytics(bundle, now=resolved_now, config=config, tz=tz).to_dict(),
            "rituals": RitualInsights(bundle, now=resolved_now, config=config, tz=tz).to_dict(),
            "ingestion": bundle.report.to_dict(),
        }
    return report


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "MomentAnalytics",
    "ProgressAnalytics",
    "SeedAnalytics",
    "RitualInsights",
    "build_report",
]
