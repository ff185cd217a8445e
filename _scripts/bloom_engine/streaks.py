"""
Bloom Engine - Streaks & Stats v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Day-walking streak logic shared by every kind of streak (seed logs,
ritual completions, positive journaling days) plus the per-entity
stat blocks built on top of it.

A streak is never broken by today: if today does not satisfy the
predicate yet, counting simply starts from yesterday.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, Optional

from .dates import DateLike, as_date, days_between, last_n_days, local_date_key, week_days


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


# =============================================================================
# SHARED PRIMITIVES
# =============================================================================

def compute_streak(
    predicate: Callable[[str], bool],
    today: DateLike,
    max_days: Optional[int] = None,
) -> int:
    """
    Count consecutive days satisfying predicate, walking back from today.

    Args:
        predicate: dateKey -> whether that day counts
        today: Reference day
        max_days: Optional cap on the number of days examined (today included)

    Returns:
        Length of the trailing run (today counted only if it satisfies predicate)
    """
    day = as_date(today)
    streak = 1 if predicate(local_date_key(day)) else 0
    examined = 1

    day -= timedelta(days=1)
    while max_days is None or examined < max_days:
        if not predicate(local_date_key(day)):
            break
        streak += 1
        examined += 1
        day -= timedelta(days=1)
    return streak


def best_streak(date_keys: Iterable[str]) -> int:
    """Longest run of calendar-consecutive dates. Input order and duplicates don't matter."""
    best = 0
    run = 0
    previous = None
    for key in sorted(set(date_keys)):
        if previous is not None and days_between(previous, key) == 1:
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = key
    return best


def count_days(predicate: Callable[[str], bool], days: Iterable[str]) -> int:
    return sum(1 for d in days if predicate(d))


# =============================================================================
# ENTITY STATS
# =============================================================================

@dataclass
class EntityStats:
    """Activity summary for one seed or ritual."""
    total: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last30: int = 0
    week_total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "last30": self.last30,
            "week_total": self.week_total,
        }


def compute_entity_stats(
    date_counts: Optional[Dict[str, int]],
    today: DateLike,
    window_days: int = 30,
) -> EntityStats:
    """Stats from a dateKey -> count map. Empty history yields all zeros."""
    if not date_counts:
        return EntityStats()

    def logged(key: str) -> bool:
        return date_counts.get(key, 0) > 0

    return EntityStats(
        total=sum(date_counts.values()),
        current_streak=compute_streak(logged, today),
        best_streak=best_streak(k for k, c in date_counts.items() if c > 0),
        last30=count_days(logged, last_n_days(window_days, today)),
        week_total=sum(date_counts.get(d, 0) for d in week_days(today)),
    )


@dataclass
class RitualStats:
    """Per-ritual numbers shown on the ritual insights screen."""
    current_streak: int = 0
    best_streak: int = 0
    days_completed: int = 0
    completion_rate: int = 0
    avg_duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "days_completed": self.days_completed,
            "completion_rate": self.completion_rate,
            "avg_duration": self.avg_duration,
        }


def compute_ritual_stats(
    dates: Iterable[str],
    durations: Iterable[Optional[float]],
    today: DateLike,
    window_days: int = 30,
) -> RitualStats:
    """
    Args:
        dates: Dates the ritual was completed
        durations: Durations of completed rows (None entries are ignored)
        today: Reference day
        window_days: Rolling window for days_completed and completion_rate
    """
    completed = set(dates)
    minutes = [d for d in durations if d is not None]
    days_completed = count_days(completed.__contains__, last_n_days(window_days, today))

    return RitualStats(
        current_streak=compute_streak(completed.__contains__, today),
        best_streak=best_streak(completed),
        days_completed=days_completed,
        completion_rate=round_half_up(days_completed / window_days * 100),
        avg_duration=round_half_up(sum(minutes) / len(minutes)) if minutes else None,
    )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "round_half_up",
    "compute_streak",
    "best_streak",
    "count_days",
    "EntityStats",
    "compute_entity_stats",
    "RitualStats",
    "compute_ritual_stats",
]
