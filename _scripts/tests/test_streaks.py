"""
Bloom Streak Tests - Day-Walking Streaks & Entity Stats

Tests the shared streak primitive and the stat blocks built on it.

Run with: pytest tests/test_streaks.py -v
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from bloom_engine.dates import add_days
from bloom_engine.streaks import (
    EntityStats,
    best_streak,
    compute_entity_stats,
    compute_ritual_stats,
    compute_streak,
    round_half_up,
)

TODAY = date(2024, 3, 4)  # a Monday


def keys_back(*offsets):
    """Date keys `offset` days before TODAY."""
    return [add_days(TODAY, -o) for o in offsets]


# =============================================================================
# SHARED PRIMITIVE
# =============================================================================

def test_streak_counts_today_when_logged():
    logged = set(keys_back(0, 1, 2))
    assert compute_streak(logged.__contains__, TODAY) == 3


def test_streak_not_broken_by_unlogged_today():
    logged = set(keys_back(1, 2))
    assert compute_streak(logged.__contains__, TODAY) == 2


def test_streak_zero_when_yesterday_missing():
    logged = set(keys_back(2, 3))
    assert compute_streak(logged.__contains__, TODAY) == 0


def test_streak_respects_max_days():
    assert compute_streak(lambda key: True, TODAY, max_days=365) == 365


def test_best_streak_ignores_order_and_duplicates():
    keys = ["2024-03-04", "2024-03-02", "2024-03-01", "2024-03-02"]
    assert best_streak(keys) == 2


def test_best_streak_across_month_boundary():
    assert best_streak(["2024-02-28", "2024-02-29", "2024-03-01"]) == 3


def test_best_streak_empty():
    assert best_streak([]) == 0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


# =============================================================================
# ENTITY STATS
# =============================================================================

def test_anchor_scenario_gap_day():
    """Logged 03-01, 03-02, skipped 03-03, logged 03-04."""
    counts = {"2024-03-01": 1, "2024-03-02": 1, "2024-03-04": 1}
    stats = compute_entity_stats(counts, TODAY)

    assert stats.best_streak == 2
    assert stats.current_streak == 1
    assert stats.total == 3
    assert stats.last30 == 3
    assert stats.week_total == 1


def test_zero_history_is_all_zero():
    assert compute_entity_stats({}, TODAY) == EntityStats()
    assert compute_entity_stats(None, TODAY) == EntityStats(0, 0, 0, 0, 0)


def test_same_day_logs_add_to_total_not_streak():
    single = compute_entity_stats({"2024-03-03": 1, "2024-03-04": 1}, TODAY)
    double = compute_entity_stats({"2024-03-03": 2, "2024-03-04": 2}, TODAY)

    assert double.total == single.total + 2
    assert double.current_streak == single.current_streak == 2
    assert double.week_total == 2


def test_last30_excludes_days_outside_window():
    counts = {add_days(TODAY, -30): 1, add_days(TODAY, -29): 1}
    stats = compute_entity_stats(counts, TODAY)
    assert stats.last30 == 1


# =============================================================================
# RITUAL STATS
# =============================================================================

def test_ritual_stats():
    dates = keys_back(0, 1, 2, 5, 6)
    stats = compute_ritual_stats(dates, [10, 20, None, 15], TODAY)

    assert stats.current_streak == 3
    assert stats.best_streak == 3
    assert stats.days_completed == 5
    assert stats.completion_rate == 17  # 5/30 = 16.67%
    assert stats.avg_duration == 15


def test_ritual_stats_without_durations():
    stats = compute_ritual_stats([], [None], TODAY)
    assert stats.avg_duration is None
    assert stats.completion_rate == 0
    assert stats.current_streak == 0


def test_ritual_best_streak_covers_all_history():
    old_run = [add_days(TODAY, -100 - i) for i in range(10)]
    stats = compute_ritual_stats(old_run, [], TODAY)
    assert stats.best_streak == 10
    assert stats.days_completed == 0
