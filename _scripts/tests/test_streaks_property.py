"""
Property-based tests for streaks using Hypothesis.

These tests generate random logging histories and check the
streak counters stay consistent with each other.

Run with: pytest tests/test_streaks_property.py -v
"""

import sys
from datetime import date, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

# Skip all tests if hypothesis not installed
hypothesis = pytest.importorskip("hypothesis")

from hypothesis import given, settings, strategies as st

from bloom_engine.dates import add_days, local_date_key
from bloom_engine.streaks import compute_entity_stats, compute_streak

TODAY = date(2024, 3, 4)  # a Monday


class TestStreakProperties:
    """Invariants that hold for any logging history."""

    @given(offsets=st.sets(st.integers(min_value=0, max_value=90), max_size=60))
    @settings(max_examples=100, deadline=2000)
    def test_best_at_least_current(self, offsets):
        counts = {add_days(TODAY, -o): 1 for o in offsets}
        stats = compute_entity_stats(counts, TODAY)
        assert stats.best_streak >= stats.current_streak

    @given(n=st.integers(min_value=1, max_value=30))
    @settings(max_examples=30, deadline=2000)
    def test_every_day_logged_fills_window(self, n):
        counts = {add_days(TODAY, -o): 1 for o in range(n)}
        stats = compute_entity_stats(counts, TODAY)
        assert stats.last30 == n
        assert stats.current_streak >= n

    @given(
        offsets=st.sets(st.integers(min_value=0, max_value=45), min_size=1, max_size=30),
        repeat=st.integers(min_value=2, max_value=5),
    )
    @settings(max_examples=50, deadline=2000)
    def test_duplicate_logs_never_stretch_streaks(self, offsets, repeat):
        once = compute_entity_stats({add_days(TODAY, -o): 1 for o in offsets}, TODAY)
        many = compute_entity_stats({add_days(TODAY, -o): repeat for o in offsets}, TODAY)
        assert many.total == once.total * repeat
        assert many.current_streak == once.current_streak
        assert many.best_streak == once.best_streak
        assert many.last30 == once.last30

    @given(day=st.dates(min_value=date(1970, 1, 1), max_value=date(2100, 12, 31)))
    @settings(max_examples=100, deadline=2000)
    def test_streak_of_one_day_history(self, day):
        key = local_date_key(day)
        tomorrow = day + timedelta(days=1)
        assert compute_streak({key}.__contains__, day) == 1
        assert compute_streak({key}.__contains__, tomorrow) == 1
