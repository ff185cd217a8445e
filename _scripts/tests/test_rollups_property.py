"""
Property-based tests for rollups using Hypothesis.

These tests generate random mood histories and check the weekly
buckets and day rankings never lose or invent moments.

Run with: pytest tests/test_rollups_property.py -v
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

# Skip all tests if hypothesis not installed
hypothesis = pytest.importorskip("hypothesis")

from hypothesis import given, settings, strategies as st

from bloom_engine.core import DEFAULT_POSITIVE_MOODS, Moment, MomentType
from bloom_engine.dates import monday_of
from bloom_engine.ingestion import moments_by_date
from bloom_engine import rollups

NOW = datetime(2024, 3, 4, 15, 0)  # Monday afternoon


def make_moment(mid, when, moods=()):
    return Moment(id=mid, created_at=when, type=MomentType.WRITE, moods=tuple(moods))


class TestRollupProperties:

    @given(
        entries=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=60 * 24),  # hours before NOW
                st.lists(st.sampled_from(["calm", "tired", "joyful", "odd"]), max_size=3),
            ),
            max_size=40,
        )
    )
    @settings(max_examples=60, deadline=3000)
    def test_weekly_rollup_counts_each_tagged_moment_once(self, entries):
        moments = [
            make_moment(str(i), NOW - timedelta(hours=h), moods)
            for i, (h, moods) in enumerate(entries)
        ]
        weeks = rollups.weekly_mood_rollup(moments, NOW, weeks=4)

        window_start = monday_of(NOW) - timedelta(days=21)
        expected = sum(1 for m in moments if m.moods and m.created_at >= window_start)
        assert sum(w.total for w in weeks) == expected

    @given(
        entries=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=20),
                st.lists(st.sampled_from(["calm", "tired", "joyful", "overwhelmed"]), max_size=3),
            ),
            max_size=30,
        )
    )
    @settings(max_examples=60, deadline=3000)
    def test_top_days_never_include_zero_scores(self, entries):
        moments = [
            make_moment(str(i), datetime(2024, 1, 1, 12) + timedelta(days=d), moods)
            for i, (d, moods) in enumerate(entries)
        ]
        days = rollups.top_days(moments_by_date(moments), DEFAULT_POSITIVE_MOODS, limit=50)
        assert all(d.score > 0 for d in days)
        scores = [(d.score, d.count) for d in days]
        assert scores == sorted(scores, reverse=True)
