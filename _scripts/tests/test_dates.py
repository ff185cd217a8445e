"""
Bloom Date Tests - Local Date Keys & Windows

Tests the local calendar helpers every other stage relies on.

Run with: pytest tests/test_dates.py -v
"""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import pytz

from bloom_engine.dates import (
    add_days,
    days_between,
    last_n_days,
    local_date_key,
    monday_of,
    parse_date_key,
    parse_timestamp,
    resolve_now,
    resolve_timezone,
    to_local,
    week_days,
)
from bloom_engine.errors import InvalidTimestampError, InvalidTimezoneError


# =============================================================================
# DATE KEYS
# =============================================================================

def test_date_key_is_zero_padded():
    assert local_date_key(date(2024, 3, 4)) == "2024-03-04"
    assert local_date_key(datetime(987, 1, 9, 23, 59)) == "0987-01-09"


def test_date_key_uses_local_fields_late_at_night():
    """23:30 local stays on the same calendar day."""
    assert local_date_key(datetime(2024, 3, 4, 23, 30)) == "2024-03-04"


def test_parse_date_key_round_trip():
    assert parse_date_key("2024-02-29") == date(2024, 2, 29)
    assert local_date_key(parse_date_key("2024-12-31")) == "2024-12-31"


@pytest.mark.parametrize("bad", ["2024-2-29", "2023-02-29", "20240101", "", None, "2024-13-01"])
def test_parse_date_key_rejects_malformed(bad):
    with pytest.raises(InvalidTimestampError):
        parse_date_key(bad)


def test_add_days_and_days_between():
    assert add_days("2024-02-28", 1) == "2024-02-29"
    assert add_days(date(2024, 3, 1), -1) == "2024-02-29"
    assert days_between("2024-03-30", "2024-04-01") == 2


def test_days_between_across_dst_change():
    """Calendar difference ignores the 23h/25h DST days."""
    assert days_between("2024-03-30", "2024-03-31") == 1
    assert days_between("2024-10-26", "2024-10-27") == 1


# =============================================================================
# TIMESTAMPS & TIMEZONES
# =============================================================================

def test_parse_timestamp_converts_utc_to_local():
    paris = resolve_timezone("Europe/Paris")
    local = parse_timestamp("2024-03-04T23:30:00Z", paris)
    assert local == datetime(2024, 3, 5, 0, 30)
    assert local.tzinfo is None
    assert local_date_key(local) == "2024-03-05"


def test_parse_timestamp_keeps_naive_input():
    assert parse_timestamp("2024-03-04T08:15:00") == datetime(2024, 3, 4, 8, 15)


def test_parse_timestamp_accepts_offsets():
    ny = resolve_timezone("America/New_York")
    assert parse_timestamp("2024-07-01T12:00:00+02:00", ny) == datetime(2024, 7, 1, 6, 0)


@pytest.mark.parametrize("raw, expected", [
    ("2024-01-15 10:30:00.12+00", datetime(2024, 1, 15, 10, 30, 0, 120000)),
    ("2024-01-15T10:30:00.12345+00:00", datetime(2024, 1, 15, 10, 30, 0, 123450)),
    ("2024-01-15T10:30:00.1234567Z", datetime(2024, 1, 15, 10, 30, 0, 123456)),
    ("2024-01-15T15:30:00+0530", datetime(2024, 1, 15, 10, 0)),
    ("2024-01-15T05:30:00-05", datetime(2024, 1, 15, 10, 30)),
])
def test_parse_timestamp_postgres_formats(raw, expected):
    utc = resolve_timezone("UTC")
    assert parse_timestamp(raw, utc) == expected


def test_parse_timestamp_date_only_is_not_an_offset():
    assert parse_timestamp("2024-01-15") == datetime(2024, 1, 15)


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(InvalidTimestampError):
        parse_timestamp("yesterday-ish")
    with pytest.raises(InvalidTimestampError):
        parse_timestamp(None)


def test_to_local_with_aware_datetime():
    tokyo = resolve_timezone("Asia/Tokyo")
    aware = pytz.utc.localize(datetime(2024, 1, 1, 16, 0))
    assert to_local(aware, tokyo) == datetime(2024, 1, 2, 1, 0)


def test_unknown_timezone_raises():
    with pytest.raises(InvalidTimezoneError):
        resolve_timezone("Mars/Olympus_Mons")


def test_empty_timezone_means_process_local():
    assert resolve_timezone(None) is None
    assert resolve_timezone("") is None


def test_resolve_now_parses_explicit_value():
    assert resolve_now("2024-03-04T15:00:00") == datetime(2024, 3, 4, 15, 0)


def test_resolve_now_defaults_to_naive_wall_clock():
    now = resolve_now()
    assert now.tzinfo is None
    assert abs(now - datetime.now()) < timedelta(minutes=1)


# =============================================================================
# WEEKS & WINDOWS
# =============================================================================

def test_monday_of_sunday_is_previous_monday():
    assert monday_of(date(2024, 3, 10)) == datetime(2024, 3, 4)
    assert monday_of(datetime(2024, 3, 4, 23, 0)) == datetime(2024, 3, 4)


def test_week_days_monday_to_sunday():
    days = week_days(date(2024, 3, 6))
    assert days[0] == "2024-03-04"
    assert days[-1] == "2024-03-10"
    assert len(days) == 7


def test_last_n_days_oldest_first_ending_today():
    days = last_n_days(30, date(2024, 3, 4))
    assert len(days) == 30
    assert days[-1] == "2024-03-04"
    assert days[0] == "2024-02-04"
    assert days == sorted(days)
