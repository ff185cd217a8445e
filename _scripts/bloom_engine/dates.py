"""
Bloom Engine - Date Utilities v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Local calendar-date helpers. Every timestamp entering the engine is
converted to naive local wall-clock time here, so the rest of the engine
only ever compares naive datetimes and YYYY-MM-DD keys.
"""

import re
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional, Union

import pytz

from .errors import InvalidTimestampError, InvalidTimezoneError


DateLike = Union[date, datetime]

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Postgres renders timestamptz with 1-6 fraction digits and a bare "+HH" offset
FRACTION_RE = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")
OFFSET_RE = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)([+-]\d{2}):?(\d{2})?$")


# =============================================================================
# TIMEZONES
# =============================================================================

def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Look up an IANA timezone.

    Returns None for an empty name, meaning "use the process timezone".
    """
    if not name:
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise InvalidTimezoneError(name)


def to_local(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert to naive local wall time. Naive input is taken as already local."""
    if dt.tzinfo is None:
        return dt
    if tz is None:
        return dt.astimezone().replace(tzinfo=None)
    return dt.astimezone(tz).replace(tzinfo=None)


def normalize_iso(text: str) -> str:
    """Pad fractions to microseconds and offsets to +HH:MM so fromisoformat accepts them."""
    text = FRACTION_RE.sub(lambda m: f"{m.group(1)}.{(m.group(2) + '000000')[:6]}", text)
    return OFFSET_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}:{m.group(3) or '00'}", text)


def parse_timestamp(value, tz: Optional[tzinfo] = None, field: str = "timestamp") -> datetime:
    """
    Parse an ISO-8601 timestamp (or pass a datetime through) into naive local time.

    Raises:
        InvalidTimestampError: value is missing or unparseable
    """
    if isinstance(value, datetime):
        return to_local(value, tz)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimestampError(value, field)

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    text = normalize_iso(text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidTimestampError(value, field)
    return to_local(parsed, tz)


def resolve_now(now=None, tz: Optional[tzinfo] = None) -> datetime:
    """The single "now" an analytics pass works against."""
    if now is None:
        return datetime.now(tz).replace(tzinfo=None) if tz else datetime.now()
    return parse_timestamp(now, tz, field="now")


# =============================================================================
# DATE KEYS
# =============================================================================

def local_date_key(d: DateLike) -> str:
    """Zero-padded YYYY-MM-DD from the local calendar fields (never UTC-shifted)."""
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_date_key(key: str, field: str = "date") -> date:
    """Strict inverse of local_date_key."""
    if not isinstance(key, str) or not DATE_KEY_RE.match(key):
        raise InvalidTimestampError(key, field)
    try:
        return date(int(key[0:4]), int(key[5:7]), int(key[8:10]))
    except ValueError:
        raise InvalidTimestampError(key, field)


def as_date(d: Union[DateLike, str]) -> date:
    if isinstance(d, str):
        return parse_date_key(d)
    if isinstance(d, datetime):
        return d.date()
    return d


def add_days(d: Union[DateLike, str], days: int) -> str:
    """Shift a date by whole calendar days and return its key."""
    return local_date_key(as_date(d) + timedelta(days=days))


def days_between(earlier: Union[DateLike, str], later: Union[DateLike, str]) -> int:
    """Calendar-day difference, immune to DST-length days."""
    return (as_date(later) - as_date(earlier)).days


# =============================================================================
# WEEKS & WINDOWS
# =============================================================================

def monday_of(d: DateLike) -> datetime:
    """Midnight on the Monday of the week containing d."""
    day = as_date(d)
    monday = day - timedelta(days=day.weekday())
    return datetime(monday.year, monday.month, monday.day)


def week_days(today: DateLike) -> List[str]:
    """The seven keys of the Monday-anchored week containing today."""
    monday = monday_of(today)
    return [local_date_key(monday + timedelta(days=i)) for i in range(7)]


def last_n_days(n: int, today: DateLike) -> List[str]:
    """n consecutive keys ending today, oldest first."""
    end = as_date(today)
    return [local_date_key(end - timedelta(days=i)) for i in range(n - 1, -1, -1)]


def start_of_day(d: DateLike) -> datetime:
    day = as_date(d)
    return datetime(day.year, day.month, day.day)


__all__ = [
    "resolve_timezone",
    "to_local",
    "parse_timestamp",
    "resolve_now",
    "local_date_key",
    "parse_date_key",
    "as_date",
    "add_days",
    "days_between",
    "monday_of",
    "week_days",
    "last_n_days",
    "start_of_day",
]
