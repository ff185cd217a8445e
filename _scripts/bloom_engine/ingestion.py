"""
Bloom Engine - Event Ingestion v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Turns raw backend rows into typed records and builds the per-date and
per-entity lookup structures every other stage reads from.

Bad rows are skipped, never fatal: each one is logged and counted in a
ParseReport. Envelope problems (payload not an object, collection not a
list, too many rows) raise.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from .core.types import (
    Anchor,
    AnchorLog,
    AnchorType,
    MemberRitual,
    Moment,
    RitualCompletion,
)
from .errors import PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# COLLECTIONS
# =============================================================================

# Collection name -> (record class, accepted payload keys)
COLLECTIONS = {
    "moments": (Moment, ("moments",)),
    "completions": (RitualCompletion, ("completions", "ritual_completions")),
    "anchor_logs": (AnchorLog, ("anchor_logs", "logs")),
    "anchors": (Anchor, ("anchors", "seeds")),
    "member_rituals": (MemberRitual, ("member_rituals", "rituals")),
}


@dataclass
class SkippedRow:
    collection: str
    index: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"collection": self.collection, "index": self.index, "reason": self.reason}


@dataclass
class ParseReport:
    """What ingestion accepted and what it dropped."""
    parsed: Dict[str, int] = field(default_factory=dict)
    skipped: List[SkippedRow] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parsed": dict(self.parsed),
            "skipped_count": self.skipped_count,
            "skipped": [s.to_dict() for s in self.skipped],
        }


@dataclass
class DataBundle:
    """Everything one analytics pass reads, already typed."""
    moments: List[Moment] = field(default_factory=list)
    completions: List[RitualCompletion] = field(default_factory=list)
    anchor_logs: List[AnchorLog] = field(default_factory=list)
    anchors: List[Anchor] = field(default_factory=list)
    member_rituals: List[MemberRitual] = field(default_factory=list)
    report: ParseReport = field(default_factory=ParseReport)

    @property
    def active_member_rituals(self) -> List[MemberRitual]:
        return [r for r in self.member_rituals if r.is_active]


# =============================================================================
# PARSING
# =============================================================================

def parse_records(
    rows: Optional[Iterable[Any]],
    record_cls,
    collection: str,
    tz: Optional[tzinfo] = None,
    report: Optional[ParseReport] = None,
) -> List[Any]:
    """
    Build typed records from raw rows, skipping rows that fail validation.

    Args:
        rows: Raw row dicts (None is treated as empty)
        record_cls: Record type with a from_dict(data, tz) classmethod
        collection: Name used in logs and the report
        tz: Timezone for converting aware timestamps to local time
        report: Optional ParseReport to record results into

    Returns:
        List of records in input order
    """
    if rows is None:
        return []
    if not isinstance(rows, (list, tuple)):
        raise ValidationError(collection, "must be a list of rows")

    records = []
    for index, row in enumerate(rows):
        try:
            records.append(record_cls.from_dict(row, tz))
        except ValidationError as e:
            logger.warning(f"Skipping {collection}[{index}]: {e}")
            if report is not None:
                report.skipped.append(SkippedRow(collection, index, e.user_message))

    if report is not None:
        report.parsed[collection] = len(records)
    return records


def load_bundle(
    payload: Dict[str, Any],
    tz: Optional[tzinfo] = None,
    max_records: Optional[int] = None,
) -> DataBundle:
    """
    Build a DataBundle from a JSON-like payload of raw row arrays.

    Raises:
        ValidationError: payload or a collection has the wrong shape
        PayloadTooLargeError: more rows than max_records
    """
    if not isinstance(payload, dict):
        raise ValidationError("payload", "must be a JSON object")

    raw: Dict[str, Any] = {}
    for name, (_, keys) in COLLECTIONS.items():
        for key in keys:
            if payload.get(key) is not None:
                raw[name] = payload[key]
                break

    if max_records is not None:
        total = sum(len(v) for v in raw.values() if isinstance(v, (list, tuple)))
        if total > max_records:
            raise PayloadTooLargeError(total, max_records)

    report = ParseReport()
    parsed = {
        name: parse_records(raw.get(name), record_cls, name, tz, report)
        for name, (record_cls, _) in COLLECTIONS.items()
    }

    logger.debug(
        f"Loaded bundle: {report.parsed} ({report.skipped_count} rows skipped)"
    )
    return DataBundle(report=report, **parsed)


def load_bundle_file(
    path: Path,
    tz: Optional[tzinfo] = None,
    max_records: Optional[int] = None,
) -> DataBundle:
    """Load a DataBundle from a JSON export on disk."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(str(path), f"not valid JSON ({e.msg} at line {e.lineno})")
    return load_bundle(payload, tz=tz, max_records=max_records)


# =============================================================================
# INDEX BUILDERS
# =============================================================================

def moments_by_date(moments: Iterable[Moment]) -> Dict[str, List[Moment]]:
    """dateKey -> moments that day, input order preserved."""
    index: Dict[str, List[Moment]] = {}
    for m in moments:
        index.setdefault(m.date_key, []).append(m)
    return index


def completions_by_date(completions: Iterable[RitualCompletion]) -> Dict[str, List[RitualCompletion]]:
    """dateKey -> completed rows that day."""
    index: Dict[str, List[RitualCompletion]] = {}
    for c in completions:
        if not c.completed:
            continue
        index.setdefault(c.completion_date, []).append(c)
    return index


def ritual_dates(completions: Iterable[RitualCompletion]) -> Dict[str, Set[str]]:
    """ritual_id -> set of dates with a completion."""
    index: Dict[str, Set[str]] = defaultdict(set)
    for c in completions:
        if c.completed:
            index[c.ritual_id].add(c.completion_date)
    return dict(index)


def ritual_date_counts(completions: Iterable[RitualCompletion]) -> Dict[str, Dict[str, int]]:
    """ritual_id -> dateKey -> completed rows that day."""
    index: Dict[str, Dict[str, int]] = {}
    for c in completions:
        if not c.completed:
            continue
        per_day = index.setdefault(c.ritual_id, {})
        per_day[c.completion_date] = per_day.get(c.completion_date, 0) + 1
    return index


def ritual_day_detail(completions: Iterable[RitualCompletion]) -> Dict[str, Dict[str, Optional[float]]]:
    """ritual_id -> dateKey -> duration in minutes (last row for the day wins)."""
    index: Dict[str, Dict[str, Optional[float]]] = {}
    for c in completions:
        if not c.completed:
            continue
        index.setdefault(c.ritual_id, {})[c.completion_date] = c.duration_minutes
    return index


def anchor_date_counts(logs: Iterable[AnchorLog]) -> Dict[str, Dict[str, int]]:
    """anchor_id -> dateKey -> number of logs (same-day logs add up)."""
    index: Dict[str, Dict[str, int]] = {}
    for log in logs:
        per_day = index.setdefault(log.anchor_id, {})
        per_day[log.log_date] = per_day.get(log.log_date, 0) + 1
    return index


def anchor_logs_by_date(logs: Iterable[AnchorLog]) -> Dict[str, Set[str]]:
    """dateKey -> distinct anchors logged that day."""
    index: Dict[str, Set[str]] = defaultdict(set)
    for log in logs:
        index[log.log_date].add(log.anchor_id)
    return dict(index)


def day_breakdown(logs: Iterable[AnchorLog], anchors: Iterable[Anchor]) -> Dict[str, Dict[str, int]]:
    """
    dateKey -> {"grow": n, "letgo": n} log counts.

    Logs for anchors that are not in the list count as grow.
    """
    types = {a.id: a.type for a in anchors}
    index: Dict[str, Dict[str, int]] = {}
    for log in logs:
        day = index.setdefault(log.log_date, {AnchorType.GROW.value: 0, AnchorType.LETGO.value: 0})
        day[types.get(log.anchor_id, AnchorType.GROW).value] += 1
    return index


@dataclass
class EventIndex:
    """All lookup structures for one DataBundle, built in a single pass each."""
    moments_by_date: Dict[str, List[Moment]]
    completions_by_date: Dict[str, List[RitualCompletion]]
    ritual_dates: Dict[str, Set[str]]
    ritual_date_counts: Dict[str, Dict[str, int]]
    ritual_day_detail: Dict[str, Dict[str, Optional[float]]]
    anchor_date_counts: Dict[str, Dict[str, int]]
    anchor_logs_by_date: Dict[str, Set[str]]
    day_breakdown: Dict[str, Dict[str, int]]

    @classmethod
    def build(cls, bundle: DataBundle) -> "EventIndex":
        return cls(
            moments_by_date=moments_by_date(bundle.moments),
            completions_by_date=completions_by_date(bundle.completions),
            ritual_dates=ritual_dates(bundle.completions),
            ritual_date_counts=ritual_date_counts(bundle.completions),
            ritual_day_detail=ritual_day_detail(bundle.completions),
            anchor_date_counts=anchor_date_counts(bundle.anchor_logs),
            anchor_logs_by_date=anchor_logs_by_date(bundle.anchor_logs),
            day_breakdown=day_breakdown(bundle.anchor_logs, bundle.anchors),
        )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Parsing
    "COLLECTIONS",
    "SkippedRow",
    "ParseReport",
    "DataBundle",
    "parse_records",
    "load_bundle",
    "load_bundle_file",
    # Indexes
    "moments_by_date",
    "completions_by_date",
    "ritual_dates",
    "ritual_date_counts",
    "ritual_day_detail",
    "anchor_date_counts",
    "anchor_logs_by_date",
    "day_breakdown",
    "EventIndex",
]
