"""
Bloom Core - Type Definitions v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Read-only record types consumed by the analytics engine.
All types are plain Python dataclasses built from backend rows
(JSON objects) via from_dict and serialisable back via to_dict.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from ..dates import local_date_key, parse_date_key, parse_timestamp
from ..errors import InvalidRecordError, MissingFieldError, ValidationError


# =============================================================================
# ENUMS
# =============================================================================

class MomentType(Enum):
    """Capture type of a moment."""
    PHOTO = "photo"
    VIDEO = "video"
    VOICE = "voice"
    WRITE = "write"

    @property
    def label(self) -> str:
        return _MOMENT_TYPE_LABELS[self]

    @property
    def verb(self) -> str:
        """Verb used in the summary paragraph ("You love to ... your feelings")."""
        return _MOMENT_TYPE_VERBS[self]


_MOMENT_TYPE_LABELS = {
    MomentType.PHOTO: "Photos",
    MomentType.VIDEO: "Videos",
    MomentType.VOICE: "Voice",
    MomentType.WRITE: "Writing",
}

_MOMENT_TYPE_VERBS = {
    MomentType.PHOTO: "photograph",
    MomentType.VIDEO: "film",
    MomentType.VOICE: "record",
    MomentType.WRITE: "write about",
}


class AnchorType(Enum):
    """Direction of a seed: building a habit up or letting one go."""
    GROW = "grow"
    LETGO = "letgo"


class RitualCategory(Enum):
    MORNING = "morning"
    MIDDAY = "midday"
    EVENING = "evening"
    SELFCARE = "selfcare"


class RitualMood(Enum):
    """Single-choice check-in mood recorded with a ritual completion."""
    GREAT = "great"
    GOOD = "good"
    OKAY = "okay"
    LOW = "low"
    DIFFICULT = "difficult"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["RitualMood"]:
        try:
            return cls(value)
        except ValueError:
            return None


class Mood(Enum):
    """
    Closed set of moment mood tags.

    Tags outside the set still count everywhere by their raw string;
    lookups for them resolve to UNKNOWN instead of failing.
    """
    GRATEFUL = "grateful"
    PEACEFUL = "peaceful"
    JOYFUL = "joyful"
    INSPIRED = "inspired"
    LOVED = "loved"
    CALM = "calm"
    HOPEFUL = "hopeful"
    PROUD = "proud"
    OVERWHELMED = "overwhelmed"
    TIRED = "tired"
    UNCERTAIN = "uncertain"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "Mood":
        if tag == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class MoodInfo:
    """Display metadata for a mood tag."""
    tag: str
    mood: Mood
    color: str
    hint: str
    positive: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "color": self.color,
            "hint": self.hint,
            "positive": self.positive,
        }


UNKNOWN_MOOD_COLOR = "#6b7280"
UNKNOWN_MOOD_HINT = "A feeling you honored"

# color, hint
MOOD_META: Dict[Mood, Tuple[str, str]] = {
    Mood.GRATEFUL: ("#FFB347", "Appreciation for what's good"),
    Mood.PEACEFUL: ("#43D9BE", "Inner calm and stillness"),
    Mood.JOYFUL: ("#FFD60A", "Pure happiness and delight"),
    Mood.INSPIRED: ("#A855F7", "Sparked with new energy"),
    Mood.LOVED: ("#FF6B9D", "Feeling connected and cared for"),
    Mood.CALM: ("#5BC4F6", "Settled and at ease"),
    Mood.HOPEFUL: ("#34D399", "Looking forward with optimism"),
    Mood.PROUD: ("#FF7170", "Recognizing your own growth"),
    Mood.OVERWHELMED: ("#E8853D", "When it all feels like a lot"),
    Mood.TIRED: ("#94A3B8", "Your body asking for rest"),
    Mood.UNCERTAIN: ("#C4B5FD", "Navigating the unknown"),
    Mood.UNKNOWN: (UNKNOWN_MOOD_COLOR, UNKNOWN_MOOD_HINT),
}

DEFAULT_POSITIVE_MOODS: Tuple[str, ...] = (
    "grateful", "peaceful", "joyful", "inspired",
    "loved", "calm", "hopeful", "proud",
)


def mood_info(tag: str, positive_moods: Iterable[str] = DEFAULT_POSITIVE_MOODS) -> MoodInfo:
    """Total lookup: every tag string gets a colour, a hint and a positivity flag."""
    mood = Mood.from_tag(tag)
    color, hint = MOOD_META[mood]
    return MoodInfo(
        tag=tag,
        mood=mood,
        color=color,
        hint=hint,
        positive=tag in set(positive_moods),
    )


def category_from_time(planned_time: str) -> RitualCategory:
    """Schedule slot for an "HH:MM" planned time."""
    try:
        hour = int(str(planned_time).split(":")[0])
    except ValueError:
        raise ValidationError("planned_time", f"'{planned_time}' is not an HH:MM time")
    if not 0 <= hour <= 23:
        raise ValidationError("planned_time", f"'{planned_time}' is not an HH:MM time")
    if hour < 12:
        return RitualCategory.MORNING
    if hour < 17:
        return RitualCategory.MIDDAY
    return RitualCategory.EVENING


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _require(data: Dict[str, Any], key: str, record_type: str) -> Any:
    if not isinstance(data, dict):
        raise InvalidRecordError(record_type, "row is not an object")
    value = data.get(key)
    if value is None or value == "":
        raise MissingFieldError(f"{record_type}.{key}")
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _optional_number(value: Any, record_type: str, key: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidRecordError(record_type, f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidRecordError(record_type, f"{key} must be a number")


def _optional_timestamp(value: Any, tz: Optional[tzinfo], field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_timestamp(value, tz, field=field_name)


# =============================================================================
# CORE RECORDS
# =============================================================================

@dataclass(frozen=True)
class Moment:
    """
    One captured expression (photo, video, voice note or text).

    created_at is naive local wall time; moods keep their recorded order.
    """
    id: str
    created_at: datetime
    type: MomentType
    moods: Tuple[str, ...] = ()
    caption: Optional[str] = None
    text_content: Optional[str] = None

    @property
    def date_key(self) -> str:
        return local_date_key(self.created_at)

    @property
    def snippet(self) -> Optional[str]:
        return self.text_content or self.caption or None

    @property
    def dominant_mood(self) -> Optional[str]:
        """Most frequent of this moment's own tags; ties go to the first recorded."""
        if not self.moods:
            return None
        return Counter(self.moods).most_common(1)[0][0]

    def has_mood(self, tag: str) -> bool:
        return tag in self.moods

    def is_positive(self, positive_moods: Iterable[str]) -> bool:
        positive = set(positive_moods)
        return any(m in positive for m in self.moods)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "type": self.type.value,
            "moods": list(self.moods),
            "caption": self.caption,
            "text_content": self.text_content,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], tz: Optional[tzinfo] = None) -> "Moment":
        moment_id = str(_require(data, "id", "moment"))
        created_at = parse_timestamp(_require(data, "created_at", "moment"), tz, field="moment.created_at")

        raw_type = _require(data, "type", "moment")
        try:
            moment_type = MomentType(raw_type)
        except ValueError:
            raise InvalidRecordError("moment", f"unknown type '{raw_type}'")

        raw_moods = data.get("moods")
        if raw_moods is None:
            moods: Tuple[str, ...] = ()
        elif isinstance(raw_moods, (list, tuple)):
            moods = tuple(m for m in raw_moods if isinstance(m, str) and m)
        else:
            raise InvalidRecordError("moment", "moods must be a list of strings")

        return cls(
            id=moment_id,
            created_at=created_at,
            type=moment_type,
            moods=moods,
            caption=_optional_text(data.get("caption")),
            text_content=_optional_text(data.get("text_content")),
        )


@dataclass(frozen=True)
class RitualCompletion:
    """One row per ritual per day. completed=False rows are toggled off."""
    id: str
    ritual_id: str
    completion_date: str
    completed: bool = True
    member_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    duration_minutes: Optional[float] = None
    mood: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ritual_id": self.ritual_id,
            "member_id": self.member_id,
            "completion_date": self.completion_date,
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_minutes": self.duration_minutes,
            "mood": self.mood,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], tz: Optional[tzinfo] = None) -> "RitualCompletion":
        ritual_id = str(_require(data, "ritual_id", "completion"))
        completion_date = _require(data, "completion_date", "completion")
        parse_date_key(completion_date, field="completion.completion_date")

        return cls(
            id=str(data.get("id") or f"{ritual_id}:{completion_date}"),
            ritual_id=ritual_id,
            completion_date=completion_date,
            completed=bool(data.get("completed", True)),
            member_id=_optional_text(data.get("member_id")),
            completed_at=_optional_timestamp(data.get("completed_at"), tz, "completion.completed_at"),
            duration_minutes=_optional_number(data.get("duration_minutes"), "completion", "duration_minutes"),
            mood=_optional_text(data.get("mood")),
            notes=_optional_text(data.get("notes")),
        )


@dataclass(frozen=True)
class AnchorLog:
    """Append-only occurrence of a seed being logged."""
    anchor_id: str
    log_date: str
    logged_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anchor_id": self.anchor_id,
            "log_date": self.log_date,
            "logged_at": self.logged_at.isoformat() if self.logged_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], tz: Optional[tzinfo] = None) -> "AnchorLog":
        anchor_id = str(_require(data, "anchor_id", "anchor_log"))
        log_date = _require(data, "log_date", "anchor_log")
        parse_date_key(log_date, field="anchor_log.log_date")
        return cls(
            anchor_id=anchor_id,
            log_date=log_date,
            logged_at=_optional_timestamp(data.get("logged_at"), tz, "anchor_log.logged_at"),
        )


@dataclass(frozen=True)
class Anchor:
    """A user-defined seed (habit). Soft-deleted seeds keep is_active=False."""
    id: str
    label: str
    type: AnchorType = AnchorType.GROW
    icon: Optional[str] = None
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "icon": self.icon,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], tz: Optional[tzinfo] = None) -> "Anchor":
        anchor_id = str(_require(data, "id", "anchor"))
        raw_type = data.get("type") or AnchorType.GROW.value
        try:
            anchor_type = AnchorType(raw_type)
        except ValueError:
            raise InvalidRecordError("anchor", f"unknown type '{raw_type}'")
        label = data.get("label") or data.get("label_en") or anchor_id
        return cls(
            id=anchor_id,
            label=str(label),
            type=anchor_type,
            icon=_optional_text(data.get("icon")),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass(frozen=True)
class Ritual:
    """Ritual definition shared by all members."""
    id: str
    name: str
    category: RitualCategory = RitualCategory.MORNING
    icon: Optional[str] = None
    duration_suggestion: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "icon": self.icon,
            "duration_suggestion": self.duration_suggestion,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], fallback_id: str = "") -> "Ritual":
        if not isinstance(data, dict):
            raise InvalidRecordError("ritual", "ritual must be an object")
        raw_category = data.get("category") or RitualCategory.MORNING.value
        try:
            category = RitualCategory(raw_category)
        except ValueError:
            raise InvalidRecordError("ritual", f"unknown category '{raw_category}'")
        ritual_id = str(data.get("id") or fallback_id)
        return cls(
            id=ritual_id,
            name=str(data.get("name") or ritual_id),
            category=category,
            icon=_optional_text(data.get("icon")),
            duration_suggestion=_optional_number(data.get("duration_suggestion"), "ritual", "duration_suggestion"),
        )


@dataclass(frozen=True)
class MemberRitual:
    """A member's subscription to a ritual plus their schedule slot."""
    id: str
    ritual_id: str
    ritual: Optional[Ritual] = None
    planned_time: Optional[str] = None
    is_active: bool = True
    added_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.ritual.name if self.ritual else self.ritual_id

    @property
    def category(self) -> RitualCategory:
        if self.ritual:
            return self.ritual.category
        if self.planned_time:
            return category_from_time(self.planned_time)
        return RitualCategory.MORNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ritual_id": self.ritual_id,
            "ritual": self.ritual.to_dict() if self.ritual else None,
            "planned_time": self.planned_time,
            "is_active": self.is_active,
            "added_at": self.added_at.isoformat() if self.added_at else None,
            "removed_at": self.removed_at.isoformat() if self.removed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], tz: Optional[tzinfo] = None) -> "MemberRitual":
        ritual_id = str(_require(data, "ritual_id", "member_ritual"))
        raw_ritual = data.get("ritual")
        planned_time = _optional_text(data.get("planned_time"))
        if planned_time:
            category_from_time(planned_time)
        return cls(
            id=str(data.get("id") or ritual_id),
            ritual_id=ritual_id,
            ritual=Ritual.from_dict(raw_ritual, ritual_id) if raw_ritual else None,
            planned_time=planned_time,
            is_active=bool(data.get("is_active", True)),
            added_at=_optional_timestamp(data.get("added_at"), tz, "member_ritual.added_at"),
            removed_at=_optional_timestamp(data.get("removed_at"), tz, "member_ritual.removed_at"),
        )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Enums
    "MomentType",
    "AnchorType",
    "RitualCategory",
    "RitualMood",
    "Mood",
    # Mood lookup
    "MoodInfo",
    "MOOD_META",
    "DEFAULT_POSITIVE_MOODS",
    "UNKNOWN_MOOD_COLOR",
    "UNKNOWN_MOOD_HINT",
    "mood_info",
    "category_from_time",
    # Records
    "Moment",
    "RitualCompletion",
    "AnchorLog",
    "Anchor",
    "Ritual",
    "MemberRitual",
]
