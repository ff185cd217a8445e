"""
Bloom Core - Core Module

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Record types and configuration for the Bloom analytics engine.
"""

from .types import (
    # Enums
    MomentType,
    AnchorType,
    RitualCategory,
    RitualMood,
    Mood,
    # Mood lookup
    MoodInfo,
    MOOD_META,
    DEFAULT_POSITIVE_MOODS,
    mood_info,
    category_from_time,
    # Records
    Moment,
    RitualCompletion,
    AnchorLog,
    Anchor,
    Ritual,
    MemberRitual,
)

from .config import BloomConfig, QUOTE_SELECTION_MODES

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
    "mood_info",
    "category_from_time",
    # Records
    "Moment",
    "RitualCompletion",
    "AnchorLog",
    "Anchor",
    "Ritual",
    "MemberRitual",
    # Config
    "BloomConfig",
    "QUOTE_SELECTION_MODES",
]
