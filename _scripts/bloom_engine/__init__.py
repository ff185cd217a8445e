"""
Bloom Engine - Reflective Analytics Engine v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Bloom Engine turns a member's raw wellbeing events (moments, ritual
completions, seed logs) into the numbers and gentle narratives shown on
the Bloomsline insight screens.

Layers:
- Ingestion: validate raw rows, skip and report the bad ones
- Streaks & stats: consecutive-day counting shared by every streak
- Rollups: mood counts, weekly windows, time-of-day buckets, grids
- Narratives: deterministic, supportive copy from the aggregates
- Facades: one memoized object per insight screen
"""

__version__ = '1.0.0'


# =============================================================================
# CORE API
# =============================================================================

from .core import (
    # Enums
    MomentType,
    AnchorType,
    RitualCategory,
    RitualMood,
    Mood,
    # Records
    Moment,
    RitualCompletion,
    AnchorLog,
    Anchor,
    Ritual,
    MemberRitual,
    # Mood lookup
    mood_info,
    # Config
    BloomConfig,
)

from .errors import (
    BloomError,
    ValidationError,
    InvalidRecordError,
    InvalidTimestampError,
    InvalidTimezoneError,
    PayloadTooLargeError,
)

from .ingestion import (
    DataBundle,
    ParseReport,
    EventIndex,
    load_bundle,
    load_bundle_file,
)

from .streaks import (
    EntityStats,
    RitualStats,
    compute_streak,
    best_streak,
    compute_entity_stats,
    compute_ritual_stats,
)

from .analytics import (
    MomentAnalytics,
    ProgressAnalytics,
    SeedAnalytics,
    RitualInsights,
    build_report,
)


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    '__version__',
    # Enums
    'MomentType',
    'AnchorType',
    'RitualCategory',
    'RitualMood',
    'Mood',
    # Records
    'Moment',
    'RitualCompletion',
    'AnchorLog',
    'Anchor',
    'Ritual',
    'MemberRitual',
    'mood_info',
    'BloomConfig',
    # Errors
    'BloomError',
    'ValidationError',
    'InvalidRecordError',
    'InvalidTimestampError',
    'InvalidTimezoneError',
    'PayloadTooLargeError',
    # Ingestion
    'DataBundle',
    'ParseReport',
    'EventIndex',
    'load_bundle',
    'load_bundle_file',
    # Streaks
    'EntityStats',
    'RitualStats',
    'compute_streak',
    'best_streak',
    'compute_entity_stats',
    'compute_ritual_stats',
    # Facades
    'MomentAnalytics',
    'ProgressAnalytics',
    'SeedAnalytics',
    'RitualInsights',
    'build_report',
]
