"""
Bloom Core - Configuration v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Engine configuration for Bloom analytics.
"""

from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional, Tuple
import json
import os
from pathlib import Path

from .types import DEFAULT_POSITIVE_MOODS
from ..errors import ValidationError


QUOTE_SELECTION_MODES = ("weekly", "rotating")


@dataclass
class BloomConfig:
    """
    Configuration for Bloom analytics.

    All thresholds and windows are tuneable. Defaults reproduce the
    numbers the mobile client shows.
    """

    # =========================================================================
    # MOODS
    # =========================================================================

    positive_moods: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_POSITIVE_MOODS)
    positivity_threshold: float = 0.5          # Share of positive moments for a "bright" day

    # =========================================================================
    # WINDOWS
    # =========================================================================

    rollup_weeks: int = 4                      # Weeks in the mood rollup
    window_days: int = 30                      # Rolling month used by stats and grids
    journaling_lookback_days: int = 365        # Cap on the journaling streak walk

    # =========================================================================
    # RANKING
    # =========================================================================

    top_days_limit: int = 3
    top_moods_limit: int = 5

    # =========================================================================
    # NARRATIVE
    # =========================================================================

    quote_selection: str = "weekly"            # "weekly" (ISO-week seed) or "rotating"

    # =========================================================================
    # GENERAL
    # =========================================================================

    timezone: Optional[str] = None             # IANA name; None = process timezone

    def __post_init__(self):
        self.positive_moods = tuple(self.positive_moods)
        if self.quote_selection not in QUOTE_SELECTION_MODES:
            raise ValidationError(
                "quote_selection",
                f"must be one of {', '.join(QUOTE_SELECTION_MODES)}"
            )
        if not 0 < self.positivity_threshold <= 1:
            raise ValidationError("positivity_threshold", "must be in (0, 1]")
        for name in ("rollup_weeks", "window_days", "journaling_lookback_days",
                     "top_days_limit", "top_moods_limit"):
            if getattr(self, name) < 1:
                raise ValidationError(name, "must be at least 1")

    # =========================================================================
    # METHODS
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to dictionary."""
        return {
            # Moods
            "positive_moods": list(self.positive_moods),
            "positivity_threshold": self.positivity_threshold,
            # Windows
            "rollup_weeks": self.rollup_weeks,
            "window_days": self.window_days,
            "journaling_lookback_days": self.journaling_lookback_days,
            # Ranking
            "top_days_limit": self.top_days_limit,
            "top_moods_limit": self.top_moods_limit,
            # Narrative
            "quote_selection": self.quote_selection,
            # General
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BloomConfig":
        """Create config from dictionary."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "BloomConfig":
        """Load config from JSON file."""
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_env(cls) -> "BloomConfig":
        """Create config from BLOOM_* environment variables."""
        data: Dict[str, Any] = {}
        if os.environ.get("BLOOM_TIMEZONE"):
            data["timezone"] = os.environ["BLOOM_TIMEZONE"]
        if os.environ.get("BLOOM_QUOTE_SELECTION"):
            data["quote_selection"] = os.environ["BLOOM_QUOTE_SELECTION"].lower()
        if os.environ.get("BLOOM_POSITIVE_MOODS"):
            data["positive_moods"] = tuple(
                m.strip() for m in os.environ["BLOOM_POSITIVE_MOODS"].split(",") if m.strip()
            )
        return cls.from_dict(data)

    @classmethod
    def for_testing(cls) -> "BloomConfig":
        """Create config with a pinned timezone and rotating quotes for reproducible tests."""
        return cls(
            timezone="UTC",
            quote_selection="rotating",
        )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = ["BloomConfig", "QUOTE_SELECTION_MODES"]
