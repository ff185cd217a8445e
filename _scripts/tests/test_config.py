"""
Bloom Config Tests - Settings, Env Validation & Logging

Tests BloomConfig construction, the BLOOM_* environment validator,
structured log output and rate limit helpers.

Run with: pytest tests/test_config.py -v
"""

import sys
import json
import logging
import tempfile
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from bloom_engine.core import BloomConfig, DEFAULT_POSITIVE_MOODS, Moment, MomentType
from bloom_engine.config_validator import (
    CONFIG_SCHEMA,
    get_config_summary,
    validate_config,
    validate_on_startup,
)
from bloom_engine.errors import RateLimitError, ValidationError
from bloom_engine.logging_utils import StructuredFormatter, Timer, set_request_id
from bloom_engine.ingestion import moments_by_date
from bloom_engine.rate_limiter import retry_after_seconds
from bloom_engine import logging_utils, rate_limiter, rollups

BLOOM_VARS = [check.env_var for check in CONFIG_SCHEMA]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every BLOOM_* variable for the duration of a test."""
    for name in BLOOM_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# BLOOM CONFIG
# =============================================================================

def test_defaults():
    config = BloomConfig()
    assert config.positive_moods == DEFAULT_POSITIVE_MOODS
    assert config.window_days == 30
    assert config.quote_selection == "weekly"
    assert config.timezone is None


def test_invalid_quote_selection():
    with pytest.raises(ValidationError):
        BloomConfig(quote_selection="random")


def test_invalid_threshold_and_windows():
    with pytest.raises(ValidationError):
        BloomConfig(positivity_threshold=0)
    with pytest.raises(ValidationError):
        BloomConfig(window_days=0)


def test_save_and_load():
    config = BloomConfig(timezone="Europe/Paris", positive_moods=("calm",), top_days_limit=5)
    with tempfile.TemporaryDirectory() as tmp_dir:
        path = Path(tmp_dir) / "bloom.json"
        config.save(path)
        loaded = BloomConfig.load(path)
    assert loaded == config


def test_from_dict_ignores_unknown_keys():
    config = BloomConfig.from_dict({"timezone": "UTC", "colour_scheme": "dark"})
    assert config.timezone == "UTC"


def test_from_dict_keeps_positive_moods():
    """A custom mood list read back from a dict drives day ranking."""
    config = BloomConfig.from_dict({"positive_moods": ["tired"], "timezone": "UTC"})
    assert config.positive_moods == ("tired",)

    tired_day = [Moment("m1", datetime(2024, 3, 4, 9, 0), MomentType.WRITE, ("tired",))]
    days = rollups.top_days(moments_by_date(tired_day), config.positive_moods)
    assert [d.date for d in days] == ["2024-03-04"]


def test_from_env(clean_env):
    clean_env.setenv("BLOOM_TIMEZONE", "America/New_York")
    clean_env.setenv("BLOOM_QUOTE_SELECTION", "ROTATING")
    clean_env.setenv("BLOOM_POSITIVE_MOODS", "calm, proud ,")

    config = BloomConfig.from_env()
    assert config.timezone == "America/New_York"
    assert config.quote_selection == "rotating"
    assert config.positive_moods == ("calm", "proud")


def test_from_env_defaults(clean_env):
    assert BloomConfig.from_env() == BloomConfig()


# =============================================================================
# ENVIRONMENT VALIDATION
# =============================================================================

def test_validate_clean_env_warns_about_timezone(clean_env):
    result = validate_config()
    assert result.valid is True
    assert any("BLOOM_TIMEZONE" in w for w in result.warnings)
    assert result.config_values["BLOOM_PORT"] == "5200"


def test_validate_unknown_timezone(clean_env):
    clean_env.setenv("BLOOM_TIMEZONE", "Atlantis/Capital")
    result = validate_config()
    assert result.valid is False
    assert any("Unknown timezone" in e for e in result.errors)


def test_validate_bad_formats(clean_env):
    clean_env.setenv("BLOOM_TIMEZONE", "UTC")
    clean_env.setenv("BLOOM_PORT", "http")
    clean_env.setenv("BLOOM_RATE_LIMIT_REPORT", "lots")
    result = validate_config()
    assert result.valid is False
    assert len(result.errors) == 2


def test_validate_accepts_limit_strings(clean_env):
    clean_env.setenv("BLOOM_TIMEZONE", "UTC")
    clean_env.setenv("BLOOM_RATE_LIMIT_DEFAULT", "100 per minute")
    clean_env.setenv("BLOOM_RATE_LIMIT_REPORT", "10/hour")
    assert validate_config().valid is True


def test_disabled_rate_limit_is_a_warning(clean_env):
    clean_env.setenv("BLOOM_TIMEZONE", "UTC")
    clean_env.setenv("BLOOM_RATE_LIMIT_ENABLED", "false")
    result = validate_config()
    assert result.valid is True
    assert any("Rate limiting is disabled" in w for w in result.warnings)


def test_validate_on_startup_exits_on_error(clean_env, capsys):
    clean_env.setenv("BLOOM_LOG_LEVEL", "LOUD")
    with pytest.raises(SystemExit):
        validate_on_startup()
    assert "Configuration: FAILED" in capsys.readouterr().out


def test_strict_mode_fails_on_warnings(clean_env):
    result = validate_on_startup(strict=True, exit_on_error=False)
    assert result.valid is False


def test_config_summary_shows_defaults(clean_env):
    summary = get_config_summary()
    assert summary["BLOOM_MAX_RECORDS"] == "(default: 50000)"


# =============================================================================
# LOGGING
# =============================================================================

def make_record(message, **extra):
    record = logging.LogRecord("bloom_engine.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extras_and_request_id():
    set_request_id("req-123")
    line = StructuredFormatter(json_output=True).format(make_record("Loaded", rows=42, skipped=1))
    entry = json.loads(line)

    assert entry["message"] == "Loaded"
    assert entry["level"] == "INFO"
    assert entry["request_id"] == "req-123"
    assert entry["rows"] == 42
    assert entry["skipped"] == 1


def test_text_formatter_inlines_extras():
    set_request_id("")
    line = StructuredFormatter().format(make_record("Done", duration_ms=1.5))
    assert "[INFO    ]" in line
    assert line.endswith("Done (duration_ms=1.5)")


def test_timer_logs_duration(caplog):
    logger = logging.getLogger("bloom_engine.test_timer")
    with caplog.at_level(logging.DEBUG, logger="bloom_engine.test_timer"):
        with Timer(logger, "rollup") as timer:
            pass
    assert timer.duration_ms is not None
    assert "Operation completed: rollup" in caplog.text


def test_timer_logs_failure(caplog):
    logger = logging.getLogger("bloom_engine.test_timer")
    with caplog.at_level(logging.DEBUG, logger="bloom_engine.test_timer"):
        with pytest.raises(ValueError):
            with Timer(logger, "rollup"):
                raise ValueError("boom")
    assert "Operation failed: rollup" in caplog.text


# =============================================================================
# RATE LIMITING
# =============================================================================

@pytest.mark.parametrize("description, expected", [
    ("20 per 1 minute", 60),
    ("5 per 2 hour", 7200),
    ("100 per day", 86400),
    ("something odd", 60),
])
def test_retry_after_seconds(description, expected):
    assert retry_after_seconds(description) == expected


def test_rate_limit_error_message():
    error = RateLimitError(retry_after=120)
    assert error.status_code == 429
    assert "120 seconds" in error.user_message


@pytest.mark.parametrize("module", [logging_utils, rate_limiter])
def test_exported_names_exist(module):
    missing = [name for name in module.__all__ if not hasattr(module, name)]
    assert missing == []
