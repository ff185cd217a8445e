"""
Bloom Engine - Config Validation v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Validates BLOOM_* environment variables at startup so a bad timezone or
limit string fails loudly before the first request is served.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .core.config import QUOTE_SELECTION_MODES
from .dates import resolve_timezone
from .errors import InvalidTimezoneError

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION SCHEMA
# =============================================================================

@dataclass
class ConfigCheck:
    """A single configuration check."""
    name: str
    env_var: str
    required: bool = False
    pattern: Optional[str] = None  # Regex pattern for validation
    min_length: Optional[int] = None
    description: str = ""
    default: Optional[str] = None


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    config_values: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# VALIDATION SCHEMA
# =============================================================================

LIMIT_PATTERN = r"^\d+\s*(/|per)\s*(\d+\s*)?(second|minute|hour|day)s?$"

CONFIG_SCHEMA = [
    # Server
    ConfigCheck(
        name="Server Port",
        env_var="BLOOM_PORT",
        pattern=r"^\d{1,5}$",
        description="Server port (default: 5200)",
        default="5200",
    ),
    ConfigCheck(
        name="Max Records",
        env_var="BLOOM_MAX_RECORDS",
        pattern=r"^\d+$",
        description="Maximum rows accepted in one analytics payload (default: 50000)",
        default="50000",
    ),

    # Logging
    ConfigCheck(
        name="Log Level",
        env_var="BLOOM_LOG_LEVEL",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level (default: INFO)",
        default="INFO",
    ),
    ConfigCheck(
        name="JSON Logs",
        env_var="BLOOM_LOG_JSON",
        pattern=r"^(true|false)$",
        description="Emit one JSON object per log line (default: false)",
        default="false",
    ),

    # Analytics
    ConfigCheck(
        name="Timezone",
        env_var="BLOOM_TIMEZONE",
        min_length=1,
        description="IANA timezone used to bucket events by day (default: process timezone)",
    ),
    ConfigCheck(
        name="Quote Selection",
        env_var="BLOOM_QUOTE_SELECTION",
        pattern=r"^(" + "|".join(QUOTE_SELECTION_MODES) + r")$",
        description="Share quote choice: weekly (stable per ISO week) or rotating",
        default="weekly",
    ),
    ConfigCheck(
        name="Positive Moods",
        env_var="BLOOM_POSITIVE_MOODS",
        pattern=r"^[a-z_]+(\s*,\s*[a-z_]+)*$",
        description="Comma-separated mood tags counted as positive (default: built-in list)",
    ),

    # Rate limiting
    ConfigCheck(
        name="Rate Limit Enabled",
        env_var="BLOOM_RATE_LIMIT_ENABLED",
        pattern=r"^(true|false)$",
        description="Enable rate limiting (default: true)",
        default="true",
    ),
    ConfigCheck(
        name="Default Rate Limit",
        env_var="BLOOM_RATE_LIMIT_DEFAULT",
        pattern=LIMIT_PATTERN,
        description="Limit for single-screen endpoints (default: 60 per minute)",
        default="60 per minute",
    ),
    ConfigCheck(
        name="Report Rate Limit",
        env_var="BLOOM_RATE_LIMIT_REPORT",
        pattern=LIMIT_PATTERN,
        description="Limit for the combined report endpoint (default: 20 per minute)",
        default="20 per minute",
    ),
    ConfigCheck(
        name="Rate Limit Storage",
        env_var="BLOOM_RATE_LIMIT_STORAGE",
        pattern=r"^(memory|redis|rediss|memcached|mongodb)://",
        description="flask-limiter storage URI (default: memory://)",
        default="memory://",
    ),
]


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_config(schema: List[ConfigCheck] = None) -> ConfigValidationResult:
    """
    Validate configuration against schema.

    Args:
        schema: List of ConfigCheck objects (defaults to CONFIG_SCHEMA)

    Returns:
        ConfigValidationResult with errors and warnings
    """
    if schema is None:
        schema = CONFIG_SCHEMA

    result = ConfigValidationResult(valid=True)

    for check in schema:
        value = os.environ.get(check.env_var)
        result.config_values[check.env_var] = value or check.default

        if check.required and not value:
            result.errors.append(
                f"Missing required config: {check.name} ({check.env_var})\n"
                f"  Description: {check.description}"
            )
            result.valid = False
            continue

        if not value:
            continue

        if check.min_length and len(value) < check.min_length:
            result.errors.append(
                f"Invalid {check.name}: value too short (min {check.min_length} chars)\n"
                f"  Environment variable: {check.env_var}"
            )
            result.valid = False
            continue

        if check.pattern and not re.match(check.pattern, value, re.IGNORECASE):
            result.errors.append(
                f"Invalid {check.name}: value doesn't match expected format\n"
                f"  Environment variable: {check.env_var}\n"
                f"  Expected pattern: {check.pattern}\n"
                f"  Description: {check.description}"
            )
            result.valid = False

    # Timezone names can only be checked against the tz database
    tz_name = os.environ.get("BLOOM_TIMEZONE")
    if tz_name:
        try:
            resolve_timezone(tz_name)
        except InvalidTimezoneError:
            result.errors.append(
                f"Unknown timezone: {tz_name}\n"
                f"  Environment variable: BLOOM_TIMEZONE\n"
                f"  Use an IANA name such as Europe/Paris or America/New_York."
            )
            result.valid = False
    else:
        result.warnings.append(
            "BLOOM_TIMEZONE not set.\n"
            "  Days are bucketed in the server process timezone unless a request sends one."
        )

    if os.environ.get("BLOOM_RATE_LIMIT_ENABLED", "true").lower() == "false":
        result.warnings.append("Rate limiting is disabled (BLOOM_RATE_LIMIT_ENABLED=false).")

    return result


def validate_on_startup(
    strict: bool = False,
    exit_on_error: bool = True,
) -> ConfigValidationResult:
    """
    Validate configuration on server startup.

    Args:
        strict: If True, treat warnings as errors
        exit_on_error: If True, exit process on validation failure

    Returns:
        ConfigValidationResult
    """
    result = validate_config()

    print("\n" + "=" * 60)
    print("Bloom Configuration Validation")
    print("=" * 60)

    if result.errors:
        print("\nERRORS:")
        for i, error in enumerate(result.errors, 1):
            print(f"\n  [{i}] {error}")

    if result.warnings:
        print("\nWARNINGS:")
        for i, warning in enumerate(result.warnings, 1):
            print(f"\n  [{i}] {warning}")

    if strict and result.warnings:
        result.valid = False
        print("\n  (Strict mode: warnings treated as errors)")

    if result.valid:
        print("\nConfiguration: OK")
        if result.warnings:
            print(f"  ({len(result.warnings)} warning(s) - non-critical)")
    else:
        print(f"\nConfiguration: FAILED ({len(result.errors)} error(s))")

    print("=" * 60 + "\n")

    if not result.valid:
        logger.error(f"Configuration invalid: {len(result.errors)} error(s)")
        if exit_on_error:
            print("Server cannot start with invalid configuration.")
            print("Please fix the errors above and restart.\n")
            raise SystemExit(1)

    return result


def get_config_summary() -> Dict[str, Any]:
    """Current BLOOM_* values, with defaults shown for unset variables."""
    return {
        check.env_var: os.environ.get(check.env_var) or f"(default: {check.default})"
        for check in CONFIG_SCHEMA
    }


def print_config_help():
    """Print help text for all configuration options."""
    print("\n" + "=" * 60)
    print("Bloom Configuration Options")
    print("=" * 60)

    for check in CONFIG_SCHEMA:
        required = " [REQUIRED]" if check.required else ""
        default = f" (default: {check.default})" if check.default else ""

        print(f"\n{check.env_var}{required}{default}")
        print(f"  {check.description}")
        if check.pattern:
            print(f"  Format: {check.pattern}")

    print("\n" + "=" * 60 + "\n")


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "ConfigCheck",
    "ConfigValidationResult",
    "CONFIG_SCHEMA",
    "validate_config",
    "validate_on_startup",
    "get_config_summary",
    "print_config_help",
]
