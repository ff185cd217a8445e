"""
Bloom Engine - Rate Limiting v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Rate limits the analytics API. Every analytics request re-aggregates the
full event history it is sent, so the combined report gets a tighter tier.

Default: In-memory storage (single instance)
Optional: Redis backend via BLOOM_RATE_LIMIT_STORAGE
"""

import logging
import os
import re
from functools import wraps
from typing import Any, Callable, Optional

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .errors import RateLimitError

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_LIMIT = "60 per minute"  # Single-screen analytics
REPORT_LIMIT = "20 per minute"  # Combined report (all four screens)
HEALTH_LIMIT = "120 per minute"

RATE_LIMIT_STORAGE = os.environ.get("BLOOM_RATE_LIMIT_STORAGE", "memory://")
RATE_LIMIT_DEFAULT = os.environ.get("BLOOM_RATE_LIMIT_DEFAULT", DEFAULT_LIMIT)
RATE_LIMIT_REPORT = os.environ.get("BLOOM_RATE_LIMIT_REPORT", REPORT_LIMIT)
RATE_LIMIT_ENABLED = os.environ.get("BLOOM_RATE_LIMIT_ENABLED", "true").lower() == "true"

_RETRY_RE = re.compile(r"(?:per|/)\s*(\d+\s*)?(second|minute|hour|day)", re.IGNORECASE)
_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}


# =============================================================================
# KEY FUNCTIONS
# =============================================================================

def get_rate_limit_key() -> str:
    """
    Get the rate limit key for the current request.

    An explicit X-Rate-Limit-Key header wins (per-member limits), then the
    first X-Forwarded-For hop, then the remote address.
    """
    user_key = request.headers.get("X-Rate-Limit-Key")
    if user_key:
        return f"user:{user_key}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return get_remote_address()


def retry_after_seconds(description: str) -> int:
    """Window length of a limit description like '20 per 1 minute'."""
    match = _RETRY_RE.search(description or "")
    if not match:
        return 60
    multiplier = int(match.group(1)) if match.group(1) else 1
    return multiplier * _UNIT_SECONDS[match.group(2).lower()]


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

_limiter: Optional[Limiter] = None


def init_rate_limiter(app: Flask) -> Optional[Limiter]:
    """
    Initialize rate limiter for the Flask app.

    Returns:
        Limiter instance or None if disabled
    """
    global _limiter

    if not RATE_LIMIT_ENABLED:
        logger.info("Rate limiting is disabled (BLOOM_RATE_LIMIT_ENABLED=false)")
        return None

    _limiter = Limiter(
        key_func=get_rate_limit_key,
        app=app,
        default_limits=[RATE_LIMIT_DEFAULT],
        storage_uri=RATE_LIMIT_STORAGE,
        strategy="fixed-window",
        headers_enabled=True,
    )

    @app.errorhandler(429)
    def ratelimit_handler(e):
        """Return JSON response for rate limit exceeded."""
        error = RateLimitError(retry_after_seconds(str(e.description)))

        logger.warning(
            f"Rate limit exceeded for {get_rate_limit_key()}: {e.description}",
            extra={"path": request.path, "status_code": 429},
        )

        response = jsonify({
            "success": False,
            "error": error.user_message,
            "data": {
                "error_type": type(error).__name__,
                "retry_after_seconds": error.retry_after,
            },
        })
        response.status_code = 429
        response.headers["Retry-After"] = str(error.retry_after)
        return response

    logger.info(
        f"Rate limiter initialized: storage={RATE_LIMIT_STORAGE}, "
        f"default={RATE_LIMIT_DEFAULT}, report={RATE_LIMIT_REPORT}"
    )

    return _limiter


# =============================================================================
# DECORATORS
# =============================================================================

def rate_limit_report(f: Callable) -> Callable:
    """Apply the combined-report limit (20/min default)."""
    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> Any:
        return f(*args, **kwargs)

    if _limiter is not None:
        return _limiter.limit(RATE_LIMIT_REPORT)(decorated_function)
    return decorated_function


def rate_limit_health(f: Callable) -> Callable:
    """Apply health check rate limit (120/min default)."""
    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> Any:
        return f(*args, **kwargs)

    if _limiter is not None:
        return _limiter.limit(HEALTH_LIMIT)(decorated_function)
    return decorated_function


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def get_rate_limit_status(key: Optional[str] = None) -> dict:
    """Current limiter settings, keyed to the calling client when in a request."""
    if _limiter is None:
        return {"enabled": False}

    if key is None:
        try:
            key = get_rate_limit_key()
        except RuntimeError:
            key = "N/A (no request context)"

    return {
        "enabled": True,
        "key": key,
        "storage": RATE_LIMIT_STORAGE,
        "limits": {
            "default": RATE_LIMIT_DEFAULT,
            "report": RATE_LIMIT_REPORT,
            "health": HEALTH_LIMIT,
        },
    }


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Initialization
    "init_rate_limiter",
    # Decorators
    "rate_limit_report",
    "rate_limit_health",
    # Utilities
    "get_rate_limit_key",
    "get_rate_limit_status",
    "retry_after_seconds",
    # Constants
    "DEFAULT_LIMIT",
    "REPORT_LIMIT",
    "RATE_LIMIT_ENABLED",
]
