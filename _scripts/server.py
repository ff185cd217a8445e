"""
Bloom Server - Flask API for Bloom Engine

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

REST API for:
- Emotion analytics over moments
- Weekly and monthly progress
- Seed (anchor) streaks
- Ritual insights
- The combined report

Every analytics endpoint takes a JSON body holding the member's raw row
arrays (moments, completions, anchor_logs, anchors, member_rituals) plus
optional "now" and "timezone", and answers with the standard envelope.
"""

import os
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import Flask, request, jsonify
from flask_cors import CORS

from bloom_engine import (
    __version__,
    BloomConfig,
    BloomError,
    MomentAnalytics,
    ProgressAnalytics,
    SeedAnalytics,
    RitualInsights,
    build_report,
    load_bundle,
)
from bloom_engine.dates import local_date_key, parse_date_key, resolve_timezone
from bloom_engine.logging_utils import setup_logging, log_request
from bloom_engine.rate_limiter import (
    init_rate_limiter,
    rate_limit_report,
    rate_limit_health,
    get_rate_limit_status,
)

# =============================================================================
# CONFIGURATION
# =============================================================================


class Config:
    """Server configuration."""
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024  # 20MB
    MAX_RECORDS = int(os.environ.get("BLOOM_MAX_RECORDS", 50000))
    ANALYTICS = BloomConfig.from_env()


# =============================================================================
# APP SETUP
# =============================================================================

app = Flask(__name__)
app.config.from_object(Config)
CORS(app)

setup_logging()
logger = logging.getLogger(__name__)

# Must run before the routes below so their limit decorators bind
init_rate_limiter(app)


# =============================================================================
# UTILITIES
# =============================================================================

def api_response(data=None, error=None, status=200):
    """Standard API response wrapper."""
    response = {
        "success": error is None,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    if data is not None:
        response["data"] = data
    if error is not None:
        response["error"] = error
    return jsonify(response), status


def require_json(f):
    """Decorator to require JSON body."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not request.is_json:
            return api_response(error="JSON body required", status=400)
        return f(*args, **kwargs)
    return decorated


def load_request_data():
    """
    Parse the request body into (bundle, now, tz).

    A "timezone" in the body overrides BLOOM_TIMEZONE for this request.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    tz_name = data.get("timezone") or Config.ANALYTICS.timezone
    tz = resolve_timezone(tz_name)
    bundle = load_bundle(data, tz=tz, max_records=Config.MAX_RECORDS)

    if bundle.report.skipped_count:
        logger.warning(
            f"Skipped {bundle.report.skipped_count} malformed row(s)",
            extra={"path": request.path, "skipped": bundle.report.skipped_count},
        )
    return bundle, data.get("now"), tz


@app.errorhandler(BloomError)
def handle_bloom_error(e: BloomError):
    """Map engine errors onto the API envelope."""
    if e.status_code >= 500:
        logger.error(f"Analytics error: {e}")
    else:
        logger.info(f"Rejected request: {e}", extra={"path": request.path, "status_code": e.status_code})
    return api_response(
        data={"error_type": type(e).__name__},
        error=e.user_message,
        status=e.status_code,
    )


# =============================================================================
# HEALTH & INFO
# =============================================================================

@app.route("/api/health", methods=["GET"])
@rate_limit_health
def health():
    """Health check endpoint."""
    return api_response({
        "status": "healthy",
        "version": __version__,
        "timezone": Config.ANALYTICS.timezone or "process local",
        "quote_selection": Config.ANALYTICS.quote_selection,
        "rate_limit": get_rate_limit_status(),
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Server info endpoint."""
    return api_response({
        "name": "Bloom Server",
        "version": __version__,
        "endpoints": [
            "/api/health",
            "/api/info",
            "/api/analytics/moments",
            "/api/analytics/moments/mood/<mood>",
            "/api/analytics/progress",
            "/api/analytics/seeds",
            "/api/analytics/rituals",
            "/api/analytics/report",
        ],
        "collections": ["moments", "completions", "anchor_logs", "anchors", "member_rituals"],
        "max_records": Config.MAX_RECORDS,
    })


# =============================================================================
# ANALYTICS
# =============================================================================

@app.route("/api/analytics/moments", methods=["POST"])
@require_json
@log_request(logger)
def moments_analytics():
    """
    Emotion analytics over moments.

    Body:
        - moments: raw moment rows
        - now: optional ISO timestamp
        - timezone: optional IANA name
    """
    bundle, now, tz = load_request_data()
    analytics = MomentAnalytics.from_bundle(bundle, now=now, config=Config.ANALYTICS, tz=tz)
    result = analytics.to_dict()
    result["ingestion"] = bundle.report.to_dict()
    return api_response(result)


@app.route("/api/analytics/moments/mood/<mood>", methods=["POST"])
@require_json
@log_request(logger)
def mood_insight(mood):
    """Detail for one mood tag: share, trend, peak time and latest snippet."""
    bundle, now, tz = load_request_data()
    analytics = MomentAnalytics.from_bundle(bundle, now=now, config=Config.ANALYTICS, tz=tz)
    return api_response(analytics.mood_insight(mood.strip().lower()))


@app.route("/api/analytics/progress", methods=["POST"])
@require_json
@log_request(logger)
def progress_analytics():
    """Week strip, 30-day activity, mood summary and narratives across all activity."""
    bundle, now, tz = load_request_data()
    analytics = ProgressAnalytics(bundle, now=now, config=Config.ANALYTICS, tz=tz)
    result = analytics.to_dict()
    result["ingestion"] = bundle.report.to_dict()
    return api_response(result)


@app.route("/api/analytics/seeds", methods=["POST"])
@require_json
@log_request(logger)
def seed_analytics():
    """
    Seed streaks, month grid and a single day's seeds.

    Body (in addition to the rows):
        - day: optional YYYY-MM-DD for the day detail (default: today)
    """
    bundle, now, tz = load_request_data()
    day = (request.get_json(silent=True) or {}).get("day")
    if day is not None:
        day = local_date_key(parse_date_key(day, field="day"))

    analytics = SeedAnalytics(bundle, now=now, config=Config.ANALYTICS, tz=tz)
    result = analytics.to_dict(day=day)
    result["ingestion"] = bundle.report.to_dict()
    return api_response(result)


@app.route("/api/analytics/rituals", methods=["POST"])
@require_json
@log_request(logger)
def ritual_insights():
    """Per-ritual stats, completion ratios, trend and reflections."""
    bundle, now, tz = load_request_data()
    analytics = RitualInsights(bundle, now=now, config=Config.ANALYTICS, tz=tz)
    result = analytics.to_dict()
    result["ingestion"] = bundle.report.to_dict()
    return api_response(result)


@app.route("/api/analytics/report", methods=["POST"])
@require_json
@rate_limit_report
@log_request(logger)
def full_report():
    """All four screens against a single "now"."""
    bundle, now, tz = load_request_data()
    return api_response(build_report(bundle, now=now, config=Config.ANALYTICS, tz=tz))


# =============================================================================
# MAIN
# =============================================================================

def create_app():
    """Application factory for WSGI servers."""
    return app


if __name__ == "__main__":
    from bloom_engine.config_validator import validate_on_startup

    validate_on_startup()

    port = int(os.environ.get("BLOOM_PORT", 5200))
    debug = os.environ.get("BLOOM_DEBUG", "false").lower() == "true"

    print(f"\n[BLOOM] Server starting on http://localhost:{port}")
    print(f"        Timezone: {Config.ANALYTICS.timezone or 'process local'}")
    print(f"        Max records per request: {Config.MAX_RECORDS}")
    print()

    app.run(host="0.0.0.0", port=port, debug=debug)
