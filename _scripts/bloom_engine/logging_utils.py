"""
Bloom Engine - Structured Logging v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Provides consistent logging with:
- Request ID tracking across an analytics request
- JSON structured output (optional)
- Level configuration from BLOOM_LOG_LEVEL / BLOOM_LOG_JSON
- Operation timing
"""

import json
import logging
import os
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Optional
from uuid import uuid4

from .errors import BloomError

# Context variable for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Extra record attributes copied into structured output
EXTRA_FIELDS = (
    "duration_ms", "endpoint", "status_code", "method", "path",
    "collection", "rows", "skipped", "user_agent",
)

# Extras shown inline in text mode
TEXT_EXTRAS = ("duration_ms", "endpoint", "status_code", "rows", "skipped")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured log entries.

    In JSON mode, outputs one JSON object per line.
    In text mode, outputs human-readable lines with context.
    """

    def __init__(self, json_output: bool = False):
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        request_id = get_request_id()
        timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        if self.json_output:
            entry = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            if request_id:
                entry["request_id"] = request_id
            for key in EXTRA_FIELDS:
                if hasattr(record, key):
                    entry[key] = getattr(record, key)
            if record.exc_info:
                entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(entry, default=str)

        parts = [f"[{timestamp}]", f"[{record.levelname:8}]", f"[{record.name}]"]
        if request_id:
            parts.append(f"[{request_id[:8]}]")
        parts.append(record.getMessage())

        extras = [f"{key}={getattr(record, key)}" for key in TEXT_EXTRAS if hasattr(record, key)]
        if extras:
            parts.append(f"({', '.join(extras)})")

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Log level name; defaults to BLOOM_LOG_LEVEL or INFO
        json_output: JSON lines on the console; defaults to BLOOM_LOG_JSON
        log_file: Optional file path for log output (always JSON)

    Returns:
        Root logger
    """
    if level is None:
        level = os.environ.get("BLOOM_LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("BLOOM_LOG_JSON", "false").lower() == "true"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter(json_output=json_output))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(json_output=True))
        root_logger.addHandler(file_handler)

    # Reduce noise from libraries
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    return root_logger


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set or generate request ID for current context."""
    if request_id is None:
        request_id = str(uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get current request ID."""
    return request_id_var.get()


def log_request(logger: logging.Logger):
    """
    Decorator for Flask views: assigns a request ID and logs completion with timing.

    Usage:
        @log_request(logger)
        def my_endpoint():
            ...
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            from flask import request

            set_request_id(request.headers.get("X-Request-ID"))
            start = time.perf_counter()
            context = {"method": request.method, "path": request.path, "endpoint": f.__name__}

            try:
                result = f(*args, **kwargs)
            except BloomError as e:
                level = logging.ERROR if e.status_code >= 500 else logging.WARNING
                logger.log(
                    level,
                    f"Request rejected: {request.method} {request.path}",
                    extra={**context, "status_code": e.status_code,
                           "duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                )
                raise
            except Exception:
                logger.exception(
                    f"Request failed: {request.method} {request.path}",
                    extra={**context, "status_code": 500,
                           "duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                )
                raise

            status_code = result[1] if isinstance(result, tuple) and len(result) > 1 else 200
            logger.info(
                f"Request completed: {request.method} {request.path}",
                extra={**context, "status_code": status_code,
                       "duration_ms": round((time.perf_counter() - start) * 1000, 2)},
            )
            return result

        return wrapper
    return decorator


class Timer:
    """
    Context manager for timing code blocks.

    Usage:
        with Timer(logger, "build_report"):
            build_report(bundle)
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        extra = {"duration_ms": round(self.duration_ms, 2)}

        if exc_type:
            self.logger.error(f"Operation failed: {self.operation}", extra=extra)
        else:
            self.logger.log(self.level, f"Operation completed: {self.operation}", extra=extra)

        return False


__all__ = [
    "setup_logging",
    "set_request_id",
    "get_request_id",
    "log_request",
    "Timer",
    "StructuredFormatter",
]
