# bloom_engine/errors.py
"""
Bloom Engine - Custom Exceptions v1.0

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

User-friendly error types for Bloom analytics.
Each exception includes both a technical message (for logs) and
a user-friendly message (for API responses).
"""


class BloomError(Exception):
    """Base exception for Bloom errors."""

    def __init__(self, message: str, user_message: str = None, status_code: int = 500):
        super().__init__(message)
        self.user_message = user_message or message
        self.status_code = status_code


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(BloomError):
    """Input validation failed."""

    def __init__(self, field: str, issue: str):
        super().__init__(
            f"Validation error: {field} - {issue}",
            f"Invalid input for '{field}': {issue}",
            400
        )
        self.field = field
        self.issue = issue


class MissingFieldError(ValidationError):
    """Required field is missing."""

    def __init__(self, field: str):
        super().__init__(
            field,
            f"'{field}' is required but was not provided."
        )


class InvalidRecordError(ValidationError):
    """A single input row could not be interpreted."""

    def __init__(self, record_type: str, issue: str):
        super().__init__(record_type, issue)
        self.record_type = record_type


class InvalidTimestampError(ValidationError):
    """A timestamp or date key could not be parsed."""

    def __init__(self, value, field: str = "timestamp"):
        super().__init__(
            field,
            f"'{value}' is not a valid date or timestamp."
        )
        self.value = value


class InvalidTimezoneError(ValidationError):
    """Unknown IANA timezone name."""

    def __init__(self, name: str):
        super().__init__(
            "timezone",
            f"'{name}' is not a known timezone. Use an IANA name such as 'Europe/Paris'."
        )
        self.name = name


# =============================================================================
# PAYLOAD ERRORS
# =============================================================================

class PayloadTooLargeError(BloomError):
    """Too many rows supplied in one request."""

    def __init__(self, count: int, limit: int):
        super().__init__(
            f"Payload has {count} rows, limit is {limit}",
            f"Too much data in one request ({count} rows). "
            f"Maximum is {limit} rows. Narrow the date range and try again.",
            413
        )
        self.count = count
        self.limit = limit


class RateLimitError(BloomError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            "Rate limit exceeded",
            f"Too many requests. Please wait {retry_after} seconds and try again.",
            429
        )
        self.retry_after = retry_after


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Base
    "BloomError",
    # Validation
    "ValidationError",
    "MissingFieldError",
    "InvalidRecordError",
    "InvalidTimestampError",
    "InvalidTimezoneError",
    # Payload
    "PayloadTooLargeError",
    "RateLimitError",
]
