# src/rolling_paper/db/time.py
"""Time utilities for database models and message timestamps."""

import time
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def now_millis() -> int:
    """Return the current time as milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
