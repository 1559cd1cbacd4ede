"""
Shared helpers
"""

import re
from typing import Any, Optional
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now, matching what SQLite's CURRENT_TIMESTAMP stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp_with_timezone(timestamp: Optional[datetime]) -> str:
    """Format a timestamp and make sure it carries the UTC 'Z' suffix"""
    if not timestamp:
        return ""
    # Stored timestamps are naive UTC; aware ones are converted first
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    return timestamp.isoformat() + 'Z'


def is_set(value: Any) -> bool:
    """Presence check used by every field-choice decision.

    None is unset, strings must be non-empty after trimming and
    lists/tuples must contain at least one element. Everything else
    (including 0 and False) counts as set.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return len(value.strip()) > 0
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def choose(current: Any, candidate: Any) -> Any:
    """Keep the current value when present, otherwise take the candidate"""
    if is_set(current):
        return current
    return candidate if is_set(candidate) else None


def normalize_text(value: Optional[str]) -> str:
    """Lowercase, replace non-alphanumeric runs with a space and trim"""
    return re.sub(r"[^a-z0-9]+", " ", (value or "").lower()).strip()
