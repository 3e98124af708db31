"""Timestamp formatting utilities."""

from datetime import datetime


def run_stamp() -> str:
    """Current local time for file and directory names, e.g. "20251113_184540"."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def now_exact() -> str:
    """Current local time as a full ISO 8601 string (microsecond precision)."""
    return datetime.now().isoformat()
