# PATH: core/time.py
"""
Time utilities for ARBWATCH.
"""

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def date_stamp(dt: datetime) -> str:
    """YYYYMMDD partition key for a datetime."""
    return dt.strftime("%Y%m%d")


def hours_since(start_monotonic: float, current: float | None = None) -> float:
    """Elapsed hours from a time.monotonic() reading."""
    current = time.monotonic() if current is None else current
    return (current - start_monotonic) / 3600.0
