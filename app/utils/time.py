"""
Time utility functions.

All timestamps are timezone-aware UTC. Backends that drop tzinfo on storage
hand back naive values, which are read as UTC.
"""

import math
from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Convert to aware UTC; naive values are taken to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_until(target: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Whole days remaining until ``target``, rounded up.

    Negative once the target has passed; None when there is no target.
    """
    if target is None:
        return None
    now = as_utc(now) if now else utc_now()
    delta = as_utc(target) - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
