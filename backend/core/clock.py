"""
Time helpers.

All engine timestamps are epoch milliseconds. Engines take a ``Clock`` (a
zero-argument callable returning "now" in epoch ms) so window and recency
computations can run against a fixed instant in tests.
"""

import time
from collections.abc import Callable
from datetime import date, datetime, timezone

Clock = Callable[[], int]

MS_PER_DAY = 24 * 60 * 60 * 1000


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def fixed_clock(now_ms: int) -> Clock:
    """Clock frozen at ``now_ms``."""
    return lambda: now_ms


def days_to_ms(days: float) -> float:
    return days * MS_PER_DAY


def to_utc_datetime(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def to_utc_date(timestamp_ms: int) -> date:
    return to_utc_datetime(timestamp_ms).date()


def iso_date(timestamp_ms: float) -> str:
    """``YYYY-MM-DD`` (UTC) for an epoch-ms timestamp."""
    return to_utc_date(int(timestamp_ms)).isoformat()
