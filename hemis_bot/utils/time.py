"""Date helpers for HEMIS timestamps and timezone-local calendar values."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

# Values below this are Unix seconds, at or above it milliseconds
MILLISECONDS_THRESHOLD = 1e12


def parse_hemis_timestamp(value: Any) -> datetime | None:
    """
    Parse a HEMIS timestamp that may be in seconds or milliseconds.

    Args:
        value: Number or numeric string (e.g. 86400 or "86400000")

    Returns:
        Aware UTC datetime, or None if the value is empty or not a usable number
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(n):
        return None

    seconds = n if n < MILLISECONDS_THRESHOLD else n / 1000
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def format_date_tz(moment: datetime, tz: ZoneInfo) -> str:
    """YYYY-MM-DD of `moment` as seen in `tz`."""
    return moment.astimezone(tz).strftime("%Y-%m-%d")


def month_day_tz(moment: datetime, tz: ZoneInfo) -> str:
    """MM-DD of `moment` as seen in `tz`."""
    return moment.astimezone(tz).strftime("%m-%d")


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int, tz: ZoneInfo) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=tz)
