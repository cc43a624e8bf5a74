"""Report time windows: one local calendar day expressed as UTC instants."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional

import pytz

DEFAULT_TIMEZONE = "Asia/Kolkata"


def _isoformat_z(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open ``[start, end)`` creation-time window in UTC."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeWindow bounds must be timezone-aware")
        if self.start >= self.end:
            raise ValueError(
                f"TimeWindow start must precede end: {self.start} >= {self.end}"
            )
        # Stored in UTC.
        object.__setattr__(self, "start", self.start.astimezone(timezone.utc))
        object.__setattr__(self, "end", self.end.astimezone(timezone.utc))

    def to_query_params(self) -> Dict[str, str]:
        """Creation-time bounds as the orders endpoint expects them."""
        return {
            "created_at_min": _isoformat_z(self.start),
            "created_at_max": _isoformat_z(self.end),
        }

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def label(self, tz_name: str = DEFAULT_TIMEZONE) -> str:
        """Local date of the window start, e.g. ``2024-01-01``."""
        return self.start.astimezone(pytz.timezone(tz_name)).strftime("%Y-%m-%d")


def window_for_date(day: date, tz_name: str = DEFAULT_TIMEZONE) -> TimeWindow:
    """Build the window covering ``day`` from local midnight to local midnight.

    ``pytz`` localization keeps DST transition days at their true 23 or 25
    hours.
    """
    tz = pytz.timezone(tz_name)
    start_local = tz.localize(datetime(day.year, day.month, day.day))
    next_day = day + timedelta(days=1)
    end_local = tz.localize(datetime(next_day.year, next_day.month, next_day.day))
    return TimeWindow(start=start_local, end=end_local)


def previous_day_window(
    tz_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None
) -> TimeWindow:
    """Window for "yesterday" as seen from ``now`` in ``tz_name``."""
    tz = pytz.timezone(tz_name)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    today_local = now.astimezone(tz).date()
    return window_for_date(today_local - timedelta(days=1), tz_name)
