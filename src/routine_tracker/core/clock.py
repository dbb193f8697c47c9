# src/routine_tracker/core/clock.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


@dataclass(slots=True, frozen=True)
class SystemClock:
    """
    Wall-clock calendar date in a fixed time zone.

    "Today" is read once per call; nothing caches it across midnight.
    """

    tz_name: str = "UTC"

    def today(self) -> date:
        if self.tz_name.upper() == "UTC":
            return datetime.now(UTC).date()
        return datetime.now(ZoneInfo(self.tz_name)).date()
