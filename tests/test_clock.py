# tests/test_clock.py

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from routine_tracker.core.clock import SystemClock


def test_system_clock_utc_day() -> None:
    before = datetime.now(UTC).date()
    today = SystemClock().today()
    after = datetime.now(UTC).date()
    assert today in {before, after}


def test_system_clock_uses_configured_zone() -> None:
    # UTC+14: differs from the UTC calendar day for ten hours of every day.
    name = "Pacific/Kiritimati"
    try:
        zone = ZoneInfo(name)
    except ZoneInfoNotFoundError:
        pytest.skip(f"time zone data for {name} is not installed")

    before = datetime.now(zone).date()
    today = SystemClock(name).today()
    after = datetime.now(zone).date()
    assert today in {before, after}
