"""Peak-window classification of clock times and wall-clock intervals.

The peak window is a daily recurring clock-time interval ``[start, end)``.
When ``start > end`` the window wraps past midnight (22:00 → 06:00 covers
23:30 and 02:00 but not 12:00).  ``start == end`` is an empty window.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo

from src.contracts.errors import InvalidInputError
from src.contracts.reading import as_utc

log = logging.getLogger(__name__)


def parse_clock(value: str | time) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a :class:`datetime.time`."""
    if isinstance(value, time):
        return value
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise InvalidInputError(f"Malformed clock time: {value!r}")
    try:
        nums = [int(p) for p in parts]
        return time(*nums)
    except ValueError as exc:
        raise InvalidInputError(f"Malformed clock time: {value!r}") from exc


def is_peak_time(
    local_time: time,
    peak_start: time | None,
    peak_end: time | None,
) -> bool:
    """Return True when *local_time* falls inside the peak window."""
    if peak_start is None or peak_end is None:
        return False
    if peak_start <= peak_end:
        return peak_start <= local_time < peak_end
    # Overnight window (e.g. 22:00 to 06:00)
    return local_time >= peak_start or local_time < peak_end


def peak_intervals(
    period_start: datetime,
    period_end: datetime,
    peak_start: time | None,
    peak_end: time | None,
    tz: ZoneInfo | str = "UTC",
) -> list[tuple[datetime, datetime]]:
    """Return the UTC sub-intervals of ``[period_start, period_end)`` inside the window.

    The window is laid on every local calendar day touching the period,
    starting one day early so that an overnight window opened the previous
    evening is included.
    """
    start = as_utc(period_start)
    end = as_utc(period_end)
    if peak_start is None or peak_end is None or start >= end or peak_start == peak_end:
        return []

    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    day = start.astimezone(zone).date() - timedelta(days=1)
    last_day = end.astimezone(zone).date()
    wraps = peak_start > peak_end

    intervals: list[tuple[datetime, datetime]] = []
    while day <= last_day:
        end_day = day + timedelta(days=1) if wraps else day
        w_start = datetime.combine(day, peak_start, tzinfo=zone).astimezone(UTC)
        w_end = datetime.combine(end_day, peak_end, tzinfo=zone).astimezone(UTC)
        lo = max(w_start, start)
        hi = min(w_end, end)
        if hi > lo:
            intervals.append((lo, hi))
        day += timedelta(days=1)
    return intervals


def peak_seconds(
    period_start: datetime,
    period_end: datetime,
    peak_start: time | None,
    peak_end: time | None,
    tz: ZoneInfo | str = "UTC",
) -> float:
    """Total seconds of ``[period_start, period_end)`` inside the peak window."""
    total = sum(
        (hi - lo).total_seconds()
        for lo, hi in peak_intervals(period_start, period_end, peak_start, peak_end, tz)
    )
    log.debug("Peak seconds in %s..%s: %.0f", period_start, period_end, total)
    return total
