"""Consumption Stats Aggregator — readings → statistics + bucketed breakdown.

Buckets
───────
    Consecutive, non-overlapping ``[start, start + width)`` slices anchored
    at ``period_start``; the last slice is clipped at ``period_end``.  Fixed
    granularities use a constant width, ``monthly`` steps calendar months
    from the anchor.  Every bucket is reported, empty ones with 0 kWh.

Consistency
───────────
    ``total`` is the sum of the breakdown, so the two always agree.  Empty
    input yields zeros everywhere (never NaN).
"""

from __future__ import annotations

import bisect
import calendar
import logging
import math
from collections.abc import Iterable
from datetime import datetime, timedelta

from src.contracts.analysis import (
    BreakdownEntry,
    ConsumptionAnalysisResult,
    ConsumptionStats,
    PeriodComparison,
)
from src.contracts.enums import Granularity
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading, as_utc

log = logging.getLogger(__name__)

_FIXED_WIDTHS: dict[Granularity, timedelta] = {
    Granularity.HOURLY: timedelta(hours=1),
    Granularity.DAILY: timedelta(days=1),
    Granularity.WEEKLY: timedelta(weeks=1),
}


# ═══════════════════════════════════════════════════════════════════════════
#  Running statistics
# ═══════════════════════════════════════════════════════════════════════════


class RunningStats:
    """Incremental count/sum/mean/min/max/variance (Welford).

    Lets callers fold very large reading sets without materialising them.
    """

    __slots__ = ("count", "total", "min", "max", "_mean", "_m2")

    def __init__(self) -> None:
        self.count = 0
        self.total = 0.0
        self.min: float | None = None
        self.max: float | None = None
        self._mean = 0.0
        self._m2 = 0.0

    def push(self, x: float) -> None:
        self.count += 1
        self.total += x
        delta = x - self._mean
        self._mean += delta / self.count
        self._m2 += delta * (x - self._mean)
        self.min = x if self.min is None or x < self.min else self.min
        self.max = x if self.max is None or x > self.max else self.max

    def extend(self, values: Iterable[float]) -> RunningStats:
        for v in values:
            self.push(v)
        return self

    def merge(self, other: RunningStats) -> RunningStats:
        """Fold *other* into this accumulator (Chan et al. parallel update)."""
        if other.count == 0:
            return self
        if self.count == 0:
            self.count, self.total = other.count, other.total
            self.min, self.max = other.min, other.max
            self._mean, self._m2 = other._mean, other._m2
            return self
        n = self.count + other.count
        delta = other._mean - self._mean
        self._m2 += other._m2 + delta * delta * self.count * other.count / n
        self._mean += delta * other.count / n
        self.count = n
        self.total += other.total
        self.min = min(self.min, other.min)  # type: ignore[type-var]
        self.max = max(self.max, other.max)  # type: ignore[type-var]
        return self

    @property
    def mean(self) -> float:
        return self._mean if self.count else 0.0

    @property
    def variance(self) -> float:
        """Sample variance (n - 1); 0 for fewer than two values."""
        if self.count < 2:
            return 0.0
        return max(self._m2 / (self.count - 1), 0.0)

    @property
    def std_dev(self) -> float:
        return math.sqrt(self.variance)


# ═══════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════


def bucket_bounds(
    period_start: datetime,
    period_end: datetime,
    granularity: Granularity | timedelta,
) -> list[tuple[datetime, datetime]]:
    """Return ``(start, end)`` for every bucket of the period, in order."""
    start = as_utc(period_start)
    end = as_utc(period_end)
    if start > end:
        raise InvalidInputError("period_start must be before or equal to period_end")

    bounds: list[tuple[datetime, datetime]] = []
    if granularity == Granularity.MONTHLY:
        k = 0
        lo = start
        while lo < end:
            hi = min(_add_months(start, k + 1), end)
            bounds.append((lo, hi))
            lo = hi
            k += 1
        return bounds

    width = _width(granularity)
    lo = start
    while lo < end:
        hi = min(lo + width, end)
        bounds.append((lo, hi))
        lo = hi
    return bounds


def aggregate(
    readings: Iterable[ConsumptionReading],
    period_start: datetime,
    period_end: datetime,
    granularity: Granularity | timedelta = Granularity.DAILY,
) -> ConsumptionAnalysisResult:
    """Reduce readings in ``[period_start, period_end)`` to stats + breakdown."""
    start = as_utc(period_start)
    end = as_utc(period_end)
    bounds = bucket_bounds(start, end, granularity)
    starts = [lo for lo, _ in bounds]
    sums = [0.0] * len(bounds)
    rs = RunningStats()

    for r in readings:
        if not (start <= r.timestamp < end):
            continue
        idx = bisect.bisect_right(starts, r.timestamp) - 1
        sums[idx] += r.consumption_kwh
        rs.push(r.consumption_kwh)

    breakdown = [BreakdownEntry(timestamp=lo, consumption=s) for lo, s in zip(starts, sums)]
    total = sum(sums)
    label = granularity.value if isinstance(granularity, Granularity) else str(granularity)

    log.debug(
        "Aggregated %d readings into %d %s buckets (total=%.4f kWh)",
        rs.count, len(breakdown), label, total,
    )
    return ConsumptionAnalysisResult(
        period_start=start,
        period_end=end,
        total=total,
        average=total / rs.count if rs.count else 0.0,
        peak=rs.max if rs.max is not None else 0.0,
        min=rs.min if rs.min is not None else 0.0,
        data_points=rs.count,
        granularity=label,
        breakdown=breakdown,
    )


def compute_stats(
    readings: Iterable[ConsumptionReading],
    period_start: datetime | None = None,
    period_end: datetime | None = None,
) -> ConsumptionStats:
    """Stats without breakdown.  Unbounded sides are taken from the data."""
    start = as_utc(period_start) if period_start else None
    end = as_utc(period_end) if period_end else None
    if start and end and start > end:
        raise InvalidInputError("period_start must be before or equal to period_end")

    rs = RunningStats()
    first: datetime | None = None
    last: datetime | None = None
    for r in readings:
        if start is not None and r.timestamp < start:
            continue
        if end is not None and r.timestamp >= end:
            continue
        rs.push(r.consumption_kwh)
        first = r.timestamp if first is None or r.timestamp < first else first
        last = r.timestamp if last is None or r.timestamp > last else last

    return ConsumptionStats(
        total=rs.total,
        average=rs.mean,
        peak=rs.max if rs.max is not None else 0.0,
        min=rs.min if rs.min is not None else 0.0,
        data_points=rs.count,
        period_start=start or first,
        period_end=end or last,
    )


def compare_periods(
    readings: Iterable[ConsumptionReading],
    period1_start: datetime,
    period1_end: datetime,
    period2_start: datetime,
    period2_end: datetime,
) -> PeriodComparison:
    """Compare two periods, e.g. this month against the previous one."""
    data = list(readings)
    p1 = compute_stats(data, period1_start, period1_end)
    p2 = compute_stats(data, period2_start, period2_end)
    diff = p2.total - p1.total
    pct = diff / p1.total * 100 if p1.total > 0 else None
    return PeriodComparison(
        period1=p1,
        period2=p2,
        absolute_difference=diff,
        percentage_difference=pct,
    )


def filter_scope(
    readings: Iterable[ConsumptionReading],
    device_id: str | None = None,
    area_id: str | None = None,
    plant_id: str | None = None,
) -> list[ConsumptionReading]:
    """Keep readings belonging to the given device/area/plant."""
    if not (device_id or area_id or plant_id):
        raise InvalidInputError("At least one of device_id, area_id, or plant_id must be provided")
    out = []
    for r in readings:
        if device_id and r.device_id != device_id:
            continue
        if area_id and r.area_id != area_id:
            continue
        if plant_id and r.plant_id != plant_id:
            continue
        out.append(r)
    return out


# ═══════════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════════


def _width(granularity: Granularity | timedelta) -> timedelta:
    if isinstance(granularity, timedelta):
        if granularity <= timedelta(0):
            raise InvalidInputError("Bucket width must be positive")
        return granularity
    try:
        return _FIXED_WIDTHS[Granularity(granularity)]
    except (KeyError, ValueError) as exc:
        raise InvalidInputError(f"Unsupported granularity: {granularity!r}") from exc


def _add_months(dt: datetime, months: int) -> datetime:
    """Shift *dt* by whole calendar months, clamping the day to the month end."""
    idx = dt.month - 1 + months
    year = dt.year + idx // 12
    month = idx % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
