"""Tariff Cost Engine — consumption quantity + tariff schedule → cost.

Cost model
──────────
    regular_cost = regular_kwh * base_tariff
    peak_cost    = peak_kwh * (peak_tariff or base_tariff)
    flag_cost    = consumption_kwh * flag_values[current_flag]
    total_cost   = regular_cost + peak_cost + flag_cost

Peak apportioning
─────────────────
    When only an aggregate quantity is known for a period, the peak share
    is the fraction of wall-clock time of ``[period_start, period_end)``
    that lies inside the peak window (local time of the schedule).  When a
    reading series is available, ``calculate_reading_cost`` classifies each
    reading by its own timestamp instead.

No rounding happens here; formatting is left to the reporter.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from src.analytics.peak_window import is_peak_time, peak_seconds
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading, as_utc
from src.contracts.tariff import (
    ConsumptionCostCalculation,
    CostBreakdown,
    MonthlyCostEstimate,
    PeakTimeInfo,
    TariffInfo,
    TariffSchedule,
)

log = logging.getLogger(__name__)

DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365


# ═══════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════


def peak_fraction(
    period_start: datetime,
    period_end: datetime,
    schedule: TariffSchedule,
) -> float:
    """Share (0..1) of the period's wall-clock time inside the peak window."""
    if not schedule.has_peak:
        return 0.0
    start = as_utc(period_start)
    end = as_utc(period_end)
    span = (end - start).total_seconds()
    if span <= 0:
        raise InvalidInputError("Cannot apportion consumption over an empty period")
    inside = peak_seconds(start, end, schedule.peak_start, schedule.peak_end, schedule.tz)
    return inside / span


def calculate_cost(
    consumption_kwh: float,
    period_start: datetime,
    period_end: datetime,
    schedule: TariffSchedule,
) -> ConsumptionCostCalculation:
    """Price *consumption_kwh* used during ``[period_start, period_end)``.

    Raises
    ──────
    InvalidInputError
        Negative consumption, a reversed period, or positive consumption
        over an empty period with a peak tariff configured.
    """
    _check_quantity(consumption_kwh, "consumption_kwh")
    if as_utc(period_end) < as_utc(period_start):
        raise InvalidInputError("period_end must not be before period_start")

    fraction = 0.0
    if consumption_kwh == 0:
        peak_kwh = 0.0
    elif schedule.has_peak:
        fraction = peak_fraction(period_start, period_end, schedule)
        peak_kwh = consumption_kwh * fraction
    else:
        peak_kwh = 0.0
    regular_kwh = consumption_kwh - peak_kwh

    calc = _build(regular_kwh, peak_kwh, schedule, consumption=consumption_kwh)
    calc.period_start = as_utc(period_start)
    calc.period_end = as_utc(period_end)
    calc.peak_fraction = fraction
    log.debug(
        "Cost %.4f kWh (peak %.4f) -> total %.4f [flag=%s]",
        consumption_kwh, peak_kwh, calc.total_cost, schedule.current_flag.value,
    )
    return calc


def calculate_split_cost(
    regular_kwh: float,
    peak_kwh: float,
    schedule: TariffSchedule,
) -> ConsumptionCostCalculation:
    """Price a consumption whose peak/off-peak split is already known.

    Peak kWh on a schedule without a peak tariff are billed at the base
    tariff.
    """
    _check_quantity(regular_kwh, "regular_kwh")
    _check_quantity(peak_kwh, "peak_kwh")
    return _build(regular_kwh, peak_kwh, schedule)


def calculate_reading_cost(
    readings: Iterable[ConsumptionReading],
    schedule: TariffSchedule,
) -> ConsumptionCostCalculation:
    """Price a reading series, classifying every reading by its local time."""
    regular_kwh = 0.0
    peak_kwh = 0.0
    first: datetime | None = None
    last: datetime | None = None
    tz = schedule.tz

    for r in readings:
        _check_quantity(r.consumption_kwh, "consumption_kwh")
        local = r.timestamp.astimezone(tz).time()
        if schedule.has_peak and is_peak_time(local, schedule.peak_start, schedule.peak_end):
            peak_kwh += r.consumption_kwh
        else:
            regular_kwh += r.consumption_kwh
        first = r.timestamp if first is None or r.timestamp < first else first
        last = r.timestamp if last is None or r.timestamp > last else last

    calc = _build(regular_kwh, peak_kwh, schedule)
    calc.period_start = first
    calc.period_end = last
    total = regular_kwh + peak_kwh
    calc.peak_fraction = peak_kwh / total if total > 0 else 0.0
    return calc


def check_peak_time(schedule: TariffSchedule, at: datetime) -> PeakTimeInfo:
    """Report the schedule's peak window and whether *at* falls inside it."""
    if not schedule.has_peak:
        return PeakTimeInfo(
            has_peak_time=False,
            peak_start=None,
            peak_end=None,
            is_peak_time=False,
        )
    local = as_utc(at).astimezone(schedule.tz).time()
    return PeakTimeInfo(
        has_peak_time=True,
        peak_start=schedule.peak_start,
        peak_end=schedule.peak_end,
        is_peak_time=is_peak_time(local, schedule.peak_start, schedule.peak_end),
    )


def estimate_monthly_cost(
    daily_kwh: float,
    schedule: TariffSchedule,
    daily_peak_kwh: float = 0.0,
) -> MonthlyCostEstimate:
    """Extrapolate a daily consumption profile to month (30d) and year (365d)."""
    daily = calculate_split_cost(daily_kwh, daily_peak_kwh, schedule)
    return MonthlyCostEstimate(
        daily_cost=daily.total_cost,
        monthly_cost=daily.total_cost * DAYS_PER_MONTH,
        annual_cost=daily.total_cost * DAYS_PER_YEAR,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════════


def _check_quantity(value: float, name: str) -> None:
    if value < 0:
        raise InvalidInputError(f"{name} must be >= 0, got {value}")


def _build(
    regular_kwh: float,
    peak_kwh: float,
    schedule: TariffSchedule,
    consumption: float | None = None,
) -> ConsumptionCostCalculation:
    base = schedule.base_tariff_per_kwh
    peak_rate = (
        schedule.peak_tariff_per_kwh if schedule.peak_tariff_per_kwh is not None else base
    )
    flag_value = schedule.current_flag_value
    if consumption is None:
        consumption = regular_kwh + peak_kwh

    regular_cost = regular_kwh * base
    peak_cost = peak_kwh * peak_rate
    flag_cost = consumption * flag_value
    total_cost = regular_cost + peak_cost + flag_cost

    return ConsumptionCostCalculation(
        consumption=consumption,
        base_cost=regular_cost,
        peak_cost=peak_cost,
        flag_cost=flag_cost,
        total_cost=total_cost,
        breakdown=CostBreakdown(
            regular_consumption=regular_kwh,
            peak_consumption=peak_kwh,
            regular_cost=regular_cost,
            peak_cost=peak_cost,
            flag_cost=flag_cost,
        ),
        tariff_info=TariffInfo(
            base_tariff=base,
            peak_tariff=schedule.peak_tariff_per_kwh,
            current_flag=schedule.current_flag,
            flag_value=flag_value,
        ),
    )
