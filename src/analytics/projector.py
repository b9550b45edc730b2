"""Consumption Projector — linear extrapolation of the historical daily rate.

    projected_total = average_daily_usage * horizon_days

The daily rate is the window total over the window length in days; a
window ending mid-day contributes only the part of the last day it covers.
History covering fewer than two distinct days falls back to the single
day's total (or zero) and is flagged as insufficient / low confidence.

Confidence (reading density over the history window)
────────────────────────────────────────────────────
    < 2 readings/day   → low
    < 10 readings/day  → medium
    otherwise          → high
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import UTC, datetime, time, timedelta

from src.analytics.stats import aggregate, compute_stats
from src.analytics.tariff_engine import calculate_cost
from src.contracts.analysis import ConsumptionProjection
from src.contracts.enums import Confidence, Granularity, ScopeLevel, SimulationType
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading, as_utc
from src.contracts.simulation import AutoSimulation, SimulationRecord
from src.contracts.tariff import TariffSchedule

log = logging.getLogger(__name__)

DAY = timedelta(days=1)
MIN_DISTINCT_DAYS = 2
DEFAULT_FALLBACK_TARIFF = 0.75


def project(
    device_readings: Iterable[ConsumptionReading],
    horizon_days: float,
    lookback_days: int | None = None,
    as_of: datetime | None = None,
) -> ConsumptionProjection:
    """Project consumption over the next *horizon_days* days.

    Args:
        device_readings: Pre-fetched history (any order).
        horizon_days: Length of the projection; 0 yields 0.
        lookback_days: Limit history to this many days before *as_of*.
        as_of: End of the history window; defaults to the UTC midnight
            following the latest reading.
    """
    if horizon_days < 0:
        raise InvalidInputError("horizon_days must be >= 0")
    if lookback_days is not None and lookback_days <= 0:
        raise InvalidInputError("lookback_days must be positive")

    readings = list(device_readings)
    if not readings and as_of is None:
        log.debug("No history — empty low-confidence projection")
        return ConsumptionProjection(
            average_daily_usage=0.0,
            horizon_days=horizon_days,
            projected_total=0.0,
            history_start=None,
            history_end=None,
            history_days=0,
            distinct_days=0,
            data_points=0,
            confidence=Confidence.LOW,
            insufficient_history=True,
        )

    end = as_utc(as_of) if as_of is not None else _next_midnight(max(r.timestamp for r in readings))
    if lookback_days is not None:
        start = end - lookback_days * DAY
    elif readings:
        start = _midnight(min(r.timestamp for r in readings))
    else:
        start = end - DAY
    start = min(start, end)

    analysis = aggregate(readings, start, end, Granularity.DAILY)
    history_days = len(analysis.breakdown)
    # a trailing partial bucket counts only for the time it covers
    span_days = (end - start) / DAY
    in_window = [r for r in readings if start <= r.timestamp < end]
    distinct_days = len({(r.timestamp - start) // DAY for r in in_window})

    if distinct_days < MIN_DISTINCT_DAYS:
        # single available daily rate, or nothing at all
        daily = analysis.total if distinct_days == 1 else 0.0
        confidence = Confidence.LOW
        insufficient = True
    else:
        daily = analysis.total / span_days
        confidence = _confidence(analysis.data_points, span_days)
        insufficient = False

    projected = daily * horizon_days
    log.debug(
        "Projection: %.4f kWh/day x %.2f days = %.4f kWh (%s confidence)",
        daily, horizon_days, projected, confidence.value,
    )
    return ConsumptionProjection(
        average_daily_usage=daily,
        horizon_days=horizon_days,
        projected_total=projected,
        history_start=start,
        history_end=end,
        history_days=history_days,
        distinct_days=distinct_days,
        data_points=analysis.data_points,
        confidence=confidence,
        insufficient_history=insufficient,
    )


def build_auto_simulation(
    readings: Iterable[ConsumptionReading],
    start: datetime,
    end: datetime,
    schedule: TariffSchedule | None = None,
    adjustment_factor: float = 1.0,
    scope: ScopeLevel = ScopeLevel.DEVICE,
    scope_id: str = "",
    simulation_id: str = "",
    fallback_tariff: float = DEFAULT_FALLBACK_TARIFF,
) -> AutoSimulation:
    """Estimate consumption and cost of ``[start, end)`` from the period before it.

    The history window has the same length as the simulated period and
    ends where it starts.  Without a schedule the fallback base tariff
    with a green flag and no surcharge is used.
    """
    start = as_utc(start)
    end = as_utc(end)
    if end <= start:
        raise InvalidInputError("Simulation end must be after start")
    if adjustment_factor < 0:
        raise InvalidInputError("adjustment_factor must be >= 0")

    period_days = math.ceil((end - start) / DAY)
    history_start = start - period_days * DAY
    stats = compute_stats(readings, history_start, start)

    daily_average = stats.total / period_days
    base_consumption = daily_average * period_days
    adjusted = base_consumption * adjustment_factor

    tariff = schedule or TariffSchedule(base_tariff_per_kwh=fallback_tariff)
    cost = calculate_cost(adjusted, start, end, tariff)

    record = SimulationRecord(
        simulation_id=simulation_id,
        name=f"Auto-calculated simulation ({scope.value})",
        estimated_consumption=adjusted,
        estimated_cost=cost.total_cost,
        start_date=start,
        end_date=end,
        tariff_used=tariff.base_tariff_per_kwh,
        flag_used=tariff.current_flag,
        scope=scope,
        scope_id=scope_id,
        simulation_type=SimulationType.CONSUMPTION_PROJECTION,
        average_daily_usage=daily_average,
    )
    return AutoSimulation(
        simulation=record,
        scope_id=scope_id,
        description=(
            f"Based on {period_days} days of historical data "
            f"with {adjustment_factor:g}x adjustment"
        ),
        period_days=period_days,
        historical_daily_average=daily_average,
        adjustment_factor=adjustment_factor,
        base_consumption=base_consumption,
        adjusted_consumption=adjusted,
        base_cost=cost.base_cost,
        peak_cost=cost.peak_cost,
        flag_cost=cost.flag_cost,
        total_cost=cost.total_cost,
    )


def _confidence(data_points: int, span_days: float) -> Confidence:
    if data_points < span_days * 2:
        return Confidence.LOW
    if data_points < span_days * 10:
        return Confidence.MEDIUM
    return Confidence.HIGH


def _midnight(dt: datetime) -> datetime:
    return datetime.combine(dt.astimezone(UTC).date(), time.min, tzinfo=UTC)


def _next_midnight(dt: datetime) -> datetime:
    return _midnight(dt) + DAY
