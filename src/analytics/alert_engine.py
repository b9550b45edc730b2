"""Alert Evaluation Engine — configuration + current value → fire / don't fire.

A pure decision function: it neither dedupes repeated triggers nor keeps
trigger history.  Callers that persist ``is_active``/``triggered_at`` own
that bookkeeping.

Comparison semantics
────────────────────
    GT  value >  threshold          LT  value <  threshold
    GTE value >= threshold          LTE value <= threshold
    EQ  |value - threshold| <= eps  NE  |value - threshold| >  eps
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from src.contracts.alert import AlertConfiguration, AlertEvaluationResult
from src.contracts.enums import AlertType, ComparisonType, TimeWindow
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading, as_utc

log = logging.getLogger(__name__)

DEFAULT_EPSILON = 1e-9

_TYPE_LABELS: dict[AlertType, str] = {
    AlertType.CONSUMPTION_THRESHOLD: "Consumption threshold",
    AlertType.CONSUMPTION_ANOMALY: "Consumption anomaly",
    AlertType.DEVICE_OFFLINE: "Device offline",
    AlertType.COST_THRESHOLD: "Cost threshold",
    AlertType.PEAK_TIME_ALERT: "Peak time",
    AlertType.FLAG_CHANGE: "Tariff flag change",
}


def compare(
    current_value: float,
    threshold: float,
    comparison_type: ComparisonType,
    epsilon: float = DEFAULT_EPSILON,
) -> bool:
    """Apply *comparison_type* to ``(current_value, threshold)``."""
    match comparison_type:
        case ComparisonType.GT:
            return current_value > threshold
        case ComparisonType.GTE:
            return current_value >= threshold
        case ComparisonType.LT:
            return current_value < threshold
        case ComparisonType.LTE:
            return current_value <= threshold
        case ComparisonType.EQ:
            return abs(current_value - threshold) <= epsilon
        case ComparisonType.NE:
            return abs(current_value - threshold) > epsilon
    raise InvalidInputError(f"Unsupported comparison type: {comparison_type!r}")


def describe_comparison(comparison_type: ComparisonType) -> str:
    match comparison_type:
        case ComparisonType.GT:
            return "greater than"
        case ComparisonType.GTE:
            return "greater than or equal to"
        case ComparisonType.LT:
            return "less than"
        case ComparisonType.LTE:
            return "less than or equal to"
        case ComparisonType.EQ:
            return "equal to"
        case ComparisonType.NE:
            return "not equal to"
    raise InvalidInputError(f"Unsupported comparison type: {comparison_type!r}")


def format_message(
    alert_type: AlertType,
    current_value: float,
    threshold: float,
    comparison_type: ComparisonType,
) -> str:
    """Deterministic message text; depends only on its four arguments."""
    label = _TYPE_LABELS.get(alert_type, str(alert_type))
    return (
        f"{label} alert: current value {current_value:.2f} "
        f"(condition: {describe_comparison(comparison_type)} {threshold:.2f})"
    )


def evaluate(
    configuration: AlertConfiguration,
    current_value: float,
    epsilon: float = DEFAULT_EPSILON,
) -> AlertEvaluationResult:
    """Decide whether *configuration* should fire for *current_value*.

    ``should_trigger`` is True exactly when the comparison holds and the
    configuration is active.

    Raises
    ──────
    InvalidInputError
        The configuration has no threshold or no comparison type.
    """
    if configuration.threshold is None or configuration.comparison_type is None:
        raise InvalidInputError(
            f"Alert {configuration.alert_id!r} needs both threshold and comparison_type"
        )
    holds = compare(current_value, configuration.threshold, configuration.comparison_type, epsilon)
    result = AlertEvaluationResult(
        should_trigger=holds and configuration.is_active,
        current_value=current_value,
        threshold=configuration.threshold,
        comparison_type=configuration.comparison_type,
        message=format_message(
            configuration.type,
            current_value,
            configuration.threshold,
            configuration.comparison_type,
        ),
        alert_id=configuration.alert_id,
    )
    log.debug(
        "Alert %s: value=%.4f threshold=%.4f %s -> %s",
        configuration.alert_id, current_value, configuration.threshold,
        configuration.comparison_type.value, result.should_trigger,
    )
    return result


def evaluate_many(
    configurations: Iterable[AlertConfiguration],
    values: Mapping[str, float],
    epsilon: float = DEFAULT_EPSILON,
) -> list[AlertEvaluationResult]:
    """Evaluate every configuration that has a value in *values* (by alert_id)."""
    results: list[AlertEvaluationResult] = []
    for cfg in configurations:
        if cfg.alert_id not in values:
            log.debug("Alert %s has no current value — skipped", cfg.alert_id)
            continue
        results.append(evaluate(cfg, values[cfg.alert_id], epsilon))
    return results


def window_length(time_window: TimeWindow) -> timedelta:
    match time_window:
        case TimeWindow.HOURLY:
            return timedelta(hours=1)
        case TimeWindow.DAILY:
            return timedelta(days=1)
        case TimeWindow.WEEKLY:
            return timedelta(weeks=1)
        case TimeWindow.MONTHLY:
            return timedelta(days=30)
    raise InvalidInputError(f"Unsupported time window: {time_window!r}")


def window_bounds(time_window: TimeWindow, now: datetime) -> tuple[datetime, datetime]:
    """``[now - window, now)`` for the alert's aggregation window."""
    end = as_utc(now)
    return end - window_length(time_window), end


def window_value(
    readings: Iterable[ConsumptionReading],
    time_window: TimeWindow,
    now: datetime,
) -> float:
    """Consumption summed over the alert window ending at *now*."""
    start, end = window_bounds(time_window, now)
    return sum(r.consumption_kwh for r in readings if start <= r.timestamp < end)
