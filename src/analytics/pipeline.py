"""Pipeline — orchestrator: load readings + config → analytics core → report.

Supports CSV and JSONL readings.  In watch mode the pipeline tails a JSONL
file and re-evaluates everything each time new readings appear, so alert
rules are checked against live values.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from src.analytics.alert_engine import evaluate_many, window_bounds, window_value
from src.analytics.anomaly import scan_anomalies
from src.analytics.loaders import (
    load_alerts,
    load_analysis_settings,
    load_auto_simulations,
    load_readings,
    load_simulations,
    load_tariffs,
    parse_reading,
)
from src.analytics.projector import build_auto_simulation, project
from src.analytics.reporter import (
    write_alerts_csv,
    write_anomalies_csv,
    write_breakdown_csv,
    write_costs_csv,
    write_plots,
    write_report_txt,
    write_simulations_csv,
    write_stats_csv,
)
from src.analytics.simulation_accuracy import (
    accuracy_analysis,
    average_variance,
    evaluate_against_readings,
)
from src.analytics.stats import aggregate, filter_scope
from src.analytics.tariff_engine import calculate_cost, calculate_reading_cost
from src.contracts.alert import AlertConfiguration
from src.contracts.enums import AlertType, Granularity, ScopeLevel, TariffFlag, TimeWindow
from src.contracts.reading import ConsumptionReading, as_utc
from src.contracts.simulation import SimulationRecord
from src.contracts.tariff import TariffSchedule

log = logging.getLogger(__name__)

_SCOPE_KEYS = {
    ScopeLevel.PLANT: "plant_id",
    ScopeLevel.AREA: "area_id",
    ScopeLevel.DEVICE: "device_id",
}


def resolve_period(
    readings: list[ConsumptionReading],
    period_start: datetime | None,
    period_end: datetime | None,
) -> tuple[datetime, datetime]:
    """Default the period to whole UTC days covering the readings."""
    if period_start is None:
        first = min((r.timestamp for r in readings), default=datetime.now(UTC))
        period_start = first.replace(hour=0, minute=0, second=0, microsecond=0)
    if period_end is None:
        last = max((r.timestamp for r in readings), default=as_utc(period_start))
        period_end = last.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
    return as_utc(period_start), as_utc(period_end)


# ═══════════════════════════════════════════════════════════════════════════
#  Alert inputs
# ═══════════════════════════════════════════════════════════════════════════


def readings_in_scope(
    readings: list[ConsumptionReading],
    level: ScopeLevel,
    entity_id: str,
) -> list[ConsumptionReading]:
    return filter_scope(readings, **{_SCOPE_KEYS[level]: entity_id})


def schedule_for(
    level: ScopeLevel,
    entity_id: str,
    scoped: list[ConsumptionReading],
    schedules: dict[str, TariffSchedule],
) -> TariffSchedule | None:
    """Tariff of the plant the scope belongs to."""
    if level == ScopeLevel.PLANT:
        return schedules.get(entity_id)
    for r in scoped:
        if r.plant_id and r.plant_id in schedules:
            return schedules[r.plant_id]
    return None


def alert_value(
    cfg: AlertConfiguration,
    readings: list[ConsumptionReading],
    schedules: dict[str, TariffSchedule],
    now: datetime,
    settings: dict[str, Any],
) -> float | None:
    """Current value an alert rule is compared against, or None if unavailable."""
    scope = cfg.scope
    in_scope = readings_in_scope(readings, scope.level, scope.entity_id)
    scoped = [r for r in in_scope if r.timestamp < now]
    window = cfg.time_window or TimeWindow.DAILY
    start, end = window_bounds(window, now)

    match cfg.type:
        case AlertType.CONSUMPTION_THRESHOLD:
            return window_value(scoped, window, now)
        case AlertType.COST_THRESHOLD:
            schedule = schedule_for(scope.level, scope.entity_id, scoped, schedules)
            if schedule is None:
                return None
            kwh = window_value(scoped, window, now)
            return calculate_cost(kwh, start, end, schedule).total_cost
        case AlertType.PEAK_TIME_ALERT:
            schedule = schedule_for(scope.level, scope.entity_id, scoped, schedules)
            if schedule is None:
                return None
            in_window = [r for r in scoped if start <= r.timestamp < end]
            return calculate_reading_cost(in_window, schedule).breakdown.peak_consumption
        case AlertType.CONSUMPTION_ANOMALY:
            anomaly_cfg = settings["anomaly"]
            scan = scan_anomalies(
                scoped,
                lookback_window=int(anomaly_cfg["lookback_window"]),
                sensitivity_factor=float(anomaly_cfg["sensitivity_factor"]),
            )
            return float(sum(1 for a in scan.anomalies if start <= a.reading.timestamp < end))
        case AlertType.DEVICE_OFFLINE:
            if not scoped:
                return None
            last_seen = max(r.timestamp for r in scoped)
            return (now - last_seen).total_seconds() / 3600
        case AlertType.FLAG_CHANGE:
            schedule = schedule_for(scope.level, scope.entity_id, scoped, schedules)
            if schedule is None:
                return None
            return float(list(TariffFlag).index(schedule.current_flag))
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  Analysis core (no I/O)
# ═══════════════════════════════════════════════════════════════════════════


def analyse(
    readings: list[ConsumptionReading],
    schedules: dict[str, TariffSchedule],
    alerts: list[AlertConfiguration],
    simulations: list[SimulationRecord],
    settings: dict[str, Any],
    period_start: datetime,
    period_end: datetime,
    now: datetime | None = None,
    auto_requests: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Run every engine over the loaded inputs and collect the results."""
    now = as_utc(now) if now is not None else period_end
    granularity = Granularity(settings["granularity"])
    history = [r for r in readings if r.timestamp < period_end]

    by_device: dict[str, list[ConsumptionReading]] = defaultdict(list)
    by_plant: dict[str, list[ConsumptionReading]] = defaultdict(list)
    for r in history:
        by_device[r.device_id].append(r)
        if r.plant_id:
            by_plant[r.plant_id].append(r)

    analyses = {}
    for plant_id, rs in sorted(by_plant.items()):
        analyses[f"plant:{plant_id}"] = aggregate(rs, period_start, period_end, granularity)
    for device_id, rs in sorted(by_device.items()):
        analyses[f"device:{device_id}"] = aggregate(rs, period_start, period_end, granularity)

    costs = {}
    reading_costs = {}
    for plant_id, schedule in schedules.items():
        in_period = [r for r in by_plant.get(plant_id, []) if r.timestamp >= period_start]
        total = sum(r.consumption_kwh for r in in_period)
        costs[plant_id] = calculate_cost(total, period_start, period_end, schedule)
        reading_costs[plant_id] = calculate_reading_cost(in_period, schedule)

    anomaly_cfg = settings["anomaly"]
    scan = scan_anomalies(
        history,
        lookback_window=int(anomaly_cfg["lookback_window"]),
        sensitivity_factor=float(anomaly_cfg["sensitivity_factor"]),
    )
    scan.anomalies = [a for a in scan.anomalies if a.reading.timestamp >= period_start]

    proj_cfg = settings["projection"]
    projections = {
        f"device:{device_id}": project(
            rs,
            horizon_days=float(proj_cfg["horizon_days"]),
            lookback_days=proj_cfg.get("lookback_days"),
            as_of=period_end,
        )
        for device_id, rs in sorted(by_device.items())
    }

    values: dict[str, float] = {}
    for cfg in alerts:
        if cfg.threshold is None or cfg.comparison_type is None:
            log.warning("Alert %s has no threshold/comparison — skipped", cfg.alert_id)
            continue
        value = alert_value(cfg, readings, schedules, now, settings)
        if value is None:
            log.info("Alert %s: no value available for %s", cfg.alert_id, cfg.type.value)
            continue
        values[cfg.alert_id] = value
    alert_results = evaluate_many(
        [a for a in alerts if a.alert_id in values],
        values,
        epsilon=float(settings["alerts"]["epsilon"]),
    )

    auto_simulations = []
    for req in auto_requests or []:
        scoped = readings_in_scope(readings, req["scope"], req["scope_id"])
        auto_simulations.append(
            build_auto_simulation(
                scoped,
                req["start"],
                req["end"],
                schedule=schedule_for(req["scope"], req["scope_id"], scoped, schedules),
                adjustment_factor=req["adjustment_factor"],
                scope=req["scope"],
                scope_id=req["scope_id"],
                simulation_id=req["simulation_id"],
                fallback_tariff=float(settings["simulation"]["fallback_tariff"]),
            )
        )

    realized: list[SimulationRecord] = []
    for sim in [*simulations, *(a.simulation for a in auto_simulations)]:
        if sim.end_date > now or not sim.scope_id:
            realized.append(sim)
            continue
        scoped = filter_scope(readings, **{_SCOPE_KEYS[sim.scope]: sim.scope_id})
        realized.append(evaluate_against_readings(sim, scoped))

    log.info(
        "Analysis: %d scopes, %d anomalies, %d/%d alerts firing, %d simulations",
        len(analyses), len(scan.anomalies),
        sum(1 for r in alert_results if r.should_trigger), len(alert_results), len(realized),
    )
    return {
        "period": (period_start, period_end),
        "analyses": analyses,
        "costs": costs,
        "reading_costs": reading_costs,
        "anomaly_scan": scan,
        "projections": projections,
        "alerts": alert_results,
        "simulations": realized,
        "auto_simulations": auto_simulations,
        "accuracy": accuracy_analysis(realized) if realized else None,
        "average_variance": average_variance(realized),
    }


def write_outputs(results: dict[str, Any], out_dir: str) -> None:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    write_stats_csv(results["analyses"], str(out / "stats.csv"))
    write_breakdown_csv(results["analyses"], str(out / "breakdown.csv"))
    write_costs_csv(results["costs"], str(out / "costs.csv"))
    write_costs_csv(results["reading_costs"], str(out / "costs_by_reading.csv"))
    write_anomalies_csv(results["anomaly_scan"].anomalies, str(out / "anomalies.csv"))
    write_alerts_csv(results["alerts"], str(out / "alerts.csv"))
    write_simulations_csv(results["simulations"], str(out / "simulations.csv"))
    write_report_txt(results, str(out / "report.txt"))
    write_plots(results["analyses"], results["costs"], str(out))


# ═══════════════════════════════════════════════════════════════════════════
#  Pipeline entry points
# ═══════════════════════════════════════════════════════════════════════════


def _settings_with_overrides(
    config_dir: str,
    granularity: str | None,
    horizon_days: float | None,
) -> dict[str, Any]:
    settings = load_analysis_settings(config_dir)
    if granularity:
        settings["granularity"] = granularity
    if horizon_days is not None:
        settings["projection"]["horizon_days"] = horizon_days
    return settings


def run_pipeline(
    input_path: str,
    out_dir: str = "out",
    config_dir: str = "config",
    period_start: datetime | None = None,
    period_end: datetime | None = None,
    granularity: str | None = None,
    horizon_days: float | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Execute the full analysis and write outputs.

    Returns
    -------
    dict with keys: readings, period, analyses, costs, reading_costs,
    anomaly_scan, projections, alerts, simulations, auto_simulations, accuracy,
    average_variance.
    """
    readings = load_readings(input_path)
    if not readings:
        log.warning("No readings loaded from %s — nothing to analyse.", input_path)
        return {"readings": [], "analyses": {}, "alerts": []}

    settings = _settings_with_overrides(config_dir, granularity, horizon_days)
    schedules = load_tariffs(config_dir)
    alerts = load_alerts(config_dir)
    simulations = load_simulations(config_dir)
    auto_requests = load_auto_simulations(config_dir)

    start, end = resolve_period(readings, period_start, period_end)
    results = analyse(
        readings, schedules, alerts, simulations, settings, start, end, now, auto_requests
    )
    results["readings"] = readings

    write_outputs(results, out_dir)
    log.info("Pipeline complete. Outputs in %s/", out_dir)
    return results


def read_appended_readings(
    input_path: str, offset: int
) -> tuple[list[ConsumptionReading], int]:
    """Parse the complete JSONL lines written after byte *offset*.

    A trailing line without its newline is left for the next poll, so the
    returned offset always sits just past the last ``\\n`` consumed.
    """
    if not os.path.isfile(input_path) or os.path.getsize(input_path) <= offset:
        return [], offset
    with open(input_path, "rb") as fh:
        fh.seek(offset)
        chunk = fh.read()
    cut = chunk.rfind(b"\n")
    if cut < 0:
        return [], offset

    readings: list[ConsumptionReading] = []
    for line in chunk[: cut + 1].decode("utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            readings.append(parse_reading(json.loads(line)))
        except (json.JSONDecodeError, KeyError, ValueError) as exc:
            log.warning("Skipping JSONL line: %s", exc)
    return readings, offset + cut + 1


def watch_pipeline(
    input_path: str,
    out_dir: str = "out",
    config_dir: str = "config",
    granularity: str | None = None,
    horizon_days: float | None = None,
    poll_interval_sec: float = 1.0,
) -> None:
    """Tail a JSONL file and re-run the analysis on each batch of new lines.

    Blocks until interrupted (Ctrl+C).  The period always spans the whole
    accumulated history and alerts are evaluated at the latest reading.
    """
    settings = _settings_with_overrides(config_dir, granularity, horizon_days)
    schedules = load_tariffs(config_dir)
    alerts = load_alerts(config_dir)
    simulations = load_simulations(config_dir)
    auto_requests = load_auto_simulations(config_dir)

    iteration = 0
    accumulated, file_offset = read_appended_readings(input_path, 0)
    accumulated.sort(key=lambda r: (r.timestamp, r.device_id))
    if accumulated:
        log.info("Watch: pre-loaded %d readings (offset=%d)", len(accumulated), file_offset)

    print(f"Consumption watch mode -> {input_path}")
    print(f"  poll interval: {poll_interval_sec:.1f}s, alerts: {len(alerts)}")
    print("  Press Ctrl+C to stop.")

    try:
        while True:
            new_readings, file_offset = read_appended_readings(input_path, file_offset)

            if new_readings:
                accumulated.extend(new_readings)
                accumulated.sort(key=lambda r: (r.timestamp, r.device_id))
                iteration += 1
                log.info(
                    "Watch iteration %d: +%d new, %d total readings",
                    iteration, len(new_readings), len(accumulated),
                )
                start, end = resolve_period(accumulated, None, None)
                latest = accumulated[-1].timestamp + timedelta(microseconds=1)
                results = analyse(
                    accumulated, schedules, alerts, simulations, settings, start, end,
                    now=latest, auto_requests=auto_requests,
                )
                write_outputs(results, out_dir)

            time.sleep(poll_interval_sec)
    except KeyboardInterrupt:
        print(f"\nWatch stopped. Total readings processed: {len(accumulated)}")
