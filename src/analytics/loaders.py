"""Loaders — files and YAML sections → contract value objects.

These stand in for the reading, tariff, alert-configuration and simulation
stores.  The analytics engines never call them; only the pipeline does.

Config layout
─────────────
  config/tariffs.yaml      tariffs: {<plant_id>: {base_tariff_per_kwh, ...}}
  config/alerts.yaml       alerts: [{id, type, threshold, comparison, ...}]
  config/analysis.yaml     analysis: {granularity, anomaly, projection, ...}
  config/simulations.yaml  simulations: [{id, estimated_consumption, ...}]
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from src.analytics.peak_window import parse_clock
from src.contracts.alert import AlertConfiguration, AlertScope
from src.contracts.enums import (
    AlertSeverity,
    AlertType,
    ComparisonType,
    ConsumptionSource,
    ScopeLevel,
    SimulationType,
    TariffFlag,
    TimeWindow,
)
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading, as_utc
from src.contracts.simulation import SimulationRecord
from src.contracts.tariff import FlagValues, TariffSchedule
from src.shared.config_loader import get_section, load_optional_yaml, load_yaml

log = logging.getLogger(__name__)

DEFAULT_ANALYSIS: dict[str, Any] = {
    "granularity": "daily",
    "anomaly": {"lookback_window": 30, "sensitivity_factor": 2.0},
    "projection": {"horizon_days": 30, "lookback_days": None},
    "alerts": {"epsilon": 1e-9},
    "simulation": {"fallback_tariff": 0.75},
}


def parse_ts(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) to aware UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")))


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


# ═══════════════════════════════════════════════════════════════════════════
#  Readings
# ═══════════════════════════════════════════════════════════════════════════


def parse_reading(row: dict[str, Any]) -> ConsumptionReading:
    """Build a reading from a CSV DictReader row or a JSON object."""
    consumption = float(row["consumption_kwh"])
    if consumption < 0:
        raise InvalidInputError(f"Negative consumption: {consumption}")
    return ConsumptionReading(
        device_id=str(row["device_id"]),
        timestamp=parse_ts(row["timestamp"]),
        consumption_kwh=consumption,
        voltage=_opt_float(row.get("voltage")),
        current=_opt_float(row.get("current")),
        power_factor=_opt_float(row.get("power_factor")),
        temperature=_opt_float(row.get("temperature")),
        source=ConsumptionSource(row.get("source") or ConsumptionSource.IOT.value),
        area_id=row.get("area_id") or None,
        plant_id=row.get("plant_id") or None,
    )


def load_readings_csv(path: str) -> list[ConsumptionReading]:
    """Load readings from a CSV file with a ``device_id,timestamp,...`` header."""
    readings: list[ConsumptionReading] = []
    with open(path, encoding="utf-8", newline="") as fh:
        reader = csv.DictReader(fh)
        for line_no, row in enumerate(reader, 2):
            try:
                readings.append(parse_reading(row))
            except (KeyError, ValueError) as exc:
                log.warning("Skipping CSV line %d: %s", line_no, exc)
    log.info("Loaded %d readings from CSV: %s", len(readings), path)
    return readings


def load_readings_jsonl(path: str) -> list[ConsumptionReading]:
    """Load readings from a JSONL (one JSON object per line) file."""
    readings: list[ConsumptionReading] = []
    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                readings.append(parse_reading(json.loads(line)))
            except (json.JSONDecodeError, KeyError, ValueError) as exc:
                log.warning("Skipping JSONL line %d: %s", line_no, exc)
    log.info("Loaded %d readings from JSONL: %s", len(readings), path)
    return readings


def load_readings(path: str) -> list[ConsumptionReading]:
    """Auto-detect format by file extension, load, and sort by timestamp."""
    p = Path(path)
    if p.suffix in (".jsonl", ".ndjson"):
        readings = load_readings_jsonl(path)
    else:
        readings = load_readings_csv(path)
    readings.sort(key=lambda r: (r.timestamp, r.device_id))
    return readings


# ═══════════════════════════════════════════════════════════════════════════
#  Tariffs
# ═══════════════════════════════════════════════════════════════════════════


def parse_schedule(cfg: dict[str, Any]) -> TariffSchedule:
    flags = cfg.get("flag_values", {}) or {}
    peak_start = cfg.get("peak_start")
    peak_end = cfg.get("peak_end")
    return TariffSchedule(
        base_tariff_per_kwh=float(cfg["base_tariff_per_kwh"]),
        peak_tariff_per_kwh=_opt_float(cfg.get("peak_tariff_per_kwh")),
        peak_start=parse_clock(peak_start) if peak_start is not None else None,
        peak_end=parse_clock(peak_end) if peak_end is not None else None,
        flag_values=FlagValues(
            green=float(flags.get("green", 0.0)),
            yellow=float(flags.get("yellow", 0.0)),
            red1=float(flags.get("red1", 0.0)),
            red2=float(flags.get("red2", 0.0)),
        ),
        current_flag=TariffFlag(cfg.get("current_flag", TariffFlag.GREEN.value)),
        timezone=cfg.get("timezone", "UTC"),
    )


def load_tariffs(config_dir: str) -> dict[str, TariffSchedule]:
    """Load ``tariffs.yaml`` → ``{plant_id: TariffSchedule}``."""
    path = f"{config_dir}/tariffs.yaml"
    cfg = load_yaml(path)
    schedules = {
        str(site): parse_schedule(entry)
        for site, entry in (cfg.get("tariffs", {}) or {}).items()
    }
    log.info("Loaded %d tariff schedules from %s: %s", len(schedules), path, ", ".join(schedules))
    return schedules


# ═══════════════════════════════════════════════════════════════════════════
#  Alerts
# ═══════════════════════════════════════════════════════════════════════════


def parse_alert(cfg: dict[str, Any]) -> AlertConfiguration:
    scope = cfg.get("scope", {}) or {}
    comparison = cfg.get("comparison")
    window = cfg.get("time_window")
    threshold = cfg.get("threshold")
    return AlertConfiguration(
        alert_id=str(cfg["id"]),
        type=AlertType(cfg["type"]),
        threshold=float(threshold) if threshold is not None else None,
        comparison_type=ComparisonType(comparison) if comparison else None,
        scope=AlertScope(
            plant_id=scope.get("plant_id"),
            area_id=scope.get("area_id"),
            device_id=scope.get("device_id"),
        ),
        time_window=TimeWindow(window) if window else None,
        is_active=bool(cfg.get("active", True)),
        severity=AlertSeverity(cfg.get("severity", AlertSeverity.WARNING.value)),
    )


def load_alerts(config_dir: str) -> list[AlertConfiguration]:
    """Load ``alerts.yaml``; malformed entries are logged and skipped."""
    path = f"{config_dir}/alerts.yaml"
    cfg = load_optional_yaml(path)
    alerts: list[AlertConfiguration] = []
    for entry in cfg.get("alerts", []) or []:
        try:
            alerts.append(parse_alert(entry))
        except (KeyError, ValueError) as exc:
            log.warning("Skipping alert %s: %s", entry.get("id", "?"), exc)
    log.info("Loaded %d alert configurations from %s", len(alerts), path)
    return alerts


# ═══════════════════════════════════════════════════════════════════════════
#  Simulations
# ═══════════════════════════════════════════════════════════════════════════


def parse_simulation(cfg: dict[str, Any]) -> SimulationRecord:
    flag = cfg.get("flag_used")
    return SimulationRecord(
        simulation_id=str(cfg["id"]),
        name=cfg.get("name", ""),
        estimated_consumption=float(cfg["estimated_consumption"]),
        estimated_cost=float(cfg.get("estimated_cost", 0.0)),
        start_date=parse_ts(cfg["start_date"]),
        end_date=parse_ts(cfg["end_date"]),
        tariff_used=float(cfg.get("tariff_used", 0.0)),
        flag_used=TariffFlag(flag) if flag else None,
        scope=ScopeLevel(cfg.get("scope", ScopeLevel.DEVICE.value)),
        scope_id=str(cfg.get("scope_id", "")),
        simulation_type=SimulationType(
            cfg.get("simulation_type", SimulationType.CONSUMPTION_PROJECTION.value)
        ),
    )


def load_simulations(config_dir: str) -> list[SimulationRecord]:
    path = f"{config_dir}/simulations.yaml"
    cfg = load_optional_yaml(path)
    sims: list[SimulationRecord] = []
    for entry in cfg.get("simulations", []) or []:
        try:
            sims.append(parse_simulation(entry))
        except (KeyError, ValueError) as exc:
            log.warning("Skipping simulation %s: %s", entry.get("id", "?"), exc)
    log.info("Loaded %d simulations from %s", len(sims), path)
    return sims


# ═══════════════════════════════════════════════════════════════════════════
#  Analysis defaults
# ═══════════════════════════════════════════════════════════════════════════


def load_analysis_settings(config_dir: str) -> dict[str, Any]:
    """Merge ``analysis.yaml`` over the built-in defaults (one level deep)."""
    cfg = get_section(load_optional_yaml(f"{config_dir}/analysis.yaml"), "analysis", default={})
    merged: dict[str, Any] = {}
    for key, default in DEFAULT_ANALYSIS.items():
        override = (cfg or {}).get(key)
        if isinstance(default, dict):
            merged[key] = {**default, **(override or {})}
        else:
            merged[key] = default if override is None else override
    return merged


def load_auto_simulations(config_dir: str) -> list[dict[str, Any]]:
    """Parse the ``auto:`` requests of ``simulations.yaml``.

    Each request names a scope and a future period; the pipeline turns it
    into a simulation estimated from the scope's own history.
    """
    path = f"{config_dir}/simulations.yaml"
    requests: list[dict[str, Any]] = []
    for entry in get_section(load_optional_yaml(path), "auto", default=[]) or []:
        try:
            requests.append({
                "simulation_id": str(entry["id"]),
                "scope": ScopeLevel(entry.get("scope", ScopeLevel.DEVICE.value)),
                "scope_id": str(entry["scope_id"]),
                "start": parse_ts(entry["start_date"]),
                "end": parse_ts(entry["end_date"]),
                "adjustment_factor": float(entry.get("adjustment_factor", 1.0)),
            })
        except (KeyError, ValueError) as exc:
            log.warning("Skipping auto simulation %s: %s", entry.get("id", "?"), exc)
    return requests
