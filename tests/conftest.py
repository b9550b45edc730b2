"""Shared fixtures for SmartEnergy Analytics tests."""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta

import pytest

from src.contracts.alert import AlertConfiguration, AlertScope
from src.contracts.enums import (
    AlertType,
    ComparisonType,
    ScopeLevel,
    TariffFlag,
    TimeWindow,
)
from src.contracts.reading import ConsumptionReading
from src.contracts.simulation import SimulationRecord
from src.contracts.tariff import FlagValues, TariffSchedule

BASE_TS = "2026-03-02T00:00:00Z"

# ── Timestamp helpers ────────────────────────────────────────────────────


def dt(value: str = BASE_TS) -> datetime:
    """Parse an ISO-8601 ``...Z`` string into an aware UTC datetime."""
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(UTC)


def ts_offset(base: str = BASE_TS, seconds: int = 0, hours: float = 0, days: float = 0) -> datetime:
    """Return *base* shifted by the given amount."""
    return dt(base) + timedelta(seconds=seconds, hours=hours, days=days)


# ── Helper: create contracts with sensible defaults ─────────────────────


def make_reading(
    *,
    device_id: str = "press-01",
    timestamp: datetime | str = BASE_TS,
    consumption_kwh: float = 1.0,
    area_id: str | None = "line-a",
    plant_id: str | None = "plant-north",
    **extra,
) -> ConsumptionReading:
    return ConsumptionReading(
        device_id=device_id,
        timestamp=dt(timestamp) if isinstance(timestamp, str) else timestamp,
        consumption_kwh=consumption_kwh,
        area_id=area_id,
        plant_id=plant_id,
        **extra,
    )


def make_series(
    values: list[float],
    *,
    device_id: str = "press-01",
    start: str = BASE_TS,
    step_hours: float = 1.0,
    **extra,
) -> list[ConsumptionReading]:
    """One reading per *step_hours*, starting at *start*."""
    return [
        make_reading(
            device_id=device_id,
            timestamp=ts_offset(start, hours=i * step_hours),
            consumption_kwh=v,
            **extra,
        )
        for i, v in enumerate(values)
    ]


def make_schedule(
    *,
    base: float = 0.5,
    peak: float | None = None,
    peak_start: str | None = None,
    peak_end: str | None = None,
    flag: TariffFlag = TariffFlag.GREEN,
    flag_values: FlagValues | None = None,
    timezone: str = "UTC",
) -> TariffSchedule:
    return TariffSchedule(
        base_tariff_per_kwh=base,
        peak_tariff_per_kwh=peak,
        peak_start=time.fromisoformat(peak_start) if peak_start else None,
        peak_end=time.fromisoformat(peak_end) if peak_end else None,
        flag_values=flag_values or FlagValues(),
        current_flag=flag,
        timezone=timezone,
    )


def make_alert_config(
    *,
    alert_id: str = "ALR-0001",
    alert_type: AlertType = AlertType.CONSUMPTION_THRESHOLD,
    threshold: float | None = 100.0,
    comparison: ComparisonType | None = ComparisonType.GT,
    scope: AlertScope | None = None,
    time_window: TimeWindow | None = TimeWindow.DAILY,
    is_active: bool = True,
) -> AlertConfiguration:
    return AlertConfiguration(
        alert_id=alert_id,
        type=alert_type,
        threshold=threshold,
        comparison_type=comparison,
        scope=scope or AlertScope(device_id="press-01"),
        time_window=time_window,
        is_active=is_active,
    )


def make_simulation(
    *,
    simulation_id: str = "SIM-001",
    estimated_consumption: float = 100.0,
    estimated_cost: float = 50.0,
    start: str = BASE_TS,
    end: str = "2026-03-04T00:00:00Z",
    scope: ScopeLevel = ScopeLevel.DEVICE,
    scope_id: str = "press-01",
    real_consumption: float | None = None,
    variance: float | None = None,
) -> SimulationRecord:
    return SimulationRecord(
        simulation_id=simulation_id,
        estimated_consumption=estimated_consumption,
        estimated_cost=estimated_cost,
        start_date=dt(start),
        end_date=dt(end),
        tariff_used=0.5,
        flag_used=TariffFlag.GREEN,
        real_consumption=real_consumption,
        variance=variance,
        scope=scope,
        scope_id=scope_id,
    )


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def flat_schedule() -> TariffSchedule:
    """Base tariff only: no peak window, green flag without surcharge."""
    return make_schedule(base=0.5)


@pytest.fixture
def peak_schedule() -> TariffSchedule:
    """18:00–21:00 UTC peak at double rate, red1 flag at 0.1/kWh."""
    return make_schedule(
        base=0.5,
        peak=1.0,
        peak_start="18:00",
        peak_end="21:00",
        flag=TariffFlag.RED_1,
        flag_values=FlagValues(green=0.0, yellow=0.05, red1=0.1, red2=0.2),
    )


@pytest.fixture
def config_dir(tmp_path):
    """A minimal config/ directory with one plant tariff and two alerts."""
    cfg = tmp_path / "config"
    cfg.mkdir()
    (cfg / "tariffs.yaml").write_text(
        "tariffs:\n"
        "  plant-north:\n"
        "    base_tariff_per_kwh: 0.5\n"
        "    peak_tariff_per_kwh: 1.0\n"
        '    peak_start: "18:00"\n'
        '    peak_end: "21:00"\n'
        "    current_flag: yellow\n"
        "    flag_values: {yellow: 0.05}\n",
        encoding="utf-8",
    )
    (cfg / "alerts.yaml").write_text(
        "alerts:\n"
        "  - id: ALR-DAILY\n"
        "    type: consumption_threshold\n"
        "    threshold: 20\n"
        "    comparison: greater_than\n"
        "    time_window: daily\n"
        "    scope: {plant_id: plant-north}\n"
        "  - id: ALR-OFFLINE\n"
        "    type: device_offline\n"
        "    threshold: 2\n"
        "    comparison: greater_than\n"
        "    scope: {device_id: pump-07}\n",
        encoding="utf-8",
    )
    return cfg
