"""Tests for src.analytics.projector — projections and auto simulations."""

from __future__ import annotations

import pytest

from src.analytics.projector import DEFAULT_FALLBACK_TARIFF, build_auto_simulation, project
from src.contracts.enums import Confidence, ScopeLevel, TariffFlag
from src.contracts.errors import InvalidInputError
from tests.conftest import dt, make_reading, make_schedule, make_series, ts_offset


class TestProject:
    def test_daily_rate_times_horizon(self):
        # 2 days, 24 hourly readings of 1 kWh each → 24 kWh/day
        readings = make_series([1.0] * 48)
        proj = project(readings, horizon_days=10)
        assert proj.history_days == 2
        assert proj.average_daily_usage == pytest.approx(24.0)
        assert proj.projected_total == pytest.approx(240.0)
        assert proj.confidence == Confidence.HIGH
        assert not proj.insufficient_history

    def test_zero_horizon_projects_zero(self):
        proj = project(make_series([1.0] * 48), horizon_days=0)
        assert proj.projected_total == 0

    def test_negative_horizon_rejected(self):
        with pytest.raises(InvalidInputError):
            project(make_series([1.0] * 48), horizon_days=-1)

    def test_single_day_is_insufficient(self):
        proj = project(make_series([1.0] * 5), horizon_days=3)
        assert proj.insufficient_history
        assert proj.confidence == Confidence.LOW
        assert proj.average_daily_usage == pytest.approx(5.0)
        assert proj.projected_total == pytest.approx(15.0)

    def test_no_history(self):
        proj = project([], horizon_days=7)
        assert proj.insufficient_history
        assert proj.projected_total == 0
        assert proj.confidence == Confidence.LOW

    def test_empty_days_lower_the_rate(self):
        readings = [
            make_reading(timestamp=dt(), consumption_kwh=10.0),
            make_reading(timestamp=ts_offset(days=3), consumption_kwh=10.0),
        ]
        proj = project(readings, horizon_days=1)
        assert proj.history_days == 4
        assert proj.average_daily_usage == pytest.approx(5.0)

    @pytest.mark.parametrize(
        ("per_day", "expected"),
        [(1, Confidence.LOW), (4, Confidence.MEDIUM), (12, Confidence.HIGH)],
    )
    def test_confidence_from_density(self, per_day, expected):
        readings = make_series([1.0] * (per_day * 2), step_hours=24 / per_day)
        assert project(readings, horizon_days=1).confidence == expected

    def test_lookback_limits_history(self):
        readings = make_series([100.0], start="2026-02-01T00:00:00Z") + make_series(
            [1.0] * 48
        )
        proj = project(readings, horizon_days=1, lookback_days=2, as_of=ts_offset(days=2))
        assert proj.average_daily_usage == pytest.approx(24.0)
        assert proj.history_start == dt()

    def test_window_ending_mid_day_keeps_true_rate(self):
        # 60 hourly readings, history cut at T0+60h → 2.5 days at 24 kWh/day
        readings = make_series([1.0] * 60)
        proj = project(readings, horizon_days=10, as_of=ts_offset(hours=60))
        assert proj.history_days == 3
        assert proj.average_daily_usage == pytest.approx(24.0)
        assert proj.projected_total == pytest.approx(240.0)
        assert proj.confidence == Confidence.HIGH

    def test_invalid_lookback(self):
        with pytest.raises(InvalidInputError):
            project([], horizon_days=1, lookback_days=0)


class TestAutoSimulation:
    def test_uses_preceding_window_of_same_length(self):
        history = make_series([1.0] * 48, start="2026-02-28T00:00:00Z")
        auto = build_auto_simulation(
            history, dt("2026-03-02T00:00:00Z"), dt("2026-03-04T00:00:00Z"),
            schedule=make_schedule(base=0.5), scope_id="press-01",
        )
        assert auto.period_days == 2
        assert auto.historical_daily_average == pytest.approx(24.0)
        assert auto.adjusted_consumption == pytest.approx(48.0)
        assert auto.total_cost == pytest.approx(24.0)
        sim = auto.simulation
        assert sim.estimated_consumption == pytest.approx(48.0)
        assert sim.average_daily_usage == pytest.approx(24.0)
        assert sim.scope == ScopeLevel.DEVICE
        assert sim.scope_id == "press-01"
        assert sim.real_consumption is None

    def test_adjustment_factor(self):
        history = make_series([1.0] * 24, start="2026-03-01T00:00:00Z")
        auto = build_auto_simulation(
            history, dt("2026-03-02T00:00:00Z"), dt("2026-03-03T00:00:00Z"),
            adjustment_factor=1.5,
        )
        assert auto.base_consumption == pytest.approx(24.0)
        assert auto.adjusted_consumption == pytest.approx(36.0)

    def test_fallback_tariff_without_schedule(self):
        history = make_series([1.0] * 24, start="2026-03-01T00:00:00Z")
        auto = build_auto_simulation(history, dt("2026-03-02T00:00:00Z"), dt("2026-03-03T00:00:00Z"))
        assert auto.simulation.tariff_used == DEFAULT_FALLBACK_TARIFF
        assert auto.simulation.flag_used == TariffFlag.GREEN
        assert auto.total_cost == pytest.approx(24.0 * DEFAULT_FALLBACK_TARIFF)

    def test_invalid_period(self):
        with pytest.raises(InvalidInputError):
            build_auto_simulation([], dt(), dt())

    def test_negative_adjustment_rejected(self):
        with pytest.raises(InvalidInputError):
            build_auto_simulation([], dt(), ts_offset(days=1), adjustment_factor=-1)
