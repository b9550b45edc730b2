"""Tests for src.analytics.stats — aggregation, breakdowns, comparisons."""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.analytics.stats import (
    RunningStats,
    aggregate,
    bucket_bounds,
    compare_periods,
    compute_stats,
    filter_scope,
)
from src.contracts.enums import Granularity
from src.contracts.errors import InvalidInputError
from tests.conftest import dt, make_reading, make_series, ts_offset

# ═══════════════════════════════════════════════════════════════════════════
#  RunningStats
# ═══════════════════════════════════════════════════════════════════════════


class TestRunningStats:
    def test_empty(self):
        rs = RunningStats()
        assert rs.count == 0
        assert rs.mean == 0.0
        assert rs.variance == 0.0
        assert rs.min is None

    def test_basic(self):
        rs = RunningStats().extend([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
        assert rs.count == 8
        assert rs.total == pytest.approx(40.0)
        assert rs.mean == pytest.approx(5.0)
        # sample variance: 32 / 7
        assert rs.variance == pytest.approx(32 / 7)
        assert rs.min == 2.0
        assert rs.max == 9.0

    def test_single_value_has_zero_variance(self):
        assert RunningStats().extend([3.0]).std_dev == 0.0

    def test_merge_matches_sequential(self):
        values = [1.0, 3.0, 8.0, 2.5, 6.0, 9.5]
        merged = RunningStats().extend(values[:2]).merge(RunningStats().extend(values[2:]))
        whole = RunningStats().extend(values)
        assert merged.count == whole.count
        assert merged.mean == pytest.approx(whole.mean)
        assert merged.variance == pytest.approx(whole.variance)
        assert merged.min == whole.min
        assert merged.max == whole.max

    def test_merge_with_empty(self):
        rs = RunningStats().extend([1.0, 2.0])
        assert RunningStats().merge(rs).mean == pytest.approx(1.5)
        assert rs.merge(RunningStats()).count == 2


# ═══════════════════════════════════════════════════════════════════════════
#  bucket_bounds
# ═══════════════════════════════════════════════════════════════════════════


class TestBucketBounds:
    def test_hourly_day(self):
        bounds = bucket_bounds(dt(), ts_offset(days=1), Granularity.HOURLY)
        assert len(bounds) == 24
        assert bounds[0] == (dt(), ts_offset(hours=1))

    def test_last_bucket_clipped(self):
        bounds = bucket_bounds(dt(), ts_offset(hours=30), Granularity.DAILY)
        assert len(bounds) == 2
        assert bounds[-1] == (ts_offset(days=1), ts_offset(hours=30))

    def test_weekly(self):
        assert len(bucket_bounds(dt(), ts_offset(days=14), Granularity.WEEKLY)) == 2

    def test_monthly_calendar_months(self):
        bounds = bucket_bounds(
            dt("2026-01-31T00:00:00Z"), dt("2026-04-01T00:00:00Z"), Granularity.MONTHLY
        )
        assert [lo for lo, _ in bounds] == [
            dt("2026-01-31T00:00:00Z"),
            dt("2026-02-28T00:00:00Z"),
            dt("2026-03-31T00:00:00Z"),
        ]

    def test_custom_width(self):
        assert len(bucket_bounds(dt(), ts_offset(hours=1), timedelta(minutes=15))) == 4

    def test_non_positive_width_rejected(self):
        with pytest.raises(InvalidInputError):
            bucket_bounds(dt(), ts_offset(hours=1), timedelta(0))

    def test_reversed_period_rejected(self):
        with pytest.raises(InvalidInputError):
            bucket_bounds(ts_offset(days=1), dt(), Granularity.DAILY)

    def test_empty_period_has_no_buckets(self):
        assert bucket_bounds(dt(), dt(), Granularity.DAILY) == []


# ═══════════════════════════════════════════════════════════════════════════
#  aggregate
# ═══════════════════════════════════════════════════════════════════════════


class TestAggregate:
    def test_stats_and_breakdown(self):
        readings = make_series([1.0, 2.0, 3.0], step_hours=12)  # day0 00:00, 12:00, day1 00:00
        res = aggregate(readings, dt(), ts_offset(days=2), Granularity.DAILY)
        assert res.total == pytest.approx(6.0)
        assert res.average == pytest.approx(2.0)
        assert res.peak == 3.0
        assert res.min == 1.0
        assert res.data_points == 3
        assert [e.consumption for e in res.breakdown] == [pytest.approx(3.0), pytest.approx(3.0)]
        assert res.granularity == "daily"

    def test_total_equals_breakdown_sum(self):
        readings = make_series([0.4, 1.1, 2.7, 0.3, 5.2, 0.9, 1.6], step_hours=5)
        res = aggregate(readings, dt(), ts_offset(days=2), Granularity.HOURLY)
        assert res.total == pytest.approx(sum(e.consumption for e in res.breakdown))

    def test_empty_input_reports_every_bucket(self):
        res = aggregate([], dt(), ts_offset(days=1), Granularity.HOURLY)
        assert len(res.breakdown) == 24
        assert all(e.consumption == 0 for e in res.breakdown)
        assert res.total == 0
        assert res.average == 0
        assert res.peak == 0
        assert res.min == 0
        assert res.data_points == 0

    def test_half_open_period(self):
        readings = [
            make_reading(timestamp=dt(), consumption_kwh=1.0),
            make_reading(timestamp=ts_offset(days=1), consumption_kwh=9.0),
        ]
        res = aggregate(readings, dt(), ts_offset(days=1), Granularity.DAILY)
        assert res.total == pytest.approx(1.0)
        assert res.data_points == 1

    def test_bucket_boundary_goes_to_later_bucket(self):
        readings = [make_reading(timestamp=ts_offset(hours=1), consumption_kwh=2.0)]
        res = aggregate(readings, dt(), ts_offset(hours=2), Granularity.HOURLY)
        assert res.breakdown[0].consumption == 0
        assert res.breakdown[1].consumption == pytest.approx(2.0)

    def test_unordered_input(self):
        readings = list(reversed(make_series([1.0, 2.0, 3.0])))
        res = aggregate(readings, dt(), ts_offset(hours=3), Granularity.HOURLY)
        assert [e.consumption for e in res.breakdown] == [1.0, 2.0, 3.0]


# ═══════════════════════════════════════════════════════════════════════════
#  compute_stats / compare_periods / filter_scope
# ═══════════════════════════════════════════════════════════════════════════


class TestComputeStats:
    def test_unbounded_takes_period_from_data(self):
        readings = make_series([1.0, 2.0, 3.0])
        stats = compute_stats(readings)
        assert stats.total == pytest.approx(6.0)
        assert stats.period_start == dt()
        assert stats.period_end == ts_offset(hours=2)

    def test_bounded(self):
        readings = make_series([1.0, 2.0, 3.0])
        stats = compute_stats(readings, ts_offset(hours=1), ts_offset(hours=2))
        assert stats.total == pytest.approx(2.0)
        assert stats.data_points == 1

    def test_empty(self):
        stats = compute_stats([], dt(), ts_offset(days=1))
        assert stats.total == 0
        assert stats.average == 0

    def test_reversed_rejected(self):
        with pytest.raises(InvalidInputError):
            compute_stats([], ts_offset(days=1), dt())


class TestComparePeriods:
    def test_percentage_difference(self):
        readings = make_series([10.0, 15.0], step_hours=24)
        cmp = compare_periods(
            readings, dt(), ts_offset(days=1), ts_offset(days=1), ts_offset(days=2)
        )
        assert cmp.absolute_difference == pytest.approx(5.0)
        assert cmp.percentage_difference == pytest.approx(50.0)

    def test_zero_base_has_no_percentage(self):
        readings = [make_reading(timestamp=ts_offset(days=1), consumption_kwh=4.0)]
        cmp = compare_periods(
            readings, dt(), ts_offset(days=1), ts_offset(days=1), ts_offset(days=2)
        )
        assert cmp.absolute_difference == pytest.approx(4.0)
        assert cmp.percentage_difference is None


class TestFilterScope:
    @pytest.fixture
    def readings(self):
        return [
            make_reading(device_id="press-01", area_id="line-a", plant_id="plant-north"),
            make_reading(device_id="pump-07", area_id="line-a", plant_id="plant-north"),
            make_reading(device_id="chiller-02", area_id="hall-1", plant_id="plant-south"),
        ]

    def test_by_device(self, readings):
        assert [r.device_id for r in filter_scope(readings, device_id="pump-07")] == ["pump-07"]

    def test_by_area(self, readings):
        assert len(filter_scope(readings, area_id="line-a")) == 2

    def test_by_plant(self, readings):
        assert len(filter_scope(readings, plant_id="plant-south")) == 1

    def test_requires_an_id(self, readings):
        with pytest.raises(InvalidInputError):
            filter_scope(readings)
