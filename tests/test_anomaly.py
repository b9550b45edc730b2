"""Tests for src.analytics.anomaly — per-device statistical outliers."""

from __future__ import annotations

import pytest

from src.analytics.anomaly import detect_anomalies, format_anomaly_message, scan_anomalies
from src.contracts.errors import InvalidInputError
from tests.conftest import make_series


class TestScanAnomalies:
    def test_spike_after_flat_history_flagged(self):
        readings = make_series([10.0, 10.0, 10.0, 10.0, 40.0])
        anomalies = detect_anomalies(readings, lookback_window=4, sensitivity_factor=2.0)
        assert len(anomalies) == 1
        a = anomalies[0]
        assert a.reading.consumption_kwh == 40.0
        assert a.baseline_mean == pytest.approx(10.0)
        assert a.baseline_std_dev == 0.0
        assert a.z_score is None
        assert a.direction == "above"

    def test_flat_series_has_no_anomalies(self):
        readings = make_series([5.0] * 10)
        assert detect_anomalies(readings, lookback_window=4) == []

    def test_rounding_noise_over_flat_baseline_not_flagged(self):
        readings = make_series([0.1, 0.1, 0.1, 0.1, 0.1 + 1.1e-16, 0.1 + 1e-6])
        anomalies = detect_anomalies(readings, lookback_window=4, sensitivity_factor=2.0)
        assert [a.reading.consumption_kwh for a in anomalies] == [0.1 + 1e-6]

    def test_within_band_not_flagged(self):
        # mean 10, sample std of [8, 12, 8, 12] ≈ 2.31 → limit ≈ 4.62
        readings = make_series([8.0, 12.0, 8.0, 12.0, 14.0])
        assert detect_anomalies(readings, lookback_window=4, sensitivity_factor=2.0) == []

    def test_drop_is_flagged_below(self):
        readings = make_series([8.0, 12.0, 8.0, 12.0, 0.0])
        anomalies = detect_anomalies(readings, lookback_window=4, sensitivity_factor=2.0)
        assert len(anomalies) == 1
        assert anomalies[0].direction == "below"
        assert anomalies[0].z_score == pytest.approx(10.0 / anomalies[0].baseline_std_dev)

    def test_reading_excluded_from_own_baseline(self):
        readings = make_series([10.0, 10.0, 40.0])
        a = detect_anomalies(readings, lookback_window=30)[0]
        assert a.baseline_size == 2
        assert a.baseline_mean == pytest.approx(10.0)

    def test_lookback_limits_baseline(self):
        readings = make_series([100.0, 100.0, 10.0, 10.0, 10.0, 10.0])
        scan = scan_anomalies(readings, lookback_window=2, sensitivity_factor=2.0)
        # only the first 10.0 is scored against a pure 100 kWh baseline
        assert [a.reading.consumption_kwh for a in scan.anomalies] == [10.0]

    def test_insufficient_history_reported(self):
        scan = scan_anomalies(make_series([1.0]), lookback_window=5)
        assert scan.anomalies == []
        assert scan.evaluated == 0
        assert scan.skipped_insufficient_history == 1
        assert scan.insufficient_data

    def test_empty_input(self):
        scan = scan_anomalies([])
        assert scan.insufficient_data
        assert scan.skipped_insufficient_history == 0

    def test_devices_have_independent_baselines(self):
        a = make_series([10.0, 10.0, 10.0], device_id="press-01")
        b = make_series([50.0, 50.0, 50.0], device_id="pump-07")
        scan = scan_anomalies(a + b, lookback_window=5)
        assert scan.anomalies == []
        assert scan.evaluated == 2
        assert scan.skipped_insufficient_history == 4

    def test_unordered_input_sorted_per_device(self):
        readings = list(reversed(make_series([10.0, 10.0, 10.0, 40.0])))
        anomalies = detect_anomalies(readings, lookback_window=5)
        assert [a.reading.consumption_kwh for a in anomalies] == [40.0]

    def test_invalid_parameters(self):
        with pytest.raises(InvalidInputError):
            scan_anomalies([], lookback_window=1)
        with pytest.raises(InvalidInputError):
            scan_anomalies([], sensitivity_factor=-0.5)


class TestAnomalyMessage:
    def test_message_built_from_values(self):
        reading = make_series([40.0])[0]
        msg = format_anomaly_message(reading, 10.0, 0.0, 4, 2.0)
        assert "press-01" in msg
        assert "40.00 kWh" in msg
        assert "30.00 kWh above" in msg
        assert "previous 4 readings" in msg

    def test_anomaly_carries_message(self):
        a = detect_anomalies(make_series([10.0, 10.0, 10.0, 10.0, 40.0]), lookback_window=4)[0]
        assert a.message == format_anomaly_message(a.reading, 10.0, 0.0, 4, 2.0)


class TestInsufficientHistory:
    def test_first_two_readings_never_flagged(self):
        readings = make_series([1.0, 1000.0])
        scan = scan_anomalies(readings, lookback_window=5, sensitivity_factor=0.0)
        assert scan.anomalies == []
        assert scan.skipped_insufficient_history == 2
