"""Anomaly Detector — score readings against the device's own recent history.

For every reading the baseline is the ``lookback_window`` readings of the
same device that precede it (the reading itself is excluded).  A reading
is anomalous when

    |consumption - baseline_mean| > sensitivity_factor * baseline_std_dev + DEVIATION_TOLERANCE

with the *sample* standard deviation.  The tolerance keeps float noise
above a perfectly flat baseline from counting as a deviation.  Readings with fewer than
``MIN_BASELINE`` prior readings cannot be classified and are skipped;
that is a reported outcome, not an error.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Iterable

from src.analytics.stats import RunningStats
from src.contracts.analysis import Anomaly, AnomalyScan
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading

log = logging.getLogger(__name__)

MIN_BASELINE = 2
DEFAULT_LOOKBACK = 30
DEFAULT_SENSITIVITY = 2.0
DEVIATION_TOLERANCE = 1e-9  # kWh


def scan_anomalies(
    device_readings: Iterable[ConsumptionReading],
    lookback_window: int = DEFAULT_LOOKBACK,
    sensitivity_factor: float = DEFAULT_SENSITIVITY,
) -> AnomalyScan:
    """Evaluate every reading and return anomalies plus coverage counters."""
    if lookback_window < MIN_BASELINE:
        raise InvalidInputError(f"lookback_window must be >= {MIN_BASELINE}")
    if sensitivity_factor < 0:
        raise InvalidInputError("sensitivity_factor must be >= 0")

    by_device: dict[str, list[ConsumptionReading]] = defaultdict(list)
    for r in device_readings:
        by_device[r.device_id].append(r)

    scan = AnomalyScan()
    for device_id, readings in by_device.items():
        readings.sort(key=lambda r: r.timestamp)
        history: deque[float] = deque(maxlen=lookback_window)
        for r in readings:
            if len(history) < MIN_BASELINE:
                scan.skipped_insufficient_history += 1
                history.append(r.consumption_kwh)
                continue

            baseline = RunningStats().extend(history)
            scan.evaluated += 1
            anomaly = _score(r, baseline, sensitivity_factor)
            if anomaly is not None:
                scan.anomalies.append(anomaly)
            history.append(r.consumption_kwh)

        log.debug("Device %s: %d readings scanned", device_id, len(readings))

    scan.anomalies.sort(key=lambda a: (a.reading.timestamp, a.reading.device_id))
    log.debug(
        "Anomaly scan: %d flagged, %d evaluated, %d skipped (insufficient history)",
        len(scan.anomalies), scan.evaluated, scan.skipped_insufficient_history,
    )
    return scan


def detect_anomalies(
    device_readings: Iterable[ConsumptionReading],
    lookback_window: int = DEFAULT_LOOKBACK,
    sensitivity_factor: float = DEFAULT_SENSITIVITY,
) -> list[Anomaly]:
    """Return only the flagged readings, ordered by timestamp."""
    return scan_anomalies(device_readings, lookback_window, sensitivity_factor).anomalies


def format_anomaly_message(
    reading: ConsumptionReading,
    baseline_mean: float,
    baseline_std_dev: float,
    baseline_size: int,
    sensitivity_factor: float,
) -> str:
    """Human-readable explanation built only from the returned values."""
    deviation = abs(reading.consumption_kwh - baseline_mean)
    direction = "above" if reading.consumption_kwh >= baseline_mean else "below"
    return (
        f"Device {reading.device_id}: {reading.consumption_kwh:.2f} kWh at "
        f"{reading.timestamp.strftime('%Y-%m-%dT%H:%M:%SZ')} is {deviation:.2f} kWh "
        f"{direction} the mean of the previous {baseline_size} readings "
        f"({baseline_mean:.2f} kWh, std dev {baseline_std_dev:.2f}, "
        f"limit {sensitivity_factor:g} x std dev)"
    )


def _score(
    reading: ConsumptionReading,
    baseline: RunningStats,
    sensitivity_factor: float,
) -> Anomaly | None:
    mean = baseline.mean
    std = baseline.std_dev
    deviation = abs(reading.consumption_kwh - mean)
    if deviation <= sensitivity_factor * std + DEVIATION_TOLERANCE:
        return None
    return Anomaly(
        reading=reading,
        baseline_mean=mean,
        baseline_std_dev=std,
        baseline_size=baseline.count,
        deviation=deviation,
        z_score=deviation / std if std > 0 else None,
        direction="above" if reading.consumption_kwh >= mean else "below",
        sensitivity_factor=sensitivity_factor,
        message=format_anomaly_message(
            reading, mean, std, baseline.count, sensitivity_factor
        ),
    )
