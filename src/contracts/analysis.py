"""Outputs of the statistics, anomaly and projection engines."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime

from src.contracts.enums import Confidence
from src.contracts.reading import ConsumptionReading

STATS_CSV_COLUMNS = [
    "scope_id",
    "period_start",
    "period_end",
    "total_kwh",
    "average_kwh",
    "peak_kwh",
    "min_kwh",
    "data_points",
]

ANOMALY_CSV_COLUMNS = [
    "device_id",
    "timestamp",
    "consumption_kwh",
    "baseline_mean",
    "baseline_std_dev",
    "baseline_size",
    "deviation",
    "z_score",
    "direction",
    "message",
]


@dataclass(slots=True)
class BreakdownEntry:
    timestamp: datetime  # bucket start
    consumption: float


@dataclass(slots=True)
class ConsumptionStats:
    """Aggregate numbers over ``[period_start, period_end)``."""

    total: float
    average: float
    peak: float
    min: float
    data_points: int
    period_start: datetime | None = None
    period_end: datetime | None = None

    def to_csv_row(self, scope_id: str = "") -> str:
        vals = [
            scope_id,
            self.period_start.isoformat() if self.period_start else "",
            self.period_end.isoformat() if self.period_end else "",
            f"{self.total:.4f}",
            f"{self.average:.4f}",
            f"{self.peak:.4f}",
            f"{self.min:.4f}",
            str(self.data_points),
        ]
        return ",".join(vals)

    @staticmethod
    def csv_header() -> str:
        return ",".join(STATS_CSV_COLUMNS)


@dataclass(slots=True)
class ConsumptionAnalysisResult:
    """Stats plus a time-bucketed breakdown of the period."""

    period_start: datetime
    period_end: datetime
    total: float
    average: float
    peak: float
    min: float
    data_points: int
    granularity: str
    breakdown: list[BreakdownEntry] = field(default_factory=list)

    @property
    def stats(self) -> ConsumptionStats:
        return ConsumptionStats(
            total=self.total,
            average=self.average,
            peak=self.peak,
            min=self.min,
            data_points=self.data_points,
            period_start=self.period_start,
            period_end=self.period_end,
        )


@dataclass(slots=True)
class PeriodComparison:
    period1: ConsumptionStats
    period2: ConsumptionStats
    absolute_difference: float
    percentage_difference: float | None  # None when period1 total is 0


@dataclass(slots=True)
class Anomaly:
    """A flagged reading with the baseline that justified the flag."""

    reading: ConsumptionReading
    baseline_mean: float
    baseline_std_dev: float
    baseline_size: int
    deviation: float           # |consumption - baseline_mean|
    z_score: float | None      # None when baseline_std_dev == 0
    direction: str             # above | below
    sensitivity_factor: float
    message: str

    def to_csv_row(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            [
                self.reading.device_id,
                self.reading.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
                f"{self.reading.consumption_kwh:.4f}",
                f"{self.baseline_mean:.4f}",
                f"{self.baseline_std_dev:.4f}",
                str(self.baseline_size),
                f"{self.deviation:.4f}",
                "" if self.z_score is None else f"{self.z_score:.3f}",
                self.direction,
                self.message,
            ]
        )
        return buf.getvalue().rstrip("\r\n")

    @staticmethod
    def csv_header() -> str:
        return ",".join(ANOMALY_CSV_COLUMNS)


@dataclass(slots=True)
class AnomalyScan:
    anomalies: list[Anomaly] = field(default_factory=list)
    evaluated: int = 0
    skipped_insufficient_history: int = 0

    @property
    def insufficient_data(self) -> bool:
        """True when no reading had enough history to be classified."""
        return self.evaluated == 0


@dataclass(slots=True)
class ConsumptionProjection:
    average_daily_usage: float
    horizon_days: float
    projected_total: float
    history_start: datetime | None
    history_end: datetime | None
    history_days: int
    distinct_days: int
    data_points: int
    confidence: Confidence
    insufficient_history: bool
