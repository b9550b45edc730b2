"""Simulation record and accuracy contracts."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime

from src.contracts.enums import ScopeLevel, SimulationType, TariffFlag
from src.contracts.reading import as_utc

SIMULATION_CSV_COLUMNS = [
    "simulation_id",
    "scope",
    "scope_id",
    "start_date",
    "end_date",
    "estimated_consumption",
    "estimated_cost",
    "real_consumption",
    "variance_pct",
]


@dataclass(frozen=True, slots=True)
class SimulationRecord:
    """A stored consumption/cost estimate for a future period.

    ``variance`` is derived by ``simulation_accuracy.with_realized`` once the
    real consumption is known; ``None`` means either "not realized yet" or
    "not computable" (zero estimate).
    """

    simulation_id: str
    estimated_consumption: float
    estimated_cost: float
    start_date: datetime
    end_date: datetime
    tariff_used: float
    flag_used: TariffFlag | None = None
    real_consumption: float | None = None
    variance: float | None = None
    scope: ScopeLevel = ScopeLevel.DEVICE
    scope_id: str = ""
    simulation_type: SimulationType = SimulationType.CONSUMPTION_PROJECTION
    average_daily_usage: float | None = None
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_date", as_utc(self.start_date))
        object.__setattr__(self, "end_date", as_utc(self.end_date))

    def to_csv_row(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            [
                self.simulation_id,
                self.scope.value,
                self.scope_id,
                self.start_date.isoformat(),
                self.end_date.isoformat(),
                f"{self.estimated_consumption:.4f}",
                f"{self.estimated_cost:.4f}",
                "" if self.real_consumption is None else f"{self.real_consumption:.4f}",
                # empty cell = not computable / not realized
                "" if self.variance is None else f"{self.variance:.2f}",
            ]
        )
        return buf.getvalue().rstrip("\r\n")

    @staticmethod
    def csv_header() -> str:
        return ",".join(SIMULATION_CSV_COLUMNS)


@dataclass(slots=True)
class AutoSimulation:
    """Simulation derived from historical consumption, with its working."""

    simulation: SimulationRecord
    scope_id: str
    description: str
    period_days: int
    historical_daily_average: float
    adjustment_factor: float
    base_consumption: float
    adjusted_consumption: float
    base_cost: float
    peak_cost: float
    flag_cost: float
    total_cost: float


@dataclass(slots=True)
class ScopeAccuracy:
    scope: ScopeLevel
    average_variance: float | None  # mean |variance|, None when count == 0
    count: int


@dataclass(slots=True)
class AccuracyAnalysis:
    """Accuracy of past simulations against realized consumption."""

    total_simulations: int
    simulations_with_real: int
    not_computable: int
    average_variance: float | None
    accuracy_percentage: float | None
    most_accurate: SimulationRecord | None = None
    least_accurate: SimulationRecord | None = None
    by_scope: list[ScopeAccuracy] = field(default_factory=list)
