"""Tariff schedule and cost-calculation contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.contracts.enums import TariffFlag
from src.contracts.errors import InvalidInputError

COST_CSV_COLUMNS = [
    "site",
    "period_start",
    "period_end",
    "consumption_kwh",
    "regular_kwh",
    "peak_kwh",
    "regular_cost",
    "peak_cost",
    "flag_cost",
    "total_cost",
    "current_flag",
]


@dataclass(frozen=True, slots=True)
class FlagValues:
    """Per-kWh surcharge for each tariff flag level."""

    green: float = 0.0
    yellow: float = 0.0
    red1: float = 0.0
    red2: float = 0.0

    def __post_init__(self) -> None:
        for name in ("green", "yellow", "red1", "red2"):
            if getattr(self, name) < 0:
                raise InvalidInputError(f"Flag value '{name}' must be >= 0")

    def value_for(self, flag: TariffFlag) -> float:
        match flag:
            case TariffFlag.GREEN:
                return self.green
            case TariffFlag.YELLOW:
                return self.yellow
            case TariffFlag.RED_1:
                return self.red1
            case TariffFlag.RED_2:
                return self.red2


@dataclass(frozen=True, slots=True)
class TariffSchedule:
    """Active tariff of an energy company for a site.

    ``peak_start``/``peak_end`` are local clock times in ``timezone`` and
    may wrap past midnight (e.g. 22:00 → 06:00).
    """

    base_tariff_per_kwh: float
    peak_tariff_per_kwh: float | None = None
    peak_start: time | None = None
    peak_end: time | None = None
    flag_values: FlagValues = FlagValues()
    current_flag: TariffFlag = TariffFlag.GREEN
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if self.base_tariff_per_kwh < 0:
            raise InvalidInputError("base_tariff_per_kwh must be >= 0")
        if self.peak_tariff_per_kwh is not None and self.peak_tariff_per_kwh < 0:
            raise InvalidInputError("peak_tariff_per_kwh must be >= 0")
        has_tariff = self.peak_tariff_per_kwh is not None
        has_window = self.peak_start is not None and self.peak_end is not None
        partial_window = (self.peak_start is None) != (self.peak_end is None)
        if partial_window or has_tariff != has_window:
            raise InvalidInputError(
                "peak_tariff_per_kwh, peak_start and peak_end must be set together"
            )
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise InvalidInputError(f"Unknown timezone: {self.timezone!r}") from exc

    @property
    def has_peak(self) -> bool:
        return self.peak_tariff_per_kwh is not None

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def current_flag_value(self) -> float:
        return self.flag_values.value_for(self.current_flag)


@dataclass(slots=True)
class CostBreakdown:
    regular_consumption: float
    peak_consumption: float
    regular_cost: float
    peak_cost: float
    flag_cost: float


@dataclass(slots=True)
class TariffInfo:
    """Tariff values a bill was computed with, kept for auditing."""

    base_tariff: float
    peak_tariff: float | None
    current_flag: TariffFlag
    flag_value: float


@dataclass(slots=True)
class ConsumptionCostCalculation:
    """Cost of a consumption quantity under a tariff schedule.

    Invariant
    ─────────
      total_cost = breakdown.regular_cost + breakdown.peak_cost + flag_cost
      base_cost  = breakdown.regular_cost
    """

    consumption: float
    base_cost: float
    peak_cost: float
    flag_cost: float
    total_cost: float
    breakdown: CostBreakdown
    tariff_info: TariffInfo
    period_start: datetime | None = None
    period_end: datetime | None = None
    peak_fraction: float = 0.0

    def to_csv_row(self, site: str = "") -> str:
        b = self.breakdown
        vals = [
            site,
            self.period_start.isoformat() if self.period_start else "",
            self.period_end.isoformat() if self.period_end else "",
            f"{self.consumption:.4f}",
            f"{b.regular_consumption:.4f}",
            f"{b.peak_consumption:.4f}",
            f"{b.regular_cost:.4f}",
            f"{b.peak_cost:.4f}",
            f"{b.flag_cost:.4f}",
            f"{self.total_cost:.4f}",
            self.tariff_info.current_flag.value,
        ]
        return ",".join(vals)

    @staticmethod
    def csv_header() -> str:
        return ",".join(COST_CSV_COLUMNS)


@dataclass(slots=True)
class PeakTimeInfo:
    has_peak_time: bool
    peak_start: time | None
    peak_end: time | None
    is_peak_time: bool  # whether the checked instant is inside the window


@dataclass(slots=True)
class MonthlyCostEstimate:
    daily_cost: float
    monthly_cost: float  # 30 days
    annual_cost: float   # 365 days
