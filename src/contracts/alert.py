"""Alert configuration and evaluation result contracts."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass

from src.contracts.enums import (
    AlertSeverity,
    AlertType,
    ComparisonType,
    ScopeLevel,
    TimeWindow,
)
from src.contracts.errors import InvalidInputError

ALERT_RESULT_CSV_COLUMNS = [
    "alert_id",
    "should_trigger",
    "current_value",
    "threshold",
    "comparison_type",
    "message",
]


@dataclass(frozen=True, slots=True)
class AlertScope:
    """Entity an alert is attached to — exactly one level is set."""

    plant_id: str | None = None
    area_id: str | None = None
    device_id: str | None = None

    def __post_init__(self) -> None:
        ids = [i for i in (self.plant_id, self.area_id, self.device_id) if i]
        if len(ids) != 1:
            raise InvalidInputError(
                "Alert scope must reference exactly one of plant_id, area_id, device_id"
            )

    @property
    def level(self) -> ScopeLevel:
        if self.plant_id:
            return ScopeLevel.PLANT
        if self.area_id:
            return ScopeLevel.AREA
        return ScopeLevel.DEVICE

    @property
    def entity_id(self) -> str:
        return self.plant_id or self.area_id or self.device_id or ""


@dataclass(frozen=True, slots=True)
class AlertConfiguration:
    """User-defined alert rule as supplied by the alert-configuration store."""

    alert_id: str
    type: AlertType
    threshold: float | None
    comparison_type: ComparisonType | None
    scope: AlertScope
    time_window: TimeWindow | None = None
    is_active: bool = True
    severity: AlertSeverity = AlertSeverity.WARNING


@dataclass(slots=True)
class AlertEvaluationResult:
    """Decision for one configuration; not persisted by the core."""

    should_trigger: bool
    current_value: float
    threshold: float
    comparison_type: ComparisonType
    message: str
    alert_id: str = ""

    def to_csv_row(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            [
                self.alert_id,
                "true" if self.should_trigger else "false",
                f"{self.current_value:.4f}",
                f"{self.threshold:.4f}",
                self.comparison_type.value,
                self.message,
            ]
        )
        return buf.getvalue().rstrip("\r\n")

    @staticmethod
    def csv_header() -> str:
        return ",".join(ALERT_RESULT_CSV_COLUMNS)
