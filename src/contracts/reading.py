"""ConsumptionReading — one immutable meter reading for a device."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import UTC, datetime

from src.contracts.enums import ConsumptionSource

# CSV column order used by the batch loader and writers
READING_CSV_COLUMNS: list[str] = [
    "device_id",
    "timestamp",
    "consumption_kwh",
    "voltage",
    "current",
    "power_factor",
    "temperature",
    "source",
    "area_id",
    "plant_id",
]


def as_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class ConsumptionReading:
    """A single consumption reading.  Never mutated after creation."""

    # ── mandatory ──
    device_id: str
    timestamp: datetime     # UTC instant
    consumption_kwh: float

    # ── optional telemetry ──
    voltage: float | None = None
    current: float | None = None
    power_factor: float | None = None
    temperature: float | None = None
    source: ConsumptionSource = ConsumptionSource.IOT

    # ── hierarchy (filled by the reading store) ──
    area_id: str | None = None
    plant_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    # ── serialisation ─────────────────────────────────────────────────────

    def _values(self) -> list[str]:
        vals = []
        for col in READING_CSV_COLUMNS:
            v = getattr(self, col)
            if v is None:
                vals.append("")
            elif col == "timestamp":
                vals.append(v.strftime("%Y-%m-%dT%H:%M:%SZ"))
            elif col == "source":
                vals.append(v.value)
            else:
                vals.append(str(v))
        return vals

    def to_csv_row(self) -> str:
        """Return a single CSV line (no trailing newline)."""
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(self._values())
        return buf.getvalue().rstrip("\r\n")

    def to_json(self) -> str:
        """Return compact JSON string."""
        obj = {
            "device_id": self.device_id,
            "timestamp": self.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "consumption_kwh": self.consumption_kwh,
            "voltage": self.voltage,
            "current": self.current,
            "power_factor": self.power_factor,
            "temperature": self.temperature,
            "source": self.source.value,
            "area_id": self.area_id,
            "plant_id": self.plant_id,
        }
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))

    @staticmethod
    def csv_header() -> str:
        return ",".join(READING_CSV_COLUMNS)
