"""Value contracts shared by the analytics core and the batch runner."""

from src.contracts.alert import AlertConfiguration, AlertEvaluationResult, AlertScope
from src.contracts.analysis import (
    Anomaly,
    AnomalyScan,
    BreakdownEntry,
    ConsumptionAnalysisResult,
    ConsumptionProjection,
    ConsumptionStats,
    PeriodComparison,
)
from src.contracts.enums import (
    AlertSeverity,
    AlertType,
    ComparisonType,
    Confidence,
    ConsumptionSource,
    Granularity,
    ScopeLevel,
    SimulationType,
    TariffFlag,
    TimeWindow,
)
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading
from src.contracts.simulation import (
    AccuracyAnalysis,
    AutoSimulation,
    ScopeAccuracy,
    SimulationRecord,
)
from src.contracts.tariff import (
    ConsumptionCostCalculation,
    CostBreakdown,
    FlagValues,
    MonthlyCostEstimate,
    PeakTimeInfo,
    TariffInfo,
    TariffSchedule,
)

__all__ = [
    "AccuracyAnalysis",
    "AlertConfiguration",
    "AlertEvaluationResult",
    "AlertScope",
    "AlertSeverity",
    "AlertType",
    "Anomaly",
    "AnomalyScan",
    "AutoSimulation",
    "BreakdownEntry",
    "ComparisonType",
    "Confidence",
    "ConsumptionAnalysisResult",
    "ConsumptionCostCalculation",
    "ConsumptionProjection",
    "ConsumptionReading",
    "ConsumptionSource",
    "ConsumptionStats",
    "CostBreakdown",
    "FlagValues",
    "Granularity",
    "InvalidInputError",
    "MonthlyCostEstimate",
    "PeakTimeInfo",
    "PeriodComparison",
    "ScopeAccuracy",
    "ScopeLevel",
    "SimulationRecord",
    "SimulationType",
    "TariffFlag",
    "TariffInfo",
    "TariffSchedule",
    "TimeWindow",
]
