"""Canonical enumerations shared by the contracts and the analytics core."""

from __future__ import annotations

from enum import Enum


class TariffFlag(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED_1 = "red1"
    RED_2 = "red2"


class ComparisonType(str, Enum):
    GT = "greater_than"
    GTE = "greater_equal"
    LT = "less_than"
    LTE = "less_equal"
    EQ = "equal"
    NE = "not_equal"


class AlertType(str, Enum):
    CONSUMPTION_THRESHOLD = "consumption_threshold"
    CONSUMPTION_ANOMALY = "consumption_anomaly"
    DEVICE_OFFLINE = "device_offline"
    COST_THRESHOLD = "cost_threshold"
    PEAK_TIME_ALERT = "peak_time_alert"
    FLAG_CHANGE = "flag_change"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class TimeWindow(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Granularity(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ScopeLevel(str, Enum):
    PLANT = "plant"
    AREA = "area"
    DEVICE = "device"


class SimulationType(str, Enum):
    CONSUMPTION_PROJECTION = "consumption_projection"
    COST_ESTIMATION = "cost_estimation"
    SCENARIO_COMPARISON = "scenario_comparison"
    COST_BENEFIT_ANALYSIS = "cost_benefit_analysis"
    WHAT_IF_ANALYSIS = "what_if_analysis"


class ConsumptionSource(str, Enum):
    MANUAL = "MANUAL"
    IOT = "IOT"
    MODBUS = "MODBUS"
    ETHERNET_IP = "ETHERNET_IP"
    PROFIBUS = "PROFIBUS"
    MQTT = "MQTT"
    OPC_UA = "OPC_UA"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
