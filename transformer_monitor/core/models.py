from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Opaque transformer identifier, unique within a session
EntityId = str


class AnomalyKind(str, Enum):
    NONE = "NONE"
    VOLTAGE_SPIKE = "VOLTAGE_SPIKE"
    OVERCURRENT = "OVERCURRENT"
    OVERHEAT = "OVERHEAT"
    UNDERLOAD = "UNDERLOAD"
    OVERLOAD = "OVERLOAD"


class DeviceKind(str, Enum):
    POWER = "POWER"
    DISTRIBUTION = "DISTRIBUTION"


class Metric(str, Enum):
    VOLTAGE = "voltage"
    CURRENT = "current"
    TEMPERATURE = "temperature"
    LOAD = "load"


@dataclass(frozen=True)
class Measurement:
    entity_id: EntityId
    timestamp_ms: int
    voltage_kv: float
    current_amps: float
    temperature_c: float
    load_factor: float  # 0..1


@dataclass(frozen=True)
class SmoothedSample:
    raw: Measurement
    smoothed_voltage_kv: float
    smoothed_current_amps: float
    smoothed_temperature_c: float
    anomaly: AnomalyKind

    def metric_value(self, metric: Metric) -> float:
        """Value charted for ``metric``: smoothed for electrical/thermal, raw for load."""
        if metric is Metric.VOLTAGE:
            return self.smoothed_voltage_kv
        if metric is Metric.CURRENT:
            return self.smoothed_current_amps
        if metric is Metric.TEMPERATURE:
            return self.smoothed_temperature_c
        return self.raw.load_factor
