from __future__ import annotations

from typing import Dict, Optional

from ..config import Thresholds
from .models import AnomalyKind, Measurement


_DEFAULT_THRESHOLDS = Thresholds()

_LABELS: Dict[AnomalyKind, str] = {
    AnomalyKind.NONE: "stable",
    AnomalyKind.VOLTAGE_SPIKE: "voltage spike",
    AnomalyKind.OVERCURRENT: "overcurrent",
    AnomalyKind.OVERHEAT: "overheat",
    AnomalyKind.UNDERLOAD: "underload",
    AnomalyKind.OVERLOAD: "overload",
}


def classify(m: Measurement, thresholds: Optional[Thresholds] = None) -> AnomalyKind:
    """Classify a raw measurement; the first matching rule wins.

    Rules are checked in priority order: voltage band, overcurrent, overheat,
    underload, overload. A reading breaching both the voltage band and the
    current limit is therefore a voltage spike. NaN fails every comparison and
    falls through to ``NONE``.
    """
    th = thresholds or _DEFAULT_THRESHOLDS
    if m.voltage_kv < th.voltage_low_kv or m.voltage_kv > th.voltage_high_kv:
        return AnomalyKind.VOLTAGE_SPIKE
    if m.current_amps > th.overcurrent_amps:
        return AnomalyKind.OVERCURRENT
    if m.temperature_c > th.overheat_c:
        return AnomalyKind.OVERHEAT
    if m.load_factor < th.underload:
        return AnomalyKind.UNDERLOAD
    if m.load_factor > th.overload:
        return AnomalyKind.OVERLOAD
    return AnomalyKind.NONE


def describe(kind: AnomalyKind) -> str:
    return _LABELS[kind]
