from __future__ import annotations

from transformer_monitor.config import Thresholds
from transformer_monitor.core.anomaly import classify, describe
from transformer_monitor.core.models import AnomalyKind, Measurement


def reading(voltage: float = 10.0, current: float = 100.0, temperature: float = 50.0, load: float = 0.5) -> Measurement:
    return Measurement(
        entity_id="TX-1",
        timestamp_ms=0,
        voltage_kv=voltage,
        current_amps=current,
        temperature_c=temperature,
        load_factor=load,
    )


def test_overheat_scenario() -> None:
    assert classify(reading(voltage=10, current=100, temperature=96, load=0.5)) is AnomalyKind.OVERHEAT


def test_voltage_wins_over_current() -> None:
    assert classify(reading(voltage=20, current=400)) is AnomalyKind.VOLTAGE_SPIKE


def test_each_rule() -> None:
    assert classify(reading()) is AnomalyKind.NONE
    assert classify(reading(voltage=6.9)) is AnomalyKind.VOLTAGE_SPIKE
    assert classify(reading(voltage=16.6)) is AnomalyKind.VOLTAGE_SPIKE
    assert classify(reading(current=350.1)) is AnomalyKind.OVERCURRENT
    assert classify(reading(temperature=95.5)) is AnomalyKind.OVERHEAT
    assert classify(reading(load=0.1)) is AnomalyKind.UNDERLOAD
    assert classify(reading(load=0.95)) is AnomalyKind.OVERLOAD


def test_boundaries_are_exclusive() -> None:
    assert classify(reading(voltage=7.0)) is AnomalyKind.NONE
    assert classify(reading(voltage=16.5)) is AnomalyKind.NONE
    assert classify(reading(current=350.0)) is AnomalyKind.NONE
    assert classify(reading(temperature=95.0)) is AnomalyKind.NONE
    assert classify(reading(load=0.2)) is AnomalyKind.NONE
    assert classify(reading(load=0.9)) is AnomalyKind.NONE


def test_priority_order_below_voltage() -> None:
    assert classify(reading(current=360, temperature=100, load=0.95)) is AnomalyKind.OVERCURRENT
    assert classify(reading(temperature=100, load=0.05)) is AnomalyKind.OVERHEAT
    assert classify(reading(load=0.05)) is AnomalyKind.UNDERLOAD


def test_nan_is_not_flagged() -> None:
    assert classify(reading(voltage=float("nan"))) is AnomalyKind.NONE


def test_custom_thresholds() -> None:
    th = Thresholds(overheat_c=60.0)
    assert classify(reading(temperature=61.0), th) is AnomalyKind.OVERHEAT
    assert classify(reading(temperature=61.0)) is AnomalyKind.NONE


def test_describe() -> None:
    assert describe(AnomalyKind.NONE) == "stable"
    assert describe(AnomalyKind.OVERCURRENT) == "overcurrent"
