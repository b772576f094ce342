from __future__ import annotations

import math

import pytest

from transformer_monitor.core.models import AnomalyKind, Measurement
from transformer_monitor.core.smoothing import RollingWindow, SmoothingEngine


def reading(entity_id: str, ts: int, voltage: float, current: float = 100.0, temperature: float = 50.0) -> Measurement:
    return Measurement(
        entity_id=entity_id,
        timestamp_ms=ts,
        voltage_kv=voltage,
        current_amps=current,
        temperature_c=temperature,
        load_factor=0.5,
    )


def test_smoothed_value_is_mean_of_last_w() -> None:
    engine = SmoothingEngine(window_size=3)
    voltages = [8.0, 9.0, 10.0, 11.0, 12.0]
    results = [engine.process(reading("A", i, v, current=10 * v)) for i, v in enumerate(voltages)]
    for n, sample in enumerate(results, start=1):
        window = voltages[max(0, n - 3):n]
        assert sample.smoothed_voltage_kv == pytest.approx(sum(window) / len(window))
        assert sample.smoothed_current_amps == pytest.approx(10 * sum(window) / len(window))
    assert len(engine.window("A")) == 3


def test_window_never_exceeds_capacity() -> None:
    win = RollingWindow(size=6)
    for i in range(20):
        win.append(reading("A", i, 10.0))
        assert len(win) <= 6
    assert len(win) == 6


def test_windows_are_per_entity() -> None:
    engine = SmoothingEngine(window_size=6)
    engine.process(reading("A", 0, 8.0))
    engine.process(reading("A", 1, 10.0))
    b = engine.process(reading("B", 0, 14.0))
    assert b.smoothed_voltage_kv == pytest.approx(14.0)
    assert sorted(engine.entities()) == ["A", "B"]
    assert len(engine.window("A")) == 2
    assert engine.window("C") is None


def test_anomaly_uses_raw_not_smoothed() -> None:
    engine = SmoothingEngine(window_size=6)
    for i in range(5):
        engine.process(reading("A", i, 10.0))
    spike = engine.process(reading("A", 5, 17.0))
    # Mean stays inside the band but the raw reading is a spike
    assert spike.smoothed_voltage_kv < 16.5
    assert spike.anomaly is AnomalyKind.VOLTAGE_SPIKE
    assert spike.raw.voltage_kv == 17.0


def test_nan_propagates() -> None:
    engine = SmoothingEngine(window_size=2)
    sample = engine.process(reading("A", 0, float("nan")))
    assert math.isnan(sample.smoothed_voltage_kv)


def test_invalid_window_size() -> None:
    with pytest.raises(ValueError):
        RollingWindow(0)
