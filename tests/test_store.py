from __future__ import annotations

from typing import List

from transformer_monitor.core.models import AnomalyKind, Measurement, Metric, SmoothedSample
from transformer_monitor.core.store import StateStore, UIState


def make_sample(entity_id: str, ts: int, anomaly: AnomalyKind = AnomalyKind.NONE) -> SmoothedSample:
    raw = Measurement(entity_id, ts, 10.0 + ts, 150.0, 45.0, 0.6)
    return SmoothedSample(
        raw=raw,
        smoothed_voltage_kv=9.0 + ts,
        smoothed_current_amps=140.0,
        smoothed_temperature_c=44.0,
        anomaly=anomaly,
    )


def test_initial_state_not_running() -> None:
    snap = StateStore().snapshot()
    assert snap == UIState()
    assert snap.running is False
    assert snap.selected_entity is None
    assert snap.voltage_series == ()


def test_first_entity_selected_by_default() -> None:
    store = StateStore()
    store.mark_running(["A", "B"])
    snap = store.snapshot()
    assert snap.running is True
    assert snap.selected_entity == "A"
    assert snap.entity_ids == ("A", "B")


def test_one_sample_one_point_per_metric() -> None:
    store = StateStore()
    store.mark_running(["A", "B"])
    assert store.on_sample(make_sample("A", 0)) is True
    assert store.on_sample(make_sample("B", 0)) is False
    snap = store.snapshot()
    for metric in Metric:
        assert len(snap.series(metric)) == 1
    assert snap.voltage_series[0].value == 9.0
    # Load is charted from the raw reading, the others from smoothed values
    assert snap.load_series[0].value == 0.6
    assert snap.current_series[0].value == 140.0


def test_switching_entity_redirects_projection() -> None:
    store = StateStore()
    store.mark_running(["A", "B"])
    for ts in range(3):
        store.on_sample(make_sample("A", ts))
    assert store.select_entity("B") is True
    snap = store.snapshot()
    assert snap.selected_entity == "B"
    assert snap.voltage_series == ()

    assert store.on_sample(make_sample("A", 3)) is False
    assert store.on_sample(make_sample("B", 3)) is True
    snap = store.snapshot()
    assert [p.timestamp_ms for p in snap.voltage_series] == [3]


def test_reselecting_resumes_history() -> None:
    store = StateStore()
    store.mark_running(["A", "B"])
    store.on_sample(make_sample("A", 0, AnomalyKind.OVERHEAT))
    store.on_sample(make_sample("A", 1, AnomalyKind.OVERLOAD))
    store.select_entity("B")
    assert store.snapshot().last_anomaly is AnomalyKind.NONE
    store.select_entity("A")
    store.on_sample(make_sample("A", 5))
    snap = store.snapshot()
    assert [p.timestamp_ms for p in snap.voltage_series] == [0, 1, 5]
    assert snap.last_anomaly is AnomalyKind.NONE


def test_last_anomaly_follows_latest_sample() -> None:
    store = StateStore()
    store.mark_running(["A"])
    store.on_sample(make_sample("A", 0, AnomalyKind.OVERCURRENT))
    assert store.snapshot().last_anomaly is AnomalyKind.OVERCURRENT
    store.select_entity("A")
    assert store.snapshot().last_anomaly is AnomalyKind.OVERCURRENT


def test_series_capped_oldest_dropped_first() -> None:
    store = StateStore(series_cap=5)
    store.mark_running(["A"])
    for ts in range(12):
        store.on_sample(make_sample("A", ts))
    snap = store.snapshot()
    for metric in Metric:
        assert len(snap.series(metric)) == 5
    assert [p.timestamp_ms for p in snap.voltage_series] == [7, 8, 9, 10, 11]


def test_unknown_entity_selection_is_noop() -> None:
    store = StateStore()
    store.mark_running(["A"])
    before = store.snapshot()
    assert store.select_entity("Z") is False
    assert store.snapshot() is before


def test_subscribers_receive_each_snapshot() -> None:
    store = StateStore()
    seen: List[UIState] = []
    unsubscribe = store.subscribe(seen.append)
    store.mark_running(["A", "B"])
    store.on_sample(make_sample("A", 0))
    store.on_sample(make_sample("B", 0))  # not projected, no notification
    store.select_entity("B")
    assert [s.selected_entity for s in seen] == ["A", "A", "B"]
    assert seen[-1] is store.snapshot()
    unsubscribe()
    store.select_entity("A")
    assert len(seen) == 3
    unsubscribe()


def test_failing_subscriber_does_not_block_others() -> None:
    store = StateStore()
    seen: List[UIState] = []

    def broken(_: UIState) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(seen.append)
    store.mark_running(["A"])
    assert len(seen) == 1
    assert store.snapshot().running is True


def test_stop_keeps_history() -> None:
    store = StateStore()
    store.mark_running(["A"])
    store.on_sample(make_sample("A", 0))
    store.mark_stopped()
    snap = store.snapshot()
    assert snap.running is False
    assert len(snap.voltage_series) == 1
    store.mark_running(["A"])
    assert store.snapshot().selected_entity == "A"
    assert len(store.snapshot().voltage_series) == 1
