from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .buffers import SeriesBuffer, SeriesPoint
from .models import AnomalyKind, EntityId, Metric, SmoothedSample


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UIState:
    selected_entity: Optional[EntityId] = None
    voltage_series: Tuple[SeriesPoint, ...] = ()
    current_series: Tuple[SeriesPoint, ...] = ()
    temperature_series: Tuple[SeriesPoint, ...] = ()
    load_series: Tuple[SeriesPoint, ...] = ()
    last_anomaly: AnomalyKind = AnomalyKind.NONE
    running: bool = False
    entity_ids: Tuple[EntityId, ...] = ()

    def series(self, metric: Metric) -> Tuple[SeriesPoint, ...]:
        return {
            Metric.VOLTAGE: self.voltage_series,
            Metric.CURRENT: self.current_series,
            Metric.TEMPERATURE: self.temperature_series,
            Metric.LOAD: self.load_series,
        }[metric]


Subscriber = Callable[[UIState], None]


@dataclass
class _EntityHistory:
    series: Dict[Metric, SeriesBuffer]
    last_anomaly: AnomalyKind = AnomalyKind.NONE


class StateStore:
    """Holds the UI snapshot and replaces it atomically on every update.

    Only samples for the selected entity are projected. Each entity keeps its
    own chart history, so reselecting an entity resumes its series where it
    left off. Subscribers are called with the new snapshot, under the store
    lock, in update order.
    """

    def __init__(self, series_cap: int = 256) -> None:
        self.series_cap = series_cap
        self._lock = threading.RLock()
        self._state = UIState()
        self._history: Dict[EntityId, _EntityHistory] = {}
        self._subscribers: List[Subscriber] = []

    # ───────────────────────────── reads ─────────────────────────────
    def snapshot(self) -> UIState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.snapshot().running

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    # ───────────────────────────── writes ─────────────────────────────
    def mark_running(self, entity_ids: Iterable[EntityId]) -> None:
        ids = tuple(entity_ids)
        with self._lock:
            st = self._state
            selected = st.selected_entity if st.selected_entity in ids else (ids[0] if ids else None)
            self._replace(self._project(replace(st, running=True, entity_ids=ids), selected))

    def mark_stopped(self) -> None:
        with self._lock:
            self._replace(replace(self._state, running=False))

    def select_entity(self, entity_id: EntityId) -> bool:
        with self._lock:
            st = self._state
            if entity_id not in st.entity_ids:
                logger.warning("ignoring selection of unknown entity", extra={"entity_id": entity_id})
                return False
            if entity_id != st.selected_entity:
                self._replace(self._project(st, entity_id))
            return True

    def on_sample(self, sample: SmoothedSample) -> bool:
        """Project ``sample`` if it belongs to the selected entity."""
        entity_id = sample.raw.entity_id
        with self._lock:
            st = self._state
            if entity_id != st.selected_entity:
                return False
            hist = self._history_for(entity_id)
            for metric, buf in hist.series.items():
                buf.add(sample.metric_value(metric), sample.raw.timestamp_ms)
            hist.last_anomaly = sample.anomaly
            self._replace(self._project(st, entity_id))
            return True

    # ───────────────────────────── internals ─────────────────────────────
    def _history_for(self, entity_id: EntityId) -> _EntityHistory:
        hist = self._history.get(entity_id)
        if hist is None:
            hist = _EntityHistory(series={m: SeriesBuffer(self.series_cap) for m in Metric})
            self._history[entity_id] = hist
        return hist

    def _project(self, st: UIState, entity_id: Optional[EntityId]) -> UIState:
        hist = self._history.get(entity_id) if entity_id is not None else None
        if hist is None:
            return replace(
                st,
                selected_entity=entity_id,
                voltage_series=(),
                current_series=(),
                temperature_series=(),
                load_series=(),
                last_anomaly=AnomalyKind.NONE,
            )
        return replace(
            st,
            selected_entity=entity_id,
            voltage_series=hist.series[Metric.VOLTAGE].snapshot(),
            current_series=hist.series[Metric.CURRENT].snapshot(),
            temperature_series=hist.series[Metric.TEMPERATURE].snapshot(),
            load_series=hist.series[Metric.LOAD].snapshot(),
            last_anomaly=hist.last_anomaly,
        )

    def _replace(self, new_state: UIState) -> None:
        self._state = new_state
        for cb in list(self._subscribers):
            try:
                cb(new_state)
            except Exception:  # noqa: BLE001
                logger.exception("state subscriber failed")
