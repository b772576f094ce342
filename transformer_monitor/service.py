from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Sequence

from .config import RuntimeConfig
from .core.models import EntityId
from .core.pipeline import Pipeline
from .core.router import RouterStats, StreamRouter
from .core.smoothing import SmoothingEngine
from .core.store import StateStore, Subscriber, UIState
from .core.tracker import EntityStats, FleetTracker
from .data.generator import TelemetryGenerator


logger = logging.getLogger(__name__)


class MonitoringService:
    """Wires generators, router, smoothing engine, store and tracker together.

    This is the surface the presentation layer talks to: ``start``,
    ``select_entity``, ``subscribe`` and ``snapshot``. ``stop`` cancels every
    generator, lets the drain thread finish the backlog and returns the store
    to the not-running state; a later ``start`` builds a fresh pipeline whose
    timestamps continue after the last ones emitted per entity.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        store: Optional[StateStore] = None,
        tracker: Optional[FleetTracker] = None,
    ) -> None:
        self.config = config or RuntimeConfig()
        self.store = store or StateStore(series_cap=self.config.series_cap)
        self.tracker = tracker or FleetTracker()
        self._lock = threading.Lock()
        self._router: Optional[StreamRouter] = None
        self._generator: Optional[TelemetryGenerator] = None
        self._pipeline: Optional[Pipeline] = None
        self._resume_ms: Dict[EntityId, int] = {}

    @property
    def running(self) -> bool:
        return self.store.running

    def start(self, entity_ids: Optional[Sequence[EntityId]] = None, seed: Optional[int] = None) -> bool:
        """Begin generation and processing; a no-op returning False when already running."""
        with self._lock:
            if self.store.running:
                return False
            ids = list(entity_ids) if entity_ids is not None else list(self.config.entity_ids)
            if not ids:
                raise ValueError("at least one entity id is required")
            if len(set(ids)) != len(ids):
                raise ValueError("entity ids must be unique")
            router = StreamRouter(self.config.router_capacity)
            engine = SmoothingEngine(self.config.window_size, self.config.thresholds)
            pipeline = Pipeline(router, engine, sinks=[self.store.on_sample, self.tracker.record])
            generator = TelemetryGenerator(self.config, router)

            # Mark running first so the earliest samples find a selected entity
            self.store.mark_running(ids)
            pipeline.start()
            generator.start(ids, seed, resume_after_ms=self._resume_ms)
            self._router, self._pipeline, self._generator = router, pipeline, generator
            logger.info("monitoring started", extra={"entity_ids": ids})
            return True

    def stop(self) -> None:
        with self._lock:
            if self._generator is not None:
                self._generator.stop()
                self._resume_ms.update(self._generator.last_timestamps())
            if self._pipeline is not None:
                self._pipeline.stop()
            self._generator = None
            self._pipeline = None
            if self.store.running:
                self.store.mark_stopped()
                logger.info("monitoring stopped")

    def select_entity(self, entity_id: EntityId) -> bool:
        return self.store.select_entity(entity_id)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.store.subscribe(callback)

    def snapshot(self) -> UIState:
        return self.store.snapshot()

    def fleet_stats(self) -> Dict[EntityId, EntityStats]:
        return self.tracker.stats()

    def router_stats(self) -> RouterStats:
        return self._router.stats() if self._router is not None else RouterStats()
