from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Sequence

from .models import Measurement, SmoothedSample
from .router import StreamRouter
from .smoothing import SmoothingEngine


logger = logging.getLogger(__name__)

SampleSink = Callable[[SmoothedSample], object]


class Pipeline:
    """Drains the router into the smoothing engine and fans samples out to sinks.
    """

    def __init__(
        self,
        router: StreamRouter,
        engine: SmoothingEngine,
        sinks: Sequence[SampleSink] = (),
    ) -> None:
        self.router = router
        self.engine = engine
        self.sinks: List[SampleSink] = list(sinks)
        self._thread: Optional[threading.Thread] = None
        self.processed = 0

    def process_one(self, m: Measurement) -> SmoothedSample:
        sample = self.engine.process(m)
        self.processed += 1
        for sink in self.sinks:
            try:
                sink(sample)
            except Exception:  # noqa: BLE001
                logger.exception("sample sink failed", extra={"entity_id": m.entity_id})
        return sample

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="Pipeline", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Close the router and wait for the drain thread to finish the backlog."""
        self.router.close()
        if self._thread:
            self._thread.join(timeout=timeout)

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self) -> None:
        logger.info("pipeline started")
        for m in self.router.consume_all():
            self.process_one(m)
        logger.info("pipeline drained", extra={"processed": self.processed})
