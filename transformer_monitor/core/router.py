from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional

from .models import Measurement


logger = logging.getLogger(__name__)


@dataclass
class RouterStats:
    accepted: int = 0
    dropped: int = 0
    delivered: int = 0


class StreamRouter:
    """Bounded multi-producer, single-consumer queue of measurements.

    ``push`` never blocks: when the buffer is full (or the router is closed)
    the measurement is dropped and counted. Consumers see measurements in
    acceptance order.
    """

    def __init__(self, capacity: int = 64) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._buffer: Deque[Measurement] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._stats = RouterStats()

    def size(self) -> int:
        with self._cond:
            return len(self._buffer)

    def stats(self) -> RouterStats:
        with self._cond:
            return RouterStats(**vars(self._stats))

    def push(self, m: Measurement) -> bool:
        with self._cond:
            if self._closed or len(self._buffer) >= self._capacity:
                self._stats.dropped += 1
                logger.debug(
                    "router dropped measurement",
                    extra={"entity_id": m.entity_id, "timestamp_ms": m.timestamp_ms},
                )
                return False
            self._buffer.append(m)
            self._stats.accepted += 1
            self._cond.notify()
            return True

    def close(self) -> None:
        """Stop accepting measurements; consumers finish once the buffer drains."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def poll(self) -> Optional[Measurement]:
        with self._cond:
            if not self._buffer:
                return None
            self._stats.delivered += 1
            return self._buffer.popleft()

    def consume_all(self) -> Iterator[Measurement]:
        """Yield measurements as they are accepted, until closed and drained."""
        while True:
            with self._cond:
                while not self._buffer and not self._closed:
                    self._cond.wait()
                if not self._buffer:
                    return
                item = self._buffer.popleft()
                self._stats.delivered += 1
            yield item
