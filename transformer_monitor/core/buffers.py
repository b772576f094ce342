from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple


@dataclass(frozen=True)
class SeriesPoint:
    timestamp_ms: int
    value: float


class SeriesBuffer:
    """Thread-safe capped series of chart points; oldest points drop first.
    """

    def __init__(self, capacity: int) -> None:
        self._buffer: Deque[SeriesPoint] = deque(maxlen=capacity)
        self._lock = threading.RLock()

    def add(self, value: float, timestamp_ms: int) -> None:
        with self._lock:
            self._buffer.append(SeriesPoint(timestamp_ms=timestamp_ms, value=value))

    def size(self) -> int:
        with self._lock:
            return len(self._buffer)

    def snapshot(self) -> Tuple[SeriesPoint, ...]:
        with self._lock:
            return tuple(self._buffer)

    def latest(self) -> Optional[SeriesPoint]:
        with self._lock:
            return self._buffer[-1] if self._buffer else None

    def get_window(self, start_ms: int, end_ms: Optional[int] = None) -> List[SeriesPoint]:
        with self._lock:
            return [
                p for p in self._buffer
                if start_ms <= p.timestamp_ms and (end_ms is None or p.timestamp_ms <= end_ms)
            ]
