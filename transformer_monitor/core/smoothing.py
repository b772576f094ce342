from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

import numpy as np

from ..config import Thresholds
from .anomaly import classify
from .models import EntityId, Measurement, SmoothedSample


class RollingWindow:
    """FIFO of the last ``size`` raw measurements for one entity."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("window size must be at least 1")
        self.size = size
        self._items: Deque[Measurement] = deque(maxlen=size)

    def __len__(self) -> int:
        return len(self._items)

    def append(self, m: Measurement) -> None:
        # deque(maxlen) evicts the oldest entry on overflow
        self._items.append(m)

    def means(self) -> Tuple[float, float, float]:
        """Arithmetic mean of voltage, current and temperature over the window."""
        arr = np.array(
            [(m.voltage_kv, m.current_amps, m.temperature_c) for m in self._items],
            dtype=float,
        )
        v, c, t = arr.mean(axis=0)
        return float(v), float(c), float(t)


class SmoothingEngine:
    """Turns raw measurements into smoothed, classified samples.

    Owns one rolling window per entity, created on the entity's first
    measurement. Not thread-safe: the pipeline's drain thread is its only
    caller.
    """

    def __init__(self, window_size: int = 6, thresholds: Optional[Thresholds] = None) -> None:
        self.window_size = window_size
        self.thresholds = thresholds or Thresholds()
        self._windows: Dict[EntityId, RollingWindow] = {}

    def window(self, entity_id: EntityId) -> Optional[RollingWindow]:
        return self._windows.get(entity_id)

    def entities(self) -> List[EntityId]:
        return list(self._windows)

    def process(self, m: Measurement) -> SmoothedSample:
        win = self._windows.get(m.entity_id)
        if win is None:
            win = RollingWindow(self.window_size)
            self._windows[m.entity_id] = win
        win.append(m)
        voltage, current, temperature = win.means()
        return SmoothedSample(
            raw=m,
            smoothed_voltage_kv=voltage,
            smoothed_current_amps=current,
            smoothed_temperature_c=temperature,
            anomaly=classify(m, self.thresholds),
        )
