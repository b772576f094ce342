from __future__ import annotations

import threading
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Optional

from .models import AnomalyKind, EntityId, SmoothedSample


@dataclass
class EntityStats:
    samples: int = 0
    anomalies: Counter = field(default_factory=Counter)
    last: Optional[SmoothedSample] = None

    @property
    def anomaly_total(self) -> int:
        return sum(n for kind, n in self.anomalies.items() if kind is not AnomalyKind.NONE)

    @property
    def anomaly_rate(self) -> float:
        return (self.anomaly_total / self.samples) if self.samples else 0.0


class FleetTracker:
    """Per-entity counters over every processed sample, selected or not."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stats: Dict[EntityId, EntityStats] = defaultdict(EntityStats)

    def record(self, sample: SmoothedSample) -> None:
        with self._lock:
            s = self._stats[sample.raw.entity_id]
            s.samples += 1
            s.anomalies[sample.anomaly] += 1
            s.last = sample

    def stats(self) -> Dict[EntityId, EntityStats]:
        with self._lock:
            return {
                k: EntityStats(samples=v.samples, anomalies=Counter(v.anomalies), last=v.last)
                for k, v in self._stats.items()
            }

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
