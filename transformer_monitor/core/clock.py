from __future__ import annotations

import random
from datetime import datetime, timezone


def utc_now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class TickClock:
    """Logical clock: the n-th ``tick()`` returns ``start_ms + n * interval_ms``."""

    def __init__(self, start_ms: int, interval_ms: int) -> None:
        self.start_ms = start_ms
        self.interval_ms = interval_ms
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    def tick(self) -> int:
        ts = self.start_ms + self._ticks * self.interval_ms
        self._ticks += 1
        return ts


def entity_rng(seed: int, entity_id: str) -> random.Random:
    # String seeds are hashed with SHA-512, so streams do not depend on PYTHONHASHSEED
    return random.Random(f"{seed}:{entity_id}")
