from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from ..config import Bounds, GeneratorConfig, RuntimeConfig
from ..core.clock import TickClock, entity_rng, utc_now_ms
from ..core.models import DeviceKind, EntityId, Measurement
from ..core.router import StreamRouter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatingPoint:
    voltage_kv: float
    current_amps: float
    temperature_c: float
    load_factor: float


# Half-widths of the uniform jitter applied to the nominal point at start
INITIAL_JITTER = OperatingPoint(voltage_kv=0.5, current_amps=10.0, temperature_c=2.0, load_factor=0.05)


def nominal_operating_point(kind: DeviceKind) -> OperatingPoint:
    if kind is DeviceKind.DISTRIBUTION:
        return OperatingPoint(voltage_kv=11.0, current_amps=90.0, temperature_c=40.0, load_factor=0.50)
    return OperatingPoint(voltage_kv=10.0, current_amps=150.0, temperature_c=45.0, load_factor=0.60)


def clamp(value: float, bounds: Bounds) -> float:
    return min(max(value, bounds.low), bounds.high)


class EntityProcess:
    """Random walk for one transformer.

    Every ``step()`` adds uniform noise to each metric, a rare +/- spike to
    voltage and current, and a load-driven heating drift to temperature, then
    clamps all four to their bounds. Consumes random numbers in a fixed order
    from a private RNG, so a (seed, entity id) pair always yields the same
    sequence.
    """

    def __init__(
        self,
        entity_id: EntityId,
        seed: int,
        config: Optional[GeneratorConfig] = None,
        kind: DeviceKind = DeviceKind.POWER,
        start_ms: int = 0,
    ) -> None:
        self.entity_id = entity_id
        self.config = config or GeneratorConfig()
        self.kind = kind
        self._rng: random.Random = entity_rng(seed, entity_id)
        self._clock = TickClock(start_ms, int(round(self.config.tick_interval_sec * 1000)))
        self.last_timestamp_ms: Optional[int] = None

        cfg = self.config
        base = nominal_operating_point(kind)
        j = INITIAL_JITTER
        r = self._rng
        self.voltage = clamp(base.voltage_kv + r.uniform(-j.voltage_kv, j.voltage_kv), cfg.voltage_bounds)
        self.current = clamp(base.current_amps + r.uniform(-j.current_amps, j.current_amps), cfg.current_bounds)
        self.temperature = clamp(
            base.temperature_c + r.uniform(-j.temperature_c, j.temperature_c), cfg.temperature_bounds
        )
        self.load = clamp(base.load_factor + r.uniform(-j.load_factor, j.load_factor), cfg.load_bounds)

    @property
    def ticks(self) -> int:
        return self._clock.ticks

    def _spike(self, prob: float, magnitude: float) -> float:
        if self._rng.random() < prob:
            return magnitude if self._rng.random() < 0.5 else -magnitude
        return 0.0

    def step(self) -> Measurement:
        cfg = self.config
        r = self._rng
        heating = (self.load - 0.5) * cfg.heating_coefficient
        self.voltage = clamp(
            self.voltage
            + r.uniform(-cfg.voltage_noise, cfg.voltage_noise)
            + self._spike(cfg.voltage_spike_prob, cfg.voltage_spike_kv),
            cfg.voltage_bounds,
        )
        self.current = clamp(
            self.current
            + r.uniform(-cfg.current_noise, cfg.current_noise)
            + self._spike(cfg.current_spike_prob, cfg.current_spike_amps),
            cfg.current_bounds,
        )
        self.temperature = clamp(
            self.temperature + r.uniform(-cfg.temperature_noise, cfg.temperature_noise) + heating,
            cfg.temperature_bounds,
        )
        self.load = clamp(self.load + r.uniform(-cfg.load_noise, cfg.load_noise), cfg.load_bounds)
        self.last_timestamp_ms = self._clock.tick()
        return Measurement(
            entity_id=self.entity_id,
            timestamp_ms=self.last_timestamp_ms,
            voltage_kv=self.voltage,
            current_amps=self.current,
            temperature_c=self.temperature,
            load_factor=self.load,
        )


class EntityGenerator:
    """Background thread pushing one measurement per tick into the router."""

    def __init__(self, process: EntityProcess, router: StreamRouter, interval_sec: float) -> None:
        self.process = process
        self.router = router
        self.interval_sec = interval_sec
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"Generator-{self.process.entity_id}", daemon=True
        )
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    def stop(self, timeout: float = 5.0) -> None:
        self.cancel()
        if self._thread:
            self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self) -> None:
        while not self._stop.is_set():
            m = self.process.step()
            if self._stop.is_set():
                break
            self.router.push(m)
            self._stop.wait(timeout=self.interval_sec)


class TelemetryGenerator:
    """Runs one ``EntityGenerator`` per transformer against a shared router."""

    def __init__(self, config: RuntimeConfig, router: StreamRouter) -> None:
        self.config = config
        self.router = router
        self._workers: Dict[EntityId, EntityGenerator] = {}
        self._last_ms: Dict[EntityId, int] = {}

    def start(
        self,
        entity_ids: Optional[Sequence[EntityId]] = None,
        seed: Optional[int] = None,
        resume_after_ms: Optional[Mapping[EntityId, int]] = None,
    ) -> bool:
        """Launch generation; returns False if a generator set is already running.

        An entity listed in ``resume_after_ms`` starts one interval after its
        last emitted timestamp, so a restart never goes back in time.
        """
        if self.is_running():
            return False
        ids = list(entity_ids) if entity_ids is not None else list(self.config.entity_ids)
        seed = self.config.seed if seed is None else seed
        gen_cfg = self.config.generator
        start_ms = gen_cfg.start_ms if gen_cfg.start_ms is not None else utc_now_ms()
        interval_ms = int(round(gen_cfg.tick_interval_sec * 1000))
        resume = resume_after_ms or {}
        first_ms = {
            eid: start_ms if eid not in resume else max(start_ms, resume[eid] + interval_ms)
            for eid in ids
        }
        self._workers = {
            eid: EntityGenerator(
                EntityProcess(eid, seed, gen_cfg, self.config.device_kind(eid), first_ms[eid]),
                self.router,
                gen_cfg.tick_interval_sec,
            )
            for eid in ids
        }
        for worker in self._workers.values():
            worker.start()
        logger.info("generators started", extra={"entity_ids": ids, "seed": seed})
        return True

    def stop(self) -> None:
        for worker in self._workers.values():
            worker.cancel()
        for worker in self._workers.values():
            worker.stop()
        if self._workers:
            logger.info("generators stopped", extra={"entity_ids": list(self._workers)})
        self._last_ms = self.last_timestamps()
        self._workers = {}

    def is_running(self) -> bool:
        return any(w.is_alive() for w in self._workers.values())

    def entity_ids(self) -> List[EntityId]:
        return list(self._workers)

    def last_timestamps(self) -> Dict[EntityId, int]:
        """Last emitted timestamp per entity, kept across ``stop()``."""
        out = dict(self._last_ms)
        for eid, worker in self._workers.items():
            if worker.process.last_timestamp_ms is not None:
                out[eid] = worker.process.last_timestamp_ms
        return out


def simulate(
    entity_ids: Sequence[EntityId],
    seed: int,
    ticks: int,
    config: Optional[RuntimeConfig] = None,
    start_ms: int = 0,
) -> Iterator[Measurement]:
    """Synchronously generate ``ticks`` rounds, one measurement per entity per round."""
    cfg = config or RuntimeConfig()
    processes: List[EntityProcess] = [
        EntityProcess(eid, seed, cfg.generator, cfg.device_kind(eid), start_ms) for eid in entity_ids
    ]
    for _ in range(ticks):
        for p in processes:
            yield p.step()
