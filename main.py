from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import List, Optional

import typer

from transformer_monitor.config import load_config
from transformer_monitor.core.anomaly import describe
from transformer_monitor.core.models import AnomalyKind
from transformer_monitor.core.pipeline import Pipeline
from transformer_monitor.core.router import StreamRouter
from transformer_monitor.core.smoothing import SmoothingEngine
from transformer_monitor.core.store import StateStore, UIState
from transformer_monitor.core.tracker import FleetTracker
from transformer_monitor.data.generator import simulate as simulate_measurements
from transformer_monitor.service import MonitoringService
from transformer_monitor.utils.logging import setup_logging
from transformer_monitor.web.server import serve as serve_web


app = typer.Typer(add_completion=False)
logger = logging.getLogger("transformer_monitor.cli")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None),
    port: Optional[int] = typer.Option(None),
    config: Optional[Path] = typer.Option(None, help="YAML runtime config"),
) -> None:
    """Run the dashboard with generation started."""
    cfg = load_config(config)
    setup_logging(cfg.env.LOG_LEVEL)
    serve_web(host=host, port=port, config_path=config)


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, help="YAML runtime config"),
    entity: Optional[List[str]] = typer.Option(None, help="Transformer id (repeatable)"),
    seed: Optional[int] = typer.Option(None),
    log_level: str = typer.Option("INFO"),
) -> None:
    """Headless live run; logs anomalies seen on the selected transformer."""
    cfg = load_config(config)
    setup_logging(log_level)

    service = MonitoringService(cfg.runtime)
    last = {"kind": AnomalyKind.NONE}

    def on_state(state: UIState) -> None:
        if state.last_anomaly is not last["kind"]:
            last["kind"] = state.last_anomaly
            if state.last_anomaly is not AnomalyKind.NONE:
                logger.warning(
                    "anomaly",
                    extra={"entity_id": state.selected_entity, "kind": state.last_anomaly.value},
                )

    service.subscribe(on_state)
    stop_event = threading.Event()

    def handle_signal(signum, frame):  # noqa: ANN001, D401
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    service.start(entity or None, seed)
    typer.echo("Running. Press Ctrl+C to stop.")
    try:
        while not stop_event.is_set():
            stop_event.wait(0.5)
    finally:
        service.stop()
    _print_stats(service.tracker)


@app.command()
def simulate(
    ticks: int = typer.Option(120, help="Generation rounds (one reading per transformer each)"),
    seed: Optional[int] = typer.Option(None),
    entity: Optional[List[str]] = typer.Option(None, help="Transformer id (repeatable)"),
    config: Optional[Path] = typer.Option(None, help="YAML runtime config"),
) -> None:
    """Run the pipeline synchronously on logical time and print per-transformer stats.

    Uses the same generator, router, smoothing and anomaly rules as the live
    mode; only the clock is logical, so the output is reproducible per seed.
    """
    cfg = load_config(config)
    ids = entity or cfg.runtime.entity_ids
    run_seed = cfg.runtime.seed if seed is None else seed

    store = StateStore(series_cap=cfg.runtime.series_cap)
    tracker = FleetTracker()
    router = StreamRouter(cfg.runtime.router_capacity)
    pipeline = Pipeline(
        router,
        SmoothingEngine(cfg.runtime.window_size, cfg.runtime.thresholds),
        sinks=[store.on_sample, tracker.record],
    )
    store.mark_running(ids)
    start_ms = cfg.runtime.generator.start_ms or 0
    for m in simulate_measurements(ids, run_seed, ticks, cfg.runtime, start_ms):
        router.push(m)
        # Drain every push so the bounded router never overflows offline
        queued = router.poll()
        while queued is not None:
            pipeline.process_one(queued)
            queued = router.poll()
    store.mark_stopped()

    snap = store.snapshot()
    typer.echo(f"seed={run_seed} ticks={ticks} selected={snap.selected_entity} points={len(snap.voltage_series)}")
    _print_stats(tracker)


def _print_stats(tracker: FleetTracker) -> None:
    for entity_id, st in sorted(tracker.stats().items()):
        kinds = ", ".join(
            f"{describe(kind)}={n}" for kind, n in st.anomalies.most_common() if kind is not AnomalyKind.NONE
        )
        typer.echo(
            f"{entity_id}: samples={st.samples} anomalies={st.anomaly_total} "
            f"rate={st.anomaly_rate:.2%} [{kinds}]"
        )


if __name__ == "__main__":
    app()
