from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import dash
import dash_bootstrap_components as dbc
import plotly.graph_objs as go
from dash import Dash, Input, Output, State, dcc, html

from ..config import AppConfig, load_config
from ..core.anomaly import describe
from ..core.buffers import SeriesPoint
from ..core.models import AnomalyKind, Metric
from ..core.store import UIState
from ..core.tracker import EntityStats
from ..service import MonitoringService

# ───────────────────────────── styling ──────────────────────────────
METRIC_STYLE: Dict[Metric, Tuple[str, str]] = {
    Metric.VOLTAGE: ("Voltage (kV)", "#6A5ACD"),
    Metric.CURRENT: ("Current (A)", "#FF8C00"),
    Metric.TEMPERATURE: ("Temperature (°C)", "#DC143C"),
    Metric.LOAD: ("Load factor", "#2E8B57"),
}

ANOMALY_COLORS: Dict[AnomalyKind, str] = {
    AnomalyKind.NONE: "#2E8B57",
    AnomalyKind.VOLTAGE_SPIKE: "#6A5ACD",
    AnomalyKind.OVERCURRENT: "#FF8C00",
    AnomalyKind.OVERHEAT: "#DC143C",
    AnomalyKind.UNDERLOAD: "#1E90FF",
    AnomalyKind.OVERLOAD: "#8B0000",
}


def series_figure(
    points: Sequence[SeriesPoint],
    title: str,
    color: str,
    y_range: Optional[Tuple[float, float]] = None,
) -> go.Figure:
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=[datetime.fromtimestamp(p.timestamp_ms / 1000, tz=timezone.utc) for p in points],
            y=[p.value for p in points],
            mode="lines",
            line=dict(color=color, width=2),
            name=title,
        )
    )
    fig.update_layout(
        title=title,
        margin=dict(l=40, r=10, t=40, b=30),
        height=240,
        showlegend=False,
        template="plotly_white",
    )
    if y_range is not None:
        fig.update_yaxes(range=list(y_range))
    return fig


def status_label(kind: AnomalyKind) -> str:
    if kind is AnomalyKind.NONE:
        return "Status: stable"
    return f"Anomaly: {describe(kind)}"


def selection_update(current: Optional[str], snap: UIState) -> Optional[str]:
    """Value to write into the entity selector, or None to keep the user's pick."""
    if current in snap.entity_ids:
        return None
    return snap.selected_entity


def fleet_rows(stats: Dict[str, EntityStats]) -> List[html.Tr]:
    rows: List[html.Tr] = []
    for entity_id in sorted(stats):
        s = stats[entity_id]
        last = s.last
        rows.append(
            html.Tr([
                html.Td(entity_id),
                html.Td(s.samples),
                html.Td(s.anomaly_total),
                html.Td(f"{s.anomaly_rate:.1%}"),
                html.Td(f"{last.raw.voltage_kv:.2f}" if last else "-"),
                html.Td(f"{last.raw.current_amps:.1f}" if last else "-"),
                html.Td(f"{last.raw.temperature_c:.1f}" if last else "-"),
                html.Td(describe(last.anomaly) if last else "-"),
            ])
        )
    return rows


class DashboardApp:
    def __init__(self, service: MonitoringService, app: Dash | None = None) -> None:
        self.service = service
        if app is None:
            self.app: Dash = dash.Dash(__name__, external_stylesheets=[dbc.themes.COSMO])
        else:
            self.app = app
        self._layout()
        self._callbacks()

    def _layout(self) -> None:
        graphs = [
            dbc.Col(dcc.Graph(id=f"series-{metric.value}"), md=6)
            for metric in Metric
        ]
        self.app.layout = dbc.Container([
            html.H2("Transformer Monitoring", className="mt-3"),
            html.Div(id="status-text", className="text-muted mb-2"),
            dbc.Row([
                dbc.Col(dbc.Button("Start", id="btn-start", color="success", n_clicks=0), width="auto"),
                dbc.Col(dbc.Button("Stop", id="btn-stop", color="danger", n_clicks=0), width="auto"),
                dbc.Col(
                    dcc.RadioItems(
                        id="entity-select",
                        options=[],
                        inline=True,
                        inputStyle={"marginRight": "4px", "marginLeft": "12px"},
                    )
                ),
            ], className="mb-3", align="center"),
            html.H4(id="anomaly-status"),
            dbc.Row(graphs[:2]),
            dbc.Row(graphs[2:]),
            html.H4("Fleet", className="mt-3"),
            dbc.Table([
                html.Thead(html.Tr([
                    html.Th(h) for h in (
                        "Transformer", "Samples", "Anomalies", "Rate", "kV", "A", "°C", "Last status"
                    )
                ])),
                html.Tbody(id="fleet-body"),
            ], bordered=True, size="sm"),
            html.Div(id="select-ack", style={"display": "none"}),
            dcc.Interval(id="tick", interval=1000, n_intervals=0),
        ], fluid=True)

    def _callbacks(self) -> None:
        svc = self.service

        @self.app.callback(Output("status-text", "children"), Input("tick", "n_intervals"))
        def status(_: int) -> str:
            snap = svc.snapshot()
            rs = svc.router_stats()
            return (
                f"Running: {snap.running} | Selected: {snap.selected_entity or '-'}"
                f" | Router accepted={rs.accepted} dropped={rs.dropped}"
            )

        @self.app.callback(
            [Output("btn-start", "disabled"), Output("btn-stop", "disabled")],
            Input("tick", "n_intervals"),
        )
        def disable_buttons(_: int) -> tuple[bool, bool]:
            running = svc.running
            return running, not running

        @self.app.callback(
            [Output("entity-select", "options"), Output("entity-select", "value")],
            Input("tick", "n_intervals"),
            State("entity-select", "value"),
        )
        def entity_options(_: int, current: str | None):
            snap = svc.snapshot()
            value = selection_update(current, snap)
            options = [{"label": e, "value": e} for e in snap.entity_ids]
            return options, dash.no_update if value is None else value

        @self.app.callback(Output("select-ack", "children"), Input("entity-select", "value"))
        def on_select(value: str | None) -> str:
            if value:
                svc.select_entity(value)
            return value or ""

        @self.app.callback(
            [Output(f"series-{metric.value}", "figure") for metric in Metric],
            Input("tick", "n_intervals"),
        )
        def charts(_: int):
            snap = svc.snapshot()
            figs = []
            for metric in Metric:
                title, color = METRIC_STYLE[metric]
                y_range = (0.0, 1.0) if metric is Metric.LOAD else None
                figs.append(series_figure(snap.series(metric), title, color, y_range))
            return figs

        @self.app.callback(
            [Output("anomaly-status", "children"), Output("anomaly-status", "style")],
            Input("tick", "n_intervals"),
        )
        def anomaly_status(_: int):
            kind = svc.snapshot().last_anomaly
            return status_label(kind), {"color": ANOMALY_COLORS[kind]}

        @self.app.callback(Output("fleet-body", "children"), Input("tick", "n_intervals"))
        def fleet(_: int):
            return fleet_rows(svc.fleet_stats())

        @self.app.callback(Output("btn-start", "n_clicks"), Input("btn-start", "n_clicks"))
        def on_start(n: int | None) -> int | None:
            if n:
                svc.start()
            return n

        @self.app.callback(Output("btn-stop", "n_clicks"), Input("btn-stop", "n_clicks"))
        def on_stop(n: int | None) -> int | None:
            if n:
                svc.stop()
            return n


def build_dash_app(
    config: AppConfig | None = None, service: MonitoringService | None = None
) -> Dash:
    cfg = config or load_config()
    svc = service or MonitoringService(cfg.runtime)
    return DashboardApp(svc).app
