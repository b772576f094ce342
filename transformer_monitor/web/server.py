from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..config import load_config
from ..service import MonitoringService
from .dashboard import build_dash_app


logger = logging.getLogger(__name__)


def serve(
    host: Optional[str] = None,
    port: Optional[int] = None,
    autostart: bool = True,
    config_path: Optional[Path] = None,
) -> None:
    cfg = load_config(config_path)
    service = MonitoringService(cfg.runtime)
    if autostart:
        service.start()
    app = build_dash_app(cfg, service)
    bind_host = host or cfg.env.DASH_HOST
    bind_port = cfg.env.DASH_PORT if port is None else port
    logger.info("dashboard listening", extra={"host": bind_host, "port": bind_port})
    try:
        app.run(host=bind_host, port=bind_port, debug=False)
    finally:
        service.stop()


if __name__ == "__main__":  # pragma: no cover
    serve()
