from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from main import app


def write_config(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text("entity_ids: [A, B]\nseed: 5\n", encoding="utf-8")
    return path


def test_simulate_prints_stats(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["simulate", "--ticks", "20", "--config", str(write_config(tmp_path))])
    assert result.exit_code == 0, result.output
    assert "seed=5 ticks=20 selected=A points=20" in result.output
    assert "A: samples=20" in result.output
    assert "B: samples=20" in result.output


def test_simulate_is_reproducible(tmp_path: Path) -> None:
    runner = CliRunner()
    cfg = str(write_config(tmp_path))
    first = runner.invoke(app, ["simulate", "--ticks", "50", "--seed", "11", "--config", cfg])
    second = runner.invoke(app, ["simulate", "--ticks", "50", "--seed", "11", "--config", cfg])
    assert first.exit_code == 0
    assert first.output == second.output


def test_serve_passes_config_path(tmp_path: Path, monkeypatch) -> None:
    calls = []
    monkeypatch.setattr("main.serve_web", lambda **kwargs: calls.append(kwargs))
    cfg = write_config(tmp_path)
    result = CliRunner().invoke(app, ["serve", "--port", "0", "--config", str(cfg)])
    assert result.exit_code == 0, result.output
    assert calls == [{"host": None, "port": 0, "config_path": cfg}]
