"""Tests for the backtest command line and terminal report."""

import io
import json
import logging

import polars as pl
import pytest
from rich.console import Console

from spread_edge.analysis.backtest_runner import BacktestConfig, run_backtest
from spread_edge.config.settings import Settings
from spread_edge.dashboard.terminal import TerminalReport
from spread_edge.scripts import backtest as cli


@pytest.fixture
def input_files(tmp_path, season_store):
    """Write the season store's inputs to Parquet files."""
    def _rows(models):
        return [m.model_dump(mode="json", exclude_none=True) for m in models]

    games = pl.DataFrame(_rows(season_store._games.values()))
    lines = pl.DataFrame(_rows(season_store._snapshots.values()))
    ratings = pl.DataFrame(_rows(
        r
        for versions in season_store._ratings.values()
        for r in versions
    ))
    paths = {}
    for name, frame in (("games", games), ("lines", lines), ("ratings", ratings)):
        path = tmp_path / f"{name}.parquet"
        frame.write_parquet(path)
        paths[name] = str(path)
    return paths


def _args(paths, *extra):
    return [
        "--games", paths["games"],
        "--lines", paths["lines"],
        "--ratings", paths["ratings"],
        *extra,
    ]


def test_cli_writes_json_report(input_files, tmp_path):
    out = tmp_path / "report.json"
    code = cli.main(_args(input_files, "--seasons", "2023", "--json", str(out)))

    assert code == 0
    report = json.loads(out.read_text())
    assert report["total_bets"] == 3
    assert report["config"]["decision_label"] == "t-60"
    assert report["skipped"] == {"missing rating": 1}


def test_cli_min_edge_and_markets(input_files, tmp_path):
    out = tmp_path / "report.json"
    code = cli.main(_args(
        input_files, "--seasons", "2023", "--min-edge", "3", "--markets", "spread",
        "--json", str(out),
    ))
    assert code == 0
    report = json.loads(out.read_text())
    assert report["total_bets"] == 1
    assert report["config"]["markets"] == ["spread"]


def test_cli_invalid_config_exit_code(input_files):
    assert cli.main(_args(input_files, "--seasons", "2019")) == 2


def test_cli_rejects_close_label(input_files):
    with pytest.raises(SystemExit):
        cli.main(_args(input_files, "--seasons", "2023", "--label", "close"))


async def test_terminal_report_renders(season_store):
    result = await run_backtest(season_store, BacktestConfig(seasons=[2023]))
    buffer = io.StringIO()
    report = TerminalReport(Console(file=buffer, width=120, force_terminal=False))

    report.show_backtest(result, max_picks=3)
    report.show_edges([])

    output = buffer.getvalue()
    assert "Backtest" in output
    assert "1-1-1" in output
    assert "missing rating" in output


def test_cli_rejects_duplicate_markets(input_files):
    assert cli.main(_args(input_files, "--seasons", "2023", "--markets", "spread", "spread")) == 2


class TestConfigureLogging:
    def test_level_from_settings(self, monkeypatch):
        monkeypatch.setattr(cli, "get_settings", lambda: Settings(_env_file=None, log_level="warning"))
        assert cli.configure_logging() == "WARNING"
        assert logging.getLogger().level == logging.WARNING

    def test_debug_setting_forces_debug(self, monkeypatch):
        monkeypatch.setattr(cli, "get_settings", lambda: Settings(_env_file=None, debug=True))
        assert cli.configure_logging() == "DEBUG"

    def test_verbose_flag_overrides_level(self, monkeypatch):
        monkeypatch.setattr(cli, "get_settings", lambda: Settings(_env_file=None, log_level="ERROR"))
        assert cli.configure_logging(verbose=True) == "DEBUG"
