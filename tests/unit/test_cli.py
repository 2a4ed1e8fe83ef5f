"""Tests for the click command-line front end."""

from __future__ import annotations

import json
import logging
from datetime import timedelta

import pytest
from click.testing import CliRunner

from trade_journal.cli import main
from trade_journal.journal.documents import trade_to_document

from .journal.conftest import T0, make_closed_trade, make_equity_trade, make_option_trade

QUIET = {"TRADE_JOURNAL_OBSERVABILITY__LOG_LEVEL": "ERROR"}


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def trades_file(tmp_path):
    trades = [
        make_closed_trade(100, closed=T0, user_id="u1", pattern="flag"),
        make_closed_trade(-40, closed=T0 + timedelta(days=1), user_id="u1", pattern="flag"),
        make_equity_trade([(100, 10)], user_id="u1"),
        make_option_trade([(1, 2)], [(1, 3)], user_id="u2"),
    ]
    path = tmp_path / "trades.json"
    path.write_text(
        json.dumps(
            {
                "trades": [trade_to_document(t) for t in trades],
                "users": {"u1": "Alice", "u2": "Bob", "u3": "Carol"},
            }
        )
    )
    return str(path)


def _run(*args):
    result = CliRunner().invoke(main, list(args), env=QUIET)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestCommands:
    def test_recompute(self, trades_file):
        out = _run("recompute", trades_file)
        assert [row["status"] for row in out] == ["CLOSED", "CLOSED", "OPEN", "CLOSED"]
        assert out[3]["profitLoss"]["realized"] == 100.0

    def test_stats_for_user(self, trades_file):
        out = _run("--user", "u1", "stats", trades_file)
        assert out["totalTrades"] == 2
        assert out["totalProfit"] == 60.0
        assert out["winRate"] == 50.0

    def test_stats_with_range(self, trades_file):
        out = _run("stats", trades_file, "--start", (T0 + timedelta(hours=2)).isoformat())
        assert out["totalTrades"] == 1
        assert out["totalProfit"] == -40.0

    def test_breakdown(self, trades_file):
        out = _run("--user", "u1", "breakdown", trades_file, "--key", "pattern")
        assert out[0]["key"] == "flag"
        assert out[0]["totalTrades"] == 2
        assert out[0]["eligible"] is False

    def test_drawdown(self, trades_file):
        out = _run("--user", "u1", "drawdown", trades_file, "--no-curve")
        assert out["maxDrawdown"] == 40.0
        assert "equityCurve" not in out

    def test_leaderboard(self, trades_file):
        out = _run("leaderboard", trades_file)
        assert [e["userId"] for e in out["entries"]] == ["u2", "u1", "u3"]
        assert out["entries"][2]["stats"]["totalTrades"] == 0
        assert out["window"] == "all"


class TestErrors:
    def test_malformed_document(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"id": "x", "symbol": "AAPL"}]))
        result = CliRunner().invoke(main, ["stats", str(path)], env=QUIET)
        assert result.exit_code == 1
        assert "trade x" in result.output

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{")
        result = CliRunner().invoke(main, ["stats", str(path)], env=QUIET)
        assert result.exit_code == 1
        assert "invalid JSON" in result.output

    def test_missing_config(self, trades_file, tmp_path):
        result = CliRunner().invoke(
            main, ["--config", str(tmp_path / "none.toml"), "stats", trades_file], env=QUIET
        )
        assert result.exit_code == 1
        assert "not found" in result.output
