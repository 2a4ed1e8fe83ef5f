"""Tests for the P&L calculator."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from trade_journal.core.enums import Direction, FillKind, TradeStatus
from trade_journal.core.errors import (
    MalformedTradeError,
    OverExitQuantity,
    ZeroEntryValueError,
)
from trade_journal.core.models import EquityTrade, ProfitLoss
from trade_journal.journal.pnl import compute_pnl, compute_trade_state, evaluate_trade

from .conftest import T0, make_equity_trade, make_fill, make_option_trade


def _fills(entries, exits):
    out = [make_fill(FillKind.ENTRY, q, p, T0) for q, p in entries]
    out += [make_fill(FillKind.EXIT, q, p, T0 + timedelta(hours=1)) for q, p in exits]
    return out


class TestComputePnl:
    def test_open_trade_has_zero_pnl(self):
        result = compute_pnl(_fills([(100, 10)], []), Direction.LONG)
        assert result.status == TradeStatus.OPEN
        assert result.profit_loss == ProfitLoss()

    def test_long_full_close(self):
        result = compute_pnl(_fills([(100, 10)], [(100, 12)]), Direction.LONG)
        assert result.status == TradeStatus.CLOSED
        assert result.realized == Decimal("200")
        assert result.profit_loss.percentage == Decimal("20")
        assert result.profit_loss.per_unit == Decimal("2")

    def test_short_full_close(self):
        result = compute_pnl(_fills([(100, 10)], [(100, 12)]), Direction.SHORT)
        assert result.realized == Decimal("-200")
        assert result.profit_loss.percentage == Decimal("-20")

    def test_partial_close_is_proportional(self):
        result = compute_pnl(_fills([(100, 10)], [(40, 12)]), Direction.LONG)
        assert result.status == TradeStatus.PARTIALLY_CLOSED
        assert result.realized == Decimal("80")
        assert result.profit_loss.percentage == Decimal("20")
        assert result.closed_fraction == Decimal("0.4")

    def test_break_even_third_close_is_exactly_zero(self):
        result = compute_pnl(_fills([(3, 10)], [(1, 10)]), Direction.LONG)
        assert result.status == TradeStatus.PARTIALLY_CLOSED
        assert result.realized == 0
        assert result.profit_loss.percentage == 0
        assert not result.realized.is_signed()

    def test_third_close_profit_is_exact(self):
        result = compute_pnl(_fills([(3, "10.01")], [(1, "11.01")]), Direction.LONG)
        assert result.realized == Decimal("1")

    def test_scaled_in_entries_are_quantity_weighted(self):
        fills = _fills([(50, 10), (50, 12)], [(100, 13)])
        result = compute_pnl(fills, Direction.LONG)
        assert result.entry_value == Decimal("1100")
        assert result.realized == Decimal("200")

    def test_option_multiplier(self):
        fills = _fills([(1, "2.5")], [(1, "3.75")])
        equity = compute_pnl(fills, Direction.LONG, 1)
        option = compute_pnl(fills, Direction.LONG, 100)
        assert option.realized == equity.realized * 100
        assert option.realized == Decimal("125")
        assert option.profit_loss.percentage == equity.profit_loss.percentage

    def test_over_exit_rejected(self):
        with pytest.raises(OverExitQuantity) as exc:
            compute_pnl(_fills([(10, 10)], [(11, 12)]), Direction.LONG)
        assert exc.value.field == "fills"
        assert exc.value.exit_quantity == Decimal("11")

    def test_zero_entry_value_rejected(self):
        with pytest.raises(ZeroEntryValueError):
            compute_pnl(_fills([(100, 0)], [(100, 1)]), Direction.LONG)

    def test_zero_price_entry_without_exit_is_fine(self):
        result = compute_pnl(_fills([(100, 0)], []), Direction.LONG)
        assert result.status == TradeStatus.OPEN

    def test_idempotent(self):
        fills = _fills([(3, "10.10")], [(1, "11.05")])
        assert compute_pnl(fills, Direction.LONG) == compute_pnl(fills, Direction.LONG)


class TestTradeState:
    def test_state_of_option_trade(self):
        trade = make_option_trade([(2, "1.5")], [(2, "2")])
        state = compute_trade_state(trade)
        assert state.status == TradeStatus.CLOSED
        assert state.profit_loss.realized == Decimal("100")
        assert state.profit_loss.per_unit == Decimal("50")

    def test_evaluate_ignores_stored_values(self, caplog):
        trade = make_equity_trade([(100, 10)], [(100, 12)])
        tampered = trade.model_copy(
            update={"status": TradeStatus.OPEN, "profit_loss": ProfitLoss()}
        )
        with caplog.at_level("WARNING"):
            result = evaluate_trade(tampered)
        assert result.realized == Decimal("200")
        assert "drift" in caplog.text

    def test_evaluate_names_trade_on_bad_fills(self):
        trade = EquityTrade(
            id="t-1",
            symbol="AAPL",
            direction=Direction.LONG,
            fills=(make_fill(FillKind.EXIT, 5, 10),),
        )
        with pytest.raises(MalformedTradeError) as exc:
            evaluate_trade(trade)
        assert exc.value.trade_id == "t-1"
        assert exc.value.field == "fills"
