"""Property tests: aggregate statistics invariants."""

import warnings
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import given, settings, strategies as st

from trade_journal.core.enums import Direction, FillKind
from trade_journal.core.models import EquityTrade, Fill
from trade_journal.journal.aggregation import compute_user_stats
from trade_journal.journal.lifecycle import TradeStateMachine

T0 = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)

_machine = TradeStateMachine()


def _trade(realized: int) -> EquityTrade:
    return _machine.open(
        EquityTrade(
            symbol="AAPL",
            direction=Direction.LONG,
            fills=(
                Fill(kind=FillKind.ENTRY, quantity=100, price=10, timestamp=T0),
                Fill(
                    kind=FillKind.EXIT,
                    quantity=100,
                    price=Decimal("10") + Decimal(realized) / 100,
                    timestamp=T0 + timedelta(hours=1),
                ),
            ),
        )
    )


@given(results=st.lists(st.integers(min_value=-900, max_value=900), max_size=30))
@settings(max_examples=100)
def test_counts_and_totals_are_consistent(results):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        stats = compute_user_stats([_trade(r) for r in results])
    assert stats.total_trades == len(results)
    assert stats.winning_trades + stats.losing_trades == stats.total_trades
    assert stats.total_profit == Decimal(sum(results))
    assert stats.total_profit == stats.total_win_amount - stats.total_loss_amount
    assert 0.0 <= stats.win_rate <= 100.0
    if stats.losing_trades == 0:
        assert stats.win_loss_ratio == stats.winning_trades
        assert stats.profit_factor is None
