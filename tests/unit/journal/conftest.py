"""Trade builders for journal tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from trade_journal.core.enums import ContractType, Direction, FillKind, Horizon
from trade_journal.core.models import EquityTrade, Fill, OptionTrade
from trade_journal.journal.lifecycle import TradeStateMachine

T0 = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)  # Tuesday


def make_fill(
    kind: FillKind | str = FillKind.ENTRY,
    quantity: float | str = 100,
    price: float | str = 10,
    timestamp: datetime | None = None,
    fill_id: str | None = None,
) -> Fill:
    kwargs = {}
    if fill_id is not None:
        kwargs["id"] = fill_id
    return Fill(
        kind=FillKind(kind),
        quantity=Decimal(str(quantity)),
        price=Decimal(str(price)),
        timestamp=timestamp or T0,
        **kwargs,
    )


def make_equity_trade(
    entries: list[tuple] = ((100, 10),),
    exits: list[tuple] = (),
    *,
    direction: Direction = Direction.LONG,
    horizon: Horizon = Horizon.SWING,
    opened: datetime = T0,
    closed: datetime | None = None,
    **fields,
) -> EquityTrade:
    """Build a recomputed equity trade from ``(qty, price)`` pairs."""
    closed = closed or opened + timedelta(hours=1)
    fills = [make_fill(FillKind.ENTRY, q, p, opened) for q, p in entries]
    fills += [make_fill(FillKind.EXIT, q, p, closed) for q, p in exits]
    trade = EquityTrade(
        symbol=fields.pop("symbol", "aapl"),
        direction=direction,
        horizon=horizon,
        fills=tuple(fills),
        **fields,
    )
    return TradeStateMachine().open(trade, override=True)


def make_option_trade(
    entries: list[tuple] = ((1, 2.5),),
    exits: list[tuple] = (),
    *,
    direction: Direction = Direction.LONG,
    opened: datetime = T0,
    closed: datetime | None = None,
    **fields,
) -> OptionTrade:
    closed = closed or opened + timedelta(hours=1)
    fills = [make_fill(FillKind.ENTRY, q, p, opened) for q, p in entries]
    fills += [make_fill(FillKind.EXIT, q, p, closed) for q, p in exits]
    trade = OptionTrade(
        symbol=fields.pop("symbol", "SPY"),
        direction=direction,
        contract_type=fields.pop("contract_type", ContractType.CALL),
        fills=tuple(fills),
        **fields,
    )
    return TradeStateMachine().open(trade)


def make_closed_trade(
    realized: float,
    *,
    closed: datetime = T0,
    opened: datetime | None = None,
    **fields,
) -> EquityTrade:
    """A closed 100-share LONG trade at $10 with the given realized P&L."""
    exit_price = Decimal("10") + Decimal(str(realized)) / 100
    return make_equity_trade(
        [(100, 10)],
        [(100, exit_price)],
        opened=opened or closed - timedelta(hours=1),
        closed=closed,
        **fields,
    )
