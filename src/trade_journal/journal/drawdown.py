"""Drawdown and streak analysis over a user's closed trades.

Closed trades are bucketed by the calendar day of their last exit (in the
configured timezone) and summed into one daily P&L before any drawdown or
streak logic runs.  The equity curve starts at zero, so the peak is never
below zero and a losing first day already counts as drawdown.

Streak rules on daily P&L:

* positive day  -> win streak continues, loss streak resets
* negative day  -> loss streak continues, win streak resets
* flat day      -> both streaks reset
"""

from __future__ import annotations

import logging
import warnings
from collections import defaultdict
from datetime import date, timezone, tzinfo
from decimal import Decimal
from typing import Iterable

import numpy as np
from pydantic import BaseModel, Field

from trade_journal.core.errors import EmptyTradeSetWarning
from trade_journal.core.models import RECORD_CONFIG, EquityTrade, OptionTrade

from .aggregation import closed_results

logger = logging.getLogger(__name__)

AnyTrade = EquityTrade | OptionTrade

_ZERO = Decimal("0")


class EquityPoint(BaseModel):
    """One day on the cumulative realized-P&L curve."""

    model_config = RECORD_CONFIG

    day: date
    daily_pnl: float
    equity: float
    peak_equity: float
    drawdown: float


class DrawdownReport(BaseModel):
    model_config = RECORD_CONFIG

    max_drawdown: float = 0.0
    current_drawdown: float = 0.0
    peak_equity: float = 0.0
    current_equity: float = 0.0
    biggest_loss: float = 0.0  # Worst single-trade realized P&L (<= 0)
    longest_win_streak: int = 0
    current_win_streak: int = 0
    max_consecutive_losses: int = 0
    current_loss_streak: int = 0
    average_win_streak: float = 0.0
    trading_days: int = 0
    equity_curve: list[EquityPoint] = Field(default_factory=list)


def _streaks(day_values: list[Decimal]) -> dict:
    win = loss = longest_win = longest_loss = 0
    win_runs: list[int] = []
    for value in day_values:
        if value > 0:
            win += 1
            loss = 0
        elif value < 0:
            if win:
                win_runs.append(win)
            loss += 1
            win = 0
        else:
            if win:
                win_runs.append(win)
            win = loss = 0
        longest_win = max(longest_win, win)
        longest_loss = max(longest_loss, loss)
    if win:
        win_runs.append(win)
    return {
        "longest_win_streak": longest_win,
        "current_win_streak": win,
        "max_consecutive_losses": longest_loss,
        "current_loss_streak": loss,
        "average_win_streak": (sum(win_runs) / len(win_runs)) if win_runs else 0.0,
    }


def compute_drawdown_and_streaks(
    trades: Iterable[AnyTrade],
    *,
    tz: tzinfo = timezone.utc,
) -> DrawdownReport:
    """Equity curve, drawdown and daily streaks for one user.

    Input order does not matter; trades are bucketed by exit day.  Trades
    that are not CLOSED are ignored.
    """
    closed = closed_results(trades)
    if not closed:
        warnings.warn(
            EmptyTradeSetWarning("no closed trades for drawdown analysis"), stacklevel=2
        )
        logger.debug("compute_drawdown_and_streaks: empty trade set")
        return DrawdownReport()

    by_day: dict[date, Decimal] = defaultdict(lambda: _ZERO)
    worst_trade = _ZERO
    for trade, result in closed:
        by_day[trade.closed_at.astimezone(tz).date()] += result.realized
        worst_trade = min(worst_trade, result.realized)
    days = sorted(by_day)
    values = [by_day[d] for d in days]

    pnl = np.array([float(v) for v in values], dtype=float)
    equity = np.cumsum(pnl)
    peak = np.maximum.accumulate(np.maximum(equity, 0.0))
    drawdown = peak - equity

    curve = [
        EquityPoint(
            day=d,
            daily_pnl=float(pnl[i]),
            equity=float(equity[i]),
            peak_equity=float(peak[i]),
            drawdown=float(drawdown[i]),
        )
        for i, d in enumerate(days)
    ]
    return DrawdownReport(
        max_drawdown=float(np.max(drawdown)),
        current_drawdown=float(drawdown[-1]),
        peak_equity=float(peak[-1]),
        current_equity=float(equity[-1]),
        biggest_loss=float(worst_trade),
        trading_days=len(days),
        equity_curve=curve,
        **_streaks(values),
    )
