"""Aggregation engine — per-user summary statistics and breakdowns.

Consumes one user's trades, recomputes each from its fills, keeps the
CLOSED ones (optionally restricted to a date range on the last exit), and
produces win rate, profit factor and average win/loss.  Categorical
breakdowns answer questions like "Which pattern works for me?" or "Am I
better in the first trading hour?".

Usage::

    stats = compute_user_stats(trades, DateRange(start=jan_1))
    groups = breakdown(trades, BreakdownKey.PATTERN, min_sample_size=3)
    best = top_groups(groups, limit=3)
"""

from __future__ import annotations

import logging
import warnings
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Sequence

from pydantic import BaseModel

from trade_journal.core.enums import BreakdownKey, TradeStatus
from trade_journal.core.errors import EmptyTradeSetWarning
from trade_journal.core.ids import ensure_utc
from trade_journal.core.models import EquityTrade, Number, OptionTrade, RECORD_CONFIG

from .pnl import PnLResult, evaluate_trade

logger = logging.getLogger(__name__)

AnyTrade = EquityTrade | OptionTrade

UNTAGGED = "untagged"

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_ZERO = Decimal("0")


@dataclass(frozen=True)
class DateRange:
    """Half-open interval ``[start, end)`` on a trade's last exit time.

    Either bound may be ``None`` for an open-ended range.
    """

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.start is not None:
            object.__setattr__(self, "start", ensure_utc(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", ensure_utc(self.end))

    def contains(self, ts: datetime) -> bool:
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts >= self.end:
            return False
        return True


class AggregateStats(BaseModel):
    """Summary statistics over a set of closed trades.

    ``losing_trades`` counts break-even trades.  ``profit_factor`` is
    ``None`` when there are no losses to divide by.
    """

    model_config = RECORD_CONFIG

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_profit: Number = _ZERO
    total_win_amount: Number = _ZERO
    total_loss_amount: Number = _ZERO
    win_rate: float = 0.0
    win_loss_ratio: float = 0.0
    avg_winning_trade: Number = _ZERO
    avg_losing_trade: Number = _ZERO
    average_profit: Number = _ZERO
    largest_win: Number = _ZERO
    largest_loss: Number = _ZERO
    profit_factor: float | None = None


class GroupStats(AggregateStats):
    """Aggregate statistics for one breakdown group."""

    key: str
    eligible: bool = False  # Meets the minimum sample size


class _Accumulator:
    """Running totals for one bucket of trades."""

    __slots__ = ("trades", "wins", "losses", "win_amount", "loss_amount", "best", "worst")

    def __init__(self) -> None:
        self.trades = 0
        self.wins = 0
        self.losses = 0
        self.win_amount = _ZERO
        self.loss_amount = _ZERO
        self.best = _ZERO
        self.worst = _ZERO

    def record(self, realized: Decimal) -> None:
        self.trades += 1
        if realized > 0:
            self.wins += 1
            self.win_amount += realized
            self.best = max(self.best, realized)
        else:
            self.losses += 1
            self.loss_amount += -realized
            self.worst = min(self.worst, realized)

    def fields(self) -> dict:
        if self.trades == 0:
            return {}
        total = self.win_amount - self.loss_amount
        return {
            "total_trades": self.trades,
            "winning_trades": self.wins,
            "losing_trades": self.losses,
            "total_profit": total,
            "total_win_amount": self.win_amount,
            "total_loss_amount": self.loss_amount,
            "win_rate": 100.0 * self.wins / self.trades,
            "win_loss_ratio": (
                self.wins / self.losses if self.losses > 0 else float(self.wins)
            ),
            "avg_winning_trade": self.win_amount / self.wins if self.wins else _ZERO,
            "avg_losing_trade": self.loss_amount / self.losses if self.losses else _ZERO,
            "average_profit": total / self.trades,
            "largest_win": self.best,
            "largest_loss": self.worst,
            "profit_factor": (
                float(self.win_amount / self.loss_amount) if self.loss_amount > 0 else None
            ),
        }


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def closed_results(
    trades: Iterable[AnyTrade],
    date_range: DateRange | None = None,
) -> list[tuple[AnyTrade, PnLResult]]:
    """Recompute every trade and keep the CLOSED ones inside *date_range*.

    Order of the input is preserved.  Raises ``MalformedTradeError`` on the
    first trade that fails validation.
    """
    kept: list[tuple[AnyTrade, PnLResult]] = []
    skipped = 0
    for trade in trades:
        result = evaluate_trade(trade)
        if result.status != TradeStatus.CLOSED:
            skipped += 1
            continue
        if date_range is not None and not date_range.contains(trade.closed_at):
            continue
        kept.append((trade, result))
    if skipped:
        logger.debug("Ignored %d trades that are not closed", skipped)
    return kept


def summarize(results: Iterable[PnLResult]) -> AggregateStats:
    """Aggregate already-evaluated results (no empty-set warning)."""
    acc = _Accumulator()
    for result in results:
        acc.record(result.realized)
    return AggregateStats(**acc.fields())


def compute_user_stats(
    trades: Iterable[AnyTrade],
    date_range: DateRange | None = None,
) -> AggregateStats:
    """Summary statistics for one user's closed trades."""
    results = closed_results(trades, date_range)
    if not results:
        warnings.warn(
            EmptyTradeSetWarning("no closed trades to aggregate"), stacklevel=2
        )
        logger.debug("compute_user_stats: empty trade set")
    return summarize(r for _, r in results)


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------

def _group_keys(trade: AnyTrade, key: BreakdownKey, tz: tzinfo) -> list[str]:
    if key == BreakdownKey.PATTERN:
        return [trade.pattern or UNTAGGED]
    if key == BreakdownKey.SESSION:
        return [trade.session or UNTAGGED]
    if key == BreakdownKey.MISTAKE:
        return list(dict.fromkeys(trade.mistakes)) or [UNTAGGED]
    local = trade.opened_at.astimezone(tz)
    if key == BreakdownKey.HOUR:
        return [f"{local.hour:02d}"]
    return [DAY_NAMES[local.weekday()]]


def breakdown(
    trades: Iterable[AnyTrade],
    key: BreakdownKey,
    *,
    date_range: DateRange | None = None,
    tz: tzinfo = timezone.utc,
    min_sample_size: int = 3,
) -> list[GroupStats]:
    """Group closed trades by *key* and compute stats per group.

    Groups are sorted by descending win rate, then descending total
    profit.  Groups smaller than *min_sample_size* are returned but marked
    ``eligible=False`` so they never drive recommendations.
    """
    if min_sample_size < 1:
        raise ValueError(f"min_sample_size must be >= 1, got {min_sample_size}")

    buckets: dict[str, _Accumulator] = defaultdict(_Accumulator)
    for trade, result in closed_results(trades, date_range):
        for label in _group_keys(trade, key, tz):
            buckets[label].record(result.realized)

    groups = [
        GroupStats(key=label, eligible=acc.trades >= min_sample_size, **acc.fields())
        for label, acc in buckets.items()
    ]
    groups.sort(key=lambda g: (g.win_rate, g.total_profit), reverse=True)
    return groups


def top_groups(groups: Sequence[GroupStats], *, limit: int = 3) -> list[GroupStats]:
    """Best eligible groups, in breakdown order."""
    return [g for g in groups if g.eligible][:limit]
