"""Leaderboard ranker — cross-user ranking by realized profit.

Each trader contributes equity and option trades.  For the selected window
the union of both is aggregated with the same rules as
:func:`~trade_journal.journal.aggregation.compute_user_stats`, and traders
are ranked by descending ``total_profit``.  Ties keep input order (stable
sort).  Traders without trades in the window stay on the board with
all-zero stats.

Windows are resolved against an injected clock:

=========  ================================================
``today``  since local midnight in the configured timezone
``week``   the last 7 days
``month``  since the same day of the previous calendar month
``year``   since the same day of the previous year
``all``    unbounded
=========  ================================================
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from trade_journal.core.clock import IClock, WallClock
from trade_journal.core.enums import LeaderboardWindow, TradeClass
from trade_journal.core.errors import LeaderboardError, MalformedTradeError
from trade_journal.core.models import RECORD_CONFIG, EquityTrade, OptionTrade

from .aggregation import AggregateStats, DateRange, closed_results, summarize

logger = logging.getLogger(__name__)


@dataclass
class TraderBook:
    """All trades of one user, split by trade class."""

    user_id: str
    display_name: str = ""
    equity_trades: Sequence[EquityTrade] = field(default_factory=list)
    option_trades: Sequence[OptionTrade] = field(default_factory=list)


class LeaderboardEntry(BaseModel):
    model_config = RECORD_CONFIG

    rank: int
    user_id: str
    display_name: str = ""
    stats: AggregateStats


class Leaderboard(BaseModel):
    model_config = RECORD_CONFIG

    window: LeaderboardWindow
    start: datetime | None = None
    generated_at: datetime
    entries: list[LeaderboardEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

def _shift_months(moment: datetime, months: int) -> datetime:
    """Move *moment* back by whole months, clamping to the month's last day."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_window(
    window: LeaderboardWindow | str,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> DateRange | None:
    """Translate a window name into a date range ending at *now*."""
    window = LeaderboardWindow(window)
    if window == LeaderboardWindow.ALL:
        return None
    local_now = now.astimezone(tz)
    if window == LeaderboardWindow.TODAY:
        start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif window == LeaderboardWindow.WEEK:
        start = local_now - timedelta(days=7)
    elif window == LeaderboardWindow.MONTH:
        start = _shift_months(local_now, 1)
    else:
        start = _shift_months(local_now, 12)
    return DateRange(start=start)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def _check_classes(book: TraderBook) -> None:
    for trade in book.equity_trades:
        if trade.trade_class != TradeClass.EQUITY.value:
            raise MalformedTradeError(
                trade.id, "tradeClass", f"expected EQUITY in equity trades of {book.user_id}"
            )
    for trade in book.option_trades:
        if trade.trade_class != TradeClass.OPTION.value:
            raise MalformedTradeError(
                trade.id, "tradeClass", f"expected OPTION in option trades of {book.user_id}"
            )


def compute_leaderboard(
    books: Iterable[TraderBook],
    window: LeaderboardWindow | str = LeaderboardWindow.ALL,
    *,
    clock: IClock | None = None,
    tz: tzinfo = timezone.utc,
) -> Leaderboard:
    """Rank traders by realized profit inside *window*."""
    window = LeaderboardWindow(window)
    now = (clock or WallClock()).now()
    date_range = resolve_window(window, now, tz)

    seen: set[str] = set()
    rows: list[tuple[TraderBook, AggregateStats]] = []
    for book in books:
        if book.user_id in seen:
            raise LeaderboardError(f"Duplicate user on leaderboard: {book.user_id}")
        seen.add(book.user_id)
        _check_classes(book)
        results = closed_results(
            [*book.equity_trades, *book.option_trades], date_range
        )
        rows.append((book, summarize(r for _, r in results)))

    rows.sort(key=lambda row: row[1].total_profit, reverse=True)
    entries = [
        LeaderboardEntry(
            rank=i + 1,
            user_id=book.user_id,
            display_name=book.display_name,
            stats=stats,
        )
        for i, (book, stats) in enumerate(rows)
    ]
    logger.debug("Leaderboard %s: %d traders", window.value, len(entries))
    return Leaderboard(
        window=window,
        start=date_range.start if date_range else None,
        generated_at=now,
        entries=entries,
    )
