"""Trade Journal & Analytics — realized P&L and performance statistics.

Recomputes every trade's status and realized P&L from its fills, and
derives per-user statistics, categorical breakdowns, drawdown/streak
reports and cross-user leaderboards from those recomputed values.

Key components
--------------
compute_pnl          Realized P&L of the closed portion of a position
validate_fills       Quantity, price and day-trade window rules
TradeStateMachine    OPEN / PARTIALLY_CLOSED / CLOSED transitions
compute_user_stats   Win rate, profit factor, average win/loss
breakdown            Per-pattern / session / hour / weekday / mistake stats
compute_drawdown_and_streaks  Equity curve, drawdown, daily streaks
compute_leaderboard  Ranking of traders by realized profit
TradeService         Serialized mutations over an injected store
"""

from .pnl import PnLResult, compute_pnl, compute_trade_state, evaluate_trade
from .validation import validate_fills
from .lifecycle import LifecyclePolicy, TradeStateMachine
from .aggregation import (
    AggregateStats,
    DateRange,
    GroupStats,
    breakdown,
    compute_user_stats,
    top_groups,
)
from .drawdown import DrawdownReport, EquityPoint, compute_drawdown_and_streaks
from .leaderboard import Leaderboard, LeaderboardEntry, TraderBook, compute_leaderboard
from .documents import trade_from_document, trade_to_document, trades_from_documents
from .service import InMemoryTradeStore, TradeService, TradeStore

__all__ = [
    "PnLResult",
    "compute_pnl",
    "compute_trade_state",
    "evaluate_trade",
    "validate_fills",
    "LifecyclePolicy",
    "TradeStateMachine",
    "AggregateStats",
    "DateRange",
    "GroupStats",
    "breakdown",
    "compute_user_stats",
    "top_groups",
    "DrawdownReport",
    "EquityPoint",
    "compute_drawdown_and_streaks",
    "Leaderboard",
    "LeaderboardEntry",
    "TraderBook",
    "compute_leaderboard",
    "trade_from_document",
    "trade_to_document",
    "trades_from_documents",
    "InMemoryTradeStore",
    "TradeService",
    "TradeStore",
]
