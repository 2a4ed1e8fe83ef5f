"""Trade service — the explicit recompute seam between callers and storage.

Every fill mutation goes through :class:`TradeStateMachine` before it is
written, so ``status`` and ``profit_loss`` are always consistent with the
stored fills.  Mutations on the same trade are serialized:

* a per-trade lock orders concurrent writers inside one process, and
* an optimistic version check (``expected_version`` from the caller, and
  the stored version at write time) rejects lost updates with
  :class:`StaleTradeError`.

Reads (stats, breakdowns, drawdown, leaderboard) work on a snapshot of the
user's trades and never mutate anything.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Protocol, runtime_checkable
from weakref import WeakValueDictionary

from pydantic import BaseModel, ValidationError

from trade_journal.core.clock import IClock, WallClock
from trade_journal.core.config import AnalyticsConfig, Settings
from trade_journal.core.enums import BreakdownKey, LeaderboardWindow, TradeClass
from trade_journal.core.errors import (
    MalformedTradeError,
    StaleTradeError,
    TradeNotFoundError,
    TradeValidationError,
)
from trade_journal.core.ids import new_id
from trade_journal.core.models import EquityTrade, Fill, OptionTrade
from trade_journal.core.settings_cache import SettingsCache

from .aggregation import (
    AggregateStats,
    DateRange,
    GroupStats,
    breakdown,
    compute_user_stats,
    top_groups,
)
from .documents import field_path, trade_from_document
from .drawdown import DrawdownReport, compute_drawdown_and_streaks
from .leaderboard import Leaderboard, TraderBook, compute_leaderboard
from .lifecycle import LifecyclePolicy, TradeStateMachine

logger = logging.getLogger(__name__)

AnyTrade = EquityTrade | OptionTrade


class AnnotationPatch(BaseModel):
    """Tag fields editable without a recompute.  Unknown fields are rejected."""

    model_config = {"extra": "forbid"}

    pattern: str | None = None
    session: str | None = None
    notes: str | None = None
    mistakes: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Storage seam
# ---------------------------------------------------------------------------

@runtime_checkable
class TradeStore(Protocol):
    """Storage collaborator.  Persistence mechanics live behind this."""

    def get(self, trade_id: str) -> AnyTrade | None:
        ...

    def list_for_user(self, user_id: str) -> list[AnyTrade]:
        ...

    def put(self, trade: AnyTrade, *, expected_version: int | None) -> None:
        """Write *trade*.

        ``expected_version=None`` means create: the id must be new.
        Otherwise the stored version must equal *expected_version*.
        """
        ...

    def delete(self, trade_id: str) -> None:
        ...


class InMemoryTradeStore:
    """Thread-safe dict-backed store with version checks.

    Uses ``threading.RLock`` for write safety.  Reads return snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._trades: dict[str, AnyTrade] = {}

    def get(self, trade_id: str) -> AnyTrade | None:
        with self._lock:
            return self._trades.get(trade_id)

    def list_for_user(self, user_id: str) -> list[AnyTrade]:
        with self._lock:
            return [t for t in self._trades.values() if t.user_id == user_id]

    def put(self, trade: AnyTrade, *, expected_version: int | None) -> None:
        with self._lock:
            current = self._trades.get(trade.id)
            if expected_version is None:
                if current is not None:
                    raise StaleTradeError(trade.id, 0, current.version)
            elif current is None:
                raise TradeNotFoundError(f"Trade {trade.id} not found")
            elif current.version != expected_version:
                raise StaleTradeError(trade.id, expected_version, current.version)
            self._trades[trade.id] = trade

    def delete(self, trade_id: str) -> None:
        with self._lock:
            self._trades.pop(trade_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._trades)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TradeService:
    """Create, mutate and analyse trades for journal users.

    Parameters
    ----------
    store : TradeStore
        Storage collaborator.
    settings : SettingsCache | None
        Source of the analytics policy, re-read on every operation so that
        invalidating the cache takes effect immediately.
    clock : IClock | None
        Time source for bookkeeping timestamps and leaderboard windows.
    """

    def __init__(
        self,
        store: TradeStore,
        *,
        settings: SettingsCache | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or SettingsCache.fixed(Settings())
        self._clock = clock or WallClock()
        # Entries disappear once no writer holds the lock.
        self._locks: WeakValueDictionary[str, threading.Lock] = WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    @property
    def _analytics(self) -> AnalyticsConfig:
        return self._settings.get().analytics

    def _machine(self) -> TradeStateMachine:
        return TradeStateMachine(LifecyclePolicy.from_config(self._analytics))

    def _trade_lock(self, trade_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(trade_id)
            if lock is None:
                lock = self._locks[trade_id] = threading.Lock()
            return lock

    def _load(self, user_id: str, trade_id: str) -> AnyTrade:
        trade = self._store.get(trade_id)
        if trade is None or trade.user_id != user_id:
            raise TradeNotFoundError(f"Trade {trade_id} not found")
        return trade

    def _mutate(
        self,
        user_id: str,
        trade_id: str,
        expected_version: int | None,
        change: Callable[[AnyTrade], AnyTrade],
    ) -> AnyTrade:
        with self._trade_lock(trade_id):
            current = self._load(user_id, trade_id)
            if expected_version is not None and current.version != expected_version:
                raise StaleTradeError(trade_id, expected_version, current.version)
            changed = change(current)
            updated = changed.model_copy(
                update={"version": current.version + 1, "updated_at": self._clock.now()}
            )
            self._store.put(updated, expected_version=current.version)
        logger.debug(
            "Trade %s v%d: %s %s", trade_id, updated.version,
            updated.status.value, updated.profit_loss.realized,
        )
        return updated

    # ------------------------------------------------------------------ #
    # Trade lifecycle                                                      #
    # ------------------------------------------------------------------ #

    def create_trade(
        self,
        user_id: str,
        draft: AnyTrade,
        *,
        allow_day_trade_override: bool = False,
    ) -> AnyTrade:
        """Store a new trade built from *draft* (which carries its fills).

        Identity and bookkeeping fields of the draft are replaced; derived
        fields are recomputed.
        """
        now = self._clock.now()
        trade = draft.model_copy(
            update={
                "id": new_id(),
                "user_id": user_id,
                "created_at": now,
                "updated_at": now,
                "version": 1,
            }
        )
        trade = self._machine().open(trade, override=allow_day_trade_override)
        self._store.put(trade, expected_version=None)
        logger.info("Created trade %s (%s %s) for %s", trade.id, trade.direction.value, trade.symbol, user_id)
        return trade

    def add_fill(
        self,
        user_id: str,
        trade_id: str,
        fill: Fill,
        *,
        expected_version: int | None = None,
        allow_day_trade_override: bool = False,
    ) -> AnyTrade:
        machine = self._machine()
        return self._mutate(
            user_id,
            trade_id,
            expected_version,
            lambda t: machine.add_fill(t, fill, override=allow_day_trade_override),
        )

    def amend_fill(
        self,
        user_id: str,
        trade_id: str,
        fill_id: str,
        *,
        quantity: Decimal | float | None = None,
        price: Decimal | float | None = None,
        timestamp: datetime | None = None,
        expected_version: int | None = None,
        allow_day_trade_override: bool = False,
    ) -> AnyTrade:
        machine = self._machine()
        return self._mutate(
            user_id,
            trade_id,
            expected_version,
            lambda t: machine.amend_fill(
                t,
                fill_id,
                quantity=quantity,
                price=price,
                timestamp=timestamp,
                override=allow_day_trade_override,
            ),
        )

    def remove_fill(
        self,
        user_id: str,
        trade_id: str,
        fill_id: str,
        *,
        expected_version: int | None = None,
        allow_day_trade_override: bool = False,
    ) -> AnyTrade:
        machine = self._machine()
        return self._mutate(
            user_id,
            trade_id,
            expected_version,
            lambda t: machine.remove_fill(t, fill_id, override=allow_day_trade_override),
        )

    def update_annotations(
        self,
        user_id: str,
        trade_id: str,
        *,
        expected_version: int | None = None,
        **changes: Any,
    ) -> AnyTrade:
        """Edit descriptive tags.  P&L is unaffected, so no recompute."""
        try:
            patch = AnnotationPatch.model_validate(changes)
        except ValidationError as exc:
            first = exc.errors()[0]
            raise TradeValidationError(field_path(first["loc"]), first["msg"]) from exc
        update = patch.model_dump(exclude_unset=True)
        return self._mutate(
            user_id, trade_id, expected_version, lambda t: t.model_copy(update=update)
        )

    def delete_trade(self, user_id: str, trade_id: str) -> None:
        with self._trade_lock(trade_id):
            self._load(user_id, trade_id)
            self._store.delete(trade_id)
        logger.info("Deleted trade %s for %s", trade_id, user_id)

    def bulk_delete(self, user_id: str, trade_ids: Iterable[str]) -> int:
        """Delete several trades; nothing is deleted unless all are owned."""
        ids = list(dict.fromkeys(trade_ids))
        if not ids:
            raise TradeValidationError("tradeIds", "no trade ids given")
        for trade_id in ids:
            self._load(user_id, trade_id)
        for trade_id in ids:
            self.delete_trade(user_id, trade_id)
        return len(ids)

    def import_documents(
        self,
        user_id: str,
        docs: Iterable[Mapping[str, Any]],
        *,
        allow_day_trade_override: bool = False,
    ) -> list[AnyTrade]:
        """Bulk-import persisted documents.

        Every document is parsed and recomputed before anything is stored;
        one bad document rejects the whole import.
        """
        machine = self._machine()
        now = self._clock.now()
        prepared: list[AnyTrade] = []
        for index, doc in enumerate(docs):
            try:
                trade = trade_from_document(doc)
                trade = machine.open(trade, override=allow_day_trade_override)
            except MalformedTradeError:
                raise
            except TradeValidationError as exc:
                raise MalformedTradeError(
                    doc.get("id"), f"[{index}].{exc.field}", exc.message
                ) from exc
            prepared.append(
                trade.model_copy(
                    update={
                        "id": new_id(),
                        "user_id": user_id,
                        "created_at": now,
                        "updated_at": now,
                        "version": 1,
                    }
                )
            )
        for trade in prepared:
            self._store.put(trade, expected_version=None)
        logger.info("Imported %d trades for %s", len(prepared), user_id)
        return prepared

    # ------------------------------------------------------------------ #
    # Analytics                                                            #
    # ------------------------------------------------------------------ #

    def get_trade(self, user_id: str, trade_id: str) -> AnyTrade:
        return self._load(user_id, trade_id)

    def list_trades(self, user_id: str) -> list[AnyTrade]:
        return sorted(
            self._store.list_for_user(user_id),
            key=lambda t: t.opened_at or t.created_at,
            reverse=True,
        )

    def user_stats(self, user_id: str, date_range: DateRange | None = None) -> AggregateStats:
        return compute_user_stats(self._store.list_for_user(user_id), date_range)

    def user_breakdown(
        self,
        user_id: str,
        key: BreakdownKey | str,
        *,
        date_range: DateRange | None = None,
    ) -> list[GroupStats]:
        cfg = self._analytics
        return breakdown(
            self._store.list_for_user(user_id),
            BreakdownKey(key),
            date_range=date_range,
            tz=cfg.tzinfo,
            min_sample_size=cfg.min_sample_size,
        )

    def user_top_groups(self, user_id: str, key: BreakdownKey | str) -> list[GroupStats]:
        return top_groups(
            self.user_breakdown(user_id, key), limit=self._analytics.breakdown_limit
        )

    def user_drawdown(self, user_id: str) -> DrawdownReport:
        return compute_drawdown_and_streaks(
            self._store.list_for_user(user_id), tz=self._analytics.tzinfo
        )

    def leaderboard(
        self,
        users: Mapping[str, str],
        window: LeaderboardWindow | str = LeaderboardWindow.ALL,
    ) -> Leaderboard:
        """Rank *users* (``user_id -> display name``) inside *window*."""
        books = []
        for user_id, name in users.items():
            trades = self._store.list_for_user(user_id)
            books.append(
                TraderBook(
                    user_id=user_id,
                    display_name=name,
                    equity_trades=[t for t in trades if t.trade_class == TradeClass.EQUITY.value],
                    option_trades=[t for t in trades if t.trade_class == TradeClass.OPTION.value],
                )
            )
        return compute_leaderboard(
            books, window, clock=self._clock, tz=self._analytics.tzinfo
        )
