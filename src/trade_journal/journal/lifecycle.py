"""Trade state machine — OPEN / PARTIALLY_CLOSED / CLOSED.

Any fill insert, amendment or removal is a transition trigger.  The
transition action is always the same: validate the candidate fill list,
recompute P&L from scratch, and re-derive ``status``.  If validation fails
the original trade is untouched and the error propagates to the caller.

Reverse transitions fall out of the recompute: removing the only EXIT fill
of a CLOSED trade yields OPEN with a zero ``profit_loss``; adding an ENTRY
fill to a CLOSED trade yields PARTIALLY_CLOSED.

Trades are immutable pydantic records, so every method returns a new trade.
Version and timestamp bookkeeping belong to the service layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Sequence

from pydantic import ValidationError

from trade_journal.core.enums import Horizon
from trade_journal.core.errors import FillNotFoundError, NonFiniteValue, TradeValidationError
from trade_journal.core.models import EquityTrade, Fill, OptionTrade

from .pnl import compute_pnl
from .validation import DEFAULT_DAY_TRADE_WINDOW, validate_fills

logger = logging.getLogger(__name__)

AnyTrade = EquityTrade | OptionTrade


@dataclass(frozen=True)
class LifecyclePolicy:
    """Configurable rules applied on every transition.

    ``allow_day_trade_override`` gates the caller-supplied override of the
    day-trade window.  When it is ``False`` the override flag is ignored.
    """

    day_trade_window: timedelta = DEFAULT_DAY_TRADE_WINDOW
    allow_day_trade_override: bool = True

    @classmethod
    def from_config(cls, config) -> LifecyclePolicy:
        return cls(
            day_trade_window=config.day_trade_window,
            allow_day_trade_override=config.allow_day_trade_override,
        )


def _horizon(trade: AnyTrade) -> Horizon | None:
    return getattr(trade, "horizon", None)


def _fill_error(exc: ValidationError, index: int) -> TradeValidationError:
    """Typed error for a fill rejected while it was being built."""
    first = exc.errors()[0]
    path = ".".join(str(part) for part in first["loc"])
    field = f"fills[{index}].{path}" if path else f"fills[{index}]"
    if first["type"] == "finite_number":
        return NonFiniteValue(field, first["msg"])
    return TradeValidationError(field, first["msg"])


class TradeStateMachine:
    """Applies fill mutations to trades.

    Parameters
    ----------
    policy : LifecyclePolicy | None
        Day-trade window and override policy.  Defaults to a 24h window
        with overrides honored.
    """

    def __init__(self, policy: LifecyclePolicy | None = None) -> None:
        self._policy = policy or LifecyclePolicy()

    @property
    def policy(self) -> LifecyclePolicy:
        return self._policy

    # ------------------------------------------------------------------ #
    # Transitions                                                          #
    # ------------------------------------------------------------------ #

    def open(self, trade: AnyTrade, *, override: bool = False) -> AnyTrade:
        """Validate a newly created trade and derive its state."""
        return self._commit(trade, trade.fills, "open", override)

    def recompute(self, trade: AnyTrade, *, override: bool = False) -> AnyTrade:
        """Re-derive state for an unchanged fill list."""
        return self._commit(trade, trade.fills, "recompute", override)

    def add_fill(
        self, trade: AnyTrade, fill: Fill, *, override: bool = False
    ) -> AnyTrade:
        """Append an ENTRY or EXIT fill."""
        action = f"add_{fill.kind.value.lower()}"
        return self._commit(trade, (*trade.fills, fill), action, override)

    def amend_fill(
        self,
        trade: AnyTrade,
        fill_id: str,
        *,
        quantity: Decimal | float | None = None,
        price: Decimal | float | None = None,
        timestamp: datetime | None = None,
        override: bool = False,
    ) -> AnyTrade:
        """Replace a fill with an amended copy (fills themselves are immutable)."""
        old = self._require_fill(trade, fill_id)
        index = trade.fills.index(old)
        try:
            new = Fill(
                id=old.id,
                kind=old.kind,
                quantity=old.quantity if quantity is None else quantity,
                price=old.price if price is None else price,
                timestamp=old.timestamp if timestamp is None else timestamp,
            )
        except ValidationError as exc:
            error = _fill_error(exc, index)
            logger.info("Rejected amend on trade %s: %s", trade.id, error)
            raise error from exc
        fills = tuple(new if f.id == fill_id else f for f in trade.fills)
        return self._commit(trade, fills, "amend", override)

    def remove_fill(
        self, trade: AnyTrade, fill_id: str, *, override: bool = False
    ) -> AnyTrade:
        """Drop a fill; may reopen a CLOSED trade."""
        self._require_fill(trade, fill_id)
        fills = tuple(f for f in trade.fills if f.id != fill_id)
        return self._commit(trade, fills, "remove", override)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_fill(trade: AnyTrade, fill_id: str) -> Fill:
        fill = trade.fill(fill_id)
        if fill is None:
            raise FillNotFoundError(f"Trade {trade.id} has no fill {fill_id!r}")
        return fill

    def _commit(
        self,
        trade: AnyTrade,
        fills: Sequence[Fill],
        action: str,
        override: bool,
    ) -> AnyTrade:
        try:
            validate_fills(
                fills,
                horizon=_horizon(trade),
                window=self._policy.day_trade_window,
                override=override and self._policy.allow_day_trade_override,
            )
            result = compute_pnl(fills, trade.direction, trade.multiplier)
        except TradeValidationError as exc:
            logger.info("Rejected %s on trade %s: %s", action, trade.id, exc)
            raise

        if result.status != trade.status:
            logger.debug(
                "Trade %s %s: %s -> %s",
                trade.id,
                action,
                trade.status.value,
                result.status.value,
            )
        return trade.model_copy(
            update={
                "fills": tuple(fills),
                "status": result.status,
                "profit_loss": result.profit_loss,
            }
        )
