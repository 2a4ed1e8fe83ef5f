"""P&L calculator — realized gain/loss from a trade's fill list.

Pure functions only.  The result is re-derivable at any time from the
fills, direction and contract multiplier; nothing is patched incrementally.

For a closed fraction ``f = exit_qty / entry_qty``::

    proportional_entry_value = entry_value * exit_qty / entry_qty
    realized   = exit_value - proportional_entry_value      (LONG)
               = proportional_entry_value - exit_value      (SHORT)
    percentage = 100 * realized / proportional_entry_value
    per_unit   = realized / exit_qty

Option trades use a multiplier of 100 on both entry and exit values, so
``per_unit`` is the result per contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from trade_journal.core.enums import Direction, FillKind, TradeStatus
from trade_journal.core.errors import (
    MalformedTradeError,
    OverExitQuantity,
    TradeValidationError,
    ZeroEntryValueError,
)
from trade_journal.core.models import Fill, ProfitLoss, TradeState

from .validation import validate_fills

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PnLResult:
    """Full breakdown of one P&L computation."""

    entry_quantity: Decimal
    entry_value: Decimal
    exit_quantity: Decimal
    exit_value: Decimal
    status: TradeStatus
    profit_loss: ProfitLoss

    @property
    def realized(self) -> Decimal:
        return self.profit_loss.realized

    @property
    def closed_fraction(self) -> Decimal:
        if self.entry_quantity == 0:
            return _ZERO
        return self.exit_quantity / self.entry_quantity

    def to_state(self) -> TradeState:
        return TradeState(status=self.status, profit_loss=self.profit_loss)


def compute_pnl(
    fills: Iterable[Fill],
    direction: Direction,
    multiplier: int | Decimal = 1,
) -> PnLResult:
    """Compute realized P&L and status from *fills*.

    Raises
    ------
    OverExitQuantity
        Exit quantity exceeds entry quantity.
    ZeroEntryValueError
        Something was exited against a zero-value entry (zero-price entry).
    """
    mult = Decimal(multiplier)
    entry_qty = entry_value = exit_qty = exit_value = _ZERO
    for f in fills:
        value = f.quantity * f.price * mult
        if f.kind == FillKind.ENTRY:
            entry_qty += f.quantity
            entry_value += value
        else:
            exit_qty += f.quantity
            exit_value += value

    if exit_qty == 0:
        return PnLResult(
            entry_quantity=entry_qty,
            entry_value=entry_value,
            exit_quantity=exit_qty,
            exit_value=exit_value,
            status=TradeStatus.OPEN,
            profit_loss=ProfitLoss(),
        )

    if exit_qty > entry_qty:
        raise OverExitQuantity(entry_qty, exit_qty)

    closed_all = exit_qty == entry_qty
    # Multiply before dividing; a non-terminating fraction must not leave residue.
    proportional_entry = (
        entry_value if closed_all else entry_value * exit_qty / entry_qty
    )
    if proportional_entry == 0:
        raise ZeroEntryValueError(
            "fills", "cannot compute percentage return against a zero entry value"
        )

    if direction == Direction.LONG:
        realized = exit_value - proportional_entry
    else:
        realized = proportional_entry - exit_value

    return PnLResult(
        entry_quantity=entry_qty,
        entry_value=entry_value,
        exit_quantity=exit_qty,
        exit_value=exit_value,
        status=TradeStatus.CLOSED if closed_all else TradeStatus.PARTIALLY_CLOSED,
        profit_loss=ProfitLoss(
            realized=realized,
            percentage=_HUNDRED * realized / proportional_entry,
            per_unit=realized / exit_qty,
        ),
    )


def compute_trade_state(trade) -> TradeState:
    """Validate the fills of *trade* and derive ``status`` / ``profit_loss``.

    The day-trade window is a mutation rule and is not checked here; see
    :class:`~trade_journal.journal.lifecycle.TradeStateMachine`.
    """
    validate_fills(trade.fills)
    return compute_pnl(trade.fills, trade.direction, trade.multiplier).to_state()


def evaluate_trade(trade) -> PnLResult:
    """Recompute a stored trade for analytics.

    The fills are the only source of truth: stored ``status`` and
    ``profit_loss`` are ignored, and a warning is logged if they disagree
    with the recompute.  Any validation failure aborts the batch with a
    :class:`MalformedTradeError` naming the trade.
    """
    try:
        validate_fills(trade.fills)
        result = compute_pnl(trade.fills, trade.direction, trade.multiplier)
    except MalformedTradeError:
        raise
    except TradeValidationError as exc:
        raise MalformedTradeError(trade.id, exc.field, exc.message) from exc

    if (
        result.status != trade.status
        or result.profit_loss.realized != trade.profit_loss.realized
    ):
        logger.warning(
            "Stored P&L drift on trade %s: stored %s/%s, recomputed %s/%s",
            trade.id,
            trade.status.value,
            trade.profit_loss.realized,
            result.status.value,
            result.profit_loss.realized,
        )
    return result
