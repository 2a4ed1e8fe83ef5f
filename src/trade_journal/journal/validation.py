"""Validation rules evaluated before a lifecycle transition commits.

Every rule raises a :class:`~trade_journal.core.errors.TradeValidationError`
subclass naming the offending field.  Nothing is auto-corrected.

Rules
-----
* every fill: finite numbers, ``quantity > 0``, ``price >= 0``
* at least one ENTRY fill
* cumulative EXIT quantity never exceeds cumulative ENTRY quantity
* DAY-horizon trades: last exit within the day-trade window of the first
  entry, unless the caller supplies an override
* fill ids are unique within a trade
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from trade_journal.core.enums import FillKind, Horizon
from trade_journal.core.errors import (
    DayTradeWindowViolation,
    InvalidQuantity,
    MissingEntryFill,
    NonFiniteValue,
    OverExitQuantity,
    TradeValidationError,
)
from trade_journal.core.models import Fill

logger = logging.getLogger(__name__)

DEFAULT_DAY_TRADE_WINDOW = timedelta(hours=24)

_ZERO = Decimal("0")


def _require_finite(value: Decimal, field: str) -> None:
    if not Decimal(value).is_finite():
        raise NonFiniteValue(field, f"must be a finite number, got {value}")


def validate_fill(fill: Fill, index: int = 0) -> None:
    """Check the numeric bounds of a single fill."""
    prefix = f"fills[{index}]"
    _require_finite(fill.quantity, f"{prefix}.quantity")
    _require_finite(fill.price, f"{prefix}.price")
    if fill.quantity <= 0:
        raise InvalidQuantity(
            f"{prefix}.quantity", f"quantity must be positive, got {fill.quantity}"
        )
    if fill.price < 0:
        raise InvalidQuantity(
            f"{prefix}.price", f"price must be non-negative, got {fill.price}"
        )


def check_quantity_conservation(fills: Iterable[Fill]) -> tuple[Decimal, Decimal]:
    """Return ``(entry_quantity, exit_quantity)`` or raise if exits overshoot.

    Totals are compared, not running sums, since fills may be amended or
    removed out of order.
    """
    entry_qty = _ZERO
    exit_qty = _ZERO
    for f in fills:
        if f.kind == FillKind.ENTRY:
            entry_qty += f.quantity
        else:
            exit_qty += f.quantity
    if entry_qty == 0:
        raise MissingEntryFill("fills", "a trade needs at least one ENTRY fill")
    if exit_qty > entry_qty:
        raise OverExitQuantity(entry_qty, exit_qty)
    return entry_qty, exit_qty


def check_day_trade_window(
    fills: Sequence[Fill],
    horizon: Horizon | None,
    *,
    window: timedelta = DEFAULT_DAY_TRADE_WINDOW,
    override: bool = False,
) -> None:
    """Reject a DAY trade whose last exit falls outside the window.

    The boundary itself is accepted: an exit exactly ``window`` after the
    first entry is valid.
    """
    if horizon != Horizon.DAY:
        return
    entries = [f.timestamp for f in fills if f.kind == FillKind.ENTRY]
    exits = [f.timestamp for f in fills if f.kind == FillKind.EXIT]
    if not entries or not exits:
        return
    elapsed = max(exits) - min(entries)
    if elapsed <= window:
        return
    if override:
        logger.info(
            "Day-trade window override applied (elapsed=%s, window=%s)",
            elapsed,
            window,
        )
        return
    raise DayTradeWindowViolation(elapsed, window)


def validate_fills(
    fills: Sequence[Fill],
    *,
    horizon: Horizon | None = None,
    window: timedelta = DEFAULT_DAY_TRADE_WINDOW,
    override: bool = False,
) -> tuple[Decimal, Decimal]:
    """Run every fill rule; return ``(entry_quantity, exit_quantity)``."""
    seen: set[str] = set()
    for i, f in enumerate(fills):
        if f.id in seen:
            raise TradeValidationError(f"fills[{i}].id", f"duplicate fill id {f.id!r}")
        seen.add(f.id)
        validate_fill(f, i)
    quantities = check_quantity_conservation(fills)
    check_day_trade_window(fills, horizon, window=window, override=override)
    return quantities
