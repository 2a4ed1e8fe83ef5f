"""Core trade records.

These are the canonical "truth models" for the journal.  A trade is one of
two variant records, :class:`EquityTrade` or :class:`OptionTrade`, selected
by the ``tradeClass`` discriminator.  Field names are snake_case in Python
and camelCase in the persisted document shape (``profitLoss``, ``perUnit``).

``status`` and ``profit_loss`` are derived values.  They are written only by
:mod:`trade_journal.journal.lifecycle` after a recompute from the fill list;
callers never set them directly.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, PlainSerializer, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from .enums import ContractType, Direction, FillKind, Horizon, TradeClass, TradeStatus
from .ids import ensure_utc, new_id, utc_now

# Option contracts always represent 100 units of the underlying.
OPTION_CONTRACT_MULTIPLIER = 100

# Exact decimal in Python, plain JSON number in the persisted document.
Number = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_ZERO = Decimal("0")

RECORD_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "frozen": True,
    "allow_inf_nan": False,
}


# ---------------------------------------------------------------------------
# Fills
# ---------------------------------------------------------------------------

class Fill(BaseModel):
    """One entry or exit execution.  Immutable once recorded.

    Quantity and price bounds are enforced by the validation rules, not
    here, so that violations surface as ``InvalidQuantity``.
    """

    model_config = RECORD_CONFIG

    id: str = Field(default_factory=new_id)
    kind: FillKind
    quantity: Number
    price: Number
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def timestamp_is_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ProfitLoss(BaseModel):
    """Realized result of the closed portion of a position."""

    model_config = RECORD_CONFIG

    realized: Number = _ZERO
    percentage: Number = _ZERO
    per_unit: Number = _ZERO


class Greeks(BaseModel):
    """Option Greeks snapshot.  Display only, never used in P&L."""

    model_config = RECORD_CONFIG

    delta: float | None = None
    gamma: float | None = None
    theta: float | None = None
    vega: float | None = None
    rho: float | None = None
    implied_volatility: float | None = None


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

class _TradeBase(BaseModel):
    model_config = RECORD_CONFIG

    # Identity
    id: str = Field(default_factory=new_id)
    user_id: str = ""
    symbol: str
    direction: Direction

    # Lifecycle
    fills: tuple[Fill, ...] = ()
    status: TradeStatus = TradeStatus.OPEN
    profit_loss: ProfitLoss = Field(default_factory=ProfitLoss)

    # Descriptive tags (breakdowns only)
    pattern: str | None = None
    session: str | None = None
    mistakes: tuple[str, ...] = ()
    notes: str | None = None
    tags: tuple[str, ...] = ()

    # Bookkeeping
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = 0

    @field_validator("symbol")
    @classmethod
    def symbol_is_upper(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be empty")
        return v

    @field_validator("created_at", "updated_at")
    @classmethod
    def bookkeeping_is_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    # ------------------------------------------------------------------ #
    # Computed properties                                                  #
    # ------------------------------------------------------------------ #

    @property
    def multiplier(self) -> int:
        return 1

    @property
    def entry_fills(self) -> list[Fill]:
        return [f for f in self.fills if f.kind == FillKind.ENTRY]

    @property
    def exit_fills(self) -> list[Fill]:
        return [f for f in self.fills if f.kind == FillKind.EXIT]

    @property
    def entry_quantity(self) -> Decimal:
        """Total quantity entered."""
        return sum((f.quantity for f in self.entry_fills), _ZERO)

    @property
    def exit_quantity(self) -> Decimal:
        """Total quantity exited."""
        return sum((f.quantity for f in self.exit_fills), _ZERO)

    @property
    def open_quantity(self) -> Decimal:
        """Quantity still open."""
        return self.entry_quantity - self.exit_quantity

    @property
    def avg_entry_price(self) -> Decimal:
        """Quantity-weighted average entry price."""
        qty = self.entry_quantity
        if qty == 0:
            return _ZERO
        return sum((f.price * f.quantity for f in self.entry_fills), _ZERO) / qty

    @property
    def avg_exit_price(self) -> Decimal:
        """Quantity-weighted average exit price."""
        qty = self.exit_quantity
        if qty == 0:
            return _ZERO
        return sum((f.price * f.quantity for f in self.exit_fills), _ZERO) / qty

    @property
    def opened_at(self) -> datetime | None:
        """Timestamp of the first entry fill."""
        entries = self.entry_fills
        return min(f.timestamp for f in entries) if entries else None

    @property
    def closed_at(self) -> datetime | None:
        """Timestamp of the last exit fill."""
        exits = self.exit_fills
        return max(f.timestamp for f in exits) if exits else None

    @property
    def hold_duration_seconds(self) -> float:
        """Seconds between first entry and last exit (0 while nothing exited)."""
        if self.opened_at is None or self.closed_at is None:
            return 0.0
        return (self.closed_at - self.opened_at).total_seconds()

    def fill(self, fill_id: str) -> Fill | None:
        for f in self.fills:
            if f.id == fill_id:
                return f
        return None


class EquityTrade(_TradeBase):
    """Stock/ETF trade.  One unit per share."""

    trade_class: Literal["EQUITY"] = "EQUITY"
    horizon: Horizon = Horizon.SWING


class OptionTrade(_TradeBase):
    """Option contract trade.  Each contract covers 100 underlying units."""

    trade_class: Literal["OPTION"] = "OPTION"
    contract_multiplier: Literal[100] = OPTION_CONTRACT_MULTIPLIER

    # Contract details
    contract_type: ContractType
    strike: Number | None = None
    expiration: datetime | None = None
    underlying_price: Number | None = None

    # Context
    greeks_at_entry: Greeks | None = None
    greeks_at_exit: Greeks | None = None
    strategy: str | None = None
    setup_type: str | None = None

    @field_validator("expiration")
    @classmethod
    def expiration_is_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @property
    def multiplier(self) -> int:
        return self.contract_multiplier

    @property
    def days_to_expiration(self) -> int | None:
        """Whole days (rounded up) from the first entry to expiration."""
        if self.expiration is None or self.opened_at is None:
            return None
        days = (self.expiration - self.opened_at).total_seconds() / 86400
        return math.ceil(days)


Trade = Annotated[Union[EquityTrade, OptionTrade], Field(discriminator="trade_class")]

TRADE_ADAPTER: TypeAdapter[EquityTrade | OptionTrade] = TypeAdapter(Trade)


def trade_class_of(trade: EquityTrade | OptionTrade) -> TradeClass:
    return TradeClass(trade.trade_class)


class TradeState(BaseModel):
    """Derived lifecycle values of one trade."""

    model_config = RECORD_CONFIG

    status: TradeStatus
    profit_loss: ProfitLoss
