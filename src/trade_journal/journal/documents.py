"""Persisted trade documents.

The storage collaborator owns persistence; the journal only has to accept
its document shape and produce values that match it field-for-field::

    {
      "id": "...", "userId": "...", "symbol": "AAPL", "direction": "LONG",
      "tradeClass": "EQUITY", "horizon": "DAY",
      "fills": [{"id": "...", "kind": "ENTRY", "quantity": 100,
                 "price": 10.0, "timestamp": "2024-01-02T14:30:00Z"}],
      "status": "CLOSED",
      "profitLoss": {"realized": 200.0, "percentage": 20.0, "perUnit": 2.0},
      "pattern": "bull_flag", "session": "open", "mistakes": [], "notes": "",
      "createdAt": "...", "updatedAt": "...", "version": 3
    }

Schema problems are reported as :class:`MalformedTradeError` with the
offending field path (``fills[0].price``).
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from trade_journal.core.errors import MalformedTradeError, TradeValidationError
from trade_journal.core.models import TRADE_ADAPTER, EquityTrade, OptionTrade, TradeState

from .pnl import compute_trade_state

AnyTrade = EquityTrade | OptionTrade

_TRADE_CLASSES = {"EQUITY", "OPTION"}


def field_path(loc: tuple) -> str:
    parts = list(loc)
    if parts and parts[0] in _TRADE_CLASSES:
        parts = parts[1:]  # discriminated-union tag
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "tradeClass"


def _malformed(doc: Mapping[str, Any], exc: ValidationError) -> MalformedTradeError:
    first = exc.errors()[0]
    trade_id = doc.get("id") if isinstance(doc, Mapping) else None
    return MalformedTradeError(trade_id, field_path(first["loc"]), first["msg"])


def trade_from_document(doc: Mapping[str, Any], *, validate_fills: bool = True) -> AnyTrade:
    """Parse one persisted document into a typed trade.

    With *validate_fills* the fill rules (quantities, prices, conservation)
    are checked too; stored ``status``/``profitLoss`` are kept as-is.
    """
    try:
        trade = TRADE_ADAPTER.validate_python(doc)
    except ValidationError as exc:
        raise _malformed(doc, exc) from exc
    if validate_fills:
        try:
            compute_trade_state(trade)
        except MalformedTradeError:
            raise
        except TradeValidationError as exc:
            raise MalformedTradeError(trade.id, exc.field, exc.message) from exc
    return trade


def trades_from_documents(docs: Iterable[Mapping[str, Any]]) -> list[AnyTrade]:
    """Parse a batch; the first malformed document fails the whole batch."""
    trades = []
    for index, doc in enumerate(docs):
        if not isinstance(doc, Mapping):
            raise MalformedTradeError(None, f"[{index}]", "document must be an object")
        trades.append(trade_from_document(doc))
    return trades


def trade_to_document(trade: AnyTrade) -> dict[str, Any]:
    """Serialize a trade into the persisted JSON-compatible shape."""
    return TRADE_ADAPTER.dump_python(trade, mode="json", by_alias=True)


def state_to_document(state: TradeState) -> dict[str, Any]:
    """``{"status": ..., "profitLoss": {...}}`` for a derived state."""
    return state.model_dump(mode="json", by_alias=True)
