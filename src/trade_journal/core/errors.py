"""Custom exception hierarchy for the trade journal."""


class JournalError(Exception):
    """Base exception for all trade journal errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


# --- Trade validation ---
class TradeValidationError(JournalError):
    """A trade or fill failed validation.

    ``field`` names the offending field (dotted path for nested values,
    e.g. ``fills[2].quantity``).
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class InvalidQuantity(TradeValidationError):
    """A fill has a non-positive quantity or a negative price."""


class OverExitQuantity(TradeValidationError):
    """Cumulative exit quantity would exceed cumulative entry quantity."""

    def __init__(self, entry_quantity, exit_quantity, field: str = "fills"):
        self.entry_quantity = entry_quantity
        self.exit_quantity = exit_quantity
        super().__init__(
            field,
            f"exit quantity {exit_quantity} exceeds entry quantity {entry_quantity}",
        )


class DayTradeWindowViolation(TradeValidationError):
    """An exit lies outside the day-trade window of a DAY-horizon trade."""

    def __init__(self, elapsed, window, field: str = "fills"):
        self.elapsed = elapsed
        self.window = window
        super().__init__(
            field,
            f"last exit is {elapsed} after first entry, "
            f"day trades must close within {window}",
        )


class ZeroEntryValueError(TradeValidationError):
    """Percentage return requested against a zero-value closed fraction."""


class MissingEntryFill(TradeValidationError):
    """A trade must always keep at least one ENTRY fill."""


class NonFiniteValue(TradeValidationError):
    """A numeric field is NaN or infinite."""


class MalformedTradeError(TradeValidationError):
    """A persisted document or batch record is missing or mis-types a field."""

    def __init__(self, trade_id: str | None, field: str, message: str):
        self.trade_id = trade_id
        label = f"trade {trade_id}" if trade_id else "trade"
        super().__init__(field, f"{label}: {message}")


# --- Service ---
class TradeNotFoundError(JournalError):
    """No trade with the given id is visible to the caller."""


class FillNotFoundError(JournalError):
    """The trade has no fill with the given id."""


class StaleTradeError(JournalError):
    """Optimistic version check failed; the trade changed underneath the caller."""

    def __init__(self, trade_id: str, expected: int, actual: int):
        self.trade_id = trade_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Trade {trade_id} is at version {actual}, expected {expected}"
        )


# --- Leaderboard ---
class LeaderboardError(JournalError):
    """Leaderboard input is inconsistent (e.g. duplicate user)."""


# --- Warnings ---
class EmptyTradeSetWarning(UserWarning):
    """An analytics function was called with no trades; zero result returned."""
