"""Enumerations used across the trade journal."""

from enum import Enum


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TradeClass(str, Enum):
    EQUITY = "EQUITY"
    OPTION = "OPTION"


class Horizon(str, Enum):
    """Holding horizon for equity trades."""

    DAY = "DAY"  # Must be closed within the day-trade window
    SWING = "SWING"  # No time constraint


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"
    CLOSED = "CLOSED"


class FillKind(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class ContractType(str, Enum):
    CALL = "CALL"
    PUT = "PUT"


class LeaderboardWindow(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


class BreakdownKey(str, Enum):
    """Grouping key for categorical performance breakdowns."""

    PATTERN = "pattern"
    SESSION = "session"
    HOUR = "hour"  # Hour of day of the first entry
    WEEKDAY = "weekday"  # Day of week of the first entry
    MISTAKE = "mistake"  # One group per mistake tag
