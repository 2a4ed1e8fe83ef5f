"""Trading journal P&L and analytics engine."""

__version__ = "0.1.0"
