"""Realized P&L reconciliation for trading bot offer history."""

__version__ = "0.1.0"
