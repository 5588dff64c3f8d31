"""Bookkeeping and reconciliation engine for resale trading."""

__version__ = "0.1.0"
