"""Inventory and order management HTTP services."""

__version__ = "0.1.0"