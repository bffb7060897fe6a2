"""Fulfillment routing and courier assignment engine."""

__version__ = "1.0.0"
