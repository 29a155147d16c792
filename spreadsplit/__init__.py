"""Spread detection and split-point localization for scanned books."""

__version__ = "0.1.0"
