"""Configuration helpers for spreadsplit.

Expose `get_settings` as the canonical accessor for environment-driven
configuration. Modules should avoid loading `.env` directly and instead
import from this package to retrieve typed snapshots.
"""

from .settings import DETECTION_METHODS, SpreadSplitSettings, get_settings


__all__ = ["DETECTION_METHODS", "SpreadSplitSettings", "get_settings"]
