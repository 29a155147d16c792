"""Exception types raised by spread detection and splitting."""

from __future__ import annotations


class SplitDetectionError(RuntimeError):
    """Base class for every error raised by this package."""


class ConfigurationError(SplitDetectionError):
    """Raised when the selected detection policy needs a capability that is not configured.

    Examples are the ``ml`` policy without a persisted model, or the ``vision``
    policy without an API key or a public image URL. These are deployment
    problems and are never retried.
    """


class BackendUnavailable(SplitDetectionError):
    """Raised when a configured backend fails at call time (network, timeout, bad payload)."""


class ImageDecodeError(SplitDetectionError):
    """Raised when an image buffer cannot be rasterized."""


class CropGeometryError(SplitDetectionError):
    """Raised when computed crop bounds are degenerate after clamping."""


__all__ = [
    "SplitDetectionError",
    "ConfigurationError",
    "BackendUnavailable",
    "ImageDecodeError",
    "CropGeometryError",
]
