"""Decode scans into bounded-width grayscale rasters for column analysis."""

from __future__ import annotations

import numpy as np
from PIL import Image

from spreadsplit.errors import ImageDecodeError
from spreadsplit.utils.image import decode_image, resize_to_width

from ._constants import DEFAULT_ANALYSIS_WIDTH
from ._models import Raster


def raster_from_image(image: Image.Image, analysis_width: int = DEFAULT_ANALYSIS_WIDTH) -> Raster:
    """Convert a decoded image to an 8-bit grayscale raster no wider than ``analysis_width``."""
    if analysis_width < 1:
        raise ValueError("analysis_width must be >= 1")
    source_width, source_height = image.size
    gray = image.convert("L")
    gray = resize_to_width(gray, analysis_width)
    pixels = np.asarray(gray, dtype=np.uint8).copy()
    if pixels.ndim != 2 or pixels.size == 0:
        raise ImageDecodeError(f"Unexpected raster shape {pixels.shape}.")
    pixels.setflags(write=False)
    return Raster(pixels=pixels, source_width=source_width, source_height=source_height)


def sample_raster(data: bytes, analysis_width: int = DEFAULT_ANALYSIS_WIDTH) -> Raster:
    """Decode ``data`` and return its analysis raster.

    Raises:
        ImageDecodeError: when the buffer is not a decodable image.
    """
    return raster_from_image(decode_image(data), analysis_width)


def raster_from_array(pixels: np.ndarray) -> Raster:
    """Wrap an existing (height, width) grayscale array without resampling."""
    array = np.array(pixels, dtype=np.uint8, copy=True, order="C")
    if array.ndim != 2 or array.size == 0:
        raise ValueError(f"Expected a non-empty 2D array, got shape {array.shape}.")
    array.setflags(write=False)
    height, width = array.shape
    return Raster(pixels=array, source_width=width, source_height=height)


__all__ = ["raster_from_image", "raster_from_array", "sample_raster"]
