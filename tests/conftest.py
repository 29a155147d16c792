"""Synthetic scans shared by the detection and splitting tests."""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO

import numpy as np
from PIL import Image
import pytest


WHITE = 255
INK = 0


def scan_pixels(
    width: int,
    height: int,
    *,
    band_start: int | None = None,
    band_width: int = 0,
    text: bool = False,
) -> np.ndarray:
    """White page, optionally with a full-height dark band and two blocks of text lines.

    Text lines are 4 px tall every 12 px and cover 10-40 % and 60-90 % of the
    width, so they never touch the centre of the image.
    """
    pixels = np.full((height, width), WHITE, dtype=np.uint8)
    if text:
        for top in range(height // 20, height - height // 20, 12):
            for lo, hi in ((0.10, 0.40), (0.60, 0.90)):
                pixels[top : top + 4, int(width * lo) : int(width * hi)] = INK
    if band_start is not None and band_width > 0:
        pixels[:, band_start : band_start + band_width] = INK
    return pixels


def encode_png(pixels: np.ndarray) -> bytes:
    buffer = BytesIO()
    Image.fromarray(pixels).convert("RGB").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_scan() -> Callable[..., bytes]:
    """Return a factory producing encoded PNG scans from :func:`scan_pixels` arguments."""

    def _make(width: int, height: int, **kwargs: object) -> bytes:
        return encode_png(scan_pixels(width, height, **kwargs))  # type: ignore[arg-type]

    return _make


@pytest.fixture
def spread_scan(make_scan: Callable[..., bytes]) -> bytes:
    """2000x1000 spread with a 20 px gutter at x=990 and text on both pages."""
    return make_scan(2000, 1000, band_start=990, band_width=20, text=True)


@pytest.fixture
def portrait_scan(make_scan: Callable[..., bytes]) -> bytes:
    return make_scan(1000, 1400)
