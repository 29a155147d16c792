"""Pixel geometry and Pillow operations for cutting a spread into halves."""

from __future__ import annotations

from PIL import Image

from spreadsplit.detection._constants import NORMALIZED_SCALE
from spreadsplit.detection.heuristic import round_half_up
from spreadsplit.errors import CropGeometryError
from spreadsplit.utils.image import decode_image, encode_jpeg, resize_to_width

from .pages import CropWindow


def to_pixel(normalized: int, actual_width: int) -> int:
    return round_half_up(normalized / NORMALIZED_SCALE * actual_width)


def crop_box(
    window: CropWindow,
    image_width: int,
    image_height: int,
    padding: int = 0,
) -> tuple[int, int, int, int]:
    """Return the ``(left, top, right, bottom)`` pixel box for ``window``.

    Bounds come from the actual image width, not the analysis width. The width
    is clamped to what remains right of ``left`` so rounding never reads past
    the image edge. ``padding`` widens the crop on the gutter side only.
    """
    left = to_pixel(window.x_start, image_width)
    width = to_pixel(window.x_end - window.x_start, image_width)
    width = min(width, image_width - left)
    right = left + width

    if padding > 0:
        if window.x_start > 0:
            left = max(0, left - padding)
        if window.x_end < NORMALIZED_SCALE:
            right = min(image_width, right + padding)

    if right - left <= 0 or image_height <= 0:
        raise CropGeometryError(
            f"Degenerate crop {window.x_start}-{window.x_end} on {image_width}x{image_height} image"
        )
    return left, 0, right, image_height


def crop_half(
    image: Image.Image,
    window: CropWindow,
    *,
    display_width: int,
    quality: int,
    padding: int = 0,
) -> bytes:
    """Crop ``window`` out of ``image``, downscale to ``display_width`` and encode as JPEG."""
    box = crop_box(window, image.width, image.height, padding)
    cropped = image.crop(box)
    return encode_jpeg(resize_to_width(cropped, display_width), quality)


def make_thumbnail(data: bytes, width: int, quality: int) -> bytes:
    """Reduced-size JPEG derivative of an encoded image."""
    image = decode_image(data)
    return encode_jpeg(resize_to_width(image, width), quality)


__all__ = ["crop_box", "crop_half", "make_thumbnail", "to_pixel"]
