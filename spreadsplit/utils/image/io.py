"""Image decoding and encoding helpers."""

from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from spreadsplit.errors import ImageDecodeError


def decode_image(data: bytes) -> Image.Image:
    """Decode an in-memory buffer into a fully loaded Pillow image."""
    if not data:
        raise ImageDecodeError("Image buffer is empty.")
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except Image.DecompressionBombError as exc:
        raise ImageDecodeError(f"Image is too large to decode safely: {exc}") from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Could not decode image buffer: {exc}") from exc
    if image.width <= 0 or image.height <= 0:
        raise ImageDecodeError(f"Decoded image has invalid size {image.width}x{image.height}.")
    return image


def encode_jpeg(image: Image.Image, quality: int, *, progressive: bool = True) -> bytes:
    """Encode an image as JPEG, flattening modes JPEG cannot store."""
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality, progressive=progressive, optimize=True)
    return buffer.getvalue()


__all__ = ["decode_image", "encode_jpeg"]
