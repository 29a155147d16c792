"""Upload pipeline: store the original, detect a spread, materialize pages."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import re

from spreadsplit.detection import DetectionStrategySelector, SplitDetectionResult
from spreadsplit.errors import BackendUnavailable, ImageDecodeError
from spreadsplit.storage import ObjectStore
from spreadsplit.utils.image import decode_image, encode_jpeg
from spreadsplit.utils.log_utils import logger

from .pages import Page
from .splitter import JPEG_CONTENT_TYPE, SpreadSplitter


JP2_CONTENT_TYPES = frozenset({"image/jp2", "image/jpx"})
JP2_CONVERSION_QUALITY = 85
_JP2_SUFFIX = re.compile(r"\.jp2$", re.IGNORECASE)


@dataclass(frozen=True)
class UploadResult:
    pages: list[Page]
    next_page_number: int


def convert_jp2_to_jpeg(data: bytes, quality: int = JP2_CONVERSION_QUALITY) -> bytes:
    """Re-encode a JPEG 2000 scan as JPEG so every downstream consumer can read it."""
    return encode_jpeg(decode_image(data), quality, progressive=False)


async def process_image_upload(
    data: bytes,
    filename: str,
    content_type: str,
    book_id: str,
    next_page_number: int,
    *,
    selector: DetectionStrategySelector,
    object_store: ObjectStore,
    splitter: SpreadSplitter | None = None,
) -> UploadResult:
    """Store an uploaded scan and turn it into one or two page records.

    Detection problems never block the upload: a backend failure or an
    undecodable image yields a single uncropped page with ``detection_error``
    set. A misconfigured detection policy is a deployment error and propagates.

    Raises:
        ConfigurationError: the configured policy cannot run.
    """
    splitter = splitter or SpreadSplitter(object_store)

    if content_type in JP2_CONTENT_TYPES:
        data = await asyncio.to_thread(convert_jp2_to_jpeg, data)
        content_type = JPEG_CONTENT_TYPE
        filename = _JP2_SUFFIX.sub(".jpg", filename)
        logger.info(f"Converted JPEG 2000 upload to {filename}")

    original_url = await object_store.put(f"uploads/{book_id}/{filename}", data, content_type)

    result: SplitDetectionResult | None = None
    detection_error: str | None = None
    try:
        result = await selector.detect(data, original_url, book_id=book_id)
    except (BackendUnavailable, ImageDecodeError) as exc:
        logger.warning(f"Split detection failed for {filename}, storing uncropped page: {exc}")
        detection_error = str(exc)

    pages = await splitter.split(
        data,
        book_id,
        next_page_number,
        original_url,
        result,
        detection_error=detection_error,
    )
    return UploadResult(pages=pages, next_page_number=next_page_number + len(pages))


__all__ = ["UploadResult", "convert_jp2_to_jpeg", "process_image_upload"]
