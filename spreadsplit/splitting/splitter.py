"""Turn a detection result into one or two page records."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
import uuid

from PIL import Image

from spreadsplit.config import get_settings
from spreadsplit.config.settings import SplittingSettings
from spreadsplit.detection import EmbeddedSplitDetection, SplitDetectionResult
from spreadsplit.storage import ObjectStore
from spreadsplit.utils.image import decode_image
from spreadsplit.utils.log_utils import logger

from .crop import crop_half, make_thumbnail
from .pages import CropWindow, Page


JPEG_CONTENT_TYPE = "image/jpeg"


def _new_page_id() -> str:
    return uuid.uuid4().hex


class SpreadSplitter:
    """Materialize pages from an uploaded scan.

    A spread is cut at the detected split position into a left and a right
    page whose display images and thumbnails are produced concurrently. Any
    failure on that path degrades to a single uncropped page so an upload is
    never lost to a bad crop.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        settings: SplittingSettings | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.object_store = object_store
        self.settings = settings or get_settings().splitting
        self.id_factory = id_factory or _new_page_id

    async def _store_thumbnail(self, data: bytes, book_id: str, page_id: str) -> str:
        thumbnail = await asyncio.to_thread(
            make_thumbnail,
            data,
            self.settings.thumbnail_width,
            self.settings.thumbnail_quality,
        )
        return await self.object_store.put(
            f"uploads/{book_id}/thumbnails/{page_id}.jpg", thumbnail, JPEG_CONTENT_TYPE
        )

    async def process_single_image(
        self,
        data: bytes,
        book_id: str,
        page_number: int,
        original_url: str,
        result: SplitDetectionResult | None = None,
        *,
        detection_error: str | None = None,
    ) -> Page:
        """Store ``data`` as one uncropped page."""
        page_id = self.id_factory()
        try:
            thumbnail_url = await self._store_thumbnail(data, book_id, page_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning(f"Thumbnail generation failed for page {page_id}, using original: {exc}")
            thumbnail_url = original_url

        return Page(
            id=page_id,
            book_id=book_id,
            page_number=page_number,
            photo=original_url,
            photo_original=original_url,
            thumbnail=thumbnail_url,
            split_detection=EmbeddedSplitDetection.from_result(result) if result else None,
            detection_error=detection_error,
        )

    async def _store_half(
        self,
        image: Image.Image,
        window: CropWindow,
        book_id: str,
        page_id: str,
    ) -> tuple[str, str]:
        cropped = await asyncio.to_thread(
            crop_half,
            image,
            window,
            display_width=self.settings.display_width,
            quality=self.settings.display_quality,
            padding=self.settings.padding_px,
        )
        cropped_url, thumbnail_url = await asyncio.gather(
            self.object_store.put(f"cropped/{book_id}/{page_id}.jpg", cropped, JPEG_CONTENT_TYPE),
            self._store_thumbnail(cropped, book_id, page_id),
        )
        return cropped_url, thumbnail_url

    async def process_split_image(
        self,
        data: bytes,
        book_id: str,
        start_page_number: int,
        original_url: str,
        result: SplitDetectionResult,
    ) -> tuple[Page, Page]:
        """Cut ``data`` at ``result.split_position`` into a left and a right page.

        Raises:
            ImageDecodeError: ``data`` cannot be decoded.
            CropGeometryError: either half would be empty.
        """
        image = await asyncio.to_thread(decode_image, data)
        left_window, right_window = CropWindow.pair(result.split_position)
        left_id, right_id = self.id_factory(), self.id_factory()

        (left_url, left_thumb), (right_url, right_thumb) = await asyncio.gather(
            self._store_half(image, left_window, book_id, left_id),
            self._store_half(image, right_window, book_id, right_id),
        )

        detected_at = datetime.now(UTC)
        left = Page(
            id=left_id,
            book_id=book_id,
            page_number=start_page_number,
            photo=left_url,
            photo_original=original_url,
            cropped_photo=left_url,
            thumbnail=left_thumb,
            crop=left_window,
            split_detection=EmbeddedSplitDetection.from_result(result, detected_at),
        )
        right = Page(
            id=right_id,
            book_id=book_id,
            page_number=start_page_number + 1,
            photo=right_url,
            photo_original=original_url,
            cropped_photo=right_url,
            thumbnail=right_thumb,
            crop=right_window,
            split_from=left_id,
            split_detection=EmbeddedSplitDetection.from_result(result, detected_at),
        )
        logger.info(
            f"Split {original_url} at {result.split_position} into pages "
            f"{start_page_number} and {start_page_number + 1}"
        )
        return left, right

    async def split(
        self,
        data: bytes,
        book_id: str,
        start_page_number: int,
        original_url: str,
        result: SplitDetectionResult | None,
        *,
        detection_error: str | None = None,
    ) -> list[Page]:
        """Return two pages for a detected spread, otherwise a single page."""
        if result is None or not result.is_two_page_spread:
            page = await self.process_single_image(
                data,
                book_id,
                start_page_number,
                original_url,
                result,
                detection_error=detection_error,
            )
            return [page]

        try:
            return list(
                await self.process_split_image(
                    data, book_id, start_page_number, original_url, result
                )
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception(f"Split processing failed for {original_url}, storing single page")
            page = await self.process_single_image(
                data,
                book_id,
                start_page_number,
                original_url,
                result,
                detection_error=f"Split processing failed: {exc}",
            )
            return [page]


__all__ = ["JPEG_CONTENT_TYPE", "SpreadSplitter"]
