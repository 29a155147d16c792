from __future__ import annotations

from io import BytesIO
from pathlib import Path

from PIL import Image
import pytest

from spreadsplit.config.settings import SplittingSettings
from spreadsplit.detection import DetectionStrategySelector, HeuristicStrategy, SplitDetectionResult
from spreadsplit.errors import BackendUnavailable, ConfigurationError, ImageDecodeError
from spreadsplit.splitting import SpreadSplitter, process_image_upload
from spreadsplit.storage import LocalObjectStore


BASE_URL = "https://blob.example"


class RaisingSelector:
    def __init__(self, error: Exception) -> None:
        self.error = error

    async def detect(
        self, data: bytes, image_url: str | None = None, **kwargs: object
    ) -> SplitDetectionResult:
        raise self.error


@pytest.fixture
def store(tmp_path: Path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path, base_url=BASE_URL)


@pytest.fixture
def splitter(store: LocalObjectStore) -> SpreadSplitter:
    settings = SplittingSettings(
        display_width=1200,
        display_quality=80,
        thumbnail_width=150,
        thumbnail_quality=60,
        padding_px=0,
    )
    return SpreadSplitter(store, settings)


@pytest.fixture
def selector() -> DetectionStrategySelector:
    return DetectionStrategySelector("cascade", {"heuristic": HeuristicStrategy()})


@pytest.mark.asyncio
async def test_spread_upload_is_split_into_two_pages(
    spread_scan: bytes,
    tmp_path: Path,
    store: LocalObjectStore,
    splitter: SpreadSplitter,
    selector: DetectionStrategySelector,
) -> None:
    result = await process_image_upload(
        spread_scan,
        "scan.png",
        "image/png",
        "book-1",
        4,
        selector=selector,
        object_store=store,
        splitter=splitter,
    )

    assert result.next_page_number == 6
    left, right = result.pages
    assert (left.page_number, right.page_number) == (4, 5)
    assert left.photo_original == f"{BASE_URL}/uploads/book-1/scan.png"
    assert (tmp_path / "uploads" / "book-1" / "scan.png").read_bytes() == spread_scan

    detection = left.split_detection
    assert detection is not None
    assert detection.is_two_page_spread is True
    assert detection.confidence == "high"
    assert 495 <= detection.split_position <= 505
    assert detection.has_text_at_split is False
    assert left.crop is not None and left.crop.x_end == detection.split_position
    assert right.split_from == left.id
    assert (tmp_path / "cropped" / "book-1" / f"{left.id}.jpg").is_file()
    assert (tmp_path / "uploads" / "book-1" / "thumbnails" / f"{right.id}.jpg").is_file()


@pytest.mark.asyncio
async def test_portrait_upload_is_a_single_uncropped_page(
    portrait_scan: bytes,
    store: LocalObjectStore,
    splitter: SpreadSplitter,
    selector: DetectionStrategySelector,
) -> None:
    result = await process_image_upload(
        portrait_scan,
        "leaf.png",
        "image/png",
        "book-1",
        1,
        selector=selector,
        object_store=store,
        splitter=splitter,
    )

    assert result.next_page_number == 2
    (page,) = result.pages
    assert page.crop is None
    assert page.photo == page.photo_original == f"{BASE_URL}/uploads/book-1/leaf.png"
    assert page.split_detection is not None
    assert page.split_detection.is_two_page_spread is False
    assert page.split_detection.confidence == "high"
    assert page.detection_error is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [BackendUnavailable("vision timed out"), ImageDecodeError("bad buffer")]
)
async def test_detection_failure_stores_uncropped_page(
    spread_scan: bytes,
    store: LocalObjectStore,
    splitter: SpreadSplitter,
    error: Exception,
) -> None:
    result = await process_image_upload(
        spread_scan,
        "scan.png",
        "image/png",
        "book-1",
        1,
        selector=RaisingSelector(error),  # type: ignore[arg-type]
        object_store=store,
        splitter=splitter,
    )

    (page,) = result.pages
    assert page.crop is None
    assert page.split_detection is None
    assert page.detection_error == str(error)


@pytest.mark.asyncio
async def test_configuration_error_propagates(
    spread_scan: bytes,
    store: LocalObjectStore,
    splitter: SpreadSplitter,
) -> None:
    with pytest.raises(ConfigurationError):
        await process_image_upload(
            spread_scan,
            "scan.png",
            "image/png",
            "book-1",
            1,
            selector=RaisingSelector(ConfigurationError("no model")),  # type: ignore[arg-type]
            object_store=store,
            splitter=splitter,
        )


@pytest.mark.asyncio
async def test_jpeg2000_upload_is_converted(
    portrait_scan: bytes,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    store: LocalObjectStore,
    splitter: SpreadSplitter,
    selector: DetectionStrategySelector,
) -> None:
    converted: list[bytes] = []

    def fake_convert(data: bytes) -> bytes:
        converted.append(data)
        buffer = BytesIO()
        Image.open(BytesIO(data)).convert("RGB").save(buffer, format="JPEG")
        return buffer.getvalue()

    monkeypatch.setattr("spreadsplit.splitting.upload.convert_jp2_to_jpeg", fake_convert)

    result = await process_image_upload(
        portrait_scan,
        "leaf.JP2",
        "image/jp2",
        "book-1",
        1,
        selector=selector,
        object_store=store,
        splitter=splitter,
    )

    assert converted == [portrait_scan]
    assert result.pages[0].photo_original == f"{BASE_URL}/uploads/book-1/leaf.jpg"
    stored = (tmp_path / "uploads" / "book-1" / "leaf.jpg").read_bytes()
    assert stored[:2] == b"\xff\xd8"


@pytest.mark.asyncio
async def test_local_store_rejects_escaping_paths(store: LocalObjectStore) -> None:
    with pytest.raises(ValueError):
        await store.put("../outside.jpg", b"data", "image/jpeg")


@pytest.mark.asyncio
async def test_oversized_scan_is_stored_uncropped(
    spread_scan: bytes,
    monkeypatch: pytest.MonkeyPatch,
    store: LocalObjectStore,
    splitter: SpreadSplitter,
    selector: DetectionStrategySelector,
) -> None:
    # 2000x1000 is more than twice this limit, which makes Pillow refuse to decode.
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 500_000)

    result = await process_image_upload(
        spread_scan,
        "huge.png",
        "image/png",
        "book-1",
        1,
        selector=selector,
        object_store=store,
        splitter=splitter,
    )

    assert result.next_page_number == 2
    (page,) = result.pages
    assert page.crop is None
    assert page.split_detection is None
    assert page.photo == f"{BASE_URL}/uploads/book-1/huge.png"
    assert page.detection_error is not None
    assert "too large" in page.detection_error
