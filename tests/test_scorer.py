from __future__ import annotations

from dataclasses import replace
import json
from pathlib import Path

import numpy as np
import pytest

from spreadsplit.detection import (
    SplitModel,
    SplitModelWeights,
    extract_features,
    raster_from_array,
)
from spreadsplit.errors import BackendUnavailable
from spreadsplit.storage import FileModelRepository


@pytest.fixture
def gutter_features():
    pixels = np.full((250, 500), 255, dtype=np.uint8)
    for top in range(12, 238, 12):
        pixels[top : top + 4, 50:200] = 0
        pixels[top : top + 4, 300:450] = 0
    pixels[:, 245:255] = 0
    return extract_features(raster_from_array(pixels), page_position=0.25, book_size_category=2)


def test_centre_features_find_the_dark_gutter(gutter_features) -> None:
    f = gutter_features

    assert f.width == 500
    assert f.height == 250
    assert f.aspect_ratio == pytest.approx(2.0)
    assert f.center_darkest_p10 == 0
    assert f.center_darkest_idx == 45
    assert f.has_inverted_gutter is False
    assert f.gutter_width == 10
    assert f.predicted_dark_run == pytest.approx(100.0)
    assert f.predicted_transitions == 0
    assert f.page_position == 0.25
    assert f.book_size_category == 2


def test_text_boundary_features(gutter_features) -> None:
    f = gutter_features

    assert f.left_page_text_start == pytest.approx(100.0)
    assert f.left_page_text_end == pytest.approx(398.0)
    assert f.right_page_text_start == pytest.approx(600.0)
    assert f.right_page_text_end == pytest.approx(898.0)
    assert f.text_gap_center == pytest.approx(499.0)
    assert f.left_margin == pytest.approx(10.0)
    assert f.right_margin == pytest.approx(10.0)
    assert f.ideal_split_from_text == pytest.approx(499.0)


def test_bright_gutter_is_flagged_inverted() -> None:
    pixels = np.full((250, 500), 255, dtype=np.uint8)
    pixels[:, :25] = 40
    pixels[:, -25:] = 40
    pixels[:, 25:200] = 90
    pixels[:, 300:475] = 90

    features = extract_features(raster_from_array(pixels))

    assert features.has_inverted_gutter is True
    assert features.center_brightest_p10 == 255


def test_default_model_predicts_centre(gutter_features) -> None:
    assert SplitModel().predict(gutter_features) == 500


@pytest.mark.parametrize(("bias", "expected"), [(900.0, 800), (100.0, 200), (650.4, 650)])
def test_predictions_are_clamped(gutter_features, bias: float, expected: int) -> None:
    model = SplitModel(weights=SplitModelWeights(bias=bias))

    assert model.predict(gutter_features) == expected


def test_weighted_terms_are_centred(gutter_features) -> None:
    model = SplitModel(
        weights=SplitModelWeights(text_gap_center_weight=100.0, page_position_offset=40.0)
    )
    features = replace(gutter_features, text_gap_center=520.0)

    # 500 + 100 * (520 - 500) / 100 + 40 * (0.25 - 0.5)
    assert model.predict(features) == 510


def test_model_descriptor_uses_camel_case() -> None:
    model = SplitModel.model_validate(
        {
            "weights": {"bias": 480, "textGapCenterWeight": 12.5},
            "version": 3,
            "bookId": "book-1",
            "trainingSize": 42,
            "validationMSE": 18.2,
        }
    )

    assert model.weights.bias == 480
    assert model.weights.text_gap_center_weight == 12.5
    assert model.weights.margin_balance_weight == 0.0
    assert model.validation_mse == pytest.approx(18.2)
    assert model.model_dump(by_alias=True)["validationMSE"] == pytest.approx(18.2)


def _write_model(directory: Path, name: str, version: int) -> None:
    payload = {"weights": {"bias": 500}, "version": version}
    (directory / f"{name}.json").write_text(json.dumps(payload), encoding="utf-8")


@pytest.mark.asyncio
async def test_repository_prefers_book_model(tmp_path: Path) -> None:
    _write_model(tmp_path, "book-1", 7)
    _write_model(tmp_path, "global", 2)
    repository = FileModelRepository(tmp_path)

    book_model = await repository.find_active_model("book-1")
    other_model = await repository.find_active_model("book-2")
    unscoped = await repository.find_active_model(None)

    assert book_model is not None and book_model.version == 7
    assert other_model is not None and other_model.version == 2
    assert unscoped is not None and unscoped.version == 2


@pytest.mark.asyncio
async def test_repository_without_models_returns_none(tmp_path: Path) -> None:
    assert await FileModelRepository(tmp_path).find_active_model("book-1") is None


@pytest.mark.asyncio
async def test_repository_rejects_corrupt_descriptor(tmp_path: Path) -> None:
    (tmp_path / "global.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(BackendUnavailable):
        await FileModelRepository(tmp_path).find_active_model(None)


@pytest.mark.asyncio
async def test_repository_rejects_path_traversal(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        await FileModelRepository(tmp_path).find_active_model("../escape")
