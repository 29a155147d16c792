from __future__ import annotations

import numpy as np
import pytest

from spreadsplit.detection import HeuristicDetector, analyze_columns, find_gutter, raster_from_array
from spreadsplit.detection.gutter import gutter_scores


def _band_raster(band_start: int, band_width: int, width: int = 1000, height: int = 400):
    pixels = np.full((height, width), 255, dtype=np.uint8)
    pixels[:, band_start : band_start + band_width] = 0
    return raster_from_array(pixels)


@pytest.mark.parametrize("band_start", [360, 420, 500, 590, 630])
@pytest.mark.parametrize("band_width", [8, 12, 20])
def test_uniform_band_is_found_at_its_leading_column(band_start: int, band_width: int) -> None:
    profiles = analyze_columns(_band_raster(band_start, band_width))

    gutter = find_gutter(profiles)

    assert gutter.position == band_start
    assert gutter.score == pytest.approx(92.5)


def test_band_detection_is_high_confidence_with_normalized_position() -> None:
    result = HeuristicDetector().detect(_band_raster(480, 12))

    assert result.is_two_page_spread is True
    assert result.confidence == "high"
    assert result.split_position == 480
    assert result.split_position_percent == pytest.approx(48.0)
    assert result.has_text_at_split is False
    assert result.text_warning is None


def test_ties_resolve_to_first_column_of_search_region() -> None:
    profiles = analyze_columns(raster_from_array(np.full((100, 1000), 255, dtype=np.uint8)))

    gutter = find_gutter(profiles)

    assert gutter.position == 350
    assert gutter.score == pytest.approx(27.5)


def test_band_outside_search_region_is_ignored() -> None:
    profiles = analyze_columns(_band_raster(100, 20))

    assert find_gutter(profiles).position == 350


def test_score_components() -> None:
    pixels = np.full((10, 2), 255, dtype=np.uint8)
    pixels[:, 0] = 0
    scores = gutter_scores(analyze_columns(raster_from_array(pixels)))

    # Solid ink: 100*.30 + 100*.35 + 100*.20 + 50*.15; blank paper: 100*.20 + 50*.15.
    assert scores == pytest.approx([92.5, 27.5])


def test_single_column_raster_uses_centre_column() -> None:
    profiles = analyze_columns(raster_from_array(np.full((10, 1), 255, dtype=np.uint8)))

    gutter = find_gutter(profiles)

    assert gutter.position == 0
    assert gutter.score == pytest.approx(27.5)


def test_empty_profiles_are_rejected() -> None:
    profiles = analyze_columns(raster_from_array(np.full((10, 1), 255, dtype=np.uint8)))

    with pytest.raises(ValueError):
        find_gutter(profiles.window(0, 0))
