"""Feature extraction feeding the trained split-position scorer."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ._models import Raster
from .columns import ColumnProfiles, analyze_columns


CENTER_REGION_START = 0.40
CENTER_REGION_END = 0.60
EDGE_FRACTION = 0.05
INVERTED_GUTTER_DIFF = 30
GUTTER_WIDTH_TOLERANCE = 20
TEXT_TRANSITION_THRESHOLD = 20


@dataclass(frozen=True)
class SplitFeatures:
    aspect_ratio: float
    width: int
    height: int

    center_darkest_p10: float
    center_darkest_idx: int
    center_brightest_p10: float
    center_brightest_idx: int
    center_avg_p10: float
    center_p10_variance: float

    left_edge_p10: float
    right_edge_p10: float
    edge_center_diff: float
    has_inverted_gutter: bool

    predicted_dark_run: float
    predicted_transitions: int
    predicted_p10: int
    gutter_width: int

    # Percent of width.
    left_text_end_idx: float
    right_text_start_idx: float
    text_gap_width: float
    left_margin: float
    right_margin: float

    # 0-1000 scale, like split positions.
    text_gap_center: float
    left_page_text_start: float
    left_page_text_end: float
    right_page_text_start: float
    right_page_text_end: float
    ideal_split_from_text: float

    page_position: float | None = None
    book_size_category: int | None = None


def _text_mask(profiles: ColumnProfiles) -> np.ndarray:
    """True where the majority of a sliding window around a column carries text."""
    width = len(profiles)
    half = max(3, int(width * 0.01))
    is_text = (profiles.transitions > TEXT_TRANSITION_THRESHOLD).astype(np.int64)
    cumulative = np.concatenate(([0], np.cumsum(is_text)))
    index = np.arange(width)
    lo = np.maximum(0, index - half)
    hi = np.minimum(width - 1, index + half) + 1
    return (cumulative[hi] - cumulative[lo]) > half


def _first(mask: np.ndarray, indices: range, default: int) -> int:
    for i in indices:
        if mask[i]:
            return i
    return default


def extract_features(
    raster: Raster,
    *,
    page_position: float | None = None,
    book_size_category: int | None = None,
) -> SplitFeatures:
    """Summarize a (typically 500-px-wide) raster into scorer features."""
    profiles = analyze_columns(raster)
    width, height = raster.width, raster.height
    p10 = profiles.p10.astype(np.float64)

    start = int(width * CENTER_REGION_START)
    end = int(width * CENTER_REGION_END)
    if end <= start:
        start, end = width // 2, width // 2 + 1
    center = p10[start:end]
    darkest_idx = int(np.argmin(center))
    brightest_idx = int(np.argmax(center))
    avg_p10 = float(center.mean())

    edge = max(1, int(width * EDGE_FRACTION))
    left_edge = float(p10[:edge].mean())
    right_edge = float(p10[-edge:].mean())
    mid_p10 = float(center[len(center) // 2])
    edge_center_diff = mid_p10 - (left_edge + right_edge) / 2
    inverted = edge_center_diff > INVERTED_GUTTER_DIFF

    if inverted:
        predicted = start + brightest_idx
        limit = float(center[brightest_idx]) - GUTTER_WIDTH_TOLERANCE
        gutter_width = int(np.count_nonzero(center > limit))
    else:
        predicted = start + darkest_idx + int(width * 0.005)
        limit = float(center[darkest_idx]) + GUTTER_WIDTH_TOLERANCE
        gutter_width = int(np.count_nonzero(center < limit))
    predicted_col = profiles[min(predicted, width - 1)]

    mask = _text_mask(profiles)
    mid = width // 2
    left_start = _first(mask, range(0, mid), 0)
    left_end = _first(mask, range(mid, left_start - 1, -1), mid)
    right_end = _first(mask, range(width - 1, mid, -1), width - 1)
    right_start = _first(mask, range(mid, right_end + 1), mid)

    gap_center = (left_end + right_start) / 2
    left_margin = left_start
    right_margin = (width - 1) - right_end
    ideal_split = gap_center + (left_margin - right_margin) / 2

    return SplitFeatures(
        aspect_ratio=width / height,
        width=width,
        height=height,
        center_darkest_p10=float(center[darkest_idx]),
        center_darkest_idx=darkest_idx,
        center_brightest_p10=float(center[brightest_idx]),
        center_brightest_idx=brightest_idx,
        center_avg_p10=avg_p10,
        center_p10_variance=float(((center - avg_p10) ** 2).mean()),
        left_edge_p10=left_edge,
        right_edge_p10=right_edge,
        edge_center_diff=edge_center_diff,
        has_inverted_gutter=inverted,
        predicted_dark_run=predicted_col.max_dark_run,
        predicted_transitions=predicted_col.transitions,
        predicted_p10=predicted_col.p10,
        gutter_width=gutter_width,
        left_text_end_idx=left_end / width * 100,
        right_text_start_idx=right_start / width * 100,
        text_gap_width=(right_start - left_end) / width * 100,
        left_margin=left_margin / width * 100,
        right_margin=right_margin / width * 100,
        text_gap_center=gap_center / width * 1000,
        left_page_text_start=left_start / width * 1000,
        left_page_text_end=left_end / width * 1000,
        right_page_text_start=right_start / width * 1000,
        right_page_text_end=right_end / width * 1000,
        ideal_split_from_text=ideal_split / width * 1000,
        page_position=page_position,
        book_size_category=book_size_category,
    )


__all__ = ["SplitFeatures", "extract_features"]
