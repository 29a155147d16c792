"""Locate the most gutter-like column near the centre of a spread."""

from __future__ import annotations

import numpy as np

from ._constants import (
    CONSISTENCY_WEIGHT,
    DARK_RUN_WEIGHT,
    P10_WEIGHT,
    SEARCH_REGION_END,
    SEARCH_REGION_START,
    TRANSITION_WEIGHT,
)
from ._models import GutterCandidate
from .columns import ColumnProfiles


def gutter_scores(profiles: ColumnProfiles) -> np.ndarray:
    """Composite gutter score per column, each sub-score normalized to roughly 0-100."""
    p10_score = (255.0 - profiles.p10) / 2.55
    dark_run_score = profiles.max_dark_run
    transition_score = np.maximum(0.0, 100.0 - profiles.transitions / 5.0)
    consistency_score = np.maximum(0.0, 50.0 - profiles.dark_std_dev)
    return (
        p10_score * P10_WEIGHT
        + dark_run_score * DARK_RUN_WEIGHT
        + transition_score * TRANSITION_WEIGHT
        + consistency_score * CONSISTENCY_WEIGHT
    )


def find_gutter(
    profiles: ColumnProfiles,
    search_start: float = SEARCH_REGION_START,
    search_end: float = SEARCH_REGION_END,
) -> GutterCandidate:
    """Return the best-scoring column inside ``[search_start, search_end)`` of the width.

    Ties resolve to the lowest column index.
    """
    total = len(profiles)
    if total == 0:
        raise ValueError("Cannot locate a gutter without any columns.")
    start = int(total * search_start)
    end = int(total * search_end)
    region = profiles.window(start, end)

    if len(region) == 0:
        center = total // 2
        score = float(gutter_scores(profiles.window(center, center + 1))[0])
        return GutterCandidate(position=center, score=score, profile=profiles[center])

    scores = gutter_scores(region)
    best = int(np.argmax(scores))
    position = region.start - profiles.start + best
    return GutterCandidate(position=position, score=float(scores[best]), profile=profiles[position])


__all__ = ["find_gutter", "gutter_scores"]
