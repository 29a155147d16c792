"""Always-available spread detector built on per-column pixel statistics."""

from __future__ import annotations

from dataclasses import dataclass

from ._constants import (
    DEFAULT_ANALYSIS_WIDTH,
    DEFAULT_DARK_THRESHOLD,
    DEFAULT_SPLIT_POSITION,
    HIGH_GUTTER_SCORE,
    LOW_GUTTER_SCORE,
    NORMALIZED_SCALE,
    PORTRAIT_ASPECT_LIMIT,
    SEARCH_REGION_END,
    SEARCH_REGION_START,
    SPREAD_ASPECT_LIMIT,
    TEXT_WINDOW_HALF_WIDTH,
    WIDE_ASPECT_LIMIT,
)
from ._models import (
    Confidence,
    GutterCandidate,
    Raster,
    SplitDetectionResult,
    SplitMetrics,
    TextAtSplitVerdict,
    round_half_up,
)
from .columns import ColumnProfiles, analyze_columns
from .gutter import find_gutter, gutter_scores
from .raster import sample_raster
from .text_at_split import detect_text_at_position


def classify_confidence(aspect_ratio: float, gutter_score: float, has_text: bool) -> Confidence:
    """Map aspect ratio, gutter score and the text verdict onto a confidence tier."""
    if aspect_ratio > WIDE_ASPECT_LIMIT and gutter_score > HIGH_GUTTER_SCORE and not has_text:
        return "high"
    if aspect_ratio < SPREAD_ASPECT_LIMIT or gutter_score < LOW_GUTTER_SCORE or has_text:
        return "low"
    return "medium"


def to_normalized(column: int, total_columns: int) -> int:
    return round_half_up(column / total_columns * NORMALIZED_SCALE)


def to_column(normalized: int, total_columns: int) -> int:
    column = round_half_up(normalized / NORMALIZED_SCALE * total_columns)
    return max(0, min(total_columns - 1, column))


@dataclass(frozen=True)
class HeuristicAnalysis:
    """Everything the heuristic computed for one raster, kept for downstream re-scoring."""

    raster: Raster
    profiles: ColumnProfiles | None
    gutter: GutterCandidate | None
    verdict: TextAtSplitVerdict | None
    result: SplitDetectionResult


class HeuristicDetector:
    """Always-available detector: aspect check, gutter search, then text-at-split check."""

    def __init__(
        self,
        *,
        analysis_width: int = DEFAULT_ANALYSIS_WIDTH,
        dark_threshold: int = DEFAULT_DARK_THRESHOLD,
        search_start: float = SEARCH_REGION_START,
        search_end: float = SEARCH_REGION_END,
        text_window: int = TEXT_WINDOW_HALF_WIDTH,
    ) -> None:
        if not 0.0 <= search_start < search_end <= 1.0:
            raise ValueError("search region must satisfy 0 <= start < end <= 1")
        self.analysis_width = analysis_width
        self.dark_threshold = dark_threshold
        self.search_start = search_start
        self.search_end = search_end
        self.text_window = text_window

    def analyze(self, raster: Raster) -> HeuristicAnalysis:
        aspect_ratio = raster.aspect_ratio

        # Clearly portrait scans never reach the column analysis.
        if aspect_ratio < PORTRAIT_ASPECT_LIMIT:
            result = SplitDetectionResult(
                is_two_page_spread=False,
                confidence="high",
                split_position=DEFAULT_SPLIT_POSITION,
                split_position_percent=DEFAULT_SPLIT_POSITION / 10,
                has_text_at_split=False,
                metrics=SplitMetrics(aspect_ratio=aspect_ratio),
                method="heuristic",
            )
            return HeuristicAnalysis(raster, None, None, None, result)

        profiles = analyze_columns(raster, self.dark_threshold)
        gutter = find_gutter(profiles, self.search_start, self.search_end)
        verdict = detect_text_at_position(profiles, gutter.position, self.text_window)
        result = self._build_result(raster, profiles, gutter, verdict)
        return HeuristicAnalysis(raster, profiles, gutter, verdict, result)

    def detect(self, raster: Raster) -> SplitDetectionResult:
        return self.analyze(raster).result

    def detect_bytes(self, data: bytes) -> SplitDetectionResult:
        return self.detect(sample_raster(data, self.analysis_width))

    def evaluate_position(
        self,
        analysis: HeuristicAnalysis,
        split_position: int,
    ) -> SplitDetectionResult:
        """Re-score an externally chosen split position against the same column profiles.

        Used when another backend supplies the position: the text check and the
        confidence tier are recomputed at that column so the confidence rules
        still hold for the returned result.
        """
        profiles = analysis.profiles
        if profiles is None:
            profiles = analyze_columns(analysis.raster, self.dark_threshold)
        column = to_column(split_position, len(profiles))
        score = float(gutter_scores(profiles.window(column, column + 1))[0])
        gutter = GutterCandidate(position=column, score=score, profile=profiles[column])
        verdict = detect_text_at_position(profiles, column, self.text_window)
        result = self._build_result(analysis.raster, profiles, gutter, verdict)
        return result.model_copy(
            update={
                "split_position": split_position,
                "split_position_percent": split_position / 10,
            }
        )

    def _build_result(
        self,
        raster: Raster,
        profiles: ColumnProfiles,
        gutter: GutterCandidate,
        verdict: TextAtSplitVerdict,
    ) -> SplitDetectionResult:
        aspect_ratio = raster.aspect_ratio
        total = len(profiles)
        return SplitDetectionResult(
            is_two_page_spread=aspect_ratio > SPREAD_ASPECT_LIMIT,
            confidence=classify_confidence(aspect_ratio, gutter.score, verdict.has_text),
            split_position=to_normalized(gutter.position, total),
            split_position_percent=gutter.position / total * 100,
            has_text_at_split=verdict.has_text,
            text_warning=verdict.reason if verdict.has_text else None,
            metrics=SplitMetrics(
                aspect_ratio=aspect_ratio,
                gutter_score=gutter.score,
                max_dark_run_at_split=gutter.profile.max_dark_run,
                transitions_at_split=gutter.profile.transitions,
                window_avg_dark_run=verdict.dark_run,
                window_avg_transitions=verdict.transitions,
            ),
            method="heuristic",
        )


__all__ = [
    "HeuristicAnalysis",
    "HeuristicDetector",
    "classify_confidence",
    "round_half_up",
    "to_column",
    "to_normalized",
]
