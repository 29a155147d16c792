"""Value types produced and consumed by the detection backends."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import math
from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ._constants import DEFAULT_SPLIT_POSITION, NORMALIZED_SCALE


def round_half_up(value: float) -> int:
    """Round halves upward; the builtin ``round`` rounds them to even."""
    return math.floor(value + 0.5)


Confidence = Literal["high", "medium", "low"]
DetectionMethod = Literal["heuristic", "ml", "vision"]


@dataclass(frozen=True)
class Raster:
    """Grayscale analysis raster, ``pixels`` is ``uint8`` with shape (height, width)."""

    pixels: np.ndarray
    source_width: int
    source_height: int

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class ColumnProfile:
    x: int
    mean: float
    min: int
    p10: int
    p25: int
    median: int
    max_dark_run: float
    transitions: int
    dark_std_dev: float


@dataclass(frozen=True)
class GutterCandidate:
    position: int
    score: float
    profile: ColumnProfile


@dataclass(frozen=True)
class TextAtSplitVerdict:
    has_text: bool
    confidence: float
    reason: str
    transitions: int
    dark_run: int
    dark_std_dev: int


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SplitMetrics(_CamelModel):
    """Diagnostic figures carried alongside every detection result."""

    aspect_ratio: float = 0.0
    gutter_score: float = 0.0
    max_dark_run_at_split: float = 0.0
    transitions_at_split: int = 0
    window_avg_dark_run: int = 0
    window_avg_transitions: int = 0


class SplitDetectionResult(_CamelModel):
    """Canonical output of every detection backend.

    ``split_position`` is on the 0-1000 scale regardless of image width and is
    only converted to pixels at crop time. Serialize with ``by_alias=True`` to
    obtain the camelCase record embedded into pages.
    """

    is_two_page_spread: bool
    confidence: Confidence
    split_position: int = Field(default=DEFAULT_SPLIT_POSITION, ge=0, le=NORMALIZED_SCALE)
    split_position_percent: float = DEFAULT_SPLIT_POSITION / 10
    has_text_at_split: bool = False
    text_warning: str | None = None
    metrics: SplitMetrics = Field(default_factory=SplitMetrics)
    method: DetectionMethod = "heuristic"


class EmbeddedSplitDetection(SplitDetectionResult):
    """A detection result as stored on a page, stamped with when it was produced."""

    detected_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_result(
        cls, result: SplitDetectionResult, detected_at: datetime | None = None
    ) -> EmbeddedSplitDetection:
        payload = result.model_dump()
        if detected_at is not None:
            payload["detected_at"] = detected_at
        return cls.model_validate(payload)


__all__ = [
    "Confidence",
    "DetectionMethod",
    "Raster",
    "ColumnProfile",
    "GutterCandidate",
    "TextAtSplitVerdict",
    "SplitMetrics",
    "SplitDetectionResult",
    "EmbeddedSplitDetection",
]
