"""Public interfaces for spread detection."""

from ._models import (
    ColumnProfile,
    Confidence,
    EmbeddedSplitDetection,
    GutterCandidate,
    Raster,
    SplitDetectionResult,
    SplitMetrics,
    TextAtSplitVerdict,
)
from .columns import ColumnProfiles, analyze_columns
from .features import SplitFeatures, extract_features
from .gutter import find_gutter
from .heuristic import HeuristicDetector, classify_confidence
from .raster import raster_from_array, raster_from_image, sample_raster
from .scorer import SplitModel, SplitModelWeights
from .selector import DetectionStrategySelector
from .strategies import (
    DetectionContext,
    DetectionStrategy,
    HeuristicStrategy,
    TrainedScorerStrategy,
    VisionStrategy,
)
from .text_at_split import detect_text_at_position
from .vision import VisionInferenceClient, VisionJudgment, parse_vision_response


__all__ = [
    "ColumnProfile",
    "ColumnProfiles",
    "Confidence",
    "DetectionContext",
    "DetectionStrategy",
    "DetectionStrategySelector",
    "EmbeddedSplitDetection",
    "GutterCandidate",
    "HeuristicDetector",
    "HeuristicStrategy",
    "Raster",
    "SplitDetectionResult",
    "SplitFeatures",
    "SplitMetrics",
    "SplitModel",
    "SplitModelWeights",
    "TextAtSplitVerdict",
    "TrainedScorerStrategy",
    "VisionInferenceClient",
    "VisionJudgment",
    "VisionStrategy",
    "analyze_columns",
    "classify_confidence",
    "detect_text_at_position",
    "extract_features",
    "find_gutter",
    "parse_vision_response",
    "raster_from_array",
    "raster_from_image",
    "sample_raster",
]
