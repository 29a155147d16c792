"""Detection backends behind one interface with a capability probe."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from PIL import Image

from spreadsplit.errors import BackendUnavailable
from spreadsplit.utils.image import decode_image
from spreadsplit.utils.log_utils import logger

from ._constants import DEFAULT_FEATURE_WIDTH
from ._models import DetectionMethod, SplitDetectionResult, SplitMetrics
from .features import extract_features
from .heuristic import HeuristicAnalysis, HeuristicDetector
from .raster import raster_from_image
from .scorer import SplitModel
from .vision import VisionInferenceClient


if TYPE_CHECKING:
    from spreadsplit.storage import ModelRepository


@dataclass
class DetectionContext:
    """Per-image inputs plus lazily computed intermediates shared between strategies."""

    data: bytes
    image_url: str | None = None
    book_id: str | None = None
    page_position: float | None = None
    book_size_category: int | None = None
    analysis: HeuristicAnalysis | None = None
    model: SplitModel | None = None
    _image: Image.Image | None = field(default=None, repr=False)

    def image(self) -> Image.Image:
        if self._image is None:
            self._image = decode_image(self.data)
        return self._image


class DetectionStrategy(ABC):
    """One detection backend."""

    name: DetectionMethod

    @abstractmethod
    async def is_available(self, context: DetectionContext) -> bool:
        """Return whether this backend can run for ``context`` right now."""

    @abstractmethod
    async def detect(
        self,
        context: DetectionContext,
        previous: SplitDetectionResult | None = None,
    ) -> SplitDetectionResult:
        """Run detection; ``previous`` is the last successful result in a cascade."""

    def should_escalate(self, previous: SplitDetectionResult | None) -> bool:
        """Whether a cascade should consult this backend after ``previous``."""
        return True

    def unavailable_reason(self, context: DetectionContext) -> str:
        return f"Detection backend '{self.name}' is not available."


class HeuristicStrategy(DetectionStrategy):
    name: DetectionMethod = "heuristic"

    def __init__(self, detector: HeuristicDetector | None = None) -> None:
        self.detector = detector or HeuristicDetector()

    async def is_available(self, context: DetectionContext) -> bool:
        return True

    async def analyze(self, context: DetectionContext) -> HeuristicAnalysis:
        if context.analysis is None:
            context.analysis = await asyncio.to_thread(self._analyze_sync, context)
        return context.analysis

    def _analyze_sync(self, context: DetectionContext) -> HeuristicAnalysis:
        raster = raster_from_image(context.image(), self.detector.analysis_width)
        return self.detector.analyze(raster)

    async def detect(
        self,
        context: DetectionContext,
        previous: SplitDetectionResult | None = None,
    ) -> SplitDetectionResult:
        analysis = await self.analyze(context)
        return analysis.result


class TrainedScorerStrategy(DetectionStrategy):
    """Predict the split position with a persisted linear model.

    The predicted position is re-scored against the heuristic column profiles,
    so text-at-split and the confidence tier still come from pixel evidence.
    """

    name: DetectionMethod = "ml"

    def __init__(
        self,
        repository: ModelRepository | None,
        heuristic: HeuristicStrategy,
        feature_width: int = DEFAULT_FEATURE_WIDTH,
    ) -> None:
        self.repository = repository
        self.heuristic = heuristic
        self.feature_width = feature_width

    async def is_available(self, context: DetectionContext) -> bool:
        if self.repository is None:
            return False
        if context.model is None:
            try:
                context.model = await self.repository.find_active_model(context.book_id)
            except BackendUnavailable:
                raise
            except Exception as exc:
                raise BackendUnavailable(f"Model repository lookup failed: {exc}") from exc
        return context.model is not None

    def should_escalate(self, previous: SplitDetectionResult | None) -> bool:
        return previous is None or previous.confidence != "high"

    def unavailable_reason(self, context: DetectionContext) -> str:
        if self.repository is None:
            return "ML detection requires a model repository; none is configured."
        return "No trained split model available. Train a model first or use the heuristic policy."

    async def detect(
        self,
        context: DetectionContext,
        previous: SplitDetectionResult | None = None,
    ) -> SplitDetectionResult:
        model = context.model
        if model is None:
            raise BackendUnavailable("Trained scorer invoked without a loaded model.")
        features = await asyncio.to_thread(
            lambda: extract_features(
                raster_from_image(context.image(), self.feature_width),
                page_position=context.page_position,
                book_size_category=context.book_size_category,
            )
        )
        position = model.predict(features)
        analysis = await self.heuristic.analyze(context)
        rescored = self.heuristic.detector.evaluate_position(analysis, position)
        is_spread = previous.is_two_page_spread if previous is not None else True
        logger.info(f"Trained scorer (v{model.version}) predicted split at {position}")
        return rescored.model_copy(update={"is_two_page_spread": is_spread, "method": "ml"})


class VisionStrategy(DetectionStrategy):
    name: DetectionMethod = "vision"

    def __init__(self, client: VisionInferenceClient) -> None:
        self.client = client

    async def is_available(self, context: DetectionContext) -> bool:
        return self.client.configured and bool(context.image_url)

    def should_escalate(self, previous: SplitDetectionResult | None) -> bool:
        return previous is None or previous.confidence == "low"

    def unavailable_reason(self, context: DetectionContext) -> str:
        if not self.client.configured:
            return "GEMINI_API_KEY required for vision detection."
        return "Image URL required for vision detection (upload the image first)."

    async def detect(
        self,
        context: DetectionContext,
        previous: SplitDetectionResult | None = None,
    ) -> SplitDetectionResult:
        if not context.image_url:
            raise BackendUnavailable(self.unavailable_reason(context))
        judgment = await self.client.judge(context.image_url)
        return SplitDetectionResult(
            is_two_page_spread=judgment.is_two_page_spread,
            confidence=judgment.confidence,
            split_position=judgment.split_position,
            split_position_percent=judgment.split_position / 10,
            has_text_at_split=False,
            text_warning=judgment.reasoning or None,
            metrics=previous.metrics if previous is not None else SplitMetrics(),
            method="vision",
        )


__all__ = [
    "DetectionContext",
    "DetectionStrategy",
    "HeuristicStrategy",
    "TrainedScorerStrategy",
    "VisionStrategy",
]
