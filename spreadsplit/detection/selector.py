"""Choose and sequence detection backends according to the configured policy."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from spreadsplit.config import DETECTION_METHODS, SpreadSplitSettings, get_settings
from spreadsplit.errors import (
    BackendUnavailable,
    ConfigurationError,
    ImageDecodeError,
    SplitDetectionError,
)
from spreadsplit.utils.concurrency import run_async_in_parallel
from spreadsplit.utils.llm import log_total_llm_cost
from spreadsplit.utils.log_utils import logger

from ._models import SplitDetectionResult
from .heuristic import HeuristicDetector
from .strategies import (
    DetectionContext,
    DetectionStrategy,
    HeuristicStrategy,
    TrainedScorerStrategy,
    VisionStrategy,
)
from .vision import VisionInferenceClient


if TYPE_CHECKING:
    from spreadsplit.storage import ModelRepository


POLICY_CHAINS: dict[str, tuple[str, ...]] = {
    "heuristic": ("heuristic",),
    "ml": ("ml",),
    "vision": ("vision",),
    "cascade": ("heuristic", "ml", "vision"),
}


class DetectionStrategySelector:
    """Run one backend, or a cheap-first cascade that escalates only when confidence is lacking.

    In ``cascade`` mode the heuristic always runs first. A ``high`` result is
    returned immediately; otherwise each escalation backend that wants the
    current result and reports itself available is tried in order, and the
    first success wins. Escalation failures are logged and skipped, so the
    heuristic result is the answer of last resort.
    """

    def __init__(self, policy: str, strategies: Mapping[str, DetectionStrategy]) -> None:
        if policy not in POLICY_CHAINS:
            raise ConfigurationError(
                f"Unknown detection policy '{policy}'. Expected one of: {', '.join(DETECTION_METHODS)}"
            )
        missing = [name for name in POLICY_CHAINS[policy] if name not in strategies]
        if policy != "cascade" and missing:
            raise ConfigurationError(f"Policy '{policy}' requires backend(s): {', '.join(missing)}")
        if policy == "cascade" and "heuristic" not in strategies:
            raise ConfigurationError("Cascade policy requires the heuristic backend.")
        self.policy = policy
        self.strategies: list[DetectionStrategy] = [
            strategies[name] for name in POLICY_CHAINS[policy] if name in strategies
        ]

    @classmethod
    def from_settings(
        cls,
        settings: SpreadSplitSettings | None = None,
        *,
        model_repository: ModelRepository | None = None,
        policy: str | None = None,
    ) -> DetectionStrategySelector:
        """Build the standard backend set from configuration."""
        settings = settings or get_settings()
        detection = settings.detection
        if model_repository is None and detection.model_dir is not None:
            from spreadsplit.storage import FileModelRepository

            model_repository = FileModelRepository(detection.model_dir)

        heuristic = HeuristicStrategy(
            HeuristicDetector(
                analysis_width=detection.analysis_width,
                dark_threshold=detection.dark_threshold,
            )
        )
        vision = VisionStrategy(
            VisionInferenceClient(
                model_key=settings.vision.model_key,
                api_key=settings.vision.api_key,
                timeout=settings.vision.timeout,
            )
        )
        strategies: dict[str, DetectionStrategy] = {
            "heuristic": heuristic,
            "ml": TrainedScorerStrategy(model_repository, heuristic, detection.feature_width),
            "vision": vision,
        }
        return cls(policy or detection.method, strategies)

    async def detect(
        self,
        data: bytes,
        image_url: str | None = None,
        *,
        book_id: str | None = None,
        page_position: float | None = None,
        book_size_category: int | None = None,
    ) -> SplitDetectionResult:
        """Detect whether ``data`` is a spread and where to split it.

        Raises:
            ConfigurationError: a single-backend policy whose backend is not configured.
            BackendUnavailable: a single-backend policy whose backend failed, or the
                cascade's heuristic base failed unexpectedly.
            ImageDecodeError: the buffer cannot be rasterized.
        """
        context = DetectionContext(
            data=data,
            image_url=image_url,
            book_id=book_id,
            page_position=page_position,
            book_size_category=book_size_category,
        )
        if self.policy == "cascade":
            return await self._detect_cascade(context)
        return await self._detect_single(self.strategies[0], context)

    async def _detect_single(
        self, strategy: DetectionStrategy, context: DetectionContext
    ) -> SplitDetectionResult:
        try:
            available = await strategy.is_available(context)
        except BackendUnavailable:
            raise
        except Exception as exc:
            raise BackendUnavailable(f"Availability check for '{strategy.name}' failed: {exc}") from exc
        if not available:
            raise ConfigurationError(strategy.unavailable_reason(context))

        try:
            result = await strategy.detect(context)
        except SplitDetectionError:
            raise
        except Exception as exc:
            raise BackendUnavailable(f"Detection backend '{strategy.name}' failed: {exc}") from exc
        logger.info(f"Using {strategy.name} detection ({result.confidence} confidence)")
        return result

    async def _detect_cascade(self, context: DetectionContext) -> SplitDetectionResult:
        base, *escalations = self.strategies
        try:
            result = await base.detect(context)
        except SplitDetectionError:
            raise
        except Exception as exc:
            raise BackendUnavailable(f"Detection backend '{base.name}' failed: {exc}") from exc
        if result.confidence == "high":
            logger.info(f"Using {base.name} detection (high confidence)")
            return result

        for strategy in escalations:
            if not strategy.should_escalate(result):
                continue
            try:
                if not await strategy.is_available(context):
                    continue
                escalated = await strategy.detect(context, result)
            except ImageDecodeError:
                raise
            except Exception as exc:
                logger.warning(
                    f"{strategy.name} detection failed, keeping {result.method} result: {exc}"
                )
                continue
            logger.info(
                f"Using {strategy.name} detection ({base.name} confidence was {result.confidence})"
            )
            return escalated

        logger.info(f"Using {base.name} detection (fallback, {result.confidence} confidence)")
        return result

    async def detect_many(
        self,
        buffers: Sequence[bytes],
        image_urls: Sequence[str | None] | None = None,
        *,
        max_concurrency: int = 4,
        desc: str = "",
    ) -> list[SplitDetectionResult | None]:
        """Detect splits for independent images concurrently; failed images yield ``None``."""
        urls: Sequence[str | None] = image_urls if image_urls is not None else [None] * len(buffers)
        results = await run_async_in_parallel(
            self.detect,
            buffers,
            urls,
            max_concurrency=max_concurrency,
            desc=desc,
        )
        log_total_llm_cost()
        return results


__all__ = ["DetectionStrategySelector", "POLICY_CHAINS"]
