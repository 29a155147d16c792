"""Apply a persisted linear split-position model to extracted features."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ._constants import DEFAULT_SPLIT_POSITION, MODEL_MAX_POSITION, MODEL_MIN_POSITION
from .features import SplitFeatures
from .heuristic import round_half_up


class SplitModelWeights(BaseModel):
    """Weights of the linear scorer; weights missing from older models default to zero."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    bias: float = DEFAULT_SPLIT_POSITION
    center_darkest_idx: float = 0.0
    center_brightest_idx: float = 0.0
    edge_center_diff: float = 0.0
    inverted_gutter_offset: float = 0.0
    aspect_ratio_offset: float = 0.0
    page_position_offset: float = 0.0
    text_gap_center_weight: float = 0.0
    book_size_offset: float = 0.0
    ideal_split_from_text_weight: float = 0.0
    left_page_text_end_weight: float = 0.0
    right_page_text_start_weight: float = 0.0
    margin_balance_weight: float = 0.0


class SplitModel(BaseModel):
    """Persisted scorer descriptor as returned by the model repository."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    weights: SplitModelWeights = Field(default_factory=SplitModelWeights)
    version: int = 1
    book_id: str | None = None
    trained_at: datetime | None = None
    training_size: int = 0
    validation_mse: float | None = Field(default=None, alias="validationMSE")

    def predict(self, features: SplitFeatures) -> int:
        """Predict a split position on the 0-1000 scale, clamped to [200, 800]."""
        w = self.weights
        f = features
        page_position = f.page_position if f.page_position is not None else 0.5
        book_size = f.book_size_category if f.book_size_category is not None else 1
        margin_balance = f.left_margin - f.right_margin

        position = (
            w.bias
            + w.center_darkest_idx * (f.center_darkest_idx - 50)
            + w.center_brightest_idx * (f.center_brightest_idx - 50)
            + w.edge_center_diff * (f.edge_center_diff / 50)
            + w.inverted_gutter_offset * (1 if f.has_inverted_gutter else 0)
            + w.aspect_ratio_offset * (f.aspect_ratio - 1.5)
            + w.page_position_offset * (page_position - 0.5)
            + w.text_gap_center_weight * ((f.text_gap_center - 500) / 100)
            + w.book_size_offset * (book_size - 1)
            + w.ideal_split_from_text_weight * ((f.ideal_split_from_text - 500) / 100)
            + w.left_page_text_end_weight * ((f.left_page_text_end - 500) / 100)
            + w.right_page_text_start_weight * ((f.right_page_text_start - 500) / 100)
            + w.margin_balance_weight * (margin_balance / 10)
        )
        return max(MODEL_MIN_POSITION, min(MODEL_MAX_POSITION, round_half_up(position)))


__all__ = ["SplitModel", "SplitModelWeights"]
