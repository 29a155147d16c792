"""Page records materialized from uploaded scans."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from spreadsplit.detection import EmbeddedSplitDetection
from spreadsplit.detection._constants import NORMALIZED_SCALE


class CropWindow(BaseModel):
    """Horizontal crop on the 0-1000 scale, serialized as ``{xStart, xEnd}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    x_start: int = Field(ge=0, le=NORMALIZED_SCALE)
    x_end: int = Field(ge=0, le=NORMALIZED_SCALE)

    @model_validator(mode="after")
    def _ordered(self) -> CropWindow:
        if self.x_end < self.x_start:
            raise ValueError(f"x_end ({self.x_end}) must not precede x_start ({self.x_start})")
        return self

    @classmethod
    def pair(cls, split_position: int) -> tuple[CropWindow, CropWindow]:
        """Left and right windows that partition the page width at ``split_position``."""
        return (
            cls(x_start=0, x_end=split_position),
            cls(x_start=split_position, x_end=NORMALIZED_SCALE),
        )


def _now() -> datetime:
    return datetime.now(UTC)


class Page(BaseModel):
    """A single book page as handed to the storage collaborator.

    ``photo`` is what downstream OCR and display read; ``photo_original`` always
    points at the uncropped upload. Split pages carry their ``crop`` window, the
    right-hand page links back to its sibling via ``split_from``, and both
    embed an equal copy of the detection that produced them.
    """

    id: str
    tenant_id: str = "default"
    book_id: str
    page_number: int
    photo: str
    photo_original: str
    cropped_photo: str | None = None
    thumbnail: str
    crop: CropWindow | None = None
    split_from: str | None = None
    split_detection: EmbeddedSplitDetection | None = None
    detection_error: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


__all__ = ["CropWindow", "Page"]
