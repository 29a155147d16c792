"""Judge whether cutting at a given column would bisect printed text."""

from __future__ import annotations

from ._constants import (
    COLUMN_DARK_RUN_LIMIT,
    COLUMN_TRANSITIONS_LIMIT,
    MIN_TEXT_SIGNALS,
    TEXT_WINDOW_HALF_WIDTH,
    WINDOW_DARK_RUN_LIMIT,
    WINDOW_DARK_STD_LIMIT,
    WINDOW_TRANSITIONS_LIMIT,
)
from ._models import TextAtSplitVerdict, round_half_up
from .columns import ColumnProfiles


def detect_text_at_position(
    profiles: ColumnProfiles,
    position: int,
    window_size: int = TEXT_WINDOW_HALF_WIDTH,
) -> TextAtSplitVerdict:
    """Check a narrow window around ``position`` for text-like texture.

    The window is deliberately narrower than the gutter search: it judges the
    exact cut line. Text is reported only when at least two of three signals
    agree (many transitions, short dark runs, noisy dark pixels).
    """
    if not 0 <= position < len(profiles):
        raise IndexError(f"position {position} out of range for {len(profiles)} columns")

    window = profiles.window(position - window_size, position + window_size + 1)
    avg_transitions = float(window.transitions.mean())
    avg_dark_run = float(window.max_dark_run.mean())
    avg_dark_std = float(window.dark_std_dev.mean())

    column = profiles[position]
    high_transitions = (
        column.transitions > COLUMN_TRANSITIONS_LIMIT and avg_transitions > WINDOW_TRANSITIONS_LIMIT
    )
    low_dark_run = (
        column.max_dark_run < COLUMN_DARK_RUN_LIMIT and avg_dark_run < WINDOW_DARK_RUN_LIMIT
    )
    high_variance = avg_dark_std > WINDOW_DARK_STD_LIMIT
    signals = sum((high_transitions, low_dark_run, high_variance))

    metrics = {
        "transitions": round_half_up(avg_transitions),
        "dark_run": round_half_up(avg_dark_run),
        "dark_std_dev": round_half_up(avg_dark_std),
    }

    if signals >= MIN_TEXT_SIGNALS:
        reasons: list[str] = []
        if high_transitions:
            reasons.append(f"high transitions ({column.transitions})")
        if low_dark_run:
            reasons.append(f"short dark runs ({column.max_dark_run:.0f}%)")
        if high_variance:
            reasons.append(f"high variance ({avg_dark_std:.0f})")
        return TextAtSplitVerdict(
            has_text=True,
            confidence=signals / 3,
            reason=f"Text at split: {', '.join(reasons)}",
            **metrics,
        )

    return TextAtSplitVerdict(
        has_text=False,
        confidence=1 - signals / 3,
        reason="Clean gutter detected",
        **metrics,
    )


__all__ = ["detect_text_at_position"]
