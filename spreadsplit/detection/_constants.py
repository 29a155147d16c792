"""Shared constants for spread detection.

The text-at-split thresholds are an empirical calibration against scanned
early-modern books, not derived values.
"""

from __future__ import annotations


NORMALIZED_SCALE = 1000
DEFAULT_SPLIT_POSITION = 500

DEFAULT_ANALYSIS_WIDTH = 1000
DEFAULT_FEATURE_WIDTH = 500
DEFAULT_DARK_THRESHOLD = 180

# Gutter search window as fractions of the raster width.
SEARCH_REGION_START = 0.35
SEARCH_REGION_END = 0.65

# Composite gutter score weights.
P10_WEIGHT = 0.30
DARK_RUN_WEIGHT = 0.35
TRANSITION_WEIGHT = 0.20
CONSISTENCY_WEIGHT = 0.15

# Text-at-split detection.
TEXT_WINDOW_HALF_WIDTH = 3
COLUMN_TRANSITIONS_LIMIT = 30
WINDOW_TRANSITIONS_LIMIT = 40
COLUMN_DARK_RUN_LIMIT = 40
WINDOW_DARK_RUN_LIMIT = 50
WINDOW_DARK_STD_LIMIT = 30
MIN_TEXT_SIGNALS = 2

# Aspect ratio and gutter score thresholds for the confidence tiers.
PORTRAIT_ASPECT_LIMIT = 0.9
SPREAD_ASPECT_LIMIT = 1.0
WIDE_ASPECT_LIMIT = 1.1
HIGH_GUTTER_SCORE = 50
LOW_GUTTER_SCORE = 30

# Trained scorer predictions are clamped to this range.
MODEL_MIN_POSITION = 200
MODEL_MAX_POSITION = 800

VISION_PROMPT = """You are an expert at analyzing scanned book images.

TASK: Determine if this is a TWO-PAGE SPREAD or a SINGLE PAGE, and if it's a spread, find the optimal split position.

STEP 1: DETERMINE IMAGE TYPE
- Is this a two-page spread (left and right pages visible) OR a single page?
- Clues for TWO-PAGE SPREAD:
  - Two distinct text columns separated by a gutter (dark or light gap)
  - Symmetrical layout with text on both sides
  - Central binding line (vertical line or shadow in middle)
  - Aspect ratio typically > 1.0 (wider than tall)
- Clues for SINGLE PAGE:
  - One continuous text column
  - Portrait orientation (taller than wide)
  - No central gutter or binding line

STEP 2: IF TWO-PAGE SPREAD, FIND SPLIT POSITION
- Find the exact vertical position to split into left and right pages
- NEVER cut through text - the split must fall in the gap between text columns
- The gutter can be a dark shadow, a bright gap, or just the margin between text blocks

Return your answer in this EXACT JSON format:
{
  "isTwoPageSpread": <true|false>,
  "splitPosition": <integer from 0-1000, or 500 if single page>,
  "confidence": "<high|medium|low>",
  "reasoning": "<brief explanation of your determination>"
}"""
