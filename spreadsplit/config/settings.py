"""Centralised environment configuration for spreadsplit.

`.env` is read once, here. The result is a frozen snapshot holding the
detection policy, the vision credentials and the cropping knobs. Other
modules go through `get_settings()` rather than reading `os.environ`.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv

from spreadsplit.utils.log_utils import logger


_DEFAULT_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

DETECTION_METHODS: tuple[str, ...] = ("heuristic", "ml", "vision", "cascade")
DEFAULT_DETECTION_METHOD = "cascade"


def _coerce_int(value: str | None, default: int, minimum: int | None = None) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer setting value {value!r}; using {default}.")
        return default
    if minimum is not None and number < minimum:
        logger.warning(f"Ignoring setting value {value!r} below {minimum}; using {default}.")
        return default
    return number


def _coerce_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric setting value {value!r}; using {default}.")
        return default


def _coerce_method(value: str | None) -> str:
    if not value:
        return DEFAULT_DETECTION_METHOD
    method = value.strip().lower()
    if method not in DETECTION_METHODS:
        logger.warning(
            f"Unknown SPLIT_DETECTION_METHOD {value!r}; falling back to '{DEFAULT_DETECTION_METHOD}'."
        )
        return DEFAULT_DETECTION_METHOD
    return method


@dataclass(frozen=True)
class DetectionSettings:
    method: str
    analysis_width: int
    feature_width: int
    dark_threshold: int
    model_dir: Path | None


@dataclass(frozen=True)
class VisionSettings:
    api_key: str | None
    model_key: str
    timeout: float

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class SplittingSettings:
    display_width: int
    display_quality: int
    thumbnail_width: int
    thumbnail_quality: int
    padding_px: int


@dataclass(frozen=True)
class SpreadSplitSettings:
    """Every setting the detection and splitting pipeline reads."""

    env_file: Path
    detection: DetectionSettings
    vision: VisionSettings
    splitting: SplittingSettings


def _resolve_env_path(env_file: os.PathLike[str] | str | None) -> Path:
    if env_file is None:
        return _DEFAULT_ENV_PATH
    return Path(env_file).resolve()


@lru_cache(maxsize=4)
def _load_settings(env_path: Path) -> SpreadSplitSettings:
    # Existing environment variables take precedence over `.env` defaults.
    load_dotenv(dotenv_path=env_path, override=False)

    model_dir = os.getenv("SPLIT_MODEL_DIR")
    detection = DetectionSettings(
        method=_coerce_method(
            os.getenv("SPLIT_DETECTION_METHOD") or os.getenv("SPLIT_DETECTION_METHOD_ON_UPLOAD")
        ),
        analysis_width=_coerce_int(os.getenv("SPLIT_ANALYSIS_WIDTH"), 1000, minimum=1),
        feature_width=_coerce_int(os.getenv("SPLIT_FEATURE_WIDTH"), 500, minimum=1),
        dark_threshold=_coerce_int(os.getenv("SPLIT_DARK_THRESHOLD"), 180),
        model_dir=Path(model_dir).expanduser() if model_dir else None,
    )

    vision = VisionSettings(
        api_key=os.getenv("GEMINI_API_KEY") or None,
        model_key=os.getenv("SPLIT_VISION_MODEL", "gemini-flash"),
        timeout=_coerce_float(os.getenv("SPLIT_VISION_TIMEOUT"), 30.0),
    )

    splitting = SplittingSettings(
        display_width=_coerce_int(os.getenv("SPLIT_DISPLAY_WIDTH"), 1200, minimum=1),
        display_quality=_coerce_int(os.getenv("SPLIT_DISPLAY_QUALITY"), 80),
        thumbnail_width=_coerce_int(os.getenv("SPLIT_THUMBNAIL_WIDTH"), 150, minimum=1),
        thumbnail_quality=_coerce_int(os.getenv("SPLIT_THUMBNAIL_QUALITY"), 60),
        padding_px=_coerce_int(os.getenv("SPLIT_CROP_PADDING_PX"), 0, minimum=0),
    )

    return SpreadSplitSettings(
        env_file=env_path,
        detection=detection,
        vision=vision,
        splitting=splitting,
    )


def get_settings(
    env_file: os.PathLike[str] | str | None = None,
    *,
    reload: bool = False,
) -> SpreadSplitSettings:
    """Load (once) and return the settings for `env_file`.

    Args:
        env_file: `.env` file to read; defaults to the one at the project root.
        reload: Drop the cached snapshot first, e.g. after changing the environment.
    """
    env_path = _resolve_env_path(env_file)
    if reload:
        _load_settings.cache_clear()
    return _load_settings(env_path)
