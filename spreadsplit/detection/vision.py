"""Client for the external vision model that judges spreads from a public image URL."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import re
from typing import Any

from spreadsplit.errors import BackendUnavailable
from spreadsplit.utils.llm import LLMInferenceError, run_llm_async
from spreadsplit.utils.log_utils import logger

from ._constants import DEFAULT_SPLIT_POSITION, NORMALIZED_SCALE, VISION_PROMPT
from ._models import Confidence
from .heuristic import round_half_up


_JSON_OBJECT = re.compile(r"\{[\s\S]*?\}")
_CONFIDENCES: tuple[Confidence, ...] = ("high", "medium", "low")


@dataclass(frozen=True)
class VisionJudgment:
    is_two_page_spread: bool
    split_position: int
    confidence: Confidence
    reasoning: str


def strip_code_fence(raw: str) -> str:
    """Remove a leading/trailing triple-backtick fence if present."""
    text = raw.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if len(lines) >= 2:
            lines = lines[1:]
            if lines and lines[-1].startswith("```"):
                lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def _load_payload(raw: str) -> dict[str, Any]:
    cleaned = strip_code_fence(raw)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(cleaned)
        if match is None:
            raise BackendUnavailable("Vision response did not contain a JSON object.") from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise BackendUnavailable(f"Failed to decode vision response as JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise BackendUnavailable("Vision response JSON must be an object.")
    return parsed


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return default


def _coerce_position(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_SPLIT_POSITION
    try:
        position = round_half_up(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_SPLIT_POSITION
    return max(0, min(NORMALIZED_SCALE, position))


def _coerce_confidence(value: Any) -> Confidence:
    if isinstance(value, str) and value.strip().lower() in _CONFIDENCES:
        return value.strip().lower()  # type: ignore[return-value]
    return "medium"


def parse_vision_response(raw: str) -> VisionJudgment:
    """Parse the model's JSON answer, substituting defaults for missing or malformed fields."""
    payload = _load_payload(raw)
    reasoning = payload.get("reasoning")
    return VisionJudgment(
        is_two_page_spread=_coerce_bool(payload.get("isTwoPageSpread"), True),
        split_position=_coerce_position(payload.get("splitPosition")),
        confidence=_coerce_confidence(payload.get("confidence")),
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


class VisionInferenceClient:
    """Ask a hosted vision model whether an image is a spread and where to split it."""

    def __init__(self, model_key: str, api_key: str | None, timeout: float = 30.0) -> None:
        self.model_key = model_key
        self.api_key = api_key
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def judge(self, image_url: str) -> VisionJudgment:
        """Return the model's judgment for ``image_url``.

        Raises:
            BackendUnavailable: on timeout, provider failure, or an unparseable reply.
        """
        try:
            response_text = await asyncio.wait_for(
                run_llm_async(
                    model=self.model_key,
                    system_prompt_text=None,
                    user_message_text=VISION_PROMPT,
                    user_message_image_url=image_url,
                    image_detail="high",
                    output_json=True,
                    timeout=self.timeout,
                    api_key=self.api_key,
                ),
                timeout=self.timeout,
            )
        except TimeoutError as exc:
            raise BackendUnavailable(
                f"Vision inference timed out after {self.timeout:.0f}s for {image_url}"
            ) from exc
        except LLMInferenceError as exc:
            raise BackendUnavailable(f"Vision inference failed for {image_url}: {exc}") from exc

        logger.debug(f"Vision response for {image_url}: {response_text}")
        return parse_vision_response(response_text)


__all__ = [
    "VisionInferenceClient",
    "VisionJudgment",
    "parse_vision_response",
    "strip_code_fence",
]
