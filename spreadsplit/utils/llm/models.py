"""Vision model registry: logical keys resolved to ordered litellm provider routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


ImageDetail = Literal["high", "auto", "low"]
Messages = list[dict[str, Any]]

DEFAULT_TIMEOUT: float = 30.0

# Scanned plates and anatomical illustrations trip the default Gemini filters.
_GEMINI_UNFILTERED = [
    {"category": category, "threshold": "OFF"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


@dataclass(frozen=True)
class ProviderRoute:
    """One way of serving a logical model through litellm."""

    provider_model: str
    max_completion_tokens: int | None = None
    static_params: dict[str, Any] = field(default_factory=dict)

    def request_params(self, *, output_json: bool, api_key: str | None) -> dict[str, Any]:
        params = dict(self.static_params)
        if self.max_completion_tokens:
            params["max_completion_tokens"] = self.max_completion_tokens
        if output_json:
            params["response_format"] = {"type": "json_object"}
        if api_key and self.provider_model.startswith("gemini/"):
            params["api_key"] = api_key
        return params


def _gemini(model: str, tokens: int, reasoning: str) -> ProviderRoute:
    return ProviderRoute(
        provider_model=f"gemini/{model}",
        max_completion_tokens=tokens,
        static_params={"safety_settings": _GEMINI_UNFILTERED, "reasoning_effort": reasoning},
    )


MODEL_MAP: dict[str, list[ProviderRoute]] = {
    "gemini-flash": [_gemini("gemini-2.5-flash", 2_000, "disable")],
    "gemini-flash-low": [_gemini("gemini-2.5-flash", 8_000, "low")],
    "gemini-pro-low": [_gemini("gemini-2.5-pro", 8_000, "low")],
    "gpt-4.1-mini": [ProviderRoute(provider_model="gpt-4.1-mini")],
}
