from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from spreadsplit.errors import ConfigurationError
from spreadsplit.utils.llm import MODEL_MAP, LLMInferenceError, ProviderRoute, run_llm_async
from spreadsplit.utils.llm import core


def _response(content: str | None, cost: float = 0.0) -> SimpleNamespace:
    choice = SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")
    response = SimpleNamespace(choices=[choice])
    response._hidden_params = {"response_cost": cost}
    return response


@pytest.fixture(autouse=True)
def offline_litellm(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(core, "_prepare_litellm", lambda: None)
    monkeypatch.setattr(core, "_total_cost", 0.0)
    monkeypatch.setitem(
        MODEL_MAP,
        "two-routes",
        [ProviderRoute(provider_model="first/model"), ProviderRoute(provider_model="second/model")],
    )


def test_gemini_route_params_carry_key_and_json_mode() -> None:
    (route,) = MODEL_MAP["gemini-flash"]

    params = route.request_params(output_json=True, api_key="secret")

    assert params["api_key"] == "secret"
    assert params["response_format"] == {"type": "json_object"}
    assert params["max_completion_tokens"] == 2_000
    assert params["reasoning_effort"] == "disable"


def test_non_gemini_route_never_receives_the_key() -> None:
    params = ProviderRoute(provider_model="gpt-4.1-mini").request_params(
        output_json=False, api_key="secret"
    )

    assert params == {}


@pytest.mark.asyncio
async def test_falls_back_to_next_route(monkeypatch: pytest.MonkeyPatch) -> None:
    called: list[str] = []

    async def fake_acompletion(*, model: str, **kwargs: Any) -> SimpleNamespace:
        called.append(model)
        if model == "first/model":
            raise ValueError("provider down")
        return _response('{"ok": true}', cost=0.25)

    monkeypatch.setattr(core, "acompletion", fake_acompletion)

    answer = await run_llm_async("two-routes", None, "Hello", "https://example.com/a.jpg")

    assert answer == '{"ok": true}'
    assert called == ["first/model", "second/model"]
    assert core.get_llm_total_cost() == pytest.approx(0.25)


@pytest.mark.asyncio
async def test_empty_answers_everywhere_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
        return _response(None)

    monkeypatch.setattr(core, "acompletion", fake_acompletion)

    with pytest.raises(LLMInferenceError, match="empty"):
        await run_llm_async("two-routes", None, "Hello")


@pytest.mark.asyncio
async def test_last_failure_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_acompletion(*, model: str, **kwargs: Any) -> SimpleNamespace:
        raise ValueError(f"{model} down")

    monkeypatch.setattr(core, "acompletion", fake_acompletion)

    with pytest.raises(LLMInferenceError, match="second/model down"):
        await run_llm_async("two-routes", None, "Hello")


@pytest.mark.asyncio
async def test_unknown_model_key_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        await run_llm_async("no-such-model", None, "Hello")
