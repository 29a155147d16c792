"""Vision completions through litellm, with per-route retries and a disk cache."""

from __future__ import annotations

import litellm
from litellm import acompletion
from litellm.caching.caching import enable_cache
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from spreadsplit.errors import ConfigurationError
from spreadsplit.utils.log_utils import logger

from .messages import prepare_messages
from .models import DEFAULT_TIMEOUT, MODEL_MAP, ImageDetail, Messages, ProviderRoute


TRANSIENT_ERRORS = (
    litellm.exceptions.APIError,
    litellm.exceptions.InternalServerError,
    litellm.exceptions.RateLimitError,
)

_litellm_ready = False
_total_cost = 0.0


class LLMInferenceError(RuntimeError):
    """No provider route produced a usable answer."""


def _prepare_litellm() -> None:
    global _litellm_ready
    if _litellm_ready:
        return
    enable_cache(type="disk")  # type: ignore[arg-type]
    litellm.suppress_debug_info = True
    litellm.drop_params = True
    _litellm_ready = True


def get_llm_total_cost() -> float:
    return _total_cost


def log_total_llm_cost() -> None:
    logger.info(f"Total vision inference cost: ${_total_cost:.4f}")


def _record_cost(response: object) -> None:
    global _total_cost
    hidden = getattr(response, "_hidden_params", None) or {}
    if hidden.get("response_cost"):
        _total_cost += hidden["response_cost"]


async def _complete(
    route: ProviderRoute,
    messages: Messages,
    *,
    output_json: bool,
    timeout: float,
    api_key: str | None,
) -> str | None:
    """One route, retried once on transient provider errors. ``None`` means an empty answer."""
    params = route.request_params(output_json=output_json, api_key=api_key)
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(2),
        wait=wait_fixed(2),
        reraise=True,
    ):
        with attempt:
            response = await acompletion(
                model=route.provider_model,
                messages=messages,
                timeout=timeout,
                **params,
            )
    _record_cost(response)
    choice = response.choices[0]  # type: ignore[union-attr]
    if not choice.message.content:
        logger.warning(
            f"'{route.provider_model}' returned an empty answer (finish_reason={choice.finish_reason})"
        )
        return None
    return choice.message.content


async def run_llm_async(
    model: str,
    system_prompt_text: str | None,
    user_message_text: str | None,
    user_message_image_url: str | list[str] | None = None,
    image_detail: ImageDetail | None = None,
    output_json: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
    api_key: str | None = None,
) -> str:
    """Send the prompt to each route of ``model`` in turn and return the first answer.

    Raises:
        ConfigurationError: ``model`` is not a registered key.
        LLMInferenceError: every route failed or answered with nothing.
    """
    routes = MODEL_MAP.get(model)
    if not routes:
        raise ConfigurationError(f"Unknown vision model key: {model}")
    _prepare_litellm()

    messages = prepare_messages(system_prompt_text, user_message_text, user_message_image_url, image_detail)
    last_error: Exception | None = None
    for route in routes:
        try:
            answer = await _complete(
                route, messages, output_json=output_json, timeout=timeout, api_key=api_key
            )
        except Exception as exc:  # pylint: disable=broad-except
            last_error = exc
            logger.warning(f"Route '{route.provider_model}' failed for '{model}': {exc}")
            continue
        if answer:
            return answer

    if last_error is not None:
        raise LLMInferenceError(f"All routes failed for '{model}': {last_error}") from last_error
    raise LLMInferenceError(f"All routes returned empty output for '{model}'")
