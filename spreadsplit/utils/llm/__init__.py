"""Hosted vision model access.

    from spreadsplit.utils.llm import run_llm_async
"""

from .core import LLMInferenceError, get_llm_total_cost, log_total_llm_cost, run_llm_async
from .messages import prepare_messages
from .models import MODEL_MAP, ImageDetail, Messages, ProviderRoute


__all__ = [
    "ImageDetail",
    "LLMInferenceError",
    "MODEL_MAP",
    "Messages",
    "ProviderRoute",
    "get_llm_total_cost",
    "log_total_llm_cost",
    "prepare_messages",
    "run_llm_async",
]
