"""Completion provider clients."""

from .base import CompletionProvider
from .llm_client import LLMClient
from .pricing import MODEL_PRICING, calculate_cost, estimate_prompt_cost

__all__ = [
    "CompletionProvider",
    "LLMClient",
    "MODEL_PRICING",
    "calculate_cost",
    "estimate_prompt_cost",
]
