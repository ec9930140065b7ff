"""Per-model pricing and cost estimates."""

from typing import Dict, Tuple

from loguru import logger

from ..models.completion import CompletionCost
from ..scoring import estimate_tokens

DEFAULT_OUTPUT_TOKENS = 500

# USD per 1K tokens: (input, output)
MODEL_PRICING: Dict[str, Tuple[float, float]] = {
    "claude-opus-4-5-20251101": (0.015, 0.075),
    "claude-sonnet-4-20250514": (0.003, 0.015),
    "claude-3-5-haiku-20241022": (0.0008, 0.004),
    "gpt-4o": (0.005, 0.015),
    "gpt-4o-mini": (0.00015, 0.0006),
    "o1": (0.015, 0.06),
    "o1-mini": (0.003, 0.012),
    "gemini-2.0-flash": (0.00035, 0.0015),
    "gemini-1.5-pro": (0.00125, 0.005),
    "gemini-1.5-flash": (0.000075, 0.0003),
}


def calculate_cost(input_tokens: int, output_tokens: int, model: str) -> CompletionCost:
    """Cost of a completion; zero for models without a price entry."""
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.debug(f"No pricing for model '{model}', reporting zero cost")
        return CompletionCost()
    input_cost = input_tokens / 1000 * pricing[0]
    output_cost = output_tokens / 1000 * pricing[1]
    return CompletionCost(
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


def estimate_prompt_cost(prompt: str, model: str, output_tokens: int = DEFAULT_OUTPUT_TOKENS) -> float:
    """Estimated USD cost of sending prompt and receiving output_tokens."""
    return calculate_cost(estimate_tokens(prompt), output_tokens, model).total_cost
