"""Optimization techniques."""

from .base import OptimizationTechnique
from .chain_of_thought import ChainOfThoughtTechnique
from .feedback_iteration import FeedbackIterationTechnique, parse_score_response
from .few_shot import FewShotTechnique
from .helpers import (
    calculate_improvement,
    estimate_tokens,
    parse_json,
    safe_complete,
    truncate_to_token_limit,
    validate_context,
)
from .prompt_variants import STRATEGY_PROMPTS, PromptVariantsTechnique
from .registry import TechniqueRecommendation, TechniqueRegistry, create_technique_by_name

__all__ = [
    "OptimizationTechnique",
    "FeedbackIterationTechnique",
    "PromptVariantsTechnique",
    "ChainOfThoughtTechnique",
    "FewShotTechnique",
    "TechniqueRegistry",
    "TechniqueRecommendation",
    "create_technique_by_name",
    "parse_score_response",
    "STRATEGY_PROMPTS",
    "safe_complete",
    "parse_json",
    "calculate_improvement",
    "truncate_to_token_limit",
    "estimate_tokens",
    "validate_context",
]
