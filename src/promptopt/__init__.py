"""promptopt - deterministic prompt scoring and LLM-driven prompt optimization."""

from .clients import CompletionProvider, LLMClient, estimate_prompt_cost
from .config import Settings, get_settings
from .core import (
    ChainOfThoughtTechnique,
    FeedbackIterationTechnique,
    FewShotTechnique,
    MetricsCollector,
    OptimizationTechnique,
    PromptVariantsTechnique,
    TechniqueRegistry,
    create_technique_by_name,
    optimize_batch,
)
from .errors import ErrorCode, OptimizerError, ProviderError, ProviderErrorKind, Result
from .models import (
    ChainOfThoughtOptions,
    Constraint,
    Example,
    FeedbackIterationOptions,
    FewShotOptions,
    OptimizationContext,
    OptimizationTrajectory,
    PromptVariant,
    PromptVariantsOptions,
    ScoreSet,
    TechniqueOptions,
)
from .scoring import compare_prompts, detect_issues, estimate_tokens, score_prompt, suggest_improvements

__version__ = "0.1.0"

__all__ = [
    "score_prompt",
    "compare_prompts",
    "detect_issues",
    "suggest_improvements",
    "estimate_tokens",
    "estimate_prompt_cost",
    "ScoreSet",
    "OptimizationContext",
    "Example",
    "Constraint",
    "PromptVariant",
    "OptimizationTrajectory",
    "TechniqueOptions",
    "FeedbackIterationOptions",
    "PromptVariantsOptions",
    "ChainOfThoughtOptions",
    "FewShotOptions",
    "OptimizationTechnique",
    "FeedbackIterationTechnique",
    "PromptVariantsTechnique",
    "ChainOfThoughtTechnique",
    "FewShotTechnique",
    "TechniqueRegistry",
    "create_technique_by_name",
    "MetricsCollector",
    "optimize_batch",
    "CompletionProvider",
    "LLMClient",
    "Settings",
    "get_settings",
    "ErrorCode",
    "OptimizerError",
    "Result",
    "ProviderError",
    "ProviderErrorKind",
]
