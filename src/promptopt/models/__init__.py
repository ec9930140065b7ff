"""Data models for prompt scoring and optimization."""

from .completion import (
    CompletionCost,
    CompletionRequest,
    CompletionResponse,
    CompletionUsage,
    Message,
)
from .config import (
    DEFAULT_MODEL,
    PROFILE_PRESETS,
    SUPPORTED_PROFILES,
    ChainOfThoughtOptions,
    DomainReasoningPattern,
    FeedbackIterationOptions,
    FewShotOptions,
    PromptVariantsOptions,
    TechniqueName,
    TechniqueOptions,
)
from .context import Constraint, ConstraintType, Example, OptimizationContext
from .scores import (
    SCORE_WEIGHTS,
    ComparisonResult,
    DimensionComparison,
    PromptIssue,
    ScoreSet,
)
from .trajectory import OptimizationRun, OptimizationTrajectory, PromptAttempt
from .variant import (
    DimensionScores,
    EvaluationMetrics,
    EvaluationResult,
    PromptVariant,
    ScoredVariant,
    VariantsRun,
)

__all__ = [
    "ScoreSet",
    "SCORE_WEIGHTS",
    "PromptIssue",
    "DimensionComparison",
    "ComparisonResult",
    "Example",
    "Constraint",
    "ConstraintType",
    "OptimizationContext",
    "PromptVariant",
    "DimensionScores",
    "ScoredVariant",
    "VariantsRun",
    "EvaluationMetrics",
    "EvaluationResult",
    "PromptAttempt",
    "OptimizationTrajectory",
    "OptimizationRun",
    "Message",
    "CompletionRequest",
    "CompletionResponse",
    "CompletionUsage",
    "CompletionCost",
    "TechniqueName",
    "TechniqueOptions",
    "FeedbackIterationOptions",
    "PromptVariantsOptions",
    "ChainOfThoughtOptions",
    "FewShotOptions",
    "DomainReasoningPattern",
    "DEFAULT_MODEL",
    "PROFILE_PRESETS",
    "SUPPORTED_PROFILES",
]
