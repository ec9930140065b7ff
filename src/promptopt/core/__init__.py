"""Optimization techniques, metrics and batch execution."""

from .batch import BatchItemResult, BatchSummary, optimize_batch, summarize_batch
from .metrics import CompletionRecord, MetricsCollector
from .techniques import (
    ChainOfThoughtTechnique,
    FeedbackIterationTechnique,
    FewShotTechnique,
    OptimizationTechnique,
    PromptVariantsTechnique,
    TechniqueRegistry,
    create_technique_by_name,
)

__all__ = [
    "OptimizationTechnique",
    "FeedbackIterationTechnique",
    "PromptVariantsTechnique",
    "ChainOfThoughtTechnique",
    "FewShotTechnique",
    "TechniqueRegistry",
    "create_technique_by_name",
    "MetricsCollector",
    "CompletionRecord",
    "optimize_batch",
    "summarize_batch",
    "BatchItemResult",
    "BatchSummary",
]
