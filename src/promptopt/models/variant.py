"""Prompt variants and their evaluation results."""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..errors import OptimizerError


class PromptVariant(BaseModel):
    """Candidate rewritten prompt with a provisional score."""

    content: str = Field(description="Prompt text")
    technique: str = Field(description="Technique output category")
    score: float = Field(ge=0.0, le=1.0)
    model: str

    def __str__(self) -> str:
        return f"Variant({self.technique}, score={self.score:.2f}, {len(self.content)} chars)"


class DimensionScores(BaseModel):
    """Per-dimension breakdown used by evaluate()."""

    overall: float = Field(ge=0.0, le=1.0)
    clarity: float = Field(ge=0.0, le=1.0)
    specificity: float = Field(ge=0.0, le=1.0)
    task_alignment: float = Field(ge=0.0, le=1.0)
    efficiency: float = Field(ge=0.0, le=1.0)


class ScoredVariant(PromptVariant):
    """Variant with a dimension breakdown and optional feedback."""

    scores: DimensionScores
    feedback: Optional[str] = None


class EvaluationMetrics(BaseModel):
    """Aggregate statistics over an evaluated variant set."""

    variants_evaluated: int = Field(ge=0)
    average_score: float
    score_variance: float
    improvement_over_original: float
    evaluation_time_ms: float = Field(ge=0.0)


class EvaluationResult(BaseModel):
    """Ranked variants, best pick, metrics and recommendations."""

    variants: List[ScoredVariant]
    best: ScoredVariant
    metrics: EvaluationMetrics
    recommendations: List[str] = Field(default_factory=list)


class VariantsRun(BaseModel):
    """Variants from one apply() call and the recoverable errors behind them."""

    variants: List[PromptVariant]
    errors: List[OptimizerError] = Field(default_factory=list)
