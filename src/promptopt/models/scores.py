"""Deterministic prompt quality scores."""

import math
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

Winner = Literal["a", "b", "tie"]

SCORE_WEIGHTS: Dict[str, float] = {
    "clarity": 0.25,
    "specificity": 0.25,
    "structure": 0.15,
    "completeness": 0.20,
    "efficiency": 0.15,
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


class ScoreSet(BaseModel):
    """Five sub-scores in [0, 100] with a derived weighted overall."""

    model_config = ConfigDict(frozen=True)

    clarity: int = Field(ge=0, le=100)
    specificity: int = Field(ge=0, le=100)
    structure: int = Field(ge=0, le=100)
    completeness: int = Field(ge=0, le=100)
    efficiency: int = Field(ge=0, le=100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall(self) -> int:
        return round_half_up(
            self.clarity * SCORE_WEIGHTS["clarity"]
            + self.specificity * SCORE_WEIGHTS["specificity"]
            + self.structure * SCORE_WEIGHTS["structure"]
            + self.completeness * SCORE_WEIGHTS["completeness"]
            + self.efficiency * SCORE_WEIGHTS["efficiency"]
        )

    def dimensions(self) -> Dict[str, int]:
        """Sub-scores keyed by dimension name, without overall."""
        return {name: getattr(self, name) for name in SCORE_WEIGHTS}

    def __str__(self) -> str:
        return (
            f"Overall={self.overall}, Clarity={self.clarity}, "
            f"Specificity={self.specificity}, Structure={self.structure}, "
            f"Completeness={self.completeness}, Efficiency={self.efficiency}"
        )


class PromptIssue(BaseModel):
    """Quality issue detected in a prompt."""

    type: Literal[
        "ambiguity",
        "vagueness",
        "redundancy",
        "missing-context",
        "poor-structure",
        "too-long",
        "too-short",
    ]
    severity: Literal["low", "medium", "high"]
    description: str
    suggestion: Optional[str] = None


class DimensionComparison(BaseModel):
    """Head-to-head result for one dimension."""

    dimension: str
    score_a: int
    score_b: int
    winner: Winner


class ComparisonResult(BaseModel):
    """A/B comparison of two prompts."""

    winner: Winner
    score_difference: int = Field(ge=0)
    scores_a: ScoreSet
    scores_b: ScoreSet
    comparison: List[DimensionComparison]
    summary: str
