"""Caller-owned optimization context."""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ConstraintType(str, Enum):
    """Kinds of constraints a caller can attach to an optimization."""

    TOKEN_LIMIT = "token_limit"
    COST_LIMIT = "cost_limit"
    LATENCY_LIMIT = "latency_limit"
    MODEL_RESTRICTION = "model_restriction"
    CONTENT_POLICY = "content_policy"
    FORMAT_REQUIREMENT = "format_requirement"
    CUSTOM = "custom"


class Example(BaseModel):
    """Before/after prompt pair illustrating a good rewrite."""

    model_config = ConfigDict(frozen=True)

    before_prompt: str
    after_prompt: str
    category: Optional[str] = None
    expected_improvement: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    tags: List[str] = Field(default_factory=list)


class Constraint(BaseModel):
    """Requirement the optimized prompt should respect."""

    model_config = ConfigDict(frozen=True)

    type: ConstraintType = ConstraintType.CUSTOM
    description: str
    value: Union[str, int, float, bool, List[str]] = ""
    strict: bool = False
    priority: int = 0


class OptimizationContext(BaseModel):
    """Examples, constraints and domain hints; read-only to techniques."""

    model_config = ConfigDict(frozen=True)

    examples: List[Example] = Field(default_factory=list)
    constraints: List[Constraint] = Field(default_factory=list)
    domain_hints: List[str] = Field(default_factory=list)
