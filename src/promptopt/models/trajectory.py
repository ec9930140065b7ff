"""Optimization trajectory for the feedback-iteration loop."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .variant import VariantsRun

SEED_FEEDBACK = "Initial prompt"


class PromptAttempt(BaseModel):
    """Single recorded attempt; immutable once created."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    score: float = Field(ge=0.0, le=1.0)
    feedback: str = ""
    iteration: int = Field(ge=0, description="0 is the seed prompt")
    timestamp: datetime = Field(default_factory=datetime.now)


class OptimizationTrajectory(BaseModel):
    """Ordered attempts with best-so-far and improvement curve."""

    attempts: List[PromptAttempt]
    best_attempt: PromptAttempt
    total_iterations: int = 0
    improvement_curve: List[float]

    @classmethod
    def seed(cls, prompt: str, score: float) -> "OptimizationTrajectory":
        """Start a trajectory from the scored seed prompt."""
        attempt = PromptAttempt(prompt=prompt, score=score, feedback=SEED_FEEDBACK, iteration=0)
        return cls(attempts=[attempt], best_attempt=attempt, improvement_curve=[score])

    def record(self, attempt: PromptAttempt) -> bool:
        """Append attempt; return True if it strictly improved on the best."""
        self.attempts.append(attempt)
        self.improvement_curve.append(attempt.score)
        self.total_iterations = max(self.total_iterations, attempt.iteration)
        if attempt.score > self.best_attempt.score:
            self.best_attempt = attempt
            return True
        return False

    @property
    def seed_score(self) -> float:
        return self.improvement_curve[0]

    def top_attempts(self, limit: int) -> List[PromptAttempt]:
        """Highest-scoring attempts first; ties keep earlier iterations first."""
        return sorted(self.attempts, key=lambda a: -a.score)[:limit]

    def __str__(self) -> str:
        curve = ", ".join(f"{score:.2f}" for score in self.improvement_curve)
        return (
            f"Trajectory(iterations={self.total_iterations}, "
            f"best={self.best_attempt.score:.2f}@{self.best_attempt.iteration}, curve=[{curve}])"
        )


class OptimizationRun(VariantsRun):
    """Outcome of one feedback-iteration run."""

    trajectory: OptimizationTrajectory
    stopped_early: bool = False

    @property
    def best_prompt(self) -> str:
        return self.trajectory.best_attempt.prompt
