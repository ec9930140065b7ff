"""OPRO-style feedback iteration: the LLM critiques and rewrites its best prompt."""

import re
import time
from functools import partial
from typing import List, Optional

from loguru import logger

from ...clients.base import CompletionProvider
from ...errors import OptimizerError
from ...models.config import FeedbackIterationOptions, TechniqueName
from ...models.context import OptimizationContext
from ...models.trajectory import OptimizationRun, OptimizationTrajectory, PromptAttempt
from ...models.variant import DimensionScores, EvaluationResult, PromptVariant, ScoredVariant
from ..metrics import MetricsCollector
from .base import OptimizationTechnique
from .helpers import build_evaluation_result, dimension_scores, truncate_to_token_limit

DEFAULT_SCORE = 0.5
FALLBACK_FEEDBACK = "Unable to generate detailed feedback. Consider improving clarity and specificity."
HISTORY_PREVIEW_TOKENS = 200
REFERENCE_EXAMPLES = 2
REFERENCE_PREVIEW_CHARS = 100

EVALUATION_TEMPERATURE = 0.3
EVALUATION_MAX_TOKENS = 1024
FEEDBACK_TEMPERATURE = 0.5
FEEDBACK_MAX_TOKENS = 1024
REWRITE_MAX_TOKENS = 2048

OVERALL_PATTERN = re.compile(r"OVERALL:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")


def parse_score_response(text: str) -> float:
    """Extract a 0-1 score from an evaluator reply.

    Looks for ``OVERALL: <n>``, then the last number if it is at most 100,
    and falls back to 0.5.
    """
    match = OVERALL_PATTERN.search(text)
    if match:
        score = float(match.group(1)) / 100
    else:
        numbers = NUMBER_PATTERN.findall(text)
        if numbers and float(numbers[-1]) <= 100:
            score = float(numbers[-1]) / 100
        else:
            logger.warning("Could not parse score from evaluator reply, using default")
            score = DEFAULT_SCORE
    return min(1.0, max(0.0, score))


class FeedbackIterationTechnique(OptimizationTechnique):
    """Iteratively refine a prompt from LLM feedback and scored history."""

    name = TechniqueName.REFLECTION
    priority = 8
    description = "OPRO-style optimization using LLM as optimizer with iterative feedback"
    options_class = FeedbackIterationOptions

    def __init__(
        self,
        options: Optional[FeedbackIterationOptions] = None,
        provider: Optional[CompletionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize optimizer; the last run's trajectory is kept for inspection."""
        super().__init__(options, provider, metrics)
        self.options: FeedbackIterationOptions
        self._trajectory: Optional[OptimizationTrajectory] = None

    async def apply(self, prompt: str, context: Optional[OptimizationContext] = None) -> List[PromptVariant]:
        """Run the loop and return one variant per iteration.

        The iteration count bounds the result, so ``max_variants`` does not
        apply here.
        """
        run = await self.run(prompt, context)
        self._trajectory = run.trajectory
        return run.variants

    async def run(self, prompt: str, context: Optional[OptimizationContext] = None) -> OptimizationRun:
        """Run the loop with call-local state; safe to call concurrently."""
        context = context or OptimizationContext()
        errors: List[OptimizerError] = []
        model = self._variant_model()
        if self.provider is None:
            logger.warning("No completion provider configured, variants will fall back to the seed prompt")

        seed_score = await self._score(prompt, context, errors)
        trajectory = OptimizationTrajectory.seed(prompt, seed_score)
        logger.info(f"Seed score: {seed_score:.1%}")

        variants: List[PromptVariant] = []
        stopped_early = False
        threshold = self.options.min_improvement_threshold

        for i in range(1, self.options.max_iterations + 1):
            best = trajectory.best_attempt
            feedback = await self._generate_feedback(best.prompt, best.score, context, errors)
            candidate = await self._generate_rewrite(best.prompt, feedback, context, trajectory, errors)
            score = await self._score(candidate, context, errors)

            improvement = score - best.score
            improved = trajectory.record(
                PromptAttempt(prompt=candidate, score=score, feedback=feedback, iteration=i)
            )
            variants.append(self.create_variant(candidate, score, model))
            logger.info(
                f"Iteration {i}/{self.options.max_iterations}: score={score:.1%} "
                f"({improvement:+.1%}){' new best' if improved else ''}"
            )

            if i > 2 and improvement < threshold:
                logger.info(f"Early stop at iteration {i}: improvement {improvement:+.3f} < {threshold}")
                stopped_early = True
                break

        if not variants:
            best = trajectory.best_attempt
            variants.append(self.create_variant(best.prompt, best.score, model))

        return OptimizationRun(
            variants=variants,
            trajectory=trajectory,
            errors=errors,
            stopped_early=stopped_early,
        )

    async def evaluate(
        self,
        variants: List[PromptVariant],
        original_score: Optional[float] = None,
    ) -> EvaluationResult:
        """Rank variants with deterministic dimension scores."""
        start_time = time.time()
        scored = []
        for variant in variants:
            scores = dimension_scores(variant)
            scored.append(ScoredVariant(
                **variant.model_dump(),
                scores=scores,
                feedback=self._variant_feedback(scores),
            ))

        trajectory = self._trajectory_for(variants)
        if original_score is None:
            if trajectory is not None:
                original_score = trajectory.seed_score
            else:
                logger.warning("Variants are not from the last apply() call, measuring improvement from 0")
                original_score = 0.0
        recommendations = partial(self._recommendations, trajectory)
        return build_evaluation_result(scored, original_score, recommendations, start_time)

    def get_trajectory(self) -> Optional[OptimizationTrajectory]:
        """Copy of the trajectory of the most recent apply() call."""
        return self._trajectory.model_copy(deep=True) if self._trajectory else None

    def _trajectory_for(self, variants: List[PromptVariant]) -> Optional[OptimizationTrajectory]:
        """Last apply() trajectory, only if every variant is one of its attempts."""
        trajectory = self._trajectory
        if trajectory is None:
            return None
        attempted = {attempt.prompt for attempt in trajectory.attempts}
        if all(variant.content in attempted for variant in variants):
            return trajectory
        return None

    def _variant_model(self) -> str:
        return self.options.optimizer_model or self.get_recommended_model()

    async def _score(self, prompt: str, context: OptimizationContext, errors: List[OptimizerError]) -> float:
        reference = ""
        if context.examples:
            lines = "\n".join(
                f"- {example.after_prompt[:REFERENCE_PREVIEW_CHARS]}..."
                for example in context.examples[:REFERENCE_EXAMPLES]
            )
            reference = f"\nREFERENCE - Good prompts in this domain typically:\n{lines}\n"

        result = await self._complete(
            self.options.evaluation_template.format(prompt=prompt, reference_section=reference),
            operation="evaluate",
            temperature=EVALUATION_TEMPERATURE,
            max_tokens=EVALUATION_MAX_TOKENS,
        )
        if not result.success:
            errors.append(result.error)
            return DEFAULT_SCORE
        score = parse_score_response(result.value.content)
        logger.debug(f"Parsed evaluator score {score:.3f}")
        return score

    async def _generate_feedback(
        self,
        prompt: str,
        score: float,
        context: OptimizationContext,
        errors: List[OptimizerError],
    ) -> str:
        result = await self._complete(
            self.options.feedback_template.format(
                prompt=prompt,
                score_percent=f"{score * 100:.1f}%",
                domain_hints=", ".join(context.domain_hints) or "None provided",
                num_examples=len(context.examples),
                num_constraints=len(context.constraints),
            ),
            operation="feedback",
            temperature=FEEDBACK_TEMPERATURE,
            max_tokens=FEEDBACK_MAX_TOKENS,
        )
        if not result.success:
            errors.append(result.error)
            return FALLBACK_FEEDBACK
        return result.value.content

    async def _generate_rewrite(
        self,
        prompt: str,
        feedback: str,
        context: OptimizationContext,
        trajectory: OptimizationTrajectory,
        errors: List[OptimizerError],
    ) -> str:
        history = self._build_history(trajectory)
        history_section = (
            f"\nHISTORY OF PREVIOUS ATTEMPTS (score in parentheses):\n{history}\n" if history else ""
        )
        domain_guideline = (
            f"7. Consider domain context: {', '.join(context.domain_hints)}\n" if context.domain_hints else ""
        )
        constraints = "\n".join(f"- {c.description}: {c.value}" for c in context.constraints)

        result = await self._complete(
            self.options.rewrite_template.format(
                current_prompt=prompt,
                feedback=feedback,
                history_section=history_section,
                domain_guideline=domain_guideline,
                constraints=constraints or "None specified",
            ),
            operation="rewrite",
            model=self.options.optimizer_model,
            temperature=self.options.optimizer_temperature,
            max_tokens=REWRITE_MAX_TOKENS,
        )
        if not result.success:
            errors.append(result.error)
            return prompt
        rewritten = result.value.content.strip()
        return rewritten or prompt

    def _build_history(self, trajectory: OptimizationTrajectory) -> str:
        """Top attempts by score, not recency, each with a short preview."""
        if len(trajectory.attempts) <= 1:
            return ""
        estimator = self.provider.estimate_tokens if self.provider else None
        lines = []
        for idx, attempt in enumerate(trajectory.top_attempts(self.options.history_size), start=1):
            preview = truncate_to_token_limit(attempt.prompt, HISTORY_PREVIEW_TOKENS, estimator)
            lines.append(f"{idx}. (Score: {attempt.score * 100:.1f}%) {preview}")
        return "\n\n".join(lines)

    @staticmethod
    def _variant_feedback(scores: DimensionScores) -> str:
        notes = []
        if scores.clarity < 0.7:
            notes.append("Could improve clarity of instructions")
        if scores.specificity < 0.7:
            notes.append("Needs more specific details")
        if scores.task_alignment < 0.7:
            notes.append("Task requirements could be clearer")
        if scores.efficiency < 0.6:
            notes.append("Could be more concise")
        return ". ".join(notes) or "Good overall quality"

    @staticmethod
    def _recommendations(
        trajectory: Optional[OptimizationTrajectory],
        variants: List[ScoredVariant],
        improvement: float,
    ) -> List[str]:
        recommendations = []
        if improvement < 10:
            recommendations.append(
                "Consider using additional techniques like chain-of-thought or few-shot examples"
            )
        if sum(v.scores.clarity for v in variants) / len(variants) < 0.7:
            recommendations.append("Focus on improving instruction clarity in future iterations")
        if sum(v.scores.efficiency for v in variants) / len(variants) < 0.6:
            recommendations.append("Consider condensing prompts for better efficiency")
        if trajectory is not None and trajectory.total_iterations < 3:
            recommendations.append("Additional iterations may yield further improvements")
        return recommendations
