"""Few-shot example selection from the caller's example pool."""

import re
import time
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel

from ...clients.base import CompletionProvider
from ...models.config import FewShotOptions, TechniqueName
from ...models.context import Example, OptimizationContext
from ...models.variant import DimensionScores, EvaluationResult, PromptVariant, ScoredVariant, VariantsRun
from ..metrics import MetricsCollector
from .base import OptimizationTechnique
from .helpers import build_evaluation_result, estimate_tokens, validate_context

REQUIRED_CONTEXT = ("examples",)
SELECTION_STRATEGIES = ("similarity", "diversity", "hybrid", "quality")
OPTIMAL_COUNTS = (1, 2, 3, 5)

BASELINE_SCORE = 0.5
EMPTY_SELECTION_SCORE = 0.3
DEFAULT_QUALITY = 0.5
CONTEXT_WINDOW_TOKENS = 4000
TOKEN_EFFICIENCY_SCALE = 2000
MIN_WORD_LENGTH = 4

EXAMPLE_HEADER = re.compile(r"Example \d+:")
CATEGORY_LABEL = re.compile(r"\[[\w-]+\]")


class ScoredExample(BaseModel):
    """Pool example with its selection bookkeeping."""

    example: Example
    similarity: float
    diversity: float = 1.0
    selection_score: float = 0.0
    token_count: int


class ExampleSelection(BaseModel):
    """Examples picked by one strategy, with aggregate statistics."""

    strategy: str
    examples: List[ScoredExample]
    total_tokens: int
    candidates_considered: int
    average_similarity: float
    diversity: float


def _words(text: str, min_length: int = 0) -> set:
    return {w for w in text.lower().split() if len(w) >= min_length}


def _jaccard(a: set, b: set) -> float:
    return len(a & b) / (len(a | b) or 1)


def prompt_example_similarity(prompt: str, example: Example) -> float:
    """Word overlap with the prompt plus category and quality bonuses."""
    overlap = _jaccard(
        _words(prompt, MIN_WORD_LENGTH),
        _words(f"{example.before_prompt} {example.after_prompt}", MIN_WORD_LENGTH),
    )
    category_bonus = 0.2 if example.category and example.category.lower() in prompt.lower() else 0.0
    quality = example.expected_improvement if example.expected_improvement is not None else DEFAULT_QUALITY
    return min(1.0, overlap * 0.6 + category_bonus + quality * 0.2)


def example_pair_similarity(a: Example, b: Example) -> float:
    overlap = _jaccard(
        _words(f"{a.before_prompt} {a.after_prompt}"),
        _words(f"{b.before_prompt} {b.after_prompt}"),
    )
    category_match = 0.3 if a.category == b.category else 0.0
    return min(1.0, overlap * 0.7 + category_match)


def set_diversity(examples: Sequence[ScoredExample]) -> float:
    """Mean pairwise dissimilarity; 1 for zero or one example."""
    if len(examples) <= 1:
        return 1.0
    pairs = [
        1 - example_pair_similarity(examples[i].example, examples[j].example)
        for i in range(len(examples))
        for j in range(i + 1, len(examples))
    ]
    return sum(pairs) / len(pairs)


def _quality(scored: ScoredExample) -> float:
    return scored.example.expected_improvement or 0.0


class FewShotTechnique(OptimizationTechnique):
    """
    Prepend the most useful context examples to a prompt.

    Four selection strategies (similarity, diversity, hybrid, quality) and
    a search over example counts each produce one variant. The technique
    needs ``examples`` in the context: without them it is not applicable,
    and run() reports INVALID_CONFIG while returning the prompt unchanged.
    """

    name = TechniqueName.FEW_SHOT
    priority = 8
    description = "Select optimal examples for few-shot learning from the example pool"
    options_class = FewShotOptions

    def __init__(
        self,
        options: Optional[FewShotOptions] = None,
        provider: Optional[CompletionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__(options, provider, metrics)
        self.options: FewShotOptions

    def is_applicable(self, context: OptimizationContext) -> bool:
        return validate_context(context, REQUIRED_CONTEXT).success

    async def apply(self, prompt: str, context: Optional[OptimizationContext] = None) -> List[PromptVariant]:
        run = await self.run(prompt, context)
        return run.variants

    async def run(self, prompt: str, context: Optional[OptimizationContext] = None) -> VariantsRun:
        """Build one variant per selection strategy plus the best example count."""
        context = context or OptimizationContext()
        check = validate_context(context, REQUIRED_CONTEXT)
        if not check.success:
            logger.warning(f"Few-shot selection skipped: {check.error.message}")
            return VariantsRun(
                variants=[self.create_variant(prompt, BASELINE_SCORE)],
                errors=[check.error],
            )

        selections = [
            self.select_examples(prompt, context.examples, strategy) for strategy in SELECTION_STRATEGIES
        ]
        selections.append(self.select_optimal_count(prompt, context.examples))

        variants = [
            self.create_variant(self.format_prompt(prompt, selection), self._selection_score(selection))
            for selection in selections
        ]
        variants.sort(key=lambda v: -v.score)
        logger.debug(f"Built {len(variants)} few-shot variants from {len(context.examples)} examples")
        return VariantsRun(variants=variants[:self.options.max_variants])

    async def evaluate(
        self,
        variants: List[PromptVariant],
        original_score: float = BASELINE_SCORE,
    ) -> EvaluationResult:
        """Score variants by example structure, labels and size."""
        start_time = time.time()
        scored = []
        for variant in variants:
            scores = self._example_scores(variant)
            scored.append(ScoredVariant(
                **variant.model_dump(),
                scores=scores,
                feedback=self._variant_feedback(variant, scores),
            ))
        return build_evaluation_result(scored, original_score, self._recommendations, start_time)

    def select_examples(
        self,
        prompt: str,
        examples: Sequence[Example],
        strategy: str,
        max_examples: Optional[int] = None,
    ) -> ExampleSelection:
        """Pick examples with one strategy, then fit them to the token budget."""
        selectors: Dict[str, Callable[[List[ScoredExample], int], List[ScoredExample]]] = {
            "similarity": self._by_similarity,
            "diversity": self._by_diversity,
            "hybrid": self._hybrid,
            "quality": self._by_quality,
        }
        if strategy not in selectors:
            raise ValueError(f"Unknown selection strategy: {strategy}")

        limit = max_examples or self.options.max_examples
        candidates = self._score_examples(prompt, examples)
        selected = self._apply_token_budget(selectors[strategy](candidates, limit))
        return ExampleSelection(
            strategy=strategy,
            examples=selected,
            total_tokens=sum(s.token_count for s in selected),
            candidates_considered=len(examples),
            average_similarity=sum(s.similarity for s in selected) / (len(selected) or 1),
            diversity=set_diversity(selected),
        )

    def select_optimal_count(self, prompt: str, examples: Sequence[Example]) -> ExampleSelection:
        """Hybrid selection at the example count with the best similarity, diversity and size balance."""
        best: Optional[ExampleSelection] = None
        best_score = -1.0
        for count in OPTIMAL_COUNTS:
            selection = self.select_examples(prompt, examples, "hybrid", max_examples=count)
            score = (
                selection.average_similarity * 0.4
                + selection.diversity * 0.3
                + (1 - selection.total_tokens / TOKEN_EFFICIENCY_SCALE) * 0.3
            )
            if score > best_score:
                best, best_score = selection, score
        return best.model_copy(update={"strategy": "optimal-count"})

    def format_prompt(self, prompt: str, selection: ExampleSelection) -> str:
        if not selection.examples:
            return prompt
        examples = "\n\n---\n\n".join(
            self._format_example(scored.example, idx)
            for idx, scored in enumerate(selection.examples, start=1)
        )
        return (
            f"Here are some examples to guide your response:\n\n"
            f"{examples}\n\n---\n\n"
            f"Now, please handle the following:\n\n{prompt}"
        )

    def _format_example(self, example: Example, index: int) -> str:
        header = f"Example {index}:"
        if example.category:
            header += f" [{example.category}]"
        text = f"{header}\nInput: {example.before_prompt}\nOutput: {example.after_prompt}"
        if self.options.include_explanations and example.expected_improvement:
            text += f"\n(This example shows a {example.expected_improvement * 100:.0f}% improvement)"
        return text

    def _score_examples(self, prompt: str, examples: Sequence[Example]) -> List[ScoredExample]:
        scored = []
        for example in examples:
            similarity = prompt_example_similarity(prompt, example)
            scored.append(ScoredExample(
                example=example,
                similarity=similarity,
                selection_score=similarity,
                token_count=estimate_tokens(example.before_prompt + example.after_prompt, self.provider),
            ))
        return scored

    def _by_similarity(self, candidates: List[ScoredExample], limit: int) -> List[ScoredExample]:
        threshold = self.options.similarity_threshold
        eligible = [c for c in candidates if c.similarity >= threshold]
        return sorted(eligible, key=lambda c: -c.similarity)[:limit]

    def _by_diversity(self, candidates: List[ScoredExample], limit: int) -> List[ScoredExample]:
        """Seed with the most similar example, then favour the least redundant ones."""
        threshold = self.options.similarity_threshold
        remaining = sorted(candidates, key=lambda c: -_quality(c))
        selected: List[ScoredExample] = []
        while len(selected) < limit and remaining:
            if not selected:
                eligible = [c for c in remaining if c.similarity >= threshold]
                if not eligible:
                    break
                first = max(eligible, key=lambda c: c.similarity)
                selected.append(first)
                remaining.remove(first)
                continue

            for candidate in remaining:
                candidate.diversity = self._diversity_from(candidate, selected)
                candidate.selection_score = candidate.similarity * 0.3 + candidate.diversity * 0.7
            remaining.sort(key=lambda c: -c.selection_score)
            pick = remaining.pop(0)
            if pick.similarity >= threshold * 0.8:
                selected.append(pick)
        return selected

    def _hybrid(self, candidates: List[ScoredExample], limit: int) -> List[ScoredExample]:
        diversity_weight = self.options.diversity_weight
        remaining = [c for c in candidates if c.similarity >= self.options.similarity_threshold]
        selected: List[ScoredExample] = []
        while len(selected) < limit and remaining:
            for candidate in remaining:
                if selected:
                    candidate.diversity = self._diversity_from(candidate, selected)
                candidate.selection_score = (
                    candidate.similarity * (1 - diversity_weight) + candidate.diversity * diversity_weight
                )
            remaining.sort(key=lambda c: -c.selection_score)
            selected.append(remaining.pop(0))
        return selected

    def _by_quality(self, candidates: List[ScoredExample], limit: int) -> List[ScoredExample]:
        threshold = self.options.similarity_threshold * 0.7
        eligible = [c for c in candidates if c.similarity >= threshold]
        return sorted(eligible, key=lambda c: -_quality(c))[:limit]

    @staticmethod
    def _diversity_from(candidate: ScoredExample, selected: Sequence[ScoredExample]) -> float:
        return 1 - max(example_pair_similarity(candidate.example, s.example) for s in selected)

    def _apply_token_budget(self, examples: List[ScoredExample]) -> List[ScoredExample]:
        available = CONTEXT_WINDOW_TOKENS - self.options.reserved_tokens
        kept: List[ScoredExample] = []
        total = 0
        for scored in examples:
            scored.token_count = min(scored.token_count, self.options.max_tokens_per_example)
            if total + scored.token_count <= available:
                kept.append(scored)
                total += scored.token_count
        return kept

    @staticmethod
    def _selection_score(selection: ExampleSelection) -> float:
        if not selection.examples:
            return EMPTY_SELECTION_SCORE
        quality = sum(
            s.example.expected_improvement if s.example.expected_improvement is not None else DEFAULT_QUALITY
            for s in selection.examples
        ) / len(selection.examples)
        token_efficiency = 1 - min(1.0, selection.total_tokens / TOKEN_EFFICIENCY_SCALE)
        return (
            selection.average_similarity * 0.35
            + selection.diversity * 0.2
            + quality * 0.3
            + token_efficiency * 0.15
        )

    def _example_scores(self, variant: PromptVariant) -> DimensionScores:
        content = variant.content
        tokens = estimate_tokens(content, self.provider)
        example_count = len(EXAMPLE_HEADER.findall(content))
        clarity = 0.85 if "Input:" in content and "Output:" in content else 0.6
        specificity = 0.8 if CATEGORY_LABEL.search(content) else 0.7
        task_alignment = 0.85 if "Now, please" in content or "Your task" in content else 0.65
        if example_count:
            efficiency = min(1.0, max(0.0, 0.5 + example_count * 0.15 - tokens / CONTEXT_WINDOW_TOKENS))
        else:
            efficiency = 0.5
        return DimensionScores(
            overall=(clarity + specificity + task_alignment + efficiency) / 4,
            clarity=clarity,
            specificity=specificity,
            task_alignment=task_alignment,
            efficiency=efficiency,
        )

    @staticmethod
    def _variant_feedback(variant: PromptVariant, scores: DimensionScores) -> str:
        notes = [f"{len(EXAMPLE_HEADER.findall(variant.content))} examples included"]
        if scores.clarity >= 0.8:
            notes.append("Well-structured examples")
        if scores.efficiency < 0.6:
            notes.append("Consider reducing example count for efficiency")
        if scores.specificity < 0.75:
            notes.append("Add category labels for better context")
        return ". ".join(notes)

    @staticmethod
    def _recommendations(variants: List[ScoredVariant], improvement: float) -> List[str]:
        best = variants[0]
        recommendations = []
        if best.scores.efficiency < 0.7:
            recommendations.append("Try using fewer but higher-quality examples")
        if best.scores.specificity < 0.75:
            recommendations.append("Add category labels to examples for better context")
        return recommendations
