"""Strategy-driven prompt variations."""

import re
import time
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ...clients.base import CompletionProvider
from ...errors import OptimizerError
from ...models.config import PromptVariantsOptions, TechniqueName
from ...models.context import OptimizationContext
from ...models.variant import DimensionScores, EvaluationResult, PromptVariant, ScoredVariant, VariantsRun
from ..metrics import MetricsCollector
from .base import OptimizationTechnique
from .helpers import build_evaluation_result, dimension_scores, word_similarity

ORIGINAL_SCORE = 0.5
BASE_QUALITY = 0.6
COMBINED_TEMPERATURE_FACTOR = 1.1
CREATIVE_THRESHOLD = 0.7
MAX_TEMPERATURE = 2.0

STRATEGY_PROMPTS: Dict[str, str] = {
    "rephrase": """Rephrase this prompt using different words while keeping the exact same meaning and intent.
Maintain the same level of detail and specificity. Just change the wording.""",
    "restructure": """Restructure this prompt with a different organization:
- Group related instructions together
- Use a different logical flow
- Consider using sections, bullets, or numbered lists if not already present
- Or convert from structured to flowing prose if it's already structured""",
    "reorder": """Reorder the instructions in this prompt:
- Put the most important information first
- Consider what the model needs to know before processing
- Group related items but change their sequence""",
    "emphasize": """Add emphasis to the key instructions in this prompt:
- Use formatting (caps, asterisks) for critical points sparingly
- Add "IMPORTANT:" or "Note:" prefixes where appropriate
- Repeat key requirements in different ways
- Add explicit priorities""",
    "simplify": """Simplify this prompt:
- Remove redundant phrases
- Use shorter sentences
- Eliminate unnecessary qualifiers
- Keep only essential instructions
- Make it more concise without losing important information""",
    "elaborate": """Elaborate on this prompt:
- Add more context and background
- Explain the "why" behind requirements
- Include examples where helpful
- Add clarifying details
- Make implicit requirements explicit""",
    "formalize": """Make this prompt more formal and structured:
- Use professional language
- Add clear section headers
- Use consistent formatting
- Add explicit constraints and requirements
- Structure as a formal specification""",
    "conversational": """Make this prompt more conversational and natural:
- Use a friendly, approachable tone
- Phrase instructions as helpful suggestions
- Add transitional phrases
- Make it read like a natural request""",
    "directive": """Make this prompt more direct and commanding:
- Use imperative mood (do this, avoid that)
- Be explicit about expectations
- Remove hedging language
- State requirements clearly and firmly""",
    "interrogative": """Convert parts of this prompt to questions:
- Use questions to guide thinking
- Ask "What if..." or "How would..."
- Make the model actively consider constraints
- Use Socratic style where appropriate""",
}

STRATEGY_COMBINATIONS = [
    ("simplify", "emphasize"),
    ("restructure", "directive"),
    ("elaborate", "formalize"),
]

GENERATION_TEMPLATE = """You are an expert prompt engineer. Your task is to transform the following prompt using a specific strategy.

ORIGINAL PROMPT:
{prompt}

TRANSFORMATION STRATEGY: {strategy}
{instructions}
{domain_section}
CONSTRAINTS:
- Preserve the core intent and requirements
- Don't add information that wasn't implied by the original
- Keep it focused and clear
{style_line}

Output ONLY the transformed prompt, nothing else."""

COMBINED_TEMPLATE = """You are an expert prompt engineer. Transform the following prompt by combining these strategies:

ORIGINAL PROMPT:
{prompt}

STRATEGIES TO COMBINE:
{strategies}

Combine these approaches thoughtfully. Output ONLY the transformed prompt."""

EMPHASIS_PATTERN = re.compile(r"IMPORTANT|Note:|must|critical", re.IGNORECASE)
DIRECTIVE_PATTERN = re.compile(r"^(?:Do|Create|Generate|Provide|List|Explain)", re.IGNORECASE | re.MULTILINE)


def estimate_variant_quality(original: str, variant: str, strategy: str) -> float:
    """Heuristic 0-1 quality of a variant relative to its original."""
    score = BASE_QUALITY

    ratio = len(variant) / (len(original) or 1)
    if 0.8 <= ratio <= 1.2:
        score += 0.1
    elif ratio < 0.8:
        score += 0.05
    else:
        score -= 0.05

    similarity = word_similarity(original, variant)
    if 0.7 <= similarity < 0.95:
        score += 0.1
    elif similarity >= 0.95:
        score -= 0.1
    elif similarity < 0.5:
        score -= 0.1

    if strategy == "simplify" and len(variant) < len(original) * 0.9:
        score += 0.1
    elif strategy == "elaborate" and len(variant) > len(original) * 1.1:
        score += 0.05
    elif strategy == "emphasize" and EMPHASIS_PATTERN.search(variant):
        score += 0.05
    elif strategy == "directive" and DIRECTIVE_PATTERN.search(variant):
        score += 0.05
    elif strategy == "restructure" and variant.count("\n") != original.count("\n"):
        score += 0.05

    return min(1.0, max(0.0, score))


class PromptVariantsTechnique(OptimizationTechnique):
    """Rewrite a prompt once per variation strategy and keep the most promising."""

    name = TechniqueName.META_PROMPTING
    priority = 6
    description = "Generate and test prompt variations to find optimal formulation"
    options_class = PromptVariantsOptions

    def __init__(
        self,
        options: Optional[PromptVariantsOptions] = None,
        provider: Optional[CompletionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__(options, provider, metrics)
        self.options: PromptVariantsOptions

    @staticmethod
    def available_strategies() -> List[str]:
        return list(STRATEGY_PROMPTS)

    async def apply(self, prompt: str, context: Optional[OptimizationContext] = None) -> List[PromptVariant]:
        """Generate strategy variants; the original is always a candidate."""
        run = await self.run(prompt, context)
        return run.variants

    async def run(self, prompt: str, context: Optional[OptimizationContext] = None) -> VariantsRun:
        """Generate variants and collect the provider errors that dropped any of them.

        The result holds at most ``min(num_variants, max_variants)`` variants.
        """
        context = context or OptimizationContext()
        limit = min(self.options.num_variants, self.options.max_variants)
        strategies = self.options.variation_strategies
        variants: List[PromptVariant] = []
        errors: List[OptimizerError] = []
        if self.provider is None:
            logger.warning("No completion provider configured, only the original prompt will be returned")

        for strategy in strategies:
            if len(variants) >= limit:
                break
            variant = await self._generate_variant(prompt, strategy, context, errors)
            if variant is not None:
                variants.append(variant)

        if self.options.combine_strategies:
            variants.extend(await self._generate_combined(prompt, strategies, errors))

        variants.append(self.create_variant(prompt, ORIGINAL_SCORE))
        variants.sort(key=lambda v: -v.score)
        logger.info(f"Generated {len(variants) - 1} variants from {len(strategies)} strategies")
        if errors:
            logger.warning(f"{len(errors)} variant requests failed: {errors[0]}")
        return VariantsRun(variants=variants[:limit], errors=errors)

    async def evaluate(
        self,
        variants: List[PromptVariant],
        original_score: float = ORIGINAL_SCORE,
    ) -> EvaluationResult:
        """Rank variants with deterministic dimension scores."""
        start_time = time.time()
        scored = []
        for variant in variants:
            scores = dimension_scores(variant)
            scored.append(ScoredVariant(
                **variant.model_dump(),
                scores=scores,
                feedback=self._variant_feedback(variant, scores),
            ))
        return build_evaluation_result(scored, original_score, self._recommendations, start_time)

    async def _generate_variant(
        self,
        prompt: str,
        strategy: str,
        context: OptimizationContext,
        errors: List[OptimizerError],
    ) -> Optional[PromptVariant]:
        domain_section = (
            f"\nDOMAIN CONTEXT: {', '.join(context.domain_hints)}\n" if context.domain_hints else ""
        )
        style_line = (
            "- Be creative with the transformation"
            if self.options.creativity_level > CREATIVE_THRESHOLD
            else "- Stay close to the original style"
        )
        result = await self._complete(
            GENERATION_TEMPLATE.format(
                prompt=prompt,
                strategy=strategy.upper(),
                instructions=STRATEGY_PROMPTS[strategy],
                domain_section=domain_section,
                style_line=style_line,
            ),
            operation=f"variant.{strategy}",
            temperature=self.options.creativity_level,
        )
        if not result.success:
            errors.append(result.error)
            return None

        transformed = result.value.content.strip()
        similarity = word_similarity(prompt, transformed)
        if not transformed or similarity < self.options.min_similarity_to_original:
            logger.debug(f"Dropped {strategy} variant: similarity {similarity:.2f}")
            return None
        return self.create_variant(transformed, estimate_variant_quality(prompt, transformed, strategy))

    async def _generate_combined(
        self,
        prompt: str,
        strategies: Sequence[str],
        errors: List[OptimizerError],
    ) -> List[PromptVariant]:
        variants = []
        temperature = min(MAX_TEMPERATURE, self.options.creativity_level * COMBINED_TEMPERATURE_FACTOR)
        for combo in STRATEGY_COMBINATIONS:
            if not all(s in strategies for s in combo):
                continue
            described = "\n\n".join(f"- {s.upper()}: {STRATEGY_PROMPTS[s]}" for s in combo)
            result = await self._complete(
                COMBINED_TEMPLATE.format(prompt=prompt, strategies=described),
                operation="variant.combined",
                temperature=temperature,
            )
            if not result.success:
                errors.append(result.error)
            elif result.value.content.strip():
                transformed = result.value.content.strip()
                variants.append(
                    self.create_variant(transformed, estimate_variant_quality(prompt, transformed, "rephrase"))
                )
        return variants

    @staticmethod
    def _variant_feedback(variant: PromptVariant, scores: DimensionScores) -> str:
        notes = [f"Variant using {variant.technique}"]
        if scores.clarity >= 0.8:
            notes.append("Good clarity")
        elif scores.clarity < 0.7:
            notes.append("Could improve structure")
        if scores.efficiency >= 0.8:
            notes.append("Concise")
        elif scores.efficiency < 0.6:
            notes.append("Could be more concise")
        if scores.specificity >= 0.8:
            notes.append("Specific instructions")
        elif scores.specificity < 0.7:
            notes.append("Add more specific guidance")
        return ". ".join(notes)

    @staticmethod
    def _recommendations(variants: List[ScoredVariant], improvement: float) -> List[str]:
        best = variants[0]
        recommendations = []
        if best.scores.efficiency < 0.7:
            recommendations.append("Try the simplify strategy for better efficiency")
        if best.scores.clarity >= 0.85:
            recommendations.append("Current structure works well, maintain it")
        else:
            recommendations.append("Consider restructuring for better clarity")
        spread = best.scores.overall - variants[-1].scores.overall
        if len(variants) > 1 and spread < 0.1:
            recommendations.append("Variants are very similar, increase creativity_level for more diversity")
        return recommendations
