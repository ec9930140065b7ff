"""Chain-of-thought: append explicit reasoning scaffolds to a prompt."""

import re
import time
from typing import List, Optional

from ...clients.base import CompletionProvider
from ...models.config import ChainOfThoughtOptions, DomainReasoningPattern, TechniqueName
from ...models.context import OptimizationContext
from ...models.variant import DimensionScores, EvaluationResult, PromptVariant, ScoredVariant
from ..metrics import MetricsCollector
from .base import OptimizationTechnique
from .helpers import build_evaluation_result, estimate_tokens

BASELINE_SCORE = 0.5
DOMAIN_VARIANT_SCORE = 0.85
DOMAIN_HINT_BONUS = 0.05
DEFAULT_TRIGGER = "Let's think step by step."
DOMAIN_MARKER = "[Domain:"

REASONING_STYLES = ("simple", "detailed", "structured", "zero-shot")

COT_TRIGGERS = (
    "step by step",
    "think through",
    "reasoning",
    "let me think",
    "break down",
    "analyze",
    "consider each",
)

GENERIC_REASONING_GUIDE = """1. First, identify the key elements of the problem
2. Consider what information you have and what you need
3. Work through the logic step by step
4. Check your reasoning for errors
5. Formulate your final answer"""

GENERIC_STEPS = [
    "Understand the problem - identify what is given and what is asked",
    "Break down into sub-problems if needed",
    "Solve each part systematically",
    "Combine results and check consistency",
    "Verify the answer makes sense",
]

TECHNICAL_TERMS = re.compile(
    r"\b(?:algorithm|function|calculate|analyze|implement|configure|process|validate|transform|optimize)\b",
    re.IGNORECASE,
)
STEP_PATTERN = re.compile(r"step\s*\d|step\s+by\s+step", re.IGNORECASE)
NUMBERED_LINE = re.compile(r"^\s*\d+\.", re.MULTILINE)
REASONING_WORDS = re.compile(r"think|reason|consider|analyze", re.IGNORECASE)

DEFAULT_DOMAIN_PATTERNS = [
    DomainReasoningPattern(
        domain="mathematical",
        keywords=["calculate", "compute", "solve", "math", "equation", "formula"],
        template="""Break down the mathematical problem:
1. Identify the given values and what we need to find
2. Determine the relevant formulas or relationships
3. Substitute values and simplify step by step
4. Verify the answer makes sense in context""",
        example_steps=[
            "Given: [identify inputs]",
            "Need to find: [identify output]",
            "Formula: [relevant formula]",
            "Calculation: [show work]",
            "Answer: [final result with units]",
        ],
        priority=10,
    ),
    DomainReasoningPattern(
        domain="code-analysis",
        keywords=["code", "debug", "function", "algorithm", "program", "bug"],
        template="""Analyze the code systematically:
1. Understand the intended purpose
2. Trace through the logic step by step
3. Identify where behavior deviates from intent
4. Propose and validate the fix""",
        example_steps=[
            "Purpose: [what the code should do]",
            "Input: [expected inputs]",
            "Trace: [step through execution]",
            "Issue: [where it goes wrong]",
            "Fix: [proposed solution]",
        ],
        priority=9,
    ),
    DomainReasoningPattern(
        domain="erp-configuration",
        keywords=["sap", "erp", "configuration", "module", "transaction", "customizing"],
        template="""Approach the ERP configuration systematically:
1. Identify the business requirement
2. Map to relevant module/component
3. Determine configuration path (transaction codes, IMG paths)
4. Consider dependencies and impacts
5. Validate against best practices""",
        example_steps=[
            "Requirement: [business need]",
            "Module: [SAP module]",
            "Config Path: [IMG or transaction]",
            "Dependencies: [related settings]",
            "Validation: [how to verify]",
        ],
        priority=8,
    ),
    DomainReasoningPattern(
        domain="logical-reasoning",
        keywords=["logic", "deduce", "infer", "conclude", "reasoning", "proof"],
        template="""Apply logical reasoning:
1. State the premises clearly
2. Identify the logical relationships
3. Apply deductive/inductive reasoning
4. Draw conclusions step by step
5. Check for logical fallacies""",
        priority=7,
    ),
    DomainReasoningPattern(
        domain="data-analysis",
        keywords=["data", "analyze", "statistics", "trend", "pattern", "insight"],
        template="""Analyze the data methodically:
1. Understand the data structure and meaning
2. Identify relevant metrics and dimensions
3. Look for patterns, trends, and anomalies
4. Consider statistical significance
5. Draw actionable conclusions""",
        priority=6,
    ),
    DomainReasoningPattern(
        domain="decision-making",
        keywords=["decide", "choose", "compare", "evaluate", "pros", "cons"],
        template="""Structure the decision analysis:
1. Clarify the decision criteria
2. List all viable options
3. Evaluate each option against criteria
4. Consider risks and tradeoffs
5. Make and justify the recommendation""",
        priority=5,
    ),
]


def has_cot_trigger(prompt: str) -> bool:
    lowered = prompt.lower()
    return any(trigger in lowered for trigger in COT_TRIGGERS)


def estimate_complexity(prompt: str) -> float:
    """Rough 0-1 complexity from length, questions and technical vocabulary."""
    complexity = min(0.3, len(prompt) / 3000)
    complexity += min(0.2, prompt.count("?") * 0.05)
    complexity += min(0.3, len(TECHNICAL_TERMS.findall(prompt)) * 0.05)
    if "if" in prompt and "then" in prompt:
        complexity += 0.1
    if "and" in prompt and "or" in prompt:
        complexity += 0.1
    return min(1.0, complexity)


class ChainOfThoughtTechnique(OptimizationTechnique):
    """
    Add reasoning instructions to a prompt in several styles.

    Each of the four styles (simple trigger, detailed guide, numbered
    steps, zero-shot lead-in) yields one variant. When the prompt or the
    domain hints match a reasoning pattern, a domain-specific variant is
    added. No completion provider is needed.
    """

    name = TechniqueName.CHAIN_OF_THOUGHT
    priority = 9
    description = "Add explicit reasoning steps to improve complex problem solving"
    options_class = ChainOfThoughtOptions

    def __init__(
        self,
        options: Optional[ChainOfThoughtOptions] = None,
        provider: Optional[CompletionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__(options, provider, metrics)
        self.options: ChainOfThoughtOptions
        self._patterns = sorted(
            DEFAULT_DOMAIN_PATTERNS + list(self.options.domain_patterns),
            key=lambda p: -p.priority,
        )

    def register_pattern(self, pattern: DomainReasoningPattern) -> None:
        self._patterns.append(pattern)
        self._patterns.sort(key=lambda p: -p.priority)

    def get_patterns(self) -> List[DomainReasoningPattern]:
        return list(self._patterns)

    async def apply(self, prompt: str, context: Optional[OptimizationContext] = None) -> List[PromptVariant]:
        """One variant per reasoning style plus an optional domain variant, best first."""
        context = context or OptimizationContext()
        pattern = self.detect_domain_pattern(prompt, context)

        variants = [
            self.create_variant(
                self._enhance(prompt, style, pattern),
                self._style_score(style, prompt, context),
            )
            for style in REASONING_STYLES
        ]
        if pattern is not None:
            variants.append(self.create_variant(self._domain_prompt(prompt, pattern), DOMAIN_VARIANT_SCORE))

        variants.sort(key=lambda v: -v.score)
        return variants[:self.options.max_variants]

    async def evaluate(
        self,
        variants: List[PromptVariant],
        original_score: float = BASELINE_SCORE,
    ) -> EvaluationResult:
        """Score variants by how much reasoning structure they carry."""
        start_time = time.time()
        scored = []
        for variant in variants:
            scores = self._reasoning_scores(variant)
            scored.append(ScoredVariant(
                **variant.model_dump(),
                scores=scores,
                feedback=self._variant_feedback(scores),
            ))
        return build_evaluation_result(scored, original_score, self._recommendations, start_time)

    def detect_domain_pattern(
        self,
        prompt: str,
        context: OptimizationContext,
    ) -> Optional[DomainReasoningPattern]:
        """Match by domain hint, then by two keywords, then by any keyword."""
        lowered = prompt.lower()
        for hint in context.domain_hints:
            hint = hint.lower()
            for pattern in self._patterns:
                domain = pattern.domain.lower()
                if hint in domain or domain in hint:
                    return pattern

        for pattern in self._patterns:
            if sum(1 for kw in pattern.keywords if kw.lower() in lowered) >= 2:
                return pattern

        for pattern in self._patterns:
            if any(kw.lower() in lowered for kw in pattern.keywords):
                return pattern
        return None

    def _enhance(self, prompt: str, style: str, pattern: Optional[DomainReasoningPattern]) -> str:
        if style == "simple":
            if has_cot_trigger(prompt):
                return prompt
            return f"{prompt}\n\n{self.options.custom_trigger or DEFAULT_TRIGGER}"

        if style == "detailed":
            guide = pattern.template if pattern else GENERIC_REASONING_GUIDE
            numbering = "Number each step of your reasoning.\n\n" if self.options.number_steps else ""
            return (
                f"{prompt}\n\n"
                f"Think through this carefully using the following approach:\n\n"
                f"{guide}\n\n"
                f"{numbering}"
                f"After your reasoning, provide a clear final answer."
            )

        if style == "structured":
            steps = "\n".join(
                f"Step {idx}: {step}" for idx, step in enumerate(self._reasoning_steps(pattern), start=1)
            )
            return (
                f"{prompt}\n\n"
                f"Please solve this by following these steps:\n\n"
                f"{steps}\n\n"
                f"After completing all steps, provide your final answer in a clearly marked section."
            )

        return f"{prompt}\n\nLet's approach this step by step:"

    def _reasoning_steps(self, pattern: Optional[DomainReasoningPattern]) -> List[str]:
        if pattern is not None and pattern.example_steps:
            return pattern.example_steps[:self.options.max_steps]
        return GENERIC_STEPS[:self.options.max_steps]

    @staticmethod
    def _domain_prompt(prompt: str, pattern: DomainReasoningPattern) -> str:
        structure = ""
        if pattern.example_steps:
            numbered = "\n".join(f"{idx}. {step}" for idx, step in enumerate(pattern.example_steps, start=1))
            structure = f"Follow this structure:\n{numbered}\n\n"
        return (
            f"{DOMAIN_MARKER} {pattern.domain}]\n\n"
            f"{prompt}\n\n"
            f"Apply {pattern.domain} reasoning methodology:\n"
            f"{pattern.template}\n\n"
            f"{structure}"
            f"Provide your complete analysis and final answer."
        )

    @staticmethod
    def _style_score(style: str, prompt: str, context: OptimizationContext) -> float:
        length = len(prompt)
        complexity = estimate_complexity(prompt)
        score = 0.7
        if style == "simple":
            if length < 500 and complexity < 0.6:
                score = 0.8
            elif length > 1000:
                score = 0.6
        elif style == "detailed":
            if complexity > 0.6:
                score = 0.85
            elif complexity < 0.4:
                score = 0.65
        elif style == "structured":
            if complexity > 0.5 and length > 200:
                score = 0.9
        else:
            score = 0.75 if length < 300 else 0.6

        if context.domain_hints:
            score += DOMAIN_HINT_BONUS
        return min(1.0, score)

    def _reasoning_scores(self, variant: PromptVariant) -> DimensionScores:
        content = variant.content
        tokens = estimate_tokens(content, self.provider)
        clarity = 0.85 if STEP_PATTERN.search(content) or NUMBERED_LINE.search(content) else 0.7
        specificity = 0.8 if REASONING_WORDS.search(content) else 0.65
        task_alignment = 0.75
        if tokens < 500:
            efficiency = 0.9
        elif tokens < 1000:
            efficiency = 0.75
        else:
            efficiency = 0.6
        return DimensionScores(
            overall=(clarity + specificity + task_alignment + efficiency) / 4,
            clarity=clarity,
            specificity=specificity,
            task_alignment=task_alignment,
            efficiency=efficiency,
        )

    @staticmethod
    def _variant_feedback(scores: DimensionScores) -> str:
        notes = []
        if scores.clarity >= 0.8:
            notes.append("Clear step-by-step structure")
        else:
            notes.append("Could benefit from more explicit steps")
        if scores.specificity >= 0.8:
            notes.append("Good reasoning guidance")
        else:
            notes.append("Consider adding domain-specific reasoning")
        if scores.efficiency < 0.7:
            notes.append("Prompt may be verbose")
        return ". ".join(notes)

    @staticmethod
    def _recommendations(variants: List[ScoredVariant], improvement: float) -> List[str]:
        best = variants[0]
        recommendations = []
        if best.scores.clarity < 0.8:
            recommendations.append("Consider using structured chain-of-thought with numbered steps")
        if best.scores.efficiency < 0.7:
            recommendations.append("Try zero-shot or simple chain-of-thought for more concise prompts")
        if not any(DOMAIN_MARKER in v.content for v in variants):
            recommendations.append("Consider adding domain-specific reasoning patterns")
        return recommendations
