"""Technique configuration models."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, Field


class TechniqueName(str, Enum):
    """Closed set of technique identifiers."""

    CHAIN_OF_THOUGHT = "chain_of_thought"
    FEW_SHOT = "few_shot"
    ROLE_PROMPTING = "role_prompting"
    STRUCTURED_OUTPUT = "structured_output"
    STEP_BY_STEP = "step_by_step"
    TREE_OF_THOUGHT = "tree_of_thought"
    SELF_CONSISTENCY = "self_consistency"
    PROMPT_CHAINING = "prompt_chaining"
    META_PROMPTING = "meta_prompting"
    CONSTITUTIONAL_AI = "constitutional_ai"
    REFLECTION = "reflection"
    DECOMPOSITION = "decomposition"


ScoreAggregation = Literal["mean", "median", "min", "max"]

VariationStrategy = Literal[
    "rephrase",
    "restructure",
    "reorder",
    "emphasize",
    "simplify",
    "elaborate",
    "formalize",
    "conversational",
    "directive",
    "interrogative",
]

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_VARIATION_STRATEGIES: List[str] = [
    "rephrase",
    "restructure",
    "simplify",
    "emphasize",
    "directive",
]

DEFAULT_FEEDBACK_TEMPLATE = """You are analyzing a prompt to provide constructive feedback for improvement.

PROMPT TO ANALYZE:
{prompt}

CURRENT SCORE: {score_percent}

TASK CONTEXT:
- Domain hints: {domain_hints}
- Number of examples available: {num_examples}
- Number of constraints: {num_constraints}

EVALUATION CRITERIA:
1. Clarity: Is the prompt clear and unambiguous?
2. Specificity: Does it provide enough detail?
3. Task Alignment: Does it clearly convey what's expected?
4. Efficiency: Is it concise without losing important information?

Provide specific, actionable feedback on:
1. What aspects of this prompt are working well
2. What specific weaknesses should be addressed
3. Concrete suggestions for improvement

Be direct and specific. Focus on the most impactful improvements."""

DEFAULT_REWRITE_TEMPLATE = """You are an expert prompt engineer. Improve the given prompt based on feedback and past attempts.

CURRENT PROMPT:
{current_prompt}

FEEDBACK ON CURRENT PROMPT:
{feedback}
{history_section}
OPTIMIZATION GUIDELINES:
1. Address the specific weaknesses mentioned in the feedback
2. Preserve what's working well
3. Be more specific and clear where needed
4. Ensure the task requirements are explicit
5. Use active voice and direct instructions
6. Include format requirements if applicable
{domain_guideline}
CONSTRAINTS:
{constraints}

Generate an improved version of the prompt. Output ONLY the improved prompt, nothing else."""

DEFAULT_EVALUATION_TEMPLATE = """Evaluate the following prompt on a scale from 0 to 100.

PROMPT TO EVALUATE:
{prompt}

EVALUATION CRITERIA:
1. CLARITY (25%): Is the prompt clear and unambiguous?
2. SPECIFICITY (25%): Does it provide enough detail and context?
3. TASK ALIGNMENT (25%): Does it clearly convey what's expected?
4. EFFICIENCY (25%): Is it concise without losing important information?
{reference_section}
Provide your evaluation in this exact format:
CLARITY: [score]/100
SPECIFICITY: [score]/100
TASK_ALIGNMENT: [score]/100
EFFICIENCY: [score]/100
OVERALL: [weighted average]/100

Brief explanation of the overall score:"""

SUPPORTED_PROFILES: Set[str] = {"fast", "balanced", "quality", "advanced"}

PROFILE_PRESETS: Dict[str, Dict[str, Any]] = {
    "fast": {
        "max_iterations": 3,
        "min_improvement_threshold": 0.05,
        "history_size": 3,
        "optimizer_temperature": 0.9,
    },
    "balanced": {
        "max_iterations": 5,
        "min_improvement_threshold": 0.02,
        "history_size": 5,
        "optimizer_temperature": 0.8,
    },
    "quality": {
        "max_iterations": 10,
        "min_improvement_threshold": 0.01,
        "history_size": 8,
        "optimizer_temperature": 0.7,
    },
    "advanced": {},
}


class TechniqueOptions(BaseModel):
    """Configuration shared by all techniques."""

    max_variants: int = Field(default=3, ge=1, le=20)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_ms: int = Field(default=30000, ge=1000)
    include_reasoning: bool = True
    model: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict, description="Technique-specific options")


class FeedbackIterationOptions(TechniqueOptions):
    """Configuration for the feedback-iteration optimizer."""

    max_iterations: int = Field(default=5, ge=1, le=50)
    min_improvement_threshold: float = Field(default=0.02, ge=0.0, le=1.0)
    optimizer_model: Optional[str] = None
    score_aggregation: ScoreAggregation = "mean"
    history_size: int = Field(default=5, ge=1, le=20)
    optimizer_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    feedback_template: str = DEFAULT_FEEDBACK_TEMPLATE
    rewrite_template: str = DEFAULT_REWRITE_TEMPLATE
    evaluation_template: str = DEFAULT_EVALUATION_TEMPLATE

    @classmethod
    def from_profile(cls, profile: str, **overrides: Any) -> "FeedbackIterationOptions":
        """Create options from a named profile with optional overrides."""
        if profile not in SUPPORTED_PROFILES:
            raise ValueError(
                f"Unknown profile '{profile}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_PROFILES))}"
            )
        defaults = dict(PROFILE_PRESETS.get(profile, {}))
        defaults.update(overrides)
        return cls(**defaults)


class PromptVariantsOptions(TechniqueOptions):
    """Configuration for the strategy-driven variants technique."""

    max_variants: int = Field(default=5, ge=1, le=20)
    num_variants: int = Field(default=5, ge=1, le=20)
    variation_strategies: List[VariationStrategy] = Field(
        default_factory=lambda: list(DEFAULT_VARIATION_STRATEGIES)
    )
    creativity_level: float = Field(default=0.6, ge=0.0, le=1.0)
    combine_strategies: bool = False
    min_similarity_to_original: float = Field(default=0.5, ge=0.0, le=1.0)


class DomainReasoningPattern(BaseModel):
    """Reasoning recipe matched to a prompt by domain hint or keyword."""

    domain: str
    keywords: List[str]
    template: str
    example_steps: List[str] = Field(default_factory=list)
    priority: int = 0


class ChainOfThoughtOptions(TechniqueOptions):
    """Configuration for the chain-of-thought technique."""

    max_variants: int = Field(default=5, ge=1, le=20)
    domain_patterns: List[DomainReasoningPattern] = Field(default_factory=list)
    max_steps: int = Field(default=5, ge=1, le=20)
    number_steps: bool = True
    custom_trigger: Optional[str] = None


class FewShotOptions(TechniqueOptions):
    """Configuration for few-shot example selection."""

    max_variants: int = Field(default=5, ge=1, le=20)
    max_examples: int = Field(default=3, ge=1, le=20)
    similarity_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    reserved_tokens: int = Field(default=1000, ge=0)
    max_tokens_per_example: int = Field(default=500, ge=1)
    include_explanations: bool = False
    diversity_weight: float = Field(default=0.3, ge=0.0, le=1.0)
