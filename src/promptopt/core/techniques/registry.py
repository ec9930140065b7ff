"""Technique registry and factory."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ...clients.base import CompletionProvider
from ...models.config import (
    ChainOfThoughtOptions,
    FeedbackIterationOptions,
    FewShotOptions,
    PromptVariantsOptions,
    TechniqueName,
    TechniqueOptions,
)
from ...models.context import OptimizationContext
from ..metrics import MetricsCollector
from .base import OptimizationTechnique
from .chain_of_thought import ChainOfThoughtTechnique
from .feedback_iteration import FeedbackIterationTechnique
from .few_shot import FewShotTechnique
from .prompt_variants import PromptVariantsTechnique


class TechniqueRecommendation(BaseModel):
    """Suggested technique for a task type."""

    technique: TechniqueName
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    priority: int = Field(ge=1, description="1 is tried first")


def _rec(technique: TechniqueName, confidence: float, reasoning: str, priority: int) -> TechniqueRecommendation:
    return TechniqueRecommendation(
        technique=technique, confidence=confidence, reasoning=reasoning, priority=priority
    )


_COT = TechniqueName.CHAIN_OF_THOUGHT
_FEW_SHOT = TechniqueName.FEW_SHOT
_REFLECTION = TechniqueName.REFLECTION
_VARIANTS = TechniqueName.META_PROMPTING

TASK_TECHNIQUE_MAP: Dict[str, List[TechniqueRecommendation]] = {
    "code-generation": [
        _rec(_COT, 0.9, "Step-by-step reasoning improves code generation accuracy", 1),
        _rec(_FEW_SHOT, 0.85, "Examples help establish coding patterns and style", 2),
    ],
    "analysis": [
        _rec(_COT, 0.95, "Analysis requires systematic reasoning", 1),
        _rec(_REFLECTION, 0.85, "Iterative refinement improves analysis depth", 2),
    ],
    "creative": [
        _rec(_VARIANTS, 0.9, "Variant generation explores creative possibilities", 1),
        _rec(_FEW_SHOT, 0.8, "Examples establish tone and style", 2),
    ],
    "data-extraction": [_rec(_FEW_SHOT, 0.95, "Examples clearly show extraction patterns", 1)],
    "classification": [
        _rec(_FEW_SHOT, 0.95, "Examples define classification categories clearly", 1),
        _rec(_COT, 0.75, "Reasoning helps with edge cases", 2),
    ],
    "summarization": [
        _rec(_COT, 0.8, "Systematic approach identifies key points", 1),
        _rec(_VARIANTS, 0.75, "Variants find optimal summary length and style", 2),
    ],
    "translation": [_rec(_FEW_SHOT, 0.9, "Examples establish translation quality standards", 1)],
    "qa": [
        _rec(_COT, 0.9, "Step-by-step reasoning improves answer accuracy", 1),
        _rec(_FEW_SHOT, 0.8, "Examples show desired answer format", 2),
        _rec(_REFLECTION, 0.75, "Feedback loop refines answer quality", 3),
    ],
    "reasoning": [
        _rec(_COT, 0.98, "Essential for complex reasoning tasks", 1),
        _rec(_REFLECTION, 0.85, "Iterative improvement for reasoning chains", 2),
    ],
    "instruction-following": [_rec(_VARIANTS, 0.85, "Clear, varied instruction formulations", 1)],
    "conversation": [
        _rec(_FEW_SHOT, 0.85, "Examples establish conversational tone", 1),
        _rec(_VARIANTS, 0.75, "Variants explore different conversation styles", 2),
    ],
    "erp-configuration": [
        _rec(_COT, 0.95, "ERP configuration requires systematic approach", 1),
        _rec(_FEW_SHOT, 0.9, "Configuration examples are highly valuable", 2),
        _rec(_REFLECTION, 0.85, "Iterative refinement for complex configurations", 3),
    ],
    "technical-documentation": [
        _rec(_COT, 0.85, "Structured approach for technical content", 1),
        _rec(_FEW_SHOT, 0.8, "Examples establish documentation style", 2),
        _rec(_VARIANTS, 0.75, "Variants explore documentation formats", 3),
    ],
    "general": [
        _rec(_REFLECTION, 0.8, "Feedback iteration is a strong default optimizer", 1),
        _rec(_VARIANTS, 0.7, "Variants surface alternative formulations", 2),
    ],
}

# Names without a dedicated implementation map to the closest one.
_IMPLEMENTATIONS = {
    TechniqueName.CHAIN_OF_THOUGHT: ChainOfThoughtTechnique,
    TechniqueName.ROLE_PROMPTING: ChainOfThoughtTechnique,
    TechniqueName.STRUCTURED_OUTPUT: ChainOfThoughtTechnique,
    TechniqueName.STEP_BY_STEP: ChainOfThoughtTechnique,
    TechniqueName.FEW_SHOT: FewShotTechnique,
    TechniqueName.REFLECTION: FeedbackIterationTechnique,
    TechniqueName.TREE_OF_THOUGHT: FeedbackIterationTechnique,
    TechniqueName.PROMPT_CHAINING: FeedbackIterationTechnique,
    TechniqueName.CONSTITUTIONAL_AI: FeedbackIterationTechnique,
    TechniqueName.META_PROMPTING: PromptVariantsTechnique,
}


def create_technique_by_name(
    name: Union[str, TechniqueName],
    options: Optional[Union[TechniqueOptions, Dict[str, Any]]] = None,
    provider: Optional[CompletionProvider] = None,
    metrics: Optional[MetricsCollector] = None,
) -> OptimizationTechnique:
    """Build the technique implementing name.

    Options may be a model or a plain dict; a base ``TechniqueOptions`` is
    widened to the technique's own options class, keeping only the fields
    that were set explicitly.
    """
    try:
        technique_name = TechniqueName(name)
    except ValueError:
        raise ValueError(f"Unknown technique: {name}") from None

    cls = _IMPLEMENTATIONS.get(technique_name)
    if cls is None:
        raise ValueError(f"No implementation available for technique: {technique_name.value}")

    if isinstance(options, BaseModel) and not isinstance(options, cls.options_class):
        options = options.model_dump(exclude_unset=True)
    if isinstance(options, dict):
        options = cls.options_class(**options)
    return cls(options, provider=provider, metrics=metrics)


class TechniqueRegistry:
    """Owns technique instances keyed by name."""

    def __init__(
        self,
        provider: Optional[CompletionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
        feedback_options: Optional[FeedbackIterationOptions] = None,
        variants_options: Optional[PromptVariantsOptions] = None,
        cot_options: Optional[ChainOfThoughtOptions] = None,
        few_shot_options: Optional[FewShotOptions] = None,
        register_defaults: bool = True,
    ):
        """Initialize registry, optionally with the built-in techniques."""
        self._techniques: Dict[TechniqueName, OptimizationTechnique] = {}
        self._provider = provider
        if register_defaults:
            self.register(ChainOfThoughtTechnique(cot_options, metrics=metrics))
            self.register(FewShotTechnique(few_shot_options, metrics=metrics))
            self.register(FeedbackIterationTechnique(feedback_options, metrics=metrics))
            self.register(PromptVariantsTechnique(variants_options, metrics=metrics))

    def register(self, technique: OptimizationTechnique) -> None:
        """Add or replace a technique; it inherits the registry's provider."""
        self._techniques[technique.name] = technique
        if self._provider is not None:
            technique.set_provider(self._provider)

    def get(self, name: Union[str, TechniqueName]) -> Optional[OptimizationTechnique]:
        return self._techniques.get(TechniqueName(name))

    def has(self, name: Union[str, TechniqueName]) -> bool:
        return TechniqueName(name) in self._techniques

    def unregister(self, name: Union[str, TechniqueName]) -> bool:
        return self._techniques.pop(TechniqueName(name), None) is not None

    def list_techniques(self) -> List[TechniqueName]:
        return list(self._techniques)

    def get_all_techniques(self) -> List[OptimizationTechnique]:
        return list(self._techniques.values())

    def set_provider(self, provider: CompletionProvider) -> None:
        """Set provider on the registry and every registered technique."""
        self._provider = provider
        for technique in self._techniques.values():
            technique.set_provider(provider)

    def get_recommended(self, task_type: str) -> List[TechniqueRecommendation]:
        """Recommendations for task_type limited to registered techniques."""
        recommendations = [
            rec for rec in TASK_TECHNIQUE_MAP.get(task_type, [])
            if rec.technique in self._techniques
        ]
        return sorted(recommendations, key=lambda rec: rec.priority)

    def get_by_priority(self) -> List[OptimizationTechnique]:
        """Techniques ordered from highest priority."""
        return sorted(self._techniques.values(), key=lambda t: -t.priority)

    def get_applicable(self, context: OptimizationContext) -> List[OptimizationTechnique]:
        """Techniques that can run with context, highest priority first."""
        return [t for t in self.get_by_priority() if t.is_applicable(context)]

    def get_metadata(self) -> List[Dict[str, Any]]:
        return [
            {"name": t.name.value, "priority": t.priority, "description": t.description}
            for t in self._techniques.values()
        ]
