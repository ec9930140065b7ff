"""Optimization technique contract."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ...clients.base import CompletionProvider
from ...errors import Result
from ...models.completion import DEFAULT_MAX_TOKENS, CompletionResponse
from ...models.config import DEFAULT_MODEL, TechniqueName, TechniqueOptions
from ...models.context import OptimizationContext
from ...models.variant import EvaluationResult, PromptVariant, VariantsRun
from ..metrics import MetricsCollector
from .helpers import safe_complete


class OptimizationTechnique(ABC):
    """Base class for techniques that produce and evaluate prompt variants.

    Subclasses set ``name``, ``priority`` and ``description`` and implement
    ``apply`` and ``evaluate``. Per-call working state must stay local to
    the call so one instance can serve concurrent ``apply`` calls.
    """

    name: TechniqueName
    priority: int = 5
    description: str = ""
    options_class = TechniqueOptions

    def __init__(
        self,
        options: Optional[TechniqueOptions] = None,
        provider: Optional[CompletionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize technique with options, provider and metrics collector."""
        self.options = options if options is not None else self.options_class()
        self.provider = provider
        self.metrics = metrics

    @abstractmethod
    async def apply(self, prompt: str, context: OptimizationContext) -> List[PromptVariant]:
        """Generate candidate rewrites of prompt."""
        pass

    async def run(self, prompt: str, context: Optional[OptimizationContext] = None) -> VariantsRun:
        """apply() plus the recoverable errors it met; techniques that call a provider override this."""
        return VariantsRun(variants=await self.apply(prompt, context or OptimizationContext()))

    @abstractmethod
    async def evaluate(self, variants: List[PromptVariant]) -> EvaluationResult:
        """Score, rank and summarize variants."""
        pass

    def set_provider(self, provider: CompletionProvider) -> None:
        self.provider = provider

    def is_applicable(self, context: OptimizationContext) -> bool:
        """Whether this technique can run with the given context."""
        return True

    def get_recommended_model(self) -> str:
        """Configured model, else the provider's default, else the package default."""
        if self.options.model:
            return self.options.model
        default = getattr(self.provider, "default_model", None)
        return default or DEFAULT_MODEL

    def get_metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name.value,
            "priority": self.priority,
            "description": self.description,
            "options": self.options.model_dump(),
        }

    def create_variant(self, content: str, score: float, model: Optional[str] = None) -> PromptVariant:
        return PromptVariant(
            content=content,
            technique=self.name.value,
            score=min(1.0, max(0.0, score)),
            model=model or self.get_recommended_model(),
        )

    async def _complete(
        self,
        prompt: str,
        operation: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> Result[CompletionResponse]:
        return await safe_complete(
            self.provider,
            prompt,
            model=model or self.options.model,
            temperature=self.options.temperature if temperature is None else temperature,
            max_tokens=max_tokens,
            timeout_ms=self.options.timeout_ms,
            metrics=self.metrics,
            operation=f"{self.name.value}.{operation}",
        )
