"""Shared helpers for optimization techniques."""

import asyncio
import json
import math
import re
import time
from typing import Any, Callable, Iterable, List, Optional

from loguru import logger

from ...clients.base import CompletionProvider
from ...errors import (
    ErrorCode,
    OptimizerError,
    ProviderError,
    ProviderErrorKind,
    Result,
)
from ...models.completion import DEFAULT_MAX_TOKENS, CompletionRequest, CompletionResponse
from ...models.context import OptimizationContext
from ...models.variant import (
    DimensionScores,
    EvaluationMetrics,
    EvaluationResult,
    PromptVariant,
    ScoredVariant,
)
from ...scoring import estimate_tokens as heuristic_tokens
from ...scoring import score_prompt
from ..metrics import MetricsCollector

TRUNCATION_BUFFER = 0.95
TRUNCATION_MARKER = "..."
JSON_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
CONTEXT_ELEMENTS = ("examples", "constraints", "domain_hints")


async def safe_complete(
    provider: Optional[CompletionProvider],
    prompt: str,
    *,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    timeout_ms: Optional[int] = None,
    system_prompt: Optional[str] = None,
    json_mode: bool = False,
    metrics: Optional[MetricsCollector] = None,
    operation: str = "completion",
) -> Result[CompletionResponse]:
    """Run one completion and convert every failure into a Result.

    This is the only place provider exceptions are caught; callers branch
    on ``result.success``.
    """
    if provider is None:
        return Result.fail(OptimizerError(
            code=ErrorCode.PROVIDER_ERROR,
            message="No completion provider configured for this technique",
            suggestion="Call set_provider() before using the technique",
        ))

    request = CompletionRequest.from_prompt(
        prompt,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_ms=timeout_ms,
        system_prompt=system_prompt,
        json_mode=json_mode,
    )

    start_time = time.time()
    try:
        if timeout_ms:
            response = await asyncio.wait_for(provider.complete(request), timeout_ms / 1000)
        else:
            response = await provider.complete(request)
    except asyncio.TimeoutError:
        logger.warning(f"{operation} timed out after {timeout_ms}ms")
        return Result.fail(OptimizerError(
            code=ErrorCode.TIMEOUT,
            message=f"Completion timed out after {timeout_ms}ms",
            details={"retryable": True, "operation": operation},
        ))
    except ProviderError as e:
        logger.warning(f"{operation} failed ({e.kind.value}): {e}")
        code = ErrorCode.TIMEOUT if e.kind == ProviderErrorKind.TIMEOUT else ErrorCode.PROVIDER_ERROR
        return Result.fail(OptimizerError(
            code=code,
            message=str(e),
            details={
                "provider": e.provider,
                "kind": e.kind.value,
                "status_code": e.status_code,
                "retryable": e.retryable,
                "operation": operation,
            },
        ))
    except Exception as e:
        logger.warning(f"{operation} failed: {e}")
        return Result.fail(OptimizerError(
            code=ErrorCode.PROVIDER_ERROR,
            message=str(e) or type(e).__name__,
            details={"retryable": False, "operation": operation, "exception": type(e).__name__},
        ))

    if metrics is not None:
        metrics.record_completion(
            operation=operation,
            model=response.model or model or "",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            cost=response.cost.total_cost,
            duration_ms=response.latency_ms or (time.time() - start_time) * 1000,
        )
    return Result.ok(response)


def estimate_tokens(text: str, provider: Optional[CompletionProvider] = None) -> int:
    """Provider token estimate, or the word/char heuristic without one."""
    if provider is not None:
        return provider.estimate_tokens(text)
    return heuristic_tokens(text)


def parse_json(text: str) -> Optional[Any]:
    """Parse raw JSON, then JSON inside a fenced block, else None."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        pass
    match = JSON_BLOCK_PATTERN.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            return None
    return None


def calculate_improvement(original_score: float, optimized_score: float) -> float:
    """Percentage change from original to optimized."""
    if original_score == 0:
        return 100.0 if optimized_score > 0 else 0.0
    return (optimized_score - original_score) / original_score * 100


def truncate_to_token_limit(
    text: str,
    max_tokens: int,
    estimator: Optional[Callable[[str], int]] = None,
) -> str:
    """Hard-truncate text that exceeds max_tokens, leaving a 5% buffer."""
    tokens = (estimator or heuristic_tokens)(text)
    if tokens <= max_tokens:
        return text
    chars_per_token = len(text) / tokens
    target_chars = math.floor(max_tokens * chars_per_token * TRUNCATION_BUFFER)
    return text[:target_chars] + TRUNCATION_MARKER


def validate_context(context: OptimizationContext, required: Iterable[str]) -> Result[None]:
    """Check that each required context element is present and non-empty."""
    for element in required:
        if element not in CONTEXT_ELEMENTS:
            raise ValueError(f"Unknown context element '{element}'")
        if not getattr(context, element):
            return Result.fail(OptimizerError(
                code=ErrorCode.INVALID_CONFIG,
                message=f"Context missing required element: {element}",
                details={"element": element},
                suggestion=f"Provide {element} in the optimization context",
            ))
    return Result.ok()


def dimension_scores(variant: PromptVariant) -> DimensionScores:
    """Deterministic dimension breakdown; overall stays the variant's own score."""
    scores = score_prompt(variant.content)
    return DimensionScores(
        overall=variant.score,
        clarity=scores.clarity / 100,
        specificity=scores.specificity / 100,
        task_alignment=scores.completeness / 100,
        efficiency=scores.efficiency / 100,
    )


def build_evaluation_result(
    scored: List[ScoredVariant],
    original_score: float,
    recommendations: Callable[[List[ScoredVariant], float], List[str]],
    start_time: float,
) -> EvaluationResult:
    """Rank scored variants and compute aggregate metrics."""
    if not scored:
        raise ValueError("Cannot evaluate an empty variant list")

    ranked = sorted(scored, key=lambda v: -v.scores.overall)
    overall = [v.scores.overall for v in ranked]
    mean = sum(overall) / len(overall)
    variance = sum((s - mean) ** 2 for s in overall) / len(overall)
    improvement = calculate_improvement(original_score, ranked[0].scores.overall)

    return EvaluationResult(
        variants=ranked,
        best=ranked[0],
        metrics=EvaluationMetrics(
            variants_evaluated=len(ranked),
            average_score=mean,
            score_variance=variance,
            improvement_over_original=improvement,
            evaluation_time_ms=(time.time() - start_time) * 1000,
        ),
        recommendations=recommendations(ranked, improvement),
    )


def word_similarity(a: str, b: str) -> float:
    """Jaccard similarity of lowercase whitespace-separated words."""
    a_words = set(a.lower().split())
    b_words = set(b.lower().split())
    union = a_words | b_words
    return len(a_words & b_words) / (len(union) or 1)
