"""Bounded concurrent optimization of independent prompts."""

import asyncio
import time
from typing import Callable, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel, Field

from ..models.context import OptimizationContext
from ..models.variant import PromptVariant
from .techniques.base import OptimizationTechnique
from .ui.progress_tracker import ProgressTracker

DEFAULT_CONCURRENCY = 4

TechniqueFactory = Callable[[], OptimizationTechnique]


class BatchItemResult(BaseModel):
    """Outcome for one prompt of a batch."""

    index: int
    prompt: str
    variants: List[PromptVariant] = Field(default_factory=list)
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def best(self) -> Optional[PromptVariant]:
        return max(self.variants, key=lambda v: v.score) if self.variants else None


class BatchSummary(BaseModel):
    """Aggregate counts for a finished batch."""

    total: int
    succeeded: int
    failed: int
    average_best_score: float
    duration_ms: float


async def optimize_batch(
    prompts: Sequence[str],
    technique_factory: TechniqueFactory,
    context: Optional[OptimizationContext] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    show_progress: bool = True,
) -> List[BatchItemResult]:
    """Run apply() for each prompt with at most `concurrency` in flight.

    Every prompt gets its own technique instance. Results keep input order;
    an exception for one prompt is recorded on its result and the rest of
    the batch continues.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    context = context or OptimizationContext()
    semaphore = asyncio.Semaphore(concurrency)

    with ProgressTracker(len(prompts), disable=not show_progress) as progress:

        async def run_one(index: int, prompt: str) -> BatchItemResult:
            async with semaphore:
                start_time = time.time()
                technique = technique_factory()
                try:
                    variants = await technique.apply(prompt, context)
                except Exception as e:
                    logger.error(f"Prompt {index} failed: {e}")
                    result = BatchItemResult(
                        index=index,
                        prompt=prompt,
                        error=f"{type(e).__name__}: {e}",
                        duration_ms=(time.time() - start_time) * 1000,
                    )
                else:
                    result = BatchItemResult(
                        index=index,
                        prompt=prompt,
                        variants=variants,
                        duration_ms=(time.time() - start_time) * 1000,
                    )
                progress.item_done(result.success, result.best.score if result.best else None)
                return result

        results = await asyncio.gather(*(run_one(i, p) for i, p in enumerate(prompts)))

    summary = summarize_batch(results)
    logger.info(f"Batch finished: {summary.succeeded}/{summary.total} succeeded in {progress.elapsed:.1f}s")
    return list(results)


def summarize_batch(results: Sequence[BatchItemResult]) -> BatchSummary:
    succeeded = [r for r in results if r.success and r.best is not None]
    return BatchSummary(
        total=len(results),
        succeeded=len(succeeded),
        failed=len(results) - len(succeeded),
        average_best_score=(
            sum(r.best.score for r in succeeded) / len(succeeded) if succeeded else 0.0
        ),
        duration_ms=sum(r.duration_ms for r in results),
    )
