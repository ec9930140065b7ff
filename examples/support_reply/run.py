"""Minimal promptopt example: optimize a support-reply prompt with the feedback loop."""

import asyncio
from pathlib import Path

from promptopt import FeedbackIterationOptions, FeedbackIterationTechnique, LLMClient, MetricsCollector
from promptopt import OptimizationContext, score_prompt
from promptopt.config import Settings

PROMPT_FILE = Path(__file__).parent / "prompt.txt"

settings = Settings(
    model="gpt-4o-mini",
)

options = FeedbackIterationOptions.from_profile("fast")
metrics = MetricsCollector()
technique = FeedbackIterationTechnique(options, provider=LLMClient(settings), metrics=metrics)

seed_prompt = PROMPT_FILE.read_text(encoding="utf-8").strip()
context = OptimizationContext(domain_hints=["customer support", "email"])
run = asyncio.run(technique.run(seed_prompt, context))

print(f"\nSeed score:  {run.trajectory.seed_score:.1%} (heuristic {score_prompt(seed_prompt).overall}/100)")
print(f"Best score:  {run.trajectory.best_attempt.score:.1%} (heuristic {score_prompt(run.best_prompt).overall}/100)")
print(f"\nOptimized prompt:\n{run.best_prompt}")
print(f"\n{metrics.get_summary()}")
