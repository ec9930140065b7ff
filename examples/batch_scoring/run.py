"""Generate strategy variants for several prompts concurrently."""

import asyncio

from promptopt import LLMClient, PromptVariantsOptions, PromptVariantsTechnique
from promptopt.config import Settings
from promptopt.core import optimize_batch, summarize_batch

PROMPTS = [
    "Summarize the attached report.",
    "Write a product description for a steel water bottle.",
    "Explain what a mutex is.",
]

provider = LLMClient(Settings(model="gpt-4o-mini"))
options = PromptVariantsOptions(num_variants=3, variation_strategies=["simplify", "directive", "restructure"])

results = asyncio.run(
    optimize_batch(PROMPTS, lambda: PromptVariantsTechnique(options, provider=provider), concurrency=2)
)

for result in results:
    best = result.best
    print(f"\n[{result.index}] {result.prompt}")
    print(f"  -> {best.content if best else result.error}")

summary = summarize_batch(results)
print(f"\n{summary.succeeded}/{summary.total} succeeded, average best score {summary.average_best_score:.2f}")
