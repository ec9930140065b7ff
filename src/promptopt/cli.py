"""Command-line interface for promptopt."""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from loguru import logger
from pydantic import ValidationError
from rich.console import Console

from .models.config import PROFILE_PRESETS, SUPPORTED_PROFILES, FeedbackIterationOptions
from .models.context import OptimizationContext
from .models.scores import ComparisonResult, PromptIssue, ScoreSet
from .scoring import compare_prompts, detect_issues, estimate_tokens, score_prompt, suggest_improvements

PROMPTOPT_YAML = "promptopt.yaml"
DEFAULT_PROFILE = "balanced"
DEFAULT_RUNS_DIR = "runs"
BAR_WIDTH = 20

EXAMPLE_CONFIG = """\
# promptopt configuration
# API key: set PROMPTOPT_API_KEY or OPENAI_API_KEY in environment
# For local models (vLLM, Ollama, LM Studio) set base_url, no API key needed.

# Required
prompt: prompt.txt
model: gpt-4o-mini

# Local model endpoint (uncomment for local inference)
# base_url: http://localhost:8000/v1

# Profile: fast | balanced | quality | advanced
#   fast     - 3 iterations, loose early stop, high optimizer temperature
#   balanced - 5 iterations, moderate settings (default)
#   quality  - 10 iterations, strict early stop, longer history
#   advanced - no presets, you control every parameter
profile: balanced

# Optional overrides (any value below overrides the profile default)
# max_iterations: 5
# min_improvement_threshold: 0.02
# history_size: 5
# optimizer_model: gpt-4o
# optimizer_temperature: 0.8
# domain_hints: [customer support, email]
# runs_dir: runs
"""

EXAMPLE_PROMPT = "Write a reply to the customer email below. Be polite and fix their problem.\n"

console = Console()


def main(argv: Optional[List[str]] = None) -> None:
    """promptopt CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(getattr(args, "verbose", False))

    if args.command == "init":
        cmd_init()
    elif args.command == "score":
        cmd_score(args)
    elif args.command == "compare":
        cmd_compare(args)
    elif args.command == "optimize":
        cmd_optimize(args)
    else:
        parser.print_help()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptopt",
        description="promptopt - prompt scoring and optimization",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Create example project files")

    score_parser = subparsers.add_parser("score", help="Score a prompt without calling a model")
    score_parser.add_argument("prompt", help="Prompt text, or @path to read it from a file")
    score_parser.add_argument("--output", choices=("text", "json"), default="text")
    score_parser.add_argument("--all-issues", action="store_true", help="Show low-severity issues too")

    compare_parser = subparsers.add_parser("compare", help="Compare two prompts")
    compare_parser.add_argument("prompt_a", help="First prompt, or @path")
    compare_parser.add_argument("prompt_b", help="Second prompt, or @path")
    compare_parser.add_argument("--output", choices=("text", "json"), default="text")

    opt_parser = subparsers.add_parser("optimize", help="Run feedback-iteration optimization")
    opt_parser.add_argument("--prompt", type=str, help="Path to the prompt file")
    opt_parser.add_argument(
        "--profile",
        type=str,
        choices=sorted(SUPPORTED_PROFILES),
        help="Optimization profile: fast|balanced|quality|advanced",
    )
    opt_parser.add_argument("--max-iterations", type=int, help="Maximum iterations")
    opt_parser.add_argument("--threshold", type=float, help="Minimum improvement to keep iterating")
    opt_parser.add_argument("--history-size", type=int, help="Attempts shown to the optimizer")
    opt_parser.add_argument("--model", type=str, help="Model for feedback and scoring")
    opt_parser.add_argument("--optimizer-model", type=str, help="Model for rewrites")
    opt_parser.add_argument("--domain-hint", action="append", dest="domain_hints", help="Domain hint (repeatable)")
    opt_parser.add_argument("--base-url", type=str, help="OpenAI-compatible API base URL")
    opt_parser.add_argument("--api-key", type=str, help="API key (or set OPENAI_API_KEY)")
    opt_parser.add_argument("--runs-dir", type=str, help="Directory for run outputs")
    opt_parser.add_argument("--no-plot", action="store_true", help="Skip the trajectory PNG")
    opt_parser.add_argument("--config", type=str, default=PROMPTOPT_YAML, help="Config file path")
    return parser


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def cmd_init() -> None:
    """Create example promptopt project files."""
    cwd = Path.cwd()
    files = {
        PROMPTOPT_YAML: EXAMPLE_CONFIG,
        "prompt.txt": EXAMPLE_PROMPT,
    }

    for filename, content in files.items():
        filepath = cwd / filename
        if filepath.exists():
            logger.warning(f"Skipped (already exists): {filename}")
            continue
        filepath.write_text(content, encoding="utf-8")
        logger.success(f"Created: {filename}")

    console.print("\nProject initialized! Next steps:")
    console.print(f"  1. Edit {PROMPTOPT_YAML}: set model and base_url (local) or an API key (cloud)")
    console.print("  2. Edit prompt.txt with the prompt to optimize")
    console.print("  3. Check it offline: promptopt score @prompt.txt")
    console.print("  4. Run: promptopt optimize")


def cmd_score(args: argparse.Namespace) -> None:
    """Score a prompt and report issues and suggestions."""
    prompt = read_prompt_arg(args.prompt)
    scores = score_prompt(prompt)
    issues = detect_issues(prompt)
    suggestions = suggest_improvements(scores, issues)

    if args.output == "json":
        print(json.dumps({
            "prompt": prompt[:500],
            "token_count": estimate_tokens(prompt),
            "scores": scores.model_dump(),
            "issues": [issue.model_dump() for issue in issues],
            "suggestions": suggestions,
        }, indent=2, ensure_ascii=False))
        return

    _print_scores(scores)
    _print_issues(issues, show_all=args.all_issues)
    if suggestions:
        console.print("\n[bold]Suggestions:[/bold]")
        for i, suggestion in enumerate(suggestions, 1):
            console.print(f"  {i}. {suggestion}")


def cmd_compare(args: argparse.Namespace) -> None:
    """Compare two prompts dimension by dimension."""
    result = compare_prompts(read_prompt_arg(args.prompt_a), read_prompt_arg(args.prompt_b))
    if args.output == "json":
        print(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
        return
    _print_comparison(result)


def cmd_optimize(args: argparse.Namespace) -> None:
    """Run feedback-iteration optimization and save the results."""
    from .clients import LLMClient
    from .config import Settings
    from .core import FeedbackIterationTechnique, MetricsCollector

    config_data = load_yaml_config(args.config)
    try:
        effective = merge_config(config_data, args)
        if not effective.get("prompt"):
            raise ValueError(f"Missing required config field: prompt. Set it in {PROMPTOPT_YAML} or pass --prompt.")
        options = build_options(effective)
    except (ValueError, ValidationError) as e:
        logger.error(str(e))
        sys.exit(1)

    prompt_path = Path(effective["prompt"])
    if not prompt_path.exists():
        logger.error(f"Prompt file not found: {prompt_path}")
        sys.exit(1)
    prompt = prompt_path.read_text(encoding="utf-8").strip()
    logger.info(f"Loaded prompt from {prompt_path} ({len(prompt)} chars)")

    settings_kwargs = {
        key: effective[key]
        for key in ("api_key", "model", "base_url", "timeout_ms")
        if effective.get(key) is not None
    }
    try:
        settings = Settings(**settings_kwargs)
    except ValidationError as e:
        logger.error(str(e))
        sys.exit(1)
    if not settings.api_key and not settings.base_url:
        logger.error("No API key. Set PROMPTOPT_API_KEY / OPENAI_API_KEY or use --api-key.")
        sys.exit(1)

    context = OptimizationContext(domain_hints=effective.get("domain_hints") or [])
    metrics = MetricsCollector()
    technique = FeedbackIterationTechnique(options, provider=LLMClient(settings), metrics=metrics)

    logger.info(
        f"Starting optimization: profile={effective['profile']}, "
        f"max_iterations={options.max_iterations}, model={settings.model}"
    )
    try:
        run, evaluation = asyncio.run(_optimize(technique, prompt, context))
    except KeyboardInterrupt:
        logger.warning("Optimization interrupted by user")
        sys.exit(130)

    run_dir = save_results(
        run,
        evaluation,
        Path(effective.get("runs_dir") or DEFAULT_RUNS_DIR),
        plot=not args.no_plot,
    )
    _print_run_summary(run, evaluation)
    console.print(f"\n[dim]{metrics.get_summary()}[/dim]")
    logger.success(f"Results saved to: {run_dir}")


async def _optimize(technique: Any, prompt: str, context: OptimizationContext) -> Tuple[Any, Any]:
    run = await technique.run(prompt, context)
    evaluation = await technique.evaluate(run.variants, original_score=run.trajectory.seed_score)
    return run, evaluation


def read_prompt_arg(value: str) -> str:
    """Return value, or the contents of the file when value starts with '@'."""
    if value.startswith("@"):
        path = Path(value[1:])
        if not path.exists():
            logger.error(f"Prompt file not found: {path}")
            sys.exit(1)
        return path.read_text(encoding="utf-8")
    return value


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """Load YAML config file if it exists."""
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def merge_config(yaml_data: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Merge config in layers: profile defaults < YAML < command line."""
    result = dict(yaml_data)
    cli_overrides = {
        "prompt": args.prompt,
        "profile": args.profile,
        "max_iterations": args.max_iterations,
        "min_improvement_threshold": args.threshold,
        "history_size": args.history_size,
        "model": args.model,
        "optimizer_model": args.optimizer_model,
        "domain_hints": args.domain_hints,
        "base_url": args.base_url,
        "api_key": args.api_key,
        "runs_dir": args.runs_dir,
    }
    for key, value in cli_overrides.items():
        if value is not None:
            result[key] = value

    profile = str(result.get("profile") or os.environ.get("PROMPTOPT_PROFILE") or DEFAULT_PROFILE).strip().lower()
    if profile not in SUPPORTED_PROFILES:
        raise ValueError(
            f"Unsupported profile '{profile}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_PROFILES))}"
        )

    effective = dict(PROFILE_PRESETS[profile])
    effective.update(result)
    effective["profile"] = profile
    return effective


def build_options(effective: Dict[str, Any]) -> FeedbackIterationOptions:
    """Build optimizer options from the effective config."""
    fields = FeedbackIterationOptions.model_fields
    overrides = {key: value for key, value in effective.items() if key in fields and value is not None}
    # model is shared with the provider settings; the optimizer reads it from there
    overrides.pop("model", None)
    return FeedbackIterationOptions.from_profile(effective["profile"], **overrides)


def save_results(run: Any, evaluation: Any, runs_dir: Path, plot: bool = True) -> Path:
    """Write best prompt, trajectory, ranked variants and plot to a new run directory."""
    run_dir = runs_dir / f"promptopt_run_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    run_dir.mkdir(parents=True, exist_ok=True)

    (run_dir / "best_prompt.txt").write_text(run.best_prompt, encoding="utf-8")

    with open(run_dir / "trajectory.json", "w", encoding="utf-8") as f:
        json.dump(
            {
                **run.trajectory.model_dump(mode="json"),
                "stopped_early": run.stopped_early,
                "errors": [error.model_dump(mode="json") for error in run.errors],
            },
            f,
            indent=2,
            ensure_ascii=False,
        )

    with open(run_dir / "variants.yaml", "w", encoding="utf-8") as f:
        yaml.dump(
            {
                "metrics": evaluation.metrics.model_dump(),
                "recommendations": evaluation.recommendations,
                "variants": [variant.model_dump() for variant in evaluation.variants],
            },
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )

    if plot:
        from .visualization import plot_trajectory
        plot_trajectory(run.trajectory, run_dir / "trajectory.png")
    return run_dir


def _bar(score: int) -> str:
    filled = round(score / (100 / BAR_WIDTH))
    return "[" + "█" * filled + "░" * (BAR_WIDTH - filled) + "]"


def _color(score: int) -> str:
    if score >= 70:
        return "green"
    return "yellow" if score >= 50 else "red"


def _print_scores(scores: ScoreSet) -> None:
    console.print(f"\n[bold]Overall Score:[/bold] [{_color(scores.overall)}]{scores.overall}/100[/]")
    for name, value in scores.dimensions().items():
        console.print(f"  {name.capitalize():<13} {_bar(value)} {value}/100")


def _print_issues(issues: List[PromptIssue], show_all: bool) -> None:
    if not issues:
        console.print("\n[green]No significant issues detected.[/green]")
        return
    shown = issues if show_all else [i for i in issues if i.severity != "low"][:3]
    colors = {"high": "red", "medium": "yellow", "low": "dim"}
    console.print("\n[bold]Issues Found:[/bold]")
    for issue in shown:
        console.print(f"  [{colors[issue.severity]}]●[/] [{issue.severity.upper()}] {issue.description}")
    if len(issues) > len(shown):
        console.print(f"  [dim]... and {len(issues) - len(shown)} more (use --all-issues to see all)[/dim]")


def _print_comparison(result: ComparisonResult) -> None:
    headline = {"a": "Prompt A wins", "b": "Prompt B wins", "tie": "Tie"}[result.winner]
    console.print(f"\n[bold]{headline}[/bold] (difference: {result.score_difference} points)")
    console.print(f"  [dim]{result.summary}[/dim]\n")
    for row in result.comparison:
        marker = {"a": "<", "b": ">", "tie": "="}[row.winner]
        console.print(f"  {row.dimension.capitalize():<13} {row.score_a:>3}  {marker}  {row.score_b:<3}")
    console.print(f"  {'Overall':<13} {result.scores_a.overall:>3}     {result.scores_b.overall:<3}")


def _print_run_summary(run: Any, evaluation: Any) -> None:
    trajectory = run.trajectory
    console.print("\n[bold green]+----------------------------------------------+[/bold green]")
    console.print("[bold green]|       Optimization Results                   |[/bold green]")
    console.print("[bold green]+----------------------------------------------+[/bold green]\n")
    console.print(f"Seed score:   [cyan]{trajectory.seed_score:.1%}[/cyan]")
    console.print(
        f"Best score:   [cyan]{trajectory.best_attempt.score:.1%}[/cyan] "
        f"(iteration {trajectory.best_attempt.iteration})"
    )
    console.print(f"Iterations:   [cyan]{trajectory.total_iterations}[/cyan]"
                  f"{' (stopped early)' if run.stopped_early else ''}")
    console.print(f"Improvement:  [cyan]{evaluation.metrics.improvement_over_original:+.1f}%[/cyan]")
    curve = " -> ".join(f"{score:.2f}" for score in trajectory.improvement_curve)
    console.print(f"Curve:        {curve}")
    if run.errors:
        console.print(f"[yellow]{len(run.errors)} provider calls failed and used fallbacks[/yellow]")
    if evaluation.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in evaluation.recommendations:
            console.print(f"  - {recommendation}")
    console.print("\n[bold]Best prompt:[/bold]")
    console.print(run.best_prompt, markup=False)
