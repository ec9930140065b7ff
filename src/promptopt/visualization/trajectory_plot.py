"""PNG rendering of an optimization trajectory."""

from pathlib import Path
from typing import List, Union

from loguru import logger

from ..models.trajectory import OptimizationTrajectory

DEFAULT_TITLE = "Prompt Optimization Trajectory"


def _point_color(score: float, is_seed: bool) -> str:
    if is_seed:
        return "#3498db"
    if score >= 0.8:
        return "#2ecc71"
    if score >= 0.6:
        return "#f39c12"
    return "#e74c3c"


def best_so_far(curve: List[float]) -> List[float]:
    """Running maximum of the improvement curve."""
    best: List[float] = []
    for score in curve:
        best.append(max(score, best[-1]) if best else score)
    return best


def plot_trajectory(
    trajectory: OptimizationTrajectory,
    output_path: Union[str, Path],
    title: str = DEFAULT_TITLE,
) -> Path:
    """Save the per-attempt scores and best-so-far line as a PNG."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from matplotlib.patches import Patch

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    iterations = [attempt.iteration for attempt in trajectory.attempts]
    curve = trajectory.improvement_curve

    fig, ax = plt.subplots(figsize=(10, 6))
    try:
        ax.plot(iterations, curve, color="#95a5a6", linewidth=1.5, alpha=0.7)
        ax.step(
            iterations, best_so_far(curve), where="post", color="#9b59b6", linewidth=2, label="Best so far"
        )
        ax.scatter(
            iterations,
            curve,
            c=[
                _point_color(score, attempt.iteration == 0)
                for score, attempt in zip(curve, trajectory.attempts)
            ],
            s=[160 if attempt.iteration == 0 else 80 for attempt in trajectory.attempts],
            zorder=3,
        )

        best = trajectory.best_attempt
        ax.annotate(
            f"{best.score:.1%}",
            (best.iteration, best.score),
            textcoords="offset points",
            xytext=(0, 10),
            ha="center",
            fontweight="bold",
        )
        ax.set_title(
            f"{title}\n"
            f"Iterations: {trajectory.total_iterations} | "
            f"Seed: {trajectory.seed_score:.1%} | Best: {best.score:.1%}",
            fontsize=13, fontweight="bold",
        )
        ax.set_xlabel("Iteration")
        ax.set_ylabel("Score")
        ax.set_ylim(-0.05, 1.05)
        ax.set_xticks(iterations)
        ax.grid(alpha=0.3)
        ax.legend(
            handles=[
                Patch(facecolor="#3498db", label="Seed prompt"),
                Patch(facecolor="#2ecc71", label="Score >= 80%"),
                Patch(facecolor="#f39c12", label="Score 60-80%"),
                Patch(facecolor="#e74c3c", label="Score < 60%"),
                Patch(facecolor="#9b59b6", label="Best so far"),
            ],
            loc="lower right",
            fontsize=9,
            framealpha=0.9,
        )
        fig.tight_layout()
        fig.savefig(output_path, dpi=150)
    finally:
        plt.close(fig)
    logger.info(f"Saved trajectory plot: {output_path}")
    return output_path
