"""Tests for the trajectory plot."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from promptopt.models.trajectory import OptimizationTrajectory, PromptAttempt  # noqa: E402
from promptopt.visualization import best_so_far, plot_trajectory  # noqa: E402


def test_best_so_far():
    assert best_so_far([]) == []
    assert best_so_far([0.5, 0.4, 0.7, 0.6]) == [0.5, 0.5, 0.7, 0.7]


def test_plot_trajectory_writes_png(tmp_path):
    trajectory = OptimizationTrajectory.seed("seed", 0.5)
    trajectory.record(PromptAttempt(prompt="a", score=0.65, feedback="fb", iteration=1))
    trajectory.record(PromptAttempt(prompt="b", score=0.85, feedback="fb", iteration=2))

    output = plot_trajectory(trajectory, tmp_path / "plots" / "trajectory.png")

    assert output.exists()
    assert output.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_figure_is_closed_when_saving_fails(tmp_path, monkeypatch):
    def failing_savefig(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Figure, "savefig", failing_savefig)
    plt.close("all")
    trajectory = OptimizationTrajectory.seed("seed", 0.5)

    with pytest.raises(OSError):
        plot_trajectory(trajectory, tmp_path / "trajectory.png")
    assert plt.get_fignums() == []
