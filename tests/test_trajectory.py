"""Tests for the optimization trajectory model."""

import pytest
from pydantic import ValidationError

from promptopt.models.trajectory import SEED_FEEDBACK, OptimizationTrajectory, PromptAttempt


def _attempt(prompt, score, iteration):
    return PromptAttempt(prompt=prompt, score=score, feedback="fb", iteration=iteration)


def test_seed_starts_trajectory():
    trajectory = OptimizationTrajectory.seed("seed", 0.4)
    assert len(trajectory.attempts) == 1
    assert trajectory.best_attempt.prompt == "seed"
    assert trajectory.best_attempt.feedback == SEED_FEEDBACK
    assert trajectory.best_attempt.iteration == 0
    assert trajectory.improvement_curve == [0.4]
    assert trajectory.seed_score == 0.4
    assert trajectory.total_iterations == 0


def test_record_tracks_strict_improvement():
    trajectory = OptimizationTrajectory.seed("seed", 0.4)
    assert trajectory.record(_attempt("a", 0.6, 1)) is True
    assert trajectory.record(_attempt("b", 0.6, 2)) is False
    assert trajectory.record(_attempt("c", 0.5, 3)) is False

    assert trajectory.best_attempt.prompt == "a"
    assert trajectory.best_attempt.score == max(a.score for a in trajectory.attempts)
    assert trajectory.improvement_curve == [0.4, 0.6, 0.6, 0.5]
    assert trajectory.total_iterations == 3


def test_top_attempts_sorted_by_score_then_iteration():
    trajectory = OptimizationTrajectory.seed("seed", 0.5)
    trajectory.record(_attempt("low", 0.3, 1))
    trajectory.record(_attempt("high", 0.9, 2))
    trajectory.record(_attempt("tie", 0.5, 3))

    top = trajectory.top_attempts(3)
    assert [a.prompt for a in top] == ["high", "seed", "tie"]
    assert len(trajectory.top_attempts(10)) == 4


def test_attempts_are_immutable():
    attempt = _attempt("a", 0.5, 1)
    with pytest.raises(ValidationError):
        attempt.score = 0.9


def test_score_bounds_are_validated():
    with pytest.raises(ValidationError):
        _attempt("a", 1.5, 1)
    with pytest.raises(ValidationError):
        _attempt("a", 0.5, -1)


def test_str_includes_curve():
    trajectory = OptimizationTrajectory.seed("seed", 0.5)
    trajectory.record(_attempt("a", 0.75, 1))
    assert str(trajectory) == "Trajectory(iterations=1, best=0.75@1, curve=[0.50, 0.75])"
