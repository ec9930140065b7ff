"""Tests for the batch progress tracker."""

from promptopt.core.ui import ProgressTracker


def test_counts_successes_failures_and_best_score():
    with ProgressTracker(3, disable=True) as tracker:
        tracker.item_done(True, 0.6)
        tracker.item_done(False)
        tracker.item_done(True, 0.4)

    assert tracker.completed == 3
    assert tracker.failed == 1
    assert tracker.best_score == 0.6
    assert tracker.postfix() == {"ok": "2", "failed": "1", "best": "60.0%"}


def test_elapsed_before_start():
    assert ProgressTracker(1).elapsed == 0.0


def test_elapsed_after_start():
    with ProgressTracker(1, disable=True) as tracker:
        assert tracker.elapsed >= 0.0
        assert tracker._start_time is not None
