"""Terminal progress display."""

from .progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
