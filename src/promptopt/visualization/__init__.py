"""Visualization of optimization progress."""

from .trajectory_plot import best_so_far, plot_trajectory

__all__ = ["plot_trajectory", "best_so_far"]
