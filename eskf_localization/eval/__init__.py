"""Evaluation metrics for estimated trajectories."""

from eskf_localization.eval.metrics import (
    compute_error_stats,
    compute_position_errors,
    compute_rmse,
)

__all__ = [
    "compute_error_stats",
    "compute_position_errors",
    "compute_rmse",
]
