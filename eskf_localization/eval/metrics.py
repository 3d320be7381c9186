"""
Error metrics for fused trajectories.

Used by the demo to compare published odometry against scenario ground truth.
"""

from typing import Dict, Optional, Union

import numpy as np


def compute_position_errors(truth: np.ndarray, estimated: np.ndarray) -> np.ndarray:
    """
    Position error vectors estimated - truth.

    Args:
        truth: True positions, shape (N, 3).
        estimated: Estimated positions, shape (N, 3).

    Raises:
        ValueError: If inputs have incompatible shapes.
    """
    truth = np.asarray(truth)
    estimated = np.asarray(estimated)

    if truth.shape != estimated.shape:
        raise ValueError(
            f"Shape mismatch: truth {truth.shape} vs estimated {estimated.shape}"
        )

    return estimated - truth


def compute_rmse(errors: np.ndarray, axis: Optional[int] = None) -> Union[float, np.ndarray]:
    """
    Root mean square error.

    Args:
        errors: Error vectors, shape (N, d) or (N,).
        axis: None for a scalar over all entries, 0 per dimension, 1 per sample.
    """
    errors = np.asarray(errors)
    if axis is None:
        return float(np.sqrt(np.mean(errors**2)))
    return np.sqrt(np.mean(errors**2, axis=axis))


def compute_error_stats(errors: np.ndarray) -> Dict[str, float]:
    """
    Summary statistics of error magnitudes.

    Returns:
        Dict with 'mean', 'median', 'std', 'rmse', 'p95' and 'max'.
    """
    errors = np.asarray(errors)
    if errors.size == 0:
        raise ValueError("Cannot compute statistics of an empty error array")

    if errors.ndim > 1:
        magnitudes = np.linalg.norm(errors, axis=1)
    else:
        magnitudes = np.abs(errors)

    return {
        "mean": float(np.mean(magnitudes)),
        "median": float(np.median(magnitudes)),
        "std": float(np.std(magnitudes)),
        "rmse": float(np.sqrt(np.mean(magnitudes**2))),
        "p95": float(np.percentile(magnitudes, 95)),
        "max": float(np.max(magnitudes)),
    }
