"""
State estimators.

    StateEstimator: Lifecycle base class (init once, predict, correct)
    ErrorStateKalmanFilter: 15-state IMU/absolute-pose ESKF
    NominalState: Position, velocity, attitude and bias estimates
    FilterStd: Per-block standard deviations
"""

from eskf_localization.estimators.base import StateEstimator
from eskf_localization.estimators.error_state_kalman_filter import (
    ErrorStateKalmanFilter,
    FilterStd,
    NominalState,
)

__all__ = [
    "StateEstimator",
    "ErrorStateKalmanFilter",
    "FilterStd",
    "NominalState",
]
