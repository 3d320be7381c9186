"""Data types shared by the synchronizer, the filter and the orchestration loop.

A Measurement is the innovation input of one correction: the residual between
an observation and the filter's predicted counterpart, the Jacobian of that
residual with respect to the 15-dimensional error state, and the observation
noise covariance.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

import numpy as np

from eskf_localization.sensors.types import CloudSample, IMUSample, PoseVelSample

ERROR_STATE_DIM = 15


@dataclass(frozen=True)
class Measurement:
    """
    Innovation input of a correction step.

    Attributes:
        t: Observation timestamp (s).
        residual: Innovation y = z - h(x̂), shape (m,).
        H: Jacobian ∂y/∂δx, shape (m, 15).
        R: Observation noise covariance, shape (m, m).
        kind: Label of the observed quantities (e.g. 'pose_velocity').

    Example:
        >>> H = np.zeros((3, 15)); H[:, 0:3] = np.eye(3)
        >>> m = Measurement(t=1.0, residual=np.zeros(3), H=H, R=0.01 * np.eye(3))
        >>> m.dim
        3
    """

    t: float
    residual: np.ndarray
    H: np.ndarray
    R: np.ndarray
    kind: str = "position"

    def __post_init__(self) -> None:
        if self.t < 0:
            raise ValueError(f"Timestamp must be non-negative, got {self.t}")
        if self.residual.ndim != 1:
            raise ValueError(
                f"residual must be 1D array, got shape {self.residual.shape}"
            )

        m = len(self.residual)
        if self.H.shape != (m, ERROR_STATE_DIM):
            raise ValueError(
                f"H shape {self.H.shape} must be ({m}, {ERROR_STATE_DIM})"
            )
        if self.R.shape != (m, m):
            raise ValueError(f"R shape {self.R.shape} must be ({m}, {m})")
        if not np.allclose(self.R, self.R.T):
            raise ValueError("R must be symmetric")

    @property
    def dim(self) -> int:
        return len(self.residual)


@dataclass(frozen=True)
class AlignedTriple:
    """Absolute pose/velocity, lidar scan and synced IMU sample judged mutually valid."""

    pose_vel: PoseVelSample
    cloud: CloudSample
    imu_synced: IMUSample

    @property
    def t(self) -> float:
        return self.pose_vel.t


class SyncOutcome(Enum):
    """Verdict of one synchronization attempt."""

    ALIGNED = "aligned"
    # The anchor lags a companion by more than the tolerance; anchor dropped
    STALE_ANCHOR = "stale_anchor"
    # A companion lags the anchor by more than the tolerance; companion dropped
    STALE_COMPANION = "stale_companion"


@dataclass(frozen=True)
class SyncResult:
    """
    Validity verdict together with the buffer mutation it performed.

    Attributes:
        outcome: Which rule fired.
        popped: Names of the channels whose front sample was removed.
        samples: Consumed samples when outcome is ALIGNED, anchor first and
            companions in the order they were given.
        triple: The consumed samples as an AlignedTriple, when the caller
            synchronized the pose/cloud/synced-IMU channels.
    """

    outcome: SyncOutcome
    popped: Tuple[str, ...] = field(default_factory=tuple)
    samples: Tuple[Any, ...] = field(default_factory=tuple)
    triple: Optional[AlignedTriple] = None

    @property
    def valid(self) -> bool:
        return self.outcome is SyncOutcome.ALIGNED
