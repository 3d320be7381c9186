"""
Sensor sample types consumed by the localization core.

Every sample carries a timestamp in seconds on the common fusion clock.
Samples are frozen dataclasses: once a producer pushes a sample into a channel
buffer it is never modified, only consumed front-to-back.

Channels:
    imu_raw: High-rate (~100 Hz+) inertial samples used for propagation.
    imu_synced: Inertial samples re-timed to the absolute-pose channel.
    cloud: Lidar scans, opaque to the filter (passed to place recognition).
    pose_vel: Absolute pose/velocity observations (~10 Hz) from GNSS,
        odometry or lidar scan matching.
"""

from dataclasses import dataclass
from typing import Any, Literal, Optional

import numpy as np

from eskf_localization.coords.rotations import is_rigid_transform


def _check_timestamp(t: float) -> None:
    if not isinstance(t, (float, int, np.floating)):
        raise TypeError(f"Timestamp must be numeric, got {type(t)}")
    if not np.isfinite(t) or t < 0:
        raise ValueError(f"Timestamp must be finite and non-negative, got {t}")


def _check_vector3(name: str, v: np.ndarray) -> None:
    if not isinstance(v, np.ndarray):
        raise TypeError(f"{name} must be numpy array, got {type(v)}")
    if v.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {v.shape}")
    if not np.all(np.isfinite(v)):
        raise ValueError(f"{name} must be finite, got {v}")


@dataclass(frozen=True)
class FrameConvention:
    """
    Map frame convention fixing the direction of gravity.

    Attributes:
        map_frame: 'ENU' (z up, gravity along -z) or 'NED' (z down, gravity
            along +z).

    Example:
        >>> FrameConvention.create_enu().gravity_vector(9.81)
        array([ 0.  ,  0.  , -9.81])
    """

    map_frame: Literal['ENU', 'NED'] = 'ENU'

    def __post_init__(self) -> None:
        if self.map_frame not in ('ENU', 'NED'):
            raise ValueError(
                f"map_frame must be 'ENU' or 'NED', got '{self.map_frame}'"
            )

    @property
    def gravity_direction(self) -> int:
        return -1 if self.map_frame == 'ENU' else +1

    @classmethod
    def create_enu(cls) -> "FrameConvention":
        return cls(map_frame='ENU')

    @classmethod
    def create_ned(cls) -> "FrameConvention":
        return cls(map_frame='NED')

    def gravity_vector(self, g_mag: float = 9.80665) -> np.ndarray:
        """Gravitational acceleration in the map frame (points downward)."""
        return np.array([0.0, 0.0, self.gravity_direction * g_mag])


@dataclass(frozen=True)
class IMUSample:
    """
    One inertial measurement.

    Attributes:
        t: Timestamp (s).
        linear_acceleration: Specific force in the IMU frame (m/s²), shape (3,).
            A level, stationary IMU in ENU reads [0, 0, +g].
        angular_velocity: Angular rate in the IMU frame (rad/s), shape (3,).
    """

    t: float
    linear_acceleration: np.ndarray
    angular_velocity: np.ndarray

    def __post_init__(self) -> None:
        _check_timestamp(self.t)
        _check_vector3("linear_acceleration", self.linear_acceleration)
        _check_vector3("angular_velocity", self.angular_velocity)


@dataclass(frozen=True)
class PoseVelSample:
    """
    Absolute pose and velocity observation.

    Attributes:
        t: Timestamp (s).
        pose: 4x4 rigid transform of the observing sensor in the map frame.
        velocity: Velocity in the map frame (m/s), shape (3,).
        covariance: Optional observation covariance. (6, 6) for
            [position, orientation] or (9, 9) for [position, orientation,
            velocity]. When None the configured measurement noise is used.
    """

    t: float
    pose: np.ndarray
    velocity: np.ndarray
    covariance: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        _check_timestamp(self.t)
        if not isinstance(self.pose, np.ndarray):
            raise TypeError(f"pose must be numpy array, got {type(self.pose)}")
        if not is_rigid_transform(self.pose):
            raise ValueError("pose must be a 4x4 rigid transform")
        _check_vector3("velocity", self.velocity)

        if self.covariance is not None:
            cov = self.covariance
            if not isinstance(cov, np.ndarray):
                raise TypeError(f"covariance must be numpy array, got {type(cov)}")
            if cov.shape not in ((6, 6), (9, 9)):
                raise ValueError(
                    f"covariance must have shape (6, 6) or (9, 9), got {cov.shape}"
                )
            if not np.allclose(cov, cov.T):
                raise ValueError("covariance must be symmetric")
            eigvals = np.linalg.eigvalsh(cov)
            if np.any(eigvals < -1e-10):
                raise ValueError(
                    f"covariance must be positive semi-definite, got eigenvalues {eigvals}"
                )

    @property
    def position(self) -> np.ndarray:
        return self.pose[:3, 3].copy()


@dataclass(frozen=True)
class CloudSample:
    """
    Lidar scan. The payload is opaque to the core.

    Attributes:
        t: Capture timestamp (s).
        points: Point payload handed to place recognition and scan sinks,
            typically an (N, 3) array.
    """

    t: float
    points: Any = None

    def __post_init__(self) -> None:
        _check_timestamp(self.t)
