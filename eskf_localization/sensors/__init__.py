"""
Sensor samples and strapdown mechanization.

Primary data structures (from types module):
    IMUSample: Specific force and angular rate at one timestamp
    PoseVelSample: Absolute 4x4 pose, velocity and optional covariance
    CloudSample: Opaque lidar scan
    FrameConvention: ENU/NED gravity direction

Strapdown functions (from strapdown module):
    quat_integrate: Exact attitude update for a constant body rate
    specific_force_to_map: a_M = R(q) f_b + g_M
    strapdown_update: Midpoint attitude/velocity/position step
"""

from eskf_localization.sensors.types import (
    CloudSample,
    FrameConvention,
    IMUSample,
    PoseVelSample,
)

from eskf_localization.sensors.strapdown import (
    quat_integrate,
    specific_force_to_map,
    strapdown_update,
)

__all__ = [
    "CloudSample",
    "FrameConvention",
    "IMUSample",
    "PoseVelSample",
    "quat_integrate",
    "specific_force_to_map",
    "strapdown_update",
]
