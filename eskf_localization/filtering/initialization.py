"""
Filter initialization from the first aligned pose/scan/IMU triple.

Two pose sources compete for the initial pose:

1. Primary: place recognition of the lidar scan against the prior map.
2. Fallback: the absolute pose sample itself.

Both are seeded with the absolute sample's velocity and the synced IMU
sample's timestamp. When the primary source succeeds, its distance to the
absolute pose is reported for diagnostics only.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from eskf_localization.coords.rotations import is_rigid_transform
from eskf_localization.filtering.filtering import Filtering
from eskf_localization.fusion.buffers import SensorBuffer
from eskf_localization.fusion.types import AlignedTriple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitSucceeded:
    """Primary initialization result: scan-based pose and its deviation (m)."""

    pose: np.ndarray
    deviation_m: float


@dataclass(frozen=True)
class InitFailed:
    """Primary initialization failed; the filter was seeded from the fallback."""

    reason: str


InitAttempt = Union[InitSucceeded, InitFailed]


class InitializationManager:
    """
    Seeds a Filtering instance exactly once.

    Args:
        filtering: Filter facade to seed.
        place_recognizer: Object with `localize(cloud) -> Optional[4x4 pose]`.
            When None the fallback source is always used.
    """

    def __init__(self, filtering: Filtering, place_recognizer=None):
        self.filtering = filtering
        self.place_recognizer = place_recognizer
        self.last_attempt: Optional[InitAttempt] = None

    def attempt_primary(self, triple: AlignedTriple) -> InitAttempt:
        """Query place recognition for the triple's scan."""
        if self.place_recognizer is None:
            return InitFailed("no place recognizer configured")

        pose = self.place_recognizer.localize(triple.cloud)
        if pose is None:
            return InitFailed("place recognition found no match")

        pose = np.asarray(pose, dtype=np.float64)
        if not is_rigid_transform(pose):
            return InitFailed("place recognition returned an invalid transform")

        deviation = float(np.linalg.norm(pose[:3, 3] - triple.pose_vel.position))
        return InitSucceeded(pose=pose, deviation_m=deviation)

    def initialize(self, triple: AlignedTriple, imu_raw: SensorBuffer) -> InitAttempt:
        """
        Seed the filter and drop raw IMU samples that predate the seed.

        Args:
            triple: First aligned pose/scan/synced-IMU triple.
            imu_raw: Raw IMU buffer; samples older than the synced IMU sample
                are discarded.

        Returns:
            Outcome of the primary attempt. InitFailed means the filter was
            seeded from the absolute pose instead.

        Raises:
            FilterAlreadyInitializedError: If the filter was already seeded.
        """
        attempt = self.attempt_primary(triple)
        pose_vel = triple.pose_vel

        if isinstance(attempt, InitSucceeded):
            self.filtering.init(attempt.pose, pose_vel.velocity, triple.imu_synced)
            logger.info(
                "Initialized from place recognition at t=%.3f; "
                "deviation from absolute pose %.3f m",
                triple.t, attempt.deviation_m,
            )
        else:
            self.filtering.init(pose_vel.pose, pose_vel.velocity, triple.imu_synced)
            logger.info(
                "Initialized from absolute pose at t=%.3f (%s)", triple.t, attempt.reason
            )

        n_dropped = imu_raw.drop_older_than(triple.imu_synced.t)
        if n_dropped:
            logger.debug("Discarded %d pre-initialization raw IMU samples", n_dropped)

        self.last_attempt = attempt
        return attempt
