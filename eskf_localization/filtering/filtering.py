"""
Filter facade used by the orchestration loop.

Filtering owns one error-state filter and translates between sensor samples
and filter operations:

- Absolute poses arrive in the frame of the observing sensor (lidar). They
  are moved into the IMU frame with the static calibration T_imu_lidar:

      T_map_imu = T_map_lidar @ inv(T_imu_lidar)

- A correction is built from the configured fusion strategy: position,
  orientation and/or velocity residuals stacked into one Measurement.

      position:     y = p_meas - p̂                    H = [I 0 0 0 0]
      orientation:  y = Log(R̂ᵀ R_meas)               H = [0 0 I 0 0]
      velocity:     y = v_meas - v̂                    H = [0 I 0 0 0]
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from eskf_localization.config import FilterConfig
from eskf_localization.coords.rotations import invert_pose, so3_log
from eskf_localization.estimators.error_state_kalman_filter import (
    ATT,
    POS,
    VEL,
    ErrorStateKalmanFilter,
    FilterStd,
)
from eskf_localization.errors import FilterNotInitializedError
from eskf_localization.filtering.observability import ObservabilityRecorder
from eskf_localization.fusion.types import ERROR_STATE_DIM, Measurement
from eskf_localization.sensors.types import IMUSample, PoseVelSample

logger = logging.getLogger(__name__)

OBSERVABILITY_FILENAME = "observability_analysis.json"


class Filtering:
    """
    IMU / absolute-pose filtering front end.

    Args:
        config: Filter configuration.
        calibration: T_imu_lidar, the pose of the absolute-pose sensor in the
            IMU frame. Identity when None.
    """

    def __init__(self, config: FilterConfig, calibration: Optional[np.ndarray] = None):
        self.config = config
        self.calibration = np.eye(4) if calibration is None else np.array(calibration, dtype=np.float64)
        self._calibration_inv = invert_pose(self.calibration)

        self.kalman_filter = ErrorStateKalmanFilter(config)

        self.observability: Optional[ObservabilityRecorder] = None
        if config.enable_observability_analysis:
            self.observability = ObservabilityRecorder(
                segment_length=config.observability_segment_length
            )

    def sensor_to_imu(self, pose_sensor: np.ndarray) -> np.ndarray:
        """Map a sensor pose in the map frame to the IMU pose in the map frame."""
        return pose_sensor @ self._calibration_inv

    def init(self, pose: np.ndarray, velocity: np.ndarray, imu: IMUSample) -> bool:
        """
        Seed the filter from a sensor-frame pose and a map-frame velocity.

        Raises:
            FilterAlreadyInitializedError: If the filter was already seeded.
        """
        self.kalman_filter.init(self.sensor_to_imu(pose), velocity, imu)
        logger.debug("Filtering initialized at t=%.3f", imu.t)
        return True

    def has_inited(self) -> bool:
        return self.kalman_filter.has_inited

    def update(self, imu: IMUSample) -> bool:
        """Propagate with one raw IMU sample."""
        return self.kalman_filter.predict(imu)

    def correct(
        self,
        imu_synced: IMUSample,
        pose_vel: PoseVelSample,
    ) -> Tuple[bool, np.ndarray]:
        """
        Fuse one absolute pose/velocity sample.

        The filter is first brought to the synced IMU epoch when that sample
        is newer than the filter clock. A sample older than the filter clock
        by more than the sync tolerance is not fused.

        Returns:
            Tuple (ok, correction_pose) where correction_pose is the observed
            pose as received, returned even when the correction fails.
        """
        if not self.has_inited():
            raise FilterNotInitializedError("Filtering.correct() called before init()")

        correction_pose = pose_vel.pose.copy()

        t_filter = self.kalman_filter.time
        if pose_vel.t < t_filter - self.config.sync_tolerance_s:
            logger.debug(
                "Skipping stale correction t=%.3f (filter time %.3f)", pose_vel.t, t_filter
            )
            return False, correction_pose

        if imu_synced.t > t_filter:
            self.kalman_filter.predict(imu_synced)

        measurement = self.build_measurement(pose_vel)
        ok = self.kalman_filter.correct(measurement)

        if ok and self.observability is not None:
            self.observability.record(
                measurement.t,
                self.kalman_filter.last_transition,
                measurement.H,
                measurement.R,
            )

        return ok, correction_pose

    def _measurement_noise(self, pose_vel: PoseVelSample) -> np.ndarray:
        """9x9 noise covariance over [position, orientation, velocity]."""
        noise = self.config.measurement_noise
        R = np.diag(
            np.concatenate([
                np.full(3, noise.position**2),
                np.full(3, noise.orientation**2),
                np.full(3, noise.velocity**2),
            ])
        )

        if pose_vel.covariance is not None:
            n = pose_vel.covariance.shape[0]
            R[:n, :n] = pose_vel.covariance
            # Orientation rows and columns are about the sensor axes
            A = np.eye(9)
            A[3:6, 3:6] = self.calibration[:3, :3]
            R = A @ R @ A.T

        return R

    def build_measurement(self, pose_vel: PoseVelSample) -> Measurement:
        """Stack the residuals selected by the fusion strategy."""
        x = self.kalman_filter.state
        T_meas = self.sensor_to_imu(pose_vel.pose)
        R_full = self._measurement_noise(pose_vel)

        residuals = []
        H_rows = []
        noise_idx = []

        H_pos = np.zeros((3, ERROR_STATE_DIM))
        H_pos[:, POS] = np.eye(3)
        residuals.append(T_meas[:3, 3] - x.p)
        H_rows.append(H_pos)
        noise_idx.extend(range(0, 3))

        if self.config.fuses_orientation:
            H_att = np.zeros((3, ERROR_STATE_DIM))
            H_att[:, ATT] = np.eye(3)
            residuals.append(so3_log(x.rotation.T @ T_meas[:3, :3]))
            H_rows.append(H_att)
            noise_idx.extend(range(3, 6))

        if self.config.fuses_velocity:
            H_vel = np.zeros((3, ERROR_STATE_DIM))
            H_vel[:, VEL] = np.eye(3)
            residuals.append(pose_vel.velocity - x.v)
            H_rows.append(H_vel)
            noise_idx.extend(range(6, 9))

        idx = np.array(noise_idx)
        return Measurement(
            t=pose_vel.t,
            residual=np.concatenate(residuals),
            H=np.vstack(H_rows),
            R=R_full[np.ix_(idx, idx)],
            kind=self.config.fusion_strategy,
        )

    def get_time(self) -> Optional[float]:
        return self.kalman_filter.time

    def get_pose(self) -> np.ndarray:
        return self.kalman_filter.get_odometry()[0]

    def get_vel(self) -> np.ndarray:
        return self.kalman_filter.get_odometry()[1]

    def get_odometry(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.kalman_filter.get_odometry()

    def get_standard_deviation(self) -> FilterStd:
        return self.kalman_filter.get_standard_deviation()

    def save_observability_analysis(
        self, path: Optional[Union[str, Path]] = None
    ) -> Optional[Path]:
        """
        Write the recorded observability analysis to JSON.

        Returns:
            The written path, or None when recording is disabled.
        """
        if self.observability is None:
            logger.info("Observability analysis disabled; nothing to save")
            return None

        if path is None:
            path = Path(self.config.observability_output_dir) / OBSERVABILITY_FILENAME
        return self.observability.save(path)
