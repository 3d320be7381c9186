"""
Synthetic sensor streams for tests and demos.

A scenario is a ground-truth IMU-body trajectory sampled on the IMU clock,
turned into the four channels the localization core consumes:

    imu_raw:    ideal IMU readings at the IMU rate
    imu_synced: the IMU readings at the absolute-pose timestamps
    pose_vel:   lidar pose in the map frame and map-frame velocity
    cloud:      empty scans at the absolute-pose timestamps

Accelerometer readings follow the specific-force forward model

    f_b = C_M^B (a_M - g_M)

so a stationary level IMU in ENU reads [0, 0, +g]. The absolute pose is that
of the lidar: T_map_lidar = T_map_imu @ T_imu_lidar.

Pose timestamps are taken from the IMU time grid, so every absolute sample
has a raw IMU sample with exactly the same timestamp.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

import numpy as np

from eskf_localization.coords.rotations import make_pose, quat_to_rotation_matrix
from eskf_localization.sensors.types import (
    CloudSample,
    FrameConvention,
    IMUSample,
    PoseVelSample,
)

CHANNELS = ("imu_raw", "imu_synced", "pose_vel", "cloud")


def compute_specific_force_body(
    accel_map: np.ndarray,
    R_b_to_m: np.ndarray,
    gravity_m: np.ndarray,
) -> np.ndarray:
    """
    Ideal accelerometer reading for a true map-frame acceleration.

    Args:
        accel_map: True acceleration d²p/dt² in the map frame, shape (3,).
        R_b_to_m: Body-to-map rotation matrix, shape (3, 3).
        gravity_m: Gravity vector in the map frame, shape (3,).

    Returns:
        Specific force in the body frame, shape (3,).
    """
    return R_b_to_m.T @ (accel_map - gravity_m)


@dataclass
class Scenario:
    """
    Generated streams plus the ground truth they were drawn from.

    Attributes:
        imu_raw, imu_synced, pose_vel, cloud: Channel samples in time order.
        truth_times: IMU timestamps (N,).
        truth_positions: IMU positions in the map frame (N, 3).
        truth_velocities: IMU velocities in the map frame (N, 3).
        truth_rotations: IMU body-to-map rotations (N, 3, 3).
        calibration: T_imu_lidar used to produce the lidar poses.
    """

    imu_raw: List[IMUSample]
    imu_synced: List[IMUSample]
    pose_vel: List[PoseVelSample]
    cloud: List[CloudSample]
    truth_times: np.ndarray
    truth_positions: np.ndarray
    truth_velocities: np.ndarray
    truth_rotations: np.ndarray
    calibration: np.ndarray = field(default_factory=lambda: np.eye(4))

    @property
    def duration(self) -> float:
        return float(self.truth_times[-1] - self.truth_times[0])

    def channel(self, name: str) -> List:
        if name not in CHANNELS:
            raise ValueError(f"Unknown channel '{name}', expected one of {CHANNELS}")
        return getattr(self, name)

    def iter_chunks(self, chunk_s: float) -> Iterator[Dict[str, List]]:
        """
        Split every channel into consecutive time windows [k·chunk_s, (k+1)·chunk_s).

        Yields:
            Dict channel name -> samples of that window, in time order.
        """
        if chunk_s <= 0:
            raise ValueError(f"chunk_s must be positive, got {chunk_s}")

        t0 = float(self.truth_times[0])
        n_chunks = int(np.floor(self.duration / chunk_s)) + 1

        # Each sample is binned once, so equal timestamps share a window.
        # Samples on a boundary within rounding go to the later window.
        binned = {name: [[] for _ in range(n_chunks)] for name in CHANNELS}
        for name in CHANNELS:
            for s in self.channel(name):
                k = int(np.floor((s.t - t0) / chunk_s + 1e-9))
                binned[name][min(max(k, 0), n_chunks - 1)].append(s)

        for k in range(n_chunks):
            yield {name: binned[name][k] for name in CHANNELS}


def truth_position_at(scenario: Scenario, t: np.ndarray) -> np.ndarray:
    """Ground-truth IMU positions linearly interpolated at times t, shape (M, 3)."""
    t = np.atleast_1d(np.asarray(t, dtype=np.float64))
    return np.column_stack([
        np.interp(t, scenario.truth_times, scenario.truth_positions[:, i])
        for i in range(3)
    ])


def _build_scenario(
    times: np.ndarray,
    positions: np.ndarray,
    velocities: np.ndarray,
    accelerations: np.ndarray,
    rotations: np.ndarray,
    angular_rates: np.ndarray,
    imu_rate: float,
    pose_rate: float,
    calibration: Optional[np.ndarray],
    pose_noise_std: float,
    vel_noise_std: float,
    frame: FrameConvention,
    g: float,
    seed: Optional[int],
) -> Scenario:
    step = int(round(imu_rate / pose_rate))
    if step < 1 or not np.isclose(imu_rate / pose_rate, step):
        raise ValueError(
            f"imu_rate ({imu_rate}) must be an integer multiple of pose_rate ({pose_rate})"
        )

    T_imu_lidar = np.eye(4) if calibration is None else np.asarray(calibration, dtype=np.float64)
    gravity_m = frame.gravity_vector(g)
    rng = np.random.default_rng(seed)

    imu_raw = []
    for i, t in enumerate(times):
        f_b = compute_specific_force_body(accelerations[i], rotations[i], gravity_m)
        imu_raw.append(
            IMUSample(t=float(t), linear_acceleration=f_b, angular_velocity=angular_rates[i].copy())
        )

    imu_synced, pose_vel, cloud = [], [], []
    for i in range(0, len(times), step):
        t = float(times[i])
        T_map_imu = make_pose(rotations[i], positions[i])
        T_map_lidar = T_map_imu @ T_imu_lidar
        if pose_noise_std > 0:
            T_map_lidar[:3, 3] += rng.normal(0.0, pose_noise_std, 3)
        velocity = velocities[i].copy()
        if vel_noise_std > 0:
            velocity += rng.normal(0.0, vel_noise_std, 3)

        imu_synced.append(imu_raw[i])
        pose_vel.append(PoseVelSample(t=t, pose=T_map_lidar, velocity=velocity))
        cloud.append(CloudSample(t=t, points=np.zeros((0, 3))))

    return Scenario(
        imu_raw=imu_raw,
        imu_synced=imu_synced,
        pose_vel=pose_vel,
        cloud=cloud,
        truth_times=times,
        truth_positions=positions,
        truth_velocities=velocities,
        truth_rotations=rotations,
        calibration=T_imu_lidar,
    )


def generate_stationary_scenario(
    duration: float = 5.0,
    imu_rate: float = 100.0,
    pose_rate: float = 10.0,
    position: Optional[np.ndarray] = None,
    attitude: Optional[np.ndarray] = None,
    calibration: Optional[np.ndarray] = None,
    pose_noise_std: float = 0.0,
    vel_noise_std: float = 0.0,
    frame: Optional[FrameConvention] = None,
    g: float = 9.80665,
    seed: Optional[int] = None,
) -> Scenario:
    """
    Platform at rest: zero angular rate, accelerometer reading gravity only.

    Args:
        duration: Length of the run (s).
        imu_rate, pose_rate: Channel rates (Hz); imu_rate must be an integer
            multiple of pose_rate.
        position: Fixed IMU position in the map frame (default origin).
        attitude: Fixed body-to-map quaternion (default identity).
        calibration: T_imu_lidar (default identity).
        pose_noise_std, vel_noise_std: White noise added to the absolute
            position and velocity.
        frame: Map frame convention (default ENU).
        g: Gravity magnitude.
        seed: Seed of the noise generator.
    """
    frame = FrameConvention.create_enu() if frame is None else frame
    n = int(round(duration * imu_rate)) + 1
    times = np.arange(n) / imu_rate

    p0 = np.zeros(3) if position is None else np.asarray(position, dtype=np.float64)
    q0 = np.array([1.0, 0.0, 0.0, 0.0]) if attitude is None else np.asarray(attitude, dtype=np.float64)
    R0 = quat_to_rotation_matrix(q0)

    return _build_scenario(
        times=times,
        positions=np.tile(p0, (n, 1)),
        velocities=np.zeros((n, 3)),
        accelerations=np.zeros((n, 3)),
        rotations=np.tile(R0, (n, 1, 1)),
        angular_rates=np.zeros((n, 3)),
        imu_rate=imu_rate,
        pose_rate=pose_rate,
        calibration=calibration,
        pose_noise_std=pose_noise_std,
        vel_noise_std=vel_noise_std,
        frame=frame,
        g=g,
        seed=seed,
    )


def generate_constant_turn_scenario(
    duration: float = 20.0,
    imu_rate: float = 100.0,
    pose_rate: float = 10.0,
    speed: float = 2.0,
    yaw_rate: float = 0.2,
    initial_yaw: float = 0.0,
    calibration: Optional[np.ndarray] = None,
    pose_noise_std: float = 0.0,
    vel_noise_std: float = 0.0,
    g: float = 9.80665,
    seed: Optional[int] = None,
) -> Scenario:
    """
    Level vehicle driving a circle in the ENU plane at constant speed.

    The body x axis points along the velocity:

        ψ(t) = ψ0 + ω t
        v(t) = s [cos ψ, sin ψ, 0]
        p(t) = (s/ω) [sin ψ - sin ψ0, cos ψ0 - cos ψ, 0]
        a(t) = s ω [-sin ψ, cos ψ, 0]
    """
    if yaw_rate == 0:
        raise ValueError("yaw_rate must be non-zero for a turning trajectory")

    frame = FrameConvention.create_enu()
    n = int(round(duration * imu_rate)) + 1
    times = np.arange(n) / imu_rate

    psi = initial_yaw + yaw_rate * times
    c, s = np.cos(psi), np.sin(psi)
    zeros = np.zeros(n)

    positions = (speed / yaw_rate) * np.column_stack(
        [s - np.sin(initial_yaw), np.cos(initial_yaw) - c, zeros]
    )
    velocities = speed * np.column_stack([c, s, zeros])
    accelerations = speed * yaw_rate * np.column_stack([-s, c, zeros])

    rotations = np.zeros((n, 3, 3))
    rotations[:, 0, 0] = c
    rotations[:, 0, 1] = -s
    rotations[:, 1, 0] = s
    rotations[:, 1, 1] = c
    rotations[:, 2, 2] = 1.0

    angular_rates = np.tile([0.0, 0.0, yaw_rate], (n, 1))

    return _build_scenario(
        times=times,
        positions=positions,
        velocities=velocities,
        accelerations=accelerations,
        rotations=rotations,
        angular_rates=angular_rates,
        imu_rate=imu_rate,
        pose_rate=pose_rate,
        calibration=calibration,
        pose_noise_std=pose_noise_std,
        vel_noise_std=vel_noise_std,
        frame=frame,
        g=g,
        seed=seed,
    )
