"""
Error-State Kalman Filter for IMU / absolute-pose fusion.

The filter keeps a nonlinear nominal state propagated by strapdown
mechanization and a 15-dimensional error state whose covariance is propagated
linearly and corrected by absolute observations.

Nominal state:
    p: Position in the map frame (m), shape (3,).
    v: Velocity in the map frame (m/s), shape (3,).
    q: Body-to-map quaternion, scalar-first, shape (4,).
    b_a: Accelerometer bias (m/s²), shape (3,).
    b_g: Gyroscope bias (rad/s), shape (3,).

Error state (order used by P, F, H):
    δx = [δp (3), δv (3), δθ (3), δb_a (3), δb_g (3)]
    with the local orientation error R_true = R(q) Exp(δθ).

Continuous error dynamics (f, ω raw readings):
    δṗ   = δv
    δv̇   = -R [f - b_a]x δθ - R δb_a - R n_a
    δθ̇   = -[ω - b_g]x δθ - δb_g - n_g
    δḃ_a = n_ba
    δḃ_g = n_bg

Discretization over Δt:
    F_d = I + F Δt
    Q_d = G Q_c Gᵀ Δt,   Q_c = diag(σ_a², σ_g², σ_ba², σ_bg²)

Correction (Joseph form):
    S  = H P Hᵀ + R
    K  = P Hᵀ S⁻¹
    δx = K y
    P  = (I - K H) P (I - K H)ᵀ + K R Kᵀ
followed by injection of δx into the nominal state and the reset
P ← G P Gᵀ, G = blockdiag(I, I, I - [½ δθ]x, I, I).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from eskf_localization.config import FilterConfig
from eskf_localization.coords.rotations import (
    make_pose,
    quat_multiply,
    quat_normalize,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
    rotvec_to_quat,
    skew,
)
from eskf_localization.errors import FilterAlreadyInitializedError
from eskf_localization.estimators.base import StateEstimator
from eskf_localization.fusion.gating import (
    chi_square_threshold,
    mahalanobis_distance_squared,
)
from eskf_localization.fusion.types import ERROR_STATE_DIM, Measurement
from eskf_localization.sensors.strapdown import strapdown_update
from eskf_localization.sensors.types import FrameConvention, IMUSample

logger = logging.getLogger(__name__)

# Error-state blocks
POS = slice(0, 3)
VEL = slice(3, 6)
ATT = slice(6, 9)
BA = slice(9, 12)
BG = slice(12, 15)


@dataclass
class NominalState:
    """
    Nominal (large-signal) state of the filter.

    Attributes:
        p: Position in map frame (m), shape (3,).
        v: Velocity in map frame (m/s), shape (3,).
        q: Body-to-map quaternion, scalar-first, shape (4,).
        b_a: Accelerometer bias (m/s²), shape (3,).
        b_g: Gyroscope bias (rad/s), shape (3,).
    """

    p: np.ndarray
    v: np.ndarray
    q: np.ndarray
    b_a: np.ndarray
    b_g: np.ndarray

    @property
    def rotation(self) -> np.ndarray:
        return quat_to_rotation_matrix(self.q)

    def copy(self) -> "NominalState":
        return NominalState(
            p=self.p.copy(),
            v=self.v.copy(),
            q=self.q.copy(),
            b_a=self.b_a.copy(),
            b_g=self.b_g.copy(),
        )


@dataclass(frozen=True)
class FilterStd:
    """Per-block standard deviations, sqrt(diag(P))."""

    position: np.ndarray
    velocity: np.ndarray
    orientation: np.ndarray
    accel_bias: np.ndarray
    gyro_bias: np.ndarray

    @classmethod
    def from_covariance(cls, P: np.ndarray) -> "FilterStd":
        std = np.sqrt(np.clip(np.diag(P), 0.0, None))
        return cls(
            position=std[POS],
            velocity=std[VEL],
            orientation=std[ATT],
            accel_bias=std[BA],
            gyro_bias=std[BG],
        )

    def as_vector(self) -> np.ndarray:
        return np.concatenate(
            [self.position, self.velocity, self.orientation, self.accel_bias, self.gyro_bias]
        )


class ErrorStateKalmanFilter(StateEstimator):
    """
    15-state ESKF driven by raw IMU samples and absolute pose/velocity residuals.

    The filter owns its clock: `time` is the timestamp of the last applied IMU
    sample. Predicts with older samples are refused, corrections never move
    the clock.

    Args:
        config: Filter configuration (noise, prior, gravity, gating).

    Example:
        >>> eskf = ErrorStateKalmanFilter(FilterConfig())
        >>> eskf.init(np.eye(4), np.zeros(3), imu0)
        >>> eskf.predict(imu1)
        True
        >>> pose, vel = eskf.get_odometry()
    """

    def __init__(self, config: FilterConfig):
        super().__init__(state_dim=ERROR_STATE_DIM)
        self.config = config
        self.frame = FrameConvention(map_frame=config.frame)
        self.gravity = self.frame.gravity_vector(config.gravity_magnitude)

        pn = config.process_noise
        self._Qc = np.diag(
            np.concatenate([
                np.full(3, pn.accel**2),
                np.full(3, pn.gyro**2),
                np.full(3, pn.accel_bias**2),
                np.full(3, pn.gyro_bias**2),
            ])
        )

        self._state: Optional[NominalState] = None
        self._P: Optional[np.ndarray] = None
        self._time: Optional[float] = None
        self._last_imu: Optional[IMUSample] = None

        # Product of F_d since the last accepted correction, consumed by observability
        self._F_accum = np.eye(ERROR_STATE_DIM)
        self.last_transition: Optional[np.ndarray] = None
        self.last_nis: Optional[float] = None

    @property
    def has_inited(self) -> bool:
        return self._state is not None

    @property
    def time(self) -> Optional[float]:
        return self._time

    @property
    def state(self) -> NominalState:
        self._require_initialized("state")
        return self._state.copy()

    @property
    def covariance(self) -> np.ndarray:
        self._require_initialized("covariance")
        return self._P.copy()

    def initial_covariance(self) -> np.ndarray:
        prior = self.config.prior
        return np.diag(
            np.concatenate([
                np.full(3, prior.position**2),
                np.full(3, prior.velocity**2),
                np.full(3, prior.orientation**2),
                np.full(3, prior.accel_bias**2),
                np.full(3, prior.gyro_bias**2),
            ])
        )

    def init(self, pose: np.ndarray, velocity: np.ndarray, imu: IMUSample) -> None:
        """
        Seed the nominal state and covariance.

        Args:
            pose: 4x4 body (IMU) pose in the map frame.
            velocity: Velocity in the map frame, shape (3,).
            imu: IMU sample whose timestamp becomes the filter clock.

        Raises:
            FilterAlreadyInitializedError: If called a second time.
        """
        if self.has_inited:
            raise FilterAlreadyInitializedError("ErrorStateKalmanFilter.init() called twice")

        self._state = NominalState(
            p=np.array(pose[:3, 3], dtype=np.float64),
            v=np.array(velocity, dtype=np.float64),
            q=rotation_matrix_to_quat(np.asarray(pose[:3, :3], dtype=np.float64)),
            b_a=np.zeros(3),
            b_g=np.zeros(3),
        )
        self._P = self.initial_covariance()
        self._time = float(imu.t)
        self._last_imu = imu
        self._F_accum = np.eye(ERROR_STATE_DIM)

        logger.debug("ESKF seeded at t=%.3f, p=%s", self._time, self._state.p)

    def predict(self, imu: IMUSample) -> bool:
        """
        Propagate nominal state and covariance to imu.t.

        Returns:
            False (nothing changed) if imu.t precedes the filter clock.
        """
        self._require_initialized("predict")

        dt = imu.t - self._time
        if dt < 0:
            logger.debug(
                "Refusing stale IMU sample t=%.3f (filter time %.3f)", imu.t, self._time
            )
            return False
        if dt == 0:
            return True
        if dt > self.config.max_imu_gap_s:
            logger.warning(
                "IMU gap of %.3f s before t=%.3f exceeds %.3f s",
                dt, imu.t, self.config.max_imu_gap_s,
            )

        x = self._state
        prev = self._last_imu
        R_prev = x.rotation

        f_mid = 0.5 * (prev.linear_acceleration + imu.linear_acceleration) - x.b_a
        omega_mid = 0.5 * (prev.angular_velocity + imu.angular_velocity) - x.b_g

        F = np.zeros((ERROR_STATE_DIM, ERROR_STATE_DIM))
        F[POS, VEL] = np.eye(3)
        F[VEL, ATT] = -R_prev @ skew(f_mid)
        F[VEL, BA] = -R_prev
        F[ATT, ATT] = -skew(omega_mid)
        F[ATT, BG] = -np.eye(3)
        F_d = np.eye(ERROR_STATE_DIM) + F * dt

        G = np.zeros((ERROR_STATE_DIM, 12))
        G[VEL, 0:3] = -R_prev
        G[ATT, 3:6] = -np.eye(3)
        G[BA, 6:9] = np.eye(3)
        G[BG, 9:12] = np.eye(3)
        Q_d = G @ self._Qc @ G.T * dt

        x.q, x.v, x.p = strapdown_update(
            x.q, x.v, x.p,
            prev.linear_acceleration, prev.angular_velocity,
            imu.linear_acceleration, imu.angular_velocity,
            x.b_a, x.b_g, dt, self.gravity,
        )

        self._P = self._symmetrize(F_d @ self._P @ F_d.T + Q_d)
        self._F_accum = F_d @ self._F_accum
        self._time = float(imu.t)
        self._last_imu = imu
        return True

    def correct(self, measurement: Measurement) -> bool:
        """
        Fuse one absolute observation.

        The measurement carries the residual y = z - h(x̂) and its Jacobian
        with respect to δx. The correction is rejected (state and covariance
        keep their predicted values) if the normalized innovation fails the
        chi-square gate or the update produces non-finite numbers.

        Returns:
            True if the correction was applied.
        """
        self._require_initialized("correct")

        P = self._P
        H, R, y = measurement.H, measurement.R, measurement.residual

        S = H @ P @ H.T + R
        try:
            nis = mahalanobis_distance_squared(y, S)
            K = np.linalg.solve(S, H @ P).T
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.warning("Correction at t=%.3f rejected: %s", measurement.t, e)
            return False
        self.last_nis = nis

        confidence = self.config.gate_confidence
        if confidence is not None:
            threshold = chi_square_threshold(dof=measurement.dim, confidence=confidence)
            if not nis < threshold:
                logger.warning(
                    "Correction at t=%.3f rejected: NIS %.2f exceeds %.2f (%s, dof=%d)",
                    measurement.t, nis, threshold, measurement.kind, measurement.dim,
                )
                return False

        dx = K @ y
        I_KH = np.eye(ERROR_STATE_DIM) - K @ H
        P_new = I_KH @ P @ I_KH.T + K @ R @ K.T

        if not (np.all(np.isfinite(dx)) and np.all(np.isfinite(P_new))):
            logger.warning(
                "Correction at t=%.3f rejected: non-finite update", measurement.t
            )
            return False

        # A rejected correction leaves the product running into the next one
        self.last_transition = self._F_accum
        self._F_accum = np.eye(ERROR_STATE_DIM)

        self._inject(dx)

        G = np.eye(ERROR_STATE_DIM)
        G[ATT, ATT] = np.eye(3) - skew(0.5 * dx[ATT])
        self._P = self._symmetrize(G @ P_new @ G.T)
        return True

    def _inject(self, dx: np.ndarray) -> None:
        x = self._state
        x.p = x.p + dx[POS]
        x.v = x.v + dx[VEL]
        x.q = quat_normalize(quat_multiply(x.q, rotvec_to_quat(dx[ATT])))
        x.b_a = x.b_a + dx[BA]
        x.b_g = x.b_g + dx[BG]

    def get_odometry(self) -> Tuple[np.ndarray, np.ndarray]:
        """Current (4x4 pose, velocity) of the IMU body in the map frame."""
        self._require_initialized("get_odometry")
        x = self._state
        return make_pose(x.rotation, x.p.copy()), x.v.copy()

    def get_standard_deviation(self) -> FilterStd:
        self._require_initialized("get_standard_deviation")
        return FilterStd.from_covariance(self._P)
