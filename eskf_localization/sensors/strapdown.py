"""
Strapdown inertial mechanization for the nominal state.

One propagation step integrates attitude, velocity and position between two
consecutive IMU samples using midpoint (trapezoidal) integration:

    ω_mid = ½(ω_{k-1} + ω_k) - b_g
    q_k   = q_{k-1} ⊗ Exp(ω_mid Δt)
    a_mid = ½[(R_{k-1}(f_{k-1} - b_a) + g) + (R_k(f_k - b_a) + g)]
    v_k   = v_{k-1} + a_mid Δt
    p_k   = p_{k-1} + v_{k-1} Δt + ½ a_mid Δt²

Frame conventions:
    - B: IMU body frame, M: map frame (ENU or NED, see FrameConvention)
    - q rotates B into M: v_M = R(q) @ v_B
    - f_b is specific force: a stationary level IMU in ENU reads [0, 0, +g]
"""

from typing import Tuple

import numpy as np

from eskf_localization.coords.rotations import (
    quat_multiply,
    quat_normalize,
    quat_to_rotation_matrix,
    rotvec_to_quat,
)


def quat_integrate(q: np.ndarray, omega_b: np.ndarray, dt: float) -> np.ndarray:
    """
    Rotate q by a constant body rate over dt using the exact exponential.

    Args:
        q: Body-to-map quaternion, shape (4,).
        omega_b: Bias-corrected angular rate in the body frame (rad/s), shape (3,).
        dt: Time step (s), non-negative.

    Returns:
        Normalized quaternion q ⊗ Exp(ω dt).
    """
    if q.shape != (4,):
        raise ValueError(f"q must have shape (4,), got {q.shape}")
    if omega_b.shape != (3,):
        raise ValueError(f"omega_b must have shape (3,), got {omega_b.shape}")
    if dt < 0:
        raise ValueError(f"dt must be non-negative, got {dt}")

    dq = rotvec_to_quat(omega_b * dt)
    return quat_normalize(quat_multiply(q, dq))


def specific_force_to_map(
    q: np.ndarray,
    f_b: np.ndarray,
    gravity_m: np.ndarray,
) -> np.ndarray:
    """Kinematic acceleration in the map frame: a_M = R(q) f_b + g_M."""
    return quat_to_rotation_matrix(q) @ f_b + gravity_m


def strapdown_update(
    q: np.ndarray,
    v: np.ndarray,
    p: np.ndarray,
    f_prev: np.ndarray,
    omega_prev: np.ndarray,
    f_curr: np.ndarray,
    omega_curr: np.ndarray,
    b_a: np.ndarray,
    b_g: np.ndarray,
    dt: float,
    gravity_m: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Midpoint strapdown step between two IMU samples.

    Args:
        q, v, p: Nominal attitude (4,), velocity (3,) and position (3,) at the
            previous sample.
        f_prev, omega_prev: Raw specific force and angular rate of the previous
            sample.
        f_curr, omega_curr: Raw specific force and angular rate of the current
            sample.
        b_a, b_g: Accelerometer and gyroscope bias estimates.
        dt: Time between the two samples (s).
        gravity_m: Gravity vector in the map frame.

    Returns:
        Tuple (q_next, v_next, p_next). q_next is normalized.

    Example:
        >>> g = np.array([0.0, 0.0, -9.81])
        >>> f = np.array([0.0, 0.0, 9.81])
        >>> q1, v1, p1 = strapdown_update(
        ...     np.array([1.0, 0, 0, 0]), np.zeros(3), np.zeros(3),
        ...     f, np.zeros(3), f, np.zeros(3), np.zeros(3), np.zeros(3), 0.01, g)
        >>> np.allclose(v1, 0.0) and np.allclose(p1, 0.0)
        True
    """
    if dt < 0:
        raise ValueError(f"dt must be non-negative, got {dt}")

    omega_mid = 0.5 * (omega_prev + omega_curr) - b_g
    q_next = quat_integrate(q, omega_mid, dt)

    a_prev = specific_force_to_map(q, f_prev - b_a, gravity_m)
    a_curr = specific_force_to_map(q_next, f_curr - b_a, gravity_m)
    a_mid = 0.5 * (a_prev + a_curr)

    v_next = v + a_mid * dt
    p_next = p + v * dt + 0.5 * a_mid * dt**2

    return q_next, v_next, p_next
