"""Rotation and rigid-transform helpers for the error-state filter.

Conventions:
- Quaternions: [qw, qx, qy, qz], scalar first, Hamilton product, body-to-map
  (v_map = R(q) @ v_body).
- Rotation vectors: axis * angle in radians, mapped to SO(3) by so3_exp.
- Poses: 4x4 homogeneous transforms T = [[R, t], [0, 0, 0, 1]] mapping
  points of the child frame into the parent frame.

The orientation error of the filter is a local (right) perturbation:
    R_true = R_nominal @ so3_exp(δθ)
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray

_SMALL_ANGLE = 1e-10


def skew(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Skew-symmetric matrix [v]x such that [v]x @ u = v x u."""
    if v.shape != (3,):
        raise ValueError(f"Expected 3-vector, got shape {v.shape}")

    return np.array(
        [
            [0.0, -v[2], v[1]],
            [v[2], 0.0, -v[0]],
            [-v[1], v[0], 0.0],
        ],
        dtype=np.float64,
    )


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Normalize a quaternion to unit norm with a non-negative scalar part.

    Raises:
        ValueError: If q has zero (or non-finite) norm.
    """
    norm = np.linalg.norm(q)
    if not np.isfinite(norm) or norm < _SMALL_ANGLE:
        raise ValueError(f"Cannot normalize quaternion with norm {norm}")

    q = q / norm
    # q and -q encode the same rotation; keep the scalar part non-negative
    if q[0] < 0.0:
        q = -q
    return q


def quat_multiply(p: NDArray[np.float64], q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hamilton product p ⊗ q of two scalar-first quaternions."""
    pw, px, py, pz = p
    qw, qx, qy, qz = q

    return np.array(
        [
            pw * qw - px * qx - py * qy - pz * qz,
            pw * qx + px * qw + py * qz - pz * qy,
            pw * qy - px * qz + py * qw + pz * qx,
            pw * qz + px * qy - py * qx + pz * qw,
        ],
        dtype=np.float64,
    )


def quat_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Conjugate (inverse for unit quaternions)."""
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def rotvec_to_quat(rotvec: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert a rotation vector to a unit quaternion.

    Uses the first-order form [1, rotvec/2] for angles below 1e-10 rad.

    Args:
        rotvec: Rotation vector (3,), axis * angle in radians.

    Returns:
        Unit quaternion [qw, qx, qy, qz].
    """
    if rotvec.shape != (3,):
        raise ValueError(f"Expected 3-vector, got shape {rotvec.shape}")

    angle = np.linalg.norm(rotvec)
    if angle < _SMALL_ANGLE:
        q = np.concatenate([[1.0], 0.5 * rotvec])
        return q / np.linalg.norm(q)

    axis = rotvec / angle
    half = 0.5 * angle
    return np.concatenate([[np.cos(half)], np.sin(half) * axis])


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a unit quaternion [qw, qx, qy, qz] to a 3x3 rotation matrix.

    Raises:
        ValueError: If q is not a 4-element array.
    """
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qw, qx, qy, qz = q / np.linalg.norm(q)

    return np.array(
        [
            [
                1.0 - 2.0 * (qy * qy + qz * qz),
                2.0 * (qx * qy - qw * qz),
                2.0 * (qx * qz + qw * qy),
            ],
            [
                2.0 * (qx * qy + qw * qz),
                1.0 - 2.0 * (qx * qx + qz * qz),
                2.0 * (qy * qz - qw * qx),
            ],
            [
                2.0 * (qx * qz - qw * qy),
                2.0 * (qy * qz + qw * qx),
                1.0 - 2.0 * (qx * qx + qy * qy),
            ],
        ],
        dtype=np.float64,
    )


def rotation_matrix_to_quat(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a rotation matrix to a unit quaternion (Shepperd's method).

    The branch on the largest of trace/diagonal keeps the square root away
    from zero. The result has a non-negative scalar part.

    Raises:
        ValueError: If R is not a 3x3 matrix.
    """
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    trace = np.trace(R)

    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        q = np.array([
            0.25 / s,
            (R[2, 1] - R[1, 2]) * s,
            (R[0, 2] - R[2, 0]) * s,
            (R[1, 0] - R[0, 1]) * s,
        ])
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        q = np.array([
            (R[2, 1] - R[1, 2]) / s,
            0.25 * s,
            (R[0, 1] + R[1, 0]) / s,
            (R[0, 2] + R[2, 0]) / s,
        ])
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        q = np.array([
            (R[0, 2] - R[2, 0]) / s,
            (R[0, 1] + R[1, 0]) / s,
            0.25 * s,
            (R[1, 2] + R[2, 1]) / s,
        ])
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        q = np.array([
            (R[1, 0] - R[0, 1]) / s,
            (R[0, 2] + R[2, 0]) / s,
            (R[1, 2] + R[2, 1]) / s,
            0.25 * s,
        ])

    return quat_normalize(q.astype(np.float64))


def so3_exp(rotvec: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Exponential map from a rotation vector to a rotation matrix (Rodrigues).

    Example:
        >>> R = so3_exp(np.array([0.0, 0.0, np.pi / 2]))
        >>> np.allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
        True
    """
    if rotvec.shape != (3,):
        raise ValueError(f"Expected 3-vector, got shape {rotvec.shape}")

    angle = np.linalg.norm(rotvec)
    K = skew(rotvec)
    if angle < _SMALL_ANGLE:
        return np.eye(3) + K

    a = np.sin(angle) / angle
    b = (1.0 - np.cos(angle)) / angle**2
    return np.eye(3) + a * K + b * (K @ K)


def so3_log(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Logarithm map from a rotation matrix to a rotation vector.

    Goes through the quaternion so that angles near π stay well conditioned.
    The returned angle lies in [0, π].
    """
    q = rotation_matrix_to_quat(R)
    vec = q[1:]
    sin_half = np.linalg.norm(vec)
    if sin_half < _SMALL_ANGLE:
        return 2.0 * vec

    angle = 2.0 * np.arctan2(sin_half, q[0])
    return angle * vec / sin_half


def euler_to_rotation_matrix(roll: float, pitch: float, yaw: float) -> NDArray[np.float64]:
    """Rotation matrix from ZYX (yaw-pitch-roll) Euler angles in radians."""
    cr, sr = np.cos(roll), np.sin(roll)
    cp, sp = np.cos(pitch), np.sin(pitch)
    cy, sy = np.cos(yaw), np.sin(yaw)

    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ],
        dtype=np.float64,
    )


def make_pose(R: NDArray[np.float64], t: NDArray[np.float64]) -> NDArray[np.float64]:
    """Assemble a 4x4 homogeneous transform from rotation R and translation t."""
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 rotation, got shape {R.shape}")
    if t.shape != (3,):
        raise ValueError(f"Expected 3-vector translation, got shape {t.shape}")

    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = t
    return T


def split_pose(T: NDArray[np.float64]) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Return (R, t) copies from a 4x4 homogeneous transform."""
    return T[:3, :3].copy(), T[:3, 3].copy()


def invert_pose(T: NDArray[np.float64]) -> NDArray[np.float64]:
    """Inverse of a rigid transform without a general matrix inverse."""
    R, t = split_pose(T)
    return make_pose(R.T, -R.T @ t)


def is_rigid_transform(T: NDArray[np.float64], atol: float = 1e-6) -> bool:
    """True if T is 4x4 with an orthonormal, right-handed rotation block."""
    T = np.asarray(T)
    if T.shape != (4, 4) or not np.all(np.isfinite(T)):
        return False

    R = T[:3, :3]
    return (
        np.allclose(R.T @ R, np.eye(3), atol=atol)
        and np.isclose(np.linalg.det(R), 1.0, atol=atol)
        and np.allclose(T[3], [0.0, 0.0, 0.0, 1.0], atol=atol)
    )
