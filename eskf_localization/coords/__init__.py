"""Rotation representations and rigid transforms used by the filter.

Quaternions are scalar first, [qw, qx, qy, qz], and rotate body vectors into
the map frame.
"""

from eskf_localization.coords.rotations import (
    euler_to_rotation_matrix,
    invert_pose,
    is_rigid_transform,
    make_pose,
    quat_conjugate,
    quat_multiply,
    quat_normalize,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
    rotvec_to_quat,
    skew,
    so3_exp,
    so3_log,
    split_pose,
)

__all__ = [
    "euler_to_rotation_matrix",
    "invert_pose",
    "is_rigid_transform",
    "make_pose",
    "quat_conjugate",
    "quat_multiply",
    "quat_normalize",
    "quat_to_rotation_matrix",
    "rotation_matrix_to_quat",
    "rotvec_to_quat",
    "skew",
    "so3_exp",
    "so3_log",
    "split_pose",
]
