"""Unit tests for eskf_localization.coords.rotations."""

import unittest

import numpy as np

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
)


class TestSkew(unittest.TestCase):
    def test_cross_product(self) -> None:
        a = np.array([1.0, 2.0, 3.0])
        b = np.array([-0.5, 0.4, 2.0])
        np.testing.assert_allclose(skew(a) @ b, np.cross(a, b))

    def test_antisymmetric(self) -> None:
        K = skew(np.array([0.3, -1.2, 0.7]))
        np.testing.assert_allclose(K, -K.T)

    def test_rejects_wrong_shape(self) -> None:
        with self.assertRaises(ValueError):
            skew(np.zeros(4))


class TestQuaternions(unittest.TestCase):
    def test_normalize_unit_norm_and_positive_scalar(self) -> None:
        q = quat_normalize(np.array([-2.0, 0.0, 0.0, 0.0]))
        np.testing.assert_allclose(q, [1.0, 0.0, 0.0, 0.0])

    def test_normalize_rejects_zero(self) -> None:
        with self.assertRaises(ValueError):
            quat_normalize(np.zeros(4))

    def test_normalize_rejects_nan(self) -> None:
        with self.assertRaises(ValueError):
            quat_normalize(np.array([np.nan, 0.0, 0.0, 0.0]))

    def test_multiply_identity(self) -> None:
        q = quat_normalize(np.array([0.9, 0.1, -0.3, 0.2]))
        identity = np.array([1.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(quat_multiply(q, identity), q)
        np.testing.assert_allclose(quat_multiply(identity, q), q)

    def test_multiply_by_conjugate_is_identity(self) -> None:
        q = quat_normalize(np.array([0.5, 0.5, -0.5, 0.1]))
        np.testing.assert_allclose(
            quat_multiply(q, quat_conjugate(q)), [1.0, 0.0, 0.0, 0.0], atol=1e-12
        )

    def test_product_matches_matrix_product(self) -> None:
        p = rotvec_to_quat(np.array([0.2, -0.1, 0.4]))
        q = rotvec_to_quat(np.array([-0.3, 0.5, 0.1]))
        np.testing.assert_allclose(
            quat_to_rotation_matrix(quat_multiply(p, q)),
            quat_to_rotation_matrix(p) @ quat_to_rotation_matrix(q),
            atol=1e-12,
        )

    def test_rotvec_90deg_about_z(self) -> None:
        q = rotvec_to_quat(np.array([0.0, 0.0, np.pi / 2]))
        R = quat_to_rotation_matrix(q)
        np.testing.assert_allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)

    def test_rotvec_small_angle_is_unit(self) -> None:
        q = rotvec_to_quat(np.array([1e-12, 0.0, 0.0]))
        self.assertAlmostEqual(np.linalg.norm(q), 1.0, places=12)

    def test_matrix_quaternion_round_trip(self) -> None:
        for rpy in [(0.1, 0.2, 0.3), (np.pi - 0.01, 0.0, 0.0), (0.0, 0.0, -3.1), (1.0, -1.2, 2.5)]:
            R = euler_to_rotation_matrix(*rpy)
            q = rotation_matrix_to_quat(R)
            self.assertGreaterEqual(q[0], 0.0)
            self.assertAlmostEqual(np.linalg.norm(q), 1.0, places=12)
            np.testing.assert_allclose(quat_to_rotation_matrix(q), R, atol=1e-10)


class TestSO3(unittest.TestCase):
    def test_exp_matches_quaternion(self) -> None:
        rv = np.array([0.4, -0.2, 1.1])
        np.testing.assert_allclose(
            so3_exp(rv), quat_to_rotation_matrix(rotvec_to_quat(rv)), atol=1e-12
        )

    def test_log_inverts_exp(self) -> None:
        for rv in [np.array([0.3, -0.2, 0.1]), np.array([0.0, 0.0, 3.0]), np.zeros(3)]:
            np.testing.assert_allclose(so3_log(so3_exp(rv)), rv, atol=1e-9)

    def test_exp_is_orthonormal(self) -> None:
        R = so3_exp(np.array([2.0, -1.0, 0.5]))
        np.testing.assert_allclose(R.T @ R, np.eye(3), atol=1e-12)
        self.assertAlmostEqual(np.linalg.det(R), 1.0, places=12)


class TestPoses(unittest.TestCase):
    def test_invert_pose(self) -> None:
        T = make_pose(euler_to_rotation_matrix(0.1, -0.4, 1.3), np.array([1.0, 2.0, -3.0]))
        np.testing.assert_allclose(T @ invert_pose(T), np.eye(4), atol=1e-12)

    def test_is_rigid_transform(self) -> None:
        T = make_pose(euler_to_rotation_matrix(0.3, 0.2, 0.1), np.array([4.0, 5.0, 6.0]))
        self.assertTrue(is_rigid_transform(T))

        scaled = T.copy()
        scaled[:3, :3] *= 2.0
        self.assertFalse(is_rigid_transform(scaled))

        reflected = np.diag([1.0, 1.0, -1.0, 1.0])
        self.assertFalse(is_rigid_transform(reflected))

        self.assertFalse(is_rigid_transform(np.eye(3)))

    def test_make_pose_rejects_bad_shapes(self) -> None:
        with self.assertRaises(ValueError):
            make_pose(np.eye(2), np.zeros(3))
        with self.assertRaises(ValueError):
            make_pose(np.eye(3), np.zeros(2))


if __name__ == "__main__":
    unittest.main()
