"""
Unit tests for midpoint strapdown mechanization.

A stationary IMU with zero biases must not drift: gravity compensation,
attitude integration and the frame convention have to agree exactly.
"""

import numpy as np
import pytest

from eskf_localization.coords import euler_to_rotation_matrix, quat_to_rotation_matrix, rotation_matrix_to_quat
from eskf_localization.sensors import FrameConvention, quat_integrate, strapdown_update


G = 9.80665


class TestStationaryPropagation:
    @pytest.mark.parametrize("frame", [FrameConvention.create_enu(), FrameConvention.create_ned()])
    def test_level_stationary_no_drift(self, frame: FrameConvention) -> None:
        gravity = frame.gravity_vector(G)
        f = -gravity  # specific force of a level body at rest
        q = np.array([1.0, 0.0, 0.0, 0.0])
        v = np.zeros(3)
        p = np.array([1.0, 2.0, 3.0])

        for _ in range(10000):
            q, v, p = strapdown_update(
                q, v, p, f, np.zeros(3), f, np.zeros(3), np.zeros(3), np.zeros(3), 0.01, gravity
            )

        np.testing.assert_allclose(p, [1.0, 2.0, 3.0], atol=1e-9)
        np.testing.assert_allclose(v, np.zeros(3), atol=1e-9)
        np.testing.assert_allclose(q, [1.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_tilted_stationary_no_drift(self) -> None:
        gravity = FrameConvention.create_enu().gravity_vector(G)
        R = euler_to_rotation_matrix(0.2, -0.1, 1.0)
        q = rotation_matrix_to_quat(R)
        f = R.T @ (-gravity)
        v = np.zeros(3)
        p = np.zeros(3)

        for _ in range(1000):
            q, v, p = strapdown_update(
                q, v, p, f, np.zeros(3), f, np.zeros(3), np.zeros(3), np.zeros(3), 0.01, gravity
            )

        np.testing.assert_allclose(p, np.zeros(3), atol=1e-8)
        np.testing.assert_allclose(v, np.zeros(3), atol=1e-8)

    def test_bias_is_removed(self) -> None:
        gravity = FrameConvention.create_enu().gravity_vector(G)
        b_a = np.array([0.1, -0.2, 0.05])
        b_g = np.array([0.01, 0.02, -0.01])
        f = -gravity + b_a
        q = np.array([1.0, 0.0, 0.0, 0.0])
        v = np.zeros(3)
        p = np.zeros(3)

        for _ in range(100):
            q, v, p = strapdown_update(q, v, p, f, b_g, f, b_g, b_a, b_g, 0.01, gravity)

        np.testing.assert_allclose(v, np.zeros(3), atol=1e-10)
        np.testing.assert_allclose(q, [1.0, 0.0, 0.0, 0.0], atol=1e-12)


class TestKinematics:
    def test_constant_acceleration(self) -> None:
        gravity = FrameConvention.create_enu().gravity_vector(G)
        a = np.array([1.0, 0.0, 0.0])
        f = a - gravity
        q = np.array([1.0, 0.0, 0.0, 0.0])
        v = np.zeros(3)
        p = np.zeros(3)

        dt = 0.01
        for _ in range(100):
            q, v, p = strapdown_update(
                q, v, p, f, np.zeros(3), f, np.zeros(3), np.zeros(3), np.zeros(3), dt, gravity
            )

        np.testing.assert_allclose(v, [1.0, 0.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(p, [0.5, 0.0, 0.0], atol=1e-9)

    def test_constant_rate_rotation(self) -> None:
        omega = np.array([0.0, 0.0, 0.5])
        q = np.array([1.0, 0.0, 0.0, 0.0])
        for _ in range(100):
            q = quat_integrate(q, omega, 0.01)

        expected = euler_to_rotation_matrix(0.0, 0.0, 0.5)
        np.testing.assert_allclose(quat_to_rotation_matrix(q), expected, atol=1e-10)
        assert abs(np.linalg.norm(q) - 1.0) < 1e-12

    def test_negative_dt_rejected(self) -> None:
        with pytest.raises(ValueError):
            quat_integrate(np.array([1.0, 0.0, 0.0, 0.0]), np.zeros(3), -0.01)
