"""Unit tests for primary / fallback filter initialization."""

import unittest

import numpy as np

from eskf_localization.config import FilterConfig
from eskf_localization.coords import euler_to_rotation_matrix, make_pose
from eskf_localization.errors import FilterAlreadyInitializedError
from eskf_localization.filtering import (
    Filtering,
    InitFailed,
    InitializationManager,
    InitSucceeded,
)
from eskf_localization.fusion import AlignedTriple, SensorBuffer
from eskf_localization.sensors import CloudSample, IMUSample, PoseVelSample

LOGGER = "eskf_localization.filtering.initialization"


def imu(t: float) -> IMUSample:
    return IMUSample(t=t, linear_acceleration=np.array([0.0, 0.0, 9.80665]),
                     angular_velocity=np.zeros(3))


class FixedPlaceRecognizer:
    def __init__(self, pose):
        self.pose = pose
        self.queries = []

    def localize(self, cloud):
        self.queries.append(cloud)
        return self.pose


class TestInitializationManager(unittest.TestCase):
    def setUp(self) -> None:
        self.absolute_pose = make_pose(euler_to_rotation_matrix(0.0, 0.0, 0.3),
                                       np.array([1.0, 2.0, 0.0]))
        self.triple = AlignedTriple(
            pose_vel=PoseVelSample(t=1.0, pose=self.absolute_pose,
                                   velocity=np.array([0.5, 0.0, 0.0])),
            cloud=CloudSample(t=1.0),
            imu_synced=imu(1.0),
        )
        self.imu_raw = SensorBuffer("imu_raw")
        self.imu_raw.extend(imu(t) for t in (0.97, 0.98, 0.99, 1.0, 1.01))
        self.filtering = Filtering(FilterConfig())

    def test_fallback_without_recognizer(self) -> None:
        manager = InitializationManager(self.filtering)

        with self.assertLogs(LOGGER, level="INFO") as cm:
            attempt = manager.initialize(self.triple, self.imu_raw)

        self.assertIsInstance(attempt, InitFailed)
        self.assertTrue(any("absolute pose" in line for line in cm.output))
        self.assertTrue(self.filtering.has_inited())
        np.testing.assert_allclose(self.filtering.get_pose(), self.absolute_pose, atol=1e-12)
        np.testing.assert_allclose(self.filtering.get_vel(), [0.5, 0.0, 0.0])
        self.assertEqual(self.filtering.get_time(), 1.0)

    def test_fallback_when_recognition_fails(self) -> None:
        recognizer = FixedPlaceRecognizer(None)
        manager = InitializationManager(self.filtering, recognizer)

        attempt = manager.initialize(self.triple, self.imu_raw)

        self.assertIsInstance(attempt, InitFailed)
        self.assertEqual(len(recognizer.queries), 1)
        self.assertIs(recognizer.queries[0], self.triple.cloud)
        np.testing.assert_allclose(self.filtering.get_pose(), self.absolute_pose, atol=1e-12)

    def test_invalid_recognizer_pose_falls_back(self) -> None:
        bad = np.eye(4)
        bad[0, 0] = 3.0
        manager = InitializationManager(self.filtering, FixedPlaceRecognizer(bad))

        attempt = manager.initialize(self.triple, self.imu_raw)

        self.assertIsInstance(attempt, InitFailed)
        np.testing.assert_allclose(self.filtering.get_pose(), self.absolute_pose, atol=1e-12)

    def test_primary_success_reports_deviation(self) -> None:
        scan_pose = make_pose(euler_to_rotation_matrix(0.0, 0.0, 0.31),
                              np.array([1.3, 2.4, 0.0]))
        manager = InitializationManager(self.filtering, FixedPlaceRecognizer(scan_pose))

        with self.assertLogs(LOGGER, level="INFO") as cm:
            attempt = manager.initialize(self.triple, self.imu_raw)

        self.assertIsInstance(attempt, InitSucceeded)
        self.assertAlmostEqual(attempt.deviation_m, 0.5, places=12)
        self.assertTrue(any("deviation" in line for line in cm.output))
        np.testing.assert_allclose(self.filtering.get_pose(), scan_pose, atol=1e-12)
        # Seeded with the absolute sample's velocity
        np.testing.assert_allclose(self.filtering.get_vel(), [0.5, 0.0, 0.0])
        self.assertIs(manager.last_attempt, attempt)

    def test_discards_raw_imu_before_seed(self) -> None:
        manager = InitializationManager(self.filtering)
        manager.initialize(self.triple, self.imu_raw)
        self.assertEqual([s.t for s in self.imu_raw], [1.0, 1.01])

    def test_initializes_only_once(self) -> None:
        manager = InitializationManager(self.filtering)
        manager.initialize(self.triple, self.imu_raw)
        with self.assertRaises(FilterAlreadyInitializedError):
            manager.initialize(self.triple, self.imu_raw)
        self.assertTrue(self.filtering.has_inited())


if __name__ == "__main__":
    unittest.main()
