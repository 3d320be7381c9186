"""
Unit tests for the temporal synchronizer.

Every call either consumes one sample from every channel (valid) or pops
exactly the front of the offending channel (invalid).
"""

import unittest

import numpy as np

from eskf_localization.fusion import SensorBuffer, SyncOutcome, TemporalSynchronizer
from eskf_localization.sensors import CloudSample, IMUSample, PoseVelSample


def pose(t: float) -> PoseVelSample:
    return PoseVelSample(t=t, pose=np.eye(4), velocity=np.zeros(3))


def cloud(t: float) -> CloudSample:
    return CloudSample(t=t)


def imu(t: float) -> IMUSample:
    return IMUSample(t=t, linear_acceleration=np.array([0.0, 0.0, 9.8]),
                     angular_velocity=np.zeros(3))


def make_buffers(pose_times, cloud_times, imu_times):
    pose_buf = SensorBuffer("pose_vel")
    cloud_buf = SensorBuffer("cloud")
    imu_buf = SensorBuffer("imu_synced")
    pose_buf.extend(pose(t) for t in pose_times)
    cloud_buf.extend(cloud(t) for t in cloud_times)
    imu_buf.extend(imu(t) for t in imu_times)
    return pose_buf, cloud_buf, imu_buf


class TestTemporalSynchronizer(unittest.TestCase):
    def setUp(self) -> None:
        self.sync = TemporalSynchronizer(tolerance_s=0.05)

    def test_aligned_consumes_one_from_each(self) -> None:
        pose_buf, cloud_buf, imu_buf = make_buffers([1.0, 1.1], [1.01, 1.1], [0.98, 1.1])

        result = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)

        self.assertTrue(result.valid)
        self.assertIs(result.outcome, SyncOutcome.ALIGNED)
        self.assertEqual(result.popped, ("pose_vel", "cloud", "imu_synced"))
        self.assertEqual(result.triple.t, 1.0)
        self.assertEqual(result.triple.cloud.t, 1.01)
        self.assertEqual(result.triple.imu_synced.t, 0.98)
        self.assertEqual((len(pose_buf), len(cloud_buf), len(imu_buf)), (1, 1, 1))

    def test_boundary_is_inclusive(self) -> None:
        pose_buf, cloud_buf, imu_buf = make_buffers([1.0], [1.05], [0.95])
        sync = TemporalSynchronizer(tolerance_s=0.0500001)
        self.assertTrue(sync.consume_triple(pose_buf, cloud_buf, imu_buf).valid)

    def test_stale_anchor_is_popped(self) -> None:
        # Cloud is 0.2 s ahead of the pose: the pose is stale
        pose_buf, cloud_buf, imu_buf = make_buffers([1.0, 1.2], [1.2], [1.2])

        result = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)

        self.assertFalse(result.valid)
        self.assertIs(result.outcome, SyncOutcome.STALE_ANCHOR)
        self.assertEqual(result.popped, ("pose_vel",))
        self.assertIsNone(result.triple)
        self.assertEqual(pose_buf.front().t, 1.2)
        self.assertEqual((len(cloud_buf), len(imu_buf)), (1, 1))

    def test_stale_companion_is_popped(self) -> None:
        pose_buf, cloud_buf, imu_buf = make_buffers([1.0], [0.9, 1.0], [1.0])

        result = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)

        self.assertFalse(result.valid)
        self.assertIs(result.outcome, SyncOutcome.STALE_COMPANION)
        self.assertEqual(result.popped, ("cloud",))
        self.assertEqual(cloud_buf.front().t, 1.0)
        self.assertEqual((len(pose_buf), len(imu_buf)), (1, 1))

    def test_ahead_rule_checked_before_behind_rule(self) -> None:
        # Cloud lags and synced IMU leads: only the anchor is popped
        pose_buf, cloud_buf, imu_buf = make_buffers([1.0], [0.8], [1.2])

        result = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)

        self.assertEqual(result.popped, ("pose_vel",))
        self.assertTrue(pose_buf.empty)
        self.assertEqual((len(cloud_buf), len(imu_buf)), (1, 1))

    def test_pose_ahead_of_synced_imu_until_it_catches_up(self) -> None:
        # Pose sample 0.2 s ahead of its synced IMU companion
        pose_buf, cloud_buf, imu_buf = make_buffers([1.2], [1.2], [1.0])

        first = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)
        self.assertFalse(first.valid)
        self.assertEqual(first.popped, ("imu_synced",))
        self.assertEqual(pose_buf.front().t, 1.2)
        self.assertTrue(imu_buf.empty)

        imu_buf.append(imu(1.2))
        second = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)
        self.assertTrue(second.valid)
        self.assertEqual(second.triple.t, 1.2)

    def test_generic_consume_with_single_companion(self) -> None:
        anchor = SensorBuffer("pose_vel")
        companion = SensorBuffer("imu_synced")
        anchor.append(pose(2.0))
        companion.append(imu(2.01))

        result = self.sync.consume(anchor, [companion])

        self.assertTrue(result.valid)
        self.assertEqual([s.t for s in result.samples], [2.0, 2.01])
        self.assertIsNone(result.triple)

    def test_empty_buffer_raises(self) -> None:
        pose_buf, cloud_buf, imu_buf = make_buffers([1.0], [], [1.0])
        with self.assertRaises(ValueError):
            self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)

    def test_tolerance_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            TemporalSynchronizer(tolerance_s=0.0)

    def test_exactly_one_channel_popped_when_invalid(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(200):
            times = rng.uniform(0.0, 0.3, size=3)
            pose_buf, cloud_buf, imu_buf = make_buffers([times[0]], [times[1]], [times[2]])
            before = len(pose_buf) + len(cloud_buf) + len(imu_buf)

            result = self.sync.consume_triple(pose_buf, cloud_buf, imu_buf)

            after = len(pose_buf) + len(cloud_buf) + len(imu_buf)
            if result.valid:
                self.assertEqual(before - after, 3)
                self.assertLessEqual(abs(times[1] - times[0]), 0.05)
                self.assertLessEqual(abs(times[2] - times[0]), 0.05)
            else:
                self.assertEqual(before - after, 1)
                self.assertEqual(len(result.popped), 1)


if __name__ == "__main__":
    unittest.main()
