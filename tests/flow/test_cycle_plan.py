"""Unit tests for the per-cycle propagate/correct decision."""

import unittest

import numpy as np

from eskf_localization.flow import CyclePlan, plan_correction_cycle
from eskf_localization.fusion import AlignedTriple
from eskf_localization.sensors import CloudSample, IMUSample, PoseVelSample


def imu(t: float) -> IMUSample:
    return IMUSample(t=t, linear_acceleration=np.zeros(3), angular_velocity=np.zeros(3))


def triple_at(t: float) -> AlignedTriple:
    return AlignedTriple(
        pose_vel=PoseVelSample(t=t, pose=np.eye(4), velocity=np.zeros(3)),
        cloud=CloudSample(t=t),
        imu_synced=imu(t),
    )


class TestPlanCorrectionCycle(unittest.TestCase):
    def test_propagates_strictly_older_prefix(self) -> None:
        raw = tuple(imu(t) for t in (0.97, 0.98, 0.99, 1.0, 1.01))
        triple = triple_at(1.0)

        plan = plan_correction_cycle(raw, triple)

        self.assertEqual([s.t for s in plan.propagate], [0.97, 0.98, 0.99])
        self.assertIs(plan.correct, triple)

    def test_no_triple_means_empty_plan(self) -> None:
        plan = plan_correction_cycle((imu(0.1), imu(0.2)), None)
        self.assertEqual(plan, CyclePlan())
        self.assertIsNone(plan.correct)

    def test_raw_all_newer(self) -> None:
        plan = plan_correction_cycle((imu(1.2), imu(1.3)), triple_at(1.0))
        self.assertEqual(plan.propagate, ())
        self.assertIsNotNone(plan.correct)

    def test_raw_all_older(self) -> None:
        raw = tuple(imu(0.1 * k) for k in range(5))
        plan = plan_correction_cycle(raw, triple_at(1.0))
        self.assertEqual(len(plan.propagate), 5)

    def test_stops_at_first_newer_sample(self) -> None:
        # An out-of-order sample behind a newer one is left in place
        raw = (imu(0.5), imu(1.1), imu(0.9))
        plan = plan_correction_cycle(raw, triple_at(1.0))
        self.assertEqual([s.t for s in plan.propagate], [0.5])


if __name__ == "__main__":
    unittest.main()
