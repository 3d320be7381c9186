"""Temporal synchronization of the absolute-pose channel with its companions.

The absolute pose/velocity channel is the anchor. Each call compares the
anchor's front timestamp with the front timestamps of the companion channels
(lidar scan, synced IMU) and either consumes one aligned set or discards
exactly one stale sample:

    companion.t - anchor.t >  tol  → anchor is stale, pop the anchor
    anchor.t - companion.t >  tol  → companion is stale, pop that companion
    otherwise                      → pop the anchor and every companion

The first rule is checked against every companion before the second, so a
call pops at most one channel when it reports invalid. Checking and popping
are a single operation; callers never peek first.
"""

import logging
from typing import Sequence

from eskf_localization.fusion.buffers import SensorBuffer
from eskf_localization.fusion.types import AlignedTriple, SyncOutcome, SyncResult

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_S = 0.05


class TemporalSynchronizer:
    """
    Tolerance-window synchronizer.

    Args:
        tolerance_s: Maximum accepted timestamp difference between the anchor
            and each companion (s). Defaults to half the period of a 10 Hz
            channel.

    Example:
        >>> sync = TemporalSynchronizer(0.05)
        >>> result = sync.consume_triple(pose_buf, cloud_buf, imu_synced_buf)
        >>> if result.valid:
        ...     filter_correct(result.triple)
    """

    def __init__(self, tolerance_s: float = DEFAULT_TOLERANCE_S):
        if tolerance_s <= 0:
            raise ValueError(f"tolerance_s must be positive, got {tolerance_s}")
        self.tolerance_s = float(tolerance_s)

    def consume(
        self,
        anchor: SensorBuffer,
        companions: Sequence[SensorBuffer],
    ) -> SyncResult:
        """
        Check the channel fronts and pop accordingly.

        Args:
            anchor: Buffer whose front sample the companions are aligned to.
            companions: Companion buffers, checked in the given order.

        Returns:
            SyncResult with the verdict, the names of the popped channels and,
            when valid, the consumed samples (anchor first).

        Raises:
            ValueError: If any buffer is empty.
        """
        for buf in (anchor, *companions):
            if buf.empty:
                raise ValueError(f"Cannot synchronize: buffer '{buf.name}' is empty")

        t_anchor = anchor.front().t

        for companion in companions:
            lead = companion.front().t - t_anchor
            if lead > self.tolerance_s:
                dropped = anchor.pop_front()
                logger.debug(
                    "Dropped stale %s sample t=%.3f (%s is %.3f s ahead)",
                    anchor.name, dropped.t, companion.name, lead,
                )
                return SyncResult(SyncOutcome.STALE_ANCHOR, popped=(anchor.name,))

        for companion in companions:
            lag = t_anchor - companion.front().t
            if lag > self.tolerance_s:
                dropped = companion.pop_front()
                logger.debug(
                    "Dropped stale %s sample t=%.3f (%.3f s behind %s)",
                    companion.name, dropped.t, lag, anchor.name,
                )
                return SyncResult(SyncOutcome.STALE_COMPANION, popped=(companion.name,))

        samples = tuple(buf.pop_front() for buf in (anchor, *companions))
        popped = tuple(buf.name for buf in (anchor, *companions))
        return SyncResult(SyncOutcome.ALIGNED, popped=popped, samples=samples)

    def consume_triple(
        self,
        pose_vel: SensorBuffer,
        cloud: SensorBuffer,
        imu_synced: SensorBuffer,
    ) -> SyncResult:
        """Synchronize the pose/velocity channel with the lidar and synced IMU channels."""
        result = self.consume(pose_vel, (cloud, imu_synced))
        if not result.valid:
            return result

        pose_sample, cloud_sample, imu_sample = result.samples
        triple = AlignedTriple(
            pose_vel=pose_sample, cloud=cloud_sample, imu_synced=imu_sample
        )
        return SyncResult(
            result.outcome, popped=result.popped, samples=result.samples, triple=triple
        )
