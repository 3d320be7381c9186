"""
Orchestration loop of the IMU / absolute-pose localization.

One call to FilteringFlow.run() is one tick:

1. Resolve the IMU-lidar calibration (lazy, cached, retried every tick until
   available). Nothing else happens while it is missing.
2. Publish newly available global/local maps.
3. Move newly received samples from the subscribers into the channel buffers.
4. While the buffers hold consumable data:
   - uninitialized: synchronize the pose/cloud/synced-IMU fronts; on an
     aligned triple, seed the filter.
   - initialized: on an aligned triple, predict with every raw IMU sample
     older than the triple, then correct. Independently, predict with one
     more raw IMU sample if any is left.

Fused odometry and the fused transform are published after every successful
predict or correct. The observed pose of each correction is published on a
separate sink even when the correction is rejected.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from eskf_localization.config import FilterConfig
from eskf_localization.coords.rotations import is_rigid_transform
from eskf_localization.filtering.filtering import Filtering
from eskf_localization.filtering.initialization import InitializationManager
from eskf_localization.flow.cycle import plan_correction_cycle
from eskf_localization.flow.interfaces import (
    CalibrationSource,
    CloudSink,
    MapSource,
    OdometrySink,
    PlaceRecognizer,
    SensorSubscriber,
    TransformBroadcaster,
)
from eskf_localization.fusion.buffers import SensorBuffer
from eskf_localization.fusion.synchronizer import TemporalSynchronizer
from eskf_localization.fusion.types import AlignedTriple
from eskf_localization.sensors.types import IMUSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowSubscribers:
    imu_raw: SensorSubscriber
    cloud: SensorSubscriber
    pose_vel: SensorSubscriber
    imu_synced: SensorSubscriber


@dataclass(frozen=True)
class FlowSinks:
    """
    Output sinks.

    Attributes:
        fused_odometry: Fused IMU pose and velocity.
        correction_odometry: Observed pose of every correction attempt.
        transform: Broadcast of the fused pose.
        scan: Lidar scan of every correction attempt.
        global_map, local_map: Map pass-through.
    """

    fused_odometry: OdometrySink
    correction_odometry: OdometrySink
    transform: TransformBroadcaster
    scan: Optional[CloudSink] = None
    global_map: Optional[CloudSink] = None
    local_map: Optional[CloudSink] = None


@dataclass
class FlowStatistics:
    ticks: int = 0
    predicts: int = 0
    predicts_refused: int = 0
    corrections: int = 0
    corrections_rejected: int = 0
    sync_drops: int = 0


class FilteringFlow:
    """
    Drives buffers, synchronizer, initialization and filter once per tick.

    Args:
        config: Filter configuration.
        subscribers: Sample sources of the four channels.
        calibration_source: Lookup for T_imu_lidar.
        sinks: Output sinks.
        place_recognizer: Optional scan-based initial pose source.
        map_source: Optional source of global/local maps to republish.
    """

    def __init__(
        self,
        config: FilterConfig,
        subscribers: FlowSubscribers,
        calibration_source: CalibrationSource,
        sinks: FlowSinks,
        place_recognizer: Optional[PlaceRecognizer] = None,
        map_source: Optional[MapSource] = None,
    ):
        self.config = config
        self.subscribers = subscribers
        self.calibration_source = calibration_source
        self.sinks = sinks
        self.place_recognizer = place_recognizer
        self.map_source = map_source

        self.imu_raw = SensorBuffer("imu_raw")
        self.cloud = SensorBuffer("cloud")
        self.pose_vel = SensorBuffer("pose_vel")
        self.imu_synced = SensorBuffer("imu_synced")

        self.synchronizer = TemporalSynchronizer(config.sync_tolerance_s)

        # Set once when the calibration lookup first succeeds
        self.calibration: Optional[np.ndarray] = None
        self.filtering: Optional[Filtering] = None
        self.init_manager: Optional[InitializationManager] = None

        self._stats = FlowStatistics()

    def run(self) -> bool:
        """
        Execute one tick.

        Returns:
            False while the calibration is unavailable, True otherwise.
        """
        self._stats.ticks += 1
        if not self.init_calibration():
            return False

        self.publish_global_map()
        self.publish_local_map()

        self.read_data()

        while self.has_data():
            if not self.has_inited():
                triple = self._sync_triple()
                if triple is not None:
                    self.init_manager.initialize(triple, self.imu_raw)
            else:
                if self._has_triple_data():
                    triple = self._sync_triple()
                    if triple is not None:
                        self._correction_cycle(triple)

                if not self.imu_raw.empty:
                    self.update_localization(self.imu_raw.pop_front())

        return True

    def init_calibration(self) -> bool:
        if self.calibration is not None:
            return True

        T = self.calibration_source.lookup(self.config.imu_frame_id, self.config.lidar_frame_id)
        if T is None:
            return False

        T = np.asarray(T, dtype=np.float64)
        if not is_rigid_transform(T):
            logger.warning(
                "Ignoring invalid calibration %s <- %s",
                self.config.imu_frame_id, self.config.lidar_frame_id,
            )
            return False

        self.calibration = T
        self.filtering = Filtering(self.config, calibration=T)
        self.init_manager = InitializationManager(self.filtering, self.place_recognizer)
        logger.info(
            "Calibration %s <- %s resolved",
            self.config.imu_frame_id, self.config.lidar_frame_id,
        )
        return True

    def publish_global_map(self) -> bool:
        if self.map_source is None or self.sinks.global_map is None:
            return False
        if not self.map_source.has_new_global_map():
            return False
        self.sinks.global_map.publish(self.map_source.get_global_map())
        return True

    def publish_local_map(self) -> bool:
        if self.map_source is None or self.sinks.local_map is None:
            return False
        if not self.map_source.has_new_local_map():
            return False
        self.sinks.local_map.publish(self.map_source.get_local_map())
        return True

    def read_data(self) -> None:
        self.subscribers.imu_raw.parse_data(self.imu_raw)
        self.subscribers.cloud.parse_data(self.cloud)
        self.subscribers.pose_vel.parse_data(self.pose_vel)
        self.subscribers.imu_synced.parse_data(self.imu_synced)

    def has_inited(self) -> bool:
        return self.filtering is not None and self.filtering.has_inited()

    def _has_triple_data(self) -> bool:
        return not (self.cloud.empty or self.pose_vel.empty or self.imu_synced.empty)

    def has_data(self) -> bool:
        if not self.has_inited():
            return self._has_triple_data()
        return not self.imu_raw.empty or self._has_triple_data()

    def _sync_triple(self) -> Optional[AlignedTriple]:
        result = self.synchronizer.consume_triple(self.pose_vel, self.cloud, self.imu_synced)
        if not result.valid:
            self._stats.sync_drops += 1
        return result.triple

    def _correction_cycle(self, triple: AlignedTriple) -> None:
        plan = plan_correction_cycle(self.imu_raw.snapshot(), triple)
        for _ in plan.propagate:
            self.update_localization(self.imu_raw.pop_front())
        self.correct_localization(plan.correct)

    def update_localization(self, imu: IMUSample) -> bool:
        if self.filtering.update(imu):
            self._stats.predicts += 1
            self.publish_fusion_odometry()
            return True

        self._stats.predicts_refused += 1
        return False

    def correct_localization(self, triple: AlignedTriple) -> bool:
        ok, correction_pose = self.filtering.correct(triple.imu_synced, triple.pose_vel)
        self.publish_correction(correction_pose, triple)

        if ok:
            self._stats.corrections += 1
            self.publish_fusion_odometry()
            return True

        self._stats.corrections_rejected += 1
        return False

    def publish_correction(self, pose: np.ndarray, triple: AlignedTriple) -> None:
        self.sinks.correction_odometry.publish(pose, triple.t)
        if self.sinks.scan is not None:
            self.sinks.scan.publish(triple.cloud)

    def publish_fusion_odometry(self) -> None:
        pose, vel = self.filtering.get_odometry()
        t = self.filtering.get_time()
        self.sinks.transform.send_transform(pose, t)
        self.sinks.fused_odometry.publish(pose, t, vel)

    def statistics(self) -> FlowStatistics:
        return replace(self._stats)
