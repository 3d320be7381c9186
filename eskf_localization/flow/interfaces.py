"""
Collaborator interfaces of the orchestration loop.

The localization core does not talk to sensors, transports or visualization
directly. Everything outside the filter is reached through these structural
types, so any object with matching methods can be plugged in (a message
queue adapter, a replay of a recorded log, or a test double).
"""

from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

from eskf_localization.fusion.buffers import SensorBuffer
from eskf_localization.sensors.types import CloudSample


@runtime_checkable
class SensorSubscriber(Protocol):
    def parse_data(self, buffer: SensorBuffer) -> int:
        """Move every sample received since the last call into buffer, in order."""
        ...


@runtime_checkable
class CalibrationSource(Protocol):
    def lookup(self, target_frame: str, source_frame: str) -> Optional[np.ndarray]:
        """Pose of source_frame in target_frame, or None if not yet available."""
        ...


@runtime_checkable
class PlaceRecognizer(Protocol):
    def localize(self, cloud: CloudSample) -> Optional[np.ndarray]:
        """Sensor pose in the map frame matching the scan, or None on failure."""
        ...


@runtime_checkable
class OdometrySink(Protocol):
    def publish(
        self, pose: np.ndarray, t: float, velocity: Optional[np.ndarray] = None
    ) -> None:
        ...


@runtime_checkable
class TransformBroadcaster(Protocol):
    def send_transform(self, pose: np.ndarray, t: float) -> None:
        ...


@runtime_checkable
class CloudSink(Protocol):
    def publish(self, cloud: Any) -> None:
        ...


@runtime_checkable
class MapSource(Protocol):
    def has_new_global_map(self) -> bool:
        ...

    def get_global_map(self) -> Any:
        ...

    def has_new_local_map(self) -> bool:
        ...

    def get_local_map(self) -> Any:
        ...
