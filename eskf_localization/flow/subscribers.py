"""
In-process adapters for the collaborator interfaces.

QueueSubscriber is the hand-off point between a transport thread and the
localization worker: the transport calls `push` as samples arrive, the worker
calls `parse_data` at the start of each tick. The underlying queue.Queue is a
single-producer/single-consumer FIFO, so arrival order is preserved and a
push never interleaves with the worker's inspection of its own buffers.

The recording sinks keep everything published to them in memory and are used
by the demo and the tests.
"""

import logging
import queue
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import numpy as np

from eskf_localization.fusion.buffers import SensorBuffer

logger = logging.getLogger(__name__)


class QueueSubscriber:
    """
    Thread-safe sample channel.

    Args:
        topic: Channel name, used in log messages.
        maxsize: Queue capacity; 0 means unbounded. When full, `push` drops
            the sample and returns False.
    """

    def __init__(self, topic: str, maxsize: int = 0):
        self.topic = topic
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def push(self, sample: Any) -> bool:
        """Enqueue one sample. Called from the producer thread."""
        try:
            self._queue.put_nowait(sample)
        except queue.Full:
            self.dropped += 1
            logger.warning("Queue for '%s' full; dropped sample", self.topic)
            return False
        return True

    def parse_data(self, buffer: SensorBuffer) -> int:
        """Drain everything queued so far into buffer. Called from the worker."""
        drained = []
        while True:
            try:
                drained.append(self._queue.get_nowait())
            except queue.Empty:
                break
        buffer.extend(drained)
        return len(drained)


class StaticCalibrationSource:
    """
    Calibration lookup answering from a fixed table.

    Args:
        transforms: Mapping (target_frame, source_frame) -> 4x4 pose of the
            source frame in the target frame.
        available_after: Number of lookups answered with None before the
            table becomes visible (models a late transform broadcast).
    """

    def __init__(self, transforms, available_after: int = 0):
        self.transforms = {
            key: np.array(T, dtype=np.float64) for key, T in dict(transforms).items()
        }
        self.available_after = available_after
        self.lookups = 0

    def lookup(self, target_frame: str, source_frame: str) -> Optional[np.ndarray]:
        self.lookups += 1
        if self.lookups <= self.available_after:
            return None
        T = self.transforms.get((target_frame, source_frame))
        return None if T is None else T.copy()


@dataclass
class RecordingOdometrySink:
    """Keeps every published (t, pose, velocity)."""

    messages: List[Tuple[float, np.ndarray, Optional[np.ndarray]]] = field(default_factory=list)

    def publish(
        self, pose: np.ndarray, t: float, velocity: Optional[np.ndarray] = None
    ) -> None:
        self.messages.append(
            (float(t), pose.copy(), None if velocity is None else velocity.copy())
        )

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def times(self) -> np.ndarray:
        return np.array([m[0] for m in self.messages])

    @property
    def positions(self) -> np.ndarray:
        return np.array([m[1][:3, 3] for m in self.messages]).reshape(-1, 3)

    @property
    def velocities(self) -> np.ndarray:
        return np.array([m[2] for m in self.messages if m[2] is not None]).reshape(-1, 3)


@dataclass
class RecordingTransformBroadcaster:
    transforms: List[Tuple[float, np.ndarray]] = field(default_factory=list)

    def send_transform(self, pose: np.ndarray, t: float) -> None:
        self.transforms.append((float(t), pose.copy()))


@dataclass
class RecordingCloudSink:
    clouds: List[Any] = field(default_factory=list)

    def publish(self, cloud: Any) -> None:
        self.clouds.append(cloud)
