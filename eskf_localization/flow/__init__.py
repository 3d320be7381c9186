"""
Orchestration: collaborator interfaces, adapters, cycle planning and the loop.
"""

from eskf_localization.flow.cycle import CyclePlan, plan_correction_cycle
from eskf_localization.flow.filtering_flow import (
    FilteringFlow,
    FlowSinks,
    FlowStatistics,
    FlowSubscribers,
)
from eskf_localization.flow.interfaces import (
    CalibrationSource,
    CloudSink,
    MapSource,
    OdometrySink,
    PlaceRecognizer,
    SensorSubscriber,
    TransformBroadcaster,
)
from eskf_localization.flow.runner import run_loop
from eskf_localization.flow.subscribers import (
    QueueSubscriber,
    RecordingCloudSink,
    RecordingOdometrySink,
    RecordingTransformBroadcaster,
    StaticCalibrationSource,
)

__all__ = [
    "CyclePlan",
    "plan_correction_cycle",
    "FilteringFlow",
    "FlowSinks",
    "FlowStatistics",
    "FlowSubscribers",
    "CalibrationSource",
    "CloudSink",
    "MapSource",
    "OdometrySink",
    "PlaceRecognizer",
    "SensorSubscriber",
    "TransformBroadcaster",
    "run_loop",
    "QueueSubscriber",
    "RecordingCloudSink",
    "RecordingOdometrySink",
    "RecordingTransformBroadcaster",
    "StaticCalibrationSource",
]
