"""
Filtering front end: facade, initialization and observability recording.

    Filtering: Calibration-aware wrapper around the error-state filter
    InitializationManager: Primary/fallback seeding of the filter
    InitSucceeded, InitFailed: Outcomes of the primary initialization
    ObservabilityRecorder: Per-segment observability / Fisher analysis
"""

from eskf_localization.filtering.filtering import Filtering
from eskf_localization.filtering.initialization import (
    InitAttempt,
    InitFailed,
    InitializationManager,
    InitSucceeded,
)
from eskf_localization.filtering.observability import (
    ObservabilityRecorder,
    SegmentObservability,
)

__all__ = [
    "Filtering",
    "InitAttempt",
    "InitFailed",
    "InitializationManager",
    "InitSucceeded",
    "ObservabilityRecorder",
    "SegmentObservability",
]
