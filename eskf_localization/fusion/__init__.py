"""
Sensor fusion plumbing: channel buffers, temporal synchronization, gating.

Buffers (from buffers module):
    SensorBuffer: FIFO per sensor channel

Synchronization (from synchronizer module):
    TemporalSynchronizer: Tolerance-window validity check that pops as it checks

Types (from types module):
    Measurement, AlignedTriple, SyncOutcome, SyncResult

Gating (from gating module):
    mahalanobis_distance_squared, chi_square_threshold, chi_square_gate
"""

from eskf_localization.fusion.buffers import SensorBuffer
from eskf_localization.fusion.gating import (
    chi_square_gate,
    chi_square_threshold,
    mahalanobis_distance_squared,
)
from eskf_localization.fusion.synchronizer import (
    DEFAULT_TOLERANCE_S,
    TemporalSynchronizer,
)
from eskf_localization.fusion.types import (
    ERROR_STATE_DIM,
    AlignedTriple,
    Measurement,
    SyncOutcome,
    SyncResult,
)

__all__ = [
    "SensorBuffer",
    "TemporalSynchronizer",
    "DEFAULT_TOLERANCE_S",
    "ERROR_STATE_DIM",
    "AlignedTriple",
    "Measurement",
    "SyncOutcome",
    "SyncResult",
    "mahalanobis_distance_squared",
    "chi_square_threshold",
    "chi_square_gate",
]
