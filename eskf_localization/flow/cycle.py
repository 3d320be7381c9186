"""
Per-cycle decision procedure of the orchestration loop.

Given an immutable snapshot of the raw IMU buffer and the aligned triple
consumed this cycle, decide which raw samples to propagate before the
correction. Raw samples are taken from the front while strictly older than
the triple; the first sample at or after the triple, and everything behind
it, stays in the buffer.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from eskf_localization.fusion.types import AlignedTriple
from eskf_localization.sensors.types import IMUSample


@dataclass(frozen=True)
class CyclePlan:
    """
    Actions of one correction cycle.

    Attributes:
        propagate: Raw IMU samples to predict with, in order. They are the
            current front of the raw buffer.
        correct: Triple to correct with, or None.
    """

    propagate: Tuple[IMUSample, ...] = field(default_factory=tuple)
    correct: Optional[AlignedTriple] = None


def plan_correction_cycle(
    imu_raw: Sequence[IMUSample],
    triple: Optional[AlignedTriple],
) -> CyclePlan:
    """
    Plan the predicts preceding a correction.

    Args:
        imu_raw: Snapshot of the raw IMU buffer, front first.
        triple: Aligned triple consumed this cycle, or None.

    Returns:
        CyclePlan. Without a triple nothing is propagated here.

    Example:
        >>> plan = plan_correction_cycle(buffer.snapshot(), result.triple)
        >>> [s.t for s in plan.propagate]
        [0.97, 0.98, 0.99]
    """
    if triple is None:
        return CyclePlan()

    n = 0
    for sample in imu_raw:
        if sample.t >= triple.t:
            break
        n += 1

    return CyclePlan(propagate=tuple(imu_raw[:n]), correct=triple)
