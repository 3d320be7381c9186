"""
Observability recording for the error-state filter.

Each correction contributes a record (t, Φ, H, R), where Φ is the product of
discrete transitions since the previous correction. Records are grouped into
consecutive segments; within one segment the total observability matrix is

    O = [H_0; H_1 Φ_1; H_2 Φ_2 Φ_1; ...]

(time-varying counterpart of O = [H; HF; HF²; ...]). A segment is reported
with the singular values and numerical rank of O and the eigenvalues of the
Fisher information Σ (H_k Φ_k...)ᵀ R_k⁻¹ (H_k Φ_k...).

Small singular values / eigenvalues indicate error-state directions that the
measurement sequence does not constrain (e.g. yaw and accelerometer bias
while the platform is stationary).
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Union

import numpy as np

from eskf_localization.fusion.types import ERROR_STATE_DIM

logger = logging.getLogger(__name__)

STATE_LABELS = (
    "px", "py", "pz",
    "vx", "vy", "vz",
    "thx", "thy", "thz",
    "bax", "bay", "baz",
    "bgx", "bgy", "bgz",
)


@dataclass(frozen=True)
class ObservabilityRecord:
    t: float
    F: np.ndarray
    H: np.ndarray
    R: np.ndarray


@dataclass(frozen=True)
class SegmentObservability:
    """
    Observability summary of one segment of consecutive corrections.

    Attributes:
        start_time, end_time: Timestamps of the first and last correction.
        num_measurements: Corrections in the segment.
        rank: Numerical rank of the total observability matrix.
        singular_values: Singular values of O, descending.
        fisher_eigenvalues: Eigenvalues of the Fisher information, ascending.
    """

    start_time: float
    end_time: float
    num_measurements: int
    rank: int
    singular_values: np.ndarray
    fisher_eigenvalues: np.ndarray

    @property
    def is_observable(self) -> bool:
        return self.rank == ERROR_STATE_DIM

    def to_dict(self) -> Dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "num_measurements": self.num_measurements,
            "rank": self.rank,
            "is_observable": self.is_observable,
            "singular_values": self.singular_values.tolist(),
            "fisher_eigenvalues": self.fisher_eigenvalues.tolist(),
        }


class ObservabilityRecorder:
    """
    Accumulates (Φ, H, R) triples and analyzes them per segment.

    Args:
        segment_length: Number of corrections per segment.
        tolerance: Relative singular-value threshold for the rank.
    """

    def __init__(self, segment_length: int = 20, tolerance: float = 1e-10):
        if segment_length < 1:
            raise ValueError(f"segment_length must be >= 1, got {segment_length}")
        self.segment_length = segment_length
        self.tolerance = tolerance
        self._records: List[ObservabilityRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def record(self, t: float, F: np.ndarray, H: np.ndarray, R: np.ndarray) -> None:
        n = ERROR_STATE_DIM
        if F.shape != (n, n):
            raise ValueError(f"F must have shape ({n}, {n}), got {F.shape}")
        if H.ndim != 2 or H.shape[1] != n:
            raise ValueError(f"H must have shape (m, {n}), got {H.shape}")
        if R.shape != (H.shape[0], H.shape[0]):
            raise ValueError(f"R shape {R.shape} incompatible with H shape {H.shape}")

        self._records.append(
            ObservabilityRecord(t=float(t), F=F.copy(), H=H.copy(), R=R.copy())
        )

    def _segments(self) -> List[List[ObservabilityRecord]]:
        k = self.segment_length
        return [self._records[i:i + k] for i in range(0, len(self._records), k)]

    def _analyze_segment(self, records: List[ObservabilityRecord]) -> SegmentObservability:
        n = ERROR_STATE_DIM
        blocks = []
        fisher = np.zeros((n, n))

        # Transition from the segment start to the current correction
        Phi = np.eye(n)
        for i, rec in enumerate(records):
            if i > 0:
                Phi = rec.F @ Phi
            block = rec.H @ Phi
            blocks.append(block)
            fisher += block.T @ np.linalg.solve(rec.R, block)

        O = np.vstack(blocks)
        singular_values = np.linalg.svd(O, compute_uv=False)
        if len(singular_values) == 0 or singular_values[0] == 0.0:
            rank = 0
        else:
            rank = int(np.sum(singular_values > self.tolerance * singular_values[0]))

        fisher_eigenvalues = np.linalg.eigvalsh(0.5 * (fisher + fisher.T))

        return SegmentObservability(
            start_time=records[0].t,
            end_time=records[-1].t,
            num_measurements=len(records),
            rank=rank,
            singular_values=singular_values,
            fisher_eigenvalues=fisher_eigenvalues,
        )

    def analyze(self) -> List[SegmentObservability]:
        """Analyze every segment recorded so far (the last one may be partial)."""
        return [self._analyze_segment(seg) for seg in self._segments()]

    def save(self, path: Union[str, Path]) -> Path:
        """
        Write the per-segment analysis to a JSON file.

        Args:
            path: Output file. Parent directories are created.

        Returns:
            The written path.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        report = {
            "state_labels": list(STATE_LABELS),
            "segment_length": self.segment_length,
            "num_records": len(self._records),
            "segments": [seg.to_dict() for seg in self.analyze()],
        }
        with open(path, "w") as f:
            json.dump(report, f, indent=2)

        logger.info(
            "Saved observability analysis of %d corrections to %s",
            len(self._records), path,
        )
        return path
