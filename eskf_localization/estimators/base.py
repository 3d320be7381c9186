"""
Base class for recursive state estimators.

Defines the lifecycle every filter in this package follows: created
uninitialized, seeded exactly once, then alternately propagated and corrected.
"""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from eskf_localization.errors import FilterNotInitializedError


class StateEstimator(ABC):
    """Abstract base class for recursive state estimators."""

    def __init__(self, state_dim: int):
        """
        Initialize state estimator.

        Args:
            state_dim: Dimension of the (error) state vector.
        """
        self.state_dim = state_dim

    @property
    @abstractmethod
    def has_inited(self) -> bool:
        """True once the estimator has been seeded."""

    @abstractmethod
    def predict(self, u: Any) -> bool:
        """
        Perform prediction step (time update).

        Returns:
            False if the input could not be applied.
        """

    @abstractmethod
    def correct(self, measurement: Any) -> bool:
        """
        Perform measurement update (correction step).

        Returns:
            False if the measurement was rejected.
        """

    def _require_initialized(self, operation: str) -> None:
        if not self.has_inited:
            raise FilterNotInitializedError(
                f"{type(self).__name__}.{operation}() called before init()"
            )

    @staticmethod
    def _symmetrize(P: np.ndarray) -> np.ndarray:
        return 0.5 * (P + P.T)
