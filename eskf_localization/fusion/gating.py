"""Innovation gating for absolute-pose corrections.

A correction is judged consistent with the predicted state when its
normalized innovation squared (NIS)

    d² = yᵀ S⁻¹ y,   S = H P Hᵀ + R

stays below the chi-square quantile χ²(m, α), where m is the measurement
dimension and α the confidence level (e.g. 0.9999).
"""

import numpy as np
from scipy import stats


def mahalanobis_distance_squared(y: np.ndarray, S: np.ndarray) -> float:
    """Squared Mahalanobis distance of innovation y under covariance S.

    Args:
        y: Innovation vector (m,).
        S: Innovation covariance (m × m), positive definite.

    Returns:
        d² = yᵀ S⁻¹ y.

    Raises:
        ValueError: If dimensions are incompatible or S is singular.

    Example:
        >>> mahalanobis_distance_squared(np.array([3.0, 4.0]), np.eye(2))
        25.0
    """
    y = np.asarray(y)
    S = np.asarray(S)

    if y.ndim != 1:
        raise ValueError(f"Innovation y must be 1D, got shape {y.shape}")
    m = len(y)
    if S.shape != (m, m):
        raise ValueError(
            f"Innovation dimension {m} incompatible with S shape {S.shape}"
        )

    try:
        S_inv_y = np.linalg.solve(S, y)
    except np.linalg.LinAlgError as e:
        raise ValueError(f"Innovation covariance S is singular: {e}") from e

    return float(y @ S_inv_y)


def chi_square_threshold(dof: int, confidence: float = 0.95) -> float:
    """Chi-square critical value χ²(dof, confidence).

    Example:
        >>> round(chi_square_threshold(dof=3, confidence=0.95), 3)
        7.815
    """
    if dof < 1:
        raise ValueError(f"Degrees of freedom must be positive, got {dof}")
    if not (0 < confidence < 1):
        raise ValueError(f"Confidence level must be in (0, 1), got {confidence}")

    return float(stats.chi2.ppf(confidence, dof))


def chi_square_gate(y: np.ndarray, S: np.ndarray, confidence: float = 0.95) -> bool:
    """
    Accept the innovation if d² < χ²(m, confidence).

    Returns:
        True if the measurement is consistent, False if it should be rejected.

    Example:
        >>> chi_square_gate(np.array([0.1, 0.2]), np.eye(2))
        True
        >>> chi_square_gate(np.array([5.0, 5.0]), np.eye(2))
        False
    """
    d_squared = mahalanobis_distance_squared(y, S)
    return bool(d_squared < chi_square_threshold(dof=len(y), confidence=confidence))
