"""
Filter configuration.

Configuration is loaded once (from a dict or a JSON file) into frozen
dataclasses and is read-only for the lifetime of a run.

Recognized options:
    fusion_method: Filter variant selector. Only 'error_state_kalman_filter'.
    fusion_strategy: Which parts of an absolute sample are fused:
        'pose', 'position', 'position_velocity' or 'pose_velocity'.
    process_noise: Noise densities of accelerometer/gyroscope white noise and
        of the accelerometer/gyroscope bias random walks.
    measurement_noise: Standard deviations of position, orientation and
        velocity observations.
    prior: Initial standard deviations of every error-state block.
    sync_tolerance_s: Cross-channel timestamp tolerance (default 0.05 s,
        i.e. half the period of a 10 Hz lidar/GNSS channel).
    gate_confidence: Chi-square gate confidence for corrections (None disables).
    enable_observability_analysis: Record (F, H) pairs on every correction.

Example:
    >>> config = FilterConfig.from_dict({
    ...     "fusion_strategy": "pose_velocity",
    ...     "measurement_noise": {"position": 0.5},
    ... })
    >>> config.measurement_noise.position
    0.5
"""

import json
import warnings
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from eskf_localization.errors import ConfigurationError

FUSION_METHODS = ("error_state_kalman_filter",)
FUSION_STRATEGIES = ("pose", "position", "position_velocity", "pose_velocity")


def _check_positive(owner: str, values: Dict[str, float]) -> None:
    for name, value in values.items():
        if not isinstance(value, (float, int)):
            raise TypeError(f"{owner}.{name} must be numeric, got {type(value)}")
        if value <= 0:
            raise ValueError(f"{owner}.{name} must be positive, got {value}")


@dataclass(frozen=True)
class ProcessNoise:
    """
    Continuous-time process noise densities.

    Attributes:
        accel: Accelerometer white noise (m/s²/√Hz).
        gyro: Gyroscope white noise (rad/s/√Hz).
        accel_bias: Accelerometer bias random walk (m/s³/√Hz).
        gyro_bias: Gyroscope bias random walk (rad/s²/√Hz).
    """

    accel: float = 1.0e-2
    gyro: float = 1.0e-3
    accel_bias: float = 1.0e-4
    gyro_bias: float = 1.0e-5

    def __post_init__(self) -> None:
        _check_positive("process_noise", asdict(self))


@dataclass(frozen=True)
class MeasurementNoise:
    """
    Standard deviations of absolute observations.

    Attributes:
        position: Position noise (m).
        orientation: Orientation noise (rad, per axis of the rotation vector).
        velocity: Velocity noise (m/s).
    """

    position: float = 0.1
    orientation: float = 0.01
    velocity: float = 0.05

    def __post_init__(self) -> None:
        _check_positive("measurement_noise", asdict(self))


@dataclass(frozen=True)
class PriorCovariance:
    """Initial standard deviations of the error state blocks."""

    position: float = 1.0
    velocity: float = 0.5
    orientation: float = 0.05
    accel_bias: float = 0.05
    gyro_bias: float = 0.005

    def __post_init__(self) -> None:
        _check_positive("prior", asdict(self))


@dataclass(frozen=True)
class FilterConfig:
    """Complete, immutable filter configuration."""

    fusion_method: str = "error_state_kalman_filter"
    fusion_strategy: str = "pose_velocity"
    process_noise: ProcessNoise = field(default_factory=ProcessNoise)
    measurement_noise: MeasurementNoise = field(default_factory=MeasurementNoise)
    prior: PriorCovariance = field(default_factory=PriorCovariance)
    gravity_magnitude: float = 9.80665
    frame: str = "ENU"
    sync_tolerance_s: float = 0.05
    gate_confidence: Optional[float] = 0.9999
    max_imu_gap_s: float = 0.1
    enable_observability_analysis: bool = False
    observability_output_dir: str = "observability"
    observability_segment_length: int = 20
    imu_frame_id: str = "imu_link"
    lidar_frame_id: str = "velo_link"

    def __post_init__(self) -> None:
        if self.fusion_method not in FUSION_METHODS:
            raise ConfigurationError(
                f"Unknown fusion_method '{self.fusion_method}', "
                f"expected one of {FUSION_METHODS}"
            )
        if self.fusion_strategy not in FUSION_STRATEGIES:
            raise ConfigurationError(
                f"Unknown fusion_strategy '{self.fusion_strategy}', "
                f"expected one of {FUSION_STRATEGIES}"
            )
        if self.frame not in ("ENU", "NED"):
            raise ConfigurationError(f"frame must be 'ENU' or 'NED', got '{self.frame}'")
        if self.sync_tolerance_s <= 0:
            raise ValueError(
                f"sync_tolerance_s must be positive, got {self.sync_tolerance_s}"
            )
        if self.gate_confidence is not None and not 0.0 < self.gate_confidence < 1.0:
            raise ValueError(
                f"gate_confidence must be in (0, 1) or None, got {self.gate_confidence}"
            )
        if self.observability_segment_length < 1:
            raise ValueError(
                "observability_segment_length must be >= 1, "
                f"got {self.observability_segment_length}"
            )

        # Tolerances wider than a 10 Hz period pair samples from different frames
        if self.sync_tolerance_s > 0.1:
            warnings.warn(
                f"sync_tolerance_s={self.sync_tolerance_s} exceeds one 10 Hz period; "
                "samples from different capture times may be paired.",
                UserWarning,
            )
        if abs(self.gravity_magnitude - 9.80665) > 0.1:
            warnings.warn(
                f"gravity_magnitude={self.gravity_magnitude} m/s² is far from "
                "standard gravity.",
                UserWarning,
            )

    @property
    def fuses_orientation(self) -> bool:
        return self.fusion_strategy in ("pose", "pose_velocity")

    @property
    def fuses_velocity(self) -> bool:
        return self.fusion_strategy.endswith("velocity")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterConfig":
        """
        Build a configuration from a (possibly partial) nested dictionary.

        Missing keys take their defaults; unknown keys raise ConfigurationError.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        nested = {
            "process_noise": ProcessNoise,
            "measurement_noise": MeasurementNoise,
            "prior": PriorCovariance,
        }
        kwargs = dict(data)
        for key, section_cls in nested.items():
            if key in kwargs and isinstance(kwargs[key], dict):
                section_known = {f.name for f in fields(section_cls)}
                section_unknown = set(kwargs[key]) - section_known
                if section_unknown:
                    raise ConfigurationError(
                        f"Unknown keys in '{key}': {sorted(section_unknown)}"
                    )
                kwargs[key] = section_cls(**kwargs[key])

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Union[str, Path]) -> FilterConfig:
    """
    Load a FilterConfig from a JSON file.

    Args:
        path: Path to a JSON file holding a (partial) configuration dict.

    Returns:
        The loaded configuration.

    Raises:
        ConfigurationError: If the file is missing or is not a JSON object.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration root must be an object, got {type(data).__name__}"
        )

    return FilterConfig.from_dict(data)
