"""
Configuration module for the orrery camera tracker.

Handles loading and validation of configuration from YAML files.
"""

import yaml
from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

# Below this the decimal backend carries no more digits than a double does
MIN_PRECISION_DIGITS = 20
DEFAULT_PRECISION_DIGITS = 100


class PrecisionConfigurationError(ValueError):
    """Raised for an unusable precision setting (unknown mode, too few digits)."""


class PrecisionMode(Enum):
    """Arithmetic backend used for the tracking primitives."""
    STANDARD = "standard"
    HIGH_PRECISION = "high_precision"

    @classmethod
    def parse(cls, value: Any) -> "PrecisionMode":
        """Accept a PrecisionMode or its name/value in any case."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("-", "_")
        for mode in cls:
            if text in (mode.value, mode.name.lower()):
                return mode
        raise PrecisionConfigurationError(f"Unknown precision mode: {value!r}")

    def other(self) -> "PrecisionMode":
        if self is PrecisionMode.STANDARD:
            return PrecisionMode.HIGH_PRECISION
        return PrecisionMode.STANDARD


def validate_precision_digits(digits: Any) -> int:
    """Return digits as int, or raise PrecisionConfigurationError."""
    if isinstance(digits, bool) or not isinstance(digits, int):
        raise PrecisionConfigurationError(
            f"Precision digits must be an integer, got {digits!r}"
        )
    if digits < MIN_PRECISION_DIGITS:
        raise PrecisionConfigurationError(
            f"Precision digits must be at least {MIN_PRECISION_DIGITS}, got {digits}"
        )
    return digits


def _triple(values: Sequence, name: str) -> Tuple[float, float, float]:
    if values is None or len(values) != 3:
        raise ValueError(f"'{name}' must be a list of three numbers, got {values!r}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass
class PrecisionSettings:
    """Arithmetic backend selection. Applied when a tracking session is armed."""
    mode: PrecisionMode = PrecisionMode.STANDARD
    digits: int = DEFAULT_PRECISION_DIGITS  # Significant digits for HIGH_PRECISION

    def __post_init__(self):
        self.mode = PrecisionMode.parse(self.mode)
        self.digits = validate_precision_digits(self.digits)


@dataclass
class CameraDefaults:
    """Initial camera pose restored by a reset."""
    initial_position: Tuple[float, float, float] = (0.0, -90.0, 30.0)
    initial_up: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    initial_target: Tuple[float, float, float] = (0.0, 0.0, 0.0)  # Look-at point


@dataclass
class TrackingOptions:
    """
    Tracking behaviour switches.

    Attributes:
        reference_body: Body kept fixed while another body is tracked
        use_ghost_camera: Write poses to the ghost proxy instead of the render camera
        align_on_select: Swing the camera behind the new target when arming
        compare_backends: Evaluate every tick with both backends and log the delta
    """
    reference_body: str = "sun"
    use_ghost_camera: bool = False
    align_on_select: bool = False
    compare_backends: bool = False


@dataclass
class OrbitSettings:
    """
    Keplerian elements of the synthetic target body used by the drift harness.

    Angles in degrees, period in simulation time units.
    """
    body_id: str = "neptune"
    semi_major_axis: float = 30.07
    eccentricity: float = 0.0
    inclination: float = 1.77
    ascending_node: float = 131.78
    argument_of_periapsis: float = 273.19
    period: float = 1000.0
    mean_anomaly: float = 0.0


@dataclass
class TrackerConfig:
    """
    Main configuration class for the camera tracker.

    Attributes:
        precision: Backend selection
        camera: Initial camera pose
        tracking: Tracking behaviour switches
        orbit: Synthetic target orbit for the drift harness
        error_threshold: Maximum acceptable relative camera drift
    """
    precision: PrecisionSettings = field(default_factory=PrecisionSettings)
    camera: CameraDefaults = field(default_factory=CameraDefaults)
    tracking: TrackingOptions = field(default_factory=TrackingOptions)
    orbit: OrbitSettings = field(default_factory=OrbitSettings)
    error_threshold: float = 1e-6

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TrackerConfig":
        """Build a configuration from a parsed YAML mapping."""
        data = data or {}

        prec_data = data.get('precision', {}) or {}
        precision = PrecisionSettings(
            mode=prec_data.get('mode', PrecisionMode.STANDARD.value),
            digits=prec_data.get('digits', DEFAULT_PRECISION_DIGITS),
        )

        cam_data = data.get('camera', {}) or {}
        camera = CameraDefaults(
            initial_position=_triple(
                cam_data.get('initial_position', (0.0, -90.0, 30.0)), 'initial_position'),
            initial_up=_triple(cam_data.get('initial_up', (0.0, 0.0, 1.0)), 'initial_up'),
            initial_target=_triple(
                cam_data.get('initial_target', (0.0, 0.0, 0.0)), 'initial_target'),
        )

        track_data = data.get('tracking', {}) or {}
        tracking = TrackingOptions(
            reference_body=str(track_data.get('reference_body', 'sun')),
            use_ghost_camera=bool(track_data.get('use_ghost_camera', False)),
            align_on_select=bool(track_data.get('align_on_select', False)),
            compare_backends=bool(track_data.get('compare_backends', False)),
        )

        orbit_data = data.get('orbit', {}) or {}
        orbit = OrbitSettings(
            body_id=str(orbit_data.get('body_id', 'neptune')),
            semi_major_axis=float(orbit_data.get('semi_major_axis', 30.07)),
            eccentricity=float(orbit_data.get('eccentricity', 0.0)),
            inclination=float(orbit_data.get('inclination', 1.77)),
            ascending_node=float(orbit_data.get('ascending_node', 131.78)),
            argument_of_periapsis=float(orbit_data.get('argument_of_periapsis', 273.19)),
            period=float(orbit_data.get('period', 1000.0)),
            mean_anomaly=float(orbit_data.get('mean_anomaly', 0.0)),
        )
        if not 0.0 <= orbit.eccentricity < 1.0:
            raise ValueError(f"Orbit eccentricity must be in [0, 1), got {orbit.eccentricity}")
        if orbit.semi_major_axis <= 0 or orbit.period <= 0:
            raise ValueError("Orbit semi_major_axis and period must be positive")

        return cls(
            precision=precision,
            camera=camera,
            tracking=tracking,
            orbit=orbit,
            error_threshold=float(data.get('error_threshold', 1e-6)),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "TrackerConfig":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            TrackerConfig object with loaded parameters

        Example YAML structure:
            precision:
              mode: high_precision
              digits: 100
            camera:
              initial_position: [0, -90, 30]
              initial_up: [0, 0, 1]
              initial_target: [0, 0, 0]
            tracking:
              reference_body: sun
              use_ghost_camera: false
              align_on_select: false
              compare_backends: false
            orbit:
              body_id: neptune
              semi_major_axis: 30.07
              eccentricity: 0.0086
              inclination: 1.77
              ascending_node: 131.78
              argument_of_periapsis: 273.19
              period: 1000.0
            error_threshold: 1.0e-6
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        logger.info(f"Loading configuration from {config_path}")
        return cls.from_dict(data)

    def to_yaml(self, config_path: str) -> None:
        """Save configuration to a YAML file."""
        data = {
            'precision': {
                'mode': self.precision.mode.value,
                'digits': self.precision.digits,
            },
            'camera': {
                'initial_position': list(self.camera.initial_position),
                'initial_up': list(self.camera.initial_up),
                'initial_target': list(self.camera.initial_target),
            },
            'tracking': {
                'reference_body': self.tracking.reference_body,
                'use_ghost_camera': self.tracking.use_ghost_camera,
                'align_on_select': self.tracking.align_on_select,
                'compare_backends': self.tracking.compare_backends,
            },
            'orbit': {
                'body_id': self.orbit.body_id,
                'semi_major_axis': self.orbit.semi_major_axis,
                'eccentricity': self.orbit.eccentricity,
                'inclination': self.orbit.inclination,
                'ascending_node': self.orbit.ascending_node,
                'argument_of_periapsis': self.orbit.argument_of_periapsis,
                'period': self.orbit.period,
                'mean_anomaly': self.orbit.mean_anomaly,
            },
            'error_threshold': self.error_threshold,
        }

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
