"""
Orrery Camera Tracker Package

Keeps an orrery camera locked onto an orbiting body while the central star
stays fixed, without the slow rotational drift ("wobble") that builds up
when thousands of per-tick rotations are composed.

Per-Tick Chain:
    target sample → radial rotation + scale about the star → camera position/up → renderer

Conventions:
    - Reference body (the star) is the pivot of every rotation
    - Quaternions are scalar-last (x, y, z, w)
    - Camera up-vector defaults to +Z

Precision Backends:
    - standard: numpy float64
    - high_precision: decimal arithmetic at configurable significant digits
"""

from .config import (
    TrackerConfig,
    PrecisionMode,
    PrecisionSettings,
    CameraDefaults,
    TrackingOptions,
    OrbitSettings,
    PrecisionConfigurationError,
)
from .vectors import Vector3, UnitQuaternion, DegenerateVectorError
from .backends import PrecisionBackend, StandardBackend, HighPrecisionBackend, create_backend
from .camera import Camera, GhostCamera, CameraPose
from .helpers import CameraHelper, DirectionArrow, OrientationOutline
from .updater import CameraTransformUpdater, PoseTarget
from .tracker import (
    TrackingStateMachine,
    TrackingState,
    TrackingSession,
    TrackingStep,
    compute_tracking_step,
)
from .ephemeris import KeplerOrbit, SyntheticEphemeris
from .simulation import DriftReport, run_drift_comparison

__version__ = "1.0.0"
__all__ = [
    "TrackerConfig",
    "PrecisionMode",
    "PrecisionSettings",
    "CameraDefaults",
    "TrackingOptions",
    "OrbitSettings",
    "PrecisionConfigurationError",
    "Vector3",
    "UnitQuaternion",
    "DegenerateVectorError",
    "PrecisionBackend",
    "StandardBackend",
    "HighPrecisionBackend",
    "create_backend",
    "Camera",
    "GhostCamera",
    "CameraPose",
    "CameraHelper",
    "DirectionArrow",
    "OrientationOutline",
    "CameraTransformUpdater",
    "PoseTarget",
    "TrackingStateMachine",
    "TrackingState",
    "TrackingSession",
    "TrackingStep",
    "compute_tracking_step",
    "KeplerOrbit",
    "SyntheticEphemeris",
    "DriftReport",
    "run_drift_comparison",
]
