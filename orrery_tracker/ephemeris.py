"""
Synthetic body positions.

Provides closed-form Keplerian orbits that stand in for the host's
celestial-mechanics layer. Positions are returned relative to the reference
body, which sits at a fixed world position (the origin by default).

Orbit Orientation:
    perifocal -> world = Rz(ascending_node) @ Rx(inclination) @ Rz(argument_of_periapsis)

Kepler's Equation:
    M = E - e*sin(E), solved for the eccentric anomaly E by Newton iteration.
    M is not wrapped, so E and the true anomaly grow monotonically with time
    and the swept angle over many revolutions is available directly.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging

import numpy as np
from scipy.spatial.transform import Rotation

from .config import TrackerConfig
from .vectors import Vector3

logger = logging.getLogger(__name__)

KEPLER_TOLERANCE = 1e-14
KEPLER_MAX_ITERATIONS = 50


@dataclass
class KeplerOrbit:
    """
    Elliptical orbit about the reference body.

    Attributes:
        semi_major_axis: Semi-major axis (scene units)
        eccentricity: Eccentricity in [0, 1)
        inclination: Inclination in degrees
        ascending_node: Longitude of the ascending node in degrees
        argument_of_periapsis: Argument of periapsis in degrees
        period: Orbital period (simulation time units)
        mean_anomaly: Mean anomaly at t = 0 in degrees
    """
    semi_major_axis: float
    eccentricity: float = 0.0
    inclination: float = 0.0
    ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0
    period: float = 1.0
    mean_anomaly: float = 0.0
    _rotation: Rotation = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not 0.0 <= self.eccentricity < 1.0:
            raise ValueError(f"Eccentricity must be in [0, 1), got {self.eccentricity}")
        if self.semi_major_axis <= 0 or self.period <= 0:
            raise ValueError("Semi-major axis and period must be positive")
        self._rotation = Rotation.from_euler(
            "ZXZ",
            [self.ascending_node, self.inclination, self.argument_of_periapsis],
            degrees=True,
        )

    @property
    def mean_motion(self) -> float:
        return 2.0 * np.pi / self.period

    @property
    def normal(self) -> np.ndarray:
        """Unit normal of the orbital plane (direction of angular momentum)."""
        return self._rotation.apply([0.0, 0.0, 1.0])

    def eccentric_anomaly_at(self, t: float) -> float:
        """Solve Kepler's equation at time t (radians, unwrapped)."""
        M = np.deg2rad(self.mean_anomaly) + self.mean_motion * t
        e = self.eccentricity
        if e == 0.0:
            return float(M)

        if e < 0.8:
            E = M + e * np.sin(M)
        else:
            # Start at apoapsis of the current revolution
            E = M - np.mod(M, 2.0 * np.pi) + np.pi
        for _ in range(KEPLER_MAX_ITERATIONS):
            delta = (E - e * np.sin(E) - M) / (1.0 - e * np.cos(E))
            E -= delta
            if abs(delta) < KEPLER_TOLERANCE * max(1.0, abs(M)):
                break
        return float(E)

    def true_anomaly_at(self, t: float) -> float:
        """True anomaly at time t (radians, continuous across revolutions)."""
        E = self.eccentric_anomaly_at(t)
        e = self.eccentricity
        if e == 0.0:
            return E
        beta = e / (1.0 + np.sqrt(1.0 - e * e))
        return float(E + 2.0 * np.arctan(beta * np.sin(E) / (1.0 - beta * np.cos(E))))

    def radius_at(self, t: float) -> float:
        E = self.eccentric_anomaly_at(t)
        return float(self.semi_major_axis * (1.0 - self.eccentricity * np.cos(E)))

    def position_at(self, t: float) -> np.ndarray:
        """Position relative to the reference body at time t."""
        nu = self.true_anomaly_at(t)
        r = self.radius_at(t)
        perifocal = np.array([r * np.cos(nu), r * np.sin(nu), 0.0])
        return self._rotation.apply(perifocal)


class SyntheticEphemeris:
    """
    Time-stepped body position source.

    Example usage:
        ephemeris = SyntheticEphemeris("sun", {"neptune": KeplerOrbit(30.07, period=1000)})
        ephemeris.advance(1.0)
        ephemeris.position_of("neptune")
    """

    def __init__(
        self,
        reference_id: str,
        orbits: Optional[Dict[str, KeplerOrbit]] = None,
        reference_position=(0.0, 0.0, 0.0),
        time: float = 0.0,
    ):
        self.reference_id = reference_id
        self.orbits: Dict[str, KeplerOrbit] = dict(orbits or {})
        self.reference_position = np.asarray(reference_position, dtype=np.float64)
        self.time = float(time)
        self._pinned: Dict[str, np.ndarray] = {}

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "SyntheticEphemeris":
        o = config.orbit
        orbit = KeplerOrbit(
            semi_major_axis=o.semi_major_axis,
            eccentricity=o.eccentricity,
            inclination=o.inclination,
            ascending_node=o.ascending_node,
            argument_of_periapsis=o.argument_of_periapsis,
            period=o.period,
            mean_anomaly=o.mean_anomaly,
        )
        return cls(config.tracking.reference_body, {o.body_id: orbit})

    def pin(self, body_id: str, position) -> None:
        """Place a body at a fixed world position, overriding any orbit."""
        self._pinned[body_id] = np.asarray(tuple(position), dtype=np.float64)

    def advance(self, dt: float) -> None:
        self.time += dt

    def position_of(self, body_id: str) -> Vector3:
        """
        World position of a body at the current time.

        Raises:
            KeyError: unknown body
        """
        if body_id in self._pinned:
            return Vector3.from_iterable(self._pinned[body_id])
        if body_id == self.reference_id:
            return Vector3.from_iterable(self.reference_position)
        if body_id not in self.orbits:
            raise KeyError(f"Unknown body: {body_id}")
        return Vector3.from_iterable(
            self.reference_position + self.orbits[body_id].position_at(self.time)
        )
