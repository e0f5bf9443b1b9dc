"""
Camera-derived visual aids.

Helpers are recomputed by the transform updater every time a camera pose is
written. They hold plain numpy geometry; drawing them is up to the host.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging

import numpy as np

from .camera import CameraPose

logger = logging.getLogger(__name__)

_MIN_LENGTH = 1e-12


class CameraHelper(ABC):
    """Base class for helpers refreshed on every pose write."""

    name = "helper"

    def __init__(self):
        self.refresh_count = 0

    def refresh(self, pose: CameraPose) -> bool:
        """
        Recompute the helper geometry from a pose.

        Returns:
            True if the helper was updated, False if the pose was degenerate
            and the previous geometry was kept
        """
        try:
            self._update(pose)
        except ValueError as e:
            logger.debug(f"{self.name} not refreshed: {e}")
            return False
        self.refresh_count += 1
        return True

    @abstractmethod
    def _update(self, pose: CameraPose) -> None:
        """Recompute geometry; raise ValueError for a degenerate pose."""


class DirectionArrow(CameraHelper):
    """Arrow from the camera position toward its look-at target."""

    name = "direction_arrow"

    def __init__(self):
        super().__init__()
        self.origin: Optional[np.ndarray] = None
        self.direction: Optional[np.ndarray] = None
        self.length: float = 0.0

    def _update(self, pose: CameraPose) -> None:
        origin = pose.position.as_array()
        delta = pose.target.as_array() - origin
        length = float(np.linalg.norm(delta))
        if length < _MIN_LENGTH:
            raise ValueError("camera coincides with its target")
        self.origin = origin
        self.direction = delta / length
        self.length = length


class OrientationOutline(CameraHelper):
    """
    Orthonormal camera basis.

    Rows of ``basis`` are right, up and forward. The up row is the pose's
    up-vector re-orthogonalized against the view direction.
    """

    name = "orientation_outline"

    def __init__(self):
        super().__init__()
        self.basis: Optional[np.ndarray] = None

    def _update(self, pose: CameraPose) -> None:
        forward = pose.target.as_array() - pose.position.as_array()
        fn = np.linalg.norm(forward)
        if fn < _MIN_LENGTH:
            raise ValueError("camera coincides with its target")
        forward = forward / fn

        right = np.cross(forward, pose.up.as_array())
        rn = np.linalg.norm(right)
        if rn < _MIN_LENGTH:
            raise ValueError("up-vector parallel to view direction")
        right = right / rn

        up = np.cross(right, forward)
        self.basis = np.vstack([right, up, forward])
