"""
Camera objects written by the tracking engine.

The render camera and its optional ghost proxy are owned by the host. The
engine only reads and writes the pose (position, up-vector, look-at target)
and raises the dirty flag so the renderer rebuilds the view matrix.

Coordinate System:
    - World frame with the reference body (the star) at the origin
    - Default up-vector is +Z (ecliptic north)
    - View matrix follows the OpenGL convention (camera looks along -Z)
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

import numpy as np

from .vectors import Vector3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraPose:
    """
    Camera placement in world coordinates.

    Attributes:
        position: Camera position
        up: Camera up-vector
        target: Point the camera looks at
    """
    position: Vector3
    up: Vector3 = field(default_factory=lambda: Vector3(0.0, 0.0, 1.0))
    target: Vector3 = field(default_factory=Vector3.zero)

    @classmethod
    def from_sequences(cls, position, up=(0.0, 0.0, 1.0), target=(0.0, 0.0, 0.0)) -> "CameraPose":
        return cls(
            position=Vector3.from_iterable(position),
            up=Vector3.from_iterable(up),
            target=Vector3.from_iterable(target),
        )

    def to_float(self) -> "CameraPose":
        return CameraPose(self.position.to_float(), self.up.to_float(), self.target.to_float())


class Camera:
    """
    Render camera with a mutable pose.

    Writing the pose sets ``matrix_world_needs_update``; the renderer calls
    ``update_matrix_world`` before drawing.
    """

    def __init__(self, pose: Optional[CameraPose] = None, name: str = "camera"):
        pose = pose or CameraPose(Vector3(0.0, -90.0, 30.0))
        self.name = name
        self.position = pose.position.to_float()
        self.up = pose.up.to_float()
        self.target = pose.target.to_float()
        self.matrix_world_needs_update = True
        self.view_matrix = np.eye(4)

    @property
    def pose(self) -> CameraPose:
        return CameraPose(self.position, self.up, self.target)

    def set_pose(self, pose: CameraPose) -> None:
        pose = pose.to_float()
        self.position = pose.position
        self.up = pose.up
        self.target = pose.target
        self.matrix_world_needs_update = True

    def copy_pose(self, other: "Camera") -> None:
        self.set_pose(other.pose)

    def update_matrix_world(self) -> np.ndarray:
        """Rebuild the 4x4 look-at view matrix and clear the dirty flag."""
        eye = self.position.as_array()
        up = self.up.as_array()

        f = self.target.as_array() - eye
        fn = np.linalg.norm(f)
        if fn < 1e-12:
            f = np.array([0.0, 1.0, 0.0])
            fn = 1.0
        f = f / fn

        s = np.cross(f, up)
        sn = np.linalg.norm(s)
        if sn < 1e-12:
            # Up parallel to the view direction
            s = np.cross(f, np.array([1.0, 0.0, 0.0]))
            if np.linalg.norm(s) < 1e-12:
                s = np.cross(f, np.array([0.0, 1.0, 0.0]))
            sn = np.linalg.norm(s)
        s = s / sn

        u = np.cross(s, f)

        m = np.eye(4)
        m[0, 0:3] = s
        m[1, 0:3] = u
        m[2, 0:3] = -f
        m[0, 3] = -float(np.dot(s, eye))
        m[1, 3] = -float(np.dot(u, eye))
        m[2, 3] = float(np.dot(f, eye))

        self.view_matrix = m
        self.matrix_world_needs_update = False
        return m

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, position={tuple(self.position)}, "
            f"up={tuple(self.up)}, target={tuple(self.target)})"
        )


class GhostCamera(Camera):
    """
    Decoupled camera proxy.

    Tracking can drive the ghost while the render camera stays under user
    control; the ghost is later synced back onto the render camera.
    """

    def __init__(self, pose: Optional[CameraPose] = None, name: str = "ghost"):
        super().__init__(pose, name=name)

    def sync_from(self, camera: Camera) -> None:
        """Copy the render camera's pose onto the ghost."""
        self.copy_pose(camera)
        logger.debug(f"Ghost camera synced from {camera.name}")

    def sync_to(self, camera: Camera) -> None:
        """Copy the ghost's pose onto the render camera."""
        camera.copy_pose(self)
        logger.debug(f"Ghost camera synced to {camera.name}")
