"""
Camera transform updater.

Writes poses computed by the tracking state machine onto the render camera
or the ghost proxy, refreshes the camera-derived helpers, marks the camera
dirty and notifies pose listeners.
"""

from enum import Enum
from typing import Callable, Iterable, List, Optional
import logging

from .camera import Camera, CameraPose, GhostCamera
from .config import TrackerConfig
from .helpers import CameraHelper

logger = logging.getLogger(__name__)


class PoseTarget(Enum):
    """Which camera a pose is written to."""
    CAMERA = "camera"
    GHOST = "ghost"


PoseListener = Callable[[CameraPose, PoseTarget], None]


class CameraTransformUpdater:
    """
    Applies camera poses.

    Example usage:
        updater = CameraTransformUpdater(camera, initial_pose)
        updater.add_listener(lambda pose, target: print(pose.position))
        updater.apply_pose(new_pose)
    """

    def __init__(
        self,
        camera: Camera,
        initial_pose: CameraPose,
        ghost: Optional[GhostCamera] = None,
        helpers: Iterable[CameraHelper] = (),
        use_ghost: bool = False,
    ):
        """
        Args:
            camera: Render camera
            initial_pose: Pose restored by reset_to_initial
            ghost: Optional decoupled camera proxy
            helpers: Visual aids refreshed after every pose write
            use_ghost: Route tracking writes to the ghost proxy
        """
        self.camera = camera
        self.ghost = ghost
        self.initial_pose = initial_pose.to_float()
        self.helpers: List[CameraHelper] = list(helpers)
        self._listeners: List[PoseListener] = []
        self.use_ghost = use_ghost

    @classmethod
    def from_config(
        cls,
        config: TrackerConfig,
        camera: Camera,
        ghost: Optional[GhostCamera] = None,
        helpers: Iterable[CameraHelper] = (),
    ) -> "CameraTransformUpdater":
        """Build an updater with the configured initial pose and ghost mode."""
        initial_pose = CameraPose.from_sequences(
            config.camera.initial_position,
            config.camera.initial_up,
            config.camera.initial_target,
        )
        return cls(
            camera,
            initial_pose,
            ghost=ghost,
            helpers=helpers,
            use_ghost=config.tracking.use_ghost_camera,
        )

    @property
    def use_ghost(self) -> bool:
        return self._use_ghost

    @use_ghost.setter
    def use_ghost(self, value: bool) -> None:
        if value and self.ghost is None:
            raise ValueError("Ghost camera mode requested but no ghost camera is attached")
        self._use_ghost = bool(value)

    @property
    def active_target(self) -> PoseTarget:
        return PoseTarget.GHOST if self._use_ghost else PoseTarget.CAMERA

    def camera_for(self, target: PoseTarget) -> Camera:
        if target is PoseTarget.GHOST:
            if self.ghost is None:
                raise ValueError("No ghost camera attached")
            return self.ghost
        return self.camera

    @property
    def active_camera(self) -> Camera:
        return self.camera_for(self.active_target)

    def add_listener(self, listener: PoseListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: PoseListener) -> None:
        self._listeners.remove(listener)

    def apply_pose(self, pose: CameraPose, target: Optional[PoseTarget] = None) -> None:
        """
        Write a pose to the render camera or the ghost proxy.

        Args:
            pose: Pose to write (converted to floats here)
            target: Destination camera; defaults to the active target
        """
        target = target or self.active_target
        camera = self.camera_for(target)
        camera.set_pose(pose)

        written = camera.pose
        for helper in self.helpers:
            helper.refresh(written)

        for listener in list(self._listeners):
            listener(written, target)

    def reset_to_initial(self) -> None:
        """
        Restore the configured initial pose on the render camera and the ghost.

        Tracking state is not touched here; callers stop tracking explicitly.
        """
        logger.info(f"Resetting camera to initial position {tuple(self.initial_pose.position)}")
        self.apply_pose(self.initial_pose, PoseTarget.CAMERA)
        if self.ghost is not None:
            self.apply_pose(self.initial_pose, PoseTarget.GHOST)
