"""
Tests for the camera transform updater, camera objects and visual helpers.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from orrery_tracker.camera import Camera, CameraPose, GhostCamera
from orrery_tracker.config import TrackerConfig
from orrery_tracker.helpers import CameraHelper, DirectionArrow, OrientationOutline
from orrery_tracker.updater import CameraTransformUpdater, PoseTarget
from orrery_tracker.vectors import Vector3

INITIAL_POSE = CameraPose.from_sequences((0.0, -90.0, 30.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0))
MOVED_POSE = CameraPose.from_sequences((90.0, 0.0, 30.0), (0.0, 0.0, 1.0), (0.0, 10.0, 0.0))


class TestCamera:
    """Tests for the camera pose holder."""

    def test_set_pose_marks_dirty(self):
        camera = Camera(INITIAL_POSE)
        camera.update_matrix_world()
        assert not camera.matrix_world_needs_update

        camera.set_pose(MOVED_POSE)
        assert camera.matrix_world_needs_update
        assert camera.pose == MOVED_POSE

    def test_view_matrix_places_eye_at_origin(self):
        camera = Camera(INITIAL_POSE)
        m = camera.update_matrix_world()

        eye = np.append(INITIAL_POSE.position.as_array(), 1.0)
        assert_allclose(m @ eye, [0.0, 0.0, 0.0, 1.0], atol=1e-10)

        # The look-at target lies straight ahead on -Z
        target = m @ np.array([0.0, 0.0, 0.0, 1.0])
        assert_allclose(target[:2], [0.0, 0.0], atol=1e-10)
        assert target[2] == pytest.approx(-np.linalg.norm([0.0, 90.0, 30.0]))

    def test_view_matrix_up_parallel_to_view(self):
        pose = CameraPose.from_sequences((0.0, 0.0, 10.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0))
        m = Camera(pose).update_matrix_world()
        assert np.all(np.isfinite(m))
        assert_allclose(m[:3, :3] @ m[:3, :3].T, np.eye(3), atol=1e-12)

    def test_decimal_pose_is_stored_as_float(self):
        from decimal import Decimal
        pose = CameraPose(Vector3(Decimal(1), Decimal(2), Decimal(3)))
        camera = Camera()
        camera.set_pose(pose)
        assert isinstance(camera.position.x, float)


class TestGhostCamera:
    """Tests for the decoupled camera proxy."""

    def test_sync_from_and_to(self):
        camera = Camera(INITIAL_POSE)
        ghost = GhostCamera(MOVED_POSE)

        ghost.sync_from(camera)
        assert ghost.pose == INITIAL_POSE

        ghost.set_pose(MOVED_POSE)
        ghost.sync_to(camera)
        assert camera.pose == MOVED_POSE


class TestCameraTransformUpdater:
    """Tests for pose writes, listeners and reset."""

    @pytest.fixture
    def camera(self):
        return Camera(INITIAL_POSE)

    @pytest.fixture
    def ghost(self):
        return GhostCamera(INITIAL_POSE)

    def test_apply_pose_to_camera(self, camera):
        updater = CameraTransformUpdater(camera, INITIAL_POSE)
        updater.apply_pose(MOVED_POSE)

        assert camera.pose == MOVED_POSE
        assert camera.matrix_world_needs_update

    def test_apply_pose_to_ghost(self, camera, ghost):
        updater = CameraTransformUpdater(camera, INITIAL_POSE, ghost=ghost)
        updater.apply_pose(MOVED_POSE, PoseTarget.GHOST)

        assert ghost.pose == MOVED_POSE
        assert camera.pose == INITIAL_POSE

    def test_active_target_follows_mode(self, camera, ghost):
        updater = CameraTransformUpdater(camera, INITIAL_POSE, ghost=ghost)
        assert updater.active_target is PoseTarget.CAMERA

        updater.use_ghost = True
        assert updater.active_target is PoseTarget.GHOST
        assert updater.active_camera is ghost

    def test_ghost_mode_without_ghost(self, camera):
        with pytest.raises(ValueError):
            CameraTransformUpdater(camera, INITIAL_POSE, use_ghost=True)

    def test_ghost_write_without_ghost(self, camera):
        updater = CameraTransformUpdater(camera, INITIAL_POSE)
        with pytest.raises(ValueError):
            updater.apply_pose(MOVED_POSE, PoseTarget.GHOST)

    def test_listeners_notified(self, camera):
        updater = CameraTransformUpdater(camera, INITIAL_POSE)
        received = []
        listener = lambda pose, target: received.append((pose, target))

        updater.add_listener(listener)
        updater.apply_pose(MOVED_POSE)
        updater.remove_listener(listener)
        updater.apply_pose(INITIAL_POSE)

        assert received == [(MOVED_POSE, PoseTarget.CAMERA)]

    def test_helpers_refreshed(self, camera):
        arrow = DirectionArrow()
        outline = OrientationOutline()
        updater = CameraTransformUpdater(camera, INITIAL_POSE, helpers=[arrow, outline])

        updater.apply_pose(MOVED_POSE)

        assert arrow.refresh_count == 1
        assert outline.refresh_count == 1

    def test_reset_to_initial(self, camera, ghost):
        updater = CameraTransformUpdater(camera, INITIAL_POSE, ghost=ghost)
        updater.apply_pose(MOVED_POSE)
        updater.apply_pose(MOVED_POSE, PoseTarget.GHOST)

        updater.reset_to_initial()

        assert camera.pose == INITIAL_POSE
        assert ghost.pose == INITIAL_POSE

    def test_from_config(self, camera, ghost):
        config = TrackerConfig()
        config.tracking.use_ghost_camera = True
        updater = CameraTransformUpdater.from_config(config, camera, ghost=ghost)

        assert updater.active_target is PoseTarget.GHOST
        assert updater.initial_pose == INITIAL_POSE


class TestHelpers:
    """Tests for camera-derived visual aids."""

    def test_direction_arrow(self):
        arrow = DirectionArrow()
        assert arrow.refresh(INITIAL_POSE)

        length = np.linalg.norm([0.0, 90.0, 30.0])
        assert arrow.length == pytest.approx(length)
        assert_allclose(arrow.origin, [0.0, -90.0, 30.0])
        assert_allclose(arrow.direction, np.array([0.0, 90.0, -30.0]) / length)

    def test_orientation_outline_is_orthonormal(self):
        outline = OrientationOutline()
        assert outline.refresh(MOVED_POSE)

        basis = outline.basis
        assert_allclose(basis @ basis.T, np.eye(3), atol=1e-12)
        # Up row stays on the +z side
        assert basis[1, 2] > 0

    def test_degenerate_pose_keeps_previous_geometry(self):
        arrow = DirectionArrow()
        arrow.refresh(INITIAL_POSE)
        previous = arrow.direction.copy()

        degenerate = CameraPose.from_sequences((1.0, 1.0, 1.0), (0.0, 0.0, 1.0), (1.0, 1.0, 1.0))
        assert not arrow.refresh(degenerate)
        assert_allclose(arrow.direction, previous)
        assert arrow.refresh_count == 1

    def test_outline_rejects_up_along_view(self):
        outline = OrientationOutline()
        pose = CameraPose.from_sequences((0.0, 0.0, 10.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0))
        assert not outline.refresh(pose)
        assert outline.basis is None

    def test_helper_without_update_cannot_be_built(self):
        class Incomplete(CameraHelper):
            name = "incomplete"

        with pytest.raises(TypeError):
            Incomplete()
