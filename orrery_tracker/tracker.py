"""
Tracking state machine.

Keeps the camera locked onto an orbiting body while the reference body (the
star) stays fixed. Each tick the radial direction of the target, seen from
the reference body, has turned by a small rotation q and its distance has
changed by a factor s. The same rotation is applied to the camera position
(about the reference body, then scaled by s) and to the camera up-vector:

    d_old = P_old - S,  d_new = P_new - S
    q     = rotation_between(d_old, d_new)
    s     = |d_new| / |d_old|
    C_new = S + s * rotate(C_old - S, q)
    U_new = rotate(U_old, q)

Rotating the up-vector together with the position keeps camera roll locked to
the orbital plane, so no wobble builds up for inclined orbits.

States:
    IDLE      - no target; ticks do nothing
    TRACKING  - one active session holding the previous target sample

The session keeps the camera pose in the backend's own scalars between ticks
and writes floats to the camera, so the high-precision backend does not
round the pose every tick.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, Type
import logging

from .backends import PrecisionBackend, create_backend
from .camera import CameraPose
from .config import PrecisionSettings, TrackerConfig, TrackingOptions
from .updater import CameraTransformUpdater
from .vectors import DegenerateVectorError, Scalar, UnitQuaternion, Vector3

logger = logging.getLogger(__name__)


class TrackingState(Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class BodyPositionSource(Protocol):
    """Supplies the current world position of a body."""

    def position_of(self, body_id: str) -> Vector3:
        ...


@dataclass
class TrackingStep:
    """Result of one tick of the tracking recurrence (native scalars)."""
    rotation: UnitQuaternion
    scale: Scalar
    position: Vector3
    up: Vector3
    degenerate: bool = False


@dataclass
class TrackingSession:
    """
    State carried between ticks while a target is tracked.

    Attributes:
        target_id: Tracked body
        previous_target_position: Target sample from the previous tick
        backend: Arithmetic backend chosen when the session was armed
        native_pose: Last pose written, in backend scalars
        written_pose: The same pose as floats, as written to the camera
        ticks: Ticks processed
        degenerate_ticks: Ticks that fell back to the identity rotation
    """
    target_id: str
    previous_target_position: Vector3
    backend: PrecisionBackend
    native_pose: Optional[CameraPose] = None
    written_pose: Optional[CameraPose] = None
    ticks: int = 0
    degenerate_ticks: int = 0
    shadow_backend: Optional[PrecisionBackend] = None


def _identity(backend: PrecisionBackend) -> UnitQuaternion:
    return UnitQuaternion(*(backend.scalar(c) for c in UnitQuaternion.identity()))


def compute_tracking_step(
    backend: PrecisionBackend,
    reference: Vector3,
    previous: Vector3,
    current: Vector3,
    position: Vector3,
    up: Vector3,
) -> TrackingStep:
    """
    Advance a camera pose by one tick of target motion.

    Args:
        backend: Arithmetic backend
        reference: Reference body position S
        previous: Target position on the previous tick
        current: Target position now
        position: Camera position before the tick
        up: Camera up-vector before the tick

    Returns:
        TrackingStep with the rotation, scale and new camera position/up.
        A zero-length radial vector yields the identity rotation and unit
        scale with ``degenerate`` set.
    """
    reference = backend.coerce(reference)
    d_old = backend.sub(previous, reference)
    d_new = backend.sub(current, reference)

    degenerate = False
    try:
        rotation = backend.rotation_between(d_old, d_new)
        scale = backend.divide(backend.length(d_new), backend.length(d_old))
    except DegenerateVectorError as e:
        logger.debug(f"Degenerate tracking step: {e}")
        rotation = _identity(backend)
        scale = backend.scalar(1)
        degenerate = True

    offset = backend.sub(position, reference)
    new_offset = backend.scale(backend.apply_rotation(offset, rotation), scale)
    new_position = backend.add(reference, new_offset)
    new_up = backend.apply_rotation(backend.coerce(up), rotation)

    return TrackingStep(
        rotation=rotation,
        scale=scale,
        position=new_position,
        up=new_up,
        degenerate=degenerate,
    )


# Commands accepted by the state machine


@dataclass(frozen=True)
class SelectTarget:
    target_id: str


@dataclass(frozen=True)
class ClearTarget:
    pass


@dataclass(frozen=True)
class SetPrecisionMode:
    mode: Any
    digits: Optional[int] = None


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Tick:
    pass


class TrackingStateMachine:
    """
    Tracks one body at a time.

    All transitions go through ``dispatch``; the table in ``__init__`` maps
    (state, command type) to a handler.

    Example usage:
        machine = TrackingStateMachine(updater, ephemeris, reference_id="sun")
        machine.select_target("neptune")
        for _ in range(1000):
            ephemeris.advance(dt)
            machine.tick()
        machine.select_target(None)
    """

    def __init__(
        self,
        updater: CameraTransformUpdater,
        positions: BodyPositionSource,
        reference_id: str = "sun",
        precision: Optional[PrecisionSettings] = None,
        options: Optional[TrackingOptions] = None,
    ):
        """
        Args:
            updater: Writes poses to the camera or ghost proxy
            positions: Body position source, sampled once per tick
            reference_id: Body kept fixed (ignored when options are given)
            precision: Backend selection applied at each arming
            options: Tracking switches
        """
        self.updater = updater
        self.positions = positions
        self.precision = precision or PrecisionSettings()
        self.options = options or TrackingOptions(reference_body=reference_id)
        self.session: Optional[TrackingSession] = None

        self._transitions: Dict[Tuple[TrackingState, Type], Callable[[Any], Any]] = {
            (TrackingState.IDLE, SelectTarget): self._arm,
            (TrackingState.TRACKING, SelectTarget): self._arm,
            (TrackingState.IDLE, ClearTarget): self._ignore,
            (TrackingState.TRACKING, ClearTarget): self._disarm,
            (TrackingState.IDLE, SetPrecisionMode): self._configure_precision,
            (TrackingState.TRACKING, SetPrecisionMode): self._configure_precision,
            (TrackingState.IDLE, Reset): self._reset,
            (TrackingState.TRACKING, Reset): self._reset,
            (TrackingState.IDLE, Tick): self._ignore,
            (TrackingState.TRACKING, Tick): self._advance,
        }

    @classmethod
    def from_config(
        cls,
        config: TrackerConfig,
        updater: CameraTransformUpdater,
        positions: BodyPositionSource,
    ) -> "TrackingStateMachine":
        return cls(
            updater,
            positions,
            precision=config.precision,
            options=config.tracking,
        )

    @property
    def state(self) -> TrackingState:
        return TrackingState.TRACKING if self.session is not None else TrackingState.IDLE

    @property
    def target_id(self) -> Optional[str]:
        return self.session.target_id if self.session is not None else None

    @property
    def reference_id(self) -> str:
        return self.options.reference_body

    def dispatch(self, command: Any) -> Any:
        handler = self._transitions.get((self.state, type(command)))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")
        return handler(command)

    def select_target(self, target_id: Optional[str]) -> None:
        """Start tracking a body, or stop tracking when target_id is None."""
        if target_id is None:
            self.dispatch(ClearTarget())
        else:
            self.dispatch(SelectTarget(target_id))

    def set_precision_mode(self, mode: Any, digits: Optional[int] = None) -> None:
        """
        Choose the backend for the next session.

        Raises:
            PrecisionConfigurationError: unknown mode or too few digits
        """
        self.dispatch(SetPrecisionMode(mode, digits))

    def reset(self) -> None:
        """Stop tracking and restore the initial camera pose."""
        self.dispatch(Reset())

    def tick(self) -> Optional[TrackingStep]:
        """Per-frame callback. Returns the step applied, or None when idle."""
        return self.dispatch(Tick())

    # Handlers

    def _ignore(self, command: Any) -> None:
        return None

    def _arm(self, command: SelectTarget) -> None:
        target_id = command.target_id
        current = self.positions.position_of(target_id).to_float()
        backend = create_backend(self.precision.mode, self.precision.digits)

        if self.session is not None:
            logger.info(f"Switching tracked body {self.session.target_id} -> {target_id}")
        else:
            logger.info(f"Tracking {target_id} relative to {self.reference_id} ({backend!r})")

        session = TrackingSession(
            target_id=target_id,
            previous_target_position=current,
            backend=backend,
        )
        if self.options.compare_backends:
            session.shadow_backend = create_backend(backend.mode.other(), self.precision.digits)

        pose = self.updater.active_camera.pose
        native = CameraPose(
            backend.coerce(pose.position),
            backend.coerce(pose.up),
            backend.coerce(current),
        )
        if self.options.align_on_select:
            native = self._aligned_pose(backend, native, current)

        self.session = session
        self._write(session, native)

    def _aligned_pose(self, backend: PrecisionBackend, pose: CameraPose, target: Vector3) -> CameraPose:
        """Swing the camera about the reference body's vertical axis toward the target."""
        reference = self.positions.position_of(self.reference_id)
        offset = backend.sub(pose.position, reference)
        radial = backend.sub(target, reference)
        zero = backend.scalar(0)
        try:
            rotation = backend.rotation_between(
                Vector3(offset.x, offset.y, zero),
                Vector3(radial.x, radial.y, zero),
            )
        except DegenerateVectorError:
            logger.warning("Camera or target lies on the vertical axis; skipping alignment")
            return pose

        position = backend.add(backend.coerce(reference), backend.apply_rotation(offset, rotation))
        up = backend.apply_rotation(pose.up, rotation)
        return CameraPose(position, up, pose.target)

    def _disarm(self, command: Any) -> None:
        logger.info(
            f"Stopped tracking {self.session.target_id} after {self.session.ticks} ticks "
            f"({self.session.degenerate_ticks} degenerate)"
        )
        self.session = None

    def _configure_precision(self, command: SetPrecisionMode) -> None:
        digits = command.digits if command.digits is not None else self.precision.digits
        self.precision = PrecisionSettings(mode=command.mode, digits=digits)
        if self.session is not None:
            logger.info(
                f"Precision set to {self.precision.mode.value}; "
                f"takes effect when the next target is selected"
            )
        else:
            logger.info(f"Precision set to {self.precision.mode.value}")

    def _reset(self, command: Reset) -> None:
        if self.session is not None:
            self._disarm(command)
        self.updater.reset_to_initial()

    def _advance(self, command: Tick) -> TrackingStep:
        session = self.session
        backend = session.backend
        current = self.positions.position_of(session.target_id).to_float()

        try:
            reference = self.positions.position_of(self.reference_id)
            pose = self._current_native_pose(session)
            step = compute_tracking_step(
                backend,
                reference,
                session.previous_target_position,
                current,
                pose.position,
                pose.up,
            )
            if step.degenerate:
                session.degenerate_ticks += 1
                logger.warning(
                    f"{session.target_id} coincides with {self.reference_id}; "
                    f"camera held for this tick"
                )
            if session.shadow_backend is not None:
                self._log_backend_delta(session, reference, current, step)

            self._write(session, CameraPose(step.position, step.up, backend.coerce(current)))
        finally:
            # Always advance so a failed tick is not replayed on the next one
            session.previous_target_position = current
            session.ticks += 1

        return step

    def _current_native_pose(self, session: TrackingSession) -> CameraPose:
        """Native pose for the next step, re-seeded if the camera was moved externally."""
        camera_pose = self.updater.active_camera.pose
        if session.native_pose is not None and camera_pose == session.written_pose:
            return session.native_pose

        logger.warning(f"Camera pose changed outside the tracker; re-seeding from {camera_pose}")
        backend = session.backend
        return CameraPose(
            backend.coerce(camera_pose.position),
            backend.coerce(camera_pose.up),
            backend.coerce(camera_pose.target),
        )

    def _write(self, session: TrackingSession, native: CameraPose) -> None:
        written = native.to_float()
        self.updater.apply_pose(written)
        session.native_pose = native
        session.written_pose = self.updater.active_camera.pose

    def _log_backend_delta(
        self,
        session: TrackingSession,
        reference: Vector3,
        current: Vector3,
        step: TrackingStep,
    ) -> None:
        shadow = compute_tracking_step(
            session.shadow_backend,
            reference,
            session.previous_target_position,
            current,
            session.written_pose.position,
            session.written_pose.up,
        )
        primary = step.position.to_float().as_array()
        other = shadow.position.to_float().as_array()
        delta = float(abs(primary - other).max())
        logger.debug(
            f"Tick {session.ticks}: {session.backend.mode.value} vs "
            f"{session.shadow_backend.mode.value} max position delta {delta:.3e}"
        )
