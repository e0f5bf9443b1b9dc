"""
Backend drift comparison.

Runs the same sequence of ticks through the tracking state machine once per
precision backend and compares the camera against its closed-form position.

Ground Truth:
    For a target on a fixed orbital plane with normal n, every per-tick
    rotation is a rotation about n, so after the target's true anomaly has
    advanced by dv and its radius changed from r0 to r:

        C_true = S + (r / r0) * R(n, dv) (C0 - S)
        U_true = R(n, dv) U0

The relative error |C - C_true| / |C_true| is recorded every tick.
"""

from dataclasses import dataclass, field
from typing import Dict, List
import csv
import json
import logging

import numpy as np
from scipy.spatial.transform import Rotation
from tqdm import tqdm

from .camera import Camera, CameraPose
from .config import PrecisionMode, PrecisionSettings, TrackerConfig
from .ephemeris import SyntheticEphemeris
from .tracker import TrackingStateMachine
from .updater import CameraTransformUpdater

logger = logging.getLogger(__name__)


@dataclass
class DriftHistory:
    """Per-tick errors of one backend run."""
    mode: PrecisionMode
    position_error: np.ndarray  # Relative position error per tick
    up_error: np.ndarray  # Absolute up-vector error per tick
    final_position: np.ndarray
    degenerate_ticks: int = 0

    @property
    def final_error(self) -> float:
        return float(self.position_error[-1]) if len(self.position_error) else 0.0

    @property
    def max_error(self) -> float:
        return float(np.max(self.position_error)) if len(self.position_error) else 0.0


@dataclass
class DriftReport:
    """Summary of a drift comparison between backends."""
    body_id: str
    ticks: int
    dt: float
    digits: int
    threshold: float
    histories: Dict[str, DriftHistory] = field(default_factory=dict)
    first_tick_agreement: float = 0.0  # Relative difference between backends after tick 1

    @property
    def passed(self) -> bool:
        return all(h.max_error <= self.threshold for h in self.histories.values())

    def history(self, mode: PrecisionMode) -> DriftHistory:
        return self.histories[mode.value]


def _camera_truth(
    ephemeris: SyntheticEphemeris,
    body_id: str,
    start_time: float,
    initial: CameraPose,
):
    orbit = ephemeris.orbits[body_id]
    sweep = orbit.true_anomaly_at(ephemeris.time) - orbit.true_anomaly_at(start_time)
    ratio = orbit.radius_at(ephemeris.time) / orbit.radius_at(start_time)
    rotation = Rotation.from_rotvec(orbit.normal * sweep)

    reference = ephemeris.reference_position
    position = reference + ratio * rotation.apply(initial.position.as_array() - reference)
    up = rotation.apply(initial.up.as_array())
    return position, up


def run_tracking(
    config: TrackerConfig,
    mode: PrecisionMode,
    ticks: int,
    dt: float,
    progress: bool = False,
) -> DriftHistory:
    """
    Track the configured body for a number of ticks with one backend.

    Args:
        config: Tracker configuration (camera defaults and orbit)
        mode: Backend to use
        ticks: Number of ticks
        dt: Simulation time per tick
        progress: Show a progress bar

    Returns:
        DriftHistory with per-tick errors against the closed-form camera pose
    """
    ephemeris = SyntheticEphemeris.from_config(config)
    body_id = config.orbit.body_id

    initial = CameraPose.from_sequences(
        config.camera.initial_position,
        config.camera.initial_up,
        config.camera.initial_target,
    )
    camera = Camera(initial)
    updater = CameraTransformUpdater(camera, initial)
    machine = TrackingStateMachine(
        updater,
        ephemeris,
        precision=PrecisionSettings(mode=mode, digits=config.precision.digits),
        options=config.tracking,
    )
    machine.select_target(body_id)
    armed = camera.pose
    start_time = ephemeris.time

    position_error = np.zeros(ticks)
    up_error = np.zeros(ticks)
    for i in tqdm(range(ticks), desc=f"Tracking ({mode.value})", disable=not progress):
        ephemeris.advance(dt)
        machine.tick()

        true_position, true_up = _camera_truth(ephemeris, body_id, start_time, armed)
        position = camera.position.as_array()
        position_error[i] = np.linalg.norm(position - true_position) / np.linalg.norm(true_position)
        up_error[i] = np.linalg.norm(camera.up.as_array() - true_up)

    degenerate = machine.session.degenerate_ticks
    machine.select_target(None)

    logger.info(
        f"{mode.value}: final relative error {position_error[-1] if ticks else 0.0:.3e} "
        f"after {ticks} ticks"
    )
    return DriftHistory(
        mode=mode,
        position_error=position_error,
        up_error=up_error,
        final_position=camera.position.as_array(),
        degenerate_ticks=degenerate,
    )


def run_drift_comparison(
    config: TrackerConfig,
    ticks: int = 1000,
    dt: float = 1.0,
    progress: bool = False,
) -> DriftReport:
    """
    Run both backends over the same ticks and compare them.

    Args:
        config: Tracker configuration
        ticks: Number of ticks per run
        dt: Simulation time per tick
        progress: Show progress bars

    Returns:
        DriftReport with one history per backend
    """
    if ticks < 1:
        raise ValueError(f"ticks must be at least 1, got {ticks}")

    report = DriftReport(
        body_id=config.orbit.body_id,
        ticks=ticks,
        dt=dt,
        digits=config.precision.digits,
        threshold=config.error_threshold,
    )

    first_positions: List[np.ndarray] = []
    for mode in (PrecisionMode.STANDARD, PrecisionMode.HIGH_PRECISION):
        report.histories[mode.value] = run_tracking(config, mode, ticks, dt, progress)
        one_tick = run_tracking(config, mode, 1, dt)
        first_positions.append(one_tick.final_position)

    a, b = first_positions
    report.first_tick_agreement = float(np.linalg.norm(a - b) / np.linalg.norm(a))

    logger.info(f"Backends agree to {report.first_tick_agreement:.3e} after one tick")
    return report


def save_report(report: DriftReport, output_path: str) -> None:
    """Save a drift report summary to JSON."""
    data = {
        'summary': {
            'body_id': report.body_id,
            'ticks': report.ticks,
            'dt': report.dt,
            'digits': report.digits,
            'threshold': report.threshold,
            'first_tick_agreement': report.first_tick_agreement,
            'passed': report.passed,
        },
        'backends': {
            name: {
                'final_error': h.final_error,
                'max_error': h.max_error,
                'mean_error': float(np.mean(h.position_error)),
                'max_up_error': float(np.max(h.up_error)),
                'degenerate_ticks': h.degenerate_ticks,
            }
            for name, h in report.histories.items()
        },
    }

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2)

    logger.info(f"Report saved to {output_path}")


def save_history_csv(report: DriftReport, output_path: str) -> None:
    """Save per-tick errors of every backend to CSV."""
    names = list(report.histories)

    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        header = ['tick']
        for name in names:
            header += [f'{name}_position_error', f'{name}_up_error']
        writer.writerow(header)

        for i in range(report.ticks):
            row = [i + 1]
            for name in names:
                h = report.histories[name]
                row += [h.position_error[i], h.up_error[i]]
            writer.writerow(row)

    logger.info(f"Drift history saved to {output_path}")
