"""
Tests for the backend drift comparison, report writers and plots.
"""

import copy
import csv
import json

import pytest
import numpy as np

from orrery_tracker.config import OrbitSettings, PrecisionMode, TrackerConfig
from orrery_tracker.plotting import plot_drift
from orrery_tracker.simulation import (
    run_drift_comparison,
    run_tracking,
    save_history_csv,
    save_report,
)


@pytest.fixture
def config():
    return TrackerConfig(
        orbit=OrbitSettings(
            body_id="pluto",
            semi_major_axis=39.5,
            eccentricity=0.2,
            inclination=17.1,
            ascending_node=110.3,
            argument_of_periapsis=113.8,
            period=800.0,
        ),
    )


@pytest.fixture(scope="module")
def long_report():
    config = TrackerConfig(
        orbit=OrbitSettings(
            body_id="pluto",
            semi_major_axis=39.5,
            eccentricity=0.2,
            inclination=17.1,
            ascending_node=110.3,
            argument_of_periapsis=113.8,
            period=800.0,
        ),
    )
    return run_drift_comparison(config, ticks=1000, dt=1.0)


class TestRunTracking:
    """Tests for single-backend runs."""

    def test_history_length(self, config):
        history = run_tracking(config, PrecisionMode.STANDARD, ticks=20, dt=1.0)
        assert history.position_error.shape == (20,)
        assert history.up_error.shape == (20,)
        assert history.mode is PrecisionMode.STANDARD

    def test_camera_follows_orbit(self, config):
        history = run_tracking(config, PrecisionMode.HIGH_PRECISION, ticks=50, dt=2.0)
        assert history.max_error < 1e-9
        assert history.degenerate_ticks == 0

    def test_config_not_mutated(self, config):
        before = copy.deepcopy(config)
        run_tracking(config, PrecisionMode.HIGH_PRECISION, ticks=5, dt=1.0)
        assert config == before


class TestDriftComparison:
    """Long-run comparison of the two backends."""

    def test_first_tick_agreement(self, long_report):
        assert long_report.first_tick_agreement < 1e-6

    def test_both_backends_within_threshold(self, long_report):
        for mode in PrecisionMode:
            assert long_report.history(mode).max_error <= 1e-6
        assert long_report.passed

    def test_high_precision_not_worse(self, long_report):
        standard = long_report.history(PrecisionMode.STANDARD)
        precise = long_report.history(PrecisionMode.HIGH_PRECISION)
        assert precise.final_error <= standard.final_error + 1e-12

    def test_up_vector_stays_on_truth(self, long_report):
        for mode in PrecisionMode:
            assert np.max(long_report.history(mode).up_error) < 1e-6

    def test_zero_ticks_rejected(self, config):
        with pytest.raises(ValueError):
            run_drift_comparison(config, ticks=0)

    def test_threshold_decides_pass(self, config):
        report = run_drift_comparison(config, ticks=30, dt=5.0)
        assert report.passed

        report.threshold = -1.0
        assert not report.passed


class TestReportWriters:
    """Tests for JSON, CSV and plot output."""

    @pytest.fixture
    def report(self, config):
        return run_drift_comparison(config, ticks=25, dt=1.0)

    def test_save_report(self, report, tmp_path):
        path = tmp_path / "drift_report.json"
        save_report(report, str(path))

        with open(path) as f:
            data = json.load(f)

        assert data['summary']['body_id'] == "pluto"
        assert data['summary']['ticks'] == 25
        assert data['summary']['passed'] is True
        assert set(data['backends']) == {"standard", "high_precision"}
        for entry in data['backends'].values():
            assert {'final_error', 'max_error', 'mean_error', 'max_up_error', 'degenerate_ticks'} <= set(entry)

    def test_save_history_csv(self, report, tmp_path):
        path = tmp_path / "drift_history.csv"
        save_history_csv(report, str(path))

        with open(path, newline='') as f:
            rows = list(csv.reader(f))

        assert len(rows) == report.ticks + 1
        assert rows[0][0] == 'tick'
        assert 'high_precision_position_error' in rows[0]
        assert rows[-1][0] == str(report.ticks)

    def test_plot_drift(self, report, tmp_path):
        path = tmp_path / "drift.png"
        plot_drift(report, str(path))
        assert path.exists()
        assert path.stat().st_size > 0
