"""
Tests for configuration loading.
"""

import pytest
import tempfile

from orrery_tracker.config import (
    DEFAULT_PRECISION_DIGITS,
    PrecisionConfigurationError,
    PrecisionMode,
    PrecisionSettings,
    TrackerConfig,
)


class TestPrecisionMode:
    """Tests for precision mode parsing."""

    @pytest.mark.parametrize("text", ["high_precision", "HIGH_PRECISION", "high-precision"])
    def test_parse_high_precision(self, text):
        assert PrecisionMode.parse(text) is PrecisionMode.HIGH_PRECISION

    def test_parse_enum_passthrough(self):
        assert PrecisionMode.parse(PrecisionMode.STANDARD) is PrecisionMode.STANDARD

    def test_parse_unknown(self):
        with pytest.raises(PrecisionConfigurationError):
            PrecisionMode.parse("double-double")

    def test_other(self):
        assert PrecisionMode.STANDARD.other() is PrecisionMode.HIGH_PRECISION
        assert PrecisionMode.HIGH_PRECISION.other() is PrecisionMode.STANDARD


class TestPrecisionSettings:
    """Tests for precision validation."""

    def test_defaults(self):
        settings = PrecisionSettings()
        assert settings.mode is PrecisionMode.STANDARD
        assert settings.digits == DEFAULT_PRECISION_DIGITS

    def test_too_few_digits(self):
        with pytest.raises(PrecisionConfigurationError):
            PrecisionSettings(mode="high_precision", digits=12)

    def test_non_integer_digits(self):
        with pytest.raises(PrecisionConfigurationError):
            PrecisionSettings(mode="high_precision", digits=50.5)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            PrecisionSettings(digits=1)


class TestTrackerConfigYAML:
    """Tests for YAML loading and saving."""

    @pytest.fixture
    def sample_yaml(self):
        return """precision:
  mode: high_precision
  digits: 64
camera:
  initial_position: [0, -90, 30]
  initial_up: [0, 0, 1]
tracking:
  reference_body: sun
  use_ghost_camera: true
  compare_backends: true
orbit:
  body_id: pluto
  semi_major_axis: 39.5
  eccentricity: 0.25
  inclination: 17.1
  period: 500
error_threshold: 1.0e-7
"""

    @pytest.fixture
    def temp_yaml_file(self, sample_yaml):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(sample_yaml)
            return f.name

    def test_from_yaml(self, temp_yaml_file):
        config = TrackerConfig.from_yaml(temp_yaml_file)

        assert config.precision.mode is PrecisionMode.HIGH_PRECISION
        assert config.precision.digits == 64
        assert config.camera.initial_position == (0.0, -90.0, 30.0)
        assert config.camera.initial_target == (0.0, 0.0, 0.0)
        assert config.tracking.use_ghost_camera is True
        assert config.tracking.align_on_select is False
        assert config.tracking.compare_backends is True
        assert config.orbit.body_id == "pluto"
        assert config.orbit.eccentricity == pytest.approx(0.25)
        assert config.orbit.period == pytest.approx(500.0)
        assert config.error_threshold == pytest.approx(1e-7)

    def test_round_trip(self, temp_yaml_file, tmp_path):
        config = TrackerConfig.from_yaml(temp_yaml_file)
        out = tmp_path / "saved.yaml"
        config.to_yaml(str(out))

        reloaded = TrackerConfig.from_yaml(str(out))
        assert reloaded == config

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = TrackerConfig.from_yaml(str(path))
        assert config == TrackerConfig()

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            TrackerConfig.from_yaml("/nonexistent/tracker.yaml")

    def test_bad_digits_in_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("precision:\n  mode: high_precision\n  digits: 8\n")
        with pytest.raises(PrecisionConfigurationError):
            TrackerConfig.from_yaml(str(path))

    def test_bad_camera_vector(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("camera:\n  initial_position: [1, 2]\n")
        with pytest.raises(ValueError):
            TrackerConfig.from_yaml(str(path))

    def test_bad_eccentricity(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("orbit:\n  eccentricity: 1.5\n")
        with pytest.raises(ValueError):
            TrackerConfig.from_yaml(str(path))

