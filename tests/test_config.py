"""
Smoke tests for configuration loading and validation.
"""

import logging

import pytest

from main import load_config, validate_config
from models.config import Config
from ops.logging import setup_logging


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["camera", "model", "detection", "log_path", "log_level"])
    def test_missing_required_section(self, valid_config, section):
        """Each required section is enforced."""
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error.lower()

    def test_optional_sections_may_be_absent(self, valid_config):
        """capture and web fall back to defaults."""
        del valid_config["capture"]
        del valid_config["web"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_device_id_type(self, valid_config):
        """device_id with invalid type fails."""
        valid_config["camera"]["device_id"] = [1, 2, 3]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_negative_device_id(self, valid_config):
        """Negative integer device_id fails."""
        valid_config["camera"]["device_id"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_string_device_id_valid(self, valid_config):
        """String device_id (URL or video file) is valid."""
        valid_config["camera"]["device_id"] = "rtsp://192.168.1.1/stream"

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_resolution_length(self, valid_config):
        """Resolution with wrong length fails."""
        valid_config["camera"]["resolution"] = [1920]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error.lower()

    def test_invalid_fps(self, valid_config):
        """Non-positive fps fails."""
        valid_config["camera"]["fps"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "fps" in error.lower()

    def test_invalid_camera_backend(self, valid_config):
        """Unknown camera backend fails."""
        valid_config["camera"]["backend"] = "picamera2"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "backend" in error.lower()

    def test_synthetic_backend_valid(self, valid_config):
        valid_config["camera"]["backend"] = "synthetic"

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_model_path_required(self, valid_config):
        valid_config["model"]["path"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "model.path" in error

    @pytest.mark.parametrize("key,value", [
        ("conf_threshold", 1.5),
        ("iou_threshold", -0.1),
        ("conf_threshold", "high"),
    ])
    def test_thresholds_in_unit_range(self, valid_config, key, value):
        valid_config["detection"][key] = value

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert key in error

    def test_interval_must_be_positive(self, valid_config):
        valid_config["detection"]["interval_ms"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "interval_ms" in error

    def test_unknown_class_label(self, valid_config):
        valid_config["detection"]["classes"] = {0: "subject", 76: "trigger", 2: "car"}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "label" in error

    def test_class_table_needs_trigger(self, valid_config):
        valid_config["detection"]["classes"] = {0: "subject"}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "trigger" in error

    def test_string_class_keys_accepted(self, valid_config):
        valid_config["detection"]["classes"] = {"0": "subject", "76": "trigger"}

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_image_format(self, valid_config):
        valid_config["capture"]["image_format"] = "gif"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "image_format" in error

    def test_invalid_port(self, valid_config):
        valid_config["web"]["port"] = 70000

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "port" in error

    def test_invalid_log_level(self, valid_config):
        """Invalid log level fails."""
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error.lower()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config_path = str(temp_config_dir / "config.yaml")

        config = load_config(config_path)

        assert config["camera"]["backend"] == "opencv"
        assert config["camera"]["resolution"] == [640, 480]
        assert config["detection"]["classes"] == {0: "subject", 76: "trigger"}

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
camera:
  resolution: [1280, 720]
detection:
  conf_threshold: 0.6
""")

        config = load_config(str(config_yaml))

        assert config["camera"]["resolution"] == [1280, 720]
        assert config["detection"]["conf_threshold"] == 0.6
        # Original values preserved
        assert config["camera"]["device_id"] == 0
        assert config["detection"]["iou_threshold"] == 0.4

    def test_explicit_config_applied_last(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("detection:\n  interval_ms: 250\n")
        explicit = temp_config_dir / "bench.yaml"
        explicit.write_text("detection:\n  interval_ms: 100\nweb:\n  enabled: true\n")

        config = load_config(str(explicit))

        assert config["detection"]["interval_ms"] == 100
        assert config["web"]["enabled"] is True
        assert config["detection"]["conf_threshold"] == 0.5

    def test_loaded_config_validates_and_maps(self, temp_config_dir):
        config = load_config(str(temp_config_dir / "config.yaml"))

        is_valid, error = validate_config(config)
        cfg = Config.from_dict(config)

        assert is_valid is True, error
        assert cfg.detection.monitored_indices == (0, 76)
        assert cfg.capture.alert_seconds == 5.0

    def test_broken_yaml_exits(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("camera: [unclosed\n")

        with pytest.raises(SystemExit):
            load_config(str(temp_config_dir / "config.yaml"))


class TestSetupLogging:
    def test_creates_log_dir(self, tmp_path):
        log_path = tmp_path / "logs" / "detector.log"
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging(str(log_path), "DEBUG")
            logging.info("hello")
            assert log_path.exists()
            assert root.level == logging.DEBUG
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers, level = saved
            root.setLevel(level)

    def test_invalid_level(self, tmp_path):
        with pytest.raises(ValueError):
            setup_logging(str(tmp_path / "x.log"), "VERBOSE")
