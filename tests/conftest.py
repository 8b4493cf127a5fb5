"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.config import CaptureConfig, Config, DetectionConfig  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  path: "models/yolov8n.onnx"

detection:
  conf_threshold: 0.5
  iou_threshold: 0.4
  interval_ms: 500
  classes:
    0: subject
    76: trigger

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "model": {
            "path": "models/yolov8n.onnx",
            "providers": ["CPUExecutionProvider"],
        },
        "detection": {
            "input_size": 640,
            "conf_threshold": 0.5,
            "iou_threshold": 0.4,
            "interval_ms": 500,
            "classes": {0: "subject", 76: "trigger"},
        },
        "capture": {
            "enabled": True,
            "alert_seconds": 5.0,
            "image_format": "png",
        },
        "web": {"enabled": False, "port": 8000},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def detection_cfg():
    """Detection config whose timer never fires on its own during a test."""
    return DetectionConfig(interval_ms=60_000)


@pytest.fixture
def session_cfg(detection_cfg):
    return Config(detection=detection_cfg, capture=CaptureConfig(alert_seconds=5.0))
