"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import Detection  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
video:
  device_id: 0

recognition:
  backend: "mock"
  score_threshold: 0.05
  max_boxes: 100

scheduler:
  frame_skip: 2

anomaly:
  history_window: 10.0

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "video": {
            "device_id": "samples/plaza.mp4",
        },
        "recognition": {
            "backend": "yolo",
            "model": "yolov8n.pt",
            "score_threshold": 0.05,
            "max_boxes": 100,
        },
        "scheduler": {
            "frame_skip": 2,
            "tick_interval": 0.03,
        },
        "anomaly": {
            "history_window": 10.0,
            "alert_threshold": 0.8,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def make_detection():
    """Factory for detections given as (x, y, w, h)."""
    def _make(class_name, x=0.0, y=0.0, w=60.0, h=60.0, score=0.9):
        return Detection.from_xywh(x, y, w, h, class_name=class_name, score=score)
    return _make
