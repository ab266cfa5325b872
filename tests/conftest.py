"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class FakeModel:
    """
    Stand-in for a loaded detection model.

    Each execute() call returns the next entry of `responses` (the last one is
    repeated); an entry that is an exception instance is raised instead.
    """

    def __init__(self, responses, input_shape=(1, 416, 416, 3)):
        self.input_shape = list(input_shape)
        self._responses = list(responses)
        self.inputs = []

    def execute(self, tensor):
        self.inputs.append(tensor)
        idx = min(len(self.inputs) - 1, len(self._responses) - 1)
        response = self._responses[idx]
        if isinstance(response, Exception):
            raise response
        return [np.array(t, dtype=np.float32) for t in response]


def make_outputs(detections, max_det=5):
    """
    Build (boxes, scores, classes) model outputs padded to max_det rows.

    detections: list of ((x1, y1, x2, y2), score, class_id), normalized coords.
    """
    boxes = np.zeros((1, max_det, 4), dtype=np.float32)
    scores = np.zeros((1, max_det), dtype=np.float32)
    classes = np.zeros((1, max_det), dtype=np.float32)
    for i, (box, score, class_id) in enumerate(detections):
        boxes[0, i] = box
        scores[0, i] = score
        classes[0, i] = class_id
    return [boxes, scores, classes, np.array([len(detections)], dtype=np.int32)]


@pytest.fixture
def fake_model_cls():
    return FakeModel


@pytest.fixture
def outputs_factory():
    return make_outputs


@pytest.fixture
def frame_640x480():
    rng = np.random.default_rng(0)
    return rng.integers(0, 256, size=(480, 640, 3), dtype=np.uint8)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
model:
  path: "models/yolov5n.onnx"
  provider: "cpu"
  input_size: [640, 640]

detection:
  conf_threshold: 0.25

source:
  device_id: 0
  resolution: [640, 480]
  fps: 30

video:
  max_consecutive_failures: 10
  on_error: "stop"

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "model": {
            "path": "models/yolov5n.onnx",
            "provider": "cpu",
            "input_size": [640, 640],
        },
        "detection": {
            "conf_threshold": 0.25,
        },
        "source": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "video": {
            "max_consecutive_failures": 10,
            "on_error": "stop",
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
