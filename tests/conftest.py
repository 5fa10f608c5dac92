import pytest
import numpy as np
from vqpy.application.registry import ModelRegistry
from vqpy.domain.entities import Detection, Frame
from vqpy.infrastructure.classification import LabelClassifier


class ScriptedDetector:
    """objects_in_frame stand-in returning one scripted list of detections per call."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    def detect(self, image):
        detections = self.script[self.calls] if self.calls < len(self.script) else []
        self.calls += 1
        return list(detections)


def passthrough_tracker(detections):
    # Scripted detections already carry their track ids
    return detections


def make_frames(count, image=None):
    if image is None:
        image = np.zeros((100, 100, 3), dtype=np.uint8)
    return [Frame(id=i, timestamp=i / 30.0, image=image) for i in range(count)]


@pytest.fixture
def mock_frame():
    return Frame(
        id=0,
        timestamp=0.0,
        image=np.zeros((100, 100, 3), dtype=np.uint8)
    )


@pytest.fixture
def car_detection():
    return Detection(bbox=(10, 10, 50, 40), class_name="car", score=0.9, track_id=1)


@pytest.fixture
def registry():
    registry = ModelRegistry()
    registry.register("classify", LabelClassifier())
    registry.register("track", passthrough_tracker)
    return registry


@pytest.fixture
def scripted_detector():
    return ScriptedDetector


@pytest.fixture
def frames():
    return make_frames
