"""
Domain protocols for the models bound to abstract functions.
"""
from typing import Any, Iterator, List, Protocol
from .entities import Detection, Frame

class ObjectDetector(Protocol):
    """
    Protocol for the objects_in_frame abstract function.
    """
    def detect(self, image: object) -> List[Detection]:
        ...

class ObjectTracker(Protocol):
    """
    Protocol for the track abstract function (cross-frame identity).
    """
    def track(self, detections: List[Detection]) -> List[Detection]:
        ...

class ObjectClassifier(Protocol):
    """
    Protocol for the classify abstract function used by typed VObj classes.
    """
    def classify(self, detection: Detection) -> str:
        ...

class FrameProducer(Protocol):
    """
    Abstract base class for frame production (video source).
    """
    def __iter__(self) -> Iterator[Frame]:
        ...

    def release(self):
        ...
