"""
Domain entities for the query runtime.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

@dataclass
class Frame:
    """
    Represents a single video frame.
    """
    id: int
    timestamp: float
    image: object # numpy array

@dataclass
class Detection:
    """
    An object found in a frame by the objects_in_frame model.
    """
    bbox: Tuple[float, float, float, float]  # x1, y1, x2, y2
    class_name: str
    score: float
    track_id: Optional[int] = None # assigned by the track model

@dataclass
class Match:
    """
    One assignment of query variables to objects that satisfies the constraint.
    """
    bindings: Dict[str, Optional[int]] # variable name -> track id
    output: Any = None
    detection_index: Dict[str, int] = field(default_factory=dict) # variable name -> index in FrameResult.detections

@dataclass
class FrameResult:
    """
    Result of running a compiled query over a single frame.
    """
    frame_id: int
    timestamp: float
    matches: List[Match] = field(default_factory=list)
    detections: List[Detection] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return bool(self.matches)

    @property
    def detection_count(self) -> int:
        return len(self.detections)

    def bound_detections(self, match: Match) -> Dict[str, Detection]:
        """Detections bound to the variables of one match."""
        return {name: self.detections[i] for name, i in match.detection_index.items()}

@dataclass
class FrameContext:
    """
    Mutable per-frame state handed along the processor chain.
    """
    frame: Frame
    detections: List[Detection] = field(default_factory=list)
    candidates: Dict[str, list] = field(default_factory=dict) # variable name -> bound VObjs
    matches: List[Match] = field(default_factory=list)
    relations: Dict[tuple, Any] = field(default_factory=dict) # (relation, id(vobj1), id(vobj2)) -> bound relation

    def to_result(self) -> FrameResult:
        return FrameResult(
            frame_id=self.frame.id,
            timestamp=self.frame.timestamp,
            matches=list(self.matches),
            detections=list(self.detections)
        )
