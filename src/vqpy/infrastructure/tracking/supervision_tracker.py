"""
Supervision-based object tracker.
"""
from collections import deque
from typing import Deque, Dict, List
import numpy as np
import supervision as sv
from ...domain.entities import Detection
from ...domain.protocols import ObjectTracker

class SupervisionTracker(ObjectTracker):
    """
    Wrapper around supervision's ByteTrack. Assigns track ids and stabilises
    each track's label by majority vote over its recent labels. Label history
    of a track is dropped once ByteTrack would have lost it.
    """
    def __init__(
        self,
        track_activation_threshold: float = 0.15,
        minimum_matching_threshold: float = 0.8,
        lost_track_buffer: int = 60,
        frame_rate: int = 30,
        label_history: int = 30
    ):
        self.tracker = sv.ByteTrack(
            track_activation_threshold=track_activation_threshold,
            minimum_matching_threshold=minimum_matching_threshold,
            lost_track_buffer=lost_track_buffer,
            frame_rate=frame_rate
        )
        # ByteTrack works on integer class ids; labels get ids on first sight
        self.name_to_id: Dict[str, int] = {}
        self.id_to_name: Dict[int, str] = {}
        self.label_history = label_history
        # {tracker_id: deque of class ids}
        self.class_history: Dict[int, Deque[int]] = {}
        self.last_seen: Dict[int, int] = {}
        # Same scaling ByteTrack applies to lost_track_buffer
        self.max_frames_lost = int(frame_rate / 30.0 * lost_track_buffer)
        self.frame_index = 0

    def _class_id(self, label: str) -> int:
        if label not in self.name_to_id:
            class_id = len(self.name_to_id)
            self.name_to_id[label] = class_id
            self.id_to_name[class_id] = label
        return self.name_to_id[label]

    def track(self, detections: List[Detection]) -> List[Detection]:
        # Convert to supervision Detections
        if detections:
            xyxy = np.array([d.bbox for d in detections], dtype=float)
            conf = np.array([d.score for d in detections], dtype=float)
            class_ids = np.array([self._class_id(d.class_name) for d in detections], dtype=int)
        else:
            xyxy = np.empty((0, 4))
            conf = np.array([], dtype=float)
            class_ids = np.array([], dtype=int)

        sv_detections = sv.Detections(
            xyxy=xyxy,
            confidence=conf,
            class_id=class_ids
        )

        tracked = self.tracker.update_with_detections(sv_detections)
        self.frame_index += 1

        results = []
        for i in range(len(tracked)):
            tracker_id = int(tracked.tracker_id[i])
            current_class_id = int(tracked.class_id[i])
            confidence = float(tracked.confidence[i]) if tracked.confidence is not None else 0.0

            history = self.class_history.setdefault(tracker_id, deque(maxlen=self.label_history))
            history.append(current_class_id)
            self.last_seen[tracker_id] = self.frame_index

            # Most frequent class id; ties go to the earliest seen
            stable_class_id = max(history, key=list(history).count)

            results.append(Detection(
                bbox=tuple(float(v) for v in tracked.xyxy[i]),
                class_name=self.id_to_name.get(stable_class_id, str(stable_class_id)),
                score=confidence,
                track_id=tracker_id
            ))

        self._forget_lost_tracks()
        return results

    def _forget_lost_tracks(self):
        lost = [
            tracker_id for tracker_id, seen in self.last_seen.items()
            if self.frame_index - seen > self.max_frames_lost
        ]
        for tracker_id in lost:
            del self.last_seen[tracker_id]
            self.class_history.pop(tracker_id, None)

    def reset(self):
        self.tracker.reset()
        self.class_history.clear()
        self.last_seen.clear()
        self.frame_index = 0
