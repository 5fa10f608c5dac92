import cv2
import numpy as np
from typing import Optional
from ...domain.entities import FrameResult

MATCH_COLOR = (0, 0, 255)   # Red
OTHER_COLOR = (0, 255, 0)   # Green

class OpenCVVisualizer:
    """
    Draws detections on a frame, highlighting objects bound in a match.
    """
    def __init__(self, show_unmatched: bool = True):
        self.show_unmatched = show_unmatched

    def draw(
        self,
        frame: np.ndarray,
        result: Optional[FrameResult]
    ) -> np.ndarray:
        """
        Draws bounding boxes and labels; detections bound in a match are drawn in red.
        """
        if result is None:
            return frame

        matched = {
            index
            for match in result.matches
            for index in match.detection_index.values()
        }

        for index, detection in enumerate(result.detections):
            is_match = index in matched
            if not is_match and not self.show_unmatched:
                continue
            x1, y1, x2, y2 = map(int, detection.bbox)
            color = MATCH_COLOR if is_match else OTHER_COLOR
            label = f"{detection.class_name} {detection.track_id if detection.track_id is not None else ''}".strip()
            cv2.rectangle(frame, (x1, y1), (x2, y2), color, 2)
            cv2.putText(frame, label, (x1, y1 - 10), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 2)

        cv2.putText(frame, f"Matches: {len(result.matches)}", (20, 40),
                    cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 255), 2)
        return frame
