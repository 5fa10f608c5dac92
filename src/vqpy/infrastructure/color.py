"""
Dominant color of an object crop, in HSV space.
"""
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

# OpenCV hue range is 0-179
HUE_RANGES: Dict[str, List[Tuple[int, int]]] = {
    'red': [(0, 10), (170, 180)],
    'orange': [(10, 22)],
    'yellow': [(22, 35)],
    'green': [(35, 85)],
    'blue': [(85, 130)],
    'purple': [(130, 170)],
}


class DominantColorClassifier:
    """
    Names the dominant color of a BGR image crop.

    Pixels with low saturation or brightness are achromatic; when they
    dominate the crop the result is black, white or gray.
    """

    def __init__(self, min_saturation: int = 60, min_value: int = 50, chromatic_ratio: float = 0.3):
        self.min_saturation = min_saturation
        self.min_value = min_value
        self.chromatic_ratio = chromatic_ratio

    def predict(self, image: Optional[np.ndarray]) -> Optional[str]:
        if image is None or image.size == 0:
            return None

        hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
        hue, saturation, value = hsv[..., 0], hsv[..., 1], hsv[..., 2]
        chromatic = (saturation >= self.min_saturation) & (value >= self.min_value)

        if chromatic.mean() < self.chromatic_ratio:
            brightness = float(value.mean())
            if brightness < 60:
                return 'black'
            if brightness > 190:
                return 'white'
            return 'gray'

        hues = hue[chromatic]
        counts = {
            name: sum(int(np.count_nonzero((hues >= lo) & (hues < hi))) for lo, hi in ranges)
            for name, ranges in HUE_RANGES.items()
        }
        return max(counts, key=counts.get)
