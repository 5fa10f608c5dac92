import logging
import numpy as np
from ultralytics import YOLO
from typing import Iterable, List, Optional
from ...domain.entities import Detection
from ...domain.protocols import ObjectDetector
from ...common.logging import setup_logger, log_execution_time
from ...common.exceptions import DetectionError

class YoloObjectDetector(ObjectDetector):
    """
    Implementation of objects_in_frame using YOLO.
    """
    def __init__(
        self,
        model_path: str = "yolo11n.pt",
        conf_threshold: float = 0.5,
        classes: Optional[Iterable[str]] = None,
        device: Optional[str] = None
    ):
        self.logger = setup_logger(__name__)
        if device is None:
            device = self._select_device()

        self.logger.info(f"Using inference device: {device}")
        self.model = YOLO(model_path)
        self.model.to(device)
        self.conf_threshold = conf_threshold
        # Restrict to these labels; None keeps every class the model knows
        self.classes = set(classes) if classes else None

    @staticmethod
    def _select_device() -> str:
        # Dynamic device selection
        import torch
        if torch.cuda.is_available():
            return 'cuda'
        if torch.backends.mps.is_available():
            return 'mps'
        return 'cpu'

    def _label(self, class_id: int) -> str:
        names = getattr(self.model, 'names', None) or {}
        return names.get(class_id, str(class_id)) if isinstance(names, dict) else str(class_id)

    @log_execution_time(logging.getLogger(__name__))
    def detect(self, image: np.ndarray) -> List[Detection]:
        """
        Detects objects in the given frame image.
        """
        try:
            # Run inference
            results = self.model(image, verbose=False, conf=self.conf_threshold)[0]

            detections = []
            for box in results.boxes:
                label = self._label(int(box.cls[0]))
                if self.classes is not None and label not in self.classes:
                    continue

                x1, y1, x2, y2 = map(float, box.xyxy[0])
                detections.append(Detection(
                    bbox=(x1, y1, x2, y2),
                    class_name=label,
                    score=float(box.conf[0])
                ))

            return detections
        except Exception as e:
            self.logger.error(f"Detection failed: {e}")
            raise DetectionError(f"YOLO inference failed: {e}") from e
