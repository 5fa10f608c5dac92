from .yolo_detector import YoloObjectDetector
