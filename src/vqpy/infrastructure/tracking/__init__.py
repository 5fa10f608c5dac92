from .supervision_tracker import SupervisionTracker
