"""
Label-based classifier bound to the classify abstract function by default.
"""
from typing import Dict, Optional
from ..domain.entities import Detection
from ..domain.protocols import ObjectClassifier

class LabelClassifier(ObjectClassifier):
    """
    Classifies a detection by the label its detector produced,
    optionally renaming labels (e.g. {'automobile': 'car'}).
    """
    def __init__(self, aliases: Optional[Dict[str, str]] = None):
        self.aliases = dict(aliases or {})

    def classify(self, detection: Detection) -> str:
        return self.aliases.get(detection.class_name, detection.class_name)
