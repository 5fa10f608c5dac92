"""
Infrastructure module initialization.
"""
from .classification import LabelClassifier
from .color import DominantColorClassifier
from .repositories import CSVResultRepository, JSONLinesResultRepository, create_repository
from .sources import create_source, SourceConfig, VideoFileSource, WebcamSource, ImageFolderSource
