"""
Frame sources: video files, network streams, webcams and image folders.
"""
from .base import SourceConfig
from .factory import SOURCE_TYPES, create_source, detect_source_type
from .image_source import ImageFolderSource
from .video_source import OpenCVSource, VideoFileSource
from .webcam_source import WebcamSource
