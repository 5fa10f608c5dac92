"""
Chooses and opens the frame source of a query.
"""
import logging
import os
from typing import Callable, Dict, Union

from .base import SourceConfig
from .image_source import ImageFolderSource
from .video_source import VideoFileSource
from .webcam_source import WebcamSource
from ...domain.protocols import FrameProducer

logger = logging.getLogger(__name__)

SourceSpec = Union[int, str]


def _open_webcam(source: SourceSpec, config: SourceConfig) -> FrameProducer:
    return WebcamSource(int(source), config)


def _open_images(source: SourceSpec, config: SourceConfig) -> FrameProducer:
    return ImageFolderSource(str(source), config)


def _open_capture(source: SourceSpec, config: SourceConfig) -> FrameProducer:
    return VideoFileSource(source, config)


# source_type -> opener; files and network streams both go through cv2.VideoCapture
SOURCE_TYPES: Dict[str, Callable[[SourceSpec, SourceConfig], FrameProducer]] = {
    "webcam": _open_webcam,
    "images": _open_images,
    "file": _open_capture,
    "stream": _open_capture,
}


def detect_source_type(source: SourceSpec) -> str:
    """Camera index, image directory, URL or (otherwise) video file."""
    text = str(source)
    if isinstance(source, int) or text.isdigit():
        return "webcam"
    if os.path.isdir(text):
        return "images"
    if "://" in text:
        return "stream"
    return "file"


def create_source(source_config: SourceSpec, source_type: str = "auto", **kwargs) -> FrameProducer:
    """
    Opens ``source_config`` as a FrameProducer. Keyword options (buffer size,
    resize target) are validated by SourceConfig; ``None`` values keep defaults.
    """
    if source_type == "auto":
        source_type = detect_source_type(source_config)
    opener = SOURCE_TYPES.get(source_type)
    if opener is None:
        raise ValueError(
            f"Unknown source type {source_type!r}; expected 'auto' or one of {', '.join(sorted(SOURCE_TYPES))}"
        )
    config = SourceConfig(**{k: v for k, v in kwargs.items() if v is not None})
    logger.debug(f"Opening {source_type} source {source_config!r}")
    return opener(source_config, config)
