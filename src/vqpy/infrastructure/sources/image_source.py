"""
Image-sequence source: a directory of frames read in file name order.
"""
import logging
import cv2
from pathlib import Path
from typing import Iterator, List
from ...domain.entities import Frame
from ...domain.protocols import FrameProducer
from ...common.exceptions import SourceError
from .base import SourceConfig

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp"}

class ImageFolderSource(FrameProducer):
    """
    Reads every image in a directory as one frame; timestamps follow config.fps.
    """
    def __init__(self, directory: str, config: SourceConfig):
        self.directory = Path(directory)
        self.config = config
        if not self.directory.is_dir():
            raise SourceError(f"Image directory not found: {self.directory}")
        self.paths: List[Path] = sorted(
            p for p in self.directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES
        )
        if not self.paths:
            raise SourceError(f"No images found in {self.directory}")
        self._released = False
        logger.info(f"Found {len(self.paths)} frames in {self.directory}")

    def __iter__(self) -> Iterator[Frame]:
        for frame_id, path in enumerate(self.paths):
            if self._released:
                break
            img = cv2.imread(str(path))
            if img is None:
                raise SourceError(f"Could not read image: {path}")
            if self.config.target_width and self.config.target_height:
                img = cv2.resize(img, (self.config.target_width, self.config.target_height))
            yield Frame(id=frame_id, timestamp=frame_id / self.config.fps, image=img)

    def release(self):
        self._released = True
