"""
OpenCV-based video source implementation.
"""
import logging
import cv2
import time
from typing import Iterator, Union
from ...domain.entities import Frame
from ...domain.protocols import FrameProducer
from ...common.exceptions import SourceError
from .base import SourceConfig

logger = logging.getLogger(__name__)

STREAM_PREFIXES = ("http", "rtsp", "udp")

class OpenCVSource(FrameProducer):
    """
    Base class for OpenCV-based video sources.
    """
    def __init__(self, source: Union[str, int], config: SourceConfig):
        self.source = source
        self.config = config
        self.cap = None
        self._initialize()

    @property
    def is_stream(self) -> bool:
        return isinstance(self.source, str) and self.source.startswith(STREAM_PREFIXES)

    @property
    def is_live(self) -> bool:
        return self.is_stream

    def _open(self):
        self.cap = cv2.VideoCapture(self.source)
        if self.config.buffer_size:
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

    def _initialize(self):
        try:
            logger.info(f"Opening video source: {self.source}")
            self._open()

            if not self.cap.isOpened():
                raise SourceError(
                    f"Could not open video source: {self.source}. "
                    f"Check if the file exists or the camera is connected."
                )

            if self.config.target_width and self.config.target_height:
                logger.info(f"Will resize frames to {self.config.target_width}x{self.config.target_height}")
        except cv2.error as e:
            raise SourceError(f"OpenCV error initializing source: {e}") from e

    def _timestamp(self, frame_id: int) -> float:
        if self.is_live:
            return time.time()
        position_ms = self.cap.get(cv2.CAP_PROP_POS_MSEC)
        if position_ms and position_ms > 0:
            return position_ms / 1000.0
        fps = self.cap.get(cv2.CAP_PROP_FPS) or self.config.fps
        return frame_id / fps

    def _reconnect(self) -> bool:
        self.cap.release()
        time.sleep(1.0)
        try:
            self._open()
            return self.cap.isOpened()
        except cv2.error as e:
            logger.error(f"Reconnection failed: {e}")
            return False

    def __iter__(self) -> Iterator[Frame]:
        frame_id = 0
        retry_count = 0

        while self.cap is not None:
            ret, img = self.cap.read()
            if not ret:
                if not self.is_stream:
                    # End of file
                    break

                logger.warning(f"Stream disconnected. Reconnecting... (Attempt {retry_count + 1})")
                if self._reconnect():
                    logger.info("Stream reconnected.")
                    retry_count = 0
                    continue
                retry_count += 1
                if retry_count > self.config.max_retries:
                    logger.error("Max retries reached. Stopping.")
                    break
                continue

            retry_count = 0

            if self.config.target_width and self.config.target_height:
                img = cv2.resize(img, (self.config.target_width, self.config.target_height))

            yield Frame(
                id=frame_id,
                timestamp=self._timestamp(frame_id),
                image=img
            )
            frame_id += 1
        logger.debug("OpenCVSource iterator finished.")

    def release(self):
        if self.cap:
            self.cap.release()
            self.cap = None

class VideoFileSource(OpenCVSource):
    """
    Reads from a local video file or a network stream URL.
    """
    pass
