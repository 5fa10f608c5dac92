"""
Local camera source.
"""
from .video_source import OpenCVSource
from .base import SourceConfig
from ...common.exceptions import SourceError


class WebcamSource(OpenCVSource):
    """Live frames from a local capture device, addressed by index."""

    def __init__(self, device_id: int, config: SourceConfig):
        if device_id < 0:
            raise SourceError(f"Invalid camera index: {device_id}")
        super().__init__(device_id, config)

    @property
    def is_live(self) -> bool:
        return True
