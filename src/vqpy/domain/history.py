"""
Bounded storage of past property values for tracked objects.
"""
import logging
from collections import deque
from typing import Any, Deque, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Keeps the last N observations of each retained property, per object.

    Observations are ordered oldest first; at most one observation is kept
    per frame. Objects not recorded for more than ``ttl_frames`` frames are
    dropped by ``evict``.
    """

    def __init__(self, default_length: int = 30, ttl_frames: int = 90):
        if default_length < 1:
            raise ValueError("default_length must be >= 1")
        self.default_length = default_length
        self.ttl_frames = ttl_frames
        self._lengths: Dict[str, int] = {}
        self._buffers: Dict[Hashable, Dict[str, Deque[Tuple[int, Any]]]] = {}
        self._last_seen: Dict[Hashable, int] = {}

    def configure(self, prop: str, length: int):
        """Requests retention of ``length`` observations of ``prop``; keeps the max."""
        if length < 1:
            raise ValueError(f"history length for {prop!r} must be >= 1")
        new_length = max(self._lengths.get(prop, 0), length)
        if new_length == self._lengths.get(prop):
            return
        self._lengths[prop] = new_length
        for props in self._buffers.values():
            if prop in props:
                props[prop] = deque(props[prop], maxlen=new_length)

    def length(self, prop: str) -> int:
        return self._lengths.get(prop, self.default_length)

    @property
    def requirements(self) -> Dict[str, int]:
        return dict(self._lengths)

    def record(self, key: Hashable, prop: str, value: Any, frame_id: int):
        props = self._buffers.setdefault(key, {})
        buffer = props.get(prop)
        if buffer is None:
            buffer = props[prop] = deque(maxlen=self.length(prop))
        if buffer and buffer[-1][0] == frame_id:
            buffer[-1] = (frame_id, value)
        else:
            buffer.append((frame_id, value))
        self._last_seen[key] = max(self._last_seen.get(key, frame_id), frame_id)

    def get(self, key: Hashable, prop: str, n: Optional[int] = None) -> tuple:
        buffer = self._buffers.get(key, {}).get(prop)
        if not buffer:
            return ()
        values = [value for _, value in buffer]
        if n is not None:
            values = values[-n:] if n > 0 else []
        return tuple(values)

    def frames(self, key: Hashable, prop: str) -> tuple:
        buffer = self._buffers.get(key, {}).get(prop)
        return tuple(frame_id for frame_id, _ in buffer) if buffer else ()

    def evict(self, frame_id: int) -> int:
        stale = [
            key for key, seen in self._last_seen.items()
            if frame_id - seen > self.ttl_frames
        ]
        for key in stale:
            self._buffers.pop(key, None)
            del self._last_seen[key]
        if stale:
            logger.debug(f"Evicted history of {len(stale)} objects at frame {frame_id}")
        return len(stale)

    def clear(self):
        self._buffers.clear()
        self._last_seen.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)
