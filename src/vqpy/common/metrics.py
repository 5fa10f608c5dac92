from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict
import threading
import time

MAX_SAMPLES = 1000

@dataclass
class QueryMetrics:
    """Runtime metrics of a query execution"""
    fps: float
    frames_processed: int
    frames_matched: int
    matches: int
    avg_model_time_ms: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'fps': self.fps,
            'frames_processed': self.frames_processed,
            'frames_matched': self.frames_matched,
            'matches': self.matches,
            'avg_model_time_ms': dict(self.avg_model_time_ms)
        }


class MetricsCollector:
    """
    Collects per-model timings and match counts. Safe to share between the
    capture, processing and reporting threads of an async pipeline.
    """

    def __init__(self):
        self.model_times: Dict[str, Deque[float]] = {}
        self.frames_processed = 0
        self.frames_matched = 0
        self.matches = 0
        self.start_time = time.time()
        self._lock = threading.Lock()

    def record_model(self, name: str, duration_ms: float):
        with self._lock:
            samples = self.model_times.get(name)
            if samples is None:
                samples = self.model_times[name] = deque(maxlen=MAX_SAMPLES)
            samples.append(duration_ms)

    def record_matches(self, count: int):
        with self._lock:
            self.matches += count
            if count:
                self.frames_matched += 1

    def increment_frames(self):
        with self._lock:
            self.frames_processed += 1

    def get_metrics(self) -> QueryMetrics:
        with self._lock:
            elapsed = time.time() - self.start_time
            fps = self.frames_processed / elapsed if elapsed > 0 else 0.0
            averages = {
                name: sum(samples) / len(samples)
                for name, samples in self.model_times.items() if samples
            }
            return QueryMetrics(
                fps=fps,
                frames_processed=self.frames_processed,
                frames_matched=self.frames_matched,
                matches=self.matches,
                avg_model_time_ms=averages
            )
