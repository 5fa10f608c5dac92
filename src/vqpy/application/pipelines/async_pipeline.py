"""
Asynchronous pipeline with threading to run queries without blocking capture.
Uses queues to decouple frame production from query execution.
"""
import logging
import queue
import threading
from typing import Iterator, Tuple, Optional
from ...domain.protocols import FrameProducer
from ...domain.entities import FrameResult, Frame
from ..compiler import CompiledQuery
from ...common.metrics import MetricsCollector

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()


class AsyncQueryPipeline:
    """
    Asynchronous pipeline that decouples:
    1. Frame capture (source thread)
    2. Query execution (processing thread)

    Every captured frame is processed, in order; cross-frame properties
    depend on seeing each frame, so nothing is dropped to catch up.
    """

    def __init__(
        self,
        source: FrameProducer,
        compiled_query: CompiledQuery,
        metrics_collector: Optional[MetricsCollector] = None,
        frame_buffer_size: int = 10,  # Avoid memory overflow
        result_buffer_size: int = 30
    ):
        self.source = source
        self.compiled_query = compiled_query
        self.metrics_collector = metrics_collector

        # Thread-safe queues
        self.frame_queue = queue.Queue(maxsize=frame_buffer_size)
        self.result_queue = queue.Queue(maxsize=result_buffer_size)

        # Thread control
        self._stop_event = threading.Event()
        self._processing_thread = None
        self._capture_thread = None

        # Shared state (thread-safe)
        self._latest: Optional[Tuple[Frame, FrameResult]] = None
        self._latest_lock = threading.Lock()
        self._error: Optional[BaseException] = None

    def start(self):
        """Starts capture and processing threads."""
        self._stop_event.clear()
        self._error = None

        # Thread 1: Frame Capture
        self._capture_thread = threading.Thread(
            target=self._capture_loop,
            name="CaptureThread",
            daemon=True
        )
        self._capture_thread.start()

        # Thread 2: Processing
        self._processing_thread = threading.Thread(
            target=self._processing_loop,
            name="ProcessingThread",
            daemon=True
        )
        self._processing_thread.start()

    def _put(self, target: queue.Queue, item) -> bool:
        # Blocking put gives backpressure; re-check stop so we never hang.
        while not self._stop_event.is_set():
            try:
                target.put(item, timeout=0.5)
                return True
            except queue.Full:
                continue
        return False

    def _capture_loop(self):
        """Thread dedicated to frame capture (I/O bound)."""
        try:
            for frame in self.source:
                if self._stop_event.is_set():
                    break
                if not self._put(self.frame_queue, frame):
                    break
        except Exception as e:
            logger.error(f"Capture thread failed: {e}", exc_info=True)
            self._error = e
        finally:
            self._put(self.frame_queue, _END_OF_STREAM)
            logger.info("Capture thread stopped")

    def _processing_loop(self):
        """Thread dedicated to query execution (CPU bound)."""
        try:
            while not self._stop_event.is_set():
                try:
                    frame = self.frame_queue.get(timeout=0.1)
                except queue.Empty:
                    continue

                if frame is _END_OF_STREAM:
                    break

                result = self.compiled_query(frame)

                with self._latest_lock:
                    self._latest = (frame, result)

                if self.metrics_collector:
                    self.metrics_collector.increment_frames()
                    self.metrics_collector.record_matches(len(result.matches))

                if not self._put(self.result_queue, (frame, result)):
                    break
        except Exception as e:
            logger.error(f"Processing thread failed: {e}", exc_info=True)
            self._error = e
        finally:
            self._put(self.result_queue, _END_OF_STREAM)
            logger.info("Processing thread stopped")

    def run(self) -> Iterator[Tuple[Frame, FrameResult]]:
        """
        Generator yielding (frame, result) pairs in capture order.
        Re-raises a failure from either worker thread.
        """
        self.start()
        try:
            while not self._stop_event.is_set():
                try:
                    item = self.result_queue.get(timeout=0.1)
                except queue.Empty:
                    continue
                if item is _END_OF_STREAM:
                    break
                yield item
            if self._error is not None:
                raise self._error
        finally:
            self.stop()

    def get_latest(self) -> Optional[Tuple[Frame, FrameResult]]:
        """
        Gets the latest processed frame and result without blocking.
        """
        with self._latest_lock:
            return self._latest

    def stop(self):
        """Stops all threads safely."""
        self._stop_event.set()

        # Wait for threads (with timeout to avoid hang)
        if self._capture_thread:
            self._capture_thread.join(timeout=2.0)
        if self._processing_thread:
            self._processing_thread.join(timeout=2.0)

        # Release source
        self.source.release()
        logger.info("Pipeline stopped")
