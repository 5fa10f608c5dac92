import pytest
import time
from unittest.mock import Mock
from vqpy.application.pipelines import AsyncQueryPipeline, QueryPipeline
from vqpy.common.exceptions import ExecutionError
from vqpy.common.metrics import MetricsCollector
from vqpy.domain.entities import Frame, FrameResult, Match
from vqpy.domain.protocols import FrameProducer


class MockSource:
    def __init__(self, frames, delay=0.0):
        self.frames = frames
        self.delay = delay
        self.released = False

    def __iter__(self):
        for frame in self.frames:
            yield frame
            if self.delay:
                time.sleep(self.delay)  # Simulate capture latency

    def release(self):
        self.released = True


class MockCompiledQuery:
    """Matches every even frame."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.seen = []

    def __call__(self, frame):
        if frame.id == self.fail_on:
            raise ExecutionError("model failed", frame_id=frame.id, function="color")
        self.seen.append(frame.id)
        matches = [Match(bindings={"car": 1})] if frame.id % 2 == 0 else []
        return FrameResult(frame_id=frame.id, timestamp=frame.timestamp, matches=matches)


def make_frames(count):
    return [Frame(id=i, timestamp=float(i), image=None) for i in range(count)]


def test_sync_pipeline_run():
    source = MockSource(make_frames(3))
    metrics = MetricsCollector()
    pipeline = QueryPipeline(source, MockCompiledQuery(), metrics)

    results = list(pipeline.run())

    assert [frame.id for frame, _ in results] == [0, 1, 2]
    assert [result.matched for _, result in results] == [True, False, True]
    assert metrics.frames_processed == 3
    assert metrics.frames_matched == 2
    assert metrics.matches == 2


def test_sync_pipeline_stop_releases_source():
    source = Mock(spec=FrameProducer)
    pipeline = QueryPipeline(source, MockCompiledQuery())
    pipeline.stop()
    source.release.assert_called_once()


def test_async_pipeline_initialization():
    pipeline = AsyncQueryPipeline(MockSource([]), MockCompiledQuery())
    assert pipeline.frame_queue.maxsize == 10
    assert pipeline.result_queue.maxsize == 30


def test_async_pipeline_processes_every_frame_in_order():
    frames = make_frames(25)
    source = MockSource(frames)
    query = MockCompiledQuery()
    metrics = MetricsCollector()
    # Small buffers force backpressure instead of dropping
    pipeline = AsyncQueryPipeline(source, query, metrics, frame_buffer_size=2, result_buffer_size=2)

    results = list(pipeline.run())

    assert [frame.id for frame, _ in results] == list(range(25))
    assert query.seen == list(range(25))
    assert metrics.frames_processed == 25
    assert source.released


def test_async_pipeline_get_latest():
    source = MockSource(make_frames(2), delay=0.01)
    pipeline = AsyncQueryPipeline(source, MockCompiledQuery())
    assert pipeline.get_latest() is None

    results = list(pipeline.run())

    frame, result = pipeline.get_latest()
    assert frame.id == results[-1][0].id
    assert result.frame_id == 1


def test_async_pipeline_reraises_worker_error():
    source = MockSource(make_frames(5))
    pipeline = AsyncQueryPipeline(source, MockCompiledQuery(fail_on=2))

    received = []
    with pytest.raises(ExecutionError) as excinfo:
        for frame, _ in pipeline.run():
            received.append(frame.id)

    assert excinfo.value.frame_id == 2
    assert received == [0, 1]
    assert source.released


def test_async_pipeline_stop_midway():
    source = MockSource(make_frames(100), delay=0.01)
    pipeline = AsyncQueryPipeline(source, MockCompiledQuery())

    gen = pipeline.run()
    first = next(gen)
    gen.close()

    assert first[0].id == 0
    assert source.released
    assert not pipeline._capture_thread.is_alive()
    assert not pipeline._processing_thread.is_alive()
