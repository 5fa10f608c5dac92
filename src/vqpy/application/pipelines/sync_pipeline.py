import logging
from typing import Iterator, Tuple, Optional
from ...domain.protocols import FrameProducer
from ...domain.entities import FrameResult, Frame
from ..compiler import CompiledQuery
from ...common.metrics import MetricsCollector

logger = logging.getLogger(__name__)

class QueryPipeline:
    """
    Runs a compiled query over a frame source:
    Source -> CompiledQuery -> FrameResult
    """
    def __init__(
        self,
        source: FrameProducer,
        compiled_query: CompiledQuery,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        self.source = source
        self.compiled_query = compiled_query
        self.metrics_collector = metrics_collector

    def run(self) -> Iterator[Tuple[Frame, FrameResult]]:
        """
        Runs the pipeline, yielding each frame with its query result.
        """
        for frame in self.source:
            result = self.compiled_query(frame)

            if self.metrics_collector:
                self.metrics_collector.increment_frames()
                self.metrics_collector.record_matches(len(result.matches))

            yield frame, result

    def stop(self):
        """
        Stops the pipeline and releases resources.
        """
        logger.info("Stopping pipeline")
        self.source.release()
