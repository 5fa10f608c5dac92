import logging
from omegaconf import DictConfig, OmegaConf
from hydra.utils import instantiate
from typing import Any, Dict, Optional, Type, Union

from ..common.exceptions import ConfigurationError
from ..common.metrics import MetricsCollector
from ..domain import FrameProducer, HistoryStore, Query, ResultRepository
from ..infrastructure.classification import LabelClassifier
from ..infrastructure.color import DominantColorClassifier
from ..infrastructure.detection.yolo_detector import YoloObjectDetector
from ..infrastructure.repositories import create_repository
from ..infrastructure.sources import create_source
from ..infrastructure.tracking.supervision_tracker import SupervisionTracker
from .compiler import CompiledQuery, QueryCompiler
from .pipelines import AsyncQueryPipeline, QueryPipeline
from .registry import LazyFactory, ModelFactory, ModelRegistry, default_registry

logger = logging.getLogger(__name__)

# Built-in model types selectable with `type:` in the models section
MODEL_TYPES = {
    'yolo': YoloObjectDetector,
    'bytetrack': SupervisionTracker,
    'label': LabelClassifier,
    'color': DominantColorClassifier,
}


class QueryApplicationBuilder:
    """
    Builder pattern for constructing a query application from configuration.
    Centralizes model binding, source creation and pipeline wiring.
    """

    def __init__(self, config: DictConfig, registry: Optional[ModelRegistry] = None):
        self.config = config
        self.query_cfg = config.query
        # Config bindings never leak into the process-wide registry
        self.registry = (registry if registry is not None else default_registry()).copy()
        self.metrics_collector = MetricsCollector()

        # Components
        self.history: Optional[HistoryStore] = None
        self.source: Optional[FrameProducer] = None
        self.repository: Optional[ResultRepository] = None
        self.compiled_query: Optional[CompiledQuery] = None
        self.pipeline: Optional[Union[QueryPipeline, AsyncQueryPipeline]] = None

    def build_models(self) -> 'QueryApplicationBuilder':
        models_cfg = self.query_cfg.get('models', None)
        if not models_cfg:
            return self
        models: Dict[str, Any] = OmegaConf.to_container(models_cfg, resolve=True)
        for name, spec in models.items():
            logger.info(f"Binding abstract function {name!r}")
            self.registry.register(name, self._model_factory(name, spec))
        return self

    @staticmethod
    def _model_factory(name: str, spec: Any) -> ModelFactory:
        if not isinstance(spec, dict):
            raise ConfigurationError(f"models.{name} must be a mapping, got {type(spec).__name__}")

        if '_target_' in spec:
            return LazyFactory(name, instantiate, config=spec)

        params = dict(spec)
        kind = params.pop('type', None)
        if kind not in MODEL_TYPES:
            raise ConfigurationError(
                f"models.{name}: unknown type {kind!r}; expected one of {sorted(MODEL_TYPES)} or a _target_"
            )
        return LazyFactory(name, MODEL_TYPES[kind], **params)

    def build_history(self) -> 'QueryApplicationBuilder':
        history_cfg = self.query_cfg.get('history', {})
        self.history = HistoryStore(
            default_length=history_cfg.get('default_length', 30),
            ttl_frames=history_cfg.get('ttl_frames', 90)
        )
        return self

    def build_source(self) -> 'QueryApplicationBuilder':
        source = self.query_cfg.source
        if source in (None, ""):
            raise ConfigurationError("query.source is not set")
        source_type = self.query_cfg.get('source_type', 'auto')
        logger.info(f"Opening source: {source} (Type: {source_type})")
        perf_cfg = self.query_cfg.get('performance', {})
        self.source = create_source(
            source_config=source,
            source_type=source_type,
            buffer_size=perf_cfg.get('opencv_buffer_size', 3),
            target_width=perf_cfg.get('target_width', None),
            target_height=perf_cfg.get('target_height', None)
        )
        return self

    def build_persistence(self) -> 'QueryApplicationBuilder':
        persistence_cfg = self.query_cfg.get('persistence', {})
        if persistence_cfg.get('enabled', False):
            logger.info("Initializing result persistence")
            try:
                self.repository = create_repository(
                    persistence_cfg.get('type', 'csv'),
                    persistence_cfg.get('output_dir', 'data/query_results')
                )
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        return self

    def build_query(self, query: Union[Query, Type[Query]]) -> CompiledQuery:
        if self.history is None:
            self.build_history()
        compiler = QueryCompiler(self.registry)
        self.compiled_query = compiler.compile(
            query,
            history=self.history,
            metrics_collector=self.metrics_collector,
            repository=self.repository
        )
        return self.compiled_query

    def build_pipeline(self, query: Optional[Union[Query, Type[Query]]] = None) -> Union[QueryPipeline, AsyncQueryPipeline]:
        if query is not None or self.compiled_query is None:
            if query is None:
                raise ConfigurationError("build_pipeline needs a query when none has been built")
            self.build_query(query)
        if not self.source:
            self.build_source()

        pipeline_cfg = self.query_cfg.get('pipeline', {})
        if pipeline_cfg.get('mode', 'sync') == 'async':
            self.pipeline = AsyncQueryPipeline(
                source=self.source,
                compiled_query=self.compiled_query,
                metrics_collector=self.metrics_collector,
                frame_buffer_size=pipeline_cfg.get('frame_buffer_size', 10),
                result_buffer_size=pipeline_cfg.get('result_buffer_size', 30)
            )
        else:
            self.pipeline = QueryPipeline(
                source=self.source,
                compiled_query=self.compiled_query,
                metrics_collector=self.metrics_collector
            )
        return self.pipeline

    def get_components(self) -> Dict:
        """Returns built components for external use (e.g. visualization)"""
        return {
            'registry': self.registry,
            'history': self.history,
            'source': self.source,
            'repository': self.repository,
            'compiled_query': self.compiled_query,
            'metrics_collector': self.metrics_collector
        }
