"""
Application layer: model registry, query compiler and execution pipelines.
"""
from .registry import (
    ModelRegistry,
    ModelFactory,
    CallableFactory,
    LazyFactory,
    default_registry,
    register_model,
    OBJECTS_IN_FRAME,
    TRACK,
    CLASSIFY
)
from .plan import ExecutionPlan, VariablePlan
from .compiler import QueryCompiler, CompiledQuery, compile_query
from .pipelines import QueryPipeline, AsyncQueryPipeline
