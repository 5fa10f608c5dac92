"""
VQPy: declarative queries over video objects.

Queries are classes over VObj variables; abstract functions (``@model``)
are bound to concrete models by the compiler, and the compiled query runs
over a stream of frames.
"""
from .common.exceptions import (
    VQPyError,
    QueryDefinitionError,
    ModelResolutionError,
    ExecutionError,
    SourceError,
    ConfigurationError
)
from .domain import (
    Frame,
    Detection,
    Match,
    FrameResult,
    VObj,
    Person,
    Vehicle,
    Car,
    Bicycle,
    Relation,
    Query,
    HistoryStore,
    model,
    stateless,
    stateful,
    history,
    apply
)
from .application import (
    ModelRegistry,
    QueryCompiler,
    CompiledQuery,
    QueryPipeline,
    AsyncQueryPipeline,
    compile_query,
    default_registry,
    register_model
)

__version__ = "0.1.0"
