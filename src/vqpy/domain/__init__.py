"""
Domain module initialization.
"""
from .entities import (
    Frame,
    Detection,
    Match,
    FrameResult,
    FrameContext
)
from .protocols import (
    ObjectDetector,
    ObjectTracker,
    ObjectClassifier,
    FrameProducer
)
from .repositories import ResultRepository
from .expressions import Expr, apply, as_expr
from .history import HistoryStore
from .decorators import model, stateless, stateful, history, PropertySpec
from .vobj import VObj, Person, Vehicle, Car, Bicycle
from .relation import Relation
from .query import Query
