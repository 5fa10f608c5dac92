from abc import ABC, abstractmethod
from itertools import product
from typing import Dict, List, Optional, Sequence, Type

from .plan import ExecutionPlan, RelationPlan
from .registry import CLASSIFY, OBJECTS_IN_FRAME, TRACK
from .runtime import ExecutionRuntime
from ..domain.entities import FrameContext, Match
from ..domain.expressions import truthy
from ..domain.relation import Relation
from ..domain.repositories import ResultRepository
from ..domain.vobj import VObj


class FrameProcessor(ABC):
    """
    Abstract handler in the Chain of Responsibility pattern for frame processing.
    """

    def __init__(self):
        self._next_processor: Optional['FrameProcessor'] = None

    def set_next(self, processor: 'FrameProcessor') -> 'FrameProcessor':
        """
        Sets the next processor in the chain.
        Returns the passed processor to allow chaining (fluent interface).
        """
        self._next_processor = processor
        return processor

    def process(self, context: FrameContext) -> FrameContext:
        """
        Template method: executes current processing logic and then delegates to the next processor.
        """
        result = self._process(context)

        if self._next_processor:
            return self._next_processor.process(result)
        return result

    @abstractmethod
    def _process(self, context: FrameContext) -> FrameContext:
        """
        Specific processing logic to be implemented by concrete classes.
        """
        pass


class DetectionProcessor(FrameProcessor):
    """
    Runs objects_in_frame. This is the first link in the chain.
    """

    def __init__(self, runtime: ExecutionRuntime):
        super().__init__()
        self.runtime = runtime

    def _process(self, context: FrameContext) -> FrameContext:
        detections = self.runtime.call_model(OBJECTS_IN_FRAME, context.frame.image)
        context.detections = list(detections or [])
        return context


class TrackingProcessor(FrameProcessor):
    """
    Runs track so detections carry identities across frames.
    Called on empty frames too, so the tracker can age lost tracks.
    """

    def __init__(self, runtime: ExecutionRuntime):
        super().__init__()
        self.runtime = runtime

    def _process(self, context: FrameContext) -> FrameContext:
        context.detections = list(self.runtime.call_model(TRACK, context.detections) or [])
        return context


class ClassificationProcessor(FrameProcessor):
    """
    Binds detections to VObj classes. A detection becomes a candidate for a
    variable when the classify model returns one of the class labels.
    One bound object is shared by all variables of the same class.
    """

    def __init__(self, runtime: ExecutionRuntime, variables: Dict[str, Type[VObj]], use_classifier: bool = True):
        super().__init__()
        self.runtime = runtime
        self.variables = variables
        self.use_classifier = use_classifier

    def _process(self, context: FrameContext) -> FrameContext:
        if self.use_classifier:
            labels = [self.runtime.call_model(CLASSIFY, d) for d in context.detections]
        else:
            labels = [d.class_name for d in context.detections]

        bound: Dict[Type[VObj], List[VObj]] = {}
        for cls in set(self.variables.values()):
            bound[cls] = [
                cls.bind(detection, context.frame, self.runtime)
                for detection, label in zip(context.detections, labels)
                if cls.accepts(label)
            ]

        context.candidates = {name: bound[cls] for name, cls in self.variables.items()}
        return context


def _bind_relation(context: FrameContext, runtime: ExecutionRuntime, rel: RelationPlan, first: VObj, second: VObj) -> Relation:
    key = (rel.name, id(first), id(second))
    bound = context.relations.get(key)
    if bound is None:
        bound = context.relations[key] = rel.relation_class.bind(first, second, runtime)
    return bound


class HistoryProcessor(FrameProcessor):
    """
    Records retained properties of every tracked candidate, whether or not it
    ends up matching, then evicts objects that left the scene. Relations are
    recorded for every ordered pair of distinct tracked candidates.
    """

    def __init__(
        self,
        runtime: ExecutionRuntime,
        eager: Dict[Type[VObj], List[str]],
        relations: Sequence[RelationPlan] = ()
    ):
        super().__init__()
        self.runtime = runtime
        self.eager = eager
        self.relations = list(relations)

    def _process(self, context: FrameContext) -> FrameContext:
        store = self.runtime.history
        frame_id = context.frame.id
        seen = set()
        for objects in context.candidates.values():
            for obj in objects:
                key = obj.history_key
                if id(obj) in seen or key is None:
                    continue
                seen.add(id(obj))
                for prop in self.eager.get(type(obj), ()):
                    store.record(key, prop, obj._raw(prop), frame_id)

        for rel in self.relations:
            first_name, second_name = rel.members
            for first in context.candidates.get(first_name, []):
                for second in context.candidates.get(second_name, []):
                    if first._detection is second._detection:
                        continue
                    bound = _bind_relation(context, self.runtime, rel, first, second)
                    key = bound.history_key
                    if key is None:
                        continue
                    for prop in rel.eager_properties:
                        store.record(key, prop, bound._raw(prop), frame_id)

        store.evict(frame_id)
        return context


class ConstraintProcessor(FrameProcessor):
    """
    Evaluates the constraint over every assignment of distinct detections to
    the query variables and collects the outputs of the satisfying ones.
    """

    def __init__(self, plan: ExecutionPlan, runtime: ExecutionRuntime):
        super().__init__()
        self.plan = plan
        self.runtime = runtime
        self.names = list(plan.variables)

    def _process(self, context: FrameContext) -> FrameContext:
        pools = [context.candidates.get(name, []) for name in self.names]
        if not all(pools):
            return context

        index = {id(detection): i for i, detection in enumerate(context.detections)}
        for combo in product(*pools):
            if len({id(obj._detection) for obj in combo}) < len(combo):
                continue
            env = dict(zip(self.names, combo))
            for rel in self.plan.relations.values():
                first, second = (env[name] for name in rel.members)
                env[rel.name] = _bind_relation(context, self.runtime, rel, first, second)
            if not truthy(self.plan.constraint.evaluate(env)):
                continue
            output = self.plan.output.evaluate(env) if self.plan.output is not None else None
            context.matches.append(Match(
                bindings={name: obj.track_id for name, obj in zip(self.names, combo)},
                output=output,
                detection_index={
                    name: index[id(obj._detection)]
                    for name, obj in zip(self.names, combo)
                    if id(obj._detection) in index
                }
            ))
        return context


class PersistenceProcessor(FrameProcessor):
    """
    Saves frames with at least one match.
    """

    def __init__(self, repository: ResultRepository, query_name: str):
        super().__init__()
        self.repository = repository
        self.query_name = query_name

    def _process(self, context: FrameContext) -> FrameContext:
        if context.matches:
            self.repository.save(self.query_name, context.to_result())
        return context


def build_chain(
    plan: ExecutionPlan,
    runtime: ExecutionRuntime,
    repository: Optional[ResultRepository] = None
) -> FrameProcessor:
    """
    Wires the processor chain for a plan: detection, tracking (when bound),
    classification, history, constraint, persistence (when configured).
    """
    chain = DetectionProcessor(runtime)
    current_link: FrameProcessor = chain

    if TRACK in plan.bindings:
        current_link = current_link.set_next(TrackingProcessor(runtime))

    variables = {name: var.vobj_class for name, var in plan.variables.items()}
    current_link = current_link.set_next(
        ClassificationProcessor(runtime, variables, use_classifier=CLASSIFY in plan.bindings)
    )

    eager = {cls: props for cls, props in plan.eager_properties().items() if props}
    relations = plan.eager_relations()
    if eager or relations:
        current_link = current_link.set_next(HistoryProcessor(runtime, eager, relations))

    current_link = current_link.set_next(ConstraintProcessor(plan, runtime))

    if repository is not None:
        current_link = current_link.set_next(PersistenceProcessor(repository, plan.query_name))

    return chain
