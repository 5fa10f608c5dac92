"""
Query compiler: resolves abstract functions to models and plans execution.
"""
import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Type, Union

from .plan import ExecutionPlan, RelationPlan, VariablePlan
from .processors import build_chain
from .registry import CLASSIFY, OBJECTS_IN_FRAME, TRACK, ModelRegistry, default_registry
from .runtime import ExecutionRuntime
from ..common.exceptions import ModelResolutionError, QueryDefinitionError
from ..common.metrics import MetricsCollector
from ..domain.decorators import HistoryProperty, ModelProperty, PairProperty, PropertySpec
from ..domain.entities import Frame, FrameContext, FrameResult
from ..domain.expressions import Expr, as_expr
from ..domain.history import HistoryStore
from ..domain.query import Query
from ..domain.relation import Relation
from ..domain.repositories import ResultRepository
from ..domain.vobj import VObj

logger = logging.getLogger(__name__)


class CompiledQuery:
    """
    A query bound to models. Calling it with a frame runs the plan on that
    frame; history persists across calls.
    """

    def __init__(
        self,
        query: Query,
        plan: ExecutionPlan,
        history: Optional[HistoryStore] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        repository: Optional[ResultRepository] = None,
        keep_matches: bool = True
    ):
        self.query = query
        self.plan = plan
        self.history = history or HistoryStore()
        for prop, length in plan.history_requirements().items():
            self.history.configure(prop, length)
        self.runtime = ExecutionRuntime(plan.bindings, self.history, metrics_collector)
        self.processor_chain = build_chain(plan, self.runtime, repository)
        self.repository = repository
        self.keep_matches = keep_matches
        self._matched: List[FrameResult] = []

    @property
    def name(self) -> str:
        return self.plan.query_name

    def __call__(self, frame: Frame) -> FrameResult:
        self.runtime.frame_id = frame.id
        context = self.processor_chain.process(FrameContext(frame=frame))
        result = context.to_result()
        if result.matched and self.keep_matches:
            self._matched.append(result)
        return result

    def run(self, frames: Iterable[Frame]) -> Iterator[FrameResult]:
        for frame in frames:
            yield self(frame)

    def finish(self):
        """Returns the query's video_output over the matched frames."""
        return self.query.video_output(list(self._matched))

    def reset(self):
        self.history.clear()
        self._matched.clear()

    def explain(self) -> str:
        return "\n".join(self.plan.describe())


class QueryCompiler:
    """
    Compiles a Query into a CompiledQuery:

    1. collects the query variables and builds the constraint and output
       expressions symbolically;
    2. closes over property inputs per VObj class in dependency order,
       rejecting unknown properties and cycles;
    3. derives history requirements from stateful and history markers;
    4. binds every abstract function the plan needs through the registry.
    """

    def __init__(self, registry: Optional[ModelRegistry] = None):
        self.registry = registry if registry is not None else default_registry()

    def compile(
        self,
        query: Union[Query, Type[Query]],
        history: Optional[HistoryStore] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        repository: Optional[ResultRepository] = None,
        keep_matches: bool = True
    ) -> CompiledQuery:
        query = self._instantiate(query)
        plan = self.plan(query)
        logger.info("Compiled plan:\n" + "\n".join(plan.describe()))
        return CompiledQuery(
            query, plan,
            history=history,
            metrics_collector=metrics_collector,
            repository=repository,
            keep_matches=keep_matches
        )

    def plan(self, query: Union[Query, Type[Query]]) -> ExecutionPlan:
        query = self._instantiate(query)
        name = query.query_name()

        variables = query.variables()
        if not variables:
            raise QueryDefinitionError(f"Query {name} declares no VObj variables")
        relations = query.relations()
        members = self._relation_members(relations, variables, name)

        constraint = as_expr(self._build(query.frame_constraint, name))
        output_value = self._build(query.frame_output, name)
        output = None if output_value is None else as_expr(output_value)

        expressions = [constraint] + ([output] if output is not None else [])
        self._check_variables(expressions, {**variables, **relations}, name)

        refs: Set = set()
        for expr in expressions:
            refs |= expr.references()

        # Relations first: their pair properties request member properties.
        member_requests: Dict[str, Set[str]] = {var_name: set() for var_name in variables}
        relation_plans: Dict[str, RelationPlan] = {}
        for rel_name, rel in relations.items():
            requested = {prop for (owner, prop) in refs if owner == rel_name}
            if not requested:
                continue
            cls = type(rel)
            order = self._order(cls, requested, allow_pairs=True)
            table = cls.properties()
            first, second = members[rel_name]
            for prop in order:
                spec = _unwrap(table[prop])
                if isinstance(spec, PairProperty):
                    member_requests[first].add(spec.input1)
                    member_requests[second].add(spec.input2)
            relation_plans[rel_name] = RelationPlan(
                rel_name, cls, (first, second), order, self._retained(table, order)
            )

        plans: Dict[str, VariablePlan] = {}
        for var_name, var in variables.items():
            cls = type(var)
            requested = {prop for (owner, prop) in refs if owner == var_name} | member_requests[var_name]
            order = self._order(cls, requested)
            plans[var_name] = VariablePlan(var_name, cls, order, self._retained(cls.properties(), order))

        needs_tracking = any(p.history for p in [*plans.values(), *relation_plans.values()])
        needs_classification = any(p.vobj_class.labels for p in plans.values())

        owners = [(p.vobj_class, p.properties) for p in plans.values()]
        owners += [(r.relation_class, r.properties) for r in relation_plans.values()]
        bindings = self._bind(owners, needs_tracking, needs_classification, name)

        return ExecutionPlan(
            query_name=name,
            variables=plans,
            constraint=constraint,
            output=output,
            bindings=bindings,
            needs_tracking=needs_tracking,
            needs_classification=needs_classification,
            relations=relation_plans
        )

    @staticmethod
    def _instantiate(query) -> Query:
        if isinstance(query, type):
            if not issubclass(query, Query):
                raise QueryDefinitionError(f"{query.__name__} is not a Query subclass")
            return query()
        if not isinstance(query, Query):
            raise QueryDefinitionError(f"Expected a Query, got {type(query).__name__}")
        return query

    @staticmethod
    def _build(method: Callable, name: str):
        try:
            return method()
        except AttributeError as e:
            raise QueryDefinitionError(f"{name}.{method.__name__}: {e}") from e

    @staticmethod
    def _relation_members(
        relations: Dict[str, Relation],
        variables: Dict[str, VObj],
        name: str
    ) -> Dict[str, Tuple[str, str]]:
        members: Dict[str, Tuple[str, str]] = {}
        for rel_name, rel in relations.items():
            names = []
            for member in rel.members:
                var_name = next((n for n, v in variables.items() if v is member), None)
                if var_name is None:
                    raise QueryDefinitionError(
                        f"Query {name}: relation {rel_name!r} relates {member!r}, which is not one of its variables"
                    )
                names.append(var_name)
            members[rel_name] = (names[0], names[1])
        return members

    @staticmethod
    def _check_variables(expressions: List[Expr], known: Dict[str, object], name: str):
        for expr in expressions:
            for var_name in expr.variables():
                if var_name is None or var_name not in known:
                    raise QueryDefinitionError(
                        f"Query {name} refers to a VObj that is not one of its variables: {var_name!r}"
                    )

    @staticmethod
    def _retained(table: Dict[str, PropertySpec], order: List[str]) -> Dict[str, int]:
        retained: Dict[str, int] = {}
        for prop in order:
            for key, length in table[prop].history_requirements().items():
                retained[key] = max(retained.get(key, 0), length)
        return retained

    @staticmethod
    def _order(cls: type, requested: Set[str], allow_pairs: bool = False) -> List[str]:
        table = cls.properties()
        order: List[str] = []
        state: Dict[str, str] = {}

        def visit(prop: str, path: List[str]):
            if prop not in table:
                via = f" (input of {path[-1]!r})" if path else ""
                raise QueryDefinitionError(f"{cls.__name__} has no property {prop!r}{via}")
            if not allow_pairs and isinstance(_unwrap(table[prop]), PairProperty):
                raise QueryDefinitionError(
                    f"{cls.__name__}.{prop} takes input1/input2 and is only valid on a Relation"
                )
            mark = state.get(prop)
            if mark == 'done':
                return
            if mark == 'visiting':
                cycle = " -> ".join(path[path.index(prop):] + [prop])
                raise QueryDefinitionError(f"Cyclic property inputs in {cls.__name__}: {cycle}")
            state[prop] = 'visiting'
            for dep in table[prop].dependencies():
                visit(dep, path + [prop])
            state[prop] = 'done'
            order.append(prop)

        for prop in sorted(requested):
            visit(prop, [])
        return order

    def _bind(
        self,
        owners: List[Tuple[type, List[str]]],
        needs_tracking: bool,
        needs_classification: bool,
        name: str
    ) -> Dict[str, Callable]:
        required: Dict[str, str] = {OBJECTS_IN_FRAME: "object detection"}
        if needs_classification:
            required[CLASSIFY] = "typed VObj classes"
        if needs_tracking:
            required[TRACK] = "cross-frame history"

        for cls, properties in owners:
            table = cls.properties()
            for prop in properties:
                spec = _unwrap(table[prop])
                if isinstance(spec, ModelProperty) and spec.model_name not in required:
                    required[spec.model_name] = f"{cls.__name__}.{prop}"

        bindings: Dict[str, Callable] = {}
        for function, needed_by in required.items():
            try:
                bindings[function] = self.registry.resolve(function)
            except ModelResolutionError as e:
                raise ModelResolutionError(
                    f"Query {name}: abstract function {function!r} (needed by {needed_by}) has no model bound"
                ) from e
        return bindings


def _unwrap(spec: PropertySpec) -> PropertySpec:
    """The marker inside a decorator-form history property."""
    if isinstance(spec, HistoryProperty) and spec.inner is not None:
        return spec.inner
    return spec


def compile_query(query, registry: Optional[ModelRegistry] = None, **kwargs) -> CompiledQuery:
    """
    Compiles ``query`` against ``registry`` (the default registry when omitted).
    """
    return QueryCompiler(registry).compile(query, **kwargs)
