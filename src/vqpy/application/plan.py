"""
Execution plan produced by the query compiler.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Type

from ..domain.expressions import Expr
from ..domain.relation import Relation
from ..domain.vobj import VObj


@dataclass
class VariablePlan:
    """
    How one query variable is evaluated.
    """
    name: str
    vobj_class: Type[VObj]
    properties: List[str]              # topologically ordered, inputs first
    history: Dict[str, int] = field(default_factory=dict)  # retained property -> observations

    @property
    def eager_properties(self) -> List[str]:
        """Properties recorded on every frame, in dependency order."""
        return [p for p in self.properties if p in self.history]


@dataclass
class RelationPlan:
    """
    How one relation between two query variables is evaluated.
    """
    name: str
    relation_class: Type[Relation]
    members: Tuple[str, str]           # variable names of vobj1 and vobj2
    properties: List[str]
    history: Dict[str, int] = field(default_factory=dict)

    @property
    def eager_properties(self) -> List[str]:
        return [p for p in self.properties if p in self.history]


@dataclass
class ExecutionPlan:
    query_name: str
    variables: Dict[str, VariablePlan]
    constraint: Expr
    output: Optional[Expr]
    bindings: Dict[str, Callable]
    needs_tracking: bool = False
    needs_classification: bool = False
    relations: Dict[str, RelationPlan] = field(default_factory=dict)

    def classes(self) -> List[Type[VObj]]:
        seen: List[Type[VObj]] = []
        for var in self.variables.values():
            if var.vobj_class not in seen:
                seen.append(var.vobj_class)
        return seen

    def eager_properties(self) -> Dict[Type[VObj], List[str]]:
        """Per VObj class, the union of eager properties of its variables."""
        eager: Dict[Type[VObj], List[str]] = {}
        for var in self.variables.values():
            props = eager.setdefault(var.vobj_class, [])
            for prop in var.eager_properties:
                if prop not in props:
                    props.append(prop)
        return eager

    def eager_relations(self) -> List[RelationPlan]:
        return [rel for rel in self.relations.values() if rel.eager_properties]

    def history_requirements(self) -> Dict[str, int]:
        merged: Dict[str, int] = {}
        for plan in [*self.variables.values(), *self.relations.values()]:
            for prop, length in plan.history.items():
                merged[prop] = max(merged.get(prop, 0), length)
        return merged

    def describe(self) -> List[str]:
        lines = [f"query {self.query_name}"]
        for var in self.variables.values():
            lines.append(f"  var {var.name}: {var.vobj_class.__name__} labels={list(var.vobj_class.labels) or 'any'}")
            lines.extend(_describe_properties(var.vobj_class, var.properties, var.history))
        for rel in self.relations.values():
            lines.append(f"  rel {rel.name}: {rel.relation_class.__name__}({', '.join(rel.members)})")
            lines.extend(_describe_properties(rel.relation_class, rel.properties, rel.history))
        lines.append(f"  constraint: {self.constraint!r}")
        if self.output is not None:
            lines.append(f"  output: {self.output!r}")
        lines.append("  bindings:")
        for name, model in self.bindings.items():
            target = getattr(model, '__qualname__', type(model).__name__)
            lines.append(f"    {name} -> {target}")
        return lines


def _describe_properties(cls, properties: List[str], history: Dict[str, int]) -> List[str]:
    table = cls.properties()
    lines = []
    for prop in properties:
        retained = f" [retain {history[prop]}]" if prop in history else ""
        lines.append(f"    {prop} <- {table[prop].describe()}{retained}")
    return lines
