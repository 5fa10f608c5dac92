"""
Base class for user-authored video queries.
"""
from typing import Any, Dict, List, Type

from .entities import FrameResult
from .expressions import Const
from .relation import Relation
from .vobj import PropertyHolder, VObj


class Query:
    """
    A declarative query over video objects.

    Subclasses declare their variables as VObj instances (in ``__init__`` or
    as class attributes) and override ``frame_constraint`` and
    ``frame_output``:

        class FindRedCar(Query):
            def __init__(self):
                self.car = Car()

            def frame_constraint(self):
                return self.car.color == "red"

            def frame_output(self):
                return self.car.bbox

    Relations over two variables are declared the same way
    (``self.pair = SpatialRelation(self.car1, self.car2)``).
    """

    @classmethod
    def query_name(cls) -> str:
        return cls.__name__

    def _collect(self, kind: Type[PropertyHolder]) -> Dict[str, Any]:
        """
        Unbound attributes of type ``kind`` keyed by attribute name. Names are
        written back so expressions can refer to them.
        """
        found: Dict[str, Any] = {}
        seen = set()
        candidates = {}
        for klass in reversed(type(self).__mro__):
            candidates.update(vars(klass))
        candidates.update(vars(self))

        for name, value in candidates.items():
            if name.startswith('_') or not isinstance(value, kind) or value.is_bound:
                continue
            if id(value) in seen:
                continue
            seen.add(id(value))
            value._vqpy_name = name
            found[name] = value
        return found

    def variables(self) -> Dict[str, VObj]:
        return self._collect(VObj)

    def relations(self) -> Dict[str, Relation]:
        return self._collect(Relation)

    def frame_constraint(self):
        """Predicate over the variables; every binding satisfying it is a match."""
        return Const(True)

    def frame_output(self):
        """Value produced for each match; None keeps only the bindings."""
        return None

    def video_output(self, results: List[FrameResult]) -> Any:
        """Aggregates the matched frames once the video has been processed."""
        return results
