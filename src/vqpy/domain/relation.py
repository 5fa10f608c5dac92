"""
Relations between two video objects.
"""
from typing import Optional, Tuple

from .vobj import PropertyHolder, VObj
from ..common.exceptions import QueryDefinitionError


class Relation(PropertyHolder):
    """
    Properties of a pair of video objects.

        class SpatialRelation(Relation):
            @stateless(input1="center", input2="center")
            def distance(self, centers):
                ...

            @stateful(input="distance", history_len=2)
            def getting_close(self, distances):
                return distances[-1] < distances[-2]

    Created in a Query over two of its variables
    (``self.pair = SpatialRelation(self.car1, self.car2)``). The engine binds
    one instance per pair of distinct objects in a frame; history is kept per
    ordered pair of track ids.
    """

    vobj1: Optional[VObj] = None
    vobj2: Optional[VObj] = None
    _bound = False

    def __init__(self, vobj1: VObj, vobj2: VObj, name: Optional[str] = None):
        for member in (vobj1, vobj2):
            if not isinstance(member, VObj) or member.is_bound:
                raise QueryDefinitionError(
                    f"{type(self).__name__} relates query variables, got {member!r}"
                )
        self.vobj1 = vobj1
        self.vobj2 = vobj2
        self._vqpy_name = name

    @classmethod
    def bind(cls, vobj1: VObj, vobj2: VObj, runtime) -> 'Relation':
        """Creates a runtime instance for two bound objects of one frame."""
        obj = cls.__new__(cls)
        obj._vqpy_name = None
        obj.vobj1 = vobj1
        obj.vobj2 = vobj2
        obj._runtime = runtime
        obj._cache = {}
        obj._bound = True
        return obj

    @property
    def members(self) -> Tuple[VObj, VObj]:
        return (self.vobj1, self.vobj2)

    @property
    def is_bound(self) -> bool:
        return self._bound

    @property
    def history_key(self) -> Optional[Tuple[str, int, int]]:
        first, second = self.vobj1.track_id, self.vobj2.track_id
        if first is None or second is None:
            return None
        return (type(self).history_name(), first, second)

    def __repr__(self):
        if not self.is_bound:
            return f"<{type(self).__name__} relation {self._vqpy_name!r}>"
        return f"{type(self).__name__}({self.vobj1!r}, {self.vobj2!r})"
