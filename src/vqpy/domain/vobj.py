"""
Video objects (VObj) and the typed subclasses shipped with the library.
"""
from typing import Any, Dict, Hashable, Optional, Tuple

from .decorators import BuiltinProperty, PropertySpec
from .entities import Detection, Frame
from .expressions import BinOp, Const, PropertyRef, VarRef, as_expr


def _center(vobj) -> Tuple[float, float]:
    x1, y1, x2, y2 = vobj._detection.bbox
    return ((x1 + x2) / 2.0, (y1 + y2) / 2.0)


def _crop(vobj):
    image = vobj._frame.image if vobj._frame is not None else None
    if image is None:
        return None
    height, width = image.shape[:2]
    x1, y1, x2, y2 = vobj._detection.bbox
    x1, x2 = max(0, int(x1)), min(width, int(x2))
    y1, y2 = max(0, int(y1)), min(height, int(y2))
    if x2 <= x1 or y2 <= y1:
        return None
    return image[y1:y2, x1:x2]


class PropertyHolder:
    """
    Declared-property machinery shared by video objects and relations.

    Unbound instances live in a Query and turn property reads into
    expressions; bound instances compute properties lazily and cache them
    for the current frame.
    """

    _vqpy_name: Optional[str] = None
    _runtime = None
    _cache: Optional[Dict[str, Any]] = None

    @classmethod
    def properties(cls) -> Dict[str, PropertySpec]:
        """Property table merged along the MRO; subclasses win by name."""
        table = cls.__dict__.get('_property_table')
        if table is not None:
            return table
        merged: Dict[str, PropertySpec] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, PropertySpec):
                    merged[name] = value
                elif name in merged:
                    del merged[name]
        cls._property_table = merged
        return merged

    @classmethod
    def history_name(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    @property
    def is_bound(self) -> bool:
        raise NotImplementedError

    @property
    def history_key(self) -> Optional[Hashable]:
        """Key of this object's buffers in the history store; None when untracked."""
        return None

    def _get(self, name: str) -> Any:
        if not self.is_bound:
            return PropertyRef(self, name)
        if name in self._cache:
            return self._cache[name]
        spec = type(self).properties()[name]
        value = spec.compute(self)
        self._cache[name] = value
        return value

    def _raw(self, name: str) -> Any:
        return type(self).properties()[name].raw(self)

    def _call_model(self, model_name: str, arg: Any) -> Any:
        return self._runtime.call_model(model_name, arg)

    def _history(self, prop: str, length: int) -> tuple:
        key = self.history_key
        if key is None:
            return ()
        return self._runtime.history.get(key, prop, length)


class VObj(PropertyHolder):
    """
    A detected entity within a frame.

    Instantiated inside a Query (``self.car = Car()``) a VObj is a query
    variable: reading its properties builds expressions. At run time the
    engine binds one instance per detection and frame.
    """

    # Labels accepted by the classify model; empty accepts every detection.
    labels: Tuple[str, ...] = ()

    bbox = BuiltinProperty(lambda self: tuple(self._detection.bbox))
    class_name = BuiltinProperty(lambda self: self._detection.class_name)
    score = BuiltinProperty(lambda self: self._detection.score)
    track_id = BuiltinProperty(lambda self: self._detection.track_id)
    center = BuiltinProperty(_center)
    image = BuiltinProperty(_crop)

    _detection: Optional[Detection] = None
    _frame: Optional[Frame] = None

    def __init__(self, name: Optional[str] = None):
        self._vqpy_name = name

    @classmethod
    def bind(cls, detection: Detection, frame: Frame, runtime) -> 'VObj':
        """Creates a runtime instance for one detection in one frame."""
        obj = cls.__new__(cls)
        obj._vqpy_name = None
        obj._detection = detection
        obj._frame = frame
        obj._runtime = runtime
        obj._cache = {}
        return obj

    @classmethod
    def accepts(cls, label: Optional[str]) -> bool:
        return not cls.labels or label in cls.labels

    @property
    def is_bound(self) -> bool:
        return self._detection is not None

    @property
    def history_key(self) -> Optional[Tuple[str, int]]:
        track_id = self._detection.track_id
        if track_id is None:
            return None
        return (type(self).history_name(), track_id)

    def __vqpy_expr__(self):
        if self.is_bound:
            return Const(self)
        return VarRef(self)

    def __eq__(self, other):
        if not self.is_bound:
            return BinOp('eq', VarRef(self), as_expr(other))
        if not isinstance(other, VObj):
            return NotImplemented
        if self is other:
            return True
        return (
            type(self) is type(other)
            and self.track_id is not None
            and self.track_id == other.track_id
        )

    def __ne__(self, other):
        if not self.is_bound:
            return BinOp('ne', VarRef(self), as_expr(other))
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        if self.is_bound and self._detection.track_id is not None:
            return hash(self.history_key)
        return id(self)

    def __repr__(self):
        if not self.is_bound:
            return f"<{type(self).__name__} variable {self._vqpy_name!r}>"
        d = self._detection
        return f"{type(self).__name__}(track_id={d.track_id}, class_name={d.class_name!r}, bbox={tuple(d.bbox)})"


class Person(VObj):
    labels = ("person",)


class Vehicle(VObj):
    labels = ("car", "bus", "truck", "motorcycle")


class Car(Vehicle):
    labels = ("car",)


class Bicycle(VObj):
    labels = ("bicycle",)
