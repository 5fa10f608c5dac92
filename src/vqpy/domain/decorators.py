"""
Property markers declared on VObj classes.

Each marker is a descriptor holding a PropertySpec. The compiler reads the
specs to find dependencies, abstract functions and history requirements;
bound objects use them to compute values.
"""
from typing import Any, Callable, Optional, Tuple

from ..common.exceptions import QueryDefinitionError


class PropertySpec:
    """
    Base descriptor for a VObj property.
    """
    kind = "property"

    def __init__(self, func: Optional[Callable] = None, input: Optional[str] = None):
        if isinstance(func, staticmethod):
            func = func.__func__
        self.func = func
        self.input = input
        self.name = getattr(func, '__name__', None)
        self.owner = None
        if func is not None:
            self.__doc__ = func.__doc__

    def __set_name__(self, owner, name):
        self.name = name
        self.owner = owner

    def __get__(self, obj, owner=None):
        if obj is None:
            return self
        return obj._get(self.name)

    def dependencies(self) -> Tuple[str, ...]:
        return (self.input,) if self.input else ()

    def history_requirements(self) -> dict:
        """property whose raw values must be retained -> number of observations"""
        return {}

    def compute(self, vobj) -> Any:
        raise NotImplementedError

    def raw(self, vobj) -> Any:
        """Value recorded into the history store for this property."""
        return vobj._get(self.name)

    def describe(self) -> str:
        return f"{self.kind}({self.input})" if self.input else self.kind

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class BuiltinProperty(PropertySpec):
    kind = "builtin"

    def __init__(self, getter: Callable):
        super().__init__(None, None)
        self.getter = getter

    def compute(self, vobj):
        return self.getter(vobj)


class StatelessProperty(PropertySpec):
    kind = "stateless"

    def compute(self, vobj):
        if self.input is None:
            return self.func(vobj)
        return self.func(vobj, vobj._get(self.input))


class PairProperty(PropertySpec):
    """
    A per-frame property of a relation, computed from one input of each
    member. The function receives the pair ``(value1, value2)``.
    """
    kind = "pair"

    def __init__(self, func: Callable, input1: Optional[str], input2: Optional[str]):
        if not input1 or not input2:
            raise QueryDefinitionError(
                f"relation property {getattr(func, '__name__', func)!r} needs both input1 and input2"
            )
        super().__init__(func, None)
        self.input1 = input1
        self.input2 = input2

    def member_inputs(self) -> Tuple[str, str]:
        return (self.input1, self.input2)

    def compute(self, relation):
        return self.func(relation, (relation.vobj1._get(self.input1), relation.vobj2._get(self.input2)))

    def describe(self) -> str:
        return f"pair({self.input1}, {self.input2})"


class ModelProperty(PropertySpec):
    """
    An abstract function: no body, bound to a registry model at compile time.
    """
    kind = "model"

    def __init__(self, func: Callable, model_name: Optional[str] = None, input: Optional[str] = "image"):
        super().__init__(func, input)
        self.model_name = model_name or self.name

    def compute(self, vobj):
        arg = vobj if self.input is None else vobj._get(self.input)
        return vobj._call_model(self.model_name, arg)

    def describe(self) -> str:
        return f"model[{self.model_name}]({self.input or 'self'})"


class StatefulProperty(PropertySpec):
    kind = "stateful"

    def __init__(self, func: Callable, input: str, history_len: int):
        if not input:
            raise QueryDefinitionError(f"stateful property {getattr(func, '__name__', func)!r} needs an input")
        if history_len < 1:
            raise QueryDefinitionError(
                f"stateful property {getattr(func, '__name__', func)!r}: history_len must be >= 1, got {history_len}"
            )
        super().__init__(func, input)
        self.history_len = history_len

    def history_requirements(self):
        return {self.input: self.history_len}

    def compute(self, vobj):
        values = vobj._history(self.input, self.history_len)
        if len(values) < self.history_len:
            return None
        return self.func(vobj, values)

    def describe(self) -> str:
        return f"stateful({self.input}, history_len={self.history_len})"


class HistoryProperty(PropertySpec):
    """
    A historical property: evaluates to the last ``length`` observations,
    oldest first. Either wraps another marker (decorator form) or exposes
    the history of an existing property (``of=``).
    """
    kind = "history"

    def __init__(self, length: int, of: Optional[str] = None, inner: Optional[PropertySpec] = None):
        if length < 1:
            raise QueryDefinitionError(f"history length must be >= 1, got {length}")
        if (of is None) == (inner is None):
            raise QueryDefinitionError("history needs exactly one of a wrapped property or of=")
        super().__init__(inner.func if inner is not None else None, None)
        self.length = length
        self.of = of
        self.inner = inner
        if inner is not None:
            self.name = inner.name

    def __set_name__(self, owner, name):
        super().__set_name__(owner, name)
        if self.inner is not None:
            self.inner.__set_name__(owner, name)

    @property
    def source(self) -> str:
        """Name under which the observations are stored."""
        return self.of if self.of is not None else self.name

    def dependencies(self):
        if self.inner is not None:
            return self.inner.dependencies()
        return (self.of,)

    def history_requirements(self):
        required = dict(self.inner.history_requirements()) if self.inner is not None else {}
        required[self.source] = max(required.get(self.source, 0), self.length)
        return required

    def raw(self, vobj):
        if self.inner is not None:
            return self.inner.compute(vobj)
        return vobj._get(self.of)

    def compute(self, vobj):
        return vobj._history(self.source, self.length)

    def describe(self) -> str:
        inner = self.inner.describe() if self.inner is not None else self.of
        return f"history({inner}, length={self.length})"


def model(func: Optional[Callable] = None, *, name: Optional[str] = None, input: Optional[str] = "image"):
    """
    Declares an abstract function resolved to a concrete model at compile time.

        @model
        def color(self, image) -> str: ...

        @model(name="plate_reader", input="image")
        def license_plate(self, image) -> str: ...

    ``input=None`` passes the object itself to the model.
    """
    def decorator(f):
        return ModelProperty(f, model_name=name, input=input)
    if func is not None:
        return decorator(func)
    return decorator


def stateless(
    func: Optional[Callable] = None,
    *,
    input: Optional[str] = None,
    input1: Optional[str] = None,
    input2: Optional[str] = None
):
    """
    Declares a per-frame property computed from the current value of ``input``
    (or from the object alone when no input is given).

    On a Relation, ``input1`` and ``input2`` name one property of each member:

        @stateless(input1="center", input2="center")
        def distance(self, centers): ...
    """
    def decorator(f):
        if input1 is not None or input2 is not None:
            return PairProperty(f, input1, input2)
        return StatelessProperty(f, input)
    if func is not None:
        return decorator(func)
    return decorator


def stateful(input: str, history_len: int = 2):
    """
    Declares a cross-frame property. The function receives the last
    ``history_len`` observations of ``input``, oldest first.
    """
    def decorator(f):
        return StatefulProperty(f, input, history_len)
    return decorator


def history(length: int, of: Optional[str] = None):
    """
    Marks a property whose past values are retained across frames.

        boxes = history(5, of="bbox")

        @history(3)
        @model
        def color(self, image): ...
    """
    if of is not None:
        return HistoryProperty(length, of=of)

    def decorator(f):
        inner = f if isinstance(f, PropertySpec) else StatelessProperty(f)
        return HistoryProperty(length, inner=inner)
    return decorator
