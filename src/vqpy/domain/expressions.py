"""
Symbolic expressions over query variables.

Query constraints are written with ordinary Python operators on VObj
properties, e.g. ``(self.car.color == "red") & (self.car.score > 0.5)``.
Building them touches no model; evaluation happens later against the
objects bound to each variable in a frame.

Comparisons with a ``None`` operand are False, arithmetic on ``None`` is
``None``, and ``&``/``|`` treat ``None`` as False.
"""
import operator
from typing import Any, Callable, Dict, Iterator, Set, Tuple

from ..common.exceptions import QueryDefinitionError

_COMPARISONS = {
    'eq': operator.eq,
    'ne': operator.ne,
    'lt': operator.lt,
    'le': operator.le,
    'gt': operator.gt,
    'ge': operator.ge,
}

_ARITHMETIC = {
    'add': operator.add,
    'sub': operator.sub,
    'mul': operator.mul,
    'truediv': operator.truediv,
}

_SYMBOLS = {
    'eq': '==', 'ne': '!=', 'lt': '<', 'le': '<=', 'gt': '>', 'ge': '>=',
    'add': '+', 'sub': '-', 'mul': '*', 'truediv': '/',
    'and': '&', 'or': '|',
}


def truthy(value: Any) -> bool:
    return value is not None and bool(value)


def as_expr(value: Any) -> 'Expr':
    """
    Lifts a Python value (or query variable) into an expression node.
    """
    if isinstance(value, Expr):
        return value
    if not isinstance(value, type):
        hook = getattr(value, '__vqpy_expr__', None)
        if hook is not None:
            return hook()
    if isinstance(value, (tuple, list)):
        return Collection(type(value), [as_expr(v) for v in value])
    if isinstance(value, dict):
        return Mapping({k: as_expr(v) for k, v in value.items()})
    return Const(value)


def apply(func: Callable, *args) -> 'Expr':
    """
    Wraps an arbitrary Python function so it runs over evaluated arguments.
    """
    return Apply(func, [as_expr(a) for a in args])


class Expr:
    """
    Base expression node. Operators build new nodes instead of computing.
    """

    __hash__ = object.__hash__

    def evaluate(self, env: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def children(self) -> Tuple['Expr', ...]:
        return ()

    def walk(self) -> Iterator['Expr']:
        yield self
        for child in self.children():
            yield from child.walk()

    def references(self) -> Set[Tuple[str, str]]:
        """(variable, property) pairs read by this expression."""
        refs = set()
        for node in self.walk():
            if isinstance(node, PropertyRef):
                refs.add((node.var_name, node.prop))
        return refs

    def variables(self) -> Set[str]:
        names = set()
        for node in self.walk():
            if isinstance(node, (PropertyRef, VarRef)):
                names.add(node.var_name)
        return names

    def __bool__(self):
        raise QueryDefinitionError(
            f"Cannot use query expression {self!r} as a Python bool; "
            "combine predicates with '&', '|' and '~' instead of 'and', 'or' and 'not'"
        )

    # comparisons
    def __eq__(self, other):
        return BinOp('eq', self, as_expr(other))

    def __ne__(self, other):
        return BinOp('ne', self, as_expr(other))

    def __lt__(self, other):
        return BinOp('lt', self, as_expr(other))

    def __le__(self, other):
        return BinOp('le', self, as_expr(other))

    def __gt__(self, other):
        return BinOp('gt', self, as_expr(other))

    def __ge__(self, other):
        return BinOp('ge', self, as_expr(other))

    # logic
    def __and__(self, other):
        return BinOp('and', self, as_expr(other))

    def __rand__(self, other):
        return BinOp('and', as_expr(other), self)

    def __or__(self, other):
        return BinOp('or', self, as_expr(other))

    def __ror__(self, other):
        return BinOp('or', as_expr(other), self)

    def __invert__(self):
        return UnaryOp('not', self)

    # arithmetic
    def __add__(self, other):
        return BinOp('add', self, as_expr(other))

    def __radd__(self, other):
        return BinOp('add', as_expr(other), self)

    def __sub__(self, other):
        return BinOp('sub', self, as_expr(other))

    def __rsub__(self, other):
        return BinOp('sub', as_expr(other), self)

    def __mul__(self, other):
        return BinOp('mul', self, as_expr(other))

    def __rmul__(self, other):
        return BinOp('mul', as_expr(other), self)

    def __truediv__(self, other):
        return BinOp('truediv', self, as_expr(other))

    def __rtruediv__(self, other):
        return BinOp('truediv', as_expr(other), self)

    def __neg__(self):
        return UnaryOp('neg', self)

    # access
    def __getitem__(self, key):
        return Item(self, as_expr(key))

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        return Attr(self, name)

    def __call__(self, *args, **kwargs):
        return Call(
            self,
            [as_expr(a) for a in args],
            {k: as_expr(v) for k, v in kwargs.items()}
        )


class Const(Expr):
    def __init__(self, value: Any):
        self.value = value

    def evaluate(self, env):
        return self.value

    def __repr__(self):
        return repr(self.value)


class VarRef(Expr):
    """A query variable itself; evaluates to the bound VObj."""

    def __init__(self, var):
        self.var = var

    @property
    def var_name(self) -> str:
        return self.var._vqpy_name

    def evaluate(self, env):
        return env[self.var_name]

    def __repr__(self):
        return str(self.var_name)


class PropertyRef(Expr):
    """A property read on a query variable, e.g. ``car.color``."""

    def __init__(self, var, prop: str):
        self.var = var
        self.prop = prop

    @property
    def var_name(self) -> str:
        return self.var._vqpy_name

    def evaluate(self, env):
        return env[self.var_name]._get(self.prop)

    def __repr__(self):
        return f"{self.var_name}.{self.prop}"


class BinOp(Expr):
    def __init__(self, op: str, left: Expr, right: Expr):
        self.op = op
        self.left = left
        self.right = right

    def children(self):
        return (self.left, self.right)

    def evaluate(self, env):
        if self.op == 'and':
            return truthy(self.left.evaluate(env)) and truthy(self.right.evaluate(env))
        if self.op == 'or':
            return truthy(self.left.evaluate(env)) or truthy(self.right.evaluate(env))

        left = self.left.evaluate(env)
        right = self.right.evaluate(env)
        if self.op in _COMPARISONS:
            if left is None or right is None:
                return False
            return _COMPARISONS[self.op](left, right)
        if left is None or right is None:
            return None
        return _ARITHMETIC[self.op](left, right)

    def __repr__(self):
        return f"({self.left!r} {_SYMBOLS[self.op]} {self.right!r})"


class UnaryOp(Expr):
    def __init__(self, op: str, operand: Expr):
        self.op = op
        self.operand = operand

    def children(self):
        return (self.operand,)

    def evaluate(self, env):
        value = self.operand.evaluate(env)
        if self.op == 'not':
            return not truthy(value)
        return None if value is None else -value

    def __repr__(self):
        symbol = '~' if self.op == 'not' else '-'
        return f"{symbol}{self.operand!r}"


class Item(Expr):
    def __init__(self, target: Expr, key: Expr):
        self.target = target
        self.key = key

    def children(self):
        return (self.target, self.key)

    def evaluate(self, env):
        target = self.target.evaluate(env)
        if target is None:
            return None
        return target[self.key.evaluate(env)]

    def __repr__(self):
        return f"{self.target!r}[{self.key!r}]"


class Attr(Expr):
    def __init__(self, target: Expr, name: str):
        self.target = target
        self.name = name

    def children(self):
        return (self.target,)

    def evaluate(self, env):
        target = self.target.evaluate(env)
        if target is None:
            return None
        return getattr(target, self.name)

    def __repr__(self):
        return f"{self.target!r}.{self.name}"


class Call(Expr):
    def __init__(self, func: Expr, args, kwargs):
        self.func = func
        self.args = list(args)
        self.kwargs = dict(kwargs)

    def children(self):
        return (self.func, *self.args, *self.kwargs.values())

    def evaluate(self, env):
        func = self.func.evaluate(env)
        if func is None:
            return None
        args = [a.evaluate(env) for a in self.args]
        kwargs = {k: v.evaluate(env) for k, v in self.kwargs.items()}
        return func(*args, **kwargs)

    def __repr__(self):
        params = [repr(a) for a in self.args]
        params += [f"{k}={v!r}" for k, v in self.kwargs.items()]
        return f"{self.func!r}({', '.join(params)})"


class Apply(Expr):
    def __init__(self, func: Callable, args):
        self.func = func
        self.args = list(args)

    def children(self):
        return tuple(self.args)

    def evaluate(self, env):
        return self.func(*[a.evaluate(env) for a in self.args])

    def __repr__(self):
        name = getattr(self.func, '__name__', repr(self.func))
        return f"{name}({', '.join(repr(a) for a in self.args)})"


class Collection(Expr):
    def __init__(self, kind: type, items):
        self.kind = kind
        self.items = list(items)

    def children(self):
        return tuple(self.items)

    def evaluate(self, env):
        return self.kind(item.evaluate(env) for item in self.items)

    def __repr__(self):
        return repr(self.kind(self.items))


class Mapping(Expr):
    def __init__(self, items: Dict[Any, Expr]):
        self.items = dict(items)

    def children(self):
        return tuple(self.items.values())

    def evaluate(self, env):
        return {k: v.evaluate(env) for k, v in self.items.items()}

    def __repr__(self):
        return repr(self.items)
