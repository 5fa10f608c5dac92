import pytest
from vqpy.common.exceptions import QueryDefinitionError
from vqpy.domain.expressions import (
    Apply, BinOp, Const, PropertyRef, UnaryOp, VarRef, apply, as_expr
)
from vqpy.domain.vobj import Car


@pytest.fixture
def car():
    return Car("car")


def test_property_access_builds_reference(car):
    expr = car.score
    assert isinstance(expr, PropertyRef)
    assert expr.var_name == "car"
    assert expr.prop == "score"


def test_comparison_builds_binop(car):
    expr = car.score > 0.5
    assert isinstance(expr, BinOp)
    assert expr.op == "gt"
    assert isinstance(expr.right, Const)
    assert expr.references() == {("car", "score")}


def test_reflected_operators(car):
    assert isinstance(1 - car.score, BinOp)
    assert isinstance(2 * car.score, BinOp)
    expr = True & (car.score > 0.1)
    assert expr.op == "and"


def test_bool_raises(car):
    with pytest.raises(QueryDefinitionError, match="'&'"):
        if car.score > 0.5:
            pass
    with pytest.raises(QueryDefinitionError):
        (car.score > 0.5) and (car.score < 0.9)


def test_references_collects_every_property():
    a, b = Car("a"), Car("b")
    expr = (a.score > b.score) & (a.class_name == "car") | ~(b.track_id == 3)
    assert expr.references() == {
        ("a", "score"), ("b", "score"), ("a", "class_name"), ("b", "track_id")
    }
    assert expr.variables() == {"a", "b"}


def test_null_comparisons_are_false():
    for op in ("eq", "ne", "lt", "le", "gt", "ge"):
        assert BinOp(op, Const(None), Const(1)).evaluate({}) is False
        assert BinOp(op, Const(1), Const(None)).evaluate({}) is False


def test_null_arithmetic_propagates():
    assert BinOp("add", Const(None), Const(1)).evaluate({}) is None
    assert BinOp("truediv", Const(4), Const(None)).evaluate({}) is None
    assert UnaryOp("neg", Const(None)).evaluate({}) is None
    assert (as_expr(None)[0]).evaluate({}) is None
    assert (as_expr(None).upper()).evaluate({}) is None


def test_null_logic():
    assert BinOp("and", Const(None), Const(True)).evaluate({}) is False
    assert BinOp("or", Const(None), Const(True)).evaluate({}) is True
    assert UnaryOp("not", Const(None)).evaluate({}) is True


def test_method_call_and_item_access():
    expr = as_expr("ABC123").startswith("ABC")
    assert expr.evaluate({}) is True
    assert as_expr((1, 2, 3))[1].evaluate({}) == 2


def test_apply_wraps_function():
    expr = apply(max, 3, as_expr(7))
    assert isinstance(expr, Apply)
    assert expr.evaluate({}) == 7


def test_collections_lift_nested_expressions(car):
    expr = as_expr({"s": car.score, "pair": (car.track_id, 1)})
    assert expr.references() == {("car", "score"), ("car", "track_id")}


def test_variable_identity_builds_varrefs():
    a, b = Car("a"), Car("b")
    expr = a == b
    assert isinstance(expr, BinOp)
    assert isinstance(expr.left, VarRef) and isinstance(expr.right, VarRef)
    assert repr(expr) == "(a == b)"


def test_private_attributes_are_not_expressions(car):
    with pytest.raises(AttributeError):
        car.score._secret
