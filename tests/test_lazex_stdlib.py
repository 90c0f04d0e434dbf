import decimal

import pytest
from lazex import (
    Expression, NumericValue, StringValue, ListValue,
    EvalError, ArityError, ExpressionTypeError,
)


def ev(source, **variables):
    expr = Expression(source)
    for name, value in variables.items():
        expr.with_variable(name, value)
    return expr.evaluate()


def approx(value, expected, tol=1e-9):
    return abs(float(value.number) - expected) < tol


# --- Numeric functions ---

@pytest.mark.parametrize("source, expected", [
    ("fact(5)", 120),
    ("fact(0)", 1),
    ("abs(-3)", 3),
    ("round(2.345, 2)", decimal.Decimal("2.34")),
    ("round(2.5, 0)", 2),
    ("floor(2.7)", 2),
    ("floor(-2.5)", -3),
    ("ceil(2.1)", 3),
    ("relu(-2)", 0),
    ("relu(3)", 3),
    ("max(1, 5, 3)", 5),
    ("min(4, -1, 3)", -1),
    ("max(7)", 7),
    ("len('abc')", 3),
    ("len(list(1, 2))", 2),
    ("len(NULL)", 0),
    ("sqrt(16)", 4),
    ("log10(1000)", 3),
    ("deg(0)", 0),
])
def test_numeric_functions(source, expected):
    assert ev(source) == NumericValue(expected)


def test_max_of_mixed_variants_follows_total_order():
    assert ev("max(1, 'a')") == StringValue("a")


@pytest.mark.parametrize("source, expected", [
    ("sin(30)", 0.5),
    ("cos(60)", 0.5),
    ("tan(45)", 1.0),
    ("asin(1)", 90.0),
    ("atan2(1, 1)", 45.0),
    ("log(e)", 1.0),
    ("rad(180)", 3.141592653589793),
    ("sinh(0)", 0.0),
    ("atanh(0.5)", 0.5493061443340549),
])
def test_math_functions(source, expected):
    assert approx(ev(source), expected)


def test_rand_stays_in_range():
    for _ in range(20):
        v = ev("rand(10)")
        assert 0 <= v.number < 10


@pytest.mark.parametrize("source", [
    "sqrt(-1)",
    "log(0)",
    "atanh(1)",
    "cosh(100000)",
])
def test_math_domain_errors(source):
    with pytest.raises(EvalError):
        ev(source)


@pytest.mark.parametrize("source", ["max()", "min()"])
def test_min_max_need_arguments(source):
    with pytest.raises(ArityError):
        ev(source)


@pytest.mark.parametrize("source", ["abs('x')", "sqrt(list())", "len(3)", "fact('a')"])
def test_functions_check_argument_types(source):
    with pytest.raises(ExpressionTypeError):
        ev(source)


# --- Control flow ---

def test_if():
    assert ev("if(1, 'yes', 'no')") == StringValue("yes")
    assert ev("if('', 'yes', 'no')") == StringValue("no")


def test_loop_returns_last_iteration():
    assert ev("loop(_, 5)") == NumericValue(4)
    assert ev("loop(1, 0)") == NumericValue(0)


def test_loop_accumulates_through_assignment():
    assert ev("x = 0; loop(x = x + _, 4); x") == NumericValue(6)


def test_loop_prints_each_iteration():
    printed = []
    expr = Expression("loop(print(_), 3)", print_output=printed.append)
    assert expr.evaluate() == NumericValue(2)
    assert printed == ["0", "1", "2"]


def test_nested_loops_restore_outer_variable():
    assert ev("s = 0; loop(loop(s = s + _, 3), 2); s") == NumericValue(6)
    assert ev("loop(loop(0, 2); _, 3)") == NumericValue(2)


def test_map():
    assert ev("map(_ * 2, list(1, 2, 3))") == ListValue([NumericValue(2), NumericValue(4), NumericValue(6)])
    assert ev("map(_, list())") == ListValue()


def test_nested_map():
    assert ev("map(map(_ * 10, list(1, 2)), list(7, 8))").get_string() == "[[10, 20], [10, 20]]"


def test_for_counts_truthy_results():
    assert ev("for(_ > 1, list(1, 2, 3))") == NumericValue(2)
    assert ev("for(_ % 2 == 0, list(1, 2, 3, 4))") == NumericValue(2)


def test_while():
    assert ev("while(_ < 3, 10, _ * 2)") == NumericValue(4)
    assert ev("while(1, 3, _)") == NumericValue(2)
    assert ev("while(0, 10, 1)") == NumericValue(0)


def test_reduce():
    assert ev("reduce(acc+_, list(1,2,3,4), 0)") == NumericValue(10)
    assert ev("reduce(acc+_, list(), 7)") == NumericValue(7)
    assert ev("reduce(acc + len(_), list('ab', 'cde'), 0)") == NumericValue(5)


def test_reduce_can_build_strings():
    assert ev("reduce(if(acc == '', _, acc), list('a', 'b'), '')") == StringValue("a")


def test_case():
    assert ev("case(0, 1, 1, 2, 3)") == NumericValue(2)
    assert ev("case(0, 1, 0, 2, 3)") == NumericValue(3)
    assert ev("case(1, 'a', 1/0, 'b', 'c')") == StringValue("a")


@pytest.mark.parametrize("source", ["case(1, 2)", "case(1)", "case(1, 2, 3, 4)"])
def test_case_arity(source):
    with pytest.raises(ArityError) as exc:
        ev(source)
    assert exc.value.offset == 0


@pytest.mark.parametrize("source", ["map(_, 5)", "for(_, 'abc')", "reduce(acc, 1, 0)"])
def test_iteration_requires_a_list(source):
    with pytest.raises(ExpressionTypeError, match="should be a list"):
        ev(source)


def test_loop_variables_are_removed_afterwards():
    expr = Expression("loop(_, 3); reduce(acc + _, list(1), 0)")
    expr.evaluate()
    assert "_" not in expr.environment
    assert "acc" not in expr.environment


def test_loop_variable_is_restored_after_error():
    expr = Expression("loop(if(_ == 2, 1/0, _), 5)").with_variable("_", 42)
    with pytest.raises(EvalError):
        expr.evaluate()
    assert expr.get_variable("_") == NumericValue(42)


def test_reduce_restores_acc_after_error():
    expr = Expression("reduce(acc / _, list(1, 0), 1)").with_variable("acc", "outer")
    with pytest.raises(EvalError):
        expr.evaluate()
    assert expr.get_variable("acc") == StringValue("outer")
