"""
The standard library seeded into every default registry.
"""
import decimal
import math
import random
from typing import List

from lazex.lazex_datatypes import (
    LazyValue, Value, NumericValue, StringValue, ListValue, NullValue, from_bool
)
from lazex.lazex_errors import ArityError, EvalError, ExpressionTypeError
from lazex.lazex_registry import (
    VARIADIC, binary_operator, unary_operator, function, require_number, float_to_decimal,
    PRECEDENCE_SEQUENCE, PRECEDENCE_ASSIGN, PRECEDENCE_OR, PRECEDENCE_AND,
    PRECEDENCE_EQUALITY, PRECEDENCE_COMPARISON, PRECEDENCE_ADDITIVE,
    PRECEDENCE_MULTIPLICATIVE, PRECEDENCE_POWER,
)

PI = decimal.Decimal(
    "3.1415926535897932384626433832795028841971693993751058209749445923078164062862089986280348253421170679")
E = decimal.Decimal(
    "2.71828182845904523536028747135266249775724709369995957496696762772407663")


def _require_list(value: Value, where: str) -> ListValue:
    if not isinstance(value, ListValue):
        raise ExpressionTypeError(f"Second argument of {where} should be a list, got {value.get_string()!r}")
    return value


def _atanh(d: float) -> float:
    if abs(d) >= 1:
        raise EvalError("atanh: number must be |x| < 1")
    return 0.5 * math.log((1 + d) / (1 - d))


class StdLib:
    """Python implementations of the built-in operators and functions.

    Methods are registered through their decorators; float math is listed in
    `math_functions` and lifted into the expression's decimal context.
    """
    constants = {
        "PI": NumericValue(PI),
        "e": NumericValue(E),
        "TRUE": Value.TRUE,
        "FALSE": Value.FALSE,
        "NULL": Value.NULL,
    }

    # Trigonometry works in degrees.
    math_functions = {
        "rand": lambda d: d * random.random(),
        "sin": lambda d: math.sin(math.radians(d)),
        "cos": lambda d: math.cos(math.radians(d)),
        "tan": lambda d: math.tan(math.radians(d)),
        "asin": lambda d: math.degrees(math.asin(d)),
        "acos": lambda d: math.degrees(math.acos(d)),
        "atan": lambda d: math.degrees(math.atan(d)),
        "atan2": lambda y, x: math.degrees(math.atan2(y, x)),
        "sinh": math.sinh,
        "cosh": math.cosh,
        "tanh": math.tanh,
        "sec": lambda d: 1.0 / math.cos(math.radians(d)),
        "csc": lambda d: 1.0 / math.sin(math.radians(d)),
        "sech": lambda d: 1.0 / math.cosh(d),
        "csch": lambda d: 1.0 / math.sinh(d),
        "cot": lambda d: 1.0 / math.tan(math.radians(d)),
        "acot": lambda d: math.degrees(math.atan(1.0 / d)),
        "coth": lambda d: 1.0 / math.tanh(d),
        "asinh": lambda d: math.log(d + math.sqrt(d * d + 1)),
        "acosh": lambda d: math.log(d + math.sqrt(d * d - 1)),
        "atanh": _atanh,
        "rad": math.radians,
        "deg": math.degrees,
        "log": lambda d: math.log(d),
        "log10": math.log10,
        "log1p": math.log1p,
        "sqrt": math.sqrt,
    }

    # --- Sequencing and logic ---

    @binary_operator(";", PRECEDENCE_SEQUENCE, lazy=True, left_first=True)
    def _next(self, first: LazyValue, then: LazyValue, *, ctx) -> LazyValue:
        def run():
            ctx.log(first.force().get_string())
            return then.force()
        return LazyValue(run, ";")

    @binary_operator("&&", PRECEDENCE_AND, left_assoc=False, lazy=True)
    def _and(self, a: LazyValue, b: LazyValue) -> LazyValue:
        def run():
            if not a.force().get_boolean():
                return Value.FALSE
            return from_bool(b.force().get_boolean())
        return LazyValue(run, "&&")

    @binary_operator("||", PRECEDENCE_OR, left_assoc=False, lazy=True)
    def _or(self, a: LazyValue, b: LazyValue) -> LazyValue:
        def run():
            if a.force().get_boolean():
                return Value.TRUE
            return from_bool(b.force().get_boolean())
        return LazyValue(run, "||")

    @function("not", 1)
    def _not(self, v):
        return from_bool(not v.get_boolean())

    # --- Arithmetic ---

    @binary_operator("+", PRECEDENCE_ADDITIVE)
    def _add(self, a, b, *, ctx):
        return NumericValue(ctx.decimal_context.add(require_number(a, "+"), require_number(b, "+")))

    @binary_operator("-", PRECEDENCE_ADDITIVE)
    def _sub(self, a, b, *, ctx):
        return NumericValue(ctx.decimal_context.subtract(require_number(a, "-"), require_number(b, "-")))

    @binary_operator("*", PRECEDENCE_MULTIPLICATIVE)
    def _mul(self, a, b, *, ctx):
        return NumericValue(ctx.decimal_context.multiply(require_number(a, "*"), require_number(b, "*")))

    @binary_operator("/", PRECEDENCE_MULTIPLICATIVE)
    def _div(self, a, b, *, ctx):
        return NumericValue(ctx.decimal_context.divide(require_number(a, "/"), require_number(b, "/")))

    @binary_operator("%", PRECEDENCE_MULTIPLICATIVE)
    def _mod(self, a, b, *, ctx):
        return NumericValue(ctx.decimal_context.remainder(require_number(a, "%"), require_number(b, "%")))

    @binary_operator("^", PRECEDENCE_POWER, left_assoc=False)
    def _pow(self, a, b, *, ctx):
        c = ctx.decimal_context
        base = require_number(a, "^")
        exponent = require_number(b, "^")
        negative = exponent < 0
        exponent = abs(exponent)
        fraction = c.remainder(exponent, 1)
        whole = int(c.subtract(exponent, fraction))
        result = c.power(base, whole) if whole else decimal.Decimal(1)
        if fraction:
            result = c.multiply(result, float_to_decimal(math.pow(float(base), float(fraction)), c))
        if negative:
            result = c.divide(1, result)
        return NumericValue(result)

    @unary_operator("-")
    def _negate(self, v, *, ctx):
        return NumericValue(ctx.decimal_context.minus(require_number(v, "-")))

    @unary_operator("+")
    def _plus(self, v):
        require_number(v, "+")
        return v

    # --- Comparison ---

    @binary_operator(">", PRECEDENCE_COMPARISON, left_assoc=False)
    def _gt(self, a, b):
        return from_bool(a.compare_to(b) > 0)

    @binary_operator(">=", PRECEDENCE_COMPARISON, left_assoc=False)
    def _gte(self, a, b):
        return from_bool(a.compare_to(b) >= 0)

    @binary_operator("<", PRECEDENCE_COMPARISON, left_assoc=False)
    def _lt(self, a, b):
        return from_bool(a.compare_to(b) < 0)

    @binary_operator("<=", PRECEDENCE_COMPARISON, left_assoc=False)
    def _lte(self, a, b):
        return from_bool(a.compare_to(b) <= 0)

    @binary_operator("==", PRECEDENCE_EQUALITY, left_assoc=False)
    def _eq(self, a, b):
        return from_bool(a.compare_to(b) == 0)

    @binary_operator("!=", PRECEDENCE_EQUALITY, left_assoc=False)
    def _neq(self, a, b, *, ctx):
        if ctx.config.legacy_inequality:
            return from_bool(a.compare_to(b) == 0)
        return from_bool(a.compare_to(b) != 0)

    # --- Assignment ---

    @binary_operator("=", PRECEDENCE_ASSIGN, left_assoc=False)
    def _assign(self, target, value, *, ctx):
        if not target.is_bound:
            raise EvalError("LHS of assignment needs to be a variable")
        return ctx.environment.bind(target.variable, value)

    @binary_operator("<>", PRECEDENCE_EQUALITY, left_assoc=False)
    def _swap(self, left, right, *, ctx):
        if not left.is_bound or not right.is_bound:
            raise EvalError("Both sides of swapping assignment need to be variables")
        env = ctx.environment
        new_left = env.bind(left.variable, right)
        env.bind(right.variable, left)
        return new_left

    # --- Numeric functions ---

    @function("fact", 1)
    def _fact(self, v, *, ctx):
        n = int(require_number(v, "fact"))
        return NumericValue(ctx.decimal_context.create_decimal(math.factorial(max(n, 0))))

    @function("abs", 1)
    def _abs(self, v, *, ctx):
        return NumericValue(ctx.decimal_context.abs(require_number(v, "abs")))

    @function("round", 2)
    def _round(self, v, places, *, ctx):
        scale = decimal.Decimal(1).scaleb(-int(require_number(places, "round")))
        return NumericValue(ctx.decimal_context.quantize(require_number(v, "round"), scale))

    @function("floor", 1)
    def _floor(self, v):
        return NumericValue(require_number(v, "floor").to_integral_value(rounding=decimal.ROUND_FLOOR))

    @function("ceil", 1)
    def _ceil(self, v):
        return NumericValue(require_number(v, "ceil").to_integral_value(rounding=decimal.ROUND_CEILING))

    @function("relu", 1)
    def _relu(self, v):
        return Value.ZERO if require_number(v, "relu") < 0 else v

    @function("max", VARIADIC)
    def _max(self, *values):
        if not values:
            raise ArityError("max requires at least one parameter")
        return max(values)

    @function("min", VARIADIC)
    def _min(self, *values):
        if not values:
            raise ArityError("min requires at least one parameter")
        return min(values)

    # --- Lists, strings and output ---

    @function("list", VARIADIC)
    def _list(self, *values):
        return ListValue(values)

    @function("len", 1)
    def _len(self, v):
        match v:
            case ListValue():
                return NumericValue(len(v))
            case StringValue():
                return NumericValue(len(v.text))
            case NullValue():
                return Value.ZERO
        raise ExpressionTypeError(f"len expects a list or a string, got {v.get_string()!r}")

    @function("print", 1)
    def _print(self, v, *, ctx):
        ctx.emit_print(v.get_string())
        return v

    # --- Control flow ---

    @function("if", 3, lazy=True)
    def _if(self, cond: LazyValue, then: LazyValue, otherwise: LazyValue) -> LazyValue:
        return then if cond.force().get_boolean() else otherwise

    @function("loop", 2, lazy=True)
    def _loop(self, expr: LazyValue, count: LazyValue, *, ctx) -> LazyValue:
        limit = int(require_number(count.force(), "loop"))
        env = ctx.environment
        last = Value.ZERO
        with env.preserving("_"):
            for i in range(limit):
                env.bind("_", NumericValue(i))
                last = expr.force()
        return LazyValue.of(last)

    @function("map", 2, lazy=True)
    def _map(self, expr: LazyValue, items: LazyValue, *, ctx) -> LazyValue:
        source = _require_list(items.force(), "map")
        env = ctx.environment
        results: List[Value] = []
        with env.preserving("_"):
            for item in source:
                env.bind("_", item)
                results.append(expr.force())
        return LazyValue.of(ListValue(results))

    @function("for", 2, lazy=True)
    def _for(self, expr: LazyValue, items: LazyValue, *, ctx) -> LazyValue:
        source = _require_list(items.force(), "for")
        env = ctx.environment
        successes = 0
        with env.preserving("_"):
            for item in source:
                env.bind("_", item)
                if expr.force().get_boolean():
                    successes += 1
        return LazyValue.of(NumericValue(successes))

    @function("while", 3, lazy=True)
    def _while(self, cond: LazyValue, limit: LazyValue, expr: LazyValue, *, ctx) -> LazyValue:
        bound = int(require_number(limit.force(), "while"))
        env = ctx.environment
        last = Value.ZERO
        with env.preserving("_"):
            i = 0
            env.bind("_", NumericValue(0))
            while i < bound and cond.force().get_boolean():
                last = expr.force()
                i += 1
                env.bind("_", NumericValue(i))
        return LazyValue.of(last)

    @function("reduce", 3, lazy=True)
    def _reduce(self, expr: LazyValue, items: LazyValue, initial: LazyValue, *, ctx) -> LazyValue:
        acc = initial.force()
        source = _require_list(items.force(), "reduce")
        if not source.items:
            return LazyValue.of(acc)
        env = ctx.environment
        with env.preserving("acc", "_"):
            for item in source:
                env.bind("acc", acc)
                env.bind("_", item)
                acc = expr.force()
        return LazyValue.of(acc)

    @function("case", VARIADIC, lazy=True)
    def _case(self, *params: LazyValue) -> LazyValue:
        if len(params) % 2 == 0 or len(params) < 3:
            raise ArityError("case statement needs to have at least one condition and case, and a default value")
        for cond, expr in zip(params[0:-1:2], params[1:-1:2]):
            if cond.force().get_boolean():
                return expr
        return params[-1]
