"""
The operator and function registry.

A Registry maps operator symbols and function names to their behaviour. Eager
behaviours receive forced Values; lazy behaviours receive the unforced
LazyValues of their operands and decide themselves what to force. Any behaviour
may declare a keyword-only `ctx` parameter to receive the running Expression.
"""
import decimal
import inspect
import math
from typing import Any, Callable, Dict, List, Optional

from lazex.lazex_datatypes import LazyValue, Value, NumericValue
from lazex.lazex_errors import EvalError, ExpressionError, ExpressionTypeError, RegistryError

VARIADIC = -1
UNARY_SUFFIX = "u"

PRECEDENCE_SEQUENCE = 1
PRECEDENCE_ASSIGN = 2
PRECEDENCE_OR = 3
PRECEDENCE_AND = 4
PRECEDENCE_EQUALITY = 7
PRECEDENCE_COMPARISON = 10
PRECEDENCE_ADDITIVE = 20
PRECEDENCE_MULTIPLICATIVE = 30
PRECEDENCE_POWER = 40
PRECEDENCE_UNARY = 60


def _wants_context(fn: Callable) -> bool:
    try:
        params = inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return False
    p = params.get("ctx")
    return p is not None and p.kind is inspect.Parameter.KEYWORD_ONLY


def _describe(e: Exception) -> str:
    if isinstance(e, decimal.DivisionByZero):
        return "division by zero"
    if isinstance(e, decimal.InvalidOperation):
        return "undefined numeric operation"
    return str(e) or type(e).__name__


# =================================================================
# Operators and functions
# =================================================================

class Behaviour:
    """Shared calling convention of operators and functions."""
    name: str
    fn: Callable
    lazy: bool
    _wants_ctx: bool

    def apply(self, ctx, values: List[Value]) -> Value:
        """Runs an eager behaviour on forced operands, turning numeric failures into EvalError."""
        try:
            if self._wants_ctx:
                result = self.fn(*values, ctx=ctx)
            else:
                result = self.fn(*values)
        except ExpressionError:
            raise
        except (ArithmeticError, ValueError) as e:
            raise EvalError(f"{self.name}: {_describe(e)}") from e
        if not isinstance(result, Value):
            raise EvalError(f"{self.name} returned {type(result).__name__}, not a value")
        return result

    def apply_lazy(self, ctx, operands: List[LazyValue]) -> LazyValue:
        """Hands unforced operands to a lazy behaviour and returns its deferred result."""
        if self._wants_ctx:
            result = self.fn(*operands, ctx=ctx)
        else:
            result = self.fn(*operands)
        if not isinstance(result, LazyValue):
            raise EvalError(f"{type(self).__name__} {self.name} did not return a lazy value")
        return result


class Operator(Behaviour):
    """A binary or unary operator.

    `left_first` promises that a lazy binary behaviour forces its left operand
    exactly once before anything else, which lets the evaluator force runs of
    a left-associative operator one after another instead of recursively.
    Eager operators always satisfy it.
    """
    def __init__(self, symbol: str, precedence: int, left_assoc: bool, fn: Callable,
                 lazy: bool = False, unary: bool = False, left_first: bool = False):
        self.symbol = symbol
        self.precedence = precedence
        self.left_assoc = left_assoc
        self.fn = fn
        self.lazy = lazy
        self.unary = unary
        self.left_first = left_first or not lazy
        self._wants_ctx = _wants_context(fn)

    @property
    def name(self) -> str:
        return self.symbol

    @property
    def key(self) -> str:
        return self.symbol + UNARY_SUFFIX if self.unary else self.symbol

    @property
    def chainable(self) -> bool:
        return not self.unary and self.left_assoc and self.left_first

    def __repr__(self) -> str:
        kind = "unary" if self.unary else ("lazy" if self.lazy else "eager")
        return f"<Operator {self.symbol!r} {kind} prec={self.precedence}>"


class Function(Behaviour):
    """A named function with a fixed or variadic arity."""
    def __init__(self, name: str, arity: int, fn: Callable, lazy: bool = False):
        self.name = name
        self.arity = arity
        self.fn = fn
        self.lazy = lazy
        self._wants_ctx = _wants_context(fn)

    @property
    def variadic(self) -> bool:
        return self.arity == VARIADIC

    def __repr__(self) -> str:
        arity = "*" if self.variadic else self.arity
        return f"<Function {self.name}/{arity}{' lazy' if self.lazy else ''}>"


# =================================================================
# Library decorators
# =================================================================

def function(name: str, arity: int, lazy: bool = False):
    """Marks a library method as a function."""
    def deco(fn):
        fn._lazex_builtin = ("function", name, {"arity": arity, "lazy": lazy})
        return fn
    return deco


def binary_operator(symbol: str, precedence: int, left_assoc: bool = True, lazy: bool = False,
                    left_first: bool = False):
    """Marks a library method as a binary operator."""
    def deco(fn):
        fn._lazex_builtin = ("binary", symbol, {
            "precedence": precedence, "left_assoc": left_assoc, "lazy": lazy, "left_first": left_first})
        return fn
    return deco


def unary_operator(symbol: str):
    """Marks a library method as a prefix operator."""
    def deco(fn):
        fn._lazex_builtin = ("unary", symbol, {})
        return fn
    return deco


# =================================================================
# Registry
# =================================================================

class Registry:
    """Symbol and name tables consulted by the tokenizer, parser and evaluator."""
    def __init__(self):
        self.operators: Dict[str, Operator] = {}
        self.functions: Dict[str, Function] = {}
        # Constants seeded into each new expression's environment.
        self.constants: Dict[str, Value] = {}
        self.frozen = False

    @classmethod
    def with_defaults(cls) -> "Registry":
        from lazex.lazex_stdlib import StdLib
        return cls().load(StdLib())

    # --- Registration ---

    def _check_open(self):
        if self.frozen:
            raise RegistryError("Registry is frozen; extend it before the first evaluation")

    def _check_symbol(self, symbol: str):
        if not symbol or any(ch.isalnum() or ch == "_" or ch.isspace() or ch in "(),'" for ch in symbol):
            raise RegistryError(f"Invalid operator symbol {symbol!r}")

    def add_binary_operator(self, symbol: str, precedence: int, left_assoc: bool, fn: Callable):
        self._check_open()
        self._check_symbol(symbol)
        self.operators[symbol] = Operator(symbol, precedence, left_assoc, fn)

    def add_lazy_binary_operator(self, symbol: str, precedence: int, left_assoc: bool, fn: Callable,
                                 left_first: bool = False):
        self._check_open()
        self._check_symbol(symbol)
        self.operators[symbol] = Operator(symbol, precedence, left_assoc, fn, lazy=True, left_first=left_first)

    def add_unary_operator(self, symbol: str, fn: Callable):
        self._check_open()
        self._check_symbol(symbol)
        op = Operator(symbol, PRECEDENCE_UNARY, False, fn, unary=True)
        self.operators[op.key] = op

    def add_function(self, name: str, arity: int, fn: Callable):
        self._check_open()
        name = self._check_name(name)
        self.functions[name] = Function(name, arity, fn)

    def add_lazy_function(self, name: str, arity: int, fn: Callable):
        self._check_open()
        name = self._check_name(name)
        self.functions[name] = Function(name, arity, fn, lazy=True)

    def add_unary_function(self, name: str, fn: Callable):
        self.add_function(name, 1, fn)

    def add_binary_function(self, name: str, fn: Callable):
        self.add_function(name, 2, fn)

    def add_math_function(self, name: str, fn: Callable[..., float], arity: Optional[int] = None):
        """Registers a float function of fixed arity, lifted into the decimal context."""
        if arity is None:
            try:
                arity = len(inspect.signature(fn).parameters)
            except (TypeError, ValueError):
                arity = 1

        def lifted(*values, ctx):
            args = [float(require_number(v, name)) for v in values]
            return NumericValue(float_to_decimal(fn(*args), ctx.decimal_context))
        self.add_function(name, arity, lifted)

    def add_constant(self, name: str, value: Value):
        self._check_open()
        self.constants[name] = value

    def _check_name(self, name: str) -> str:
        if not name or not (name[0].isalpha() or name[0] == "_") or not all(ch.isalnum() or ch == "_" for ch in name):
            raise RegistryError(f"Invalid function name {name!r}")
        return name.lower()

    def load(self, library: Any):
        """Registers every member of `library` marked with a library decorator."""
        for _, member in inspect.getmembers(library):
            marker = getattr(member, "_lazex_builtin", None)
            if not marker or not callable(member):
                continue
            kind, name, opts = marker
            match kind:
                case "function" if opts["lazy"]:
                    self.add_lazy_function(name, opts["arity"], member)
                case "function":
                    self.add_function(name, opts["arity"], member)
                case "binary" if opts["lazy"]:
                    self.add_lazy_binary_operator(name, opts["precedence"], opts["left_assoc"], member,
                                                  left_first=opts["left_first"])
                case "binary":
                    self.add_binary_operator(name, opts["precedence"], opts["left_assoc"], member)
                case "unary":
                    self.add_unary_operator(name, member)
        for name, fn in getattr(library, "math_functions", {}).items():
            self.add_math_function(name, fn)
        for name, value in getattr(library, "constants", {}).items():
            self.add_constant(name, value)
        return self

    def freeze(self):
        self.frozen = True

    def copy(self) -> "Registry":
        """Returns an unfrozen registry with the same entries."""
        clone = Registry()
        clone.operators = dict(self.operators)
        clone.functions = dict(self.functions)
        clone.constants = dict(self.constants)
        return clone

    # --- Lookup ---

    def operator(self, surface: str) -> Optional[Operator]:
        return self.operators.get(surface)

    def function(self, name: str) -> Optional[Function]:
        return self.functions.get(name.lower())

    def is_operator_symbol(self, text: str) -> bool:
        """True when `text` is registered as a binary or a unary operator."""
        return text in self.operators or (text + UNARY_SUFFIX) in self.operators

    def __repr__(self) -> str:
        return f"<Registry operators={len(self.operators)} functions={len(self.functions)}>"


# =================================================================
# Numeric helpers shared by library code
# =================================================================

def require_number(value: Value, where: str) -> decimal.Decimal:
    if not isinstance(value, NumericValue):
        kind = type(value).__name__
        raise ExpressionTypeError(f"{where} expects a number, got {kind} {value.get_string()!r}")
    return value.number


def float_to_decimal(result: float, context: decimal.Context) -> decimal.Decimal:
    if math.isnan(result) or math.isinf(result):
        raise EvalError(f"numeric result out of range: {result}")
    return context.create_decimal(repr(result))
