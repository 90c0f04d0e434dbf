"""
The public entry points: Expression, the ExpressionRunner used by host
applications, and the host binding helpers.
"""
import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional

from lazex.lazex_config import EngineConfig
from lazex.lazex_datatypes import Environment, LazyValue, Value, NumericValue, StringValue
from lazex.lazex_errors import EvalError, ExpressionError
from lazex.lazex_interpreter import Evaluator
from lazex.lazex_parser import to_rpn, validate
from lazex.lazex_registry import Registry, VARIADIC
from lazex.lazex_serialize import from_python
from lazex.lazex_tokenizer import Token, tokenize

_NUMBER_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

Sink = Callable[[str], Any]


# ===================================================================
# 1. Expression
# ===================================================================

class Expression:
    """One expression source text together with everything needed to run it.

    The token list, the RPN and the built lazy tree are cached on first use.
    Evaluating again replays the cached tree, so side effects run again and
    variables are read afresh.
    """
    def __init__(self, source: str, *, registry: Optional[Registry] = None,
                 environment: Optional[Environment] = None, config: Optional[EngineConfig] = None,
                 host: Any = None, log_output: Optional[Sink] = None, print_output: Optional[Sink] = None):
        self.source = source
        self.config = config or EngineConfig()
        self.decimal_context = self.config.decimal_context()
        self.registry = registry if registry is not None else Registry.with_defaults()
        self.environment = environment if environment is not None else Environment()
        self.host = host
        self.log_output = log_output
        self.print_output = print_output
        self._tokens: Optional[List[Token]] = None
        self._rpn: Optional[List[Token]] = None
        self._tree: Optional[LazyValue] = None

        for name, value in self.registry.constants.items():
            if name not in self.environment:
                if isinstance(value, NumericValue):
                    value = NumericValue(self.decimal_context.plus(value.number))
                self.environment.bind(name, value)

    # --- Variables ---

    def with_variable(self, name: str, value: Any) -> "Expression":
        """Binds `name`. Text that looks like a number becomes a number and
        'null' becomes null; LazyValues are installed unforced."""
        env = self.environment
        match value:
            case LazyValue():
                env.define(name, value)
            case str():
                env.bind(name, self._value_from_text(value))
            case _:
                env.bind(name, from_python(value, self.decimal_context))
        return self

    set_variable = with_variable

    def get_variable(self, name: str) -> Value:
        return self.environment.read(name)

    def _value_from_text(self, text: str) -> Value:
        if _NUMBER_TEXT.fullmatch(text):
            return NumericValue(self.decimal_context.create_decimal(text))
        if text.lower() == "null":
            return Value.NULL
        return StringValue(text)

    # --- Output sinks used by the standard library ---

    def log(self, line: str):
        if self.log_output is not None:
            self.log_output(line)

    def emit_print(self, line: str):
        sink = self.print_output or self.log_output
        if sink is not None:
            sink(line)

    # --- Parsing and evaluation ---

    @property
    def tokens(self) -> List[Token]:
        if self._tokens is None:
            self._tokens = tokenize(self.source, self.registry)
        return self._tokens

    @property
    def rpn(self) -> List[Token]:
        if self._rpn is None:
            rpn = to_rpn(self.tokens, self.registry)
            validate(rpn, self.registry)
            self._rpn = rpn
        return self._rpn

    def evaluate(self) -> Value:
        if self._tree is None:
            self.registry.freeze()
            self._tree = Evaluator(self.registry, self).build(self.rpn)
        try:
            return self._tree.force()
        except RecursionError as e:
            raise EvalError("Expression nested too deeply") from e

    def __repr__(self) -> str:
        return f"<Expression {self.source!r}>"


# ===================================================================
# 2. Host binding
# ===================================================================

def host_function(arity: Optional[int] = None):
    """Marks a host method as callable from expressions under its own name."""
    def deco(fn):
        fn._lazex_host_function = arity
        return fn
    return deco


def _host_arity(fn) -> int:
    params = inspect.signature(fn).parameters.values()
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return VARIADIC
    return sum(1 for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD))


class ExpressionHost:
    """Base class for application objects exposed to expressions.

    Methods decorated with `host_function` become functions; `variables()`
    supplies bindings installed before every run.
    """
    def variables(self) -> Mapping[str, Any]:
        return {}


# ===================================================================
# 3. Script execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of running one expression."""
    status: Literal['success', 'error']
    value: Optional[Value] = None
    error_message: Optional[str] = None
    error_offset: Optional[int] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


def _line_and_col(source: str, offset: int):
    line = source.count("\n", 0, offset) + 1
    col = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return line, col


def _source_context(source: str, line: int, col: int) -> str:
    lines = source.splitlines() or [""]
    if line < 1 or line > len(lines):
        return ""
    width = len(str(line))
    return f"> {line} | {lines[line - 1]}\n  {' ' * width} | {' ' * (col - 1)}^"


class ExpressionRunner:
    """Runs expressions for a host, collecting output lines and reporting errors.

    All runs share one registry and one environment, so a variable assigned in
    one run is visible to the next.
    """
    def __init__(self, host: Optional[ExpressionHost] = None, config: Optional[EngineConfig] = None,
                 registry: Optional[Registry] = None):
        self.host = host
        self.config = config or EngineConfig()
        self.registry = registry if registry is not None else Registry.with_defaults()
        self.environment = Environment()
        if host is not None:
            self._bind_host_functions()

    def _bind_host_functions(self):
        for name, member in inspect.getmembers(self.host):
            if name.startswith("_") or not callable(member) or not hasattr(member, "_lazex_host_function"):
                continue
            arity = member._lazex_host_function
            if arity is None:
                arity = _host_arity(member)
            self.registry.add_function(name, arity, self._adapt_host_call(member))

    @staticmethod
    def _adapt_host_call(method):
        def call(*values, ctx):
            return from_python(method(*values), ctx.decimal_context)
        call.__name__ = method.__name__
        return call

    def _format_error(self, e: Exception, source: str) -> str:
        if isinstance(e, ExpressionError):
            msg = f"{type(e).__name__}: {e.message}"
        else:
            msg = f"InternalError: {e}"
        offset = getattr(e, "offset", None)
        if offset is not None:
            line, col = _line_and_col(source, offset)
            msg = f"{msg} (line {line}, col {col})\n{_source_context(source, line, col)}"
        return msg

    def run(self, source: str, variables: Optional[Mapping[str, Any]] = None) -> ExecutionResult:
        side_effects: List[Dict] = []
        expr = Expression(
            source,
            registry=self.registry,
            environment=self.environment,
            config=self.config,
            host=self.host,
            log_output=lambda line: side_effects.append({'topics': ['log'], 'message': line}),
            print_output=lambda line: side_effects.append({'topics': ['stdout'], 'message': line}),
        )
        try:
            if self.host is not None:
                for name, value in self.host.variables().items():
                    expr.with_variable(name, value)
            for name, value in (variables or {}).items():
                expr.with_variable(name, value)
            value = expr.evaluate()
        except Exception as e:
            msg = self._format_error(e, source)
            side_effects.append({'topics': ['stderr'], 'message': msg})
            return ExecutionResult('error', error_message=msg, error_offset=getattr(e, "offset", None),
                                   side_effects=side_effects)
        return ExecutionResult('success', value, side_effects=side_effects)
