"""
LAZEX: an embeddable expression language with lazy evaluation.
"""
from lazex.lazex_config import EngineConfig, load_config
from lazex.lazex_datatypes import (
    Value, NumericValue, StringValue, ListValue, NullValue, LazyValue, ConstantLazyValue, Environment,
)
from lazex.lazex_errors import (
    ExpressionError, LexError, ExpressionSyntaxError, EvalError, ArityError, ExpressionTypeError, RegistryError,
)
from lazex.lazex_registry import Registry, VARIADIC
from lazex.lazex_runtime import Expression, ExpressionRunner, ExpressionHost, ExecutionResult, host_function

__all__ = [
    "EngineConfig", "load_config",
    "Value", "NumericValue", "StringValue", "ListValue", "NullValue", "LazyValue", "ConstantLazyValue",
    "Environment",
    "ExpressionError", "LexError", "ExpressionSyntaxError", "EvalError", "ArityError", "ExpressionTypeError",
    "RegistryError",
    "Registry", "VARIADIC",
    "Expression", "ExpressionRunner", "ExpressionHost", "ExecutionResult", "host_function",
]
