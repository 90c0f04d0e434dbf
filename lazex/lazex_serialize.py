"""
Conversion between LAZEX values and plain Python data, and JSON / YAML text.

Hosts use this to pre-bind variables from configuration documents and to hand
results to the outside world.
"""
from __future__ import annotations

import collections.abc
import decimal
import json
import math
from typing import Any, Optional

import yaml

from lazex.lazex_datatypes import Value, NumericValue, StringValue, ListValue, NullValue, from_bool
from lazex.lazex_errors import ExpressionTypeError


def _number(obj, context: Optional[decimal.Context]) -> NumericValue:
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ExpressionTypeError(f"Cannot convert non-finite number {obj!r} to a value")
        obj = repr(obj)
    if context is not None:
        return NumericValue(context.create_decimal(obj))
    return NumericValue(decimal.Decimal(obj))


def from_python(obj: Any, context: Optional[decimal.Context] = None) -> Value:
    """Converts Python data into a Value.

    Mappings have no value variant of their own; they become lists of
    [key, value] pairs in insertion order.
    """
    match obj:
        case Value():
            return obj
        case None:
            return Value.NULL
        case bool():
            return from_bool(obj)
        case int() | float() | decimal.Decimal():
            return _number(obj, context)
        case str():
            return StringValue(obj)
        case collections.abc.Mapping():
            return ListValue(
                ListValue([StringValue(str(k)), from_python(v, context)]) for k, v in obj.items()
            )
        case list() | tuple():
            return ListValue(from_python(item, context) for item in obj)
    raise ExpressionTypeError(f"Cannot convert {type(obj).__name__} to a value")


def to_python(value: Value) -> Any:
    """Converts a Value into JSON-compatible Python data.

    Integral numbers become ints, other numbers floats. Host value variants
    are represented by their string form.
    """
    match value:
        case NullValue():
            return None
        case NumericValue():
            number = value.number
            if number == number.to_integral_value():
                return int(number)
            return float(number)
        case StringValue():
            return value.text
        case ListValue():
            return [to_python(item) for item in value]
    return value.get_string()


def detect_format(text: str) -> str:
    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        return "json"
    return "yaml"


def serialize(value: Value, fmt: str = "json") -> str:
    data = to_python(value)
    match fmt:
        case "json":
            return json.dumps(data)
        case "yaml":
            return yaml.safe_dump(data, sort_keys=False)
    raise ValueError(f"Unsupported format {fmt!r}")


def deserialize(text: str, fmt: Optional[str] = None, context: Optional[decimal.Context] = None) -> Value:
    fmt = fmt or detect_format(text)
    match fmt:
        case "json":
            data = json.loads(text)
        case "yaml":
            data = yaml.safe_load(text)
        case _:
            raise ValueError(f"Unsupported format {fmt!r}")
    return from_python(data, context)
