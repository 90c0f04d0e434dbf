"""
A pretty-printer for LAZEX values.

Unlike `Value.get_string`, which yields the canonical text of a value, the
printer renders values the way they would be written in an expression:
strings are quoted and null is spelled out.
"""
from lazex.lazex_datatypes import Value, NumericValue, StringValue, ListValue, NullValue


class Printer:
    """Formats values into readable, expression-like strings."""

    def __init__(self):
        self._handlers = {
            NumericValue: self._pformat_number,
            StringValue: self._pformat_string,
            ListValue: self._pformat_list,
            NullValue: self._pformat_null,
            type(None): self._pformat_null,
        }

    def pformat(self, obj) -> str:
        handler = self._handlers.get(type(obj))
        if handler is None:
            # Subclasses and host value variants.
            for cls, candidate in self._handlers.items():
                if isinstance(obj, cls):
                    handler = candidate
                    break
        if handler is None:
            if isinstance(obj, Value):
                return obj.get_string()
            return repr(obj)
        return handler(obj)

    def _pformat_number(self, obj: NumericValue) -> str:
        return obj.get_string()

    def _pformat_string(self, obj: StringValue) -> str:
        return f"'{obj.text}'"

    def _pformat_list(self, obj: ListValue) -> str:
        return "[" + ", ".join(self.pformat(item) for item in obj) + "]"

    def _pformat_null(self, obj) -> str:
        return "null"
