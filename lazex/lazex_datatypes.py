"""
Defines the core data types of the LAZEX runtime.

Values are what expressions produce, LazyValues are the deferred computations
the evaluator wires together, and the Environment is the variable table an
expression reads from and assigns into.
"""

import copy
import decimal
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

# =================================================================
# Values
# =================================================================

class Value(ABC):
    """Base class of every value variant, including variants supplied by a host.

    A value may carry the name of the variable it was last read from or assigned
    to. The binding is only consulted by assignment-like operators and is
    ignored by equality and ordering.
    """
    # Position in the cross-variant total order; host variants sort last.
    type_rank = 100

    variable: Optional[str] = None

    TRUE: "NumericValue"
    FALSE: "NumericValue"
    ZERO: "NumericValue"
    NULL: "NullValue"

    @abstractmethod
    def get_string(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_boolean(self) -> bool:
        raise NotImplementedError

    def sort_key(self) -> Tuple:
        return (self.type_rank, type(self).__name__, self.get_string())

    def compare_to(self, other: "Value") -> int:
        a, b = self.sort_key(), other.sort_key()
        return (a > b) - (a < b)

    def bound_to(self, name: str) -> "Value":
        """Returns a copy of this value carrying `name` as its binding."""
        clone = copy.copy(self)
        clone.variable = name
        return clone

    @property
    def is_bound(self) -> bool:
        return self.variable is not None

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.compare_to(other) == 0

    def __lt__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.compare_to(other) < 0

    def __hash__(self):
        return hash(self.sort_key())

    def __str__(self) -> str:
        return self.get_string()


class NullValue(Value):
    type_rank = 0

    def get_string(self) -> str:
        return ""

    def get_boolean(self) -> bool:
        return False

    def sort_key(self) -> Tuple:
        return (self.type_rank,)

    def __repr__(self) -> str:
        return "NullValue()"


class NumericValue(Value):
    """An arbitrary precision decimal number."""
    type_rank = 1

    def __init__(self, number):
        if not isinstance(number, decimal.Decimal):
            number = decimal.Decimal(number)
        self.number = number

    def get_string(self) -> str:
        return str(self.number)

    def get_boolean(self) -> bool:
        return self.number != 0

    def sort_key(self) -> Tuple:
        return (self.type_rank, self.number)

    def __repr__(self) -> str:
        return f"NumericValue({str(self.number)!r})"


class StringValue(Value):
    type_rank = 2

    def __init__(self, text: str):
        self.text = text

    def get_string(self) -> str:
        return self.text

    def get_boolean(self) -> bool:
        return bool(self.text)

    def sort_key(self) -> Tuple:
        return (self.type_rank, self.text)

    def __repr__(self) -> str:
        return f"StringValue({self.text!r})"


class ListValue(Value):
    type_rank = 3

    def __init__(self, items: Iterable[Value] = ()):
        self.items: Tuple[Value, ...] = tuple(items)

    def get_string(self) -> str:
        return "[" + ", ".join(item.get_string() for item in self.items) + "]"

    def get_boolean(self) -> bool:
        return bool(self.items)

    def sort_key(self) -> Tuple:
        return (self.type_rank, tuple(item.sort_key() for item in self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def __repr__(self) -> str:
        return f"ListValue({list(self.items)!r})"


Value.TRUE = NumericValue(1)
Value.FALSE = NumericValue(0)
Value.ZERO = NumericValue(0)
Value.NULL = NullValue()


def from_bool(flag: bool) -> NumericValue:
    return Value.TRUE if flag else Value.FALSE


# =================================================================
# Lazy values
# =================================================================

class LazyValue:
    """A deferred computation producing a Value when forced.

    Forcing is not memoized: every call to `force` runs the computation again,
    which is what lets loop bodies observe a freshly rebound environment.
    `force_count` records how often this node has been run.
    """
    __slots__ = ("_compute", "label", "force_count")

    def __init__(self, compute: Callable[[], Value], label: str = "<lazy>"):
        self._compute = compute
        self.label = label
        self.force_count = 0

    def force(self) -> Value:
        self.force_count += 1
        return self._compute()

    @staticmethod
    def of(value: Value, label: Optional[str] = None) -> "ConstantLazyValue":
        return ConstantLazyValue(value, label)

    def __repr__(self) -> str:
        return f"<LazyValue {self.label}>"


class ConstantLazyValue(LazyValue):
    """A LazyValue wrapping an already computed Value."""
    __slots__ = ("value",)

    def __init__(self, value: Value, label: Optional[str] = None):
        super().__init__(self._constant, label or "const")
        self.value = value

    def _constant(self) -> Value:
        return self.value

    def __eq__(self, other):
        if not isinstance(other, ConstantLazyValue):
            return NotImplemented
        return self.value == other.value and self.value.variable == other.value.variable

    def __hash__(self):
        return hash(self.value)

    def __repr__(self) -> str:
        return f"<ConstantLazyValue {self.value!r}>"


# =================================================================
# Environment
# =================================================================

_MISSING = object()


class Environment:
    """The flat name -> LazyValue table an expression reads and writes.

    There is one environment per expression (or per host session when the host
    passes the same environment to several expressions). Reading a name that
    was never set defines it as zero bound to that name.
    """
    def __init__(self, bindings: Optional[Dict[str, Value]] = None):
        self.entries: Dict[str, LazyValue] = {}
        for name, value in (bindings or {}).items():
            self.bind(name, value)

    def lookup(self, name: str) -> LazyValue:
        lazy = self.entries.get(name)
        if lazy is None:
            lazy = LazyValue.of(Value.ZERO.bound_to(name), name)
            self.entries[name] = lazy
        return lazy

    def read(self, name: str) -> Value:
        """Forces the entry for `name`, returning its value bound to `name`."""
        value = self.lookup(name).force()
        if value.variable != name:
            value = value.bound_to(name)
        return value

    def bind(self, name: str, value: Value) -> Value:
        """Installs `value` under `name` and returns the bound copy."""
        bound = value.bound_to(name)
        self.entries[name] = LazyValue.of(bound, name)
        return bound

    def define(self, name: str, lazy: LazyValue):
        """Installs a deferred entry, forced every time the name is read."""
        self.entries[name] = lazy

    def unbind(self, name: str):
        self.entries.pop(name, None)

    @contextmanager
    def preserving(self, *names: str):
        """Snapshots the entries for `names` and restores them on exit.

        Restoration also happens when the body raises, so loop variables never
        leak out of a failed iteration. A name that did not exist before is
        removed again (and reads as zero afterwards).
        """
        saved = {name: self.entries.get(name, _MISSING) for name in names}
        try:
            yield self
        finally:
            for name, previous in saved.items():
                if previous is _MISSING:
                    self.entries.pop(name, None)
                else:
                    self.entries[name] = previous

    def snapshot(self) -> Dict[str, Value]:
        """Forces every entry and returns plain name -> value pairs."""
        return {name: self.read(name) for name in list(self.entries)}

    def __contains__(self, name: Any) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def keys(self):
        return self.entries.keys()

    def __repr__(self) -> str:
        return f"<Environment names=[{', '.join(self.entries)}]>"
