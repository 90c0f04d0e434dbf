"""
Error taxonomy for the LAZEX expression engine.

Every error raised while tokenizing, parsing or evaluating an expression is an
ExpressionError. The optional `offset` is the 0-based character position in the
source text that the error refers to.
"""
from typing import Optional


class ExpressionError(Exception):
    """Base class for all engine errors."""
    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        if self.offset is None:
            return self.message
        return f"{self.message} at character position {self.offset}"


class LexError(ExpressionError):
    """Malformed literal or unterminated string."""


class ExpressionSyntaxError(ExpressionError):
    """Structurally invalid token sequence."""


class EvalError(ExpressionError):
    """Failure while forcing a lazy value."""


class ArityError(EvalError):
    """A lazy function was handed an argument count it cannot work with."""


class ExpressionTypeError(EvalError, TypeError):
    """An operand of the wrong value variant reached an operator or function."""


class RegistryError(ExpressionError):
    """Invalid registration of an operator or function."""
