"""
Splits expression source text into a flat sequence of typed tokens.

Operator recognition consults the live registry: the longest run of symbol
characters that is a registered operator wins, so hosts that add operators
change how text is split.
"""
import string
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from lazex.lazex_errors import LexError
from lazex.lazex_registry import Registry, UNARY_SUFFIX


class TokenType(Enum):
    LITERAL = "literal"
    HEX_LITERAL = "hex-literal"
    STRING = "string"
    VARIABLE = "variable"
    FUNCTION = "function"
    OPERATOR = "operator"
    UNARY_OPERATOR = "unary-operator"
    OPEN_PAREN = "open-paren"
    CLOSE_PAREN = "close-paren"
    COMMA = "comma"


@dataclass(frozen=True)
class Token:
    surface: str
    kind: TokenType
    offset: int

    def __str__(self) -> str:
        return self.surface


_PUNCTUATION = {
    "(": TokenType.OPEN_PAREN,
    ")": TokenType.CLOSE_PAREN,
    ",": TokenType.COMMA,
}

# A token of these kinds in front of an operator makes that operator unary.
_UNARY_CONTEXT = (TokenType.OPERATOR, TokenType.UNARY_OPERATOR, TokenType.OPEN_PAREN, TokenType.COMMA)


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_symbol_char(ch: str) -> bool:
    return not (ch.isalnum() or ch == "_" or ch.isspace() or ch in "(),'")


class Tokenizer:
    """Iterates over the tokens of `text`, skipping blanks."""
    def __init__(self, text: str, registry: Registry):
        self.text = text
        self.registry = registry
        self.pos = 0
        self.previous: Optional[Token] = None

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        token = self._scan()
        if token is None:
            raise StopIteration
        self.previous = token
        return token

    def _scan(self) -> Optional[Token]:
        text = self.text
        n = len(text)
        while self.pos < n and text[self.pos].isspace():
            self.pos += 1
        if self.pos >= n:
            return None

        start = self.pos
        ch = text[start]
        nxt = text[start + 1] if start + 1 < n else ""
        if _is_digit(ch) or (ch == "." and _is_digit(nxt)):
            return self._scan_number(start)
        if ch == "'":
            return self._scan_string(start)
        if ch.isalpha() or ch == "_":
            return self._scan_identifier(start)
        if ch in _PUNCTUATION:
            self.pos += 1
            return Token(ch, _PUNCTUATION[ch], start)
        return self._scan_operator(start)

    def _scan_number(self, start: int) -> Token:
        text = self.text
        n = len(text)
        if text.startswith(("0x", "0X"), start):
            pos = start + 2
            while pos < n and text[pos] in string.hexdigits:
                pos += 1
            if pos == start + 2:
                raise LexError("Malformed hexadecimal literal", start)
            self.pos = pos
            return Token(text[start:pos], TokenType.HEX_LITERAL, start)

        pos = start
        seen_point = False
        while pos < n and (_is_digit(text[pos]) or text[pos] == "."):
            if text[pos] == ".":
                if seen_point:
                    raise LexError(f"Malformed numeric literal {text[start:pos + 1]!r}", start)
                seen_point = True
            pos += 1
        # An exponent marker only belongs to the literal when digits follow it.
        if pos < n and text[pos] in "eE":
            look = pos + 1
            if look < n and text[look] in "+-":
                look += 1
            if look < n and _is_digit(text[look]):
                pos = look
                while pos < n and _is_digit(text[pos]):
                    pos += 1
        self.pos = pos
        return Token(text[start:pos], TokenType.LITERAL, start)

    def _scan_string(self, start: int) -> Token:
        text = self.text
        n = len(text)
        parts = []
        quote = start
        while True:
            end = text.find("'", quote + 1)
            if end < 0:
                raise LexError("Unterminated string literal", quote)
            parts.append(text[quote + 1:end])
            # A quoted literal right after another one continues it.
            look = end + 1
            while look < n and text[look].isspace():
                look += 1
            if look < n and text[look] == "'":
                quote = look
                continue
            self.pos = end + 1
            return Token("".join(parts), TokenType.STRING, start)

    def _scan_identifier(self, start: int) -> Token:
        text = self.text
        n = len(text)
        pos = start
        while pos < n and (text[pos].isalnum() or text[pos] == "_"):
            pos += 1
        self.pos = pos
        look = pos
        while look < n and text[look].isspace():
            look += 1
        kind = TokenType.FUNCTION if look < n and text[look] == "(" else TokenType.VARIABLE
        return Token(text[start:pos], kind, start)

    def _scan_operator(self, start: int) -> Token:
        text = self.text
        n = len(text)
        pos = start
        matched = -1
        while pos < n and _is_symbol_char(text[pos]):
            pos += 1
            if self.registry.is_operator_symbol(text[start:pos]):
                matched = pos
        if pos == start:
            raise LexError(f"Unexpected character {text[start]!r}", start)
        end = matched if matched != -1 else pos
        self.pos = end
        surface = text[start:end]
        if self.previous is None or self.previous.kind in _UNARY_CONTEXT:
            return Token(surface + UNARY_SUFFIX, TokenType.UNARY_OPERATOR, start)
        return Token(surface, TokenType.OPERATOR, start)


def tokenize(text: str, registry: Registry) -> List[Token]:
    return list(Tokenizer(text, registry))
