import pytest
from lazex.lazex_errors import LexError
from lazex.lazex_registry import Registry
from lazex.lazex_tokenizer import Token, TokenType, tokenize

T = TokenType


@pytest.fixture
def registry():
    return Registry.with_defaults()


def kinds(text, registry):
    return [t.kind for t in tokenize(text, registry)]


def surfaces(text, registry):
    return [t.surface for t in tokenize(text, registry)]


def test_token_kinds_and_offsets(registry):
    tokens = tokenize("sin(x) + 0x1F", registry)
    assert tokens == [
        Token("sin", T.FUNCTION, 0),
        Token("(", T.OPEN_PAREN, 3),
        Token("x", T.VARIABLE, 4),
        Token(")", T.CLOSE_PAREN, 5),
        Token("+", T.OPERATOR, 7),
        Token("0x1F", T.HEX_LITERAL, 9),
    ]


def test_blank_input_has_no_tokens(registry):
    assert tokenize("   \n\t ", registry) == []


@pytest.mark.parametrize("text, expected", [
    ("12", ["12"]),
    ("1.5", ["1.5"]),
    (".5", [".5"]),
    ("1.5e-3", ["1.5e-3"]),
    ("2E+10", ["2E+10"]),
    ("0XfF", ["0XfF"]),
])
def test_numeric_literals(registry, text, expected):
    assert surfaces(text, registry) == expected


def test_exponent_marker_without_digits_is_an_identifier(registry):
    tokens = tokenize("3e", registry)
    assert [(t.surface, t.kind) for t in tokens] == [("3", T.LITERAL), ("e", T.VARIABLE)]


def test_function_requires_following_paren(registry):
    assert kinds("f (1)", registry)[0] is T.FUNCTION
    assert kinds("f + 1", registry)[0] is T.VARIABLE


def test_identifiers_may_use_underscores(registry):
    assert surfaces("_ + acc_2", registry) == ["_", "+", "acc_2"]


def test_unary_operator_detection(registry):
    tokens = tokenize("-1 * -(2, -3)", registry)
    assert [(t.surface, t.kind) for t in tokens if t.kind in (T.OPERATOR, T.UNARY_OPERATOR)] == [
        ("-u", T.UNARY_OPERATOR),
        ("*", T.OPERATOR),
        ("-u", T.UNARY_OPERATOR),
        ("-u", T.UNARY_OPERATOR),
    ]


def test_operator_after_operand_is_binary(registry):
    assert kinds("a - 1", registry) == [T.VARIABLE, T.OPERATOR, T.LITERAL]
    assert kinds("(1) - 1", registry)[3] is T.OPERATOR


@pytest.mark.parametrize("text, expected", [
    ("a<=b", ["a", "<=", "b"]),
    ("a<>b", ["a", "<>", "b"]),
    ("a==b", ["a", "==", "b"]),
    ("2*-3", ["2", "*", "-u", "3"]),
    ("x=-1", ["x", "=", "-u", "1"]),
    ("a&&!b", ["a", "&&", "!u", "b"]),
])
def test_longest_registered_operator_wins(registry, text, expected):
    assert surfaces(text, registry) == expected


def test_unknown_symbol_run_becomes_one_token(registry):
    tokens = tokenize("1 #@ 2", registry)
    assert tokens[1] == Token("#@", T.OPERATOR, 2)


def test_tokenizing_follows_registered_operators(registry):
    assert surfaces("1<=>2", registry) == ["1", "<=", ">u", "2"]
    custom = registry.copy()
    custom.add_binary_operator("<=>", 7, False, lambda a, b: a)
    assert surfaces("1<=>2", custom) == ["1", "<=>", "2"]


def test_string_literal(registry):
    tokens = tokenize("x + 'hello world'", registry)
    assert tokens[2] == Token("hello world", T.STRING, 4)


def test_adjacent_string_literals_merge(registry):
    tokens = tokenize("'ab' 'cd''ef'", registry)
    assert tokens == [Token("abcdef", T.STRING, 0)]


def test_empty_string_literal(registry):
    assert tokenize("''", registry) == [Token("", T.STRING, 0)]


@pytest.mark.parametrize("text, offset", [
    ("'abc", 0),
    ("1 + 'abc", 4),
    ("0x", 0),
    ("1 + 0xZ", 4),
    ("1.2.3", 0),
])
def test_malformed_literals(registry, text, offset):
    with pytest.raises(LexError) as exc:
        tokenize(text, registry)
    assert exc.value.offset == offset
