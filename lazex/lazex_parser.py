"""
Shunting-yard conversion of a token sequence into Reverse Polish Notation,
plus the validation pass that checks operand counts per function scope.

Function calls leave their opening parenthesis in the output as a marker of
where that call's arguments start; the evaluator and the validator both rely on
it to find each call's parameter boundary.
"""
from typing import List

from lazex.lazex_errors import ExpressionSyntaxError
from lazex.lazex_registry import Registry, Operator
from lazex.lazex_tokenizer import Token, TokenType, tokenize

T = TokenType

# Tokens that complete an operand.
_OPERAND_END = (T.LITERAL, T.HEX_LITERAL, T.STRING, T.VARIABLE, T.CLOSE_PAREN)
# Tokens that start an operand.
_OPERAND_START = (T.LITERAL, T.HEX_LITERAL, T.STRING, T.VARIABLE, T.FUNCTION, T.OPEN_PAREN)
# Adjacent operand pairs (left kind, right kind) read as a product, e.g. 2(a+b), 3x, (a)(b).
_IMPLICIT_LEFT = (T.LITERAL, T.HEX_LITERAL, T.VARIABLE, T.CLOSE_PAREN)
_IMPLICIT_RIGHT = (T.OPEN_PAREN, T.VARIABLE, T.FUNCTION)


def _shunt(op: Operator, registry: Registry, output: List[Token], stack: List[Token]):
    """Moves operators that bind at least as tightly as `op` from the stack to the output."""
    while stack and stack[-1].kind in (T.OPERATOR, T.UNARY_OPERATOR):
        top = registry.operator(stack[-1].surface)
        if (op.left_assoc and op.precedence <= top.precedence) or op.precedence < top.precedence:
            output.append(stack.pop())
        else:
            break


def to_rpn(tokens: List[Token], registry: Registry) -> List[Token]:
    output: List[Token] = []
    stack: List[Token] = []
    previous = None

    for token in tokens:
        kind = token.kind
        if kind in _OPERAND_START and previous is not None and previous.kind in _OPERAND_END:
            times = registry.operator("*")
            if kind in _IMPLICIT_RIGHT and previous.kind in _IMPLICIT_LEFT and times is not None:
                _shunt(times, registry, output, stack)
                stack.append(Token("*", T.OPERATOR, token.offset))
            else:
                raise ExpressionSyntaxError("Missing operator", token.offset)

        match kind:
            case T.LITERAL | T.HEX_LITERAL | T.STRING | T.VARIABLE:
                output.append(token)
            case T.FUNCTION:
                stack.append(token)
            case T.COMMA:
                if previous is None or previous.kind in (T.OPERATOR, T.UNARY_OPERATOR, T.OPEN_PAREN, T.COMMA):
                    raise ExpressionSyntaxError("Missing parameter before comma", token.offset)
                while stack and stack[-1].kind is not T.OPEN_PAREN:
                    output.append(stack.pop())
                if len(stack) < 2 or stack[-2].kind is not T.FUNCTION:
                    raise ExpressionSyntaxError("Unexpected comma outside a function's argument list", token.offset)
            case T.OPERATOR:
                if previous is None or previous.kind in (T.COMMA, T.OPEN_PAREN):
                    raise ExpressionSyntaxError(f"Missing parameter(s) for operator {token}", token.offset)
                op = registry.operator(token.surface)
                if op is None or op.unary:
                    raise ExpressionSyntaxError(f"Unknown operator '{token}'", token.offset)
                _shunt(op, registry, output, stack)
                stack.append(token)
            case T.UNARY_OPERATOR:
                if previous is not None and previous.kind not in (T.OPERATOR, T.UNARY_OPERATOR, T.COMMA, T.OPEN_PAREN):
                    raise ExpressionSyntaxError(f"Invalid position for unary operator {token.surface[:-1]}", token.offset)
                op = registry.operator(token.surface)
                if op is None or not op.unary:
                    raise ExpressionSyntaxError(f"Unknown unary operator '{token.surface[:-1]}'", token.offset)
                # Prefix operators have no left operand, so nothing is popped for them.
                stack.append(token)
            case T.OPEN_PAREN:
                if previous is not None and previous.kind is T.FUNCTION:
                    output.append(token)
                stack.append(token)
            case T.CLOSE_PAREN:
                if previous is not None and previous.kind in (T.OPERATOR, T.UNARY_OPERATOR, T.COMMA):
                    symbol = previous.surface[:-1] if previous.kind is T.UNARY_OPERATOR else previous.surface
                    raise ExpressionSyntaxError(f"Missing parameter(s) after '{symbol}'", previous.offset)
                while stack and stack[-1].kind is not T.OPEN_PAREN:
                    output.append(stack.pop())
                if not stack:
                    raise ExpressionSyntaxError("Mismatched parentheses", token.offset)
                stack.pop()
                if stack and stack[-1].kind is T.FUNCTION:
                    output.append(stack.pop())
        previous = token

    while stack:
        element = stack.pop()
        if element.kind in (T.OPEN_PAREN, T.CLOSE_PAREN):
            raise ExpressionSyntaxError("Mismatched parentheses", element.offset)
        output.append(element)
    return output


def validate(rpn: List[Token], registry: Registry):
    """Checks that every operator and function finds its operands.

    Each function call opens a new counting scope at its parameter marker; the
    whole expression must leave exactly one value in the outermost scope.
    """
    scopes = [0]
    for token in rpn:
        match token.kind:
            case T.UNARY_OPERATOR:
                if scopes[-1] < 1:
                    raise ExpressionSyntaxError(f"Missing parameter(s) for operator {token.surface[:-1]}", token.offset)
            case T.OPERATOR:
                if scopes[-1] < 2:
                    if token.surface == ";":
                        raise ExpressionSyntaxError("Unnecessary semicolon", token.offset)
                    raise ExpressionSyntaxError(f"Missing parameter(s) for operator {token}", token.offset)
                scopes[-1] -= 1
            case T.FUNCTION:
                f = registry.function(token.surface)
                if f is None:
                    raise ExpressionSyntaxError(f"Unknown function '{token}'", token.offset)
                count = scopes.pop()
                if not f.variadic and count != f.arity:
                    raise ExpressionSyntaxError(
                        f"Function {token} expected {f.arity} parameters, got {count}", token.offset)
                if not scopes:
                    raise ExpressionSyntaxError("Too many function calls, maximum scope exceeded", token.offset)
                scopes[-1] += 1
            case T.OPEN_PAREN:
                scopes.append(0)
            case _:
                scopes[-1] += 1

    end = rpn[-1].offset if rpn else 0
    if len(scopes) > 1:
        raise ExpressionSyntaxError("Too many unhandled function parameter lists", end)
    if scopes[-1] > 1:
        raise ExpressionSyntaxError("Too many numbers or variables", end)
    if scopes[-1] < 1:
        raise ExpressionSyntaxError("Empty expression", end)


def parse(text: str, registry: Registry) -> List[Token]:
    """Tokenizes, converts and validates `text`, returning its RPN."""
    rpn = to_rpn(tokenize(text, registry), registry)
    validate(rpn, registry)
    return rpn
