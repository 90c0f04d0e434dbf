"""
The LAZEX evaluator.

Walks validated RPN once, building a tree of LazyValues without forcing any of
them. Nothing runs until the root is forced, at which point operators and
functions decide which of their operands to force.

Each node does its work directly in `force`, so forcing the tree costs one
Python frame per nesting level. Runs of the same left-associative operator,
such as the statements of a script joined by ';' or a long sum, collapse into
a single node that forces its operands one after another.
"""
import os
import sys
from typing import Any, List, Tuple

from lazex.lazex_datatypes import LazyValue, NumericValue, StringValue
from lazex.lazex_errors import EvalError, ExpressionError, LexError
from lazex.lazex_registry import Registry, Operator, Function
from lazex.lazex_tokenizer import Token, TokenType

T = TokenType

# Stack marker for the start of a function call's parameters.
_PARAMS_START = LazyValue(lambda: None, "(")


def _locate(e: ExpressionError, offset: int):
    if e.offset is None:
        e.offset = offset


# =================================================================
# Tree nodes
# =================================================================

class _Node(LazyValue):
    """A LazyValue created from one token; errors raised below it without a
    position are reported at that token."""
    __slots__ = ("offset", "ctx")

    def __init__(self, token: Token, ctx: Any):
        super().__init__(None, token.surface)
        self.offset = token.offset
        self.ctx = ctx


class _VariableNode(_Node):
    __slots__ = ("name",)

    def __init__(self, token: Token, ctx: Any):
        super().__init__(token, ctx)
        self.name = token.surface

    def force(self):
        self.force_count += 1
        # The lookup happens when forced, so reassignments are always seen.
        try:
            return self.ctx.environment.read(self.name)
        except ExpressionError as e:
            _locate(e, self.offset)
            raise


class _OperatorNode(_Node):
    """A unary operator, or a binary operator that cannot be chained."""
    __slots__ = ("op", "operands")

    def __init__(self, token: Token, ctx: Any, op: Operator, operands: List[LazyValue]):
        super().__init__(token, ctx)
        self.op = op
        self.operands = operands

    def force(self):
        self.force_count += 1
        op = self.op
        try:
            if op.lazy:
                return op.apply_lazy(self.ctx, self.operands).force()
            values = []
            for operand in self.operands:
                values.append(operand.force())
            return op.apply(self.ctx, values)
        except ExpressionError as e:
            _locate(e, self.offset)
            raise


class _ChainNode(_Node):
    """A run `a op b op c ...` of one left-associative operator.

    The accumulated value of the left side is computed first and folded with
    each right operand in turn. Lazy operators only chain when they force
    their left operand first, so handing them the already computed value
    changes nothing they can observe.
    """
    __slots__ = ("op", "first", "steps")

    def __init__(self, token: Token, ctx: Any, op: Operator, first: LazyValue, right: LazyValue):
        super().__init__(token, ctx)
        self.op = op
        self.first = first
        self.steps: List[Tuple[int, LazyValue]] = [(token.offset, right)]

    def extend(self, token: Token, right: LazyValue):
        self.steps.append((token.offset, right))

    def force(self):
        self.force_count += 1
        op, ctx = self.op, self.ctx
        offset = self.offset
        try:
            acc = self.first.force()
            for offset, right in self.steps:
                if op.lazy:
                    acc = op.apply_lazy(ctx, [LazyValue.of(acc), right]).force()
                else:
                    acc = op.apply(ctx, [acc, right.force()])
            return acc
        except ExpressionError as e:
            _locate(e, offset)
            raise


class _FunctionNode(_Node):
    __slots__ = ("fn", "params", "evaluator")

    def __init__(self, token: Token, evaluator: "Evaluator", fn: Function, params: List[LazyValue]):
        super().__init__(token, evaluator.ctx)
        self.fn = fn
        self.params = params
        self.evaluator = evaluator

    def force(self):
        self.force_count += 1
        fn = self.fn
        self.evaluator._dbg("call", fn.name, "argc", len(self.params))
        try:
            if fn.lazy:
                return fn.apply_lazy(self.ctx, self.params).force()
            values = []
            for param in self.params:
                values.append(param.force())
            return fn.apply(self.ctx, values)
        except ExpressionError as e:
            _locate(e, self.offset)
            raise


# =================================================================
# Evaluator
# =================================================================

class Evaluator:
    """Builds the lazy value tree of an expression.

    `ctx` is the running Expression; behaviours that ask for it get access to
    its environment, decimal context, configuration and output sinks.
    """
    def __init__(self, registry: Registry, ctx: Any):
        self.registry = registry
        self.ctx = ctx

    def _dbg(self, *parts):
        config = getattr(self.ctx, "config", None)
        if os.environ.get("LAZEX_DEBUG") or getattr(config, "debug", False):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    def build(self, rpn: List[Token]) -> LazyValue:
        stack: List[LazyValue] = []
        for token in rpn:
            match token.kind:
                case T.UNARY_OPERATOR:
                    stack.append(_OperatorNode(token, self.ctx, self._operator(token), [stack.pop()]))
                case T.OPERATOR:
                    right = stack.pop()
                    left = stack.pop()
                    stack.append(self._binary(token, left, right))
                case T.FUNCTION:
                    params: List[LazyValue] = []
                    while stack and stack[-1] is not _PARAMS_START:
                        params.append(stack.pop())
                    if stack:
                        stack.pop()
                    params.reverse()
                    stack.append(_FunctionNode(token, self, self._function(token), params))
                case T.OPEN_PAREN:
                    stack.append(_PARAMS_START)
                case T.VARIABLE:
                    stack.append(_VariableNode(token, self.ctx))
                case T.LITERAL | T.HEX_LITERAL | T.STRING:
                    stack.append(self._literal(token))
                case _:
                    raise EvalError(f"Unexpected token '{token}'", token.offset)
        if len(stack) != 1:
            raise EvalError("Malformed expression")
        return stack.pop()

    def _binary(self, token: Token, left: LazyValue, right: LazyValue) -> LazyValue:
        op = self._operator(token)
        if not op.chainable:
            return _OperatorNode(token, self.ctx, op, [left, right])
        # (a op b) op c is the same run whether or not it was parenthesized.
        if isinstance(left, _ChainNode) and left.op is op:
            left.extend(token, right)
            return left
        return _ChainNode(token, self.ctx, op, left, right)

    def _operator(self, token: Token) -> Operator:
        op = self.registry.operator(token.surface)
        if op is None:
            raise EvalError(f"Unknown operator '{token}'", token.offset)
        return op

    def _function(self, token: Token) -> Function:
        f = self.registry.function(token.surface)
        if f is None:
            raise EvalError(f"Unknown function '{token}'", token.offset)
        return f

    def _literal(self, token: Token) -> LazyValue:
        context = self.ctx.decimal_context
        try:
            match token.kind:
                case T.HEX_LITERAL:
                    value = NumericValue(context.create_decimal(int(token.surface[2:], 16)))
                case T.LITERAL:
                    value = NumericValue(context.create_decimal(token.surface))
                case _:
                    value = StringValue(token.surface)
        except (ArithmeticError, ValueError) as e:
            raise LexError(f"Malformed literal '{token}'", token.offset) from e
        return LazyValue.of(value, token.surface)
