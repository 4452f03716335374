"""
Numeric constant folding for calcsimp.

Two passes live here:

    unary_num_ops   - 4! => 24
    binary_num_ops  - 1+a+2+3 => 6+a, 0*a => 0, a^2^3 => a^8

All integer arithmetic is checked against the 64-bit signed range. A fold
whose result does not fit raises FoldOverflowError instead of wrapping or
saturating.
"""

import logging
import operator
from functools import reduce
from typing import Callable, Dict, List

from .tree import (
    INT_MAX, INT_MIN, Binary, BinaryOp, Node, Number, Unary, UnaryOp,
    build, is_literal,
)

logger = logging.getLogger(__name__)

# Exponents accepted by numeric power folding
MAX_EXPONENT = (1 << 32) - 1

# Largest n for which n! is folded
FACTORIAL_LIMIT = 10

FoldHandler = Callable[[List[int]], int]


class FoldOverflowError(OverflowError):
    """A constant fold produced a value outside the 64-bit signed range."""

    def __init__(self, operation: str, operands: List[int]):
        self.operation = operation
        self.operands = list(operands)
        args = ", ".join(str(o) for o in self.operands)
        super().__init__(f"integer overflow in {operation}({args})")


# ============================================================
# Checked Arithmetic
# ============================================================

def fits(value: int) -> bool:
    return INT_MIN <= value <= INT_MAX


def _checked(operation: str, result: int, *operands: int) -> int:
    if not fits(result):
        raise FoldOverflowError(operation, list(operands))
    return result


def checked_pow(base: int, exponent: int) -> int:
    """base ** exponent for 0 <= exponent <= MAX_EXPONENT."""
    if not 0 <= exponent <= MAX_EXPONENT:
        raise ValueError(f"checked_pow: exponent {exponent} out of range")
    if base in (0, 1) or exponent == 0:
        return 1 if exponent == 0 else base
    if base == -1:
        return -1 if exponent % 2 else 1
    # |base| >= 2 overflows long before the exponent reaches 64
    if exponent >= 64:
        raise FoldOverflowError("pow", [base, exponent])
    return _checked("pow", base ** exponent, base, exponent)


def checked_factorial(n: int) -> int:
    if n < 0:
        raise ValueError(f"checked_factorial: negative argument {n}")
    result = 1
    for k in range(2, n + 1):
        result = _checked("factorial", result * k, n)
    return result


def nary_fold(identity: int, binary_op: Callable[[int, int], int]) -> FoldHandler:
    """Fold a list of integers left to right, `identity` for the empty list."""
    def handler(values: List[int]) -> int:
        return reduce(binary_op, values, identity)
    return handler


NUMERIC_FOLDS: Dict[BinaryOp, FoldHandler] = {
    BinaryOp.ADD: nary_fold(0, operator.add),
    BinaryOp.MUL: nary_fold(1, operator.mul),
}


def checked_fold(op: BinaryOp, values: List[int]) -> int:
    """
    Sum or multiply `values` exactly, then check the result.

    Intermediate values may leave the 64-bit range; only the final
    constant must fit.
    """
    if op is BinaryOp.MUL and 0 in values:
        return 0
    return _checked(op.name.lower(), NUMERIC_FOLDS[op](values), *values)


# ============================================================
# Passes
# ============================================================

def unary_num_ops(node: Node) -> Node:
    """Fold the factorial of a small non-negative literal: 4! => 24."""
    if (isinstance(node, Unary)
            and node.operator is UnaryOp.FACTORIAL
            and isinstance(node.operand, Number)
            and 0 <= node.operand.value <= FACTORIAL_LIMIT):
        return Number(checked_factorial(node.operand.value))
    return node


def binary_num_ops(node: Node) -> Node:
    """
    Calculate the binary operations that are immediately calculable.

    Examples:
        1+a+2+3  =>  6+a
        0+a      =>  a
        1*a*2*3  =>  6*a
        0*a      =>  0
        1^a^2^3  =>  1
        a^2^3    =>  a^8
        a^0      =>  1
        a^1      =>  a
    """
    if not isinstance(node, Binary):
        return node

    # Operand order matters for towers, fold them from the top down
    if node.operator is BinaryOp.POW:
        return reduce(_fold_power, reversed(node.operands), Number(1))

    numbers = [o.value for o in node.operands if isinstance(o, Number)]
    others = [o for o in node.operands if not isinstance(o, Number)]
    constant = checked_fold(node.operator, numbers)

    if node.operator is BinaryOp.MUL and constant == 0:
        return Number(0)

    if constant != node.operator.identity:
        others.insert(0, Number(constant))
    return build(node.operator, others)


def _fold_power(acc: Node, cur: Node) -> Node:
    """One step of the right-to-left tower fold: cur ^ acc."""
    if isinstance(acc, Number) and isinstance(cur, Number):
        if 0 <= acc.value <= MAX_EXPONENT:
            return Number(checked_pow(cur.value, acc.value))
        return build(BinaryOp.POW, [cur, acc])
    if is_literal(acc, 0):
        return Number(1)
    if is_literal(acc, 1):
        return cur
    if is_literal(cur, 0):
        return Number(0)
    if is_literal(cur, 1):
        return Number(1)
    return build(BinaryOp.POW, [cur, acc])
