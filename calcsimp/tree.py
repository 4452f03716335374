"""
Expression tree model for calcsimp.

Trees are built from four node kinds:

    Number(3)                 - 64-bit signed integer literal
    Variable("x")             - named variable
    Binary(op, [a, b, ...])   - n-ary add, multiply or power tower
    Unary(op, a)              - factorial

Power towers are right-associative: Binary(POW, [x, y, z]) is x^(y^z).
Operand order of ADD and MUL carries no algebraic meaning.

Building trees:

    from calcsimp.tree import build, BinaryOp, Variable

    x = Variable("x")
    expr = 2 * x + 1            # Binary(ADD, [Binary(MUL, [2, x]), 1])
    tower = x ^ "y" ^ 3         # Binary(POW, [x, y, 3]), written order
    build(BinaryOp.MUL, [])     # Number(1), the identity

Nodes are immutable by convention; passes return new trees.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Type aliases
NodeLike = Union["Node", int, str]
NodeFunc = Callable[["Node"], "Node"]

INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1

# Depth budget for tree walks
DEPTH_LIMIT = 32


class BinaryOp(Enum):
    """Binary operators: symbol, print precedence and identity element."""

    ADD = ("+", 4, 0)
    MUL = ("*", 3, 1)
    POW = ("^", 2, 1)

    def __init__(self, symbol: str, precedence: int, identity: int):
        self.symbol = symbol
        self.precedence = precedence
        self.identity = identity

    @property
    def commutative(self) -> bool:
        return self is not BinaryOp.POW

    def __repr__(self) -> str:
        return self.name


class UnaryOp(Enum):
    """Unary operators: symbol and print precedence."""

    FACTORIAL = ("!", 1)

    def __init__(self, symbol: str, precedence: int):
        self.symbol = symbol
        self.precedence = precedence

    def __repr__(self) -> str:
        return self.name


# ============================================================
# Node Types
# ============================================================

class Node:
    """
    Base class of all expression nodes.

    Arithmetic operators build Binary nodes by fusion: when the left
    side already is a node of the same operator the right side is
    appended to its operands instead of nesting.

        Variable("a") + "b" + "c"   # Binary(ADD, [a, b, c])
        Variable("x") ^ 2 ^ 3       # Binary(POW, [x, 2, 3]) = x^(2^3)
        a - b                       # a + (-1 * b)
        a / b                       # a * b^-1
    """

    __slots__ = ()

    def format(self, spaced: bool = False) -> str:
        """Render with canonical precedence, `a+b` or `a + b`."""
        return _format(self, None, spaced)

    def __str__(self) -> str:
        return self.format()

    # Fusion combinators

    def __add__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.ADD, self, other)

    def __radd__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.ADD, as_node(other), self)

    def __mul__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.MUL, self, other)

    def __rmul__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.MUL, as_node(other), self)

    def __xor__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.POW, self, other)

    def __rxor__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.POW, as_node(other), self)

    def __sub__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.ADD, self, negate(other))

    def __rsub__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.ADD, as_node(other), negate(self))

    def __truediv__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.MUL, self, reciprocal(other))

    def __rtruediv__(self, other: NodeLike) -> "Node":
        return fuse(BinaryOp.MUL, as_node(other), reciprocal(self))

    def __neg__(self) -> "Node":
        return negate(self)

    # Tree walks

    def children(self) -> Tuple["Node", ...]:
        return ()

    def map(self, f: NodeFunc, limit: int = DEPTH_LIMIT) -> "Node":
        """
        Rebuild the tree bottom-up: children first, then `f` on the parent.

        Descent stops `limit` levels down; the subtree there is returned
        unchanged and `f` is not applied to it.
        """
        if limit <= 0:
            logger.warning("Recursion depth limit reached at a %s node", type(self).__name__)
            return self
        return f(self._map_children(f, limit - 1))

    def visit(self, f: Callable[["Node"], None], limit: int = DEPTH_LIMIT) -> None:
        """Call `f` on every node, parents before children, without rebuilding."""
        if limit <= 0:
            logger.warning("Recursion depth limit reached at a %s node", type(self).__name__)
            return
        f(self)
        for child in self.children():
            child.visit(f, limit - 1)

    def _map_children(self, f: NodeFunc, limit: int) -> "Node":
        return self


class Number(Node):
    """A 64-bit signed integer literal."""

    __slots__ = ("value",)

    def __init__(self, value: int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Number: expected int, got {type(value).__name__}")
        if not INT_MIN <= value <= INT_MAX:
            raise ValueError(f"Number: {value} is outside the 64-bit signed range")
        self.value = value

    def __eq__(self, other) -> bool:
        return isinstance(other, Number) and self.value == other.value

    def __hash__(self) -> int:
        return hash((Number, self.value))

    def __repr__(self) -> str:
        return f"Number({self.value})"


class Variable(Node):
    """A named variable. Names are case-sensitive."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        if not isinstance(name, str) or not name:
            raise TypeError("Variable: name must be a non-empty string")
        self.name = name

    def __eq__(self, other) -> bool:
        return isinstance(other, Variable) and self.name == other.name

    def __hash__(self) -> int:
        return hash((Variable, self.name))

    def __repr__(self) -> str:
        return f"Variable({self.name!r})"


class Binary(Node):
    """
    An n-ary operator node.

    The constructor keeps operands as given; use build() to get the
    collapsed form (identity for no operands, the operand itself for one).
    """

    __slots__ = ("operator", "operands")

    def __init__(self, operator: BinaryOp, operands: Iterable[NodeLike]):
        self.operator = operator
        self.operands = tuple(as_node(o) for o in operands)

    def children(self) -> Tuple[Node, ...]:
        return self.operands

    def with_operand(self, operand: NodeLike) -> "Binary":
        """Return a copy with `operand` appended."""
        return Binary(self.operator, self.operands + (as_node(operand),))

    def build(self) -> Node:
        return build(self.operator, self.operands)

    def _map_children(self, f: NodeFunc, limit: int) -> Node:
        return Binary(self.operator, [o.map(f, limit) for o in self.operands])

    def __eq__(self, other) -> bool:
        return (isinstance(other, Binary)
                and self.operator is other.operator
                and self.operands == other.operands)

    def __hash__(self) -> int:
        return hash((Binary, self.operator, self.operands))

    def __repr__(self) -> str:
        inner = ", ".join(repr(o) for o in self.operands)
        return f"Binary({self.operator!r}, [{inner}])"


class Unary(Node):
    """A unary operator node (factorial)."""

    __slots__ = ("operator", "operand")

    def __init__(self, operator: UnaryOp, operand: NodeLike):
        self.operator = operator
        self.operand = as_node(operand)

    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)

    def _map_children(self, f: NodeFunc, limit: int) -> Node:
        return Unary(self.operator, self.operand.map(f, limit))

    def __eq__(self, other) -> bool:
        return (isinstance(other, Unary)
                and self.operator is other.operator
                and self.operand == other.operand)

    def __hash__(self) -> int:
        return hash((Unary, self.operator, self.operand))

    def __repr__(self) -> str:
        return f"Unary({self.operator!r}, {self.operand!r})"


# ============================================================
# Construction
# ============================================================

def as_node(value: NodeLike) -> Node:
    """Lift an int to Number and a str to Variable; nodes pass through."""
    if isinstance(value, Node):
        return value
    if isinstance(value, bool):
        raise TypeError("as_node: bool is not an expression")
    if isinstance(value, int):
        return Number(value)
    if isinstance(value, str):
        return Variable(value)
    raise TypeError(f"as_node: cannot make an expression from {type(value).__name__}")


def build(operator: BinaryOp, operands: Iterable[NodeLike]) -> Node:
    """
    Finalize an n-ary node.

    No operands gives the operator's identity, one operand gives that
    operand, anything more gives a Binary node.
    """
    items: List[Node] = [as_node(o) for o in operands]
    if not items:
        return Number(operator.identity)
    if len(items) == 1:
        return items[0]
    return Binary(operator, items)


def fuse(operator: BinaryOp, lhs: NodeLike, rhs: NodeLike) -> Node:
    """Append `rhs` to `lhs` if `lhs` is an `operator` node, else pair them."""
    lhs = as_node(lhs)
    if isinstance(lhs, Binary) and lhs.operator is operator:
        return lhs.with_operand(rhs)
    return build(operator, [lhs, rhs])


def add(*operands: NodeLike) -> Node:
    return build(BinaryOp.ADD, operands)


def mul(*operands: NodeLike) -> Node:
    return build(BinaryOp.MUL, operands)


def power(*operands: NodeLike) -> Node:
    """Power tower, right-associative: power(x, y, z) is x^(y^z)."""
    return build(BinaryOp.POW, operands)


def factorial(operand: NodeLike) -> Node:
    return Unary(UnaryOp.FACTORIAL, operand)


def negate(operand: NodeLike) -> Node:
    return Binary(BinaryOp.MUL, [Number(-1), as_node(operand)])


def reciprocal(operand: NodeLike) -> Node:
    return Binary(BinaryOp.POW, [as_node(operand), Number(-1)])


def is_binary(node: Node, operator: BinaryOp) -> bool:
    return isinstance(node, Binary) and node.operator is operator


def is_literal(node: Node, value: int) -> bool:
    return isinstance(node, Number) and node.value == value


# ============================================================
# Printer
# ============================================================

def _format(node: Node, outer: Optional[int], spaced: bool) -> str:
    """Render `node` inside a context of precedence `outer` (None at top)."""
    if isinstance(node, Number):
        if node.value < 0 and outer is not None and outer <= BinaryOp.POW.precedence:
            return f"({node.value})"
        return str(node.value)

    if isinstance(node, Variable):
        return node.name

    if isinstance(node, Binary):
        if not node.operands:
            return str(node.operator.identity)
        if len(node.operands) == 1:
            return _format(node.operands[0], outer, spaced)
        prec = node.operator.precedence
        sep = f" {node.operator.symbol} " if spaced else node.operator.symbol
        text = sep.join(_format(o, prec, spaced) for o in node.operands)
        if outer is not None and prec > outer:
            return f"({text})"
        return text

    if isinstance(node, Unary):
        operand = _format(node.operand, node.operator.precedence, spaced)
        return f"{operand}{node.operator.symbol}"

    raise TypeError(f"cannot format {type(node).__name__}")
