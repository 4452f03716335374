"""
Infix expression parser for calcsimp.

Grammar, loosest binding first:

    sum      := product (("+" | "-") product)*
    product  := signed (("*" | "/") signed | power)*     juxtaposition: 2x, 2(a+b)
    signed   := ("-" | "+") signed | power
    power    := postfix ("^" (("-" | "+") power | postfix))*
    postfix  := atom "!"*
    atom     := INTEGER | NAME | "(" sum ")"

Power towers are right-associative and become one n-ary node:

    parse_infix("a^b^c")     # Binary(POW, [a, b, c])
    parse_infix("2x - y")    # Binary(ADD, [Binary(MUL, [2, x]), Binary(MUL, [-1, y])])
    parse_infix("a/b")       # Binary(MUL, [a, Binary(POW, [b, -1])])

The most negative 64-bit integer, -9223372036854775808, is accepted as a
signed literal when no ^ or ! follows it.

Errors raise ParseError carrying a message and the character offset.
"""

import re
from typing import List, NamedTuple

from .tree import (
    INT_MAX, INT_MIN, BinaryOp, Node, Number, UnaryOp, Unary, Variable, build, negate,
)


class ParseError(ValueError):
    """Input text is not a well-formed expression."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"{message} at position {position}")


class Token(NamedTuple):
    kind: str  # "number", "name", "op" or "end"
    text: str
    position: int


_TOKEN_RE = re.compile(
    r"(?P<number>\d+)|(?P<name>[A-Za-z_][A-Za-z0-9_]*)|(?P<op>[-+*/^!()])"
)


def tokenize(text: str) -> List[Token]:
    """Split `text` into tokens, ending with an "end" token."""
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        match_obj = _TOKEN_RE.match(text, pos)
        if not match_obj:
            raise ParseError(f"unexpected character {text[pos]!r}", pos)
        tokens.append(Token(match_obj.lastgroup, match_obj.group(), pos))
        pos = match_obj.end()
    tokens.append(Token("end", "", len(text)))
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str):
        self.tokens = tokenize(text)
        self.index = 0

    def peek(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != "end":
            self.index += 1
        return token

    def at_op(self, *ops: str) -> bool:
        token = self.peek()
        return token.kind == "op" and token.text in ops

    def starts_atom(self) -> bool:
        token = self.peek()
        return token.kind in ("number", "name") or (token.kind == "op" and token.text == "(")

    def parse(self) -> Node:
        node = self.sum()
        token = self.peek()
        if token.kind != "end":
            raise ParseError(f"unexpected {token.text!r}", token.position)
        return node

    def sum(self) -> Node:
        node = self.product()
        while self.at_op("+", "-"):
            op = self.advance().text
            rhs = self.product()
            node = node + rhs if op == "+" else node - rhs
        return node

    def product(self) -> Node:
        node = self.signed()
        while True:
            if self.at_op("*", "/"):
                op = self.advance().text
                rhs = self.signed()
                node = node * rhs if op == "*" else node / rhs
            elif self.starts_atom():
                node = node * self.power()
            else:
                return node

    def at_min_literal(self) -> bool:
        """True at `-9223372036854775808` with no ^ or ! binding the literal."""
        if not self.at_op("-"):
            return False
        literal = self.tokens[self.index + 1]
        if literal.kind != "number" or int(literal.text) != -INT_MIN:
            return False
        after = self.tokens[self.index + 2]
        return not (after.kind == "op" and after.text in ("^", "!"))

    def signed(self) -> Node:
        if self.at_min_literal():
            self.advance()
            self.advance()
            return Number(INT_MIN)
        if self.at_op("-"):
            self.advance()
            return _negate(self.signed())
        if self.at_op("+"):
            self.advance()
            return self.signed()
        return self.power()

    def power(self) -> Node:
        operands = [self.postfix()]
        while self.at_op("^"):
            self.advance()
            if self.at_op("-", "+"):
                # A signed exponent takes the rest of the tower with it
                sign = self.advance().text
                exponent = self.power()
                operands.append(_negate(exponent) if sign == "-" else exponent)
                break
            operands.append(self.postfix())
        return build(BinaryOp.POW, operands)

    def postfix(self) -> Node:
        node = self.atom()
        while self.at_op("!"):
            self.advance()
            node = Unary(UnaryOp.FACTORIAL, node)
        return node

    def atom(self) -> Node:
        token = self.advance()
        if token.kind == "number":
            value = int(token.text)
            if value > INT_MAX:
                raise ParseError(f"integer literal {token.text} is too large", token.position)
            return Number(value)
        if token.kind == "name":
            return Variable(token.text)
        if token.kind == "op" and token.text == "(":
            node = self.sum()
            closing = self.advance()
            if not (closing.kind == "op" and closing.text == ")"):
                raise ParseError("expected ')'", closing.position)
            return node
        if token.kind == "end":
            raise ParseError("unexpected end of input", token.position)
        raise ParseError(f"expected an operand, got {token.text!r}", token.position)


def _negate(node: Node) -> Node:
    if isinstance(node, Number) and node.value != INT_MIN:
        return Number(-node.value)
    return negate(node)


def parse_infix(text: str) -> Node:
    """
    Parse infix text into an expression tree.

    Raises:
        ParseError: on malformed input, with the offending position.
    """
    return _Parser(text).parse()
