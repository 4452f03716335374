"""
Term-factor algebra.

A term is any node read as a product. These functions find the factors
a term could be grouped by and divide a factor out of a term:

    term_factors(2*x*y^2)              # yields 2, x, y
    term_factor_extract(2*x*y^2, x)    # Extracted(x, 2*y^2)
    term_factor_extract(2*x*y^2, z)    # NotExtracted(2*x*y^2)

Extraction results follow the truthiness convention of match results:
Extracted is truthy, NotExtracted is falsy.

    if result := term_factor_extract(term, factor):
        print(result.coefficient)
"""

from typing import Iterator, List, Union

from .equivalence import equivalent
from .folding import binary_num_ops
from .tree import Binary, BinaryOp, Node, Number, build, is_binary


class Extracted:
    """
    Successful extraction.

    For a product term, coefficient * factor folds back to the term. For a
    power tower the coefficient is the base raised to the reduced exponent,
    so y^3 divided by y^3 gives y^0.
    """

    __slots__ = ("factor", "coefficient")

    def __init__(self, factor: Node, coefficient: Node):
        self.factor = factor
        self.coefficient = coefficient

    def __bool__(self) -> bool:
        return True

    def __eq__(self, other) -> bool:
        return (isinstance(other, Extracted)
                and self.factor == other.factor
                and self.coefficient == other.coefficient)

    def __hash__(self) -> int:
        return hash((Extracted, self.factor, self.coefficient))

    def __repr__(self) -> str:
        return f"Extracted(factor={self.factor!r}, coefficient={self.coefficient!r})"

    def __str__(self) -> str:
        return f"[{self.factor} ; {self.coefficient}]"


class NotExtracted:
    """Failed extraction, carrying the term back unchanged."""

    __slots__ = ("original",)

    def __init__(self, original: Node):
        self.original = original

    def __bool__(self) -> bool:
        return False

    def __eq__(self, other) -> bool:
        return isinstance(other, NotExtracted) and self.original == other.original

    def __hash__(self) -> int:
        return hash((NotExtracted, self.original))

    def __repr__(self) -> str:
        return f"NotExtracted(original={self.original!r})"

    def __str__(self) -> str:
        return f"[FAIL ; {self.original}]"


ExtractResult = Union[Extracted, NotExtracted]


def term_factors(term: Node) -> Iterator[Node]:
    """
    Yield the candidate factors of `term`, depth-first, left to right.

    Products are unfolded recursively. A power tower contributes only its
    base, never anything from the exponent. Any other node is its own
    single factor.

        2*x*y^3            =>  2, x, y
        x^y^z              =>  x
        (y^2)*x*(y*3)*3^z  =>  y, x, y, 3, 3
    """
    if is_binary(term, BinaryOp.MUL):
        for operand in term.operands:
            yield from term_factors(operand)
    elif is_binary(term, BinaryOp.POW) and term.operands:
        yield term.operands[0]
    else:
        yield term


def term_factor_extract(term: Node, factor: Node) -> ExtractResult:
    """
    Divide `factor` out of `term`.

        2*x*y, x      =>  Extracted(x, 2*y)
        2*x*y^3, y    =>  Extracted(y, 2*x*y^2)
        x^y^z, x      =>  Extracted(x, x^(-1+y^z))
        y^3, y^3      =>  Extracted(y, y^0)
        3*x*y^2, 2    =>  NotExtracted(3*x*y^2)
        x*y^2, z      =>  NotExtracted(x*y^2)
    """
    if is_binary(term, BinaryOp.MUL):
        return _extract_from_product(term, factor)

    if is_binary(term, BinaryOp.POW) and term.operands:
        return _extract_from_tower(term, factor)

    if equivalent(term, factor):
        return Extracted(term, Number(1))

    return NotExtracted(term)


def _extract_from_product(term: Binary, factor: Node) -> ExtractResult:
    operands: List[Node] = list(term.operands)
    for i, operand in enumerate(operands):
        if equivalent(operand, factor):
            del operands[i]
            return Extracted(operand, build(BinaryOp.MUL, operands))

        inner = term_factor_extract(operand, factor)
        if inner:
            operands[i] = inner.coefficient
            return Extracted(inner.factor, build(BinaryOp.MUL, operands))

    return NotExtracted(build(BinaryOp.MUL, operands))


def _extract_from_tower(term: Binary, factor: Node) -> ExtractResult:
    # x^a / x^b => x^(a-b)
    base, rest = term.operands[0], term.operands[1:]

    if is_binary(factor, BinaryOp.POW) and factor.operands:
        factor_base = factor.operands[0]
        factor_exponent = build(BinaryOp.POW, factor.operands[1:])
    else:
        factor_base = factor
        factor_exponent = Number(1)

    if not equivalent(base, factor_base):
        return NotExtracted(term)

    remaining_exponent = build(BinaryOp.POW, rest)
    exponent = Binary(BinaryOp.ADD, [
        remaining_exponent,
        Binary(BinaryOp.MUL, [factor_exponent, Number(-1)]),
    ])
    exponent = exponent.map(binary_num_ops)

    return Extracted(base, build(BinaryOp.POW, [base, exponent]))
