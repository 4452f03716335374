"""
Structural equivalence of expression trees.

Two trees are structurally equivalent when they are the same expression
up to reordering the operands of commutative operators:

    equivalent(2*a*4, 4*2*a)      # True
    equivalent(a^5^4, a^4^5)      # False, towers are positional

For ADD and MUL the test is one-sided: every operand on the left must
have some equivalent operand on the right. Operands are not paired off,
so repeated operands are not counted:

    equivalent(x+x, x+y)          # True, both x match the same x
    equivalent(x+y, x+x)          # False, y has no match
    equivalent(x+x, x+x+x)        # True, multiplicities ignored

This is a query predicate for factor matching, not an equality relation;
it is neither symmetric nor a multiset comparison.
"""

from .tree import Binary, Node, Number, Unary, Variable


def equivalent(a: Node, b: Node) -> bool:
    """Check whether `a` and `b` are the same expression up to commutativity."""
    if isinstance(a, Number) and isinstance(b, Number):
        return a.value == b.value

    if isinstance(a, Variable) and isinstance(b, Variable):
        return a.name == b.name

    if isinstance(a, Binary) and isinstance(b, Binary):
        if a.operator is not b.operator:
            return False
        if not a.operator.commutative:
            return (len(a.operands) == len(b.operands)
                    and all(equivalent(x, y) for x, y in zip(a.operands, b.operands)))
        return all(any(equivalent(x, y) for y in b.operands) for x in a.operands)

    if isinstance(a, Unary) and isinstance(b, Unary):
        return a.operator is b.operator and equivalent(a.operand, b.operand)

    return False
