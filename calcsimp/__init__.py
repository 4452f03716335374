"""
calcsimp - symbolic simplification for a calculator

Canonicalizes and reduces expression trees over 64-bit integers, named
variables, add, multiply, power and factorial.

Quick Start:
    from calcsimp import parse_infix, simplify

    tree = parse_infix("y*x*2 + x + x*2 + 3")
    str(simplify(tree))                  # => "3+(3+2*y)*x"
    simplify(tree).format(spaced=True)   # => "3 + (3 + 2 * y) * x"

Pipeline (one bottom-up sweep each, in order):
    de_paren        - flatten nested sums/products, collapse power towers
    combine_terms   - collect like terms: x + 2*x => (1+2)*x
    unary_num_ops   - fold small factorials: 4! => 24
    binary_num_ops  - fold integer constants: 1+a+2 => 3+a

Building trees directly:
    from calcsimp import Variable, equivalent

    x = Variable("x")
    equivalent(2 * x * "y", Variable("y") * x * 2)   # => True
"""

__version__ = "0.1.0"

# Tree model
from .tree import (
    Node,
    Number,
    Variable,
    Binary,
    Unary,
    BinaryOp,
    UnaryOp,
    NodeLike,
    DEPTH_LIMIT,
    as_node,
    build,
    fuse,
    add,
    mul,
    power,
    factorial,
)

# Structural equivalence
from .equivalence import equivalent

# Term-factor algebra
from .factorize import (
    term_factors,
    term_factor_extract,
    Extracted,
    NotExtracted,
    ExtractResult,
)

# Constant folding
from .folding import (
    unary_num_ops,
    binary_num_ops,
    FoldOverflowError,
)

# Pipeline
from .simplifier import (
    de_paren,
    combine_terms,
    Simplifier,
    SimplifyTrace,
    PassStep,
    DEFAULT_PASSES,
    simplify,
    simplify_repeatedly,
)

# Parser
from .parser import parse_infix, ParseError

# Public API
__all__ = [
    # Version
    "__version__",
    # Tree model
    "Node",
    "Number",
    "Variable",
    "Binary",
    "Unary",
    "BinaryOp",
    "UnaryOp",
    "NodeLike",
    "DEPTH_LIMIT",
    "as_node",
    "build",
    "fuse",
    "add",
    "mul",
    "power",
    "factorial",
    # Equivalence
    "equivalent",
    # Term factors
    "term_factors",
    "term_factor_extract",
    "Extracted",
    "NotExtracted",
    "ExtractResult",
    # Passes
    "de_paren",
    "combine_terms",
    "unary_num_ops",
    "binary_num_ops",
    "FoldOverflowError",
    # Pipeline
    "Simplifier",
    "SimplifyTrace",
    "PassStep",
    "DEFAULT_PASSES",
    "simplify",
    "simplify_repeatedly",
    # Parser
    "parse_infix",
    "ParseError",
]
