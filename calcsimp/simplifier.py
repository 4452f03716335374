"""
Simplification pipeline for calcsimp.

A pass is a plain function Node -> Node applied to one node whose
children have already been transformed. The Simplifier walks the tree
once per pass, bottom-up, in a fixed order:

    de_paren        - (a+b)+c => a+b+c, (x^y)^z => x^(y*z)
    combine_terms   - x + 2*x => (1+2)*x
    unary_num_ops   - 4! => 24
    binary_num_ops  - 1+a+2 => 3+a

One call to run() is one sweep of each pass; it does not iterate to a
fixed point. Use simplify_repeatedly() when later passes expose work
for earlier ones.

Example:
    from calcsimp import Simplifier, parse_infix

    result = Simplifier().run(parse_infix("y*x*2 + x + x*2 + 3"))
    str(result)  # => "3+(3+2*y)*x"

    result, trace = Simplifier().run(parse_infix("x + x"), trace=True)
    print(trace.format("chain"))
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .factorize import term_factor_extract, term_factors
from .folding import binary_num_ops, unary_num_ops
from .tree import (
    DEPTH_LIMIT, Binary, BinaryOp, Node, NodeFunc, build, is_binary, is_literal,
)

logger = logging.getLogger(__name__)

PassType = Tuple[str, NodeFunc]


# ============================================================
# Structural Passes
# ============================================================

def de_paren(node: Node) -> Node:
    """
    Remove unnecessary parentheses.

        (a+b)+c          =>  a+b+c
        (0*1)*(a+b)*3    =>  0*1*(a+b)*3
        (x^y)^z          =>  x^(y*z)
        (a^b^c)^(d^e)^(f^g)  =>  a^(b^c*d^(e*f^g))
    """
    if not isinstance(node, Binary):
        return node

    if node.operator is BinaryOp.POW:
        return _collapse_tower(node.operands)

    operands: List[Node] = []
    for operand in node.operands:
        if is_binary(operand, node.operator):
            operands.extend(operand.operands)
        else:
            operands.append(operand)
    return build(node.operator, operands)


def _collapse_tower(operands: Sequence[Node]) -> Node:
    # 1 marks "nothing carried yet"
    acc: Node = build(BinaryOp.POW, [])
    for operand in reversed(operands):
        if is_literal(acc, 1):
            acc = operand
        elif is_binary(operand, BinaryOp.POW) and operand.operands:
            inner_base, inner_rest = operand.operands[0], operand.operands[1:]
            exponent = build(BinaryOp.MUL, [build(BinaryOp.POW, inner_rest), acc])
            acc = build(BinaryOp.POW, [inner_base, exponent])
        else:
            acc = _raise(operand, acc)
    return acc


def _raise(base: Node, exponent: Node) -> Node:
    """base ^ exponent as a single tower."""
    if is_binary(exponent, BinaryOp.POW):
        return build(BinaryOp.POW, (base,) + exponent.operands)
    return build(BinaryOp.POW, [base, exponent])


def combine_terms(node: Node) -> Node:
    """
    Combine like terms of a sum.

        y*x*2 + x + x*2 + 3  =>  (y*2+1+2)*x + 3
        x^2 + x              =>  (x^1+1)*x

    The last remaining term is the seed. Its first factor that some other
    remaining term also contains is divided out of every term that
    contains it, and those terms are replaced by (sum of quotients)*factor.
    A seed sharing no factor is kept as is.
    """
    if not is_binary(node, BinaryOp.ADD):
        return node

    terms: List[Node] = list(node.operands)
    combined: List[Node] = []

    while terms:
        seed = terms[-1]
        for factor in term_factors(seed):
            results = [term_factor_extract(term, factor) for term in terms]
            if not any(results[:-1]):
                continue

            coefficients = [r.coefficient for r in results if r]
            terms = [term for term, r in zip(terms, results) if not r]
            grouped = build(BinaryOp.MUL, [build(BinaryOp.ADD, coefficients), factor])
            logger.debug("combine_terms: grouped %d terms by %s into %s",
                         len(coefficients), factor, grouped)
            combined.append(grouped)
            break
        else:
            combined.append(terms.pop())

    # Terms were taken from the end
    combined.reverse()
    return build(BinaryOp.ADD, combined)


# ============================================================
# Pass Pipeline
# ============================================================

DEFAULT_PASSES: List[PassType] = [
    ("de_paren", de_paren),
    ("combine_terms", combine_terms),
    ("unary_num_ops", unary_num_ops),
    ("binary_num_ops", binary_num_ops),
]


class PassStep:
    """One pass of a simplification sweep."""

    def __init__(self, name: str, before: Node, after: Node):
        self.name = name
        self.before = before
        self.after = after

    @property
    def changed(self) -> bool:
        return self.before != self.after

    def __repr__(self) -> str:
        return f"{self.name}: {self.before} → {self.after}"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "pass": self.name,
            "before": str(self.before),
            "after": str(self.after),
            "changed": self.changed,
        }


class SimplifyTrace:
    """
    A trace of every pass applied during one run.

    Formatting options:
        - format("verbose"): one line per pass with before/after (default)
        - format("compact"): single line, initial --[passes]--> final
        - format("passes"): names of the passes that changed the tree
        - format("chain"): the tree after each changing pass
    """

    def __init__(self, initial: Optional[Node] = None):
        self.steps: List[PassStep] = []
        self.initial: Optional[Node] = initial
        self.final: Optional[Node] = initial

    def add_step(self, step: PassStep):
        self.steps.append(step)
        self.final = step.after

    def changed_steps(self) -> List[PassStep]:
        return [s for s in self.steps if s.changed]

    def passes_applied(self) -> List[str]:
        """Names of the passes that changed the tree, in order."""
        return [s.name for s in self.changed_steps()]

    def format(self, style: str = "verbose") -> str:
        if style == "compact":
            names = ", ".join(self.passes_applied())
            return f"{self.initial} --[{names}]--> {self.final}"

        elif style == "passes":
            names = self.passes_applied()
            return " -> ".join(names) if names else "(no passes changed the tree)"

        elif style == "chain":
            parts = [str(self.initial)]
            for step in self.changed_steps():
                parts.append(f"  --({step.name})-->")
                parts.append(str(step.after))
            return "\n".join(parts)

        else:
            return repr(self)

    def summary(self) -> str:
        changed = self.passes_applied()
        if not changed:
            return "No pass changed the tree"
        return f"{len(changed)} of {len(self.steps)} passes changed the tree"

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "initial": str(self.initial),
            "final": str(self.final),
            "steps": [step.to_dict() for step in self.steps],
        }

    def __repr__(self) -> str:
        lines = [f"Initial: {self.initial}"]
        for i, step in enumerate(self.steps, 1):
            marker = "" if step.changed else " (unchanged)"
            lines.append(f"  {i}. {step}{marker}")
        lines.append(f"Final: {self.final}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any pass changed the tree."""
        return any(s.changed for s in self.steps)


class Simplifier:
    """
    Runs a fixed sequence of passes over a tree, one bottom-up sweep each.

    Args:
        passes: (name, function) pairs, applied in order.
            Default: DEFAULT_PASSES.
        depth_limit: how deep each sweep descends; deeper subtrees are
            left as they are.

    Examples:
        Simplifier().run(tree)
        Simplifier(passes=[("binary_num_ops", binary_num_ops)]).run(tree)
        result, trace = Simplifier().run(tree, trace=True)
    """

    def __init__(self, passes: Optional[Sequence[PassType]] = None,
                 depth_limit: int = DEPTH_LIMIT):
        self.passes: List[PassType] = list(passes if passes is not None else DEFAULT_PASSES)
        self.depth_limit = depth_limit

    def run(self, tree: Node, trace: bool = False):
        """
        Apply every pass once.

        Returns:
            The simplified tree, or (tree, SimplifyTrace) when trace is True.

        Raises:
            FoldOverflowError: a constant fold left the 64-bit range.
        """
        trace_obj = SimplifyTrace(tree) if trace else None

        for name, func in self.passes:
            before = tree
            tree = tree.map(func, self.depth_limit)
            if trace_obj is not None:
                trace_obj.add_step(PassStep(name, before, tree))

        logger.debug("run: applied %d passes", len(self.passes))

        if trace_obj is not None:
            return tree, trace_obj
        return tree

    def run_repeatedly(self, tree: Node, max_rounds: int = 8) -> Node:
        """Re-run the sweep until the tree stops changing or max_rounds is hit."""
        for _ in range(max_rounds):
            result = self.run(tree)
            if result == tree:
                break
            tree = result
        return tree

    def pass_names(self) -> List[str]:
        return [name for name, _ in self.passes]

    def __call__(self, tree: Node) -> Node:
        return self.run(tree)

    def __repr__(self) -> str:
        return f"Simplifier({', '.join(self.pass_names())})"


def simplify(tree: Node) -> Node:
    """One sweep of the default pipeline."""
    return Simplifier().run(tree)


def simplify_repeatedly(tree: Node, max_rounds: int = 8) -> Node:
    """Sweep the default pipeline until the tree is stable."""
    return Simplifier().run_repeatedly(tree, max_rounds)
