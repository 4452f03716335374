"""Tests for the structural passes and the pass pipeline."""

import logging

import pytest
from calcsimp import parse_infix
from calcsimp.folding import FoldOverflowError, binary_num_ops
from calcsimp.simplifier import (
    DEFAULT_PASSES, PassStep, Simplifier, SimplifyTrace, combine_terms, de_paren,
    simplify, simplify_repeatedly,
)
from calcsimp.tree import Binary, BinaryOp, Number, Variable, add, factorial, mul, power


class TestDeParen:
    """Tests for de_paren."""

    def test_nested_product(self):
        lhs = Binary(BinaryOp.MUL, [mul(0, 1), add("a", "b"), 3])
        assert de_paren(lhs) == mul(0, 1, add("a", "b"), 3)

    def test_nested_sums(self):
        lhs = Binary(BinaryOp.ADD, [add("a", "b"), add("c", "d")])
        assert de_paren(lhs) == add("a", "b", "c", "d")

    def test_other_operator_kept(self):
        lhs = add(mul("a", "b"), "c")
        assert de_paren(lhs) == lhs

    def test_recursive_with_map(self):
        inner = Binary(BinaryOp.MUL, [0, 1, Binary(BinaryOp.MUL, ["a", "b", mul("f", "g")])])
        lhs = Binary(BinaryOp.MUL, [inner, add("a", "b", mul("c", "d")), 3])
        expected = mul(0, 1, "a", "b", "f", "g", add("a", "b", mul("c", "d")), 3)
        assert lhs.map(de_paren) == expected

    def test_tower_of_tower(self):
        """(x^y)^z => x^(y*z)"""
        result = parse_infix("(x^y)^z").map(de_paren)
        assert str(result) == "x^(y*z)"

    def test_right_nested_tower_flattens(self):
        result = Binary(BinaryOp.POW, ["x", power("y", "z")]).map(de_paren)
        assert result == power("x", "y", "z")

    def test_tower_of_towers(self):
        result = parse_infix("(a^b^c)^(d^e)^(f^g)").map(de_paren)
        assert str(result) == "a^(b^c*d^(e*f^g))"

    def test_atoms_pass_through(self):
        assert de_paren(Variable("x")) == Variable("x")
        assert de_paren(factorial("n")) == factorial("n")

    def test_idempotent(self):
        for text in ["(a+b)+(c+d)", "(x^y)^z", "2*(x*(y*z))", "a^b^c"]:
            once = parse_infix(text).map(de_paren)
            assert once.map(de_paren) == once


class TestCombineTerms:
    """Tests for combine_terms."""

    def test_grouping(self):
        result = parse_infix("y*x*2 + x + x*2 + 3").map(combine_terms)
        assert str(result) == "(y*2+1+2)*x+3"

    def test_same_term(self):
        result = parse_infix("x + x").map(combine_terms)
        assert result == mul(add(1, 1), "x")

    def test_power_and_base(self):
        result = parse_infix("x^2 + x").map(combine_terms)
        assert str(result) == "(x^1+1)*x"

    def test_unrelated_terms_kept(self):
        tree = parse_infix("x + y")
        assert tree.map(combine_terms) == tree

    def test_constants_kept_in_order(self):
        tree = parse_infix("3 + x")
        assert tree.map(combine_terms) == tree
        tree = parse_infix("2 + 3")
        assert tree.map(combine_terms) == tree

    def test_group_placed_where_seed_was(self):
        result = parse_infix("2*x + 3*y + 4*x").map(combine_terms)
        assert str(result) == "3*y+(2+4)*x"

    def test_not_a_sum(self):
        tree = parse_infix("2*x*x")
        assert combine_terms(tree) is tree

    def test_product_terms(self):
        result = parse_infix("x*y + x*y").map(combine_terms)
        assert str(result) == "(y+y)*x"


class TestPipeline:
    """Tests for the default four-pass sweep."""

    def test_passes_in_order(self):
        assert [name for name, _ in DEFAULT_PASSES] == [
            "de_paren", "combine_terms", "unary_num_ops", "binary_num_ops",
        ]

    def test_combine_then_fold(self):
        result = simplify(parse_infix("y*x*2 + x + x*2 + 3"))
        assert str(result) == "3+(3+2*y)*x"
        assert result.format(spaced=True) == "3 + (3 + 2 * y) * x"

    def test_like_terms(self):
        assert simplify(parse_infix("x + x")) == mul(2, "x")
        assert str(simplify(parse_infix("2*x + 3*y + 4*x"))) == "3*y+6*x"
        assert str(simplify(parse_infix("x^2 + x"))) == "(1+x)*x"

    def test_factorial_then_sum(self):
        assert simplify(parse_infix("3! + 4")) == Number(10)

    def test_single_sweep(self):
        """One run is one sweep; later passes can expose more work."""
        tree = parse_infix("x*y + x*y")
        once = simplify(tree)
        assert str(once) == "(y+y)*x"
        twice = simplify(once)
        assert str(twice) == "2*y*x"

    def test_repeated_until_stable(self):
        result = simplify_repeatedly(parse_infix("x*y + x*y"))
        assert result == mul(2, "y", "x")

    def test_repeated_respects_max_rounds(self):
        result = simplify_repeatedly(parse_infix("x*y + x*y"), max_rounds=1)
        assert str(result) == "(y+y)*x"

    def test_overflow_propagates(self):
        with pytest.raises(FoldOverflowError):
            simplify(parse_infix("9223372036854775807 + 1"))

    def test_custom_passes(self):
        simplifier = Simplifier(passes=[("binary_num_ops", binary_num_ops)])
        assert simplifier.pass_names() == ["binary_num_ops"]
        assert simplifier.run(parse_infix("1+a+2+3")) == parse_infix("6+a")
        assert repr(simplifier) == "Simplifier(binary_num_ops)"

    def test_callable(self):
        assert Simplifier()(parse_infix("1 + 1")) == Number(2)


class TestDepthLimit:
    """Sweeps stop descending at the depth limit."""

    def deep_tree(self):
        tree = add(1, 2)
        for _ in range(40):
            tree = factorial(tree)
        return tree

    def test_deep_subtree_left_alone(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = Simplifier().run(self.deep_tree())
        assert str(result) == "(1+2)" + "!" * 40
        assert "Recursion depth limit" in caplog.text

    def test_raised_limit(self):
        result = Simplifier(depth_limit=64).run(self.deep_tree())
        assert str(result) == "3" + "!" * 40

    def test_very_deep_tree_with_logging(self, caplog):
        """Trees far deeper than the interpreter stack still simplify."""
        tree = Variable("x")
        for _ in range(3000):
            tree = factorial(tree)

        with caplog.at_level(logging.DEBUG):
            result = simplify(tree)

        assert "Recursion depth limit reached at a Unary node" in caplog.text
        cut, original = result, tree
        for _ in range(32):
            cut, original = cut.operand, original.operand
        assert cut is original


class TestSimplifyTrace:
    """Tests for traced runs."""

    def test_trace_returned(self):
        result, trace = Simplifier().run(parse_infix("x + x"), trace=True)
        assert result == mul(2, "x")
        assert isinstance(trace, SimplifyTrace)
        assert len(trace) == 4
        assert trace.initial == parse_infix("x + x")
        assert trace.final == result

    def test_passes_applied(self):
        _, trace = Simplifier().run(parse_infix("x + x"), trace=True)
        assert trace.passes_applied() == ["combine_terms", "binary_num_ops"]
        assert trace.format("passes") == "combine_terms -> binary_num_ops"
        assert trace.summary() == "2 of 4 passes changed the tree"
        assert trace

    def test_format_compact(self):
        _, trace = Simplifier().run(parse_infix("x + x"), trace=True)
        assert trace.format("compact") == "x+x --[combine_terms, binary_num_ops]--> 2*x"

    def test_format_chain(self):
        _, trace = Simplifier().run(parse_infix("x + x"), trace=True)
        assert trace.format("chain").splitlines() == [
            "x+x",
            "  --(combine_terms)-->",
            "(1+1)*x",
            "  --(binary_num_ops)-->",
            "2*x",
        ]

    def test_format_verbose(self):
        _, trace = Simplifier().run(parse_infix("x + x"), trace=True)
        verbose = trace.format("verbose")
        assert "Initial: x+x" in verbose
        assert "Final: 2*x" in verbose
        assert "de_paren" in verbose and "(unchanged)" in verbose

    def test_nothing_changed(self):
        _, trace = Simplifier().run(Variable("x"), trace=True)
        assert not trace
        assert trace.format("passes") == "(no passes changed the tree)"
        assert trace.summary() == "No pass changed the tree"

    def test_to_dict(self):
        _, trace = Simplifier().run(parse_infix("x + x"), trace=True)
        data = trace.to_dict()
        assert data["initial"] == "x+x"
        assert data["final"] == "2*x"
        assert [s["pass"] for s in data["steps"]] == [name for name, _ in DEFAULT_PASSES]
        assert data["steps"][1]["changed"] is True

    def test_step(self):
        step = PassStep("binary_num_ops", add(1, 1), Number(2))
        assert step.changed
        assert repr(step) == "binary_num_ops: 1+1 → 2"
        assert list(iter(SimplifyTrace(Number(1)))) == []
