"""Tests for term factors and factor extraction."""

import types

import pytest
from calcsimp import parse_infix
from calcsimp.equivalence import equivalent
from calcsimp.factorize import Extracted, NotExtracted, term_factor_extract, term_factors
from calcsimp.folding import binary_num_ops
from calcsimp.simplifier import de_paren
from calcsimp.tree import Binary, BinaryOp, Number, Variable, factorial, mul, power


def factors_of(text):
    return [str(f) for f in term_factors(parse_infix(text))]


class TestTermFactors:
    """Tests for term_factors."""

    def test_product(self):
        assert factors_of("2*x*y") == ["2", "x", "y"]

    def test_tower_yields_base_only(self):
        assert factors_of("x^y^z") == ["x"]

    def test_product_with_tower(self):
        assert factors_of("2*x*y^3") == ["2", "x", "y"]

    def test_nested_products_unfold(self):
        term = Binary(BinaryOp.MUL, [mul("a", "b"), "c"])
        assert [str(f) for f in term_factors(term)] == ["a", "b", "c"]

    def test_mixed(self):
        """Nested towers and products, in depth-first order."""
        term = Variable("y") ^ 2 ^ 2
        term = term * "x" * mul("y", 3) * power(3, "z")
        assert [str(f) for f in term_factors(term)] == ["y", "x", "y", "3", "3"]

    def test_atoms_are_their_own_factor(self):
        assert factors_of("7") == ["7"]
        assert factors_of("x") == ["x"]

    def test_sum_is_one_factor(self):
        assert factors_of("a+b") == ["a+b"]

    def test_factorial_is_one_factor(self):
        assert factors_of("n!") == ["n!"]

    def test_empty_tower_is_own_factor(self):
        empty = Binary(BinaryOp.POW, [])
        assert list(term_factors(empty)) == [empty]

    def test_lazy(self):
        assert isinstance(term_factors(Variable("x")), types.GeneratorType)

    def test_deterministic(self):
        term = parse_infix("2*x*y^3*(a+b)")
        assert list(term_factors(term)) == list(term_factors(term))


class TestExtractResults:
    """Truthiness and rendering of extraction results."""

    def test_truthiness(self):
        assert Extracted(Variable("x"), Number(2))
        assert not NotExtracted(Variable("z"))

    def test_str(self):
        assert str(Extracted(Variable("x"), mul(2, "y"))) == "[x ; 2*y]"
        assert str(NotExtracted(Variable("z"))) == "[FAIL ; z]"

    def test_equality(self):
        assert Extracted(Variable("x"), Number(1)) == Extracted(Variable("x"), Number(1))
        assert NotExtracted(Variable("x")) != Extracted(Variable("x"), Number(1))


class TestExtraction:
    """Tests for term_factor_extract."""

    def test_simple_product(self):
        result = term_factor_extract(parse_infix("2*x*y"), Variable("x"))
        assert result == Extracted(Variable("x"), mul(2, "y"))

    def test_atom_equals_factor(self):
        assert term_factor_extract(Variable("x"), Variable("x")) == Extracted(Variable("x"), Number(1))
        assert term_factor_extract(Number(2), Number(2)) == Extracted(Number(2), Number(1))

    def test_tower_base(self):
        """x^y^z / x leaves x^(y^z - 1)."""
        result = term_factor_extract(parse_infix("x^y^z"), Variable("x"))
        assert result.factor == Variable("x")
        assert str(result.coefficient) == "x^(-1+y^z)"

    def test_tower_inside_product(self):
        result = term_factor_extract(parse_infix("2*x*y^3"), Variable("y"))
        assert result.factor == Variable("y")
        assert str(result.coefficient) == "2*x*y^2"

    def test_quotient_spliced_in_place(self):
        result = term_factor_extract(parse_infix("2*x^3*z"), Variable("x"))
        assert str(result.coefficient) == "2*x^2*z"

    def test_tower_by_tower(self):
        """y^3 / y^3 is y^0, which folds to 1."""
        result = term_factor_extract(power("y", 3), power("y", 3))
        assert result.factor == Variable("y")
        assert result.coefficient == power("y", 0)
        assert result.coefficient.map(binary_num_ops) == Number(1)

    def test_first_match_wins(self):
        """The leftmost operand that contains the factor is divided."""
        term = mul(power("y", 2, 3), "x", power("y", 3), power(3, "z"))
        result = term_factor_extract(term, power("y", 3))
        assert str(result.coefficient) == "y^5*x*y^3*3^z"

    def test_product_factor_spanning_operands(self):
        """A product factor only matches a single operand, never a run of them."""
        term = mul(2, "a", "b")
        result = term_factor_extract(term, mul("b", "a"))
        assert not result

    def test_sum_as_factor(self):
        term = mul(parse_infix("a+b"), "c")
        result = term_factor_extract(term, parse_infix("b+a"))
        assert result.coefficient == Variable("c")

    def test_missing_constant(self):
        term = parse_infix("3*x*y^2")
        assert term_factor_extract(term, Number(2)) == NotExtracted(term)

    def test_missing_variable(self):
        term = parse_infix("x*y^2")
        assert term_factor_extract(term, Variable("z")) == NotExtracted(term)

    def test_no_numeric_division(self):
        assert not term_factor_extract(Number(4), Number(2))

    def test_tower_with_other_base(self):
        term = power("x", 2)
        assert term_factor_extract(term, Variable("y")) == NotExtracted(term)

    def test_factorial_term(self):
        term = mul(factorial("n"), "x")
        result = term_factor_extract(term, factorial("n"))
        assert result.coefficient == Variable("x")


class TestExtractionLaws:
    """Properties that hold across many terms."""

    TERMS = [
        "2*x*y",
        "2*x*y^3",
        "x^y^z",
        "3*x",
        "x",
        "7",
        "(a+b)*c",
        "n!*x",
        "2*(x*y^2)",
        "(x^2)^3*y",
    ]

    @pytest.mark.parametrize("text", TERMS)
    def test_every_factor_extracts(self, text):
        term = parse_infix(text).map(de_paren)
        for factor in term_factors(term):
            assert term_factor_extract(term, factor), f"{factor} not extracted from {term}"

    @pytest.mark.parametrize("text", ["2*x*y", "a*b*c", "3*x", "x*(a+b)*2", "n!*m"])
    def test_product_reconstruction(self, text):
        """coefficient * factor gives the term back, up to folding."""
        term = parse_infix(text).map(de_paren)
        expected = term.map(binary_num_ops)
        for factor in term_factors(term):
            result = term_factor_extract(term, factor)
            rebuilt = (result.coefficient * result.factor).map(binary_num_ops)
            assert equivalent(rebuilt, expected)
            assert equivalent(expected, rebuilt)

    @pytest.mark.parametrize("text", TERMS)
    def test_failure_returns_term(self, text):
        term = parse_infix(text)
        result = term_factor_extract(term, Variable("unused"))
        assert not result
        assert result.original == term
