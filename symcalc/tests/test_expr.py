"""Tests for the expression model, prisms and the E builder."""

from fractions import Fraction

import pytest
from symcalc import (
    E, Expr, Atom, Call, AtomKind, CallExpr, Number, TryFromExprError,
    format_expr, function_names,
    expr_to_number, expr_to_integer, expr_to_string, expr_to_var, expr_to_call, expr_to_any,
    cmp_expr, sort_exprs,
)


class TestConstructors:
    """Tests for the Expr static constructors."""

    def test_number(self):
        """Expr.number wraps a Number."""
        e = Expr.number(3)
        assert e.is_atom()
        assert e.is_number()
        assert e.value == Number(3)

    def test_string_and_var(self):
        """Strings and variables are distinct atom kinds."""
        assert Expr.string("x").kind == AtomKind.STRING
        assert Expr.var("x").kind == AtomKind.VAR
        assert Expr.string("x") != Expr.var("x")

    def test_empty_var_rejected(self):
        """Variable names must be non-empty."""
        with pytest.raises(ValueError):
            Expr.var("")

    def test_call(self):
        """Expr.call converts plain arguments."""
        e = Expr.call("+", [1, "x"])
        assert e == Call("+", (Expr.number(1), Expr.var("x")))
        assert e.is_call()
        assert e.is_call("+")
        assert not e.is_call("*")

    def test_vector(self):
        """Vectors hold expressions."""
        v = Expr.vector([1, 2])
        assert v.is_vector()
        assert v.value == (Expr.number(1), Expr.number(2))

    def test_zero_and_one(self):
        """zero() and one() are number atoms."""
        assert Expr.zero().is_zero()
        assert Expr.one().is_one()
        assert not Expr.var("x").is_zero()

    def test_from_value_rejects_unknown(self):
        """from_value raises on unsupported types."""
        with pytest.raises(TypeError):
            Expr.from_value(object())


class TestStructuralEquality:
    """Tests for immutability and structural comparison."""

    def test_equal_trees(self):
        """Independently built trees compare equal."""
        assert E("f(x, 1)") == Expr.call("f", ["x", 1])

    def test_hashable(self):
        """Expressions can be dict keys."""
        seen = {E("x + 1"): "a"}
        assert seen[Expr.call("+", ["x", 1])] == "a"

    def test_frozen(self):
        """Atoms and calls cannot be mutated."""
        with pytest.raises(AttributeError):
            Expr.var("x").value = "y"

    def test_with_args(self):
        """with_args returns a new call with the same name."""
        call = E("f(1, 2)")
        new = call.with_args([Expr.var("z")])
        assert new == Expr.call("f", ["z"])
        assert call == Expr.call("f", [1, 2])


class TestProjections:
    """Tests for prisms and CallExpr."""

    def test_string_prism(self):
        """expr_to_string narrows string atoms only."""
        prism = expr_to_string()
        assert prism.narrow_type(Expr.string("AB")) == "AB"
        assert not prism.matches(Expr.number(1))

    def test_failed_narrow_recovers_payload(self):
        """A failed narrow keeps the original expression."""
        original = Expr.number(1)
        with pytest.raises(TryFromExprError) as info:
            expr_to_string().narrow_type(original)
        assert info.value.recover_payload() is original

    def test_number_prism(self):
        """expr_to_number narrows to the Number payload."""
        assert expr_to_number().narrow_type(Expr.number(2)) == Number(2)
        assert expr_to_number().widen_type(Number(2)) == Expr.number(2)

    def test_integer_prism(self):
        """expr_to_integer accepts exact integral numbers only."""
        prism = expr_to_integer()
        assert prism.narrow_type(Expr.number(4)) == 4
        assert not prism.matches(Expr.number(Fraction(1, 2)))
        assert not prism.matches(Expr.number(4.0))

    def test_var_prism(self):
        """expr_to_var narrows to the variable name."""
        assert expr_to_var().narrow_type(Expr.var("x")) == "x"
        assert not expr_to_var().matches(Expr.string("x"))

    def test_call_prism(self):
        """expr_to_call narrows to a CallExpr view."""
        call = expr_to_call().narrow_type(E("f(1, 2)"))
        assert isinstance(call, CallExpr)
        assert call.name == "f"
        assert len(call) == 2
        assert call.to_expr() == E("f(1, 2)")

    def test_call_expr_rejects_atoms(self):
        """CallExpr.try_from raises on atoms."""
        with pytest.raises(TryFromExprError):
            CallExpr.try_from(Expr.var("x"))

    def test_any_prism(self):
        """expr_to_any accepts everything unchanged."""
        e = E("f(x)")
        assert expr_to_any().narrow_type(e) is e


class TestFormatting:
    """Tests for s-expression formatting."""

    def test_format_call(self):
        """Calls format as (name args...)."""
        assert format_expr(E("x + 2 * y")) == "(+ x (* 2 y))"

    def test_format_atoms(self):
        """Strings are quoted, vectors bracketed."""
        assert format_expr(Expr.string('a"b')) == '"a\\"b"'
        assert format_expr(E.vec(1, 2)) == "[1 2]"
        assert format_expr(Expr.number(Fraction(7, 2))) == "7/2"

    def test_format_empty_call(self):
        """A call with no arguments formats as (name)."""
        assert format_expr(Expr.call("f")) == "(f)"

    def test_str_is_format(self):
        """str() of an expression is its s-expression."""
        assert str(E("f(x)")) == "(f x)"


class TestExprBuilder:
    """Tests for the E builder."""

    def test_parse(self):
        """E() parses infix text."""
        assert E("x + 1") == Expr.call("+", ["x", 1])

    def test_op(self):
        """E.op() builds calls from plain values."""
        assert E.op("+", "x", E.op("*", 2, "y")) == E("x + 2 * y")

    def test_vars(self):
        """E.vars() creates several variables at once."""
        x, y = E.vars("x", "y")
        assert x == Expr.var("x")
        assert y == Expr.var("y")

    def test_const_and_string(self):
        """E.const and E.string build atoms."""
        assert E.const(5) == Expr.number(5)
        assert E.string("hi") == Expr.string("hi")

    def test_function_names(self):
        """function_names lists every call name once, in order."""
        assert function_names(E("f(g(x), f(1), h)")) == ["f", "g"]
        assert function_names(E("(f(1), g(2))")) == ["f", "g"]


class TestOrdering:
    """Tests for the canonical expression order."""

    def test_kind_order(self):
        """numbers < strings < variables < vectors < calls."""
        items = [E("f(x)"), E.vec(1), Expr.var("x"), Expr.string("s"), Expr.number(9)]
        assert sort_exprs(items) == list(reversed(items))

    def test_numbers_by_value(self):
        """Numbers sort numerically."""
        assert cmp_expr(Expr.number(2), Expr.number(Fraction(5, 2))) == -1

    def test_calls_by_name_then_args(self):
        """Calls compare names first, then arguments; prefixes sort first."""
        assert cmp_expr(E("g(1)"), E("f(1, 2)")) == 1
        assert cmp_expr(E("f(x)"), E("f(x, y)")) == -1
        assert cmp_expr(E("f(x)"), E("f(x)")) == 0

    def test_variables_lexicographic(self):
        """Variables sort by name."""
        x, y, z = E.vars("x", "y", "z")
        assert sort_exprs([z, x, y]) == [x, y, z]

    def _mixed_sample(self):
        return [
            Expr.number(2), Expr.number(2.0), Expr.number(Fraction(1, 2)), Expr.number(0.5),
            Expr.number(-3), Expr.number(2.5), Expr.number(Fraction(7, 3)),
            Expr.string("a"), Expr.string("b"), Expr.var("x"), Expr.var("y"),
            E.vec(1), E.vec(1, 2), E("f(x)"), E("f(x, y)"), E("g(1)"), E("f(1 / 2)"), E("f(0.5)"),
        ]

    def test_trichotomy(self):
        """Exactly one of <, =, > holds, and swapping the arguments flips it."""
        sample = self._mixed_sample()
        for a in sample:
            for b in sample:
                assert cmp_expr(a, b) in (-1, 0, 1)
                assert cmp_expr(a, b) == -cmp_expr(b, a)
                assert (cmp_expr(a, b) == 0) == (a == b)

    def test_transitivity(self):
        """a <= b and b <= c imply a <= c across integers, ratios and floats."""
        sample = self._mixed_sample()
        for a in sample:
            for b in sample:
                for c in sample:
                    if cmp_expr(a, b) <= 0 and cmp_expr(b, c) <= 0:
                        assert cmp_expr(a, c) <= 0, (a, b, c)

    def test_sort_idempotent(self):
        """Sorting a sorted list changes nothing, whatever the input order."""
        sample = self._mixed_sample()
        once = sort_exprs(sample)
        assert sort_exprs(once) == once
        assert sort_exprs(list(reversed(sample))) == once
