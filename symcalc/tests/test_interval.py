"""Tests for intervals."""

import pytest
from symcalc import E, Expr, Number, BoundType, IntervalType, Bounded, Interval, IntervalOrScalar
from symcalc.expr import TryFromExprError
from symcalc.interval import RawInterval, expr_to_interval, expr_to_number_interval


def interval(left, kind, right):
    return Interval.new(Number(left), IntervalType(kind), Number(right))


class TestIntervalType:
    """Tests for IntervalType."""

    def test_bounds_round_trip(self):
        """Every type maps to its bounds and back."""
        for t in IntervalType:
            assert IntervalType.from_bounds(*t.into_bounds()) == t

    def test_parse(self):
        """Types are looked up by operator name."""
        assert IntervalType.parse("..^") == IntervalType.RIGHT_OPEN
        with pytest.raises(ValueError):
            IntervalType.parse("...")

    def test_flipped(self):
        """Swapping the endpoints swaps the bounds."""
        assert IntervalType.RIGHT_OPEN.flipped() == IntervalType.LEFT_OPEN
        assert IntervalType.CLOSED.flipped() == IntervalType.CLOSED

    def test_includes(self):
        """includes_left and includes_right."""
        assert IntervalType.RIGHT_OPEN.includes_left()
        assert not IntervalType.RIGHT_OPEN.includes_right()

    def test_is_interval_name(self):
        """Only the four constructors are interval names."""
        assert IntervalType.is_interval_name("^..^")
        assert not IntervalType.is_interval_name("+")


class TestBounded:
    """Tests for Bounded endpoints."""

    def test_apply_keeps_stricter(self):
        """Combining endpoints keeps the stricter bound."""
        a = Bounded(Number(1), BoundType.INCLUSIVE)
        b = Bounded(Number(2), BoundType.EXCLUSIVE)
        assert a.apply(lambda x, y: x + y, b) == Bounded(Number(3), BoundType.EXCLUSIVE)

    def test_min_max_ties(self):
        """Equal scalars keep the looser bound."""
        a = Bounded(Number(1), BoundType.INCLUSIVE)
        b = Bounded(Number(1), BoundType.EXCLUSIVE)
        assert Bounded.min(a, b).bound_type == BoundType.INCLUSIVE
        assert Bounded.max(b, a).bound_type == BoundType.INCLUSIVE


class TestInterval:
    """Tests for Interval construction and arithmetic."""

    def test_empty_normalization(self):
        """Every empty interval becomes 0 ..^ 0."""
        for left, kind, right in [(2, "^..^", 2), (2, "..^", 2), (3, "..", 1)]:
            i = interval(left, kind, right)
            assert i.is_empty()
            assert i == Interval.empty()
            assert i.to_expr() == E("0 ..^ 0")

    def test_singleton_not_empty(self):
        """A closed interval with equal endpoints is a single point."""
        i = interval(2, "..", 2)
        assert not i.is_empty()
        assert i == Interval.singleton(Number(2))

    def test_contains(self):
        """contains respects open and closed ends."""
        i = interval(0, "..^", 1)
        assert i.contains(Number(0))
        assert not i.contains(Number(1))
        assert i.contains(Number.ratio(1, 2))
        assert not Interval.empty().contains(Number(0))

    def test_add(self):
        """[1, 2] + [0, 1) = [1, 3)."""
        assert interval(1, "..", 2) + interval(0, "..^", 1) == interval(1, "..^", 3)

    def test_sub(self):
        """[1, 2] - [0, 1) = (0, 2]."""
        assert interval(1, "..", 2) - interval(0, "..^", 1) == interval(0, "^..", 2)

    def test_mul(self):
        """[1, 2] * [0, 1) = [0, 2)."""
        assert interval(1, "..", 2) * interval(0, "..^", 1) == interval(0, "..^", 2)

    def test_mul_negative(self):
        """Products take the extreme endpoint combinations."""
        assert interval(-1, "..", 2) * interval(3, "..", 4) == interval(-4, "..", 8)

    def test_neg(self):
        """-[0, 1) = (-1, 0]."""
        assert -interval(0, "..^", 1) == interval(-1, "^..", 0)

    def test_empty_absorbs(self):
        """Arithmetic with an empty interval is empty."""
        assert (interval(1, "..", 2) + Interval.empty()).is_empty()
        assert (Interval.empty() * interval(1, "..", 2)).is_empty()

    def test_to_expr(self):
        """Intervals render as calls to their constructor."""
        assert interval(1, "^..", 2).to_expr() == E("1 ^.. 2")
        assert interval(1, "..", 2).interval_type == IntervalType.CLOSED


class TestIntervalOrScalar:
    """Tests for IntervalOrScalar."""

    def test_scalars_stay_scalar(self):
        """Two scalars combine as numbers."""
        result = IntervalOrScalar(Number(2)) + IntervalOrScalar(Number(3))
        assert not result.is_interval()
        assert result.to_expr() == Expr.number(5)

    def test_scalar_widened(self):
        """A scalar next to an interval becomes [n, n]."""
        result = IntervalOrScalar(interval(1, "..", 2)) + IntervalOrScalar(Number(3))
        assert result.to_expr() == E("4 .. 5")

    def test_from_expr(self):
        """from_expr accepts numbers and numeric intervals."""
        assert IntervalOrScalar.from_expr(Expr.number(1)).value == Number(1)
        assert IntervalOrScalar.from_expr(E("1 .. 2")).value == interval(1, "..", 2)
        with pytest.raises(TryFromExprError):
            IntervalOrScalar.from_expr(E("x .. 2"))

    def test_negate(self):
        """Negation works on both alternatives."""
        assert (-IntervalOrScalar(Number(2))).to_expr() == Expr.number(-2)


class TestPrisms:
    """Tests for interval prisms."""

    def test_expr_to_interval(self):
        """expr_to_interval keeps symbolic endpoints."""
        raw = expr_to_interval().narrow_type(E("x ..^ y"))
        assert raw == RawInterval(Expr.var("x"), IntervalType.RIGHT_OPEN, Expr.var("y"))
        assert expr_to_interval().widen_type(raw) == E("x ..^ y")

    def test_expr_to_number_interval(self):
        """expr_to_number_interval requires number endpoints."""
        raw = expr_to_number_interval().narrow_type(E("1 .. 2"))
        assert raw == RawInterval(Number(1), IntervalType.CLOSED, Number(2))
        assert not expr_to_number_interval().matches(E("x .. 2"))
        assert not expr_to_interval().matches(E("f(1, 2)"))

    def test_raw_normalize(self):
        """RawInterval.normalize collapses empty intervals."""
        raw = RawInterval(Number(3), IntervalType.CLOSED, Number(1))
        assert raw.normalize() == RawInterval(Number(0), IntervalType.RIGHT_OPEN, Number(0))
