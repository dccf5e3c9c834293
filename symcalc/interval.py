"""
Intervals over numbers.

Four interval constructors mirror the four operators of the parser:

    1 .. 2        closed       [1, 2]
    1 ..^ 2       right-open   [1, 2)
    1 ^.. 2       left-open    (1, 2]
    1 ^..^ 2      open         (1, 2)

An interval whose right endpoint is below its left one, or whose
endpoints are equal and at least one is open, is empty. Every empty
interval normalizes to the canonical `0 ..^ 0`.

Arithmetic works on the bounds directly:

    a = Interval.new(Number(1), IntervalType.CLOSED, Number(2))
    b = Interval.new(Number(0), IntervalType.RIGHT_OPEN, Number(1))
    a + b      # => 1 ..^ 3
    a * b      # => 0 ..^ 2
    -b         # => -1 ^.. 0

IntervalOrScalar lets a bare number stand in for the degenerate interval
[n, n] wherever an interval is expected.
"""

import operator
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Tuple, Union

from .expr import Call, Expr, Prism, TryFromExprError
from .number import Number


class BoundType(IntEnum):
    """Whether an endpoint belongs to the interval. EXCLUSIVE is stricter."""
    EXCLUSIVE = 0
    INCLUSIVE = 1


class IntervalType(Enum):
    CLOSED = ".."
    RIGHT_OPEN = "..^"
    LEFT_OPEN = "^.."
    FULL_OPEN = "^..^"

    @classmethod
    def from_bounds(cls, left: BoundType, right: BoundType) -> 'IntervalType':
        return _TYPES_BY_BOUNDS[(left, right)]

    def into_bounds(self) -> Tuple[BoundType, BoundType]:
        return _BOUNDS_BY_TYPE[self]

    @classmethod
    def parse(cls, name: str) -> 'IntervalType':
        """Look up an interval type by its operator name (raises ValueError)."""
        return cls(name)

    @classmethod
    def is_interval_name(cls, name: str) -> bool:
        return name in _NAMES

    def flipped(self) -> 'IntervalType':
        """The type of the interval with its endpoints swapped."""
        left, right = self.into_bounds()
        return IntervalType.from_bounds(right, left)

    def includes_left(self) -> bool:
        return self.into_bounds()[0] == BoundType.INCLUSIVE

    def includes_right(self) -> bool:
        return self.into_bounds()[1] == BoundType.INCLUSIVE

    @property
    def function_name(self) -> str:
        return self.value


_BOUNDS_BY_TYPE = {
    IntervalType.CLOSED: (BoundType.INCLUSIVE, BoundType.INCLUSIVE),
    IntervalType.RIGHT_OPEN: (BoundType.INCLUSIVE, BoundType.EXCLUSIVE),
    IntervalType.LEFT_OPEN: (BoundType.EXCLUSIVE, BoundType.INCLUSIVE),
    IntervalType.FULL_OPEN: (BoundType.EXCLUSIVE, BoundType.EXCLUSIVE),
}
_TYPES_BY_BOUNDS = {bounds: t for t, bounds in _BOUNDS_BY_TYPE.items()}
_NAMES = frozenset(t.value for t in IntervalType)


@dataclass(frozen=True)
class Bounded:
    """A scalar endpoint together with its bound type."""
    scalar: Any
    bound_type: BoundType

    def apply(self, fn: Callable[[Any, Any], Any], other: 'Bounded') -> 'Bounded':
        """Combine two endpoints; the result keeps the stricter bound."""
        return Bounded(fn(self.scalar, other.scalar), min(self.bound_type, other.bound_type))

    def map(self, fn: Callable[[Any], Any]) -> 'Bounded':
        return Bounded(fn(self.scalar), self.bound_type)

    @staticmethod
    def min(a: 'Bounded', b: 'Bounded') -> 'Bounded':
        """Smaller endpoint; equal scalars keep the looser bound."""
        if a.scalar < b.scalar:
            return a
        if b.scalar < a.scalar:
            return b
        return Bounded(a.scalar, max(a.bound_type, b.bound_type))

    @staticmethod
    def max(a: 'Bounded', b: 'Bounded') -> 'Bounded':
        """Larger endpoint; equal scalars keep the looser bound."""
        if a.scalar > b.scalar:
            return a
        if b.scalar > a.scalar:
            return b
        return Bounded(a.scalar, max(a.bound_type, b.bound_type))


@dataclass(frozen=True)
class RawInterval:
    """
    An interval exactly as written: two endpoints and a type, with no
    emptiness check. Endpoints may be Exprs or Numbers.
    """
    left: Any
    interval_type: IntervalType
    right: Any

    def map(self, fn: Callable[[Any], Any]) -> 'RawInterval':
        return RawInterval(fn(self.left), self.interval_type, fn(self.right))

    def normalize(self) -> 'RawInterval':
        """Canonical form of a numeric raw interval."""
        return Interval.from_raw(self).to_raw()

    def to_expr(self) -> Call:
        return Call(self.interval_type.function_name,
                    (Expr.from_value(self.left), Expr.from_value(self.right)))


class Interval:
    """
    A numeric interval, normalized on construction.

    Use Interval.new() or Interval.from_raw(); empty inputs collapse to
    Interval.empty().
    """

    __slots__ = ('left', 'right')

    def __init__(self, left: Bounded, right: Bounded):
        if _is_empty(left, right):
            left, right = _EMPTY_LEFT, _EMPTY_RIGHT
        self.left = left
        self.right = right

    @classmethod
    def new(cls, left: Number, interval_type: IntervalType, right: Number) -> 'Interval':
        left_bound, right_bound = interval_type.into_bounds()
        return cls(Bounded(Number(left), left_bound), Bounded(Number(right), right_bound))

    @classmethod
    def from_raw(cls, raw: RawInterval) -> 'Interval':
        return cls.new(raw.left, raw.interval_type, raw.right)

    @classmethod
    def singleton(cls, value: Number) -> 'Interval':
        return cls.new(value, IntervalType.CLOSED, value)

    @classmethod
    def empty(cls) -> 'Interval':
        return cls(_EMPTY_LEFT, _EMPTY_RIGHT)

    @property
    def interval_type(self) -> IntervalType:
        return IntervalType.from_bounds(self.left.bound_type, self.right.bound_type)

    def is_empty(self) -> bool:
        return self.left == _EMPTY_LEFT and self.right == _EMPTY_RIGHT

    def contains(self, value) -> bool:
        if self.is_empty():
            return False
        if value < self.left.scalar or value > self.right.scalar:
            return False
        if value == self.left.scalar and self.left.bound_type == BoundType.EXCLUSIVE:
            return False
        if value == self.right.scalar and self.right.bound_type == BoundType.EXCLUSIVE:
            return False
        return True

    def to_raw(self) -> RawInterval:
        return RawInterval(self.left.scalar, self.interval_type, self.right.scalar)

    def to_expr(self) -> Call:
        return self.to_raw().to_expr()

    def __add__(self, other: 'Interval') -> 'Interval':
        if self.is_empty() or other.is_empty():
            return Interval.empty()
        return Interval(self.left.apply(operator.add, other.left),
                        self.right.apply(operator.add, other.right))

    def __sub__(self, other: 'Interval') -> 'Interval':
        if self.is_empty() or other.is_empty():
            return Interval.empty()
        return Interval(self.left.apply(operator.sub, other.right),
                        self.right.apply(operator.sub, other.left))

    def __mul__(self, other: 'Interval') -> 'Interval':
        if self.is_empty() or other.is_empty():
            return Interval.empty()
        return self._apply_monotone(operator.mul, other)

    def _apply_monotone(self, fn: Callable, other: 'Interval') -> 'Interval':
        """Combine every pair of endpoints and keep the extremes."""
        candidates = [a.apply(fn, b) for a in (self.left, self.right)
                      for b in (other.left, other.right)]
        low, high = candidates[0], candidates[0]
        for c in candidates[1:]:
            low = Bounded.min(low, c)
            high = Bounded.max(high, c)
        return Interval(low, high)

    def __neg__(self) -> 'Interval':
        if self.is_empty():
            return self
        return Interval(self.right.map(operator.neg), self.left.map(operator.neg))

    def __eq__(self, other):
        if isinstance(other, Interval):
            return self.left == other.left and self.right == other.right
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.left, self.right))

    def __repr__(self) -> str:
        return f"Interval({self.left.scalar} {self.interval_type.value} {self.right.scalar})"


def _is_empty(left: Bounded, right: Bounded) -> bool:
    if right.scalar < left.scalar:
        return True
    if right.scalar == left.scalar:
        return not (left.bound_type == BoundType.INCLUSIVE and right.bound_type == BoundType.INCLUSIVE)
    return False


_EMPTY_LEFT = Bounded(Number(0), BoundType.INCLUSIVE)
_EMPTY_RIGHT = Bounded(Number(0), BoundType.EXCLUSIVE)


class IntervalOrScalar:
    """
    Either an Interval or a bare Number.

    Arithmetic between two scalars stays scalar; as soon as one side is
    an interval, the scalar is widened to [n, n].
    """

    __slots__ = ('value',)

    def __init__(self, value: Union[Interval, Number]):
        self.value = value

    def is_interval(self) -> bool:
        return isinstance(self.value, Interval)

    def to_interval(self) -> Interval:
        if self.is_interval():
            return self.value
        return Interval.singleton(self.value)

    def _combine(self, other: 'IntervalOrScalar', fn: Callable) -> 'IntervalOrScalar':
        if not self.is_interval() and not other.is_interval():
            return IntervalOrScalar(fn(self.value, other.value))
        return IntervalOrScalar(fn(self.to_interval(), other.to_interval()))

    def __add__(self, other: 'IntervalOrScalar') -> 'IntervalOrScalar':
        return self._combine(other, operator.add)

    def __sub__(self, other: 'IntervalOrScalar') -> 'IntervalOrScalar':
        return self._combine(other, operator.sub)

    def __mul__(self, other: 'IntervalOrScalar') -> 'IntervalOrScalar':
        return self._combine(other, operator.mul)

    def __neg__(self) -> 'IntervalOrScalar':
        return IntervalOrScalar(-self.value)

    def to_expr(self) -> Expr:
        if self.is_interval():
            return self.value.to_expr()
        return Expr.number(self.value)

    @classmethod
    def from_expr(cls, expr: Expr) -> 'IntervalOrScalar':
        """
        Raises:
            TryFromExprError: if expr is neither a number nor a numeric interval
        """
        if expr.is_number():
            return cls(expr.value)
        try:
            raw = expr_to_number_interval().narrow_type(expr)
        except TryFromExprError:
            raise TryFromExprError("IntervalOrScalar", expr) from None
        return cls(Interval.from_raw(raw))

    def __eq__(self, other):
        if isinstance(other, IntervalOrScalar):
            return self.value == other.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"IntervalOrScalar({self.value!r})"


# ============================================================
# Projections
# ============================================================

def expr_to_interval() -> Prism:
    """Prism onto interval calls, narrowed to a RawInterval of Exprs."""
    def narrow(expr: Expr) -> RawInterval:
        if (isinstance(expr, Call) and IntervalType.is_interval_name(expr.name)
                and len(expr.args) == 2):
            return RawInterval(expr.args[0], IntervalType.parse(expr.name), expr.args[1])
        raise TryFromExprError("Interval", expr)
    return Prism("Interval", narrow, RawInterval.to_expr)


def expr_to_number_interval() -> Prism:
    """Prism onto interval calls with number endpoints, narrowed to Numbers."""
    interval = expr_to_interval()

    def narrow(expr: Expr) -> RawInterval:
        raw = interval.narrow_type(expr)
        if not (raw.left.is_number() and raw.right.is_number()):
            raise TryFromExprError("NumberInterval", expr)
        return raw.map(lambda e: e.value)
    return Prism("NumberInterval", narrow, RawInterval.to_expr)
