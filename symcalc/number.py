"""
Numeric tower for symcalc.

A Number is an exact integer, an exact ratio, or an inexact float. The
representations are ordered by how much precision they give up:

    INTEGER < RATIO < FLOAT

Binary arithmetic promotes both operands to the looser of their two
representations and computes in that representation, so the result is
never more exact than the loosest input:

    Number(1) + Number(2)               # => 3        (INTEGER)
    Number(1) / Number(2)               # => 1/2      (RATIO)
    Number.ratio(1, 2) + Number.ratio(1, 2)  # => 1   (still RATIO)
    Number(1) + Number(0.5)             # => 1.5      (FLOAT)

Building a Number directly from a Fraction whose denominator is 1 gives
an INTEGER; this is the only place a ratio is narrowed.

Floats are always finite. A float that overflows to infinity, or becomes
NaN, raises NonFiniteError (a ValueError) instead of producing a Number.
"""

import math
from enum import IntEnum
from fractions import Fraction
from typing import Tuple, Union

NumericType = Union[int, Fraction, float]


class NonFiniteError(ValueError):
    """A float result overflowed to infinity or became NaN."""


def _finite(value: NumericType) -> NumericType:
    if isinstance(value, float) and not math.isfinite(value):
        raise NonFiniteError(f"Not a finite number: {value}")
    return value


class NumberRepr(IntEnum):
    """Representation of a Number, ordered from most to least exact."""
    INTEGER = 0
    RATIO = 1
    FLOAT = 2

    def is_exact(self) -> bool:
        return self != NumberRepr.FLOAT


def _convert(value: NumericType, repr_: NumberRepr) -> NumericType:
    if repr_ == NumberRepr.INTEGER:
        return int(value)
    if repr_ == NumberRepr.RATIO:
        return Fraction(value)
    return float(value)


class Number:
    """
    Immutable number tagged with its representation.

    Examples:
        Number(3).repr                 # => NumberRepr.INTEGER
        Number(Fraction(6, 3)).repr    # => NumberRepr.INTEGER
        Number.ratio(1, 3).repr        # => NumberRepr.RATIO
        Number(2.5).repr               # => NumberRepr.FLOAT
    """

    __slots__ = ('_value', '_repr')

    def __init__(self, value: Union[NumericType, 'Number']):
        if isinstance(value, Number):
            self._value, self._repr = value._value, value._repr
        elif isinstance(value, bool):
            raise TypeError("Number does not accept booleans")
        elif isinstance(value, int):
            self._value, self._repr = value, NumberRepr.INTEGER
        elif isinstance(value, Fraction):
            if value.denominator == 1:
                self._value, self._repr = int(value.numerator), NumberRepr.INTEGER
            else:
                self._value, self._repr = value, NumberRepr.RATIO
        elif isinstance(value, float):
            self._value, self._repr = _finite(value), NumberRepr.FLOAT
        else:
            raise TypeError(f"Cannot build a Number from {type(value).__name__}")

    @classmethod
    def _of(cls, value: NumericType, repr_: NumberRepr) -> 'Number':
        """Build a Number in exactly the given representation."""
        result = cls.__new__(cls)
        result._value = _finite(_convert(value, repr_))
        result._repr = repr_
        return result

    @classmethod
    def ratio(cls, numer: int, denom: int) -> 'Number':
        """Exact ratio, narrowed to an integer when denom divides numer."""
        return cls(Fraction(numer, denom))

    @classmethod
    def parse(cls, text: str) -> 'Number':
        """
        Parse a numeric literal.

        Integers become INTEGER, literals with a decimal point or an
        exponent become FLOAT, and "a/b" becomes a ratio.
        """
        text = text.strip()
        if "/" in text:
            numer, denom = text.split("/", 1)
            return cls.ratio(int(numer), int(denom))
        try:
            return cls(int(text))
        except ValueError:
            return cls(float(text))

    @property
    def repr(self) -> NumberRepr:
        return self._repr

    @property
    def value(self) -> NumericType:
        return self._value

    def is_exact(self) -> bool:
        return self._repr.is_exact()

    def is_zero(self) -> bool:
        return self._value == 0

    def is_one(self) -> bool:
        return self._value == 1

    def is_integral(self) -> bool:
        if self._repr == NumberRepr.FLOAT:
            return math.isfinite(self._value) and float(self._value).is_integer()
        return Fraction(self._value).denominator == 1

    def to_fraction(self) -> Fraction:
        """Exact value as a Fraction (floats convert exactly)."""
        return Fraction(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __float__(self) -> float:
        return float(self._value)

    # ------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------

    def _promote(self, other: 'Number') -> Tuple[NumericType, NumericType, NumberRepr]:
        repr_ = max(self._repr, other._repr)
        return _convert(self._value, repr_), _convert(other._value, repr_), repr_

    def __add__(self, other):
        other = _coerce(other)
        if other is NotImplemented:
            return other
        a, b, repr_ = self._promote(other)
        return Number._of(a + b, repr_)

    def __sub__(self, other):
        other = _coerce(other)
        if other is NotImplemented:
            return other
        a, b, repr_ = self._promote(other)
        return Number._of(a - b, repr_)

    def __mul__(self, other):
        other = _coerce(other)
        if other is NotImplemented:
            return other
        a, b, repr_ = self._promote(other)
        return Number._of(a * b, repr_)

    def __truediv__(self, other):
        other = _coerce(other)
        if other is NotImplemented:
            return other
        a, b, repr_ = self._promote(other)
        if b == 0:
            raise ZeroDivisionError("Division by zero")
        if repr_ == NumberRepr.INTEGER:
            # Exact integer quotients stay integers; the rest become ratios.
            return Number(Fraction(a, b))
        return Number._of(a / b, repr_)

    def __floordiv__(self, other):
        other = _coerce(other)
        if other is NotImplemented:
            return other
        a, b, repr_ = self._promote(other)
        if b == 0:
            raise ZeroDivisionError("Division by zero")
        return Number._of(a // b, repr_)

    def __mod__(self, other):
        other = _coerce(other)
        if other is NotImplemented:
            return other
        a, b, repr_ = self._promote(other)
        if b == 0:
            raise ZeroDivisionError("Division by zero")
        return Number._of(a % b, repr_)

    def __pow__(self, other):
        """
        Raise to a power.

        Exact exponents with integral value keep exact bases exact
        (a negative exponent on an integer base may produce a ratio).
        Any other exponent computes in floating point; a negative base
        with a non-integral exponent raises ValueError.

        The indeterminate form 0^0 evaluates to 1 here; the function
        library reports it as a domain error before reaching this point.
        """
        other = _coerce(other)
        if other is NotImplemented:
            return other
        if other.is_exact() and other.is_integral():
            exponent = int(other.to_fraction())
            repr_ = max(self._repr, other._repr)
            if self._repr == NumberRepr.FLOAT:
                if self._value == 0 and exponent < 0:
                    raise ZeroDivisionError("Division by zero")
                return Number._of(self._value ** exponent, repr_)
            result = Fraction(self._value) ** exponent
            if repr_ == NumberRepr.INTEGER:
                return Number(result)
            return Number._of(result, repr_)
        base, exponent = float(self._value), float(other._value)
        if base < 0:
            raise ValueError("Expected real number")
        if base == 0 and exponent < 0:
            raise ZeroDivisionError("Division by zero")
        return Number._of(base ** exponent, NumberRepr.FLOAT)

    def __radd__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else other + self

    def __rsub__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else other - self

    def __rmul__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else other * self

    def __rtruediv__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else other / self

    def __neg__(self) -> 'Number':
        return Number._of(-self._value, self._repr)

    def __abs__(self) -> 'Number':
        return Number._of(abs(self._value), self._repr)

    def recip(self) -> 'Number':
        return Number(1) / self

    def floor(self) -> 'Number':
        return Number(math.floor(self._value))

    def ceil(self) -> 'Number':
        return Number(math.ceil(self._value))

    def round(self) -> 'Number':
        return Number(round(self._value))

    def sign(self) -> 'Number':
        return Number((self._value > 0) - (self._value < 0))

    # ------------------------------------------------------------
    # Comparison and hashing
    # ------------------------------------------------------------

    def __eq__(self, other):
        if isinstance(other, Number):
            return self._value == other._value
        if isinstance(other, (int, Fraction, float)) and not isinstance(other, bool):
            return self._value == other
        return NotImplemented

    def __lt__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else self._value < other._value

    def __le__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else self._value <= other._value

    def __gt__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else self._value > other._value

    def __ge__(self, other):
        other = _coerce(other)
        return other if other is NotImplemented else self._value >= other._value

    def __hash__(self) -> int:
        # int, Fraction and float hash consistently for equal values
        return hash(self._value)

    def __bool__(self) -> bool:
        return self._value != 0

    def __repr__(self) -> str:
        return f"Number({self})"

    def __str__(self) -> str:
        # Fraction renders as "n/d", or "n" when the denominator is 1
        return str(self._value)


def _coerce(value) -> Union[Number, type(NotImplemented)]:
    if isinstance(value, Number):
        return value
    if isinstance(value, (int, Fraction, float)) and not isinstance(value, bool):
        return Number(value)
    return NotImplemented
