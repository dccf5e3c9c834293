"""
Units and dimensions.

Every unit is measured against the SI base unit of its dimension (kg
for mass, not g). A Dimension is the vector of integer exponents over
the seven SI base dimensions:

    Dimension.singleton(BaseDimension.LENGTH) / Dimension.singleton(BaseDimension.TIME) ** 2
    # => length / time^2

A CompositeUnit is a product of units raised to integer powers:

    table = UnitTable.default()
    accel = table.parse_composite_unit("m/s^2")
    force = table.parse_composite_unit("kg*m/s^2")

Values carry their unit as a Tagged pair. Conversion checks dimensions
first, and a failed conversion hands the original value back inside the
error:

    five_meters = Tagged(5, table.parse_composite_unit("m"))
    five_meters.try_convert(table.parse_composite_unit("ft"))   # => 6250/381 ft
    try:
        five_meters.try_convert(table.parse_composite_unit("s"))
    except TryConvertError as e:
        e.recover_payload()                                      # => 5 m

Absolute temperatures (degC, degF) are affine: converting them adds an
offset as well as scaling. They only make sense on their own, so a
composite unit that puts them next to anything else is rejected.

A Tagged value may also be symbolic. Products read as a value times
units, which lets units of one dimension cancel inside an expression:

    tagged = tagged_from_expr(table, E("x * km / m"))          # => x km/m
    tagged.try_convert(simplify_compatible_units(tagged.unit))  # => (* x 1000) 1
"""

import logging
import math
import operator
import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import SymcalcError
from .expr import Call, Expr
from .number import Number
from .term import Factor, Term

logger = logging.getLogger(__name__)

Scalar = Union[Number, int, Fraction, float]


# ============================================================
# Errors
# ============================================================

class UnitError(SymcalcError):
    """Base class for unit and dimension errors."""


class UnknownUnitError(UnitError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown unit: {name}")


class UnitParseError(UnitError):
    """A composite unit string could not be parsed."""

    def __init__(self, message: str, token: str, position: int):
        self.token = token
        self.position = position
        super().__init__(f"{message}: {token!r} at {position}")


class DimensionMismatchError(UnitError):
    def __init__(self, left: 'Dimension', right: 'Dimension'):
        self.left = left
        self.right = right
        super().__init__(f"Dimension mismatch: {left} vs {right}")


class TemperatureCompositionError(UnitError):
    """An absolute temperature unit was combined with another unit or power."""

    def __init__(self, unit_name: str):
        self.unit_name = unit_name
        super().__init__(f"Absolute temperature unit {unit_name} cannot be combined with other units")


class TryConvertError(UnitError):
    """
    A conversion failed; the untouched original value travels with it.

    Attributes:
        tagged_value: The Tagged value that could not be converted
        attempted_target: The CompositeUnit it was being converted to
    """

    def __init__(self, tagged_value: 'Tagged', attempted_target: 'CompositeUnit'):
        self.tagged_value = tagged_value
        self.attempted_target = attempted_target
        super().__init__(
            f"Cannot convert {tagged_value} to {attempted_target}: "
            f"{tagged_value.unit.dimension()} is not {attempted_target.dimension()}")

    def recover_payload(self) -> 'Tagged':
        return self.tagged_value


# ============================================================
# Dimensions
# ============================================================

class BaseDimension(Enum):
    LENGTH = "length"
    TIME = "time"
    MASS = "mass"
    TEMPERATURE = "temperature"
    CURRENT = "current"
    LUMINOUS_INTENSITY = "intensity"
    AMOUNT_OF_SUBSTANCE = "amount"


_BASES = list(BaseDimension)


@dataclass(frozen=True)
class Dimension:
    """Immutable vector of integer exponents, one per BaseDimension."""
    exponents: Tuple[int, ...] = (0,) * len(_BASES)

    @classmethod
    def one(cls) -> 'Dimension':
        return cls()

    @classmethod
    def singleton(cls, base: BaseDimension) -> 'Dimension':
        return cls(tuple(1 if b == base else 0 for b in _BASES))

    @classmethod
    def of(cls, **powers: int) -> 'Dimension':
        """Build from keyword exponents: Dimension.of(length=1, time=-2)."""
        by_name = {b.name.lower(): b for b in _BASES}
        exponents = [0] * len(_BASES)
        for name, power in powers.items():
            exponents[_BASES.index(by_name[name])] = power
        return cls(tuple(exponents))

    def __getitem__(self, base: BaseDimension) -> int:
        return self.exponents[_BASES.index(base)]

    def __mul__(self, other: 'Dimension') -> 'Dimension':
        return Dimension(tuple(a + b for a, b in zip(self.exponents, other.exponents)))

    def __truediv__(self, other: 'Dimension') -> 'Dimension':
        return Dimension(tuple(a - b for a, b in zip(self.exponents, other.exponents)))

    def __pow__(self, power: int) -> 'Dimension':
        if not isinstance(power, int):
            raise TypeError("Dimensions can only be raised to integer powers")
        return Dimension(tuple(a * power for a in self.exponents))

    def recip(self) -> 'Dimension':
        return self ** -1

    def is_one(self) -> bool:
        return not any(self.exponents)

    def __str__(self) -> str:
        if self.is_one():
            return "1"

        def part(base, power):
            return base.value if power == 1 else f"{base.value}^{power}"
        numer = [part(b, e) for b, e in zip(_BASES, self.exponents) if e > 0]
        denom = [part(b, -e) for b, e in zip(_BASES, self.exponents) if e < 0]
        text = " ".join(numer) or "1"
        if denom:
            text += " / " + " ".join(denom)
        return text


LENGTH = Dimension.singleton(BaseDimension.LENGTH)
TIME = Dimension.singleton(BaseDimension.TIME)
MASS = Dimension.singleton(BaseDimension.MASS)
TEMPERATURE = Dimension.singleton(BaseDimension.TEMPERATURE)
CURRENT = Dimension.singleton(BaseDimension.CURRENT)
LUMINOUS_INTENSITY = Dimension.singleton(BaseDimension.LUMINOUS_INTENSITY)
AMOUNT_OF_SUBSTANCE = Dimension.singleton(BaseDimension.AMOUNT_OF_SUBSTANCE)


# ============================================================
# Units
# ============================================================

@dataclass(frozen=True)
class Unit:
    """
    A named unit.

    Attributes:
        name: Display and lookup name
        dimension: What the unit measures
        amount_of_base: How many SI base units one of this unit is
        offset: Added before scaling (absolute temperatures only)

    to_base(v) = (v + offset) * amount_of_base
    """
    name: str
    dimension: Dimension
    amount_of_base: Number
    offset: Number = Number(0)

    def __post_init__(self):
        object.__setattr__(self, 'amount_of_base', Number(self.amount_of_base))
        object.__setattr__(self, 'offset', Number(self.offset))

    def is_affine(self) -> bool:
        return not self.offset.is_zero()

    def to_base(self, value: Scalar) -> Number:
        return (Number(value) + self.offset) * self.amount_of_base

    def from_base(self, value: Scalar) -> Number:
        return Number(value) / self.amount_of_base - self.offset

    def with_prefix(self, prefix: str, exponent: int) -> 'Unit':
        scale = Number(Fraction(10) ** exponent)
        amount = self.amount_of_base
        if amount.is_exact():
            amount = Number(amount.to_fraction() * scale.to_fraction())
        else:
            amount = amount * scale
        return Unit(prefix + self.name, self.dimension, amount, self.offset)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnitWithPower:
    unit: Unit
    exponent: int

    def dimension(self) -> Dimension:
        return self.unit.dimension ** self.exponent

    def amount_of_base(self) -> Number:
        return self.unit.amount_of_base ** Number(self.exponent)

    def __str__(self) -> str:
        if self.exponent == 1:
            return self.unit.name
        return f"{self.unit.name}^{self.exponent}"


class CompositeUnit:
    """
    A product of units with integer exponents.

    Normalized on construction: equal units are merged, zero exponents
    dropped and the rest sorted by name.

    Raises:
        TemperatureCompositionError: for an absolute temperature unit
            alongside other units, or raised to a power other than 1
    """

    __slots__ = ('units',)

    def __init__(self, units: Iterable[UnitWithPower] = ()):
        merged: Dict[str, UnitWithPower] = {}
        for uwp in units:
            if uwp.unit.name in merged:
                previous = merged[uwp.unit.name]
                merged[uwp.unit.name] = UnitWithPower(previous.unit, previous.exponent + uwp.exponent)
            else:
                merged[uwp.unit.name] = uwp
        self.units: Tuple[UnitWithPower, ...] = tuple(
            sorted((u for u in merged.values() if u.exponent != 0), key=lambda u: u.unit.name))
        for uwp in self.units:
            if uwp.unit.is_affine() and (len(self.units) > 1 or uwp.exponent != 1):
                raise TemperatureCompositionError(uwp.unit.name)

    @classmethod
    def unitless(cls) -> 'CompositeUnit':
        return cls()

    @classmethod
    def from_unit(cls, unit: Unit) -> 'CompositeUnit':
        return cls([UnitWithPower(unit, 1)])

    def __mul__(self, other: 'CompositeUnit') -> 'CompositeUnit':
        return CompositeUnit(self.units + other.units)

    def __truediv__(self, other: 'CompositeUnit') -> 'CompositeUnit':
        return self * other.recip()

    def recip(self) -> 'CompositeUnit':
        return self ** -1

    def __pow__(self, power: int) -> 'CompositeUnit':
        return CompositeUnit(UnitWithPower(u.unit, u.exponent * power) for u in self.units)

    def dimension(self) -> Dimension:
        result = Dimension.one()
        for uwp in self.units:
            result = result * uwp.dimension()
        return result

    def amount_of_base(self) -> Number:
        result = Number(1)
        for uwp in self.units:
            result = result * uwp.amount_of_base()
        return result

    def is_dimensionless(self) -> bool:
        return self.dimension().is_one()

    def _affine_unit(self) -> Optional[Unit]:
        if len(self.units) == 1 and self.units[0].unit.is_affine():
            return self.units[0].unit
        return None

    def is_affine(self) -> bool:
        return self._affine_unit() is not None

    def offset(self) -> Number:
        affine = self._affine_unit()
        return Number(0) if affine is None else affine.offset

    def to_base(self, value: Scalar) -> Number:
        affine = self._affine_unit()
        if affine is not None:
            return affine.to_base(value)
        return Number(value) * self.amount_of_base()

    def from_base(self, value: Scalar) -> Number:
        affine = self._affine_unit()
        if affine is not None:
            return affine.from_base(value)
        return Number(value) / self.amount_of_base()

    def __eq__(self, other):
        if isinstance(other, CompositeUnit):
            return self.units == other.units
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.units)

    def __str__(self) -> str:
        numer = [UnitWithPower(u.unit, u.exponent) for u in self.units if u.exponent > 0]
        denom = [UnitWithPower(u.unit, -u.exponent) for u in self.units if u.exponent < 0]
        text = "*".join(str(u) for u in numer) or "1"
        for u in denom:
            text += "/" + str(u)
        return text

    def __repr__(self) -> str:
        return f"CompositeUnit({self})"


# ============================================================
# Unit Table
# ============================================================

SI_PREFIXES: Dict[str, int] = {
    "Q": 30, "R": 27, "Y": 24, "Z": 21, "E": 18, "P": 15, "T": 12,
    "G": 9, "M": 6, "k": 3, "h": 2, "D": 1,
    "d": -1, "c": -2, "m": -3, "u": -6, "μ": -6, "n": -9, "p": -12,
    "f": -15, "a": -18, "z": -21, "y": -24, "r": -27, "q": -30,
}

_OP_RE = re.compile(r"\s*([*/])")
_FACTOR_RE = re.compile(r"\s*(?:(?P<one>1)(?![\w^])|(?P<name>[^\W\d_]+)(?:\^(?P<exp>-?\d+))?)")


def _default_units() -> List[Unit]:
    F = Fraction
    force = MASS * LENGTH / TIME ** 2
    energy = force * LENGTH
    power_ = energy / TIME
    charge = CURRENT * TIME
    gallon = F(473176473, 125000000000)
    return [
        # Length
        Unit("m", LENGTH, 1),
        Unit("in", LENGTH, F(254, 10000)),
        Unit("ft", LENGTH, F(3048, 10000)),
        Unit("yd", LENGTH, F(9144, 10000)),
        Unit("mi", LENGTH, F(1609344, 1000)),
        # Time
        Unit("s", TIME, 1),
        Unit("min", TIME, 60),
        Unit("hr", TIME, 3600),
        Unit("day", TIME, 86400),
        Unit("wk", TIME, 604800),
        Unit("yr", TIME, 31557600),
        # Mass
        Unit("g", MASS, F(1, 1000)),
        Unit("lb", MASS, F(45359237, 100000000)),
        Unit("oz", MASS, F(45359237, 1600000000)),
        Unit("ton", MASS, F(45359237, 50000)),
        Unit("t", MASS, 1000),
        # Temperature; the d* units are temperature differences
        Unit("K", TEMPERATURE, 1),
        Unit("degK", TEMPERATURE, 1),
        Unit("dK", TEMPERATURE, 1),
        Unit("degC", TEMPERATURE, 1, F("273.15")),
        Unit("dC", TEMPERATURE, 1),
        Unit("degF", TEMPERATURE, F(5, 9), F("459.67")),
        Unit("dF", TEMPERATURE, F(5, 9)),
        # Other base dimensions
        Unit("A", CURRENT, 1),
        Unit("cd", LUMINOUS_INTENSITY, 1),
        Unit("mol", AMOUNT_OF_SUBSTANCE, 1),
        # Angles
        Unit("rad", Dimension.one(), 1),
        Unit("deg", Dimension.one(), math.pi / 180),
        # Speed
        Unit("c", LENGTH / TIME, 299792458),
        Unit("mph", LENGTH / TIME, F(1397, 3125)),
        Unit("kph", LENGTH / TIME, F(5, 18)),
        Unit("knot", LENGTH / TIME, F(463, 900)),
        # Area
        Unit("hect", LENGTH ** 2, 10000),
        Unit("a", LENGTH ** 2, 100),
        Unit("acre", LENGTH ** 2, F(316160658, 78125)),
        # Volume
        Unit("L", LENGTH ** 3, F(1, 1000)),
        Unit("l", LENGTH ** 3, F(1, 1000)),
        Unit("gal", LENGTH ** 3, gallon),
        # Derived
        Unit("Hz", TIME ** -1, 1),
        Unit("ga", LENGTH / TIME ** 2, F(980665, 100000)),
        Unit("N", force, 1),
        Unit("dyn", force, F(1, 100000)),
        Unit("J", energy, 1),
        Unit("cal", energy, F(41868, 10000)),
        Unit("Cal", energy, F(41868, 10)),
        Unit("W", power_, 1),
        Unit("Pa", force / LENGTH ** 2, 1),
        Unit("C", charge, 1),
        Unit("V", power_ / CURRENT, 1),
    ]


class UnitTable:
    """
    Lookup table of named units with SI prefix support.

    Example:
        table = UnitTable.default()
        table.parse_unit("km").amount_of_base     # => 1000
        table.parse_unit("bogus")                 # raises UnknownUnitError
    """

    def __init__(self, units: Iterable[Unit] = (), prefixes: Optional[Dict[str, int]] = None):
        self._units: Dict[str, Unit] = {}
        self.prefixes = dict(SI_PREFIXES if prefixes is None else prefixes)
        self._longest_prefix = max((len(p) for p in self.prefixes), default=0)
        for unit in units:
            self.insert(unit)

    @classmethod
    def default(cls) -> 'UnitTable':
        return cls(_default_units())

    def insert(self, unit: Unit) -> 'UnitTable':
        self._units[unit.name] = unit
        return self

    def get(self, name: str) -> Optional[Unit]:
        return self._units.get(name)

    def names(self) -> List[str]:
        return sorted(self._units)

    def __contains__(self, name: str) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)

    def parse_unit(self, name: str) -> Unit:
        """
        Resolve a single unit name: an exact table entry, or an SI prefix
        followed by a table entry ("km", "ms", "kg").

        Raises:
            UnknownUnitError: if neither applies
        """
        unit = self._units.get(name)
        if unit is not None:
            return unit
        for i in range(1, min(self._longest_prefix, len(name) - 1) + 1):
            prefix, rest = name[:i], name[i:]
            base = self._units.get(rest)
            if prefix in self.prefixes and base is not None and not base.is_affine():
                return base.with_prefix(prefix, self.prefixes[prefix])
        raise UnknownUnitError(name)

    def parse_composite_unit(self, text: str) -> CompositeUnit:
        """
        Parse a product/quotient of units.

        Accepts `*`, `/` and whitespace (an implicit product); each `/`
        divides by the single factor after it. Exponents are written
        `^n`. A bare `1` stands for the empty product:

            "m/s^2", "kg*m^2/s^2", "1/s", "m^-1", "N m"

        Raises:
            UnitParseError: on malformed text (with token and position)
            UnknownUnitError: on an unknown unit name
        """
        result = CompositeUnit.unitless()
        pos = 0
        op = "*"
        expect_factor = True
        while pos < len(text):
            if not text[pos:].strip():
                break
            m = _OP_RE.match(text, pos)
            if m:
                if expect_factor:
                    raise UnitParseError("Expected a unit", m.group(1), m.start(1))
                op, expect_factor = m.group(1), True
                pos = m.end()
                continue
            m = _FACTOR_RE.match(text, pos)
            if not m:
                start = len(text) - len(text[pos:].lstrip())
                raise UnitParseError("Unexpected token", text[start:].split()[0], start)
            if m.group("one"):
                factor = CompositeUnit.unitless()
            else:
                exponent = int(m.group("exp")) if m.group("exp") else 1
                factor = CompositeUnit.from_unit(self.parse_unit(m.group("name"))) ** exponent
            result = result * factor if op == "*" else result / factor
            op, expect_factor = "*", False
            pos = m.end()
        if expect_factor:
            raise UnitParseError("Expected a unit", text[pos:].strip() or "<end>", len(text))
        return result

    def __repr__(self) -> str:
        return f"UnitTable({len(self._units)} units)"


# ============================================================
# Tagged Values
# ============================================================

TaggedValue = Union[Number, Expr]


def _tagged_value(value) -> TaggedValue:
    if isinstance(value, Expr):
        return value.value if value.is_number() else value
    return Number(value)


def _as_expr(value: TaggedValue) -> Expr:
    return value if isinstance(value, Expr) else Expr.number(value)


def _combine(name: str, op, a, b) -> TaggedValue:
    a, b = _tagged_value(a), _tagged_value(b)
    if isinstance(a, Number) and isinstance(b, Number):
        return op(a, b)
    return Call(name, (_as_expr(a), _as_expr(b)))


def _convert_expr(value: Expr, source: CompositeUnit, target: CompositeUnit) -> Expr:
    """(value + source offset) * scale - target offset, skipping the trivial steps."""
    scale = source.amount_of_base() / target.amount_of_base()
    if not source.offset().is_zero():
        value = Call("+", (value, Expr.number(source.offset())))
    if not scale.is_one():
        value = Call("*", (value, Expr.number(scale)))
    if not target.offset().is_zero():
        value = Call("-", (value, Expr.number(target.offset())))
    return value


class Tagged:
    """
    A value together with the unit it is measured in.

    The value is a Number, or any other expression when it is symbolic.
    Converting a symbolic value multiplies it by the exact scale factor
    (and adds the offsets of absolute temperatures) as expression nodes.

    Example:
        table = UnitTable.default()
        boiling = Tagged(100, table.parse_composite_unit("degC"))
        boiling.try_convert(table.parse_composite_unit("degF"))   # => 212 degF

        length = Tagged(Expr.var("x"), table.parse_composite_unit("m"))
        length.try_convert(table.parse_composite_unit("ft"))      # => (* x 1250/381) ft
    """

    __slots__ = ('value', 'unit')

    def __init__(self, value, unit: CompositeUnit):
        self.value: TaggedValue = _tagged_value(value)
        self.unit = unit

    def is_symbolic(self) -> bool:
        return isinstance(self.value, Expr)

    def try_convert(self, target: CompositeUnit) -> 'Tagged':
        """
        Convert to another unit of the same dimension.

        Raises:
            TryConvertError: on a dimension mismatch; the error owns this
                value unchanged
        """
        if self.unit.dimension() != target.dimension():
            raise TryConvertError(self, target)
        if self.is_symbolic():
            converted = Tagged(_convert_expr(self.value, self.unit, target), target)
        else:
            converted = Tagged(target.from_base(self.unit.to_base(self.value)), target)
        logger.debug("Converted %s to %s", self, converted)
        return converted

    def convert_or_self(self, target: CompositeUnit) -> 'Tagged':
        try:
            return self.try_convert(target)
        except TryConvertError as e:
            return e.recover_payload()

    def _same_unit(self, other: 'Tagged') -> 'Tagged':
        if self.unit.dimension() != other.unit.dimension():
            raise DimensionMismatchError(self.unit.dimension(), other.unit.dimension())
        return other.try_convert(self.unit)

    def __add__(self, other: 'Tagged') -> 'Tagged':
        return Tagged(_combine("+", operator.add, self.value, self._same_unit(other).value), self.unit)

    def __sub__(self, other: 'Tagged') -> 'Tagged':
        return Tagged(_combine("-", operator.sub, self.value, self._same_unit(other).value), self.unit)

    def __mul__(self, other):
        if isinstance(other, Tagged):
            return Tagged(_combine("*", operator.mul, self.value, other.value), self.unit * other.unit)
        return Tagged(_combine("*", operator.mul, self.value, other), self.unit)

    def __rmul__(self, other):
        return Tagged(_combine("*", operator.mul, other, self.value), self.unit)

    def __truediv__(self, other):
        if isinstance(other, Tagged):
            return Tagged(_combine("/", operator.truediv, self.value, other.value), self.unit / other.unit)
        return Tagged(_combine("/", operator.truediv, self.value, other), self.unit)

    def __rtruediv__(self, other):
        return Tagged(_combine("/", operator.truediv, other, self.value), self.unit.recip())

    def __neg__(self) -> 'Tagged':
        if self.is_symbolic():
            return Tagged(Call("negate", (self.value,)), self.unit)
        return Tagged(-self.value, self.unit)

    def __eq__(self, other):
        if isinstance(other, Tagged):
            return (type(self.value) is type(other.value)
                    and self.value == other.value and self.unit == other.unit)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.value, self.unit))

    def __str__(self) -> str:
        return f"{self.value} {self.unit}"

    def __repr__(self) -> str:
        return f"Tagged({self})"


# ============================================================
# Units in Expressions
# ============================================================

def _unit_factor(table: UnitTable, expr: Expr) -> Optional[UnitWithPower]:
    """A variable (or variable to an integer power) naming a known unit."""
    factor = Factor.parse(expr)
    exponent = factor.exponent_or_one()
    if not factor.base.is_var() or not exponent.is_number():
        return None
    power = exponent.value
    if not (power.is_exact() and power.is_integral()):
        return None
    try:
        unit = table.parse_unit(factor.base.value)
    except UnknownUnitError:
        return None
    return UnitWithPower(unit, int(power))


def tagged_from_expr(table: UnitTable, expr: Expr) -> Tagged:
    """
    Read a product as a value times units.

    Every factor that is a variable naming a unit (optionally raised to
    an integer power) goes into the unit; the rest stays as the value.

        tagged_from_expr(table, E("5 * x * km / s"))   # => (* 5 x) km/s
        tagged_from_expr(table, E("x + 1"))            # => (+ x 1) 1

    Raises:
        TemperatureCompositionError: if an absolute temperature is not
            alone in the product
    """
    term = Term.parse(expr)
    value = Term.one()
    units: List[UnitWithPower] = []
    for factor in term.numerator:
        uwp = _unit_factor(table, factor)
        if uwp is None:
            value = value * Term.singleton(factor)
        else:
            units.append(uwp)
    for factor in term.denominator:
        uwp = _unit_factor(table, factor)
        if uwp is None:
            value = value / Term.singleton(factor)
        else:
            units.append(UnitWithPower(uwp.unit, -uwp.exponent))
    return Tagged(value.to_expr(), CompositeUnit(units))


def unit_to_term(unit: CompositeUnit) -> Term:
    def factor(name: str, exponent: int) -> Expr:
        var = Expr.var(name)
        return var if exponent == 1 else Call("^", (var, Expr.number(exponent)))
    return Term([factor(u.unit.name, u.exponent) for u in unit.units if u.exponent > 0],
                [factor(u.unit.name, -u.exponent) for u in unit.units if u.exponent < 0])


def tagged_to_expr(tagged: Tagged) -> Expr:
    """The product of the value and the unit's factors, dropping ones."""
    term = Term.parse(_as_expr(tagged.value)) * unit_to_term(tagged.unit)
    return term.remove_ones().to_expr()


def simplify_compatible_units(unit: CompositeUnit) -> CompositeUnit:
    """
    Rewrite every unit in terms of the first unit (by name) of the same
    dimension, so that compatible units cancel or combine.

        km/m      => 1
        ft*m      => ft^2
        m/s       => m/s
    """
    chosen: Dict[Dimension, Unit] = {}
    for uwp in unit.units:
        chosen.setdefault(uwp.unit.dimension, uwp.unit)
    return CompositeUnit(UnitWithPower(chosen[u.unit.dimension], u.exponent) for u in unit.units)
