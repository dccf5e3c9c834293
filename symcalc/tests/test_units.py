"""Tests for dimensions, units, unit parsing and tagged values."""

from fractions import Fraction
import math

import pytest
from symcalc import (
    E, Expr, Number, BaseDimension, Dimension, Unit, CompositeUnit, UnitTable, Tagged,
    tagged_from_expr, tagged_to_expr, simplify_compatible_units,
    UnitError, UnknownUnitError, UnitParseError, DimensionMismatchError, TryConvertError,
)
from symcalc.units import LENGTH, TIME, MASS, TEMPERATURE, TemperatureCompositionError, UnitWithPower


@pytest.fixture
def table():
    return UnitTable.default()


class TestDimension:
    """Tests for Dimension."""

    def test_one(self):
        """The dimensionless dimension."""
        assert Dimension.one().is_one()
        assert str(Dimension.one()) == "1"

    def test_algebra(self):
        """Dimensions multiply, divide and exponentiate."""
        accel = LENGTH / TIME ** 2
        assert accel[BaseDimension.LENGTH] == 1
        assert accel[BaseDimension.TIME] == -2
        assert accel * TIME ** 2 == LENGTH
        assert accel.recip() == TIME ** 2 / LENGTH

    def test_of(self):
        """Dimension.of builds from keyword exponents."""
        assert Dimension.of(length=1, time=-2) == LENGTH / TIME ** 2
        assert Dimension.of(mass=1) == MASS

    def test_str(self):
        """Dimensions print as numerator / denominator."""
        assert str(LENGTH / TIME ** 2) == "length / time^2"
        assert str(TIME ** -1) == "1 / time"

    def test_integer_powers_only(self):
        """Non-integer powers are rejected."""
        with pytest.raises(TypeError):
            LENGTH ** 0.5


class TestUnit:
    """Tests for Unit."""

    def test_amounts_are_numbers(self):
        """amount_of_base and offset are coerced to Number."""
        unit = Unit("x", LENGTH, 2)
        assert isinstance(unit.amount_of_base, Number)
        assert unit.offset == Number(0)
        assert not unit.is_affine()

    def test_linear_conversion(self):
        """to_base and from_base scale."""
        ft = Unit("ft", LENGTH, Fraction(3048, 10000))
        assert ft.to_base(1) == Fraction(381, 1250)
        assert ft.from_base(ft.to_base(7)) == 7

    def test_affine_conversion(self):
        """Absolute temperatures add an offset before scaling."""
        degC = Unit("degC", TEMPERATURE, 1, Fraction(27315, 100))
        assert degC.is_affine()
        assert degC.to_base(0) == Fraction(27315, 100)
        assert degC.from_base(Fraction(27315, 100)) == 0

    def test_prefix_exact(self):
        """Prefixes scale exact amounts exactly."""
        g = Unit("g", MASS, Fraction(1, 1000))
        kg = g.with_prefix("k", 3)
        assert kg.name == "kg"
        assert kg.amount_of_base == 1
        assert kg.amount_of_base.is_exact()


class TestCompositeUnit:
    """Tests for CompositeUnit."""

    def test_normalization(self, table):
        """Equal units merge and zero powers vanish."""
        m = CompositeUnit.from_unit(table.get("m"))
        s = CompositeUnit.from_unit(table.get("s"))
        assert (m * s / s) == m
        assert (m / m).is_dimensionless()
        assert (m / m) == CompositeUnit.unitless()

    def test_sorted_by_name(self, table):
        """Units are stored sorted by name."""
        unit = table.parse_composite_unit("s*m*kg")
        assert [u.unit.name for u in unit.units] == ["kg", "m", "s"]

    def test_dimension_and_amount(self, table):
        """Dimension and amount combine over the factors."""
        unit = table.parse_composite_unit("km/hr")
        assert unit.dimension() == LENGTH / TIME
        assert unit.amount_of_base() == Fraction(5, 18)

    def test_str(self, table):
        """Composite units print with * and /."""
        assert str(table.parse_composite_unit("kg*m^2/s^2")) == "kg*m^2/s^2"
        assert str(table.parse_composite_unit("1/s")) == "1/s"
        assert str(CompositeUnit.unitless()) == "1"

    def test_temperature_composition(self, table):
        """Absolute temperatures cannot be combined or raised to powers."""
        degC = CompositeUnit.from_unit(table.get("degC"))
        with pytest.raises(TemperatureCompositionError):
            degC * CompositeUnit.from_unit(table.get("m"))
        with pytest.raises(TemperatureCompositionError):
            degC ** 2
        with pytest.raises(UnitError):
            table.parse_composite_unit("degC/s")

    def test_temperature_differences_compose(self, table):
        """Temperature differences combine freely."""
        unit = table.parse_composite_unit("dC/s")
        assert unit.dimension() == TEMPERATURE / TIME

    def test_unit_with_power(self, table):
        """UnitWithPower raises dimension and amount."""
        uwp = UnitWithPower(table.get("ft"), 2)
        assert uwp.dimension() == LENGTH ** 2
        assert uwp.amount_of_base() == Fraction(381, 1250) ** 2
        assert str(uwp) == "ft^2"


class TestUnitTable:
    """Tests for unit lookup and parsing."""

    def test_lookup(self, table):
        """Exact names are found directly."""
        assert table.parse_unit("min").amount_of_base == 60
        assert "m" in table
        assert table.get("bogus") is None

    def test_prefixes(self, table):
        """SI prefixes apply to table units."""
        assert table.parse_unit("km").amount_of_base == 1000
        assert table.parse_unit("ms").amount_of_base == Fraction(1, 1000)
        assert table.parse_unit("kg").amount_of_base == 1

    def test_no_prefix_on_affine(self, table):
        """Absolute temperatures take no prefix."""
        with pytest.raises(UnknownUnitError):
            table.parse_unit("kdegC")

    def test_unknown(self, table):
        """Unknown names raise UnknownUnitError."""
        with pytest.raises(UnknownUnitError) as info:
            table.parse_unit("bogus")
        assert str(info.value) == "Unknown unit: bogus"

    def test_parse_quotient(self, table):
        """A slash divides by the next factor only."""
        unit = table.parse_composite_unit("m/s*kg")
        assert unit.dimension() == LENGTH * MASS / TIME

    def test_parse_whitespace_product(self, table):
        """Whitespace is an implicit product."""
        assert table.parse_composite_unit("N m") == table.parse_composite_unit("N*m")

    def test_parse_negative_exponent(self, table):
        """Exponents may be negative."""
        assert table.parse_composite_unit("m^-1") == table.parse_composite_unit("1/m")

    def test_parse_errors(self, table):
        """Malformed unit text raises UnitParseError with a position."""
        with pytest.raises(UnitParseError):
            table.parse_composite_unit("m/")
        with pytest.raises(UnitParseError) as info:
            table.parse_composite_unit("*m")
        assert info.value.position == 0
        with pytest.raises(UnitParseError) as info:
            table.parse_composite_unit("m $")
        assert info.value.token == "$"
        assert info.value.position == 2

    def test_derived_units(self, table):
        """Derived units have the right dimensions."""
        assert table.get("N").dimension == MASS * LENGTH / TIME ** 2
        assert table.parse_composite_unit("J").dimension() == table.parse_composite_unit("kg*m^2/s^2").dimension()
        assert table.get("Hz").dimension == TIME ** -1

    def test_angles(self, table):
        """Degrees are pi/180 radians."""
        assert math.isclose(float(table.get("deg").amount_of_base), math.pi / 180)
        assert table.get("rad").dimension.is_one()


class TestTagged:
    """Tests for Tagged values and conversion."""

    def test_length_conversion(self, table):
        """5 m is 6250/381 ft, exactly."""
        five_m = Tagged(5, table.parse_composite_unit("m"))
        result = five_m.try_convert(table.parse_composite_unit("ft"))
        assert result.value == Fraction(6250, 381)
        assert str(result) == "6250/381 ft"

    def test_mismatch_recovers_original(self, table):
        """A failed conversion hands back the original value."""
        five_m = Tagged(5, table.parse_composite_unit("m"))
        with pytest.raises(TryConvertError) as info:
            five_m.try_convert(table.parse_composite_unit("s"))
        assert info.value.recover_payload() is five_m
        assert five_m.convert_or_self(table.parse_composite_unit("s")) is five_m

    def test_temperature_round_trip(self, table):
        """100 degC is 212 degF and back."""
        degC = table.parse_composite_unit("degC")
        degF = table.parse_composite_unit("degF")
        boiling = Tagged(100, degC).try_convert(degF)
        assert boiling.value == 212
        assert boiling.try_convert(degC).value == 100

    def test_absolute_zero(self, table):
        """0 K is -273.15 degC and -459.67 degF."""
        zero = Tagged(0, table.parse_composite_unit("K"))
        assert zero.try_convert(table.parse_composite_unit("degC")).value == Fraction(-27315, 100)
        assert zero.try_convert(table.parse_composite_unit("degF")).value == Fraction(-45967, 100)

    def test_temperature_difference(self, table):
        """A difference of 9 dF is 5 dC."""
        diff = Tagged(9, table.parse_composite_unit("dF"))
        assert diff.try_convert(table.parse_composite_unit("dC")).value == 5

    def test_composite_conversion(self, table):
        """Composite units convert through the base units."""
        speed = Tagged(36, table.parse_composite_unit("km/hr"))
        assert speed.try_convert(table.parse_composite_unit("m/s")).value == 10

    def test_add_converts_right_operand(self, table):
        """Addition converts the right operand to the left unit."""
        m = table.parse_composite_unit("m")
        total = Tagged(1, table.parse_composite_unit("km")) + Tagged(500, m)
        assert total.value == Fraction(3, 2)
        assert str(total.unit) == "km"

    def test_add_mismatch(self, table):
        """Adding incompatible dimensions raises."""
        with pytest.raises(DimensionMismatchError):
            Tagged(1, table.parse_composite_unit("m")) + Tagged(1, table.parse_composite_unit("s"))

    def test_multiply_and_divide(self, table):
        """Multiplication and division combine units."""
        m = table.parse_composite_unit("m")
        s = table.parse_composite_unit("s")
        speed = Tagged(10, m) / Tagged(2, s)
        assert speed == Tagged(5, m / s)
        assert (speed * 2).value == 10
        assert (3 * Tagged(2, m)).value == 6
        assert -Tagged(2, m) == Tagged(-2, m)

    def test_number_atom_is_numeric(self, table):
        """A number expression is stored as a plain Number."""
        tagged = Tagged(Expr.number(5), table.parse_composite_unit("m"))
        assert isinstance(tagged.value, Number)
        assert not tagged.is_symbolic()


class TestSymbolicTagged:
    """Tests for Tagged values holding expressions."""

    def test_convert_scales_exactly(self, table):
        """A symbolic length converts by multiplying with the exact factor."""
        length = Tagged(E("x"), table.parse_composite_unit("m"))
        assert length.is_symbolic()
        result = length.try_convert(table.parse_composite_unit("ft"))
        assert result.value == Expr.call("*", ["x", Expr.number(Fraction(1250, 381))])
        assert str(result) == "(* x 1250/381) ft"

    def test_convert_same_scale(self, table):
        """Converting between units of equal size leaves the expression alone."""
        diff = Tagged(E("x"), table.parse_composite_unit("K"))
        assert diff.try_convert(table.parse_composite_unit("dC")).value == Expr.var("x")

    def test_convert_temperature(self, table):
        """Absolute temperatures add both offsets around the scale factor."""
        t = Tagged(E("x"), table.parse_composite_unit("degC"))
        result = t.try_convert(table.parse_composite_unit("degF"))
        assert str(result) == "(- (* (+ x 5463/20) 9/5) 45967/100) degF"

    def test_convert_mismatch(self, table):
        """Dimension checks apply to symbolic values too."""
        length = Tagged(E("x"), table.parse_composite_unit("m"))
        with pytest.raises(TryConvertError):
            length.try_convert(table.parse_composite_unit("s"))

    def test_arithmetic_builds_calls(self, table):
        """Arithmetic with a symbolic side produces expression nodes."""
        km = table.parse_composite_unit("km")
        m = table.parse_composite_unit("m")
        total = Tagged(E("x"), km) + Tagged(500, m)
        assert str(total) == "(+ x 1/2) km"
        assert str(2 * Tagged(E("x"), m)) == "(* 2 x) m"
        assert str(-Tagged(E("x"), m)) == "(negate x) m"

    def test_symbolic_not_equal_to_number(self, table):
        """A symbolic value never equals a numeric one."""
        m = table.parse_composite_unit("m")
        assert Tagged(E("x"), m) == Tagged(E("x"), m)
        assert Tagged(E("x"), m) != Tagged(1, m)


class TestUnitsInExpressions:
    """Tests for reading units out of products and writing them back."""

    def test_from_expr(self, table):
        """Unit factors go to the unit, the rest to the value."""
        tagged = tagged_from_expr(table, E("5 * x * km / s"))
        assert tagged.value == E("5 * x")
        assert str(tagged.unit) == "km/s"

    def test_from_expr_no_units(self, table):
        """An expression without units is unitless."""
        tagged = tagged_from_expr(table, E("x + 1"))
        assert tagged.value == E("x + 1")
        assert tagged.unit == CompositeUnit.unitless()

    def test_from_expr_powers(self, table):
        """Integer powers of units combine; other powers stay in the value."""
        tagged = tagged_from_expr(table, E("m ^ 2 / m"))
        assert tagged.value == 1
        assert str(tagged.unit) == "m"
        symbolic = tagged_from_expr(table, E("m ^ y"))
        assert symbolic.value == E("m ^ y")
        assert symbolic.unit == CompositeUnit.unitless()

    def test_from_expr_temperature(self, table):
        """An absolute temperature may cancel but not combine."""
        assert tagged_from_expr(table, E("degC / degC")).unit == CompositeUnit.unitless()
        with pytest.raises(TemperatureCompositionError):
            tagged_from_expr(table, E("degC * m"))

    def test_to_expr(self, table):
        """Units come back as variables and powers; ones are dropped."""
        accel = table.parse_composite_unit("m/s^2")
        assert tagged_to_expr(Tagged(3, accel)) == E("3 * m / s ^ 2")
        assert tagged_to_expr(Tagged(1, table.parse_composite_unit("m"))) == Expr.var("m")
        assert tagged_to_expr(Tagged(5, CompositeUnit.unitless())) == Expr.number(5)

    def test_simplify_compatible_units(self, table):
        """Units of one dimension collapse onto the first by name."""
        assert simplify_compatible_units(table.parse_composite_unit("km/m")) == CompositeUnit.unitless()
        assert str(simplify_compatible_units(table.parse_composite_unit("ft*m"))) == "ft^2"
        speed = table.parse_composite_unit("m/s")
        assert simplify_compatible_units(speed) == speed

    def test_offset(self, table):
        """Only an absolute temperature has an offset."""
        assert table.parse_composite_unit("degC").offset() == Fraction(27315, 100)
        assert table.parse_composite_unit("m").offset() == 0
