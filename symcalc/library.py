"""
Built-in function library.

default_function_table() returns a fresh FunctionTable holding the
arithmetic, rounding, string and interval-constructor functions that
the default simplifier evaluates:

    from symcalc.library import default_function_table

    table = default_function_table()
    table.get("+").permits_reordering()    # => True
    table.get("negate").is_involution()    # => True

Numeric failures inside case bodies (ZeroDivisionError, ValueError,
OverflowError, non-finite floats) surface as DomainError so that the
simplifier can record them and leave the offending call unevaluated.
"""

import functools
import operator
from typing import Callable, List

from .expr import Expr, expr_to_number, expr_to_string
from .function import (
    DIVISION_BY_ZERO, EXPECTED_REAL, NO_MATCH, ZERO_TO_ZERO_POWER,
    DomainError, Function, FunctionBuilder, FunctionTable,
    any_arity, arity_one, arity_two, at_least,
)
from .number import NonFiniteError, Number, NumberRepr

INTERVAL_CONSTRUCTORS = ("..", "..^", "^..", "^..^")


def _domain_errors(body: Callable) -> Callable:
    """Translate numeric exceptions raised by a case body into DomainError."""
    @functools.wraps(body)
    def wrapper(*args):
        try:
            return body(*args)
        except ZeroDivisionError:
            raise DomainError(DIVISION_BY_ZERO) from None
        except NonFiniteError as e:
            raise DomainError(str(e)) from None
        except ValueError:
            raise DomainError(EXPECTED_REAL) from None
        except OverflowError as e:
            raise DomainError(str(e)) from None
    return wrapper


def _identity(x: Expr, ctx) -> Expr:
    return x


def _number_result(fn: Callable) -> Callable:
    """Wrap a Number -> Number function as a numeric case body."""
    return _domain_errors(lambda *args: Expr.number(fn(*args[:-1])))


# ============================================================
# Arithmetic
# ============================================================

def _sum(args: List[Number], ctx) -> Expr:
    return Expr.number(functools.reduce(operator.add, args, Number(0)))


def _product(args: List[Number], ctx) -> Expr:
    return Expr.number(functools.reduce(operator.mul, args, Number(1)))


def _zero_product(args: List[Expr], ctx):
    """0 * x => 0, at the loosest representation among the numeric arguments."""
    numbers = [arg.value for arg in args if arg.is_number()]
    if not any(n.is_zero() for n in numbers):
        return NO_MATCH
    if any(n.repr == NumberRepr.FLOAT for n in numbers):
        return Expr.number(0.0)
    return Expr.number(0)


def _power(base: Number, exponent: Number) -> Number:
    if base.is_zero() and exponent.is_zero():
        raise DomainError(ZERO_TO_ZERO_POWER)
    return base ** exponent


def plus() -> Function:
    return (FunctionBuilder("+")
        .permit_flattening()
        .permit_reordering()
        .set_identity(Expr.is_zero)
        .add_case(arity_one().and_then(_identity))
        .add_case(any_arity().of_type(expr_to_number()).and_then(_domain_errors(_sum)))
        .build())


def minus() -> Function:
    return (FunctionBuilder("-")
        .add_case(arity_two().both_of_type(expr_to_number()).and_then(_number_result(operator.sub)))
        .add_case(arity_one().of_type(expr_to_number()).and_then(_number_result(operator.neg)))
        .build())


def times() -> Function:
    return (FunctionBuilder("*")
        .permit_flattening()
        .permit_reordering()
        .set_identity(Expr.is_one)
        .add_case(arity_one().and_then(_identity))
        .add_case(any_arity().and_then(_zero_product))
        .add_case(any_arity().of_type(expr_to_number()).and_then(_domain_errors(_product)))
        .build())


def divide() -> Function:
    return (FunctionBuilder("/")
        .add_case(arity_two().both_of_type(expr_to_number()).and_then(_number_result(operator.truediv)))
        .build())


def modulo() -> Function:
    return (FunctionBuilder("%")
        .add_case(arity_two().both_of_type(expr_to_number()).and_then(_number_result(operator.mod)))
        .build())


def floor_divide() -> Function:
    return (FunctionBuilder("div")
        .add_case(arity_two().both_of_type(expr_to_number()).and_then(_number_result(operator.floordiv)))
        .build())


def power() -> Function:
    return (FunctionBuilder("^")
        .add_case(arity_two().both_of_type(expr_to_number()).and_then(_number_result(_power)))
        .build())


def negate() -> Function:
    return (FunctionBuilder("negate")
        .mark_as_involution()
        .add_case(arity_one().of_type(expr_to_number()).and_then(_number_result(operator.neg)))
        .build())


def _unary(name: str, fn: Callable[[Number], Number]) -> Function:
    return (FunctionBuilder(name)
        .add_case(arity_one().of_type(expr_to_number()).and_then(_number_result(fn)))
        .build())


def _extremum(name: str, pick: Callable) -> Function:
    return (FunctionBuilder(name)
        .permit_flattening()
        .permit_reordering()
        .add_case(arity_one().and_then(_identity))
        .add_case(at_least(1).of_type(expr_to_number()).and_then(
            lambda args, ctx: Expr.number(pick(args))))
        .build())


# ============================================================
# Strings
# ============================================================

def _string_function(name: str, fn: Callable[[str], Expr]) -> Function:
    return (FunctionBuilder(name)
        .add_case(arity_one().of_type(expr_to_string()).and_then(lambda s, ctx: fn(s)))
        .build())


def lowercase() -> Function:
    return _string_function("lowercase", lambda s: Expr.string(s.lower()))


def uppercase() -> Function:
    return _string_function("uppercase", lambda s: Expr.string(s.upper()))


def strlen() -> Function:
    return _string_function("strlen", lambda s: Expr.number(len(s)))


# ============================================================
# Intervals
# ============================================================

def interval_constructor(name: str) -> Function:
    """
    Interval constructors carry no cases: `1 .. 2` stays a call and is
    normalized by the interval simplifier instead.
    """
    return FunctionBuilder(name).build()


def default_function_table() -> FunctionTable:
    """Build the table of built-in functions."""
    return FunctionTable([
        plus(),
        minus(),
        times(),
        divide(),
        modulo(),
        floor_divide(),
        power(),
        negate(),
        _unary("abs", abs),
        _unary("sign", Number.sign),
        _unary("floor", Number.floor),
        _unary("ceil", Number.ceil),
        _unary("round", Number.round),
        _extremum("min", min),
        _extremum("max", max),
        lowercase(),
        uppercase(),
        strlen(),
    ] + [interval_constructor(name) for name in INTERVAL_CONSTRUCTORS])
