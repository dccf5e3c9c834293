"""
Calculator facade for symcalc.

Ties the parser, the default simplifier, the function library and the
unit table together behind one object:

    from symcalc import Calculator

    calc = Calculator()
    calc("2 + 3 * 4")                    # => 14
    calc("x * (1 + 2)")                  # => (* 3 x)
    calc.evaluate_number("7 / 2")        # => Number(7/2)

    expr, errors = calc.simplify("1 / 0", with_errors=True)
    # expr => (/ 1 0), errors.messages() => ["/: Domain error: Division by zero"]

    calc.convert(5, "m", "ft")           # => Tagged(6250/381 ft)

Configuration is by constructor keywords or fluent setters:

    calc = Calculator(passes=10).with_fixpoint(True)
"""

import logging
from typing import List, Optional, Tuple, Union

from .distributive import DistributiveRuleset
from .errors import ErrorList, SymcalcError
from .expr import Expr, format_expr, function_names
from .function import FunctionTable
from .library import default_function_table
from .number import Number
from .parsing import ExprParser, OperatorTable
from .simplifier import SimplifierContext, default_simplifier
from .units import Tagged, UnitTable

logger = logging.getLogger(__name__)

ExprLike = Union[Expr, str]


class NotANumberError(SymcalcError):
    """An expression did not simplify to a number."""

    def __init__(self, expr: Expr, errors: ErrorList):
        self.expr = expr
        self.errors = errors
        message = f"Expected a number, got {format_expr(expr)}"
        if errors:
            message += " (" + "; ".join(errors.messages()) + ")"
        super().__init__(message)


class Calculator:
    """
    Parse, simplify and evaluate expressions.

    Args:
        passes: Number of full simplifier passes (default 5)
        stop_at_fixpoint: Stop early once a pass changes nothing
        function_table: Functions to evaluate (default: the built-in library)
        unit_table: Units for conversions (default: UnitTable.default())
        ruleset: Distributive rules (default: the common rules)
        operator_table: Infix operators (default: the common operators)
    """

    def __init__(self, passes: int = 5, stop_at_fixpoint: bool = False,
                 function_table: Optional[FunctionTable] = None,
                 unit_table: Optional[UnitTable] = None,
                 ruleset: Optional[DistributiveRuleset] = None,
                 operator_table: Optional[OperatorTable] = None):
        self.passes = passes
        self.stop_at_fixpoint = stop_at_fixpoint
        self.function_table = function_table if function_table is not None else default_function_table()
        self.unit_table = unit_table if unit_table is not None else UnitTable.default()
        self.ruleset = ruleset if ruleset is not None else DistributiveRuleset.from_common_rules()
        self.parser = ExprParser(operator_table)
        self._simplifier = None

    def with_passes(self, passes: int) -> 'Calculator':
        """
        Set the number of simplifier passes.

        Returns:
            self for chaining
        """
        if passes < 0:
            raise ValueError("passes must be non-negative")
        self.passes = passes
        self._simplifier = None
        return self

    def with_fixpoint(self, enabled: bool = True) -> 'Calculator':
        """Enable or disable early stopping at a fixpoint. Returns self."""
        self.stop_at_fixpoint = enabled
        self._simplifier = None
        return self

    @property
    def simplifier(self):
        if self._simplifier is None:
            self._simplifier = default_simplifier(self.passes, self.stop_at_fixpoint, self.ruleset)
        return self._simplifier

    def context(self) -> SimplifierContext:
        """A fresh context bound to this calculator's tables."""
        return SimplifierContext(self.function_table, self.unit_table)

    def parse(self, text: str) -> Expr:
        """Parse infix text; raises ParseError on malformed input."""
        return self.parser.parse(text)

    def _to_expr(self, expr: ExprLike) -> Expr:
        if isinstance(expr, str):
            return self.parse(expr)
        return Expr.from_value(expr)

    def simplify(self, expr: ExprLike, with_errors: bool = False):
        """
        Simplify an expression (or infix text).

        Args:
            expr: Expression or text to simplify
            with_errors: If True, return (result, errors)

        Returns:
            Simplified expression, or (expression, ErrorList) if with_errors
        """
        expr = self._to_expr(expr)
        ctx = self.context()
        result = self.simplifier.simplify_expr(expr, ctx)
        if ctx.errors:
            logger.debug("Simplified %s with %d errors", format_expr(expr), len(ctx.errors))
        if with_errors:
            return result, ctx.errors
        return result

    def evaluate(self, text: ExprLike) -> Tuple[Expr, ErrorList]:
        """Parse and simplify, returning the result with its errors."""
        return self.simplify(text, with_errors=True)

    def evaluate_number(self, text: ExprLike) -> Number:
        """
        Simplify and require a numeric result.

        Raises:
            NotANumberError: if the result is not a number
        """
        result, errors = self.evaluate(text)
        if not result.is_number():
            raise NotANumberError(result, errors)
        return result.value

    def convert(self, value, unit: str, target: str) -> Tagged:
        """
        Convert a value between two units given as text. The value may be
        a number, an expression, or infix text that is simplified first:

            calc.convert("2 * x", "m", "ft")   # => (* (* 2 x) 1250/381) ft

        Raises:
            ParseError: for bad value text
            UnitParseError, UnknownUnitError: for bad unit text
            TryConvertError: on a dimension mismatch
        """
        if isinstance(value, str):
            value = self.simplify(value)
        source = Tagged(value, self.unit_table.parse_composite_unit(unit))
        return source.try_convert(self.unit_table.parse_composite_unit(target))

    def undefined_functions(self, expr: Expr) -> List[str]:
        """Function names used in `expr` that the function table does not know."""
        return [name for name in function_names(expr) if name not in self.function_table]

    def __call__(self, expr: ExprLike) -> Expr:
        """calc(expr) is shorthand for calc.simplify(expr)."""
        return self.simplify(expr)

    def __repr__(self) -> str:
        return (f"Calculator(passes={self.passes}, fixpoint={self.stop_at_fixpoint}, "
                f"{len(self.function_table)} functions)")
