"""
Simplifier framework.

A Simplifier rewrites one node at a time (simplify_expr_part); the
shared simplify_expr walks the tree bottom-up, rebuilding each node from
its already simplified children before rewriting the node itself.

Simplifiers compose:

    from symcalc.simplifier import FunctionEvaluator, FunctionFlattener

    both = FunctionFlattener() >> FunctionEvaluator()   # one pass each
    repeated = RepeatedSimplifier(both, times=3)        # three passes

The default normalizer runs, at every node and in this order:

    IdentityRemover             + (x, 0)            =>  + (x)
    FunctionFlattener           + (a, + (b, c))     =>  + (a, b, c)
    DistributiveRuleSimplifier  * (2, + (a, b))     =>  + (* (2, a), * (2, b))
    TermPartialSplitter         * (3, x, 4)         =>  * (* (3, 4), x)
    UnitTermSimplifier          * (5, / (km, m))    =>  5000
    FunctionEvaluator           * (3, 4)            =>  12
    IntervalNormalizer          2 ^..^ 2            =>  0 ..^ 0

and repeats the whole pass a fixed number of times (5 by default).

Errors met along the way never abort a simplification. They are
collected in the context's ErrorList and the offending call is left as
it was:

    expr, errors = run_simplifier(default_simplifier(), E("1 / 0"))
    # expr   => (/ 1 0)
    # errors => ["/: Domain error: Division by zero"]
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .distributive import DistributiveRuleset
from .errors import ErrorList
from .expr import Atom, AtomKind, Call, Expr, TryFromExprError, format_expr
from .function import DomainError, SimplifierError
from .interval import Interval, IntervalOrScalar, IntervalType, expr_to_number_interval
from .library import default_function_table
from .number import NonFiniteError
from .term import Term, partition_term, sort_factors
from .units import UnitError, simplify_compatible_units, tagged_from_expr, tagged_to_expr

logger = logging.getLogger(__name__)


class SimplifierContext:
    """
    State shared by the simplifiers of one run.

    Args:
        function_table: Functions available to FunctionEvaluator and the
            flag-driven rules (default: default_function_table())
        unit_table: Units for UnitTermSimplifier; without one, units in
            products are left alone
        errors: Where non-fatal errors are collected (default: a new list)
    """

    def __init__(self, function_table=None, unit_table=None, errors: Optional[ErrorList] = None):
        self.function_table = function_table if function_table is not None else default_function_table()
        self.unit_table = unit_table
        self.errors = errors if errors is not None else ErrorList()

    def fork(self) -> 'SimplifierContext':
        """Same tables, fresh error list."""
        return SimplifierContext(self.function_table, self.unit_table, ErrorList())

    def __repr__(self) -> str:
        return f"SimplifierContext({len(self.errors)} errors)"


# ============================================================
# Base and Compositions
# ============================================================

class Simplifier:
    """
    Base class for simplifiers.

    Subclasses implement simplify_expr_part, which rewrites a single
    node. simplify_expr applies it to every node, children first.
    """

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        raise NotImplementedError

    def simplify_expr(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if isinstance(expr, Call):
            new_args = tuple(self.simplify_expr(arg, ctx) for arg in expr.args)
            if new_args != expr.args:
                expr = expr.with_args(new_args)
        elif expr.kind == AtomKind.VECTOR:
            items = tuple(self.simplify_expr(item, ctx) for item in expr.value)
            if items != expr.value:
                expr = Atom(AtomKind.VECTOR, items)
        return self.simplify_expr_part(expr, ctx)

    def __call__(self, expr: Expr, ctx: Optional[SimplifierContext] = None) -> Expr:
        """Simplify with a throwaway context."""
        return self.simplify_expr(expr, ctx if ctx is not None else SimplifierContext())

    def __rshift__(self, other: 'Simplifier') -> 'ChainedSimplifier':
        """Sequence two simplifiers: first >> second."""
        return ChainedSimplifier(self, other)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class IdentitySimplifier(Simplifier):
    """Leaves every expression unchanged."""

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        return expr

    def simplify_expr(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        return expr


class ChainedSimplifier(Simplifier):
    """
    Run one simplifier and then another.

    simplify_expr runs a full pass of `first` before a full pass of
    `second`; simplify_expr_part sequences the two at a single node.
    """

    def __init__(self, first: Simplifier, second: Simplifier):
        self.first = first
        self.second = second

    @classmethod
    def several(cls, simplifiers: Sequence[Simplifier]) -> Simplifier:
        """Chain any number of simplifiers, left to right."""
        if not simplifiers:
            return IdentitySimplifier()
        result = simplifiers[0]
        for s in simplifiers[1:]:
            result = cls(result, s)
        return result

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        return self.second.simplify_expr_part(self.first.simplify_expr_part(expr, ctx), ctx)

    def simplify_expr(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        return self.second.simplify_expr(self.first.simplify_expr(expr, ctx), ctx)

    def __repr__(self) -> str:
        return f"({self.first!r} >> {self.second!r})"


class RepeatedSimplifier(Simplifier):
    """
    Run a simplifier a fixed number of full passes.

    There is no convergence guarantee for arbitrary rule sets, so the
    pass count is the caller's bound on work. With stop_at_fixpoint the
    passes stop as soon as one leaves the tree unchanged.

    Errors from every pass are kept, including those raised by calls
    that a later pass rewrote away. An error repeated by a later pass is
    recorded once.
    """

    def __init__(self, inner: Simplifier, times: int = 5, stop_at_fixpoint: bool = False):
        if times < 0:
            raise ValueError("times must be non-negative")
        self.inner = inner
        self.times = times
        self.stop_at_fixpoint = stop_at_fixpoint

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        for _ in range(self.times):
            expr = self.inner.simplify_expr_part(expr, ctx)
        return expr

    def simplify_expr(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        for i in range(self.times):
            pass_ctx = ctx.fork()
            new_expr = self.inner.simplify_expr(expr, pass_ctx)
            ctx.errors.merge(pass_ctx.errors)
            logger.debug("Pass %d/%d: %s", i + 1, self.times, format_expr(new_expr))
            if self.stop_at_fixpoint and new_expr == expr:
                logger.debug("Fixpoint reached after %d passes", i + 1)
                break
            expr = new_expr
        else:
            if self.stop_at_fixpoint and self.times > 0:
                logger.warning("No fixpoint after %d passes: %s", self.times, format_expr(expr))
        return expr

    def __repr__(self) -> str:
        return f"RepeatedSimplifier({self.inner!r}, times={self.times})"


# ============================================================
# Rule Simplifiers
# ============================================================

class FunctionEvaluator(Simplifier):
    """Evaluate calls to known functions; unknown names stay as they are."""

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not isinstance(expr, Call):
            return expr
        function = ctx.function_table.get(expr.name)
        if function is None:
            return expr
        return function.call(expr.args, ctx)


class FunctionFlattener(Simplifier):
    """f(a, f(b, c)) => f(a, b, c) for functions that permit flattening."""

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not isinstance(expr, Call):
            return expr
        function = ctx.function_table.get(expr.name)
        if function is None or not function.permits_flattening():
            return expr
        if not any(arg.is_call(expr.name) for arg in expr.args):
            return expr
        new_args: List[Expr] = []
        for arg in expr.args:
            if arg.is_call(expr.name):
                new_args.extend(arg.args)
            else:
                new_args.append(arg)
        return expr.with_args(new_args)


class IdentityRemover(Simplifier):
    """Drop identity elements: +(x, 0) => +(x). At least one argument stays."""

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not isinstance(expr, Call) or len(expr.args) < 2:
            return expr
        function = ctx.function_table.get(expr.name)
        if function is None or not function.has_identity():
            return expr
        kept = [arg for arg in expr.args if not function.is_identity(arg)]
        if len(kept) == len(expr.args):
            return expr
        return expr.with_args(kept or expr.args[:1])


class InvolutionSimplifier(Simplifier):
    """f(f(x)) => x for functions marked as involutions."""

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not isinstance(expr, Call) or len(expr.args) != 1:
            return expr
        inner = expr.args[0]
        if not inner.is_call(expr.name) or len(inner.args) != 1:
            return expr
        function = ctx.function_table.get(expr.name)
        if function is None or not function.is_involution():
            return expr
        return inner.args[0]


class DistributiveRuleSimplifier(Simplifier):
    """Apply the first matching distributive rule at each node."""

    def __init__(self, ruleset: Optional[DistributiveRuleset] = None):
        self.ruleset = ruleset if ruleset is not None else DistributiveRuleset.from_common_rules()

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        return self.ruleset.apply(expr)


class TermPartialSplitter(Simplifier):
    """
    Group the numeric factors of a product or quotient into one leading
    factor so that the evaluator can fold them:

        *(3, x, 4)       =>  *(*(3, 4), x)
        /(*(6, x), 3)    =>  *(/(6, 3), x)
        /(1, /(1, x))    =>  x
    """

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not isinstance(expr, Call) or expr.name not in ("*", "/"):
            return expr
        return partition_term(Term.parse(expr), Expr.is_number).to_expr()


class UnitTermSimplifier(Simplifier):
    """
    Cancel units of the same dimension within a product, using the
    context's unit table:

        5 * km / m       =>  5000
        x * ft / m       =>  x * 381/1250

    Products whose units are already independent (m / s, m / m) are left
    alone. Does nothing when the context has no unit table.
    """

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if ctx.unit_table is None or not isinstance(expr, Call) or expr.name not in ("*", "/"):
            return expr
        try:
            tagged = tagged_from_expr(ctx.unit_table, expr)
            target = simplify_compatible_units(tagged.unit)
            if target == tagged.unit:
                return expr
            return tagged_to_expr(tagged.try_convert(target))
        except UnitError:
            return expr


class FactorSorter(Simplifier):
    """Put products and quotients into canonical factor order."""

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not (expr.is_call("*") or (expr.is_call("/") and len(expr.args) == 2)):
            return expr
        return sort_factors(expr)


class IntervalNormalizer(Simplifier):
    """
    Normalize numeric intervals and fold interval arithmetic.

        2 ^..^ 2           =>  0 ..^ 0
        (1 .. 2) + 3       =>  4 .. 5
        negate(0 ..^ 1)    =>  -1 ^.. 0
    """

    _BINARY = {"+": IntervalOrScalar.__add__,
               "-": IntervalOrScalar.__sub__,
               "*": IntervalOrScalar.__mul__}

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        if not isinstance(expr, Call):
            return expr
        if IntervalType.is_interval_name(expr.name):
            return self._normalize(expr)
        if not any(IntervalType.is_interval_name(a.name) for a in expr.args if isinstance(a, Call)):
            return expr
        operands = self._operands(expr.args)
        if operands is None:
            return expr
        if len(operands) == 1 and expr.name in ("negate", "-"):
            return (-operands[0]).to_expr()
        combine = self._BINARY.get(expr.name)
        if combine is None or len(operands) < 2 or (expr.name == "-" and len(operands) != 2):
            return expr
        result = operands[0]
        try:
            for operand in operands[1:]:
                result = combine(result, operand)
        except (NonFiniteError, OverflowError) as e:
            ctx.errors.push(SimplifierError(expr.name, DomainError(str(e))))
            return expr
        return result.to_expr()

    @staticmethod
    def _normalize(expr: Call) -> Expr:
        try:
            raw = expr_to_number_interval().narrow_type(expr)
        except TryFromExprError:
            return expr
        return Interval.from_raw(raw).to_expr()

    @staticmethod
    def _operands(args: Sequence[Expr]) -> Optional[List[IntervalOrScalar]]:
        try:
            return [IntervalOrScalar.from_expr(arg) for arg in args]
        except TryFromExprError:
            return None


# ============================================================
# Default Normalizer
# ============================================================

class DefaultSimplifier(Simplifier):
    """The standard rule sequence, applied at each node."""

    def __init__(self, ruleset: Optional[DistributiveRuleset] = None):
        self.rules = ChainedSimplifier.several([
            IdentityRemover(),
            FunctionFlattener(),
            DistributiveRuleSimplifier(ruleset),
            TermPartialSplitter(),
            UnitTermSimplifier(),
            FunctionEvaluator(),
            IntervalNormalizer(),
        ])

    def simplify_expr_part(self, expr: Expr, ctx: SimplifierContext) -> Expr:
        return self.rules.simplify_expr_part(expr, ctx)


def default_simplifier(passes: int = 5, stop_at_fixpoint: bool = False,
                       ruleset: Optional[DistributiveRuleset] = None) -> RepeatedSimplifier:
    """The standard normalizer: DefaultSimplifier repeated `passes` times."""
    return RepeatedSimplifier(DefaultSimplifier(ruleset), passes, stop_at_fixpoint)


def run_simplifier(simplifier: Simplifier, expr: Expr,
                   ctx: Optional[SimplifierContext] = None) -> Tuple[Expr, ErrorList]:
    """
    Run a simplifier and return the result with the errors it collected.

    Example:
        expr, errors = run_simplifier(default_simplifier(), E("2 + 3 * 4"))
        # expr => 14, errors => []
    """
    if ctx is None:
        ctx = SimplifierContext()
    result = simplifier.simplify_expr(expr, ctx)
    return result, ctx.errors
