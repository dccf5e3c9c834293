"""
Distributive rules.

A DistributiveRule names an outer function, an inner function and a
side. When the outer function is applied to a call of the inner one at
a position allowed by the side, the outer call is pushed inside:

    (* 2 (+ a b))     =>  (+ (* 2 a) (* 2 b))       rule (*, +, ANY)
    (/ (+ a b) x)     =>  (+ (/ a x) (/ b x))       rule (/, +, RIGHT)

Sides name where the operator sits relative to the sum, so RIGHT means
"(a + b) op x" (the inner call is argument 0) and LEFT means
"x op (a + b)" (the inner call is argument 1).

By default a rule only fires when every other argument is a number, so
that symbolic products are not expanded behind the user's back.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .errors import SymcalcError
from .expr import Call, Expr, format_expr

logger = logging.getLogger(__name__)


class Side(Enum):
    ANY = "any"
    LEFT = "left"
    RIGHT = "right"

    def target_indices(self, arity: int) -> List[int]:
        """Argument positions this side may distribute over."""
        if self == Side.ANY:
            return list(range(arity))
        if arity != 2:
            return []
        return [1] if self == Side.LEFT else [0]


# ============================================================
# Errors
# ============================================================

class ArgumentOutOfBounds:
    """The requested argument index does not exist."""

    def __init__(self, index: int):
        self.index = index

    def __eq__(self, other):
        return isinstance(other, ArgumentOutOfBounds) and self.index == other.index

    def __str__(self) -> str:
        return f"argument {self.index} is out of bounds"


class NotACompoundExpression:
    """The argument to distribute over is an atom, not a call."""

    def __init__(self, atom: Expr):
        self.atom = atom

    def __eq__(self, other):
        return isinstance(other, NotACompoundExpression) and self.atom == other.atom

    def __str__(self) -> str:
        return f"{format_expr(self.atom)} is not a compound expression"


class DistributivePropertyError(SymcalcError):
    """
    Distribution failed structurally.

    Attributes:
        detail: ArgumentOutOfBounds or NotACompoundExpression
        original_expr: The expression that could not be rewritten
        outer, inner, side: Filled in when raised on behalf of a rule
    """

    def __init__(self, detail, original_expr: Expr, outer: Optional[str] = None,
                 inner: Optional[str] = None, side: Optional[Side] = None):
        self.detail = detail
        self.original_expr = original_expr
        self.outer = outer
        self.inner = inner
        self.side = side
        message = f"Cannot distribute in {format_expr(original_expr)}: {detail}"
        if outer is not None:
            message += f" (rule {outer} over {inner}, side {side.value})"
        super().__init__(message)


class DistributiveRuleNotApplicable(SymcalcError):
    """A rule does not apply to an expression; carries the expression back."""

    def __init__(self, original_expr: Expr):
        self.original_expr = original_expr
        super().__init__(f"Rule not applicable to {format_expr(original_expr)}")

    def recover_payload(self) -> Expr:
        return self.original_expr


class _NotApplicable:
    """Singleton returned by DistributiveRuleset.try_apply when no rule fired."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NotApplicable"


# Singleton instance
NotApplicable = _NotApplicable()


# ============================================================
# Rules
# ============================================================

def distribute_over(expr: Expr, index: int) -> Expr:
    """
    Push the call `expr` inside its argument at `index`.

    f(..., g(a, b, ...), ...)  =>  g(f(..., a, ...), f(..., b, ...), ...)

    Raises:
        DistributivePropertyError: if `expr` is not a call, the index is
            out of range, or the argument at `index` is an atom
    """
    if not isinstance(expr, Call):
        raise DistributivePropertyError(NotACompoundExpression(expr), expr)
    if not 0 <= index < len(expr.args):
        raise DistributivePropertyError(ArgumentOutOfBounds(index), expr)
    target = expr.args[index]
    if not isinstance(target, Call):
        raise DistributivePropertyError(NotACompoundExpression(target), expr)

    def replace(arg: Expr) -> Call:
        args = list(expr.args)
        args[index] = arg
        return expr.with_args(args)

    return target.with_args(replace(arg) for arg in target.args)


class DistributiveArgRule:
    """
    Predicate over the arguments that are not being distributed over.

    Use the factories:
        DistributiveArgRule.numbers_only()   # default
        DistributiveArgRule.always()
    """

    def __init__(self, name: str, predicate: Callable[[Expr], bool]):
        self.name = name
        self.predicate = predicate

    @classmethod
    def numbers_only(cls) -> 'DistributiveArgRule':
        return cls("numbers_only", Expr.is_number)

    @classmethod
    def always(cls) -> 'DistributiveArgRule':
        return cls("always", lambda e: True)

    def accepts(self, args: Sequence[Expr], target_index: int) -> bool:
        return all(self.predicate(a) for i, a in enumerate(args) if i != target_index)

    def __repr__(self) -> str:
        return f"DistributiveArgRule.{self.name}()"


class DistributiveRule:
    """
    Distribute `outer` over `inner` on the given side.

    Example:
        rule = DistributiveRule("*", "+", Side.ANY)
        rule.apply(E("2 * (a + b)"))    # => (+ (* 2 a) (* 2 b))
    """

    def __init__(self, outer: str, inner: str, side: Side = Side.ANY,
                 arg_rule: Optional[DistributiveArgRule] = None):
        self.outer = outer
        self.inner = inner
        self.side = side
        self.arg_rule = arg_rule or DistributiveArgRule.numbers_only()

    def _applicable_index(self, expr: Expr) -> Optional[int]:
        if not expr.is_call(self.outer):
            return None
        for index in self.side.target_indices(len(expr.args)):
            if expr.args[index].is_call(self.inner) and self.arg_rule.accepts(expr.args, index):
                return index
        return None

    def can_apply(self, expr: Expr) -> bool:
        return self._applicable_index(expr) is not None

    def apply(self, expr: Expr) -> Expr:
        """
        Apply the rule at the first eligible argument.

        Raises:
            DistributiveRuleNotApplicable: carrying `expr` unchanged
        """
        index = self._applicable_index(expr)
        if index is None:
            raise DistributiveRuleNotApplicable(expr)
        try:
            return distribute_over(expr, index)
        except DistributivePropertyError as e:
            raise DistributivePropertyError(e.detail, expr, self.outer, self.inner, self.side) from e

    def apply_first_match(self, expr: Expr) -> Expr:
        """Like apply, but returns `expr` unchanged instead of raising."""
        try:
            return self.apply(expr)
        except DistributiveRuleNotApplicable as e:
            return e.recover_payload()

    def __repr__(self) -> str:
        return f"DistributiveRule({self.outer!r}, {self.inner!r}, {self.side.name})"


class DistributiveRuleset:
    """
    Rules indexed by their outer function name.

    Example:
        rules = DistributiveRuleset.from_common_rules()
        rules.apply(E("(a + b) / 2"))       # => (+ (/ a 2) (/ b 2))
        rules.try_apply(E("x + y"))         # => NotApplicable
    """

    def __init__(self, rules: Sequence[DistributiveRule] = ()):
        self._rules: Dict[str, List[DistributiveRule]] = {}
        for rule in rules:
            self.add(rule)

    def add(self, rule: DistributiveRule) -> 'DistributiveRuleset':
        self._rules.setdefault(rule.outer, []).append(rule)
        return self

    @classmethod
    def from_common_rules(cls) -> 'DistributiveRuleset':
        return cls([
            DistributiveRule("*", "+", Side.ANY),
            DistributiveRule("*", "-", Side.ANY),
            DistributiveRule("^", "*", Side.RIGHT),
            DistributiveRule("^", "/", Side.RIGHT),
            DistributiveRule("/", "+", Side.RIGHT),
            DistributiveRule("/", "-", Side.RIGHT),
        ])

    def rules_for(self, name: str) -> List[DistributiveRule]:
        return list(self._rules.get(name, ()))

    def try_apply(self, expr: Expr):
        """Apply the first matching rule, or return NotApplicable."""
        if not isinstance(expr, Call):
            return NotApplicable
        for rule in self._rules.get(expr.name, ()):
            try:
                result = rule.apply(expr)
            except DistributiveRuleNotApplicable:
                continue
            logger.debug("Applied %r to %s", rule, format_expr(expr))
            return result
        return NotApplicable

    def apply(self, expr: Expr) -> Expr:
        """Apply the first matching rule, or return `expr` unchanged."""
        result = self.try_apply(expr)
        return expr if result is NotApplicable else result

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._rules.values())

    def __iter__(self):
        for rules in self._rules.values():
            yield from rules

    def __repr__(self) -> str:
        return f"DistributiveRuleset({len(self)} rules)"
