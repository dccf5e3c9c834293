"""
Function registry for symcalc.

A Function is a named set of cases. Each case declares an arity and,
optionally, a type guard (a Prism) per argument; its body runs only
when every guard accepts. Cases are tried in declaration order and the
first one that matches wins. When no case matches, the call is left
exactly as it was: unevaluated calls are ordinary data, not errors.

Building a function:

    from symcalc.function import FunctionBuilder, arity_one, arity_two
    from symcalc.expr import Expr, expr_to_number, expr_to_string

    lowercase = (FunctionBuilder("lowercase")
        .add_case(arity_one().of_type(expr_to_string()).and_then(
            lambda s, ctx: Expr.string(s.lower())))
        .build())

A case body receives the narrowed arguments followed by the simplifier
context. It returns an Expr (the rewrite), or NO_MATCH to fall through
to the next case. A body that raises a FunctionError (for example
DomainError("Division by zero")) leaves the call unevaluated and records
a SimplifierError in ctx.errors.

Flags:
    PERMITS_FLATTENING  f(x, f(y, z)) may be rewritten as f(x, y, z)
    PERMITS_REORDERING  arguments may be evaluated out of order
    IS_INVOLUTION       f(f(x)) may be rewritten as x

Functions that permit flattening also get partial evaluation: when the
variadic case rejects some arguments, the arguments it accepts are
evaluated on their own and the rest are left symbolic:

    +(1, 2, x, 3)   =>  +(3, x, 3)    without reordering
    +(1, 2, x, 3)   =>  +(6, x)       with reordering
"""

import logging
from enum import Flag
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .errors import SymcalcError
from .expr import Call, Expr, Prism, TryFromExprError

logger = logging.getLogger(__name__)


# ============================================================
# Errors
# ============================================================

DIVISION_BY_ZERO = "Division by zero"
EXPECTED_REAL = "Expected real number"
ZERO_TO_ZERO_POWER = "Indeterminate form 0^0"


class FunctionError(SymcalcError):
    """Base class for errors raised by function case bodies."""


class ArityError(FunctionError):
    """A function was called with the wrong number of arguments."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected} argument(s) but got {actual}.")


class DomainError(FunctionError):
    """An argument is outside the domain of the function."""

    def __init__(self, explanation: str):
        self.explanation = explanation
        super().__init__(f"Domain error: {explanation}")


class SimplifierError(SymcalcError):
    """
    A non-fatal error met while simplifying a call to a function.

    Attributes:
        function: Name of the function being simplified
        error: The underlying error
    """

    def __init__(self, function: str, error: Exception):
        self.function = function
        self.error = error
        super().__init__(f"{function}: {error}")

    @classmethod
    def division_by_zero(cls, function: str) -> 'SimplifierError':
        return cls(function, DomainError(DIVISION_BY_ZERO))

    @classmethod
    def expected_real(cls, function: str) -> 'SimplifierError':
        return cls(function, DomainError(EXPECTED_REAL))

    @classmethod
    def zero_to_zero_power(cls, function: str) -> 'SimplifierError':
        return cls(function, DomainError(ZERO_TO_ZERO_POWER))


# ============================================================
# Case Results
# ============================================================

class _NoMatch:
    """
    Singleton returned by a case body to fall through to the next case.

    NO_MATCH is falsy:

        result = case.try_call(args, ctx)
        if result is NO_MATCH:
            ...
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MATCH"


# Singleton instance
NO_MATCH = _NoMatch()


class FunctionFlags(Flag):
    NONE = 0
    PERMITS_FLATTENING = 1
    PERMITS_REORDERING = 2
    IS_INVOLUTION = 4


# ============================================================
# Cases and Matchers
# ============================================================

class FunctionCase:
    """
    A single case of a function.

    Args:
        arity: Exact number of arguments, or the minimum when variadic
        variadic: Whether more than `arity` arguments are accepted
        guards: One Prism (or None for "any") per position; for variadic
            cases a single Prism applied to every argument
        body: Called with the narrowed arguments and the context. Exact
            cases receive one positional argument per parameter; variadic
            cases receive a single list.
    """

    __slots__ = ('arity', 'variadic', 'guards', 'body')

    def __init__(self, arity: int, variadic: bool, guards: Sequence[Optional[Prism]], body: Callable):
        self.arity = arity
        self.variadic = variadic
        self.guards = tuple(guards)
        self.body = body

    def accepts_arity(self, count: int) -> bool:
        if self.variadic:
            return count >= self.arity
        return count == self.arity

    def _guard_for(self, index: int) -> Optional[Prism]:
        if self.variadic:
            return self.guards[0] if self.guards else None
        return self.guards[index]

    def narrow(self, args: Sequence[Expr]) -> Optional[List[Any]]:
        """Narrow every argument, or return None if any guard rejects."""
        narrowed = []
        for i, arg in enumerate(args):
            guard = self._guard_for(i)
            if guard is None:
                narrowed.append(arg)
                continue
            try:
                narrowed.append(guard.narrow_type(arg))
            except TryFromExprError:
                return None
        return narrowed

    def accepts_arg(self, arg: Expr) -> bool:
        """Whether a variadic case's guard accepts a single argument."""
        guard = self._guard_for(0)
        return guard is None or guard.matches(arg)

    def invoke(self, narrowed: List[Any], ctx) -> Any:
        if self.variadic:
            return self.body(narrowed, ctx)
        return self.body(*narrowed, ctx)

    def try_call(self, args: Sequence[Expr], ctx) -> Any:
        """Run the body if arity and guards match, else return NO_MATCH."""
        if not self.accepts_arity(len(args)):
            return NO_MATCH
        narrowed = self.narrow(args)
        if narrowed is None:
            return NO_MATCH
        return self.invoke(narrowed, ctx)

    def __repr__(self) -> str:
        arity = f">={self.arity}" if self.variadic else str(self.arity)
        return f"FunctionCase(arity={arity})"


class CaseBuilder:
    """
    Fluent matcher that accumulates an arity and type guards.

    Examples:
        arity_two().both_of_type(expr_to_number()).and_then(body)
        arity_two().of_types(expr_to_string(), expr_to_integer()).and_then(body)
        any_arity().of_type(expr_to_number()).and_then(body)
    """

    def __init__(self, arity: int, variadic: bool = False, guards: Optional[Sequence[Optional[Prism]]] = None):
        self.arity = arity
        self.variadic = variadic
        if guards is None:
            guards = [] if variadic else [None] * arity
        self.guards = list(guards)

    def of_type(self, prism: Prism) -> 'CaseBuilder':
        """Guard every argument with the same prism."""
        if self.variadic:
            return CaseBuilder(self.arity, True, [prism])
        return CaseBuilder(self.arity, False, [prism] * self.arity)

    def both_of_type(self, prism: Prism) -> 'CaseBuilder':
        if self.variadic or self.arity != 2:
            raise ValueError("both_of_type requires a case of arity two")
        return self.of_type(prism)

    def all_of_type(self, prism: Prism) -> 'CaseBuilder':
        return self.of_type(prism)

    def of_types(self, *prisms: Optional[Prism]) -> 'CaseBuilder':
        """Guard each position with its own prism (None accepts anything)."""
        if self.variadic or len(prisms) != self.arity:
            raise ValueError(f"of_types expects exactly {self.arity} prisms")
        return CaseBuilder(self.arity, False, prisms)

    def and_then(self, body: Callable) -> FunctionCase:
        return FunctionCase(self.arity, self.variadic, self.guards, body)


def exact_arity(n: int) -> CaseBuilder:
    return CaseBuilder(n)


def arity_one() -> CaseBuilder:
    return CaseBuilder(1)


def arity_two() -> CaseBuilder:
    return CaseBuilder(2)


def arity_three() -> CaseBuilder:
    return CaseBuilder(3)


def arity_four() -> CaseBuilder:
    return CaseBuilder(4)


def any_arity() -> CaseBuilder:
    return CaseBuilder(0, variadic=True)


def at_least(n: int) -> CaseBuilder:
    return CaseBuilder(n, variadic=True)


# ============================================================
# Functions
# ============================================================

class Function:
    """
    A named function: ordered cases plus rewrite flags.

    Use FunctionBuilder to construct one.
    """

    def __init__(self, name: str, cases: Sequence[FunctionCase],
                 flags: FunctionFlags = FunctionFlags.NONE,
                 identity_predicate: Optional[Callable[[Expr], bool]] = None):
        self.name = name
        self.cases = tuple(cases)
        self.flags = flags
        self.identity_predicate = identity_predicate

    def permits_flattening(self) -> bool:
        return bool(self.flags & FunctionFlags.PERMITS_FLATTENING)

    def permits_reordering(self) -> bool:
        return bool(self.flags & FunctionFlags.PERMITS_REORDERING)

    def is_involution(self) -> bool:
        return bool(self.flags & FunctionFlags.IS_INVOLUTION)

    def has_identity(self) -> bool:
        return self.identity_predicate is not None

    def is_identity(self, expr: Expr) -> bool:
        return self.identity_predicate is not None and self.identity_predicate(expr)

    def call(self, args: Sequence[Expr], ctx) -> Expr:
        """
        Evaluate this function on the given arguments.

        Returns the rewritten expression, or the unevaluated call when no
        case matches or a case body fails. Failures are pushed onto
        ctx.errors rather than raised.
        """
        args = tuple(args)
        for case in self.cases:
            try:
                result = case.try_call(args, ctx)
            except FunctionError as e:
                logger.debug("Case of %s failed on %d args: %s", self.name, len(args), e)
                ctx.errors.push(SimplifierError(self.name, e))
                return Call(self.name, args)
            if result is not NO_MATCH:
                return result

        if self.permits_flattening():
            return self._partially_evaluate(args, ctx)
        return Call(self.name, args)

    def _partially_evaluate(self, args: tuple, ctx) -> Expr:
        for case in self.cases:
            if not case.variadic or not case.guards:
                continue
            try:
                if self.permits_reordering():
                    new_args = self._evaluate_gathered(case, args, ctx)
                else:
                    new_args = self._evaluate_runs(case, args, ctx)
            except FunctionError as e:
                ctx.errors.push(SimplifierError(self.name, e))
                return Call(self.name, args)
            if new_args is not None:
                if len(new_args) == 1:
                    return new_args[0]
                return Call(self.name, tuple(new_args))
        return Call(self.name, args)

    def _min_group(self, case: FunctionCase) -> int:
        return max(2, case.arity)

    def _evaluate_gathered(self, case: FunctionCase, args: tuple, ctx) -> Optional[List[Expr]]:
        matching = [a for a in args if case.accepts_arg(a)]
        others = [a for a in args if not case.accepts_arg(a)]
        if len(matching) < self._min_group(case):
            return None
        result = case.try_call(matching, ctx)
        if result is NO_MATCH:
            return None
        return [result] + others

    def _evaluate_runs(self, case: FunctionCase, args: tuple, ctx) -> Optional[List[Expr]]:
        new_args: List[Expr] = []
        run: List[Expr] = []
        changed = False

        def flush():
            nonlocal changed
            if len(run) >= self._min_group(case):
                result = case.try_call(run, ctx)
                if result is not NO_MATCH:
                    new_args.append(result)
                    changed = True
                    return
            new_args.extend(run)

        for arg in args:
            if case.accepts_arg(arg):
                run.append(arg)
            else:
                flush()
                run = []
                new_args.append(arg)
        flush()
        return new_args if changed else None

    def __repr__(self) -> str:
        return f"Function({self.name!r}, {len(self.cases)} cases, {self.flags})"


class FunctionBuilder:
    """
    Fluent builder for Function.

    Example:
        plus = (FunctionBuilder("+")
            .permit_flattening()
            .permit_reordering()
            .set_identity(Expr.is_zero)
            .add_case(arity_one().and_then(lambda x, ctx: x))
            .build())
    """

    def __init__(self, name: str):
        self.name = name
        self._cases: List[FunctionCase] = []
        self._flags = FunctionFlags.NONE
        self._identity: Optional[Callable[[Expr], bool]] = None

    @classmethod
    def new(cls, name: str) -> 'FunctionBuilder':
        return cls(name)

    def add_case(self, case: FunctionCase) -> 'FunctionBuilder':
        self._cases.append(case)
        return self

    def set_identity(self, predicate: Callable[[Expr], bool]) -> 'FunctionBuilder':
        self._identity = predicate
        return self

    def permit_flattening(self) -> 'FunctionBuilder':
        self._flags |= FunctionFlags.PERMITS_FLATTENING
        return self

    def permit_reordering(self) -> 'FunctionBuilder':
        self._flags |= FunctionFlags.PERMITS_REORDERING
        return self

    def mark_as_involution(self) -> 'FunctionBuilder':
        self._flags |= FunctionFlags.IS_INVOLUTION
        return self

    def build(self) -> Function:
        return Function(self.name, self._cases, self._flags, self._identity)


# ============================================================
# Function Table
# ============================================================

class FunctionTable:
    """
    Registry of functions keyed by name.

    Example:
        table = FunctionTable()
        table.insert(lowercase)
        table.get("lowercase")    # => Function('lowercase', ...)
        table.get("missing")      # => None
        "lowercase" in table      # => True
    """

    def __init__(self, functions: Optional[Sequence[Function]] = None):
        self._functions: Dict[str, Function] = {}
        for f in functions or []:
            self.insert(f)

    def insert(self, function: Function) -> 'FunctionTable':
        """Register a function, replacing any previous one with the same name."""
        self._functions[function.name] = function
        return self

    def get(self, name: str) -> Optional[Function]:
        return self._functions.get(name)

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self) -> Iterator[Function]:
        return iter(self._functions.values())

    def __repr__(self) -> str:
        return f"FunctionTable({len(self._functions)} functions)"
