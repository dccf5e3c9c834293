"""
Expression model for symcalc.

An expression is either an Atom (a terminal value) or a Call (a function
name applied to an ordered tuple of argument expressions):

    from symcalc import E, Expr

    Expr.call("+", [Expr.number(2), Expr.var("x")])
    E.op("+", 2, "x")                    # same thing
    E("2 + x")                           # parsed from infix text

Atoms come in a fixed set of kinds: numbers, strings, variables and
vectors. Expressions are immutable and compare structurally, so they
can be used as dict keys and deduplicated freely. Transformations build
new trees instead of mutating old ones.

Prisms are fallible two-way projections between Expr and a narrower
type. A prism's narrow_type raises TryFromExprError, which carries the
rejected expression back to the caller:

    expr_to_string().narrow_type(Expr.string("AB"))   # => "AB"
    expr_to_string().narrow_type(Expr.number(1))      # raises TryFromExprError
"""

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Iterable, List, Tuple, Union

from .errors import SymcalcError
from .number import Number


# ============================================================
# Core Types
# ============================================================

class AtomKind(Enum):
    """The closed set of atom payload kinds."""
    NUMBER = "number"
    STRING = "string"
    VAR = "var"
    VECTOR = "vector"


class Expr:
    """
    Base class of the expression tree.

    Use the static constructors rather than instantiating Atom and Call
    directly; they validate and normalize their inputs.
    """

    __slots__ = ()

    @staticmethod
    def call(name: str, args: Iterable['Expr'] = ()) -> 'Call':
        """Build a Call from a function name and its arguments."""
        return Call(name, tuple(Expr.from_value(a) for a in args))

    @staticmethod
    def number(value: Union[int, Fraction, float, Number]) -> 'Atom':
        return Atom(AtomKind.NUMBER, Number(value))

    @staticmethod
    def string(text: str) -> 'Atom':
        return Atom(AtomKind.STRING, str(text))

    @staticmethod
    def var(name: str) -> 'Atom':
        if not name:
            raise ValueError("Variable name must be non-empty")
        return Atom(AtomKind.VAR, name)

    @staticmethod
    def vector(items: Iterable[Any]) -> 'Atom':
        return Atom(AtomKind.VECTOR, tuple(Expr.from_value(i) for i in items))

    @staticmethod
    def zero() -> 'Atom':
        return Expr.number(0)

    @staticmethod
    def one() -> 'Atom':
        return Expr.number(1)

    @staticmethod
    def from_value(value: Any) -> 'Expr':
        """
        Convert a plain Python value into an expression.

        Numbers become number atoms, strings become variables (as in the
        s-expression notation), lists and tuples become vectors, and
        expressions are returned unchanged.
        """
        if isinstance(value, Expr):
            return value
        if isinstance(value, (Number, int, Fraction, float)) and not isinstance(value, bool):
            return Expr.number(value)
        if isinstance(value, str):
            return Expr.var(value)
        if isinstance(value, (list, tuple)):
            return Expr.vector(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to an expression")

    # Shape predicates, overridden by Atom

    def is_atom(self) -> bool:
        return False

    def is_call(self, name: str = None) -> bool:
        return False

    def is_number(self) -> bool:
        return False

    def is_string(self) -> bool:
        return False

    def is_var(self) -> bool:
        return False

    def is_vector(self) -> bool:
        return False

    def is_zero(self) -> bool:
        return self.is_number() and self.value.is_zero()

    def is_one(self) -> bool:
        return self.is_number() and self.value.is_one()

    def __str__(self) -> str:
        return format_expr(self)


@dataclass(frozen=True)
class Atom(Expr):
    """A terminal expression: a number, string, variable or vector."""
    kind: AtomKind
    value: Any

    def is_atom(self) -> bool:
        return True

    def is_number(self) -> bool:
        return self.kind == AtomKind.NUMBER

    def is_string(self) -> bool:
        return self.kind == AtomKind.STRING

    def is_var(self) -> bool:
        return self.kind == AtomKind.VAR

    def is_vector(self) -> bool:
        return self.kind == AtomKind.VECTOR

    def __repr__(self) -> str:
        return f"Atom({self.kind.value}, {format_expr(self)})"


@dataclass(frozen=True)
class Call(Expr):
    """A compound expression: a function name and its arguments."""
    name: str
    args: Tuple[Expr, ...]

    def is_call(self, name: str = None) -> bool:
        return name is None or self.name == name

    def with_args(self, args: Iterable[Expr]) -> 'Call':
        """Same function name, new arguments."""
        return Call(self.name, tuple(args))

    def __repr__(self) -> str:
        return f"Call({format_expr(self)})"


# ============================================================
# Projections
# ============================================================

class TryFromExprError(SymcalcError):
    """
    Raised when an expression cannot be narrowed to a target type.

    The rejected expression is kept so the caller never loses it:

        try:
            call = CallExpr.try_from(expr)
        except TryFromExprError as e:
            original = e.recover_payload()
    """

    def __init__(self, type_name: str, original_expr: Expr):
        self.type_name = type_name
        self.original_expr = original_expr
        super().__init__(f"Expected {type_name}, got {format_expr(original_expr)}")

    def recover_payload(self) -> Expr:
        return self.original_expr


class CallExpr:
    """
    View of an expression known to be a Call.

    Examples:
        call = CallExpr.try_from(E("f(1, 2)"))
        call.name    # => "f"
        len(call)    # => 2
    """

    __slots__ = ('name', 'args')

    def __init__(self, name: str, args: Iterable[Expr]):
        self.name = name
        self.args = tuple(args)

    @classmethod
    def try_from(cls, expr: Expr) -> 'CallExpr':
        if isinstance(expr, Call):
            return cls(expr.name, expr.args)
        raise TryFromExprError("CallExpr", expr)

    def to_expr(self) -> Call:
        return Call(self.name, self.args)

    def __len__(self) -> int:
        return len(self.args)

    def __eq__(self, other):
        if isinstance(other, CallExpr):
            return self.name == other.name and self.args == other.args
        return False

    def __hash__(self) -> int:
        return hash((self.name, self.args))

    def __repr__(self) -> str:
        return f"CallExpr({format_expr(self.to_expr())})"


class Prism:
    """
    Fallible, invertible projection from Expr to a narrower type.

    Args:
        type_name: Name used in error messages
        narrow: Returns the narrowed value, or raises TryFromExprError
        widen: Converts a narrowed value back into an Expr
    """

    __slots__ = ('type_name', '_narrow', '_widen')

    def __init__(self, type_name: str, narrow: Callable[[Expr], Any], widen: Callable[[Any], Expr]):
        self.type_name = type_name
        self._narrow = narrow
        self._widen = widen

    def narrow_type(self, expr: Expr) -> Any:
        return self._narrow(expr)

    def widen_type(self, value: Any) -> Expr:
        return self._widen(value)

    def matches(self, expr: Expr) -> bool:
        try:
            self._narrow(expr)
        except TryFromExprError:
            return False
        return True

    def __repr__(self) -> str:
        return f"Prism({self.type_name})"


def _atom_prism(type_name: str, kind: AtomKind, widen: Callable[[Any], Expr]) -> Prism:
    def narrow(expr: Expr) -> Any:
        if isinstance(expr, Atom) and expr.kind == kind:
            return expr.value
        raise TryFromExprError(type_name, expr)
    return Prism(type_name, narrow, widen)


def expr_to_number() -> Prism:
    """Prism onto Number atoms."""
    return _atom_prism("Number", AtomKind.NUMBER, Expr.number)


def expr_to_integer() -> Prism:
    """Prism onto exact integral Number atoms, narrowed to int."""
    def narrow(expr: Expr) -> int:
        if expr.is_number() and expr.value.is_exact() and expr.value.is_integral():
            return int(expr.value)
        raise TryFromExprError("Integer", expr)
    return Prism("Integer", narrow, Expr.number)


def expr_to_string() -> Prism:
    """Prism onto string atoms."""
    return _atom_prism("String", AtomKind.STRING, Expr.string)


def expr_to_var() -> Prism:
    """Prism onto variable atoms, narrowed to the variable name."""
    return _atom_prism("Var", AtomKind.VAR, Expr.var)


def expr_to_call() -> Prism:
    """Prism onto Call expressions, narrowed to CallExpr."""
    return Prism("CallExpr", CallExpr.try_from, CallExpr.to_expr)


def expr_to_any() -> Prism:
    """Prism that accepts every expression unchanged."""
    return Prism("Expr", lambda e: e, lambda e: e)


# ============================================================
# Formatting
# ============================================================

def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def format_expr(expr: Expr) -> str:
    """
    Format an expression as an s-expression string.

    Examples:
        Call + [x, Call * [2, y]]  -> "(+ x (* 2 y))"
        string atom AB             -> '"AB"'
        vector [1, 2]              -> "[1 2]"
    """
    if isinstance(expr, Call):
        if not expr.args:
            return f"({expr.name})"
        return "(" + expr.name + " " + " ".join(format_expr(a) for a in expr.args) + ")"
    if expr.kind == AtomKind.STRING:
        return f'"{_escape(expr.value)}"'
    if expr.kind == AtomKind.VECTOR:
        return "[" + " ".join(format_expr(a) for a in expr.value) + "]"
    return str(expr.value)


# ============================================================
# Expression Builder
# ============================================================

class _ExprBuilder:
    """
    Expression builder for symcalc.

    Examples:
        from symcalc import E

        # Parse infix text
        expr = E("x + 2 * y")

        # Build programmatically
        expr = E.op("+", "x", E.op("*", 2, "y"))

        # Variables, strings and vectors
        x, y = E.vars("x", "y")
        E.string("hello")
        E.vec(1, 2, 3)
    """

    def __call__(self, text: str) -> Expr:
        """Parse infix text with the common operator table."""
        from .parsing import parse_expr
        return parse_expr(text)

    def op(self, name: str, *args) -> Call:
        """Build a Call; plain Python values are converted with Expr.from_value."""
        return Expr.call(name, args)

    def var(self, name: str) -> Atom:
        return Expr.var(name)

    def vars(self, *names: str) -> Tuple[Atom, ...]:
        return tuple(Expr.var(n) for n in names)

    def const(self, value) -> Atom:
        return Expr.number(value)

    def string(self, text: str) -> Atom:
        return Expr.string(text)

    def vec(self, *items) -> Atom:
        return Expr.vector(items)

    def __repr__(self) -> str:
        return "E (expression builder)"


# Singleton instance
E = _ExprBuilder()


def function_names(expr: Expr) -> List[str]:
    """Every function name used in an expression, in first-seen order."""
    seen: List[str] = []

    def walk(e: Expr) -> None:
        if isinstance(e, Call):
            if e.name not in seen:
                seen.append(e.name)
            for arg in e.args:
                walk(arg)
        elif e.kind == AtomKind.VECTOR:
            for item in e.value:
                walk(item)

    walk(expr)
    return seen
