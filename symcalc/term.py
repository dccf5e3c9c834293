"""
Term algebra: products as fractions of factors, sums as signed terms.

A Term is a product written as a numerator and a denominator, each an
ordered tuple of factor expressions:

    Term.parse(E("a * b / c"))       # => Term([a, b], [c])
    Term.parse(E("x"))               # => Term([x], [])

A sum splits into SignedTerms:

    split_term(E("a + b - c"))       # => [+a, +b, -c]
    recombine_terms(split_term(e))   # simplifies to the same normal form as e

sort_factors() puts a product into canonical order, merging equal bases
by adding their exponents:

    sort_factors(E("x^2 * y * x * y * z * x^2 * t^1"))
    # => (* t (^ x 5) (^ y 2) z)
"""

from enum import IntEnum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .expr import Call, Expr
from .number import Number
from .ordering import expr_sort_key


def product_expr(factors: Sequence[Expr]) -> Expr:
    """Render a factor list: 1 when empty, the factor itself when single."""
    if not factors:
        return Expr.one()
    if len(factors) == 1:
        return factors[0]
    return Call("*", tuple(factors))


# ============================================================
# Terms
# ============================================================

class Term:
    """
    A product of factors over a product of factors.

    Terms are immutable; every operation returns a new Term.
    """

    __slots__ = ('numerator', 'denominator')

    def __init__(self, numerator: Iterable[Expr] = (), denominator: Iterable[Expr] = ()):
        self.numerator = tuple(numerator)
        self.denominator = tuple(denominator)

    @classmethod
    def one(cls) -> 'Term':
        return cls()

    @classmethod
    def singleton(cls, expr: Expr) -> 'Term':
        return cls((expr,))

    @classmethod
    def parse(cls, expr: Expr) -> 'Term':
        """
        Read an expression as a product.

        Products flatten recursively, a binary quotient splits into
        numerator and denominator, anything else is a single factor.
        """
        if expr.is_call("*"):
            result = cls.one()
            for arg in expr.args:
                result = result * cls.parse(arg)
            return result
        if expr.is_call("/") and len(expr.args) == 2:
            return cls.parse(expr.args[0]) / cls.parse(expr.args[1])
        return cls.singleton(expr)

    @classmethod
    def from_parts(cls, numer: Expr, denom: Expr) -> 'Term':
        return cls.parse(numer) / cls.parse(denom)

    def __mul__(self, other: 'Term') -> 'Term':
        return Term(self.numerator + other.numerator, self.denominator + other.denominator)

    def __truediv__(self, other: 'Term') -> 'Term':
        return Term(self.numerator + other.denominator, self.denominator + other.numerator)

    def recip(self) -> 'Term':
        return Term(self.denominator, self.numerator)

    def factors(self) -> Tuple[Expr, ...]:
        return self.numerator + self.denominator

    def filter_factors(self, pred: Callable[[Expr], bool]) -> 'Term':
        """Keep only the factors (on either side) satisfying pred."""
        return Term([f for f in self.numerator if pred(f)],
                    [f for f in self.denominator if pred(f)])

    def partition_factors(self, pred: Callable[[Expr], bool]) -> Tuple['Term', 'Term']:
        """Split into (matching, non-matching), preserving factor order."""
        return self.filter_factors(pred), self.filter_factors(lambda f: not pred(f))

    def remove_ones(self) -> 'Term':
        return self.filter_factors(lambda f: not f.is_one())

    def is_one(self) -> bool:
        return not self.numerator and not self.denominator

    def to_expr(self) -> Expr:
        numer = product_expr(self.numerator)
        if not self.denominator:
            return numer
        return Call("/", (numer, product_expr(self.denominator)))

    def __eq__(self, other):
        if isinstance(other, Term):
            return self.numerator == other.numerator and self.denominator == other.denominator
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.numerator, self.denominator))

    def __repr__(self) -> str:
        numer = ", ".join(str(f) for f in self.numerator)
        denom = ", ".join(str(f) for f in self.denominator)
        return f"Term([{numer}], [{denom}])"


# ============================================================
# Signed Terms
# ============================================================

class Sign(IntEnum):
    NEGATIVE = 0
    POSITIVE = 1

    def __mul__(self, other: 'Sign') -> 'Sign':
        return Sign.POSITIVE if self == other else Sign.NEGATIVE

    def __neg__(self) -> 'Sign':
        return Sign.POSITIVE if self == Sign.NEGATIVE else Sign.NEGATIVE

    def __str__(self) -> str:
        return "+" if self == Sign.POSITIVE else "-"


class SignedTerm:
    """A Term with a sign, one summand of a sum."""

    __slots__ = ('sign', 'term')

    def __init__(self, sign: Sign, term: Term):
        self.sign = sign
        self.term = term

    @classmethod
    def positive(cls, term: Term) -> 'SignedTerm':
        return cls(Sign.POSITIVE, term)

    @classmethod
    def negative(cls, term: Term) -> 'SignedTerm':
        return cls(Sign.NEGATIVE, term)

    def is_negative(self) -> bool:
        return self.sign == Sign.NEGATIVE

    def __mul__(self, other: 'SignedTerm') -> 'SignedTerm':
        return SignedTerm(self.sign * other.sign, self.term * other.term)

    def __truediv__(self, other: 'SignedTerm') -> 'SignedTerm':
        return SignedTerm(self.sign * other.sign, self.term / other.term)

    def recip(self) -> 'SignedTerm':
        return SignedTerm(self.sign, self.term.recip())

    def __neg__(self) -> 'SignedTerm':
        return SignedTerm(-self.sign, self.term)

    def to_expr(self) -> Expr:
        """The term as an expression, wrapped in negate() when negative."""
        expr = self.term.to_expr()
        if self.is_negative():
            return Call("negate", (expr,))
        return expr

    def __eq__(self, other):
        if isinstance(other, SignedTerm):
            return self.sign == other.sign and self.term == other.term
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.sign, self.term))

    def __repr__(self) -> str:
        return f"SignedTerm({self.sign.name}, {self.term!r})"


def split_term(expr: Expr) -> List[SignedTerm]:
    """
    Split a sum into its signed summands.

    Examples:
        split_term(E("a + b"))          # => [+a, +b]
        split_term(E("a - b"))          # => [+a, -b]
        split_term(E.op("+", "a", E.op("-", "b")))   # => [+a, -b]
        split_term(E("negate(a + b)"))  # => [-a, -b]
    """
    if expr.is_call("+"):
        terms: List[SignedTerm] = []
        for arg in expr.args:
            terms.extend(split_term(arg))
        return terms
    if expr.is_call("-") and len(expr.args) == 2:
        left, right = expr.args
        return split_term(left) + [-t for t in split_term(right)]
    if (expr.is_call("negate") or expr.is_call("-")) and len(expr.args) == 1:
        return [-t for t in split_term(expr.args[0])]
    return [SignedTerm.positive(Term.parse(expr))]


def recombine_terms(terms: Sequence[SignedTerm]) -> Expr:
    """
    Rebuild a sum from signed terms.

    Positive terms after the first extend a single "+" call; negative
    ones are subtracted with a binary "-".
    """
    if not terms:
        return Expr.zero()
    result = terms[0].to_expr()
    for t in terms[1:]:
        expr = t.term.to_expr()
        if t.is_negative():
            result = Call("-", (result, expr))
        elif result.is_call("+"):
            result = result.with_args(result.args + (expr,))
        else:
            result = Call("+", (result, expr))
    return result


# ============================================================
# Factors
# ============================================================

def _multiply_exponents(a: Expr, b: Expr) -> Expr:
    if a.is_number() and b.is_number():
        return Expr.number(a.value * b.value)
    return Call("*", (a, b))


def _add_exponents(exponents: Sequence[Expr]) -> Expr:
    if all(e.is_number() for e in exponents):
        total = Number(0)
        for e in exponents:
            total = total + e.value
        return Expr.number(total)
    return Call("+", tuple(exponents))


def _subtract_exponents(a: Expr, b: Expr) -> Expr:
    if a.is_number() and b.is_number():
        return Expr.number(a.value - b.value)
    return Call("-", (a, b))


class Factor:
    """
    A base raised to an optional exponent.

    An exponent of None means an implicit power of one, so that
    Factor.parse(x).to_expr() gives back x rather than x^1.
    """

    __slots__ = ('base', 'exponent')

    def __init__(self, base: Expr, exponent: Optional[Expr] = None):
        self.base = base
        self.exponent = exponent

    @classmethod
    def parse(cls, expr: Expr) -> 'Factor':
        """Split x^n into (x, n); nested powers multiply their exponents."""
        if expr.is_call("^") and len(expr.args) == 2:
            base, exponent = expr.args
            return cls.parse(base).pow(exponent)
        return cls(expr)

    def exponent_or_one(self) -> Expr:
        return Expr.one() if self.exponent is None else self.exponent

    def pow(self, exponent: Expr) -> 'Factor':
        if self.exponent is None:
            return Factor(self.base, exponent)
        return Factor(self.base, _multiply_exponents(self.exponent, exponent))

    def recip(self) -> 'Factor':
        if self.exponent is None:
            return Factor(self.base, Expr.number(-1))
        if self.exponent.is_number():
            return Factor(self.base, Expr.number(-self.exponent.value))
        if self.exponent.is_call("negate") and len(self.exponent.args) == 1:
            return Factor(self.base, self.exponent.args[0])
        return Factor(self.base, Call("negate", (self.exponent,)))

    def is_obviously_negative(self) -> bool:
        """Whether the exponent is a negative number or a negate() call."""
        e = self.exponent
        if e is None:
            return False
        if e.is_number():
            return e.value < 0
        return e.is_call("negate") and len(e.args) == 1

    def simplify_trivial_powers(self) -> 'Factor':
        if self.exponent is None:
            return self
        if self.exponent.is_zero():
            return Factor(Expr.one())
        if self.exponent.is_one():
            return Factor(self.base)
        return self

    def to_expr(self) -> Expr:
        if self.exponent is None:
            return self.base
        return Call("^", (self.base, self.exponent))

    def __eq__(self, other):
        if isinstance(other, Factor):
            return self.base == other.base and self.exponent == other.exponent
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.base, self.exponent))

    def __repr__(self) -> str:
        return f"Factor({self.to_expr()})"


# ============================================================
# Partitioned Terms
# ============================================================

class PartitionedTerm:
    """
    A term split into the factors satisfying some predicate (literals)
    and the rest (others).
    """

    __slots__ = ('literals', 'others')

    def __init__(self, literals: Term, others: Term):
        self.literals = literals
        self.others = others

    def to_expr(self) -> Expr:
        """
        Recombine as literals * others, with the literal product grouped
        into a single leading factor.
        """
        literals = self.literals.remove_ones()
        if literals.is_one():
            return self.others.to_expr()
        if self.others.is_one():
            return literals.to_expr()
        if not self.others.denominator:
            return Call("*", (literals.to_expr(),) + self.others.numerator)
        return Call("*", (literals.to_expr(), self.others.to_expr()))

    def __repr__(self) -> str:
        return f"PartitionedTerm({self.literals!r}, {self.others!r})"


def partition_term(term: Term, pred: Callable[[Expr], bool]) -> PartitionedTerm:
    literals, others = term.partition_factors(pred)
    return PartitionedTerm(literals, others)


# ============================================================
# Factor Sorting
# ============================================================

def _group_factors(exprs: Sequence[Expr]) -> List[Factor]:
    """Merge factors with equal bases, adding their exponents."""
    groups: Dict[Expr, List[Factor]] = {}
    for expr in exprs:
        factor = Factor.parse(expr)
        groups.setdefault(factor.base, []).append(factor)

    merged = []
    for base, factors in groups.items():
        if len(factors) == 1:
            merged.append(factors[0])
        else:
            merged.append(Factor(base, _add_exponents([f.exponent_or_one() for f in factors])))
    return merged


def _sorted_factors(factors: Iterable[Factor]) -> List[Factor]:
    return sorted(factors, key=lambda f: expr_sort_key(f.base))


def _move_common_terms_to_numer(numer: List[Factor], denom: List[Factor]) -> Tuple[List[Factor], List[Factor]]:
    denom_by_base = {f.base: f for f in denom}
    new_numer = []
    for f in numer:
        other = denom_by_base.pop(f.base, None)
        if other is None:
            new_numer.append(f)
        else:
            exponent = _subtract_exponents(f.exponent_or_one(), other.exponent_or_one())
            new_numer.append(Factor(f.base, exponent))
    new_denom = [f for f in denom if f.base in denom_by_base]
    return new_numer, new_denom


def _flip_negative_exponents(numer: List[Factor], denom: List[Factor]) -> Tuple[List[Factor], List[Factor]]:
    numer = numer + [f.recip() for f in denom if f.is_obviously_negative()]
    denom = [f for f in denom if not f.is_obviously_negative()]
    if denom:
        denom = denom + [f.recip() for f in numer if f.is_obviously_negative()]
        numer = [f for f in numer if not f.is_obviously_negative()]
    return numer, denom


def sort_factors(expr: Expr) -> Expr:
    """
    Put a product into canonical factor order.

    Equal bases are merged, bases present on both sides of a quotient
    move to the numerator, obviously negative exponents move across the
    fraction bar, and trivial powers (x^0, x^1) are simplified. Applying
    sort_factors twice gives the same result as applying it once.
    """
    term = Term.parse(expr)
    numer = _sorted_factors(_group_factors(term.numerator))
    denom = _sorted_factors(_group_factors(term.denominator))
    numer, denom = _move_common_terms_to_numer(numer, denom)
    numer, denom = _flip_negative_exponents(numer, denom)
    numer = _sorted_factors(f.simplify_trivial_powers() for f in numer)
    denom = _sorted_factors(f.simplify_trivial_powers() for f in denom)
    result = Term([f.to_expr() for f in numer], [f.to_expr() for f in denom])
    return result.remove_ones().to_expr()
