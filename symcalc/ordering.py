"""
Canonical total order over expressions.

Used by the factor sorter so that structurally equal products always
serialize to the same factor sequence. The order is:

    numbers < strings < variables < vectors < calls

Numbers compare by value, strings and variables lexicographically, and
vectors and calls element by element (calls compare their function
names first). A shorter sequence that is a prefix of a longer one sorts
first.
"""

from functools import cmp_to_key
from typing import Sequence

from .expr import AtomKind, Call, Expr

_KIND_RANK = {
    AtomKind.NUMBER: 0,
    AtomKind.STRING: 1,
    AtomKind.VAR: 2,
    AtomKind.VECTOR: 3,
}
_CALL_RANK = 4


def _rank(expr: Expr) -> int:
    if isinstance(expr, Call):
        return _CALL_RANK
    return _KIND_RANK[expr.kind]


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def cmp_seq(left: Sequence[Expr], right: Sequence[Expr]) -> int:
    """Lexicographic comparison of two expression sequences."""
    for a, b in zip(left, right):
        result = cmp_expr(a, b)
        if result != 0:
            return result
    return _cmp(len(left), len(right))


def cmp_expr(a: Expr, b: Expr) -> int:
    """
    Compare two expressions.

    Returns:
        -1 if a sorts before b, 0 if they are equal, 1 otherwise

    Examples:
        cmp_expr(E.const(2), E.var("x"))           # => -1
        cmp_expr(E("f(x)"), E("f(x, y)"))          # => -1
        cmp_expr(E("g(1)"), E("f(1, 2)"))          # => 1
    """
    rank_a, rank_b = _rank(a), _rank(b)
    if rank_a != rank_b:
        return _cmp(rank_a, rank_b)
    if isinstance(a, Call):
        if a.name != b.name:
            return _cmp(a.name, b.name)
        return cmp_seq(a.args, b.args)
    if a.kind == AtomKind.VECTOR:
        return cmp_seq(a.value, b.value)
    return _cmp(a.value, b.value)


# Key function for sorted() and list.sort()
expr_sort_key = cmp_to_key(cmp_expr)


def sort_exprs(exprs: Sequence[Expr]) -> list:
    """Return the expressions sorted in canonical order."""
    return sorted(exprs, key=expr_sort_key)
