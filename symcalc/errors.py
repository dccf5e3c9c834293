"""
Common error types for symcalc.

Every error raised by the library derives from SymcalcError, so a host
can catch one type at its boundary. Errors met while simplifying are not
raised at all: they are collected in an ErrorList next to the
best-effort result.
"""

from typing import Iterator, List


class SymcalcError(Exception):
    """Base class for all symcalc errors."""


class ErrorList:
    """
    Ordered accumulator for non-fatal errors.

    ErrorList is falsy when empty, so callers can write:

        expr, errors = calc.simplify(expr, with_errors=True)
        if errors:
            for message in errors.messages():
                print(message)
    """

    __slots__ = ('_errors',)

    def __init__(self, errors=None):
        self._errors: List[Exception] = list(errors) if errors else []

    def push(self, error: Exception) -> None:
        """Append a single error."""
        self._errors.append(error)

    def extend(self, errors) -> None:
        """Append every error from an iterable."""
        self._errors.extend(errors)

    def merge(self, errors) -> None:
        """Append the errors whose message is not already recorded."""
        seen = set(self.messages())
        self._errors.extend(e for e in errors if str(e) not in seen)

    def messages(self) -> List[str]:
        """Human-readable message for every error, in order."""
        return [str(e) for e in self._errors]

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[Exception]:
        return iter(self._errors)

    def __getitem__(self, index: int) -> Exception:
        return self._errors[index]

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __repr__(self) -> str:
        return f"ErrorList({self.messages()})"
