"""
Parsing front-end for symcalc.

Text is turned into expressions in two stages:

1. The tokenizer splits the input into Tokens, each annotated with the
   Span of source text it came from.
2. The shunting-yard algorithm folds the token stream into an output
   value, calling back into a driver to build terminals, binary
   operators, prefix operators and function calls.

The expression driver builds Atoms for terminals and
Call(op.name, [left, right]) for binary operators:

    from symcalc.parsing import parse_expr

    parse_expr("2 + 3 * 4")      # => (+ 2 (* 3 4))
    parse_expr("2 ^ 3 ^ 2")      # => (^ 2 (^ 3 2))
    parse_expr("-x ^ 2")         # => (negate (^ x 2))
    parse_expr("f(x, 1)")        # => (f x 1)
    parse_expr("(1, 2)")         # => [1 2]

Operator precedence and associativity come from an OperatorTable:

    ^       right    200
    *       full     195
    /       left     190
    %       none     190
    +       full     180
    -       left     180   (prefix: negate, 197)
    ..      none     170   (also ..^  ^..  ^..^)

Any failure raises a ParseError naming the offending token and span;
no partial tree is ever returned.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import SymcalcError
from .expr import Call, Expr
from .number import NonFiniteError, Number

logger = logging.getLogger(__name__)


# ============================================================
# Source Locations and Tokens
# ============================================================

@dataclass(frozen=True)
class Span:
    """Half-open range [start, end) of character offsets in the source."""
    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


class TokenKind(Enum):
    SCALAR = "scalar"
    OPERATOR = "operator"
    COMMA = "comma"
    OPEN_PAREN = "open paren"
    CLOSE_PAREN = "close paren"


@dataclass(frozen=True)
class Token:
    """
    A token with its source span.

    value holds the compiled scalar (SCALAR), the Operator (OPERATOR) or
    the function name or None (OPEN_PAREN).
    """
    kind: TokenKind
    value: Any
    span: Span
    text: str = ""

    def describe(self) -> str:
        if self.text:
            return f"'{self.text}'"
        return self.kind.value


# ============================================================
# Errors
# ============================================================

class ParseError(SymcalcError):
    """Base class for parse errors; carries the offending token and span."""

    def __init__(self, message: str, token: Optional[Token] = None, span: Optional[Span] = None):
        self.message = message
        self.token = token
        self.span = span if span is not None else (token.span if token else None)
        if self.span is not None:
            message = f"{message} at {self.span.start}"
        super().__init__(message)


class TokenizerError(ParseError):
    """Input contains a character sequence that is not a token."""


class TrailingOperatorError(ParseError):
    """An infix or prefix operator has no right-hand operand."""


class MissingOperandError(ParseError):
    """An operator was applied with too few operands on the stack."""


class UnexpectedTokenError(ParseError):
    """A token appeared where the grammar does not allow it."""


class NonAssociativeError(ParseError):
    """A non-associative operator was chained at equal precedence."""


# ============================================================
# Operators
# ============================================================

class Associativity(Enum):
    LEFT = "left"
    RIGHT = "right"
    NONE = "none"
    # Mathematically associative: parsed as LEFT, safe to flatten later
    FULL = "full"

    def groups_left(self) -> bool:
        return self in (Associativity.LEFT, Associativity.FULL)


@dataclass(frozen=True)
class InfixProperties:
    associativity: Associativity
    precedence: int


@dataclass(frozen=True)
class PrefixProperties:
    function_name: str
    precedence: int


@dataclass(frozen=True)
class Fixity:
    """How an operator may appear: infix, prefix, or both."""
    infix: Optional[InfixProperties] = None
    prefix: Optional[PrefixProperties] = None


@dataclass(frozen=True)
class Operator:
    name: str
    fixity: Fixity

    @classmethod
    def infix(cls, name: str, associativity: Associativity, precedence: int) -> 'Operator':
        return cls(name, Fixity(infix=InfixProperties(associativity, precedence)))

    def with_prefix(self, function_name: str, precedence: int) -> 'Operator':
        return Operator(self.name, Fixity(self.fixity.infix, PrefixProperties(function_name, precedence)))

    def __str__(self) -> str:
        return self.name


class OperatorTable:
    """
    Operators known to the tokenizer, keyed by their source text.

    Example:
        table = OperatorTable.common_operators()
        table.get("^").fixity.infix.associativity   # => Associativity.RIGHT
    """

    def __init__(self, operators: Optional[List[Operator]] = None):
        self._operators: Dict[str, Operator] = {}
        for op in operators or []:
            self.insert(op)

    def insert(self, op: Operator) -> 'OperatorTable':
        self._operators[op.name] = op
        return self

    def get(self, name: str) -> Optional[Operator]:
        return self._operators.get(name)

    def names(self) -> List[str]:
        """Operator names, longest first (the order the tokenizer tries them)."""
        return sorted(self._operators, key=lambda n: (-len(n), n))

    def __contains__(self, name: str) -> bool:
        return name in self._operators

    def __len__(self) -> int:
        return len(self._operators)

    def __iter__(self):
        return iter(self._operators.values())

    @classmethod
    def common_operators(cls) -> 'OperatorTable':
        """The standard arithmetic and interval operators."""
        return cls([
            Operator.infix("^", Associativity.RIGHT, 200),
            Operator.infix("*", Associativity.FULL, 195),
            Operator.infix("/", Associativity.LEFT, 190),
            Operator.infix("%", Associativity.NONE, 190),
            Operator.infix("+", Associativity.FULL, 180),
            Operator.infix("-", Associativity.LEFT, 180).with_prefix("negate", 197),
            Operator.infix("..", Associativity.NONE, 170),
            Operator.infix("..^", Associativity.NONE, 170),
            Operator.infix("^..", Associativity.NONE, 170),
            Operator.infix("^..^", Associativity.NONE, 170),
        ])


# ============================================================
# Tokenizer
# ============================================================

_NUMBER_RE = re.compile(r"\d+\.\d+(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+|\d+")
_STRING_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_']*")
_ESCAPE_RE = re.compile(r"\\(.)")


class Tokenizer:
    """
    Splits source text into tokens.

    Numbers, quoted strings and identifiers become SCALAR tokens holding
    an Expr. An identifier directly followed by "(" becomes a single
    OPEN_PAREN token naming a function call.
    """

    def __init__(self, table: OperatorTable):
        self.table = table
        names = table.names()
        self._operator_re = re.compile("|".join(re.escape(n) for n in names)) if names else None

    def tokenize(self, text: str) -> List[Token]:
        tokens: List[Token] = []
        pos = 0
        while pos < len(text):
            c = text[pos]
            if c.isspace():
                pos += 1
                continue

            m = _NUMBER_RE.match(text, pos)
            if m:
                try:
                    number = Number.parse(m.group())
                except NonFiniteError:
                    raise TokenizerError(f"Number out of range '{m.group()}'",
                                         span=Span(pos, m.end())) from None
                tokens.append(Token(TokenKind.SCALAR, Expr.number(number),
                                    Span(pos, m.end()), m.group()))
                pos = m.end()
                continue

            m = _STRING_RE.match(text, pos)
            if m:
                value = _ESCAPE_RE.sub(r"\1", m.group(1))
                tokens.append(Token(TokenKind.SCALAR, Expr.string(value), Span(pos, m.end()), m.group()))
                pos = m.end()
                continue

            m = _IDENT_RE.match(text, pos)
            if m:
                name = m.group()
                if m.end() < len(text) and text[m.end()] == "(":
                    tokens.append(Token(TokenKind.OPEN_PAREN, name, Span(pos, m.end() + 1), name + "("))
                    pos = m.end() + 1
                else:
                    tokens.append(Token(TokenKind.SCALAR, Expr.var(name), Span(pos, m.end()), name))
                    pos = m.end()
                continue

            if self._operator_re is not None:
                m = self._operator_re.match(text, pos)
                if m:
                    op = self.table.get(m.group())
                    tokens.append(Token(TokenKind.OPERATOR, op, Span(pos, m.end()), m.group()))
                    pos = m.end()
                    continue

            if c == "(":
                tokens.append(Token(TokenKind.OPEN_PAREN, None, Span(pos, pos + 1), c))
            elif c == ")":
                tokens.append(Token(TokenKind.CLOSE_PAREN, None, Span(pos, pos + 1), c))
            elif c == ",":
                tokens.append(Token(TokenKind.COMMA, None, Span(pos, pos + 1), c))
            else:
                raise TokenizerError(f"Unexpected character '{c}'", span=Span(pos, pos + 1))
            pos += 1

        return tokens


# ============================================================
# Shunting-Yard Algorithm
# ============================================================

class ShuntingYardDriver:
    """
    Callbacks used by the shunting-yard algorithm to build its output.

    Subclass and override the compile_* methods. A function name of
    None in compile_function_call means a bare parenthesized list.
    """

    def compile_scalar(self, scalar: Any) -> Any:
        raise NotImplementedError

    def compile_bin_op(self, left: Any, operator: Operator, right: Any) -> Any:
        raise NotImplementedError

    def compile_prefix_op(self, operator: Operator, arg: Any) -> Any:
        raise NotImplementedError

    def compile_function_call(self, function_name: Optional[str], args: List[Any]) -> Any:
        raise NotImplementedError


class _Pending:
    """Entry on the operator stack: an operator or an open paren."""

    __slots__ = ('token', 'prefix', 'base', 'commas')

    def __init__(self, token: Token, prefix: bool = False, base: int = 0):
        self.token = token
        self.prefix = prefix
        self.base = base
        self.commas = 0

    @property
    def is_paren(self) -> bool:
        return self.token.kind == TokenKind.OPEN_PAREN

    @property
    def precedence(self) -> int:
        fixity = self.token.value.fixity
        return fixity.prefix.precedence if self.prefix else fixity.infix.precedence


def _reduce(driver: ShuntingYardDriver, output: List[Any], entry: _Pending, base: int) -> None:
    op = entry.token.value
    if entry.prefix:
        if len(output) - base < 1:
            raise MissingOperandError(f"Operator '{op.name}' is missing its operand", entry.token)
        arg = output.pop()
        output.append(driver.compile_prefix_op(op, arg))
    else:
        if len(output) - base < 2:
            raise MissingOperandError(f"Operator '{op.name}' is missing an operand", entry.token)
        right = output.pop()
        left = output.pop()
        output.append(driver.compile_bin_op(left, op, right))


def _current_base(stack: List[_Pending]) -> int:
    for entry in reversed(stack):
        if entry.is_paren:
            return entry.base
    return 0


def _reduce_to_paren(driver: ShuntingYardDriver, output: List[Any], stack: List[_Pending]) -> None:
    base = _current_base(stack)
    while stack and not stack[-1].is_paren:
        _reduce(driver, output, stack.pop(), base)


def _should_reduce(top: _Pending, token: Token) -> bool:
    incoming = token.value.fixity.infix
    if top.precedence > incoming.precedence:
        return True
    if top.precedence < incoming.precedence:
        return False
    if top.prefix:
        return incoming.associativity.groups_left()
    top_assoc = top.token.value.fixity.infix.associativity
    if Associativity.NONE in (top_assoc, incoming.associativity):
        raise NonAssociativeError(
            f"Operator '{token.value.name}' cannot be chained with '{top.token.value.name}'", token)
    return incoming.associativity.groups_left()


def shunting_yard(driver: ShuntingYardDriver, tokens: List[Token]) -> Any:
    """
    Fold a token stream into a single output value.

    Args:
        driver: Builds output values from scalars, operators and calls
        tokens: Token stream, typically from Tokenizer.tokenize

    Returns:
        The single value left on the output stack

    Raises:
        ParseError: On any malformed input (see the subclasses)
    """
    output: List[Any] = []
    stack: List[_Pending] = []
    expect_operand = True
    last_token: Optional[Token] = None

    for token in tokens:
        if token.kind == TokenKind.SCALAR:
            if not expect_operand:
                raise UnexpectedTokenError(f"Expected operator, got {token.describe()}", token)
            output.append(driver.compile_scalar(token.value))
            expect_operand = False

        elif token.kind == TokenKind.OPERATOR:
            op = token.value
            if expect_operand:
                if op.fixity.prefix is None:
                    raise MissingOperandError(f"Operator '{op.name}' is missing its left operand", token)
                stack.append(_Pending(token, prefix=True))
            else:
                if op.fixity.infix is None:
                    raise UnexpectedTokenError(f"Operator '{op.name}' cannot be used as an infix operator", token)
                base = _current_base(stack)
                while stack and not stack[-1].is_paren and _should_reduce(stack[-1], token):
                    _reduce(driver, output, stack.pop(), base)
                stack.append(_Pending(token))
                expect_operand = True

        elif token.kind == TokenKind.OPEN_PAREN:
            if not expect_operand:
                raise UnexpectedTokenError(f"Expected operator, got {token.describe()}", token)
            stack.append(_Pending(token, base=len(output)))

        elif token.kind == TokenKind.COMMA:
            if expect_operand:
                _raise_missing_operand(stack, token)
            _reduce_to_paren(driver, output, stack)
            if not stack:
                raise UnexpectedTokenError("Comma outside of parentheses", token)
            stack[-1].commas += 1
            expect_operand = True

        elif token.kind == TokenKind.CLOSE_PAREN:
            empty_call = (expect_operand and last_token is not None
                          and last_token.kind == TokenKind.OPEN_PAREN)
            if expect_operand and not empty_call:
                _raise_missing_operand(stack, token)
            _reduce_to_paren(driver, output, stack)
            if not stack:
                raise UnexpectedTokenError("Unbalanced closing parenthesis", token)
            paren = stack.pop()
            args = output[paren.base:]
            del output[paren.base:]
            name = paren.token.value
            if name is None and len(args) == 1 and paren.commas == 0:
                output.append(args[0])
            elif name is None and not args:
                raise UnexpectedTokenError("Empty parentheses", token)
            else:
                output.append(driver.compile_function_call(name, args))
            expect_operand = False

        last_token = token

    if expect_operand:
        if last_token is None:
            raise UnexpectedTokenError("Expected an expression", span=Span(0, 0))
        _raise_missing_operand(stack, last_token)

    while stack:
        entry = stack.pop()
        if entry.is_paren:
            raise UnexpectedTokenError("Unclosed parenthesis", entry.token)
        _reduce(driver, output, entry, 0)

    if len(output) != 1:
        raise MissingOperandError("Expected a single expression", last_token)
    return output[0]


def _raise_missing_operand(stack: List[_Pending], token: Token) -> None:
    if stack and not stack[-1].is_paren:
        pending = stack[-1].token
        raise TrailingOperatorError(f"Operator '{pending.value.name}' has no right operand", pending)
    raise UnexpectedTokenError(f"Expected an expression before {token.describe()}", token)


# ============================================================
# Expression Binding
# ============================================================

class ExprShuntingYardDriver(ShuntingYardDriver):
    """Driver that builds Expr trees."""

    def compile_scalar(self, scalar: Expr) -> Expr:
        return scalar

    def compile_bin_op(self, left: Expr, operator: Operator, right: Expr) -> Expr:
        return Call(operator.name, (left, right))

    def compile_prefix_op(self, operator: Operator, arg: Expr) -> Expr:
        return Call(operator.fixity.prefix.function_name, (arg,))

    def compile_function_call(self, function_name: Optional[str], args: List[Expr]) -> Expr:
        if function_name is None:
            return Expr.vector(args)
        return Call(function_name, tuple(args))


class ExprParser:
    """
    Parses infix text into expressions.

    Example:
        parser = ExprParser()
        parser.parse("x * (y + 1)")   # => (* x (+ y 1))
    """

    def __init__(self, table: Optional[OperatorTable] = None):
        self.table = table if table is not None else OperatorTable.common_operators()
        self.tokenizer = Tokenizer(self.table)

    def tokenize(self, text: str) -> List[Token]:
        return self.tokenizer.tokenize(text)

    def parse_tokens(self, tokens: List[Token]) -> Expr:
        return shunting_yard(ExprShuntingYardDriver(), tokens)

    def parse(self, text: str) -> Expr:
        tokens = self.tokenize(text)
        logger.debug("Tokenized %r into %d tokens", text, len(tokens))
        return self.parse_tokens(tokens)


_default_parser: Optional[ExprParser] = None


def parse_expr(text: str) -> Expr:
    """Parse text with the common operator table."""
    global _default_parser
    if _default_parser is None:
        _default_parser = ExprParser()
    return _default_parser.parse(text)
