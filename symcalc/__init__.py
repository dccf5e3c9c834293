"""
SYMCALC - a symbolic calculator core

Parses infix expressions, simplifies them with a configurable pipeline of
term-rewriting passes, and evaluates the built-in function library over an
exact numeric tower. Also carries physical units and numeric intervals.

Quick Start:
    from symcalc import Calculator

    calc = Calculator()
    calc("2 + 3 * 4")               # => 14
    calc("x * (1 + 2)")             # => (* 3 x)
    calc("(1 .. 2) + 3")            # => (.. 4 5)
    calc.convert(100, "degC", "degF")   # => Tagged(212 degF)

Syntax:
    + - * / % ^               Arithmetic (^ is right-associative)
    -x                        Prefix negation
    f(x, y)                   Function call
    (1, 2, 3)                 Vector
    a .. b   a ..^ b          Closed and half-open intervals
    a ^.. b  a ^..^ b
    "text"                    String

Building a custom pipeline:
    from symcalc import (FunctionEvaluator, FunctionFlattener,
                         RepeatedSimplifier, run_simplifier, parse_expr)

    pipeline = RepeatedSimplifier(FunctionFlattener() >> FunctionEvaluator(), 3)
    expr, errors = run_simplifier(pipeline, parse_expr("1 + (2 + x)"))
"""

__version__ = "0.1.0"

# Errors
from .errors import SymcalcError, ErrorList

# Numbers and expressions
from .number import Number, NumberRepr, NonFiniteError
from .expr import (
    AtomKind,
    Expr,
    Atom,
    Call,
    CallExpr,
    Prism,
    TryFromExprError,
    E,
    format_expr,
    function_names,
    expr_to_number,
    expr_to_integer,
    expr_to_string,
    expr_to_var,
    expr_to_call,
    expr_to_any,
)
from .ordering import cmp_expr, sort_exprs

# Parsing
from .parsing import (
    Associativity,
    Operator,
    OperatorTable,
    ParseError,
    ExprParser,
    parse_expr,
)

# Functions
from .function import (
    FunctionError,
    ArityError,
    DomainError,
    SimplifierError,
    NO_MATCH,
    FunctionFlags,
    FunctionCase,
    Function,
    FunctionBuilder,
    FunctionTable,
    exact_arity,
    arity_one,
    arity_two,
    arity_three,
    arity_four,
    any_arity,
    at_least,
)
from .library import default_function_table

# Algebra
from .term import Term, Sign, SignedTerm, Factor, split_term, recombine_terms, sort_factors
from .distributive import (
    Side,
    DistributiveRule,
    DistributiveRuleset,
    DistributiveRuleNotApplicable,
)

# Simplifiers
from .simplifier import (
    SimplifierContext,
    Simplifier,
    IdentitySimplifier,
    ChainedSimplifier,
    RepeatedSimplifier,
    FunctionEvaluator,
    FunctionFlattener,
    IdentityRemover,
    InvolutionSimplifier,
    DistributiveRuleSimplifier,
    TermPartialSplitter,
    UnitTermSimplifier,
    FactorSorter,
    IntervalNormalizer,
    DefaultSimplifier,
    default_simplifier,
    run_simplifier,
)

# Units and intervals
from .units import (
    UnitError,
    UnknownUnitError,
    UnitParseError,
    DimensionMismatchError,
    TryConvertError,
    BaseDimension,
    Dimension,
    Unit,
    CompositeUnit,
    UnitTable,
    Tagged,
    tagged_from_expr,
    tagged_to_expr,
    simplify_compatible_units,
)
from .interval import BoundType, IntervalType, Bounded, Interval, IntervalOrScalar

# Facade
from .engine import Calculator, NotANumberError

# Public API
__all__ = [
    # Version
    "__version__",
    # Errors
    "SymcalcError",
    "ErrorList",
    # Numbers and expressions
    "Number",
    "NumberRepr",
    "NonFiniteError",
    "AtomKind",
    "Expr",
    "Atom",
    "Call",
    "CallExpr",
    "Prism",
    "TryFromExprError",
    "E",
    "format_expr",
    "function_names",
    "expr_to_number",
    "expr_to_integer",
    "expr_to_string",
    "expr_to_var",
    "expr_to_call",
    "expr_to_any",
    "cmp_expr",
    "sort_exprs",
    # Parsing
    "Associativity",
    "Operator",
    "OperatorTable",
    "ParseError",
    "ExprParser",
    "parse_expr",
    # Functions
    "FunctionError",
    "ArityError",
    "DomainError",
    "SimplifierError",
    "NO_MATCH",
    "FunctionFlags",
    "FunctionCase",
    "Function",
    "FunctionBuilder",
    "FunctionTable",
    "exact_arity",
    "arity_one",
    "arity_two",
    "arity_three",
    "arity_four",
    "any_arity",
    "at_least",
    "default_function_table",
    # Algebra
    "Term",
    "Sign",
    "SignedTerm",
    "Factor",
    "split_term",
    "recombine_terms",
    "sort_factors",
    "Side",
    "DistributiveRule",
    "DistributiveRuleset",
    "DistributiveRuleNotApplicable",
    # Simplifiers
    "SimplifierContext",
    "Simplifier",
    "IdentitySimplifier",
    "ChainedSimplifier",
    "RepeatedSimplifier",
    "FunctionEvaluator",
    "FunctionFlattener",
    "IdentityRemover",
    "InvolutionSimplifier",
    "DistributiveRuleSimplifier",
    "TermPartialSplitter",
    "UnitTermSimplifier",
    "FactorSorter",
    "IntervalNormalizer",
    "DefaultSimplifier",
    "default_simplifier",
    "run_simplifier",
    # Units
    "UnitError",
    "UnknownUnitError",
    "UnitParseError",
    "DimensionMismatchError",
    "TryConvertError",
    "BaseDimension",
    "Dimension",
    "Unit",
    "CompositeUnit",
    "UnitTable",
    "Tagged",
    "tagged_from_expr",
    "tagged_to_expr",
    "simplify_compatible_units",
    # Intervals
    "BoundType",
    "IntervalType",
    "Bounded",
    "Interval",
    "IntervalOrScalar",
    # Facade
    "Calculator",
    "NotANumberError",
]
