"""pytableexpr - Field-ID table schemas and bindable boolean filter expressions."""

from __future__ import annotations

try:
    from pytableexpr._version import __version__
except ModuleNotFoundError:  # editable install without VCS metadata
    __version__ = "0.0.0.dev0"

from celpy.celparser import CELParseError, CELParser

from pytableexpr._constants import DEFAULT_MAX_RECURSION_DEPTH
from pytableexpr._errors import (
    ERR_MSG_FILTER_PARSE_FAILED,
    InvalidLiteralError,
    InvalidPredicateError,
    InvalidReferenceError,
    InvalidSchemaError,
    MaxDepthExceededError,
    MissingValueError,
    ParseError,
    TableExprError,
    UnsupportedExpressionError,
)
from pytableexpr._filter import FilterBuilder
from pytableexpr._values import TypedValue
from pytableexpr.binder import bind
from pytableexpr.cache import SchemaCache
from pytableexpr.evaluator import Evaluator, NamedRow, StructLike, evaluate, expression_evaluator
from pytableexpr.expressions import (
    AlwaysFalse,
    AlwaysTrue,
    And,
    BoundPredicate,
    BoundReference,
    Expression,
    Not,
    Operation,
    Or,
    Reference,
    UnboundPredicate,
    always_false,
    always_true,
    and_,
    equal,
    greater_than,
    greater_than_or_equal,
    in_,
    is_nan,
    is_null,
    less_than,
    less_than_or_equal,
    not_,
    not_equal,
    not_in,
    not_nan,
    not_null,
    not_starts_with,
    or_,
    predicate,
    rewrite_not,
    starts_with,
)
from pytableexpr.schema import Accessor, Schema
from pytableexpr.schema_parser import from_dict, from_json, to_dict, to_json
from pytableexpr.types import (
    DecimalType,
    FixedType,
    ListType,
    MapType,
    NestedField,
    PrimitiveType,
    StructType,
    Type,
    TypeID,
)

__all__ = [
    "parse_filter",
    "parse_and_bind",
    "bind",
    "evaluate",
    "expression_evaluator",
    "from_json",
    "from_dict",
    "to_json",
    "to_dict",
    "Schema",
    "SchemaCache",
    "Accessor",
    "Evaluator",
    "NamedRow",
    "StructLike",
    "TypedValue",
    "Type",
    "TypeID",
    "PrimitiveType",
    "DecimalType",
    "FixedType",
    "NestedField",
    "StructType",
    "ListType",
    "MapType",
    "Expression",
    "Operation",
    "AlwaysTrue",
    "AlwaysFalse",
    "And",
    "Or",
    "Not",
    "Reference",
    "BoundReference",
    "UnboundPredicate",
    "BoundPredicate",
    "always_true",
    "always_false",
    "and_",
    "or_",
    "not_",
    "is_null",
    "not_null",
    "is_nan",
    "not_nan",
    "equal",
    "not_equal",
    "less_than",
    "less_than_or_equal",
    "greater_than",
    "greater_than_or_equal",
    "starts_with",
    "not_starts_with",
    "in_",
    "not_in",
    "predicate",
    "rewrite_not",
    "TableExprError",
    "InvalidSchemaError",
    "ParseError",
    "InvalidReferenceError",
    "InvalidPredicateError",
    "MissingValueError",
    "InvalidLiteralError",
    "UnsupportedExpressionError",
    "MaxDepthExceededError",
]

_parser = CELParser()


def parse_filter(cel_expr: str, *, max_depth: int | None = None) -> Expression:
    """Parse a CEL filter string into an unbound expression.

    Args:
        cel_expr: The CEL expression, e.g. ``'a == 1 && b.startsWith("x")'``.
        max_depth: Maximum parse tree depth. Defaults to 100.

    Returns:
        The unbound Expression.

    Raises:
        ParseError: If the text is not valid CEL.
        UnsupportedExpressionError: If the expression has no predicate equivalent.
        MaxDepthExceededError: If the parse tree is deeper than ``max_depth``.
    """
    try:
        tree = _parser.parse(cel_expr)
    except CELParseError as e:
        raise ParseError(ERR_MSG_FILTER_PARSE_FAILED, f"invalid CEL {cel_expr!r}: {e}", wrapped=e) from e

    builder = FilterBuilder(max_depth if max_depth is not None else DEFAULT_MAX_RECURSION_DEPTH)
    return builder.build(tree)


def parse_and_bind(
    schema: Schema,
    cel_expr: str,
    *,
    case_sensitive: bool = False,
    max_depth: int | None = None,
) -> Expression:
    """Parse a CEL filter string and bind it to ``schema``.

    Raises:
        ParseError: If the text is not valid CEL.
        UnsupportedExpressionError: If the expression has no predicate equivalent.
        InvalidReferenceError: If a column is not in the schema.
        InvalidPredicateError: If a literal does not fit its column.
    """
    return bind(schema, parse_filter(cel_expr, max_depth=max_depth), case_sensitive=case_sensitive)
