"""Resolve unbound expressions against a schema."""

from __future__ import annotations

import logging
from typing import Any

from pytableexpr._errors import (
    ERR_MSG_INVALID_PREDICATE,
    ERR_MSG_UNKNOWN_COLUMN,
    InvalidLiteralError,
    InvalidPredicateError,
    InvalidReferenceError,
)
from pytableexpr._values import ABOVE_MAX, BELOW_MIN, TypedValue, coerce_literal
from pytableexpr.expressions import (
    LITERAL_OPERATIONS,
    SET_OPERATIONS,
    STRING_OPERATIONS,
    AlwaysFalse,
    AlwaysTrue,
    BoundPredicate,
    BoundReference,
    Expression,
    Operation,
    UnboundPredicate,
    and_,
    or_,
)
from pytableexpr.schema import Schema
from pytableexpr.types import FLOATING_TYPE_IDS, NestedField, TypeID

logger = logging.getLogger(__name__)

# Outcome of a comparison whose literal lies above the largest value of the column type
_ABOVE_MAX_OUTCOME: dict[Operation, bool] = {
    Operation.LT: True,
    Operation.LT_EQ: True,
    Operation.NOT_EQ: True,
    Operation.GT: False,
    Operation.GT_EQ: False,
    Operation.EQ: False,
}

# Outcome of a comparison whose literal lies below the smallest value of the column type
_BELOW_MIN_OUTCOME: dict[Operation, bool] = {
    Operation.GT: True,
    Operation.GT_EQ: True,
    Operation.NOT_EQ: True,
    Operation.LT: False,
    Operation.LT_EQ: False,
    Operation.EQ: False,
}


def _constant(value: bool) -> Expression:
    return AlwaysTrue() if value else AlwaysFalse()


def bind(schema: Schema, expr: Expression, case_sensitive: bool = False) -> Expression:
    """Bind every predicate in ``expr`` to a field of ``schema``.

    Returns a new tree; ``expr`` is left untouched. ``Not`` nodes are
    removed by pushing the negation into the predicates, and predicates
    whose outcome follows from the schema alone fold to constants.

    Args:
        schema: The schema to resolve column names against.
        expr: An unbound expression.
        case_sensitive: Whether column names must match exactly.

    Returns:
        The bound expression.

    Raises:
        InvalidReferenceError: If a column is missing or not addressable in a row.
        InvalidPredicateError: If a literal cannot be converted to its column's
            type, the operation does not apply to the column, or a predicate is
            already bound.
    """
    op = expr.op
    if op in (Operation.TRUE, Operation.FALSE):
        return expr
    if op == Operation.AND:
        return and_(bind(schema, expr.left, case_sensitive), bind(schema, expr.right, case_sensitive))
    if op == Operation.OR:
        return or_(bind(schema, expr.left, case_sensitive), bind(schema, expr.right, case_sensitive))
    if op == Operation.NOT:
        return bind(schema, expr.child.negate(), case_sensitive)
    if isinstance(expr, BoundPredicate):
        raise InvalidPredicateError(
            ERR_MSG_INVALID_PREDICATE, f"predicate is already bound: {expr}"
        )
    if isinstance(expr, UnboundPredicate):
        return _bind_predicate(schema, expr, case_sensitive)
    raise InvalidPredicateError(ERR_MSG_INVALID_PREDICATE, f"cannot bind expression: {expr!r}")


def _resolve(schema: Schema, name: str, case_sensitive: bool) -> NestedField:
    found = schema.find_field(name, case_sensitive=case_sensitive)
    if found is None:
        raise InvalidReferenceError(
            ERR_MSG_UNKNOWN_COLUMN,
            f"cannot find field '{name}' in schema (case_sensitive={case_sensitive})",
        )
    if schema.accessor_for_field(found.field_id) is None:
        raise InvalidReferenceError(
            ERR_MSG_UNKNOWN_COLUMN,
            f"field '{name}' is nested in a list or map and cannot be read from a row",
        )
    return found


def _coerce(pred: UnboundPredicate, value: Any, bound_field: NestedField) -> Any:
    try:
        return coerce_literal(value, bound_field.field_type)
    except InvalidLiteralError as e:
        raise InvalidPredicateError(
            ERR_MSG_INVALID_PREDICATE,
            f"invalid literal for {pred.op} on '{bound_field.name}': {e.internal()}",
            wrapped=e,
        ) from e


def _bind_predicate(schema: Schema, pred: UnboundPredicate, case_sensitive: bool) -> Expression:
    bound_field = _resolve(schema, pred.term.name, case_sensitive)
    ref = BoundReference(bound_field, schema.accessor_for_field(bound_field.field_id).required)
    op = pred.op
    field_type = bound_field.field_type

    if op in (Operation.IS_NULL, Operation.NOT_NULL):
        if ref.required:
            return _constant(op == Operation.NOT_NULL)
        return _bound(BoundPredicate(op, ref))

    if op in (Operation.IS_NAN, Operation.NOT_NAN):
        if field_type.type_id not in FLOATING_TYPE_IDS:
            return _constant(op == Operation.NOT_NAN)
        return _bound(BoundPredicate(op, ref))

    if field_type.is_nested:
        raise InvalidPredicateError(
            ERR_MSG_INVALID_PREDICATE,
            f"{op} does not apply to {field_type.type_id} field '{bound_field.name}'",
        )
    if op in STRING_OPERATIONS and field_type.type_id != TypeID.STRING:
        raise InvalidPredicateError(
            ERR_MSG_INVALID_PREDICATE,
            f"{op} requires a string field, '{bound_field.name}' is {field_type}",
        )

    if op in LITERAL_OPERATIONS:
        value = _coerce(pred, pred.literal, bound_field)
        if value is ABOVE_MAX:
            return _constant(_ABOVE_MAX_OUTCOME[op])
        if value is BELOW_MIN:
            return _constant(_BELOW_MIN_OUTCOME[op])
        return _bound(BoundPredicate(op, ref, (TypedValue(field_type, value),)))

    if op in SET_OPERATIONS:
        values: dict[Any, None] = {}
        for lit in pred.literals:
            value = _coerce(pred, lit, bound_field)
            # Out-of-range values can never match
            if value is not ABOVE_MAX and value is not BELOW_MIN:
                values.setdefault(value)
        literals = tuple(TypedValue(field_type, value) for value in values)
        if not literals:
            return _constant(op == Operation.NOT_IN)
        if len(literals) == 1:
            single_op = Operation.EQ if op == Operation.IN else Operation.NOT_EQ
            return _bound(BoundPredicate(single_op, ref, literals))
        return _bound(BoundPredicate(op, ref, literals))

    raise InvalidPredicateError(ERR_MSG_INVALID_PREDICATE, f"cannot bind operation {op}")


def _bound(pred: BoundPredicate) -> BoundPredicate:
    logger.debug("bound predicate %s", pred)
    return pred
