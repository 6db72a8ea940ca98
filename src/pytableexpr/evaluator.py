"""Evaluate bound expressions against rows."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pytableexpr._errors import ERR_MSG_INVALID_PREDICATE, InvalidPredicateError
from pytableexpr._values import compare
from pytableexpr.binder import bind
from pytableexpr.expressions import BoundPredicate, Expression, Operation
from pytableexpr.schema import Schema


class StructLike(Protocol):
    """Anything that returns a value for a field ID; ``None`` means null."""

    def get(self, field_id: int) -> Any: ...


class NamedRow:
    """Adapts nested name-keyed mappings to field-ID lookup.

    ``NamedRow(schema, {"a": 1, "point": {"x": 2.0}})`` answers ``get`` for
    every field reachable through structs.
    """

    def __init__(self, schema: Schema, data: Mapping[str, Any]) -> None:
        self._schema = schema
        self._data = data

    def get(self, field_id: int) -> Any:
        accessor = self._schema.accessor_for_field(field_id)
        if accessor is None:
            return None
        return accessor.get(self._data)

    def __repr__(self) -> str:
        return f"NamedRow({self._data!r})"


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _eval_predicate(pred: BoundPredicate, row: StructLike) -> bool:
    op = pred.op
    value = pred.term.eval(row)
    field_type = pred.term.field.field_type

    if op == Operation.IS_NULL:
        return value is None
    if op == Operation.NOT_NULL:
        return value is not None
    if op == Operation.IS_NAN:
        return _is_nan(value)
    if op == Operation.NOT_NAN:
        return not _is_nan(value)
    if op == Operation.STARTS_WITH:
        return value is not None and value.startswith(pred.literal.value)
    if op == Operation.NOT_STARTS_WITH:
        return value is None or not value.startswith(pred.literal.value)
    if op == Operation.IN:
        return any(compare(field_type, value, lit.value) == 0 for lit in pred.literals)
    if op == Operation.NOT_IN:
        return all(compare(field_type, value, lit.value) != 0 for lit in pred.literals)

    cmp = compare(field_type, value, pred.literal.value)
    if op == Operation.LT:
        return cmp < 0
    if op == Operation.LT_EQ:
        return cmp <= 0
    if op == Operation.GT:
        return cmp > 0
    if op == Operation.GT_EQ:
        return cmp >= 0
    if op == Operation.EQ:
        return cmp == 0
    if op == Operation.NOT_EQ:
        return cmp != 0
    raise InvalidPredicateError(ERR_MSG_INVALID_PREDICATE, f"cannot evaluate operation {op}")


def evaluate(expr: Expression, row: StructLike) -> bool:
    """Evaluate a bound expression against one row.

    ``and``/``or`` evaluate left to right and stop as soon as the result is
    known, so the right side may reference values the row does not have.

    Raises:
        InvalidPredicateError: If the tree still holds an unbound predicate.
        MissingValueError: If a required field read by the tree has no value.
    """
    op = expr.op
    if op == Operation.TRUE:
        return True
    if op == Operation.FALSE:
        return False
    if op == Operation.AND:
        return evaluate(expr.left, row) and evaluate(expr.right, row)
    if op == Operation.OR:
        return evaluate(expr.left, row) or evaluate(expr.right, row)
    if op == Operation.NOT:
        return not evaluate(expr.child, row)
    if not isinstance(expr, BoundPredicate):
        raise InvalidPredicateError(
            ERR_MSG_INVALID_PREDICATE, f"cannot evaluate unbound predicate: {expr}"
        )
    return _eval_predicate(expr, row)


class Evaluator:
    """A bound expression packaged as a row predicate."""

    def __init__(self, bound: Expression) -> None:
        self.bound = bound

    def eval(self, row: StructLike) -> bool:
        return evaluate(self.bound, row)

    def __call__(self, row: StructLike) -> bool:
        return evaluate(self.bound, row)

    def __repr__(self) -> str:
        return f"Evaluator({self.bound})"


def expression_evaluator(
    schema: Schema, unbound: Expression, case_sensitive: bool = False
) -> Callable[[StructLike], bool]:
    """Bind ``unbound`` once and return a callable that evaluates rows."""
    return Evaluator(bind(schema, unbound, case_sensitive=case_sensitive))
