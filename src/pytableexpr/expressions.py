"""Boolean expression algebra over table columns.

Expressions are immutable trees. Every node carries an :class:`Operation`
in ``op`` and all dispatch goes through it. Negation is pushed to the
leaves as it is built: ``not_`` flips a predicate's operation and applies
De Morgan to ``and``/``or``, so a normalized tree never holds a ``Not``
above a compound node.

Unbound predicates name their column; :func:`pytableexpr.binder.bind`
resolves them against a schema into bound predicates that the evaluator
can run against rows.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from pytableexpr._errors import (
    ERR_MSG_INVALID_PREDICATE,
    ERR_MSG_MISSING_VALUE,
    InvalidPredicateError,
    MissingValueError,
)
from pytableexpr._values import TypedValue
from pytableexpr.types import NestedField


class Operation(enum.StrEnum):
    """Discriminator for every expression node."""

    TRUE = "true"
    FALSE = "false"
    NOT = "not"
    AND = "and"
    OR = "or"
    IS_NULL = "is-null"
    NOT_NULL = "not-null"
    IS_NAN = "is-nan"
    NOT_NAN = "not-nan"
    LT = "lt"
    LT_EQ = "lt-eq"
    GT = "gt"
    GT_EQ = "gt-eq"
    EQ = "eq"
    NOT_EQ = "not-eq"
    IN = "in"
    NOT_IN = "not-in"
    STARTS_WITH = "starts-with"
    NOT_STARTS_WITH = "not-starts-with"

    def negate(self) -> Operation:
        """Return the operation that holds exactly when this one does not."""
        try:
            return _NEGATIONS[self]
        except KeyError:
            raise InvalidPredicateError(
                ERR_MSG_INVALID_PREDICATE, f"no negation for operation {self}"
            ) from None

    def flip(self) -> Operation:
        """Return the operation with its operands swapped, e.g. ``lt`` for ``gt``."""
        try:
            return _FLIPS[self]
        except KeyError:
            raise InvalidPredicateError(
                ERR_MSG_INVALID_PREDICATE, f"operation {self} has no operand-swapped form"
            ) from None


_NEGATIONS: dict[Operation, Operation] = {
    Operation.TRUE: Operation.FALSE,
    Operation.FALSE: Operation.TRUE,
    Operation.AND: Operation.OR,
    Operation.OR: Operation.AND,
    Operation.IS_NULL: Operation.NOT_NULL,
    Operation.NOT_NULL: Operation.IS_NULL,
    Operation.IS_NAN: Operation.NOT_NAN,
    Operation.NOT_NAN: Operation.IS_NAN,
    Operation.LT: Operation.GT_EQ,
    Operation.LT_EQ: Operation.GT,
    Operation.GT: Operation.LT_EQ,
    Operation.GT_EQ: Operation.LT,
    Operation.EQ: Operation.NOT_EQ,
    Operation.NOT_EQ: Operation.EQ,
    Operation.IN: Operation.NOT_IN,
    Operation.NOT_IN: Operation.IN,
    Operation.STARTS_WITH: Operation.NOT_STARTS_WITH,
    Operation.NOT_STARTS_WITH: Operation.STARTS_WITH,
}

_FLIPS: dict[Operation, Operation] = {
    Operation.LT: Operation.GT,
    Operation.LT_EQ: Operation.GT_EQ,
    Operation.GT: Operation.LT,
    Operation.GT_EQ: Operation.LT_EQ,
    Operation.EQ: Operation.EQ,
    Operation.NOT_EQ: Operation.NOT_EQ,
}

UNARY_OPERATIONS = frozenset({
    Operation.IS_NULL, Operation.NOT_NULL, Operation.IS_NAN, Operation.NOT_NAN,
})
COMPARISON_OPERATIONS = frozenset({
    Operation.LT, Operation.LT_EQ, Operation.GT, Operation.GT_EQ, Operation.EQ, Operation.NOT_EQ,
})
STRING_OPERATIONS = frozenset({Operation.STARTS_WITH, Operation.NOT_STARTS_WITH})
LITERAL_OPERATIONS = COMPARISON_OPERATIONS | STRING_OPERATIONS
SET_OPERATIONS = frozenset({Operation.IN, Operation.NOT_IN})
PREDICATE_OPERATIONS = UNARY_OPERATIONS | LITERAL_OPERATIONS | SET_OPERATIONS

# Symbolic spellings accepted by predicate()
_OPERATION_ALIASES: dict[str, Operation] = {
    "=": Operation.EQ,
    "==": Operation.EQ,
    "!=": Operation.NOT_EQ,
    "<>": Operation.NOT_EQ,
    "<": Operation.LT,
    "<=": Operation.LT_EQ,
    ">": Operation.GT,
    ">=": Operation.GT_EQ,
}


def _invalid(detail: str) -> InvalidPredicateError:
    return InvalidPredicateError(ERR_MSG_INVALID_PREDICATE, detail)


class Expression(ABC):
    """A boolean expression node."""

    op: Operation

    @abstractmethod
    def negate(self) -> Expression:
        """Return the negation of this expression, pushed to the leaves."""

    def __invert__(self) -> Expression:
        return self.negate()

    def __and__(self, other: Expression) -> Expression:
        return and_(self, other)

    def __or__(self, other: Expression) -> Expression:
        return or_(self, other)


class _Constant(Expression):
    _instance: ClassVar[_Constant | None] = None

    def __new__(cls) -> _Constant:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), ())


class AlwaysTrue(_Constant):
    """The constant ``true``."""

    _instance: ClassVar[_Constant | None] = None
    op: ClassVar[Operation] = Operation.TRUE

    def negate(self) -> Expression:
        return AlwaysFalse()

    def __str__(self) -> str:
        return "true"


class AlwaysFalse(_Constant):
    """The constant ``false``."""

    _instance: ClassVar[_Constant | None] = None
    op: ClassVar[Operation] = Operation.FALSE

    def negate(self) -> Expression:
        return AlwaysTrue()

    def __str__(self) -> str:
        return "false"


@dataclass(frozen=True)
class And(Expression):
    left: Expression
    right: Expression
    op: ClassVar[Operation] = Operation.AND

    def negate(self) -> Expression:
        # not (a and b) = (not a) or (not b)
        return or_(self.left.negate(), self.right.negate())

    def __str__(self) -> str:
        return f"({self.left} and {self.right})"


@dataclass(frozen=True)
class Or(Expression):
    left: Expression
    right: Expression
    op: ClassVar[Operation] = Operation.OR

    def negate(self) -> Expression:
        # not (a or b) = (not a) and (not b)
        return and_(self.left.negate(), self.right.negate())

    def __str__(self) -> str:
        return f"({self.left} or {self.right})"


@dataclass(frozen=True)
class Not(Expression):
    """Explicit negation. The constructors never build one; see :func:`rewrite_not`."""

    child: Expression
    op: ClassVar[Operation] = Operation.NOT

    def negate(self) -> Expression:
        return self.child

    def __str__(self) -> str:
        return f"not({self.child})"


# ---- Terms ----

@dataclass(frozen=True)
class Reference:
    """A column named by the user, not yet resolved against a schema."""

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise _invalid(f"column reference must be a non-empty string, got {self.name!r}")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class BoundReference:
    """A column resolved to a schema field.

    ``required`` says whether a valid row always has a value here: the field
    and every struct above it are required. It defaults to the field's own
    flag.
    """

    field: NestedField
    required: bool | None = None

    def __post_init__(self) -> None:
        if self.required is None:
            object.__setattr__(self, "required", self.field.required)

    @property
    def field_id(self) -> int:
        return self.field.field_id

    def eval(self, row: Any) -> Any:
        """Read this field's value from ``row`` by field ID.

        Raises:
            MissingValueError: If the value is required and the row has none.
        """
        value = row.get(self.field.field_id)
        if value is None and self.required:
            raise MissingValueError(
                ERR_MSG_MISSING_VALUE,
                f"row has no value for required field {self.field.field_id} ('{self.field.name}')",
            )
        return value

    def __str__(self) -> str:
        return f"ref(id={self.field.field_id}, name={self.field.name})"


# ---- Predicates ----

def _check_literal_count(op: Operation, count: int) -> None:
    if op in UNARY_OPERATIONS and count != 0:
        raise _invalid(f"{op} takes no literals, got {count}")
    if op in LITERAL_OPERATIONS and count != 1:
        raise _invalid(f"{op} takes exactly one literal, got {count}")
    if op in SET_OPERATIONS and count == 0:
        raise _invalid(f"{op} needs at least one literal")


def _unique(values: Iterable[Any]) -> tuple[Any, ...]:
    try:
        return tuple(dict.fromkeys(values))
    except TypeError as e:
        raise _invalid(f"set literals must be hashable: {e}") from e


def _format_predicate(op: Operation, term: Any, literals: Sequence[Any]) -> str:
    if op in UNARY_OPERATIONS:
        return f"{op}({term})"
    if op in SET_OPERATIONS:
        return f"{term} {op} ({', '.join(str(lit) for lit in literals)})"
    return f"{term} {op} {literals[0]}"


@dataclass(frozen=True)
class UnboundPredicate(Expression):
    """A predicate on a named column with raw Python literals."""

    op: Operation
    term: Reference
    literals: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        try:
            op = Operation(self.op)
        except ValueError:
            raise _invalid(f"unknown predicate operation {self.op!r}") from None
        if op not in PREDICATE_OPERATIONS:
            raise _invalid(f"{op} is not a predicate operation")
        term = Reference(self.term) if isinstance(self.term, str) else self.term
        if not isinstance(term, Reference):
            raise _invalid(f"predicate term must be a column reference, got {term!r}")
        literals = tuple(self.literals)
        for lit in literals:
            if lit is None:
                raise _invalid(f"null literal in {op} on '{term}', use is_null or not_null")
        if op in SET_OPERATIONS:
            literals = _unique(literals)
        _check_literal_count(op, len(literals))
        object.__setattr__(self, "op", op)
        object.__setattr__(self, "term", term)
        object.__setattr__(self, "literals", literals)

    @property
    def literal(self) -> Any:
        return self.literals[0]

    def negate(self) -> Expression:
        return UnboundPredicate(self.op.negate(), self.term, self.literals)

    def __str__(self) -> str:
        return _format_predicate(self.op, self.term, [repr(lit) for lit in self.literals])


@dataclass(frozen=True)
class BoundPredicate(Expression):
    """A predicate on a resolved field with literals converted to its type."""

    op: Operation
    term: BoundReference
    literals: tuple[TypedValue, ...] = ()

    def __post_init__(self) -> None:
        if self.op not in PREDICATE_OPERATIONS:
            raise _invalid(f"{self.op} is not a predicate operation")
        object.__setattr__(self, "literals", tuple(self.literals))
        _check_literal_count(self.op, len(self.literals))

    @property
    def literal(self) -> TypedValue:
        return self.literals[0]

    def negate(self) -> Expression:
        return BoundPredicate(self.op.negate(), self.term, self.literals)

    def __str__(self) -> str:
        return _format_predicate(self.op, self.term, self.literals)


# ---- Constructors ----

def _check_expression(value: Any) -> Expression:
    if not isinstance(value, Expression):
        raise _invalid(f"expected an expression, got {value!r}")
    return value


def _build_balanced_tree(
    combine: Callable[[Expression, Expression], Expression], items: Sequence[Expression]
) -> Expression:
    """Combine ``items`` pairwise into a tree of logarithmic depth, keeping their order."""
    if len(items) == 1:
        return items[0]
    mid = len(items) // 2
    return combine(_build_balanced_tree(combine, items[:mid]), _build_balanced_tree(combine, items[mid:]))


def always_true() -> Expression:
    return AlwaysTrue()


def always_false() -> Expression:
    return AlwaysFalse()


def and_(left: Expression, right: Expression, *rest: Expression) -> Expression:
    """Conjunction, folding constant operands."""
    if rest:
        return _build_balanced_tree(and_, (left, right, *rest))
    left, right = _check_expression(left), _check_expression(right)
    if left is AlwaysFalse() or right is AlwaysFalse():
        return AlwaysFalse()
    if left is AlwaysTrue():
        return right
    if right is AlwaysTrue():
        return left
    return And(left, right)


def or_(left: Expression, right: Expression, *rest: Expression) -> Expression:
    """Disjunction, folding constant operands."""
    if rest:
        return _build_balanced_tree(or_, (left, right, *rest))
    left, right = _check_expression(left), _check_expression(right)
    if left is AlwaysTrue() or right is AlwaysTrue():
        return AlwaysTrue()
    if left is AlwaysFalse():
        return right
    if right is AlwaysFalse():
        return left
    return Or(left, right)


def not_(child: Expression) -> Expression:
    return _check_expression(child).negate()


def _term(term: str | Reference) -> Reference:
    return term if isinstance(term, Reference) else Reference(term)


def is_null(term: str | Reference) -> Expression:
    return UnboundPredicate(Operation.IS_NULL, _term(term))


def not_null(term: str | Reference) -> Expression:
    return UnboundPredicate(Operation.NOT_NULL, _term(term))


def is_nan(term: str | Reference) -> Expression:
    return UnboundPredicate(Operation.IS_NAN, _term(term))


def not_nan(term: str | Reference) -> Expression:
    return UnboundPredicate(Operation.NOT_NAN, _term(term))


def equal(term: str | Reference, value: Any) -> Expression:
    return UnboundPredicate(Operation.EQ, _term(term), (value,))


def not_equal(term: str | Reference, value: Any) -> Expression:
    return UnboundPredicate(Operation.NOT_EQ, _term(term), (value,))


def less_than(term: str | Reference, value: Any) -> Expression:
    return UnboundPredicate(Operation.LT, _term(term), (value,))


def less_than_or_equal(term: str | Reference, value: Any) -> Expression:
    return UnboundPredicate(Operation.LT_EQ, _term(term), (value,))


def greater_than(term: str | Reference, value: Any) -> Expression:
    return UnboundPredicate(Operation.GT, _term(term), (value,))


def greater_than_or_equal(term: str | Reference, value: Any) -> Expression:
    return UnboundPredicate(Operation.GT_EQ, _term(term), (value,))


def starts_with(term: str | Reference, prefix: str) -> Expression:
    return UnboundPredicate(Operation.STARTS_WITH, _term(term), (prefix,))


def not_starts_with(term: str | Reference, prefix: str) -> Expression:
    return UnboundPredicate(Operation.NOT_STARTS_WITH, _term(term), (prefix,))


def in_(term: str | Reference, values: Iterable[Any]) -> Expression:
    """Set membership; no values is ``false`` and one value is ``equal``."""
    unique = _unique(values)
    if not unique:
        return AlwaysFalse()
    if len(unique) == 1:
        return equal(term, unique[0])
    return UnboundPredicate(Operation.IN, _term(term), unique)


def not_in(term: str | Reference, values: Iterable[Any]) -> Expression:
    """Negated set membership; no values is ``true`` and one value is ``not_equal``."""
    unique = _unique(values)
    if not unique:
        return AlwaysTrue()
    if len(unique) == 1:
        return not_equal(term, unique[0])
    return UnboundPredicate(Operation.NOT_IN, _term(term), unique)


def predicate(op: Operation | str, term: str | Reference, *literals: Any) -> Expression:
    """Build a predicate from an operation name or symbol such as ``"="`` or ``"<="``.

    Raises:
        InvalidPredicateError: For unknown operations or a wrong number of literals.
    """
    if isinstance(op, Operation):
        operation = op
    elif op in _OPERATION_ALIASES:
        operation = _OPERATION_ALIASES[op]
    else:
        try:
            operation = Operation(op)
        except ValueError:
            raise _invalid(f"unknown predicate operation {op!r}") from None
    if operation == Operation.IN:
        return in_(term, literals)
    if operation == Operation.NOT_IN:
        return not_in(term, literals)
    return UnboundPredicate(operation, _term(term), literals)


def rewrite_not(expr: Expression) -> Expression:
    """Remove every ``Not`` node by pushing negation into the leaves."""
    op = expr.op
    if op == Operation.NOT:
        return rewrite_not(expr.child).negate()
    if op == Operation.AND:
        return and_(rewrite_not(expr.left), rewrite_not(expr.right))
    if op == Operation.OR:
        return or_(rewrite_not(expr.left), rewrite_not(expr.right))
    return expr
