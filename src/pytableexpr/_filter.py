"""FilterBuilder - Lark Interpreter that turns a CEL parse tree into an unbound Expression."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lark import Token, Tree
from lark.visitors import Interpreter

from pytableexpr._constants import DEFAULT_MAX_RECURSION_DEPTH
from pytableexpr._errors import (
    ERR_MSG_UNSUPPORTED_EXPRESSION,
    MaxDepthExceededError,
    UnsupportedExpressionError,
)
from pytableexpr._operators import COMPARISON_OPERATIONS, NULL_AWARE_RELATIONS, STRING_METHODS
from pytableexpr._utils import decode_bytes_token, decode_string_token
from pytableexpr.expressions import (
    AlwaysFalse,
    AlwaysTrue,
    Expression,
    Operation,
    UnboundPredicate,
    and_,
    equal,
    in_,
    is_null,
    not_,
    not_null,
    or_,
)


@dataclass(frozen=True)
class _Column:
    """A (possibly dotted) column path seen in the filter."""

    name: str


@dataclass(frozen=True)
class _Literal:
    value: Any


@dataclass(frozen=True)
class _ListLiteral:
    values: tuple[Any, ...]


def _unsupported(user_message: str, detail: str = "") -> UnsupportedExpressionError:
    return UnsupportedExpressionError(user_message, detail or user_message)


def _literal_value(token: Token) -> Any:
    text = str(token)
    kind = token.type
    if kind == "NULL_LIT":
        return None
    if kind == "BOOL_LIT":
        return text.lower() == "true"
    if kind == "INT_LIT":
        return int(text, 0)
    if kind == "UINT_LIT":
        return int(text.rstrip("uU"), 0)
    if kind == "FLOAT_LIT":
        return float(text)
    if kind in ("STRING_LIT", "MLSTRING_LIT"):
        return decode_string_token(text)
    if kind == "BYTES_LIT":
        return decode_bytes_token(text)
    raise _unsupported("unsupported literal type", f"unknown token type: {kind}")


class FilterBuilder(Interpreter):
    """Builds an unbound Expression from a CEL Lark parse tree.

    Each visitor method returns a value: an :class:`Expression`, a column
    path, a literal or a list of literals. Rules without a predicate
    equivalent raise :class:`UnsupportedExpressionError`.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_RECURSION_DEPTH) -> None:
        self._max_depth = max_depth
        self._depth = 0

    def build(self, tree: Tree) -> Expression:
        return self._as_expression(self.visit(tree))

    def _check_limits(self) -> None:
        if self._depth > self._max_depth:
            raise MaxDepthExceededError(
                "maximum recursion depth exceeded",
                f"depth {self._depth} exceeds limit {self._max_depth}",
            )

    def _visit_child(self, tree: Tree | Token) -> Any:
        """Visit a child node, incrementing depth."""
        self._depth += 1
        try:
            self._check_limits()
            return self.visit(tree)
        finally:
            self._depth -= 1

    def visit(self, tree: Tree | Token) -> Any:
        if isinstance(tree, Token):
            raise _unsupported("unsupported expression structure", f"unexpected token {tree!r}")
        return super().visit(tree)

    def __default__(self, tree: Tree) -> Any:
        raise _unsupported(ERR_MSG_UNSUPPORTED_EXPRESSION, f"no predicate equivalent for '{tree.data}'")

    def _as_expression(self, value: Any) -> Expression:
        if isinstance(value, Expression):
            return value
        if isinstance(value, _Column):
            # A bare column is a boolean test
            return equal(value.name, True)
        if isinstance(value, _Literal) and isinstance(value.value, bool):
            return AlwaysTrue() if value.value else AlwaysFalse()
        raise _unsupported("filter must be a boolean expression", f"not a boolean expression: {value!r}")

    def _pass_through(self, tree: Tree, rule: str) -> Any:
        if len(tree.children) == 1:
            return self._visit_child(tree.children[0])
        raise _unsupported(
            f"unsupported {rule} expression",
            f"{tree.data} has {len(tree.children)} children",
        )

    # ---- expr: top-level, potentially ternary ----

    def expr(self, tree: Tree) -> Any:
        if len(tree.children) == 3:
            raise _unsupported("conditional expressions are not supported in filters")
        return self._pass_through(tree, "top-level")

    # ---- Logical operators ----

    def conditionalor(self, tree: Tree) -> Any:
        children = tree.children
        if len(children) == 2:
            left = self._as_expression(self._visit_child(children[0]))
            right = self._as_expression(self._visit_child(children[1]))
            return or_(left, right)
        return self._pass_through(tree, "OR")

    def conditionaland(self, tree: Tree) -> Any:
        children = tree.children
        if len(children) == 2:
            left = self._as_expression(self._visit_child(children[0]))
            right = self._as_expression(self._visit_child(children[1]))
            return and_(left, right)
        return self._pass_through(tree, "AND")

    # ---- Comparison / relation ----

    def relation(self, tree: Tree) -> Any:
        children = tree.children
        if len(children) == 1:
            return self._visit_child(children[0])
        if len(children) != 2 or not isinstance(children[0], Tree):
            raise _unsupported(
                "unsupported relation expression",
                f"relation has {len(children)} children",
            )

        # children[0] is the operator prefix node holding the left operand
        op_node, rhs_node = children
        op_name = op_node.data
        lhs = self._visit_child(op_node.children[0])
        rhs = self._visit_child(rhs_node)

        if op_name == "relation_in":
            return self._visit_in(lhs, rhs)

        operation = COMPARISON_OPERATIONS.get(op_name)
        if operation is None:
            raise _unsupported("unsupported comparison operator", f"unknown relation operator: {op_name}")

        if isinstance(lhs, _Column) and isinstance(rhs, _Literal):
            column, value = lhs, rhs.value
        elif isinstance(lhs, _Literal) and isinstance(rhs, _Column):
            column, value = rhs, lhs.value
            operation = operation.flip()
        else:
            raise _unsupported(
                "comparisons must be between a column and a literal",
                f"cannot compare {lhs!r} with {rhs!r}",
            )

        if value is None:
            if op_name not in NULL_AWARE_RELATIONS:
                raise _unsupported("null can only be compared with == or !=")
            return is_null(column.name) if operation == Operation.EQ else not_null(column.name)
        return UnboundPredicate(operation, column.name, (value,))

    def _visit_in(self, lhs: Any, rhs: Any) -> Expression:
        if not isinstance(lhs, _Column) or not isinstance(rhs, _ListLiteral):
            raise _unsupported(
                "'in' requires a column and a list of literals",
                f"cannot build membership test from {lhs!r} and {rhs!r}",
            )
        return in_(lhs.name, rhs.values)

    # ---- Arithmetic ----

    def addition(self, tree: Tree) -> Any:
        if len(tree.children) == 2:
            raise _unsupported("arithmetic is not supported in filters")
        return self._pass_through(tree, "addition")

    def multiplication(self, tree: Tree) -> Any:
        if len(tree.children) == 2:
            raise _unsupported("arithmetic is not supported in filters")
        return self._pass_through(tree, "multiplication")

    # ---- Unary ----

    def unary(self, tree: Tree) -> Any:
        children = tree.children
        if len(children) == 2 and isinstance(children[0], Tree):
            operand = self._visit_child(children[1])
            if children[0].data == "unary_not":
                return not_(self._as_expression(operand))
            if children[0].data == "unary_neg":
                if isinstance(operand, _Literal) and isinstance(operand.value, (int, float)) \
                        and not isinstance(operand.value, bool):
                    return _Literal(-operand.value)
                raise _unsupported("negation is only supported on numeric literals")
        return self._pass_through(tree, "unary")

    # ---- Member access ----

    def member(self, tree: Tree) -> Any:
        return self._pass_through(tree, "member")

    def member_dot(self, tree: Tree) -> Any:
        """Nested column: a.b"""
        obj = self._visit_child(tree.children[0])
        if not isinstance(obj, _Column):
            raise _unsupported("field selection is only supported on columns")
        return _Column(f"{obj.name}.{tree.children[1]}")

    def member_dot_arg(self, tree: Tree) -> Any:
        """Method call: a.startsWith("x")"""
        method_name = str(tree.children[1])
        operation = STRING_METHODS.get(method_name)
        if operation is None:
            raise _unsupported("unsupported method call", f"unknown method: {method_name}")
        obj = self._visit_child(tree.children[0])
        args_node = tree.children[2] if len(tree.children) > 2 else None
        args = [self._visit_child(arg) for arg in args_node.children] if args_node is not None else []
        if (
            not isinstance(obj, _Column)
            or len(args) != 1
            or not isinstance(args[0], _Literal)
            or not isinstance(args[0].value, str)
        ):
            raise _unsupported(
                f"{method_name} requires a column receiver and one string literal",
                f"invalid {method_name} call on {obj!r} with {args!r}",
            )
        return UnboundPredicate(operation, obj.name, (args[0].value,))

    # ---- Primary expressions ----

    def primary(self, tree: Tree) -> Any:
        return self._pass_through(tree, "primary")

    def ident(self, tree: Tree) -> Any:
        return _Column(str(tree.children[0]))

    def paren_expr(self, tree: Tree) -> Any:
        return self._visit_child(tree.children[0])

    # ---- Literals ----

    def literal(self, tree: Tree) -> Any:
        token = tree.children[0]
        if not isinstance(token, Token):
            raise _unsupported("unexpected literal structure")
        return _Literal(_literal_value(token))

    def list_lit(self, tree: Tree) -> Any:
        values: list[Any] = []
        if tree.children:
            exprlist = tree.children[0]
            if isinstance(exprlist, Tree) and exprlist.data == "exprlist":
                for child in exprlist.children:
                    item = self._visit_child(child)
                    if not isinstance(item, _Literal):
                        raise _unsupported("list elements must be literals", f"got {item!r}")
                    values.append(item.value)
        return _ListLiteral(tuple(values))
