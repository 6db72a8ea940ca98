"""Table schema: a root struct plus lookup indices over its field tree."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pytableexpr._errors import ERR_MSG_INVALID_SCHEMA, InvalidSchemaError
from pytableexpr.types import NestedField, StructType, Type, TypeID


@dataclass(frozen=True)
class Accessor:
    """Reads a field out of nested name-keyed mappings.

    ``path`` holds the member names from the root struct down to the
    field. A null parent yields null. ``required`` is true only when the
    field and every struct above it are required, so the value can never
    be null in a valid row.
    """

    field_id: int
    path: tuple[str, ...]
    required: bool = False

    def get(self, container: Mapping[str, Any]) -> Any:
        current: Any = container
        for name in self.path:
            if current is None:
                return None
            current = current.get(name)
        return current


class Schema:
    """Table schema with O(1) field lookup by ID and by name."""

    def __init__(self, fields: Iterable[NestedField], schema_id: int = 0) -> None:
        self._struct = StructType(tuple(fields))
        self.schema_id = schema_id
        self._id_to_field: dict[int, NestedField] = {}
        self._id_to_name: dict[int, str] = {}
        self._name_to_id: dict[str, int] = {}
        self._lowercase_name_to_id: dict[str, int] = {}
        self._id_to_accessor: dict[int, Accessor] = {}
        self._build_indexes()

    @classmethod
    def of(cls, fields: Iterable[NestedField], schema_id: int = 0) -> Schema:
        return cls(fields, schema_id=schema_id)

    def _build_indexes(self) -> None:
        short_names: list[tuple[str, int]] = []
        for member in self._struct.fields:
            self._index_field(member, "", member.name, f"{member.name}.", (), True, short_names)
        # Short aliases never shadow a full name.
        for short_name, field_id in short_names:
            self._name_to_id.setdefault(short_name, field_id)
            self._lowercase_name_to_id.setdefault(short_name.lower(), field_id)

    def _index_field(
        self,
        member: NestedField,
        prefix: str,
        short_name: str,
        short_children_prefix: str,
        path: tuple[str, ...] | None,
        parent_required: bool,
        short_names: list[tuple[str, int]],
    ) -> None:
        field_id = member.field_id
        full_name = f"{prefix}{member.name}"
        if field_id in self._id_to_field:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"duplicate field id {field_id}: '{self._id_to_name[field_id]}' and '{full_name}'",
            )
        if full_name in self._name_to_id:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"multiple fields for name '{full_name}'",
            )
        self._id_to_field[field_id] = member
        self._id_to_name[field_id] = full_name
        self._name_to_id[full_name] = field_id
        self._lowercase_name_to_id.setdefault(full_name.lower(), field_id)
        if short_name != full_name:
            short_names.append((short_name, field_id))

        # Fields below a list or map have no accessor
        member_path = path + (member.name,) if path is not None else None
        path_required = parent_required and member.required
        if member_path is not None:
            self._id_to_accessor[field_id] = Accessor(field_id, member_path, path_required)

        field_type = member.field_type
        if field_type.type_id == TypeID.STRUCT:
            for child in field_type.fields:
                child_short = f"{short_children_prefix}{child.name}"
                self._index_field(
                    child, f"{full_name}.", child_short, f"{child_short}.", member_path, path_required,
                    short_names,
                )
        elif field_type.type_id in (TypeID.LIST, TypeID.MAP):
            for child in field_type.fields:
                child_short = f"{short_children_prefix}{child.name}"
                if child.name in ("element", "value"):
                    grandchild_prefix = short_children_prefix
                else:
                    grandchild_prefix = f"{child_short}."
                self._index_field(
                    child, f"{full_name}.", child_short, grandchild_prefix, None, False, short_names
                )

    # ---- Lookups ----

    @property
    def fields(self) -> list[NestedField]:
        return list(self._struct.fields)

    @property
    def columns(self) -> tuple[NestedField, ...]:
        return self._struct.fields

    @property
    def highest_field_id(self) -> int:
        return max(self._id_to_field, default=0)

    @property
    def column_names(self) -> list[str]:
        return list(self._name_to_id)

    def as_struct(self) -> StructType:
        return self._struct

    def find_field(self, name_or_id: str | int, case_sensitive: bool = False) -> NestedField | None:
        """Find a field by ID or by full dotted name.

        Case-insensitive lookups prefer an exact match; among fields whose
        names differ only in case the first in traversal order wins.
        """
        if isinstance(name_or_id, int):
            return self._id_to_field.get(name_or_id)
        field_id = self._name_to_id.get(name_or_id)
        if field_id is None and not case_sensitive:
            field_id = self._lowercase_name_to_id.get(name_or_id.lower())
        if field_id is None:
            return None
        return self._id_to_field[field_id]

    def find_type(self, name_or_id: str | int, case_sensitive: bool = False) -> Type | None:
        found = self.find_field(name_or_id, case_sensitive)
        return found.field_type if found is not None else None

    def find_column_name(self, field_id: int) -> str | None:
        return self._id_to_name.get(field_id)

    def accessor_for_field(self, field_id: int) -> Accessor | None:
        """Return the accessor for a field reachable through structs only."""
        return self._id_to_accessor.get(field_id)

    # ---- Equality ----

    def same_schema(self, other: Schema) -> bool:
        """Structural equality over id, name, type, required and default."""
        return _canonical_fields(self._struct.fields) == _canonical_fields(other._struct.fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self.same_schema(other)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._id_to_name.items())))

    def __len__(self) -> int:
        return len(self._struct.fields)

    def __str__(self) -> str:
        lines = ["table {"]
        _render(self._struct.fields, 1, lines)
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Schema({', '.join(repr(f) for f in self._struct.fields)}, schema_id={self.schema_id})"


def _canonical_fields(fields: Iterable[NestedField]) -> tuple[Any, ...]:
    return tuple(sorted(
        (
            (f.field_id, f.name, _canonical_type(f.field_type), f.required, _Default(f.default))
            for f in fields
        ),
        key=lambda entry: entry[0],
    ))


def _canonical_type(field_type: Type) -> Any:
    if field_type.is_nested:
        return (field_type.type_id, _canonical_fields(field_type.fields))
    return field_type


class _Default:
    """Wraps a default so unhashable values take part in tuple equality."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Default) and _same_value(self.value, other.value)


def _same_value(left: Any, right: Any) -> bool:
    """Equality over default values where NaN equals NaN."""
    if isinstance(left, float) and isinstance(right, float) and math.isnan(left) and math.isnan(right):
        return True
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(_same_value(a, b) for a, b in zip(left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(_same_value(left[k], right[k]) for k in left)
    return left == right


def _render(fields: Iterable[NestedField], depth: int, lines: list[str]) -> None:
    indent = "  " * depth
    for member in fields:
        lines.append(f"{indent}{member}")
        if member.field_type.is_nested:
            _render(member.field_type.fields, depth + 1, lines)
