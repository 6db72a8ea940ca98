"""Recursive, field-ID-addressed type system.

Primitive types are plain values compared by their parameters. Nested
types (struct, list, map) own :class:`NestedField` members, each carrying a
permanent integer ID. All types are immutable and hash structurally.
Dispatch always goes through :attr:`Type.type_id`.
"""

from __future__ import annotations

import enum
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pytableexpr._constants import INT32_MAX, MAX_DECIMAL_PRECISION
from pytableexpr._errors import (
    ERR_MSG_INVALID_DEFAULT,
    ERR_MSG_INVALID_SCHEMA,
    ERR_MSG_INVALID_TYPE,
    InvalidLiteralError,
    InvalidSchemaError,
    ParseError,
)

if TYPE_CHECKING:
    from pytableexpr._values import TypedValue


class TypeID(enum.StrEnum):
    """Discriminator for every kind of type."""

    BOOLEAN = "boolean"
    INTEGER = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TIMESTAMPTZ = "timestamptz"
    STRING = "string"
    UUID = "uuid"
    FIXED = "fixed"
    BINARY = "binary"
    STRUCT = "struct"
    LIST = "list"
    MAP = "map"


NESTED_TYPE_IDS = frozenset({TypeID.STRUCT, TypeID.LIST, TypeID.MAP})
PARAMETERIZED_TYPE_IDS = frozenset({TypeID.DECIMAL, TypeID.FIXED})
FLOATING_TYPE_IDS = frozenset({TypeID.FLOAT, TypeID.DOUBLE})

_DECIMAL_RE = re.compile(r"^decimal\(\s*(\d+)\s*,\s*(\d+)\s*\)$")
_FIXED_RE = re.compile(r"^fixed\[\s*(\d+)\s*\]$")


class Type(ABC):
    """Base class for all types."""

    @property
    @abstractmethod
    def type_id(self) -> TypeID: ...

    @property
    def is_primitive(self) -> bool:
        return self.type_id not in NESTED_TYPE_IDS

    @property
    def is_nested(self) -> bool:
        return self.type_id in NESTED_TYPE_IDS


@dataclass(frozen=True)
class PrimitiveType(Type):
    """A primitive type without parameters, e.g. ``int`` or ``string``."""

    kind: TypeID

    def __post_init__(self) -> None:
        if self.kind in NESTED_TYPE_IDS or self.kind in PARAMETERIZED_TYPE_IDS:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_TYPE,
                f"'{self.kind}' is not a parameterless primitive type",
            )

    @property
    def type_id(self) -> TypeID:
        return self.kind

    def canonical_string(self) -> str:
        return str(self.kind)

    def __str__(self) -> str:
        return self.canonical_string()


@dataclass(frozen=True)
class DecimalType(Type):
    """Fixed-point decimal with a precision and scale."""

    precision: int
    scale: int

    def __post_init__(self) -> None:
        if not 1 <= self.precision <= MAX_DECIMAL_PRECISION:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_TYPE,
                f"decimal precision {self.precision} is outside [1, {MAX_DECIMAL_PRECISION}]",
            )
        if not 0 <= self.scale <= self.precision:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_TYPE,
                f"decimal scale {self.scale} is outside [0, {self.precision}]",
            )

    @property
    def type_id(self) -> TypeID:
        return TypeID.DECIMAL

    def canonical_string(self) -> str:
        return f"decimal({self.precision},{self.scale})"

    def __str__(self) -> str:
        return self.canonical_string()


@dataclass(frozen=True)
class FixedType(Type):
    """Byte array of a fixed length."""

    length: int

    def __post_init__(self) -> None:
        if self.length < 1:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_TYPE,
                f"fixed length {self.length} must be positive",
            )

    @property
    def type_id(self) -> TypeID:
        return TypeID.FIXED

    def canonical_string(self) -> str:
        return f"fixed[{self.length}]"

    def __str__(self) -> str:
        return self.canonical_string()


BOOLEAN = PrimitiveType(TypeID.BOOLEAN)
INTEGER = PrimitiveType(TypeID.INTEGER)
LONG = PrimitiveType(TypeID.LONG)
FLOAT = PrimitiveType(TypeID.FLOAT)
DOUBLE = PrimitiveType(TypeID.DOUBLE)
DATE = PrimitiveType(TypeID.DATE)
TIME = PrimitiveType(TypeID.TIME)
TIMESTAMP = PrimitiveType(TypeID.TIMESTAMP)
TIMESTAMPTZ = PrimitiveType(TypeID.TIMESTAMPTZ)
STRING = PrimitiveType(TypeID.STRING)
UUID = PrimitiveType(TypeID.UUID)
BINARY = PrimitiveType(TypeID.BINARY)

_PRIMITIVES_BY_NAME: dict[str, PrimitiveType] = {
    t.canonical_string(): t
    for t in (
        BOOLEAN, INTEGER, LONG, FLOAT, DOUBLE, DATE, TIME,
        TIMESTAMP, TIMESTAMPTZ, STRING, UUID, BINARY,
    )
}


def from_primitive_string(text: str) -> Type:
    """Parse a canonical primitive type string such as ``decimal(9,2)``.

    Raises:
        ParseError: If the string names no primitive type.
    """
    name = text.strip().lower()
    primitive = _PRIMITIVES_BY_NAME.get(name)
    if primitive is not None:
        return primitive

    match = _DECIMAL_RE.match(name)
    if match:
        try:
            return DecimalType(int(match.group(1)), int(match.group(2)))
        except InvalidSchemaError as e:
            raise ParseError(ERR_MSG_INVALID_TYPE, e.internal(), wrapped=e) from e

    match = _FIXED_RE.match(name)
    if match:
        try:
            return FixedType(int(match.group(1)))
        except InvalidSchemaError as e:
            raise ParseError(ERR_MSG_INVALID_TYPE, e.internal(), wrapped=e) from e

    raise ParseError(ERR_MSG_INVALID_TYPE, f"cannot parse primitive type: {text!r}")


@dataclass(frozen=True)
class NestedField:
    """A member of a struct, list or map, identified by its field ID.

    ``default`` of ``None`` means the field has no default. A default is
    checked against ``field_type`` and stored in its normalized native form
    (lists for sequences, struct members without a value dropped). It is
    left out of the hash since structured defaults are not hashable.
    """

    field_id: int
    name: str
    field_type: Type
    required: bool = False
    default: Any = field(default=None, hash=False)
    doc: str | None = None

    def __post_init__(self) -> None:
        if (
            not isinstance(self.field_id, int)
            or isinstance(self.field_id, bool)
            or not 0 <= self.field_id <= INT32_MAX
        ):
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"field id must be an integer between 0 and {INT32_MAX}, got {self.field_id!r}",
            )
        if not isinstance(self.name, str) or not self.name:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"field {self.field_id} must have a non-empty name",
            )
        if not isinstance(self.field_type, Type):
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"field '{self.name}' has no valid type: {self.field_type!r}",
            )
        if self.default is not None:
            from pytableexpr._values import validate_value

            # Keep the normalized form so defaults compare equal after a JSON round trip
            try:
                normalized = validate_value(self.default, self.field_type)
            except InvalidLiteralError as e:
                raise InvalidSchemaError(
                    ERR_MSG_INVALID_DEFAULT,
                    f"default of field '{self.name}' does not match its type: {e.internal()}",
                    wrapped=e,
                ) from e
            object.__setattr__(self, "default", normalized)

    @property
    def optional(self) -> bool:
        return not self.required

    @property
    def typed_default(self) -> TypedValue | None:
        if self.default is None:
            return None
        from pytableexpr._values import TypedValue

        return TypedValue(self.field_type, self.default)

    def __str__(self) -> str:
        requirement = "required" if self.required else "optional"
        type_text = str(self.field_type) if self.field_type.is_primitive else str(self.field_type.type_id)
        text = f"{self.field_id}: {self.name}: {requirement} {type_text}"
        if self.doc:
            text += f" ({self.doc})"
        return text


def required(
    field_id: int, name: str, field_type: Type, default: Any = None, doc: str | None = None
) -> NestedField:
    return NestedField(field_id, name, field_type, True, default, doc)


def optional(
    field_id: int, name: str, field_type: Type, default: Any = None, doc: str | None = None
) -> NestedField:
    return NestedField(field_id, name, field_type, False, default, doc)


@dataclass(frozen=True)
class StructType(Type):
    """Ordered sequence of fields with pairwise distinct IDs and names."""

    fields: tuple[NestedField, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        seen_ids: set[int] = set()
        seen_names: set[str] = set()
        for member in self.fields:
            if not isinstance(member, NestedField):
                raise InvalidSchemaError(
                    ERR_MSG_INVALID_SCHEMA,
                    f"struct member is not a field: {member!r}",
                )
            if member.field_id in seen_ids:
                raise InvalidSchemaError(
                    ERR_MSG_INVALID_SCHEMA,
                    f"duplicate field id {member.field_id} in struct",
                )
            if member.name in seen_names:
                raise InvalidSchemaError(
                    ERR_MSG_INVALID_SCHEMA,
                    f"duplicate field name '{member.name}' in struct",
                )
            seen_ids.add(member.field_id)
            seen_names.add(member.name)

    @property
    def type_id(self) -> TypeID:
        return TypeID.STRUCT

    def field(self, field_id: int) -> NestedField | None:
        for member in self.fields:
            if member.field_id == field_id:
                return member
        return None

    def field_by_name(self, name: str, case_sensitive: bool = True) -> NestedField | None:
        for member in self.fields:
            if member.name == name:
                return member
        if not case_sensitive:
            lowered = name.lower()
            for member in self.fields:
                if member.name.lower() == lowered:
                    return member
        return None


@dataclass(frozen=True)
class ListType(Type):
    """List of elements described by a single ``element`` field."""

    element_field: NestedField

    def __post_init__(self) -> None:
        if self.element_field.name != "element":
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"list element field must be named 'element', got '{self.element_field.name}'",
            )

    @property
    def type_id(self) -> TypeID:
        return TypeID.LIST

    @property
    def fields(self) -> tuple[NestedField, ...]:
        return (self.element_field,)

    @property
    def element_id(self) -> int:
        return self.element_field.field_id

    @property
    def element_type(self) -> Type:
        return self.element_field.field_type

    @property
    def element_required(self) -> bool:
        return self.element_field.required


@dataclass(frozen=True)
class MapType(Type):
    """Map from a primitive ``key`` field to a ``value`` field."""

    key_field: NestedField
    value_field: NestedField

    def __post_init__(self) -> None:
        if self.key_field.name != "key" or self.value_field.name != "value":
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                "map fields must be named 'key' and 'value'",
            )
        if not self.key_field.required:
            raise InvalidSchemaError(ERR_MSG_INVALID_SCHEMA, "map keys must be required")
        if not self.key_field.field_type.is_primitive:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"map key type must be primitive, got {self.key_field.field_type.type_id}",
            )
        if self.key_field.field_id == self.value_field.field_id:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"duplicate field id {self.key_field.field_id} in map",
            )

    @property
    def type_id(self) -> TypeID:
        return TypeID.MAP

    @property
    def fields(self) -> tuple[NestedField, ...]:
        return (self.key_field, self.value_field)

    @property
    def key_id(self) -> int:
        return self.key_field.field_id

    @property
    def key_type(self) -> Type:
        return self.key_field.field_type

    @property
    def value_id(self) -> int:
        return self.value_field.field_id

    @property
    def value_type(self) -> Type:
        return self.value_field.field_type

    @property
    def value_required(self) -> bool:
        return self.value_field.required


def struct(fields: Iterable[NestedField]) -> StructType:
    return StructType(tuple(fields))


def list_of(element_id: int, element_type: Type, element_required: bool = True) -> ListType:
    return ListType(NestedField(element_id, "element", element_type, element_required))


def map_of(
    key_id: int,
    key_type: Type,
    value_id: int,
    value_type: Type,
    value_required: bool = True,
) -> MapType:
    return MapType(
        NestedField(key_id, "key", key_type, True),
        NestedField(value_id, "value", value_type, value_required),
    )
