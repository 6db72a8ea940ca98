"""Schema to/from canonical JSON.

The wire form of a schema is its root struct type::

    {"type": "struct", "fields": [
        {"id": 1, "name": "a", "required": true, "type": "int"},
        {"id": 2, "name": "tags", "required": false,
         "type": {"type": "list", "element-id": 3, "element": "string",
                  "element-required": true},
         "default": "[\\"x\\",\\"y\\"]", "doc": "labels"}]}

Parsing is strict: unknown discriminators, unknown keys, missing keys and
values of the wrong JSON kind all raise :class:`ParseError`.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pytableexpr._defaults import decode_default, encode_default
from pytableexpr._errors import ERR_MSG_PARSE_FAILED, ParseError
from pytableexpr.schema import Schema
from pytableexpr.types import (
    ListType,
    MapType,
    NestedField,
    StructType,
    Type,
    TypeID,
    from_primitive_string,
)

if TYPE_CHECKING:
    from pytableexpr.cache import SchemaCache

logger = logging.getLogger(__name__)

TYPE = "type"
STRUCT = "struct"
LIST = "list"
MAP = "map"
FIELDS = "fields"
ELEMENT = "element"
KEY = "key"
VALUE = "value"
DOC = "doc"
NAME = "name"
ID = "id"
ELEMENT_ID = "element-id"
KEY_ID = "key-id"
VALUE_ID = "value-id"
REQUIRED = "required"
ELEMENT_REQUIRED = "element-required"
VALUE_REQUIRED = "value-required"
DEFAULT = "default"

_STRUCT_KEYS = frozenset({TYPE, FIELDS})
_FIELD_KEYS = frozenset({ID, NAME, REQUIRED, TYPE, DEFAULT, DOC})
_LIST_KEYS = frozenset({TYPE, ELEMENT_ID, ELEMENT, ELEMENT_REQUIRED})
_MAP_KEYS = frozenset({TYPE, KEY_ID, KEY, VALUE_ID, VALUE, VALUE_REQUIRED})


# ---- Serialization ----

def type_to_dict(field_type: Type) -> Any:
    """Convert a type to its JSON-ready form (a string or a dict)."""
    type_id = field_type.type_id
    if type_id == TypeID.STRUCT:
        return {TYPE: STRUCT, FIELDS: [_field_to_dict(member) for member in field_type.fields]}
    if type_id == TypeID.LIST:
        return {
            TYPE: LIST,
            ELEMENT_ID: field_type.element_id,
            ELEMENT: type_to_dict(field_type.element_type),
            ELEMENT_REQUIRED: field_type.element_required,
        }
    if type_id == TypeID.MAP:
        return {
            TYPE: MAP,
            KEY_ID: field_type.key_id,
            KEY: type_to_dict(field_type.key_type),
            VALUE_ID: field_type.value_id,
            VALUE: type_to_dict(field_type.value_type),
            VALUE_REQUIRED: field_type.value_required,
        }
    return field_type.canonical_string()


def _field_to_dict(member: NestedField) -> dict[str, Any]:
    result: dict[str, Any] = {
        ID: member.field_id,
        NAME: member.name,
        REQUIRED: member.required,
        TYPE: type_to_dict(member.field_type),
    }
    if member.default is not None:
        result[DEFAULT] = encode_default(member.default, member.field_type)
    if member.doc is not None:
        result[DOC] = member.doc
    return result


def to_dict(schema: Schema) -> dict[str, Any]:
    return type_to_dict(schema.as_struct())


def to_json(schema: Schema, pretty: bool = False) -> str:
    """Serialize a schema to its canonical JSON text."""
    if pretty:
        return json.dumps(to_dict(schema), indent=2)
    return json.dumps(to_dict(schema), separators=(",", ":"))


# ---- Parsing ----

def _fail(detail: str, wrapped: Exception | None = None) -> ParseError:
    return ParseError(ERR_MSG_PARSE_FAILED, detail, wrapped=wrapped)


def _get(node: dict[str, Any], key: str) -> Any:
    if key not in node:
        raise _fail(f"missing required key '{key}' in {node!r}")
    return node[key]


def _get_int(node: dict[str, Any], key: str) -> int:
    value = _get(node, key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise _fail(f"cannot parse '{key}' to an int value: {value!r}")
    return value


def _get_bool(node: dict[str, Any], key: str) -> bool:
    value = _get(node, key)
    if not isinstance(value, bool):
        raise _fail(f"cannot parse '{key}' to a boolean value: {value!r}")
    return value


def _get_string(node: dict[str, Any], key: str) -> str:
    value = _get(node, key)
    if not isinstance(value, str):
        raise _fail(f"cannot parse '{key}' to a string value: {value!r}")
    return value


def _check_keys(node: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(node) - allowed
    if unknown:
        raise _fail(f"unknown keys {sorted(unknown)} in {node!r}")


def type_from_dict(node: Any) -> Type:
    """Parse a type from its JSON-ready form."""
    if isinstance(node, str):
        return from_primitive_string(node)
    if not isinstance(node, dict):
        raise _fail(f"cannot parse type from {node!r}")

    discriminator = node.get(TYPE)
    if discriminator == STRUCT:
        return _struct_from_dict(node)
    if discriminator == LIST:
        return _list_from_dict(node)
    if discriminator == MAP:
        return _map_from_dict(node)
    raise _fail(f"cannot parse type from json, unknown type discriminator: {discriminator!r}")


def _struct_from_dict(node: dict[str, Any]) -> StructType:
    _check_keys(node, _STRUCT_KEYS)
    field_nodes = _get(node, FIELDS)
    if not isinstance(field_nodes, list):
        raise _fail(f"cannot parse struct fields from non-array: {field_nodes!r}")
    return StructType(tuple(_field_from_dict(field_node) for field_node in field_nodes))


def _field_from_dict(node: Any) -> NestedField:
    if not isinstance(node, dict):
        raise _fail(f"cannot parse struct field from non-object: {node!r}")
    _check_keys(node, _FIELD_KEYS)

    field_id = _get_int(node, ID)
    name = _get_string(node, NAME)
    field_type = type_from_dict(_get(node, TYPE))
    default = decode_default(node[DEFAULT], field_type) if DEFAULT in node else None
    doc = _get_string(node, DOC) if DOC in node else None
    return NestedField(field_id, name, field_type, _get_bool(node, REQUIRED), default, doc)


def _list_from_dict(node: dict[str, Any]) -> ListType:
    _check_keys(node, _LIST_KEYS)
    element_id = _get_int(node, ELEMENT_ID)
    element_type = type_from_dict(_get(node, ELEMENT))
    element_required = _get_bool(node, ELEMENT_REQUIRED)
    return ListType(NestedField(element_id, ELEMENT, element_type, element_required))


def _map_from_dict(node: dict[str, Any]) -> MapType:
    _check_keys(node, _MAP_KEYS)
    key_id = _get_int(node, KEY_ID)
    key_type = type_from_dict(_get(node, KEY))
    value_id = _get_int(node, VALUE_ID)
    value_type = type_from_dict(_get(node, VALUE))
    value_required = _get_bool(node, VALUE_REQUIRED)
    return MapType(
        NestedField(key_id, KEY, key_type, True),
        NestedField(value_id, VALUE, value_type, value_required),
    )


def from_dict(node: Any) -> Schema:
    """Build a schema from the decoded JSON of its root struct.

    Raises:
        ParseError: If the document is malformed or not a struct.
        InvalidSchemaError: If the field tree is structurally invalid.
    """
    root = type_from_dict(node)
    if root.type_id != TypeID.STRUCT:
        raise _fail(f"cannot create schema, not a struct type: {root}")
    return Schema(root.fields)


def _parse(text: str) -> Schema:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise _fail(f"malformed JSON: {e}", e) from e
    schema = from_dict(document)
    logger.debug("parsed schema with %d top-level fields", len(schema))
    return schema


def from_json(text: str, cache: SchemaCache | None = None) -> Schema:
    """Parse a schema from JSON text, memoized in ``cache`` when given.

    Args:
        text: The JSON document.
        cache: Optional caller-owned cache keyed by the exact text.

    Returns:
        The parsed Schema.

    Raises:
        ParseError: If the text is not a valid schema document.
        InvalidSchemaError: If the field tree is structurally invalid.
    """
    if not isinstance(text, str):
        raise _fail(f"expected JSON text, got {type(text).__name__}")
    if cache is None:
        return _parse(text)
    return cache.get_or_compute(text, _parse)
