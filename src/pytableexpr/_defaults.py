"""Wire encoding of field default values.

A default is always written as one JSON string. Primitive defaults use
their natural text form. Structured defaults are written as a typed JSON
document inside that string, so decoding is driven by the field type and
every leaf comes back with the shape it had.
"""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Any

from pytableexpr._errors import (
    ERR_MSG_INVALID_DEFAULT,
    InvalidLiteralError,
    ParseError,
)
from pytableexpr._values import parse_timestamp, validate_value
from pytableexpr.types import FLOATING_TYPE_IDS, Type, TypeID

MAP_KEYS = "keys"
MAP_VALUES = "values"

_TEXTUAL_TYPE_IDS = frozenset({
    TypeID.DECIMAL, TypeID.DATE, TypeID.TIME, TypeID.TIMESTAMP,
    TypeID.TIMESTAMPTZ, TypeID.STRING, TypeID.UUID,
})


def _parse_error(field_type: Type, detail: str, wrapped: Exception | None = None) -> ParseError:
    type_name = str(field_type) if field_type.is_primitive else str(field_type.type_id)
    return ParseError(ERR_MSG_INVALID_DEFAULT, f"default for {type_name}: {detail}", wrapped=wrapped)


# ---- Encoding ----

def encode_default(value: Any, field_type: Type) -> str:
    """Encode a native default value as its wire string."""
    if field_type.is_nested:
        return json.dumps(_to_json_value(value, field_type), separators=(",", ":"))
    if field_type.type_id in (TypeID.FIXED, TypeID.BINARY):
        return json.dumps(_encode_bytes(value))
    return _primitive_to_text(value, field_type)


def _primitive_to_text(value: Any, field_type: Type) -> str:
    type_id = field_type.type_id
    if type_id == TypeID.BOOLEAN:
        return "true" if value else "false"
    if type_id in FLOATING_TYPE_IDS:
        return repr(float(value))
    if type_id == TypeID.DECIMAL:
        return format(value, "f")
    if type_id in (TypeID.DATE, TypeID.TIME, TypeID.TIMESTAMP, TypeID.TIMESTAMPTZ):
        return value.isoformat()
    if type_id in (TypeID.FIXED, TypeID.BINARY):
        return _encode_bytes(value)
    return str(value)


def _encode_bytes(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _to_json_value(value: Any, field_type: Type) -> Any:
    if value is None:
        return None
    type_id = field_type.type_id
    if type_id == TypeID.STRUCT:
        return {
            member.name: _to_json_value(value[member.name], member.field_type)
            for member in field_type.fields
            if member.name in value
        }
    if type_id == TypeID.LIST:
        return [_to_json_value(item, field_type.element_type) for item in value]
    if type_id == TypeID.MAP:
        keys = list(value)
        return {
            MAP_KEYS: [_to_json_value(key, field_type.key_type) for key in keys],
            MAP_VALUES: [_to_json_value(value[key], field_type.value_type) for key in keys],
        }
    if type_id == TypeID.BOOLEAN:
        return bool(value)
    if type_id in (TypeID.INTEGER, TypeID.LONG):
        return int(value)
    if type_id in FLOATING_TYPE_IDS:
        return float(value)
    return _primitive_to_text(value, field_type)


# ---- Decoding ----

def decode_default(text: Any, field_type: Type) -> Any:
    """Decode a wire default string into the native value for ``field_type``.

    Raises:
        ParseError: If the text is not a string or does not match the type.
    """
    if not isinstance(text, str):
        raise _parse_error(field_type, f"expected a string, got {text!r}")

    if field_type.is_nested:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise _parse_error(field_type, f"malformed JSON {text!r}", e) from e
        value = _from_json_value(document, field_type)
    elif field_type.type_id in (TypeID.FIXED, TypeID.BINARY):
        try:
            encoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise _parse_error(field_type, f"malformed JSON {text!r}", e) from e
        if not isinstance(encoded, str):
            raise _parse_error(field_type, f"expected a base64 JSON string, got {text!r}")
        value = _decode_bytes(encoded, field_type)
    else:
        value = _primitive_from_text(text, field_type)

    try:
        return validate_value(value, field_type)
    except InvalidLiteralError as e:
        raise _parse_error(field_type, e.internal(), e) from e


def _decode_bytes(text: str, field_type: Type) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise _parse_error(field_type, f"invalid base64 {text!r}", e) from e


def _primitive_from_text(text: str, field_type: Type) -> Any:
    type_id = field_type.type_id
    try:
        if type_id == TypeID.BOOLEAN:
            if text not in ("true", "false"):
                raise ValueError(f"not a boolean: {text!r}")
            return text == "true"
        if type_id in (TypeID.INTEGER, TypeID.LONG):
            return int(text)
        if type_id in FLOATING_TYPE_IDS:
            return float(text)
        if type_id == TypeID.DECIMAL:
            return Decimal(text)
        if type_id == TypeID.DATE:
            return date.fromisoformat(text)
        if type_id == TypeID.TIME:
            return time.fromisoformat(text)
        if type_id == TypeID.TIMESTAMP:
            return parse_timestamp(text, with_zone=False)
        if type_id == TypeID.TIMESTAMPTZ:
            return parse_timestamp(text, with_zone=True)
        if type_id == TypeID.UUID:
            return uuid.UUID(text)
        if type_id in (TypeID.FIXED, TypeID.BINARY):
            return _decode_bytes(text, field_type)
        if type_id == TypeID.STRING:
            return text
    except (ValueError, InvalidOperation) as e:
        raise _parse_error(field_type, f"cannot decode {text!r}", e) from e
    raise _parse_error(field_type, f"unsupported type {type_id}")


def _from_json_value(document: Any, field_type: Type) -> Any:
    if document is None:
        return None
    type_id = field_type.type_id

    if type_id == TypeID.STRUCT:
        if not isinstance(document, dict):
            raise _parse_error(field_type, f"expected an object, got {document!r}")
        result: dict[str, Any] = {}
        for name, item in document.items():
            member = field_type.field_by_name(name)
            if member is None:
                raise _parse_error(field_type, f"unknown struct member {name!r}")
            decoded = _from_json_value(item, member.field_type)
            if decoded is not None:
                result[name] = decoded
        return result

    if type_id == TypeID.LIST:
        if not isinstance(document, list):
            raise _parse_error(field_type, f"expected an array, got {document!r}")
        return [_from_json_value(item, field_type.element_type) for item in document]

    if type_id == TypeID.MAP:
        if (
            not isinstance(document, dict)
            or set(document) != {MAP_KEYS, MAP_VALUES}
            or not isinstance(document[MAP_KEYS], list)
            or not isinstance(document[MAP_VALUES], list)
            or len(document[MAP_KEYS]) != len(document[MAP_VALUES])
        ):
            raise _parse_error(field_type, f"expected parallel key and value arrays, got {document!r}")
        decoded_map = {
            _from_json_value(key, field_type.key_type): _from_json_value(item, field_type.value_type)
            for key, item in zip(document[MAP_KEYS], document[MAP_VALUES])
        }
        if len(decoded_map) < len(document[MAP_KEYS]):
            raise _parse_error(field_type, f"duplicate map keys in {document[MAP_KEYS]!r}")
        return decoded_map

    if type_id == TypeID.BOOLEAN:
        if not isinstance(document, bool):
            raise _parse_error(field_type, f"expected a JSON boolean, got {document!r}")
        return document
    if type_id in (TypeID.INTEGER, TypeID.LONG):
        if not isinstance(document, int) or isinstance(document, bool):
            raise _parse_error(field_type, f"expected a JSON integer, got {document!r}")
        return document
    if type_id in FLOATING_TYPE_IDS:
        if not isinstance(document, (int, float)) or isinstance(document, bool):
            raise _parse_error(field_type, f"expected a JSON number, got {document!r}")
        return float(document)
    if type_id in _TEXTUAL_TYPE_IDS or type_id in (TypeID.FIXED, TypeID.BINARY):
        if not isinstance(document, str):
            raise _parse_error(field_type, f"expected a JSON string, got {document!r}")
        return _primitive_from_text(document, field_type)

    raise _parse_error(field_type, f"unsupported type {type_id}")
