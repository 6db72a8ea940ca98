"""Type-directed value handling shared by defaults, literals and evaluation."""

from __future__ import annotations

import math
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

from pytableexpr._constants import (
    FLOAT32_MAX,
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    MAX_DECIMAL_PRECISION,
)
from pytableexpr._errors import ERR_MSG_INVALID_LITERAL, InvalidLiteralError
from pytableexpr.types import (
    FLOATING_TYPE_IDS,
    DecimalType,
    FixedType,
    ListType,
    MapType,
    StructType,
    Type,
    TypeID,
)

EPOCH = datetime(1970, 1, 1)
EPOCH_DATE = date(1970, 1, 1)

_DECIMAL_CONTEXT = Context(prec=MAX_DECIMAL_PRECISION + 1)

_INT_RANGES = {
    TypeID.INTEGER: (INT32_MIN, INT32_MAX),
    TypeID.LONG: (INT64_MIN, INT64_MAX),
}


@dataclass(frozen=True)
class TypedValue:
    """A native value tagged with the type it conforms to."""

    type: Type
    value: Any

    def __str__(self) -> str:
        return repr(self.value)


class _Bound:
    """Marker for a literal outside the range of the target type."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


ABOVE_MAX = _Bound("ABOVE_MAX")
BELOW_MIN = _Bound("BELOW_MIN")


def _fail(value: Any, field_type: Type, reason: str = "") -> InvalidLiteralError:
    detail = f"cannot convert {value!r} to {_type_name(field_type)}"
    if reason:
        detail += f": {reason}"
    return InvalidLiteralError(ERR_MSG_INVALID_LITERAL, detail)


def _type_name(field_type: Type) -> str:
    return str(field_type) if field_type.is_primitive else str(field_type.type_id)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_decimal(value: Decimal, decimal_type: DecimalType, rounding: bool = False) -> Decimal:
    quantum = Decimal(1).scaleb(-decimal_type.scale)
    if not value.is_finite():
        raise _fail(value, decimal_type, "not a finite number")
    exponent = value.as_tuple().exponent
    if not rounding and isinstance(exponent, int) and -exponent > decimal_type.scale:
        raise _fail(value, decimal_type, f"scale exceeds {decimal_type.scale}")
    try:
        result = value.quantize(quantum, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT)
    except InvalidOperation as e:
        raise _fail(value, decimal_type, "cannot be quantized") from e
    if len(result.as_tuple().digits) > decimal_type.precision:
        raise _fail(value, decimal_type, f"precision exceeds {decimal_type.precision}")
    return result


def _micros_to_time(micros: int) -> time:
    if not 0 <= micros < 86_400_000_000:
        raise ValueError(f"time of day out of range: {micros}")
    return (datetime.min + timedelta(microseconds=micros)).time()


def parse_timestamp(text: str, with_zone: bool) -> datetime:
    parsed = datetime.fromisoformat(text)
    if with_zone:
        if parsed.tzinfo is None:
            raise ValueError(f"timestamptz value has no zone offset: {text!r}")
        return parsed.astimezone(timezone.utc)
    if parsed.tzinfo is not None:
        raise ValueError(f"timestamp value must not carry a zone offset: {text!r}")
    return parsed


def coerce_literal(value: Any, field_type: Type) -> Any:
    """Convert a predicate literal to the native value for ``field_type``.

    Numeric literals outside the range of int, long or float columns come
    back as :data:`ABOVE_MAX` or :data:`BELOW_MIN` so callers can fold the
    predicate to a constant.

    Raises:
        InvalidLiteralError: If the literal cannot represent a value of the type.
    """
    type_id = field_type.type_id
    if value is None:
        raise _fail(value, field_type, "null is not a literal")

    if type_id == TypeID.BOOLEAN:
        if isinstance(value, bool):
            return value

    elif type_id in (TypeID.INTEGER, TypeID.LONG):
        if _is_int(value):
            low, high = _INT_RANGES[type_id]
            if value > high:
                return ABOVE_MAX
            if value < low:
                return BELOW_MIN
            return value

    elif type_id == TypeID.FLOAT:
        if _is_number(value):
            number = float(value)
            if number > FLOAT32_MAX and not math.isinf(number):
                return ABOVE_MAX
            if number < -FLOAT32_MAX and not math.isinf(number):
                return BELOW_MIN
            return number

    elif type_id == TypeID.DOUBLE:
        if _is_number(value):
            return float(value)

    elif type_id == TypeID.DECIMAL:
        if isinstance(value, Decimal):
            return _to_decimal(value, field_type)
        if _is_int(value):
            return _to_decimal(Decimal(value), field_type)
        if isinstance(value, float):
            return _to_decimal(Decimal(repr(value)), field_type, rounding=True)
        if isinstance(value, str):
            try:
                return _to_decimal(Decimal(value.strip()), field_type)
            except InvalidOperation as e:
                raise _fail(value, field_type, "not a decimal number") from e

    elif type_id == TypeID.DATE:
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if _is_int(value):
            return EPOCH_DATE + timedelta(days=value)
        if isinstance(value, str):
            try:
                return date.fromisoformat(value)
            except ValueError as e:
                raise _fail(value, field_type, str(e)) from e

    elif type_id == TypeID.TIME:
        if isinstance(value, time) and value.tzinfo is None:
            return value
        if _is_int(value):
            try:
                return _micros_to_time(value)
            except ValueError as e:
                raise _fail(value, field_type, str(e)) from e
        if isinstance(value, str):
            try:
                parsed = time.fromisoformat(value)
            except ValueError as e:
                raise _fail(value, field_type, str(e)) from e
            if parsed.tzinfo is not None:
                raise _fail(value, field_type, "time values carry no zone")
            return parsed

    elif type_id in (TypeID.TIMESTAMP, TypeID.TIMESTAMPTZ):
        with_zone = type_id == TypeID.TIMESTAMPTZ
        if isinstance(value, datetime):
            if with_zone and value.tzinfo is not None:
                return value.astimezone(timezone.utc)
            if not with_zone and value.tzinfo is None:
                return value
            raise _fail(value, field_type, "zone does not match the column type")
        if _is_int(value):
            result = EPOCH + timedelta(microseconds=value)
            return result.replace(tzinfo=timezone.utc) if with_zone else result
        if isinstance(value, str):
            try:
                return parse_timestamp(value, with_zone)
            except ValueError as e:
                raise _fail(value, field_type, str(e)) from e

    elif type_id == TypeID.STRING:
        if isinstance(value, str):
            return value

    elif type_id == TypeID.UUID:
        if isinstance(value, uuid.UUID):
            return value
        if isinstance(value, str):
            try:
                return uuid.UUID(value)
            except ValueError as e:
                raise _fail(value, field_type, str(e)) from e

    elif type_id == TypeID.FIXED:
        if isinstance(value, (bytes, bytearray)):
            assert isinstance(field_type, FixedType)
            if len(value) != field_type.length:
                raise _fail(value, field_type, f"expected {field_type.length} bytes, got {len(value)}")
            return bytes(value)

    elif type_id == TypeID.BINARY:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)

    raise _fail(value, field_type)


def validate_value(value: Any, field_type: Type) -> Any:
    """Check that ``value`` has the native shape of ``field_type``.

    Used for default values, which must already be in native form. Ints
    are widened for float and double; everything else must match exactly.
    Returns the normalized value.

    Raises:
        InvalidLiteralError: On any shape mismatch.
    """
    type_id = field_type.type_id

    if type_id == TypeID.STRUCT:
        assert isinstance(field_type, StructType)
        if not isinstance(value, Mapping):
            raise _fail(value, field_type, "expected a mapping")
        result: dict[str, Any] = {}
        for key in value:
            if field_type.field_by_name(key) is None:
                raise _fail(value, field_type, f"unknown struct member '{key}'")
        for member in field_type.fields:
            if member.name in value and value[member.name] is not None:
                result[member.name] = validate_value(value[member.name], member.field_type)
            elif member.required:
                raise _fail(value, field_type, f"missing required member '{member.name}'")
        return result

    if type_id == TypeID.LIST:
        assert isinstance(field_type, ListType)
        if not isinstance(value, (list, tuple)):
            raise _fail(value, field_type, "expected a sequence")
        return [_validate_member(item, field_type.element_type, field_type.element_required)
                for item in value]

    if type_id == TypeID.MAP:
        assert isinstance(field_type, MapType)
        if not isinstance(value, Mapping):
            raise _fail(value, field_type, "expected a mapping")
        return {
            validate_value(key, field_type.key_type): _validate_member(
                item, field_type.value_type, field_type.value_required
            )
            for key, item in value.items()
        }

    if value is None:
        raise _fail(value, field_type, "null is not a value")
    if type_id in FLOATING_TYPE_IDS:
        if _is_number(value):
            return float(value)
        raise _fail(value, field_type)
    if type_id == TypeID.DECIMAL and not isinstance(value, Decimal):
        raise _fail(value, field_type, "expected a Decimal")
    if type_id in (TypeID.DATE, TypeID.TIME, TypeID.TIMESTAMP, TypeID.TIMESTAMPTZ, TypeID.UUID) and isinstance(value, (str, int)):
        raise _fail(value, field_type, "expected a native value, not text or a number")
    converted = coerce_literal(value, field_type)
    if converted is ABOVE_MAX or converted is BELOW_MIN:
        raise _fail(value, field_type, "out of range")
    return converted


def _validate_member(value: Any, field_type: Type, member_required: bool) -> Any:
    if value is None:
        if member_required:
            raise _fail(value, field_type, "null in a required position")
        return None
    return validate_value(value, field_type)


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def compare(field_type: Type, left: Any, right: Any) -> int:
    """Three-way comparison of two values of ``field_type``.

    Nulls sort first. For float and double, NaN sorts last and equals
    itself. UUIDs compare by their bytes; everything else uses the natural
    ordering of the native value.
    """
    if left is None or right is None:
        if left is None and right is None:
            return 0
        return -1 if left is None else 1

    type_id = field_type.type_id
    if type_id in FLOATING_TYPE_IDS:
        left_nan, right_nan = _is_nan(left), _is_nan(right)
        if left_nan or right_nan:
            if left_nan and right_nan:
                return 0
            return 1 if left_nan else -1
    elif type_id == TypeID.UUID:
        left, right = left.bytes, right.bytes

    if left < right:
        return -1
    if left > right:
        return 1
    return 0
