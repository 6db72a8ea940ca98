"""Default value wire encoding tests."""

import json
import math
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from pytableexpr._defaults import decode_default, encode_default
from pytableexpr._errors import ParseError
from pytableexpr.schema import Schema
from pytableexpr.schema_parser import from_json, to_dict, to_json
from pytableexpr.types import (
    BINARY,
    BOOLEAN,
    DATE,
    DOUBLE,
    INTEGER,
    LONG,
    STRING,
    TIME,
    TIMESTAMP,
    TIMESTAMPTZ,
    UUID,
    DecimalType,
    FixedType,
    NestedField,
    StructType,
    list_of,
    map_of,
)


class TestListDefault:
    def test_list_of_strings_keeps_elements(self):
        schema = Schema([NestedField(5, "tags", list_of(6, STRING), default=["x", "y"])])
        parsed = from_json(to_json(schema))
        assert parsed.find_field(5).default == ["x", "y"]

    def test_list_default_is_one_json_string(self):
        schema = Schema([NestedField(5, "tags", list_of(6, STRING), default=["x", "y"])])
        assert to_dict(schema)["fields"][0]["default"] == '["x","y"]'

    def test_string_elements_that_look_like_json(self):
        field_type = list_of(6, STRING)
        value = ["[1,2]", '{"a":1}', "x,y"]
        assert decode_default(encode_default(value, field_type), field_type) == value


class TestPrimitiveEncoding:
    @pytest.mark.parametrize("value,field_type,text", [
        (True, BOOLEAN, "true"),
        (False, BOOLEAN, "false"),
        (42, INTEGER, "42"),
        (-(2**63), LONG, "-9223372036854775808"),
        (1.5, DOUBLE, "1.5"),
        (Decimal("12.30"), DecimalType(5, 2), "12.30"),
        (date(2024, 2, 29), DATE, "2024-02-29"),
        (time(1, 2, 3), TIME, "01:02:03"),
        (datetime(2024, 1, 2, 3, 4, 5), TIMESTAMP, "2024-01-02T03:04:05"),
        (uuid.UUID("f79c3e09-677c-4bbd-a479-3f349cb785e7"), UUID, "f79c3e09-677c-4bbd-a479-3f349cb785e7"),
        ("plain text", STRING, "plain text"),
    ])
    def test_encode_and_decode(self, value, field_type, text):
        assert encode_default(value, field_type) == text
        assert decode_default(text, field_type) == value

    def test_binary_is_base64_json_string(self):
        text = encode_default(b"\x00\xff", BINARY)
        assert json.loads(text) == "AP8="
        assert decode_default(text, BINARY) == b"\x00\xff"

    def test_fixed_length_checked(self):
        with pytest.raises(ParseError):
            decode_default(encode_default(b"abc", BINARY), FixedType(4))

    def test_timestamptz_normalized_to_utc(self):
        decoded = decode_default("2024-01-02T05:04:05+02:00", TIMESTAMPTZ)
        assert decoded == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert decoded.utcoffset().total_seconds() == 0

    def test_nan_default(self):
        assert math.isnan(decode_default(encode_default(float("nan"), DOUBLE), DOUBLE))


class TestStructuredEncoding:
    def test_map_uses_parallel_arrays(self):
        field_type = map_of(1, STRING, 2, LONG)
        text = encode_default({"a": 1, "b": 2}, field_type)
        assert json.loads(text) == {"keys": ["a", "b"], "values": [1, 2]}

    def test_struct_with_optional_member_missing(self):
        field_type = StructType((
            NestedField(1, "x", INTEGER, required=True),
            NestedField(2, "label", STRING),
        ))
        assert decode_default(encode_default({"x": 1}, field_type), field_type) == {"x": 1}

    def test_nested_leaves_keep_their_types(self):
        field_type = list_of(1, StructType((
            NestedField(2, "when", DATE, required=True),
            NestedField(3, "amount", DecimalType(9, 2), required=True),
        )))
        value = [{"when": date(2020, 1, 1), "amount": Decimal("1.50")}]
        assert decode_default(encode_default(value, field_type), field_type) == value


class TestDecodeFailures:
    @pytest.mark.parametrize("text,field_type", [
        ("yes", BOOLEAN),
        ("1.5", INTEGER),
        ("2147483648", INTEGER),
        ("12.345", DecimalType(5, 2)),
        ("2024-13-01", DATE),
        ("2024-01-02T03:04:05", TIMESTAMPTZ),
        ("not-a-uuid", UUID),
        ('"not base64!"', BINARY),
        ('"x"', list_of(1, STRING)),
        ("[1]", list_of(1, STRING)),
        ('{"keys":["a"]}', map_of(1, STRING, 2, LONG)),
        ('{"keys":["a"],"values":[1,2]}', map_of(1, STRING, 2, LONG)),
        ('{"keys":["a","a"],"values":[1,2]}', map_of(1, STRING, 2, LONG)),
        ('{"z":1}', StructType((NestedField(1, "x", INTEGER),))),
        ("[", list_of(1, STRING)),
    ])
    def test_mismatch_is_parse_error(self, text, field_type):
        with pytest.raises(ParseError):
            decode_default(text, field_type)

    def test_missing_required_struct_member(self):
        field_type = StructType((NestedField(1, "x", INTEGER, required=True),))
        with pytest.raises(ParseError):
            decode_default("{}", field_type)
