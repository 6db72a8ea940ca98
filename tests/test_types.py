"""Type system tests."""

import pytest

from pytableexpr._errors import InvalidSchemaError, ParseError
from pytableexpr.types import (
    BOOLEAN,
    DOUBLE,
    INTEGER,
    LONG,
    STRING,
    TIMESTAMPTZ,
    DecimalType,
    FixedType,
    ListType,
    MapType,
    NestedField,
    PrimitiveType,
    StructType,
    TypeID,
    from_primitive_string,
    list_of,
    map_of,
    optional,
    required,
)


class TestPrimitiveTypes:
    @pytest.mark.parametrize("text,expected", [
        ("boolean", BOOLEAN),
        ("int", INTEGER),
        ("long", LONG),
        ("double", DOUBLE),
        ("string", STRING),
        ("timestamptz", TIMESTAMPTZ),
        ("decimal(9,2)", DecimalType(9, 2)),
        ("fixed[16]", FixedType(16)),
    ])
    def test_canonical_string_round_trip(self, text, expected):
        assert from_primitive_string(text) == expected
        assert expected.canonical_string() == text

    def test_parse_tolerates_whitespace_and_case(self):
        assert from_primitive_string(" Decimal( 9 , 2 ) ") == DecimalType(9, 2)
        assert from_primitive_string("LONG") == LONG

    @pytest.mark.parametrize("text", ["varchar", "decimal(9)", "fixed[]", "list", "struct", ""])
    def test_parse_rejects_unknown(self, text):
        with pytest.raises(ParseError):
            from_primitive_string(text)

    def test_equality_is_structural(self):
        assert DecimalType(10, 3) == DecimalType(10, 3)
        assert DecimalType(10, 3) != DecimalType(10, 2)
        assert hash(FixedType(8)) == hash(FixedType(8))

    def test_type_id_and_kind(self):
        assert INTEGER.type_id == TypeID.INTEGER
        assert INTEGER.is_primitive
        assert not INTEGER.is_nested
        assert DecimalType(5, 0).type_id == TypeID.DECIMAL

    @pytest.mark.parametrize("precision,scale", [(0, 0), (39, 2), (5, 6), (5, -1)])
    def test_decimal_rejects_bad_parameters(self, precision, scale):
        with pytest.raises(InvalidSchemaError):
            DecimalType(precision, scale)

    def test_fixed_rejects_zero_length(self):
        with pytest.raises(InvalidSchemaError):
            FixedType(0)

    def test_primitive_rejects_parameterized_kind(self):
        with pytest.raises(InvalidSchemaError):
            PrimitiveType(TypeID.DECIMAL)
        with pytest.raises(InvalidSchemaError):
            PrimitiveType(TypeID.STRUCT)


class TestNestedField:
    def test_required_and_optional_helpers(self):
        assert required(1, "a", INTEGER).required
        assert optional(1, "a", INTEGER).optional

    def test_rejects_negative_id(self):
        with pytest.raises(InvalidSchemaError):
            NestedField(-1, "a", INTEGER)

    def test_rejects_id_beyond_int32(self):
        NestedField(2**31 - 1, "a", INTEGER)
        with pytest.raises(InvalidSchemaError):
            NestedField(2**31, "a", INTEGER)

    def test_default_stored_normalized(self):
        assert NestedField(1, "tags", list_of(2, STRING), default=("x", "y")).default == ["x", "y"]
        assert NestedField(1, "d", DOUBLE, default=2).default == 2.0

    def test_default_must_match_type(self):
        with pytest.raises(InvalidSchemaError):
            NestedField(1, "a", INTEGER, default="seven")

    def test_rejects_empty_name(self):
        with pytest.raises(InvalidSchemaError):
            NestedField(1, "", INTEGER)

    def test_rejects_non_type(self):
        with pytest.raises(InvalidSchemaError):
            NestedField(1, "a", "int")

    def test_default_excluded_from_hash(self):
        with_default = NestedField(1, "tags", list_of(2, STRING), default=["x"])
        assert hash(with_default) == hash(NestedField(1, "tags", list_of(2, STRING)))

    def test_typed_default(self):
        member = NestedField(1, "a", INTEGER, default=5)
        assert member.typed_default.type == INTEGER
        assert member.typed_default.value == 5
        assert NestedField(2, "b", INTEGER).typed_default is None

    def test_str(self):
        assert str(NestedField(1, "a", INTEGER, required=True, doc="count")) == "1: a: required int (count)"


class TestNestedTypes:
    def test_struct_lookup(self):
        struct = StructType((NestedField(1, "a", INTEGER), NestedField(2, "B", STRING)))
        assert struct.field(2).name == "B"
        assert struct.field(3) is None
        assert struct.field_by_name("b") is None
        assert struct.field_by_name("b", case_sensitive=False).field_id == 2

    def test_struct_rejects_duplicate_ids(self):
        with pytest.raises(InvalidSchemaError):
            StructType((NestedField(1, "a", INTEGER), NestedField(1, "b", INTEGER)))

    def test_struct_rejects_duplicate_names(self):
        with pytest.raises(InvalidSchemaError):
            StructType((NestedField(1, "a", INTEGER), NestedField(2, "a", INTEGER)))

    def test_list_of(self):
        tags = list_of(3, STRING, element_required=False)
        assert isinstance(tags, ListType)
        assert tags.element_id == 3
        assert tags.element_type == STRING
        assert not tags.element_required
        assert tags.is_nested

    def test_list_element_must_be_named_element(self):
        with pytest.raises(InvalidSchemaError):
            ListType(NestedField(3, "item", STRING))

    def test_map_of(self):
        props = map_of(4, STRING, 5, LONG, value_required=False)
        assert isinstance(props, MapType)
        assert props.key_id == 4
        assert props.value_type == LONG
        assert not props.value_required
        assert [f.name for f in props.fields] == ["key", "value"]

    def test_map_key_must_be_primitive(self):
        with pytest.raises(InvalidSchemaError):
            map_of(4, list_of(5, STRING), 6, LONG)

    def test_map_rejects_same_key_and_value_id(self):
        with pytest.raises(InvalidSchemaError):
            map_of(4, STRING, 4, LONG)

    def test_nested_equality(self):
        assert list_of(1, map_of(2, STRING, 3, INTEGER)) == list_of(1, map_of(2, STRING, 3, INTEGER))
        assert list_of(1, STRING) != list_of(1, STRING, element_required=False)
