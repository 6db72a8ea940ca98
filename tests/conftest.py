"""Shared test fixtures."""

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from pytableexpr.cache import SchemaCache
from pytableexpr.schema import Schema
from pytableexpr.types import (
    BINARY,
    BOOLEAN,
    DATE,
    DOUBLE,
    FLOAT,
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


@pytest.fixture
def simple_schema():
    return Schema([
        NestedField(1, "a", INTEGER, required=True),
        NestedField(2, "b", STRING),
    ])


@pytest.fixture
def table_schema():
    return Schema([
        NestedField(1, "id", LONG, required=True),
        NestedField(2, "name", STRING),
        NestedField(3, "score", DOUBLE),
        NestedField(4, "ratio", FLOAT),
        NestedField(5, "count", INTEGER),
        NestedField(6, "price", DecimalType(9, 2)),
        NestedField(7, "active", BOOLEAN),
        NestedField(8, "born", DATE),
        NestedField(9, "seen_at", TIMESTAMP),
        NestedField(10, "key", UUID),
        NestedField(11, "location", StructType((
            NestedField(12, "lat", DOUBLE, required=True),
            NestedField(13, "city", STRING),
        ))),
        NestedField(14, "tags", list_of(15, STRING)),
        NestedField(16, "props", map_of(17, STRING, 18, STRING)),
    ])


@pytest.fixture
def deep_schema():
    """Struct, list and map nesting three levels deep with typed defaults."""
    return Schema([
        NestedField(1, "id", LONG, required=True, doc="primary key"),
        NestedField(2, "amount", DecimalType(38, 10), default=Decimal("12.3400000000")),
        NestedField(3, "digest", FixedType(4), default=b"\x00\x01\xfe\xff"),
        NestedField(4, "uid", UUID, default=uuid.UUID("f79c3e09-677c-4bbd-a479-3f349cb785e7")),
        NestedField(5, "flag", BOOLEAN, default=True),
        NestedField(6, "small", INTEGER, default=-7),
        NestedField(7, "ratio", FLOAT, default=1.5),
        NestedField(8, "day", DATE, default=date(2024, 2, 29)),
        NestedField(9, "clock", TIME, default=time(23, 59, 59, 123456)),
        NestedField(10, "at", TIMESTAMP, default=datetime(2024, 1, 2, 3, 4, 5, 6)),
        NestedField(11, "at_tz", TIMESTAMPTZ, default=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        NestedField(12, "blob", BINARY, default=b"raw bytes"),
        NestedField(13, "label", STRING, default="hello \"world\""),
        NestedField(14, "events", list_of(15, StructType((
            NestedField(16, "kind", STRING, required=True),
            NestedField(17, "attrs", map_of(18, STRING, 19, list_of(20, LONG), value_required=False)),
        )))),
        NestedField(21, "tags", list_of(22, STRING), default=["x", "y"]),
        NestedField(23, "point", StructType((
            NestedField(24, "x", DOUBLE, required=True),
            NestedField(25, "y", DOUBLE, required=True),
        )), default={"x": 1.0, "y": -2.5}),
        NestedField(26, "weights", map_of(27, STRING, 28, DOUBLE), default={"a": 0.5, "b": 2.0}),
    ], schema_id=3)


@pytest.fixture
def cache():
    return SchemaCache()
