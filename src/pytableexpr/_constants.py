"""Limits and defaults for schema handling and filter parsing."""

DEFAULT_MAX_RECURSION_DEPTH = 100
"""Maximum filter parse-tree visit depth (CWE-674 prevention)."""

DEFAULT_SCHEMA_CACHE_SIZE = 128
"""Default number of parsed schemas a SchemaCache keeps."""

MAX_DECIMAL_PRECISION = 38
"""Largest precision a decimal type may declare."""

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

FLOAT32_MAX = 3.4028234663852886e38
"""Largest finite single-precision value."""
