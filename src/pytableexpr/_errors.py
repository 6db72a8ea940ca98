"""Exception hierarchy for schema and expression handling."""


class TableExprError(Exception):
    """Base exception for schema, binding and evaluation errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging (CWE-209 prevention).
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class InvalidSchemaError(TableExprError):
    """Raised when a type or schema is structurally invalid."""


class ParseError(TableExprError):
    """Raised when a JSON document or filter string cannot be parsed."""


class InvalidReferenceError(TableExprError):
    """Raised when a predicate names a column absent from the schema."""


class InvalidPredicateError(TableExprError):
    """Raised when a predicate cannot be built or bound."""


class MissingValueError(TableExprError):
    """Raised when a row has no value for a required field."""


class InvalidLiteralError(TableExprError):
    """Raised when a value cannot be converted to a type."""


class UnsupportedExpressionError(TableExprError):
    """Raised when a filter expression has no predicate equivalent."""


class MaxDepthExceededError(TableExprError):
    """Raised when recursion depth limit is exceeded."""


# Sanitized user-facing error message constants
ERR_MSG_INVALID_SCHEMA = "invalid schema"
ERR_MSG_INVALID_TYPE = "invalid type"
ERR_MSG_INVALID_DEFAULT = "invalid default value"
ERR_MSG_PARSE_FAILED = "cannot parse schema"
ERR_MSG_FILTER_PARSE_FAILED = "cannot parse filter expression"
ERR_MSG_UNKNOWN_COLUMN = "column not found in schema"
ERR_MSG_INVALID_PREDICATE = "invalid predicate"
ERR_MSG_INVALID_LITERAL = "literal does not match column type"
ERR_MSG_MISSING_VALUE = "row is missing a required value"
ERR_MSG_UNSUPPORTED_EXPRESSION = "unsupported expression type"
