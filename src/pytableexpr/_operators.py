"""CEL relation rules mapped to predicate operations."""

from pytableexpr.expressions import Operation

# Lark relation rule name -> predicate operation
COMPARISON_OPERATIONS: dict[str, Operation] = {
    "relation_eq": Operation.EQ,
    "relation_ne": Operation.NOT_EQ,
    "relation_lt": Operation.LT,
    "relation_le": Operation.LT_EQ,
    "relation_gt": Operation.GT,
    "relation_ge": Operation.GT_EQ,
}

# Relations that compare against null as is_null / not_null
NULL_AWARE_RELATIONS = {"relation_eq", "relation_ne"}

# Receiver methods that become string predicates
STRING_METHODS: dict[str, Operation] = {
    "startsWith": Operation.STARTS_WITH,
}
