"""Expression algebra tests."""

import pickle

import pytest

from pytableexpr._errors import InvalidPredicateError
from pytableexpr.expressions import (
    AlwaysFalse,
    AlwaysTrue,
    And,
    Not,
    Operation,
    Or,
    Reference,
    UnboundPredicate,
    always_false,
    always_true,
    and_,
    equal,
    greater_than,
    greater_than_or_equal,
    in_,
    is_nan,
    is_null,
    less_than,
    less_than_or_equal,
    not_,
    not_equal,
    not_in,
    not_nan,
    not_null,
    not_starts_with,
    or_,
    predicate,
    rewrite_not,
    starts_with,
)


class TestOperation:
    @pytest.mark.parametrize("op", [op for op in Operation if op != Operation.NOT])
    def test_negate_is_involution(self, op):
        assert op.negate().negate() == op

    def test_not_has_no_negation(self):
        with pytest.raises(InvalidPredicateError):
            Operation.NOT.negate()

    @pytest.mark.parametrize("op,flipped", [
        (Operation.LT, Operation.GT),
        (Operation.LT_EQ, Operation.GT_EQ),
        (Operation.EQ, Operation.EQ),
    ])
    def test_flip(self, op, flipped):
        assert op.flip() == flipped

    def test_in_cannot_flip(self):
        with pytest.raises(InvalidPredicateError):
            Operation.IN.flip()


class TestConstants:
    def test_singletons(self):
        assert AlwaysTrue() is AlwaysTrue()
        assert always_false() is AlwaysFalse()

    def test_pickle_keeps_singleton(self):
        assert pickle.loads(pickle.dumps(AlwaysTrue())) is AlwaysTrue()

    def test_negation(self):
        assert not_(always_true()) is AlwaysFalse()
        assert ~always_false() is AlwaysTrue()


class TestFolding:
    def test_and_folds_constants(self):
        p = equal("a", 1)
        assert and_(p, always_true()) == p
        assert and_(always_true(), p) == p
        assert and_(p, always_false()) is AlwaysFalse()

    def test_or_folds_constants(self):
        p = equal("a", 1)
        assert or_(p, always_false()) == p
        assert or_(always_true(), p) is AlwaysTrue()

    def test_and_builds_node(self):
        p, q = equal("a", 1), equal("b", "x")
        assert and_(p, q) == And(p, q)
        assert (p & q) == And(p, q)
        assert (p | q) == Or(p, q)

    def test_balanced_tree_keeps_order(self):
        preds = [equal("a", i) for i in range(4)]
        assert and_(*preds) == And(And(preds[0], preds[1]), And(preds[2], preds[3]))

    def test_rejects_non_expression(self):
        with pytest.raises(InvalidPredicateError):
            and_(equal("a", 1), True)


class TestNegation:
    def test_predicate_negation(self):
        assert not_(less_than("a", 5)) == greater_than_or_equal("a", 5)
        assert not_(is_null("a")) == not_null("a")
        assert not_(is_nan("a")) == not_nan("a")
        assert not_(starts_with("b", "x")) == not_starts_with("b", "x")
        assert not_(in_("a", [1, 2])) == not_in("a", [1, 2])

    def test_de_morgan(self):
        p, q = equal("a", 1), less_than_or_equal("b", 2)
        assert not_(and_(p, q)) == or_(not_equal("a", 1), greater_than("b", 2))
        assert not_(or_(p, q)) == and_(not_equal("a", 1), greater_than("b", 2))

    def test_double_negation(self):
        expr = or_(and_(equal("a", 1), is_null("b")), less_than("c", 3))
        assert not_(not_(expr)) == expr

    def test_not_node_negates_to_child(self):
        p = equal("a", 1)
        assert Not(p).negate() == p

    def test_rewrite_not(self):
        p, q = equal("a", 1), equal("b", 2)
        expr = Not(And(p, Not(q)))
        assert rewrite_not(expr) == or_(not_equal("a", 1), equal("b", 2))


class TestSetPredicates:
    def test_empty_in_is_false(self):
        assert in_("a", []) is AlwaysFalse()
        assert not_in("a", []) is AlwaysTrue()

    def test_single_value_becomes_equality(self):
        assert in_("a", [3]) == equal("a", 3)
        assert not_in("a", [3, 3]) == not_equal("a", 3)

    def test_duplicates_removed_in_order(self):
        assert in_("a", [3, 1, 3, 2]).literals == (3, 1, 2)

    def test_unhashable_literals(self):
        with pytest.raises(InvalidPredicateError):
            in_("a", [[1], [2]])


class TestPredicateValidation:
    def test_null_literal_rejected(self):
        with pytest.raises(InvalidPredicateError):
            equal("a", None)
        with pytest.raises(InvalidPredicateError):
            in_("a", [1, None])

    def test_literal_count(self):
        with pytest.raises(InvalidPredicateError):
            UnboundPredicate(Operation.IS_NULL, Reference("a"), (1,))
        with pytest.raises(InvalidPredicateError):
            UnboundPredicate(Operation.EQ, Reference("a"))

    def test_empty_reference(self):
        with pytest.raises(InvalidPredicateError):
            equal("", 1)

    def test_compound_op_is_not_a_predicate(self):
        with pytest.raises(InvalidPredicateError):
            UnboundPredicate(Operation.AND, Reference("a"))

    def test_string_term_becomes_reference(self):
        assert UnboundPredicate("eq", "a", (1,)).term == Reference("a")


class TestPredicateFactory:
    @pytest.mark.parametrize("symbol,op", [
        ("=", Operation.EQ),
        ("==", Operation.EQ),
        ("!=", Operation.NOT_EQ),
        ("<>", Operation.NOT_EQ),
        ("<", Operation.LT),
        ("<=", Operation.LT_EQ),
        (">", Operation.GT),
        (">=", Operation.GT_EQ),
        ("starts-with", Operation.STARTS_WITH),
        (Operation.GT, Operation.GT),
    ])
    def test_symbols(self, symbol, op):
        assert predicate(symbol, "a", 1).op == op

    def test_set_operation_normalizes(self):
        assert predicate("in", "a", 1) == equal("a", 1)
        assert predicate("not-in", "a") is AlwaysTrue()

    def test_unknown_operation(self):
        with pytest.raises(InvalidPredicateError):
            predicate("~=", "a", 1)

    def test_str(self):
        assert str(and_(equal("a", 1), is_null("b"))) == "(a eq 1 and is-null(b))"
