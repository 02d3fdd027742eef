"""Test trigger condition parsing and evaluation"""

import pytest

from src.domain.exceptions import ConditionParseError
from src.domain.workflows import AllOf, LeafCondition, evaluate, parse_condition

INVOICE_EVENT = {
    "invoice": {"id": "inv-1", "total": 1500, "status": "Paid", "number": "INV-2024-007"},
    "client": {"name": "Acme Ltd", "tags": ["vip", "retainer"]},
    "flags": {"urgent": True, "note": None},
}


def leaf(field, operator, value):
    return {"field": field, "operator": operator, "value": value}


class TestParseCondition:
    def test_absent_conditions_parse_to_none(self):
        assert parse_condition(None) is None
        assert parse_condition("") is None
        assert parse_condition("null") is None

    def test_leaf_and_list_shapes(self):
        assert parse_condition(leaf("a", "equals", 1)) == LeafCondition("a", "equals", 1)
        assert parse_condition([leaf("a", "equals", 1), leaf("b", "less_than", 2)]) == AllOf(
            (LeafCondition("a", "equals", 1), LeafCondition("b", "less_than", 2))
        )

    def test_json_text_is_accepted(self):
        parsed = parse_condition('{"field": "invoice.total", "operator": "greater_than", "value": 10}')

        assert parsed == LeafCondition("invoice.total", "greater_than", 10)

    def test_malformed_json_raises(self):
        with pytest.raises(ConditionParseError):
            parse_condition("{not json")

    def test_scalar_is_not_a_condition(self):
        with pytest.raises(ConditionParseError):
            parse_condition(42)

    def test_non_leaf_object_matches_everything_unless_strict(self):
        assert parse_condition({"status": "Paid"}) == AllOf()

        with pytest.raises(ConditionParseError):
            parse_condition({"status": "Paid"}, strict=True)

    def test_strict_rejects_unknown_operator(self):
        assert parse_condition(leaf("a", "matches", "x")) == LeafCondition("a", "matches", "x")

        with pytest.raises(ConditionParseError):
            parse_condition(leaf("a", "matches", "x"), strict=True)

    def test_to_dict_round_trips_canonical_form(self):
        raw = [leaf("a", "equals", 1), [leaf("b", "contains", "x")]]

        assert parse_condition(raw).to_dict() == raw


class TestEvaluate:
    def test_absent_and_empty_conditions_match(self):
        assert evaluate(None, INVOICE_EVENT) is True
        assert evaluate([], INVOICE_EVENT) is True

    @pytest.mark.parametrize(
        "condition, expected",
        [
            (leaf("invoice.status", "equals", "Paid"), True),
            (leaf("invoice.status", "equals", "paid"), False),
            (leaf("invoice.total", "equals", 1500.0), True),
            (leaf("invoice.total", "equals", "1500"), False),
            (leaf("flags.urgent", "equals", 1), False),
            (leaf("flags.urgent", "equals", True), True),
            (leaf("flags.note", "equals", None), True),
            (leaf("invoice.missing", "equals", None), False),
            (leaf("invoice.status", "not_equals", "Draft"), True),
            (leaf("invoice.missing", "not_equals", "Draft"), True),
            (leaf("client.tags", "equals", ["vip", "retainer"]), False),
            (leaf("client", "equals", {"name": "Acme Ltd", "tags": ["vip", "retainer"]}), False),
            (leaf("client.tags", "not_equals", ["vip", "retainer"]), True),
        ],
    )
    def test_equality_is_strict(self, condition, expected):
        assert evaluate(condition, INVOICE_EVENT) is expected

    @pytest.mark.parametrize(
        "condition, expected",
        [
            (leaf("invoice.number", "contains", "2024"), True),
            (leaf("invoice.number", "starts_with", "INV-"), True),
            (leaf("invoice.number", "ends_with", "007"), True),
            (leaf("invoice.total", "starts_with", 15), True),
            (leaf("client.tags", "contains", "vip"), True),
            (leaf("invoice.missing", "contains", ""), False),
            (leaf("flags.note", "starts_with", "n"), False),
        ],
    )
    def test_string_operators(self, condition, expected):
        assert evaluate(condition, INVOICE_EVENT) is expected

    @pytest.mark.parametrize(
        "condition, expected",
        [
            (leaf("invoice.total", "greater_than", 1000), True),
            (leaf("invoice.total", "greater_than", "1499.5"), True),
            (leaf("invoice.total", "less_than", 1000), False),
            (leaf("invoice.status", "greater_than", 0), False),
            (leaf("invoice.missing", "less_than", 1), False),
            (leaf("flags.note", "less_than", 1), True),
        ],
    )
    def test_numeric_operators(self, condition, expected):
        assert evaluate(condition, INVOICE_EVENT) is expected

    def test_list_requires_every_condition(self):
        conditions = [
            leaf("invoice.total", "greater_than", 1000),
            leaf("client.name", "starts_with", "Acme"),
        ]
        assert evaluate(conditions, INVOICE_EVENT) is True

        conditions.append(leaf("invoice.status", "equals", "Draft"))
        assert evaluate(conditions, INVOICE_EVENT) is False

    def test_nested_lists_are_conjunctions(self):
        conditions = [leaf("invoice.total", "greater_than", 1000), [leaf("client.name", "equals", "Other")]]

        assert evaluate(conditions, INVOICE_EVENT) is False

    def test_list_index_paths(self):
        assert evaluate(leaf("client.tags.1", "equals", "retainer"), INVOICE_EVENT) is True
        assert evaluate(leaf("client.tags.5", "equals", "retainer"), INVOICE_EVENT) is False

    def test_unknown_operator_is_permissive(self):
        assert evaluate(leaf("invoice.status", "matches_regex", "^P"), INVOICE_EVENT) is True

    def test_malformed_conditions_never_match(self):
        assert evaluate("{broken", INVOICE_EVENT) is False
        assert evaluate(7, INVOICE_EVENT) is False

    def test_non_dict_event_data(self):
        assert evaluate(leaf("a.b", "equals", 1), None) is False
        assert evaluate(leaf("a", "equals", 1), ["not", "a", "dict"]) is False
