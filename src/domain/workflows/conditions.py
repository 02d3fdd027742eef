"""
Trigger condition trees.

A condition is either a leaf comparison or a conjunction of conditions:

    {"field": "invoice.total", "operator": "greater_than", "value": 1000}
    [{"field": "status", "operator": "equals", "value": "Paid"}, {...}]

Stored JSON is parsed into `LeafCondition` / `AllOf` so that evaluation
works on a closed set of node types. Absent conditions always match.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, TypeAlias

from src.domain.enums import ConditionOperator
from src.domain.exceptions import ConditionParseError
from src.domain.workflows.paths import (MISSING, get_nested_value,
                                        to_display_string, to_number)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeafCondition:
    """Single comparison of the value at `field` (dot-path) against `value`."""

    field: str
    operator: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass(frozen=True)
class AllOf:
    """Conjunction: every child must hold. An empty conjunction holds."""

    conditions: tuple["Condition", ...] = ()

    def to_dict(self) -> list[Any]:
        return [condition.to_dict() for condition in self.conditions]


Condition: TypeAlias = LeafCondition | AllOf


def parse_condition(raw: Any, *, strict: bool = False) -> Condition | None:
    """
    Parse stored trigger conditions into a condition tree.

    Args:
        raw: None, a JSON string, a leaf dict or a list of conditions
        strict: Reject shapes the evaluator would silently treat as
            "always match" (objects that are not leaves, unknown operators).
            Used when validating definitions on write.

    Returns:
        The parsed tree, or None when there are no conditions

    Raises:
        ConditionParseError: If the input is not a valid condition shape
    """
    if raw is None:
        return None

    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConditionParseError(f"malformed JSON ({e.msg})") from e
        if raw is None:
            return None

    return _parse_node(raw, strict)


def _parse_node(node: Any, strict: bool) -> Condition:
    if isinstance(node, list):
        return AllOf(tuple(_parse_node(child, strict) for child in node))

    if node is None:
        if strict:
            raise ConditionParseError("null is not a condition")
        return AllOf()

    if not isinstance(node, dict):
        raise ConditionParseError(f"expected an object or array, got {type(node).__name__}")

    field = node.get("field")
    operator = node.get("operator")
    if field and operator and "value" in node:
        if strict and operator not in ConditionOperator.values():
            raise ConditionParseError(f"unknown operator '{operator}'")
        return LeafCondition(field=str(field), operator=str(operator), value=node["value"])

    if strict:
        raise ConditionParseError("condition objects need 'field', 'operator' and 'value'")
    # Non-leaf objects match everything
    return AllOf()


def evaluate(condition: Any, event_data: Any) -> bool:
    """
    Evaluate a condition tree (or raw stored conditions) against event data.

    Never raises: missing fields and type mismatches evaluate to False for
    the affected comparison, malformed raw conditions evaluate to False.
    """
    if condition is None:
        return True

    if not isinstance(condition, LeafCondition | AllOf):
        try:
            condition = parse_condition(condition)
        except ConditionParseError as e:
            logger.warning("Condition evaluation failed: %s", e.message)
            return False
        if condition is None:
            return True

    if isinstance(condition, AllOf):
        return all(evaluate(child, event_data) for child in condition.conditions)

    try:
        return _evaluate_leaf(condition, event_data)
    except Exception:
        logger.exception("Error evaluating condition on field '%s'", condition.field)
        return False


def _evaluate_leaf(condition: LeafCondition, event_data: Any) -> bool:
    actual = get_nested_value(event_data, condition.field)
    expected = condition.value

    if condition.operator == ConditionOperator.EQUALS:
        return _strictly_equal(actual, expected)
    if condition.operator == ConditionOperator.NOT_EQUALS:
        return not _strictly_equal(actual, expected)
    if condition.operator == ConditionOperator.CONTAINS:
        return _is_present(actual) and to_display_string(expected) in to_display_string(actual)
    if condition.operator == ConditionOperator.STARTS_WITH:
        return _is_present(actual) and to_display_string(actual).startswith(
            to_display_string(expected)
        )
    if condition.operator == ConditionOperator.ENDS_WITH:
        return _is_present(actual) and to_display_string(actual).endswith(
            to_display_string(expected)
        )
    if condition.operator == ConditionOperator.GREATER_THAN:
        return to_number(actual) > to_number(expected)
    if condition.operator == ConditionOperator.LESS_THAN:
        return to_number(actual) < to_number(expected)

    # Unknown operators are permissive
    return True


def _is_present(value: Any) -> bool:
    return value is not MISSING and value is not None


def _strictly_equal(actual: Any, expected: Any) -> bool:
    """
    Equality without cross-type coercion ("1" != 1, True != 1).

    Objects and arrays are never equal, even to an identical literal; only
    scalars can be compared with equals/not_equals.
    """
    if actual is MISSING:
        return False
    if isinstance(actual, dict | list) or isinstance(expected, dict | list):
        return False
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if isinstance(actual, int | float) and isinstance(expected, int | float):
        return actual == expected
    return type(actual) is type(expected) and actual == expected
