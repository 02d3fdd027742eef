"""Pure workflow rules: condition trees and template placeholders."""

from src.domain.workflows.conditions import (AllOf, Condition, LeafCondition,
                                             evaluate, parse_condition)
from src.domain.workflows.paths import MISSING, get_nested_value
from src.domain.workflows.templates import resolve_templates

__all__ = [
    "AllOf",
    "Condition",
    "LeafCondition",
    "MISSING",
    "evaluate",
    "get_nested_value",
    "parse_condition",
    "resolve_templates",
]
