"""Dot-path lookups and value coercion shared by conditions and templates."""

import json
import math
from typing import Any, Final


class _Missing:
    """Sentinel for a path that does not resolve (distinct from an explicit null)."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


def get_nested_value(data: Any, path: str) -> Any:
    """
    Resolve a dot-separated path against nested dicts and lists.

    Missing intermediate keys yield MISSING instead of raising. Numeric
    segments index into lists, so "items.0.name" reads the first item.
    """
    current = data
    for key in path.split("."):
        if isinstance(current, dict):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, list | tuple) and key.lstrip("-").isdigit():
            index = int(key)
            if index < 0 or index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def to_display_string(value: Any) -> str:
    """String form used for template output and string comparisons."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


def to_number(value: Any) -> float:
    """
    Numeric coercion for ordering comparisons.

    Null, empty strings and booleans coerce the way JSON-ish loose typing
    expects (0, 0, 0/1); anything unparseable becomes NaN so every
    comparison against it is False.
    """
    if value is MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan
