"""
Template placeholders in action configuration.

Strings may reference the triggering event's payload with
``{{trigger.path.to.field}}``. Unresolvable placeholders are left verbatim
so misconfiguration stays visible in whatever the action produces.
"""

import re
from typing import Any

from src.domain.workflows.paths import MISSING, get_nested_value, to_display_string

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
TRIGGER_PREFIX = "trigger."


def resolve_templates(config: Any, event_data: Any) -> Any:
    """
    Return a copy of `config` with every placeholder in every string replaced.

    Dicts and lists are rebuilt recursively; other values pass through.
    The input is never modified.
    """
    if isinstance(config, str):
        return _resolve_string(config, event_data)
    if isinstance(config, list):
        return [resolve_templates(item, event_data) for item in config]
    if isinstance(config, tuple):
        return tuple(resolve_templates(item, event_data) for item in config)
    if isinstance(config, dict):
        return {key: resolve_templates(value, event_data) for key, value in config.items()}
    return config


def _resolve_string(text: str, event_data: Any) -> str:
    if "{{" not in text:
        return text

    def substitute(match: re.Match[str]) -> str:
        path = match.group(1).strip()
        if not path.startswith(TRIGGER_PREFIX):
            return match.group(0)
        value = get_nested_value(event_data, path[len(TRIGGER_PREFIX):])
        if value is MISSING:
            return match.group(0)
        return to_display_string(value)

    return PLACEHOLDER_PATTERN.sub(substitute, text)

