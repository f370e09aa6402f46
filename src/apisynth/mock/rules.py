"""Field rules and custom templates shared by both mock data generators."""

from __future__ import annotations

import copy
from typing import Any, Optional, Sequence

from apisynth.models import MockDataOptions, MockRule


def find_matching_rule(
    field_name: str, schema: Any, rules: Sequence[MockRule]
) -> tuple[bool, Any]:
    """Apply the first rule matching *field_name*.

    Returns:
        ``(True, value)`` when a rule matched, where *value* is what the
        rule's generator produced (which may itself be ``None``), else
        ``(False, None)``.
    """
    for rule in rules:
        if rule.matches(field_name):
            return True, rule.generate(field_name, schema)
    return False, None


def find_template(name: Optional[str], options: MockDataOptions) -> tuple[bool, Any]:
    """Look up a custom template by name.

    The template is deep-copied so callers may mutate the result.
    """
    if not name or name not in options.custom_templates:
        return False, None
    return True, copy.deepcopy(options.custom_templates[name])
