# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Template references - resolve ``{{ path }}`` placeholders against the
variables bag of a run.

    "{{input.city}}"            -> variables["input"]["city"] (raw value)
    "{{get-weather.tempC}}"     -> output of node "get-weather", key "tempC"
    "Weather in {{input.city}}" -> string interpolation
"""

import json
import re
from typing import Any, Dict

TEMPLATE_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")


def get_nested_value(obj: Any, path: str) -> Any:
    """Get nested value using dot notation (numeric parts index lists)."""
    current = obj
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            return None
    return current


def resolve_reference(ref: str, variables: Dict[str, Any]) -> Any:
    """
    Resolve a single reference like ``node-id.key.sub``.

    The longest dotted prefix naming a variable wins, so variable names may
    themselves contain dots.
    """
    ref = ref.strip()
    if ref in variables:
        return variables[ref]

    parts = ref.split(".")
    for split in range(len(parts) - 1, 0, -1):
        head = ".".join(parts[:split])
        if head in variables:
            return get_nested_value(variables[head], ".".join(parts[split:]))
    return None


def render(value: Any, variables: Dict[str, Any]) -> Any:
    """
    Render templates inside ``value`` (recursing into dicts and lists).

    A string that is exactly one reference resolves to the raw value;
    references embedded in text are interpolated, non-strings as JSON.
    """
    if isinstance(value, dict):
        return {key: render(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [render(item, variables) for item in value]
    if not isinstance(value, str):
        return value

    # Single reference: {{ref}}
    match = TEMPLATE_PATTERN.fullmatch(value.strip())
    if match:
        return resolve_reference(match.group(1), variables)

    # Embedded references: "text {{ref}} more text"
    def replace_ref(m):
        resolved = resolve_reference(m.group(1), variables)
        if isinstance(resolved, str):
            return resolved
        return json.dumps(resolved, default=str)

    return TEMPLATE_PATTERN.sub(replace_ref, value)
