# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Parameter binding - checks supplied values against a tool's declared
parameters before any request is attempted.
"""

import re
from typing import Any, Dict, List

from .models import Tool, ToolParameter
from .exceptions import InvalidParameters


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        # bool is an int subclass but never a number here
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "object":
        return isinstance(value, dict)
    if expected == "array":
        return isinstance(value, list)
    return True


def _validate_value(param: ToolParameter, value: Any) -> List[str]:
    """Return every violation of ``param``'s type and validation rules"""
    if not _matches_type(value, param.type):
        return [f"'{param.name}' must be of type {param.type}, got {type(value).__name__}"]

    rules = param.validation
    if rules is None:
        return []

    errors = []

    # min/max bound numbers by value, strings and arrays by length
    measured = value
    unit = ""
    if isinstance(value, (str, list)):
        measured = len(value)
        unit = " characters" if isinstance(value, str) else " items"

    if isinstance(measured, (int, float)) and not isinstance(measured, bool):
        if rules.min is not None and measured < rules.min:
            errors.append(f"'{param.name}' must be at least {rules.min:g}{unit}")
        if rules.max is not None and measured > rules.max:
            errors.append(f"'{param.name}' must be at most {rules.max:g}{unit}")

    if rules.pattern is not None and isinstance(value, str):
        try:
            if re.search(rules.pattern, value) is None:
                errors.append(f"'{param.name}' does not match pattern {rules.pattern!r}")
        except re.error as e:
            errors.append(f"'{param.name}' has an invalid pattern {rules.pattern!r}: {e}")

    if rules.enum is not None and value not in rules.enum:
        errors.append(f"'{param.name}' must be one of {rules.enum}")

    return errors


def bind_parameters(tool: Tool, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bind ``params`` to the tool's declared parameters.

    Applies ``defaultValue`` for absent parameters, then checks presence,
    type and validation rules. Undeclared parameters pass through unchanged.

    Args:
        tool: Tool definition
        params: Supplied parameter values (``None`` counts as absent)

    Returns:
        Bound parameters

    Raises:
        InvalidParameters: Listing every violation found
    """
    bound = {key: value for key, value in params.items() if value is not None}
    errors = []

    for param in tool.config.parameters:
        if param.name not in bound and param.default_value is not None:
            bound[param.name] = param.default_value

        if param.name not in bound:
            if param.required:
                errors.append(f"missing required parameter '{param.name}'")
            continue

        errors.extend(_validate_value(param, bound[param.name]))

    if errors:
        raise InvalidParameters(tool.id, errors)

    return bound
