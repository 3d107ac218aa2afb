# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for tool parameter binding
"""

import pytest

from agentflow.tools import InvalidParameters, Tool, ToolConfig, ToolParameter
from agentflow.tools.parameters import bind_parameters


def tool_with(*parameters):
    return Tool(id="t", name="T", config=ToolConfig(parameters=list(parameters)))


def test_defaults_fill_absent_values():
    tool = tool_with(ToolParameter(name="units", default_value="metric"))

    assert bind_parameters(tool, {}) == {"units": "metric"}
    assert bind_parameters(tool, {"units": "imperial"}) == {"units": "imperial"}


def test_none_counts_as_absent():
    tool = tool_with(ToolParameter(name="city", required=True))

    with pytest.raises(InvalidParameters, match="missing required parameter 'city'"):
        bind_parameters(tool, {"city": None})


def test_undeclared_parameters_pass_through():
    tool = tool_with(ToolParameter(name="city"))

    assert bind_parameters(tool, {"city": "Paris", "lang": "fr"}) == {"city": "Paris", "lang": "fr"}


def test_type_checks():
    tool = tool_with(
        ToolParameter(name="count", type="number"),
        ToolParameter(name="flag", type="boolean"),
        ToolParameter(name="opts", type="object"),
        ToolParameter(name="ids", type="array"),
    )

    assert bind_parameters(tool, {"count": 2.5, "flag": False, "opts": {}, "ids": [1]})

    with pytest.raises(InvalidParameters) as exc_info:
        bind_parameters(tool, {"count": True, "flag": "yes", "opts": [], "ids": {}})

    assert exc_info.value.errors == [
        "'count' must be of type number, got bool",
        "'flag' must be of type boolean, got str",
        "'opts' must be of type object, got list",
        "'ids' must be of type array, got dict",
    ]


def test_validation_rules():
    tool = tool_with(
        ToolParameter.model_validate({"name": "age", "type": "number", "validation": {"min": 0, "max": 120}}),
        ToolParameter.model_validate({"name": "code", "validation": {"pattern": "^[A-Z]{3}$", "max": 3}}),
        ToolParameter.model_validate({"name": "units", "validation": {"enum": ["metric", "imperial"]}}),
    )

    assert bind_parameters(tool, {"age": 30, "code": "CDG", "units": "metric"})

    with pytest.raises(InvalidParameters) as exc_info:
        bind_parameters(tool, {"age": 130, "code": "paris", "units": "kelvin"})

    assert exc_info.value.errors == [
        "'age' must be at most 120",
        "'code' must be at most 3 characters",
        "'code' does not match pattern '^[A-Z]{3}$'",
        "'units' must be one of ['metric', 'imperial']",
    ]


def test_all_violations_are_reported_together():
    tool = tool_with(
        ToolParameter(name="a", required=True),
        ToolParameter(name="b", required=True),
    )

    with pytest.raises(InvalidParameters) as exc_info:
        bind_parameters(tool, {})

    assert str(exc_info.value) == (
        "Invalid parameters for tool 't': missing required parameter 'a'; missing required parameter 'b'"
    )
