# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for workflow models
"""

import pytest
from pydantic import ValidationError

from agentflow.tools import ExecutionStatus
from agentflow.workflow.models import (
    ExecutionResult,
    ExecutionStep,
    NodeType,
    RunSettings,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
    WorkflowRunRequest,
)


def test_node_type_aliases():
    assert WorkflowNode(id="a", type="Tool").type == NodeType.TOOL_CALL
    assert WorkflowNode(id="b", type="end").type == NodeType.TERMINAL
    assert WorkflowNode(id="c", type="sub_workflow").type == NodeType.SUB_WORKFLOW


def test_node_is_immutable():
    node = WorkflowNode(id="a", type="start")
    with pytest.raises(ValidationError):
        node.id = "b"


def test_node_keeps_unknown_keys():
    node = WorkflowNode.model_validate({
        "id": "a",
        "type": "start",
        "position": {"x": 10, "y": 20},
        "data": {"label": "Start", "color": "green"},
    })

    wire = node.to_wire()
    assert wire["position"] == {"x": 10, "y": 20}
    assert wire["data"]["color"] == "green"


def test_edge_default_id():
    assert WorkflowEdge(source="a", target="b").id == "a->b"
    assert WorkflowEdge(id="e1", source="a", target="b").id == "e1"


def test_edge_condition_sources():
    assert WorkflowEdge(source="a", target="b", data={"condition": " x > 1 "}).condition == "x > 1"
    assert WorkflowEdge(source="a", target="b", data={"when": "true"}).condition == "true"
    assert WorkflowEdge.model_validate(
        {"source": "a", "target": "b", "sourceHandle": "on_failure"}
    ).condition == "on_failure"
    # Layout handles carry no branch meaning
    assert WorkflowEdge.model_validate(
        {"source": "a", "target": "b", "sourceHandle": "bottom"}
    ).condition is None


def test_settings_merge():
    base = RunSettings(timeout=30, parallelism=2, logging=False)
    override = RunSettings(parallelism=4)

    merged = override.merged_over(base)

    assert merged.timeout == 30
    assert merged.parallelism == 4
    assert merged.logging is False
    assert override.merged_over(None) is override


def test_settings_bounds():
    with pytest.raises(ValidationError):
        RunSettings(parallelism=0)
    with pytest.raises(ValidationError):
        RunSettings(timeout=0)


def test_definition_accepts_camel_case_settings():
    definition = WorkflowDefinition.model_validate({
        "nodes": [{"id": "s", "type": "start"}],
        "settings": {"maxNodeVisits": 10, "tolerateBranchFailures": True},
    })

    assert definition.settings.max_node_visits == 10
    assert definition.settings.tolerate_branch_failures is True
    assert definition.edges == []


def test_execution_result_wire_format():
    result = ExecutionResult(
        success=True,
        output={"tempC": 18},
        execution_time=12.5,
        execution_id="exec_20250101_120000_abcd1234",
        steps=[ExecutionStep(node_id="start", node_type="start", status=ExecutionStatus.COMPLETED)],
    )

    wire = result.to_wire()

    assert wire["executionTime"] == 12.5
    assert wire["executionId"] == "exec_20250101_120000_abcd1234"
    assert wire["steps"][0]["nodeId"] == "start"
    assert wire["steps"][0]["status"] == "completed"
    assert ExecutionResult.model_validate(wire) == result


def test_run_request_requires_workflow():
    with pytest.raises(ValidationError, match="workflowId"):
        WorkflowRunRequest(input={"city": "Paris"})

    request = WorkflowRunRequest.model_validate({"workflowId": "weather", "input": {"city": "Paris"}})
    assert request.workflow_id == "weather"
