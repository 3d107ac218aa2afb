# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Node Configs - typed schemas for ``node.data.config``.

Every node type has exactly one config schema, registered in
NODE_CONFIG_SCHEMAS. Graph validation parses each node's config through
its schema so malformed definitions fail before a run starts.
"""

from typing import Any, Dict, Optional, Type

from pydantic import AliasChoices, ConfigDict, Field, model_validator

from agentflow.schema import CamelModel
from .models import NodeType, WorkflowDefinition, WorkflowNode


class NodeConfig(CamelModel):
    """Base for node configs; unknown keys are tolerated"""
    model_config = ConfigDict(extra="allow", frozen=True)


class StartConfig(NodeConfig):
    """Entry marker. Output is the run input."""
    pass


class ToolCallConfig(NodeConfig):
    """
    Invoke a registered tool.

    Example:
        {
            "toolId": "get_weather",
            "parameterValues": {"city": "{{input.city}}"},
            "retries": 2
        }
    """
    tool_id: str = Field(min_length=1)
    parameter_values: Dict[str, Any] = Field(default_factory=dict)
    retries: Optional[int] = Field(default=None, ge=0)


class ConditionConfig(NodeConfig):
    """
    Evaluate a predicate. Outgoing edges labelled "true"/"false" are
    selected by the result.

    Example:
        {"expression": "get_weather.tempC > 15"}
    """
    expression: str = Field(
        default="true",
        validation_alias=AliasChoices("expression", "condition"),
    )


class TransformConfig(NodeConfig):
    """
    Compute a dict from existing variables.

    Example:
        {
            "assignments": {"tempF": "weather.tempC * 9 / 5 + 32"},
            "template": {"summary": "It is {{weather.tempC}}C in {{input.city}}"}
        }
    """
    assignments: Dict[str, str] = Field(default_factory=dict)
    template: Optional[Any] = None


class SubWorkflowConfig(NodeConfig):
    """
    Run a nested workflow, inline or from the workflow repository.

    Example:
        {"workflowId": "enrich-lead", "input": {"email": "{{input.email}}"}}
    """
    workflow: Optional[WorkflowDefinition] = None
    workflow_id: Optional[str] = None
    input: Optional[Any] = None

    @model_validator(mode="after")
    def require_workflow(self):
        if self.workflow is None and not self.workflow_id:
            raise ValueError("sub-workflow requires 'workflow' or 'workflowId'")
        return self


class TerminalConfig(NodeConfig):
    """End of run. ``canonical`` terminals take precedence for the run output."""
    output: Optional[Any] = None
    canonical: bool = False


class LoopConfig(NodeConfig):
    """
    Repeat the body while ``condition`` holds.

    Example:
        {"condition": "iteration < 3", "maxIterations": 10}
    """
    condition: str = Field(
        default="false",
        validation_alias=AliasChoices("condition", "expression"),
    )
    max_iterations: Optional[int] = Field(default=None, ge=1)


NODE_CONFIG_SCHEMAS: Dict[NodeType, Type[NodeConfig]] = {
    NodeType.START: StartConfig,
    NodeType.TOOL_CALL: ToolCallConfig,
    NodeType.CONDITION: ConditionConfig,
    NodeType.TRANSFORM: TransformConfig,
    NodeType.SUB_WORKFLOW: SubWorkflowConfig,
    NodeType.TERMINAL: TerminalConfig,
    NodeType.LOOP: LoopConfig,
}


def parse_node_config(node: WorkflowNode) -> NodeConfig:
    """
    Parse ``node.data.config`` with the schema registered for its type.

    Raises:
        pydantic.ValidationError: If the config does not match
    """
    schema = NODE_CONFIG_SCHEMAS[node.type]
    return schema.model_validate(node.config)
