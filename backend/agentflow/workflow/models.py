# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for workflow definitions and execution records.
Field names on the wire are camelCase (see CamelModel).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from agentflow.schema import CamelModel
from agentflow.tools.models import ExecutionStatus, ToolExecution


class NodeType(str, Enum):
    """
    Supported workflow node types (closed set).

    Control:
        START - Entry marker, passes the run input through
        TERMINAL - Marks the end of the run, its input becomes the output
        CONDITION - Evaluates a predicate, selects outgoing edges
        LOOP - Repeats its body while a predicate holds

    Work:
        TOOL_CALL - Invoke an external tool
        TRANSFORM - Compute new variables from existing ones
        SUB_WORKFLOW - Run a nested workflow
    """
    START = "start"
    TOOL_CALL = "tool-call"
    CONDITION = "condition"
    TRANSFORM = "transform"
    SUB_WORKFLOW = "sub-workflow"
    TERMINAL = "terminal"
    LOOP = "loop"


# Node types allowed on a cycle
LOOP_CAPABLE_TYPES = frozenset({NodeType.CONDITION, NodeType.LOOP})

# Names used by the dashboard's node palette
NODE_TYPE_ALIASES = {
    "tool": NodeType.TOOL_CALL,
    "tool_call": NodeType.TOOL_CALL,
    "end": NodeType.TERMINAL,
    "rule": NodeType.CONDITION,
    "subworkflow": NodeType.SUB_WORKFLOW,
    "sub_workflow": NodeType.SUB_WORKFLOW,
}

# Source handles with branch meaning; any other handle id is layout only
BRANCH_HANDLES = frozenset({
    "success", "on_success", "always",
    "failure", "on_failure", "error", "on_error",
    "true", "false", "body", "exit",
})


# ============================================================================
# Definition Models
# ============================================================================

class NodeData(CamelModel):
    """Node payload; unknown keys are kept as authored"""
    model_config = ConfigDict(extra="allow", frozen=True)

    label: str = ""
    config: Optional[Dict[str, Any]] = None
    description: Optional[str] = None


class WorkflowNode(CamelModel):
    """Single node in a workflow - never mutated during execution"""
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    type: NodeType
    data: NodeData = Field(default_factory=NodeData)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return NODE_TYPE_ALIASES.get(v.strip().lower(), v.strip().lower())
        return v

    @property
    def config(self) -> Dict[str, Any]:
        return self.data.config or {}


class WorkflowEdge(CamelModel):
    """Directed connection between nodes, optionally conditional"""
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = ""
    source: str
    target: str
    type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    source_handle: Optional[str] = None

    @model_validator(mode="after")
    def default_id(self):
        if not self.id:
            # Frozen model: bypass __setattr__ for the derived default
            object.__setattr__(self, "id", f"{self.source}->{self.target}")
        return self

    @property
    def condition(self) -> Optional[str]:
        """Branch condition from ``data.condition``/``data.when``, else a branch source handle"""
        if self.data:
            for key in ("condition", "when"):
                value = self.data.get(key)
                if value is not None and value != "":
                    return str(value).strip()
        if self.source_handle and self.source_handle.strip().lower() in BRANCH_HANDLES:
            return self.source_handle.strip()
        return None


class RunSettings(CamelModel):
    """
    Run settings. Used both as ``WorkflowDefinition.settings`` and as the
    per-submission override; unset fields fall back to the definition, then
    to the engine configuration.
    """
    model_config = ConfigDict(extra="allow")

    timeout: Optional[float] = Field(default=None, gt=0)  # Seconds, whole run
    retries: Optional[int] = Field(default=None, ge=0)  # Tool retries when a tool sets none
    parallelism: Optional[int] = Field(default=None, ge=1)
    logging: Optional[bool] = None
    max_node_visits: Optional[int] = Field(default=None, ge=1)
    tolerate_branch_failures: Optional[bool] = None
    record_terminal_steps: Optional[bool] = None

    def merged_over(self, base: Optional["RunSettings"]) -> "RunSettings":
        """Return settings where this instance's set fields override ``base``"""
        if base is None:
            return self
        merged = base.model_dump(exclude_none=True)
        merged.update(self.model_dump(exclude_none=True))
        return RunSettings(**merged)


class WorkflowDefinition(CamelModel):
    """Complete workflow definition - immutable once execution starts"""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)
    settings: RunSettings = Field(default_factory=RunSettings)


# ============================================================================
# Execution Models
# ============================================================================

class ExecutionStep(CamelModel):
    """
    Record of one node visit: pending -> running -> completed|failed.
    Times are epoch milliseconds.
    """
    node_id: str
    node_type: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    tool_execution: Optional[ToolExecution] = None


class ExecutionResult(CamelModel):
    """Terminal artifact of a run; ``steps`` are in completion order"""
    success: bool = False
    output: Any = None
    error: Optional[str] = None
    execution_time: float = 0.0  # Milliseconds
    steps: List[ExecutionStep] = Field(default_factory=list)
    execution_id: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class WorkflowRunRequest(CamelModel):
    """Request to run a workflow - inline definition or stored id"""
    workflow: Optional[WorkflowDefinition] = None
    workflow_id: Optional[str] = None
    input: Any = None
    settings: Optional[RunSettings] = None
    agent_id: Optional[str] = None
    user_id: Optional[str] = None

    @model_validator(mode="after")
    def require_workflow(self):
        if self.workflow is None and not self.workflow_id:
            raise ValueError("Either 'workflow' or 'workflowId' is required")
        return self
