# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Engine

Graph model, validation, step execution and scheduling.
"""

from .models import (
    ExecutionResult,
    ExecutionStep,
    NodeType,
    RunSettings,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
    WorkflowRunRequest,
)
from .exceptions import (
    ConditionError,
    GraphCycleError,
    LoopLimitExceeded,
    MissingEntryError,
    RunTimeoutError,
    StepError,
    SubWorkflowError,
    TransformError,
    WorkflowException,
    WorkflowValidationError,
)
from .context import ExecutionContext
from .validation import ValidatedGraph, validate_workflow
from .steps import StepExecutor, StepOutcome
from .executor import WorkflowExecutor
from .engine import WorkflowEngine

__all__ = [
    "ExecutionResult",
    "ExecutionStep",
    "NodeType",
    "RunSettings",
    "WorkflowDefinition",
    "WorkflowEdge",
    "WorkflowNode",
    "WorkflowRunRequest",
    "ConditionError",
    "GraphCycleError",
    "LoopLimitExceeded",
    "MissingEntryError",
    "RunTimeoutError",
    "StepError",
    "SubWorkflowError",
    "TransformError",
    "WorkflowException",
    "WorkflowValidationError",
    "ExecutionContext",
    "ValidatedGraph",
    "validate_workflow",
    "StepExecutor",
    "StepOutcome",
    "WorkflowExecutor",
    "WorkflowEngine",
]
