# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Exceptions

Custom exceptions for the workflow engine.
"""

from typing import Iterable, Optional


class WorkflowException(Exception):
    """Base exception for the workflow engine"""
    pass


class WorkflowValidationError(WorkflowException):
    """Workflow validation failed - the run never starts"""
    def __init__(self, message: str, field: str = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "field": self.field,
        }


class GraphCycleError(WorkflowValidationError):
    """Cycle through node types without loop semantics"""
    def __init__(self, nodes: Iterable[str]):
        self.nodes = sorted(nodes)
        super().__init__(
            f"Cycle detected through nodes without loop semantics: {self.nodes}",
            field="edges"
        )


class MissingEntryError(WorkflowValidationError):
    """No entry node could be determined"""
    pass


class SchedulerError(WorkflowException):
    """Run-level failure raised while scheduling"""
    pass


class LoopLimitExceeded(SchedulerError):
    """A node was visited more often than its visit cap allows"""
    def __init__(self, node_id: str, limit: int):
        self.node_id = node_id
        self.limit = limit
        super().__init__(f"Node '{node_id}' exceeded its visit limit ({limit})")


class RunTimeoutError(SchedulerError):
    """Run exceeded settings.timeout"""
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Run exceeded timeout ({timeout}s)")


class StepError(WorkflowException):
    """Node execution failed inside the step executor"""
    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        self.message = message
        super().__init__(message)


class TransformError(StepError):
    """Malformed expression in a transform node"""
    pass


class ConditionError(StepError):
    """Condition, loop or edge predicate could not be evaluated"""
    pass


class SubWorkflowError(StepError):
    """Nested workflow failed or could not be resolved"""
    def __init__(self, node_id: str, message: str, execution_id: Optional[str] = None):
        self.execution_id = execution_id
        super().__init__(node_id, message)
