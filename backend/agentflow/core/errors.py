# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
API-level errors for the definition services and routes.

Engine errors (workflow validation, tool and step failures) live in
``agentflow.workflow.exceptions`` and ``agentflow.tools.exceptions``; the
classes here describe what went wrong with a request against stored
workflows, tools and executions. Routes turn them into
``HTTPException(status_code, detail=error.to_dict())``.
"""

from typing import Optional


class AgentFlowError(Exception):
    """Base for request errors; carries the HTTP status to answer with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Response body shared with the engine's validation errors."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(AgentFlowError):
    """No stored workflow, tool or execution under the given id."""

    status_code = 404

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource, "id": identifier, **(details or {})},
        )
        self.resource = resource
        self.identifier = identifier


class ValidationError(AgentFlowError):
    """Malformed id or definition body."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        extra = {"field": field} if field else {}
        super().__init__(message, details={**extra, **(details or {})})
        self.field = field


class ConflictError(AgentFlowError):
    """A definition with the same id is already stored."""

    status_code = 409

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        extra = {"resource": resource} if resource else {}
        super().__init__(message, details={**extra, **(details or {})})
        self.resource = resource
