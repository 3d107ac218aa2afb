# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the agentflow API.

Provides FastAPI dependencies for services built at startup and kept
on app.state.
"""

from fastapi import Request


def get_workflow_service(request: Request):
    """Get WorkflowService instance."""
    return request.app.state.workflow_service


def get_tool_service(request: Request):
    """Get ToolService instance."""
    return request.app.state.tool_service


def get_run_store(request: Request):
    """Get the run store backing execution history."""
    return request.app.state.run_store


def get_workflow_engine(request: Request):
    """Get WorkflowEngine instance."""
    return request.app.state.workflow_engine


# Pagination dependency
class PaginationParams:
    """Pagination parameters for list endpoints."""

    def __init__(self, skip: int = 0, limit: int = 100):
        self.skip = max(0, skip)
        self.limit = min(1000, max(1, limit))  # Cap at 1000


def get_pagination_params(
    skip: int = 0,
    limit: int = 100
) -> PaginationParams:
    """Get pagination parameters from query string."""
    return PaginationParams(skip=skip, limit=limit)
