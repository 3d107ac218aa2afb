# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow API Routes

CRUD operations, validation and execution for workflows.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from agentflow.core.dependencies import get_workflow_service
from agentflow.core.errors import AgentFlowError, NotFoundError
from agentflow.services.workflow_service import WorkflowService
from agentflow.workflow.exceptions import WorkflowValidationError
from agentflow.workflow.models import WorkflowRunRequest

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.get("")
async def list_workflows(
    service: WorkflowService = Depends(get_workflow_service)
) -> List[Dict[str, Any]]:
    """List all stored workflows"""
    return await service.list_workflows()


@router.post("")
async def create_workflow(
    workflow_data: Dict[str, Any],
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Create a new workflow definition"""
    try:
        return await service.create_workflow(workflow_data)
    except WorkflowValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/validate")
async def validate_workflow(
    workflow_data: Dict[str, Any],
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Validate a workflow definition without storing it"""
    try:
        return await service.check_workflow(workflow_data)
    except WorkflowValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())


@router.post("/run")
async def run_workflow(
    request: WorkflowRunRequest,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Execute an inline workflow or a stored one by workflowId"""
    try:
        result = await service.run_workflow(request)
    except WorkflowValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return result.to_wire()


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Get a specific workflow definition"""
    try:
        return await service.get_workflow(workflow_id)
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.put("/{workflow_id}")
async def update_workflow(
    workflow_id: str,
    workflow_data: Dict[str, Any],
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Update an existing workflow definition"""
    try:
        return await service.update_workflow(workflow_id, workflow_data)
    except WorkflowValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, str]:
    """Delete a workflow definition"""
    try:
        return await service.delete_workflow(workflow_id)
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
