# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution API Routes

Run history and cancellation.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from agentflow.core.dependencies import (
    PaginationParams,
    get_pagination_params,
    get_run_store,
    get_workflow_engine,
)
from agentflow.core.errors import NotFoundError

router = APIRouter(prefix="/executions", tags=["executions"])


@router.get("")
async def list_executions(
    workflow_id: Optional[str] = None,
    status: Optional[str] = None,
    pagination: PaginationParams = Depends(get_pagination_params),
    store=Depends(get_run_store),
) -> List[Dict[str, Any]]:
    """List runs, newest first"""
    return await store.list(
        workflow_id=workflow_id,
        status=status,
        limit=pagination.limit,
        offset=pagination.skip,
    )


@router.get("/statistics")
async def get_statistics(store=Depends(get_run_store)) -> Dict[str, Any]:
    """Run counts and success rate"""
    return await store.get_statistics()


@router.get("/{execution_id}")
async def get_execution(
    execution_id: str,
    store=Depends(get_run_store),
) -> Dict[str, Any]:
    """Get a run record with its steps"""
    record = await store.get(execution_id)
    if record is None:
        raise HTTPException(status_code=404, detail=NotFoundError("Execution", execution_id).to_dict())
    return record


@router.post("/{execution_id}/cancel")
async def cancel_execution(
    execution_id: str,
    engine=Depends(get_workflow_engine),
) -> Dict[str, Any]:
    """Request cancellation of an active run"""
    if not engine.cancel(execution_id):
        raise HTTPException(
            status_code=404,
            detail=NotFoundError("Active execution", execution_id).to_dict()
        )
    return {"executionId": execution_id, "cancelled": True}
