# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool API Routes

Tool definition storage.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from agentflow.core.dependencies import get_tool_service
from agentflow.core.errors import AgentFlowError
from agentflow.services.tool_service import ToolService

router = APIRouter(prefix="/tools", tags=["tools"])


@router.get("")
async def list_tools(
    service: ToolService = Depends(get_tool_service)
) -> List[Dict[str, Any]]:
    """List all tool definitions"""
    return await service.list_tools()


@router.post("")
async def create_tool(
    tool_data: Dict[str, Any],
    service: ToolService = Depends(get_tool_service)
) -> Dict[str, Any]:
    """Create a new tool definition"""
    try:
        return await service.create_tool(tool_data)
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/{tool_id}")
async def get_tool(
    tool_id: str,
    service: ToolService = Depends(get_tool_service)
) -> Dict[str, Any]:
    """Get a specific tool definition"""
    try:
        return await service.get_tool_data(tool_id)
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.delete("/{tool_id}")
async def delete_tool(
    tool_id: str,
    service: ToolService = Depends(get_tool_service)
) -> Dict[str, str]:
    """Delete a tool definition"""
    try:
        return await service.delete_tool(tool_id)
    except AgentFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
