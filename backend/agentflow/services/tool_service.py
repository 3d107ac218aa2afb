# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Service

Stores tool definitions and serves as the engine's tool registry.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from agentflow.core.errors import ConflictError, NotFoundError, ValidationError
from agentflow.core.logging import get_service_logger
from agentflow.schema import utc_now_iso
from agentflow.tools import Tool, ToolNotFoundError
from agentflow.workflow.validation import format_pydantic_error
from .workflow_service import ID_PATTERN

logger = get_service_logger("tools")


class ToolService:
    """
    Manages tool definitions (one JSON file per tool).

    ``get_tool`` raises ToolNotFoundError so a missing tool fails the
    tool-call step rather than the request.
    """

    def __init__(self, tools_dir: Path):
        self.tools_dir = Path(tools_dir)
        self.tools_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"ToolService initialized with directory: {self.tools_dir}")

    def _path(self, tool_id: str) -> Path:
        if not ID_PATTERN.match(tool_id or ""):
            raise ValidationError(f"Invalid tool id: {tool_id!r}", field="id")
        return self.tools_dir / f"{tool_id}.json"

    async def list_tools(self) -> List[Dict[str, Any]]:
        """List all tool definitions"""
        tools = []
        for file in sorted(self.tools_dir.glob("*.json")):
            try:
                tools.append(Tool.model_validate_json(file.read_text()).to_wire())
            except Exception as e:
                logger.warning(f"Skipping invalid tool file {file.name}: {e}")
        return tools

    async def get_tool(self, tool_id: str) -> Tool:
        """Registry lookup used by tool-call nodes"""
        try:
            file_path = self._path(tool_id)
        except ValidationError:
            raise ToolNotFoundError(tool_id)
        if not file_path.exists():
            raise ToolNotFoundError(tool_id)
        return Tool.model_validate_json(file_path.read_text())

    async def get_tool_data(self, tool_id: str) -> Dict[str, Any]:
        """Tool definition for API responses"""
        try:
            tool = await self.get_tool(tool_id)
        except ToolNotFoundError:
            raise NotFoundError("Tool", tool_id)
        return tool.to_wire()

    async def create_tool(self, tool_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new tool definition"""
        try:
            tool = Tool.model_validate(tool_data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid tool definition: {format_pydantic_error(e)}")

        file_path = self._path(tool.id)
        if file_path.exists():
            raise ConflictError(f"Tool '{tool.id}' already exists", resource="Tool")

        now = utc_now_iso()
        tool = tool.model_copy(update={"created_at": now, "updated_at": now})
        file_path.write_text(json.dumps(tool.to_wire(), indent=2))

        logger.info(f"Created tool: {tool.id}")
        return tool.to_wire()

    async def delete_tool(self, tool_id: str) -> Dict[str, str]:
        """Delete a tool definition"""
        file_path = self._path(tool_id)

        if not file_path.exists():
            raise NotFoundError("Tool", tool_id)

        file_path.unlink()

        logger.info(f"Deleted tool: {tool_id}")
        return {"message": f"Tool '{tool_id}' deleted"}
