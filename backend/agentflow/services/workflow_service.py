# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Service

Manages workflow definitions and run submission.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from agentflow.core.errors import ConflictError, NotFoundError, ValidationError
from agentflow.core.logging import get_service_logger
from agentflow.workflow.engine import WorkflowEngine
from agentflow.workflow.models import ExecutionResult, WorkflowDefinition, WorkflowRunRequest
from agentflow.workflow.validation import validate_workflow

logger = get_service_logger("workflows")

ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class WorkflowService:
    """
    Manages workflow definitions and execution.

    Responsibilities:
    - CRUD operations for workflow definitions (one JSON file per workflow)
    - Workflow repository for sub-workflow nodes
    - Run submission via WorkflowEngine
    """

    def __init__(self, workflows_dir: Path, engine: Optional[WorkflowEngine] = None):
        self.workflows_dir = Path(workflows_dir)
        self.workflows_dir.mkdir(parents=True, exist_ok=True)
        self.engine = engine
        logger.info(f"WorkflowService initialized with directory: {self.workflows_dir}")

    def _path(self, workflow_id: str) -> Path:
        if not ID_PATTERN.match(workflow_id or ""):
            raise ValidationError(f"Invalid workflow id: {workflow_id!r}", field="id")
        return self.workflows_dir / f"{workflow_id}.json"

    async def list_workflows(self) -> List[Dict[str, Any]]:
        """List all workflow definitions"""
        workflows = []

        for file in sorted(self.workflows_dir.glob("*.json")):
            try:
                workflow_data = json.loads(file.read_text())
                workflows.append({
                    "id": workflow_data.get("id"),
                    "name": workflow_data.get("name"),
                    "description": workflow_data.get("description"),
                    "nodeCount": len(workflow_data.get("nodes", [])),
                    "filename": file.name
                })
            except Exception as e:
                logger.warning(f"Skipping invalid workflow file {file.name}: {e}")

        logger.info(f"Listed {len(workflows)} workflows")
        return workflows

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """Get a specific workflow definition as authored"""
        file_path = self._path(workflow_id)

        if not file_path.exists():
            raise NotFoundError("Workflow", workflow_id)

        return json.loads(file_path.read_text())

    async def get_definition(self, workflow_id: str) -> WorkflowDefinition:
        """Parsed definition, for sub-workflow nodes"""
        return WorkflowDefinition.model_validate(await self.get_workflow(workflow_id))

    async def create_workflow(self, workflow_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new workflow definition"""
        if not workflow_data.get("id"):
            raise ValidationError("id is required", field="id")

        workflow_id = workflow_data["id"]
        file_path = self._path(workflow_id)

        if file_path.exists():
            raise ConflictError(f"Workflow '{workflow_id}' already exists", resource="Workflow")

        # Raises WorkflowValidationError
        validate_workflow(workflow_data)

        file_path.write_text(json.dumps(workflow_data, indent=2))

        logger.info(f"Created workflow: {workflow_id}")
        return workflow_data

    async def update_workflow(self, workflow_id: str, workflow_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing workflow definition"""
        file_path = self._path(workflow_id)

        if not file_path.exists():
            raise NotFoundError("Workflow", workflow_id)

        workflow_data["id"] = workflow_id
        validate_workflow(workflow_data)

        file_path.write_text(json.dumps(workflow_data, indent=2))

        logger.info(f"Updated workflow: {workflow_id}")
        return workflow_data

    async def delete_workflow(self, workflow_id: str) -> Dict[str, str]:
        """Delete a workflow definition"""
        file_path = self._path(workflow_id)

        if not file_path.exists():
            raise NotFoundError("Workflow", workflow_id)

        file_path.unlink()

        logger.info(f"Deleted workflow: {workflow_id}")
        return {"message": f"Workflow '{workflow_id}' deleted"}

    async def check_workflow(self, workflow_data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate without storing; returns entries and warnings"""
        graph = validate_workflow(workflow_data)
        return {
            "valid": True,
            "entries": graph.entries,
            "warnings": graph.warnings,
        }

    async def run_workflow(self, request: WorkflowRunRequest) -> ExecutionResult:
        """Execute an inline or stored workflow"""
        if self.engine is None:
            raise ValidationError("Workflow engine not configured")

        if request.workflow is not None:
            definition = request.workflow
        else:
            definition = await self.get_definition(request.workflow_id)

        logger.info(f"Executing workflow: {definition.id or 'inline'}")
        result = await self.engine.submit_run(
            definition,
            input=request.input,
            settings=request.settings,
            agent_id=request.agent_id,
            user_id=request.user_id,
        )
        logger.info(f"Workflow execution finished: {result.execution_id} (success={result.success})")
        return result
