# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Engine

Entry point for callers: validates a definition, allocates the execution
id, runs it through the WorkflowExecutor and hands the sealed result to
the run store.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

from agentflow.core.config import Config, get_config
from agentflow.core.logging import get_engine_logger, log_event
from agentflow.tools import OAuthTokenProvider, ToolInvoker
from .context import ExecutionContext, generate_execution_id
from .executor import WorkflowExecutor
from .models import ExecutionResult, RunSettings, WorkflowDefinition
from .steps import ToolRegistry, WorkflowRepository
from .validation import validate_workflow

logger = get_engine_logger("engine")


class WorkflowEngine:
    """
    Runs workflows and tracks the ones in progress.

    The table of active runs exists only so runs can be cancelled by id;
    entries are removed as soon as a run is sealed.
    """

    def __init__(
        self,
        tool_registry: Optional[ToolRegistry] = None,
        run_store=None,
        workflow_repository: Optional[WorkflowRepository] = None,
        invoker: Optional[ToolInvoker] = None,
        token_provider: Optional[OAuthTokenProvider] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.run_store = run_store
        self.invoker = invoker or ToolInvoker(token_provider=token_provider)
        self.executor = WorkflowExecutor(
            invoker=self.invoker,
            tool_registry=tool_registry,
            workflow_repository=workflow_repository,
            run_store=run_store,
            config=self.config,
        )
        self._active_runs: Dict[str, asyncio.Event] = {}

    async def submit_run(
        self,
        definition: Union[WorkflowDefinition, Dict[str, Any]],
        input: Any = None,
        settings: Optional[RunSettings] = None,
        agent_id: Optional[str] = None,
        user_id: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ExecutionResult:
        """
        Validate and execute a workflow.

        Args:
            definition: Workflow definition (model or JSON dict)
            input: Run input, available as ``input`` / ``{{input}}``
            settings: Overrides for the definition's settings
            agent_id: Owning agent, recorded on the context
            user_id: Submitting user, recorded on the context
            cancel_event: Stops the run once set

        Returns:
            Sealed ExecutionResult

        Raises:
            WorkflowValidationError: Before any execution id is allocated
        """
        graph = validate_workflow(definition)

        context = ExecutionContext(
            execution_id=generate_execution_id(),
            input=input,
            agent_id=agent_id,
            user_id=user_id,
        )
        execution_id = context.execution_id
        cancel = cancel_event or asyncio.Event()
        self._active_runs[execution_id] = cancel

        await self._store(execution_id, "create_run", {
            "workflowId": graph.definition.id,
            "workflowName": graph.definition.name,
            "agentId": agent_id,
            "userId": user_id,
            "input": input,
            "startedAt": context.started_at,
            "warnings": graph.warnings,
        })

        try:
            result = await self.executor.run(
                graph,
                settings=settings,
                context=context,
                cancel_event=cancel,
            )
        finally:
            self._active_runs.pop(execution_id, None)

        await self._store(execution_id, "seal_run", result)
        return result

    def cancel(self, execution_id: str) -> bool:
        """Request cooperative cancellation; False if the run is not active"""
        event = self._active_runs.get(execution_id)
        if event is None:
            return False
        log_event(logger, "run_cancel_requested", execution_id=execution_id)
        event.set()
        return True

    def active_runs(self) -> List[str]:
        return list(self._active_runs)

    async def _store(self, execution_id: str, method: str, *args) -> None:
        if self.run_store is None:
            return
        try:
            await getattr(self.run_store, method)(execution_id, *args)
        except Exception as e:
            log_event(
                logger, "run_store_failed", level="WARNING",
                execution_id=execution_id, operation=method, error=str(e),
            )

    async def close(self) -> None:
        await self.invoker.close()
