# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Executor

Ready-queue scheduler. Walks the validated graph from its entry nodes,
keeps up to ``parallelism`` steps in flight as asyncio tasks, routes
outputs along fired edges and eliminates dead paths. Runs always end in
a sealed ExecutionResult once validation passed.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

from agentflow.core.config import Config, get_config
from agentflow.core.logging import get_engine_logger
from agentflow.schema import utc_now_iso
from agentflow.tools import ExecutionStatus, ToolInvoker
from .context import ExecutionContext, ResolvedSettings, RunScope, generate_execution_id
from .exceptions import LoopLimitExceeded, RunTimeoutError
from .models import ExecutionResult, ExecutionStep, NodeType, RunSettings, WorkflowDefinition
from .nodes import LoopConfig, TerminalConfig
from .steps import CANCELLED, StepExecutor, StepOutcome, ToolRegistry, WorkflowRepository, new_step
from .validation import ValidatedGraph, validate_workflow

logger = get_engine_logger("scheduler")

FIRED = "fired"
SKIPPED = "skipped"

TIMEOUT = "timeout"


@dataclass
class _RunState:
    """Scheduler bookkeeping for one run"""
    steps: List[ExecutionStep] = field(default_factory=list)
    failures: List[ExecutionStep] = field(default_factory=list)
    terminals: List[Tuple[str, Any, bool]] = field(default_factory=list)  # (node_id, output, canonical)
    last_output: Any = None
    fatal_error: Optional[str] = None
    edge_state: Dict[str, str] = field(default_factory=dict)
    edge_payload: Dict[str, Any] = field(default_factory=dict)
    ready: Deque[Tuple[str, Any]] = field(default_factory=deque)


class WorkflowExecutor:
    """
    Executes workflows from a validated graph.

    Collaborators are injected once; every call to ``run`` gets its own
    context and bookkeeping, so one executor serves concurrent runs.
    """

    def __init__(
        self,
        invoker: Optional[ToolInvoker] = None,
        tool_registry: Optional[ToolRegistry] = None,
        workflow_repository: Optional[WorkflowRepository] = None,
        run_store=None,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.invoker = invoker or ToolInvoker()
        self.run_store = run_store
        self.step_executor = StepExecutor(
            invoker=self.invoker,
            tool_registry=tool_registry,
            workflow_repository=workflow_repository,
            subworkflow_runner=self._run_nested,
            config=self.config,
        )

    async def run(
        self,
        workflow: Union[ValidatedGraph, WorkflowDefinition, Dict[str, Any]],
        input: Any = None,
        settings: Optional[RunSettings] = None,
        context: Optional[ExecutionContext] = None,
        cancel_event: Optional[asyncio.Event] = None,
        persist: bool = True,
    ) -> ExecutionResult:
        """
        Execute a workflow to completion.

        Args:
            workflow: Validated graph, or a definition to validate first
            input: Run input (ignored when ``context`` is given)
            settings: Overrides for the definition's settings
            context: Pre-built execution context (ids, input)
            cancel_event: Stops the run once set
            persist: Append steps to the run store

        Returns:
            Sealed ExecutionResult

        Raises:
            WorkflowValidationError: If ``workflow`` is not a valid graph
        """
        graph = workflow if isinstance(workflow, ValidatedGraph) else validate_workflow(workflow)
        effective = (settings or RunSettings()).merged_over(graph.definition.settings)
        resolved = ResolvedSettings.resolve(effective, self.config)

        if context is None:
            context = ExecutionContext(execution_id=generate_execution_id(), input=input)

        run = RunScope(graph=graph, context=context, settings=resolved)
        state = _RunState()
        started = time.monotonic()

        run.log(
            logger, "run_started",
            workflow_id=graph.definition.id,
            node_count=len(graph.nodes),
            parallelism=resolved.parallelism,
            depth=context.depth,
        )

        schedule = asyncio.ensure_future(self._schedule(run, state, persist))
        watchers = {schedule}
        cancel_wait = None
        if cancel_event is not None:
            cancel_wait = asyncio.ensure_future(cancel_event.wait())
            watchers.add(cancel_wait)

        try:
            done, _ = await asyncio.wait(
                watchers, timeout=resolved.timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if schedule not in done:
                if cancel_wait is not None and cancel_wait in done:
                    state.fatal_error = CANCELLED
                    run.log(logger, "run_cancelled", level="WARNING")
                else:
                    state.fatal_error = TIMEOUT
                    run.log(
                        logger, "run_timeout", level="WARNING",
                        timeout=resolved.timeout, error=str(RunTimeoutError(resolved.timeout)),
                    )
                await self._stop(run, schedule)
            else:
                schedule.result()
        except LoopLimitExceeded as e:
            state.fatal_error = f"{type(e).__name__}: {e}"
            run.log(logger, "run_aborted", level="ERROR", node_id=e.node_id, error=str(e))
        except asyncio.CancelledError:
            await self._stop(run, schedule)
            raise
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()

        context.finalize()
        result = self._seal(run, state, started)
        run.log(
            logger, "run_sealed",
            success=result.success, error=result.error,
            steps=len(result.steps), execution_time=result.execution_time,
        )
        return result

    async def _stop(self, run: RunScope, schedule: asyncio.Future) -> None:
        """Cancel the scheduling task and wait for its in-flight steps to unwind"""
        run.cancel_event.set()
        schedule.cancel()
        try:
            await schedule
        except asyncio.CancelledError:
            pass
        except LoopLimitExceeded:
            pass

    # ========================================================================
    # Scheduling
    # ========================================================================

    async def _schedule(self, run: RunScope, state: _RunState, persist: bool) -> None:
        graph = run.graph
        in_flight: Dict[asyncio.Task, Tuple[str, ExecutionStep]] = {}

        for entry in graph.entries:
            state.ready.append((entry, run.context.input))

        try:
            while state.ready or in_flight:
                while state.ready and len(in_flight) < run.settings.parallelism:
                    node_id, payload = state.ready.popleft()
                    self._count_visit(run, node_id)
                    node = graph.nodes[node_id]
                    step = new_step(node, payload)
                    task = asyncio.ensure_future(
                        self.step_executor.execute(node, run, payload, step=step)
                    )
                    in_flight[task] = (node_id, step)

                done, _ = await asyncio.wait(in_flight.keys(), return_when=asyncio.FIRST_COMPLETED)

                # Dispatch order breaks ties between simultaneous completions
                for task in [t for t in in_flight if t in done]:
                    node_id, _step = in_flight.pop(task)
                    outcome: StepOutcome = task.result()
                    await self._record(run, state, node_id, outcome, persist)
                    self._route(run, state, node_id, outcome)
        finally:
            if in_flight:
                await self._cancel_in_flight(run, state, in_flight, persist)

    async def _cancel_in_flight(
        self,
        run: RunScope,
        state: _RunState,
        in_flight: Dict[asyncio.Task, Tuple[str, ExecutionStep]],
        persist: bool,
    ) -> None:
        """Cancel running steps; each ends up recorded as completed or cancelled"""
        run.cancel_event.set()
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight.keys(), return_exceptions=True)

        for task, (node_id, step) in in_flight.items():
            if step.status not in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
                step.status = ExecutionStatus.FAILED
                step.error = CANCELLED
                step.error_type = "CancelledError"
            state.steps.append(step)
            if step.status == ExecutionStatus.COMPLETED:
                state.last_output = step.output
            if persist:
                await self._persist(run, "append_step", step)

    def _count_visit(self, run: RunScope, node_id: str) -> None:
        """Increment the visit counter, enforcing the node's visit cap"""
        visits = run.visits.get(node_id, 0) + 1
        run.visits[node_id] = visits

        limit = run.settings.max_node_visits
        config = run.graph.config(node_id)
        if isinstance(config, LoopConfig) and config.max_iterations is not None:
            # One extra visit evaluates the exit
            limit = config.max_iterations + 1
        if visits > limit:
            raise LoopLimitExceeded(node_id, limit)

    async def _record(
        self,
        run: RunScope,
        state: _RunState,
        node_id: str,
        outcome: StepOutcome,
        persist: bool,
    ) -> None:
        step = outcome.step
        node = run.graph.nodes[node_id]
        is_terminal = node.type == NodeType.TERMINAL

        if outcome.failed:
            if not outcome.handled:
                state.failures.append(step)
        else:
            state.last_output = step.output
            if is_terminal:
                config = run.graph.config(node_id)
                canonical = isinstance(config, TerminalConfig) and config.canonical
                state.terminals.append((node_id, step.output, canonical))

        if is_terminal and not outcome.failed and not run.settings.record_terminal_steps:
            return

        state.steps.append(step)
        if persist:
            await self._persist(run, "append_step", step)
            if step.tool_execution is not None:
                await self._persist(run, "append_tool_execution", step.tool_execution)

    def _route(self, run: RunScope, state: _RunState, node_id: str, outcome: StepOutcome) -> None:
        """Apply fired/skipped edges and enqueue nodes whose joins are satisfied"""
        graph = run.graph
        step = outcome.step
        if outcome.failed:
            output = {"error": step.error, "errorType": step.error_type, "nodeId": node_id}
        else:
            output = step.output

        for edge in outcome.fired:
            if graph.is_back_edge(edge):
                state.ready.append((edge.target, output))
                continue
            state.edge_state[edge.id] = FIRED
            state.edge_payload[edge.id] = (node_id, output)
            self._try_activate(run, state, edge.target)

        # Edges out of nodes on a cycle stay pending so a later visit can fire them
        if node_id in graph.cyclic_nodes:
            return
        pending = [edge for edge in outcome.skipped if not graph.is_back_edge(edge)]
        self._skip_edges(run, state, pending)

    def _skip_edges(self, run: RunScope, state: _RunState, edges) -> None:
        """Dead-path elimination, iteratively"""
        graph = run.graph
        worklist = list(edges)
        while worklist:
            edge = worklist.pop(0)
            state.edge_state[edge.id] = SKIPPED
            if self._try_activate(run, state, edge.target) is False:
                target = edge.target
                run.log(logger, "node_skipped", level="DEBUG", node_id=target)
                if target in graph.cyclic_nodes:
                    continue
                worklist.extend(
                    out for out in graph.outgoing(target) if not graph.is_back_edge(out)
                )

    def _try_activate(self, run: RunScope, state: _RunState, node_id: str) -> Optional[bool]:
        """
        Check the join of ``node_id``.

        Returns None while forward edges are pending, True if the node was
        enqueued, False if every forward edge was skipped.
        """
        forward = run.graph.forward_incoming(node_id)
        if any(edge.id not in state.edge_state for edge in forward):
            return None

        fired = [edge for edge in forward if state.edge_state[edge.id] == FIRED]
        sources = [state.edge_payload.pop(edge.id) for edge in fired]
        for edge in forward:
            del state.edge_state[edge.id]

        if not fired:
            return False

        if len(sources) == 1:
            payload = sources[0][1]
        else:
            payload = {source_id: output for source_id, output in sources}
        state.ready.append((node_id, payload))
        return True

    # ========================================================================
    # Result
    # ========================================================================

    def _seal(self, run: RunScope, state: _RunState, started: float) -> ExecutionResult:
        context = run.context

        output = state.last_output
        terminal_reached = bool(state.terminals)
        if terminal_reached:
            canonical = [out for _, out, is_canonical in state.terminals if is_canonical]
            output = canonical[0] if canonical else state.terminals[0][1]

        if state.fatal_error is not None:
            success = False
            error = state.fatal_error
        elif not state.failures:
            success, error = True, None
        elif run.settings.tolerate_branch_failures and terminal_reached:
            success, error = True, None
        else:
            success = False
            error = state.failures[0].error

        return ExecutionResult(
            success=success,
            output=output,
            error=error,
            execution_time=round((time.monotonic() - started) * 1000, 3),
            steps=state.steps,
            execution_id=context.execution_id,
            started_at=context.started_at,
            completed_at=context.completed_at or utc_now_iso(),
        )

    # ========================================================================
    # Collaborators
    # ========================================================================

    async def _persist(self, run: RunScope, method: str, *args) -> None:
        """Call the run store; failures are logged and never alter control flow"""
        if self.run_store is None:
            return
        try:
            await getattr(self.run_store, method)(run.execution_id, *args)
        except Exception as e:
            run.log(logger, "run_store_failed", level="WARNING", operation=method, error=str(e))

    async def _run_nested(
        self,
        definition: WorkflowDefinition,
        context: ExecutionContext,
        settings: RunSettings,
        cancel_event: asyncio.Event,
    ) -> ExecutionResult:
        graph = validate_workflow(definition)
        return await self.run(
            graph,
            settings=settings,
            context=context,
            cancel_event=cancel_event,
            persist=False,
        )
