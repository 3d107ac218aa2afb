# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Step Executor

Executes one node visit, dispatching on the node type, and decides
which outgoing edges fire. Each visit produces exactly one ExecutionStep:
pending -> running -> completed | failed.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, Union

from agentflow.condition_evaluator import ExpressionError, evaluate_condition, evaluate_expression
from agentflow.core.config import Config, get_config
from agentflow.core.logging import get_engine_logger
from agentflow.schema import now_ms
from agentflow.templates import render
from agentflow.tools import ExecutionStatus, Tool, ToolAccessDenied, ToolError, ToolInvoker
from .context import ExecutionContext, RunScope
from .exceptions import ConditionError, StepError, SubWorkflowError, TransformError
from .models import ExecutionResult, ExecutionStep, NodeType, RunSettings, WorkflowDefinition, WorkflowEdge, WorkflowNode
from .nodes import (
    ConditionConfig,
    LoopConfig,
    NodeConfig,
    SubWorkflowConfig,
    TerminalConfig,
    ToolCallConfig,
    TransformConfig,
)

logger = get_engine_logger("steps")

FAILURE_LABELS = {"failure", "on_failure", "error", "on_error"}
SUCCESS_LABELS = {"success", "on_success", "always"}
TRUE_LABELS = {"true", "body"}
BRANCH_LABELS = TRUE_LABELS | {"false", "exit"}

CANCELLED = "cancelled"


class ToolRegistry(Protocol):
    """Looks up tool definitions by id"""

    async def get_tool(self, tool_id: str) -> Tool:
        """Return the tool or raise ToolNotFoundError"""


class WorkflowRepository(Protocol):
    """Looks up stored workflow definitions for sub-workflow nodes"""

    async def get_definition(self, workflow_id: str) -> Union[WorkflowDefinition, Dict[str, Any]]:
        """Return the definition or raise"""


# (definition, child context, settings, cancel event) -> nested result
SubWorkflowRunner = Callable[
    [WorkflowDefinition, ExecutionContext, RunSettings, asyncio.Event],
    Awaitable[ExecutionResult],
]


@dataclass
class StepOutcome:
    """A finished step and the routing decision for its outgoing edges"""
    step: ExecutionStep
    fired: List[WorkflowEdge] = field(default_factory=list)
    skipped: List[WorkflowEdge] = field(default_factory=list)
    handled: bool = False  # Failure routed through a failure edge
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.step.status == ExecutionStatus.FAILED


def new_step(node: WorkflowNode, payload: Any) -> ExecutionStep:
    return ExecutionStep(node_id=node.id, node_type=node.type.value, input=payload)


def expression_scope(
    context: ExecutionContext,
    payload: Any,
    variables: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """
    Names visible to condition, loop, edge and transform expressions.

    Variables whose key is an identifier are exposed directly; node ids
    with dashes are also exposed with underscores (``get_weather`` for
    ``get-weather``). ``vars`` always holds the whole bag, which defaults
    to the context's variables.
    """
    if variables is None:
        variables = context.variables
    scope: Dict[str, Any] = {}
    for key, value in variables.items():
        if key.isidentifier():
            scope[key] = value
        alias = key.replace("-", "_")
        if alias != key and alias.isidentifier():
            scope.setdefault(alias, value)
    scope.update(input=context.input, vars=variables, payload=payload)
    scope.update(extra)
    return scope


class StepExecutor:
    """
    Executes individual nodes.

    Shared between runs; all per-run state arrives through RunScope.
    """

    def __init__(
        self,
        invoker: ToolInvoker,
        tool_registry: Optional[ToolRegistry] = None,
        workflow_repository: Optional[WorkflowRepository] = None,
        subworkflow_runner: Optional[SubWorkflowRunner] = None,
        config: Optional[Config] = None,
    ):
        self.invoker = invoker
        self.tool_registry = tool_registry
        self.workflow_repository = workflow_repository
        self.subworkflow_runner = subworkflow_runner
        self.config = config or get_config()

        self._handlers = {
            NodeType.START: self._execute_start,
            NodeType.TOOL_CALL: self._execute_tool_call,
            NodeType.CONDITION: self._execute_condition,
            NodeType.TRANSFORM: self._execute_transform,
            NodeType.SUB_WORKFLOW: self._execute_sub_workflow,
            NodeType.TERMINAL: self._execute_terminal,
            NodeType.LOOP: self._execute_loop,
        }

    async def execute(
        self,
        node: WorkflowNode,
        run: RunScope,
        payload: Any,
        step: Optional[ExecutionStep] = None,
    ) -> StepOutcome:
        """
        Execute a single node visit.

        Failures are captured on the step, never raised. Cancellation marks
        the step failed with error "cancelled" and propagates.
        """
        step = step or new_step(node, payload)
        context = run.context
        context.current_node_id = node.id
        step.status = ExecutionStatus.RUNNING
        step.start_time = now_ms()
        run.log(logger, "step_started", node_id=node.id, node_type=node.type.value)

        handler = self._handlers[node.type]
        config = run.graph.config(node.id)

        try:
            output, branch = await handler(node, config, run, payload, step)
            fired, skipped = self.select_edges(node, run, payload, output, branch)
            context.set_output(node.id, output)
        except asyncio.CancelledError:
            self._fail(step, CANCELLED, "CancelledError")
            run.log(logger, "step_cancelled", level="WARNING", node_id=node.id)
            raise
        except Exception as e:
            message = e.message if isinstance(e, (ToolError, StepError)) else str(e)
            self._fail(step, message, type(e).__name__)
            run.log(
                logger, "step_failed", level="WARNING",
                node_id=node.id, node_type=node.type.value,
                error=message, error_type=type(e).__name__,
            )
            failure_edges = [
                edge for edge in run.graph.outgoing(node.id)
                if (edge.condition or "").lower() in FAILURE_LABELS
            ]
            return StepOutcome(
                step=step,
                fired=failure_edges,
                skipped=[edge for edge in run.graph.outgoing(node.id) if edge not in failure_edges],
                handled=bool(failure_edges),
                error=e,
            )

        step.output = output
        step.status = ExecutionStatus.COMPLETED
        step.end_time = now_ms()
        run.log(
            logger, "step_completed",
            node_id=node.id, node_type=node.type.value,
            duration=round(step.end_time - step.start_time, 3),
        )
        return StepOutcome(step=step, fired=fired, skipped=skipped)

    @staticmethod
    def _fail(step: ExecutionStep, message: str, error_type: str) -> None:
        step.status = ExecutionStatus.FAILED
        step.output = None
        step.error = message
        step.error_type = error_type
        step.end_time = now_ms()

    # ========================================================================
    # Edge selection
    # ========================================================================

    def select_edges(
        self,
        node: WorkflowNode,
        run: RunScope,
        payload: Any,
        output: Any,
        branch: Optional[bool],
    ) -> Tuple[List[WorkflowEdge], List[WorkflowEdge]]:
        """Split a completed node's outgoing edges into fired and skipped"""
        fired, skipped = [], []
        for edge in run.graph.outgoing(node.id):
            if self._edge_fires(edge, node, run, payload, output, branch):
                fired.append(edge)
            else:
                skipped.append(edge)
        return fired, skipped

    def _edge_fires(
        self,
        edge: WorkflowEdge,
        node: WorkflowNode,
        run: RunScope,
        payload: Any,
        output: Any,
        branch: Optional[bool],
    ) -> bool:
        label = edge.condition
        key = (label or "").lower()

        if key in FAILURE_LABELS:
            return False
        if not key:
            # Loop edges leading back to the loop are the body, the rest are exits
            if node.type == NodeType.LOOP:
                return branch if run.graph.on_cycle(edge) else not branch
            return True
        if key in SUCCESS_LABELS:
            return True
        if branch is not None and key in BRANCH_LABELS:
            return branch == (key in TRUE_LABELS)

        # The node's own output is stored only once its edges are selected
        variables = {**run.context.variables, node.id: output}
        scope = expression_scope(run.context, payload, variables, output=output)
        try:
            return evaluate_condition(label, scope)
        except ExpressionError as e:
            raise ConditionError(node.id, f"Edge '{edge.id}' condition '{label}' failed: {e}")

    # ========================================================================
    # Node handlers: (node, config, run, payload, step) -> (output, branch)
    # ========================================================================

    async def _execute_start(self, node, config: NodeConfig, run: RunScope, payload, step):
        return run.context.input, None

    async def _execute_tool_call(self, node, config: ToolCallConfig, run: RunScope, payload, step):
        if self.tool_registry is None:
            raise StepError(node.id, f"No tool registry configured for tool-call node '{node.id}'")

        tool = await self.tool_registry.get_tool(config.tool_id)
        context = run.context
        # User-owned tools are callable only from their owner's runs
        if not tool.is_built_in and tool.user_id and tool.user_id != context.user_id:
            raise ToolAccessDenied(tool.id)
        params = render(config.parameter_values, context.variables)

        # Declared parameters without a value fall back to variables, then input
        for param in tool.config.parameters:
            if params.get(param.name) is not None:
                continue
            if context.variables.get(param.name) is not None:
                params[param.name] = context.variables[param.name]
            elif isinstance(context.input, dict) and context.input.get(param.name) is not None:
                params[param.name] = context.input[param.name]

        retries = config.retries if config.retries is not None else run.settings.retries
        try:
            result = await self.invoker.invoke(
                tool, params, retries=retries, cancel_event=run.cancel_event
            )
        except ToolError as e:
            step.tool_execution = e.execution
            raise

        step.tool_execution = result.execution
        return result.output, None

    async def _execute_condition(self, node, config: ConditionConfig, run: RunScope, payload, step):
        scope = expression_scope(run.context, payload)
        try:
            result = evaluate_condition(config.expression, scope)
        except ExpressionError as e:
            raise ConditionError(node.id, f"Condition '{node.id}' failed: {e}")
        return {"result": result, "expression": config.expression}, result

    async def _execute_transform(self, node, config: TransformConfig, run: RunScope, payload, step):
        context = run.context
        output: Dict[str, Any] = {}

        # Later assignments may reference earlier ones
        for name, expression in config.assignments.items():
            scope = expression_scope(context, payload)
            scope.update(output)
            try:
                output[name] = evaluate_expression(expression, scope)
            except ExpressionError as e:
                raise TransformError(node.id, f"Transform '{node.id}' failed on '{name}': {e}")

        if config.template is None:
            return output, None

        rendered = render(config.template, {**context.variables, "payload": payload})
        if not config.assignments:
            return rendered, None
        if not isinstance(rendered, dict):
            raise TransformError(
                node.id,
                f"Transform '{node.id}' template must render to an object when combined with assignments"
            )
        output.update(rendered)
        return output, None

    async def _execute_sub_workflow(self, node, config: SubWorkflowConfig, run: RunScope, payload, step):
        context = run.context
        if self.subworkflow_runner is None:
            raise SubWorkflowError(node.id, "Sub-workflows are not supported by this executor")
        if context.depth + 1 > self.config.max_subworkflow_depth:
            raise SubWorkflowError(
                node.id,
                f"Sub-workflow depth limit ({self.config.max_subworkflow_depth}) exceeded"
            )

        definition = config.workflow
        if definition is None:
            if self.workflow_repository is None:
                raise SubWorkflowError(node.id, "No workflow repository configured")
            try:
                definition = await self.workflow_repository.get_definition(config.workflow_id)
            except Exception as e:
                raise SubWorkflowError(
                    node.id, f"Sub-workflow '{config.workflow_id}' could not be loaded: {e}"
                ) from e

        if config.input is not None:
            child_input = render(config.input, {**context.variables, "payload": payload})
        else:
            child_input = payload

        child = context.child(child_input)
        settings = RunSettings(
            logging=run.settings.logging,
            retries=run.settings.retries,
            parallelism=run.settings.parallelism,
        )
        result = await self.subworkflow_runner(definition, child, settings, run.cancel_event)
        if not result.success:
            raise SubWorkflowError(
                node.id,
                f"Sub-workflow failed: {result.error}",
                execution_id=child.execution_id,
            )
        return result.output, None

    async def _execute_terminal(self, node, config: TerminalConfig, run: RunScope, payload, step):
        if config.output is not None:
            return render(config.output, {**run.context.variables, "payload": payload}), None
        return payload, None

    async def _execute_loop(self, node, config: LoopConfig, run: RunScope, payload, step):
        # Number of earlier evaluations of this loop node
        iteration = run.visits.get(node.id, 1) - 1
        scope = expression_scope(run.context, payload, iteration=iteration)
        try:
            should_continue = evaluate_condition(config.condition, scope)
        except ExpressionError as e:
            raise ConditionError(node.id, f"Loop '{node.id}' condition failed: {e}")
        return {"continue": should_continue, "iteration": iteration}, should_continue
