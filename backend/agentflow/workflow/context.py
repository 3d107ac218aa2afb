# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Context

Tracks per-run state: the variables bag, identifiers and the
current node pointer.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

from agentflow.core.config import Config
from agentflow.core.logging import log_event
from agentflow.schema import utc_now_iso
from .models import RunSettings

if TYPE_CHECKING:
    from .validation import ValidatedGraph


def generate_execution_id() -> str:
    """Unique run id: exec_{YYYYmmdd_HHMMSS}_{hex8}"""
    return f"exec_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class ResolvedSettings:
    """Run settings with every fallback applied"""
    timeout: float
    retries: int
    parallelism: int
    logging: bool
    max_node_visits: int
    tolerate_branch_failures: bool
    record_terminal_steps: bool

    @classmethod
    def resolve(cls, settings: RunSettings, config: Config) -> "ResolvedSettings":
        parallelism = settings.parallelism or config.default_parallelism
        return cls(
            timeout=settings.timeout or config.run_timeout,
            retries=settings.retries if settings.retries is not None else config.tool_retries,
            parallelism=max(1, min(parallelism, config.max_parallelism)),
            logging=settings.logging is not False,
            max_node_visits=settings.max_node_visits or config.max_node_visits,
            tolerate_branch_failures=bool(settings.tolerate_branch_failures),
            record_terminal_steps=bool(settings.record_terminal_steps),
        )


class ExecutionContext:
    """
    Execution context for a workflow run.

    Tracks:
    - Variables (``input`` plus one entry per executed node, keyed by node id)
    - Run identifiers
    - Execution metadata

    Lives for exactly one run.
    """

    def __init__(
        self,
        execution_id: str,
        input: Any = None,
        agent_id: Optional[str] = None,
        user_id: Optional[str] = None,
        depth: int = 0,
    ):
        self.execution_id = execution_id
        self.agent_id = agent_id
        self.user_id = user_id
        self.input = input
        self.depth = depth  # Sub-workflow nesting level
        self.started_at = utc_now_iso()
        self.completed_at = None

        self.variables: Dict[str, Any] = {"input": input}
        self.current_node_id: Optional[str] = None  # Advisory only with parallelism > 1

    def set_output(self, node_id: str, output: Any) -> None:
        """Store a node's output under its id"""
        self.variables[node_id] = output

    def child(self, input: Any) -> "ExecutionContext":
        """Fresh context for a nested workflow run"""
        return ExecutionContext(
            execution_id=f"{self.execution_id}_sub_{uuid.uuid4().hex[:8]}",
            input=input,
            agent_id=self.agent_id,
            user_id=self.user_id,
            depth=self.depth + 1,
        )

    def finalize(self) -> None:
        """Mark execution as complete"""
        self.completed_at = utc_now_iso()


@dataclass
class RunScope:
    """Everything a step needs to know about the run it belongs to"""
    graph: "ValidatedGraph"
    context: ExecutionContext
    settings: ResolvedSettings
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    visits: Dict[str, int] = field(default_factory=dict)

    @property
    def execution_id(self) -> str:
        return self.context.execution_id

    def log(self, logger: logging.Logger, event: str, level: str = "INFO", **fields: Any) -> None:
        """Structured engine event; info-level events are muted when run logging is off"""
        if not self.settings.logging and level.upper() in ("DEBUG", "INFO"):
            return
        log_event(logger, event, level=level, execution_id=self.execution_id, **fields)
