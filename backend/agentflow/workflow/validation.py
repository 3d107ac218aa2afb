# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Validation

Structural checks on a workflow definition, producing the immutable
ValidatedGraph the scheduler traverses. Cycles are only allowed through
loop-capable nodes (condition, loop); everything else must form a DAG,
checked with Kahn's algorithm.
"""

from collections import deque
from typing import Any, Dict, List, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from agentflow.core.logging import get_engine_logger, log_event
from .exceptions import GraphCycleError, MissingEntryError, WorkflowValidationError
from .models import LOOP_CAPABLE_TYPES, NodeType, WorkflowDefinition, WorkflowEdge, WorkflowNode
from .nodes import NodeConfig, parse_node_config

logger = get_engine_logger("validation")


def format_pydantic_error(error: PydanticValidationError) -> str:
    """Flatten pydantic errors into one line: ``loc: msg; loc: msg``"""
    parts = []
    for err in error.errors():
        loc = ".".join(str(item) for item in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_workflow(data: Union[WorkflowDefinition, Dict[str, Any]]) -> WorkflowDefinition:
    """
    Parse a workflow definition from its JSON form.

    Raises:
        WorkflowValidationError: If the document does not match the model
            (e.g. an unknown node type)
    """
    if isinstance(data, WorkflowDefinition):
        return data
    try:
        return WorkflowDefinition.model_validate(data)
    except PydanticValidationError as e:
        raise WorkflowValidationError(f"Invalid workflow definition: {format_pydantic_error(e)}")


class ValidatedGraph:
    """
    Validated, read-only view of a workflow definition.

    Edge lists keep definition order, which is the tie-break order for
    branching and for the ready-queue.
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        configs: Dict[str, NodeConfig],
        entries: List[str],
        back_edges: Set[str],
        cyclic_nodes: Set[str],
        cycle_edges: Set[str],
        warnings: List[str],
    ):
        self.definition = definition
        self.nodes: Dict[str, WorkflowNode] = {node.id: node for node in definition.nodes}
        self.configs = configs
        self.entries = entries
        self.back_edges = back_edges
        self.cyclic_nodes = cyclic_nodes
        self.cycle_edges = cycle_edges
        self.warnings = warnings

        self._outgoing: Dict[str, List[WorkflowEdge]] = {node_id: [] for node_id in self.nodes}
        self._incoming: Dict[str, List[WorkflowEdge]] = {node_id: [] for node_id in self.nodes}
        for edge in definition.edges:
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    def outgoing(self, node_id: str) -> List[WorkflowEdge]:
        return self._outgoing[node_id]

    def incoming(self, node_id: str) -> List[WorkflowEdge]:
        return self._incoming[node_id]

    def forward_incoming(self, node_id: str) -> List[WorkflowEdge]:
        """Incoming edges that do not close a cycle"""
        return [edge for edge in self._incoming[node_id] if edge.id not in self.back_edges]

    def is_back_edge(self, edge: WorkflowEdge) -> bool:
        return edge.id in self.back_edges

    def on_cycle(self, edge: WorkflowEdge) -> bool:
        """True if the edge lies on some cycle (its target leads back to its source)"""
        return edge.id in self.cycle_edges

    def config(self, node_id: str) -> NodeConfig:
        return self.configs[node_id]


def validate_workflow(definition: Union[WorkflowDefinition, Dict[str, Any]]) -> ValidatedGraph:
    """
    Validate workflow structure.

    Raises:
        WorkflowValidationError: If validation fails
        GraphCycleError: If a cycle runs only through non-loop-capable nodes
        MissingEntryError: If no entry node can be determined
    """
    definition = parse_workflow(definition)

    # 1. Empty workflow check
    if len(definition.nodes) == 0:
        raise WorkflowValidationError("Workflow must have at least one node", field="nodes")

    # 2. Duplicate node and edge IDs
    node_ids = [node.id for node in definition.nodes]
    if len(node_ids) != len(set(node_ids)):
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        raise WorkflowValidationError(f"Duplicate node IDs found: {duplicates}", field="nodes")

    edge_ids = [edge.id for edge in definition.edges]
    if len(edge_ids) != len(set(edge_ids)):
        duplicates = sorted({eid for eid in edge_ids if edge_ids.count(eid) > 1})
        raise WorkflowValidationError(f"Duplicate edge IDs found: {duplicates}", field="edges")

    # 3. Invalid edge references
    node_id_set = set(node_ids)
    for edge in definition.edges:
        if edge.source not in node_id_set:
            raise WorkflowValidationError(
                f"Edge '{edge.id}' references non-existent node: {edge.source}",
                field="edges"
            )
        if edge.target not in node_id_set:
            raise WorkflowValidationError(
                f"Edge '{edge.id}' references non-existent node: {edge.target}",
                field="edges"
            )

    # 4. Per-type node configs
    configs: Dict[str, NodeConfig] = {}
    for node in definition.nodes:
        try:
            configs[node.id] = parse_node_config(node)
        except PydanticValidationError as e:
            raise WorkflowValidationError(
                f"Invalid config for {node.type.value} node '{node.id}': {format_pydantic_error(e)}",
                field=f"nodes[{node.id}].data.config"
            )

    adjacency: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for edge in definition.edges:
        adjacency[edge.source].append(edge.target)

    # 5. Entry resolution
    entries = _resolve_entries(definition)

    # 6. Cycles must pass through a loop-capable node
    _check_cycles(definition)

    # 7. Reachability (warning only)
    reachable = _reachable_from(entries, adjacency)
    warnings = []
    for node_id in node_ids:
        if node_id not in reachable:
            warnings.append(f"Node '{node_id}' is unreachable from the entry nodes")
    for warning in warnings:
        log_event(logger, "workflow_validation_warning", level="WARNING", warning=warning)

    cyclic_nodes, cycle_edges = _find_cycles(definition, adjacency)

    return ValidatedGraph(
        definition=definition,
        configs=configs,
        entries=entries,
        back_edges=_find_back_edges(definition, entries),
        cyclic_nodes=cyclic_nodes,
        cycle_edges=cycle_edges,
        warnings=warnings,
    )


def _resolve_entries(definition: WorkflowDefinition) -> List[str]:
    """Single start node if present, else nodes without incoming edges"""
    start_nodes = [node.id for node in definition.nodes if node.type == NodeType.START]
    if len(start_nodes) > 1:
        raise WorkflowValidationError(
            f"Workflow must have at most one start node, found: {start_nodes}",
            field="nodes"
        )
    if start_nodes:
        return start_nodes

    targets = {edge.target for edge in definition.edges}
    entries = [node.id for node in definition.nodes if node.id not in targets]
    if not entries:
        raise MissingEntryError(
            "No entry node found (no start node and every node has incoming edges)",
            field="nodes"
        )
    return entries


def _check_cycles(definition: WorkflowDefinition) -> None:
    """
    Kahn's algorithm over the subgraph of non-loop-capable nodes.
    Any node left over sits on (or between) cycles of that subgraph.
    """
    restricted = {node.id for node in definition.nodes if node.type not in LOOP_CAPABLE_TYPES}
    graph: Dict[str, List[str]] = {node_id: [] for node_id in restricted}
    reverse: Dict[str, List[str]] = {node_id: [] for node_id in restricted}
    in_degree: Dict[str, int] = {node_id: 0 for node_id in restricted}

    for edge in definition.edges:
        if edge.source in restricted and edge.target in restricted:
            graph[edge.source].append(edge.target)
            reverse[edge.target].append(edge.source)
            in_degree[edge.target] += 1

    queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    processed = set()
    while queue:
        node_id = queue.popleft()
        processed.add(node_id)
        for neighbor in graph[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    remaining = restricted - processed
    if not remaining:
        return

    # Peel off nodes that only hang below a cycle
    out_degree = {
        node_id: sum(1 for neighbor in graph[node_id] if neighbor in remaining)
        for node_id in remaining
    }
    queue = deque(node_id for node_id, degree in out_degree.items() if degree == 0)
    while queue:
        node_id = queue.popleft()
        remaining.discard(node_id)
        for predecessor in reverse[node_id]:
            if predecessor in remaining:
                out_degree[predecessor] -= 1
                if out_degree[predecessor] == 0:
                    queue.append(predecessor)

    raise GraphCycleError(remaining)


def _reachable_from(starts: List[str], adjacency: Dict[str, List[str]]) -> Set[str]:
    visited: Set[str] = set()
    queue = deque(starts)
    while queue:
        node_id = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)
        queue.extend(adjacency[node_id])
    return visited


def _find_back_edges(definition: WorkflowDefinition, entries: List[str]) -> Set[str]:
    """
    Edges closing a cycle, found by iterative DFS from the entries in
    definition order (then from any node not yet visited).
    """
    outgoing: Dict[str, List[WorkflowEdge]] = {node.id: [] for node in definition.nodes}
    for edge in definition.edges:
        outgoing[edge.source].append(edge)

    back_edges: Set[str] = set()
    visited: Set[str] = set()
    on_stack: Set[str] = set()

    roots = list(entries) + [node.id for node in definition.nodes if node.id not in entries]
    for root in roots:
        if root in visited:
            continue
        visited.add(root)
        on_stack.add(root)
        stack = [(root, iter(outgoing[root]))]
        while stack:
            node_id, edges = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                on_stack.discard(node_id)
                continue
            if edge.target in on_stack:
                back_edges.add(edge.id)
            elif edge.target not in visited:
                visited.add(edge.target)
                on_stack.add(edge.target)
                stack.append((edge.target, iter(outgoing[edge.target])))

    return back_edges


def _find_cycles(
    definition: WorkflowDefinition,
    adjacency: Dict[str, List[str]],
) -> Tuple[Set[str], Set[str]]:
    """Nodes that can reach themselves, and edges whose target leads back to their source"""
    reach = {node_id: _reachable_from(targets, adjacency) for node_id, targets in adjacency.items()}
    cyclic_nodes = {node_id for node_id in adjacency if node_id in reach[node_id]}
    cycle_edges = {
        edge.id for edge in definition.edges
        if edge.source == edge.target or edge.source in reach[edge.target]
    }
    return cyclic_nodes, cycle_edges
