"""
Dependency graph construction and validation.

Builds typed edges from action declarations and detects cycles using
Kahn's algorithm.
"""

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from action_pipeline.core.models import (
    ActionDefinition,
    ActionStatus,
    DependencyRef,
    PipelineDefinition,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)


class GraphBuildError(ValueError):
    """Base class for errors raised while building the dependency graph."""


class UnknownDependencyError(GraphBuildError):
    """Raised when an action references an undeclared action."""

    def __init__(self, action: Any, dependency: Any):
        self.action = action
        self.dependency = dependency
        super().__init__(
            f"Action '{action}' references non-existent dependency '{dependency}'"
        )


class CycleError(GraphBuildError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle_nodes: list[Any]):
        self.cycle_nodes = cycle_nodes
        super().__init__(
            f"Pipeline contains circular dependencies involving actions: {cycle_nodes}"
        )


class EdgeType(str, Enum):
    """How an incoming edge takes part in readiness."""

    ALL_IN = "all_in"  # every such edge must be satisfied
    ANY_OF = "any_of"  # one such edge is enough


@dataclass(frozen=True)
class EdgeMeta:
    type: EdgeType
    status: ActionStatus


@dataclass(frozen=True)
class Edge:
    """Directed edge: `to` depends on the outcome of `from_`."""

    from_: Any
    to: Any
    meta: EdgeMeta


@dataclass
class DependencyGraph:
    """
    Static structure of a pipeline.

    Built once by build_graph() and treated as read-only afterwards.
    """

    nodes: list[Any] = field(default_factory=list)
    edges_in: dict[Any, list[Edge]] = field(default_factory=dict)
    edges_out: dict[Any, list[Edge]] = field(default_factory=dict)
    nodes_depending_on_workflow: set[Any] = field(default_factory=set)
    workflow_statuses_by_node: dict[Any, WorkflowStatus] = field(default_factory=dict)
    inputs_by_node: dict[Any, list[Any]] = field(default_factory=dict)
    topological_order: list[Any] = field(default_factory=list)

    def initial_nodes(self) -> list[Any]:
        """Get nodes with no incoming edges and no workflow dependency."""
        return [
            node for node in self.nodes
            if not self.edges_in[node]
            and node not in self.nodes_depending_on_workflow
        ]

    def workflow_nodes(self) -> list[Any]:
        """Get nodes that declare a workflow dependency, in declaration order."""
        return [node for node in self.nodes if node in self.nodes_depending_on_workflow]

    def next_nodes(self, node: Any) -> list[Any]:
        """Get direct dependents of a node."""
        return [edge.to for edge in self.edges_out[node]]

    def reverse_topological_order(self) -> list[Any]:
        """Topological order reversed, so sources sit at the end of a stack."""
        return list(reversed(self.topological_order))


class GraphBuilder:
    """
    Builds a DependencyGraph from action declarations.

    Validation runs in order: references first, then cycle detection.
    """

    def __init__(self, definition: PipelineDefinition):
        self.definition = definition
        self.graph = DependencyGraph()

    def build(self) -> DependencyGraph:
        """
        Build and validate the graph.

        Raises:
            UnknownDependencyError: If an edge names an undeclared action
            CycleError: If the AllIn/AnyOf subgraph contains a cycle
        """
        actions = self.definition.actions
        graph = self.graph

        for name in actions:
            graph.nodes.append(name)
            graph.edges_in[name] = []
            graph.edges_out[name] = []

        for name, action in actions.items():
            self._add_action(name, action)

        self._detect_cycles_and_compute_order()
        self._warn_unsatisfiable_nodes()

        logger.debug(
            f"Built dependency graph: {len(graph.nodes)} actions, "
            f"{sum(len(edges) for edges in graph.edges_in.values())} edges, "
            f"{len(graph.nodes_depending_on_workflow)} workflow-dependent"
        )
        return graph

    def _add_action(self, name: Any, action: ActionDefinition) -> None:
        graph = self.graph

        graph.inputs_by_node[name] = list(action.deps)
        for dep in action.deps:
            self._add_edge(name, DependencyRef(action=dep), EdgeType.ALL_IN)

        for ref in action.needs:
            self._add_edge(name, ref, EdgeType.ALL_IN)

        for ref in action.needs_any_of:
            self._add_edge(name, ref, EdgeType.ANY_OF)

        if action.needs_workflow is not None:
            graph.nodes_depending_on_workflow.add(name)
            graph.workflow_statuses_by_node[name] = action.needs_workflow

    def _add_edge(self, name: Any, ref: DependencyRef, edge_type: EdgeType) -> None:
        if ref.action not in self.graph.edges_out:
            raise UnknownDependencyError(name, ref.action)

        edge = Edge(from_=ref.action, to=name, meta=EdgeMeta(type=edge_type, status=ref.with_))
        self.graph.edges_in[name].append(edge)
        self.graph.edges_out[ref.action].append(edge)

    def _detect_cycles_and_compute_order(self) -> None:
        """
        Detect cycles using Kahn's algorithm and compute topological order.

        Parallel edges between the same pair of actions each count towards
        the in-degree, and each is removed when its source is processed.
        """
        graph = self.graph
        in_degree = {node: len(graph.edges_in[node]) for node in graph.nodes}

        queue = deque(node for node in graph.nodes if in_degree[node] == 0)
        order: list[Any] = []

        while queue:
            node = queue.popleft()
            order.append(node)

            for edge in graph.edges_out[node]:
                in_degree[edge.to] -= 1
                if in_degree[edge.to] == 0:
                    queue.append(edge.to)

        if len(order) != len(graph.nodes):
            processed = set(order)
            remaining = [node for node in graph.nodes if node not in processed]
            raise CycleError(self._find_cycle_nodes(remaining))

        graph.topological_order = order

    def _find_cycle_nodes(self, candidates: list[Any]) -> list[Any]:
        """
        Extract one cycle from the nodes Kahn's algorithm could not process.

        Every such node has an unprocessed predecessor, so walking
        predecessors must eventually revisit a node.
        """
        remaining = set(candidates)
        path: list[Any] = []
        position: dict[Any, int] = {}
        node = candidates[0]

        while node not in position:
            position[node] = len(path)
            path.append(node)
            node = next(
                edge.from_ for edge in self.graph.edges_in[node]
                if edge.from_ in remaining
            )

        # path was walked against edge direction
        return list(reversed(path[position[node]:]))

    def _warn_unsatisfiable_nodes(self) -> None:
        """Warn about actions requiring two different statuses from one source."""
        for node in self.graph.nodes:
            required: dict[Any, set[ActionStatus]] = {}
            for edge in self.graph.edges_in[node]:
                if edge.meta.type is EdgeType.ALL_IN and edge.meta.status is not ActionStatus.ANY:
                    required.setdefault(edge.from_, set()).add(edge.meta.status)

            for source, statuses in required.items():
                if len(statuses) > 1:
                    logger.warning(
                        f"Action '{node}' requires '{source}' to finish with each of "
                        f"{sorted(s.value for s in statuses)} and can never become ready"
                    )


def build_graph(
    actions: PipelineDefinition | Mapping[Any, Any],
) -> DependencyGraph:
    """
    Build a validated dependency graph from action declarations.

    Args:
        actions: PipelineDefinition or mapping of name -> declaration

    Returns:
        Read-only DependencyGraph

    Raises:
        pydantic.ValidationError: If a declaration is malformed
        UnknownDependencyError: If an edge names an undeclared action
        CycleError: If the graph is cyclic
    """
    definition = PipelineDefinition.from_mapping(actions)
    return GraphBuilder(definition).build()
