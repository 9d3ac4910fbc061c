"""
Workflow-scope classification.

Finds the actions whose readiness already depends on the workflow status.
They must not take part in deciding when the workflow is finalized.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from action_pipeline.core.dfs import dfs
from action_pipeline.core.graph import Edge


@dataclass
class _ScopeState:
    nodes_out_of_workflow: set[Any] = field(default_factory=set)
    is_out_of_workflow: bool = False
    upper_node: Optional[Any] = None


def get_nodes_out_of_workflow(
    nodes: Sequence[Any],
    edges_out: Mapping[Any, Iterable[Edge]],
    workflow_nodes: set[Any],
) -> set[Any]:
    """
    Compute the set of actions gated behind workflow finalization.

    Args:
        nodes: All actions in reverse topological order (sources last)
        edges_out: Outgoing edges per action
        workflow_nodes: Actions that declare a workflow dependency

    Returns:
        Workflow-dependent actions plus everything reachable from them
    """
    # Walk workflow-dependent roots first so a node shared with an unscoped
    # branch is always first reached from inside a scoped subtree.
    ordered = [node for node in nodes if node not in workflow_nodes]
    ordered.extend(node for node in nodes if node in workflow_nodes)

    def on_enter(node: Any, state: _ScopeState) -> None:
        if not state.is_out_of_workflow and node in workflow_nodes:
            state.is_out_of_workflow = True
            state.upper_node = node

        if state.is_out_of_workflow:
            state.nodes_out_of_workflow.add(node)

    def on_leave(node: Any, state: _ScopeState) -> None:
        if state.is_out_of_workflow and node == state.upper_node:
            state.is_out_of_workflow = False
            state.upper_node = None

    return dfs(
        nodes=ordered,
        get_next=lambda node: (edge.to for edge in edges_out[node]),
        state=_ScopeState(),
        on_enter=on_enter,
        on_leave=on_leave,
        get_result=lambda state: state.nodes_out_of_workflow,
    )
