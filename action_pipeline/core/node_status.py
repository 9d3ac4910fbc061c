"""
Readiness resolution for a single action.

AllIn edges are pessimistic: wait for every source, skip on the first
mismatch. AnyOf edges are optimistic: ready on the first match, skip only
once every alternative has finished without matching.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from action_pipeline.config.settings import ConditionFailedPolicy
from action_pipeline.core.graph import DependencyGraph, EdgeType
from action_pipeline.core.models import ActionStatus, WorkflowStatus
from action_pipeline.core.state_machine import RunState


class NodeStatus(str, Enum):
    """Scheduling status derived from the run state."""

    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    NOT_READY = "NOT_READY"
    READY = "READY"
    SKIPPED = "SKIPPED"


@dataclass
class EdgeStats:
    total: int = 0
    finished: int = 0
    met: int = 0
    not_met: int = 0

    def record(self, met: bool) -> None:
        self.finished += 1
        if met:
            self.met += 1
        else:
            self.not_met += 1


def _source_status(
    source: Any,
    run_state: RunState,
    policy: ConditionFailedPolicy,
) -> tuple[bool, Optional[ActionStatus]]:
    """
    Outcome of a dependency as seen by its dependents.

    Returns (finished, status). A finished source with status None is an
    action whose guard failed under the DISTINCT policy.
    """
    if source in run_state.running:
        return False, None

    status = run_state.finished.get(source)
    if status is not None:
        return True, status

    if source in run_state.condition_failed:
        if policy is ConditionFailedPolicy.SKIP:
            return True, ActionStatus.SKIP
        return True, None

    return False, None


def get_node_status(
    node: Any,
    graph: DependencyGraph,
    run_state: RunState,
    policy: ConditionFailedPolicy = ConditionFailedPolicy.SKIP,
) -> NodeStatus:
    """
    Resolve the scheduling status of an action.

    Pure function of the graph and run state; never cached.

    Args:
        node: Action name
        graph: Dependency graph
        run_state: Current run state
        policy: How actions with a failed guard look to their dependents

    Returns:
        NodeStatus for the action
    """
    if node in run_state.running:
        return NodeStatus.RUNNING

    if node in run_state.finished:
        return NodeStatus.FINISHED

    if node in run_state.condition_failed:
        return NodeStatus.SKIPPED

    all_in = EdgeStats()
    any_of = EdgeStats()
    stats_by_type = {EdgeType.ALL_IN: all_in, EdgeType.ANY_OF: any_of}

    if node in graph.nodes_depending_on_workflow:
        workflow = run_state.workflow
        if not workflow.finalized:
            return NodeStatus.NOT_READY

        required = graph.workflow_statuses_by_node[node]
        all_in.total += 1
        all_in.record(required is WorkflowStatus.ANY or required == workflow.status)

    for edge in graph.edges_in[node]:
        stats = stats_by_type[edge.meta.type]
        stats.total += 1

        finished, status = _source_status(edge.from_, run_state, policy)
        if not finished:
            continue

        required = edge.meta.status
        stats.record(required is ActionStatus.ANY or status is required)

    # one mandatory mismatch is a hard skip
    if all_in.not_met > 0:
        return NodeStatus.SKIPPED

    # a pending mandatory dependency could still mismatch
    if all_in.finished < all_in.total:
        return NodeStatus.NOT_READY

    if any_of.total == 0:
        return NodeStatus.READY

    if any_of.met > 0:
        return NodeStatus.READY

    # every alternative finished and none matched
    if any_of.finished == any_of.total:
        return NodeStatus.SKIPPED

    return NodeStatus.NOT_READY
