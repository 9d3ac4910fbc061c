"""Core domain models and scheduling logic."""

from action_pipeline.core.models import (
    ActionDefinition,
    ActionStatus,
    DependencyRef,
    PipelineDefinition,
    PipelineResult,
    WorkflowStatus,
)
from action_pipeline.core.graph import (
    CycleError,
    DependencyGraph,
    Edge,
    EdgeMeta,
    EdgeType,
    GraphBuildError,
    UnknownDependencyError,
    build_graph,
)
from action_pipeline.core.dfs import dfs
from action_pipeline.core.workflow_scope import get_nodes_out_of_workflow
from action_pipeline.core.node_status import NodeStatus, get_node_status
from action_pipeline.core.state_machine import (
    ActionState,
    ActionStateMachine,
    InvalidStateTransitionError,
    RunState,
    WorkflowState,
)

__all__ = [
    "ActionDefinition",
    "ActionStatus",
    "DependencyRef",
    "PipelineDefinition",
    "PipelineResult",
    "WorkflowStatus",
    "CycleError",
    "DependencyGraph",
    "Edge",
    "EdgeMeta",
    "EdgeType",
    "GraphBuildError",
    "UnknownDependencyError",
    "build_graph",
    "dfs",
    "get_nodes_out_of_workflow",
    "NodeStatus",
    "get_node_status",
    "ActionState",
    "ActionStateMachine",
    "InvalidStateTransitionError",
    "RunState",
    "WorkflowState",
]
