"""
Action Pipeline

A dependency-driven action orchestration engine with status-aware
dependencies, concurrent asyncio execution, and workflow-status gating.
"""

__version__ = "1.0.0"

from action_pipeline.core.models import (
    ActionDefinition,
    ActionStatus,
    DependencyRef,
    PipelineDefinition,
    PipelineResult,
    WorkflowStatus,
)
from action_pipeline.core.graph import CycleError, GraphBuildError, UnknownDependencyError
from action_pipeline.orchestrator import (
    ActionContext,
    ActionExecutionError,
    PipelineError,
    PipelineOrchestrator,
    PipelineStalledError,
    WorkflowStatusNotAllowedError,
    run_pipeline,
)

__all__ = [
    "__version__",
    "ActionContext",
    "ActionDefinition",
    "ActionExecutionError",
    "ActionStatus",
    "CycleError",
    "DependencyRef",
    "GraphBuildError",
    "PipelineDefinition",
    "PipelineError",
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineStalledError",
    "UnknownDependencyError",
    "WorkflowStatus",
    "WorkflowStatusNotAllowedError",
    "run_pipeline",
]
