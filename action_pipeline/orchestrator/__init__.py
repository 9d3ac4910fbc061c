"""Pipeline scheduling and execution."""

from action_pipeline.orchestrator.context import ActionContext
from action_pipeline.orchestrator.engine import PipelineOrchestrator, run_pipeline
from action_pipeline.orchestrator.errors import (
    ActionExecutionError,
    PipelineError,
    PipelineStalledError,
    WorkflowStatusNotAllowedError,
)

__all__ = [
    "ActionContext",
    "PipelineOrchestrator",
    "run_pipeline",
    "ActionExecutionError",
    "PipelineError",
    "PipelineStalledError",
    "WorkflowStatusNotAllowedError",
]
