"""Runtime errors raised while executing a pipeline."""

from typing import Any


class PipelineError(Exception):
    """Base class for pipeline execution errors."""


class ActionExecutionError(PipelineError):
    """
    Raised when an action's guard or runner raises.

    Distinct from an action reporting ActionStatus.FAIL: a reported failure is
    an outcome, an exception means the action's code is broken and the whole
    run is aborted. The original exception is chained as __cause__.
    """

    def __init__(self, action: Any, error: BaseException):
        self.action = action
        self.error = error
        super().__init__(f"Action '{action}' raised {type(error).__name__}: {error}")


class PipelineStalledError(PipelineError):
    """Raised when nothing is running but some actions are still unresolved."""

    def __init__(self, pending: list[Any]):
        self.pending = pending
        super().__init__(f"Pipeline stalled with unresolved actions: {pending}")


class WorkflowStatusNotAllowedError(PipelineError):
    """Raised when a workflow-scoped action tries to report a workflow status."""

    def __init__(self, action: Any):
        self.action = action
        super().__init__(
            f"Action '{action}' depends on the workflow status and cannot report one"
        )
