"""
Status-reporting capability handed to each runner.

The context only records what the runner reports. The orchestrator reads it
back once the runner has returned, so runners never touch run state.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from action_pipeline.core.models import ActionStatus, WorkflowStatus
from action_pipeline.orchestrator.errors import WorkflowStatusNotAllowedError

logger = logging.getLogger(__name__)


class ActionContext:
    """
    Per-invocation handle passed to a runner as its second argument.

    Attributes:
        action: Name of the running action
        inputs: Read-only forwarded dependency values
        status: Reported completion status (None means OK)
        workflow_status: Reported workflow status, if any
    """

    def __init__(
        self,
        action: Any,
        inputs: Mapping[Any, Any],
        can_report_workflow_status: bool = True,
    ):
        self.action = action
        self.inputs = inputs
        self.status: Optional[ActionStatus] = None
        self.workflow_status: Optional[WorkflowStatus] = None
        self._can_report_workflow_status = can_report_workflow_status

    def set_status(self, status: ActionStatus | WorkflowStatus) -> None:
        """
        Report the action's own outcome or the pending workflow status.

        Raises:
            ValueError: If the ANY wildcard is reported
            TypeError: If status is neither an ActionStatus nor a WorkflowStatus
            WorkflowStatusNotAllowedError: If a workflow-scoped action reports
                a workflow status
        """
        if isinstance(status, ActionStatus):
            if status is ActionStatus.ANY:
                raise ValueError("ActionStatus.ANY is a requirement, not an outcome")
            self.status = status
        elif isinstance(status, WorkflowStatus):
            if status is WorkflowStatus.ANY:
                raise ValueError("WorkflowStatus.ANY is a requirement, not an outcome")
            if not self._can_report_workflow_status:
                raise WorkflowStatusNotAllowedError(self.action)
            self.workflow_status = status
        else:
            raise TypeError(
                f"Expected ActionStatus or WorkflowStatus, got {type(status).__name__}"
            )

        logger.debug(f"Action '{self.action}' reported {type(status).__name__}.{status.name}")
