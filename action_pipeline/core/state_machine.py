"""
State machine and run state for action executions.

Implements explicit lifecycle transitions so an action can only ever be
launched once, plus the mutable run state owned by the orchestrator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from action_pipeline.core.models import ActionStatus, WorkflowStatus


class ActionState(str, Enum):
    """
    Possible lifecycle states for an action.

    State transitions:
    - PENDING -> RUNNING -> FINISHED
    - PENDING -> RUNNING -> CONDITION_FAILED
    - PENDING -> SKIPPED (dependency requirements can no longer be met)
    """

    PENDING = "PENDING"                    # Waiting for dependencies
    RUNNING = "RUNNING"                    # Guard and/or runner in flight
    FINISHED = "FINISHED"                  # Runner returned
    CONDITION_FAILED = "CONDITION_FAILED"  # Guard returned false
    SKIPPED = "SKIPPED"                    # Never launched


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateTransition(BaseModel):
    """One recorded lifecycle step of an action."""

    action: Any = None
    from_state: ActionState
    to_state: ActionState
    at: datetime = Field(default_factory=_utcnow)
    reason: Optional[str] = None


class InvalidStateTransitionError(Exception):
    """Raised when an action is moved along an edge its lifecycle does not have."""

    def __init__(self, action: Any, from_state: ActionState, to_state: ActionState):
        self.action = action
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Action '{action}' cannot move from {from_state.value} to {to_state.value}"
        )


class ActionStateMachine:
    """
    Lifecycle of a single action.

    A state with no outgoing transitions is terminal.
    """

    VALID_TRANSITIONS: dict[ActionState, frozenset[ActionState]] = {
        ActionState.PENDING: frozenset({ActionState.RUNNING, ActionState.SKIPPED}),
        ActionState.RUNNING: frozenset({ActionState.FINISHED, ActionState.CONDITION_FAILED}),
        ActionState.FINISHED: frozenset(),
        ActionState.CONDITION_FAILED: frozenset(),
        ActionState.SKIPPED: frozenset(),
    }

    def __init__(
        self,
        initial_state: ActionState = ActionState.PENDING,
        action: Any = None,
    ):
        self.action = action
        self._state = initial_state
        self._history: list[StateTransition] = []

    @property
    def state(self) -> ActionState:
        return self._state

    @property
    def history(self) -> list[StateTransition]:
        """Recorded transitions, oldest first (a copy)."""
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return not self.VALID_TRANSITIONS[self._state]

    def can_transition_to(self, to_state: ActionState) -> bool:
        return to_state in self.VALID_TRANSITIONS[self._state]

    def transition(
        self,
        to_state: ActionState,
        reason: Optional[str] = None,
    ) -> StateTransition:
        """
        Move the action to `to_state` and record the step.

        Raises:
            InvalidStateTransitionError: If the lifecycle has no such edge
        """
        if not self.can_transition_to(to_state):
            raise InvalidStateTransitionError(self.action, self._state, to_state)

        step = StateTransition(
            action=self.action,
            from_state=self._state,
            to_state=to_state,
            reason=reason,
        )
        self._history.append(step)
        self._state = to_state
        return step


@dataclass
class WorkflowState:
    """Workflow-level status, fixed once every unscoped action is terminal."""

    finalized: bool = False
    status: Optional[WorkflowStatus] = None
    pending_status: Optional[WorkflowStatus] = None

    def finalize(self) -> WorkflowStatus:
        """Fix the workflow status; OK unless some action reported otherwise."""
        self.finalized = True
        self.status = self.pending_status or WorkflowStatus.OK
        return self.status


@dataclass
class RunState:
    """
    Mutable state of one pipeline run.

    Owned exclusively by the orchestrator; runners never see it.
    """

    finished: dict[Any, ActionStatus] = field(default_factory=dict)
    outputs: dict[Any, Any] = field(default_factory=dict)
    running: set[Any] = field(default_factory=set)
    condition_failed: set[Any] = field(default_factory=set)
    workflow: WorkflowState = field(default_factory=WorkflowState)

    def is_terminal(self, node: Any) -> bool:
        """Check if an action has a finished status or a failed guard."""
        return node in self.finished or node in self.condition_failed
