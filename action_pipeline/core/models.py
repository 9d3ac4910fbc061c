"""
Domain models for the action pipeline.

Declarations are validated with Pydantic. Action names may be any hashable
value; callables (guards and runners) are stored as-is.
"""

from collections.abc import Hashable, Mapping
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionStatus(str, Enum):
    """
    Completion status of an action.

    ANY is a requirement-only wildcard and is never an actual outcome.
    """

    OK = "ok"
    FAIL = "fail"
    CANCEL = "cancel"
    SKIP = "skip"
    ANY = "any"


class WorkflowStatus(str, Enum):
    """
    Aggregate pipeline-wide status.

    ANY is a requirement-only wildcard and is never an actual outcome.
    """

    OK = "ok"
    FAIL = "fail"
    CANCEL = "cancel"
    ANY = "any"


def _ensure_hashable(name: Any) -> Any:
    if not isinstance(name, Hashable):
        raise ValueError(f"Action name must be hashable, got {type(name).__name__}")
    return name


class DependencyRef(BaseModel):
    """A dependency on another action finishing with a given status."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    action: Any = Field(..., description="Name of the action depended on")
    with_: ActionStatus = Field(
        default=ActionStatus.OK,
        alias="with",
        description="Required completion status (ANY accepts every status)",
    )

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: Any) -> Any:
        return _ensure_hashable(v)


class ActionDefinition(BaseModel):
    """Declaration of a single action in the pipeline."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    deps: list[Any] = Field(
        default_factory=list,
        description="Actions whose return values are forwarded as inputs",
    )
    needs: list[DependencyRef] = Field(
        default_factory=list,
        description="Every entry must finish with the required status",
    )
    needs_any_of: list[DependencyRef] = Field(
        default_factory=list,
        alias="needsAnyOf",
        description="At least one entry must finish with the required status",
    )
    needs_workflow: Optional[WorkflowStatus] = Field(
        default=None,
        alias="needsWorkflow",
        description="Required workflow status; gates the action behind finalization",
    )
    if_: Optional[Callable[..., Any]] = Field(
        default=None,
        alias="if",
        description="Guard evaluated against forwarded inputs",
    )
    run: Callable[..., Any] = Field(..., description="Action body")

    @field_validator("deps", mode="before")
    @classmethod
    def validate_deps(cls, v: Any) -> list[Any]:
        """Validate the forwarded dependency list."""
        if v is None:
            return []
        deps = [_ensure_hashable(dep) for dep in v]
        if len(deps) != len(set(deps)):
            raise ValueError("Duplicate deps not allowed")
        return deps

    @field_validator("needs", "needs_any_of", mode="before")
    @classmethod
    def normalize_dependencies(cls, v: Any) -> list[Any]:
        """Turn bare action names into DependencyRef entries requiring OK."""
        if v is None:
            return []
        normalized = []
        for entry in v:
            if isinstance(entry, (DependencyRef, Mapping)):
                normalized.append(entry)
            else:
                normalized.append({"action": entry})
        return normalized


class PipelineDefinition(BaseModel):
    """Ordered set of named actions."""

    actions: dict[Any, ActionDefinition] = Field(
        ..., min_length=1, description="Action declarations keyed by name"
    )

    @classmethod
    def from_mapping(
        cls, actions: "PipelineDefinition | Mapping[Any, Any]"
    ) -> "PipelineDefinition":
        """Accept either a definition or a plain name -> declaration mapping."""
        if isinstance(actions, PipelineDefinition):
            return actions
        return cls(actions=dict(actions))


class PipelineResult(BaseModel):
    """Settled outcome of a pipeline run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    outputs: dict[Any, Any] = Field(
        default_factory=dict, description="Return values of actions that ran"
    )
    statuses: dict[Any, ActionStatus] = Field(
        default_factory=dict,
        description="Completion status per action, including cascaded skips",
    )
    condition_failed: set[Any] = Field(
        default_factory=set, description="Actions whose guard returned false"
    )
    launch_order: list[Any] = Field(
        default_factory=list, description="Actions in the order they were launched"
    )
    workflow_status: Optional[WorkflowStatus] = Field(default=None)

    def ran(self, action: Any) -> bool:
        """Check if the action's runner executed to completion."""
        return action in self.outputs

    def status_of(self, action: Any) -> Optional[ActionStatus]:
        """Get the completion status of an action (None if its guard failed)."""
        return self.statuses.get(action)
