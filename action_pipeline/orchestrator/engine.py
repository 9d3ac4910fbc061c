"""
Pipeline orchestrator engine.

Drives every action of a pipeline to a terminal outcome:
- Graph construction and validation
- Workflow-scope classification
- Readiness resolution on every tick
- Concurrent guard/runner execution
- Workflow status finalization
"""

import asyncio
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Optional

from action_pipeline.config import Settings, get_settings
from action_pipeline.core.graph import build_graph
from action_pipeline.core.models import (
    ActionDefinition,
    ActionStatus,
    PipelineDefinition,
    PipelineResult,
    WorkflowStatus,
)
from action_pipeline.core.node_status import NodeStatus, get_node_status
from action_pipeline.core.state_machine import ActionState, ActionStateMachine, RunState
from action_pipeline.core.workflow_scope import get_nodes_out_of_workflow
from action_pipeline.orchestrator.context import ActionContext
from action_pipeline.orchestrator.errors import ActionExecutionError, PipelineStalledError

logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    """What a finished action task hands back to the orchestrator."""

    action: Any
    condition_met: bool
    value: Any = None
    status: ActionStatus = ActionStatus.OK
    workflow_status: Optional[WorkflowStatus] = None


class PipelineOrchestrator:
    """
    Scheduler and executor for one pipeline run.

    Responsibilities:
    - Own the run state; only the run() coroutine mutates it
    - Launch ready actions as asyncio tasks
    - Integrate completions and reported statuses
    - Finalize the workflow status once every unscoped action is terminal

    An instance runs once.
    """

    def __init__(
        self,
        actions: PipelineDefinition | Mapping[Any, Any],
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.definition = PipelineDefinition.from_mapping(actions)
        self.graph = build_graph(self.definition)

        self.nodes_out_of_workflow = get_nodes_out_of_workflow(
            self.graph.reverse_topological_order(),
            self.graph.edges_out,
            self.graph.nodes_depending_on_workflow,
        )
        self._nodes_in_workflow = [
            node for node in self.graph.nodes
            if node not in self.nodes_out_of_workflow
        ]

        self.state = RunState()
        self._machines = {
            node: ActionStateMachine(action=node) for node in self.graph.nodes
        }
        self._unresolved: list[Any] = list(self.graph.nodes)
        self._tasks: dict[asyncio.Task, Any] = {}
        self._launch_order: list[Any] = []
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._started = False

    def action_state(self, action: Any) -> ActionState:
        """Get the lifecycle state of an action."""
        return self._machines[action].state

    async def run(self) -> PipelineResult:
        """
        Run the pipeline until every action is terminal.

        Returns:
            PipelineResult with outputs and statuses

        Raises:
            ActionExecutionError: If a guard or runner raises
            PipelineStalledError: If unresolved actions remain with nothing running
        """
        if self._started:
            raise RuntimeError("PipelineOrchestrator instances can only run once")
        self._started = True

        if self.settings.max_concurrency:
            self._semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        logger.info(
            f"Starting pipeline: {len(self.graph.nodes)} actions, "
            f"{len(self.nodes_out_of_workflow)} gated behind the workflow status"
        )

        try:
            self._tick()

            while self._tasks:
                done, _ = await asyncio.wait(
                    self._tasks.keys(),
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in done:
                    self._handle_completed(task)

                self._tick()
        except BaseException:
            if self.settings.cancel_on_error:
                await self._cancel_in_flight()
            raise

        if self._unresolved:
            raise PipelineStalledError(list(self._unresolved))

        result = PipelineResult(
            outputs=dict(self.state.outputs),
            statuses=dict(self.state.finished),
            condition_failed=set(self.state.condition_failed),
            launch_order=list(self._launch_order),
            workflow_status=self.state.workflow.status,
        )

        logger.info(
            f"Pipeline settled: {len(result.outputs)} ran, "
            f"{len(result.condition_failed)} condition failed, "
            f"workflow status {result.workflow_status.value if result.workflow_status else None}"
        )
        return result

    # ==================== Scheduling ====================

    def _tick(self) -> None:
        """Resolve unresolved actions until nothing changes."""
        policy = self.settings.condition_failed_policy
        changed = True

        while changed:
            changed = False
            still_unresolved = []

            for node in self._unresolved:
                status = get_node_status(node, self.graph, self.state, policy)
                logger.debug(f"Action '{node}' resolved as {status.value}")

                if status is NodeStatus.READY:
                    self._launch(node)
                elif status is NodeStatus.SKIPPED:
                    self._skip(node)
                    changed = True
                else:
                    still_unresolved.append(node)

            self._unresolved = still_unresolved

            if self._maybe_finalize_workflow():
                changed = True

    def _maybe_finalize_workflow(self) -> bool:
        """Finalize the workflow status once every unscoped action is terminal."""
        workflow = self.state.workflow
        if workflow.finalized:
            return False

        if not all(self.state.is_terminal(node) for node in self._nodes_in_workflow):
            return False

        status = workflow.finalize()
        logger.info(f"Workflow status finalized: {status.value}")
        return True

    def _skip(self, node: Any) -> None:
        """Record a cascaded skip as a real SKIP completion status."""
        self._machines[node].transition(ActionState.SKIPPED, reason="Requirements not met")
        self.state.finished[node] = ActionStatus.SKIP
        logger.warning(f"Action '{node}' skipped: dependency requirements not met")

    def _launch(self, node: Any) -> None:
        """Start an action's guard and runner as a task."""
        self._machines[node].transition(ActionState.RUNNING, reason="Dependencies met")
        self.state.running.add(node)
        self._launch_order.append(node)

        inputs = MappingProxyType(
            {dep: self.state.outputs[dep] for dep in self.graph.inputs_by_node[node]}
        )
        context = ActionContext(
            node,
            inputs,
            can_report_workflow_status=node not in self.nodes_out_of_workflow,
        )
        action = self.definition.actions[node]

        task = asyncio.create_task(
            self._execute(node, action, inputs, context),
            name=f"action:{node}",
        )
        self._tasks[task] = node

        logger.info(f"Launched action '{node}'")

    # ==================== Completion ====================

    def _handle_completed(self, task: asyncio.Task) -> None:
        """Integrate a finished task into the run state."""
        node = self._tasks.pop(task)
        self.state.running.discard(node)

        try:
            outcome: ActionOutcome = task.result()
        except Exception as e:
            logger.error(f"Action '{node}' raised: {e}", exc_info=e)
            raise ActionExecutionError(node, e) from e

        machine = self._machines[node]

        if not outcome.condition_met:
            machine.transition(ActionState.CONDITION_FAILED, reason="Guard returned false")
            self.state.condition_failed.add(node)
            logger.warning(f"Action '{node}' not run: condition not met")
            return

        machine.transition(ActionState.FINISHED)
        self.state.finished[node] = outcome.status
        self.state.outputs[node] = outcome.value

        if outcome.workflow_status is not None:
            self.state.workflow.pending_status = outcome.workflow_status
            logger.info(
                f"Action '{node}' set pending workflow status: {outcome.workflow_status.value}"
            )

        logger.info(f"Action '{node}' finished with status {outcome.status.value}")

    async def _cancel_in_flight(self) -> None:
        """Cancel every running task and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()

        if tasks:
            logger.warning(f"Cancelling {len(tasks)} in-flight actions")
            await asyncio.gather(*tasks, return_exceptions=True)

    # ==================== Execution ====================

    async def _execute(
        self,
        node: Any,
        action: ActionDefinition,
        inputs: Mapping[Any, Any],
        context: ActionContext,
    ) -> ActionOutcome:
        """Evaluate the guard, then the runner, optionally bounded by the semaphore."""
        if self._semaphore is None:
            return await self._execute_action(node, action, inputs, context)

        async with self._semaphore:
            return await self._execute_action(node, action, inputs, context)

    async def _execute_action(
        self,
        node: Any,
        action: ActionDefinition,
        inputs: Mapping[Any, Any],
        context: ActionContext,
    ) -> ActionOutcome:
        if action.if_ is not None:
            condition = await self._call(action.if_, inputs)
            if not condition:
                return ActionOutcome(action=node, condition_met=False)

        value = await self._call(action.run, inputs, context)

        return ActionOutcome(
            action=node,
            condition_met=True,
            value=value,
            status=context.status or ActionStatus.OK,
            workflow_status=context.workflow_status,
        )

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Call a sync or async callable and await whatever it returns."""
        if inspect.iscoroutinefunction(fn):
            result = await fn(*args)
        elif self.settings.run_sync_in_thread:
            result = await asyncio.to_thread(fn, *args)
        else:
            result = fn(*args)

        if inspect.isawaitable(result):
            result = await result
        return result


async def run_pipeline(
    actions: PipelineDefinition | Mapping[Any, Any],
    settings: Optional[Settings] = None,
) -> PipelineResult:
    """
    Build and run a pipeline.

    Args:
        actions: Mapping of action name -> declaration (dict or ActionDefinition)
        settings: Optional settings override

    Returns:
        PipelineResult once every action is terminal

    Raises:
        pydantic.ValidationError: If a declaration is malformed
        GraphBuildError: If the graph has unknown dependencies or cycles
        ActionExecutionError: If a guard or runner raises
    """
    orchestrator = PipelineOrchestrator(actions, settings=settings)
    return await orchestrator.run()
