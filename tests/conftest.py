"""
Pytest fixtures and configuration for tests.
"""

import asyncio
import threading
import time
from typing import Any, Callable, Optional

import pytest

from action_pipeline.config import ConditionFailedPolicy, Environment, Settings
from action_pipeline.core.models import ActionStatus, WorkflowStatus


class CallRecorder:
    """
    Builds runners that record when they start and end.

    Events are strings like "start:a" / "end:a", appended in the order
    they happen (thread-safe, since sync runners execute in worker threads).
    """

    def __init__(self):
        self.events: list[str] = []
        self.inputs: dict[Any, dict[Any, Any]] = {}
        self._lock = threading.Lock()

    def _record(self, event: str) -> None:
        with self._lock:
            self.events.append(event)

    @property
    def started(self) -> list[str]:
        return [e.split(":", 1)[1] for e in self.events if e.startswith("start:")]

    def fn(
        self,
        name: Any,
        status: Optional[ActionStatus | WorkflowStatus] = None,
    ) -> Callable:
        """Synchronous runner returning its own name."""
        def run(inputs, context):
            self._record(f"start:{name}")
            self.inputs[name] = dict(inputs)
            if status is not None:
                context.set_status(status)
            self._record(f"end:{name}")
            return name
        return run

    def async_fn(
        self,
        name: Any,
        delay: float,
        status: Optional[ActionStatus | WorkflowStatus] = None,
    ) -> Callable:
        """Asynchronous runner that sleeps before returning its own name."""
        async def run(inputs, context):
            self._record(f"start:{name}")
            self.inputs[name] = dict(inputs)
            if status is not None:
                context.set_status(status)
            await asyncio.sleep(delay)
            self._record(f"end:{name}")
            return name
        return run

    def blocking_fn(self, name: Any, delay: float) -> Callable:
        """Synchronous runner that blocks its thread for `delay` seconds."""
        def run(inputs, context):
            self._record(f"start:{name}")
            time.sleep(delay)
            self._record(f"end:{name}")
            return name
        return run

    def ran(self, name: Any) -> bool:
        return f"start:{name}" in self.events

    def index(self, event: str) -> int:
        return self.events.index(event)

    def assert_order(self, first: Any, second: Any) -> None:
        """Assert `first` ended before `second` started."""
        assert self.index(f"end:{first}") < self.index(f"start:{second}"), self.events

    def assert_order_every(self, firsts: list[Any], second: Any) -> None:
        for first in firsts:
            self.assert_order(first, second)

    def assert_order_some(self, firsts: list[Any], second: Any) -> None:
        start = self.index(f"start:{second}")
        assert any(
            f"end:{first}" in self.events and self.index(f"end:{first}") < start
            for first in firsts
        ), self.events


@pytest.fixture
def recorder() -> CallRecorder:
    """Fresh call recorder per test."""
    return CallRecorder()


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        environment=Environment.TEST,
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def distinct_settings() -> Settings:
    """Test settings where a failed guard is not seen as SKIP downstream."""
    return Settings(
        environment=Environment.TEST,
        log_level="DEBUG",
        condition_failed_policy=ConditionFailedPolicy.DISTINCT,
    )


@pytest.fixture
def sample_linear_pipeline(recorder) -> dict:
    """Sample linear pipeline: a -> b -> c, with values forwarded."""
    return {
        "a": {"run": recorder.fn("a")},
        "b": {"deps": ["a"], "run": recorder.fn("b")},
        "c": {"deps": ["b"], "run": recorder.fn("c")},
    }


@pytest.fixture
def sample_cyclic_pipeline() -> dict:
    """Sample invalid pipeline with cycle: a -> b -> c -> a."""
    noop = lambda inputs, context: None  # noqa: E731
    return {
        "a": {"needs": ["c"], "run": noop},
        "b": {"needs": ["a"], "run": noop},
        "c": {"needs": ["b"], "run": noop},
    }
