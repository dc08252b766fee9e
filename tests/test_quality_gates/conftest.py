"""Shared fixtures and stub gates for the quality gate tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from src.quality_gates.models import GateContext, GateResult, GateStatus, Issue
from src.quality_gates.storage import InMemoryStorage


class StubGate:
    """Configurable gate double that records how often it was executed."""

    def __init__(
        self,
        name: str = "stub",
        status: str = "pass",
        *,
        enabled: bool = True,
        timeout_ms: int | None = None,
        retry_count: int = 0,
        failure_threshold: int = 1,
        delay: float = 0.0,
        raises: Exception | None = None,
        fail_times: int = 0,
        returns: Any = None,
        issues: list[Issue] | None = None,
    ) -> None:
        self.name = name
        self.status = status
        self.enabled = enabled
        self.timeout_ms = timeout_ms
        self.retry_count = retry_count
        self.failure_threshold = failure_threshold
        self.delay = delay
        self.raises = raises
        self.fail_times = fail_times
        self.returns = returns
        self.issues = issues or []
        self.calls = 0
        self.contexts: list[GateContext] = []

    async def execute(self, code: str, context: GateContext) -> Any:
        self.calls += 1
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.fail_times:
            raise RuntimeError(f"transient failure #{self.calls}")
        if self.raises is not None:
            raise self.raises
        if self.returns is not None:
            return self.returns
        return GateResult(status=GateStatus(self.status), issues=tuple(self.issues))

    def should_fail(self, issues: Any) -> bool:
        return False


@pytest.fixture
def make_gate():
    """Factory for :class:`StubGate` instances."""

    def _factory(name: str = "stub", status: str = "pass", **kwargs: Any) -> StubGate:
        return StubGate(name, status, **kwargs)

    return _factory


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def context() -> GateContext:
    return GateContext(file_name="app.py", language="python", task_id="task-1")
