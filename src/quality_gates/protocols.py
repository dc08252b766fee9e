"""Runtime-checkable protocols for gates and storage collaborators."""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from src.quality_gates.models import GateContext, GateResult, Issue


@runtime_checkable
class Gate(Protocol):
    """Capability every quality gate implements.

    Metadata is read by the runner and executor; it must not change while
    a run is in progress.
    """

    name: str
    enabled: bool
    timeout_ms: int | None
    retry_count: int
    failure_threshold: int

    async def execute(self, code: str, context: GateContext) -> GateResult:
        """Check *code* and return a result.

        Args:
            code: The code artifact under verification.
            context: Ambient parameters (file name, language, task id).

        Returns:
            The gate's result. Failures are signalled by raising.
        """
        ...

    def should_fail(self, issues: Sequence[Issue]) -> bool:
        """Decide whether *issues* amount to a failing result."""
        ...


@runtime_checkable
class StorageAdapter(Protocol):
    """Protocol for optional result persistence."""

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open connections)."""
        ...

    def get_type(self) -> str:
        """Return a short backend identifier, e.g. ``"sqlite"``."""
        ...

    def supports_cloud(self) -> bool:
        """Whether results leave the local machine."""
        ...

    async def store_quality_result(
        self, task_id: str, gate_name: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Persist one result.

        Returns:
            A mapping containing at least the generated ``id``.
        """
        ...
