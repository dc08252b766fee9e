"""Common metadata and failure policy shared by the built-in gates.

Concrete gates subclass :class:`BaseGate` once and implement
:meth:`BaseGate.execute`.  Anything satisfying the
:class:`~src.quality_gates.protocols.Gate` protocol is accepted by the
runner, so subclassing is a convenience, not a requirement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

from src.quality_gates.constants import ERROR_SEVERITY_RANK, SEVERITY_RANKS
from src.quality_gates.models import GateContext, GateResult, GateStatus, Issue


class BaseGate(ABC):
    """Base implementation of gate metadata and the default failure policy.

    Parameters
    ----------
    name:
        Display name; defaults to the class name.
    enabled:
        Disabled gates are skipped without being executed.
    timeout_ms:
        Per-gate deadline.  ``None`` defers to the runner's default.
    retry_count:
        Extra attempts after the first failed one.
    failure_threshold:
        Number of ``error`` issues needed for :meth:`should_fail`.
    config:
        Free-form gate-specific settings.
    """

    def __init__(
        self,
        name: str | None = None,
        enabled: bool = True,
        timeout_ms: int | None = None,
        retry_count: int = 0,
        failure_threshold: int = 1,
        config: dict[str, Any] | None = None,
    ) -> None:
        self._name = name or type(self).__name__
        self._enabled = enabled
        self._timeout_ms = timeout_ms
        self._retry_count = max(0, int(retry_count))
        self._failure_threshold = max(1, int(failure_threshold))
        self._config = dict(config or {})

    # ------------------------------------------------------------------
    # Read-only metadata
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def timeout_ms(self) -> int | None:
        return self._timeout_ms

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def config(self) -> dict[str, Any]:
        return dict(self._config)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    async def execute(self, code: str, context: GateContext) -> GateResult:
        """Check *code*; raise on internal failure."""

    @staticmethod
    def parse_severity(level: str) -> int:
        """Map a severity label to its rank (unknown labels rank 0)."""
        return SEVERITY_RANKS.get(str(level).lower(), 0)

    def should_fail(self, issues: Sequence[Issue]) -> bool:
        errors = [i for i in issues if self.parse_severity(i.severity) >= ERROR_SEVERITY_RANK]
        return len(errors) >= self._failure_threshold

    def verdict(self, issues: Sequence[Issue]) -> GateStatus:
        """``FAIL`` when :meth:`should_fail` trips, otherwise ``PASS``."""
        return GateStatus.FAIL if self.should_fail(issues) else GateStatus.PASS

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self._name!r}, enabled={self._enabled}, "
            f"timeout_ms={self._timeout_ms}, retry_count={self._retry_count})"
        )
