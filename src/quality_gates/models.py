"""Data models for gate execution results and run summaries."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from src.shared.utils import now_iso


class GateStatus(str, Enum):
    """Canonical outcome of a single gate execution."""
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    ERROR = "error"

    @property
    def is_failure(self) -> bool:
        """``True`` for statuses that trip a fail-fast policy."""
        return self in (GateStatus.FAIL, GateStatus.ERROR)


class RunVerdict(str, Enum):
    """Overall verdict of a run."""
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class Issue:
    """A diagnostic record produced by a gate."""
    line: int = 0
    column: int = 0
    severity: str = "error"
    message: str = ""
    rule: str = ""
    fixable: bool = False

    @classmethod
    def coerce(cls, value: Issue | Mapping[str, Any]) -> Issue:
        """Build an Issue from an Issue or a plain mapping."""
        if isinstance(value, Issue):
            return value
        return cls(
            line=int(value.get("line", 0) or 0),
            column=int(value.get("column", 0) or 0),
            severity=str(value.get("severity", "error")),
            message=str(value.get("message", "")),
            rule=str(value.get("rule", "")),
            fixable=bool(value.get("fixable", False)),
        )


@dataclass(frozen=True)
class GateContext:
    """Ambient parameters passed to a gate alongside the code."""
    file_name: str | None = None
    language: str | None = None
    task_id: str | None = None
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.options, MappingProxyType):
            object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> GateContext:
        """Build a context from a plain mapping.

        Both ``fileName`` and ``file_name`` spellings are accepted.  Keys
        that are not recognised end up in :attr:`options`.
        """
        if data is None:
            return cls()
        if isinstance(data, GateContext):
            return data
        remaining = dict(data)
        file_name = remaining.pop("file_name", None) or remaining.pop("fileName", None)
        remaining.pop("fileName", None)
        language = remaining.pop("language", None)
        task_id = remaining.pop("task_id", None) or remaining.pop("taskId", None)
        remaining.pop("taskId", None)
        options = dict(remaining.pop("options", {}) or {})
        options.update(remaining)
        return cls(
            file_name=file_name,
            language=language,
            task_id=task_id,
            options=options,
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a gate-specific option."""
        return self.options.get(key, default)


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate execution.

    Constructing a result with a status outside :class:`GateStatus` raises
    ``ValueError``.  Issues given as mappings are converted to
    :class:`Issue` instances.
    """
    status: GateStatus
    gate: str = ""
    issues: tuple[Issue, ...] = ()
    stats: dict[str, Any] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0
    attempts: int = 0
    timestamp: str = field(default_factory=now_iso)
    error: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", GateStatus(self.status))
        object.__setattr__(
            self, "issues", tuple(Issue.coerce(i) for i in self.issues)
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GateResult:
        """Build a result from a plain ``{status, issues, stats, details}`` mapping.

        Raises ``KeyError`` without a status and ``ValueError`` for an
        unknown one.
        """
        return cls(
            status=data["status"],
            gate=str(data.get("gate") or ""),
            issues=tuple(data.get("issues") or ()),
            stats=dict(data.get("stats") or {}),
            details=dict(data.get("details") or {}),
            error=str(data.get("error") or ""),
            reason=str(data.get("reason") or data.get("message") or ""),
        )

    @classmethod
    def skipped(cls, gate: str, reason: str) -> GateResult:
        return cls(status=GateStatus.SKIP, gate=gate, reason=reason)

    @classmethod
    def errored(
        cls,
        gate: str,
        error: str,
        attempts: int = 1,
        duration_ms: float = 0.0,
        details: dict[str, Any] | None = None,
    ) -> GateResult:
        return cls(
            status=GateStatus.ERROR,
            gate=gate,
            error=error,
            attempts=attempts,
            duration_ms=duration_ms,
            details=details or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the stable downstream result schema."""
        data: dict[str, Any] = {
            "gate": self.gate,
            "status": self.status.value,
            "duration": self.duration_ms,
            "attempts": self.attempts,
            "timestamp": self.timestamp,
            "issues": [asdict(issue) for issue in self.issues],
            "stats": dict(self.stats),
            "details": dict(self.details),
        }
        if self.error:
            data["error"] = self.error
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class ReportedResult:
    """A gate result enriched by the reporter with correlation data."""
    result: GateResult
    gate_name: str
    task_id: str | None = None
    timestamp: str = field(default_factory=now_iso)
    metadata: dict[str, Any] = field(default_factory=dict)
    stored: bool | None = None
    storage_id: str | None = None
    storage_error: str = ""

    @property
    def status(self) -> GateStatus:
        return self.result.status

    def to_dict(self) -> dict[str, Any]:
        data = self.result.to_dict()
        data.update(
            {
                "gateName": self.gate_name,
                "taskId": self.task_id,
                "timestamp": self.timestamp,
                "metadata": dict(self.metadata),
            }
        )
        if self.stored is not None:
            data["stored"] = self.stored
        if self.storage_id is not None:
            data["storageId"] = self.storage_id
        if self.storage_error:
            data["storageError"] = self.storage_error
        return data


@dataclass
class BatchFlushResult:
    """Outcome of flushing the reporter's batch to storage."""
    flushed: int = 0
    stored: int = 0
    failed: int = 0
    results: list[ReportedResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.flushed


@dataclass
class GateSummary:
    """Per-gate slice of a run summary."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    results: list[GateResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class RunSummary:
    """Aggregate verdict over all gate results of one run."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    gates: dict[str, GateSummary] = field(default_factory=dict)
    overall_status: RunVerdict = RunVerdict.PASSED
    score: float = 0.0
    duration_ms: float = 0.0
    task_id: str | None = None
    stored: bool | None = None
    storage_id: str | None = None
    storage_error: str = ""
    # All results in the order they were aggregated; not part of to_dict().
    results: list[GateResult] = field(default_factory=list)

    @property
    def passed_overall(self) -> bool:
        return self.overall_status == RunVerdict.PASSED

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the stable downstream summary schema."""
        data: dict[str, Any] = {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": self.errors,
            "gates": {name: gs.to_dict() for name, gs in self.gates.items()},
            "overallStatus": self.overall_status.value,
            "score": self.score,
            "duration": self.duration_ms,
            "taskId": self.task_id,
        }
        if self.stored is not None:
            data["stored"] = self.stored
        if self.storage_id is not None:
            data["storageId"] = self.storage_id
        if self.storage_error:
            data["storageError"] = self.storage_error
        return data
