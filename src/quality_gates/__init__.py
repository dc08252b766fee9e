"""Quality gate orchestration engine.

Runs independent verification gates against a code artifact, sequentially
or concurrently, with per-gate timeout and retry, and aggregates their
results into a single pass/fail summary.
"""

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.events import EventBus
from src.quality_gates.exceptions import (
    ConfigurationError,
    ExecutionError,
    GateTimeoutError,
    QualityGateError,
    StorageError,
)
from src.quality_gates.executor import GateExecutor
from src.quality_gates.models import (
    GateContext,
    GateResult,
    GateStatus,
    Issue,
    RunSummary,
    RunVerdict,
)
from src.quality_gates.protocols import Gate, StorageAdapter
from src.quality_gates.registry import create_gate, get_gate_types, register_gate
from src.quality_gates.reporter import ResultReporter
from src.quality_gates.runner import QualityRunner
from src.shared.constants import VERSION

__version__ = VERSION

__all__ = [
    "BaseGate",
    "ConfigurationError",
    "EventBus",
    "ExecutionError",
    "Gate",
    "GateContext",
    "GateExecutor",
    "GateResult",
    "GateStatus",
    "GateTimeoutError",
    "Issue",
    "QualityGateError",
    "QualityRunner",
    "ResultReporter",
    "RunSummary",
    "RunVerdict",
    "StorageAdapter",
    "StorageError",
    "create_gate",
    "get_gate_types",
    "register_gate",
]
