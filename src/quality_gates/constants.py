"""Shared constants for the quality gate engine."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Timeouts and retry (milliseconds)
# ---------------------------------------------------------------------------
DEFAULT_GATE_TIMEOUT_MS: int = 30_000
DEFAULT_RUNNER_TIMEOUT_MS: int = 60_000
DEFAULT_TEST_TIMEOUT_MS: int = 60_000
CI_RUNNER_TIMEOUT_MS: int = 120_000
DEFAULT_RETRY_BASE_DELAY_MS: int = 1_000

# ---------------------------------------------------------------------------
# Severity ranking -- higher is more severe
# ---------------------------------------------------------------------------
SEVERITY_RANKS: dict[str, int] = {
    "error": 3,
    "warning": 2,
    "info": 1,
    "hint": 0,
}
ERROR_SEVERITY_RANK: int = SEVERITY_RANKS["error"]

# ---------------------------------------------------------------------------
# Lifecycle events
# ---------------------------------------------------------------------------
EVENT_RUN_STARTED = "run-started"
EVENT_GATE_STARTED = "gate-started"
EVENT_GATE_COMPLETED = "gate-completed"
EVENT_GATE_ERROR = "gate-error"
EVENT_RUN_STOPPED = "run-stopped"
EVENT_RUN_COMPLETED = "run-completed"
EVENT_RETRY = "retry"
EVENT_RESULT = "result"
EVENT_BATCH_FLUSHED = "batch-flushed"

ALL_EVENTS: frozenset[str] = frozenset(
    {
        EVENT_RUN_STARTED,
        EVENT_GATE_STARTED,
        EVENT_GATE_COMPLETED,
        EVENT_GATE_ERROR,
        EVENT_RUN_STOPPED,
        EVENT_RUN_COMPLETED,
        EVENT_RETRY,
        EVENT_RESULT,
        EVENT_BATCH_FLUSHED,
    }
)

# ---------------------------------------------------------------------------
# Gate types and reasons
# ---------------------------------------------------------------------------
GATE_TYPE_LINT = "lint"
GATE_TYPE_TEST = "test"
GATE_TYPE_SECURITY = "security"
GATE_TYPE_COMPLEXITY = "complexity"
GATE_TYPE_CUSTOM = "custom"

DEFAULT_GATE_TYPES: list[str] = [GATE_TYPE_LINT, GATE_TYPE_COMPLEXITY]
CI_GATE_TYPES: list[str] = [
    GATE_TYPE_LINT,
    GATE_TYPE_TEST,
    GATE_TYPE_SECURITY,
    GATE_TYPE_COMPLEXITY,
]

REASON_GATE_DISABLED = "Gate is disabled"
REASON_ENTRY_DISABLED = "Gate disabled"
REASON_GATE_FAILED = "Gate failed"

SUMMARY_GATE_NAME = "summary"
