"""Custom exceptions for the quality gate engine."""

from __future__ import annotations


class QualityGateError(Exception):
    """Base exception for all quality gate errors."""

    pass


class ConfigurationError(QualityGateError):
    """Raised for setup issues (unknown gate type, bad config, etc.).

    This is the only error allowed to propagate out of the engine.
    """

    pass


class ExecutionError(QualityGateError):
    """Raised when a gate's ``execute`` fails or returns a malformed value."""

    def __init__(self, gate_name: str = "", message: str = "") -> None:
        self.gate_name = gate_name
        super().__init__(message or f"Gate '{gate_name}' failed to execute")


class GateTimeoutError(QualityGateError):
    """Raised when a gate exceeds its execution deadline."""

    def __init__(self, gate_name: str, timeout_ms: int) -> None:
        self.gate_name = gate_name
        self.timeout_ms = timeout_ms
        super().__init__(f"Gate '{gate_name}' timed out after {timeout_ms}ms")


class StorageError(QualityGateError):
    """Raised by storage adapters when persistence fails."""

    pass
