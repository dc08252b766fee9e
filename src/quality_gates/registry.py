"""Registry mapping gate type names to gate classes."""

from __future__ import annotations

from typing import Any

from src.quality_gates.constants import (
    GATE_TYPE_COMPLEXITY,
    GATE_TYPE_CUSTOM,
    GATE_TYPE_LINT,
    GATE_TYPE_SECURITY,
    GATE_TYPE_TEST,
)
from src.quality_gates.exceptions import ConfigurationError
from src.quality_gates.gates.complexity import ComplexityGate
from src.quality_gates.gates.custom import CustomGate
from src.quality_gates.gates.lint import LintGate
from src.quality_gates.gates.security import SecurityGate
from src.quality_gates.gates.test_runner import TestRunnerGate
from src.quality_gates.protocols import Gate

_REGISTRY: dict[str, type] = {
    GATE_TYPE_LINT: LintGate,
    GATE_TYPE_TEST: TestRunnerGate,
    GATE_TYPE_SECURITY: SecurityGate,
    GATE_TYPE_COMPLEXITY: ComplexityGate,
    GATE_TYPE_CUSTOM: CustomGate,
}


def create_gate(gate_type: str, **options: Any) -> Gate:
    """Instantiate a registered gate.

    Raises:
        ConfigurationError: If *gate_type* is unknown, the options are
            rejected by the gate class, or the instance does not satisfy
            the gate contract.
    """
    gate_cls = _REGISTRY.get(gate_type)
    if gate_cls is None:
        raise ConfigurationError(f"Unknown quality gate type: {gate_type}")
    try:
        gate = gate_cls(**options)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid options for gate type {gate_type!r}: {exc}") from exc
    if not isinstance(gate, Gate):
        raise ConfigurationError(f"Gate type {gate_type!r} does not implement the gate contract")
    return gate


def register_gate(gate_type: str, gate_cls: type) -> None:
    """Register (or replace) a gate class under *gate_type*."""
    if not isinstance(gate_cls, type):
        raise ConfigurationError(f"Gate for {gate_type!r} must be a class, got {gate_cls!r}")
    if not callable(getattr(gate_cls, "execute", None)):
        raise ConfigurationError(f"{gate_cls.__name__} must define an async execute() method")
    _REGISTRY[gate_type] = gate_cls


def unregister_gate(gate_type: str) -> None:
    _REGISTRY.pop(gate_type, None)


def get_gate_types() -> list[str]:
    return sorted(_REGISTRY)


def get_gate_class(gate_type: str) -> type:
    """Return the class registered under *gate_type*."""
    try:
        return _REGISTRY[gate_type]
    except KeyError:
        raise ConfigurationError(f"Unknown quality gate type: {gate_type}") from None
