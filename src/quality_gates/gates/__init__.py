"""Built-in gate implementations."""

from src.quality_gates.gates.complexity import ComplexityGate
from src.quality_gates.gates.custom import CustomGate
from src.quality_gates.gates.lint import LintGate
from src.quality_gates.gates.security import SecurityGate
from src.quality_gates.gates.test_runner import TestRunnerGate

__all__ = [
    "ComplexityGate",
    "CustomGate",
    "LintGate",
    "SecurityGate",
    "TestRunnerGate",
]
