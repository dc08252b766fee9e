"""Test runner gate.

Writes the code (a test module) into a scratch directory, picks a runner
and executes it in a subprocess:

- ``pytest`` -- results are read from a JUnit XML report, falling back to
  the terminal summary line when no report was written;
- ``unittest`` -- results are parsed from the verbose text output.

A module without any recognisable tests is skipped rather than failed.
Supporting modules can be placed next to the test file through the
``files`` context option (``{"calc.py": "..."}``).
"""

from __future__ import annotations

import importlib.util
import logging
import re
import shutil
import sys
import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.constants import DEFAULT_TEST_TIMEOUT_MS
from src.quality_gates.exceptions import ExecutionError
from src.quality_gates.gates.process import ProcessOutput, run_process
from src.quality_gates.models import GateContext, GateResult, GateStatus, Issue

logger = logging.getLogger(__name__)

RUNNER_PYTEST = "pytest"
RUNNER_UNITTEST = "unittest"
SUPPORTED_RUNNERS: tuple[str, ...] = (RUNNER_PYTEST, RUNNER_UNITTEST)

_DEFAULT_TEST_FILE = "test_generated.py"
_REPORT_FILE = "junit-report.xml"

# pytest exit codes
_PYTEST_OK = 0
_PYTEST_TESTS_FAILED = 1
_PYTEST_INTERRUPTED = 2
_PYTEST_NO_TESTS = 5

_TEST_FUNCTION_PATTERN = re.compile(r"^\s*(?:async\s+)?def\s+test\w*\s*\(", re.MULTILINE)
_TEST_CLASS_PATTERN = re.compile(r"^class\s+Test\w*", re.MULTILINE)
_TESTCASE_PATTERN = re.compile(r"unittest\.TestCase|\(\s*TestCase\s*\)")
_PYTEST_IMPORT_PATTERN = re.compile(r"^\s*(?:import|from)\s+pytest\b", re.MULTILINE)

_PYTEST_SUMMARY_PATTERN = re.compile(
    r"(\d+)\s+(passed|failed|errors?|skipped|xfailed|xpassed)"
)
_UNITTEST_RAN_PATTERN = re.compile(r"^Ran (\d+) tests?", re.MULTILINE)
_UNITTEST_COUNT_PATTERN = re.compile(r"(failures|errors|skipped|expected failures)=(\d+)")
_UNITTEST_CASE_PATTERN = re.compile(
    r"^(?P<name>\w+) \((?P<where>[\w.]+)\)[^\n]*?\.\.\. (?P<outcome>FAIL|ERROR)$",
    re.MULTILINE,
)


@dataclass
class TestOutcome:
    """Counts and failure issues collected from one test run."""
    __test__ = False

    total: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0
    skipped: int = 0
    issues: list[Issue] = field(default_factory=list)
    source: str = ""

    @property
    def all_passed(self) -> bool:
        return self.failed == 0 and self.errors == 0


class TestRunnerGate(BaseGate):
    """Runs the code as a test module and fails on any failing test."""

    __test__ = False

    def __init__(
        self,
        runner: str | None = None,
        python: str | None = None,
        extra_args: list[str] | None = None,
        **options: Any,
    ) -> None:
        options.setdefault("name", "test")
        options.setdefault("timeout_ms", DEFAULT_TEST_TIMEOUT_MS)
        super().__init__(**options)
        if runner is not None and runner not in SUPPORTED_RUNNERS:
            raise ValueError(
                f"Unsupported test runner {runner!r}; expected one of {', '.join(SUPPORTED_RUNNERS)}"
            )
        self._runner = runner
        self._python = python or sys.executable
        self._extra_args = list(extra_args or [])

    async def execute(self, code: str, context: GateContext) -> GateResult:
        runner = context.get("runner") or self._runner or self.detect_runner(code)
        if runner is None:
            return GateResult(
                status=GateStatus.SKIP,
                reason="No tests detected (pytest or unittest)",
                details={"searched_for": list(SUPPORTED_RUNNERS)},
            )
        if runner not in SUPPORTED_RUNNERS:
            raise ExecutionError(self.name, f"Unsupported test runner {runner!r}")

        test_file = _test_file_name(context.file_name)
        workdir = Path(tempfile.mkdtemp(prefix="quality-gates-test-"))
        try:
            (workdir / test_file).write_text(code, encoding="utf-8")
            for name, content in dict(context.get("files") or {}).items():
                target = workdir / name
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")

            if runner == RUNNER_PYTEST:
                output, outcome = await self._run_pytest(workdir, test_file)
            else:
                output, outcome = await self._run_unittest(workdir, test_file)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        details = {
            "runner": runner,
            "test_file": test_file,
            "returncode": output.returncode,
            "parsed_from": outcome.source,
        }
        if outcome.total == 0:
            return GateResult(
                status=GateStatus.SKIP,
                reason="No tests were collected",
                details=details,
            )
        return GateResult(
            status=GateStatus.PASS if outcome.all_passed else GateStatus.FAIL,
            issues=tuple(outcome.issues),
            stats={
                "total": outcome.total,
                "passed": outcome.passed,
                "failed": outcome.failed,
                "errors": outcome.errors,
                "skipped": outcome.skipped,
            },
            details=details,
        )

    @staticmethod
    def detect_runner(code: str) -> str | None:
        """Pick a runner for *code*, or ``None`` when it contains no tests."""
        has_tests = bool(
            _TEST_FUNCTION_PATTERN.search(code) or _TEST_CLASS_PATTERN.search(code)
        )
        if not has_tests:
            return None
        uses_pytest = bool(_PYTEST_IMPORT_PATTERN.search(code))
        if uses_pytest or not _TESTCASE_PATTERN.search(code):
            return RUNNER_PYTEST if _pytest_available() else None
        return RUNNER_PYTEST if _pytest_available() else RUNNER_UNITTEST

    # ------------------------------------------------------------------
    # pytest
    # ------------------------------------------------------------------

    async def _run_pytest(self, workdir: Path, test_file: str) -> tuple[ProcessOutput, TestOutcome]:
        report = workdir / _REPORT_FILE
        output = await run_process(
            self._python,
            "-m",
            "pytest",
            "-q",
            "-p",
            "no:cacheprovider",
            "-o",
            "junit_family=xunit1",
            f"--junitxml={report}",
            *self._extra_args,
            test_file,
            cwd=workdir,
        )
        logger.debug("pytest exited with %d", output.returncode)

        if output.returncode == _PYTEST_NO_TESTS:
            return output, TestOutcome(source="exit-code")
        if output.returncode not in (_PYTEST_OK, _PYTEST_TESTS_FAILED, _PYTEST_INTERRUPTED):
            raise ExecutionError(
                self.name,
                f"pytest exited with code {output.returncode}: {output.output.strip()[-500:]}",
            )

        if report.exists():
            try:
                return output, parse_junit_xml(report.read_text(encoding="utf-8"))
            except ET.ParseError as exc:
                logger.warning("Unreadable JUnit report, using text output: %s", exc)
        return output, parse_pytest_output(output.output)

    # ------------------------------------------------------------------
    # unittest
    # ------------------------------------------------------------------

    async def _run_unittest(self, workdir: Path, test_file: str) -> tuple[ProcessOutput, TestOutcome]:
        module = Path(test_file).with_suffix("").as_posix().replace("/", ".")
        output = await run_process(
            self._python, "-m", "unittest", "-v", *self._extra_args, module, cwd=workdir
        )
        logger.debug("unittest exited with %d", output.returncode)
        return output, parse_unittest_output(output.output)


# ----------------------------------------------------------------------
# Result parsers
# ----------------------------------------------------------------------


def parse_junit_xml(text: str) -> TestOutcome:
    """Count test cases in a JUnit XML report and turn failures into issues."""
    root = ET.fromstring(text)
    outcome = TestOutcome(source="junit-xml")
    for case in root.iter("testcase"):
        outcome.total += 1
        failure = case.find("failure")
        error = case.find("error")
        if failure is not None or error is not None:
            node = failure if failure is not None else error
            if failure is not None:
                outcome.failed += 1
            else:
                outcome.errors += 1
            name = ".".join(p for p in (case.get("classname"), case.get("name")) if p)
            message = node.get("message") or _last_line(node.text)
            line = case.get("line")
            outcome.issues.append(
                Issue(
                    line=int(line) + 1 if line and line.isdigit() else 0,
                    severity="error",
                    message=f"{name}: {message}" if message else name,
                    rule="test-failure" if failure is not None else "test-error",
                )
            )
        elif case.find("skipped") is not None:
            outcome.skipped += 1
        else:
            outcome.passed += 1
    return outcome


def parse_pytest_output(text: str) -> TestOutcome:
    """Fallback: read counts from pytest's final summary line."""
    outcome = TestOutcome(source="text")
    for count, label in _PYTEST_SUMMARY_PATTERN.findall(text):
        n = int(count)
        if label in ("passed", "xfailed"):
            outcome.passed += n
        elif label in ("failed", "xpassed"):
            outcome.failed += n
        elif label.startswith("error"):
            outcome.errors += n
        elif label == "skipped":
            outcome.skipped += n
    outcome.total = outcome.passed + outcome.failed + outcome.errors + outcome.skipped
    if not outcome.all_passed:
        outcome.issues.append(
            Issue(
                severity="error",
                message=f"{outcome.failed} failed, {outcome.errors} errors",
                rule="test-failure",
            )
        )
    return outcome


def parse_unittest_output(text: str) -> TestOutcome:
    """Read counts and failing test names from ``unittest -v`` output."""
    outcome = TestOutcome(source="text")
    ran = _UNITTEST_RAN_PATTERN.search(text)
    if ran is None:
        return outcome
    outcome.total = int(ran.group(1))
    tail = text[ran.end():]
    counts = {key: int(value) for key, value in _UNITTEST_COUNT_PATTERN.findall(tail)}
    outcome.failed = counts.get("failures", 0)
    outcome.errors = counts.get("errors", 0)
    outcome.skipped = counts.get("skipped", 0)
    outcome.passed = max(0, outcome.total - outcome.failed - outcome.errors - outcome.skipped)

    for match in _UNITTEST_CASE_PATTERN.finditer(text):
        failed = match.group("outcome") == "FAIL"
        outcome.issues.append(
            Issue(
                severity="error",
                message=f"{match.group('where')}: {match.group('name')} {'failed' if failed else 'raised an error'}",
                rule="test-failure" if failed else "test-error",
            )
        )
    return outcome


def _last_line(text: str | None) -> str:
    lines = (text or "").strip().splitlines()
    return lines[-1] if lines else ""


def _test_file_name(file_name: str | None) -> str:
    if not file_name:
        return _DEFAULT_TEST_FILE
    name = Path(file_name).name
    if not name.endswith(".py"):
        return _DEFAULT_TEST_FILE
    if name.startswith("test_") or name.endswith("_test.py"):
        return name
    return f"test_{name}"


def _pytest_available() -> bool:
    return importlib.util.find_spec("pytest") is not None
