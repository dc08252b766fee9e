"""Tests for src.quality_gates.display."""

from __future__ import annotations

import io

from rich.console import Console

import src.quality_gates.display as display_mod
from src.quality_gates.display import print_error_panel, print_result, print_summary
from src.quality_gates.models import GateResult, GateStatus, Issue, RunSummary, RunVerdict


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _capture_output(fn, *args, **kwargs) -> str:
    """Capture Rich console output by temporarily replacing the console."""
    buf = io.StringIO()
    original = display_mod._console
    display_mod._console = Console(file=buf, force_terminal=False, width=120)
    try:
        fn(*args, **kwargs)
    finally:
        display_mod._console = original
    return buf.getvalue()


def _make_result(status: GateStatus = GateStatus.PASS, issues=(), **kwargs) -> GateResult:
    return GateResult(
        status=status, gate=kwargs.pop("gate", "security"), issues=issues,
        duration_ms=12.0, attempts=1, **kwargs,
    )


def _make_summary(results: list[GateResult], verdict=RunVerdict.PASSED, **kwargs) -> RunSummary:
    return RunSummary(
        total=len(results),
        passed=sum(1 for r in results if r.status is GateStatus.PASS),
        failed=sum(1 for r in results if r.status is GateStatus.FAIL),
        overall_status=verdict,
        score=50.0,
        duration_ms=42.0,
        results=results,
        **kwargs,
    )


# ===========================================================================
# print_result
# ===========================================================================


class TestPrintResult:
    def test_passing_result(self):
        output = _capture_output(print_result, _make_result())
        assert "security" in output
        assert "PASS" in output
        assert "12ms" in output

    def test_issues_table(self):
        issue = Issue(line=3, severity="error", message="eval() call", rule="SEC-EVAL")
        output = _capture_output(print_result, _make_result(GateStatus.FAIL, issues=(issue,)))
        assert "FAIL" in output
        assert "SEC-EVAL" in output
        assert "eval() call" in output

    def test_issues_truncated(self):
        issues = tuple(Issue(line=i, rule=f"R{i}") for i in range(25))
        output = _capture_output(print_result, _make_result(GateStatus.FAIL, issues=issues))
        assert "... and 5 more" in output
        assert "R24" not in output

    def test_error_and_reason_shown(self):
        result = _make_result(GateStatus.ERROR, error="Gate 'security' timed out after 5ms")
        assert "timed out" in _capture_output(print_result, result)

        skipped = _make_result(GateStatus.SKIP, reason="Gate disabled")
        assert "Gate disabled" in _capture_output(print_result, skipped)


# ===========================================================================
# print_summary
# ===========================================================================


class TestPrintSummary:
    def test_summary_panel(self):
        results = [
            _make_result(gate="lint"),
            _make_result(GateStatus.FAIL, gate="security", issues=(Issue(rule="X"),)),
        ]
        output = _capture_output(
            print_summary, _make_summary(results, RunVerdict.FAILED, task_id="task-7")
        )

        assert "Quality Gate Summary" in output
        assert "FAILED" in output
        assert "50.0%" in output
        assert "lint" in output
        assert "security" in output
        assert "task-7" in output

    def test_empty_summary(self):
        output = _capture_output(print_summary, _make_summary([]))
        assert "PASSED" in output
        assert "Passed: 0" in output


# ===========================================================================
# print_error_panel
# ===========================================================================


class TestPrintErrorPanel:
    def test_exception_message(self):
        output = _capture_output(print_error_panel, ValueError("Unknown gate type 'nope'"))
        assert "Error" in output
        assert "Unknown gate type 'nope'" in output
