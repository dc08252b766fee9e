"""Lint gate backed by ``ruff``.

The code is piped into ``ruff check`` on stdin with JSON output, so no
temporary files are written.  Diagnostics whose rule code starts with one
of ``error_prefixes`` (pyflakes ``F`` and pycodestyle ``E`` by default) are
reported as errors; everything else is a warning.  Syntax errors, which
ruff reports without a rule code, are always errors.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Sequence

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.exceptions import ExecutionError
from src.quality_gates.gates.process import run_process
from src.quality_gates.models import GateContext, GateResult, GateStatus, Issue

logger = logging.getLogger(__name__)

_PYTHON_SUFFIXES = (".py", ".pyi")


class LintGate(BaseGate):
    """Runs ruff over the code and maps its diagnostics to issues."""

    def __init__(
        self,
        select: Sequence[str] | None = None,
        ignore: Sequence[str] | None = None,
        error_prefixes: Sequence[str] = ("E", "F"),
        command: Sequence[str] | None = None,
        **options: Any,
    ) -> None:
        options.setdefault("name", "lint")
        super().__init__(**options)
        self._select = list(select or [])
        self._ignore = list(ignore or [])
        self._error_prefixes = tuple(error_prefixes)
        self._command = list(command) if command else [sys.executable, "-m", "ruff"]

    def build_command(self, file_name: str) -> list[str]:
        args = [
            *self._command,
            "check",
            "--output-format",
            "json",
            "--no-cache",
            "--exit-zero",
            "--stdin-filename",
            file_name,
        ]
        if self._select:
            args += ["--select", ",".join(self._select)]
        if self._ignore:
            args += ["--ignore", ",".join(self._ignore)]
        args.append("-")
        return args

    async def execute(self, code: str, context: GateContext) -> GateResult:
        file_name = context.file_name or "generated.py"
        if not _lintable(context.language, file_name):
            return GateResult(
                status=GateStatus.SKIP,
                reason=f"Lint gate supports Python sources only (got {context.language or file_name})",
                details={"file_name": file_name},
            )

        output = await run_process(*self.build_command(file_name), input_text=code)
        if output.returncode != 0:
            raise ExecutionError(
                self.name,
                f"ruff exited with code {output.returncode}: {output.stderr.strip()[:500]}",
            )
        try:
            diagnostics = json.loads(output.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise ExecutionError(self.name, f"Unparseable ruff output: {exc}") from exc

        issues = [self._to_issue(d) for d in diagnostics]
        return GateResult(
            status=self.verdict(issues),
            issues=tuple(issues),
            stats={
                "errors": sum(1 for i in issues if i.severity == "error"),
                "warnings": sum(1 for i in issues if i.severity == "warning"),
                "fixable": sum(1 for i in issues if i.fixable),
            },
            details={
                "file_name": file_name,
                "select": list(self._select),
                "ignore": list(self._ignore),
            },
        )

    def _to_issue(self, diagnostic: dict[str, Any]) -> Issue:
        code = diagnostic.get("code")
        location = diagnostic.get("location") or {}
        if not code:
            severity, rule = "error", "syntax-error"
        else:
            severity = "error" if code.startswith(self._error_prefixes) else "warning"
            rule = code
        return Issue(
            line=int(location.get("row", 0) or 0),
            column=int(location.get("column", 0) or 0),
            severity=severity,
            message=str(diagnostic.get("message", "")),
            rule=rule,
            fixable=diagnostic.get("fix") is not None,
        )


def _lintable(language: str | None, file_name: str) -> bool:
    if language:
        return language.lower() in ("python", "py")
    return file_name.endswith(_PYTHON_SUFFIXES)
