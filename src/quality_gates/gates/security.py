"""Security heuristic gate.

Flags common risky constructs with regular expressions.  This is a
heuristic, not a scanner: it reports *where* something dangerous-looking
appears and leaves the judgement to the failure policy.

All regex patterns are compiled at module level.  A line carrying a
``# nosec`` (or ``// nosec``) marker is never reported.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.models import GateContext, GateResult, Issue


@dataclass(frozen=True)
class SecurityPattern:
    """One heuristic check."""
    rule: str
    pattern: re.Pattern[str]
    severity: str
    message: str


_NOSEC_PATTERN: re.Pattern[str] = re.compile(r"(?:#|//)\s*nosec\b", re.IGNORECASE)

DEFAULT_PATTERNS: tuple[SecurityPattern, ...] = (
    SecurityPattern(
        rule="SEC-EVAL",
        pattern=re.compile(r"(?<![\w.])eval\s*\("),
        severity="error",
        message="Use of eval() is a security risk",
    ),
    SecurityPattern(
        rule="SEC-EXEC",
        pattern=re.compile(r"(?<![\w.])exec\s*\("),
        severity="error",
        message="Use of exec() is a security risk",
    ),
    SecurityPattern(
        rule="SEC-SHELL",
        pattern=re.compile(r"subprocess\.\w+\([^)]*shell\s*=\s*True|os\.system\s*\(|child_process"),
        severity="warning",
        message="Command execution detected - ensure proper input sanitization",
    ),
    SecurityPattern(
        rule="SEC-PICKLE",
        pattern=re.compile(r"\b(?:pickle|cPickle|marshal)\.loads?\s*\("),
        severity="warning",
        message="Deserialising untrusted data with pickle/marshal can execute code",
    ),
    SecurityPattern(
        rule="SEC-YAML",
        pattern=re.compile(r"\byaml\.load\s*\((?![^)]*Loader\s*=\s*yaml\.SafeLoader)"),
        severity="warning",
        message="yaml.load() without SafeLoader can construct arbitrary objects",
    ),
    SecurityPattern(
        rule="SEC-SECRET",
        pattern=re.compile(
            r"""(?i)\b(?:password|passwd|secret|api_?key|token)\s*[:=]\s*["'][^"'\s]{6,}["']"""
        ),
        severity="error",
        message="Hard-coded credential detected",
    ),
    SecurityPattern(
        rule="SEC-REQUIRE",
        pattern=re.compile(r"\brequire\s*\(\s*[^'\"\s)]"),
        severity="error",
        message="Dynamic require() can be a security risk",
    ),
    SecurityPattern(
        rule="SEC-INNERHTML",
        pattern=re.compile(r"\.innerHTML\s*="),
        severity="warning",
        message="Direct innerHTML assignment can lead to XSS",
    ),
    SecurityPattern(
        rule="SEC-ENV",
        pattern=re.compile(r"\bprocess\.env\.\w+|\bos\.environ\b|\bos\.getenv\s*\("),
        severity="info",
        message="Environment variable usage detected - ensure secrets are not exposed",
    ),
)


class SecurityGate(BaseGate):
    """Regex-based security heuristics over the raw source text."""

    def __init__(
        self,
        patterns: tuple[SecurityPattern, ...] | None = None,
        **options: Any,
    ) -> None:
        options.setdefault("name", "security")
        super().__init__(**options)
        self._patterns = tuple(patterns) if patterns is not None else DEFAULT_PATTERNS

    async def execute(self, code: str, context: GateContext) -> GateResult:
        issues = await asyncio.to_thread(self.scan, code)
        return GateResult(
            status=self.verdict(issues),
            issues=tuple(issues),
            stats={
                "errors": sum(1 for i in issues if i.severity == "error"),
                "warnings": sum(1 for i in issues if i.severity == "warning"),
                "info": sum(1 for i in issues if i.severity == "info"),
            },
            details={
                "file_name": context.file_name,
                "patterns_checked": len(self._patterns),
            },
        )

    def scan(self, code: str) -> list[Issue]:
        """Return issues ordered by position in *code*."""
        lines = code.splitlines()
        suppressed = {
            lineno
            for lineno, text in enumerate(lines, start=1)
            if _NOSEC_PATTERN.search(text)
        }
        issues: list[Issue] = []
        for check in self._patterns:
            for match in check.pattern.finditer(code):
                line, column = _position(code, match.start())
                if line in suppressed:
                    continue
                issues.append(
                    Issue(
                        line=line,
                        column=column,
                        severity=check.severity,
                        message=check.message,
                        rule=check.rule,
                    )
                )
        issues.sort(key=lambda i: (i.line, i.column))
        return issues


def _position(code: str, offset: int) -> tuple[int, int]:
    """1-based (line, column) of *offset* within *code*."""
    line = code.count("\n", 0, offset) + 1
    line_start = code.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1
