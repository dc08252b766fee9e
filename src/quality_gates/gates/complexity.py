"""Complexity heuristic gate.

Measures, per function:

- cyclomatic complexity (1 + decision points),
- nesting depth of control-flow blocks,
- length in lines,
- parameter count,

and reports every threshold breach as an issue.  Python sources are
analysed with :mod:`ast`; anything else (or Python that does not parse)
falls back to a regex approximation that understands ``def``,
``function`` and arrow-function declarations.
"""

from __future__ import annotations

import ast
import asyncio
import re
from dataclasses import dataclass
from typing import Any

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.models import GateContext, GateResult, Issue


@dataclass
class FunctionMetrics:
    """Measurements for one function."""
    name: str
    line: int
    complexity: int
    depth: int
    length: int
    params: int


_DECISION_NODES: tuple[type[ast.AST], ...] = (
    ast.If,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.ExceptHandler,
    ast.IfExp,
    ast.match_case,
)
_BLOCK_NODES: tuple[type[ast.AST], ...] = (
    ast.If,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.Try,
    ast.With,
    ast.AsyncWith,
    ast.Match,
)

# Regex fallback ---------------------------------------------------------

_FUNCTION_PATTERN: re.Pattern[str] = re.compile(
    r"(?:^|\n)[ \t]*(?:async\s+)?def\s+(\w+)\s*\(([^)]*)\)"
    r"|function\s+(\w+)\s*\(([^)]*)\)"
    r"|(\w+)\s*=\s*(?:async\s+)?\(([^)]*)\)\s*=>"
)
_DECISION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bif\b"),
    re.compile(r"\belif\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bcatch\b|\bexcept\b"),
    re.compile(r"\?\s*[^:\n]+:"),
    re.compile(r"&&|\|\||\band\b|\bor\b"),
)


class ComplexityGate(BaseGate):
    """Flags functions that exceed configurable complexity thresholds."""

    def __init__(
        self,
        max_cyclomatic_complexity: int = 10,
        max_depth: int = 4,
        max_lines_per_function: int = 50,
        max_parameters_per_function: int = 5,
        severity: str = "warning",
        **options: Any,
    ) -> None:
        options.setdefault("name", "complexity")
        super().__init__(**options)
        self.thresholds = {
            "max_cyclomatic_complexity": max_cyclomatic_complexity,
            "max_depth": max_depth,
            "max_lines_per_function": max_lines_per_function,
            "max_parameters_per_function": max_parameters_per_function,
        }
        self._severity = severity

    async def execute(self, code: str, context: GateContext) -> GateResult:
        functions, method = await asyncio.to_thread(
            self.analyze, code, context.language, context.file_name
        )
        issues = self._issues_for(functions)
        complexities = [f.complexity for f in functions]
        return GateResult(
            status=self.verdict(issues),
            issues=tuple(issues),
            stats={
                "functions_analyzed": len(functions),
                "avg_complexity": (
                    round(sum(complexities) / len(complexities), 1) if complexities else 0
                ),
                "max_complexity": max(complexities, default=0),
            },
            details={"method": method, "thresholds": dict(self.thresholds)},
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(
        self, code: str, language: str | None = None, file_name: str | None = None
    ) -> tuple[list[FunctionMetrics], str]:
        """Return per-function metrics and the method used (``ast``/``regex``)."""
        if _is_python(language, file_name):
            try:
                tree = ast.parse(code)
            except SyntaxError:
                pass
            else:
                return _ast_metrics(tree), "ast"
        return _regex_metrics(code), "regex"

    def _issues_for(self, functions: list[FunctionMetrics]) -> list[Issue]:
        t = self.thresholds
        issues: list[Issue] = []
        for func in functions:
            checks = (
                (func.complexity, t["max_cyclomatic_complexity"], "cyclomatic-complexity",
                 f"has cyclomatic complexity of {func.complexity}"),
                (func.depth, t["max_depth"], "nesting-depth",
                 f"nests control flow {func.depth} levels deep"),
                (func.length, t["max_lines_per_function"], "function-length",
                 f"has {func.length} lines"),
                (func.params, t["max_parameters_per_function"], "parameter-count",
                 f"has {func.params} parameters"),
            )
            for value, limit, rule, text in checks:
                if value > limit:
                    issues.append(
                        Issue(
                            line=func.line,
                            column=1,
                            severity=self._severity,
                            message=f"Function '{func.name}' {text} (max: {limit})",
                            rule=rule,
                        )
                    )
        return issues


def _is_python(language: str | None, file_name: str | None) -> bool:
    if language:
        return language.lower() in ("python", "py")
    if file_name:
        return file_name.endswith((".py", ".pyi"))
    return True


def _ast_metrics(tree: ast.AST) -> list[FunctionMetrics]:
    metrics: list[FunctionMetrics] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        args = node.args
        params = [a.arg for a in (*args.posonlyargs, *args.args, *args.kwonlyargs)]
        if params and params[0] in ("self", "cls"):
            params = params[1:]
        param_count = len(params) + (1 if args.vararg else 0) + (1 if args.kwarg else 0)
        end_line = getattr(node, "end_lineno", None) or node.lineno
        metrics.append(
            FunctionMetrics(
                name=node.name,
                line=node.lineno,
                complexity=_ast_complexity(node),
                depth=_ast_depth(node.body),
                length=end_line - node.lineno + 1,
                params=param_count,
            )
        )
    metrics.sort(key=lambda m: m.line)
    return metrics


def _ast_complexity(func: ast.AST) -> int:
    complexity = 1
    for node in ast.walk(func):
        if isinstance(node, _DECISION_NODES):
            complexity += 1
        elif isinstance(node, ast.BoolOp):
            complexity += len(node.values) - 1
        elif isinstance(node, ast.comprehension):
            complexity += 1 + len(node.ifs)
    return complexity


def _ast_depth(body: list[ast.stmt], level: int = 0) -> int:
    deepest = level
    for stmt in body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            continue
        next_level = level + 1 if isinstance(stmt, _BLOCK_NODES) else level
        for child_body in _child_bodies(stmt):
            # An elif chain stays at the level of its leading if.
            is_elif = (
                isinstance(stmt, ast.If)
                and child_body is stmt.orelse
                and len(child_body) == 1
                and isinstance(child_body[0], ast.If)
            )
            deepest = max(deepest, _ast_depth(child_body, level if is_elif else next_level))
        deepest = max(deepest, next_level)
    return deepest


def _child_bodies(stmt: ast.stmt) -> list[list[ast.stmt]]:
    bodies: list[list[ast.stmt]] = []
    for attr in ("body", "orelse", "finalbody"):
        value = getattr(stmt, attr, None)
        if isinstance(value, list) and value and isinstance(value[0], ast.stmt):
            bodies.append(value)
    for handler in getattr(stmt, "handlers", []) or []:
        bodies.append(handler.body)
    for case in getattr(stmt, "cases", []) or []:
        bodies.append(case.body)
    return bodies


def _regex_metrics(code: str) -> list[FunctionMetrics]:
    metrics: list[FunctionMetrics] = []
    for match in _FUNCTION_PATTERN.finditer(code):
        name = match.group(1) or match.group(3) or match.group(5) or "anonymous"
        raw_params = match.group(2) or match.group(4) or match.group(6) or ""
        params = [p for p in (s.strip() for s in raw_params.split(",")) if p and p not in ("self", "cls")]
        start = match.end()
        body_end = code.find("\n}", start)
        if body_end == -1:
            next_func = _FUNCTION_PATTERN.search(code, start)
            body_end = next_func.start() if next_func else len(code)
        body = code[start:body_end]
        line = code.count("\n", 0, match.start(1) if match.group(1) else match.start()) + 1
        metrics.append(
            FunctionMetrics(
                name=name,
                line=line,
                complexity=1 + sum(len(p.findall(body)) for p in _DECISION_PATTERNS),
                depth=0,
                length=body.count("\n") + 1,
                params=len(params),
            )
        )
    return metrics
