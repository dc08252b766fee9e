"""Gate wrapping an arbitrary check function."""

from __future__ import annotations

import asyncio
import importlib
import inspect
from typing import Any, Callable, Mapping

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.exceptions import ExecutionError
from src.quality_gates.models import GateContext, GateResult, GateStatus, Issue


class CustomGate(BaseGate):
    """Adapts a sync or async ``check(code, context)`` callable to a gate.

    The check may return:

    - a :class:`GateResult` or a result mapping -- used as-is,
    - a ``bool`` -- ``True`` passes, ``False`` fails,
    - a list of issues -- judged by the gate's failure policy,
    - ``None`` -- treated as a pass with no issues.

    ``check`` may also be given as a ``"package.module:function"`` string,
    which is how YAML configuration refers to it.
    """

    def __init__(self, check: Callable[..., Any] | str | None = None, **options: Any) -> None:
        options.setdefault("name", "custom")
        super().__init__(**options)
        if isinstance(check, str):
            check = _import_check(check)
        if check is None or not callable(check):
            raise ValueError("CustomGate requires a callable 'check'")
        self._check = check

    async def execute(self, code: str, context: GateContext) -> GateResult:
        if inspect.iscoroutinefunction(self._check):
            outcome = await self._check(code, context)
        else:
            # Sync checks run in a worker thread, never on the event loop
            outcome = await asyncio.to_thread(self._check, code, context)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return self._coerce(outcome)

    def _coerce(self, outcome: Any) -> GateResult:
        if isinstance(outcome, GateResult):
            return outcome
        if isinstance(outcome, Mapping):
            return GateResult.from_mapping(outcome)
        if outcome is None:
            return GateResult(status=GateStatus.PASS)
        if isinstance(outcome, bool):
            return GateResult(
                status=GateStatus.PASS if outcome else GateStatus.FAIL,
                reason="" if outcome else f"Check '{self.name}' returned False",
            )
        if isinstance(outcome, (list, tuple)):
            issues = [Issue.coerce(i) for i in outcome]
            return GateResult(status=self.verdict(issues), issues=tuple(issues))
        raise ExecutionError(
            self.name, f"Check '{self.name}' returned unsupported {type(outcome).__name__}"
        )


def _import_check(path: str) -> Callable[..., Any]:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Check path must look like 'package.module:function', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"Cannot import check module {module_name!r}: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}") from exc
