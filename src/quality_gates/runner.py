"""Quality runner -- schedules gates and aggregates their results.

Runs an ordered list of gates either sequentially or concurrently:

    Sequential -- registration order; each gate's completion (result
                  appended, reported, events emitted) is fully observed
                  before the next gate starts.  With
                  ``continue_on_failure=False`` the first ``fail`` or
                  ``error`` result stops the run and later gates are never
                  invoked.
    Parallel   -- every enabled gate is dispatched at once via
                  ``asyncio.gather`` and joined.  Never stops early; the
                  fail-fast policy only emits ``run-stopped``.

Results always come back in registration order.  Errors raised below the
runner are folded into ``error`` results; only :class:`ConfigurationError`
(raised while adding gates) reaches the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from src.quality_gates.constants import (
    CI_GATE_TYPES,
    CI_RUNNER_TIMEOUT_MS,
    DEFAULT_GATE_TYPES,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_RUNNER_TIMEOUT_MS,
    EVENT_GATE_COMPLETED,
    EVENT_GATE_ERROR,
    EVENT_GATE_STARTED,
    EVENT_RUN_COMPLETED,
    EVENT_RUN_STARTED,
    EVENT_RUN_STOPPED,
    REASON_ENTRY_DISABLED,
    REASON_GATE_FAILED,
)
from src.quality_gates.events import EventBus, EventHandler
from src.quality_gates.exceptions import ConfigurationError
from src.quality_gates.executor import GateExecutor
from src.quality_gates.models import GateContext, GateResult, GateStatus, RunSummary
from src.quality_gates.protocols import Gate
from src.quality_gates.reporter import ResultReporter
from src.shared.logging import task_context
from src.shared.utils import elapsed_ms

logger = logging.getLogger(__name__)


@dataclass
class GateEntry:
    """A registered gate plus its runner-level options."""
    gate: Gate
    options: dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    @property
    def name(self) -> str:
        return self.gate.name

    @property
    def timeout_ms(self) -> int | None:
        return self.options.get("timeout_ms")


class QualityRunner:
    """Orchestrates quality gates for one code artifact at a time.

    Usage
    -----
    ::

        runner = QualityRunner(parallel=True, continue_on_failure=False)
        runner.add_gate(SecurityGate()).add_gate(ComplexityGate())
        runner.on("gate-completed", lambda e: print(e["name"]))
        summary = await runner.run(code, {"fileName": "app.py", "taskId": "t-1"})

    Concurrent calls to :meth:`run` on the same instance are serialised so
    that the reporter's batch and correlation id belong to one run only.
    """

    def __init__(
        self,
        reporter: ResultReporter | None = None,
        *,
        continue_on_failure: bool = True,
        parallel: bool = False,
        timeout_ms: int = DEFAULT_RUNNER_TIMEOUT_MS,
        retry_base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS,
        executor: GateExecutor | None = None,
    ) -> None:
        self._events = EventBus()
        self._entries: list[GateEntry] = []
        self.reporter = reporter or ResultReporter()
        self.continue_on_failure = continue_on_failure
        self.parallel = parallel
        self.timeout_ms = timeout_ms
        self._executor = executor or GateExecutor(
            events=self._events,
            base_delay_ms=retry_base_delay_ms,
            default_timeout_ms=timeout_ms,
        )
        self._run_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Gate management
    # ------------------------------------------------------------------

    @property
    def gates(self) -> list[GateEntry]:
        return list(self._entries)

    @property
    def events(self) -> EventBus:
        return self._events

    def add_gate(self, gate: Gate, options: Mapping[str, Any] | None = None) -> QualityRunner:
        """Append *gate* to the run order.

        ``options`` may carry ``enabled`` (default ``True``) and
        ``timeout_ms`` (overrides the runner default for gates without
        their own timeout).
        """
        if not isinstance(gate, Gate):
            raise ConfigurationError(
                f"{gate!r} does not implement the quality gate contract"
            )
        opts = dict(options or {})
        self._entries.append(
            GateEntry(gate=gate, options=opts, enabled=opts.get("enabled", True) is not False)
        )
        return self

    def remove_gate(self, name: str) -> QualityRunner:
        self._entries = [e for e in self._entries if e.name != name]
        return self

    def on(self, event: str, handler: EventHandler) -> QualityRunner:
        self._events.subscribe(event, handler)
        return self

    def off(self, event: str, handler: EventHandler) -> QualityRunner:
        self._events.unsubscribe(event, handler)
        return self

    def get_statistics(self) -> dict[str, Any]:
        """Counts of configured gates and their effective timeouts."""
        return {
            "total": len(self._entries),
            "enabled": sum(1 for e in self._entries if e.enabled),
            "disabled": sum(1 for e in self._entries if not e.enabled),
            "gates": [
                {
                    "name": e.name,
                    "enabled": e.enabled,
                    "timeout_ms": self._executor.resolve_timeout(
                        e.gate, e.timeout_ms or self.timeout_ms
                    ),
                }
                for e in self._entries
            ],
        }

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(
        self, code: str, context: GateContext | Mapping[str, Any] | None = None
    ) -> RunSummary:
        """Run every registered gate against *code* and summarise.

        Parameters
        ----------
        code:
            The code artifact under verification.
        context:
            Ambient parameters (``fileName``, ``language``, ``taskId`` and
            gate-specific options).

        Returns
        -------
        RunSummary
            Aggregate verdict with per-gate detail and total duration.
        """
        ctx = GateContext.from_mapping(context)
        async with self._run_lock:
            with task_context(ctx.task_id):
                return await self._run_locked(code, ctx)

    async def _run_locked(self, code: str, ctx: GateContext) -> RunSummary:
        start = time.monotonic()
        if ctx.task_id:
            self.reporter.set_task_context(ctx.task_id)

        previous_batch_mode = self.reporter.batch_mode
        self.reporter.batch_mode = True
        self._events.emit(EVENT_RUN_STARTED, gate_count=len(self._entries), context=ctx)
        logger.info(
            "Quality run started: %d gates, mode=%s, continue_on_failure=%s",
            len(self._entries),
            "parallel" if self.parallel else "sequential",
            self.continue_on_failure,
        )

        try:
            if self.parallel:
                results = await self._run_parallel(code, ctx)
            else:
                results = await self._run_sequential(code, ctx)
            await self.reporter.flush_batch()
        finally:
            self.reporter.batch_mode = previous_batch_mode

        summary = self.reporter.generate_summary(results)
        summary.duration_ms = elapsed_ms(start)
        summary = await self.reporter.store_summary(summary)

        logger.info(
            "Quality run complete -- status=%s, passed=%d/%d, failed=%d, "
            "errors=%d, skipped=%d, duration=%.1fms",
            summary.overall_status.value,
            summary.passed,
            summary.total,
            summary.failed,
            summary.errors,
            summary.skipped,
            summary.duration_ms,
        )
        self._events.emit(EVENT_RUN_COMPLETED, summary=summary)
        return summary

    async def _run_sequential(self, code: str, ctx: GateContext) -> list[GateResult]:
        results: list[GateResult] = []
        for entry in self._entries:
            if not entry.enabled:
                skipped = GateResult.skipped(entry.name, REASON_ENTRY_DISABLED)
                results.append(skipped)
                await self.reporter.report_result(entry.name, skipped)
                continue

            result = await self._run_entry(entry, code, ctx)
            results.append(result)

            if not self.continue_on_failure and result.status.is_failure:
                logger.warning(
                    "Gate %s finished with status=%s -- stopping run",
                    entry.name, result.status.value,
                )
                self._events.emit(
                    EVENT_RUN_STOPPED, reason=REASON_GATE_FAILED, gate=entry.name
                )
                break
        return results

    async def _run_parallel(self, code: str, ctx: GateContext) -> list[GateResult]:
        slots: list[GateResult | None] = [None] * len(self._entries)
        dispatched: list[tuple[int, GateEntry]] = []

        for index, entry in enumerate(self._entries):
            if entry.enabled:
                dispatched.append((index, entry))
                continue
            skipped = GateResult.skipped(entry.name, REASON_ENTRY_DISABLED)
            slots[index] = skipped
            await self.reporter.report_result(entry.name, skipped)

        completed = await asyncio.gather(
            *(self._run_entry(entry, code, ctx) for _, entry in dispatched)
        )
        for (index, _), result in zip(dispatched, completed):
            slots[index] = result

        results = [r for r in slots if r is not None]

        if not self.continue_on_failure:
            first_failure = next((r for r in results if r.status.is_failure), None)
            if first_failure is not None:
                self._events.emit(
                    EVENT_RUN_STOPPED, reason=REASON_GATE_FAILED, gate=first_failure.gate
                )
        return results

    async def _run_entry(self, entry: GateEntry, code: str, ctx: GateContext) -> GateResult:
        """Execute one enabled entry, report it and emit its events."""
        self._events.emit(EVENT_GATE_STARTED, name=entry.name)
        try:
            result = await self._executor.run(
                entry.gate, code, ctx, timeout_ms=entry.timeout_ms or self.timeout_ms
            )
        except Exception as exc:
            logger.exception("Executor failed for gate %s", entry.name)
            result = GateResult.errored(
                entry.name,
                str(exc) or type(exc).__name__,
                details={"error_type": type(exc).__name__},
            )

        await self.reporter.report_result(entry.name, result)
        self._events.emit(EVENT_GATE_COMPLETED, name=entry.name, result=result)
        if result.status == GateStatus.ERROR:
            self._events.emit(EVENT_GATE_ERROR, name=entry.name, error=result.error)
        logger.info(
            "Gate %s complete -- status=%s, issues=%d, attempts=%d, duration=%.1fms",
            entry.name,
            result.status.value,
            len(result.issues),
            result.attempts,
            result.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    async def create_with_gates(
        cls,
        gate_types: Iterable[str] | None = None,
        config: Any = None,
        **options: Any,
    ) -> QualityRunner:
        """Build a runner with registry-created gates and detected storage.

        ``options`` may hold runner keyword arguments as well as per-type
        gate options keyed by gate type (``{"security": {...}}``).
        Unknown gate types raise :class:`ConfigurationError`.
        """
        from src.quality_gates.registry import create_gate

        types = list(gate_types) if gate_types is not None else list(DEFAULT_GATE_TYPES)
        runner_kwargs = {
            key: options.pop(key)
            for key in ("continue_on_failure", "parallel", "timeout_ms", "retry_base_delay_ms")
            if key in options
        }
        reporter = await ResultReporter.from_config(config)
        runner = cls(reporter, **runner_kwargs)
        for gate_type in types:
            runner.add_gate(create_gate(gate_type, **dict(options.get(gate_type) or {})))
        return runner

    @classmethod
    async def create_for_ci(cls, config: Any = None, **options: Any) -> QualityRunner:
        """Runner preset for CI: parallel, fail-fast, generous timeout."""
        ci_options = {
            "continue_on_failure": False,
            "parallel": True,
            "timeout_ms": CI_RUNNER_TIMEOUT_MS,
            **options,
        }
        return await cls.create_with_gates(CI_GATE_TYPES, config, **ci_options)
