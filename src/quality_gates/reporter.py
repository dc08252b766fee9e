"""Result reporter -- correlation, batching, persistence and aggregation.

Storage is optional: without a storage adapter (or without a task id) the
reporter still enriches results and computes summaries, it simply never
persists.  Every storage call is independently try/excepted so that a
persistence failure **never** raises into the runner; it is recorded as
``stored=False`` plus ``storage_error`` instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Sequence

from src.quality_gates.constants import EVENT_BATCH_FLUSHED, EVENT_RESULT, SUMMARY_GATE_NAME
from src.quality_gates.events import EventBus
from src.quality_gates.models import (
    BatchFlushResult,
    GateResult,
    GateStatus,
    GateSummary,
    ReportedResult,
    RunSummary,
    RunVerdict,
)
from src.quality_gates.protocols import StorageAdapter

logger = logging.getLogger(__name__)

_STATUS_SYMBOLS: dict[GateStatus, str] = {
    GateStatus.PASS: "✅",
    GateStatus.FAIL: "❌",
    GateStatus.SKIP: "⏭️",
    GateStatus.ERROR: "⚠️",
}


class ResultReporter:
    """Collects gate results for one run and turns them into a summary.

    Parameters
    ----------
    storage:
        Optional persistence collaborator.
    enabled:
        A disabled reporter wraps results but never stores or batches them.
    task_id:
        Correlation id attached to every reported result.
    batch_mode:
        Buffer results until :meth:`flush_batch` instead of storing them
        one by one.
    metadata:
        Extra key/values merged into every reported result.
    events:
        Bus for ``result`` and ``batch-flushed`` notifications.
    """

    def __init__(
        self,
        storage: StorageAdapter | None = None,
        *,
        enabled: bool = True,
        task_id: str | None = None,
        batch_mode: bool = False,
        metadata: dict[str, Any] | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._storage = storage
        self.enabled = enabled
        self._task_id = task_id
        self.batch_mode = batch_mode
        self._metadata = dict(metadata or {})
        self._events = events or EventBus()
        self._batch: list[ReportedResult] = []
        self._batch_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def storage(self) -> StorageAdapter | None:
        return self._storage

    def set_storage(self, storage: StorageAdapter | None) -> None:
        self._storage = storage

    @property
    def task_id(self) -> str | None:
        return self._task_id

    def set_task_context(self, task_id: str | None) -> None:
        self._task_id = task_id

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def pending(self) -> int:
        """Number of results waiting in the batch."""
        return len(self._batch)

    @classmethod
    async def from_config(cls, config: Any = None, **kwargs: Any) -> ResultReporter:
        """Build a reporter whose storage is detected from *config*.

        The configured backend is created and initialised.  An unknown
        backend name raises :class:`ConfigurationError`; when initialisation
        fails the reporter continues without persistence.
        """
        from src.quality_gates.storage import create_storage

        reporter = cls(**kwargs)
        storage_config = getattr(config, "storage", None)
        backend = getattr(storage_config, "backend", "none") if storage_config else "none"
        adapter = create_storage(backend, db_path=getattr(storage_config, "db_path", None))
        if adapter is None:
            logger.info("Quality gate results will not be persisted (no storage backend)")
            return reporter
        try:
            await adapter.initialize()
        except Exception as exc:
            logger.info(
                "Quality gate results will not be persisted (storage not available: %s)",
                exc,
            )
            return reporter

        reporter.set_storage(adapter)
        logger.info("Quality gate results will be stored using %s", adapter.get_type())
        return reporter

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def report_result(self, gate_name: str, result: GateResult) -> ReportedResult:
        """Enrich *result* and either buffer or persist it."""
        reported = ReportedResult(
            result=result,
            gate_name=gate_name,
            task_id=self._task_id,
            metadata=dict(self._metadata),
        )
        if not self.enabled:
            return reported

        self._events.emit(EVENT_RESULT, result=reported)

        if self.batch_mode:
            async with self._batch_lock:
                self._batch.append(reported)
            return reported

        if self._storage is not None and self._task_id:
            await self._persist(self._storage, self._task_id, reported)
        return reported

    async def report_batch(
        self, items: Iterable[tuple[str, GateResult]]
    ) -> list[ReportedResult]:
        """Report several ``(gate_name, result)`` pairs in order."""
        reported: list[ReportedResult] = []
        for gate_name, result in items:
            reported.append(await self.report_result(gate_name, result))
        return reported

    async def flush_batch(self) -> BatchFlushResult:
        """Persist every buffered result, then clear the batch.

        An empty batch is a no-op that does not touch storage.
        """
        async with self._batch_lock:
            pending = list(self._batch)
            self._batch.clear()

        if not pending:
            return BatchFlushResult(flushed=0)

        flush = BatchFlushResult(flushed=len(pending), results=pending)
        if self._storage is not None and self._task_id:
            for reported in pending:
                if await self._persist(self._storage, self._task_id, reported):
                    flush.stored += 1
                else:
                    flush.failed += 1

        logger.debug(
            "Flushed %d results (stored=%d, failed=%d)",
            flush.flushed, flush.stored, flush.failed,
        )
        self._events.emit(EVENT_BATCH_FLUSHED, flush=flush)
        return flush

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def generate_summary(self, results: Sequence[GateResult]) -> RunSummary:
        """Aggregate *results* into a :class:`RunSummary`.

        Pure with respect to *results*: calling it twice on the same
        sequence yields equal summaries.
        """
        summary = RunSummary(total=len(results), task_id=self._task_id, results=list(results))

        for result in results:
            if result.status == GateStatus.PASS:
                summary.passed += 1
            elif result.status == GateStatus.FAIL:
                summary.failed += 1
            elif result.status == GateStatus.SKIP:
                summary.skipped += 1
            else:
                summary.errors += 1

            gate_summary = summary.gates.setdefault(result.gate, GateSummary())
            gate_summary.total += 1
            if result.status == GateStatus.PASS:
                gate_summary.passed += 1
            elif result.status == GateStatus.FAIL:
                gate_summary.failed += 1
            gate_summary.results.append(result)

        if summary.failed > 0 or summary.errors > 0:
            summary.overall_status = RunVerdict.FAILED
        else:
            summary.overall_status = RunVerdict.PASSED
        summary.score = (summary.passed / summary.total) * 100 if summary.total else 0.0
        return summary

    async def store_summary(self, summary: RunSummary) -> RunSummary:
        """Best-effort persistence of the final summary."""
        if self._storage is None or not self._task_id:
            return summary
        try:
            stored = await self._storage.store_quality_result(
                self._task_id, SUMMARY_GATE_NAME, summary.to_dict()
            )
        except Exception as exc:
            logger.warning("Failed to store run summary (non-blocking): %s", exc)
            summary.stored = False
            summary.storage_error = str(exc)
            return summary

        summary.stored = True
        summary.storage_id = str(stored.get("id")) if stored else None
        return summary

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    @staticmethod
    def format_result(result: GateResult | ReportedResult) -> str:
        """One-line console rendering of a result."""
        gate_result = result.result if isinstance(result, ReportedResult) else result
        symbol = _STATUS_SYMBOLS.get(gate_result.status, "")
        line = f"{symbol} {gate_result.gate}: {gate_result.status.value.upper()}"
        if gate_result.issues:
            line += f" ({len(gate_result.issues)} issues)"
        if gate_result.error:
            line += f" -- {gate_result.error}"
        elif gate_result.reason:
            line += f" -- {gate_result.reason}"
        return line

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _persist(
        self, storage: StorageAdapter, task_id: str, reported: ReportedResult
    ) -> bool:
        try:
            stored = await storage.store_quality_result(
                task_id, reported.gate_name, reported.result.to_dict()
            )
        except Exception as exc:
            logger.warning(
                "Failed to store quality result for %s (non-blocking): %s",
                reported.gate_name, exc,
            )
            reported.stored = False
            reported.storage_error = str(exc)
            return False

        reported.stored = True
        reported.storage_id = str(stored.get("id")) if stored else None
        return True
