"""Gate executor -- deadline and bounded retry around ``Gate.execute``.

The executor is the only component aware of attempts.  It never lets a
gate-level error escape: raised exceptions and deadline overruns are
retried up to ``gate.retry_count`` times with linear backoff and finally
folded into a :attr:`GateStatus.ERROR` result.

Timeouts are enforced with :func:`asyncio.wait_for`, which cancels the
in-flight ``execute`` coroutine.  Gates that own a subprocess must kill
and reap it when cancelled (see :mod:`src.quality_gates.gates.process`).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Mapping

from src.quality_gates.constants import (
    DEFAULT_GATE_TIMEOUT_MS,
    DEFAULT_RETRY_BASE_DELAY_MS,
    EVENT_RETRY,
    REASON_GATE_DISABLED,
)
from src.quality_gates.events import EventBus
from src.quality_gates.exceptions import ExecutionError, GateTimeoutError
from src.quality_gates.models import GateContext, GateResult
from src.quality_gates.protocols import Gate
from src.shared.utils import elapsed_ms, now_iso

logger = logging.getLogger(__name__)


class GateExecutor:
    """Runs a single gate with timeout, retry and backoff.

    Usage
    -----
    ::

        executor = GateExecutor(base_delay_ms=500)
        result = await executor.run(gate, code, GateContext(language="python"))
    """

    def __init__(
        self,
        events: EventBus | None = None,
        base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS,
        default_timeout_ms: int = DEFAULT_GATE_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._events = events or EventBus()
        self._base_delay_ms = base_delay_ms
        self._default_timeout_ms = default_timeout_ms
        self._sleep = sleep

    @property
    def events(self) -> EventBus:
        return self._events

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_timeout(self, gate: Gate, timeout_ms: int | None = None) -> int:
        """Gate's own timeout, else *timeout_ms*, else the executor default."""
        if gate.timeout_ms:
            return int(gate.timeout_ms)
        if timeout_ms:
            return int(timeout_ms)
        return self._default_timeout_ms

    async def run(
        self,
        gate: Gate,
        code: str,
        context: GateContext | Mapping[str, Any] | None = None,
        timeout_ms: int | None = None,
    ) -> GateResult:
        """Execute *gate* against *code* and return its final result.

        Parameters
        ----------
        gate:
            Gate to run.  A disabled gate is skipped without invoking
            ``execute``.
        code:
            The code artifact under verification.
        context:
            Ambient parameters; plain mappings are converted.
        timeout_ms:
            Fallback deadline for gates without their own ``timeout_ms``.

        Returns
        -------
        GateResult
            The successful result with ``duration_ms`` and ``attempts``
            filled in, or an ``error`` result once retries are exhausted.
        """
        if not gate.enabled:
            logger.debug("Gate %s is disabled -- skipping", gate.name)
            return GateResult.skipped(gate.name, REASON_GATE_DISABLED)

        ctx = GateContext.from_mapping(context)
        deadline_ms = self.resolve_timeout(gate, timeout_ms)
        max_attempts = max(gate.retry_count, 0) + 1
        start = time.monotonic()
        attempts = 0

        while True:
            attempts += 1
            try:
                result = await self._execute_with_timeout(gate, code, ctx, deadline_ms)
            except Exception as exc:
                logger.warning(
                    "Gate %s attempt %d/%d failed: %s",
                    gate.name, attempts, max_attempts, _describe(exc),
                )
                if attempts >= max_attempts:
                    return GateResult.errored(
                        gate=gate.name,
                        error=_describe(exc),
                        attempts=attempts,
                        duration_ms=elapsed_ms(start),
                        details={
                            "attempts": attempts,
                            "error_type": type(exc).__name__,
                        },
                    )
                self._events.emit(
                    EVENT_RETRY,
                    gate=gate.name,
                    attempt=attempts,
                    error=_describe(exc),
                )
                await self._sleep(self._base_delay_ms * attempts / 1000.0)
                continue

            return replace(
                result,
                gate=gate.name,
                duration_ms=elapsed_ms(start),
                attempts=attempts,
                timestamp=now_iso(),
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute_with_timeout(
        self, gate: Gate, code: str, context: GateContext, timeout_ms: int
    ) -> GateResult:
        try:
            raw = await asyncio.wait_for(
                gate.execute(code, context), timeout=timeout_ms / 1000.0
            )
        except asyncio.TimeoutError as exc:
            raise GateTimeoutError(gate.name, timeout_ms) from exc
        return _coerce_result(gate.name, raw)


def _coerce_result(gate_name: str, raw: Any) -> GateResult:
    """Validate the value returned by ``execute``.

    Plain mappings with the contract keys are accepted; anything else, or
    a mapping with an unknown status, raises :class:`ExecutionError`.
    """
    if isinstance(raw, GateResult):
        return raw
    if isinstance(raw, Mapping):
        try:
            return GateResult.from_mapping(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise ExecutionError(
                gate_name, f"Gate '{gate_name}' returned a malformed result: {exc}"
            ) from exc
    raise ExecutionError(
        gate_name,
        f"Gate '{gate_name}' returned {type(raw).__name__}, expected GateResult",
    )


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__
