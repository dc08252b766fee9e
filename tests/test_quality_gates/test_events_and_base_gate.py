"""Tests for the event bus and the BaseGate helpers."""

from __future__ import annotations

import pytest

from src.quality_gates.base_gate import BaseGate
from src.quality_gates.events import EventBus
from src.quality_gates.models import GateContext, GateResult, GateStatus, Issue
from src.quality_gates.protocols import Gate


class _EchoGate(BaseGate):
    async def execute(self, code: str, context: GateContext) -> GateResult:
        return GateResult(status=GateStatus.PASS)


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class TestEventBus:
    def test_handlers_called_in_subscription_order(self):
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe("e", lambda p: calls.append("first"))
        bus.subscribe("e", lambda p: calls.append("second"))
        bus.emit("e")
        assert calls == ["first", "second"]

    def test_payload_passed_as_dict(self):
        bus = EventBus()
        seen: list[dict] = []
        bus.subscribe("gate-started", seen.append)
        bus.emit("gate-started", name="lint")
        assert seen == [{"name": "lint"}]

    def test_failing_handler_does_not_propagate(self):
        bus = EventBus()
        seen: list[dict] = []

        def _broken(payload):
            raise RuntimeError("listener bug")

        bus.subscribe("e", _broken)
        bus.subscribe("e", seen.append)
        bus.emit("e", x=1)
        assert seen == [{"x": 1}]

    def test_unsubscribe(self):
        bus = EventBus()
        seen: list[dict] = []
        bus.subscribe("e", seen.append)
        bus.unsubscribe("e", seen.append)
        bus.unsubscribe("e", seen.append)
        bus.emit("e")
        assert seen == []
        assert bus.listener_count("e") == 0

    def test_buses_are_independent(self):
        a, b = EventBus(), EventBus()
        seen: list[dict] = []
        a.subscribe("e", seen.append)
        b.emit("e")
        assert seen == []


# ---------------------------------------------------------------------------
# BaseGate
# ---------------------------------------------------------------------------


class TestBaseGate:
    def test_defaults(self):
        gate = _EchoGate()
        assert gate.name == "_EchoGate"
        assert gate.enabled is True
        assert gate.timeout_ms is None
        assert gate.retry_count == 0
        assert gate.failure_threshold == 1

    def test_satisfies_gate_protocol(self):
        assert isinstance(_EchoGate(name="echo"), Gate)

    def test_negative_retry_count_clamped(self):
        assert _EchoGate(retry_count=-3).retry_count == 0

    def test_config_is_copied(self):
        gate = _EchoGate(config={"a": 1})
        gate.config["a"] = 2
        assert gate.config == {"a": 1}

    @pytest.mark.parametrize(
        "label, rank",
        [("error", 3), ("WARNING", 2), ("info", 1), ("hint", 0), ("bogus", 0)],
    )
    def test_parse_severity(self, label, rank):
        assert BaseGate.parse_severity(label) == rank

    def test_should_fail_counts_errors_only(self):
        gate = _EchoGate(failure_threshold=2)
        one_error = [Issue(severity="error"), Issue(severity="warning")]
        two_errors = [Issue(severity="error"), Issue(severity="error")]
        assert gate.should_fail(one_error) is False
        assert gate.should_fail(two_errors) is True

    def test_verdict(self):
        gate = _EchoGate()
        assert gate.verdict([]) is GateStatus.PASS
        assert gate.verdict([Issue(severity="error")]) is GateStatus.FAIL
        assert gate.verdict([Issue(severity="warning")]) is GateStatus.PASS

    def test_repr(self):
        assert "name='echo'" in repr(_EchoGate(name="echo"))
