"""Tests for metrics and tracing helpers."""
from __future__ import annotations

from typing import Any, Dict

import pytest

from weekwise.core.context import bind_user
from weekwise.observability import metrics
from weekwise.observability import tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.updates: list[Dict[str, Any]] = []
        self.ended = False

    def update(self, **kwargs: Any) -> None:
        self.updates.append(kwargs)

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


@pytest.fixture()
def dummy_client(monkeypatch) -> _DummyClient:
    client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)
    return client


def test_log_metric_closes_trace(dummy_client) -> None:
    metrics.log_metric("demo_metric", 42, metadata={"foo": "bar"})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].name == "metric:demo_metric"
    assert dummy_client.traces[0].metadata["value"] == 42
    assert dummy_client.traces[0].metadata["foo"] == "bar"
    assert dummy_client.traces[0].ended is True


def test_log_metric_is_a_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    metrics.log_metric("demo_metric", 1)


def test_timed_reports_latency_with_outcome(dummy_client) -> None:
    with metrics.timed("agent.turn", metadata={"mode": "chat"}) as outcome:
        outcome["steps"] = 2

    recorded = dummy_client.traces[0]
    assert recorded.name == "metric:agent.turn_latency_ms"
    assert recorded.metadata["mode"] == "chat" and recorded.metadata["steps"] == 2
    assert recorded.metadata["value"] >= 0


def test_trace_carries_bound_user_and_records_errors(dummy_client) -> None:
    with pytest.raises(ValueError):
        with bind_user("user-1"), tracing.trace("plan.generate"):
            raise ValueError("boom")

    recorded = dummy_client.traces[0]
    assert recorded.metadata["user_id"] == "user-1"
    assert recorded.updates == [{"error_info": {"message": "boom"}}]
    assert recorded.ended is True


def test_traced_tags_structured_errors(dummy_client) -> None:
    @tracing.traced("session.complete")
    def failing() -> Dict[str, Any]:
        return {"error": "Session not found", "error_type": "not_found"}

    assert failing() == {"error": "Session not found", "error_type": "not_found"}
    assert dummy_client.traces[0].updates == [{"metadata": {"error_type": "not_found"}}]
