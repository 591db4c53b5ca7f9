from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol, cast

from exchange_contracts import TraceEmitter, VerdictEvent

SPAN_NAME = "exchange.access.verdict"


class SpanLike(Protocol):
    def set_attribute(self, key: str, value: str | bool | int) -> None: ...


class TracerLike(Protocol):
    def start_as_current_span(self, name: str) -> AbstractContextManager[SpanLike]: ...


def verdict_span_attributes(event: VerdictEvent) -> dict[str, str | bool | int]:
    return {
        "exchange.event_type": event.event_type,
        "exchange.principal": event.principal,
        "exchange.level": event.level,
        "exchange.scope": event.scope.value,
        "exchange.status": event.status.value,
        "exchange.mismatch": event.status.is_mismatch,
        "exchange.predicted_allowed": event.predicted_allowed,
        "exchange.actual_allowed": event.actual_allowed,
        "exchange.http_status": event.http_status,
        "exchange.emitted_at_epoch_s": event.emitted_at_epoch_s,
    }


class OpenTelemetryTraceEmitter(TraceEmitter):
    """Records each level verdict as one span; mismatches are flagged on the span."""

    def __init__(self, tracer: TracerLike | None = None) -> None:
        self._tracer = tracer if tracer is not None else _exchange_tracer()

    def emit(self, event: VerdictEvent) -> None:
        with self._tracer.start_as_current_span(SPAN_NAME) as span:
            for key, value in verdict_span_attributes(event).items():
                span.set_attribute(key, value)


def _exchange_tracer() -> TracerLike:
    try:
        from opentelemetry import trace
    except ImportError as exc:
        raise RuntimeError(
            "--otel needs the 'opentelemetry-api' package (pip install exchange-access[otel]); "
            "library callers may pass their own tracer instead."
        ) from exc
    return cast(TracerLike, trace.get_tracer("exchange-access"))
