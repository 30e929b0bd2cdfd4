"""Span handle shared by the trace backends."""

from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace


def format_span_id(span_id: int) -> str:
    """Render an OpenTelemetry span id as 16 hexadecimal characters."""
    return format(span_id, "016x")


def format_trace_id(trace_id: int) -> str:
    """Render an OpenTelemetry trace id as 32 hexadecimal characters."""
    return format(trace_id, "032x")


@dataclass
class Span:
    """A unit of work recorded by a trace backend.

    Attributes:
        name: Span name (e.g. "sidecar-download")
        span_id: Identifier propagated in the Proxy-Span-Id header
        trace_id: Identifier of the trace the span belongs to
        fields: Key/value fields attached while the span is open
        otel_span: Underlying OpenTelemetry span, when the backend has one
    """

    name: str
    span_id: str
    trace_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    closed: bool = False

    otel_span: trace.Span | None = field(default=None, repr=False, compare=False)
    token: object | None = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_otel(cls, name: str, otel_span: trace.Span) -> "Span":
        ctx = otel_span.get_span_context()
        return cls(
            name=name,
            span_id=format_span_id(ctx.span_id),
            trace_id=format_trace_id(ctx.trace_id),
            otel_span=otel_span,
        )

    def add_field(self, key: str, value: Any) -> None:
        self.fields[key] = value

    def to_log_dict(self) -> dict[str, Any]:
        """Convert span to a dictionary for structured logging."""
        return {
            "span_name": self.name,
            "span_id": self.span_id,
            "trace_id": self.trace_id,
            "fields": dict(self.fields),
        }


__all__ = ["Span", "format_span_id", "format_trace_id"]
