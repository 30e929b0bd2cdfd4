"""Trace backend recording spans through OpenTelemetry."""

import os
import socket
from typing import Any

import structlog
from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.trace import INVALID_SPAN, SpanKind

from ..constants import MetricFields
from ..events import SidecarEvents
from ..log_config import get_context_logger
from .backend import TraceBackend
from .span import Span

_ATTRIBUTE_TYPES = (str, bool, int, float)


def _attribute_value(value: Any) -> Any:
    if isinstance(value, _ATTRIBUTE_TYPES):
        return value
    return str(value)


class OpenTelemetryTraceBackend(TraceBackend):
    """
    Trace backend opening root spans on an OpenTelemetry tracer.

    The open span is attached to the OpenTelemetry context, so it is only
    current for the execution context that opened it; open and close must
    happen in the same context. Every span is started with an invalid parent,
    which makes it a root span regardless of any span the caller has active.
    Finished spans go to the span processors of the tracer provider and are
    also written as one ``sidecar.span.end`` structlog event.

    Examples:
        >>> from opentelemetry.sdk.trace import TracerProvider
        >>> backend = OpenTelemetryTraceBackend(TracerProvider(), root_fields={"environment": "prod"})
        >>> span = backend.start_root_span("sidecar-download")
        >>> backend.add_span_field("function", "download")
        >>> backend.add_root_span_fields()
        >>> backend.end_span()
    """

    def __init__(
        self,
        tracer_provider: trace.TracerProvider | None = None,
        root_fields: dict[str, Any] | None = None,
        logger: structlog.BoundLogger | None = None,
    ):
        """
        Initialize OpenTelemetry trace backend.

        Args:
            tracer_provider: Provider to take the tracer from (default: global provider)
            root_fields: Static fields attached to every root span
            logger: Logger to emit span events on (default: "sidecar.trace")
        """
        self.tracer_provider = tracer_provider or trace.get_tracer_provider()
        self.tracer = self.tracer_provider.get_tracer("sidecar_metrics")
        self.root_fields = dict(root_fields or {})
        self.logger = logger or get_context_logger("sidecar.trace")
        self._hostname = socket.gethostname()
        self._span_key = otel_context.create_key("sidecar-span")

    @property
    def current_span(self) -> Span | None:
        return otel_context.get_value(self._span_key)

    def start_root_span(self, name: str) -> Span | None:
        otel_span = self.tracer.start_span(
            name,
            context=trace.set_span_in_context(INVALID_SPAN),
            kind=SpanKind.SERVER,
        )
        if not otel_span.get_span_context().is_valid:
            # Non-recording provider: no id to propagate
            otel_span.end()
            return None

        span = Span.from_otel(name, otel_span)
        ctx = otel_context.set_value(self._span_key, span, trace.set_span_in_context(otel_span))
        span.token = otel_context.attach(ctx)
        self.logger.debug(
            SidecarEvents.SPAN_START.value,
            span_name=name,
            span_id=span.span_id,
            trace_id=span.trace_id,
        )
        return span

    def add_span_field(self, key: str, value: Any) -> None:
        span = self.current_span
        if span is None:
            return
        span.add_field(key, value)
        span.otel_span.set_attribute(key, _attribute_value(value))

    def add_root_span_fields(self) -> None:
        span = self.current_span
        if span is None:
            return
        field_count = len(span.fields)
        for key, value in self.root_fields.items():
            self.add_span_field(key, value)
        self.add_span_field(MetricFields.HOSTNAME, self._hostname)
        self.add_span_field(MetricFields.PID, os.getpid())
        self.add_span_field(MetricFields.SPAN_FIELD_COUNT, field_count)

    def end_span(self) -> None:
        span = self.current_span
        if span is None:
            return
        span.closed = True
        span.otel_span.end()
        token, span.token = span.token, None
        if token is not None:
            otel_context.detach(token)

        self.logger.info(SidecarEvents.SPAN_END.value, **span.to_log_dict())


__all__ = ["OpenTelemetryTraceBackend"]
