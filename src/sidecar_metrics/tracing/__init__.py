"""
Trace backends for sidecar handler instrumentation.

Example:
    >>> from sidecar_metrics.tracing import NoOpTraceBackend, OpenTelemetryTraceBackend
    >>>
    >>> # No-op backend (default, zero overhead)
    >>> backend = NoOpTraceBackend()
    >>> backend.start_root_span("sidecar-download") is None
    True
    >>>
    >>> # Root spans on an OpenTelemetry tracer provider
    >>> backend = OpenTelemetryTraceBackend(root_fields={"environment": "prod"})
"""

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider

from ..config import TracingConfiguration
from .backend import NoOpTraceBackend, TraceBackend
from .otel_backend import OpenTelemetryTraceBackend
from .span import Span, format_span_id, format_trace_id


def build_backend(
    configuration: TracingConfiguration,
    tracer_provider: trace.TracerProvider | None = None,
) -> TraceBackend:
    """Create the backend matching a tracing configuration.

    Exporters are attached by the application through
    ``backend.tracer_provider.add_span_processor(...)``.

    Args:
        configuration: Loaded tracing configuration
        tracer_provider: Provider to record spans on (default: a new SDK
            provider whose resource carries the configured service name)

    Returns:
        OpenTelemetryTraceBackend when tracing is enabled, NoOpTraceBackend otherwise
    """
    if not configuration.is_enabled():
        return NoOpTraceBackend()
    if tracer_provider is None:
        resource = Resource.create({SERVICE_NAME: configuration.get_service_name()})
        tracer_provider = TracerProvider(resource=resource)
    return OpenTelemetryTraceBackend(
        tracer_provider=tracer_provider, root_fields=configuration.root_fields
    )


__all__ = [
    "Span",
    "TraceBackend",
    "NoOpTraceBackend",
    "OpenTelemetryTraceBackend",
    "build_backend",
    "format_span_id",
    "format_trace_id",
]
