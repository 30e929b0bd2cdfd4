"""
Sidecar Metrics Package

Latency measurement and trace-span emission for the asynchronous request
handlers of a proxy sidecar. Handlers are decorated once at registration
time; each traced call records its subscription-to-completion latency, emits
a root span named after the function resolved from the request path, and
writes the span id to the ``Proxy-Span-Id`` outbound header. The handler's
own value or exception reaches the caller unchanged.

This package provides:
- MetricsHandlerInterceptor: decorator instrumenting handlers
- TracingConfiguration: enablement, service name and path -> function mapping
- TraceBackend implementations: NoOpTraceBackend, OpenTelemetryTraceBackend
- ProxyRequest: default request carrier

Usage:
    from sidecar_metrics import MetricsHandlerInterceptor, ProxyRequest

    interceptor = MetricsHandlerInterceptor.from_settings()

    @interceptor
    async def download(request: ProxyRequest):
        return await upstream.get(request.path, headers=request.headers)
"""

from .carrier import ProxyRequest, RequestCarrier
from .clock import Clock, ManualClock, MonotonicClock
from .config import FunctionMapping, TracingConfiguration
from .constants import HEADER_PROXY_SPAN_ID, MetricFields, ResultValues
from .exceptions import CarrierNotDeclaredError, SidecarMetricsError, TracingConfigError
from .interceptor import MetricsHandlerInterceptor
from .lifecycle import StartTimestamp, TraceContext, TracedComputation, TraceLifecycle
from .log_config import configure_logging, get_context_logger
from .settings import HoneycombSettings, Settings, get_settings, reload_settings
from .tracing import NoOpTraceBackend, OpenTelemetryTraceBackend, Span, TraceBackend, build_backend

__version__ = "1.0.0"

__all__ = [
    # Instrumentation
    "MetricsHandlerInterceptor",
    "TraceLifecycle",
    "TracedComputation",
    "TraceContext",
    "StartTimestamp",
    # Carrier
    "RequestCarrier",
    "ProxyRequest",
    # Configuration
    "TracingConfiguration",
    "FunctionMapping",
    "Settings",
    "HoneycombSettings",
    "get_settings",
    "reload_settings",
    # Backends
    "TraceBackend",
    "NoOpTraceBackend",
    "OpenTelemetryTraceBackend",
    "Span",
    "build_backend",
    # Clocks
    "Clock",
    "MonotonicClock",
    "ManualClock",
    # Constants
    "HEADER_PROXY_SPAN_ID",
    "MetricFields",
    "ResultValues",
    # Errors
    "SidecarMetricsError",
    "TracingConfigError",
    "CarrierNotDeclaredError",
    # Logging
    "configure_logging",
    "get_context_logger",
    # Package metadata
    "__version__",
]
