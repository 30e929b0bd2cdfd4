"""
Field and header name constants for sidecar handler tracing.

Provides standardized span field names so every span emitted by the sidecar
can be queried with the same keys in the tracing backend.
"""

HEADER_PROXY_SPAN_ID = "Proxy-Span-Id"
"""Outbound header carrying the id of the span created for the request."""

DEFAULT_SPAN_NAME_PREFIX = "sidecar-"


class MetricFields:
    """Span field names attached by the handler instrumentation."""

    # Identity
    SERVICE = "service"
    FUNCTION = "function"

    # Timing
    LATENCY_MS = "latency_ms"

    # Request
    PATH = "path"
    HTTP_METHOD = "http_method"
    HTTP_STATUS = "http_status"

    # Outcome
    RESULT = "result"  # success, error
    ERROR = "error"
    ERROR_CLASS = "error_class"
    ERROR_MESSAGE = "error_message"

    # Root span aggregates
    HOSTNAME = "hostname"
    PID = "pid"
    SPAN_FIELD_COUNT = "span_field_count"


class ResultValues:
    """Values of the ``result`` field."""

    SUCCESS = "success"
    ERROR = "error"


__all__ = [
    "HEADER_PROXY_SPAN_ID",
    "DEFAULT_SPAN_NAME_PREFIX",
    "MetricFields",
    "ResultValues",
]
