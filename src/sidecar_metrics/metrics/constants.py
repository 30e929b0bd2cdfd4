"""Metric name constants for sidecar handler instrumentation."""


class SidecarMetrics:
    """Metric name constants."""

    # Latency of resolved handler calls, first subscription to completion
    HANDLER_LATENCY_MS = "sidecar.handler.latency"

    # Exceptions raised by the instrumentation itself (swallowed)
    INSTRUMENTATION_FAILURES = "sidecar.instrumentation.failures"


class MetricLabels:
    """Standard label names for metrics."""

    FUNCTION = "function"  # Resolved function name
    RESULT = "result"  # success, error
    STAGE = "stage"  # Instrumentation step that failed


__all__ = ["SidecarMetrics", "MetricLabels"]
