"""Sidecar event type constants."""

from enum import Enum


class SidecarEvents(str, Enum):
    """Event type constants for structured logging."""

    # Lifecycle events
    TRACE_SUBSCRIBE = "sidecar.trace.subscribe"
    TRACE_COMPLETE = "sidecar.trace.complete"
    TRACE_SKIPPED = "sidecar.trace.skipped"
    TRACE_CANCELLED = "sidecar.trace.cancelled"
    INSTRUMENTATION_FAILED = "sidecar.trace.instrumentation_failed"

    # Backend events
    SPAN_START = "sidecar.span.start"
    SPAN_END = "sidecar.span.end"

    # Registration events
    HANDLER_REGISTERED = "sidecar.handler.registered"


__all__ = ["SidecarEvents"]
