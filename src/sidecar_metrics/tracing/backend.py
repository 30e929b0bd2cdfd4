"""
Abstract base class for trace backends.

Provides a pluggable interface for the tracing client that creates spans,
with a zero-overhead default implementation. Transport of finished spans is
the backend's business; the instrumentation only drives the span lifecycle.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..constants import MetricFields, ResultValues
from .span import Span


class TraceBackend(ABC):
    """
    Abstract base class for trace backends.

    The backend keeps track of the "current" span itself, so field and end
    calls apply to the span most recently opened in the same execution
    context. Implementations must tolerate calls made while no span is open.
    """

    @abstractmethod
    def start_root_span(self, name: str) -> Span | None:
        """
        Open a root span and make it current.

        Args:
            name: Span name

        Returns:
            The new span, or None if the backend could not create one
        """
        pass

    @abstractmethod
    def add_span_field(self, key: str, value: Any) -> None:
        """Attach a field to the current span."""
        pass

    @abstractmethod
    def add_root_span_fields(self) -> None:
        """Attach backend-defined aggregate fields to the current root span."""
        pass

    @abstractmethod
    def end_span(self) -> None:
        """Close the current span."""
        pass

    def add_result_fields(
        self,
        elapsed_ms: float,
        request: Any,
        value: Any,
        error: BaseException | None,
    ) -> None:
        """
        Attach fields describing the outcome of the traced call.

        Args:
            elapsed_ms: Milliseconds between first subscription and completion
            request: The request carrier of the call
            value: The value the call produced (None on failure)
            error: The exception the call raised (None on success)
        """
        for key, field_value in self.result_fields(elapsed_ms, request, value, error).items():
            self.add_span_field(key, field_value)

    @staticmethod
    def result_fields(
        elapsed_ms: float,
        request: Any,
        value: Any,
        error: BaseException | None,
    ) -> dict[str, Any]:
        """Derive outcome fields from a completed call.

        The HTTP status is taken from the value (or from the ``response`` of
        an error such as httpx.HTTPStatusError) when it carries an integer
        ``status_code``; no other assumption is made about the payload.
        """
        fields: dict[str, Any] = {MetricFields.LATENCY_MS: elapsed_ms}

        path = getattr(request, "path", None)
        if path:
            fields[MetricFields.PATH] = path
        method = getattr(request, "method", None)
        if method:
            fields[MetricFields.HTTP_METHOD] = method

        source = value if error is None else getattr(error, "response", None)
        status = getattr(source, "status_code", None)
        if isinstance(status, int):
            fields[MetricFields.HTTP_STATUS] = status

        if error is None:
            fields[MetricFields.RESULT] = ResultValues.SUCCESS
        else:
            fields[MetricFields.RESULT] = ResultValues.ERROR
            fields[MetricFields.ERROR] = True
            fields[MetricFields.ERROR_CLASS] = type(error).__name__
            fields[MetricFields.ERROR_MESSAGE] = str(error)
        return fields


class NoOpTraceBackend(TraceBackend):
    """
    No-operation trace backend.

    Default implementation with zero overhead: never creates a span, so no
    span id header is ever written.
    """

    def start_root_span(self, name: str) -> Span | None:
        """No-op span start."""
        return None

    def add_span_field(self, key: str, value: Any) -> None:
        """No-op field."""
        pass

    def add_result_fields(
        self,
        elapsed_ms: float,
        request: Any,
        value: Any,
        error: BaseException | None,
    ) -> None:
        """No-op result fields."""
        pass

    def add_root_span_fields(self) -> None:
        """No-op root fields."""
        pass

    def end_span(self) -> None:
        """No-op span end."""
        pass


__all__ = ["TraceBackend", "NoOpTraceBackend"]
