"""
Trace lifecycle of a single instrumented handler call.

A handler's awaitable is wrapped in a TracedComputation. Awaiting it is a
subscription: the first one records the start timestamp. When the wrapped
awaitable returns or raises, the completion callback resolves the function
name, opens a root span, writes the span id header, attaches fields and
closes the span, then hands the handler's outcome back to the awaiting caller.

Span open and close both happen in the completion callback. Subscription and
completion can run in different execution contexts, and the trace backend
only correlates a span's open and close within one context; the subscription
to completion duration is carried by the ``latency_ms`` field instead of the
span's own timing.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Generator

from .carrier import RequestCarrier
from .clock import Clock, MonotonicClock
from .config import TracingConfiguration
from .constants import HEADER_PROXY_SPAN_ID, MetricFields, ResultValues
from .events import SidecarEvents
from .log_config import RequestLogContext, get_context_logger
from .metrics import MetricLabels, MetricsCollector, NoOpMetrics, SidecarMetrics
from .tracing import TraceBackend


class StartTimestamp:
    """Set-once holder for the first subscription time of a call."""

    def __init__(self) -> None:
        self._value: float | None = None
        self._lock = threading.Lock()

    def set_once(self, value: float) -> bool:
        """Record ``value`` unless a timestamp is already recorded.

        Returns:
            True if this call recorded the timestamp
        """
        with self._lock:
            if self._value is not None:
                return False
            self._value = value
            return True

    @property
    def value(self) -> float | None:
        with self._lock:
            return self._value

    @property
    def is_set(self) -> bool:
        return self.value is not None


@dataclass
class TraceContext:
    """Per-invocation state, owned by the TracedComputation of that call."""

    request: RequestCarrier
    start: StartTimestamp = field(default_factory=StartTimestamp)

    _completed: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def mark_completed(self) -> bool:
        """Flip the context to completed.

        Returns:
            True for the first completion only
        """
        with self._lock:
            if self._completed:
                return False
            self._completed = True
            return True

    @property
    def completed(self) -> bool:
        with self._lock:
            return self._completed


def _await_iter(awaitable: Awaitable[Any]) -> Generator[Any, None, Any]:
    await_method = getattr(awaitable, "__await__", None)
    if await_method is None:
        # Generator-based coroutine (types.coroutine)
        return awaitable  # type: ignore[return-value]
    return await_method()


class TracedComputation:
    """
    Awaitable wrapper adding trace emission to a handler's awaitable.

    The wrapped awaitable's value is returned and its exception re-raised as
    the very same object. Cancellation propagates without a completion event,
    so a cancelled call emits no span.
    """

    def __init__(
        self,
        awaitable: Awaitable[Any],
        context: TraceContext,
        lifecycle: "TraceLifecycle",
    ):
        self._awaitable = awaitable
        self.context = context
        self._lifecycle = lifecycle

    def __await__(self) -> Generator[Any, None, Any]:
        self._lifecycle.on_subscribe(self.context)
        try:
            value = yield from _await_iter(self._awaitable)
        except asyncio.CancelledError:
            self._lifecycle.on_cancel(self.context)
            raise
        except Exception as error:
            self._lifecycle.on_complete(self.context, None, error)
            raise
        self._lifecycle.on_complete(self.context, value, None)
        return value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._awaitable!r}, path={self.context.request.path!r})"


class TraceLifecycle:
    """
    Subscription and completion callbacks of instrumented calls.

    One instance is shared by every call of the handlers it instruments; all
    per-call state lives in the TraceContext passed to each callback.

    Args:
        configuration: Enablement flag, service name and function resolver
        backend: Trace backend opening and closing spans
        clock: Millisecond clock (default: MonotonicClock)
        metrics: Latency metrics collector (default: NoOpMetrics)
    """

    def __init__(
        self,
        configuration: TracingConfiguration,
        backend: TraceBackend,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.configuration = configuration
        self.backend = backend
        self.clock = clock or MonotonicClock()
        self.metrics = metrics or NoOpMetrics()
        self.logger = get_context_logger("sidecar.lifecycle")

    def wrap(self, request: RequestCarrier, awaitable: Awaitable[Any]) -> TracedComputation:
        return TracedComputation(awaitable, TraceContext(request=request), self)

    def on_subscribe(self, context: TraceContext) -> None:
        try:
            if context.start.set_once(self.clock.now_ms()):
                self.logger.debug(SidecarEvents.TRACE_SUBSCRIBE.value, path=context.request.path)
        except Exception as e:
            self._record_failure(e, "subscribe")

    def on_cancel(self, context: TraceContext) -> None:
        try:
            self.logger.debug(SidecarEvents.TRACE_CANCELLED.value, path=context.request.path)
        except Exception as e:
            self._record_failure(e, "cancel")

    def on_complete(self, context: TraceContext, value: Any, error: Exception | None) -> None:
        """Emit the span of a completed call; never raises."""
        if not context.mark_completed():
            return
        if not self.configuration.is_enabled():
            return
        try:
            self._emit(context, self.clock.now_ms(), value, error)
        except Exception as e:
            self._record_failure(e, "complete")

    def _emit(
        self, context: TraceContext, completed_ms: float, value: Any, error: Exception | None
    ) -> None:
        request = context.request
        path = request.path
        function = self.configuration.get_function_name(path)
        if not function:
            self.logger.debug(SidecarEvents.TRACE_SKIPPED.value, path=path)
            return

        started_ms = context.start.value
        elapsed_ms = max(0.0, completed_ms - started_ms) if started_ms is not None else 0.0

        with RequestLogContext(path=path, function=function):
            span = self.backend.start_root_span(self.configuration.span_name(function))
            try:
                if span is not None:
                    request.set_header(HEADER_PROXY_SPAN_ID, span.span_id)
                self.backend.add_span_field(MetricFields.SERVICE, self.configuration.get_service_name())
                self.backend.add_span_field(MetricFields.FUNCTION, function)
                self.backend.add_result_fields(elapsed_ms, request, value, error)
                self.backend.add_root_span_fields()
            finally:
                self.backend.end_span()

            result = ResultValues.SUCCESS if error is None else ResultValues.ERROR
            self.metrics.timing(
                SidecarMetrics.HANDLER_LATENCY_MS,
                elapsed_ms,
                labels={MetricLabels.FUNCTION: function, MetricLabels.RESULT: result},
            )
            self.logger.debug(
                SidecarEvents.TRACE_COMPLETE.value,
                elapsed_ms=elapsed_ms,
                result=result,
                span_id=span.span_id if span is not None else None,
            )

    def _record_failure(self, error: Exception, stage: str) -> None:
        try:
            self.logger.debug(
                SidecarEvents.INSTRUMENTATION_FAILED.value,
                stage=stage,
                error=str(error),
                error_type=type(error).__name__,
                exc_info=error,
            )
            self.metrics.increment(
                SidecarMetrics.INSTRUMENTATION_FAILURES, labels={MetricLabels.STAGE: stage}
            )
        except Exception:
            # Nowhere left to report to.
            pass


__all__ = [
    "StartTimestamp",
    "TraceContext",
    "TracedComputation",
    "TraceLifecycle",
]
