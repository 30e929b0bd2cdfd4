"""Unit tests for the trace lifecycle."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
import structlog

from sidecar_metrics.constants import HEADER_PROXY_SPAN_ID, MetricFields
from sidecar_metrics.lifecycle import StartTimestamp, TraceContext, TracedComputation, TraceLifecycle
from sidecar_metrics.metrics import MetricLabels, SidecarMetrics
from test_utils import BrokenHeadersRequest, FakeResponse, RecordingTraceBackend


async def _completes_after(clock, elapsed_ms, value=None, error=None):
    clock.advance(elapsed_ms)
    if error is not None:
        raise error
    return value


class TestStartTimestamp:
    """Test the set-once start timestamp holder."""

    def test_initially_unset(self):
        holder = StartTimestamp()
        assert holder.value is None
        assert holder.is_set is False

    def test_set_once(self):
        holder = StartTimestamp()

        assert holder.set_once(1000.0) is True
        assert holder.set_once(2000.0) is False
        assert holder.value == 1000.0

    def test_concurrent_set_once_has_single_winner(self):
        """Only one of many racing threads records the timestamp."""
        holder = StartTimestamp()
        barrier = threading.Barrier(16)

        def subscribe(n):
            barrier.wait()
            return holder.set_once(float(n))

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(subscribe, range(16)))

        assert results.count(True) == 1
        assert holder.value == float(results.index(True))


class TestTraceContext:
    """Test per-invocation context."""

    def test_completed_once(self, make_request):
        context = TraceContext(request=make_request())

        assert context.completed is False
        assert context.mark_completed() is True
        assert context.mark_completed() is False
        assert context.completed is True


class TestTracedSuccess:
    """A resolvable path completing with a value."""

    @pytest.mark.asyncio
    async def test_span_fields_and_header(self, lifecycle, backend, clock, make_request):
        """/api/foo resolves to download; subscribed at 1000, completed at 1150."""
        request = make_request("/api/foo")
        traced = lifecycle.wrap(request, _completes_after(clock, 150, value="payload"))

        result = await traced

        assert result == "payload"
        assert len(backend.spans) == 1
        span = backend.spans[0]
        assert span.name == "sidecar-download"
        assert span.fields[MetricFields.SERVICE] == "sidecar-svc"
        assert span.fields[MetricFields.FUNCTION] == "download"
        assert span.fields[MetricFields.LATENCY_MS] == 150
        assert span.fields[MetricFields.RESULT] == "success"
        assert span.closed is True
        assert request.get_header(HEADER_PROXY_SPAN_ID) == span.span_id

    @pytest.mark.asyncio
    async def test_backend_call_order(self, lifecycle, backend, clock, make_request):
        await lifecycle.wrap(make_request("/api/foo"), _completes_after(clock, 10, value=1))

        assert backend.call_names == [
            "start_root_span",
            "add_span_field",
            "add_span_field",
            "add_result_fields",
            "add_span_field",
            "add_span_field",
            "add_span_field",
            "add_span_field",
            "add_root_span_fields",
            "end_span",
        ]
        assert backend.calls[0] == ("start_root_span", ("sidecar-download",))

    @pytest.mark.asyncio
    async def test_value_passed_through_identically(self, lifecycle, clock, make_request):
        payload = FakeResponse(200, "tarball")

        result = await lifecycle.wrap(make_request(), _completes_after(clock, 5, value=payload))

        assert result is payload

    @pytest.mark.asyncio
    async def test_http_status_from_value(self, lifecycle, backend, clock, make_request):
        await lifecycle.wrap(make_request(), _completes_after(clock, 5, value=FakeResponse(404)))

        assert backend.spans[0].fields[MetricFields.HTTP_STATUS] == 404

    @pytest.mark.asyncio
    async def test_latency_metric_recorded(self, lifecycle, clock, metrics, make_request):
        await lifecycle.wrap(make_request(), _completes_after(clock, 150, value=None))

        metrics.timing.assert_called_once_with(
            SidecarMetrics.HANDLER_LATENCY_MS,
            150,
            labels={MetricLabels.FUNCTION: "download", MetricLabels.RESULT: "success"},
        )

    @pytest.mark.asyncio
    async def test_caller_log_context_preserved(self, lifecycle, clock, make_request):
        structlog.contextvars.bind_contextvars(request_id="r1", path="/caller/route")
        try:
            await lifecycle.wrap(make_request("/api/foo"), _completes_after(clock, 5, value=None))

            assert structlog.contextvars.get_contextvars() == {
                "request_id": "r1",
                "path": "/caller/route",
            }
        finally:
            structlog.contextvars.clear_contextvars()


class TestUnresolvedPath:
    """A path without a function mapping."""

    @pytest.mark.asyncio
    async def test_no_span_no_header(self, lifecycle, backend, clock, metrics, make_request):
        request = make_request("/unmapped/x")

        result = await lifecycle.wrap(request, _completes_after(clock, 20, value="x"))

        assert result == "x"
        assert backend.calls == []
        assert HEADER_PROXY_SPAN_ID not in request.headers
        metrics.timing.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_passes_through(self, lifecycle, backend, clock, make_request):
        error = KeyError("missing")

        with pytest.raises(KeyError) as exc_info:
            await lifecycle.wrap(make_request("/unmapped/x"), _completes_after(clock, 5, error=error))

        assert exc_info.value is error
        assert backend.calls == []


class TestTracedFailure:
    """A resolvable path whose computation fails."""

    @pytest.mark.asyncio
    async def test_same_error_reaches_caller(self, lifecycle, backend, clock, make_request):
        error = ConnectionError("upstream refused")
        request = make_request("/api/foo")

        with pytest.raises(ConnectionError) as exc_info:
            await lifecycle.wrap(request, _completes_after(clock, 75, error=error))

        assert exc_info.value is error
        assert str(exc_info.value) == "upstream refused"

        span = backend.spans[0]
        assert span.fields[MetricFields.LATENCY_MS] == 75
        assert span.fields[MetricFields.ERROR] is True
        assert span.fields[MetricFields.RESULT] == "error"
        assert span.fields[MetricFields.ERROR_CLASS] == "ConnectionError"
        assert span.fields[MetricFields.ERROR_MESSAGE] == "upstream refused"
        assert request.get_header(HEADER_PROXY_SPAN_ID) == span.span_id

    @pytest.mark.asyncio
    async def test_error_result_label(self, lifecycle, clock, metrics, make_request):
        with pytest.raises(ValueError):
            await lifecycle.wrap(make_request(), _completes_after(clock, 1, error=ValueError("x")))

        labels = metrics.timing.call_args.kwargs["labels"]
        assert labels[MetricLabels.RESULT] == "error"

    @pytest.mark.asyncio
    async def test_timeout_inside_computation_is_a_failure(self, lifecycle, backend, make_request):
        async def slow_upstream():
            await asyncio.wait_for(asyncio.sleep(10), timeout=0.01)

        with pytest.raises(asyncio.TimeoutError):
            await lifecycle.wrap(make_request(), slow_upstream())

        assert backend.spans[0].fields[MetricFields.ERROR] is True


class TestDisabled:
    """Instrumentation disabled by configuration."""

    @pytest.mark.asyncio
    async def test_zero_resolver_and_backend_calls(
        self, disabled_configuration, backend, clock, make_request, monkeypatch
    ):
        resolver = MagicMock(wraps=disabled_configuration.get_function_name)
        monkeypatch.setattr(disabled_configuration, "get_function_name", resolver)
        lifecycle = TraceLifecycle(disabled_configuration, backend, clock=clock)
        request = make_request("/api/foo")

        result = await lifecycle.wrap(request, _completes_after(clock, 10, value="ok"))

        assert result == "ok"
        resolver.assert_not_called()
        assert backend.calls == []
        assert HEADER_PROXY_SPAN_ID not in request.headers


class TestSubscription:
    """Subscription events and the start timestamp."""

    @pytest.mark.asyncio
    async def test_start_recorded_on_subscription_not_creation(self, lifecycle, backend, clock, make_request):
        traced = lifecycle.wrap(make_request(), _completes_after(clock, 30, value=1))
        clock.advance(500)  # not yet subscribed

        assert traced.context.start.value is None
        await traced

        assert traced.context.start.value == 1500
        assert backend.spans[0].fields[MetricFields.LATENCY_MS] == 30

    @pytest.mark.asyncio
    async def test_multiple_subscriptions_single_start_single_span(
        self, lifecycle, backend, clock, make_request
    ):
        """Two awaiters of the same future share one start timestamp and one span."""
        future = asyncio.get_running_loop().create_future()
        traced = lifecycle.wrap(make_request(), future)

        first = asyncio.ensure_future(traced)
        await asyncio.sleep(0)
        clock.advance(50)
        second = asyncio.ensure_future(traced)
        await asyncio.sleep(0)
        clock.advance(100)
        future.set_result("done")

        assert await first == "done"
        assert await second == "done"
        assert traced.context.start.value == 1000
        assert len(backend.spans) == 1
        assert backend.spans[0].fields[MetricFields.LATENCY_MS] == 150

    @pytest.mark.asyncio
    async def test_wrapped_result_is_awaitable_by_tasks(self, lifecycle, clock, make_request):
        traced = lifecycle.wrap(make_request(), _completes_after(clock, 1, value="v"))

        assert isinstance(traced, TracedComputation)
        assert await asyncio.ensure_future(traced) == "v"


class TestCancellation:
    """Cancelled computations emit nothing."""

    @pytest.mark.asyncio
    async def test_cancelled_before_completion(self, lifecycle, backend, make_request):
        started = asyncio.Event()
        request = make_request()

        async def never_finishes():
            started.set()
            await asyncio.sleep(10)

        task = asyncio.ensure_future(lifecycle.wrap(request, never_finishes()))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert backend.calls == []
        assert HEADER_PROXY_SPAN_ID not in request.headers


class TestInstrumentationFailures:
    """Exceptions raised by the instrumentation never reach the caller."""

    @pytest.mark.asyncio
    async def test_backend_field_failure_swallowed(self, configuration, clock, metrics, make_request):
        backend = RecordingTraceBackend(fail_on="add_span_field")
        lifecycle = TraceLifecycle(configuration, backend, clock=clock, metrics=metrics)
        request = make_request()

        result = await lifecycle.wrap(request, _completes_after(clock, 10, value="ok"))

        assert result == "ok"
        # Span still closed after the failing field call
        assert backend.call_names[-1] == "end_span"
        assert request.get_header(HEADER_PROXY_SPAN_ID) == backend.spans[0].span_id
        metrics.increment.assert_called_once_with(
            SidecarMetrics.INSTRUMENTATION_FAILURES, labels={MetricLabels.STAGE: "complete"}
        )

    @pytest.mark.asyncio
    async def test_backend_start_failure_keeps_error(self, configuration, clock, make_request):
        backend = RecordingTraceBackend(fail_on="start_root_span")
        lifecycle = TraceLifecycle(configuration, backend, clock=clock)
        error = ValueError("bad tarball")

        with pytest.raises(ValueError) as exc_info:
            await lifecycle.wrap(make_request(), _completes_after(clock, 10, error=error))

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_resolver_failure_swallowed(self, configuration, backend, clock, make_request, monkeypatch):
        monkeypatch.setattr(
            configuration, "get_function_name", MagicMock(side_effect=RuntimeError("regex engine"))
        )
        lifecycle = TraceLifecycle(configuration, backend, clock=clock)

        result = await lifecycle.wrap(make_request(), _completes_after(clock, 10, value="ok"))

        assert result == "ok"
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_header_failure_swallowed(self, lifecycle, backend, clock):
        request = BrokenHeadersRequest("/api/foo")

        result = await lifecycle.wrap(request, _completes_after(clock, 10, value="ok"))

        assert result == "ok"
        assert backend.call_names == ["start_root_span", "end_span"]

    @pytest.mark.asyncio
    async def test_clock_failure_on_subscribe_swallowed(self, configuration, backend, make_request):
        clock = MagicMock()
        clock.now_ms.side_effect = OSError("clock unavailable")
        lifecycle = TraceLifecycle(configuration, backend, clock=clock)

        async def body():
            return "ok"

        assert await lifecycle.wrap(make_request(), body()) == "ok"
        assert backend.calls == []


class TestBackendWithoutSpan:
    """Backend unable to create a span."""

    @pytest.mark.asyncio
    async def test_no_header_when_span_not_created(self, configuration, clock, make_request):
        backend = RecordingTraceBackend(return_none=True)
        lifecycle = TraceLifecycle(configuration, backend, clock=clock)
        request = make_request()

        result = await lifecycle.wrap(request, _completes_after(clock, 10, value="ok"))

        assert result == "ok"
        assert HEADER_PROXY_SPAN_ID not in request.headers
        assert "add_span_field" in backend.call_names
        assert backend.call_names[-1] == "end_span"
