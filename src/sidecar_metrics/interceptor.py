"""
Handler interceptor attaching trace emission to sidecar request handlers.

Usage:
    interceptor = MetricsHandlerInterceptor.from_settings()

    @interceptor
    async def download(request: ProxyRequest) -> httpx.Response:
        ...

    @interceptor(carrier="req")
    def metadata(repo: str, req: ProxyRequest) -> Awaitable[httpx.Response]:
        ...

The handler names the parameter holding its request carrier (``request`` by
default). Calls whose result is awaitable and whose carrier argument is a
RequestCarrier get a traced result; every other call is passed through as is.
"""

import functools
import inspect
from typing import Any, Callable

from .carrier import RequestCarrier
from .clock import Clock
from .config import TracingConfiguration
from .events import SidecarEvents
from .exceptions import CarrierNotDeclaredError
from .lifecycle import TraceLifecycle
from .log_config import get_context_logger
from .metrics import MetricsCollector
from .settings import Settings, get_settings
from .tracing import TraceBackend, build_backend


class MetricsHandlerInterceptor:
    """
    Decorator factory instrumenting sidecar handlers.

    Collaborators are passed in explicitly and shared by all decorated
    handlers; build one interceptor at startup and reuse it.

    Args:
        configuration: Tracing configuration (enablement, service, functions)
        backend: Trace backend (default: built from the configuration)
        clock: Millisecond clock (default: MonotonicClock)
        metrics: Latency metrics collector (default: NoOpMetrics)
    """

    def __init__(
        self,
        configuration: TracingConfiguration,
        backend: TraceBackend | None = None,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.configuration = configuration
        self.backend = backend or build_backend(configuration)
        self.lifecycle = TraceLifecycle(configuration, self.backend, clock=clock, metrics=metrics)
        self.logger = get_context_logger("sidecar.interceptor")

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "MetricsHandlerInterceptor":
        """
        Create an interceptor from loaded settings.

        Args:
            settings: Settings instance (default: get_settings())
            **kwargs: backend, clock or metrics overrides

        Returns:
            MetricsHandlerInterceptor: Configured interceptor
        """
        configuration = TracingConfiguration.from_settings(settings or get_settings())
        return cls(configuration, **kwargs)

    def intercept(self, result: Any, request: Any) -> Any:
        """
        Select the result handed back to the caller of a handler.

        Args:
            result: What the handler returned
            request: The argument bound to the handler's carrier parameter

        Returns:
            A TracedComputation when the result is awaitable, the request is
            a RequestCarrier and tracing is enabled; otherwise ``result``
        """
        if not inspect.isawaitable(result):
            return result
        if not isinstance(request, RequestCarrier):
            return result
        if not self.configuration.is_enabled():
            return result
        return self.lifecycle.wrap(request, result)

    def __call__(self, handler: Callable | None = None, *, carrier: str = "request") -> Any:
        if handler is None:
            return functools.partial(self.__call__, carrier=carrier)
        return self._decorate(handler, carrier)

    def _decorate(self, handler: Callable, carrier: str) -> Callable:
        signature = inspect.signature(handler)
        if carrier not in signature.parameters:
            raise CarrierNotDeclaredError(
                "Handler does not declare its request carrier parameter",
                handler_name=getattr(handler, "__qualname__", repr(handler)),
                carrier=carrier,
            )

        def carrier_of(args: tuple, kwargs: dict) -> Any:
            try:
                bound = signature.bind_partial(*args, **kwargs)
            except TypeError:
                return None
            return bound.arguments.get(carrier)

        self.logger.debug(
            SidecarEvents.HANDLER_REGISTERED.value,
            handler=getattr(handler, "__qualname__", repr(handler)),
            carrier=carrier,
        )

        if inspect.iscoroutinefunction(handler):

            @functools.wraps(handler)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                result = handler(*args, **kwargs)
                return await self.intercept(result, carrier_of(args, kwargs))

            return async_wrapper

        @functools.wraps(handler)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = handler(*args, **kwargs)
            return self.intercept(result, carrier_of(args, kwargs))

        return wrapper


__all__ = ["MetricsHandlerInterceptor"]
